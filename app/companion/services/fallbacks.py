"""
Purpose: Canned replies that keep the conversation flowing when a model
service can't. Static tables; a reply is picked uniformly at random.
"""

from __future__ import annotations
import random
from typing import Optional, Sequence

# Generation raised or timed out.
APOLOGY_REPLIES: tuple[str, ...] = (
    "Oops! Something went wrong on my end. Mind giving that another shot?",
    "Ah, my brain just blanked for a sec. Can you say that again?",
    "Sorry, I lost my train of thought there. What were you saying?",
)

# Generation returned nothing usable.
EMPTY_REPLIES: tuple[str, ...] = (
    "Hey! I had a bit of trouble processing that. Can you try again?",
    "Hmm, I didn't quite catch that. Could you rephrase it for me?",
)

# No generation service configured at all.
FILLER_REPLIES: tuple[str, ...] = (
    "That's really interesting! Tell me more about that.",
    "I totally get what you mean. It's fascinating how that works!",
    "Oh wow, I hadn't thought about it that way before. Thanks for sharing!",
    "That sounds pretty cool! How did you get into that?",
    "I love hearing about stuff like this. What's been the most surprising part?",
    "Nice! I'm always down to chat about whatever's on your mind.",
)

TRANSCRIPTION_FAILED = "Could not transcribe audio"
TRANSCRIPTION_UNAVAILABLE = "Audio transcription not available"


def pick(table: Sequence[str], rng: Optional[random.Random] = None) -> str:
    return (rng or random).choice(table)
