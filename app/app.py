"""
UI layer
Purpose: Streamlit-only glue. Renders widgets/tabs, collects user inputs, and delegates
all work to the controller. Keeps UI concerns (layout/state widgets) separate from
business logic so logic can be unit tested without Streamlit.
"""

import streamlit as st
from audio_recorder_streamlit import audio_recorder
from datetime import datetime
import hashlib
import logging
import uuid

from companion.config import get_settings
from companion.controller import ConversationController
from companion.errors import InvalidInput, StorageFailure
from companion.models import LLMSettings, Personality
from companion.persistence.session_store import ContextStore, MessageStore
from companion.persistence.storage import build_storage
from companion.services.fallbacks import (
    TRANSCRIPTION_FAILED,
    TRANSCRIPTION_UNAVAILABLE,
)
from companion.services.llm_openai import OpenAILLMClient
from companion.models import Usage
from companion.services.pricing import CHAT_PRICE_TABLE, usage_cost
from companion.services.voice import autoplay_html


settings = get_settings()
logging.basicConfig(
    level=settings.log_level, format="[%(asctime)s] %(levelname)s - %(message)s"
)

# ---------------------------
# Page config
# ---------------------------
st.set_page_config(
    page_title="Chat Companion",
    page_icon="💬",
    layout="centered",
    initial_sidebar_state="expanded",
)
# ---------------------------
# UI constants
# ---------------------------
PERSONALITIES = [p.value for p in Personality]
PERSONALITY_LABELS = {
    Personality.CASUAL_FRIEND.value: "Casual friend",
    Personality.SUPPORTIVE_LISTENER.value: "Supportive listener",
    Personality.PLAYFUL_BANTER.value: "Playful banter",
    Personality.CURIOUS_THINKER.value: "Curious thinker",
}

# ---------------------------
# Session state init
# ---------------------------
st_session = st.session_state
st_session.setdefault("controller", None)
st_session.setdefault("api_key_set", False)
st_session.setdefault("chat_session_id", uuid.uuid4().hex)
st_session.setdefault("model", settings.chat_model if settings.chat_model in CHAT_PRICE_TABLE else "gpt-4o-mini")
st_session.setdefault("temperature", settings.temperature)
st_session.setdefault("top_p", settings.top_p)
st_session.setdefault("session_start_ts", datetime.now().timestamp())
st_session.setdefault("speak_replies", False)
st_session.setdefault("voice_mode", False)
st_session.setdefault("last_voice_sig", None)
st_session.setdefault("tts_text_queue", [])
st_session.setdefault("tts_audio_queue", [])


@st.cache_resource
def shared_storage():
    """One storage backend per server process, shared by all browser sessions."""
    return build_storage(settings)


# ---------------------------
# Helpers
# ---------------------------
def get_controller():
    """Return the controller object."""
    return st_session.get("controller")


def make_controller(api_key: str) -> ConversationController:
    llm = OpenAILLMClient(api_key=api_key, timeout=settings.request_timeout)
    storage = shared_storage()
    return ConversationController(
        llm,
        MessageStore(storage),
        ContextStore(storage),
        settings=make_llm_settings(),
        stt_model=settings.stt_model,
        tts_model=settings.tts_model,
        tts_voice=settings.tts_voice,
    )


def make_llm_settings() -> LLMSettings:
    """Build LLMSettings from session state."""
    return LLMSettings(
        model=st_session.model,
        temperature=float(st_session.temperature),
        top_p=float(st_session.top_p),
        max_tokens=settings.max_tokens,
    )


def current_history():
    """Safe read of the active conversation log."""
    controller = get_controller()
    if not controller:
        return []
    try:
        return controller.history(st_session.chat_session_id)
    except StorageFailure as e:
        st.error(f"Could not load the conversation: {e}")
        return []


def new_conversation():
    """Start over under a fresh session key; old logs stay in storage."""
    st_session.chat_session_id = uuid.uuid4().hex
    st_session.session_start_ts = datetime.now().timestamp()
    st_session.last_voice_sig = None
    st_session.tts_text_queue = []
    st_session.tts_audio_queue = []


def format_duration(seconds: float) -> str:
    seconds = int(max(0, seconds))
    h, rem = divmod(seconds, 3600)
    m, s = divmod(rem, 60)
    if h:
        return f"{h}h {m:02d}m {s:02d}s"
    return f"{m}m {s:02d}s"


def save_profile(name: str, personality: str):
    controller = get_controller()
    if not controller:
        return
    try:
        controller.update_context(
            st_session.chat_session_id,
            {"userName": (name or "").strip() or None, "personality": personality},
        )
        st.toast("Profile saved.", icon="✅")
    except (InvalidInput, StorageFailure) as e:
        st.toast(f"Could not save profile: {e}", icon="⚠️")


# ---------------------------
# SIDEBAR: key, model, profile
# ---------------------------
with st.sidebar:
    st.markdown("# Settings")

    st.markdown("## OpenAI API Key")
    user_api_key = st.sidebar.text_input(
        "Enter your API key",
        type="password",
        value=settings.openai_api_key or "",
        help="We do not store your key. It stays in your session only.",
    )
    if not user_api_key:
        st.warning("Please enter your API key in the sidebar to continue.")
        st.stop()
    else:
        if not st_session.api_key_set:
            try:
                st_session.controller = make_controller(user_api_key)
                st_session.api_key_set = True
            except Exception as e:
                st_session.controller = None
                st.error(f"OpenAI client init failed: {e}")
                st.stop()

    st_session.model = st.selectbox(
        "Model",
        list(CHAT_PRICE_TABLE.keys()),
        index=list(CHAT_PRICE_TABLE.keys()).index(st_session.model),
    )
    st_session.temperature = st.slider(
        "Temperature", 0.0, 1.5, float(st_session.temperature), 0.05
    )
    controller = get_controller()
    if controller:
        controller.settings = make_llm_settings()
    st.divider()

    st.markdown("## About you")
    context = controller.get_context(st_session.chat_session_id) if controller else {}
    name_input = st.text_input("What should I call you?", value=context.get("userName") or "")
    current_personality = context.get("personality") or Personality.CASUAL_FRIEND.value
    personality_input = st.selectbox(
        "Companion personality",
        PERSONALITIES,
        index=PERSONALITIES.index(current_personality)
        if current_personality in PERSONALITIES
        else 0,
        format_func=lambda p: PERSONALITY_LABELS.get(p, p),
    )
    if st.button("Save profile", type="primary"):
        save_profile(name_input, personality_input)

    st.divider()
    if st.button("New conversation"):
        new_conversation()
        st.rerun()
    st.caption(f"Session: `{st_session.chat_session_id[:8]}`")

# ---------------------------
# Main tabs
# ---------------------------
chat_tab, usage_tab = st.tabs(["Chat", "Usage"])

with chat_tab:
    vcol1, vcol2 = st.columns([1, 1])
    with vcol1:
        st_session.voice_mode = st.toggle("🎙️ Voice mode", value=st_session.voice_mode)
    with vcol2:
        st_session.speak_replies = st.toggle(
            "🔊 Speak replies", value=st_session.speak_replies
        )

    if st_session.tts_audio_queue:
        mp3 = st_session.tts_audio_queue.pop(0)
        st.html(autoplay_html(mp3))

    controller = get_controller()
    if controller and st_session.speak_replies and st_session.tts_text_queue:
        next_text = st_session.tts_text_queue.pop(0)
        with st.spinner("Preparing audio…"):
            audio_bytes = controller.speak(next_text)
            if audio_bytes:
                st_session.tts_audio_queue.append(audio_bytes)
                st.rerun()
            else:
                st.toast("Couldn't read that one out loud.", icon="⚠️")

    transcript = st.container(height=500, border=True)
    with transcript:
        for msg in current_history():
            with st.chat_message(msg["role"]):
                st.markdown(msg["content"])

    user_text = None
    submitted = False

    if st_session.voice_mode:
        audio_bytes = audio_recorder(
            pause_threshold=2,
            sample_rate=16_000,
            text="Press to talk",
            icon_size="2x",
        )
        if audio_bytes:
            sig = hashlib.sha1(audio_bytes).hexdigest()
            if sig != st_session.get("last_voice_sig") and controller:
                st_session.last_voice_sig = sig
                with st.spinner("Transcribing…"):
                    heard = controller.transcribe(audio_bytes)
                if heard in (TRANSCRIPTION_FAILED, TRANSCRIPTION_UNAVAILABLE):
                    st.toast(heard, icon="⚠️")
                else:
                    user_text = heard
                    submitted = True
    else:
        raw = st.chat_input("Say something…")
        if raw is not None:
            user_text = raw.strip()
            submitted = True

    if submitted and not user_text:
        st.toast("Please enter a non-empty message.", icon="⚠️")
    if controller and user_text:
        try:
            with st.spinner("Thinking…"):
                result = controller.send_message(st_session.chat_session_id, user_text)
            if st_session.speak_replies and result.reply.strip():
                st_session.tts_text_queue.append(result.reply)
        except InvalidInput as e:
            st.toast(str(e), icon="⚠️")
        except StorageFailure as e:
            st.error(f"Could not save the conversation: {e}")

        st.rerun()

with usage_tab:
    st.subheader("Usage & Cost")
    st.caption("Live usage and cost estimate.")

    controller = get_controller()
    history = current_history()

    now_ts = datetime.now().timestamp()
    session_secs = now_ts - float(st_session.get("session_start_ts", now_ts))

    user_turns = sum(1 for m in (history or []) if m.get("role") == "user")
    companion_turns = sum(1 for m in (history or []) if m.get("role") == "assistant")

    usage = controller.usage if controller else Usage()
    model_used = getattr(controller, "model_used", None) or st_session.model
    cost = usage_cost(usage)
    voice_secs = sum(usage.stt_seconds.values())
    spoken_chars = sum(usage.tts_chars.values())

    c1, c2 = st.columns([1, 1])
    with c1:
        st.metric("Tokens (in)", f"{usage.tokens_in:,}")
    with c2:
        st.metric("Tokens (out)", f"{usage.tokens_out:,}")

    c3, c4 = st.columns([1, 1])
    with c3:
        st.metric("Estimated cost (chat + voice)", f"${cost['total']:,.4f}")
    with c4:
        st.metric("Last chat model", model_used)

    v1, v2 = st.columns([1, 1])
    with v1:
        st.metric("Voice input", format_duration(voice_secs))
        st.caption(f"Transcription: ${cost['stt']:,.4f}")
    with v2:
        st.metric("Characters spoken", f"{spoken_chars:,}")
        st.caption(f"Speech: ${cost['tts']:,.4f}")

    c5, c6 = st.columns([1, 1])
    with c5:
        st.metric("Your messages / replies", f"{user_turns} / {companion_turns}")
    with c6:
        st.metric("Session time", format_duration(session_secs))

st.divider()
st.caption(
    "Privacy tip: Do not paste sensitive personal data. Conversations are kept "
    "on the server so your companion can remember them."
)
