import threading
import time
from itertools import count

import pytest

from companion.errors import InvalidInput
from companion.models import Message


def test_append_assigns_timestamp_and_returns_stored_message(message_store):
    stored = message_store.append("s1", {"role": "user", "content": "hey there"})

    assert stored["role"] == "user"
    assert stored["content"] == "hey there"
    assert isinstance(stored["timestamp"], int) and stored["timestamp"] > 0
    assert message_store.list("s1") == [stored]


def test_append_keeps_explicit_timestamp(message_store):
    stored = message_store.append("s1", Message(role="assistant", content="yo", timestamp=1234))
    assert stored["timestamp"] == 1234


@pytest.mark.parametrize(
    "message",
    [
        {"role": "system", "content": "you are a bot"},
        {"role": "tool", "content": "result"},
        {"role": "user", "content": ""},
        {"role": "user", "content": "   "},
        {"role": "assistant"},
    ],
)
def test_append_rejects_bad_messages(message_store, message):
    with pytest.raises(InvalidInput):
        message_store.append("s1", message)
    assert message_store.list("s1") == []


def test_log_is_capped_to_most_recent_fifty_in_order(message_store):
    for i in range(1, 61):
        message_store.append("s1", {"role": "user" if i % 2 else "assistant", "content": f"m{i}"})

    log = message_store.list("s1")

    assert len(log) == 50
    assert [m["content"] for m in log] == [f"m{i}" for i in range(11, 61)]


def test_fifty_one_messages_drop_only_the_first(message_store):
    for i in range(1, 52):
        message_store.append("s1", {"role": "user", "content": f"m{i}"})

    log = message_store.list("s1")
    assert len(log) == 50
    assert log[0]["content"] == "m2"


def test_unseen_session_lists_empty(message_store):
    assert message_store.list("never-seen") == []


def test_sessions_are_isolated(message_store, context_store):
    message_store.append("a", {"role": "user", "content": "for a"})
    context_store.update("a", {"userName": "Ana"})

    assert message_store.list("b") == []
    assert context_store.get("b")["userName"] is None


def test_list_returns_a_copy(message_store):
    message_store.append("s1", {"role": "user", "content": "hi"})
    message_store.list("s1").append({"role": "user", "content": "sneaky"})
    assert len(message_store.list("s1")) == 1


def test_context_defaults_for_unseen_session(context_store):
    assert context_store.get("s1") == {
        "userName": None,
        "preferences": {},
        "personality": "casual_friend",
        "topics": [],
    }


def test_context_update_is_shallow_merge(context_store):
    context_store.update("s1", {"preferences": {"music": "jazz"}, "topics": ["cats"]})

    merged = context_store.update("s1", {"userName": "Al"})

    assert merged["userName"] == "Al"
    assert merged["personality"] == "casual_friend"
    assert merged["preferences"] == {"music": "jazz"}
    assert merged["topics"] == ["cats"]
    assert isinstance(merged["lastUpdated"], int)
    assert context_store.get("s1") == merged


def test_context_update_replaces_nested_values_wholesale(context_store):
    context_store.update("s1", {"preferences": {"music": "jazz", "food": "tacos"}})
    merged = context_store.update("s1", {"preferences": {"music": "punk"}})
    assert merged["preferences"] == {"music": "punk"}


def test_context_update_accepts_snake_case_aliases(context_store):
    merged = context_store.update("s1", {"user_name": "Sam"})
    assert merged["userName"] == "Sam"
    assert "user_name" not in merged


def test_context_update_rejects_non_mapping(context_store):
    with pytest.raises(InvalidInput):
        context_store.update("s1", ["not", "a", "dict"])


def test_concurrent_appends_to_one_session_keep_per_writer_order(message_store):
    def writer(name):
        for i in range(20):
            message_store.append("shared", {"role": "user", "content": f"{name}-{i}"})

    threads = [threading.Thread(target=writer, args=(n,)) for n in ("a", "b", "c", "d")]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    log = message_store.list("shared")
    assert len(log) == 50
    for name in ("a", "b", "c", "d"):
        seen = [int(m["content"].split("-")[1]) for m in log if m["content"].startswith(name)]
        assert seen == sorted(seen)

    stamps = [m["timestamp"] for m in log]
    assert stamps == sorted(stamps)


def test_timestamps_follow_log_order_when_a_writer_stalls(message_store, mocker):
    ticks = count(1)
    mocker.patch("companion.persistence.session_store.now_ms", side_effect=lambda: next(ticks))

    entered = threading.Event()
    real_for_session = message_store._locks.for_session

    def slow_for_session(session_id):
        if threading.current_thread().name == "slow-writer":
            entered.set()
            time.sleep(0.2)
        return real_for_session(session_id)

    mocker.patch.object(message_store._locks, "for_session", side_effect=slow_for_session)

    slow = threading.Thread(
        name="slow-writer",
        target=message_store.append,
        args=("s1", {"role": "user", "content": "A"}),
    )
    slow.start()
    entered.wait(timeout=2)
    message_store.append("s1", {"role": "assistant", "content": "B"})
    slow.join()

    log = message_store.list("s1")
    assert [m["content"] for m in log] == ["B", "A"]
    assert [m["timestamp"] for m in log] == [1, 2]
