import sqlite3

import pytest

from companion.errors import StorageFailure
from companion.persistence.session_store import MessageStore, ContextStore
from companion.persistence.storage import InMemoryStorage, SQLiteStorage, build_storage


def test_in_memory_storage_isolates_stored_values():
    storage = InMemoryStorage()
    value = [{"role": "user", "content": "hi"}]
    storage.put("k", value)

    value.append({"role": "user", "content": "mutated"})
    fetched = storage.get("k")
    fetched.append({"role": "user", "content": "also mutated"})

    assert storage.get("k") == [{"role": "user", "content": "hi"}]
    assert storage.get("missing") is None


def test_sqlite_storage_survives_reopen(tmp_path):
    path = str(tmp_path / "chat.db")
    MessageStore(SQLiteStorage(path)).append("s1", {"role": "user", "content": "remember me"})
    ContextStore(SQLiteStorage(path)).update("s1", {"userName": "Jo"})

    reopened = SQLiteStorage(path)

    assert [m["content"] for m in MessageStore(reopened).list("s1")] == ["remember me"]
    assert ContextStore(reopened).get("s1")["userName"] == "Jo"


def test_sqlite_storage_overwrites_existing_key(tmp_path):
    storage = SQLiteStorage(str(tmp_path / "chat.db"))
    storage.put("k", {"v": 1})
    storage.put("k", {"v": 2})
    assert storage.get("k") == {"v": 2}


def test_sqlite_read_errors_become_storage_failure(tmp_path, mocker):
    storage = SQLiteStorage(str(tmp_path / "chat.db"))
    mocker.patch.object(storage, "_connect", side_effect=sqlite3.OperationalError("disk I/O error"))

    with pytest.raises(StorageFailure):
        storage.get("k")
    with pytest.raises(StorageFailure):
        storage.put("k", [1])


def test_sqlite_rejects_unserializable_values(tmp_path):
    storage = SQLiteStorage(str(tmp_path / "chat.db"))
    with pytest.raises(StorageFailure):
        storage.put("k", {"bad": object()})


def test_build_storage_picks_backend(tmp_path, mocker):
    settings = mocker.Mock(storage_backend="sqlite", storage_path=str(tmp_path / "x.db"))
    assert isinstance(build_storage(settings), SQLiteStorage)

    settings.storage_backend = "memory"
    assert isinstance(build_storage(settings), InMemoryStorage)

    settings.storage_backend = "redis"
    assert isinstance(build_storage(settings), InMemoryStorage)
