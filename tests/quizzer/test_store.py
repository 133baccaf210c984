from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from study_quiz.quizzer import store as store_mod
from study_quiz.quizzer.session import QuizSession, SessionManager
from study_quiz.quizzer.store import (
    JsonSessionStore,
    MemorySessionStore,
    SessionStoreError,
)


def _session(session_id: str = "abc123", **overrides) -> QuizSession:
    fields = dict(
        session_id=session_id,
        period_key="week2",
        responses=("True", None),
        started_at=datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc),
        owner_id="alice",
    )
    fields.update(overrides)
    return QuizSession(**fields)


def test_memory_store_returns_same_object() -> None:
    store = MemorySessionStore()
    session = _session()

    store.put(session)

    assert store.get("abc123") is session
    assert store.get("missing") is None
    assert store.list() == [session]


def test_json_store_round_trips_sessions(tmp_path: Path) -> None:
    store = JsonSessionStore(tmp_path / "sessions")
    session = _session(
        completed_at=datetime(2024, 3, 1, 9, 5, tzinfo=timezone.utc)
    )

    store.put(session)
    loaded = store.get("abc123")

    assert loaded == session
    assert loaded is not session
    payload = json.loads(
        (tmp_path / "sessions" / "abc123.json").read_text(encoding="utf-8")
    )
    assert payload["responses"] == ["True", None]
    assert not list((tmp_path / "sessions").glob("*.lock"))
    assert not list((tmp_path / "sessions").glob("*.tmp"))


def test_json_store_overwrites_record(tmp_path: Path) -> None:
    store = JsonSessionStore(tmp_path)
    store.put(_session())
    store.put(_session(responses=("False", "True")))

    assert store.get("abc123").responses == ("False", "True")
    assert len(store.list()) == 1


def test_json_store_lists_every_record(tmp_path: Path) -> None:
    store = JsonSessionStore(tmp_path)
    store.put(_session("b-second"))
    store.put(_session("a-first"))

    ids = [session.session_id for session in store.list()]

    assert ids == ["a-first", "b-second"]


def test_json_store_unknown_or_unsafe_ids(tmp_path: Path) -> None:
    store = JsonSessionStore(tmp_path)

    assert store.get("missing") is None
    assert store.get("../escape") is None
    with pytest.raises(SessionStoreError):
        store.put(_session("../escape"))


def test_json_store_reports_corrupt_files(tmp_path: Path) -> None:
    store = JsonSessionStore(tmp_path)
    (tmp_path / "broken.json").write_text("{not json", encoding="utf-8")
    (tmp_path / "partial.json").write_text(
        json.dumps({"session_id": "partial"}), encoding="utf-8"
    )

    with pytest.raises(SessionStoreError, match="Failed to parse"):
        store.get("broken")
    with pytest.raises(SessionStoreError, match="malformed"):
        store.get("partial")


def test_json_store_times_out_on_held_lock(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(store_mod, "_LOCK_TIMEOUT_SECONDS", 0.0)
    store = JsonSessionStore(tmp_path)
    (tmp_path / "abc123.json.lock").write_text("", encoding="utf-8")

    with pytest.raises(SessionStoreError, match="Timed out"):
        store.put(_session())


def test_manager_persists_through_json_store(bank, clock, tmp_path) -> None:
    root = tmp_path / "sessions"
    first = SessionManager(bank, store=JsonSessionStore(root), clock=clock)
    session = first.start_session("week2", owner_id="bob")
    first.select_answer(session, 1, "False")

    second = SessionManager(bank, store=JsonSessionStore(root), clock=clock)
    reloaded = second.get_session(session.session_id)
    second.finalize(reloaded)

    again = first.get_session(session.session_id)
    assert again.responses == (None, "False")
    assert again.is_finalized
    assert [s.owner_id for s in first.list_sessions()] == ["bob"]


def test_failed_write_leaves_no_temp_file(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    store = JsonSessionStore(tmp_path)
    store.put(_session())

    def broken_dump(*args, **kwargs):
        raise OSError("disk full")

    monkeypatch.setattr(store_mod.json, "dump", broken_dump)

    with pytest.raises(OSError):
        store.put(_session(responses=("False", "False")))

    assert sorted(p.name for p in tmp_path.iterdir()) == ["abc123.json"]
    assert store.get("abc123").responses == ("True", None)
