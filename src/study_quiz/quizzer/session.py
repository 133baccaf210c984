"""Quiz session state and the manager that mutates it.

A session moves from ``Open`` to ``Finalized`` exactly once. While open, each
slot in ``responses`` holds either ``None`` (unanswered) or the selected
option string. After :meth:`SessionManager.finalize` the session no longer
accepts answers and finalizing again is an error, so a result can never be
recorded twice.

Mutations are serialized per session with a lock held across the
check-modify-persist sequence: an answer cannot land after finalize and a
finalize cannot race an answer write.
"""

from __future__ import annotations

import logging
import dataclasses
import threading
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, MutableMapping

from .bank import Period, QuestionBank
from .errors import (
    InvalidOptionError,
    LengthMismatchError,
    NotFoundError,
    SessionClosedError,
)
from .store import MemorySessionStore, SessionStore

__all__ = [
    "Clock",
    "QuizSession",
    "SessionManager",
]

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class QuizSession:
    """One attempt at a period's questions."""

    session_id: str
    period_key: str
    responses: tuple[str | None, ...]
    started_at: datetime
    completed_at: datetime | None = None
    owner_id: str | None = None

    @property
    def is_finalized(self) -> bool:
        return self.completed_at is not None

    @property
    def status(self) -> str:
        return "finalized" if self.is_finalized else "open"

    def answered_count(self) -> int:
        return sum(1 for response in self.responses if response is not None)

    def to_dict(self) -> MutableMapping[str, Any]:
        return {
            "session_id": self.session_id,
            "period_key": self.period_key,
            "owner_id": self.owner_id,
            "responses": list(self.responses),
            "started_at": self.started_at.isoformat(),
            "completed_at": (
                self.completed_at.isoformat() if self.completed_at else None
            ),
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "QuizSession":
        completed = payload.get("completed_at")
        owner = payload.get("owner_id")
        return cls(
            session_id=str(payload["session_id"]),
            period_key=str(payload["period_key"]),
            responses=tuple(
                None if item is None else str(item)
                for item in payload["responses"]
            ),
            started_at=datetime.fromisoformat(str(payload["started_at"])),
            completed_at=(
                datetime.fromisoformat(str(completed)) if completed else None
            ),
            owner_id=None if owner is None else str(owner),
        )


class SessionManager:
    """Create, answer and finalize quiz sessions against a question bank."""

    def __init__(
        self,
        bank: QuestionBank,
        *,
        store: SessionStore | None = None,
        clock: Clock | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._bank = bank
        self._store = store if store is not None else MemorySessionStore()
        self._clock = clock or _utcnow
        self._log = logger or logging.getLogger(__name__)
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    @property
    def bank(self) -> QuestionBank:
        return self._bank

    @property
    def store(self) -> SessionStore:
        return self._store

    def start_session(
        self, period_key: str, *, owner_id: str | None = None
    ) -> QuizSession:
        period = self._bank.get_period(period_key)
        session = QuizSession(
            session_id=uuid.uuid4().hex,
            period_key=period.key,
            responses=(None,) * len(period.questions),
            started_at=self._clock(),
            owner_id=owner_id,
        )
        with self._lock_for(session.session_id):
            self._store.put(session)
        self._log.info(
            "session started",
            extra={
                "event": "session_started",
                "session_id": session.session_id,
                "period_key": period.key,
                "owner_id": owner_id,
            },
        )
        return session

    def get_session(self, session_id: str) -> QuizSession:
        session = self._store.get(session_id)
        if session is None:
            raise NotFoundError(f"Unknown session '{session_id}'.")
        return session

    def list_sessions(
        self, owner_id: str | None = None
    ) -> list[QuizSession]:
        """Stored sessions, oldest first, optionally filtered by owner."""

        sessions = [
            session
            for session in self._store.list()
            if owner_id is None or session.owner_id == owner_id
        ]
        return sorted(sessions, key=lambda item: item.started_at)

    def period_for(self, session: QuizSession) -> Period:
        """The period ``session`` answers; its slot count must still match."""

        period = self._bank.get_period(session.period_key)
        _check_slots(session, period)
        return period

    def select_answer(
        self,
        session: QuizSession,
        question_index: int,
        option_value: str,
    ) -> QuizSession:
        """Record ``option_value`` for a question, replacing any earlier pick."""

        with self._lock_for(session.session_id):
            self._refresh(session)
            if session.is_finalized:
                raise SessionClosedError(
                    f"Session '{session.session_id}' is finalized; "
                    "answers can no longer change."
                )
            period = self.period_for(session)
            if not 0 <= question_index < len(period.questions):
                raise InvalidOptionError(
                    f"Question index {question_index} is out of range for "
                    f"period '{period.key}' ({len(period.questions)} "
                    "questions)."
                )
            question = period.questions[question_index]
            if not question.allows(option_value):
                raise InvalidOptionError(
                    f"{option_value!r} is not an option for question "
                    f"'{question.id}'."
                )
            responses = list(session.responses)
            responses[question_index] = option_value
            self._commit(session, responses=tuple(responses))

        self._log.debug(
            "answer selected",
            extra={
                "event": "answer_selected",
                "session_id": session.session_id,
                "question_id": question.id,
                "question_index": question_index,
            },
        )
        return session

    def finalize(self, session: QuizSession) -> QuizSession:
        """Close the session. Finalizing twice raises ``SessionClosedError``."""

        with self._lock_for(session.session_id):
            self._refresh(session)
            if session.is_finalized:
                raise SessionClosedError(
                    f"Session '{session.session_id}' is already finalized."
                )
            self._commit(session, completed_at=self._clock())
        self._release_lock(session.session_id)

        self._log.info(
            "session finalized",
            extra={
                "event": "session_finalized",
                "session_id": session.session_id,
                "period_key": session.period_key,
                "answered": session.answered_count(),
                "total": len(session.responses),
            },
        )
        return session

    def _commit(self, session: QuizSession, **changes: Any) -> None:
        # The handle only changes once the store has accepted the new record.
        record = dataclasses.replace(session, **changes)
        self._store.put(record)
        for name, value in changes.items():
            setattr(session, name, value)

    def _lock_for(self, session_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(session_id)
            if lock is None:
                lock = self._locks[session_id] = threading.Lock()
            return lock

    def _release_lock(self, session_id: str) -> None:
        # Finalized sessions never mutate again; late callers get a fresh
        # lock and fail the closed check after refreshing.
        with self._locks_guard:
            self._locks.pop(session_id, None)

    def _refresh(self, session: QuizSession) -> None:
        # Callers may hold an older handle; the stored record is authoritative.
        stored = self._store.get(session.session_id)
        if stored is None or stored is session:
            return
        session.responses = stored.responses
        session.completed_at = stored.completed_at


def _check_slots(session: QuizSession, period: Period) -> None:
    if len(session.responses) != len(period.questions):
        raise LengthMismatchError(
            f"Session '{session.session_id}' has {len(session.responses)} "
            f"response slot(s) but period '{period.key}' has "
            f"{len(period.questions)} question(s); the question bank has "
            "changed since it started."
        )
