"""Key-value persistence for quiz sessions.

Stores expose ``get``/``put``/``list`` keyed by ``session_id``. The memory
store keeps live objects; the JSON store writes one ``<session_id>.json``
file per session under a directory, guarded by an exclusive lock file and
replaced atomically on every write.
"""

from __future__ import annotations

import json
import os
import re
import tempfile
import threading
import time
from pathlib import Path
from typing import TYPE_CHECKING, Any, Mapping, Protocol

from .errors import QuizError

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .session import QuizSession

__all__ = [
    "SessionStoreError",
    "SessionStore",
    "MemorySessionStore",
    "JsonSessionStore",
]

_LOCK_SUFFIX = ".lock"
_LOCK_TIMEOUT_SECONDS = 5.0
_SESSION_ID_RE = re.compile(r"^[A-Za-z0-9_-]+$")


class SessionStoreError(QuizError):
    """Raised when a session record cannot be read or written."""


class SessionStore(Protocol):
    def get(self, session_id: str) -> "QuizSession | None": ...

    def put(self, session: "QuizSession") -> None: ...

    def list(self) -> "list[QuizSession]": ...


class MemorySessionStore:
    """Process-local store; returns the same objects it was given."""

    def __init__(self) -> None:
        self._sessions: dict[str, QuizSession] = {}
        self._guard = threading.Lock()

    def get(self, session_id: str) -> "QuizSession | None":
        with self._guard:
            return self._sessions.get(session_id)

    def put(self, session: "QuizSession") -> None:
        with self._guard:
            self._sessions[session.session_id] = session

    def list(self) -> "list[QuizSession]":
        with self._guard:
            return list(self._sessions.values())


class JsonSessionStore:
    """One JSON document per session under ``root``."""

    def __init__(self, root: Path) -> None:
        self._root = Path(root)
        self._root.mkdir(parents=True, exist_ok=True)

    @property
    def root(self) -> Path:
        return self._root

    def path_for(self, session_id: str) -> Path:
        if not _SESSION_ID_RE.match(session_id):
            raise SessionStoreError(f"Invalid session id: {session_id!r}")
        return self._root / f"{session_id}.json"

    def get(self, session_id: str) -> "QuizSession | None":
        try:
            target = self.path_for(session_id)
        except SessionStoreError:
            return None
        if not target.is_file():
            return None
        return _decode(target, self._read(target))

    def put(self, session: "QuizSession") -> None:
        target = self.path_for(session.session_id)
        lock_path = target.with_name(target.name + _LOCK_SUFFIX)
        with _FileLock(lock_path):
            _atomic_write_json(target, session.to_dict())

    def list(self) -> "list[QuizSession]":
        sessions = []
        for target in sorted(self._root.glob("*.json")):
            sessions.append(_decode(target, self._read(target)))
        return sessions

    @staticmethod
    def _read(target: Path) -> Mapping[str, Any]:
        try:
            payload = json.loads(target.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise SessionStoreError(
                f"Failed to parse session file: {target}"
            ) from exc
        if not isinstance(payload, Mapping):
            raise SessionStoreError(
                f"Session file does not hold an object: {target}"
            )
        return payload


class _FileLock:
    """Exclusive-create lock file with a bounded wait."""

    def __init__(self, path: Path) -> None:
        self._path = path

    def __enter__(self) -> "_FileLock":
        deadline = time.monotonic() + _LOCK_TIMEOUT_SECONDS
        while True:
            try:
                fd = os.open(self._path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
            except FileExistsError:
                if time.monotonic() > deadline:
                    raise SessionStoreError(
                        f"Timed out waiting for session lock: {self._path}"
                    ) from None
                time.sleep(0.05)
                continue
            os.close(fd)
            return self

    def __exit__(self, exc_type, exc, tb) -> None:  # noqa: D401
        self._path.unlink(missing_ok=True)


def _decode(target: Path, payload: Mapping[str, Any]) -> "QuizSession":
    from .session import QuizSession

    try:
        return QuizSession.from_dict(payload)
    except (KeyError, TypeError, ValueError) as exc:
        raise SessionStoreError(
            f"Session file is missing or has malformed fields: {target}"
        ) from exc


def _atomic_write_json(path: Path, payload: Mapping[str, Any]) -> None:
    handle = tempfile.NamedTemporaryFile(
        "w",
        delete=False,
        encoding="utf-8",
        dir=str(path.parent),
        prefix=f".{path.stem}-",
        suffix=".tmp",
    )
    try:
        with handle:
            json.dump(payload, handle, indent=2, sort_keys=True)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(handle.name, path)
    except BaseException:
        Path(handle.name).unlink(missing_ok=True)
        raise
    try:
        path.chmod(0o600)
    except PermissionError:  # pragma: no cover - depends on filesystem
        pass
