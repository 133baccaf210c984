"""Exceptions raised by the quiz engine.

Every engine operation is an in-memory, deterministic computation, so these
signal caller or data mistakes rather than transient faults. Nothing in the
engine retries or recovers from them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

__all__ = [
    "QuizError",
    "NotFoundError",
    "InvalidOptionError",
    "SessionClosedError",
    "SessionNotFinalizedError",
    "ValidationIssue",
    "ValidationError",
    "LengthMismatchError",
    "BankLoadError",
]


class QuizError(RuntimeError):
    """Base class for quiz engine failures."""


class NotFoundError(QuizError):
    """Unknown period or session."""


class InvalidOptionError(QuizError):
    """An answer that is not among the question's options (or no such slot)."""


class SessionClosedError(QuizError):
    """Mutation attempted on a finalized session."""


class SessionNotFinalizedError(QuizError):
    """Scoring attempted before the session was finalized."""


class LengthMismatchError(QuizError):
    """Sequences that must be index-aligned have different lengths."""


class BankLoadError(QuizError):
    """The question bank source could not be read or decoded."""


@dataclass(frozen=True)
class ValidationIssue:
    """A single data-quality fault found in a question bank."""

    period_key: str
    question_id: str | None
    message: str

    def describe(self) -> str:
        where = self.period_key
        if self.question_id is not None:
            where = f"{where}/{self.question_id}"
        return f"{where}: {self.message}"


class ValidationError(QuizError):
    """Question bank failed validation; carries every issue found."""

    def __init__(self, issues: Iterable[ValidationIssue]) -> None:
        self.issues: tuple[ValidationIssue, ...] = tuple(issues)
        lines = [issue.describe() for issue in self.issues]
        super().__init__(
            "Question bank failed validation ({0} issue(s)):\n  {1}".format(
                len(lines), "\n  ".join(lines)
            )
        )

    @property
    def question_ids(self) -> tuple[str, ...]:
        """Offending question ids, qualified by period key."""

        qualified = (
            f"{issue.period_key}/{issue.question_id}"
            for issue in self.issues
            if issue.question_id is not None
        )
        return tuple(dict.fromkeys(qualified))
