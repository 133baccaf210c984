"""Score finalized sessions against the period they reference."""

from __future__ import annotations

from dataclasses import dataclass

from .bank import Period
from .errors import LengthMismatchError, SessionNotFinalizedError
from .session import QuizSession

__all__ = ["ScoreResult", "score"]


@dataclass(frozen=True)
class ScoreResult:
    """Correctness of each response in a finalized session."""

    session_id: str
    total_questions: int
    correct_count: int
    per_question_correctness: tuple[bool, ...]

    @property
    def accuracy(self) -> float:
        if self.total_questions == 0:
            return 0.0
        return self.correct_count / self.total_questions


def score(session: QuizSession, period: Period) -> ScoreResult:
    """Compare each response to its question's correct option.

    Unanswered slots count as incorrect. The result depends only on the
    finalized session and the period, so repeated calls return equal values.
    """

    if not session.is_finalized:
        raise SessionNotFinalizedError(
            f"Session '{session.session_id}' must be finalized before scoring."
        )
    if session.period_key != period.key:
        raise ValueError(
            f"Session '{session.session_id}' belongs to period "
            f"'{session.period_key}', not '{period.key}'."
        )
    if len(session.responses) != len(period.questions):
        raise LengthMismatchError(
            f"Session '{session.session_id}' has {len(session.responses)} "
            f"response slot(s) but period '{period.key}' has "
            f"{len(period.questions)} question(s)."
        )

    correctness = tuple(
        question.is_correct(response)
        for question, response in zip(period.questions, session.responses)
    )
    return ScoreResult(
        session_id=session.session_id,
        total_questions=len(correctness),
        correct_count=sum(correctness),
        per_question_correctness=correctness,
    )
