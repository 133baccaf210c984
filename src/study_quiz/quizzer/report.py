"""Turn a score into a per-question report and render it with Rich."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, MutableMapping

from rich import box
from rich.console import Console
from rich.table import Table
from rich.text import Text

from .bank import Period
from .errors import LengthMismatchError
from .scoring import ScoreResult
from .session import QuizSession

__all__ = [
    "ReportItem",
    "ReportView",
    "format_report",
    "render_report",
    "write_report_json",
]


@dataclass(frozen=True)
class ReportItem:
    """One row of the breakdown: the prompt, the pick and the right answer."""

    number: int
    question_id: str
    prompt: str
    selected: str | None
    correct_option: str
    is_correct: bool

    def to_dict(self) -> MutableMapping[str, Any]:
        return {
            "number": self.number,
            "question_id": self.question_id,
            "prompt": self.prompt,
            "selected": self.selected,
            "correct_option": self.correct_option,
            "is_correct": self.is_correct,
        }


@dataclass(frozen=True)
class ReportView:
    session_id: str
    period_key: str
    total_questions: int
    correct_count: int
    answered_count: int
    items: tuple[ReportItem, ...]

    @property
    def percentage(self) -> float:
        if self.total_questions == 0:
            return 0.0
        return self.correct_count * 100.0 / self.total_questions

    def to_dict(self) -> MutableMapping[str, Any]:
        return {
            "session_id": self.session_id,
            "period_key": self.period_key,
            "total_questions": self.total_questions,
            "correct_count": self.correct_count,
            "answered_count": self.answered_count,
            "percentage": round(self.percentage, 1),
            "items": [item.to_dict() for item in self.items],
        }


def format_report(
    result: ScoreResult, period: Period, session: QuizSession
) -> ReportView:
    """Zip correctness, questions and responses into a :class:`ReportView`.

    The three sequences must have the same length; a mismatch means the
    score was computed for a different session or period.
    """

    lengths = (
        len(result.per_question_correctness),
        len(period.questions),
        len(session.responses),
    )
    if len(set(lengths)) != 1:
        raise LengthMismatchError(
            "Cannot build report: {0} correctness flag(s), {1} question(s), "
            "{2} response(s).".format(*lengths)
        )
    if result.session_id != session.session_id:
        raise ValueError(
            f"Score belongs to session '{result.session_id}', "
            f"not '{session.session_id}'."
        )

    items = tuple(
        ReportItem(
            number=index,
            question_id=question.id,
            prompt=question.prompt,
            selected=selected,
            correct_option=question.correct_option,
            is_correct=is_correct,
        )
        for index, (is_correct, question, selected) in enumerate(
            zip(
                result.per_question_correctness,
                period.questions,
                session.responses,
            ),
            start=1,
        )
    )
    return ReportView(
        session_id=result.session_id,
        period_key=period.key,
        total_questions=result.total_questions,
        correct_count=result.correct_count,
        answered_count=sum(1 for item in items if item.selected is not None),
        items=items,
    )


def render_report(
    console: Console, view: ReportView, *, reveal_answers: bool = True
) -> None:
    console.print()
    console.rule(Text(f"Results: {view.period_key}", style="bold magenta"))

    overview = Table(show_header=False, box=box.MINIMAL_DOUBLE_HEAD)
    overview.add_column("Metric", style="bold")
    overview.add_column("Value", justify="right")
    overview.add_row("Session", view.session_id)
    overview.add_row("Total questions", str(view.total_questions))
    overview.add_row("Answered", str(view.answered_count))
    overview.add_row("Correct", str(view.correct_count))
    overview.add_row("Score", f"{view.percentage:.1f}%")
    console.print(overview)

    breakdown = Table(title="Responses", box=box.SIMPLE, expand=True)
    breakdown.add_column("#", justify="right")
    breakdown.add_column("Question", overflow="fold", ratio=3)
    breakdown.add_column("Your answer", overflow="fold", ratio=2)
    if reveal_answers:
        breakdown.add_column("Correct answer", overflow="fold", ratio=2)
    breakdown.add_column("Result", justify="center")

    for item in view.items:
        row = [
            str(item.number),
            _first_line(item.prompt),
            item.selected or "(unanswered)",
        ]
        if reveal_answers:
            row.append(item.correct_option)
        row.append("✅" if item.is_correct else "❌")
        breakdown.add_row(*row)
    console.print(breakdown)


def write_report_json(view: ReportView, path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps(view.to_dict(), indent=2, ensure_ascii=False) + "\n",
        encoding="utf-8",
    )
    return path


def _first_line(prompt: str, limit: int = 120) -> str:
    line = prompt.strip().splitlines()[0] if prompt.strip() else ""
    if len(line) > limit:
        return line[: limit - 1] + "…"
    return line
