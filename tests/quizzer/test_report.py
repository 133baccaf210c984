from __future__ import annotations

import dataclasses
import json
from pathlib import Path

import pytest
from rich.console import Console

from study_quiz.quizzer.bank import QuestionBank
from study_quiz.quizzer.errors import LengthMismatchError
from study_quiz.quizzer.report import (
    ReportView,
    format_report,
    render_report,
    write_report_json,
)
from study_quiz.quizzer.scoring import ScoreResult, score
from study_quiz.quizzer.session import SessionManager


@pytest.fixture
def scored(manager: SessionManager, bank: QuestionBank):
    session = manager.start_session("week1")
    manager.select_answer(session, 0, "Bhutan")
    manager.select_answer(session, 1, "Finland")
    manager.finalize(session)
    period = bank.get_period("week1")
    return score(session, period), period, session


def _recording_console() -> Console:
    return Console(record=True, width=200, color_system=None)


def test_format_report_aligns_items(scored) -> None:
    result, period, session = scored

    view = format_report(result, period, session)

    assert view.session_id == session.session_id
    assert view.period_key == "week1"
    assert (view.total_questions, view.correct_count) == (3, 1)
    assert view.answered_count == 2
    assert [item.number for item in view.items] == [1, 2, 3]
    assert [item.selected for item in view.items] == ["Bhutan", "Finland", None]
    assert [item.is_correct for item in view.items] == [True, False, False]
    assert view.items[1].correct_option == "All of these are true"
    assert view.items[2].question_id == "q3"


def test_format_report_rejects_misaligned_score(scored) -> None:
    result, period, session = scored
    short = dataclasses.replace(
        result, per_question_correctness=(True, False)
    )

    with pytest.raises(LengthMismatchError):
        format_report(short, period, session)


def test_format_report_rejects_foreign_score(scored) -> None:
    result, period, session = scored
    foreign = dataclasses.replace(result, session_id="someone-else")

    with pytest.raises(ValueError):
        format_report(foreign, period, session)


def test_report_percentage_and_dict(scored) -> None:
    view = format_report(*scored)

    payload = view.to_dict()

    assert payload["percentage"] == 33.3
    assert payload["correct_count"] == 1
    assert payload["items"][0] == {
        "number": 1,
        "question_id": "q1",
        "prompt": view.items[0].prompt,
        "selected": "Bhutan",
        "correct_option": "Bhutan",
        "is_correct": True,
    }


def test_empty_report_percentage_is_zero() -> None:
    view = ReportView("s", "week0", 0, 0, 0, ())
    assert view.percentage == 0.0


def test_render_report_shows_breakdown(scored) -> None:
    console = _recording_console()

    render_report(console, format_report(*scored))

    output = console.export_text()
    assert "Results: week1" in output
    assert "33.3%" in output
    assert "Correct answer" in output
    assert "(unanswered)" in output
    assert "All of these are true" in output
    assert "Which statements about happy people hold?" in output
    assert "They are more productive" not in output


def test_render_report_can_hide_answers(
    manager: SessionManager, bank: QuestionBank
) -> None:
    session = manager.start_session("week2")
    manager.finalize(session)
    period = bank.get_period("week2")
    console = _recording_console()

    render_report(
        console,
        format_report(score(session, period), period, session),
        reveal_answers=False,
    )

    output = console.export_text()
    assert "Correct answer" not in output
    assert "0.0%" in output


def test_write_report_json(scored, tmp_path: Path) -> None:
    view = format_report(*scored)
    target = tmp_path / "reports" / "out.json"

    written = write_report_json(view, target)

    assert written == target
    assert json.loads(target.read_text(encoding="utf-8")) == view.to_dict()


def test_report_from_hand_built_score(bank: QuestionBank, manager) -> None:
    session = manager.start_session("week2")
    manager.select_answer(session, 1, "False")
    manager.finalize(session)
    result = ScoreResult(session.session_id, 2, 1, (False, True))

    view = format_report(result, bank.get_period("week2"), session)

    assert [item.question_id for item in view.items] == ["luck", "vacation"]
    assert view.items[1].is_correct is True
