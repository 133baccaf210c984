from __future__ import annotations

import json
from pathlib import Path

import pytest

from fixtures import write_bank
from study_quiz.quizzer import bank as bank_mod
from study_quiz.quizzer.bank import Period, Question, QuestionBank
from study_quiz.quizzer.errors import (
    BankLoadError,
    NotFoundError,
    ValidationError,
)


def test_from_raw_normalizes_records(bank: QuestionBank) -> None:
    week1 = bank.get_period("week1")

    assert isinstance(week1, Period)
    assert [q.id for q in week1.questions] == ["q1", "q2", "q3"]
    first = week1.questions[0]
    assert first.options == ("China", "Bhutan", "USA", "Finland")
    assert first.correct_option == "Bhutan"
    assert [q.id for q in bank.get_period("week2")] == ["luck", "vacation"]


def test_list_period_keys_keeps_authored_order() -> None:
    raw = {
        "week3": [{"question": "x", "options": ["a", "b"], "answer": "a"}],
        "week1": [{"question": "y", "options": ["a", "b"], "answer": "b"}],
    }

    bank = QuestionBank.from_raw(raw)

    assert bank.list_period_keys() == ("week3", "week1")
    assert "week1" in bank
    assert len(bank) == 2


def test_get_period_unknown_key_raises(bank: QuestionBank) -> None:
    with pytest.raises(NotFoundError):
        bank.get_period("week99")


def test_validate_collects_every_issue(raw_bank: dict) -> None:
    raw_bank["week1"][0]["answer"] = "Nepal"
    raw_bank["week2"][1]["options"] = ["True"]
    raw_bank["week2"][1]["answer"] = "True"
    raw_bank["week3"] = []
    bank = QuestionBank.from_raw(raw_bank)

    with pytest.raises(ValidationError) as info:
        bank.validate()

    err = info.value
    assert err.question_ids == ("week1/q1", "week2/vacation")
    assert len(err.issues) == 3
    assert any(
        issue.period_key == "week3" and issue.question_id is None
        for issue in err.issues
    )
    assert "Nepal" in str(err)


def test_validate_rejects_duplicate_ids_and_too_many_options() -> None:
    raw = {
        "week1": [
            {
                "id": "same",
                "question": "one",
                "options": ["a", "b", "c", "d", "e"],
                "answer": "a",
            },
            {"id": "same", "question": "two", "options": ["a", "b"], "answer": "b"},
        ]
    }
    bank = QuestionBank.from_raw(raw)

    with pytest.raises(ValidationError) as info:
        bank.validate()

    messages = [issue.message for issue in info.value.issues]
    assert any("duplicate question id" in msg for msg in messages)
    assert any("2-4 options" in msg for msg in messages)


def test_from_raw_reports_structural_faults() -> None:
    raw = {
        "week1": [
            {"question": "no options", "answer": "a"},
            "not a record",
            {"question": "bad options", "options": "a,b", "answer": "a"},
        ],
        "week2": {"question": "not a list"},
    }

    with pytest.raises(ValidationError) as info:
        QuestionBank.from_raw(raw)

    described = [issue.describe() for issue in info.value.issues]
    assert "week1/q1: missing field(s): options" in described
    assert any(text.startswith("week1/q2: expected an object") for text in described)
    assert "week1/q3: options must be a list" in described
    assert any(text.startswith("week2: expected a list") for text in described)


def test_from_raw_rejects_non_mapping() -> None:
    with pytest.raises(ValidationError):
        QuestionBank.from_raw(["week1"])  # type: ignore[arg-type]


def test_question_option_helpers() -> None:
    question = Question(
        id="q1",
        prompt="Pick one",
        options=("Alpha", "Beta", "Gamma"),
        correct_option="Beta",
    )

    assert question.option_for("b") == "Beta"
    assert question.option_for("D") is None
    assert question.option_for("") is None
    assert question.option_for("   ") is None
    assert question.option_for(None) is None
    assert question.option_for(" c ") == "Gamma"
    assert question.option_key("Gamma") == "C"
    assert question.option_key(None) is None
    assert question.allows("Alpha")
    assert not question.allows("alpha")
    assert question.is_correct("Beta")
    assert not question.is_correct(None)


def test_question_parts_splits_lettered_statements(bank: QuestionBank) -> None:
    question = bank.get_period("week1").questions[1]

    parts = question.parts()

    assert parts.stem == "Which statements about happy people hold?"
    assert [label for label, _ in parts.statements] == ["A", "B", "C", "D"]
    assert parts.statements[3][1] == "They are physically healthier"


def test_question_parts_without_statements(bank: QuestionBank) -> None:
    question = bank.get_period("week1").questions[0]

    parts = question.parts()

    assert parts.statements == ()
    assert parts.stem == question.prompt


def test_load_question_bank_from_file(tmp_path: Path) -> None:
    path = write_bank(tmp_path / "bank.json")

    bank = bank_mod.load_question_bank(path)

    assert bank.list_period_keys() == ("week1", "week2")


def test_load_question_bank_missing_file(tmp_path: Path) -> None:
    with pytest.raises(BankLoadError):
        bank_mod.load_question_bank(tmp_path / "missing.json")


def test_load_question_bank_invalid_json(tmp_path: Path) -> None:
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(BankLoadError):
        bank_mod.load_question_bank(path)


def test_load_question_bank_skips_validation_when_disabled(
    tmp_path: Path, raw_bank: dict
) -> None:
    raw_bank["week1"][0]["answer"] = "Nepal"
    path = write_bank(tmp_path / "bank.json", raw_bank)

    with pytest.raises(ValidationError):
        bank_mod.load_question_bank(path)

    unchecked = bank_mod.load_question_bank(path, validate=False)
    assert unchecked.get_period("week1").questions[0].correct_option == "Nepal"


def test_packaged_bank_passes_validation() -> None:
    bank = bank_mod.load_question_bank()

    keys = bank.list_period_keys()
    assert keys == tuple(f"week{n}" for n in range(1, 9))
    for period in bank:
        assert period.questions
        for question in period.questions:
            assert question.correct_option in question.options
            assert 2 <= len(question.options) <= 4


def test_packaged_bank_first_question() -> None:
    raw = json.loads(bank_mod.default_bank_source().read_text(encoding="utf-8"))
    bank = bank_mod.load_question_bank()

    first = bank.get_period("week1").questions[0]
    assert first.prompt == raw["week1"][0]["question"].strip()
    assert first.correct_option == "Bhutan"
