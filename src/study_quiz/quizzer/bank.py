"""Question bank: validated, read-only periods of multiple-choice questions.

The on-disk format mirrors the source ``questionsByWeek`` literal::

    {"week1": [{"question": "...", "options": ["..."], "answer": "..."}]}

It is decoded once at load time into frozen :class:`Question` and
:class:`Period` records. Structural faults are reported while decoding;
content faults (empty periods, answers missing from their options) are
reported by :meth:`QuestionBank.validate`. Both collect every issue before
raising a single :class:`ValidationError`.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from typing import Iterator, Mapping, Sequence

from .errors import (
    BankLoadError,
    NotFoundError,
    ValidationError,
    ValidationIssue,
)

__all__ = [
    "MIN_OPTIONS",
    "MAX_OPTIONS",
    "PromptParts",
    "Question",
    "Period",
    "QuestionBank",
    "load_question_bank",
    "default_bank_source",
]

MIN_OPTIONS = 2
MAX_OPTIONS = 4

_BANK_PACKAGE = "study_quiz.quizzer.data"
_BANK_FILENAME = "question_bank.json"

# "A. text", "b) text", "iii. text", "2. text" on a line of their own.
_STATEMENT_RE = re.compile(
    r"^\s*(?P<label>[A-Da-d]|[ivx]{1,4}|\d{1,2})[.)]\s+(?P<text>\S.*)$"
)

_log = logging.getLogger(__name__)


@dataclass(frozen=True)
class PromptParts:
    """A prompt split into its lead text and labelled sub-statements."""

    stem: str
    statements: tuple[tuple[str, str], ...]


@dataclass(frozen=True)
class Question:
    """Immutable multiple-choice question."""

    id: str
    prompt: str
    options: tuple[str, ...]
    correct_option: str

    def allows(self, value: object) -> bool:
        return isinstance(value, str) and value in self.options

    def is_correct(self, value: str | None) -> bool:
        return value is not None and value == self.correct_option

    def option_key(self, value: str | None) -> str | None:
        """Display letter (A, B, ...) for ``value``."""

        if value is None or value not in self.options:
            return None
        return chr(ord("A") + self.options.index(value))

    def option_for(self, key: str | None) -> str | None:
        """Option text for a display letter, ``None`` if out of range."""

        letter = (key or "").strip().upper()[:1]
        if not letter:
            return None
        offset = ord(letter) - ord("A")
        if 0 <= offset < len(self.options):
            return self.options[offset]
        return None

    def parts(self) -> PromptParts:
        stem_lines: list[str] = []
        statements: list[tuple[str, str]] = []
        for line in self.prompt.splitlines():
            match = _STATEMENT_RE.match(line)
            if match:
                statements.append(
                    (match.group("label"), match.group("text").strip())
                )
            elif line.strip():
                stem_lines.append(line.strip())
        return PromptParts(
            stem="\n".join(stem_lines), statements=tuple(statements)
        )


@dataclass(frozen=True)
class Period:
    """A named, ordered group of questions (e.g. one course week)."""

    key: str
    questions: tuple[Question, ...]

    def __len__(self) -> int:
        return len(self.questions)

    def __iter__(self) -> Iterator[Question]:
        return iter(self.questions)


class QuestionBank:
    """Read-only mapping of period key to :class:`Period`."""

    def __init__(self, periods: Sequence[Period]) -> None:
        ordered: dict[str, Period] = {}
        duplicates = []
        for period in periods:
            if period.key in ordered:
                duplicates.append(
                    ValidationIssue(period.key, None, "duplicate period key")
                )
                continue
            ordered[period.key] = period
        if duplicates:
            raise ValidationError(duplicates)
        self._periods = ordered

    @classmethod
    def from_raw(cls, raw: Mapping[str, object]) -> "QuestionBank":
        """Decode the ``{period: [record, ...]}`` serialization format."""

        if not isinstance(raw, Mapping):
            raise ValidationError(
                [
                    ValidationIssue(
                        "<bank>",
                        None,
                        "expected an object keyed by period, found "
                        f"{type(raw).__name__}",
                    )
                ]
            )
        issues: list[ValidationIssue] = []
        periods: list[Period] = []
        for key, records in raw.items():
            period_key = str(key)
            if not isinstance(records, list):
                issues.append(
                    ValidationIssue(
                        period_key,
                        None,
                        "expected a list of questions, found "
                        f"{type(records).__name__}",
                    )
                )
                continue
            questions = []
            for index, record in enumerate(records):
                question = _decode_question(period_key, index, record, issues)
                if question is not None:
                    questions.append(question)
            periods.append(Period(period_key, tuple(questions)))
        if issues:
            raise ValidationError(issues)
        return cls(periods)

    def __len__(self) -> int:
        return len(self._periods)

    def __iter__(self) -> Iterator[Period]:
        return iter(self._periods.values())

    def __contains__(self, key: object) -> bool:
        return key in self._periods

    def get_period(self, key: str) -> Period:
        try:
            return self._periods[key]
        except KeyError:
            raise NotFoundError(f"Unknown period '{key}'.") from None

    def list_period_keys(self) -> tuple[str, ...]:
        return tuple(self._periods)

    def validate(self) -> None:
        """Check every period and question; raise once with all issues."""

        issues: list[ValidationIssue] = []
        for period in self._periods.values():
            if not period.questions:
                issues.append(
                    ValidationIssue(period.key, None, "period has no questions")
                )
            seen: set[str] = set()
            for question in period.questions:
                if question.id in seen:
                    issues.append(
                        ValidationIssue(
                            period.key, question.id, "duplicate question id"
                        )
                    )
                seen.add(question.id)
                count = len(question.options)
                if not MIN_OPTIONS <= count <= MAX_OPTIONS:
                    issues.append(
                        ValidationIssue(
                            period.key,
                            question.id,
                            f"expected {MIN_OPTIONS}-{MAX_OPTIONS} options, "
                            f"found {count}",
                        )
                    )
                if question.correct_option not in question.options:
                    issues.append(
                        ValidationIssue(
                            period.key,
                            question.id,
                            f"answer {question.correct_option!r} is not one "
                            "of the options",
                        )
                    )
        if issues:
            raise ValidationError(issues)


def default_bank_source():
    """Traversable for the question bank shipped with the package."""

    return resources.files(_BANK_PACKAGE).joinpath(_BANK_FILENAME)


def load_question_bank(
    path: Path | None = None,
    *,
    validate: bool = True,
    logger: logging.Logger | None = None,
) -> QuestionBank:
    """Load, decode and (by default) validate a question bank JSON file.

    ``path=None`` loads the bank bundled with the package.
    """

    log = logger or _log
    source = default_bank_source() if path is None else Path(path)
    try:
        raw = json.loads(source.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise BankLoadError(f"Question bank not found: {source}") from exc
    except json.JSONDecodeError as exc:
        raise BankLoadError(
            f"Question bank is not valid JSON: {source}: {exc}"
        ) from exc

    try:
        bank = QuestionBank.from_raw(raw)
        if validate:
            bank.validate()
    except ValidationError as exc:
        log.error(
            "question bank rejected",
            extra={
                "event": "bank_invalid",
                "source": str(source),
                "issues": [issue.describe() for issue in exc.issues],
            },
        )
        raise

    log.info(
        "question bank loaded",
        extra={
            "event": "bank_loaded",
            "source": str(source),
            "periods": len(bank),
            "questions": sum(len(period) for period in bank),
        },
    )
    return bank


def _decode_question(
    period_key: str,
    index: int,
    record: object,
    issues: list[ValidationIssue],
) -> Question | None:
    fallback_id = f"q{index + 1}"
    if not isinstance(record, Mapping):
        issues.append(
            ValidationIssue(
                period_key,
                fallback_id,
                f"expected an object, found {type(record).__name__}",
            )
        )
        return None

    qid = str(record.get("id") or fallback_id)
    missing = [
        field
        for field in ("question", "options", "answer")
        if record.get(field) is None
    ]
    if missing:
        issues.append(
            ValidationIssue(
                period_key, qid, f"missing field(s): {', '.join(missing)}"
            )
        )
        return None

    options = record["options"]
    if not isinstance(options, list):
        issues.append(
            ValidationIssue(period_key, qid, "options must be a list")
        )
        return None

    return Question(
        id=qid,
        prompt=str(record["question"]).strip(),
        options=tuple(str(option) for option in options),
        correct_option=str(record["answer"]),
    )
