from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Iterator

import pytest

TESTS_DIR = Path(__file__).resolve().parent
ROOT = TESTS_DIR.parent
for extra in (TESTS_DIR, ROOT / "src"):
    path_str = str(extra)
    if path_str not in sys.path:
        sys.path.insert(0, path_str)

from fixtures import FakeClock, sample_raw_bank  # noqa: E402
from study_quiz.core import workspace as workspace_mod  # noqa: E402
from study_quiz.quizzer import QuestionBank, SessionManager  # noqa: E402


@pytest.fixture(autouse=True)
def _isolated_environment(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> Iterator[None]:
    """Point the workspace at tmp and drop any STUDY_QUIZ_* settings."""

    for key in list(os.environ):
        if key.startswith("STUDY_QUIZ_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv(workspace_mod.WORKSPACE_ENV, str(tmp_path / "ws-home"))
    yield
    logger = logging.getLogger("study_quiz.quizzer")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


@pytest.fixture
def raw_bank() -> dict:
    return sample_raw_bank()


@pytest.fixture
def bank(raw_bank: dict) -> QuestionBank:
    built = QuestionBank.from_raw(raw_bank)
    built.validate()
    return built


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def manager(bank: QuestionBank, clock: FakeClock) -> SessionManager:
    return SessionManager(bank, clock=clock)
