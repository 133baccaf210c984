from __future__ import annotations

from pathlib import Path

import pytest

from study_quiz.core.workspace import WORKSPACE_ENV
from study_quiz.quizzer.config import (
    ConfigOverrides,
    QuizConfigError,
    load_config,
)


@pytest.fixture
def home(tmp_path: Path) -> Path:
    return tmp_path / "ws"


def _env(home: Path, **values: str) -> dict[str, str]:
    env = {WORKSPACE_ENV: str(home)}
    env.update({f"STUDY_QUIZ_{key}": value for key, value in values.items()})
    return env


def _write_config(home: Path, body: str) -> Path:
    target = home / "config" / "quiz.toml"
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(body, encoding="utf-8")
    return target


def test_defaults_without_config_file(home: Path) -> None:
    result = load_config(env=_env(home))

    assert result.config_path is None
    assert result.config.bank_source is None
    assert result.config.sessions_dir == home.resolve() / "sessions"
    assert result.config.reveal_answers is True
    assert result.config.log_level == "INFO"
    assert result.layout.home == home.resolve()


def test_config_file_values_resolve_against_workspace(home: Path) -> None:
    path = _write_config(
        home,
        '[bank]\nsource = "banks/custom.json"\n'
        '[storage]\nsessions_dir = "/srv/quiz-sessions"\n'
        "[report]\nreveal_answers = false\n"
        '[logging]\nlevel = "debug"\n',
    )

    result = load_config(env=_env(home))

    assert result.config_path == path
    assert result.config.bank_source == home.resolve() / "banks" / "custom.json"
    assert result.config.sessions_dir == Path("/srv/quiz-sessions").resolve()
    assert result.config.reveal_answers is False
    assert result.config.log_level == "DEBUG"


def test_environment_beats_file_and_overrides_beat_environment(
    home: Path, tmp_path: Path
) -> None:
    _write_config(home, "[report]\nreveal_answers = true\n")
    env = _env(
        home,
        REVEAL_ANSWERS="off",
        LOG_LEVEL="warning",
        BANK=str(tmp_path / "env-bank.json"),
    )

    from_env = load_config(env=env)
    overridden = load_config(
        env=env,
        overrides=ConfigOverrides(
            bank_source=tmp_path / "cli-bank.json",
            reveal_answers=True,
        ),
    )

    assert from_env.config.reveal_answers is False
    assert from_env.config.log_level == "WARNING"
    assert from_env.config.bank_source == (tmp_path / "env-bank.json").resolve()
    assert overridden.config.reveal_answers is True
    assert overridden.config.bank_source == (tmp_path / "cli-bank.json").resolve()
    assert overridden.config.log_level == "WARNING"


def test_explicit_config_path(tmp_path: Path, home: Path) -> None:
    path = tmp_path / "elsewhere" / "quiz.toml"
    path.parent.mkdir()
    path.write_text('[storage]\nsessions_dir = "runs"\n', encoding="utf-8")

    result = load_config(config_path=path, env=_env(home))

    assert result.config_path == path
    assert result.config.sessions_dir == home.resolve() / "runs"


def test_missing_explicit_config_is_an_error(home: Path) -> None:
    with pytest.raises(QuizConfigError, match="not found"):
        load_config(config_path=home / "nope.toml", env=_env(home))
    with pytest.raises(QuizConfigError, match="not found"):
        load_config(env=_env(home, CONFIG=str(home / "nope.toml")))


@pytest.mark.parametrize(
    "body, message",
    [
        ("[bank\n", "Failed to parse"),
        ("[report]\nreveal_answers = \"maybe\"\n", "reveal_answers"),
        ("[bank]\nsource = 3\n", "bank.source"),
        ("[extras]\nflag = true\n", "extras"),
        ('[logging]\nlevel = ""\n', "logging.level"),
    ],
)
def test_invalid_config_file(home: Path, body: str, message: str) -> None:
    _write_config(home, body)

    with pytest.raises(QuizConfigError, match=message):
        load_config(env=_env(home))


def test_invalid_boolean_environment_value(home: Path) -> None:
    with pytest.raises(QuizConfigError, match="STUDY_QUIZ_REVEAL_ANSWERS"):
        load_config(env=_env(home, REVEAL_ANSWERS="sometimes"))


def test_workspace_path_argument_wins(tmp_path: Path, home: Path) -> None:
    other = tmp_path / "other"

    result = load_config(env=_env(home), workspace_path=other)

    assert result.layout.home == other.resolve()
    assert (other / "sessions").is_dir()
