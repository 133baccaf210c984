"""Configuration loader for the quizzer commands.

Precedence is CLI overrides, then ``STUDY_QUIZ_*`` environment variables,
then ``quiz.toml`` in the workspace config directory, then built-in
defaults. Relative paths from the file or environment resolve against the
workspace root.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from study_quiz.core import config as core_config
from study_quiz.core import workspace as workspace_mod

CONFIG_FILENAME = "quiz.toml"
CONFIG_ENV = "STUDY_QUIZ_CONFIG"
ENV_PREFIX = "STUDY_QUIZ_"

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}

_DEFAULTS: Mapping[str, Mapping[str, object]] = {
    "bank": {"source": ""},
    "storage": {"sessions_dir": ""},
    "report": {"reveal_answers": True},
    "logging": {"level": "INFO"},
}


class QuizConfigError(RuntimeError):
    """Raised when quiz configuration is missing or invalid."""


@dataclass(frozen=True)
class QuizConfig:
    """Resolved settings for one quizzer invocation."""

    bank_source: Optional[Path]
    sessions_dir: Path
    reveal_answers: bool
    log_level: str


@dataclass(frozen=True)
class ConfigOverrides:
    bank_source: Optional[Path] = None
    sessions_dir: Optional[Path] = None
    reveal_answers: Optional[bool] = None
    log_level: Optional[str] = None


@dataclass(frozen=True)
class LoadResult:
    config: QuizConfig
    layout: workspace_mod.WorkspaceLayout
    config_path: Optional[Path]


def load_config(
    *,
    config_path: Optional[Path] = None,
    overrides: Optional[ConfigOverrides] = None,
    env: Optional[Mapping[str, str]] = None,
    workspace_path: Optional[Path] = None,
) -> LoadResult:
    overrides = overrides or ConfigOverrides()
    env_map = os.environ if env is None else env

    try:
        layout = workspace_mod.ensure_workspace(
            env=env_map, path=workspace_path
        )
    except workspace_mod.WorkspaceError as exc:
        raise QuizConfigError(str(exc)) from exc

    requested = _resolve_config_path(
        config_path=config_path,
        env_map=env_map,
        default_path=layout.path_for("config") / CONFIG_FILENAME,
    )

    table = _DEFAULTS
    loaded_path: Optional[Path] = None
    if requested.exists():
        loaded_path = requested
        try:
            table = core_config.layer_table(
                _DEFAULTS, core_config.read_toml(requested)
            )
        except core_config.TomlConfigError as exc:
            raise QuizConfigError(str(exc)) from exc
    elif config_path is not None or _env_string(env_map, "CONFIG"):
        raise QuizConfigError(f"Config file not found: {requested}")

    bank_source = _pick_first(
        overrides.bank_source,
        _env_path(env_map, "BANK"),
        _coerce_optional_path(table["bank"]["source"], "bank.source"),
    )
    sessions_dir = _pick_first(
        overrides.sessions_dir,
        _env_path(env_map, "SESSIONS_DIR"),
        _coerce_optional_path(
            table["storage"]["sessions_dir"], "storage.sessions_dir"
        ),
    )
    reveal = _pick_first(
        overrides.reveal_answers,
        _env_bool(env_map, "REVEAL_ANSWERS"),
        table["report"]["reveal_answers"],
    )
    if not isinstance(reveal, bool):
        raise QuizConfigError("report.reveal_answers must be a boolean.")

    config = QuizConfig(
        bank_source=_anchor(bank_source, layout),
        sessions_dir=_anchor(sessions_dir, layout)
        or layout.path_for("sessions"),
        reveal_answers=reveal,
        log_level=_resolve_log_level(
            _pick_first(
                overrides.log_level,
                _env_string(env_map, "LOG_LEVEL"),
                table["logging"]["level"],
            )
        ),
    )
    return LoadResult(config=config, layout=layout, config_path=loaded_path)


def _resolve_config_path(
    *,
    config_path: Optional[Path],
    env_map: Mapping[str, str],
    default_path: Path,
) -> Path:
    if config_path is not None:
        return config_path.expanduser()
    candidate = _env_string(env_map, "CONFIG")
    if candidate:
        return Path(candidate).expanduser()
    return default_path


def _anchor(
    candidate: object, layout: workspace_mod.WorkspaceLayout
) -> Optional[Path]:
    if candidate is None:
        return None
    path = Path(candidate).expanduser()
    if not path.is_absolute():
        path = layout.home / path
    return path.resolve()


def _coerce_optional_path(value: object, key: str) -> Optional[Path]:
    if value is None:
        return None
    if isinstance(value, str):
        stripped = value.strip()
        return Path(stripped) if stripped else None
    raise QuizConfigError(f"{key} must be a string when provided.")


def _resolve_log_level(candidate: object) -> str:
    if not isinstance(candidate, str) or not candidate.strip():
        raise QuizConfigError("logging.level must be a non-empty string.")
    return candidate.strip().upper()


def _env_string(env_map: Mapping[str, str], key: str) -> Optional[str]:
    raw = env_map.get(f"{ENV_PREFIX}{key}")
    if raw is None:
        return None
    return raw.strip() or None


def _env_path(env_map: Mapping[str, str], key: str) -> Optional[Path]:
    raw = _env_string(env_map, key)
    return Path(raw) if raw else None


def _env_bool(env_map: Mapping[str, str], key: str) -> Optional[bool]:
    raw = _env_string(env_map, key)
    if raw is None:
        return None
    lowered = raw.lower()
    if lowered in _TRUTHY:
        return True
    if lowered in _FALSY:
        return False
    raise QuizConfigError(
        f"{ENV_PREFIX}{key} must be one of: "
        f"{', '.join(sorted(_TRUTHY | _FALSY))}."
    )


def _pick_first(*candidates: object) -> object:
    for candidate in candidates:
        if candidate is not None:
            return candidate
    return None
