"""TOML reading and layering for study-quiz configuration files."""

from __future__ import annotations

import copy
import tomllib
from pathlib import Path
from typing import Any, Mapping, MutableMapping

__all__ = [
    "TomlConfigError",
    "read_toml",
    "layer_table",
    "write_toml_template",
]


class TomlConfigError(RuntimeError):
    """A config file could not be read, parsed or layered onto defaults."""


def read_toml(path: Path) -> Mapping[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise TomlConfigError(f"Config file not found: {path}") from exc
    try:
        return tomllib.loads(text)
    except tomllib.TOMLDecodeError as exc:
        raise TomlConfigError(f"Failed to parse {path.name}: {exc}") from exc


def layer_table(
    defaults: Mapping[str, Any], override: Mapping[str, Any]
) -> MutableMapping[str, Any]:
    """Return a copy of ``defaults`` with ``override`` applied on top.

    Keys must already exist in ``defaults`` and values keep the type of the
    default they replace. Every offending key is reported in one error.
    """

    merged = copy.deepcopy(dict(defaults))
    problems: list[str] = []
    _layer(merged, override, "", problems)
    if problems:
        raise TomlConfigError(
            "Invalid configuration:\n  " + "\n  ".join(problems)
        )
    return merged


def _layer(
    target: MutableMapping[str, Any],
    override: Mapping[str, Any],
    prefix: str,
    problems: list[str],
) -> None:
    for key, value in override.items():
        dotted = f"{prefix}{key}"
        if key not in target:
            problems.append(f"{dotted}: unknown key")
            continue
        current = target[key]
        if isinstance(current, MutableMapping):
            if isinstance(value, Mapping):
                _layer(current, value, f"{dotted}.", problems)
            else:
                problems.append(
                    f"{dotted}: expected a table, found {type(value).__name__}"
                )
            continue
        # bool is an int subclass; compare exact types.
        if type(value) is not type(current):
            problems.append(
                "{0}: expected {1}, found {2}".format(
                    dotted, type(current).__name__, type(value).__name__
                )
            )
            continue
        target[key] = value


def write_toml_template(
    path: Path,
    *,
    template: str,
    overwrite: bool = False,
    mode: int = 0o600,
) -> Path:
    """Write ``template`` to ``path``; without ``overwrite`` never clobber."""

    path.parent.mkdir(parents=True, exist_ok=True)
    try:
        with path.open("w" if overwrite else "x", encoding="utf-8") as handle:
            handle.write(template)
    except FileExistsError as exc:
        raise TomlConfigError(f"Config already exists: {path}") from exc
    try:
        path.chmod(mode)
    except PermissionError:  # pragma: no cover - depends on filesystem
        pass
    return path
