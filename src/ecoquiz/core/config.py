"""TOML helpers for ecoquiz config files.

A user file may only set keys that already exist in the defaults tree, and a
table in the defaults may only be overridden by a table. Every problem found
in a file is reported in a single error so a broken config is fixed in one
pass.
"""

from __future__ import annotations

import copy
import os
import tempfile
from pathlib import Path
from typing import Any, Mapping

import tomllib

__all__ = [
    "TomlConfigError",
    "load_toml",
    "merge_defaults",
    "write_toml_template",
]


class TomlConfigError(RuntimeError):
    """Raised when a config file cannot be read, parsed or merged."""


def load_toml(path: Path) -> dict[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise TomlConfigError(f"Config file not found: {path}") from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise TomlConfigError(
            f"Failed to read config file: {path} ({exc})"
        ) from exc
    try:
        return tomllib.loads(text)
    except tomllib.TOMLDecodeError as exc:
        raise TomlConfigError(
            f"Failed to parse config TOML in {path}: {exc}"
        ) from exc


def merge_defaults(
    defaults: Mapping[str, Any], override: Mapping[str, Any]
) -> dict[str, Any]:
    """Return a copy of ``defaults`` with ``override`` applied on top.

    ``defaults`` is left untouched. Unknown keys and tables replaced by
    plain values are collected and raised together as
    :class:`TomlConfigError`.
    """

    merged = copy.deepcopy(dict(defaults))
    problems: list[str] = []
    _overlay(merged, override, prefix="", problems=problems)
    if problems:
        raise TomlConfigError("Invalid configuration: " + "; ".join(problems))
    return merged


def _overlay(
    target: dict[str, Any],
    override: Mapping[str, Any],
    *,
    prefix: str,
    problems: list[str],
) -> None:
    for key, value in override.items():
        dotted = prefix + key
        if key not in target:
            problems.append(f"unknown key '{dotted}'")
            continue
        current = target[key]
        if not isinstance(current, dict):
            target[key] = value
        elif isinstance(value, Mapping):
            _overlay(current, value, prefix=dotted + ".", problems=problems)
        else:
            problems.append(
                f"'{dotted}' must be a table, not {type(value).__name__}"
            )


def write_toml_template(
    path: Path, *, template: str, overwrite: bool = False
) -> Path:
    """Write ``template`` to ``path`` readable by the owner only.

    The text lands in a sibling temp file first and is moved into place, so
    an interrupted write never leaves half a config behind.
    """

    if path.exists() and not overwrite:
        raise TomlConfigError(f"Config already exists: {path}")
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(
        dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp"
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(template)
        # mkstemp already creates the file as 0o600.
        os.replace(tmp_name, path)
    except OSError as exc:
        Path(tmp_name).unlink(missing_ok=True)
        raise TomlConfigError(
            f"Failed to write config file: {path} ({exc})"
        ) from exc
    return path
