"""Configuration for quiz sessions, the text provider and score storage.

Values come from the packaged defaults merged with an optional TOML file.
The file is looked up at an explicit path, then ``ECOQUIZ_CONFIG``, then
``<workspace>/config/quiz.toml``; only the last one may be missing.
"""

from __future__ import annotations

import copy
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from ..core import config as core_config
from ..core import workspace as workspace_mod
from .prompts import DEFAULT_TOPIC
from .scores import ScorePolicy

__all__ = [
    "CONFIG_ENV",
    "CONFIG_FILENAME",
    "LoggingConfig",
    "ProviderConfig",
    "QuizAppConfig",
    "QuizConfigError",
    "QuizSettings",
    "ScoresConfig",
    "default_tree",
    "load_config",
    "resolve_config_path",
]

CONFIG_FILENAME = "quiz.toml"
CONFIG_ENV = "ECOQUIZ_CONFIG"


class QuizConfigError(RuntimeError):
    """Raised when configuration parsing or validation fails."""


@dataclass(frozen=True)
class QuizSettings:
    topic: str
    questions_per_quiz: Optional[int]
    feedback_delay_seconds: float


@dataclass(frozen=True)
class ProviderConfig:
    model: str
    temperature: float
    max_tokens: int
    request_timeout_seconds: float
    api_base: Optional[str]


@dataclass(frozen=True)
class ScoresConfig:
    policy: ScorePolicy
    record_zero_scores: bool
    filename: str


@dataclass(frozen=True)
class LoggingConfig:
    level: str
    verbose: bool


@dataclass(frozen=True)
class QuizAppConfig:
    quiz: QuizSettings
    provider: ProviderConfig
    scores: ScoresConfig
    logging: LoggingConfig
    source: Optional[Path] = None


_DEFAULTS: Dict[str, Any] = {
    "quiz": {
        "topic": DEFAULT_TOPIC,
        "questions_per_quiz": 5,
        "feedback_delay_seconds": 1.5,
    },
    "provider": {
        "model": "gpt-4o-mini",
        "temperature": 0.7,
        "max_tokens": 400,
        "request_timeout_seconds": 30,
        "api_base": "",
    },
    "scores": {
        "policy": ScorePolicy.PER_PLAYER.value,
        "record_zero_scores": False,
        "filename": "scores.json",
    },
    "logging": {
        "level": "INFO",
        "verbose": False,
    },
}


def default_tree() -> Dict[str, Any]:
    """Return a copy of the default configuration tree."""

    return copy.deepcopy(_DEFAULTS)


def resolve_config_path(
    *,
    explicit_path: Optional[Path] = None,
    env: Mapping[str, str] | None = None,
    workspace: workspace_mod.WorkspaceLayout | None = None,
) -> tuple[Path, bool]:
    """Return the config path and whether the caller asked for it."""

    env_map = os.environ if env is None else env
    if explicit_path is not None:
        return explicit_path.expanduser().resolve(), True
    env_override = (env_map.get(CONFIG_ENV) or "").strip()
    if env_override:
        return Path(env_override).expanduser().resolve(), True
    layout = workspace or workspace_mod.ensure_workspace(env=env_map)
    return layout.path_for("config") / CONFIG_FILENAME, False


def load_config(
    *,
    explicit_path: Optional[Path] = None,
    env: Mapping[str, str] | None = None,
    workspace: workspace_mod.WorkspaceLayout | None = None,
) -> QuizAppConfig:
    """Load the TOML config, applying defaults and validation."""

    path, requested = resolve_config_path(
        explicit_path=explicit_path, env=env, workspace=workspace
    )
    tree = default_tree()
    source: Optional[Path] = None
    if path.exists():
        try:
            tree = core_config.merge_defaults(
                tree, core_config.load_toml(path)
            )
        except core_config.TomlConfigError as exc:
            raise QuizConfigError(str(exc)) from exc
        source = path
    elif requested:
        raise QuizConfigError(f"Config file not found: {path}")
    return _build_config(tree, source=source)


def _build_config(
    tree: Mapping[str, Any], *, source: Optional[Path]
) -> QuizAppConfig:
    return QuizAppConfig(
        quiz=_build_quiz(tree["quiz"]),
        provider=_build_provider(tree["provider"]),
        scores=_build_scores(tree["scores"]),
        logging=_build_logging(tree["logging"]),
        source=source,
    )


def _build_quiz(section: Mapping[str, Any]) -> QuizSettings:
    topic = _require_string(section.get("topic"), field="quiz.topic")
    count = _require_non_negative_int(
        section.get("questions_per_quiz"), field="quiz.questions_per_quiz"
    )
    delay = _require_float_range(
        section.get("feedback_delay_seconds"),
        field="quiz.feedback_delay_seconds",
        min_value=0.0,
        max_value=30.0,
    )
    return QuizSettings(
        topic=topic,
        questions_per_quiz=count or None,
        feedback_delay_seconds=delay,
    )


def _build_provider(section: Mapping[str, Any]) -> ProviderConfig:
    model = _require_string(section.get("model"), field="provider.model")
    temperature = _require_float_range(
        section.get("temperature"),
        field="provider.temperature",
        min_value=0.0,
        max_value=2.0,
    )
    max_tokens = _require_positive_int(
        section.get("max_tokens"), field="provider.max_tokens"
    )
    timeout = _require_float_range(
        section.get("request_timeout_seconds"),
        field="provider.request_timeout_seconds",
        min_value=1.0,
        max_value=600.0,
    )
    api_base = section.get("api_base")
    if api_base is not None and not isinstance(api_base, str):
        raise QuizConfigError("'provider.api_base' must be a string.")
    return ProviderConfig(
        model=model,
        temperature=temperature,
        max_tokens=max_tokens,
        request_timeout_seconds=timeout,
        api_base=(api_base or "").strip() or None,
    )


def _build_scores(section: Mapping[str, Any]) -> ScoresConfig:
    raw_policy = _require_string(section.get("policy"), field="scores.policy")
    try:
        policy = ScorePolicy.from_value(raw_policy)
    except ValueError as exc:
        raise QuizConfigError(str(exc)) from exc
    record_zero = _require_bool(
        section.get("record_zero_scores"), field="scores.record_zero_scores"
    )
    filename = _require_string(
        section.get("filename"), field="scores.filename"
    )
    if Path(filename).name != filename:
        raise QuizConfigError(
            "'scores.filename' must be a bare file name, not a path."
        )
    return ScoresConfig(
        policy=policy,
        record_zero_scores=record_zero,
        filename=filename,
    )


def _build_logging(section: Mapping[str, Any]) -> LoggingConfig:
    level = _require_string(
        section.get("level"), field="logging.level"
    ).upper()
    allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
    if level not in allowed:
        raise QuizConfigError(
            "logging.level must be one of "
            "DEBUG, INFO, WARNING, ERROR, CRITICAL."
        )
    verbose = _require_bool(section.get("verbose"), field="logging.verbose")
    return LoggingConfig(level=level, verbose=verbose)


def _require_positive_int(value: Any, *, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise QuizConfigError(f"'{field}' must be a positive integer.")
    return value


def _require_non_negative_int(value: Any, *, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise QuizConfigError(f"'{field}' must be a non-negative integer.")
    return value


def _require_bool(value: Any, *, field: str) -> bool:
    if not isinstance(value, bool):
        raise QuizConfigError(f"'{field}' must be a boolean.")
    return value


def _require_float_range(
    value: Any, *, field: str, min_value: float, max_value: float
) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise QuizConfigError(f"'{field}' must be a number.")
    number = float(value)
    if not (min_value <= number <= max_value):
        raise QuizConfigError(
            f"'{field}' must be between {min_value} and {max_value}."
        )
    return number


def _require_string(value: Any, *, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise QuizConfigError(f"'{field}' must be a non-empty string.")
    return value.strip()
