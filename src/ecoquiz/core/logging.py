"""JSON-lines logging for ecoquiz commands.

Each command installs one rotating file handler on the package logger; the
modules below it log through ``logging.getLogger(__name__)`` and inherit
it. Anything passed through ``extra=`` ends up under the ``extra`` key of
the JSON line.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

__all__ = [
    "JsonLogFormatter",
    "configure_logger",
]

MAX_LOG_BYTES = 2 * 1024 * 1024
LOG_BACKUPS = 3

# Attributes every LogRecord carries, plus the ones Formatter adds.
_STANDARD_ATTRS = frozenset(logging.makeLogRecord({}).__dict__) | {
    "message",
    "asctime",
    "taskName",
}


class JsonLogFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        payload: dict[str, Any] = {
            "timestamp": created.isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        extra = {
            key: _jsonable(value)
            for key, value in vars(record).items()
            if key not in _STANDARD_ATTRS
        }
        if extra:
            payload["extra"] = extra
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=True)


def configure_logger(
    name: str,
    *,
    log_dir: Path,
    level: str = "INFO",
    verbose: bool = False,
    filename: str = "ecoquiz.log",
) -> tuple[logging.Logger, Path]:
    """Route ``name`` and its children to ``log_dir / filename``.

    ``verbose`` lowers the file threshold to DEBUG and mirrors records to
    stderr. Calling this again for the same logger reuses the handler while
    the path is unchanged and swaps it otherwise.
    """

    logger = logging.getLogger(name)
    logger.propagate = False
    logger.setLevel(logging.DEBUG)

    log_dir.mkdir(parents=True, exist_ok=True)
    path = log_dir / filename
    handler = _file_handler(logger, path)
    handler.setLevel(logging.DEBUG if verbose else _level_number(level))
    _set_console(logger, enabled=verbose)
    return logger, path


def _level_number(level: str) -> int:
    numeric = logging.getLevelName(level.upper())
    return numeric if isinstance(numeric, int) else logging.INFO


def _file_handler(logger: logging.Logger, path: Path) -> RotatingFileHandler:
    for handler in list(logger.handlers):
        if not getattr(handler, "_ecoquiz_file", False):
            continue
        if Path(handler.baseFilename) == path:  # type: ignore[attr-defined]
            return handler  # type: ignore[return-value]
        logger.removeHandler(handler)
        handler.close()
    handler = RotatingFileHandler(
        path,
        maxBytes=MAX_LOG_BYTES,
        backupCount=LOG_BACKUPS,
        encoding="utf-8",
    )
    try:
        path.chmod(0o600)
    except PermissionError:  # pragma: no cover - depends on filesystem
        pass
    handler.setFormatter(JsonLogFormatter())
    handler._ecoquiz_file = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    return handler


def _set_console(logger: logging.Logger, *, enabled: bool) -> None:
    existing = [
        handler
        for handler in logger.handlers
        if getattr(handler, "_ecoquiz_console", False)
    ]
    if enabled and not existing:
        console = logging.StreamHandler(stream=sys.stderr)
        console.setFormatter(logging.Formatter("%(levelname)s %(message)s"))
        console._ecoquiz_console = True  # type: ignore[attr-defined]
        logger.addHandler(console)
    elif not enabled:
        for handler in existing:
            logger.removeHandler(handler)
            handler.close()


def _jsonable(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, dict):
        return {str(key): _jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_jsonable(item) for item in value]
    return repr(value)
