from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path

from ecoquiz.core import logging as core_logging


def _drop_handlers(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)


def _read_lines(logger: logging.Logger, path: Path) -> list[dict]:
    for handler in logger.handlers:
        handler.flush()
    raw = path.read_text(encoding="utf-8").strip().splitlines()
    return [json.loads(line) for line in raw]


def test_configure_logger_writes_json_lines(tmp_path):
    logger, log_path = core_logging.configure_logger(
        "ecoquiz.test_json",
        log_dir=tmp_path / "logs",
        level="INFO",
        filename="test.log",
    )

    logger.info("Score submitted", extra={"player": "Ana", "score": 3})
    logger.debug("hidden at INFO")
    try:
        raise ValueError("boom")
    except ValueError:
        logger.exception(
            "with error",
            extra={"path": Path("/tmp/x"), "items": (1, {"k": "v"})},
        )

    entries = _read_lines(logger, log_path)
    assert [entry["message"] for entry in entries] == [
        "Score submitted",
        "with error",
    ]
    first = entries[0]
    assert first["level"] == "INFO"
    assert first["logger"] == "ecoquiz.test_json"
    assert first["extra"] == {"player": "Ana", "score": 3}
    last = entries[-1]
    assert "ValueError: boom" in last["exception"]
    assert last["extra"]["path"] == "/tmp/x"
    assert last["extra"]["items"] == [1, {"k": "v"}]

    _drop_handlers(logger)


def test_child_loggers_share_the_file(tmp_path):
    parent, log_path = core_logging.configure_logger(
        "ecoquiz.test_parent",
        log_dir=tmp_path / "logs",
        filename="shared.log",
    )

    logging.getLogger("ecoquiz.test_parent.session").warning("from child")

    entries = _read_lines(parent, log_path)
    assert entries[-1]["message"] == "from child"
    assert entries[-1]["logger"] == "ecoquiz.test_parent.session"

    _drop_handlers(parent)


def test_task_name_is_not_reported_as_extra(tmp_path):
    logger, log_path = core_logging.configure_logger(
        "ecoquiz.test_task",
        log_dir=tmp_path / "logs",
        filename="task.log",
    )

    async def emit() -> None:
        logger.info("inside a task")

    asyncio.run(emit())

    entries = _read_lines(logger, log_path)
    assert "extra" not in entries[-1]

    _drop_handlers(logger)


def test_verbose_forces_debug_to_file(tmp_path):
    logger, log_path = core_logging.configure_logger(
        "ecoquiz.test_verbose",
        log_dir=tmp_path / "logs",
        level="WARNING",
        verbose=True,
        filename="verbose.log",
    )

    logger.debug("debug line")

    entries = _read_lines(logger, log_path)
    assert entries[-1]["message"] == "debug line"

    _drop_handlers(logger)


def test_console_handler_toggle(tmp_path):
    log_dir = tmp_path / "logs"
    name = "ecoquiz.test_toggle"

    def console_handlers(logger: logging.Logger) -> list[logging.Handler]:
        return [
            handler
            for handler in logger.handlers
            if getattr(handler, "_ecoquiz_console", False)
        ]

    logger, _ = core_logging.configure_logger(
        name, log_dir=log_dir, verbose=True, filename="toggle.log"
    )
    assert len(console_handlers(logger)) == 1

    core_logging.configure_logger(
        name, log_dir=log_dir, verbose=True, filename="toggle.log"
    )
    assert len(console_handlers(logger)) == 1

    core_logging.configure_logger(
        name, log_dir=log_dir, verbose=False, filename="toggle.log"
    )
    assert not console_handlers(logger)

    _drop_handlers(logger)


def test_file_handler_is_replaced_when_directory_changes(tmp_path):
    name = "ecoquiz.test_move"
    logger, first = core_logging.configure_logger(
        name, log_dir=tmp_path / "one", filename="move.log"
    )
    _, second = core_logging.configure_logger(
        name, log_dir=tmp_path / "two", filename="move.log"
    )

    file_handlers = [
        handler
        for handler in logger.handlers
        if getattr(handler, "_ecoquiz_file", False)
    ]
    assert first != second
    assert len(file_handlers) == 1
    assert Path(file_handlers[0].baseFilename) == second

    _drop_handlers(logger)


def test_default_filename_and_private_permissions(tmp_path):
    logger, log_path = core_logging.configure_logger(
        "ecoquiz.test_default", log_dir=tmp_path / "new" / "logs"
    )

    assert log_path == tmp_path / "new" / "logs" / "ecoquiz.log"
    assert log_path.stat().st_mode & 0o777 == 0o600
    handler = next(
        h for h in logger.handlers if getattr(h, "_ecoquiz_file", False)
    )
    assert handler.maxBytes == core_logging.MAX_LOG_BYTES
    assert handler.backupCount == core_logging.LOG_BACKUPS

    _drop_handlers(logger)


def test_unknown_level_falls_back_to_info():
    assert core_logging._level_number("bogus") == logging.INFO
    assert core_logging._level_number("debug") == logging.DEBUG
