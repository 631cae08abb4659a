from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Iterator

import pytest

TESTS_DIR = Path(__file__).resolve().parent
if str(TESTS_DIR) not in sys.path:
    sys.path.insert(0, str(TESTS_DIR))

# Make src/ importable when the package is not installed.
ROOT = TESTS_DIR.parent
SRC = str(ROOT / "src")
if SRC not in sys.path:
    sys.path.insert(0, SRC)

from fixtures import QuizWorkspace  # noqa: E402


@pytest.fixture(autouse=True)
def _isolated_env(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> Iterator[Path]:
    """Point the workspace at a tmp dir and drop ambient overrides."""

    home = tmp_path / "ecoquiz-home"
    monkeypatch.setenv("ECOQUIZ_DATA_HOME", str(home))
    monkeypatch.delenv("ECOQUIZ_CONFIG", raising=False)
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    yield home


@pytest.fixture(autouse=True)
def _reset_package_logger() -> Iterator[None]:
    yield
    logger = logging.getLogger("ecoquiz")
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def quiz_workspace(tmp_path: Path) -> QuizWorkspace:
    """Provide a quiz workspace under pytest's per-test tmp directory."""

    return QuizWorkspace(tmp_path / "ws")
