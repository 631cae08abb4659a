"""Command handlers for ``ecoquiz play``, ``best``, ``scores`` and
``clear-scores``."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Callable, Optional, Sequence

from rich.console import Console

from ..core import workspace as workspace_mod
from ..core.logging import configure_logger
from . import config as config_mod
from .provider import OpenAITextProvider, TextProvider
from .scores import JsonFileKeyValueStore, ScoreStore, ScoreStoreError
from .session import QuizSession
from .view import feedback_printer, play_quiz, render_best, render_scores

__all__ = [
    "best_main",
    "build_provider",
    "build_score_store",
    "build_session",
    "clear_scores_main",
    "play_main",
    "scores_main",
]

LOGGER_NAME = "ecoquiz"
LOG_FILENAME = "quiz.log"

InputProvider = Callable[[], str]
ProviderFactory = Callable[[config_mod.ProviderConfig], TextProvider]


def build_score_store(
    cfg: config_mod.QuizAppConfig,
    layout: workspace_mod.WorkspaceLayout,
) -> ScoreStore:
    path = layout.path_for("scores") / cfg.scores.filename
    return ScoreStore(
        JsonFileKeyValueStore(path),
        policy=cfg.scores.policy,
        record_zero_scores=cfg.scores.record_zero_scores,
    )


def build_provider(provider_cfg: config_mod.ProviderConfig) -> TextProvider:
    return OpenAITextProvider(
        model=provider_cfg.model,
        temperature=provider_cfg.temperature,
        max_tokens=provider_cfg.max_tokens,
        request_timeout=provider_cfg.request_timeout_seconds,
        api_base=provider_cfg.api_base,
    )


def build_session(
    cfg: config_mod.QuizAppConfig,
    provider: TextProvider,
    scores: ScoreStore,
    *,
    console: Console,
    topic: str | None = None,
) -> QuizSession:
    return QuizSession(
        provider,
        scores,
        topic=topic or cfg.quiz.topic,
        feedback_delay=cfg.quiz.feedback_delay_seconds,
        request_timeout=cfg.provider.request_timeout_seconds,
        on_feedback=feedback_printer(console),
    )


def _base_parser(prog: str, description: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=prog, description=description)
    parser.add_argument(
        "--config",
        type=Path,
        help=(
            "Path to quiz.toml (defaults to ECOQUIZ_CONFIG or the workspace "
            "config directory)."
        ),
    )
    parser.add_argument(
        "--workspace",
        type=Path,
        help=(
            "Override the workspace root (defaults to ECOQUIZ_DATA_HOME or "
            "~/.ecoquiz-data)."
        ),
    )
    return parser


def _build_play_parser() -> argparse.ArgumentParser:
    parser = _base_parser(
        "ecoquiz play",
        "Play a quiz of AI-generated multiple-choice questions.",
    )
    parser.add_argument(
        "--name",
        help="Player name (prompted for when omitted).",
    )
    parser.add_argument(
        "--questions",
        type=int,
        help=(
            "Number of questions; 0 keeps going until you finish "
            "(defaults to quiz.questions_per_quiz)."
        ),
    )
    parser.add_argument(
        "--topic",
        help="Override the question topic for this run.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Mirror log records to stderr.",
    )
    return parser


def _load(
    args: argparse.Namespace,
) -> tuple[workspace_mod.WorkspaceLayout, config_mod.QuizAppConfig]:
    layout = workspace_mod.ensure_workspace(path=args.workspace)
    cfg = config_mod.load_config(explicit_path=args.config, workspace=layout)
    return layout, cfg


def _print_error(message: str) -> None:
    sys.stderr.write(f"Error: {message}\n")


def play_main(
    argv: Sequence[str] | None = None,
    *,
    console: Optional[Console] = None,
    input_provider: Optional[InputProvider] = None,
    provider_factory: Optional[ProviderFactory] = None,
) -> int:
    parser = _build_play_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    if args.questions is not None and args.questions < 0:
        parser.error("--questions must be zero or a positive integer.")

    try:
        layout, cfg = _load(args)
    except (config_mod.QuizConfigError, workspace_mod.WorkspaceError) as exc:
        _print_error(str(exc))
        return 2

    logger, log_path = configure_logger(
        LOGGER_NAME,
        log_dir=layout.path_for("logs"),
        level=cfg.logging.level,
        verbose=cfg.logging.verbose or args.verbose,
        filename=LOG_FILENAME,
    )
    logger.debug("play command invoked", extra={"config": str(cfg.source)})

    factory = provider_factory or build_provider
    try:
        provider = factory(cfg.provider)
    except RuntimeError as exc:
        _print_error(str(exc))
        return 1

    out = console or Console()
    store = build_score_store(cfg, layout)
    try:
        best = store.query_best()
    except ScoreStoreError as exc:
        logger.warning("Could not read best score: %s", exc)
        out.print(f"[yellow]Could not read scores: {exc}[/]")
        best = None

    if args.questions is None:
        total = cfg.quiz.questions_per_quiz
    else:
        total = args.questions or None

    session = build_session(
        cfg, provider, store, console=out, topic=args.topic
    )
    reader = input_provider or (lambda: out.input("[bold cyan]> [/]"))
    final = asyncio.run(
        play_quiz(
            session,
            out,
            reader,
            player_name=args.name,
            total_questions=total,
            best=best,
        )
    )
    if final.result is not None:
        out.print(f"[dim]Log written to {log_path}[/]")
    return 0


def best_main(
    argv: Sequence[str] | None = None,
    *,
    console: Optional[Console] = None,
) -> int:
    parser = _base_parser("ecoquiz best", "Show the best recorded score.")
    args = parser.parse_args(list(argv) if argv is not None else None)
    try:
        layout, cfg = _load(args)
    except (config_mod.QuizConfigError, workspace_mod.WorkspaceError) as exc:
        _print_error(str(exc))
        return 2
    try:
        best = build_score_store(cfg, layout).query_best()
    except ScoreStoreError as exc:
        _print_error(str(exc))
        return 1
    render_best(console or Console(), best)
    return 0


def scores_main(
    argv: Sequence[str] | None = None,
    *,
    console: Optional[Console] = None,
) -> int:
    parser = _base_parser(
        "ecoquiz scores", "List recorded scores, best first."
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=0,
        help="Show at most this many records (0 shows all).",
    )
    args = parser.parse_args(list(argv) if argv is not None else None)
    try:
        layout, cfg = _load(args)
    except (config_mod.QuizConfigError, workspace_mod.WorkspaceError) as exc:
        _print_error(str(exc))
        return 2
    try:
        records = build_score_store(cfg, layout).records()
    except ScoreStoreError as exc:
        _print_error(str(exc))
        return 1
    if args.limit > 0:
        records = records[: args.limit]
    render_scores(console or Console(), records)
    return 0


def clear_scores_main(argv: Sequence[str] | None = None) -> int:
    parser = _base_parser("ecoquiz clear-scores", "Delete all stored scores.")
    parser.add_argument(
        "--yes",
        action="store_true",
        help="Confirm that every stored score should be removed.",
    )
    args = parser.parse_args(list(argv) if argv is not None else None)
    if not args.yes:
        _print_error("Refusing to clear scores without --yes.")
        return 2
    try:
        layout, cfg = _load(args)
    except (config_mod.QuizConfigError, workspace_mod.WorkspaceError) as exc:
        _print_error(str(exc))
        return 2
    try:
        build_score_store(cfg, layout).clear()
    except ScoreStoreError as exc:
        _print_error(str(exc))
        return 1
    sys.stdout.write("Scores cleared.\n")
    return 0
