"""Rich terminal front end for :class:`~ecoquiz.quiz.session.QuizSession`.

The play loop reads one command per prompt from an input provider, forwards
it to the session and renders the resulting state. Input is read
synchronously; the session only runs while a command is being handled.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Literal, Sequence

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .models import (
    OPTION_LETTERS,
    AnswerAttempt,
    AnswerOutcome,
    Question,
    Stage,
    normalize_letter,
)
from .scores import ScoreRecord, ScoreStoreError
from .session import QuizSession

__all__ = [
    "PlayCommand",
    "feedback_printer",
    "format_elapsed",
    "parse_play_command",
    "play_quiz",
    "render_best",
    "render_feedback",
    "render_question",
    "render_result",
    "render_scores",
]

InputProvider = Callable[[], str]
CommandType = Literal["answer", "finish", "retry", "restart", "quit"]

_OUTCOME_STYLES = {
    AnswerOutcome.CORRECT: ("¡Correcto!", "bold green"),
    AnswerOutcome.INCORRECT: ("Incorrecto.", "bold red"),
    AnswerOutcome.VERIFICATION_FAILED: (
        "Could not verify the answer; no point awarded.",
        "yellow",
    ),
    AnswerOutcome.UNVERIFIABLE: (
        "This question has no known answer; no point awarded.",
        "yellow",
    ),
}


@dataclass(frozen=True)
class PlayCommand:
    """Normalized command typed at the quiz prompt."""

    type: CommandType
    letter: str | None = None


def parse_play_command(raw: str | None) -> PlayCommand | None:
    """Parse one line of player input."""

    if raw is None:
        return None
    text = raw.strip()
    if not text:
        return None
    lowered = text.lower()
    if lowered in {"f", "finish", "done"}:
        return PlayCommand("finish")
    if lowered in {"r", "retry"}:
        return PlayCommand("retry")
    if lowered in {"restart", "new"}:
        return PlayCommand("restart")
    if lowered in {"q", "quit", "exit"}:
        return PlayCommand("quit")
    if len(text) == 1:
        letter = normalize_letter(text)
        if letter is not None:
            return PlayCommand("answer", letter)
    return None


def format_elapsed(seconds: float) -> str:
    minutes, secs = divmod(max(0.0, seconds), 60)
    if minutes:
        return f"{int(minutes)}m {secs:04.1f}s"
    return f"{secs:.1f}s"


def render_best(console: Console, best: ScoreRecord | None) -> None:
    if best is None:
        console.print(Text("No best score recorded yet.", style="dim"))
        return
    console.print(
        Panel(
            Text.assemble(
                (best.player_name, "bold"),
                f"  {best.score} point(s) in ",
                (format_elapsed(best.elapsed_seconds), "cyan"),
            ),
            title="Best score",
            border_style="magenta",
            expand=False,
        )
    )


def render_question(
    console: Console,
    question: Question,
    *,
    number: int,
    total: int | None,
    score: int,
) -> None:
    header = Text.assemble(
        (f"Question {number}", "bold cyan"),
        (f" / {total}" if total else "", "dim"),
        (f"  score {score}", "dim"),
    )
    console.print()
    console.rule(header)
    console.print(Text(question.text, style="bold"))

    table = Table(show_header=False, box=box.SIMPLE, expand=True)
    table.add_column("Key", justify="center", style="cyan")
    table.add_column("Option")
    for letter in OPTION_LETTERS:
        text = question.options.get(letter)
        if text is None:
            table.add_row(letter, Text("(missing)", style="dim"))
        else:
            table.add_row(letter, text)
    console.print(table)

    hint = "Commands: A-D (answer), finish, restart, quit"
    console.print(Text(hint, style="dim"))


def render_feedback(console: Console, attempt: AnswerAttempt) -> None:
    message, style = _OUTCOME_STYLES.get(
        attempt.outcome, ("Answer pending.", "dim")
    )
    console.print(
        Text.assemble(
            (f"Answer {attempt.letter}: ", "bold"),
            (message, style),
        )
    )


def feedback_printer(console: Console) -> Callable[[AnswerAttempt], None]:
    """Return an ``on_feedback`` callback that prints to ``console``."""

    def _print(attempt: AnswerAttempt) -> None:
        render_feedback(console, attempt)

    return _print


def render_result(console: Console, record: ScoreRecord) -> None:
    console.print()
    console.rule(Text("Quiz finished", style="bold magenta"))
    overview = Table(
        show_header=False,
        box=box.MINIMAL_DOUBLE_HEAD,
        expand=False,
    )
    overview.add_column("Metric", style="bold")
    overview.add_column("Value", justify="right")
    overview.add_row("Player", record.player_name)
    overview.add_row("Score", str(record.score))
    overview.add_row("Time", format_elapsed(record.elapsed_seconds))
    console.print(overview)


def render_scores(console: Console, records: Sequence[ScoreRecord]) -> None:
    if not records:
        console.print(
            Panel(
                "No scores recorded yet.",
                title="Scores",
                border_style="yellow",
            )
        )
        return
    table = Table(title="Scores", box=box.SIMPLE, expand=False)
    table.add_column("#", justify="right")
    table.add_column("Player")
    table.add_column("Score", justify="right")
    table.add_column("Time", justify="right")
    table.add_column("Date")
    for rank, record in enumerate(records, start=1):
        table.add_row(
            str(rank),
            record.player_name,
            str(record.score),
            format_elapsed(record.elapsed_seconds),
            record.completed_at or "-",
        )
    console.print(table)


async def play_quiz(
    session: QuizSession,
    console: Console,
    input_provider: InputProvider,
    *,
    player_name: str | None = None,
    total_questions: int | None = None,
    best: ScoreRecord | None = None,
) -> QuizSession:
    """Run an interactive quiz and return the session it ended on.

    ``restart`` swaps in a fresh session, so the returned instance may
    differ from ``session``.
    """

    render_best(console, best)
    name = player_name
    while True:
        if session.stage is Stage.AWAITING_NAME:
            if not name:
                name = _ask_name(console, input_provider)
                if name is None:
                    return session
            console.print(Text("Loading question...", style="dim"))
            await session.start(name, total_questions=total_questions)

        if session.stage is Stage.COMPLETED:
            _finish_banner(console, session)
            return session

        question = session.current_question
        if question is None:
            _render_load_error(console, session)
        else:
            render_question(
                console,
                question,
                number=session.state.current_index + 1,
                total=session.state.total_questions,
                score=session.state.score,
            )

        try:
            raw = input_provider()
        except (EOFError, KeyboardInterrupt, StopIteration):
            console.print("\n[bold yellow]Session interrupted.[/]")
            return session
        command = parse_play_command(raw)
        if command is None:
            console.print("[red]Unrecognized command. Try again.[/]")
            continue

        if command.type == "quit":
            console.print("\n[bold yellow]Leaving without saving a score.[/]")
            return session
        if command.type == "restart":
            session = session.restart()
            name = None
            console.print("[bold]Starting over.[/]")
            continue
        if command.type == "finish":
            session.finish()
            continue
        if command.type == "retry":
            if question is not None:
                console.print("[red]The question is already loaded.[/]")
                continue
            console.print(Text("Loading question...", style="dim"))
            await session.request_next_question()
            continue
        if question is None:
            console.print("[red]No question to answer; type retry.[/]")
            continue
        if session.state.total_questions is None:
            if not await _load_ahead(console, session):
                continue
        await session.submit_answer(command.letter or "")


def _ask_name(console: Console, input_provider: InputProvider) -> str | None:
    while True:
        console.print("[bold]Your name:[/]")
        try:
            raw = input_provider()
        except (EOFError, KeyboardInterrupt, StopIteration):
            console.print("\n[bold yellow]Session interrupted.[/]")
            return None
        name = (raw or "").strip()
        if name:
            return name
        console.print("[red]Name must not be empty.[/]")


async def _load_ahead(console: Console, session: QuizSession) -> bool:
    """Make sure an open-ended quiz has a question after the current one.

    The session only moves on from an answer when a later question is
    already loaded, so an open-ended quiz keeps going until ``finish``.
    """

    state = session.state
    if state.current_index < len(state.questions) - 1:
        return True
    if await session.request_next_question() is not None:
        return True
    detail = str(session.last_error or "unknown error")
    console.print(
        Panel(
            f"{detail}\nYour answer was not sent. Answer again to retry, "
            "or finish to stop here.",
            title="Next question unavailable",
            border_style="red",
        )
    )
    return False


def _render_load_error(console: Console, session: QuizSession) -> None:
    detail = str(session.last_error or "unknown error")
    console.print(
        Panel(
            f"{detail}\nType retry to try again, or finish to stop here.",
            title="Question unavailable",
            border_style="red",
        )
    )


def _finish_banner(console: Console, session: QuizSession) -> None:
    record = session.result
    if record is not None:
        render_result(console, record)
    if isinstance(session.last_error, ScoreStoreError):
        console.print(f"[yellow]Score not saved: {session.last_error}[/]")
