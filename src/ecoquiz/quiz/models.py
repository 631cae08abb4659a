"""Data structures shared by the parser, the session and the score store."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, MutableMapping

__all__ = [
    "OPTION_LETTERS",
    "AnswerAttempt",
    "AnswerOutcome",
    "Question",
    "SessionState",
    "Stage",
    "normalize_letter",
]

OPTION_LETTERS: tuple[str, ...] = ("A", "B", "C", "D")


def normalize_letter(value: str | None) -> str | None:
    """Return the uppercase option letter in ``value`` or ``None``."""

    if not value:
        return None
    candidate = str(value).strip().upper()[:1]
    return candidate if candidate in OPTION_LETTERS else None


@dataclass(frozen=True)
class Question:
    """A multiple-choice question recovered from generated text.

    ``options`` may hold fewer than four letters when the source text omitted
    some, and ``correct_letter`` is ``None`` when no answer marker was found.
    """

    text: str
    options: Mapping[str, str] = field(default_factory=dict)
    correct_letter: str | None = None

    def __post_init__(self) -> None:
        ordered = {
            letter: self.options[letter]
            for letter in OPTION_LETTERS
            if letter in self.options
        }
        unknown = set(self.options) - set(ordered)
        if unknown:
            raise ValueError(
                "Option letters must be within A-D; got "
                + ", ".join(sorted(unknown))
            )
        if (
            self.correct_letter is not None
            and self.correct_letter not in OPTION_LETTERS
        ):
            raise ValueError("correct_letter must be one of A, B, C, D")
        object.__setattr__(self, "options", MappingProxyType(ordered))

    def option_text(self, letter: str | None) -> str | None:
        key = normalize_letter(letter)
        if key is None:
            return None
        return self.options.get(key)

    @property
    def is_complete(self) -> bool:
        return (
            len(self.options) == len(OPTION_LETTERS)
            and self.correct_letter is not None
        )

    @property
    def is_verifiable(self) -> bool:
        return self.correct_letter is not None

    def to_dict(self) -> MutableMapping[str, Any]:
        return {
            "question": self.text,
            "options": dict(self.options),
            "answer": self.correct_letter,
        }


class AnswerOutcome(Enum):
    """Resolution of a submitted answer."""

    PENDING = "pending"
    CORRECT = "correct"
    INCORRECT = "incorrect"
    VERIFICATION_FAILED = "verification_failed"
    UNVERIFIABLE = "unverifiable"


@dataclass(frozen=True)
class AnswerAttempt:
    """The answer submitted for the question at ``index``."""

    index: int
    letter: str
    outcome: AnswerOutcome = AnswerOutcome.PENDING

    @property
    def is_pending(self) -> bool:
        return self.outcome is AnswerOutcome.PENDING

    @property
    def verified_correct(self) -> bool | None:
        if self.is_pending:
            return None
        return self.outcome is AnswerOutcome.CORRECT


class Stage(Enum):
    """Coarse phase of a quiz session."""

    AWAITING_NAME = "awaiting_name"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


@dataclass(frozen=True)
class SessionState:
    """Snapshot of a quiz session, replaced wholesale on every change."""

    player_name: str = ""
    stage: Stage = Stage.AWAITING_NAME
    questions: tuple[Question, ...] = ()
    current_index: int = 0
    score: int = 0
    started_at: datetime | None = None
    ended_at: datetime | None = None
    total_questions: int | None = None

    @property
    def current_question(self) -> Question | None:
        if self.current_index < len(self.questions):
            return self.questions[self.current_index]
        return None

    @property
    def elapsed_seconds(self) -> float | None:
        if self.started_at is None or self.ended_at is None:
            return None
        return (self.ended_at - self.started_at).total_seconds()
