"""Turn free-form generated text into a :class:`Question`.

The provider is an uncontrolled text generator, so the parser is permissive:
only text with no usable lines, or with no question before the first option,
is rejected. Options and the answer letter may come back partially filled and
the caller decides whether such a question is usable.

Expected shape (single line or one element per line)::

    Pregunta: ¿Qué significa la R de reciclar? A) ... B) ... C) ... D) ...
    Respuesta: B
"""

from __future__ import annotations

import re
from enum import Enum

from .models import Question

__all__ = [
    "ParseFailureReason",
    "QuestionParseError",
    "parse_question",
    "try_parse_question",
]

_LABEL_RE = re.compile(r"^pregunta\b\s*:?\s*", re.IGNORECASE)
_FIRST_OPTION_MARKER = "A)"
_OPTION_RE = re.compile(r"(?<![A-Za-z0-9])([A-D])\)\s*")
_ANSWER_RE = re.compile(
    r"\brespuesta(?:\s+correcta)?[\s:=\-]*\(?([a-d])\b",
    re.IGNORECASE,
)


class ParseFailureReason(Enum):
    EMPTY_INPUT = "empty_input"
    EMPTY_QUESTION = "empty_question"


class QuestionParseError(ValueError):
    """Raised when generated text does not yield a question."""

    def __init__(self, reason: ParseFailureReason, message: str) -> None:
        super().__init__(message)
        self.reason = reason


def parse_question(raw_text: str | None) -> Question:
    """Parse ``raw_text`` into a :class:`Question`.

    Raises :class:`QuestionParseError` with ``EMPTY_INPUT`` when no non-blank
    line survives trimming, and with ``EMPTY_QUESTION`` when the first line
    holds nothing but options.
    """

    lines = _split_lines(raw_text or "")
    if not lines:
        raise QuestionParseError(
            ParseFailureReason.EMPTY_INPUT,
            "Generated text contained no usable lines.",
        )

    text = _question_text(lines[0])
    if not text:
        raise QuestionParseError(
            ParseFailureReason.EMPTY_QUESTION,
            "Generated text has no question before its options.",
        )

    options: dict[str, str] = {}
    for line in lines:
        # Later duplicates win.
        options.update(_line_options(line))

    return Question(
        text=text,
        options=options,
        correct_letter=_answer_letter(raw_text or ""),
    )


def try_parse_question(raw_text: str | None) -> Question | None:
    try:
        return parse_question(raw_text)
    except QuestionParseError:
        return None


def _split_lines(text: str) -> list[str]:
    return [line.strip() for line in text.splitlines() if line.strip()]


def _question_text(first_line: str) -> str:
    candidate = _LABEL_RE.sub("", first_line, count=1)
    if _FIRST_OPTION_MARKER in candidate:
        candidate = candidate.split(_FIRST_OPTION_MARKER, 1)[0]
    return candidate.strip()


def _line_options(line: str) -> list[tuple[str, str]]:
    matches = list(_OPTION_RE.finditer(line))
    found: list[tuple[str, str]] = []
    for position, match in enumerate(matches):
        end = (
            matches[position + 1].start()
            if position + 1 < len(matches)
            else len(line)
        )
        body = line[match.end():end]
        marker = _ANSWER_RE.search(body)
        if marker:
            body = body[: marker.start()]
        found.append((match.group(1), body.strip()))
    return found


def _answer_letter(raw_text: str) -> str | None:
    match = _ANSWER_RE.search(raw_text)
    if not match:
        return None
    return match.group(1).upper()
