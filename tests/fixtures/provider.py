"""Scripted collaborators for driving :class:`QuizSession` in tests."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Union

Reply = Union[str, BaseException]

BASE_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def question_text(
    text: str = "¿Qué contenedor recibe el vidrio?",
    answer: Optional[str] = "B",
) -> str:
    """Return generated text in the multi-line format the model uses."""

    lines = [
        f"Pregunta: {text}",
        "A) Azul",
        "B) Verde",
        "C) Amarillo",
        "D) Gris",
    ]
    if answer is not None:
        lines.append(f"Respuesta: {answer}")
    return "\n".join(lines)


class ScriptedProvider:
    """Text provider answering prompts with queued replies, in order.

    Queue an exception instance to make the matching call fail. Set ``gate``
    to an :class:`asyncio.Event` to hold every call until the event is set.
    """

    def __init__(self, *replies: Reply) -> None:
        self.replies: List[Reply] = list(replies)
        self.prompts: List[str] = []
        self.gate: Optional[asyncio.Event] = None

    def queue(self, *replies: Reply) -> None:
        self.replies.extend(replies)

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.gate is not None:
            await self.gate.wait()
        if not self.replies:
            raise LookupError("no scripted reply left")
        reply = self.replies.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        return reply


class SleepRecorder:
    """Replacement for ``asyncio.sleep`` that returns immediately."""

    def __init__(self) -> None:
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class FakeClock:
    """Clock returning ``BASE_TIME`` plus each scripted offset in turn.

    The last offset repeats once the script is exhausted.
    """

    def __init__(self, *offsets: float) -> None:
        self._offsets = list(offsets or (0.0,))
        self.calls = 0

    def __call__(self) -> datetime:
        index = min(self.calls, len(self._offsets) - 1)
        self.calls += 1
        return BASE_TIME + timedelta(seconds=self._offsets[index])
