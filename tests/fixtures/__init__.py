"""Shared testing fixtures and fakes for the ecoquiz test suite."""

from .openai import FakeOpenAIClient, completion  # noqa: F401
from .provider import (  # noqa: F401
    FakeClock,
    ScriptedProvider,
    SleepRecorder,
    question_text,
)
from .workspace import QuizWorkspace  # noqa: F401

__all__ = [
    "FakeClock",
    "FakeOpenAIClient",
    "QuizWorkspace",
    "ScriptedProvider",
    "SleepRecorder",
    "completion",
    "question_text",
]
