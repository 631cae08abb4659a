"""Text generation collaborators used by the quiz session."""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Protocol, Union

from ..core.ai import load_client
from .prompts import SYSTEM_PROMPT

__all__ = [
    "CallableTextProvider",
    "OpenAITextProvider",
    "ProviderError",
    "ProviderTimeoutError",
    "TextProvider",
    "generate_text",
]

logger = logging.getLogger(__name__)

GenerateFunc = Callable[[str], Union[str, Awaitable[str]]]


class ProviderError(RuntimeError):
    """Raised when the text provider fails to return a completion."""


class ProviderTimeoutError(ProviderError):
    """Raised when the text provider does not answer in time."""


class TextProvider(Protocol):
    """Anything able to complete a prompt into free-form text."""

    async def generate(self, prompt: str) -> str:
        """Return the completion for ``prompt``."""


class OpenAITextProvider:
    """Adapter for OpenAI chat completions.

    The OpenAI client is synchronous; calls run in a worker thread so the
    session's event loop keeps serving timers while a request is in flight.
    """

    def __init__(
        self,
        *,
        model: str,
        temperature: float,
        max_tokens: int,
        request_timeout: float,
        api_base: str | None = None,
        system_prompt: str = SYSTEM_PROMPT,
        client: Any | None = None,
    ) -> None:
        self._model = model
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._timeout = request_timeout
        self._system_prompt = system_prompt
        if client is not None:
            self._client = client
        else:
            self._client = load_client(api_base=api_base)

    @property
    def model(self) -> str:
        return self._model

    async def generate(self, prompt: str) -> str:
        return await asyncio.to_thread(self._complete, prompt)

    def _complete(self, prompt: str) -> str:
        response = self._client.chat.completions.create(
            model=self._model,
            messages=[
                {"role": "system", "content": self._system_prompt},
                {"role": "user", "content": prompt},
            ],
            temperature=self._temperature,
            max_tokens=self._max_tokens,
            timeout=self._timeout,
        )
        content = response.choices[0].message.content or ""
        return content.strip()


class CallableTextProvider:
    """Wrap a plain ``generate(prompt)`` function, sync or async."""

    def __init__(self, func: GenerateFunc) -> None:
        self._func = func

    async def generate(self, prompt: str) -> str:
        result = self._func(prompt)
        if inspect.isawaitable(result):
            result = await result
        return str(result or "")


async def generate_text(
    provider: TextProvider,
    prompt: str,
    *,
    timeout: float | None,
) -> str:
    """Run ``provider.generate`` with a bounded wait.

    Every failure comes back as :class:`ProviderError` so callers only need
    one ``except`` clause; timeouts use the :class:`ProviderTimeoutError`
    subclass.
    """

    try:
        return await asyncio.wait_for(provider.generate(prompt), timeout)
    except asyncio.TimeoutError as exc:
        logger.warning(
            "Text provider timed out", extra={"timeout_seconds": timeout}
        )
        raise ProviderTimeoutError(
            f"Text provider did not answer within {timeout} seconds."
        ) from exc
    except ProviderError:
        raise
    except Exception as exc:
        logger.warning("Text provider failed: %s", exc)
        raise ProviderError(f"Text provider failed: {exc}") from exc
