"""Quiz session state machine.

A session moves ``AWAITING_NAME -> IN_PROGRESS -> COMPLETED`` and never goes
back; :meth:`QuizSession.restart` hands out a fresh instance instead. Every
provider round trip is an awaited call guarded by an in-flight flag
(``question_loading`` / ``answer_loading``), so overlapping calls of the same
kind are rejected with :class:`InvalidTransitionError` instead of corrupting
the state. After :meth:`~QuizSession.restart` the old instance is discarded
and any response still in flight for it is dropped on arrival.

``current_index`` only ever names a loaded question. When the next question
of a bounded quiz fails to load, the session stays on the answered one with
no current question until a :meth:`~QuizSession.request_next_question` retry
succeeds.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Awaitable, Callable

from .models import (
    AnswerAttempt,
    AnswerOutcome,
    Question,
    SessionState,
    Stage,
    normalize_letter,
)
from .parser import QuestionParseError, parse_question
from .prompts import (
    DEFAULT_TOPIC,
    build_question_prompt,
    build_verification_prompt,
    is_affirmative,
)
from .provider import ProviderError, TextProvider, generate_text
from .scores import ScoreRecord, ScoreStore, ScoreStoreError

__all__ = [
    "DEFAULT_FEEDBACK_DELAY_SECONDS",
    "DEFAULT_REQUEST_TIMEOUT_SECONDS",
    "InvalidTransitionError",
    "QuizSession",
    "QuizSessionError",
]

logger = logging.getLogger(__name__)

DEFAULT_FEEDBACK_DELAY_SECONDS = 1.5
DEFAULT_REQUEST_TIMEOUT_SECONDS = 30.0

Clock = Callable[[], datetime]
Sleep = Callable[[float], Awaitable[None]]
FeedbackCallback = Callable[[AnswerAttempt], None]


class QuizSessionError(RuntimeError):
    """Base class for session failures."""


class InvalidTransitionError(QuizSessionError):
    """Raised when an operation is not legal in the current session state."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class QuizSession:
    """Drive one player through a quiz built from generated questions."""

    def __init__(
        self,
        provider: TextProvider,
        scores: ScoreStore,
        *,
        topic: str = DEFAULT_TOPIC,
        feedback_delay: float = DEFAULT_FEEDBACK_DELAY_SECONDS,
        request_timeout: float | None = DEFAULT_REQUEST_TIMEOUT_SECONDS,
        clock: Clock | None = None,
        sleep: Sleep | None = None,
        on_feedback: FeedbackCallback | None = None,
    ) -> None:
        if feedback_delay < 0:
            raise ValueError("feedback_delay must be non-negative")
        self._provider = provider
        self._scores = scores
        self._topic = topic
        self._feedback_delay = feedback_delay
        self._request_timeout = request_timeout
        self._clock = clock or _utcnow
        self._sleep = sleep or asyncio.sleep
        self._on_feedback = on_feedback

        self._state = SessionState()
        self._question_loading = False
        self._answer_loading = False
        self._pending: AnswerAttempt | None = None
        self._attempts: list[AnswerAttempt] = []
        self._last_error: Exception | None = None
        self._result: ScoreRecord | None = None
        self._discarded = False
        self._awaiting_next = False

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def stage(self) -> Stage:
        return self._state.stage

    @property
    def current_question(self) -> Question | None:
        if self._state.stage is not Stage.IN_PROGRESS or self._awaiting_next:
            return None
        return self._state.current_question

    @property
    def awaiting_next_question(self) -> bool:
        """``True`` after an answer when the next question failed to load."""

        return self._awaiting_next

    @property
    def question_loading(self) -> bool:
        return self._question_loading

    @property
    def answer_loading(self) -> bool:
        return self._answer_loading

    @property
    def pending_attempt(self) -> AnswerAttempt | None:
        return self._pending

    @property
    def attempts(self) -> tuple[AnswerAttempt, ...]:
        return tuple(self._attempts)

    @property
    def last_error(self) -> Exception | None:
        """Most recent recoverable failure (provider, parse or store)."""

        return self._last_error

    @property
    def result(self) -> ScoreRecord | None:
        return self._result

    @property
    def discarded(self) -> bool:
        return self._discarded

    async def start(
        self, name: str, *, total_questions: int | None = None
    ) -> Question | None:
        """Begin the quiz for ``name`` and load the first question.

        ``total_questions`` bounds the quiz; ``None`` leaves the length to the
        caller. Returns the first question, or ``None`` when it could not be
        loaded (see :attr:`last_error`; retry with
        :meth:`request_next_question`).
        """

        self._ensure_live()
        if self._state.stage is not Stage.AWAITING_NAME:
            raise InvalidTransitionError("Session has already started.")
        player = (name or "").strip()
        if not player:
            raise ValueError("Player name must not be empty.")
        if total_questions is not None and total_questions <= 0:
            raise ValueError("total_questions must be a positive integer.")

        self._state = SessionState(
            player_name=player,
            stage=Stage.IN_PROGRESS,
            started_at=self._clock(),
            total_questions=total_questions,
        )
        logger.info(
            "Quiz session started",
            extra={"player": player, "total_questions": total_questions},
        )
        return await self.request_next_question()

    async def request_next_question(self) -> Question | None:
        """Ask the provider for one more question and append it.

        Provider and parse failures leave the state untouched and return
        ``None``; the failure is kept in :attr:`last_error`.
        """

        self._ensure_live()
        self._require_in_progress()
        if self._question_loading:
            raise InvalidTransitionError("A question is already loading.")
        if self._pending is not None:
            raise InvalidTransitionError(
                "Cannot load a question while an answer is pending."
            )
        total = self._state.total_questions
        if total is not None and len(self._state.questions) >= total:
            raise InvalidTransitionError(
                f"The quiz already holds its {total} questions."
            )

        self._question_loading = True
        try:
            text = await generate_text(
                self._provider,
                build_question_prompt(self._topic),
                timeout=self._request_timeout,
            )
            question = parse_question(text)
        except (ProviderError, QuestionParseError) as exc:
            if self._discarded:
                return None
            self._last_error = exc
            logger.warning("Question could not be loaded: %s", exc)
            return None
        finally:
            self._question_loading = False

        if self._discarded or self._state.stage is not Stage.IN_PROGRESS:
            logger.debug("Dropping question that arrived after restart")
            return None

        state = replace(
            self._state, questions=self._state.questions + (question,)
        )
        if self._awaiting_next:
            state = replace(state, current_index=state.current_index + 1)
            self._awaiting_next = False
        self._state = state
        self._last_error = None
        logger.info(
            "Question loaded",
            extra={
                "index": len(state.questions) - 1,
                "current_index": state.current_index,
                "complete": question.is_complete,
            },
        )
        return question

    async def submit_answer(self, letter: str) -> AnswerAttempt | None:
        """Verify ``letter`` for the current question, then move on.

        The call returns once the feedback delay has elapsed and the session
        has advanced (or completed). Returns ``None`` when the session was
        restarted while the answer was being handled.
        """

        self._ensure_live()
        self._require_in_progress()
        if self._answer_loading or self._pending is not None:
            raise InvalidTransitionError(
                "An answer is already pending for this question."
            )
        question = self.current_question
        if question is None:
            raise InvalidTransitionError("No question has loaded yet.")
        key = normalize_letter(letter)
        if key is None:
            raise ValueError(
                f"Answer must be one of A, B, C, D; got {letter!r}."
            )

        index = self._state.current_index
        self._pending = AnswerAttempt(index=index, letter=key)
        self._answer_loading = True
        try:
            outcome = await self._verify(question, key)
        finally:
            self._answer_loading = False
        if self._discarded:
            logger.debug("Dropping verification that arrived after restart")
            return None

        attempt = AnswerAttempt(index=index, letter=key, outcome=outcome)
        self._pending = attempt
        self._attempts.append(attempt)
        if outcome is AnswerOutcome.CORRECT:
            self._state = replace(self._state, score=self._state.score + 1)
        logger.info(
            "Answer resolved",
            extra={
                "index": index,
                "letter": key,
                "outcome": outcome.value,
                "score": self._state.score,
            },
        )
        self._notify_feedback(attempt)

        await self._sleep(self._feedback_delay)
        if self._discarded:
            return None
        self._pending = None
        await self._advance()
        return attempt

    def finish(self) -> ScoreRecord:
        """End an in-progress quiz now and record its score."""

        self._ensure_live()
        self._require_in_progress()
        if (
            self._pending is not None
            or self._answer_loading
            or self._question_loading
        ):
            raise InvalidTransitionError(
                "Cannot finish while a request is in flight."
            )
        return self._complete()

    def restart(self) -> "QuizSession":
        """Discard this session and return a fresh one awaiting a name."""

        self._ensure_live()
        self._discarded = True
        self._pending = None
        logger.info(
            "Quiz session restarted",
            extra={"stage": self._state.stage.value},
        )
        return QuizSession(
            self._provider,
            self._scores,
            topic=self._topic,
            feedback_delay=self._feedback_delay,
            request_timeout=self._request_timeout,
            clock=self._clock,
            sleep=self._sleep,
            on_feedback=self._on_feedback,
        )

    async def _verify(self, question: Question, letter: str) -> AnswerOutcome:
        if not question.is_verifiable:
            return AnswerOutcome.UNVERIFIABLE
        try:
            response = await generate_text(
                self._provider,
                build_verification_prompt(question, letter),
                timeout=self._request_timeout,
            )
        except ProviderError as exc:
            if not self._discarded:
                self._last_error = exc
                logger.warning("Answer could not be verified: %s", exc)
            return AnswerOutcome.VERIFICATION_FAILED
        if is_affirmative(response):
            return AnswerOutcome.CORRECT
        return AnswerOutcome.INCORRECT

    async def _advance(self) -> None:
        state = self._state
        following = state.current_index + 1
        total = state.total_questions

        if total is not None:
            if following >= total:
                self._complete()
                return
            if following < len(state.questions):
                self._state = replace(state, current_index=following)
                return
            # The index moves once the next question is in.
            self._awaiting_next = True
            await self.request_next_question()
            return

        if state.current_index < len(state.questions) - 1:
            self._state = replace(state, current_index=following)
            await self.request_next_question()
            return
        self._complete()

    def _complete(self) -> ScoreRecord:
        ended = self._clock()
        state = replace(self._state, stage=Stage.COMPLETED, ended_at=ended)
        self._state = state
        elapsed = state.elapsed_seconds or 0.0
        record = ScoreRecord(
            player_name=state.player_name,
            score=state.score,
            elapsed_seconds=max(0.0, elapsed),
            completed_at=ended.isoformat(),
        )
        self._result = record
        logger.info(
            "Quiz session completed",
            extra={
                "player": record.player_name,
                "score": record.score,
                "questions": len(state.questions),
                "elapsed_seconds": record.elapsed_seconds,
            },
        )
        try:
            self._scores.record(record)
        except ScoreStoreError as exc:
            self._last_error = exc
            logger.error("Score could not be saved: %s", exc)
        return record

    def _notify_feedback(self, attempt: AnswerAttempt) -> None:
        if self._on_feedback is None:
            return
        try:
            self._on_feedback(attempt)
        except Exception:
            logger.exception("Feedback callback failed")

    def _ensure_live(self) -> None:
        if self._discarded:
            raise InvalidTransitionError(
                "Session was restarted; use the instance from restart()."
            )

    def _require_in_progress(self) -> None:
        if self._state.stage is not Stage.IN_PROGRESS:
            raise InvalidTransitionError(
                f"Operation requires an in-progress quiz (stage is "
                f"{self._state.stage.value})."
            )
