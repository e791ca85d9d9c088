"""On-demand quiz loading for the lesson viewer.

The per-lesson state is a small immutable value; :func:`transition` maps a
state and an event to the next state without side effects. The
:class:`QuizOnDemandController` drives it with ``asyncio`` and performs the
fetch whenever a transition enters ``LOADING``.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Awaitable, Callable, Optional, Sequence, Set, Tuple, Union

from ..models import QuizQuestion
from .api import DEFAULT_TIMEOUT_SECONDS, QuizUnavailable


LOGGER = logging.getLogger(__name__)


class QuizPhase(str, Enum):
    UNFETCHED = "unfetched"
    LOADING = "loading"
    LOADED = "loaded"
    ERRORED = "errored"


@dataclass(frozen=True)
class QuizState:
    lesson_id: str
    has_quiz: bool = False
    phase: QuizPhase = QuizPhase.UNFETCHED
    questions: Tuple[QuizQuestion, ...] = ()
    error: Optional[str] = None
    request_id: int = 0

    @property
    def is_loading(self) -> bool:
        return self.phase is QuizPhase.LOADING


@dataclass(frozen=True)
class LessonSelected:
    lesson_id: str
    has_quiz: bool
    inline_questions: Optional[Tuple[QuizQuestion, ...]] = None


@dataclass(frozen=True)
class QuizStepEntered:
    request_id: int


@dataclass(frozen=True)
class QuizLoaded:
    lesson_id: str
    request_id: int
    questions: Tuple[QuizQuestion, ...]


@dataclass(frozen=True)
class QuizMissing:
    lesson_id: str
    request_id: int


@dataclass(frozen=True)
class QuizFailed:
    lesson_id: str
    request_id: int
    message: str


@dataclass(frozen=True)
class QuizReset:
    pass


QuizEvent = Union[LessonSelected, QuizStepEntered, QuizLoaded, QuizMissing, QuizFailed, QuizReset]

_RETRYABLE = {QuizPhase.UNFETCHED, QuizPhase.ERRORED}


def _is_current(state: QuizState, lesson_id: str, request_id: int) -> bool:
    return (
        state.phase is QuizPhase.LOADING
        and state.lesson_id == lesson_id
        and state.request_id == request_id
    )


def transition(state: QuizState, event: QuizEvent) -> QuizState:
    """Return the state following *event*."""

    if isinstance(event, LessonSelected):
        if event.inline_questions:
            return QuizState(
                lesson_id=event.lesson_id,
                has_quiz=True,
                phase=QuizPhase.LOADED,
                questions=tuple(event.inline_questions),
            )
        return QuizState(lesson_id=event.lesson_id, has_quiz=event.has_quiz)

    if isinstance(event, QuizStepEntered):
        if not state.has_quiz or state.phase not in _RETRYABLE:
            return state
        return replace(
            state,
            phase=QuizPhase.LOADING,
            error=None,
            request_id=event.request_id,
        )

    if isinstance(event, QuizLoaded):
        if not _is_current(state, event.lesson_id, event.request_id):
            return state
        return replace(state, phase=QuizPhase.LOADED, questions=tuple(event.questions))

    if isinstance(event, QuizMissing):
        if not _is_current(state, event.lesson_id, event.request_id):
            return state
        return replace(state, phase=QuizPhase.LOADED, questions=())

    if isinstance(event, QuizFailed):
        if not _is_current(state, event.lesson_id, event.request_id):
            return state
        return replace(state, phase=QuizPhase.ERRORED, error=event.message)

    if isinstance(event, QuizReset):
        return QuizState(lesson_id=state.lesson_id, has_quiz=state.has_quiz)

    raise TypeError(f"Unsupported quiz event: {event!r}")


QuizFetcher = Callable[[str], Awaitable[Sequence[QuizQuestion]]]


class QuizOnDemandController:
    """Load a lesson's quiz the first time the viewer reaches the quiz step."""

    def __init__(
        self,
        fetch_quiz: QuizFetcher,
        *,
        timeout: Optional[float] = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self._fetch_quiz = fetch_quiz
        self._timeout = timeout
        self._state = QuizState(lesson_id="")
        self._request_counter = 0
        self._tasks: Set[asyncio.Task[None]] = set()

    @property
    def state(self) -> QuizState:
        return self._state

    def dispatch(self, event: QuizEvent) -> QuizState:
        previous = self._state
        self._state = transition(previous, event)
        if self._state is not previous and self._state.phase is not previous.phase:
            LOGGER.debug(
                "Quiz state for %s: %s -> %s",
                self._state.lesson_id,
                previous.phase.value,
                self._state.phase.value,
            )
        return self._state

    def select_lesson(
        self,
        lesson_id: str,
        *,
        has_quiz: bool,
        inline_questions: Optional[Sequence[QuizQuestion]] = None,
    ) -> QuizState:
        """Switch to another lesson; any in-flight fetch for the old one is ignored."""

        inline = tuple(inline_questions) if inline_questions else None
        return self.dispatch(LessonSelected(lesson_id, has_quiz, inline))

    def reset(self) -> QuizState:
        return self.dispatch(QuizReset())

    def enter_quiz_step(self) -> Optional[asyncio.Task[None]]:
        """Start a fetch when the current state allows one.

        Returns the scheduled task, or ``None`` when no request was issued.
        Must be called from within a running event loop.
        """

        self._request_counter += 1
        request_id = self._request_counter
        state = self.dispatch(QuizStepEntered(request_id))
        if not (state.is_loading and state.request_id == request_id):
            return None

        task = asyncio.get_running_loop().create_task(self._fetch(state.lesson_id, request_id))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _fetch(self, lesson_id: str, request_id: int) -> None:
        event: QuizEvent
        try:
            if self._timeout is None:
                questions = await self._fetch_quiz(lesson_id)
            else:
                questions = await asyncio.wait_for(self._fetch_quiz(lesson_id), self._timeout)
        except QuizUnavailable:
            event = QuizMissing(lesson_id, request_id)
        except asyncio.TimeoutError:
            LOGGER.warning("Timed out loading quiz for lesson %s", lesson_id)
            event = QuizFailed(lesson_id, request_id, "Timed out loading quiz questions.")
        except Exception as error:  # noqa: BLE001 - surfaced through the errored state
            LOGGER.error("Failed to load quiz for lesson %s: %s", lesson_id, error)
            event = QuizFailed(lesson_id, request_id, str(error) or "Failed to load quiz questions.")
        else:
            event = QuizLoaded(lesson_id, request_id, tuple(questions))

        before = self._state
        after = self.dispatch(event)
        if after is before:
            LOGGER.debug("Discarded stale quiz response for lesson %s", lesson_id)


__all__ = [
    "LessonSelected",
    "QuizEvent",
    "QuizFailed",
    "QuizLoaded",
    "QuizMissing",
    "QuizOnDemandController",
    "QuizPhase",
    "QuizReset",
    "QuizState",
    "QuizStepEntered",
    "transition",
]
