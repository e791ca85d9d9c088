from __future__ import annotations

import asyncio
from typing import Dict, List

import pytest

from conftest import apple_question
from vocab_lessons.client.api import LessonApiError, QuizUnavailable
from vocab_lessons.client.quiz import (
    LessonSelected,
    QuizFailed,
    QuizLoaded,
    QuizMissing,
    QuizOnDemandController,
    QuizPhase,
    QuizReset,
    QuizState,
    QuizStepEntered,
    transition,
)
from vocab_lessons.models import QuizQuestion


APPLE = QuizQuestion.model_validate(apple_question())
PEAR = QuizQuestion.model_validate(apple_question(vocabularyWord="pear"))


class GatedFetcher:
    """Quiz fetcher whose responses are released explicitly by the test."""

    def __init__(self) -> None:
        self.calls: List[str] = []
        self.gates: Dict[str, asyncio.Event] = {}
        self.results: Dict[str, object] = {}

    def gate(self, lesson_id: str) -> asyncio.Event:
        return self.gates.setdefault(lesson_id, asyncio.Event())

    async def __call__(self, lesson_id: str) -> List[QuizQuestion]:
        self.calls.append(lesson_id)
        await self.gate(lesson_id).wait()
        result = self.results.get(lesson_id, [])
        if isinstance(result, BaseException):
            raise result
        return list(result)


def test_selecting_a_lesson_starts_unfetched() -> None:
    state = transition(QuizState(lesson_id=""), LessonSelected("L1", True))

    assert state == QuizState(lesson_id="L1", has_quiz=True, phase=QuizPhase.UNFETCHED)


def test_entering_quiz_step_without_quiz_is_a_no_op() -> None:
    state = QuizState(lesson_id="L1", has_quiz=False)

    assert transition(state, QuizStepEntered(1)) is state


def test_entering_quiz_step_while_loading_or_loaded_is_a_no_op() -> None:
    loading = QuizState(lesson_id="L1", has_quiz=True, phase=QuizPhase.LOADING, request_id=1)
    loaded = QuizState(lesson_id="L1", has_quiz=True, phase=QuizPhase.LOADED, questions=(APPLE,))

    assert transition(loading, QuizStepEntered(2)) is loading
    assert transition(loaded, QuizStepEntered(2)) is loaded


def test_errored_state_retries_on_next_entry() -> None:
    errored = QuizState(lesson_id="L1", has_quiz=True, phase=QuizPhase.ERRORED, error="boom", request_id=1)

    state = transition(errored, QuizStepEntered(2))

    assert state.phase is QuizPhase.LOADING
    assert state.error is None
    assert state.request_id == 2


@pytest.mark.parametrize(
    "event",
    [
        QuizLoaded("L1", 1, (APPLE,)),
        QuizMissing("L1", 1),
        QuizFailed("L1", 1, "boom"),
        QuizLoaded("L2", 2, (APPLE,)),
    ],
)
def test_results_for_other_requests_are_ignored(event) -> None:
    state = QuizState(lesson_id="L2", has_quiz=True, phase=QuizPhase.LOADING, request_id=2)

    if event.lesson_id == "L2" and event.request_id == 2:
        assert transition(state, event).phase is QuizPhase.LOADED
    else:
        assert transition(state, event) is state


def test_missing_quiz_loads_an_empty_list() -> None:
    state = QuizState(lesson_id="L1", has_quiz=True, phase=QuizPhase.LOADING, request_id=3)

    result = transition(state, QuizMissing("L1", 3))

    assert result.phase is QuizPhase.LOADED
    assert result.questions == ()


def test_inline_questions_skip_the_fetch() -> None:
    state = transition(QuizState(lesson_id=""), LessonSelected("L1", False, (APPLE,)))

    assert state.phase is QuizPhase.LOADED
    assert state.questions == (APPLE,)
    assert transition(state, QuizStepEntered(1)) is state


def test_reset_returns_to_unfetched() -> None:
    loaded = QuizState(lesson_id="L1", has_quiz=True, phase=QuizPhase.LOADED, questions=(APPLE,))

    assert transition(loaded, QuizReset()) == QuizState(lesson_id="L1", has_quiz=True)


def test_controller_issues_a_single_request_per_lesson() -> None:
    fetcher = GatedFetcher()
    fetcher.results["L1"] = [APPLE]

    async def scenario():
        controller = QuizOnDemandController(fetcher)
        controller.select_lesson("L1", has_quiz=True)
        first = controller.enter_quiz_step()
        second = controller.enter_quiz_step()
        assert controller.state.is_loading
        fetcher.gate("L1").set()
        await first
        third = controller.enter_quiz_step()
        return controller, first, second, third

    controller, first, second, third = asyncio.run(scenario())

    assert first is not None
    assert second is None and third is None
    assert fetcher.calls == ["L1"]
    assert controller.state.phase is QuizPhase.LOADED
    assert controller.state.questions == (APPLE,)


def test_controller_skips_lessons_without_quiz() -> None:
    fetcher = GatedFetcher()

    async def scenario():
        controller = QuizOnDemandController(fetcher)
        controller.select_lesson("L1", has_quiz=False)
        return controller, controller.enter_quiz_step()

    controller, task = asyncio.run(scenario())

    assert task is None
    assert fetcher.calls == []
    assert controller.state.phase is QuizPhase.UNFETCHED


def test_controller_discards_responses_for_previous_lesson() -> None:
    fetcher = GatedFetcher()
    fetcher.results["A"] = [APPLE]
    fetcher.results["B"] = [PEAR]

    async def scenario():
        controller = QuizOnDemandController(fetcher)
        controller.select_lesson("A", has_quiz=True)
        task_a = controller.enter_quiz_step()
        controller.select_lesson("B", has_quiz=True)
        task_b = controller.enter_quiz_step()
        fetcher.gate("B").set()
        await task_b
        fetcher.gate("A").set()
        await task_a
        return controller

    controller = asyncio.run(scenario())

    assert fetcher.calls == ["A", "B"]
    assert controller.state.lesson_id == "B"
    assert controller.state.questions == (PEAR,)


def test_controller_discards_response_after_returning_to_same_lesson() -> None:
    fetcher = GatedFetcher()
    fetcher.results["A"] = [APPLE]

    async def scenario():
        controller = QuizOnDemandController(fetcher)
        controller.select_lesson("A", has_quiz=True)
        stale = controller.enter_quiz_step()
        controller.select_lesson("B", has_quiz=False)
        controller.select_lesson("A", has_quiz=True)
        fresh = controller.enter_quiz_step()
        assert controller.state.request_id != 1
        await asyncio.sleep(0)
        fetcher.gate("A").set()
        await asyncio.gather(stale, fresh)
        return controller

    controller = asyncio.run(scenario())

    assert fetcher.calls == ["A", "A"]
    assert controller.state.phase is QuizPhase.LOADED
    assert controller.state.questions == (APPLE,)


def test_controller_treats_missing_quiz_as_empty() -> None:
    fetcher = GatedFetcher()
    fetcher.results["L1"] = QuizUnavailable("Lesson 'L1' has no quiz", status_code=404)

    async def scenario():
        controller = QuizOnDemandController(fetcher)
        controller.select_lesson("L1", has_quiz=True)
        task = controller.enter_quiz_step()
        fetcher.gate("L1").set()
        await task
        return controller

    controller = asyncio.run(scenario())

    assert controller.state.phase is QuizPhase.LOADED
    assert controller.state.questions == ()
    assert controller.state.error is None


def test_controller_errors_then_retries() -> None:
    fetcher = GatedFetcher()
    fetcher.results["L1"] = LessonApiError("Failed to load quiz questions", status_code=500)

    async def scenario():
        controller = QuizOnDemandController(fetcher)
        controller.select_lesson("L1", has_quiz=True)
        fetcher.gate("L1").set()
        await controller.enter_quiz_step()
        errored = controller.state

        fetcher.results["L1"] = [APPLE]
        await controller.enter_quiz_step()
        return errored, controller.state

    errored, recovered = asyncio.run(scenario())

    assert errored.phase is QuizPhase.ERRORED
    assert errored.error == "Failed to load quiz questions"
    assert recovered.phase is QuizPhase.LOADED
    assert recovered.questions == (APPLE,)
    assert fetcher.calls == ["L1", "L1"]


def test_controller_times_out_slow_fetches() -> None:
    fetcher = GatedFetcher()

    async def scenario():
        controller = QuizOnDemandController(fetcher, timeout=0.01)
        controller.select_lesson("L1", has_quiz=True)
        await controller.enter_quiz_step()
        return controller

    controller = asyncio.run(scenario())

    assert controller.state.phase is QuizPhase.ERRORED
    assert controller.state.error == "Timed out loading quiz questions."


def test_controller_reset_allows_a_fresh_fetch() -> None:
    fetcher = GatedFetcher()
    fetcher.results["L1"] = [APPLE]

    async def scenario():
        controller = QuizOnDemandController(fetcher)
        controller.select_lesson("L1", has_quiz=True)
        fetcher.gate("L1").set()
        await controller.enter_quiz_step()
        controller.reset()
        assert controller.state.phase is QuizPhase.UNFETCHED
        await controller.enter_quiz_step()
        return controller

    controller = asyncio.run(scenario())

    assert fetcher.calls == ["L1", "L1"]
    assert controller.state.phase is QuizPhase.LOADED
