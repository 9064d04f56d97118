"""Tests for cancellation, supersession and reset."""
import asyncio
import os
import threading
import pytest

from snapsolve.core.errors import TransportError
from snapsolve.core.models import PipelineStage, RequestKind, ViewState
from snapsolve.utils.event_utils import EventType

pytestmark = pytest.mark.asyncio


async def test_cancel_mid_solve(orchestrator, store, gateway, notifier, state):
    store.capture(ViewState.QUEUE)
    gateway.block = asyncio.Event()

    task = asyncio.ensure_future(orchestrator.run_solve())
    await asyncio.wait_for(gateway.started.wait(), timeout=1.0)
    assert orchestrator.stage(RequestKind.SOLVE) == PipelineStage.EXTRACTING_PROBLEM

    assert await orchestrator.cancel_all() is True
    await asyncio.wait_for(task, timeout=1.0)

    assert notifier.names == [EventType.SOLVE_STARTED, EventType.NO_SCREENSHOTS]
    assert state.credits == 3
    assert orchestrator.problem_info is None
    assert orchestrator.view == ViewState.QUEUE
    assert orchestrator.stage(RequestKind.SOLVE) == PipelineStage.IDLE
    assert len(gateway.calls) == 1


async def test_cancel_when_idle(orchestrator, notifier):
    assert await orchestrator.cancel_all() is False
    assert notifier.events == []


async def test_cancel_clears_problem(orchestrator, store, gateway, two_sum_response):
    store.capture(ViewState.QUEUE)
    gateway.responses = [two_sum_response, "solution"]
    await orchestrator.run_solve()

    await orchestrator.cancel_all()

    assert orchestrator.problem_info is None
    assert not orchestrator.has_debugged


async def test_back_to_back_solve_supersedes(orchestrator, store, gateway, notifier, state, two_sum_response):
    store.capture(ViewState.QUEUE)
    gateway.block = asyncio.Event()
    gateway.responses = [two_sum_response, "second solution"]

    first = asyncio.ensure_future(orchestrator.run_solve())
    await asyncio.wait_for(gateway.started.wait(), timeout=1.0)

    second = asyncio.ensure_future(orchestrator.run_solve())
    await asyncio.wait_for(first, timeout=1.0)
    gateway.block.set()
    await asyncio.wait_for(second, timeout=1.0)

    assert gateway.max_in_flight == 1
    assert state.credits == 2
    assert notifier.names.count(EventType.SOLUTION_SUCCESS) == 1
    assert notifier.payload(EventType.SOLUTION_SUCCESS).solution == "second solution"
    assert notifier.names.count(EventType.NO_SCREENSHOTS) == 1


async def test_reset_clears_everything(orchestrator, store, gateway, notifier, two_sum_response):
    primary = store.capture(ViewState.QUEUE)
    gateway.responses = [two_sum_response, "solution"]
    await orchestrator.run_solve()
    extra = store.capture(orchestrator.view)
    notifier.events.clear()

    await orchestrator.reset()

    assert notifier.names == [EventType.VIEW_RESET]
    assert orchestrator.view == ViewState.QUEUE
    assert orchestrator.problem_info is None
    assert store.list_primary() == []
    assert store.list_auxiliary() == []
    assert not os.path.exists(primary.path)
    assert not os.path.exists(extra.path)


async def test_reset_mid_solve_emits_once(orchestrator, store, gateway, notifier, state):
    store.capture(ViewState.QUEUE)
    gateway.block = asyncio.Event()

    task = asyncio.ensure_future(orchestrator.run_solve())
    await asyncio.wait_for(gateway.started.wait(), timeout=1.0)
    await orchestrator.reset()
    await asyncio.wait_for(task, timeout=1.0)

    assert notifier.names == [EventType.SOLVE_STARTED, EventType.VIEW_RESET]
    assert state.credits == 3
    assert orchestrator.problem_info is None
    assert orchestrator.view == ViewState.QUEUE


async def test_cancel_mid_debug(orchestrator, store, gateway, notifier, state, two_sum_response):
    store.capture(ViewState.QUEUE)
    gateway.responses = [two_sum_response, "solution"]
    await orchestrator.run_solve()
    store.capture(orchestrator.view)
    notifier.events.clear()
    gateway.started.clear()
    gateway.block = asyncio.Event()

    task = asyncio.ensure_future(orchestrator.run_debug())
    await asyncio.wait_for(gateway.started.wait(), timeout=1.0)
    await orchestrator.cancel_all()
    await asyncio.wait_for(task, timeout=1.0)

    assert notifier.names == [EventType.DEBUG_STARTED, EventType.NO_SCREENSHOTS]
    assert state.credits == 2
    assert not orchestrator.has_debugged


async def test_cancel_after_problem_extracted_skips_solve_call(orchestrator, store, gateway, notifier, state,
                                                               two_sum_response):
    store.capture(ViewState.QUEUE)
    gateway.responses = [two_sum_response, "solution"]
    notifier.on(EventType.PROBLEM_EXTRACTED, orchestrator.cancel_all)

    await orchestrator.run_solve()

    assert notifier.names == [EventType.SOLVE_STARTED, EventType.PROBLEM_EXTRACTED, EventType.NO_SCREENSHOTS]
    assert len(gateway.calls) == 1
    assert orchestrator.problem_info is None
    assert orchestrator.view == ViewState.QUEUE
    assert state.credits == 3


async def test_cancel_while_start_is_announced(orchestrator, store, gateway, notifier, state):
    store.capture(ViewState.QUEUE)
    notifier.on(EventType.SOLVE_STARTED, orchestrator.cancel_all)

    await orchestrator.run_solve()

    assert notifier.names == [EventType.SOLVE_STARTED, EventType.NO_SCREENSHOTS]
    assert gateway.calls == []
    assert state.credits == 3


async def test_reset_while_solution_is_announced(orchestrator, store, gateway, notifier, state, two_sum_response):
    store.capture(ViewState.QUEUE)
    gateway.responses = [two_sum_response, "solution"]
    notifier.on(EventType.SOLUTION_SUCCESS, orchestrator.reset)

    await orchestrator.run_solve()

    assert notifier.names == [
        EventType.SOLVE_STARTED,
        EventType.PROBLEM_EXTRACTED,
        EventType.SOLUTION_SUCCESS,
        EventType.VIEW_RESET,
    ]
    assert orchestrator.view == ViewState.QUEUE
    assert orchestrator.problem_info is None
    assert state.credits == 3
    assert orchestrator.stage(RequestKind.SOLVE) == PipelineStage.IDLE


async def test_reset_while_debug_result_is_announced(orchestrator, store, gateway, notifier, state,
                                                     two_sum_response):
    store.capture(ViewState.QUEUE)
    gateway.responses = [two_sum_response, "solution", "TypeError on line 2", "fixed"]
    await orchestrator.run_solve()
    store.capture(orchestrator.view)
    notifier.events.clear()
    notifier.on(EventType.DEBUG_SUCCESS, orchestrator.reset)

    await orchestrator.run_debug()

    assert notifier.names == [EventType.DEBUG_STARTED, EventType.DEBUG_SUCCESS, EventType.VIEW_RESET]
    assert orchestrator.view == ViewState.QUEUE
    assert orchestrator.problem_info is None
    assert not orchestrator.has_debugged
    assert state.credits == 2


async def test_reset_while_images_load(orchestrator, store, gateway, notifier, state, monkeypatch):
    store.capture(ViewState.QUEUE)
    entered, release = threading.Event(), threading.Event()
    load_images = store.load_images

    def slow_load_images(refs):
        entered.set()
        release.wait(timeout=1.0)
        return load_images(refs)

    monkeypatch.setattr(store, "load_images", slow_load_images)

    task = asyncio.ensure_future(orchestrator.run_solve())
    assert await asyncio.to_thread(entered.wait, 1.0)
    await orchestrator.reset()
    release.set()
    await asyncio.wait_for(task, timeout=1.0)

    # The screenshot file is gone by the time the loader reads it.
    assert notifier.names == [EventType.SOLVE_STARTED, EventType.VIEW_RESET]
    assert gateway.calls == []
    assert state.credits == 3


class ResetThenFailGateway:
    """Gateway whose call fails after a reset has already cancelled it."""

    def __init__(self, orchestrator, error):
        self.orchestrator = orchestrator
        self.error = error

    def is_configured(self):
        return True

    async def send(self, parts, **kwargs):
        await self.orchestrator.reset()
        raise self.error


@pytest.mark.parametrize("error", [
    TransportError("Network error: connection reset"),
    RuntimeError("socket closed"),
])
async def test_failure_after_reset_is_not_an_error(orchestrator, store, notifier, state, error):
    store.capture(ViewState.QUEUE)
    orchestrator.gateway = ResetThenFailGateway(orchestrator, error)

    await orchestrator.run_solve()

    assert notifier.names == [EventType.SOLVE_STARTED, EventType.VIEW_RESET]
    assert state.credits == 3


async def test_failure_after_debug_reset_is_not_an_error(orchestrator, store, gateway, notifier, state,
                                                         two_sum_response):
    store.capture(ViewState.QUEUE)
    gateway.responses = [two_sum_response, "solution"]
    await orchestrator.run_solve()
    store.capture(orchestrator.view)
    notifier.events.clear()
    orchestrator.gateway = ResetThenFailGateway(orchestrator, TransportError("API error (502): bad gateway"))

    await orchestrator.run_debug()

    assert notifier.names == [EventType.DEBUG_STARTED, EventType.VIEW_RESET]
    assert state.credits == 2
    assert not orchestrator.has_debugged


async def test_failure_after_supersede_reports_no_screenshots(orchestrator, store, notifier, state):
    store.capture(ViewState.QUEUE)

    class CancelThenFailGateway:
        def is_configured(self):
            return True

        async def send(self, parts, *, token=None, **kwargs):
            token.cancel()
            raise TransportError("Network error: aborted")

    orchestrator.gateway = CancelThenFailGateway()

    await orchestrator.run_solve()

    assert notifier.names == [EventType.SOLVE_STARTED, EventType.NO_SCREENSHOTS]
    assert state.credits == 3
