"""Processing orchestrator for snapsolve.

This module drives the two LLM pipelines over the screenshot queues:

- Solve: primary screenshots -> problem extraction -> solution
- Debug: primary + auxiliary screenshots -> error extraction -> debugged solution

It owns the view state, the current problem, and one cancellation scope per
pipeline kind. Every pipeline run ends in exactly one terminal event on the
notification channel; no pipeline failure propagates to the caller.
"""
import asyncio
import dataclasses
import logging
import time
from typing import Any, Dict, List, Optional, Protocol

from ..utils.event_utils import EventType
from . import interpreter, prompts
from .cancellation import ProcessingRequest
from .errors import (
    MissingProblemInfoError,
    MissingSolutionError,
    ProcessingError,
    RequestCancelledError,
)
from .message_system import MessageCategory, MessageLevel, MessageManager
from .models import PipelineStage, ProblemInfo, RequestKind, ScreenshotRef, ViewState
from .state import AppState, ProcessingSettings

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    """One-way event channel to the UI."""

    async def emit(self, event: EventType, payload: Any = None) -> None:
        ...


class ProcessingOrchestrator:
    """Owns view state, the current problem and in-flight requests."""

    def __init__(self,
                 store,
                 gateway,
                 notifier: Notifier,
                 state: AppState,
                 settings: Optional[ProcessingSettings] = None,
                 messages: Optional[MessageManager] = None):
        self.store = store
        self.gateway = gateway
        self.notifier = notifier
        self.state = state
        self.settings = settings or ProcessingSettings()
        self.messages = messages or MessageManager()

        self.view = ViewState.QUEUE
        self.problem_info: Optional[ProblemInfo] = None
        self.has_debugged = False
        self._requests: Dict[RequestKind, ProcessingRequest] = {}
        self._stages = {kind: PipelineStage.IDLE for kind in RequestKind}

    # --- Queries ---

    def stage(self, kind: RequestKind) -> PipelineStage:
        return self._stages[kind]

    async def get_credits(self) -> int:
        await self.state.wait_ready()
        return self.state.credits

    async def get_language(self) -> str:
        await self.state.wait_ready()
        return self.state.language or self.settings.default_language

    # --- UI commands ---

    async def set_credits(self, credits: int) -> int:
        value = self.state.set_credits(credits)
        await self.notifier.emit(EventType.CREDITS_UPDATED, value)
        self._record(f"Credits set to {value}", category=MessageCategory.CREDITS)
        return value

    def set_language(self, language: str) -> None:
        self.state.language = language
        logger.info(f"Solution language set to {self.state.language}")

    async def capture(self) -> ScreenshotRef:
        """Capture into the queue for the current view and announce it with a thumbnail.

        The view can change while the capture runs, so the queue is chosen
        again once the image is on disk.
        """
        path = await asyncio.to_thread(self.store.take_screenshot, self.store.queue_for(self.view))
        queue = self.store.queue_for(self.view)
        ref = self.store.add(path, queue)
        preview = await asyncio.to_thread(self.store.get_image_preview, ref.path)
        await self.notifier.emit(EventType.SCREENSHOT_TAKEN, {"path": ref.path, "preview": preview})
        self._record(f"Captured {queue.value} screenshot #{ref.ordinal + 1}",
                     category=MessageCategory.SCREENSHOT, buffer_name="screenshot")
        return ref

    def delete_screenshot(self, path: str) -> bool:
        deleted = self.store.delete(path)
        if deleted:
            self._record("Screenshot deleted", category=MessageCategory.SCREENSHOT, buffer_name="screenshot")
        return deleted

    async def get_screenshots(self) -> List[Dict[str, str]]:
        """Previews of the queue that belongs to the current view."""
        refs = self.store.list_queue(self.store.queue_for(self.view))
        previews = []
        for ref in refs:
            preview = await asyncio.to_thread(self.store.get_image_preview, ref.path)
            previews.append({"path": ref.path, "preview": preview})
        return previews

    async def process_screenshots(self) -> None:
        """Solve from the queue view, debug from any other view."""
        if self.view == ViewState.QUEUE:
            await self.run_solve()
        else:
            await self.run_debug()

    async def cancel_all(self) -> bool:
        """Cancel both pipelines and drop the current problem.

        Emits a single no-screenshots event when something was actually in
        flight. Returns whether anything was cancelled.
        """
        cancelled = self._cancel_requests()
        self.problem_info = None
        self.has_debugged = False
        if cancelled:
            self._record("Processing cancelled", category=MessageCategory.PROCESSING, buffer_name="processing")
            await self.notifier.emit(EventType.NO_SCREENSHOTS)
        return cancelled

    async def reset(self) -> None:
        self._cancel_requests()
        self.store.clear_all()
        self.problem_info = None
        self.has_debugged = False
        self.view = ViewState.QUEUE
        self._record("View reset")
        await self.notifier.emit(EventType.VIEW_RESET)

    def _cancel_requests(self) -> bool:
        cancelled = False
        for request in self._requests.values():
            if not request.token.cancelled:
                request.token.cancel(silent=True)
                cancelled = True
        return cancelled

    # --- Solve pipeline ---

    async def run_solve(self) -> None:
        if await self.get_credits() < 1:
            await self.notifier.emit(EventType.OUT_OF_CREDITS)
            return

        refs = self.store.list_primary()
        if not refs:
            await self.notifier.emit(EventType.NO_SCREENSHOTS)
            return

        language = await self.get_language()
        request = await self._open_request(RequestKind.SOLVE)
        try:
            await self._solve(request, refs, language)
        except Exception as e:
            await self._report_failure(request, e, EventType.SOLUTION_ERROR)
        finally:
            self._close_request(request)

    async def _solve(self, request: ProcessingRequest, refs: List[ScreenshotRef], language: str) -> None:
        token = request.token
        await self.notifier.emit(EventType.SOLVE_STARTED)
        token.raise_if_cancelled()
        self._enter_stage(RequestKind.SOLVE, PipelineStage.EXTRACTING_PROBLEM)
        images = await asyncio.to_thread(self.store.load_images, refs)
        token.raise_if_cancelled()

        raw_problem = await self.gateway.send(
            prompts.build_extraction_parts(images, language),
            max_tokens=self.settings.max_tokens,
            temperature=self.settings.temperature,
            system_prompt=prompts.EXTRACTION_SYSTEM_PROMPT,
            token=token,
        )
        token.raise_if_cancelled()
        problem = interpreter.to_problem_info(interpreter.parse_problem(raw_problem))
        self.problem_info = problem
        await self.notifier.emit(EventType.PROBLEM_EXTRACTED, problem)
        token.raise_if_cancelled()
        self._record(f"Problem extracted: {problem.title or 'untitled'}",
                     category=MessageCategory.PROCESSING, buffer_name="processing")

        self._enter_stage(RequestKind.SOLVE, PipelineStage.GENERATING_SOLUTION)
        raw_solution = await self.gateway.send(
            prompts.build_solve_parts(problem, language),
            max_tokens=self.settings.max_tokens,
            temperature=self.settings.temperature,
            system_prompt=prompts.solve_system_prompt(language),
            token=token,
        )
        token.raise_if_cancelled()
        result = interpreter.parse_solution_response(raw_solution, language)
        solved = dataclasses.replace(problem, solution=result.solution, language=result.language)

        await self.notifier.emit(EventType.SOLUTION_SUCCESS, solved)
        token.raise_if_cancelled()
        # No suspension point until the credit is taken.
        self.problem_info = solved
        self.store.clear_auxiliary()
        self.view = ViewState.SOLUTIONS
        remaining = self.state.consume_credit()
        self._record("Solution generated", level=MessageLevel.CODESOLUTION,
                     category=MessageCategory.PROCESSING, buffer_name="processing")
        await self._announce_credits(remaining)

    # --- Debug pipeline ---

    async def run_debug(self) -> None:
        try:
            self._check_debuggable()
        except ProcessingError as e:
            logger.warning(f"Debug rejected: {e}")
            await self.notifier.emit(EventType.DEBUG_ERROR, str(e))
            return

        if await self.get_credits() < 1:
            await self.notifier.emit(EventType.OUT_OF_CREDITS)
            return

        extra_refs = self.store.list_auxiliary()
        if not extra_refs:
            await self.notifier.emit(EventType.NO_SCREENSHOTS)
            return
        refs = self.store.list_primary() + extra_refs

        language = await self.get_language()
        request = await self._open_request(RequestKind.DEBUG)
        try:
            await self._debug(request, refs, language)
        except Exception as e:
            await self._report_failure(request, e, EventType.DEBUG_ERROR)
        finally:
            self._close_request(request)

    def _check_debuggable(self) -> None:
        if self.view not in (ViewState.SOLUTIONS, ViewState.DEBUG):
            raise MissingSolutionError("Generate a solution before debugging")
        if self.problem_info is None:
            raise MissingProblemInfoError()
        if not (self.problem_info.solution or "").strip():
            raise MissingSolutionError()

    async def _debug(self, request: ProcessingRequest, refs: List[ScreenshotRef], language: str) -> None:
        token = request.token
        await self.notifier.emit(EventType.DEBUG_STARTED)
        token.raise_if_cancelled()
        self._enter_stage(RequestKind.DEBUG, PipelineStage.EXTRACTING_ERROR)
        images = await asyncio.to_thread(self.store.load_images, refs)
        token.raise_if_cancelled()

        error_description = await self.gateway.send(
            prompts.build_error_extraction_parts(images, language),
            max_tokens=self.settings.error_max_tokens,
            temperature=self.settings.error_temperature,
            system_prompt=prompts.ERROR_EXTRACTION_SYSTEM_PROMPT,
            token=token,
        )
        token.raise_if_cancelled()

        # The problem may have been replaced by a solve round started meanwhile.
        problem = self.problem_info
        if problem is None:
            raise MissingProblemInfoError()
        if not (problem.solution or "").strip():
            raise MissingSolutionError()

        self._enter_stage(RequestKind.DEBUG, PipelineStage.GENERATING_DEBUG)
        raw_debug = await self.gateway.send(
            prompts.build_debug_parts(problem, problem.solution, error_description.strip(), language),
            max_tokens=self.settings.max_tokens,
            temperature=self.settings.temperature,
            system_prompt=prompts.debug_system_prompt(language),
            token=token,
        )
        token.raise_if_cancelled()
        result = interpreter.parse_debug_response(raw_debug, language)
        debugged = dataclasses.replace(problem, debug_solution=result.debug_solution, language=result.language)

        await self.notifier.emit(EventType.DEBUG_SUCCESS, debugged)
        token.raise_if_cancelled()
        self.problem_info = debugged
        self.view = ViewState.DEBUG
        self.has_debugged = True
        remaining = self.state.consume_credit()
        self._record("Debugged solution generated", level=MessageLevel.CODESOLUTION,
                     category=MessageCategory.PROCESSING, buffer_name="processing")
        await self._announce_credits(remaining)

    # --- Request lifecycle ---

    async def _open_request(self, kind: RequestKind) -> ProcessingRequest:
        """Register a new request, first cancelling and awaiting any prior one of the same kind."""
        while kind in self._requests:
            prior = self._requests[kind]
            logger.info(f"Superseding in-flight {kind.value} request at stage {self.stage(kind).value}")
            prior.token.cancel()
            await prior.finished.wait()
        request = ProcessingRequest(kind=kind)
        self._requests[kind] = request
        return request

    def _close_request(self, request: ProcessingRequest) -> None:
        logger.debug(f"{request.kind.value} request finished after {time.time() - request.issued_at:.1f}s")
        if self._requests.get(request.kind) is request:
            del self._requests[request.kind]
        self._stages[request.kind] = PipelineStage.IDLE
        request.finished.set()

    def _enter_stage(self, kind: RequestKind, stage: PipelineStage) -> None:
        logger.debug(f"{kind.value} pipeline: {self._stages[kind].value} -> {stage.value}")
        self._stages[kind] = stage

    async def _announce_credits(self, remaining: int) -> None:
        self._record(f"{remaining} credits remaining", category=MessageCategory.CREDITS)
        await self.notifier.emit(EventType.CREDITS_UPDATED, remaining)

    async def _report_failure(self, request: ProcessingRequest, error: Exception, error_event: EventType) -> None:
        """Turn a pipeline exception into its terminal event.

        Once the request's token is cancelled, any failure counts as the
        cancellation: silent cancels emit nothing, the rest emit no-screenshots.
        """
        kind = request.kind.value
        if request.token.cancelled:
            if not isinstance(error, RequestCancelledError):
                logger.info(f"{kind} pipeline failed after cancellation: {error!r}")
            logger.info(f"{kind} pipeline cancelled")
            if not request.token.silent:
                await self.notifier.emit(EventType.NO_SCREENSHOTS)
        elif isinstance(error, ProcessingError):
            logger.warning(f"{kind} pipeline failed: {error}")
            self._record(str(error), level=MessageLevel.ERROR, category=MessageCategory.PROCESSING,
                         buffer_name="processing")
            await self.notifier.emit(error_event, str(error))
        else:
            logger.error(f"Unexpected error in {kind} pipeline", exc_info=error)
            await self.notifier.emit(error_event, str(error) or "Unknown error")

    def _record(self, content: str,
                level: MessageLevel = MessageLevel.INFO,
                category: MessageCategory = MessageCategory.SYSTEM,
                buffer_name: str = "main") -> None:
        self.messages.add_message(content, level=level, category=category,
                                  source="orchestrator", buffer_name=buffer_name)
