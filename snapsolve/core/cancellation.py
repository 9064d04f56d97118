"""Cooperative cancellation for in-flight processing requests."""
import asyncio
import time
from dataclasses import dataclass, field

from .errors import RequestCancelledError
from .models import RequestKind


class CancellationToken:
    """Single-use cancellation signal shared by a pipeline and its gateway calls.

    A silent cancellation (from cancel-all or reset) tells the pipeline not to
    announce the interruption itself, because the caller emits its own event.
    """

    def __init__(self):
        self._event = asyncio.Event()
        self.silent = False

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, silent: bool = False) -> None:
        if self._event.is_set():
            return
        self.silent = silent
        self._event.set()

    async def wait(self) -> None:
        await self._event.wait()

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise RequestCancelledError()


@dataclass
class ProcessingRequest:
    """One in-flight Solve or Debug pipeline."""
    kind: RequestKind
    token: CancellationToken = field(default_factory=CancellationToken)
    issued_at: float = field(default_factory=time.time)
    finished: asyncio.Event = field(default_factory=asyncio.Event)
