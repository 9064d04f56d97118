"""Test configuration and fixtures for snapsolve tests."""
import asyncio
import pytest
import pytest_asyncio
from PIL import Image

from snapsolve.core.models import ViewState
from snapsolve.core.orchestrator import ProcessingOrchestrator
from snapsolve.core.screenshot_store import ScreenshotStore
from snapsolve.core.state import AppState, ProcessingSettings

TWO_SUM_RESPONSE = """Here is the extracted problem:
```json
{
  "title": "Two Sum",
  "description": "Return indices of the two numbers that add up to target.",
  "input_format": "nums: List[int], target: int",
  "output_format": "List[int]",
  "constraints": ["2 <= nums.length <= 10^4", "Only one valid answer exists."],
  "examples": [{"input": "nums = [2,7,11,15], target = 9", "output": "[0,1]"}],
  "notes": ""
}
```"""


def fake_capture(filepath):
    """Stand-in screen grabber that writes a small solid image."""
    Image.new("RGB", (64, 48), "white").save(filepath)


class CapturingStore(ScreenshotStore):
    """Screenshot store with a synchronous capture shortcut for arranging tests."""

    def capture(self, view=ViewState.QUEUE):
        queue = self.queue_for(view)
        return self.add(self.take_screenshot(queue), queue)


class RecordingNotifier:
    """Collects emitted events in order.

    A coroutine function registered with ``on`` runs once, inside the emit of
    that event, the way a UI command can land while a socket write is pending.
    """

    def __init__(self):
        self.events = []
        self.hooks = {}

    def on(self, event, hook):
        self.hooks[event] = hook

    async def emit(self, event, payload=None):
        self.events.append((event, payload))
        await asyncio.sleep(0)
        hook = self.hooks.pop(event, None)
        if hook is not None:
            await hook()

    @property
    def names(self):
        return [event for event, _ in self.events]

    def payload(self, event):
        for name, payload in self.events:
            if name == event:
                return payload
        raise KeyError(event)


class FakeGateway:
    """Scripted gateway. Each send pops the next response; exceptions are raised.

    When ``block`` is set to an ``asyncio.Event``, calls wait for it (or for
    cancellation) before answering.
    """

    def __init__(self, responses=None):
        self.responses = list(responses or [])
        self.calls = []
        self.block = None
        self.started = asyncio.Event()
        self.in_flight = 0
        self.max_in_flight = 0

    def is_configured(self):
        return True

    async def send(self, parts, *, max_tokens=None, temperature=None, system_prompt="", token=None):
        self.calls.append({
            "parts": list(parts),
            "max_tokens": max_tokens,
            "temperature": temperature,
            "system_prompt": system_prompt,
        })
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        self.started.set()
        try:
            if self.block is not None:
                waiters = [asyncio.ensure_future(self.block.wait())]
                if token is not None:
                    waiters.append(asyncio.ensure_future(token.wait()))
                _, pending = await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
                for waiter in pending:
                    waiter.cancel()
            if token is not None:
                token.raise_if_cancelled()
            response = self.responses.pop(0)
            if isinstance(response, BaseException):
                raise response
            return response
        finally:
            self.in_flight -= 1


@pytest.fixture
def two_sum_response():
    return TWO_SUM_RESPONSE


@pytest.fixture(autouse=True)
def app_home(tmp_path, monkeypatch):
    """Keep application directories inside the test's temporary directory."""
    home = tmp_path / "home"
    monkeypatch.setenv("SNAPSOLVE_HOME", str(home))
    return home


@pytest.fixture
def store(tmp_path):
    """Provide a screenshot store writing into temporary directories."""
    return CapturingStore(
        max_queue_size=2,
        capture_backend=fake_capture,
        screenshots_dir=str(tmp_path / "screenshots"),
        extra_screenshots_dir=str(tmp_path / "extra_screenshots"),
        preview_size=32,
    )


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest_asyncio.fixture
async def state():
    """Ready app state with a few credits."""
    return AppState(credits=3, ready=True)


@pytest_asyncio.fixture
async def orchestrator(store, gateway, notifier, state):
    """Provide an orchestrator wired to the fakes."""
    return ProcessingOrchestrator(
        store=store,
        gateway=gateway,
        notifier=notifier,
        state=state,
        settings=ProcessingSettings(),
    )
