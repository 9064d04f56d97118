"""Screenshot queue management for snapsolve.

This module owns the two bounded screenshot queues: the primary queue, filled
while the UI shows the capture queue, and the auxiliary queue, filled once a
solution is on screen and used as input for debugging.

Key Features:
- Screen capture through a pluggable backend (Pillow ImageGrab by default)
- Bounded queues that evict (and delete) the oldest capture on overflow
- Contiguous ordinals for display and processing order
- Base64 image loading and thumbnail previews for the UI
"""
import base64
import io
import os
import logging
import mimetypes
import uuid
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional, Union

from PIL import Image, ImageGrab

from ..utils import get_screenshots_dir, get_extra_screenshots_dir
from .models import ImageBlock, QueueName, ScreenshotRef, ViewState

logger = logging.getLogger(__name__)

DEFAULT_MAX_QUEUE_SIZE = 2
DEFAULT_PREVIEW_SIZE = 320

CaptureBackend = Callable[[str], None]


def grab_screen(filepath: str) -> None:
    """Capture the full screen and save it to filepath."""
    screenshot = ImageGrab.grab()
    screenshot.save(filepath)


class ScreenshotStore:
    """Two independent, bounded, insertion-ordered screenshot queues.

    All mutating methods are expected to run on the event loop thread.
    ``take_screenshot``, ``load_images`` and ``get_image_preview`` only touch
    the filesystem and may be run in a worker thread.
    """

    def __init__(self,
                 max_queue_size: int = DEFAULT_MAX_QUEUE_SIZE,
                 capture_backend: Optional[CaptureBackend] = None,
                 screenshots_dir: Optional[str] = None,
                 extra_screenshots_dir: Optional[str] = None,
                 preview_size: int = DEFAULT_PREVIEW_SIZE):
        if max_queue_size < 1:
            raise ValueError("max_queue_size must be at least 1")
        self.max_queue_size = max_queue_size
        self.preview_size = preview_size
        self._capture_backend = capture_backend or grab_screen
        self._dirs = {
            QueueName.PRIMARY: screenshots_dir,
            QueueName.AUXILIARY: extra_screenshots_dir,
        }
        self._queues: Dict[QueueName, List[str]] = {
            QueueName.PRIMARY: [],
            QueueName.AUXILIARY: [],
        }

    @staticmethod
    def queue_for(view: ViewState) -> QueueName:
        """Primary while on the queue view, auxiliary otherwise."""
        return QueueName.PRIMARY if view == ViewState.QUEUE else QueueName.AUXILIARY

    def _dir_for(self, queue: QueueName) -> str:
        directory = self._dirs[queue]
        if directory is None:
            directory = get_screenshots_dir() if queue == QueueName.PRIMARY else get_extra_screenshots_dir()
            self._dirs[queue] = directory
        os.makedirs(directory, exist_ok=True)
        return directory

    def take_screenshot(self, queue: QueueName) -> str:
        """Capture a screenshot into the queue's directory and return its path."""
        timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
        filename = f"screenshot_{timestamp}_{uuid.uuid4().hex[:8]}.png"
        filepath = os.path.join(self._dir_for(queue), filename)
        self._capture_backend(filepath)
        logger.debug(f"Screenshot saved: {filename}")
        return filepath

    def add(self, path: str, queue: QueueName) -> ScreenshotRef:
        """Append a captured file, evicting the oldest entry when at capacity."""
        entries = self._queues[queue]
        while len(entries) >= self.max_queue_size:
            evicted = entries.pop(0)
            self._remove_file(evicted)
            logger.info(f"Evicted oldest {queue.value} screenshot: {os.path.basename(evicted)}")
        entries.append(path)
        return ScreenshotRef(path=path, ordinal=len(entries) - 1)

    def delete(self, ref: Union[ScreenshotRef, str]) -> bool:
        """Remove a screenshot from whichever queue holds it. Returns False if unknown."""
        path = ref.path if isinstance(ref, ScreenshotRef) else ref
        for queue, entries in self._queues.items():
            if path in entries:
                entries.remove(path)
                self._remove_file(path)
                logger.info(f"Deleted {queue.value} screenshot: {os.path.basename(path)}")
                return True
        logger.warning(f"Screenshot not found for deletion: {path}")
        return False

    def list_primary(self) -> List[ScreenshotRef]:
        return self._snapshot(QueueName.PRIMARY)

    def list_auxiliary(self) -> List[ScreenshotRef]:
        return self._snapshot(QueueName.AUXILIARY)

    def list_queue(self, queue: QueueName) -> List[ScreenshotRef]:
        return self._snapshot(queue)

    def _snapshot(self, queue: QueueName) -> List[ScreenshotRef]:
        return [ScreenshotRef(path=path, ordinal=i) for i, path in enumerate(self._queues[queue])]

    def clear_auxiliary(self) -> None:
        self._clear(QueueName.AUXILIARY)

    def clear_all(self) -> None:
        self._clear(QueueName.PRIMARY)
        self._clear(QueueName.AUXILIARY)

    def _clear(self, queue: QueueName) -> None:
        entries = self._queues[queue]
        for path in entries:
            self._remove_file(path)
        if entries:
            logger.info(f"Cleared {len(entries)} {queue.value} screenshots")
        entries.clear()

    @staticmethod
    def _remove_file(path: str) -> None:
        try:
            os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.error(f"Error deleting screenshot file {path}: {e}")

    def load_images(self, refs: Iterable[ScreenshotRef]) -> List[ImageBlock]:
        """Read screenshots as base64 image blocks, in the given order."""
        blocks = []
        for ref in refs:
            with open(ref.path, "rb") as f:
                data = base64.b64encode(f.read()).decode("ascii")
            media_type = mimetypes.guess_type(ref.path)[0] or "image/png"
            blocks.append(ImageBlock(data=data, media_type=media_type))
        return blocks

    def get_image_preview(self, path: str) -> str:
        """Return a PNG thumbnail of the screenshot as a data URL."""
        with Image.open(path) as image:
            image.thumbnail((self.preview_size, self.preview_size))
            buffer = io.BytesIO()
            image.save(buffer, format="PNG")
        encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
        return f"data:image/png;base64,{encoded}"
