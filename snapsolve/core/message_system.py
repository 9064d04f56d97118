"""Activity message system for snapsolve.

Keeps a bounded, thread-safe history of what the pipeline did (captures,
extraction and solution progress, credit changes) so the UI can render an
activity panel next to the live Socket.IO events.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List
from enum import Enum
import time
import threading
from collections import deque


class MessageLevel(Enum):
    """Message severity levels."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CODESOLUTION = "codeSolution"


class MessageCategory(Enum):
    SCREENSHOT = "screenshot"
    PROCESSING = "processing"
    CREDITS = "credits"
    SYSTEM = "system"


_LEVEL_EMOJI = {
    MessageLevel.ERROR: "❌",
    MessageLevel.WARNING: "⚠️",
    MessageLevel.CODESOLUTION: "✨",
}

_CATEGORY_EMOJI = {
    MessageCategory.SCREENSHOT: "📸",
    MessageCategory.PROCESSING: "⏳",
    MessageCategory.CREDITS: "🎟️",
}


@dataclass
class Message:
    """One entry in the activity history."""
    content: str = ""
    level: MessageLevel = MessageLevel.INFO
    category: MessageCategory = MessageCategory.SYSTEM
    source: str = "system"
    timestamp: float = field(default_factory=time.time)

    @property
    def formatted_timestamp(self) -> str:
        return time.strftime("%H:%M:%S", time.localtime(self.timestamp))

    @property
    def emoji(self) -> str:
        if self.level in _LEVEL_EMOJI:
            return _LEVEL_EMOJI[self.level]
        if self.category == MessageCategory.SCREENSHOT and "deleted" in self.content.lower():
            return "🗑️"
        return _CATEGORY_EMOJI.get(self.category, "ℹ️")

    def as_ui_entry(self) -> Dict[str, Any]:
        return {
            "timestamp": self.formatted_timestamp,
            "emoji": self.emoji,
            "content": self.content,
            "level": self.level.value,
            "category": self.category.value,
            "source": self.source,
        }


class MessageManager:
    """Named, bounded activity buffers.

    Every message also lands in the ``main`` buffer, so ``main`` is the full
    history while ``screenshot`` and ``processing`` are filtered views.
    """

    BUFFER_NAMES = ("main", "screenshot", "processing")

    def __init__(self, max_size: int = 1000):
        self._lock = threading.RLock()
        self._buffers = {name: deque(maxlen=max_size) for name in self.BUFFER_NAMES}

    def add_message(self,
                    content: str,
                    level: MessageLevel = MessageLevel.INFO,
                    category: MessageCategory = MessageCategory.SYSTEM,
                    source: str = "system",
                    buffer_name: str = "main") -> Message:
        message = Message(content=content, level=level, category=category, source=source)
        targets = {"main", buffer_name} & set(self._buffers)
        with self._lock:
            for name in targets:
                self._buffers[name].append(message)
        return message

    def get_messages(self, buffer_name: str) -> List[Message]:
        with self._lock:
            return list(self._buffers.get(buffer_name, ()))

    def get_formatted_messages(self, buffer_name: str) -> List[Dict[str, Any]]:
        """Render a buffer as UI entries, oldest first."""
        return [message.as_ui_entry() for message in self.get_messages(buffer_name)]
