"""Socket.IO notification channel used by the orchestrator."""
import dataclasses
import enum
import logging
from typing import Any, Optional

import socketio

from ..utils.event_utils import EventType

logger = logging.getLogger(__name__)


def to_wire(payload: Any) -> Any:
    """Convert dataclasses and enums into JSON-friendly values."""
    if hasattr(payload, "to_dict"):
        return payload.to_dict()
    if dataclasses.is_dataclass(payload) and not isinstance(payload, type):
        return dataclasses.asdict(payload)
    if isinstance(payload, enum.Enum):
        return payload.value
    return payload


class SocketIONotifier:
    """Emits pipeline events to every client in the configured room."""

    def __init__(self, sio: socketio.AsyncServer, room: Optional[str] = None):
        self.sio = sio
        self.room = room

    async def emit(self, event: EventType, payload: Any = None) -> None:
        logger.info(f"Emitting {event.value} event")
        if payload is None:
            await self.sio.emit(event.value, room=self.room)
        else:
            await self.sio.emit(event.value, to_wire(payload), room=self.room)
