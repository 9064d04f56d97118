"""Payload builders for the generic 'message' channel and command acknowledgements."""

import enum
from typing import Any, Dict, Optional, Union
from datetime import datetime, timezone

SERVER_SENDER = "localBackend"


class MessageType(enum.Enum):
    """Kinds of notices sent on the 'message' channel."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


def create_socket_message(message_type: MessageType,
                          value: Union[str, Dict[str, Any]],
                          sender: str = SERVER_SENDER,
                          timestamp: bool = True,
                          target_sid: Optional[str] = None) -> Dict[str, Any]:
    """Build a ``{"messageType", "value", "from"}`` notice.

    A UTC ISO 8601 ``timestamp`` is added unless disabled, and ``target_sid``
    is included when the notice is meant for one client.
    """
    payload: Dict[str, Any] = {"messageType": message_type.value, "value": value, "from": sender}
    if timestamp:
        payload["timestamp"] = datetime.now(timezone.utc).isoformat()
    if target_sid:
        payload["target_sid"] = target_sid
    return payload


def create_welcome_message(sid: str) -> Dict[str, Any]:
    return create_socket_message(MessageType.INFO, f"Connected to snapsolve as {sid}", target_sid=sid)


def create_command_result(success: bool = True, error: Optional[str] = None, **fields: Any) -> Dict[str, Any]:
    """Acknowledgement returned by a command handler: ``success``, optional ``error``, extra fields."""
    result: Dict[str, Any] = {"success": success}
    if error is not None:
        result["error"] = error
    result.update(fields)
    return result
