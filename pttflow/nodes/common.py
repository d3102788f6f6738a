from __future__ import annotations

from websockets.exceptions import WebSocketException

from ..errors import ErrorCategory, PTTServiceError
from ..flow.runtime import NodeStatus

IDLE = NodeStatus("yellow", "dot", "Idle")
ERROR = NodeStatus("red", "dot", "Error")
DISCONNECTED = NodeStatus("red", "dot", "Disconnected")
CONNECTED_IDLE = NodeStatus("yellow", "dot", "Connected & Idle")
ENGAGED = NodeStatus("green", "dot", "Engaged")
REENGAGING = NodeStatus("yellow", "dot", "Re-engaging")
RECONNECTING = NodeStatus("yellow", "dot", "Reconnecting")
TRANSMITTING = NodeStatus("green", "dot", "Transmitting")
UPDATED_USERSTATUS = NodeStatus("green", "dot", "Updated userstatus")
LOOKUP = NodeStatus("blue", "dot", "Lookup")

# SDK failures a node reports and survives. Anything else is a bug.
SERVICE_ERRORS: tuple[type[BaseException], ...] = (PTTServiceError, OSError, WebSocketException)


def error_category(exc: BaseException) -> ErrorCategory:
    if isinstance(exc, PTTServiceError):
        return ErrorCategory.API
    return ErrorCategory.NETWORK
