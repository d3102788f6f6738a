from __future__ import annotations

import json

from .runtime import Node


class DebugNode(Node):
    """Logs every message it receives."""

    type_name = "debug"
    outputs = 0

    async def on_input(self, msg: dict) -> None:
        self.log.info(
            json.dumps(msg, default=str, sort_keys=True),
            extra={
                "event_type": "debug",
                "node_id": self.id,
                "event_id": msg.get("eventId"),
                "sender": msg.get("sender"),
            },
        )
