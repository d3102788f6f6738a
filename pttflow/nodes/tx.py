from __future__ import annotations

from ..flow.runtime import Node
from ..metrics import transmissions_total
from ..transport.sdk import authenticate, resolve_groups
from .common import IDLE, SERVICE_ERRORS, TRANSMITTING, UPDATED_USERSTATUS, error_category
from .config import PTTConfigNode, config_node_for


class PTTTransmitNode(Node):
    """Transmit PTT events and user status updates.

    ``msg.event_type == "userstatus"`` updates the caller's status; anything
    else is sent as a PTT to ``msg.groupIds`` (or the configured groups) and
    optionally to a single ``target`` user.
    """

    type_name = "ptt_tx"

    ptt_config: PTTConfigNode

    async def start(self) -> None:
        self.ptt_config = config_node_for(self)
        self.status(IDLE)

    async def on_input(self, msg: dict) -> None:
        try:
            if msg.get("event_type") == "userstatus":
                await self._update_userstatus(msg)
            else:
                await self._transmit(msg)
        except SERVICE_ERRORS as exc:
            self.error(f"transmit failed: {exc}", error_category(exc))
        self.status(IDLE)

        if msg.get("unitTest"):
            self.warn(msg["unitTest"])

    async def _update_userstatus(self, msg: dict) -> None:
        auth = await authenticate(self.client, self.ptt_config.username, self.ptt_config.password)
        result = await self.client.update_user_status(auth.token, msg)
        if result:
            self.status(UPDATED_USERSTATUS)
            self.log.info(
                "userstatus_updated", extra={"event_type": "userstatus", "node_id": self.id}
            )

    async def _transmit(self, msg: dict) -> None:
        self.status(TRANSMITTING)
        auth = await authenticate(self.client, self.ptt_config.username, self.ptt_config.password)
        target = auth.user_id if msg.get("target_self") else msg.get("target")
        group_ids = msg.get("groupIds") or self.ptt_config.group_ids
        groups = await resolve_groups(self.client, auth.token, group_ids)

        result = await self.client.lyre(auth.token, groups, msg.get("message"), msg.get("media"), target)
        transmissions_total.inc()
        self.log.info(
            "ptt_sent",
            extra={"event_type": "ptt", "node_id": self.id, "groups": groups, "target": target},
        )
        self.send(result)
