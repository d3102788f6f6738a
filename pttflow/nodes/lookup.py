from __future__ import annotations

from ..flow.runtime import Node
from ..metrics import lookups_total
from ..transport.sdk import authenticate
from .common import IDLE, LOOKUP, SERVICE_ERRORS, error_category
from .config import PTTConfigNode, config_node_for


class PTTLookupNode(Node):
    """Enrich messages with user and group profiles.

    Looks at, in order: ``payload == "whoami"``, userstatus events, PTT
    events, ``msg.group`` and ``msg.user``. Adds ``user_info``,
    ``userstatus_info`` and/or ``group_info``. Messages matching none of
    these are dropped.
    """

    type_name = "ptt_lookup"

    ptt_config: PTTConfigNode

    async def start(self) -> None:
        self.ptt_config = config_node_for(self)
        self.status(IDLE)

    async def on_input(self, msg: dict) -> None:
        try:
            auth = await authenticate(self.client, self.ptt_config.username, self.ptt_config.password)
            self.status(LOOKUP)
            found = await self._lookup(auth.token, msg)
        except SERVICE_ERRORS as exc:
            self.error(f"lookup failed: {exc}", error_category(exc))
            found = False
        finally:
            self.status(IDLE)
        if found:
            lookups_total.inc()
            self.send(msg)
        else:
            self.log.debug("lookup_skipped", extra={"event_type": "lookup_skipped", "node_id": self.id})

    async def _lookup(self, token: str, msg: dict) -> bool:
        event_type = msg.get("event_type")
        if msg.get("payload") == "whoami":
            msg["user_info"] = await self.client.whoami(token) or {}
            user_id = msg["user_info"].get("id")
            if user_id:
                await self._add_user_status(token, msg, user_id)
        elif event_type == "userstatus":
            await self._add_user(token, msg, msg["id"])
        elif event_type == "ptt":
            msg["group_info"] = await self.client.get_group(token, msg["id"])
            await self._add_user(token, msg, msg["sender"])
        elif msg.get("group"):
            msg["group_info"] = await self.client.get_group(token, msg["group"])
        elif msg.get("user"):
            await self._add_user(token, msg, msg["user"])
        else:
            return False
        return True

    async def _add_user(self, token: str, msg: dict, user_id: str) -> None:
        msg["user_info"] = await self.client.get_user(token, user_id)
        await self._add_user_status(token, msg, user_id)

    async def _add_user_status(self, token: str, msg: dict, user_id: str) -> None:
        msg["userstatus_info"] = await self.client.get_user_status(token, user_id)
