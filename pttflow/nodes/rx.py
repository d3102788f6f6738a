from __future__ import annotations

import asyncio

from ..errors import ErrorCategory
from ..flow.runtime import Node
from ..transport.events import Dispatcher
from ..transport.session import RXSession, SessionState
from .common import CONNECTED_IDLE, DISCONNECTED, ENGAGED, ERROR, REENGAGING, RECONNECTING
from .config import config_node_for

# Output ports
ALL, PTT, USERSTATUS, DIRECT = range(4)

_STATE_STATUS = {
    SessionState.CONNECTED: CONNECTED_IDLE,
    SessionState.ENGAGED: ENGAGED,
    SessionState.REENGAGING: REENGAGING,
    SessionState.RECONNECTING: RECONNECTING,
    SessionState.CLOSED: DISCONNECTED,
}


class PTTReceiveNode(Node):
    """Receive events from the PTT service.

    Outputs: 0 every event, 1 PTTs, 2 user status changes, 3 PTTs sent
    directly to a user. With ``ignore_self`` the account's own PTTs and
    status changes are dropped.
    """

    type_name = "ptt_rx"
    outputs = 4

    def __init__(self, runtime, config: dict):
        super().__init__(runtime, config)
        settings = runtime.settings
        self.ignore_self = bool(config.get("ignore_self", settings.ignore_self if settings else False))
        self.session: RXSession | None = None
        self._task: asyncio.Task | None = None

        self.dispatcher: Dispatcher[dict] = Dispatcher(fallback=self._on_other)
        self.dispatcher.on("ptt", self._on_ptt)
        self.dispatcher.on("userstatus", self._on_userstatus)

    async def start(self) -> None:
        ptt_config = config_node_for(self)
        settings = self.runtime.settings
        self.status(DISCONNECTED)
        self.session = RXSession(
            self.client,
            ptt_config.username,
            ptt_config.password,
            ptt_config.group_ids,
            self.dispatcher.dispatch,
            on_state=self._on_state,
            backoff_base=settings.reconnect_backoff_base if settings else 0.5,
            backoff_max=settings.reconnect_backoff_max if settings else 30.0,
            name=self.id,
        )
        self._task = asyncio.create_task(self.session.run())
        self._task.add_done_callback(self._on_session_done)

    def _is_self(self, user_id: str | None) -> bool:
        return self.ignore_self and self.session is not None and user_id == self.session.user_id

    async def _on_ptt(self, event: dict) -> None:
        if self._is_self(event.get("sender")):
            return
        # target_user_id is only set on direct messages
        direct = event if event.get("target_user_id") else None
        self.send([event, event, None, direct])

    async def _on_userstatus(self, event: dict) -> None:
        if self._is_self(event.get("id")):
            return
        self.send([event, None, event, None])

    async def _on_other(self, event: dict) -> None:
        self.send([event, None, None, None])

    def _on_state(self, state: SessionState) -> None:
        status = _STATE_STATUS.get(state)
        if status is not None:
            self.status(status)

    def _on_session_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self.log.error(
                "rx_session_failed",
                exc_info=exc,
                extra={
                    "event_type": "rx_session_failed",
                    "node_id": self.id,
                    "error_category": ErrorCategory.FLOW.value,
                },
            )
            self.status(ERROR)

    async def close(self) -> None:
        self.log.debug("rx_closing", extra={"event_type": "rx_closing", "node_id": self.id})
        if self.session is not None:
            await self.session.close()
        if self._task is not None and not self._task.done():
            try:
                await asyncio.wait_for(asyncio.shield(self._task), timeout=5)
            except asyncio.TimeoutError:
                self._task.cancel()
            except Exception:
                # Already reported by _on_session_done.
                pass
        self.status(DISCONNECTED)
