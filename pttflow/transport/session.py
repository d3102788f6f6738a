from __future__ import annotations

import asyncio
import json
import logging
import random
from collections.abc import Callable
from enum import Enum
from typing import Any

from websockets.exceptions import WebSocketException

from ..errors import ErrorCategory, PTTServiceError
from ..metrics import (
    events_received_total,
    pongs_total,
    reconnections_total,
    reengagements_total,
    rx_sessions_active,
)
from .events import INTENTIONAL_CLOSE, EventHandler
from .sdk import AuthResult, EventStream, PTTClient, authenticate, resolve_groups


class ConnectionLost(Exception):
    """Internal signal indicating the event stream dropped."""

    def __init__(self, code: int | None = None) -> None:
        super().__init__(f"event stream closed with code {code}")
        self.code = code


# Failures that mean "try again later" rather than "there is a bug".
NETWORK_ERRORS: tuple[type[BaseException], ...] = (
    ConnectionLost,
    OSError,
    ConnectionError,
    WebSocketException,
    PTTServiceError,
)


class SessionState(str, Enum):
    DISCONNECTED = "disconnected"
    AUTHENTICATING = "authenticating"
    JOINING = "joining"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ENGAGED = "engaged"
    REENGAGING = "reengaging"
    RECONNECTING = "reconnecting"
    CLOSED = "closed"


StateCallback = Callable[[SessionState], None]


class RXSession:
    """Receive side of the PTT service.

    Logs in, engages the configured groups, opens the event stream and hands
    every event except pings to ``on_event``. Pings are answered here, and a
    failed pong re-engages the groups. Dropped connections are re-established
    from a fresh login with exponential backoff.
    """

    def __init__(
        self,
        client: PTTClient,
        username: str,
        password: str,
        group_ids: str | list[str] | None,
        on_event: EventHandler,
        *,
        on_state: StateCallback | None = None,
        backoff_base: float = 0.5,
        backoff_max: float = 30.0,
        reconnect: bool = True,
        name: str = "rx",
    ):
        self.client = client
        self.username = username
        self.password = password
        self.group_ids = group_ids
        self.on_event = on_event
        self.on_state = on_state
        self.backoff_base = backoff_base
        self.backoff_max = backoff_max
        self.reconnect = reconnect
        self.name = name
        self.log = logging.getLogger(__name__)

        self.state = SessionState.DISCONNECTED
        self.auth: AuthResult | None = None
        self.groups: list[str] = []
        self._stream: EventStream | None = None
        self._stop = asyncio.Event()
        # Events delivered by the current connection.
        self._received = 0

    @property
    def user_id(self) -> str | None:
        return self.auth.user_id if self.auth else None

    def _set_state(self, state: SessionState) -> None:
        if state is self.state:
            return
        self.state = state
        self.log.debug(
            "session_state",
            extra={"event_type": "session_state", "node_id": self.name, "state": state.value},
        )
        if self.on_state is not None:
            self.on_state(state)

    async def run(self) -> None:
        """Connect and keep the event stream open until :meth:`close`.

        Only network and service failures trigger reconnect. Any other
        exception (e.g. a bug in an event handler) propagates to the caller.
        """

        backoff = self.backoff_base
        connected_once = False
        rx_sessions_active.inc()
        try:
            while not self._stop.is_set():
                try:
                    stream = await self._open()
                    connected_once = True
                    await self._recv_loop(stream)
                    code = getattr(stream, "close_code", None)
                    if self._stop.is_set() or code == INTENTIONAL_CLOSE:
                        break
                    raise ConnectionLost(code)
                except asyncio.CancelledError:
                    # Never swallow cancellation; propagate immediately.
                    raise
                except NETWORK_ERRORS as exc:
                    category = ErrorCategory.NETWORK
                    if isinstance(exc, PTTServiceError):
                        authenticating = self.state is SessionState.AUTHENTICATING
                        category = ErrorCategory.AUTH if authenticating else ErrorCategory.API
                    self.log.warning(
                        "connection_error",
                        extra={
                            "event_type": "connection_error",
                            "node_id": self.name,
                            "error_category": category.value,
                            "error": repr(exc),
                        },
                    )
                    self._stream = None
                    if self._stop.is_set() or not self.reconnect:
                        break
                    if connected_once:
                        reconnections_total.inc()
                    # A connection that dropped before delivering anything
                    # keeps backing off.
                    if self._received:
                        backoff = self.backoff_base
                    self._set_state(SessionState.RECONNECTING)
                    await self._sleep(backoff + random.uniform(0, backoff))
                    backoff = min(backoff * 2, self.backoff_max)
        finally:
            self._stream = None
            rx_sessions_active.dec()
            self._set_state(SessionState.CLOSED)

    async def _open(self) -> EventStream:
        self._received = 0
        self._set_state(SessionState.AUTHENTICATING)
        self.auth = await authenticate(self.client, self.username, self.password)
        self._set_state(SessionState.JOINING)
        self.groups = await resolve_groups(self.client, self.auth.token, self.group_ids)
        await self.client.engage(self.auth.token, self.groups)
        self._set_state(SessionState.CONNECTING)
        stream = await self.client.connect_to_websocket(self.auth.token)
        self._stream = stream
        self._set_state(SessionState.CONNECTED)
        self.log.info(
            "rx_connected",
            extra={
                "event_type": "rx_connected",
                "node_id": self.name,
                "groups": self.groups,
                "user_id": self.auth.user_id,
            },
        )
        if self._stop.is_set():
            # close() raced the connect; hang up straight away.
            await self._close_stream(stream)
        return stream

    async def _recv_loop(self, stream: EventStream) -> None:
        async for raw in stream:
            try:
                event = json.loads(raw)
            except (json.JSONDecodeError, UnicodeDecodeError):
                self.log.debug(
                    "invalid_json",
                    extra={
                        "event_type": "invalid_json",
                        "node_id": self.name,
                        "raw": raw,
                        "error_category": ErrorCategory.PROTOCOL.value,
                    },
                )
                continue
            if not isinstance(event, dict):
                continue
            events_received_total.inc()
            self._received += 1
            event_type = event.get("event_type", "unknown")
            self.log.info(
                event_type,
                extra={
                    "event_type": event_type,
                    "node_id": self.name,
                    "event_id": event.get("eventId"),
                    "sender": event.get("sender"),
                },
            )
            if event_type == "ping":
                await self._handle_ping(self.auth.token)
                continue
            await self.on_event(event)
            self._set_state(SessionState.CONNECTED)

    async def _handle_ping(self, token: str) -> None:
        try:
            await self.client.pong(token)
            pongs_total.inc()
            self._set_state(SessionState.ENGAGED)
            return
        except PTTServiceError:
            self.log.warning(
                "pong_failed",
                extra={
                    "event_type": "pong_failed",
                    "node_id": self.name,
                    "error_category": ErrorCategory.API.value,
                },
            )
        self._set_state(SessionState.REENGAGING)
        try:
            await self.client.engage(token, self.groups)
        except PTTServiceError:
            self.log.error(
                "unable_to_reengage",
                extra={
                    "event_type": "unable_to_reengage",
                    "node_id": self.name,
                    "error_category": ErrorCategory.API.value,
                },
            )
            return
        reengagements_total.inc()
        self._set_state(SessionState.ENGAGED)

    async def _sleep(self, delay: float) -> None:
        try:
            await asyncio.wait_for(self._stop.wait(), timeout=delay)
        except asyncio.TimeoutError:
            pass

    async def _close_stream(self, stream: Any) -> None:
        try:
            await stream.close(INTENTIONAL_CLOSE)
        except Exception:
            self.log.exception(
                "stream_close_failed",
                extra={
                    "event_type": "stream_close_failed",
                    "node_id": self.name,
                    "error_category": ErrorCategory.NETWORK.value,
                },
            )

    async def close(self) -> None:
        self._stop.set()
        if self._stream is not None:
            await self._close_stream(self._stream)
