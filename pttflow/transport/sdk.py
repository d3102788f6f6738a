"""Interface to the PTT service client SDK.

The SDK owns authentication, the websocket transport and all media work.
Nodes only talk to it through :class:`PTTClient`, so any adapter with these
coroutines can be plugged in through ``Settings.client_factory``.
"""

from __future__ import annotations

import importlib
import logging
import re
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

from ..errors import ConfigurationError, PTTServiceError
from ..metrics import auth_latency_ms

if TYPE_CHECKING:  # pragma: no cover - type checking only
    from ..config import Settings

logger = logging.getLogger(__name__)


class EventStream(Protocol):
    """Live event connection returned by ``connect_to_websocket``.

    Iterating yields raw text frames. ``close_code`` is ``None`` while open.
    """

    close_code: int | None

    def __aiter__(self) -> AsyncIterator[str | bytes]: ...

    async def close(self, code: int = 1000, reason: str = "") -> None: ...


class PTTClient(Protocol):
    async def auth(self, username: str, password: str) -> dict: ...

    async def get_all_user_groups(self, token: str) -> list[dict]: ...

    async def engage(self, token: str, group_ids: list[str]) -> Any: ...

    async def connect_to_websocket(self, token: str) -> EventStream: ...

    async def pong(self, token: str) -> Any: ...

    async def update_user_status(self, token: str, msg: dict) -> Any: ...

    async def whoami(self, token: str) -> dict: ...

    async def get_user(self, token: str, user_id: str) -> dict: ...

    async def get_user_status(self, token: str, user_id: str) -> dict: ...

    async def get_group(self, token: str, group_id: str) -> dict: ...

    async def lyre(
        self,
        token: str,
        group_ids: list[str],
        message: str | None,
        media: str | None,
        target: str | None,
    ) -> dict: ...

    async def wav2ov(self, msg: dict) -> dict: ...

    async def ov2wav(self, msg: dict) -> dict: ...

    async def stt(self, msg: dict) -> dict: ...

    async def translate(self, msg: dict) -> dict: ...


@dataclass
class AuthResult:
    token: str
    user_id: str
    raw: dict = field(default_factory=dict, repr=False)

    @classmethod
    def from_response(cls, response: dict) -> AuthResult:
        token = response.get("token")
        user_id = response.get("id")
        if not token or not user_id:
            raise PTTServiceError("auth response is missing token or id")
        return cls(token=token, user_id=str(user_id), raw=response)


def load_client(path: str, settings: Settings) -> PTTClient:
    """Import ``"module:attribute"`` and build the client from it.

    A callable attribute is called with ``settings``; anything else is used
    as the client itself.
    """

    if not path:
        raise ConfigurationError("client_factory is not configured")
    module_name, sep, attr = path.partition(":")
    if not sep or not module_name or not attr:
        raise ConfigurationError(f"client_factory must look like 'module:attribute', got {path!r}")
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise ConfigurationError(f"cannot import {module_name!r}") from exc
    factory = getattr(module, attr, None)
    if factory is None:
        raise ConfigurationError(f"{module_name!r} has no attribute {attr!r}")
    return factory(settings) if callable(factory) else factory


# Helpers shared by the nodes ----------------------------------------------

ALL_GROUPS = "ALL"


async def authenticate(client: PTTClient, username: str, password: str) -> AuthResult:
    """Log in and return the token and the caller's user id."""

    with auth_latency_ms.time() as timer:
        response = await client.auth(username, password)
    result = AuthResult.from_response(response or {})
    logger.debug(
        "authenticated",
        extra={"event_type": "authenticated", "latency_ms": timer.last_ms},
    )
    return result


def parse_group_ids(value: str | list | tuple | None) -> list[str]:
    """Turn a comma separated group list into ids.

    Line breaks are removed, entries stripped and empty entries dropped.
    """

    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(v).strip() for v in value if str(v).strip()]
    cleaned = re.sub(r"\r\n|\n|\r", "", str(value))
    return [part.strip() for part in cleaned.split(",") if part.strip()]


async def resolve_groups(client: PTTClient, token: str, value: str | list | None) -> list[str]:
    """Return group ids, expanding ``"ALL"`` to every group the user is in."""

    if isinstance(value, str) and value.strip() == ALL_GROUPS:
        groups = await client.get_all_user_groups(token)
        return [str(group["id"]) for group in groups or []]
    return parse_group_ids(value)
