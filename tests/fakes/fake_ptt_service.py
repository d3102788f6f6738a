from __future__ import annotations

import asyncio
import json
from collections.abc import Iterable

from pttflow.errors import PTTServiceError
from pttflow.flow.runtime import FlowRuntime, Node


class FakeStream:
    """In-memory event stream.

    Frames are served in order. With ``hold`` the stream then stays open
    until :meth:`close`; otherwise it ends with ``end_code``.
    """

    def __init__(self, frames: Iterable[dict | str], *, hold: bool = True, end_code: int = 1006):
        self._frames = asyncio.Queue[str | None]()
        for frame in frames:
            self._frames.put_nowait(frame if isinstance(frame, str) else json.dumps(frame))
        if not hold:
            self._frames.put_nowait(None)
        self._end_code = end_code
        self.close_code: int | None = None
        self.closed_with: int | None = None

    def __aiter__(self) -> FakeStream:
        return self

    async def __anext__(self) -> str:
        if self.close_code is not None and self._frames.empty():
            raise StopAsyncIteration
        msg = await self._frames.get()
        if msg is None:
            if self.close_code is None:
                self.close_code = self._end_code
            raise StopAsyncIteration
        return msg

    async def close(self, code: int = 1000, reason: str = "") -> None:
        self.closed_with = code
        self.close_code = code
        self._frames.put_nowait(None)


class FakePTTClient:
    """Stand-in for the PTT client SDK that records every call.

    ``fail`` maps a method name to how many more calls should raise
    ``error`` (``None`` for every call).
    """

    def __init__(
        self,
        streams: Iterable[FakeStream | BaseException] = (),
        *,
        user_id: str = "me",
        token: str = "tok",
        groups: Iterable[dict] = ({"id": "g1"}, {"id": "g2"}),
        fail: dict[str, int | None] | None = None,
        error: type[Exception] = PTTServiceError,
    ):
        self.streams = list(streams)
        self.opened: list[FakeStream] = []
        self.user_id = user_id
        self.token = token
        self.groups = list(groups)
        self.fail: dict[str, int | None] = dict(fail or {})
        self.error = error
        self.calls: list[tuple] = []
        self.user_status_result: object = True

    def names(self) -> list[str]:
        return [call[0] for call in self.calls]

    def _record(self, name: str, *args: object) -> None:
        self.calls.append((name, *args))
        if name in self.fail:
            remaining = self.fail[name]
            if remaining is not None:
                if remaining <= 1:
                    del self.fail[name]
                else:
                    self.fail[name] = remaining - 1
            raise self.error(f"{name} failed")

    async def auth(self, username: str, password: str) -> dict:
        self._record("auth", username, password)
        return {"token": self.token, "id": self.user_id}

    async def get_all_user_groups(self, token: str) -> list[dict]:
        self._record("get_all_user_groups", token)
        return list(self.groups)

    async def engage(self, token: str, group_ids: list[str]) -> bool:
        self._record("engage", token, list(group_ids))
        return True

    async def connect_to_websocket(self, token: str) -> FakeStream:
        self._record("connect_to_websocket", token)
        stream = self.streams.pop(0) if self.streams else FakeStream([])
        if isinstance(stream, BaseException):
            raise stream
        self.opened.append(stream)
        return stream

    async def pong(self, token: str) -> bool:
        self._record("pong", token)
        return True

    async def update_user_status(self, token: str, msg: dict) -> object:
        self._record("update_user_status", token, msg)
        return self.user_status_result

    async def whoami(self, token: str) -> dict:
        self._record("whoami", token)
        return {"id": self.user_id, "name": "Me"}

    async def get_user(self, token: str, user_id: str) -> dict:
        self._record("get_user", token, user_id)
        return {"id": user_id, "name": f"user {user_id}"}

    async def get_user_status(self, token: str, user_id: str) -> dict:
        self._record("get_user_status", token, user_id)
        return {"id": user_id, "status": "available"}

    async def get_group(self, token: str, group_id: str) -> dict:
        self._record("get_group", token, group_id)
        return {"id": group_id, "name": f"group {group_id}"}

    async def lyre(self, token, group_ids, message, media, target) -> dict:
        self._record("lyre", token, list(group_ids), message, media, target)
        return {
            "event_type": "ptt",
            "groups": list(group_ids),
            "message": message,
            "media": media,
            "target": target,
        }

    async def wav2ov(self, msg: dict) -> dict:
        self._record("wav2ov", msg)
        return {**msg, "media": "https://media.example/ov"}

    async def ov2wav(self, msg: dict) -> dict:
        self._record("ov2wav", msg)
        return {**msg, "payload": b"RIFF"}

    async def stt(self, msg: dict) -> dict:
        self._record("stt", msg)
        return {**msg, "transcript": "hello"}

    async def translate(self, msg: dict) -> dict:
        self._record("translate", msg)
        return {**msg, "translation": "hola"}


def build_client(settings: object) -> FakePTTClient:
    """Factory usable as ``client_factory``."""
    client = FakePTTClient()
    client.settings = settings
    return client


class CollectorNode(Node):
    """Test sink that keeps every message it receives."""

    type_name = "collect"
    outputs = 0

    def __init__(self, runtime: FlowRuntime, config: dict):
        super().__init__(runtime, config)
        self.received: list[dict] = []

    async def on_input(self, msg: dict) -> None:
        self.received.append(msg)
