"""Media helper nodes.

Each node hands qualifying messages to one SDK media call and sends on what
the SDK returns; everything else passes through untouched.
"""

from __future__ import annotations

from ..flow.runtime import Node, NodeStatus
from .common import IDLE, SERVICE_ERRORS, error_category


class _MediaNode(Node):
    busy: NodeStatus = NodeStatus("green", "dot", "Working")

    async def start(self) -> None:
        self.status(IDLE)

    def accepts(self, msg: dict) -> bool:
        raise NotImplementedError

    def prepare(self, msg: dict) -> dict:
        return msg

    async def call(self, msg: dict) -> dict:
        raise NotImplementedError

    async def on_input(self, msg: dict) -> None:
        if not self.accepts(msg):
            self.send(msg)
            return
        self.status(self.busy)
        try:
            result = await self.call(self.prepare(msg))
        except SERVICE_ERRORS as exc:
            self.error(f"{self.type_name} failed: {exc}", error_category(exc))
        else:
            self.send(result)
        finally:
            self.status(IDLE)


class PTTEncodeNode(_MediaNode):
    """Encode WAV/PCM in ``msg.payload`` to the service's Opus format."""

    type_name = "ptt_encode"
    busy = NodeStatus("green", "dot", "Encoding")

    def accepts(self, msg: dict) -> bool:
        return bool(msg.get("payload"))

    async def call(self, msg: dict) -> dict:
        return await self.client.wav2ov(msg)


class PTTDecodeNode(_MediaNode):
    """Decode the Opus media of PTT events to WAV/PCM."""

    type_name = "ptt_decode"
    busy = NodeStatus("green", "dot", "Decoding")

    def accepts(self, msg: dict) -> bool:
        return msg.get("event_type") == "ptt"

    def prepare(self, msg: dict) -> dict:
        msg["return_type"] = self.config.get("return_type")
        return msg

    async def call(self, msg: dict) -> dict:
        return await self.client.ov2wav(msg)


class PTTTranscribeNode(_MediaNode):
    """Transcribe the media of PTT events to text."""

    type_name = "ptt_transcribe"
    busy = NodeStatus("green", "dot", "Transcribing")

    def accepts(self, msg: dict) -> bool:
        return bool(msg.get("media"))

    async def call(self, msg: dict) -> dict:
        return await self.client.stt(msg)


class PTTTranslateNode(_MediaNode):
    """Translate PTT audio between the configured languages."""

    type_name = "ptt_translate"
    busy = NodeStatus("green", "dot", "Translating")

    def accepts(self, msg: dict) -> bool:
        return bool(msg.get("media"))

    def prepare(self, msg: dict) -> dict:
        msg["input_lang"] = self.config.get("input_language_code")
        msg["output_lang"] = self.config.get("output_language_code")
        return msg

    async def call(self, msg: dict) -> dict:
        return await self.client.translate(msg)
