import asyncio

import pytest

from pttflow.config import Settings
from pttflow.flow.loader import load_flow
from pttflow.flow.runtime import FlowRuntime
from pttflow.nodes.registry import NODE_TYPES
from tests.fakes.fake_ptt_service import CollectorNode, FakePTTClient


async def _send_through(node_config, msg, client):
    runtime = FlowRuntime(client, settings=Settings(), node_types=[*NODE_TYPES, CollectorNode])
    statuses: list[str] = []
    runtime.on_status(lambda node, status: statuses.append(status.text))
    await load_flow(
        {"nodes": [{"id": "media", "wires": [["out"]], **node_config}, {"id": "out", "type": "collect"}]},
        runtime,
    )
    runtime.inject("media", msg)
    await runtime.drain()
    return runtime.get_node("out").received, statuses


@pytest.mark.parametrize(
    ("node_type", "msg", "call", "busy"),
    [
        ("ptt_encode", {"payload": b"RIFF...."}, "wav2ov", "Encoding"),
        ("ptt_transcribe", {"media": "https://m/1.ov"}, "stt", "Transcribing"),
        ("ptt_decode", {"event_type": "ptt", "media": "https://m/1.ov"}, "ov2wav", "Decoding"),
    ],
)
def test_media_nodes_call_the_sdk(node_type, msg, call, busy):
    client = FakePTTClient()
    out, statuses = asyncio.run(_send_through({"type": node_type}, dict(msg), client))

    assert client.names() == [call]
    assert len(out) == 1
    assert statuses == ["Idle", busy, "Idle"]


@pytest.mark.parametrize(
    ("node_type", "msg"),
    [
        ("ptt_encode", {"payload": None, "other": 1}),
        ("ptt_transcribe", {"payload": "x"}),
        ("ptt_translate", {"payload": "x"}),
        ("ptt_decode", {"event_type": "userstatus"}),
    ],
)
def test_media_nodes_pass_other_messages_through(node_type, msg):
    client = FakePTTClient()
    out, _ = asyncio.run(_send_through({"type": node_type}, dict(msg), client))

    assert client.calls == []
    assert out == [msg]


def test_decode_sets_return_type():
    client = FakePTTClient()
    out, _ = asyncio.run(
        _send_through({"type": "ptt_decode", "return_type": "wav"}, {"event_type": "ptt"}, client)
    )
    assert client.calls[0][1]["return_type"] == "wav"
    assert out[0]["payload"] == b"RIFF"


def test_translate_sets_languages():
    client = FakePTTClient()
    config = {"type": "ptt_translate", "input_language_code": "en-US", "output_language_code": "es-ES"}
    out, _ = asyncio.run(_send_through(config, {"media": "https://m/1.ov"}, client))

    sent = client.calls[0][1]
    assert (sent["input_lang"], sent["output_lang"]) == ("en-US", "es-ES")
    assert out[0]["translation"] == "hola"


def test_media_failures_send_nothing():
    client = FakePTTClient(fail={"stt": None})
    out, statuses = asyncio.run(_send_through({"type": "ptt_transcribe"}, {"media": "x"}, client))

    assert out == []
    assert statuses[-1] == "Idle"


def test_media_network_failures_keep_node_usable():
    client = FakePTTClient(fail={"ov2wav": 1}, error=OSError)
    out, statuses = asyncio.run(_send_through({"type": "ptt_decode"}, {"event_type": "ptt"}, client))

    assert out == []
    assert statuses == ["Idle", "Decoding", "Idle"]
