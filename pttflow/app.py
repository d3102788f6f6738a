from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from pathlib import Path

from .config import Settings, get_settings
from .flow.loader import load_flow
from .flow.runtime import FlowRuntime
from .logging import configure_logging
from .nodes.registry import NODE_TYPES
from .transport.sdk import PTTClient, load_client


def build_runtime(settings: Settings, client: PTTClient | None = None) -> FlowRuntime:
    if client is None:
        client = load_client(settings.client_factory, settings)
    return FlowRuntime(client, settings=settings, node_types=NODE_TYPES)


async def serve(runtime: FlowRuntime, stop: asyncio.Event | None = None) -> None:
    """Keep the flow running until ``stop`` is set or the task is cancelled."""

    stop = stop or asyncio.Event()
    try:
        await stop.wait()
    finally:
        await runtime.close()


async def run(
    settings: Settings | None = None,
    flow: str | Path | dict = "flow.json",
    *,
    client: PTTClient | None = None,
    stop: asyncio.Event | None = None,
) -> None:
    """Load a flow document and run it."""

    settings = settings or get_settings()
    configure_logging(settings.log_level)
    log = logging.getLogger(__name__)

    runtime = build_runtime(settings, client)
    try:
        nodes = await load_flow(flow, runtime)
    except Exception:
        await runtime.close()
        raise
    log.info(
        "flow started",
        extra={"event_type": "flow_started", "nodes": [node.id for node in nodes]},
    )
    await serve(runtime, stop)


async def listen(
    settings: Settings | None = None,
    on_event: Callable[[dict], None] = print,
    *,
    client: PTTClient | None = None,
    stop: asyncio.Event | None = None,
) -> None:
    """Run a single receive node and pass every event to ``on_event``."""

    settings = settings or get_settings()
    configure_logging(settings.log_level)
    runtime = build_runtime(settings, client)

    def forward(node, port: int, msg: dict) -> None:
        if node.id == "rx" and port == 0:
            on_event(msg)

    runtime.on_send(forward)
    flow = {
        "nodes": [
            {"id": "config", "type": "ptt_config", "group_ids": settings.group_ids},
            {"id": "rx", "type": "ptt_rx", "ptt_config": "config", "ignore_self": settings.ignore_self},
        ]
    }
    try:
        await load_flow(flow, runtime)
    except Exception:
        await runtime.close()
        raise
    await serve(runtime, stop)