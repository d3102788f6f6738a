"""Load flow documents.

A flow document is JSON of the form::

    {
      "nodes": [
        {"id": "cfg", "type": "ptt_config", "group_ids": "ALL"},
        {"id": "rx", "type": "ptt_rx", "ptt_config": "cfg", "wires": [["dbg"], [], [], []]},
        {"id": "dbg", "type": "debug"}
      ],
      "credentials": {"cfg": {"username": "me", "password": "secret"}}
    }

All nodes are created before any of them is started, so config nodes may
appear anywhere in the list.
"""

from __future__ import annotations

import json
from pathlib import Path

from ..errors import FlowError
from .runtime import FlowRuntime, Node


def read_flow(source: str | Path | dict) -> dict:
    if isinstance(source, dict):
        return source
    try:
        document = json.loads(Path(source).read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise FlowError(f"{source} is not valid JSON: {exc}") from exc
    # A bare list of nodes is accepted as well.
    if isinstance(document, list):
        document = {"nodes": document}
    if not isinstance(document, dict):
        raise FlowError(f"{source} must hold an object or a list of nodes")
    return document


async def load_flow(source: str | Path | dict, runtime: FlowRuntime) -> list[Node]:
    document = read_flow(source)
    for node_id, creds in (document.get("credentials") or {}).items():
        runtime.credentials.setdefault(node_id, {}).update(creds)
    nodes = [runtime.create(config) for config in document.get("nodes", [])]
    for node in nodes:
        await node.start()
    return nodes
