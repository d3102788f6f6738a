"""In-process flow engine.

Nodes are created from plain config dicts, receive ``dict`` messages through
:meth:`Node.on_input` and emit messages with :meth:`Node.send`. Each output
port is wired to a list of node ids; every delivery runs as its own task.
"""

from __future__ import annotations

import asyncio
import copy
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, ClassVar

from ..errors import ErrorCategory, FlowError

if TYPE_CHECKING:  # pragma: no cover - type checking only
    from ..config import Settings
    from ..transport.sdk import PTTClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NodeStatus:
    fill: str
    shape: str = "dot"
    text: str = ""


StatusListener = Callable[["Node", NodeStatus], None]
SendListener = Callable[["Node", int, dict], None]


class Node:
    """Base class for flow nodes."""

    type_name: ClassVar[str] = ""
    outputs: ClassVar[int] = 1

    def __init__(self, runtime: FlowRuntime, config: dict):
        self.runtime = runtime
        self.config = config
        self.id: str = config["id"]
        self.name: str = config.get("name", "")
        self.wires: list[list[str]] = [list(port) for port in config.get("wires", [])]
        self.credentials: dict = runtime.credentials.get(self.id, {})
        self.current_status: NodeStatus | None = None
        self.log = logging.getLogger(f"{type(self).__module__}.{type(self).__name__}")

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.id}>"

    @property
    def client(self) -> PTTClient:
        return self.runtime.client

    async def start(self) -> None:
        """Called once every node of the flow exists."""

    async def on_input(self, msg: dict) -> None:
        """Handle one incoming message."""

    async def close(self) -> None:
        """Release resources when the flow stops."""

    def status(self, fill: str | NodeStatus, shape: str = "dot", text: str = "") -> None:
        if isinstance(fill, NodeStatus):
            self.current_status = fill
        else:
            self.current_status = NodeStatus(fill, shape, text)
        self.runtime.report_status(self, self.current_status)

    def send(self, msg: dict | list[dict | None] | None) -> None:
        self.runtime.route(self, msg)

    def warn(self, text: Any) -> None:
        self.log.warning(str(text), extra={"event_type": "node_warning", "node_id": self.id})

    def error(self, text: Any, category: ErrorCategory = ErrorCategory.FLOW) -> None:
        self.log.error(
            str(text),
            extra={
                "event_type": "node_error",
                "node_id": self.id,
                "error_category": category.value,
            },
        )


class FlowRuntime:
    """Holds the nodes of one flow and moves messages between them."""

    def __init__(
        self,
        client: PTTClient | None = None,
        *,
        settings: Settings | None = None,
        node_types: Iterable[type[Node]] = (),
        credentials: dict[str, dict] | None = None,
    ):
        self.client = client
        self.settings = settings
        self.credentials: dict[str, dict] = dict(credentials or {})
        self.nodes: dict[str, Node] = {}
        self._types: dict[str, type[Node]] = {}
        self._pending: set[asyncio.Task] = set()
        self._status_listeners: list[StatusListener] = []
        self._send_listeners: list[SendListener] = []
        for node_type in node_types:
            self.register_type(node_type)

    # Registry --------------------------------------------------------------

    def register_type(self, node_type: type[Node], name: str | None = None) -> None:
        self._types[name or node_type.type_name] = node_type

    def types(self) -> list[str]:
        return sorted(self._types)

    def create(self, config: dict) -> Node:
        type_name = config.get("type", "")
        node_type = self._types.get(type_name)
        if node_type is None:
            raise FlowError(f"unknown node type {type_name!r}")
        if "id" not in config:
            raise FlowError(f"{type_name} node without an id")
        if config["id"] in self.nodes:
            raise FlowError(f"duplicate node id {config['id']!r}")
        if len(config.get("wires", [])) > node_type.outputs:
            raise FlowError(f"{config['id']}: {type_name} has only {node_type.outputs} output(s)")
        node = node_type(self, config)
        self.nodes[node.id] = node
        return node

    def get_node(self, node_id: str | None) -> Node | None:
        if node_id is None:
            return None
        return self.nodes.get(node_id)

    # Listeners -------------------------------------------------------------

    def on_status(self, listener: StatusListener) -> None:
        self._status_listeners.append(listener)

    def on_send(self, listener: SendListener) -> None:
        self._send_listeners.append(listener)

    def report_status(self, node: Node, status: NodeStatus) -> None:
        logger.debug(
            "node_status",
            extra={"event_type": "node_status", "node_id": node.id, "status": status.text},
        )
        for listener in self._status_listeners:
            listener(node, status)

    # Messaging -------------------------------------------------------------

    def route(self, node: Node, msg: dict | list[dict | None] | None) -> None:
        if msg is None:
            return
        ports = msg if isinstance(msg, list) else [msg]
        # Only the first delivery of a send gets the original object; ports
        # may carry the same message.
        sent = False
        for port, port_msg in enumerate(ports):
            if port_msg is None:
                continue
            for listener in self._send_listeners:
                listener(node, port, port_msg)
            targets = node.wires[port] if port < len(node.wires) else []
            for target in targets:
                delivered = copy.deepcopy(port_msg) if sent else port_msg
                sent = True
                self._schedule(self.deliver(target, delivered))

    def inject(self, node_id: str, msg: dict) -> None:
        """Queue ``msg`` as input for ``node_id``."""
        self._schedule(self.deliver(node_id, msg))

    def _schedule(self, coro: Any) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def deliver(self, node_id: str, msg: dict) -> None:
        node = self.nodes.get(node_id)
        if node is None:
            logger.warning(
                "unknown_wire_target",
                extra={
                    "event_type": "unknown_wire_target",
                    "node_id": node_id,
                    "error_category": ErrorCategory.FLOW.value,
                },
            )
            return
        try:
            await node.on_input(msg)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception(
                "input_handler_failed",
                extra={
                    "event_type": "input_handler_failed",
                    "node_id": node.id,
                    "error_category": ErrorCategory.FLOW.value,
                },
            )
            node.status("red", "ring", "Error")

    async def drain(self) -> None:
        """Wait until every queued delivery, including follow-ups, finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    # Lifecycle -------------------------------------------------------------

    async def start(self) -> None:
        for node in list(self.nodes.values()):
            await node.start()

    async def close(self) -> None:
        for node in reversed(list(self.nodes.values())):
            try:
                await node.close()
            except Exception:
                logger.exception(
                    "node_close_failed",
                    extra={
                        "event_type": "node_close_failed",
                        "node_id": node.id,
                        "error_category": ErrorCategory.FLOW.value,
                    },
                )
        for task in list(self._pending):
            task.cancel()
        await asyncio.gather(*list(self._pending), return_exceptions=True)
