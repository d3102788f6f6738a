from __future__ import annotations

from ..errors import FlowError
from ..flow.runtime import Node


class PTTConfigNode(Node):
    """Account and group selection shared by the RX, TX and lookup nodes.

    Never wired into a flow. Credentials come from the runtime's credential
    store and fall back to the settings, as does the group list.
    """

    type_name = "ptt_config"
    outputs = 0

    def __init__(self, runtime, config: dict):
        super().__init__(runtime, config)
        settings = runtime.settings
        self.username: str = self.credentials.get("username") or (settings.username if settings else "")
        self.password: str = self.credentials.get("password") or (settings.password if settings else "")
        self.group_ids = config.get("group_ids") or (settings.group_ids if settings else "ALL")


def config_node_for(node: Node) -> PTTConfigNode:
    """Return the config node ``node`` points at through ``ptt_config``."""

    ref = node.config.get("ptt_config")
    found = node.runtime.get_node(ref)
    if not isinstance(found, PTTConfigNode):
        raise FlowError(f"{node.id}: ptt_config {ref!r} is not a ptt_config node")
    return found
