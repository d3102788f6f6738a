from __future__ import annotations

from ..flow.builtin import DebugNode
from ..flow.runtime import Node
from .config import PTTConfigNode
from .lookup import PTTLookupNode
from .media import PTTDecodeNode, PTTEncodeNode, PTTTranscribeNode, PTTTranslateNode
from .rx import PTTReceiveNode
from .tx import PTTTransmitNode

NODE_TYPES: tuple[type[Node], ...] = (
    PTTConfigNode,
    PTTTransmitNode,
    PTTReceiveNode,
    PTTEncodeNode,
    PTTDecodeNode,
    PTTTranscribeNode,
    PTTTranslateNode,
    PTTLookupNode,
    DebugNode,
)
