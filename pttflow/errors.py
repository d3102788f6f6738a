from __future__ import annotations

from enum import Enum


class ErrorCategory(str, Enum):
    """Classification for error logging."""

    NETWORK = "network"
    PROTOCOL = "protocol"
    AUTH = "auth"
    API = "api"
    FLOW = "flow"


class PTTServiceError(Exception):
    """Raised by client adapters when the PTT service rejects or fails a call."""


class ConfigurationError(Exception):
    """Settings are missing or point at something unusable."""


class FlowError(Exception):
    """A flow document references unknown node types or nodes."""
