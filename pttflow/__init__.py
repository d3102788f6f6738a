"""Push-to-talk flow nodes.

This package wires a PTT service client into a message-passing flow engine:
receive (RX) and transmit (TX) nodes, directory lookups and media helpers.
Modules are lightweight and do not perform network I/O on import.
"""

__all__ = [
    "__version__",
]

__version__ = "0.1.0"
