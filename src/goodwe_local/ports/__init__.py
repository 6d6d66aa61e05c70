"""
Port Interfaces for the transport layer.

Using the port and adapter pattern, the port represents what the protocol
handler needs from a socket, while adapters implement it for UDP and TCP.
"""

from .transport_port import Transport

__all__ = [
    'Transport',
]
