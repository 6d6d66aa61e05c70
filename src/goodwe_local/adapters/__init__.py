"""
Transport adapters.

Socket implementations of the Transport port.
"""

from .tcp_transport import TcpTransport
from .udp_transport import UdpTransport

__all__ = [
    'TcpTransport',
    'UdpTransport',
]
