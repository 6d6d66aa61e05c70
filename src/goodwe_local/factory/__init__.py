"""
Factory for creating transports from configuration.
"""

from .transport_factory import TransportFactory, create_transport

__all__ = [
    'TransportFactory',
    'create_transport',
]
