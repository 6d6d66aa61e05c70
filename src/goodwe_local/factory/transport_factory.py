"""
Transport Factory

Creates transport adapter instances based on connection configuration.
"""

import logging
from typing import List

from ..adapters.tcp_transport import TcpTransport
from ..adapters.udp_transport import UdpTransport
from ..models.inverter_config import ConnectionConfig
from ..ports.transport_port import Transport


class TransportFactory:
    """
    Factory for creating transports.

    The factory reads the transport name from configuration and instantiates
    the matching adapter.
    """

    # "modbus" is the YAML spelling of Modbus TCP
    _TRANSPORTS = {
        'udp': UdpTransport,
        'tcp': TcpTransport,
        'modbus': TcpTransport,
    }

    @classmethod
    def create_transport(cls, config: ConnectionConfig) -> Transport:
        """
        Create a transport for the configured inverter.

        Args:
            config: Connection configuration

        Returns:
            Transport implementation for the configured transport name

        Raises:
            ValueError: If the transport is not supported
        """
        logger = logging.getLogger(cls.__name__)

        name = config.transport.lower().strip()
        if name not in cls._TRANSPORTS:
            supported = ', '.join(cls._TRANSPORTS.keys())
            raise ValueError(
                f"Unsupported transport: '{name}'. "
                f"Supported transports: {supported}"
            )

        transport_class = cls._TRANSPORTS[name]
        transport = transport_class(config.host, config.port, config.timeout)
        logger.debug(f"Created {transport_class.__name__} for {config.host}:{config.port}")
        return transport

    @classmethod
    def get_supported_transports(cls) -> List[str]:
        return list(cls._TRANSPORTS.keys())


def create_transport(config: ConnectionConfig) -> Transport:
    """Shortcut for TransportFactory.create_transport."""
    return TransportFactory.create_transport(config)
