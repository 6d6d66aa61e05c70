"""
GoodWe local-network protocol engine.

Talks to GoodWe solar inverters over AA55, Modbus RTU (tunnelled over UDP)
and Modbus TCP, decodes their telemetry per inverter family and manages a
retrying, timeout-bounded session per inverter.

Usage:
    from goodwe_local import ConnectionConfig, ProtocolHandler

    config = ConnectionConfig(host="192.168.1.50", family="ET")
    async with ProtocolHandler(config) as handler:
        data = await handler.read_runtime_data()
"""

from .discovery import discover
from .errors import (
    ErrorKind,
    GoodWeError,
    InverterConnectionError,
    ReadError,
    RequestTimeoutError,
    UnsupportedFamilyError,
    ValidationError,
)
from .events import StatusEvent, StatusTag
from .handler import ProtocolHandler, connect
from .models import ConnectionConfig, DeviceInfo, DiscoveredInverter, HandlerState, load_config
from .sensors import get_default_comm_addr, get_family_config, get_sensors, supported_families

__version__ = "1.0.0"

__all__ = [
    'discover',
    'ErrorKind',
    'GoodWeError',
    'InverterConnectionError',
    'ReadError',
    'RequestTimeoutError',
    'UnsupportedFamilyError',
    'ValidationError',
    'StatusEvent',
    'StatusTag',
    'ProtocolHandler',
    'connect',
    'ConnectionConfig',
    'DeviceInfo',
    'DiscoveredInverter',
    'HandlerState',
    'load_config',
    'get_default_comm_addr',
    'get_family_config',
    'get_sensors',
    'supported_families',
]
