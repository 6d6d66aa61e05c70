"""
Domain models for the GoodWe protocol engine.

Connection configuration, handler state, device identity and discovery
results.
"""

from .inverter_config import ConnectionConfig, load_config
from .inverter_data import DeviceInfo, DiscoveredInverter, HandlerState, ProtocolHandlerState

__all__ = [
    'ConnectionConfig',
    'load_config',
    'DeviceInfo',
    'DiscoveredInverter',
    'HandlerState',
    'ProtocolHandlerState',
]
