"""
Sensor registry and decoder.

Immutable per-family register maps plus the rules that turn raw payload
bytes into typed sensor values.
"""

from .definitions import FamilyConfig, FamilyProtocol, SensorDefinition, SensorKind, SensorType
from .decoder import TYPE_READERS, build_sensor_metadata, parse_sensor_data
from .registry import (
    DT_FAMILY,
    ES_FAMILY,
    ET_FAMILY,
    FAMILY_CONFIGS,
    get_default_comm_addr,
    get_family_config,
    get_sensors,
    supported_families,
)

__all__ = [
    'FamilyConfig',
    'FamilyProtocol',
    'SensorDefinition',
    'SensorKind',
    'SensorType',
    'TYPE_READERS',
    'build_sensor_metadata',
    'parse_sensor_data',
    'DT_FAMILY',
    'ES_FAMILY',
    'ET_FAMILY',
    'FAMILY_CONFIGS',
    'get_default_comm_addr',
    'get_family_config',
    'get_sensors',
    'supported_families',
]
