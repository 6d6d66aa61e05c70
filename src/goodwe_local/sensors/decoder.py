"""
Sensor Decoder

Applies a family's sensor definitions to a raw payload and returns a sparse
map of decoded values. All multi-byte values are big-endian. Sentinel
encodings (all bits set) mean "no data" and the sensor is left out of the
result instead of being reported as zero.
"""

import logging
import struct
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, Optional, Union

from .definitions import SensorDefinition, SensorKind, SensorType

logger = logging.getLogger(__name__)

SensorValue = Union[int, float, str]
Reader = Callable[[bytes, int, SensorDefinition], Optional[SensorValue]]


# ============================================================================
# Low-level readers (None = absent)
# ============================================================================

def read_bytes2(data: bytes, offset: int) -> Optional[int]:
    if offset + 2 > len(data):
        return None
    value = struct.unpack_from('>H', data, offset)[0]
    return None if value == 0xFFFF else value


def read_bytes2_signed(data: bytes, offset: int) -> Optional[int]:
    if offset + 2 > len(data):
        return None
    if struct.unpack_from('>H', data, offset)[0] == 0xFFFF:
        return None
    return struct.unpack_from('>h', data, offset)[0]


def read_bytes4(data: bytes, offset: int) -> Optional[int]:
    if offset + 4 > len(data):
        return None
    value = struct.unpack_from('>I', data, offset)[0]
    return None if value == 0xFFFFFFFF else value


def read_bytes4_signed(data: bytes, offset: int) -> Optional[int]:
    if offset + 4 > len(data):
        return None
    if struct.unpack_from('>I', data, offset)[0] == 0xFFFFFFFF:
        return None
    return struct.unpack_from('>i', data, offset)[0]


def read_byte(data: bytes, offset: int) -> Optional[int]:
    if offset >= len(data):
        return None
    return data[offset]


def _scaled(value: Optional[int], divisor: int) -> Optional[float]:
    return None if value is None else value / divisor


def _read_temp(data: bytes, offset: int, sensor: SensorDefinition) -> Optional[float]:
    value = read_bytes2_signed(data, offset)
    if value is None or value in (-1, 32767):
        return None
    return value / 10


def _read_decimal(data: bytes, offset: int, sensor: SensorDefinition) -> Optional[float]:
    return _scaled(read_bytes2_signed(data, offset), sensor.scale or 1000)


def _read_byte_high(data: bytes, offset: int, sensor: SensorDefinition) -> Optional[int]:
    value = read_bytes2(data, offset)
    return None if value is None else (value >> 8) & 0xFF


def _read_byte_low(data: bytes, offset: int, sensor: SensorDefinition) -> Optional[int]:
    value = read_bytes2(data, offset)
    return None if value is None else value & 0xFF


def _read_timestamp(data: bytes, offset: int, sensor: SensorDefinition) -> Optional[str]:
    if offset + 6 > len(data):
        return None
    year, month, day, hour, minute, second = data[offset:offset + 6]
    try:
        return datetime(2000 + year, month, day, hour, minute, second).isoformat()
    except ValueError:
        return None


TYPE_READERS: Dict[SensorType, Reader] = {
    SensorType.VOLTAGE: lambda d, o, s: _scaled(read_bytes2(d, o), 10),
    SensorType.CURRENT: lambda d, o, s: _scaled(read_bytes2(d, o), 10),
    SensorType.CURRENT_S: lambda d, o, s: _scaled(read_bytes2_signed(d, o), 10),
    SensorType.FREQUENCY: lambda d, o, s: _scaled(read_bytes2(d, o), 100),
    SensorType.POWER: lambda d, o, s: read_bytes2(d, o),
    SensorType.POWER_S: lambda d, o, s: read_bytes2_signed(d, o),
    SensorType.POWER4: lambda d, o, s: read_bytes4(d, o),
    SensorType.POWER4_S: lambda d, o, s: read_bytes4_signed(d, o),
    SensorType.ENERGY: lambda d, o, s: _scaled(read_bytes2(d, o), 10),
    SensorType.ENERGY4: lambda d, o, s: _scaled(read_bytes4(d, o), 10),
    SensorType.TEMP: _read_temp,
    SensorType.BYTE: lambda d, o, s: read_byte(d, o),
    SensorType.BYTE_H: _read_byte_high,
    SensorType.BYTE_L: _read_byte_low,
    SensorType.INTEGER: lambda d, o, s: read_bytes2(d, o),
    SensorType.INTEGER_S: lambda d, o, s: read_bytes2_signed(d, o),
    SensorType.LONG: lambda d, o, s: read_bytes4(d, o),
    SensorType.LONG_S: lambda d, o, s: read_bytes4_signed(d, o),
    SensorType.DECIMAL: _read_decimal,
    SensorType.APPARENT: lambda d, o, s: read_bytes2(d, o),
    SensorType.APPARENT4: lambda d, o, s: read_bytes4(d, o),
    SensorType.REACTIVE: lambda d, o, s: read_bytes2_signed(d, o),
    SensorType.REACTIVE4: lambda d, o, s: read_bytes4_signed(d, o),
    SensorType.TIMESTAMP: _read_timestamp,
}


# ============================================================================
# Payload decoding
# ============================================================================

def parse_sensor_data(sensors: Iterable[SensorDefinition], data: bytes,
                      base_register: Optional[int]) -> Dict[str, SensorValue]:
    """
    Decode every sensor found in `data`.

    Args:
        sensors: Sensor definitions of one family
        data: Response payload with framing already stripped
        base_register: First register of the payload for Modbus families,
            None for AA55 families whose offsets are byte offsets

    Returns:
        Map of sensor id to value; absent and undecodable sensors are omitted
    """
    result: Dict[str, SensorValue] = {}

    for sensor in sensors:
        if sensor.offset is None or sensor.type is None:
            continue

        reader = TYPE_READERS.get(sensor.type)
        if reader is None:
            continue

        if base_register is not None:
            byte_offset = (sensor.offset - base_register) * 2
        else:
            byte_offset = sensor.offset

        if byte_offset < 0 or byte_offset >= len(data):
            continue

        try:
            value = reader(data, byte_offset, sensor)
        except (struct.error, ValueError, ZeroDivisionError) as e:
            logger.debug(f"Skipping sensor {sensor.id}: {e}")
            continue

        if value is not None:
            result[sensor.id] = value

    return result


KIND_CATEGORIES = {
    SensorKind.PV: "pv",
    SensorKind.AC: "grid",
    SensorKind.UPS: "ups",
    SensorKind.BAT: "battery",
    SensorKind.GRID: "grid",
}


def build_sensor_metadata(sensors: Iterable[SensorDefinition]) -> Dict[str, Dict[str, Any]]:
    """Name, unit, kind and display category of every sensor, keyed by id."""
    metadata = {}
    for sensor in sensors:
        metadata[sensor.id] = {
            'name': sensor.name,
            'unit': sensor.unit,
            'kind': sensor.kind.value if sensor.kind else "STATUS",
            'category': KIND_CATEGORIES.get(sensor.kind, "status"),
        }
    return metadata
