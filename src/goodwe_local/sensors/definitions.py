"""
Sensor Definition Models

Immutable descriptions of where a sensor lives in a response payload and
how its bytes are turned into a value.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple


class SensorKind(Enum):
    """Coarse sensor category, used for display grouping only."""
    PV = "PV"
    AC = "AC"
    UPS = "UPS"
    BAT = "BAT"
    GRID = "GRID"


class SensorType(Enum):
    """Decode rule tag. Every member has a reader in sensors.decoder."""
    VOLTAGE = "Voltage"
    CURRENT = "Current"
    CURRENT_S = "CurrentS"
    FREQUENCY = "Frequency"
    POWER = "Power"
    POWER_S = "PowerS"
    POWER4 = "Power4"
    POWER4_S = "Power4S"
    ENERGY = "Energy"
    ENERGY4 = "Energy4"
    TEMP = "Temp"
    BYTE = "Byte"
    BYTE_H = "ByteH"
    BYTE_L = "ByteL"
    INTEGER = "Integer"
    INTEGER_S = "IntegerS"
    LONG = "Long"
    LONG_S = "LongS"
    DECIMAL = "Decimal"
    APPARENT = "Apparent"
    APPARENT4 = "Apparent4"
    REACTIVE = "Reactive"
    REACTIVE4 = "Reactive4"
    TIMESTAMP = "Timestamp"

    def __str__(self):
        return self.value


class FamilyProtocol(Enum):
    """Wire protocol a family's runtime data is read with."""
    AA55 = "aa55"
    MODBUS = "modbus"

    def __str__(self):
        return self.value


@dataclass(frozen=True)
class SensorDefinition:
    """
    One decodable (or derived) value of an inverter family.

    `offset` is a register address for Modbus families and a byte offset
    into the payload for AA55 families. Derived entries have no offset and
    no type and are skipped by the decoder.
    """
    id: str
    offset: Optional[int]
    type: Optional[SensorType]
    size: int
    kind: Optional[SensorKind]
    unit: str
    name: str
    scale: int = 1000


@dataclass(frozen=True)
class FamilyConfig:
    """Register map and protocol of one inverter family."""
    name: str
    sensors: Tuple[SensorDefinition, ...]
    protocol: FamilyProtocol
    register_start: Optional[int] = None
    register_count: Optional[int] = None

    @property
    def base_register(self) -> Optional[int]:
        """Register the payload starts at; None for byte-addressed families."""
        return self.register_start if self.protocol is FamilyProtocol.MODBUS else None

    @property
    def expected_payload_length(self) -> Optional[int]:
        if self.register_count is None:
            return None
        return self.register_count * 2

    def sensor(self, sensor_id: str) -> Optional[SensorDefinition]:
        for definition in self.sensors:
            if definition.id == sensor_id:
                return definition
        return None
