"""
Inverter Data Models

Data structures for handler state, device identity and discovery results.
"""

import struct
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, Optional

from ..errors import ValidationError


class HandlerState(Enum):
    """Connection state of a ProtocolHandler."""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    READING = "reading"

    def __str__(self):
        return self.value


@dataclass
class ProtocolHandlerState:
    """
    Mutable state owned by exactly one ProtocolHandler.

    The handler exposes it read-only; nothing else mutates it.
    """
    state: HandlerState = HandlerState.DISCONNECTED
    consecutive_failures: int = 0
    last_error: Optional[BaseException] = None

    @property
    def connected(self) -> bool:
        return self.state in (HandlerState.CONNECTED, HandlerState.READING)


def _decode_text(raw: bytes) -> str:
    return raw.decode('ascii', errors='replace').replace('\x00', '').strip()


# Layout of the AA55 0181 device-info payload (framing stripped)
_MODEL_NAME = slice(0, 10)
_SERIAL_NUMBER = slice(10, 26)
_FIRMWARE = slice(26, 32)
_ARM_FIRMWARE = slice(32, 38)
_DSP1_VERSION = slice(38, 44)
_DSP2_VERSION = slice(44, 50)
_RATED_POWER_OFFSET = 50
_AC_OUTPUT_TYPE_OFFSET = 52
DEVICE_INFO_MIN_LENGTH = 53


@dataclass(frozen=True)
class DeviceInfo:
    """Identity and ratings reported by the AA55 device-info command."""
    model_name: str
    serial_number: str
    firmware: str
    arm_firmware: str
    dsp1_version: str
    dsp2_version: str
    rated_power: int
    ac_output_type: int

    @classmethod
    def from_payload(cls, payload: bytes) -> 'DeviceInfo':
        """
        Decode the device-info payload.

        Raises:
            ValidationError: If the payload is too short
        """
        if len(payload) < DEVICE_INFO_MIN_LENGTH:
            raise ValidationError(
                f"Device info payload too short: expected {DEVICE_INFO_MIN_LENGTH}, got {len(payload)}"
            )

        return cls(
            model_name=_decode_text(payload[_MODEL_NAME]),
            serial_number=_decode_text(payload[_SERIAL_NUMBER]),
            firmware=_decode_text(payload[_FIRMWARE]),
            arm_firmware=_decode_text(payload[_ARM_FIRMWARE]),
            dsp1_version=_decode_text(payload[_DSP1_VERSION]),
            dsp2_version=_decode_text(payload[_DSP2_VERSION]),
            rated_power=struct.unpack_from('>H', payload, _RATED_POWER_OFFSET)[0],
            ac_output_type=payload[_AC_OUTPUT_TYPE_OFFSET],
        )

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class DiscoveredInverter:
    """Best-effort description of an inverter that answered a broadcast."""
    ip: str
    port: int = 8899
    family: str = "ET"
    serial_number: str = "UNKNOWN"
    model_name: str = "GoodWe Inverter"

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)
