"""
Response Validation and Payload Extraction

Per-protocol checks of header, function code, byte count and checksum,
plus helpers stripping the framing from a validated response.
"""

import struct
from dataclasses import dataclass
from typing import Optional

from ..errors import ValidationError
from .checksum import aa55_checksum, crc16
from .frames import AA55_HEADER


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a response check; `error` is a human-readable reason."""
    valid: bool
    error: Optional[str] = None

    @classmethod
    def ok(cls) -> 'ValidationResult':
        return cls(True, None)

    @classmethod
    def fail(cls, reason: str) -> 'ValidationResult':
        return cls(False, reason)

    def __bool__(self):
        return self.valid


def _function_code_error(actual: int, expected: int, data: bytes, code_index: int) -> str:
    if actual == (expected | 0x80):
        error_code = data[code_index] if len(data) > code_index else 0
        return f"Modbus error response, code: {error_code}"
    return f"Unexpected function code: 0x{actual:02x}"


def validate_aa55_response(data: Optional[bytes],
                           expected_response_type: Optional[str] = None) -> ValidationResult:
    """
    Validate an AA55 response.

    Args:
        data: Raw response
        expected_response_type: Hex string matched against bytes 4-5, e.g. "0186"
    """
    if not data or len(data) < 9:
        return ValidationResult.fail("Response too short")

    if data[0:2] != AA55_HEADER:
        return ValidationResult.fail("Invalid AA55 header")

    if expected_response_type:
        expected = bytes.fromhex(expected_response_type)
        if data[4:6] != expected:
            return ValidationResult.fail(f"Unexpected response type: {data[4:6].hex()}")

    payload_end = len(data) - 2
    expected_checksum = struct.unpack('>H', data[payload_end:])[0]
    if aa55_checksum(data[:payload_end]) != expected_checksum:
        return ValidationResult.fail("Checksum mismatch")

    return ValidationResult.ok()


def validate_rtu_response(data: Optional[bytes], expected_cmd: int,
                          expected_count: int) -> ValidationResult:
    """
    Validate a Modbus RTU response.

    GoodWe prefixes RTU responses with AA 55; the CRC covers everything
    after those two bytes.
    """
    if not data or len(data) < 7:
        return ValidationResult.fail("Response too short")

    if data[0:2] != AA55_HEADER:
        return ValidationResult.fail("Missing AA55 header in RTU response")

    if data[3] != expected_cmd:
        return ValidationResult.fail(_function_code_error(data[3], expected_cmd, data, 4))

    byte_count = data[4]
    expected_bytes = expected_count * 2
    if byte_count != expected_bytes:
        return ValidationResult.fail(
            f"Byte count mismatch: expected {expected_bytes}, got {byte_count}"
        )

    expected_length = 5 + byte_count + 2
    if len(data) < expected_length:
        return ValidationResult.fail(
            f"Response too short: expected {expected_length}, got {len(data)}"
        )

    expected_crc = struct.unpack('<H', data[expected_length - 2:expected_length])[0]
    if crc16(data[2:expected_length - 2]) != expected_crc:
        return ValidationResult.fail("CRC mismatch")

    return ValidationResult.ok()


def validate_tcp_response(data: Optional[bytes], expected_cmd: int,
                          expected_count: int) -> ValidationResult:
    """Validate a Modbus TCP response. TCP framing carries no CRC."""
    if not data or len(data) < 9:
        return ValidationResult.fail("Response too short")

    if data[7] != expected_cmd:
        return ValidationResult.fail(_function_code_error(data[7], expected_cmd, data, 8))

    byte_count = data[8]
    expected_bytes = expected_count * 2
    if byte_count != expected_bytes:
        return ValidationResult.fail(
            f"Byte count mismatch: expected {expected_bytes}, got {byte_count}"
        )

    expected_length = 9 + byte_count
    if len(data) < expected_length:
        return ValidationResult.fail(
            f"Response too short: expected {expected_length}, got {len(data)}"
        )

    return ValidationResult.ok()


def extract_aa55_payload(data: bytes) -> bytes:
    """Strip the 7-byte AA55 header and the 2-byte checksum."""
    if len(data) < 9:
        raise ValidationError("AA55 response too short to extract payload")
    return bytes(data[7:-2])


def extract_rtu_payload(data: bytes) -> bytes:
    """Strip AA 55 + addr + cmd + byte count; keep `byte count` bytes."""
    if len(data) < 7:
        raise ValidationError("RTU response too short to extract payload")
    byte_count = data[4]
    return bytes(data[5:5 + byte_count])


def extract_tcp_payload(data: bytes) -> bytes:
    """Strip the 9-byte MBAP + PDU header; keep `byte count` bytes."""
    if len(data) < 9:
        raise ValidationError("TCP response too short to extract payload")
    byte_count = data[8]
    return bytes(data[9:9 + byte_count])
