"""
Wire protocol layer.

Checksums, request frame builders, response validators and the per-protocol
FrameCodec implementations used by the ProtocolHandler.
"""

from .checksum import aa55_checksum, crc16
from .frames import (
    AA55_COMMANDS,
    DEVICE_INFO_RESPONSE,
    MODBUS_READ_FUNCTION,
    RUNNING_DATA_RESPONSE,
    TransactionIdSequence,
    create_aa55_read_request,
    create_rtu_read_request,
    create_tcp_read_request,
)
from .validation import (
    ValidationResult,
    extract_aa55_payload,
    extract_rtu_payload,
    extract_tcp_payload,
    validate_aa55_response,
    validate_rtu_response,
    validate_tcp_response,
)
from .codecs import Aa55Codec, FrameCodec, ModbusRtuCodec, ModbusTcpCodec, create_codec

__all__ = [
    'aa55_checksum',
    'crc16',
    'AA55_COMMANDS',
    'DEVICE_INFO_RESPONSE',
    'MODBUS_READ_FUNCTION',
    'RUNNING_DATA_RESPONSE',
    'TransactionIdSequence',
    'create_aa55_read_request',
    'create_rtu_read_request',
    'create_tcp_read_request',
    'ValidationResult',
    'extract_aa55_payload',
    'extract_rtu_payload',
    'extract_tcp_payload',
    'validate_aa55_response',
    'validate_rtu_response',
    'validate_tcp_response',
    'Aa55Codec',
    'FrameCodec',
    'ModbusRtuCodec',
    'ModbusTcpCodec',
    'create_codec',
]
