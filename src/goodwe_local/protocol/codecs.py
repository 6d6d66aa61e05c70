"""
Frame Codecs

One codec per wire protocol. A codec knows how to build the request for a
read and how to turn the matching response into a bare payload; the
ProtocolHandler picks one at construction and never branches on protocol
again.
"""

from abc import ABC, abstractmethod
from typing import Optional

from ..errors import ValidationError
from ..sensors.definitions import FamilyConfig, FamilyProtocol
from .frames import (
    AA55_COMMANDS,
    MODBUS_READ_FUNCTION,
    RUNNING_DATA_RESPONSE,
    TransactionIdSequence,
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


def _raise_if_invalid(result: ValidationResult) -> None:
    if not result.valid:
        raise ValidationError(result.error or "Invalid response")


class FrameCodec(ABC):
    """
    Abstract request/response codec.

    Implementations of this interface provide protocol-specific framing
    while the handler stays protocol agnostic.
    """

    name = "abstract"

    @abstractmethod
    def build_request(self) -> bytes:
        """
        Build the next request frame.

        Returns:
            Complete frame ready to be written to the transport
        """
        pass

    @property
    @abstractmethod
    def expected_response_length(self) -> Optional[int]:
        """Total response length in bytes, or None when it is not known up front."""
        pass

    @abstractmethod
    def decode_response(self, data: bytes) -> bytes:
        """
        Validate a response and strip its framing.

        Args:
            data: Raw response as received from the transport

        Returns:
            Payload bytes

        Raises:
            ValidationError: If the response fails validation
        """
        pass


class Aa55Codec(FrameCodec):
    """Fixed AA55 command with a checked response type."""

    name = "aa55"

    def __init__(self, command: bytes, response_type: Optional[str] = None):
        self.command = command
        self.response_type = response_type

    def build_request(self) -> bytes:
        return self.command

    @property
    def expected_response_length(self) -> Optional[int]:
        return None

    def decode_response(self, data: bytes) -> bytes:
        _raise_if_invalid(validate_aa55_response(data, self.response_type))
        return extract_aa55_payload(data)


class ModbusRtuCodec(FrameCodec):
    """Read-holding-registers over GoodWe's AA55-wrapped Modbus RTU."""

    name = "modbus-rtu"

    def __init__(self, comm_addr: int, register_start: int, register_count: int):
        self.comm_addr = comm_addr
        self.register_start = register_start
        self.register_count = register_count

    def build_request(self) -> bytes:
        return create_rtu_read_request(self.comm_addr, self.register_start, self.register_count)

    @property
    def expected_response_length(self) -> Optional[int]:
        return 5 + self.register_count * 2 + 2

    def decode_response(self, data: bytes) -> bytes:
        _raise_if_invalid(
            validate_rtu_response(data, MODBUS_READ_FUNCTION, self.register_count)
        )
        return extract_rtu_payload(data)


class ModbusTcpCodec(FrameCodec):
    """Read-holding-registers over Modbus TCP (MBAP header, no CRC)."""

    name = "modbus-tcp"

    def __init__(self, comm_addr: int, register_start: int, register_count: int,
                 sequence: Optional[TransactionIdSequence] = None):
        self.comm_addr = comm_addr
        self.register_start = register_start
        self.register_count = register_count
        self.sequence = sequence or TransactionIdSequence()

    def build_request(self) -> bytes:
        return create_tcp_read_request(
            self.comm_addr,
            self.register_start,
            self.register_count,
            self.sequence.next(),
        )

    @property
    def expected_response_length(self) -> Optional[int]:
        return 9 + self.register_count * 2

    def decode_response(self, data: bytes) -> bytes:
        _raise_if_invalid(
            validate_tcp_response(data, MODBUS_READ_FUNCTION, self.register_count)
        )
        return extract_tcp_payload(data)


def create_codec(config, family_config: FamilyConfig,
                 sequence: Optional[TransactionIdSequence] = None) -> FrameCodec:
    """
    Select the runtime-data codec for a connection.

    AA55 families always use their fixed running-data command; Modbus
    families use RTU framing over UDP and MBAP framing over TCP.

    Args:
        config: ConnectionConfig of the connection
        family_config: Register map of the configured family
        sequence: Transaction id sequence to use for Modbus TCP

    Returns:
        FrameCodec instance
    """
    if family_config.protocol is FamilyProtocol.AA55:
        return Aa55Codec(AA55_COMMANDS.READ_RUNNING_DATA_ES, RUNNING_DATA_RESPONSE)

    if config.is_tcp:
        return ModbusTcpCodec(
            config.resolved_comm_addr,
            family_config.register_start,
            family_config.register_count,
            sequence,
        )

    return ModbusRtuCodec(
        config.resolved_comm_addr,
        family_config.register_start,
        family_config.register_count,
    )
