"""
Request Frame Builders

Byte-exact request frames for the three GoodWe wire protocols:

    AA55        AA 55 C0 7F <payload> <sum16 BE>
    Modbus RTU  <addr> 03 <start BE> <count BE> <crc16 LE>
    Modbus TCP  <txid BE> 00 00 00 06 <addr> 03 <start BE> <count BE>
"""

import struct

from .checksum import aa55_checksum, crc16

AA55_HEADER = bytes([0xAA, 0x55])
AA55_REQUEST_PREFIX = bytes([0xAA, 0x55, 0xC0, 0x7F])

MODBUS_READ_FUNCTION = 0x03

# AA55 response type codes (bytes 4-5 of the response)
DEVICE_INFO_RESPONSE = "0181"
RUNNING_DATA_RESPONSE = "0186"


def create_aa55_read_request(command_payload: str) -> bytes:
    """
    Create an AA55 request frame.

    Args:
        command_payload: Hex string of the command payload, e.g. "010600"

    Returns:
        Complete frame including the trailing big-endian checksum
    """
    frame = AA55_REQUEST_PREFIX + bytes.fromhex(command_payload)
    return frame + struct.pack('>H', aa55_checksum(frame))


def create_rtu_read_request(comm_addr: int, register_start: int, register_count: int) -> bytes:
    """Create an 8-byte Modbus RTU read-holding-registers request."""
    frame = struct.pack('>BBHH', comm_addr, MODBUS_READ_FUNCTION, register_start, register_count)
    return frame + struct.pack('<H', crc16(frame))


def create_tcp_read_request(comm_addr: int, register_start: int, register_count: int,
                            transaction_id: int) -> bytes:
    """Create a 12-byte Modbus TCP (MBAP) read-holding-registers request."""
    return struct.pack(
        '>HHHBBHH',
        transaction_id,
        0x0000,  # protocol id
        0x0006,  # bytes that follow
        comm_addr,
        MODBUS_READ_FUNCTION,
        register_start,
        register_count,
    )


class TransactionIdSequence:
    """
    Modbus TCP transaction id generator.

    Yields 1, 2, ... 65535 and wraps back to 1. Each ProtocolHandler owns
    one; pass the same instance to several handlers to share an id space.
    """

    def __init__(self):
        self._current = 0

    def next(self) -> int:
        self._current = (self._current % 0xFFFF) + 1
        return self._current

    def reset(self) -> None:
        self._current = 0

    @property
    def current(self) -> int:
        return self._current


class AA55Commands:
    """Fixed AA55 commands understood by every GoodWe family."""
    DISCOVERY = create_aa55_read_request("010200")
    READ_DEVICE_INFO = create_aa55_read_request("010100")
    READ_RUNNING_DATA_ES = create_aa55_read_request("010600")


AA55_COMMANDS = AA55Commands
