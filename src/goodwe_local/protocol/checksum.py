"""
Checksums

Modbus CRC-16 (table driven) and the AA55 byte-sum checksum.
"""

from typing import List


def _build_crc16_table() -> List[int]:
    table = []
    for i in range(256):
        crc = 0
        buffer = i << 1
        for _ in range(8):
            buffer >>= 1
            if (buffer ^ crc) & 0x0001:
                crc = (crc >> 1) ^ 0xA001
            else:
                crc >>= 1
        table.append(crc)
    return table


CRC16_TABLE = tuple(_build_crc16_table())


def crc16(data: bytes) -> int:
    """
    Calculate the Modbus CRC-16 of `data`.

    The result goes on the wire low byte first.
    """
    crc = 0xFFFF
    for byte in data:
        crc = (crc >> 8) ^ CRC16_TABLE[(crc ^ byte) & 0xFF]
    return crc


def aa55_checksum(data: bytes) -> int:
    """Sum of all bytes, truncated to 16 bits."""
    return sum(data) & 0xFFFF
