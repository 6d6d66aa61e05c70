"""
Inverter Discovery

Broadcasts the AA55 discovery command and collects the inverters that
answer within the collection window. A window with no answers is a normal
outcome and yields an empty list.
"""

import asyncio
import logging
import socket
from typing import Dict, List, Optional

from .errors import InverterConnectionError
from .models.inverter_data import DiscoveredInverter
from .protocol.frames import AA55_COMMANDS, AA55_HEADER

logger = logging.getLogger(__name__)

DISCOVERY_PORT = 8899
DEFAULT_BROADCAST_ADDRESS = "255.255.255.255"
MIN_RESPONSE_LENGTH = 8

_SERIAL_NUMBER = slice(6, 16)


def _printable_ascii(raw: bytes) -> str:
    return ''.join(chr(b) for b in raw if 0x20 <= b <= 0x7E)


def parse_discovery_response(data: bytes, ip: str,
                             port: int = DISCOVERY_PORT) -> Optional[DiscoveredInverter]:
    """
    Parse a discovery answer.

    Fields that cannot be read keep their defaults.

    Args:
        data: Raw datagram
        ip: Source address of the datagram
        port: Port the inverter listens on

    Returns:
        DiscoveredInverter, or None if the datagram is not an AA55 answer
    """
    if len(data) < MIN_RESPONSE_LENGTH or data[0:2] != AA55_HEADER:
        return None

    serial_number = "UNKNOWN"
    if len(data) > 12:
        serial_number = _printable_ascii(data[_SERIAL_NUMBER]) or serial_number

    return DiscoveredInverter(ip=ip, port=port, serial_number=serial_number)


class _DiscoveryProtocol(asyncio.DatagramProtocol):
    """Collects answers, one per source address."""

    def __init__(self, port: int):
        self.port = port
        self.found: Dict[str, DiscoveredInverter] = {}

    def datagram_received(self, data: bytes, addr) -> None:
        ip = addr[0]
        if ip in self.found:
            return
        try:
            inverter = parse_discovery_response(data, ip, self.port)
        except (ValueError, IndexError) as e:
            logger.debug(f"Ignoring malformed discovery answer from {ip}: {e}")
            return
        if inverter is not None:
            logger.info(f"Found inverter at {ip} (serial {inverter.serial_number})")
            self.found[ip] = inverter

    def error_received(self, exc: Exception) -> None:
        logger.debug(f"Ignoring socket error during discovery: {exc}")


def _open_broadcast_socket() -> socket.socket:
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
        sock.bind(('', 0))
        sock.setblocking(False)
    except OSError as e:
        sock.close()
        raise InverterConnectionError(f"Failed to bind discovery socket: {e}", cause=e) from e
    return sock


async def discover(timeout: float = 5.0,
                   broadcast_address: str = DEFAULT_BROADCAST_ADDRESS,
                   port: int = DISCOVERY_PORT) -> List[DiscoveredInverter]:
    """
    Find GoodWe inverters on the local network.

    Args:
        timeout: Collection window in seconds
        broadcast_address: Address the discovery command is sent to
        port: Inverter UDP port

    Returns:
        Inverters that answered, in order of arrival (possibly empty)

    Raises:
        InverterConnectionError: If the socket cannot be bound or the
            broadcast cannot be sent
    """
    loop = asyncio.get_running_loop()
    sock = _open_broadcast_socket()

    logger.info(f"Broadcasting discovery to {broadcast_address}:{port} for {timeout}s")
    try:
        # Answers that arrive before the endpoint exists wait in the socket buffer
        sock.sendto(AA55_COMMANDS.DISCOVERY, (broadcast_address, port))
        transport, protocol = await loop.create_datagram_endpoint(
            lambda: _DiscoveryProtocol(port),
            sock=sock,
        )
    except OSError as e:
        sock.close()
        raise InverterConnectionError(
            f"Failed to send discovery broadcast to {broadcast_address}: {e}", cause=e
        ) from e

    try:
        await asyncio.sleep(timeout)
    finally:
        transport.close()

    inverters = list(protocol.found.values())
    logger.info(f"Discovery finished, {len(inverters)} inverter(s) found")
    return inverters
