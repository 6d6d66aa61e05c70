"""
UDP Transport Adapter

One connected datagram endpoint per inverter. Each request is a single
datagram and the first datagram that comes back answers it.
"""

import asyncio
import logging
from typing import Optional

from ..errors import InverterConnectionError, RequestTimeoutError
from ..ports.transport_port import Transport


class _InverterDatagramProtocol(asyncio.DatagramProtocol):
    """Resolves the pending request future with the next datagram."""

    def __init__(self):
        self.pending: Optional[asyncio.Future] = None
        self.closed = False

    def datagram_received(self, data: bytes, addr) -> None:
        if self.pending is not None and not self.pending.done():
            self.pending.set_result(bytes(data))

    def error_received(self, exc: Exception) -> None:
        if self.pending is not None and not self.pending.done():
            self.pending.set_exception(
                InverterConnectionError(f"Socket error: {exc}", cause=exc)
            )

    def connection_lost(self, exc: Optional[Exception]) -> None:
        self.closed = True
        if self.pending is not None and not self.pending.done():
            self.pending.set_exception(
                InverterConnectionError("Socket closed", cause=exc)
            )


class UdpTransport(Transport):
    """
    Transport over a UDP datagram socket.

    `connect()` only creates the local endpoint; UDP has no handshake, so an
    unreachable inverter shows up as a timeout on the first request.
    """

    def __init__(self, host: str, port: int = 8899, timeout: float = 1.0):
        self.host = host
        self.port = port
        self.timeout = timeout
        self.logger = logging.getLogger(self.__class__.__name__)
        self._transport: Optional[asyncio.DatagramTransport] = None
        self._protocol: Optional[_InverterDatagramProtocol] = None

    @property
    def is_connected(self) -> bool:
        return (
            self._transport is not None
            and not self._transport.is_closing()
            and not self._protocol.closed
        )

    async def connect(self) -> None:
        if self.is_connected:
            return

        loop = asyncio.get_running_loop()
        try:
            self._transport, self._protocol = await loop.create_datagram_endpoint(
                _InverterDatagramProtocol,
                remote_addr=(self.host, self.port),
            )
        except OSError as e:
            raise InverterConnectionError(
                f"Failed to open UDP socket to {self.host}:{self.port}: {e}", cause=e
            ) from e

        self.logger.debug(f"UDP endpoint ready for {self.host}:{self.port}")

    async def send_command(self, frame: bytes, expected_length: Optional[int] = None) -> bytes:
        if not self.is_connected:
            raise InverterConnectionError(f"Not connected to {self.host}:{self.port}")

        future = asyncio.get_running_loop().create_future()
        self._protocol.pending = future
        try:
            self.logger.debug(f"UDP -> {self.host}:{self.port} {frame.hex()}")
            # A failing sendto reports through error_received, which fails the future
            self._transport.sendto(frame)
            try:
                response = await asyncio.wait_for(future, timeout=self.timeout)
            except TimeoutError as e:
                raise RequestTimeoutError(
                    f"No response from {self.host}:{self.port} within {self.timeout}s", cause=e
                ) from e
        finally:
            self._protocol.pending = None

        self.logger.debug(f"UDP <- {self.host}:{self.port} {response.hex()}")
        return response

    async def close(self) -> None:
        if self._transport is not None:
            self._transport.close()
            self.logger.debug(f"UDP endpoint for {self.host}:{self.port} closed")
        self._transport = None
        self._protocol = None
