"""
TCP Transport Adapter

One stream connection per inverter. Responses are read until the expected
length has arrived or, when the length is not known up front, until the
inverter has been quiet for a short window. A request that times out closes
the connection; the next request reconnects.
"""

import asyncio
import logging
from typing import Optional

from ..errors import InverterConnectionError, RequestTimeoutError
from ..ports.transport_port import Transport

READ_CHUNK_SIZE = 4096
QUIESCENCE_WINDOW = 0.1


class TcpTransport(Transport):
    """Transport over a TCP stream socket (Modbus TCP and AA55 over TCP)."""

    def __init__(self, host: str, port: int = 8899, timeout: float = 1.0,
                 quiescence_window: float = QUIESCENCE_WINDOW):
        self.host = host
        self.port = port
        self.timeout = timeout
        self.quiescence_window = quiescence_window
        self.logger = logging.getLogger(self.__class__.__name__)
        self._reader: Optional[asyncio.StreamReader] = None
        self._writer: Optional[asyncio.StreamWriter] = None

    @property
    def is_connected(self) -> bool:
        return self._writer is not None and not self._writer.is_closing()

    async def connect(self) -> None:
        if self.is_connected:
            return

        try:
            self._reader, self._writer = await asyncio.wait_for(
                asyncio.open_connection(self.host, self.port),
                timeout=self.timeout,
            )
        except TimeoutError as e:
            raise RequestTimeoutError(
                f"Connection timeout to {self.host}:{self.port}", cause=e
            ) from e
        except OSError as e:
            raise InverterConnectionError(
                f"Failed to connect to {self.host}:{self.port}: {e}", cause=e
            ) from e

        self.logger.debug(f"TCP connection to {self.host}:{self.port} established")

    async def send_command(self, frame: bytes, expected_length: Optional[int] = None) -> bytes:
        if not self.is_connected:
            raise InverterConnectionError(f"Not connected to {self.host}:{self.port}")

        self.logger.debug(f"TCP -> {self.host}:{self.port} {frame.hex()}")
        try:
            self._writer.write(frame)
            await self._writer.drain()
        except OSError as e:
            await self._drop_connection()
            raise InverterConnectionError(
                f"Failed to send to {self.host}:{self.port}: {e}", cause=e
            ) from e

        try:
            if expected_length:
                response = await asyncio.wait_for(
                    self._read_at_least(expected_length), timeout=self.timeout
                )
            else:
                response = await self._read_until_quiet()
        except TimeoutError as e:
            # A late reply would otherwise be read as the answer to the next request
            await self._drop_connection()
            raise RequestTimeoutError(
                f"No response from {self.host}:{self.port} within {self.timeout}s", cause=e
            ) from e

        self.logger.debug(f"TCP <- {self.host}:{self.port} {response.hex()}")
        return response

    async def _read_chunk(self) -> bytes:
        try:
            chunk = await self._reader.read(READ_CHUNK_SIZE)
        except OSError as e:
            await self._drop_connection()
            raise InverterConnectionError(
                f"Connection to {self.host}:{self.port} failed: {e}", cause=e
            ) from e

        if not chunk:
            await self._drop_connection()
            raise InverterConnectionError(f"Connection closed by {self.host}:{self.port}")
        return chunk

    async def _read_at_least(self, expected_length: int) -> bytes:
        buffer = bytearray()
        while len(buffer) < expected_length:
            buffer.extend(await self._read_chunk())
        return bytes(buffer)

    async def _read_until_quiet(self) -> bytes:
        buffer = bytearray(await asyncio.wait_for(self._read_chunk(), timeout=self.timeout))
        while True:
            try:
                chunk = await asyncio.wait_for(self._read_chunk(), timeout=self.quiescence_window)
            except (TimeoutError, InverterConnectionError):
                # Quiet line or peer hung up after answering: response complete
                return bytes(buffer)
            buffer.extend(chunk)

    async def _drop_connection(self) -> None:
        writer = self._writer
        self._reader = None
        self._writer = None
        if writer is not None:
            writer.close()
            try:
                await writer.wait_closed()
            except OSError:
                pass

    async def close(self) -> None:
        if self._writer is not None:
            await self._drop_connection()
            self.logger.debug(f"TCP connection to {self.host}:{self.port} closed")
