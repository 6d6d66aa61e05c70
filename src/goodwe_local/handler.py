"""
Protocol Handler

Session with one inverter: owns the transport, the frame codec and the
connection state, and turns high-level reads into validated, decoded data.

State machine:

    disconnected -> connecting -> connected -> reading -> connected
                                            -> disconnected

A handler supports one in-flight request at a time; callers serialize
overlapping calls themselves.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from .errors import (
    GoodWeError,
    InverterConnectionError,
    ReadError,
    UnsupportedFamilyError,
    enhance_error,
)
from .events import StatusBroadcaster, StatusEvent, StatusListener, StatusTag
from .factory.transport_factory import create_transport
from .models.inverter_config import ConnectionConfig
from .models.inverter_data import DeviceInfo, HandlerState, ProtocolHandlerState
from .ports.transport_port import Transport
from .protocol.codecs import Aa55Codec, FrameCodec, create_codec
from .protocol.frames import AA55_COMMANDS, DEVICE_INFO_RESPONSE, TransactionIdSequence
from .retry import RetryCoordinator
from .sensors.decoder import SensorValue, parse_sensor_data
from .sensors.registry import get_family_config


class ProtocolHandler:
    """
    Connection to one GoodWe inverter.

    Transport and codec are chosen once from the configuration; both can be
    injected instead, which is how tests drive the handler without sockets.
    """

    def __init__(self, config: ConnectionConfig,
                 transport: Optional[Transport] = None,
                 codec: Optional[FrameCodec] = None,
                 sequence: Optional[TransactionIdSequence] = None,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        """
        Initialize the handler.

        Args:
            config: Connection configuration
            transport: Transport to use instead of the one built from config
            codec: Runtime-data codec to use instead of the one built from config
            sequence: Modbus TCP transaction id sequence; share one instance
                between handlers to share an id space
            sleep: Coroutine used for retry backoff

        Raises:
            UnsupportedFamilyError: If the configured family is unknown
            ValueError: If the configuration is otherwise invalid
        """
        self.logger = logging.getLogger(self.__class__.__name__)

        family_config = get_family_config(config.family)
        if family_config is None:
            raise UnsupportedFamilyError(config.family)

        is_valid, error_msg = config.validate()
        if not is_valid:
            raise ValueError(f"Invalid connection configuration: {error_msg}")

        self.config = config
        self.family_config = family_config
        self._state = ProtocolHandlerState()
        self._events = StatusBroadcaster()
        self._transport = transport or create_transport(config)
        self._sequence = sequence or TransactionIdSequence()
        self._codec = codec or create_codec(config, family_config, self._sequence)
        self._device_info_codec = Aa55Codec(AA55_COMMANDS.READ_DEVICE_INFO, DEVICE_INFO_RESPONSE)
        self._retry = RetryCoordinator(
            max_attempts=config.retries,
            base_delay=config.retry_delay,
            max_delay=config.max_retry_delay,
            on_status=self._events.publish,
            sleep=sleep,
        )

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def state(self) -> HandlerState:
        return self._state.state

    @property
    def consecutive_failures(self) -> int:
        return self._state.consecutive_failures

    @property
    def last_error(self) -> Optional[BaseException]:
        return self._state.last_error

    @property
    def is_connected(self) -> bool:
        return self._state.connected and self._transport.is_connected

    @property
    def codec(self) -> FrameCodec:
        return self._codec

    def subscribe(self, listener: StatusListener) -> Callable[[], None]:
        """Register a status listener; returns a function that removes it."""
        return self._events.subscribe(listener)

    def get_status(self) -> Dict[str, Any]:
        """Snapshot of the connection for status displays."""
        last_error = self._state.last_error
        return {
            'connected': self.is_connected,
            'state': self._state.state.value,
            'consecutive_failures': self._state.consecutive_failures,
            'last_error': str(last_error) if last_error else None,
            'protocol': self.config.transport,
            'host': self.config.host,
            'port': self.config.port,
            'family': self.config.family,
        }

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """
        Open the transport. Does nothing when already connected.

        Raises:
            InverterConnectionError: If the socket cannot be opened
            RequestTimeoutError: If the TCP handshake times out
        """
        if self.is_connected:
            return

        self._state.state = HandlerState.CONNECTING
        self._events.publish(StatusEvent(StatusTag.CONNECTING))
        self.logger.info(
            f"Connecting to {self.config.host}:{self.config.port} "
            f"over {self.config.transport} (family {self.config.family})"
        )

        try:
            await self._transport.connect()
        except Exception as e:
            self._state.state = HandlerState.DISCONNECTED
            self._state.last_error = e
            error = e if isinstance(e, GoodWeError) else InverterConnectionError(str(e), cause=e)
            enhance_error(error, self.config.as_context())
            self.logger.error(f"Failed to connect to {self.config.host}: {error}")
            self._events.publish(StatusEvent(StatusTag.ERROR, message=str(error)))
            if error is e:
                raise
            raise error from e

        self._state.state = HandlerState.CONNECTED
        self._state.consecutive_failures = 0
        self._events.publish(StatusEvent(StatusTag.CONNECTED))
        self.logger.info(f"Connected to {self.config.host}:{self.config.port}")

    async def disconnect(self) -> None:
        """Close the transport and reset the handler state."""
        await self._transport.close()
        self._state = ProtocolHandlerState()
        self._events.publish(StatusEvent(StatusTag.DISCONNECTED))
        self.logger.info(f"Disconnected from {self.config.host}:{self.config.port}")

    async def __aenter__(self) -> 'ProtocolHandler':
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.disconnect()

    # ------------------------------------------------------------------
    # Raw commands
    # ------------------------------------------------------------------

    async def send_command(self, frame: bytes, expected_length: Optional[int] = None) -> bytes:
        """
        Send one frame and return the raw response, connecting first if needed.

        Args:
            frame: Complete request frame
            expected_length: Total response length when known

        Returns:
            Raw response bytes
        """
        if not self._transport.is_connected:
            await self.connect()
        response = await self._transport.send_command(frame, expected_length)
        self._state.consecutive_failures = 0
        return response

    async def send_command_with_retry(self, frame: bytes,
                                      expected_length: Optional[int] = None) -> bytes:
        """
        Send one frame with retry and exponential backoff.

        Returns:
            Raw response bytes

        Raises:
            Exception: The error of the last attempt once all attempts failed
        """
        try:
            return await self._retry.run(lambda: self.send_command(frame, expected_length))
        except Exception as e:
            self._state.consecutive_failures += 1
            self._state.last_error = e
            raise

    # ------------------------------------------------------------------
    # High-level reads
    # ------------------------------------------------------------------

    async def read_runtime_data(self) -> Dict[str, SensorValue]:
        """
        Read and decode the runtime sensors of the configured family.

        Returns:
            Map of sensor id to value; sensors without data are omitted

        Raises:
            ReadError: Wrapping whatever made the read fail
        """
        try:
            payload = await self._exchange(self._codec)
        except Exception as e:
            raise self._read_failed("runtime data", e) from e

        data = parse_sensor_data(
            self.family_config.sensors,
            payload,
            self.family_config.base_register,
        )
        self.logger.debug(f"Decoded {len(data)} sensors from {len(payload)} byte payload")
        return data

    async def read_device_info(self) -> DeviceInfo:
        """
        Read model, serial number and firmware versions.

        Always uses the AA55 device-info command, whatever the family.

        Raises:
            ReadError: Wrapping whatever made the read fail
        """
        try:
            payload = await self._exchange(self._device_info_codec)
            return DeviceInfo.from_payload(payload)
        except Exception as e:
            raise self._read_failed("device info", e) from e

    async def _exchange(self, codec: FrameCodec) -> bytes:
        if not self.is_connected:
            await self.connect()

        self._state.state = HandlerState.READING
        try:
            response = await self.send_command_with_retry(
                codec.build_request(),
                codec.expected_response_length,
            )
            return codec.decode_response(response)
        finally:
            if self._state.state is HandlerState.READING:
                self._state.state = HandlerState.CONNECTED

    def _read_failed(self, what: str, cause: Exception) -> ReadError:
        self._state.last_error = cause
        error = ReadError(f"Failed to read {what}: {cause}", cause=cause)
        enhance_error(error, self.config.as_context())
        self.logger.error(f"{error} ({error.cause_code})")
        self._events.publish(StatusEvent(StatusTag.ERROR, message=str(error)))
        return error


async def connect(config: ConnectionConfig, **kwargs) -> ProtocolHandler:
    """
    Create a ProtocolHandler and connect it.

    Args:
        config: Connection configuration
        **kwargs: Passed through to ProtocolHandler

    Returns:
        Connected ProtocolHandler
    """
    handler = ProtocolHandler(config, **kwargs)
    await handler.connect()
    return handler
