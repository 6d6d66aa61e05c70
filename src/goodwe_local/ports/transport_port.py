"""
Transport Port Interface

Defines the interface for moving request/response frames to and from an
inverter over one socket.
"""

from abc import ABC, abstractmethod
from typing import Optional


class Transport(ABC):
    """
    Abstract interface for an inverter socket.

    Implementations own exactly one UDP or TCP socket. At most one request
    may be in flight at a time; callers serialize their requests.
    """

    @abstractmethod
    async def connect(self) -> None:
        """
        Open the socket.

        Raises:
            InverterConnectionError: If the socket cannot be opened
            RequestTimeoutError: If connecting takes longer than the timeout
        """
        pass

    @abstractmethod
    async def send_command(self, frame: bytes, expected_length: Optional[int] = None) -> bytes:
        """
        Send one request frame and wait for its response.

        Args:
            frame: Complete request frame
            expected_length: Total response length in bytes when known; stream
                transports read until they have at least this many bytes

        Returns:
            Raw response bytes

        Raises:
            InverterConnectionError: If the socket is closed or writing fails
            RequestTimeoutError: If no response arrives within the timeout
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close the socket. Safe to call when not connected."""
        pass

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        """True while the socket is open."""
        pass
