"""
Retry Coordinator

Bounded retry with exponential backoff around one transport send.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from .events import StatusEvent, StatusTag

T = TypeVar('T')


class RetryCoordinator:
    """
    Runs an operation up to `max_attempts` times.

    Between failed attempts it waits `min(base_delay * 2 ** (attempt - 1),
    max_delay)` seconds. Every failure is retried the same way; the caller
    decides what to wrap.
    """

    def __init__(self, max_attempts: int = 3, base_delay: float = 1.0,
                 max_delay: float = 5.0,
                 on_status: Optional[Callable[[StatusEvent], None]] = None,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        self.max_attempts = max(1, max_attempts)
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.on_status = on_status
        self._sleep = sleep
        self.logger = logging.getLogger(self.__class__.__name__)

    def backoff_delay(self, attempt: int) -> float:
        """Delay in seconds after the given (1-based) failed attempt."""
        return min(self.base_delay * 2 ** (attempt - 1), self.max_delay)

    def _emit(self, tag: StatusTag, attempt: int) -> None:
        if self.on_status is not None:
            self.on_status(StatusEvent(tag, attempt=attempt, max_retries=self.max_attempts))

    async def run(self, operation: Callable[[], Awaitable[T]]) -> T:
        """
        Await `operation()` until it succeeds or the attempts are used up.

        Args:
            operation: Zero-argument coroutine function

        Returns:
            Result of the first successful attempt

        Raises:
            Exception: The error of the last attempt
        """
        last_error: Optional[Exception] = None

        for attempt in range(1, self.max_attempts + 1):
            self._emit(StatusTag.READING, attempt)
            try:
                return await operation()
            except Exception as e:
                last_error = e
                if attempt >= self.max_attempts:
                    break

                delay = self.backoff_delay(attempt)
                self.logger.warning(
                    f"Attempt {attempt}/{self.max_attempts} failed: {e}. "
                    f"Retrying in {delay:.1f}s"
                )
                self._emit(StatusTag.RETRYING, attempt)
                await self._sleep(delay)

        self.logger.error(f"All {self.max_attempts} attempts failed: {last_error}")
        raise last_error
