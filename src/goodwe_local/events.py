"""
Status Events

Typed channel the protocol engine publishes its state transitions on.
Consumers (UIs, loggers, host integrations) subscribe a callback and decide
themselves how to render the events.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


class StatusTag(Enum):
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    READING = "reading"
    RETRYING = "retrying"
    ERROR = "error"

    def __str__(self):
        return self.value


@dataclass(frozen=True)
class StatusEvent:
    """One state transition; attempt fields are set for reading/retrying."""
    tag: StatusTag
    attempt: Optional[int] = None
    max_retries: Optional[int] = None
    message: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        event: Dict[str, Any] = {'state': self.tag.value}
        if self.attempt is not None:
            event['attempt'] = self.attempt
            event['maxRetries'] = self.max_retries
        if self.message is not None:
            event['message'] = self.message
        return event


StatusListener = Callable[[StatusEvent], None]


class StatusBroadcaster:
    """Fan-out of StatusEvents to subscribed listeners."""

    def __init__(self):
        self._listeners: List[StatusListener] = []

    def subscribe(self, listener: StatusListener) -> Callable[[], None]:
        """
        Register a listener.

        Returns:
            Function that unsubscribes the listener again
        """
        self._listeners.append(listener)
        return lambda: self.unsubscribe(listener)

    def unsubscribe(self, listener: StatusListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def publish(self, event: StatusEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.warning(f"Status listener {listener!r} failed on {event.tag}: {e}")

    def __len__(self):
        return len(self._listeners)
