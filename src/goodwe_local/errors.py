"""
GoodWe Protocol Errors

Closed error taxonomy for the protocol engine plus contextual,
actionable suggestions for the most common connection problems.
"""

import errno
from enum import Enum
from typing import Any, Callable, Dict, List, Optional


class ErrorKind(Enum):
    """Machine-readable error codes surfaced to callers."""
    VALIDATION_ERROR = "VALIDATION_ERROR"
    TIMEOUT = "TIMEOUT"
    CONNECTION_ERROR = "CONNECTION_ERROR"
    UNSUPPORTED_FAMILY = "UNSUPPORTED_FAMILY"
    READ_ERROR = "READ_ERROR"
    PROTOCOL_ERROR = "PROTOCOL_ERROR"
    UNKNOWN = "UNKNOWN"

    def __str__(self):
        return self.value


class GoodWeError(Exception):
    """
    Base class for all protocol engine errors.

    Attributes:
        kind: ErrorKind of this error
        cause: Wrapped underlying exception (if any)
        details: Connection context (host, port, protocol, family)
        suggestions: Troubleshooting hints for the user
    """

    kind = ErrorKind.UNKNOWN

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause
        self.details: Dict[str, Any] = {}
        self.suggestions: List[str] = []

    @property
    def code(self) -> str:
        return self.kind.value

    def as_dict(self) -> Dict[str, Any]:
        return {
            'code': self.code,
            'message': str(self),
            'cause': str(self.cause) if self.cause else None,
            'details': dict(self.details),
            'suggestions': list(self.suggestions),
        }


class ValidationError(GoodWeError):
    """Bad header, function code, byte count, checksum or truncated frame."""
    kind = ErrorKind.VALIDATION_ERROR


class RequestTimeoutError(GoodWeError, TimeoutError):
    """No response within the configured window."""
    kind = ErrorKind.TIMEOUT


class InverterConnectionError(GoodWeError, ConnectionError):
    """Socket bind/connect/write failure."""
    kind = ErrorKind.CONNECTION_ERROR


class UnsupportedFamilyError(GoodWeError, ValueError):
    """Unknown inverter family code."""
    kind = ErrorKind.UNSUPPORTED_FAMILY

    def __init__(self, family: str):
        super().__init__(f"Unsupported inverter family: {family}")
        self.family = family


class ReadError(GoodWeError):
    """A high-level read failed; `cause` carries the underlying error."""
    kind = ErrorKind.READ_ERROR

    @property
    def cause_code(self) -> str:
        if isinstance(self.cause, GoodWeError):
            return self.cause.code
        return infer_error_kind(self.cause).value if self.cause else ErrorKind.UNKNOWN.value


# Connection-refused/reset/unreachable keep their own suggestion sets even
# though they share ErrorKind.CONNECTION_ERROR.
_REFUSED = "ECONNREFUSED"
_RESET = "ECONNRESET"
_UNREACHABLE = "EHOSTUNREACH"


def infer_error_kind(exc: Optional[BaseException]) -> ErrorKind:
    """
    Map an arbitrary exception to an ErrorKind.

    Args:
        exc: Exception raised anywhere below the handler

    Returns:
        Best matching ErrorKind (UNKNOWN if nothing matches)
    """
    if exc is None:
        return ErrorKind.UNKNOWN
    if isinstance(exc, GoodWeError):
        return exc.kind
    if isinstance(exc, TimeoutError):
        return ErrorKind.TIMEOUT
    if isinstance(exc, (ConnectionError, OSError)):
        return ErrorKind.CONNECTION_ERROR

    msg = str(exc).lower()
    if "timeout" in msg or "timed out" in msg:
        return ErrorKind.TIMEOUT
    if "refused" in msg or "reset" in msg or "unreachable" in msg:
        return ErrorKind.CONNECTION_ERROR
    if "unsupported" in msg and "family" in msg:
        return ErrorKind.UNSUPPORTED_FAMILY
    if "invalid" in msg and ("response" in msg or "modbus" in msg or "aa55" in msg):
        return ErrorKind.PROTOCOL_ERROR
    return ErrorKind.UNKNOWN


def _connection_flavour(exc: BaseException) -> Optional[str]:
    """Narrow a connection failure to refused/reset/unreachable."""
    root = exc.cause if isinstance(exc, GoodWeError) and exc.cause else exc
    if isinstance(root, ConnectionRefusedError):
        return _REFUSED
    if isinstance(root, ConnectionResetError):
        return _RESET
    if isinstance(root, OSError) and root.errno in (errno.EHOSTUNREACH, errno.ENETUNREACH):
        return _UNREACHABLE

    msg = str(root).lower()
    if "refused" in msg:
        return _REFUSED
    if "reset" in msg:
        return _RESET
    if "unreachable" in msg:
        return _UNREACHABLE
    return None


def _timeout_suggestions(ctx: Dict[str, Any]) -> List[str]:
    suggestions = [
        f"Verify inverter at {ctx.get('host') or 'configured address'} is powered on",
        "Check network connection to inverter",
        "Ensure inverter is on the same network segment",
    ]
    if ctx.get('timeout'):
        suggestions.append(f"Try increasing timeout above {ctx['timeout']}s in configuration")
    return suggestions


def _read_suggestions(ctx: Dict[str, Any]) -> List[str]:
    suggestions = ["Check that the inverter is responding to commands"]
    if ctx.get('family'):
        suggestions.append(f"Verify inverter family is set correctly (currently: {ctx['family']})")
    suggestions.append("Try power-cycling the inverter's communication module")
    return suggestions


def _protocol_suggestions(ctx: Dict[str, Any]) -> List[str]:
    suggestions = ["The inverter response did not match the expected format"]
    if ctx.get('family'):
        suggestions.append(
            f"Verify inverter family setting matches your model (currently: {ctx['family']})"
        )
    if ctx.get('protocol'):
        suggestions.append(f"Try a different protocol (currently: {ctx['protocol']})")
    return suggestions


def _unsupported_family_suggestions(ctx: Dict[str, Any]) -> List[str]:
    return [
        f"Inverter family \"{ctx.get('family') or 'unknown'}\" is not supported",
        "Supported families: ET, EH, BT, BH, GEH, ES, EM, BP, DT, MS, D-NS, XS",
        "Check your inverter configuration",
    ]


SUGGESTION_GENERATORS: Dict[str, Callable[[Dict[str, Any]], List[str]]] = {
    ErrorKind.TIMEOUT.value: _timeout_suggestions,
    _REFUSED: lambda ctx: [
        f"Verify inverter IP address {ctx.get('host') or ''} is correct",
        f"Check that port {ctx.get('port') or 8899} is accessible on the inverter",
        "Ensure no firewall is blocking the connection",
        "Try using UDP protocol if TCP is failing",
    ],
    _RESET: lambda ctx: [
        f"Connection to {ctx.get('host') or 'inverter'} was reset",
        "The inverter may have dropped the connection",
        "Try reducing polling frequency to avoid overloading the inverter",
    ],
    _UNREACHABLE: lambda ctx: [
        f"Host {ctx.get('host') or ''} is unreachable",
        "Verify the inverter is on the same network",
        "Check your network routing and gateway settings",
        "Ensure the inverter's WiFi/LAN module is functioning",
    ],
    ErrorKind.READ_ERROR.value: _read_suggestions,
    ErrorKind.VALIDATION_ERROR.value: _protocol_suggestions,
    ErrorKind.PROTOCOL_ERROR.value: _protocol_suggestions,
    ErrorKind.UNSUPPORTED_FAMILY.value: _unsupported_family_suggestions,
}


def _default_suggestions(ctx: Dict[str, Any]) -> List[str]:
    suggestions = ["Check inverter power and network connectivity"]
    if ctx.get('host'):
        suggestions.append(f"Verify inverter is reachable at {ctx['host']}")
    return suggestions


def enhance_error(exc: GoodWeError, ctx: Dict[str, Any]) -> GoodWeError:
    """
    Attach connection context and troubleshooting suggestions to an error.

    For ReadError the suggestions are chosen from the wrapped cause, so a
    timeout inside a read still tells the user to check the network.

    Args:
        exc: Error about to be surfaced to the caller
        ctx: Context with host, port, protocol, family, timeout

    Returns:
        The same error instance, enriched in place
    """
    exc.details = {
        'host': ctx.get('host'),
        'port': ctx.get('port'),
        'protocol': ctx.get('protocol'),
        'family': ctx.get('family'),
    }

    target: BaseException = exc
    if isinstance(exc, ReadError) and exc.cause is not None:
        target = exc.cause

    kind = infer_error_kind(target)
    key = kind.value
    if kind is ErrorKind.CONNECTION_ERROR:
        key = _connection_flavour(target) or key
    elif kind is ErrorKind.UNKNOWN and isinstance(exc, ReadError):
        key = ErrorKind.READ_ERROR.value

    generator = SUGGESTION_GENERATORS.get(key, _default_suggestions)
    exc.suggestions = generator(ctx)
    return exc
