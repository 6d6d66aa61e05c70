"""
Inverter Connection Configuration

Data structures for the connection to one GoodWe inverter, loadable from
the `inverter:` section of a YAML configuration file.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import yaml

from ..sensors.registry import get_default_comm_addr, get_family_config, normalize_family

SUPPORTED_TRANSPORTS = ("udp", "tcp", "modbus")
AUTO_COMM_ADDR = "auto"


def _parse_comm_addr(value: Any) -> Union[int, str]:
    """
    Accept 0xF7, 247, "0xF7", "247" or "auto".

    Unparseable values are returned unchanged for validate() to report.
    """
    if value is None:
        return AUTO_COMM_ADDR
    try:
        if isinstance(value, str):
            text = value.strip().lower()
            if text in ("", AUTO_COMM_ADDR):
                return AUTO_COMM_ADDR
            return int(text, 0)
        return int(value)
    except (TypeError, ValueError):
        return value


@dataclass
class ConnectionConfig:
    """
    Configuration for the connection to one inverter.

    Durations are in seconds. `retries` is the maximum number of attempts
    per request (1 = no retry).
    """

    host: str
    port: int = 8899
    transport: str = "udp"
    family: str = "ET"
    timeout: float = 1.0
    retries: int = 3
    retry_delay: float = 1.0
    max_retry_delay: float = 5.0
    comm_addr: Union[int, str] = AUTO_COMM_ADDR

    def __post_init__(self):
        self.transport = (self.transport or "udp").strip().lower()
        self.family = normalize_family(self.family)
        self.comm_addr = _parse_comm_addr(self.comm_addr)

    @classmethod
    def from_yaml_config(cls, config_dict: Dict[str, Any]) -> 'ConnectionConfig':
        """
        Create ConnectionConfig from YAML configuration dict.

        Accepts either the whole file (with an `inverter:` section) or the
        section itself. `ip_address` and `protocol` are accepted as aliases
        of `host` and `transport`.

        Args:
            config_dict: Configuration dictionary from YAML

        Returns:
            ConnectionConfig instance
        """
        section = config_dict.get('inverter', config_dict) or {}

        return cls(
            host=section.get('host', section.get('ip_address', '')),
            port=int(section.get('port', 8899)),
            transport=section.get('transport', section.get('protocol', 'udp')),
            family=section.get('family', 'ET'),
            timeout=float(section.get('timeout', 1.0)),
            retries=int(section.get('retries', 3)),
            retry_delay=float(section.get('retry_delay', 1.0)),
            max_retry_delay=float(section.get('max_retry_delay', 5.0)),
            comm_addr=section.get('comm_addr', AUTO_COMM_ADDR),
        )

    @property
    def is_tcp(self) -> bool:
        return self.transport in ("tcp", "modbus")

    @property
    def resolved_comm_addr(self) -> int:
        """Explicit comm address, or the family default when set to "auto"."""
        if self.comm_addr == AUTO_COMM_ADDR:
            return get_default_comm_addr(self.family)
        return int(self.comm_addr)

    def validate(self) -> Tuple[bool, Optional[str]]:
        """
        Validate configuration.

        Returns:
            Tuple of (is_valid, error_message)
        """
        if not self.host:
            return False, "Host must be specified"

        if self.port <= 0 or self.port > 65535:
            return False, f"Invalid port number: {self.port}"

        if self.transport not in SUPPORTED_TRANSPORTS:
            return False, f"Unsupported transport: {self.transport}"

        if get_family_config(self.family) is None:
            return False, f"Unsupported inverter family: {self.family}"

        if self.timeout <= 0:
            return False, f"Timeout must be positive: {self.timeout}"

        if self.retries < 1:
            return False, f"Retries must be at least 1: {self.retries}"

        if self.retry_delay < 0 or self.max_retry_delay < 0:
            return False, "Retry delays must be non-negative"

        if self.comm_addr != AUTO_COMM_ADDR and not (
                isinstance(self.comm_addr, int) and 0 <= self.comm_addr <= 0xFF):
            return False, f"Invalid comm address: {self.comm_addr}"

        return True, None

    def as_context(self) -> Dict[str, Any]:
        """Connection context attached to surfaced errors."""
        return {
            'host': self.host,
            'port': self.port,
            'protocol': self.transport,
            'family': self.family,
            'timeout': self.timeout,
        }


def load_config(config_path: Union[str, Path]) -> Dict[str, Any]:
    """
    Load configuration from YAML file.

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file is not valid YAML
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    try:
        with open(path, 'r', encoding='utf-8') as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML configuration: {e}")

    return config or {}
