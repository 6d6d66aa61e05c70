"""
goodwe-local command line interface.

Talks to one inverter (or scans the network) and prints the result as JSON:

    goodwe-local discover --timeout 3
    goodwe-local --host 192.168.1.50 --family ET read
    goodwe-local --config config/goodwe_local.yaml info
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from .discovery import DEFAULT_BROADCAST_ADDRESS, discover
from .errors import GoodWeError, enhance_error, infer_error_kind
from .handler import ProtocolHandler
from .models.inverter_config import SUPPORTED_TRANSPORTS, ConnectionConfig, load_config
from .sensors.decoder import build_sensor_metadata
from .sensors.registry import supported_families

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(log_config: Dict[str, Any], debug: bool = False) -> None:
    """
    Setup logging configuration.

    Args:
        log_config: `logging:` section of the YAML file (level, log_to_file, log_file)
        debug: Force DEBUG level
    """
    level_name = 'DEBUG' if debug else str(log_config.get('level', 'WARNING')).upper()
    log_level = getattr(logging, level_name, logging.WARNING)

    formatter = logging.Formatter(LOG_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Console handler; stdout is reserved for JSON output
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # File handler if enabled
    if log_config.get('log_to_file', False):
        log_file = Path(log_config.get('log_file', 'logs/goodwe_local.log'))
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='goodwe-local',
        description='Local-network access to GoodWe inverters (AA55, Modbus RTU/UDP, Modbus TCP)',
    )
    parser.add_argument('--config', '-c', help='YAML configuration file with an inverter section')
    parser.add_argument('--host', help='Inverter IP address (overrides config)')
    parser.add_argument('--family', help=f"Inverter family ({', '.join(supported_families())})")
    parser.add_argument('--transport', choices=SUPPORTED_TRANSPORTS, help='Transport (default: udp)')
    parser.add_argument('--port', type=int, help='Inverter port (default: 8899)')
    parser.add_argument('--timeout', type=float, help='Request timeout in seconds (default: 1.0)')
    parser.add_argument('--debug', action='store_true', help='Enable debug logging')

    subparsers = parser.add_subparsers(dest='command', required=True)

    discover_parser = subparsers.add_parser('discover', help='Scan the network for inverters')
    discover_parser.add_argument('--timeout', dest='discover_timeout', type=float, default=5.0,
                                 help='Collection window in seconds (default: 5.0)')
    discover_parser.add_argument('--broadcast', default=DEFAULT_BROADCAST_ADDRESS,
                                 help=f'Broadcast address (default: {DEFAULT_BROADCAST_ADDRESS})')

    subparsers.add_parser('info', help='Read model, serial number and firmware')

    read_parser = subparsers.add_parser('read', help='Read runtime sensor data')
    read_parser.add_argument('--sensor', action='append', dest='sensors', metavar='ID',
                             help='Only output this sensor (repeatable)')
    read_parser.add_argument('--metadata', action='store_true',
                             help='Include name, unit and category of each sensor')

    subparsers.add_parser('status', help='Connect and show the connection status')

    return parser


def build_connection_config(args: argparse.Namespace,
                            file_config: Dict[str, Any]) -> ConnectionConfig:
    """Merge the `inverter:` section of the config file with command line overrides."""
    section = dict(file_config.get('inverter') or {})

    overrides = {
        'host': args.host,
        'family': args.family,
        'transport': args.transport,
        'port': args.port,
        'timeout': args.timeout,
    }
    for key, value in overrides.items():
        if value is not None:
            section[key] = value

    return ConnectionConfig.from_yaml_config(section)


async def _discover(args: argparse.Namespace) -> Any:
    inverters = await discover(timeout=args.discover_timeout, broadcast_address=args.broadcast)
    return [inverter.as_dict() for inverter in inverters]


async def _info(handler: ProtocolHandler, args: argparse.Namespace) -> Any:
    info = await handler.read_device_info()
    return info.as_dict()


async def _read(handler: ProtocolHandler, args: argparse.Namespace) -> Any:
    data = await handler.read_runtime_data()
    if args.sensors:
        data = {sensor_id: data[sensor_id] for sensor_id in args.sensors if sensor_id in data}

    if not args.metadata:
        return data

    metadata = build_sensor_metadata(handler.family_config.sensors)
    return {
        'data': data,
        'metadata': {sensor_id: metadata[sensor_id] for sensor_id in data},
    }


async def _status(handler: ProtocolHandler, args: argparse.Namespace) -> Any:
    return handler.get_status()


_HANDLER_COMMANDS = {
    'info': _info,
    'read': _read,
    'status': _status,
}


def _print_error(error: Exception, config: Optional[ConnectionConfig]) -> None:
    if isinstance(error, GoodWeError):
        if not error.suggestions:
            enhance_error(error, config.as_context() if config else {})
        payload = error.as_dict()
    else:
        payload = {'code': infer_error_kind(error).value, 'message': str(error)}
    print(json.dumps({'error': payload}, indent=2), file=sys.stderr)


async def run(args: argparse.Namespace, file_config: Optional[Dict[str, Any]] = None) -> int:
    """
    Execute the parsed command.

    Args:
        args: Parsed command line
        file_config: Contents of the --config file, if any

    Returns:
        Process exit code
    """
    logger = logging.getLogger('goodwe-local')
    config: Optional[ConnectionConfig] = None

    try:
        if args.command == 'discover':
            result = await _discover(args)
        else:
            config = build_connection_config(args, file_config or {})
            async with ProtocolHandler(config) as handler:
                result = await _HANDLER_COMMANDS[args.command](handler, args)
    except (GoodWeError, OSError, ValueError) as e:
        logger.debug(f"Command '{args.command}' failed", exc_info=True)
        _print_error(e, config)
        return 1

    print(json.dumps(result, indent=2, default=str))
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Console script entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    file_config: Dict[str, Any] = {}
    if args.config:
        try:
            file_config = load_config(args.config)
        except (FileNotFoundError, ValueError) as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
    setup_logging(file_config.get('logging') or {}, args.debug)

    return asyncio.run(run(args, file_config))


if __name__ == "__main__":
    sys.exit(main())
