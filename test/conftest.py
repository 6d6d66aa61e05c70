"""
conftest.py

Puts the project `src/` directory on sys.path and provides shared
configuration fixtures.
"""

from pathlib import Path
import sys

# Ensure project `src/` is on sys.path for all tests
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import os
import tempfile

import pytest
import yaml

from goodwe_local.models.inverter_config import ConnectionConfig


@pytest.fixture
def et_config():
    """ET hybrid inverter over UDP with instant retries."""
    return ConnectionConfig(host='192.168.1.50', family='ET', retry_delay=0.0)


@pytest.fixture
def custom_config():
    """
    Fixture that provides a factory function for creating temporary YAML
    configuration files.

    Returns:
        function: Factory function that accepts config dict and returns config path

    Example:
        def test_with_custom_config(custom_config):
            config_path = custom_config({
                'inverter': {'ip_address': '192.168.1.50', 'family': 'DT'}
            })
    """
    created_files = []

    def _create_config(config_dict):
        config_file = tempfile.NamedTemporaryFile(mode='w', suffix='.yaml', delete=False)
        yaml.dump(config_dict, config_file)
        config_file.close()
        created_files.append(config_file.name)
        return config_file.name

    yield _create_config

    # Cleanup all created files
    for file_path in created_files:
        try:
            os.unlink(file_path)
        except OSError:
            pass
