#!/usr/bin/env python3
"""
Tests for the sensor registry and decoder.
"""

import struct

import pytest

from goodwe_local.errors import UnsupportedFamilyError
from goodwe_local.sensors import (
    DT_FAMILY,
    ES_FAMILY,
    ET_FAMILY,
    FamilyProtocol,
    SensorDefinition,
    SensorKind,
    SensorType,
    TYPE_READERS,
    build_sensor_metadata,
    get_default_comm_addr,
    get_family_config,
    get_sensors,
    parse_sensor_data,
    supported_families,
)

from inverter_fakes import register_payload


def et_offset(register: int) -> int:
    return (register - 35100) * 2


def decode_et(values):
    payload = register_payload(125, values)
    return parse_sensor_data(ET_FAMILY.sensors, payload, ET_FAMILY.base_register)


class TestRegistry:
    """Test family lookup and table invariants."""

    @pytest.mark.parametrize("family", ["ET", "EH", "BT", "BH", "GEH"])
    def test_hybrid_aliases(self, family):
        assert get_family_config(family) is ET_FAMILY

    @pytest.mark.parametrize("family", ["DT", "MS", "D-NS", "XS"])
    def test_three_phase_aliases(self, family):
        assert get_family_config(family) is DT_FAMILY

    @pytest.mark.parametrize("family", ["ES", "EM", "BP"])
    def test_storage_aliases(self, family):
        assert get_family_config(family) is ES_FAMILY

    def test_lookup_is_case_insensitive(self):
        assert get_family_config("et") is ET_FAMILY

    def test_unknown_family(self):
        assert get_family_config("XYZ") is None
        with pytest.raises(UnsupportedFamilyError):
            get_sensors("XYZ")

    def test_supported_families(self):
        families = supported_families()
        assert len(families) == 12
        assert "D-NS" in families

    def test_register_windows(self):
        assert (ET_FAMILY.register_start, ET_FAMILY.register_count) == (35100, 125)
        assert (DT_FAMILY.register_start, DT_FAMILY.register_count) == (30100, 73)
        assert ET_FAMILY.expected_payload_length == 250
        assert ES_FAMILY.protocol is FamilyProtocol.AA55
        assert ES_FAMILY.base_register is None

    @pytest.mark.parametrize("family_config", [ET_FAMILY, DT_FAMILY, ES_FAMILY])
    def test_sensor_ids_unique(self, family_config):
        ids = [sensor.id for sensor in family_config.sensors]
        assert len(ids) == len(set(ids))

    @pytest.mark.parametrize("family_config", [ET_FAMILY, DT_FAMILY])
    def test_modbus_sensors_inside_read_window(self, family_config):
        end = family_config.register_start + family_config.register_count
        for sensor in family_config.sensors:
            if sensor.offset is None:
                continue
            assert family_config.register_start <= sensor.offset
            assert sensor.offset + sensor.size // 2 <= end, sensor.id

    def test_table_sizes(self):
        assert len(ET_FAMILY.sensors) >= 60
        assert len(DT_FAMILY.sensors) >= 30
        assert len(ES_FAMILY.sensors) >= 35

    def test_sensor_lookup(self):
        assert ET_FAMILY.sensor("vpv1").offset == 35103
        assert ET_FAMILY.sensor("missing") is None

    def test_every_type_has_a_reader(self):
        assert set(TYPE_READERS) == set(SensorType)


class TestDefaultCommAddr:
    """Test comm address defaults."""

    @pytest.mark.parametrize("family", ["ET", "EH", "BT", "BH", "GEH", "ES", "EM", "BP"])
    def test_hybrid_and_storage(self, family):
        assert get_default_comm_addr(family) == 0xF7

    @pytest.mark.parametrize("family", ["DT", "MS", "D-NS", "XS"])
    def test_three_phase(self, family):
        assert get_default_comm_addr(family) == 0x7F

    def test_unknown_falls_back(self):
        assert get_default_comm_addr("NOPE") == 0xF7
        assert get_default_comm_addr(None) == 0xF7


class TestDecoder:
    """Test payload decoding."""

    def test_pv1_voltage(self):
        """Test 245.5 V at the PV1 voltage register (base + 6 bytes)."""
        data = decode_et({6: struct.pack('>H', 2455)})
        assert data['vpv1'] == pytest.approx(245.5)

    def test_scaling(self):
        data = decode_et({
            et_offset(35104): struct.pack('>H', 83),        # ipv1
            et_offset(35105): struct.pack('>I', 2040),      # ppv1
            et_offset(35123): struct.pack('>H', 5001),      # fgrid
            et_offset(35191): struct.pack('>I', 123456),    # e_total
        })

        assert data['ipv1'] == pytest.approx(8.3)
        assert data['ppv1'] == 2040
        assert data['fgrid'] == pytest.approx(50.01)
        assert data['e_total'] == pytest.approx(12345.6)

    def test_signed_values(self):
        data = decode_et({
            et_offset(35125): struct.pack('>h', -200),      # pgrid
            et_offset(35181): struct.pack('>h', -125),      # ibattery1
            et_offset(35182): struct.pack('>i', -3000),     # pbattery1
        })

        assert data['pgrid'] == -200
        assert data['ibattery1'] == pytest.approx(-12.5)
        assert data['pbattery1'] == -3000

    def test_sentinels_are_omitted(self):
        data = decode_et({
            et_offset(35103): b'\xff\xff',                  # vpv1 (Voltage)
            et_offset(35104): b'\xff\xff',                  # ipv1 (Current)
            et_offset(35136): b'\xff\xff',                  # grid_mode (Integer)
            et_offset(35105): b'\xff\xff\xff\xff',          # ppv1 (Power4)
            et_offset(35189): b'\xff\xff\xff\xff',          # error_codes (Long)
            et_offset(35125): b'\xff\xff',                  # pgrid (PowerS)
        })

        for sensor_id in ('vpv1', 'ipv1', 'grid_mode', 'ppv1', 'error_codes', 'pgrid'):
            assert sensor_id not in data
        assert data['vpv2'] == 0

    def test_temperature(self):
        data = decode_et({
            et_offset(35174): struct.pack('>h', 253),
            et_offset(35175): struct.pack('>h', -50),
        })
        assert data['temperature_air'] == pytest.approx(25.3)
        assert data['temperature_module'] == pytest.approx(-5.0)

    @pytest.mark.parametrize("raw", [b'\xff\xff', struct.pack('>h', 32767)])
    def test_temperature_sentinels(self, raw):
        data = decode_et({et_offset(35176): raw})
        assert 'temperature' not in data

    def test_timestamp(self):
        data = decode_et({0: bytes([24, 1, 15, 10, 30, 0])})
        assert data['timestamp'] == "2024-01-15T10:30:00"

    def test_invalid_timestamp_is_omitted(self):
        data = decode_et({0: bytes([24, 13, 40, 10, 30, 0])})
        assert 'timestamp' not in data

    def test_derived_sensor_is_skipped(self):
        assert 'battery_soc' not in decode_et({})

    def test_out_of_bounds_offsets_are_skipped(self):
        payload = struct.pack('>HHHHH', 0x1800, 0x0000, 0x0000, 2455, 50)
        data = parse_sensor_data(ET_FAMILY.sensors, payload, ET_FAMILY.base_register)

        assert data['vpv1'] == pytest.approx(245.5)
        assert data['ipv1'] == pytest.approx(5.0)
        assert 'ppv1' not in data
        assert 'e_total' not in data

    def test_empty_payload(self):
        assert parse_sensor_data(ET_FAMILY.sensors, b'', ET_FAMILY.base_register) == {}

    def test_pure(self):
        payload = register_payload(125, {6: struct.pack('>H', 2455)})
        snapshot = bytes(payload)

        first = parse_sensor_data(ET_FAMILY.sensors, payload, ET_FAMILY.base_register)
        second = parse_sensor_data(ET_FAMILY.sensors, payload, ET_FAMILY.base_register)

        assert first == second
        assert payload == snapshot

    def test_dt_family(self):
        payload = register_payload(73, {
            (30118 - 30100) * 2: struct.pack('>H', 2301),   # vgrid1
            (30133 - 30100) * 2: struct.pack('>I', 5200),   # apparent_power
            (30135 - 30100) * 2: struct.pack('>i', -150),   # reactive_power
            (30139 - 30100) * 2: struct.pack('>h', 990),    # power_factor
        })
        data = parse_sensor_data(DT_FAMILY.sensors, payload, DT_FAMILY.base_register)

        assert data['vgrid1'] == pytest.approx(230.1)
        assert data['apparent_power'] == 5200
        assert data['reactive_power'] == -150
        assert data['power_factor'] == pytest.approx(0.99)

    def test_es_family_byte_offsets(self):
        payload = bytearray(93)
        payload[0:2] = struct.pack('>H', 3502)      # vpv1
        payload[26] = 0xFF                           # battery_soc (Byte, never absent)
        payload[29] = 98                             # battery_soh
        payload[75:77] = struct.pack('>h', -420)    # total_power
        data = parse_sensor_data(ES_FAMILY.sensors, bytes(payload), ES_FAMILY.base_register)

        assert data['vpv1'] == pytest.approx(350.2)
        assert data['battery_soc'] == 255
        assert data['battery_soh'] == 98
        assert data['total_power'] == -420

    def test_byte_halves_and_decimal_scale(self):
        sensors = (
            SensorDefinition("hi", 0, SensorType.BYTE_H, 2, None, "", "High"),
            SensorDefinition("lo", 0, SensorType.BYTE_L, 2, None, "", "Low"),
            SensorDefinition("pf", 2, SensorType.DECIMAL, 2, None, "", "PF", scale=100),
            SensorDefinition("signed", 4, SensorType.INTEGER_S, 2, None, "", "Signed"),
            SensorDefinition("long_s", 6, SensorType.LONG_S, 4, None, "", "Long"),
        )
        payload = bytes([0x12, 0x34]) + struct.pack('>h', -95) + struct.pack('>h', -2)
        payload += struct.pack('>i', -70000)
        data = parse_sensor_data(sensors, payload, None)

        assert data == {
            'hi': 0x12,
            'lo': 0x34,
            'pf': pytest.approx(-0.95),
            'signed': -2,
            'long_s': -70000,
        }


class TestMetadata:
    """Test sensor metadata for display grouping."""

    def test_metadata_fields(self):
        metadata = build_sensor_metadata(ET_FAMILY.sensors)

        assert metadata['vpv1'] == {
            'name': 'PV1 Voltage',
            'unit': 'V',
            'kind': 'PV',
            'category': 'pv',
        }

    def test_categories(self):
        metadata = build_sensor_metadata(ET_FAMILY.sensors)

        assert metadata['vgrid']['category'] == 'grid'
        assert metadata['active_power']['category'] == 'grid'
        assert metadata['backup_p1']['category'] == 'ups'
        assert metadata['vbattery1']['category'] == 'battery'

    def test_sensor_without_kind(self):
        metadata = build_sensor_metadata(ET_FAMILY.sensors)

        assert metadata['temperature_module']['kind'] == 'STATUS'
        assert metadata['temperature_module']['category'] == 'status'

    def test_covers_every_sensor(self):
        assert set(build_sensor_metadata(DT_FAMILY.sensors)) == {s.id for s in DT_FAMILY.sensors}

    def test_kind_enum_values(self):
        assert SensorKind.BAT.value == 'BAT'
