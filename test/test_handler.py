#!/usr/bin/env python3
"""
Tests for the ProtocolHandler state machine.

The handler is driven through a scripted FakeTransport, so these tests never
touch a socket.
"""

import struct
from unittest.mock import AsyncMock, patch

import pytest

from goodwe_local.errors import (
    InverterConnectionError,
    ReadError,
    RequestTimeoutError,
    UnsupportedFamilyError,
    ValidationError,
)
from goodwe_local.events import StatusTag
from goodwe_local.handler import ProtocolHandler, connect
from goodwe_local.models.inverter_config import ConnectionConfig
from goodwe_local.models.inverter_data import HandlerState
from goodwe_local.protocol.codecs import ModbusRtuCodec, ModbusTcpCodec
from goodwe_local.protocol.frames import (
    AA55_COMMANDS,
    TransactionIdSequence,
    create_rtu_read_request,
)

from inverter_fakes import (
    FakeTransport,
    aa55_response,
    device_info_payload,
    register_payload,
    rtu_response,
    tcp_response,
)

ET_PAYLOAD = register_payload(125, {6: struct.pack('>H', 2455)})


def make_handler(config, responses=None, **kwargs):
    transport = FakeTransport(responses)
    sleep = AsyncMock()
    handler = ProtocolHandler(config, transport=transport, sleep=sleep, **kwargs)
    return handler, transport, sleep


class TestConstruction:
    """Test handler construction."""

    def test_unsupported_family(self):
        with pytest.raises(UnsupportedFamilyError):
            ProtocolHandler(ConnectionConfig(host='192.168.1.50', family='QQ'),
                            transport=FakeTransport())

    def test_invalid_config(self):
        with pytest.raises(ValueError, match="Invalid connection configuration"):
            ProtocolHandler(ConnectionConfig(host=''), transport=FakeTransport())

    def test_unparseable_comm_addr(self):
        config = ConnectionConfig(host='192.168.1.50', comm_addr='bogus')

        with pytest.raises(ValueError, match="Invalid comm address: bogus"):
            ProtocolHandler(config, transport=FakeTransport())

    def test_codec_selected_from_config(self, et_config):
        handler, _, _ = make_handler(et_config)
        assert isinstance(handler.codec, ModbusRtuCodec)

    def test_default_transport_from_factory(self, et_config):
        with patch('goodwe_local.handler.create_transport') as create_transport:
            handler = ProtocolHandler(et_config)

        create_transport.assert_called_once_with(et_config)
        assert handler.state is HandlerState.DISCONNECTED

    def test_initial_status(self, et_config):
        handler, _, _ = make_handler(et_config)

        assert handler.get_status() == {
            'connected': False,
            'state': 'disconnected',
            'consecutive_failures': 0,
            'last_error': None,
            'protocol': 'udp',
            'host': '192.168.1.50',
            'port': 8899,
            'family': 'ET',
        }


class TestConnection:
    """Test connect/disconnect transitions."""

    @pytest.mark.asyncio
    async def test_connect(self, et_config):
        handler, transport, _ = make_handler(et_config)
        events = []
        handler.subscribe(events.append)

        await handler.connect()

        assert handler.state is HandlerState.CONNECTED
        assert handler.is_connected is True
        assert [e.tag for e in events] == [StatusTag.CONNECTING, StatusTag.CONNECTED]
        assert transport.connect_calls == 1

    @pytest.mark.asyncio
    async def test_connect_is_noop_when_connected(self, et_config):
        handler, transport, _ = make_handler(et_config)

        await handler.connect()
        await handler.connect()

        assert transport.connect_calls == 1

    @pytest.mark.asyncio
    async def test_connect_failure(self, et_config):
        handler, transport, _ = make_handler(et_config)
        transport.connect_error = InverterConnectionError("refused", cause=ConnectionRefusedError())
        events = []
        handler.subscribe(events.append)

        with pytest.raises(InverterConnectionError) as exc_info:
            await handler.connect()

        assert handler.state is HandlerState.DISCONNECTED
        assert events[-1].tag is StatusTag.ERROR
        assert exc_info.value.details['host'] == '192.168.1.50'
        assert "Check that port 8899 is accessible on the inverter" in exc_info.value.suggestions

    @pytest.mark.asyncio
    async def test_connect_wraps_os_errors(self, et_config):
        handler, transport, _ = make_handler(et_config)
        transport.connect_error = OSError("Network is down")

        with pytest.raises(InverterConnectionError) as exc_info:
            await handler.connect()

        assert isinstance(exc_info.value.cause, OSError)

    @pytest.mark.asyncio
    async def test_disconnect_resets_state(self, et_config):
        handler, transport, _ = make_handler(et_config, [RequestTimeoutError("t")] * 3)
        await handler.connect()
        with pytest.raises(ReadError):
            await handler.read_runtime_data()
        events = []
        handler.subscribe(events.append)

        await handler.disconnect()

        assert handler.state is HandlerState.DISCONNECTED
        assert handler.consecutive_failures == 0
        assert handler.last_error is None
        assert transport.close_calls == 1
        assert [e.tag for e in events] == [StatusTag.DISCONNECTED]

    @pytest.mark.asyncio
    async def test_reconnect_after_disconnect(self, et_config):
        handler, transport, _ = make_handler(et_config)

        await handler.connect()
        await handler.disconnect()
        await handler.connect()

        assert transport.connect_calls == 2
        assert handler.state is HandlerState.CONNECTED

    @pytest.mark.asyncio
    async def test_async_context_manager(self, et_config):
        handler, transport, _ = make_handler(et_config)

        async with handler as session:
            assert session is handler
            assert handler.is_connected

        assert handler.state is HandlerState.DISCONNECTED
        assert transport.close_calls == 1

    @pytest.mark.asyncio
    async def test_module_level_connect(self, et_config):
        transport = FakeTransport()

        handler = await connect(et_config, transport=transport)

        assert handler.is_connected
        assert transport.connect_calls == 1


class TestReadRuntimeData:
    """Test runtime data reads."""

    @pytest.mark.asyncio
    async def test_et_over_udp(self, et_config):
        handler, transport, _ = make_handler(et_config, [rtu_response(ET_PAYLOAD)])

        data = await handler.read_runtime_data()

        assert data['vpv1'] == pytest.approx(245.5)
        assert transport.sent == [create_rtu_read_request(0xF7, 35100, 125)]
        assert transport.expected_lengths == [257]
        assert handler.state is HandlerState.CONNECTED

    @pytest.mark.asyncio
    async def test_connects_on_demand(self, et_config):
        handler, transport, _ = make_handler(et_config, [rtu_response(ET_PAYLOAD)])
        events = []
        handler.subscribe(events.append)

        await handler.read_runtime_data()

        assert transport.connect_calls == 1
        assert [e.tag for e in events] == [
            StatusTag.CONNECTING,
            StatusTag.CONNECTED,
            StatusTag.READING,
        ]

    @pytest.mark.asyncio
    async def test_et_over_tcp(self):
        config = ConnectionConfig(host='192.168.1.50', family='ET', transport='tcp')
        handler, transport, _ = make_handler(config, [tcp_response(ET_PAYLOAD, transaction_id=1)])

        data = await handler.read_runtime_data()

        assert isinstance(handler.codec, ModbusTcpCodec)
        assert data['vpv1'] == pytest.approx(245.5)
        assert transport.sent[0][0:2] == b'\x00\x01'
        assert transport.expected_lengths == [259]

    @pytest.mark.asyncio
    async def test_dt_uses_three_phase_comm_addr(self):
        config = ConnectionConfig(host='192.168.1.60', family='DT')
        payload = register_payload(73, {(30118 - 30100) * 2: struct.pack('>H', 2301)})
        handler, transport, _ = make_handler(config, [rtu_response(payload, comm_addr=0x7F)])

        data = await handler.read_runtime_data()

        assert transport.sent == [create_rtu_read_request(0x7F, 30100, 73)]
        assert data['vgrid1'] == pytest.approx(230.1)

    @pytest.mark.asyncio
    async def test_es_uses_aa55(self):
        config = ConnectionConfig(host='192.168.1.70', family='ES')
        payload = bytearray(93)
        payload[26] = 87
        handler, transport, _ = make_handler(config, [aa55_response("0186", bytes(payload))])

        data = await handler.read_runtime_data()

        assert transport.sent == [AA55_COMMANDS.READ_RUNNING_DATA_ES]
        assert transport.expected_lengths == [None]
        assert data['battery_soc'] == 87

    @pytest.mark.asyncio
    async def test_retry_then_success(self, et_config):
        handler, transport, sleep = make_handler(
            et_config, [RequestTimeoutError("t"), rtu_response(ET_PAYLOAD)]
        )
        events = []
        handler.subscribe(events.append)

        data = await handler.read_runtime_data()

        assert 'vpv1' in data
        assert len(transport.sent) == 2
        sleep.assert_awaited_once_with(0.0)
        assert StatusTag.RETRYING in [e.tag for e in events]
        assert handler.consecutive_failures == 0

    @pytest.mark.asyncio
    async def test_backoff_uses_configured_delays(self):
        config = ConnectionConfig(host='192.168.1.50', retries=3)
        handler, _, sleep = make_handler(config, [RequestTimeoutError("t")] * 3)

        with pytest.raises(ReadError):
            await handler.read_runtime_data()

        assert [c.args[0] for c in sleep.await_args_list] == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_all_attempts_fail(self, et_config):
        timeout = RequestTimeoutError("No response")
        handler, transport, _ = make_handler(et_config, [timeout, timeout, timeout])
        events = []
        handler.subscribe(events.append)

        with pytest.raises(ReadError) as exc_info:
            await handler.read_runtime_data()

        error = exc_info.value
        assert error.code == 'READ_ERROR'
        assert error.cause is timeout
        assert error.cause_code == 'TIMEOUT'
        assert "Verify inverter at 192.168.1.50 is powered on" in error.suggestions
        assert error.details['family'] == 'ET'
        assert len(transport.sent) == 3
        assert handler.consecutive_failures == 1
        assert handler.last_error is timeout
        assert handler.get_status()['last_error'] == "No response"
        assert events[-1].tag is StatusTag.ERROR
        assert handler.state is HandlerState.CONNECTED

    @pytest.mark.asyncio
    async def test_consecutive_failures_accumulate_and_reset(self, et_config):
        handler, _, _ = make_handler(
            et_config,
            [RequestTimeoutError("t")] * 6 + [rtu_response(ET_PAYLOAD)],
        )

        for _ in range(2):
            with pytest.raises(ReadError):
                await handler.read_runtime_data()
        assert handler.consecutive_failures == 2

        await handler.read_runtime_data()
        assert handler.consecutive_failures == 0

    @pytest.mark.asyncio
    async def test_validation_failure_is_not_resent(self, et_config):
        corrupted = bytearray(rtu_response(ET_PAYLOAD))
        corrupted[10] ^= 0xFF
        handler, transport, _ = make_handler(et_config, [bytes(corrupted)])

        with pytest.raises(ReadError) as exc_info:
            await handler.read_runtime_data()

        assert isinstance(exc_info.value.cause, ValidationError)
        assert exc_info.value.cause_code == 'VALIDATION_ERROR'
        assert len(transport.sent) == 1

    @pytest.mark.asyncio
    async def test_shared_transaction_sequence(self):
        config = ConnectionConfig(host='192.168.1.50', transport='tcp')
        sequence = TransactionIdSequence()
        first, first_transport, _ = make_handler(
            config, [tcp_response(ET_PAYLOAD, 1)], sequence=sequence
        )
        second, second_transport, _ = make_handler(
            config, [tcp_response(ET_PAYLOAD, 2)], sequence=sequence
        )

        await first.read_runtime_data()
        await second.read_runtime_data()

        assert first_transport.sent[0][0:2] == b'\x00\x01'
        assert second_transport.sent[0][0:2] == b'\x00\x02'


class TestReadDeviceInfo:
    """Test device info reads."""

    @pytest.mark.asyncio
    async def test_device_info(self, et_config):
        handler, transport, _ = make_handler(
            et_config, [aa55_response("0181", device_info_payload())]
        )

        info = await handler.read_device_info()

        assert transport.sent == [AA55_COMMANDS.READ_DEVICE_INFO]
        assert transport.expected_lengths == [None]
        assert info.model_name == 'GW10K-ET'
        assert info.serial_number == '9010KETU000W0001'
        assert info.firmware == '04029'
        assert info.arm_firmware == '02041'
        assert info.dsp1_version == 'V1.05'
        assert info.dsp2_version == 'V1.06'
        assert info.rated_power == 10000
        assert info.ac_output_type == 1

    @pytest.mark.asyncio
    async def test_device_info_as_dict(self, et_config):
        handler, _, _ = make_handler(et_config, [aa55_response("0181", device_info_payload())])

        info = await handler.read_device_info()

        assert set(info.as_dict()) == {
            'model_name', 'serial_number', 'firmware', 'arm_firmware',
            'dsp1_version', 'dsp2_version', 'rated_power', 'ac_output_type',
        }

    @pytest.mark.asyncio
    async def test_wrong_response_type(self, et_config):
        handler, _, _ = make_handler(et_config, [aa55_response("0186", device_info_payload())])

        with pytest.raises(ReadError) as exc_info:
            await handler.read_device_info()

        assert "Unexpected response type" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_short_payload(self, et_config):
        handler, _, _ = make_handler(et_config, [aa55_response("0181", b'GW10K-ET')])

        with pytest.raises(ReadError) as exc_info:
            await handler.read_device_info()

        assert isinstance(exc_info.value.cause, ValidationError)


class TestRawCommands:
    """Test raw command helpers."""

    @pytest.mark.asyncio
    async def test_send_command(self, et_config):
        handler, transport, _ = make_handler(et_config, [b'\x01\x02'])

        response = await handler.send_command(b'\xaa\x55', expected_length=2)

        assert response == b'\x01\x02'
        assert transport.expected_lengths == [2]
        assert transport.connect_calls == 1

    @pytest.mark.asyncio
    async def test_send_command_with_retry_reraises(self, et_config):
        handler, _, _ = make_handler(et_config, [RequestTimeoutError("t")] * 3)

        with pytest.raises(RequestTimeoutError):
            await handler.send_command_with_retry(b'\xaa\x55')

        assert handler.consecutive_failures == 1
