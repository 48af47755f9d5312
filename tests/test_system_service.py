"""Tests for OLT system information and PON summary."""
import pytest

from conftest import FakeOltClient
from device_family import DeviceFamily
from olt_errors import ApiCallFailed, OltError
from onu_table import OnuTableReader
from system_service import SystemService, detect_family, format_clock

SYSTEM_INFO = {
    'vendor': 'HSGQ',
    'product_name': 'HSGQ-G004',
    'fw_ver': 'V2.1.5',
    'macaddr': '00:11:22:33:44:55',
    'sn': 'OLT123',
    'ponports': 4,
    'device_type': 2,
}


def test_system_info_parses_board_and_clock():
    client = FakeOltClient({
        '/board?info=system': {'data': dict(SYSTEM_INFO)},
        '/time?form=info': {'data': {'time_now': [2024, 3, 7, 9, 5, 2], 'uptime': [1, 2, 3, 4]}},
    })

    info = SystemService(client, DeviceFamily.GPON).system_info()

    assert info.vendor == 'HSGQ'
    assert info.product_name == 'HSGQ-G004'
    assert info.device_type == 'GPON'
    assert info.detected_family is DeviceFamily.GPON
    assert info.current_time == '2024-03-07 09:05:02'
    assert info.uptime == [1, 2, 3, 4]
    assert not info.type_mismatch


def test_uptime_falls_back_to_system_payload():
    client = FakeOltClient({
        '/board?info=system': {'data': dict(SYSTEM_INFO, runtime='3 days, 04:00:00')},
        '/time?form=info': ApiCallFailed('no clock'),
    })

    info = SystemService(client, DeviceFamily.GPON).system_info()

    assert info.current_time is None
    assert info.uptime == '3 days, 04:00:00'


def test_family_mismatch_is_flagged():
    client = FakeOltClient({
        '/board?info=system': {'data': dict(SYSTEM_INFO, product_name='HSGQ-E04 EPON OLT')},
        '/time?form=info': {'data': {}},
    })

    info = SystemService(client, DeviceFamily.GPON).system_info()

    assert info.detected_family is DeviceFamily.EPON
    assert info.type_mismatch


def test_system_response_without_data_is_error():
    client = FakeOltClient({'/board?info=system': {'code': 1}})

    with pytest.raises(OltError, match='invalid system response'):
        SystemService(client, DeviceFamily.EPON).system_info()


@pytest.mark.parametrize('info, family', [
    ({'product_name': 'GPON OLT'}, DeviceFamily.GPON),
    ({'vendor': 'epon-corp'}, DeviceFamily.EPON),
    ({'product_name': 'OLT', 'sys_ver': 'gpon_v1'}, DeviceFamily.GPON),
    ({'device_type': '1'}, DeviceFamily.EPON),
    ({'device_type': 'GPON'}, DeviceFamily.GPON),
    ({}, DeviceFamily.UNKNOWN),
])
def test_detect_family(info, family):
    assert detect_family(info) is family


def test_format_clock_rejects_short_values():
    assert format_clock([2024, 1, 2]) is None
    assert format_clock(None) is None


def test_pon_summary_counts_and_offline_list(gpon_client, gpon_adapter):
    gpon_client.routes['/board?info=pon'] = {'data': [
        {'port_id': 1, 'online': 10, 'offline': '2'},
        {'port_id': 2, 'online': 4},
    ]}
    system = SystemService(gpon_client, DeviceFamily.GPON, OnuTableReader(gpon_client, gpon_adapter))

    summary = system.pon_summary()

    assert [(p.port_id, p.online, p.offline) for p in summary.ports] == [(1, 10, 2), (2, 4, 0)]
    assert sorted(r.identifier for r in summary.offline_onus) == ['HWTC0003', 'HWTC0009']


def test_pon_summary_port_filter(gpon_client, gpon_adapter):
    gpon_client.routes['/board?info=pon'] = {'data': [{'port_id': 1, 'online': 1}, {'port_id': 2, 'online': 1}]}
    system = SystemService(gpon_client, DeviceFamily.GPON, OnuTableReader(gpon_client, gpon_adapter))

    summary = system.pon_summary(port=2)

    assert [p.port_id for p in summary.ports] == [2]
    assert summary.offline_onus == []


def test_pon_summary_survives_onu_list_failure(gpon_adapter):
    client = FakeOltClient({
        '/board?info=pon': {'data': [{'port_id': 1, 'online': 3, 'offline': 1}]},
        '/gponmgmt?form=optical_onu': ApiCallFailed('unreachable'),
        '/gponont_mgmt?form=auth': {'data': []},
    })
    system = SystemService(client, DeviceFamily.GPON, OnuTableReader(client, gpon_adapter))

    summary = system.pon_summary()

    assert summary.ports[0].online == 3
    assert not summary.offline_list_available


@pytest.mark.parametrize('payload, saved', [({'code': 1}, True), ({'message': 'failed'}, False)])
def test_save_configuration(payload, saved):
    client = FakeOltClient({'/system_save': payload})

    assert SystemService(client, DeviceFamily.EPON).save_configuration() is saved
    assert client.calls[0].payload == {'method': 'set', 'param': {}}
