"""Tests for reboot and rename commands."""
import pytest

from conftest import FakeOltClient
from device_family import GponAdapter
from olt_errors import ApiCallFailed
from onu_commands import OnuCommandExecutor, OutcomeStatus
from onu_detail import OnuDetailResolver
from onu_table import OnuTableReader
from system_service import SystemService


def make_executor(client, adapter) -> OnuCommandExecutor:
    reader = OnuTableReader(client, adapter)
    resolver = OnuDetailResolver(reader, client, adapter)
    system = SystemService(client, adapter.family, reader)
    return OnuCommandExecutor(resolver, client, adapter, system)


def test_gpon_reboot_uses_offline_routing_handle(gpon_client, gpon_adapter):
    gpon_client.routes['/gponont_mgmt?form=info'] = {'code': 1}

    outcome = make_executor(gpon_client, gpon_adapter).reboot('Budi')

    assert outcome.status is OutcomeStatus.SUCCESS
    post = gpon_client.posts()[-1]
    assert post.target == '/gponont_mgmt?form=info'
    assert post.payload['param']['identifier'] == 17
    assert post.payload['param']['flags'] == 4


def test_gpon_reboot_without_routing_handle(gpon_client, gpon_adapter):
    gpon_client.routes['/gponont_mgmt?form=info'] = {'code': 1}

    outcome = make_executor(gpon_client, gpon_adapter).reboot('ZTEG0002')

    assert outcome.status is OutcomeStatus.MISSING_IDENTIFIER
    assert outcome.record.identifier == 'ZTEG0002'
    assert gpon_client.posts() == []


def test_not_found_names_identifier_type(gpon_client, gpon_adapter, epon_client, epon_adapter):
    gpon = make_executor(gpon_client, gpon_adapter).reboot('nobody')
    epon = make_executor(epon_client, epon_adapter).reboot('nobody')

    assert gpon.status is OutcomeStatus.NOT_FOUND
    assert 'Serial Number' in gpon.message
    assert 'MAC Address' in epon.message


def test_reported_failure_surfaces_olt_message(epon_client, epon_adapter):
    epon_client.routes['/onumgmt?form=config'] = {'code': 0, 'message': 'Onu not exist'}

    outcome = make_executor(epon_client, epon_adapter).reboot('warung')

    assert outcome.status is OutcomeStatus.REPORTED_FAILURE
    assert outcome.olt_message == 'Onu not exist'


def test_epon_reboot_keyed_by_port_address(epon_client, epon_adapter):
    epon_client.routes['/onumgmt?form=config'] = {'message': 'Success'}

    outcome = make_executor(epon_client, epon_adapter).reboot('AA:BB:CC:00:00:01')

    assert outcome.succeeded
    param = epon_client.posts()[-1].payload['param']
    assert param == {'port_id': '1', 'onu_id': '3', 'flags': 1, 'fec_mode': 1}


def test_unreachable_olt_propagates(epon_client, epon_adapter):
    epon_client.routes['/onumgmt?form=config'] = ApiCallFailed('timeout')

    with pytest.raises(ApiCallFailed):
        make_executor(epon_client, epon_adapter).reboot('warung')


def test_rename_saves_configuration(gpon_client, gpon_adapter):
    gpon_client.routes['/gponont_mgmt?form=info'] = {'message': 'success'}
    gpon_client.routes['/system_save'] = {'code': 1}

    outcome = make_executor(gpon_client, gpon_adapter).rename('budi', '  Budi Baru ')

    assert outcome.status is OutcomeStatus.SUCCESS
    assert outcome.new_name == 'Budi Baru'
    assert outcome.save_warning is None
    rename, save = gpon_client.posts()
    assert rename.payload['param']['ont_name'] == 'Budi Baru'
    assert rename.payload['param']['flags'] == 8
    assert save.target == '/system_save'
    assert save.payload == {'method': 'set', 'param': {}}


def test_rename_with_failing_save_still_succeeds(gpon_client, gpon_adapter):
    gpon_client.routes['/gponont_mgmt?form=info'] = {'code': 1}
    gpon_client.routes['/system_save'] = ApiCallFailed('save timed out')

    outcome = make_executor(gpon_client, gpon_adapter).rename('Budi', 'Budi Baru')

    assert outcome.status is OutcomeStatus.SUCCESS
    assert 'save timed out' in outcome.save_warning


def test_rename_with_unacknowledged_save_warns(epon_client, epon_adapter):
    epon_client.routes['/onumgmt?form=config'] = {'status': 'success'}
    epon_client.routes['/system_save'] = {'code': 0, 'message': 'busy'}

    outcome = make_executor(epon_client, epon_adapter).rename('warung', 'toko')

    assert outcome.succeeded
    assert outcome.save_warning


def test_rejected_rename_skips_save(epon_client, epon_adapter):
    epon_client.routes['/onumgmt?form=config'] = {'code': 0, 'message': 'name too long'}

    outcome = make_executor(epon_client, epon_adapter).rename('warung', 'x' * 80)

    assert outcome.status is OutcomeStatus.REPORTED_FAILURE
    assert not any(r.target == '/system_save' for r in epon_client.calls)


@pytest.mark.parametrize('query, new_name', [('', 'toko'), ('   ', 'toko'), ('warung', ''), ('warung', '  ')])
def test_blank_input_is_rejected_before_network(epon_client, epon_adapter, query, new_name):
    outcome = make_executor(epon_client, epon_adapter).rename(query, new_name)

    assert outcome.status is OutcomeStatus.INVALID_INPUT
    assert epon_client.calls == []


def test_reboot_offline_only_gpon_onu(gpon_client):
    gpon_client.routes['/gponont_mgmt?form=info'] = {'code': 1}

    outcome = make_executor(gpon_client, GponAdapter()).reboot('dewi')

    assert outcome.succeeded
    assert gpon_client.posts()[-1].payload['param']['identifier'] == 23


def test_reboot_finds_routing_handle_on_non_zero_port(gpon_adapter):
    client = FakeOltClient({
        '/gponmgmt?form=optical_onu': {'data': [
            {'ont_sn': 'HWTC0001', 'ont_name': 'Budi', 'rstate': 1, 'port_id': 1, 'ont_id': 5},
        ]},
        '/gponont_mgmt?form=auth': {'data': []},
        '/gponont_mgmt?form=auth&port_id=1': {'data': [
            {'ont_sn': 'HWTC0001', 'ont_name': 'Budi', 'port_id': 1, 'ont_id': 5, 'identifier': 17},
        ]},
        '/gponont_mgmt?form=info': {'code': 1},
    })

    outcome = make_executor(client, gpon_adapter).reboot('budi')

    assert outcome.status is OutcomeStatus.SUCCESS
    assert client.posts()[-1].payload['param']['identifier'] == 17
    assert '/gponont_mgmt?form=auth&port_id=1' in client.targets()
