"""Tests for the Prometheus ONU collector."""
from prometheus_client import REGISTRY

from conftest import FakeOltClient
from olt_errors import ApiCallFailed
from onu_collector import OnuMetricsCollector
from onu_table import OnuTableReader


def sample(name, **labels):
    return REGISTRY.get_sample_value(name, labels)


def test_collection_updates_gauges(gpon_client, gpon_adapter):
    collector = OnuMetricsCollector(OnuTableReader(gpon_client, gpon_adapter))

    assert collector.collect_all_metrics() is True

    assert sample('olt_onu_count', state='online') == 2
    assert sample('olt_onu_count', state='offline') == 2
    assert sample('olt_onu_count', state='initial') == 0
    assert sample('olt_onu_rx_power_dbm', identifier='HWTC0001', onu_name='Budi') == -18.5
    assert sample('olt_onu_signal_tier_count', tier='fair') == 1
    assert sample('olt_onu_bad_signal_count') == 1
    assert sample('olt_monitor_collection_success', collector_type='onu') == 1


def test_collection_failure_is_counted_not_raised(gpon_adapter):
    client = FakeOltClient({
        '/gponmgmt?form=optical_onu': ApiCallFailed('unreachable'),
        '/gponont_mgmt?form=auth': {'data': []},
    })
    before = sample('olt_monitor_collection_errors_total', collector_type='onu', error_type='unreachable') or 0

    assert OnuMetricsCollector(OnuTableReader(client, gpon_adapter)).collect_all_metrics() is False

    after = sample('olt_monitor_collection_errors_total', collector_type='onu', error_type='unreachable')
    assert after == before + 1
    assert sample('olt_monitor_collection_success', collector_type='onu') == 0
