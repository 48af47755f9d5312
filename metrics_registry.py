#!/usr/bin/env python3

from prometheus_client import Gauge, Counter
import logging

# OLT web API metrics
class OltApiMetrics:
    """Metrics about calls made against the OLT web API"""

    login_total = Counter(
        'olt_api_login_total',
        'Login exchanges performed against the OLT',
        ['outcome']
    )

    requests_total = Counter(
        'olt_api_requests_total',
        'OLT API request attempts',
        ['method', 'outcome']
    )

    token_rejections_total = Counter(
        'olt_api_token_rejections_total',
        'Responses carrying the Token Check Failed marker'
    )

    retries_total = Counter(
        'olt_api_retries_total',
        'OLT API attempts that were retried',
        ['reason']
    )

    calls_failed_total = Counter(
        'olt_api_calls_failed_total',
        'OLT API calls that exhausted every attempt',
        ['method']
    )


# ONU table metrics
class OnuMetrics:
    """Metrics derived from the reconciled ONU table"""

    onu_count = Gauge(
        'olt_onu_count',
        'Number of ONUs per state',
        ['state']
    )

    onu_rx_power = Gauge(
        'olt_onu_rx_power_dbm',
        'ONU received optical power in dBm',
        ['identifier', 'onu_name']
    )

    onu_signal_tier_count = Gauge(
        'olt_onu_signal_tier_count',
        'Number of ONUs per signal quality tier',
        ['tier']
    )

    bad_signal_count = Gauge(
        'olt_onu_bad_signal_count',
        'Number of ONUs below the bad signal threshold'
    )


# Connection and collection status metrics
class CollectionMetrics:
    """Metrics about the collection process itself"""

    collection_duration_seconds = Gauge(
        'olt_monitor_collection_duration_seconds',
        'Time spent collecting metrics in seconds',
        ['collector_type']
    )

    collection_success = Gauge(
        'olt_monitor_collection_success',
        'Collection success status (1=success, 0=failure)',
        ['collector_type']
    )

    collection_errors_total = Counter(
        'olt_monitor_collection_errors_total',
        'Total number of collection errors',
        ['collector_type', 'error_type']
    )

    last_collection_timestamp = Gauge(
        'olt_monitor_last_collection_timestamp_seconds',
        'Timestamp of last successful collection',
        ['collector_type']
    )


# Create instances for easy access
olt_api_metrics = OltApiMetrics()
onu_metrics = OnuMetrics()
collection_metrics = CollectionMetrics()


def log_metrics_summary():
    """Log a summary of all registered metrics"""
    from prometheus_client import REGISTRY
    logging.info("=== Registered Prometheus Metrics ===")
    for metric in REGISTRY.collect():
        logging.info(f"- {metric.name} ({metric.type})")
