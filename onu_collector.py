#!/usr/bin/env python3

import logging
import time
from collections import Counter
from typing import List

from metrics_registry import onu_metrics, collection_metrics
from olt_errors import ApiCallFailed, OltError
from onu_models import OnuRecord, OnuState
from onu_table import OnuTableReader
from signal_quality import BAD_SIGNAL_THRESHOLD_DBM, SignalTier, is_bad_signal


class OnuMetricsCollector:
    """Collector for ONU state and optical power metrics"""

    def __init__(self, reader: OnuTableReader, bad_signal_threshold: float = BAD_SIGNAL_THRESHOLD_DBM):
        self.reader = reader
        self.bad_signal_threshold = bad_signal_threshold

    def collect_onu_metrics(self) -> bool:
        """Collect ONU table metrics from the OLT"""
        start_time = time.time()
        success = False

        try:
            logging.info("Collecting ONU metrics...")

            records = self.reader.list_onus()
            self._update_state_counts(records)
            self._update_optical_power(records)

            success = True
            logging.info(f"ONU metrics collection completed successfully ({len(records)} ONUs)")

        except ApiCallFailed as e:
            logging.error(f"Could not reach OLT while collecting ONU metrics: {e}")
            collection_metrics.collection_errors_total.labels(collector_type='onu', error_type='unreachable').inc()
        except OltError as e:
            logging.error(f"Error collecting ONU metrics: {e}")
            collection_metrics.collection_errors_total.labels(collector_type='onu', error_type='onu_collection').inc()

        finally:
            # Update collection metrics
            duration = time.time() - start_time
            collection_metrics.collection_duration_seconds.labels(collector_type='onu').set(duration)
            collection_metrics.collection_success.labels(collector_type='onu').set(1 if success else 0)
            if success:
                collection_metrics.last_collection_timestamp.labels(collector_type='onu').set(time.time())

        return success

    def _update_state_counts(self, records: List[OnuRecord]):
        states = Counter(r.state for r in records)
        for state in OnuState:
            onu_metrics.onu_count.labels(state=state.value).set(states.get(state, 0))
            logging.debug(f"ONUs {state.value}: {states.get(state, 0)}")

    def _update_optical_power(self, records: List[OnuRecord]):
        # Drop series of ONUs that left the table since the last run
        onu_metrics.onu_rx_power.clear()

        tiers = Counter()
        bad = 0
        for record in records:
            tiers[record.signal_tier] += 1
            if record.optical_receive_power is None:
                continue
            onu_metrics.onu_rx_power.labels(
                identifier=record.identifier, onu_name=record.name
            ).set(record.optical_receive_power)
            if is_bad_signal(record.optical_receive_power, self.bad_signal_threshold):
                bad += 1

        for tier in SignalTier:
            onu_metrics.onu_signal_tier_count.labels(tier=tier.value).set(tiers.get(tier, 0))
        onu_metrics.bad_signal_count.set(bad)
        logging.info(f"{bad} ONUs below {self.bad_signal_threshold} dBm")

    def collect_all_metrics(self) -> bool:
        """Collect all OLT metrics"""
        return self.collect_onu_metrics()
