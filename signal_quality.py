#!/usr/bin/env python3

import enum
import re
from typing import Any, Optional

# Bulk sweep cutoff, kept apart from the tier table below
BAD_SIGNAL_THRESHOLD_DBM = -25.0

_NON_NUMERIC = re.compile(r'[^\d.\-]')


class SignalTier(enum.Enum):
    EXCELLENT = 'excellent'
    GOOD = 'good'
    FAIR = 'fair'
    POOR = 'poor'
    BAD = 'bad'
    VERY_BAD = 'very bad'
    INDETERMINATE = 'indeterminate'


class SignalVerdict(enum.Enum):
    """Coarse verdict printed at the bottom of an ONU detail report"""
    VERY_GOOD = 'very good'
    GOOD = 'good'
    BAD = 'bad'
    VERY_BAD = 'very bad'
    LOS = 'LOS'


# Lower bounds are inclusive, evaluated top-down
TIER_THRESHOLDS = [
    (-10.0, SignalTier.EXCELLENT),
    (-17.0, SignalTier.GOOD),
    (-20.0, SignalTier.FAIR),
    (-24.0, SignalTier.POOR),
    (-27.0, SignalTier.BAD),
]

VERDICT_THRESHOLDS = [
    (-16.0, SignalVerdict.VERY_GOOD),
    (-24.0, SignalVerdict.GOOD),
    (-26.0, SignalVerdict.BAD),
]


def parse_dbm(value: Any) -> Optional[float]:
    """Parse an OLT power reading such as '-18.50', '-18.50 dBm' or -18.5"""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)

    cleaned = _NON_NUMERIC.sub('', str(value))
    if cleaned in ('', '-', '.', '-.'):
        return None
    try:
        return float(cleaned)
    except ValueError:
        return None


def classify(rx_power_dbm: Any) -> SignalTier:
    """Map a receive power reading to a quality tier"""
    power = parse_dbm(rx_power_dbm)
    if power is None or power != power:
        return SignalTier.INDETERMINATE

    for lower_bound, tier in TIER_THRESHOLDS:
        if power >= lower_bound:
            return tier
    return SignalTier.VERY_BAD


def summarize(rx_power_dbm: Any) -> SignalVerdict:
    power = parse_dbm(rx_power_dbm)
    if power is None or power != power:
        return SignalVerdict.LOS

    for lower_bound, verdict in VERDICT_THRESHOLDS:
        if power >= lower_bound:
            return verdict
    return SignalVerdict.VERY_BAD


def is_bad_signal(rx_power_dbm: Any, threshold: float = BAD_SIGNAL_THRESHOLD_DBM) -> bool:
    power = parse_dbm(rx_power_dbm)
    return power is not None and power < threshold
