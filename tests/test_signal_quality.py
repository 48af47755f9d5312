"""Tests for receive power classification."""
import pytest

from signal_quality import SignalTier, SignalVerdict, classify, is_bad_signal, parse_dbm, summarize


@pytest.mark.parametrize('power, tier', [
    (-9, SignalTier.EXCELLENT),
    (-10, SignalTier.EXCELLENT),
    (-10.01, SignalTier.GOOD),
    (-17, SignalTier.GOOD),
    (-18.5, SignalTier.FAIR),
    (-20, SignalTier.FAIR),
    (-24, SignalTier.POOR),
    (-27, SignalTier.BAD),
    (-30, SignalTier.VERY_BAD),
    (None, SignalTier.INDETERMINATE),
    ('n/a', SignalTier.INDETERMINATE),
    (float('nan'), SignalTier.INDETERMINATE),
])
def test_classify(power, tier):
    assert classify(power) is tier


def test_classify_accepts_olt_strings():
    assert classify('-18.50') is SignalTier.FAIR
    assert classify('-9.00 dBm') is SignalTier.EXCELLENT


@pytest.mark.parametrize('power, verdict', [
    (-15, SignalVerdict.VERY_GOOD),
    (-16, SignalVerdict.VERY_GOOD),
    ('-18.50', SignalVerdict.GOOD),
    (-24, SignalVerdict.GOOD),
    (-25.5, SignalVerdict.BAD),
    (-26.01, SignalVerdict.VERY_BAD),
    (None, SignalVerdict.LOS),
])
def test_summarize(power, verdict):
    assert summarize(power) is verdict


@pytest.mark.parametrize('raw, expected', [
    ('-18.50', -18.5),
    (' -21.3 dBm ', -21.3),
    (-7, -7.0),
    ('', None),
    ('-', None),
    (None, None),
    ('1.2.3', None),
    (True, None),
])
def test_parse_dbm(raw, expected):
    assert parse_dbm(raw) == expected


def test_bad_signal_cutoff_is_strict():
    assert is_bad_signal(-25.01)
    assert not is_bad_signal(-25)
    assert not is_bad_signal(None)
    assert is_bad_signal('-22', threshold=-20)
