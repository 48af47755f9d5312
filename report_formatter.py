#!/usr/bin/env python3
"""
Plain-text reports for ONU and OLT data.

Every report is a list of lines joined with newlines. Fields the OLT did not
supply render as '-'.
"""

import math
from typing import Any, List

from device_family import DeviceFamily
from onu_commands import CommandOutcome, OutcomeStatus
from onu_models import OnuRecord, OnuState
from system_service import PonSummary, SystemInfo

PLACEHOLDER = '-'

STATE_MARKERS = {
    OnuState.ONLINE: '[UP]',
    OnuState.OFFLINE: '[DOWN]',
    OnuState.INITIAL: '[INIT]',
    OnuState.UNKNOWN: '[?]',
}

OUTCOME_MARKERS = {
    OutcomeStatus.SUCCESS: 'OK',
    OutcomeStatus.REPORTED_FAILURE: 'FAILED',
    OutcomeStatus.NOT_FOUND: 'NOT FOUND',
    OutcomeStatus.MISSING_IDENTIFIER: 'FAILED',
    OutcomeStatus.INVALID_INPUT: 'INVALID',
}


def _text(value: Any) -> str:
    if value is None:
        return PLACEHOLDER
    text = str(value).strip()
    return text if text else PLACEHOLDER


def _dbm(value: Any) -> str:
    if value is None:
        return PLACEHOLDER
    if isinstance(value, float):
        return f"{value:.2f} dBm"
    text = _text(value)
    if text == PLACEHOLDER or 'dbm' in text.lower():
        return text
    return f"{text} dBm"


def _join_duration(days: int, hours: int, minutes: int, seconds: int) -> str:
    parts = []
    if days > 0:
        parts.append(f"{days} days")
    if hours > 0:
        parts.append(f"{hours} hours")
    if minutes > 0:
        parts.append(f"{minutes} minutes")
    parts.append(f"{seconds} seconds")
    return ' '.join(parts)


def _to_int(value: Any) -> int:
    try:
        return int(str(value).strip())
    except ValueError:
        return 0


def format_uptime(value: Any) -> str:
    """Render the uptime shapes OLT firmware reports"""
    if value is None or value == '' or value == []:
        return PLACEHOLDER

    if isinstance(value, (list, tuple)):
        if len(value) != 4:
            return ' '.join(str(v) for v in value)
        return _join_duration(*[_to_int(v) for v in value])

    if isinstance(value, (int, float)) and not isinstance(value, bool):
        if not math.isfinite(value):
            return PLACEHOLDER
        total = int(value)
        return _join_duration(total // 86400, (total % 86400) // 3600, (total % 3600) // 60, total % 60)

    text = str(value).strip()
    parts = text.split(',')
    if len(parts) == 4 and all(p.strip().isdigit() for p in parts):
        return _join_duration(*[int(p) for p in parts])

    if any(unit in text for unit in ('day', 'hour', 'minute', 'second')):
        return text

    clock = text.split(':')
    if len(clock) == 3 and all(p.strip().isdigit() for p in clock):
        return _join_duration(0, int(clock[0]), int(clock[1]), int(clock[2]))

    try:
        return format_uptime(float(text))
    except ValueError:
        return text


def _model_text(record: OnuRecord) -> str:
    model = record.attribute('equipmentid', 'extmodel', 'sn_model', 'model', 'model_id')
    vendor = record.attribute('vendor')
    if model and vendor and str(vendor) not in str(model):
        model = f"{vendor} {model}"
    version = record.attribute('ont_version', 'software_ver', 'soft_version', 'software_version', 'version')
    text = _text(model)
    if version:
        text += f" (Version ID : {version})"
    hardware = record.attribute('hardware_ver')
    if hardware:
        text += f" HW: {hardware}"
    return text


def format_onu_detail(record: OnuRecord, family: DeviceFamily) -> str:
    id_label = 'SN' if family is DeviceFamily.GPON else 'MAC'
    lines = [
        f"ONU Name : {_text(record.name)}",
        f"Description : {_text(record.attribute('ont_description', 'onu_desc', 'description'))}",
        f"ONU Type : {_model_text(record)}",
        f"{id_label} : {_text(record.identifier)}",
        f"ONU Status : {record.state.value.capitalize()}",
        f"Profile : {_text(record.attribute('lineprof_name'))}",
        f"Port : {record.port_address}",
        f"ONU Temperature : {_text(record.attribute('work_temperature', 'work_temprature', 'temperature', 'onu_temperature'))}",
        f"ONU Voltage : {_text(record.attribute('work_voltage', 'voltage', 'onu_voltage'))}",
        f"ONU Tx Power : {_dbm(record.attribute('transmit_power', 'tx_power', 'tx_optical_power'))}",
        f"ONU Rx Power : {_dbm(record.optical_receive_power)}",
        f"Start Time : {_text(record.attribute('start_time', 'last_up_time', 'last_u_time'))}",
        f"Down Time : {_text(record.attribute('down_time', 'last_down_time', 'last_d_time'))}",
        f"Down Cause : {_text(record.attribute('down_cause', 'last_down_cause', 'last_d_cause'))}",
        f"Uptime : {format_uptime(record.attribute('uptime', 'running_time', 'online_time'))}",
        '',
        f"Signal : {record.signal_tier.value}",
        f"Verdict : {record.signal_verdict.value}",
    ]
    if record.is_offline_sourced:
        lines.append('')
        lines.append("Note: ONU is not attached to the OLT, live details are unavailable")
    return '\n'.join(lines)


def format_onu_list(records: List[OnuRecord]) -> str:
    if not records:
        return "No ONUs found"

    lines = [f"ONU list ({len(records)})"]
    for record in records:
        lines.append(f"{STATE_MARKERS[record.state]} {record.port_address} {_text(record.name)} "
                     f"{_text(record.identifier)} {_dbm(record.optical_receive_power)}")
    return '\n'.join(lines)


def format_outcome(outcome: CommandOutcome) -> str:
    lines = [f"{OUTCOME_MARKERS[outcome.status]}: {outcome.message}"]
    if outcome.record is not None and outcome.status is not OutcomeStatus.NOT_FOUND:
        lines.append(f"Identifier : {_text(outcome.record.identifier)}")
    if outcome.status is OutcomeStatus.REPORTED_FAILURE:
        lines.append(f"OLT message : {_text(outcome.olt_message)}")
    if outcome.save_warning:
        lines.append(f"Warning : {outcome.save_warning}")
    return '\n'.join(lines)


def format_unreachable(action: str, error: Exception) -> str:
    return f"ERROR: could not reach OLT to {action}: {error}"


def format_system_info(info: SystemInfo) -> str:
    lines = [
        f"OLT System Info ({info.detected_family.value})",
        '------------------------',
        f"Vendor : {_text(info.vendor)}",
        f"Device Model : {_text(info.product_name)}",
        f"Firmware Version : {_text(info.firmware)}",
        f"MAC Address : {_text(info.mac_address)}",
        f"Serial Number : {_text(info.serial_number)}",
        f"Device Type : {_text(info.device_type)}",
        f"PON Ports : {_text(info.pon_ports)}",
        f"Current Time : {_text(info.current_time)}",
        f"Uptime : {format_uptime(info.uptime)}",
    ]
    if info.type_mismatch:
        lines.append('')
        lines.append(f"WARNING: configured OLT type {info.configured_family.value} "
                     f"does not match the device ({info.detected_family.value})")
    return '\n'.join(lines)


def format_pon_summary(summary: PonSummary) -> str:
    prefix = 'EPON' if summary.family is DeviceFamily.EPON else 'PON'
    lines = [f"ONU count and status ({summary.family.value})"]

    if summary.port_filter is not None and not summary.ports:
        lines.append(f"PON port {summary.port_filter} not found")
    for port in summary.ports:
        lines.append(f"    {prefix} {port.port_id} = online : {port.online}, offline : {port.offline}")

    if not summary.offline_list_available:
        lines.append('')
        lines.append("Offline device list unavailable")
    elif summary.offline_onus:
        lines.append('')
        lines.append("Device Offline")
        for record in summary.offline_onus:
            lines.append(f"{_text(record.identifier)} - {_text(record.name)}")
    elif summary.port_filter is not None:
        lines.append('')
        lines.append(f"No offline devices on PON port {summary.port_filter}")
    return '\n'.join(lines)


def format_bad_signal(records: List[OnuRecord], threshold: float) -> str:
    if not records:
        return f"No ONUs below {threshold} dBm"

    lines = [f"ONUs below {threshold} dBm ({len(records)})"]
    for record in records:
        lines.append(f"{_dbm(record.optical_receive_power)} {record.port_address} "
                     f"{_text(record.name)} {_text(record.identifier)} ({record.signal_tier.value})")
    return '\n'.join(lines)
