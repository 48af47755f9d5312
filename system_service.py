#!/usr/bin/env python3

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from device_family import DeviceFamily
from olt_api import RetryingApiClient, get_request, is_ack_success, set_request
from olt_errors import OltError
from onu_models import OnuRecord, OnuState, coerce_int
from onu_table import OnuTableReader, extract_rows

DEVICE_TYPE_CODES = {1: DeviceFamily.EPON, 2: DeviceFamily.GPON}
UPTIME_KEYS = ('uptime', 'runtime', 'running_time', 'up_time')


@dataclass
class SystemInfo:
    vendor: Optional[str] = None
    product_name: Optional[str] = None
    firmware: Optional[str] = None
    mac_address: Optional[str] = None
    serial_number: Optional[str] = None
    pon_ports: Any = None
    device_type: Any = None
    detected_family: DeviceFamily = DeviceFamily.UNKNOWN
    configured_family: DeviceFamily = DeviceFamily.UNKNOWN
    current_time: Optional[str] = None
    uptime: Any = None

    @property
    def type_mismatch(self) -> bool:
        """Configured family disagrees with what the OLT reports about itself"""
        return (self.detected_family is not DeviceFamily.UNKNOWN
                and self.configured_family is not DeviceFamily.UNKNOWN
                and self.detected_family is not self.configured_family)


@dataclass
class PonPortStatus:
    port_id: Any
    online: int = 0
    offline: int = 0


@dataclass
class PonSummary:
    family: DeviceFamily
    port_filter: Optional[int] = None
    ports: List[PonPortStatus] = field(default_factory=list)
    offline_onus: List[OnuRecord] = field(default_factory=list)
    offline_list_available: bool = True


def detect_family(info: Dict[str, Any]) -> DeviceFamily:
    """Guess the PON family from the OLT's own system description"""
    model = str(info.get('product_name') or info.get('device_model') or '').lower()
    vendor = str(info.get('vendor') or '').lower()

    if 'epon' in model or 'epon' in vendor:
        return DeviceFamily.EPON
    if 'gpon' in model or 'gpon' in vendor:
        return DeviceFamily.GPON

    software = str(info.get('sys_ver') or info.get('software_version') or '').lower()
    if 'epon' in software:
        return DeviceFamily.EPON
    if 'gpon' in software:
        return DeviceFamily.GPON

    device_type = info.get('device_type')
    if device_type not in (None, ''):
        code = coerce_int(device_type)
        if code in DEVICE_TYPE_CODES:
            return DEVICE_TYPE_CODES[code]
        text = str(device_type).lower()
        if 'epon' in text:
            return DeviceFamily.EPON
        if 'gpon' in text:
            return DeviceFamily.GPON

    return DeviceFamily.UNKNOWN


def format_clock(time_now: Any) -> Optional[str]:
    """Render the OLT's [Y, M, D, h, m, s] clock as YYYY-MM-DD hh:mm:ss"""
    if not isinstance(time_now, (list, tuple)) or len(time_now) < 6:
        return None
    parts = [coerce_int(v) for v in time_now[:6]]
    if any(p is None for p in parts):
        return None
    year, month, day, hour, minute, second = parts
    return f"{year}-{month:02d}-{day:02d} {hour:02d}:{minute:02d}:{second:02d}"


class SystemService:
    """OLT-wide information and configuration persistence"""

    def __init__(self, client: RetryingApiClient, family: DeviceFamily,
                 reader: Optional[OnuTableReader] = None):
        self.client = client
        self.family = family
        self.reader = reader

    def system_info(self) -> SystemInfo:
        system_payload = self.client.call(get_request('/board', info='system'))
        info = system_payload.get('data')
        if not isinstance(info, dict):
            raise OltError("invalid system response")

        time_data: Dict[str, Any] = {}
        try:
            time_data = self.client.call(get_request('/time', form='info')).get('data') or {}
        except OltError as e:
            logging.warning(f"Could not read OLT clock: {e}")
        if not isinstance(time_data, dict):
            time_data = {}

        uptime = time_data.get('uptime')
        if not (isinstance(uptime, (list, tuple)) and len(uptime) == 4):
            uptime = next((info[k] for k in UPTIME_KEYS if info.get(k)), None)

        device_type = info.get('device_type')
        code = coerce_int(device_type)
        if code in DEVICE_TYPE_CODES:
            device_type = DEVICE_TYPE_CODES[code].value

        result = SystemInfo(
            vendor=info.get('vendor'),
            product_name=info.get('product_name') or info.get('device_model'),
            firmware=info.get('fw_ver'),
            mac_address=info.get('macaddr') or info.get('mac'),
            serial_number=info.get('sn') or info.get('serial_no'),
            pon_ports=info.get('ponports'),
            device_type=device_type,
            detected_family=detect_family(info),
            configured_family=self.family,
            current_time=format_clock(time_data.get('time_now')),
            uptime=uptime,
        )

        if result.type_mismatch:
            logging.warning(f"Configured OLT type {self.family.value} does not match "
                            f"detected {result.detected_family.value}")
        return result

    def pon_summary(self, port: Optional[int] = None) -> PonSummary:
        """Per-port online/offline counts plus the ONUs currently not online"""
        payload = self.client.call(get_request('/board', info='pon'))
        if not isinstance(payload.get('data'), list):
            raise OltError("invalid PON response")

        wanted = coerce_int(port) if port is not None else None
        summary = PonSummary(family=self.family, port_filter=wanted)
        for row in extract_rows(payload):
            if row.get('port_id') is None:
                continue
            if port is not None and coerce_int(row.get('port_id')) != wanted:
                continue
            summary.ports.append(PonPortStatus(
                port_id=row['port_id'],
                online=coerce_int(row.get('online')) or 0,
                offline=coerce_int(row.get('offline')) or 0,
            ))

        if self.reader is not None:
            try:
                records = self.reader.list_onus(wanted)
                summary.offline_onus = [r for r in records if r.state in (OnuState.OFFLINE, OnuState.INITIAL)]
            except OltError as e:
                logging.warning(f"Could not list offline ONUs: {e}")
                summary.offline_list_available = False

        logging.info(f"PON summary: {len(summary.ports)} ports, {len(summary.offline_onus)} ONUs not online")
        return summary

    def save_configuration(self) -> bool:
        """Persist the running configuration, True when the OLT acknowledges it"""
        payload = self.client.call(set_request('/system_save', {}))
        saved = is_ack_success(payload)
        if saved:
            logging.info("OLT configuration saved")
        else:
            logging.warning(f"OLT did not confirm configuration save: {payload.get('message')}")
        return saved
