#!/usr/bin/env python3
"""
Device family adapters.

EPON and GPON firmware expose the same concepts under different endpoints,
field names and identifiers (MAC address vs serial number). One adapter is
selected at startup from the configured family and every component asks it
for paths, field extraction and mutation payloads.
"""

import enum
import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple, Union

from olt_api import ApiRequest, get_request, set_request
from onu_models import OnuRecord, OnuState, PortAddress, SourceTable, coerce_int
from signal_quality import parse_dbm


class DeviceFamily(enum.Enum):
    EPON = 'EPON'
    GPON = 'GPON'
    UNKNOWN = 'UNKNOWN'

    @classmethod
    def parse(cls, value: Optional[str]) -> 'DeviceFamily':
        if not value:
            return cls.UNKNOWN
        try:
            return cls(value.strip().upper())
        except ValueError:
            logging.warning(f"Unsupported OLT type '{value}', treating it as UNKNOWN")
            return cls.UNKNOWN


AUTH_STATE_CODES = {1: OnuState.ONLINE, 0: OnuState.INITIAL}
RSTATE_CODES = {0: OnuState.INITIAL, 1: OnuState.ONLINE, 2: OnuState.OFFLINE}
RUN_STATE_TOKENS = {
    'online': OnuState.ONLINE,
    'up': OnuState.ONLINE,
    'registered': OnuState.ONLINE,
    'offline': OnuState.OFFLINE,
    'down': OnuState.OFFLINE,
    'initial': OnuState.INITIAL,
}

# Receive power keys seen across firmware variants, most specific first
RX_POWER_KEYS = ('receive_power', 'rx_optical_power', 'rx_power')


def derive_state(row: Dict[str, Any]) -> OnuState:
    """Status from raw fields, first defined wins: auth_state, rstate, run-state text"""
    if row.get('auth_state') is not None:
        code = coerce_int(row['auth_state'])
        if code is not None:
            return AUTH_STATE_CODES.get(code, OnuState.OFFLINE)

    if row.get('rstate') is not None:
        code = coerce_int(row['rstate'])
        if code is not None:
            return RSTATE_CODES.get(code, OnuState.UNKNOWN)

    for key in ('run_state', 'status'):
        token = row.get(key)
        if isinstance(token, str) and token.strip():
            return RUN_STATE_TOKENS.get(token.strip().lower(), OnuState.UNKNOWN)

    return OnuState.UNKNOWN


class DeviceFamilyAdapter(ABC):
    """Family-specific knowledge of the OLT web API"""

    family: DeviceFamily
    identifier_label: str
    identifier_keys: Tuple[str, ...]
    name_keys: Tuple[str, ...]
    device_id_key: str

    # ================================================================
    # FIELD EXTRACTION
    # ================================================================

    def extract_identity(self, row: Dict[str, Any]) -> Tuple[str, str, PortAddress]:
        """Return (identifier, name, port address) of a raw table row"""
        identifier = self._first(row, self.identifier_keys)
        name = self._first(row, self.name_keys)
        port = PortAddress(port_id=row.get('port_id'), device_id=row.get(self.device_id_key))
        return str(identifier or ''), str(name or ''), port

    def extract_state(self, row: Dict[str, Any]) -> OnuState:
        return derive_state(row)

    def extract_optical(self, row: Dict[str, Any]) -> Optional[float]:
        return parse_dbm(self._first(row, RX_POWER_KEYS))

    def routing_handle(self, row: Dict[str, Any]) -> Any:
        """Opaque handle for mutating calls, if the family uses one"""
        return None

    def build_record(self, row: Dict[str, Any], source: SourceTable,
                     offline_row: Optional[Dict[str, Any]] = None) -> OnuRecord:
        """Map a raw table row to an OnuRecord.

        When the same device also appears in the offline/auth table, pass that
        row as ``offline_row``: it is merged first so every defined field of
        ``row`` wins, and it alone supplies the routing handle.
        """
        identifier, name, port = self.extract_identity(row)
        state = self.extract_state(row)
        optical = self.extract_optical(row)

        if offline_row is not None:
            _, offline_name, offline_port = self.extract_identity(offline_row)
            name = name or offline_name
            if not port.is_complete():
                port = offline_port
            if state is OnuState.UNKNOWN:
                state = self.extract_state(offline_row)
            if optical is None:
                optical = self.extract_optical(offline_row)
        elif source is SourceTable.OFFLINE and state is not OnuState.INITIAL:
            # Absent from the live table, so never reported as online
            state = OnuState.OFFLINE

        record = OnuRecord(
            identifier=identifier,
            name=name,
            port_address=port,
            state=state,
            optical_receive_power=optical,
            source_table=source,
        )
        if offline_row is not None:
            record.merge_attributes(SourceTable.OFFLINE.value, offline_row)
            record.routing_handle = self.routing_handle(offline_row)
        elif source is SourceTable.OFFLINE:
            record.routing_handle = self.routing_handle(row)
        record.merge_attributes(source.value, row)
        return record

    # ================================================================
    # REQUESTS
    # ================================================================

    @abstractmethod
    def refresh_request(self) -> Optional[ApiRequest]:
        """Best-effort call that makes the OLT refresh its authorization list"""
        pass

    @abstractmethod
    def primary_table_request(self) -> ApiRequest:
        pass

    def secondary_table_request(self, port: int) -> Optional[ApiRequest]:
        """Offline/auth table of one PON port, None for families that have none"""
        return None

    @abstractmethod
    def detail_requests(self, port: PortAddress) -> List[Tuple[str, ApiRequest]]:
        """Ordered (source, request) detail calls for a live ONU"""
        pass

    @property
    def requires_routing_handle(self) -> bool:
        return False

    @abstractmethod
    def reboot_request(self, record: OnuRecord) -> ApiRequest:
        pass

    @abstractmethod
    def rename_request(self, record: OnuRecord, new_name: str) -> ApiRequest:
        pass

    @staticmethod
    def _first(row: Dict[str, Any], keys: Tuple[str, ...]) -> Any:
        for key in keys:
            value = row.get(key)
            if value not in (None, ''):
                return value
        return None


class GponAdapter(DeviceFamilyAdapter):
    """GPON firmware: ONTs keyed by serial number"""

    family = DeviceFamily.GPON
    identifier_label = 'Serial Number'
    identifier_keys = ('ont_sn',)
    name_keys = ('ont_name',)
    device_id_key = 'ont_id'

    def routing_handle(self, row: Dict[str, Any]) -> Any:
        handle = row.get('identifier')
        if handle in (None, ''):
            return None
        # Firmware sends it either as a number or a numeric string
        number = coerce_int(handle)
        return number if number is not None else handle

    def refresh_request(self) -> Optional[ApiRequest]:
        return get_request('/gponont_mgmt', form='auth', port_id=0)

    def primary_table_request(self) -> ApiRequest:
        return get_request('/gponmgmt', form='optical_onu')

    def secondary_table_request(self, port: int) -> Optional[ApiRequest]:
        return get_request('/gponont_mgmt', form='auth', port_id=port)

    def detail_requests(self, port: PortAddress) -> List[Tuple[str, ApiRequest]]:
        return [
            ('base', get_request('/gponont_mgmt', form='base', port_id=port.port_id, ont_id=port.device_id)),
            ('optical', get_request('/gponont_mgmt', form='ont_optical', port_id=port.port_id, ont_id=port.device_id)),
            ('version', get_request('/gponont_mgmt', form='ont_version', port_id=port.port_id, ont_id=port.device_id)),
        ]

    @property
    def requires_routing_handle(self) -> bool:
        return True

    def reboot_request(self, record: OnuRecord) -> ApiRequest:
        return set_request('/gponont_mgmt', {
            'identifier': record.routing_handle,
            'flags': 4,
            'ont_name': '',
            'ont_description': ''
        }, form='info')

    def rename_request(self, record: OnuRecord, new_name: str) -> ApiRequest:
        return set_request('/gponont_mgmt', {
            'identifier': record.routing_handle,
            'flags': 8,
            'ont_name': new_name,
            'ont_description': record.attribute('ont_description', default='')
        }, form='info')


class EponAdapter(DeviceFamilyAdapter):
    """EPON firmware: ONUs keyed by MAC address and addressed by port/onu id"""

    family = DeviceFamily.EPON
    identifier_label = 'MAC Address'
    identifier_keys = ('macaddr', 'mac', 'sn')
    name_keys = ('onu_name', 'ont_name')
    device_id_key = 'onu_id'

    def refresh_request(self) -> Optional[ApiRequest]:
        # Timestamp defeats caching in the OLT web server
        return get_request('/onu_allow_list', t=int(time.time() * 1000))

    def primary_table_request(self) -> ApiRequest:
        return get_request('/onutable')

    def detail_requests(self, port: PortAddress) -> List[Tuple[str, ApiRequest]]:
        return [
            ('base', get_request('/onumgmt', form='base-info', port_id=port.port_id, onu_id=port.device_id)),
            ('optical', get_request('/onumgmt', form='optical-diagnose', port_id=port.port_id, onu_id=port.device_id)),
        ]

    def reboot_request(self, record: OnuRecord) -> ApiRequest:
        return set_request('/onumgmt', {
            'port_id': record.port_address.port_id,
            'onu_id': record.port_address.device_id,
            'flags': 1,
            'fec_mode': 1
        }, form='config')

    def rename_request(self, record: OnuRecord, new_name: str) -> ApiRequest:
        return set_request('/onumgmt', {
            'port_id': record.port_address.port_id,
            'onu_id': record.port_address.device_id,
            'flags': 8,
            'fec_mode': 1,
            'onu_name': new_name,
            'onu_desc': record.attribute('onu_desc', default='')
        }, form='config')


class UnknownFamilyAdapter(EponAdapter):
    """No family configured: EPON endpoints, no authorization refresh"""

    family = DeviceFamily.UNKNOWN

    def refresh_request(self) -> Optional[ApiRequest]:
        return None


ADAPTERS = {
    DeviceFamily.GPON: GponAdapter,
    DeviceFamily.EPON: EponAdapter,
    DeviceFamily.UNKNOWN: UnknownFamilyAdapter,
}


def get_family_adapter(family: Union[DeviceFamily, str, None]) -> DeviceFamilyAdapter:
    """Create the adapter for the configured device family"""
    if not isinstance(family, DeviceFamily):
        family = DeviceFamily.parse(family)

    logging.info(f"Using {family.value} device family adapter")
    return ADAPTERS[family]()
