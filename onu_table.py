#!/usr/bin/env python3

import locale
import logging
import unicodedata
from typing import Any, Dict, List, Optional, Tuple

from device_family import DeviceFamilyAdapter
from olt_api import RetryingApiClient
from olt_errors import OltError
from onu_models import OnuRecord, SourceTable, coerce_int
from signal_quality import BAD_SIGNAL_THRESHOLD_DBM, is_bad_signal


def extract_rows(payload: Optional[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Rows of an OLT table response, [] when the payload carries none"""
    rows = (payload or {}).get('data')
    if not isinstance(rows, list):
        return []
    return [row for row in rows if isinstance(row, dict)]


def collation_key(name: str) -> Tuple[str, str]:
    """Sort key comparing base letters first, case and accents only as a tie-break"""
    decomposed = unicodedata.normalize('NFKD', name)
    base = ''.join(ch for ch in decomposed if not unicodedata.combining(ch)).casefold()
    return locale.strxfrm(base), locale.strxfrm(name)


def sort_by_name(records: List[OnuRecord]) -> List[OnuRecord]:
    return sorted(records, key=lambda r: collation_key(r.name))


class OnuTableReader:
    """Reads the OLT device tables and reconciles them into one record per ONU"""

    def __init__(self, client: RetryingApiClient, adapter: DeviceFamilyAdapter):
        self.client = client
        self.adapter = adapter

    def refresh_authorization(self) -> bool:
        """Ask the OLT to refresh its authorization list, never fatal"""
        request = self.adapter.refresh_request()
        if request is None:
            logging.debug(f"No authorization refresh for {self.adapter.family.value}")
            return False

        try:
            self.client.call(request)
            logging.debug(f"Authorization list refreshed via {request.path}")
            return True
        except OltError as e:
            logging.warning(f"Authorization refresh failed, continuing with current table: {e}")
            return False

    def read_records(self, port: Optional[int] = None) -> List[OnuRecord]:
        """Primary records first, then offline-only records, unsorted.

        Raises ApiCallFailed when the primary table cannot be read. The
        offline/auth table is best-effort.
        """
        self.refresh_authorization()

        primary_rows = self._filter_port(extract_rows(self.client.call(self.adapter.primary_table_request())), port)
        offline_rows = self._filter_port(self._read_offline_rows(port, primary_rows), port)

        offline_by_id: Dict[str, Dict[str, Any]] = {}
        for row in offline_rows:
            identifier, _, _ = self.adapter.extract_identity(row)
            if identifier:
                offline_by_id.setdefault(identifier.lower(), row)

        records: List[OnuRecord] = []
        seen = set()
        for row in primary_rows:
            identifier, _, _ = self.adapter.extract_identity(row)
            key = identifier.lower()
            if key and key in seen:
                logging.debug(f"Duplicate ONU {identifier} in primary table, keeping first row")
                continue
            seen.add(key)
            records.append(self.adapter.build_record(row, SourceTable.PRIMARY,
                                                     offline_row=offline_by_id.get(key)))

        appended = 0
        for key, row in offline_by_id.items():
            if key in seen:
                continue
            seen.add(key)
            records.append(self.adapter.build_record(row, SourceTable.OFFLINE))
            appended += 1

        logging.info(f"Read {len(primary_rows)} ONUs from primary table, {appended} offline-only"
                     f"{f' on port {port}' if port is not None else ''}")
        return records

    def list_onus(self, port: Optional[int] = None) -> List[OnuRecord]:
        """All ONUs, optionally on one PON port, sorted by name"""
        return sort_by_name(self.read_records(port))

    def list_bad_signal(self, threshold: float = BAD_SIGNAL_THRESHOLD_DBM) -> List[OnuRecord]:
        """ONUs whose receive power is below threshold, worst first"""
        bad = [r for r in self.read_records() if is_bad_signal(r.optical_receive_power, threshold)]
        bad.sort(key=lambda r: r.optical_receive_power)
        logging.info(f"Found {len(bad)} ONUs below {threshold} dBm")
        return bad

    def _read_offline_rows(self, port: Optional[int],
                           primary_rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Offline/auth rows for the filtered port, or for every port seen in the primary table"""
        if port is not None:
            ports = [port]
        else:
            ports = sorted({p for p in (coerce_int(row.get('port_id')) for row in primary_rows) if p is not None})
            if not ports:
                ports = [0]

        rows: List[Dict[str, Any]] = []
        for each_port in ports:
            request = self.adapter.secondary_table_request(each_port)
            if request is None:
                return []
            try:
                rows.extend(extract_rows(self.client.call(request)))
            except OltError as e:
                logging.warning(f"Offline table unavailable for port {each_port}, "
                                f"listing live ONUs only: {e}")
        return rows

    @staticmethod
    def _filter_port(rows: List[Dict[str, Any]], port: Optional[int]) -> List[Dict[str, Any]]:
        if port is None:
            return rows
        wanted = coerce_int(port)
        # Rows whose port_id is not numeric never match a filter
        return [row for row in rows if wanted is not None and coerce_int(row.get('port_id')) == wanted]
