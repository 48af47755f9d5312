#!/usr/bin/env python3

import logging
from typing import List, Optional

from device_family import DeviceFamilyAdapter, RX_POWER_KEYS
from olt_api import RetryingApiClient
from olt_errors import OltError
from onu_models import OnuRecord
from onu_table import OnuTableReader


class OnuDetailResolver:
    """Finds an ONU by serial number, MAC address or name and fills in its details"""

    def __init__(self, reader: OnuTableReader, client: RetryingApiClient, adapter: DeviceFamilyAdapter):
        self.reader = reader
        self.client = client
        self.adapter = adapter

    def find(self, query: str) -> Optional[OnuRecord]:
        """Identity lookup only, no detail calls"""
        if not query or not query.strip():
            return None
        return self.match(self.reader.read_records(), query)

    @staticmethod
    def match(records: List[OnuRecord], query: str) -> Optional[OnuRecord]:
        # Live records before offline-only ones, identifier before name
        live = [r for r in records if not r.is_offline_sourced]
        offline = [r for r in records if r.is_offline_sourced]

        for candidates in (live, offline):
            for record in candidates:
                if record.matches_identifier(query):
                    return record
            for record in candidates:
                if record.matches_name(query):
                    return record
        return None

    def resolve(self, query: str) -> Optional[OnuRecord]:
        """Find the ONU and merge its base, optical and version details"""
        record = self.find(query)
        if record is None:
            logging.info(f"No ONU matches '{query}'")
            return None

        if record.is_offline_sourced:
            logging.info(f"ONU {record.identifier} is only known to the offline table, skipping detail calls")
            return record

        if not record.port_address.is_complete():
            logging.warning(f"ONU {record.identifier} has no port address, skipping detail calls")
            return record

        for source, request in self.adapter.detail_requests(record.port_address):
            try:
                payload = self.client.call(request)
            except OltError as e:
                logging.warning(f"{source} detail for ONU {record.identifier} failed: {e}")
                continue

            data = payload.get('data')
            if isinstance(data, list):
                data = data[0] if data and isinstance(data[0], dict) else None
            if not isinstance(data, dict):
                logging.debug(f"{source} detail for ONU {record.identifier} returned no data")
                continue
            record.merge_attributes(source, data)

        record.refresh_optical(*RX_POWER_KEYS)
        logging.info(f"Resolved ONU {record.identifier} ({record.name}) at {record.port_address}: "
                     f"{record.state.value}, rx {record.optical_receive_power} dBm")
        return record
