#!/usr/bin/env python3

import enum
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from device_family import DeviceFamilyAdapter
from olt_api import RetryingApiClient, is_ack_success
from olt_errors import OltError
from onu_detail import OnuDetailResolver
from onu_models import OnuRecord
from system_service import SystemService


class OutcomeStatus(enum.Enum):
    SUCCESS = 'success'
    REPORTED_FAILURE = 'reported_failure'
    NOT_FOUND = 'not_found'
    MISSING_IDENTIFIER = 'missing_identifier'
    INVALID_INPUT = 'invalid_input'


@dataclass
class CommandOutcome:
    """Result of a reboot or rename; faults reaching the OLT raise instead"""
    action: str
    status: OutcomeStatus
    message: str
    record: Optional[OnuRecord] = None
    olt_message: Optional[str] = None
    new_name: Optional[str] = None
    save_warning: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status is OutcomeStatus.SUCCESS


class OnuCommandExecutor:
    """Reboot and rename ONUs located by serial number, MAC address or name"""

    def __init__(self, resolver: OnuDetailResolver, client: RetryingApiClient,
                 adapter: DeviceFamilyAdapter, system: SystemService):
        self.resolver = resolver
        self.client = client
        self.adapter = adapter
        self.system = system

    def reboot(self, query: str) -> CommandOutcome:
        record, outcome = self._locate('reboot', query)
        if outcome is not None:
            return outcome

        logging.info(f"Rebooting ONU {record.identifier} ({record.name}) at {record.port_address}")
        payload = self.client.call(self.adapter.reboot_request(record))
        if not is_ack_success(payload):
            return self._reported_failure('reboot', record, payload)

        return CommandOutcome('reboot', OutcomeStatus.SUCCESS,
                              f"Reboot command sent to ONU {record.name or record.identifier}",
                              record=record, olt_message=payload.get('message'))

    def rename(self, query: str, new_name: str) -> CommandOutcome:
        if not new_name or not new_name.strip():
            return CommandOutcome('rename', OutcomeStatus.INVALID_INPUT, "New ONU name must not be empty")
        new_name = new_name.strip()

        record, outcome = self._locate('rename', query)
        if outcome is not None:
            return outcome

        logging.info(f"Renaming ONU {record.identifier} from '{record.name}' to '{new_name}'")
        payload = self.client.call(self.adapter.rename_request(record, new_name))
        if not is_ack_success(payload):
            return self._reported_failure('rename', record, payload)

        outcome = CommandOutcome('rename', OutcomeStatus.SUCCESS,
                                 f"ONU renamed from '{record.name}' to '{new_name}'",
                                 record=record, olt_message=payload.get('message'), new_name=new_name)

        # Save is best-effort once the rename is acknowledged
        try:
            if not self.system.save_configuration():
                outcome.save_warning = "OLT did not confirm the configuration save"
        except OltError as e:
            logging.warning(f"Configuration save after rename failed: {e}")
            outcome.save_warning = f"Configuration save failed: {e}"
        return outcome

    def _locate(self, action: str, query: str):
        """Return (record, None) or (None, outcome) when the command cannot proceed"""
        if not query or not query.strip():
            return None, CommandOutcome(action, OutcomeStatus.INVALID_INPUT, "ONU identifier or name is required")

        record = self.resolver.find(query)
        if record is None:
            return None, CommandOutcome(
                action, OutcomeStatus.NOT_FOUND,
                f"ONU '{query.strip()}' not found, use {self.adapter.identifier_label} or ONU name")

        if self.adapter.requires_routing_handle and record.routing_handle is None:
            logging.warning(f"No routing identifier for ONU {record.identifier} in offline table")
            return None, CommandOutcome(
                action, OutcomeStatus.MISSING_IDENTIFIER,
                f"ONU {record.name or record.identifier} has no management identifier on the OLT",
                record=record)

        return record, None

    @staticmethod
    def _reported_failure(action: str, record: OnuRecord, payload: Dict[str, Any]) -> CommandOutcome:
        olt_message = payload.get('message') or 'Unknown error'
        logging.warning(f"OLT refused {action} of ONU {record.identifier}: {olt_message}")
        return CommandOutcome(action, OutcomeStatus.REPORTED_FAILURE,
                              f"OLT rejected {action} of ONU {record.name or record.identifier}",
                              record=record, olt_message=str(olt_message))
