#!/usr/bin/env python3

import enum
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from signal_quality import SignalTier, SignalVerdict, classify, parse_dbm, summarize


class OnuState(enum.Enum):
    INITIAL = 'initial'
    ONLINE = 'online'
    OFFLINE = 'offline'
    UNKNOWN = 'unknown'


class SourceTable(enum.Enum):
    """Table that supplied the core identity of a record"""
    PRIMARY = 'primary'
    OFFLINE = 'offline'


def coerce_int(value: Any) -> Optional[int]:
    """Convert OLT numeric fields (often sent as strings) to int, None if not numeric"""
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(str(value).strip())
    except (ValueError, TypeError):
        return None


@dataclass(frozen=True)
class PortAddress:
    """Location of an ONU on the PON tree: PON port and ONU/ONT id"""
    port_id: Any = None
    device_id: Any = None

    @property
    def port_number(self) -> Optional[int]:
        return coerce_int(self.port_id)

    def is_complete(self) -> bool:
        return self.port_id not in (None, '') and self.device_id not in (None, '')

    def __str__(self) -> str:
        port = self.port_id if self.port_id not in (None, '') else '-'
        device = self.device_id if self.device_id not in (None, '') else '-'
        return f"{port}/{device}"


@dataclass
class OnuRecord:
    """Canonical view of one ONU, rebuilt on every query"""
    identifier: str
    name: str
    port_address: PortAddress
    state: OnuState = OnuState.UNKNOWN
    optical_receive_power: Optional[float] = None
    raw_attributes: Dict[str, Any] = field(default_factory=dict)
    source_table: SourceTable = SourceTable.PRIMARY
    # GPON mutating calls need this handle; only the offline/auth table exposes it
    routing_handle: Any = None
    merge_history: List[Tuple[str, List[str]]] = field(default_factory=list)

    def merge_attributes(self, source: str, fields: Optional[Dict[str, Any]]) -> List[str]:
        """Merge fields into raw_attributes, last defined value wins.

        None values never overwrite. Returns the keys written, which are also
        appended to merge_history under ``source``.
        """
        written = []
        for key, value in (fields or {}).items():
            if value is None:
                continue
            self.raw_attributes[key] = value
            written.append(key)
        self.merge_history.append((source, written))
        return written

    def attribute(self, *keys: str, default: Any = None) -> Any:
        """First non-empty raw attribute among keys"""
        for key in keys:
            value = self.raw_attributes.get(key)
            if value not in (None, ''):
                return value
        return default

    @property
    def is_offline_sourced(self) -> bool:
        return self.source_table is SourceTable.OFFLINE

    @property
    def signal_tier(self) -> SignalTier:
        return classify(self.optical_receive_power)

    @property
    def signal_verdict(self) -> SignalVerdict:
        return summarize(self.optical_receive_power)

    def refresh_optical(self, *keys: str):
        """Re-read the receive power from raw_attributes after detail merges"""
        value = parse_dbm(self.attribute(*keys))
        if value is not None:
            self.optical_receive_power = value

    def matches_identifier(self, query: str) -> bool:
        return bool(self.identifier) and self.identifier.lower() == query.strip().lower()

    def matches_name(self, query: str) -> bool:
        return bool(self.name) and self.name.lower() == query.strip().lower()
