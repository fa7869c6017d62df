"""
Shared ledger state.

Four independent keyed stores (records, requests, endorsements, guardian
profiles), the request-id counter, a per-record request index and the audit
log. Stored values are immutable, so a snapshot only needs shallow copies of
the containers.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from .audit import AuditEvent
from .models import Endorsement, GuardianProfile, Record, RecoveryRequest


@dataclass(frozen=True)
class StateSnapshot:
    records: Dict[bytes, Record]
    requests: Dict[bytes, RecoveryRequest]
    endorsements: Dict[Tuple[bytes, str], Endorsement]
    profiles: Dict[str, GuardianProfile]
    requests_by_record: Dict[bytes, Tuple[bytes, ...]]
    request_counter: int
    last_allocation_tick: int
    audit_length: int


@dataclass
class LedgerState:
    records: Dict[bytes, Record] = field(default_factory=dict)
    requests: Dict[bytes, RecoveryRequest] = field(default_factory=dict)
    endorsements: Dict[Tuple[bytes, str], Endorsement] = field(default_factory=dict)
    profiles: Dict[str, GuardianProfile] = field(default_factory=dict)
    requests_by_record: Dict[bytes, Tuple[bytes, ...]] = field(default_factory=dict)
    request_counter: int = 0
    last_allocation_tick: int = 0
    audit_events: List[AuditEvent] = field(default_factory=list)

    def snapshot(self) -> StateSnapshot:
        return StateSnapshot(
            records=dict(self.records),
            requests=dict(self.requests),
            endorsements=dict(self.endorsements),
            profiles=dict(self.profiles),
            requests_by_record=dict(self.requests_by_record),
            request_counter=self.request_counter,
            last_allocation_tick=self.last_allocation_tick,
            audit_length=len(self.audit_events),
        )

    def restore(self, snapshot: StateSnapshot) -> None:
        """Discard every write made since `snapshot` was taken."""
        self.records = dict(snapshot.records)
        self.requests = dict(snapshot.requests)
        self.endorsements = dict(snapshot.endorsements)
        self.profiles = dict(snapshot.profiles)
        self.requests_by_record = dict(snapshot.requests_by_record)
        self.request_counter = snapshot.request_counter
        self.last_allocation_tick = snapshot.last_allocation_tick
        # Audit log is append-only; truncating drops this transaction's events
        del self.audit_events[snapshot.audit_length:]
