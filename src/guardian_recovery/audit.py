"""
Tamper-evident audit trail.

Each committed state change appends one AuditEvent whose hash covers the
previous event's hash. Events written inside an aborted transaction are
discarded together with the rest of the transaction's writes.
"""
from __future__ import annotations

import copy
import hashlib
import json
import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

if TYPE_CHECKING:
    from .state import LedgerState

logger = logging.getLogger(__name__)


class AuditAction(str, Enum):
    RECORD_REGISTERED = "record_registered"
    RECORD_PAUSED = "record_paused"
    RECORD_REACTIVATED = "record_reactivated"
    GUARDIANS_SET = "guardians_set"
    RECOVERY_INITIATED = "recovery_initiated"
    RECOVERY_ENDORSED = "recovery_endorsed"
    RECOVERY_COMPLETED = "recovery_completed"


@dataclass(frozen=True)
class AuditEvent:
    sequence: int
    action: AuditAction
    entity_id: str
    actor: Optional[str]
    tick: int
    details: Dict[str, Any] = field(default_factory=dict)
    previous_hash: Optional[str] = None
    entry_hash: Optional[str] = None

    def compute_hash(self) -> str:
        """Compute hash including previous entry for chain."""
        data = json.dumps({
            "sequence": self.sequence,
            "action": self.action.value,
            "entity_id": self.entity_id,
            "actor": self.actor,
            "tick": self.tick,
            "details": self.details,
            "previous_hash": self.previous_hash or "",
        }, sort_keys=True, default=str)
        return hashlib.sha256(data.encode()).hexdigest()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sequence": self.sequence,
            "action": self.action.value,
            "entity_id": self.entity_id,
            "actor": self.actor,
            "tick": self.tick,
            "details": self.details,
            "previous_hash": self.previous_hash,
            "entry_hash": self.entry_hash,
        }


class AuditTrail:
    """Append-only, hash-chained log stored in the ledger state."""

    def __init__(self, state: "LedgerState"):
        self._state = state

    def append(
        self,
        action: AuditAction,
        entity_id: str,
        actor: Optional[str],
        tick: int,
        details: Optional[Dict[str, Any]] = None,
    ) -> AuditEvent:
        events = self._state.audit_events
        previous_hash = events[-1].entry_hash if events else None
        unsealed = AuditEvent(
            sequence=len(events),
            action=action,
            entity_id=entity_id,
            actor=actor,
            tick=tick,
            details=dict(details or {}),
            previous_hash=previous_hash,
        )
        event = replace(unsealed, entry_hash=unsealed.compute_hash())
        events.append(event)
        logger.debug(f"Audit event: {action.value} {entity_id}")
        return event

    def events(self, *entity_ids: str) -> List[AuditEvent]:
        """
        Return copies of the stored events, optionally only those whose
        entity_id is one of `entity_ids`.

        Editing a returned event's details never reaches the stored chain.
        """
        stored = self._state.audit_events
        if entity_ids:
            stored = [e for e in stored if e.entity_id in entity_ids]
        return [replace(e, details=copy.deepcopy(e.details)) for e in stored]

    def verify_chain(self) -> Tuple[bool, Optional[str]]:
        """
        Verify integrity of the hash chain.

        Returns:
            Tuple of (is_valid, error_message)
        """
        events = self._state.audit_events
        for i, event in enumerate(events):
            expected_previous = events[i - 1].entry_hash if i > 0 else None

            if event.previous_hash != expected_previous:
                return False, f"Hash chain broken at audit event {event.sequence}"

            if event.entry_hash != event.compute_hash():
                return False, f"Hash mismatch at audit event {event.sequence}"

        return True, None
