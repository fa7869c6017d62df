"""
Data model for guardian recovery.

All entities are frozen dataclasses. Mutation goes through
`dataclasses.replace`: read the stored value, merge the changed fields,
write the new value back under the same key.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from .identifiers import to_hex


class RecoveryState(str, Enum):
    """Effective state of a recovery request, derived from stored fields."""
    OPEN = "open"
    COMPLETABLE = "completable"
    EXPIRED = "expired"
    COMPLETED = "completed"

    @property
    def is_terminal(self) -> bool:
        return self in (RecoveryState.EXPIRED, RecoveryState.COMPLETED)


@dataclass(frozen=True)
class Record:
    """An access-controlled record whose ownership can be recovered."""
    record_id: bytes
    owner: str
    encrypted_metadata: bytes
    guardians: Tuple[str, ...]
    threshold: int
    created_at: int
    active: bool = True

    def is_guardian(self, identity: str) -> bool:
        return identity in self.guardians

    def to_dict(self) -> Dict[str, Any]:
        return {
            "record_id": to_hex(self.record_id),
            "owner": self.owner,
            "encrypted_metadata": self.encrypted_metadata.hex(),
            "guardians": list(self.guardians),
            "threshold": self.threshold,
            "created_at": self.created_at,
            "active": self.active,
        }


@dataclass(frozen=True)
class GuardianProfile:
    """Default guardian set an identity keeps for itself."""
    identity: str
    guardians: Tuple[str, ...]
    threshold: int
    updated_at: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "identity": self.identity,
            "guardians": list(self.guardians),
            "threshold": self.threshold,
            "updated_at": self.updated_at,
        }


@dataclass(frozen=True)
class RecoveryRequest:
    """
    A request to move a record to a new owner.

    `endorsement_count` is derived from `endorsers`, so the two can never
    disagree. `expires_at` is fixed at creation.
    """
    request_id: bytes
    record_id: bytes
    requester: str
    new_owner: str
    created_at: int
    expires_at: int
    threshold_at_initiation: int
    endorsers: Tuple[str, ...] = ()
    completed: bool = False
    completed_at: Optional[int] = None

    @property
    def endorsement_count(self) -> int:
        return len(self.endorsers)

    def is_expired(self, now: int) -> bool:
        return now >= self.expires_at

    def to_dict(self) -> Dict[str, Any]:
        return {
            "request_id": to_hex(self.request_id),
            "record_id": to_hex(self.record_id),
            "requester": self.requester,
            "new_owner": self.new_owner,
            "endorsers": list(self.endorsers),
            "endorsement_count": self.endorsement_count,
            "created_at": self.created_at,
            "expires_at": self.expires_at,
            "threshold_at_initiation": self.threshold_at_initiation,
            "completed": self.completed,
            "completed_at": self.completed_at,
        }


@dataclass(frozen=True)
class Endorsement:
    """A guardian's one-time vote for a specific request."""
    request_id: bytes
    guardian: str
    timestamp: int
    verified: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "request_id": to_hex(self.request_id),
            "guardian": self.guardian,
            "verified": self.verified,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class RecoveryStatus:
    """Polling view of a request combined with its record."""
    request_id: bytes
    collected: int
    required: int
    is_expired: bool
    is_completed: bool
    can_complete: bool
    state: RecoveryState
    expires_at: int
    endorsers: Tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "request_id": to_hex(self.request_id),
            "collected": self.collected,
            "required": self.required,
            "is_expired": self.is_expired,
            "is_completed": self.is_completed,
            "can_complete": self.can_complete,
            "state": self.state.value,
            "expires_at": self.expires_at,
            "endorsers": list(self.endorsers),
        }


__all__ = [
    "RecoveryState",
    "Record",
    "GuardianProfile",
    "RecoveryRequest",
    "Endorsement",
    "RecoveryStatus",
]
