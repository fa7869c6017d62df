"""
Record registry.

Stores each record's owner, caller-encrypted metadata, guardian list and
signature threshold. Registration does not check for an existing record
under the same identifier: a second registration replaces the first.
"""
from __future__ import annotations

import logging
from dataclasses import replace
from typing import Optional, Sequence, Tuple

from .audit import AuditAction, AuditTrail
from .clock import LogicalClock
from .config import RecoverySettings
from .exceptions import (
    InvalidGuardianConfigError,
    InvalidInputError,
    RecordNotFoundError,
)
from .identifiers import IdentifierLike, parse_identifier, to_hex
from .models import Record
from .state import LedgerState

logger = logging.getLogger(__name__)


def validate_guardian_config(
    guardians: Sequence[str],
    threshold: int,
    settings: RecoverySettings,
) -> Tuple[str, ...]:
    """
    Check a guardian list and threshold against the configured bounds.

    Returns:
        The guardian list as a tuple, order preserved

    Raises:
        InvalidGuardianConfigError: on a bad count, threshold, duplicate or
            empty guardian identity
    """
    if isinstance(guardians, str):
        raise InvalidGuardianConfigError("Guardians must be a list of identities")

    members = tuple(guardians)
    num_guardians = len(members)

    if num_guardians < settings.min_guardians:
        raise InvalidGuardianConfigError(
            f"Minimum {settings.min_guardians} guardians required",
            num_guardians=num_guardians,
            threshold=threshold,
        )
    if num_guardians > settings.max_guardians:
        raise InvalidGuardianConfigError(
            f"Maximum {settings.max_guardians} guardians allowed",
            num_guardians=num_guardians,
            threshold=threshold,
        )
    if any(not isinstance(g, str) or not g for g in members):
        raise InvalidGuardianConfigError(
            "Guardian identities must be non-empty strings",
            num_guardians=num_guardians,
        )
    if len(set(members)) != num_guardians:
        raise InvalidGuardianConfigError(
            "Guardian list contains duplicates",
            num_guardians=num_guardians,
        )

    if isinstance(threshold, bool) or not isinstance(threshold, int):
        raise InvalidGuardianConfigError("Threshold must be an integer")
    if threshold < settings.min_threshold:
        raise InvalidGuardianConfigError(
            f"Threshold must be at least {settings.min_threshold}",
            num_guardians=num_guardians,
            threshold=threshold,
        )
    if threshold > num_guardians:
        raise InvalidGuardianConfigError(
            "Threshold cannot exceed number of guardians",
            num_guardians=num_guardians,
            threshold=threshold,
        )

    return members


class RecordRegistry:
    """Keyed store of records."""

    def __init__(
        self,
        state: LedgerState,
        clock: LogicalClock,
        settings: RecoverySettings,
        audit: AuditTrail,
    ):
        self._state = state
        self._clock = clock
        self._settings = settings
        self._audit = audit

    def register(
        self,
        caller: str,
        record_id: IdentifierLike,
        encrypted_metadata: bytes,
        guardians: Sequence[str],
        threshold: int,
    ) -> bytes:
        """
        Register a record owned by `caller`.

        Args:
            caller: Identity that becomes the owner
            record_id: 32-byte identifier chosen by the caller
            encrypted_metadata: Opaque payload, at most `max_metadata_bytes`
            guardians: Identities allowed to endorse recovery
            threshold: Endorsements needed to complete recovery

        Returns:
            The record identifier

        Raises:
            InvalidInputError: bad identifier or oversize metadata
            InvalidGuardianConfigError: guardian count or threshold out of range
        """
        rid = parse_identifier(record_id, field="record_id")

        if not isinstance(encrypted_metadata, (bytes, bytearray)):
            raise InvalidInputError("Metadata must be bytes", field="encrypted_metadata")
        if len(encrypted_metadata) > self._settings.max_metadata_bytes:
            raise InvalidInputError(
                f"Metadata exceeds {self._settings.max_metadata_bytes} bytes",
                field="encrypted_metadata",
                details={"size": len(encrypted_metadata)},
            )

        members = validate_guardian_config(guardians, threshold, self._settings)
        now = self._clock.now()

        previous = self._state.records.get(rid)
        if previous is not None:
            logger.warning(
                f"Record {to_hex(rid)} re-registered by {caller}, "
                f"replacing record owned by {previous.owner}"
            )

        self._state.records[rid] = Record(
            record_id=rid,
            owner=caller,
            encrypted_metadata=bytes(encrypted_metadata),
            guardians=members,
            threshold=threshold,
            created_at=now,
            active=True,
        )
        self._audit.append(
            AuditAction.RECORD_REGISTERED,
            to_hex(rid),
            caller,
            now,
            {
                "threshold": threshold,
                "num_guardians": len(members),
                "replaced_owner": previous.owner if previous else None,
            },
        )

        logger.info(
            f"Record {to_hex(rid)} registered: "
            f"{threshold}-of-{len(members)} guardians"
        )
        return rid

    def get(self, record_id: IdentifierLike) -> Optional[Record]:
        rid = parse_identifier(record_id, field="record_id")
        return self._state.records.get(rid)

    def require(self, record_id: bytes) -> Record:
        record = self._state.records.get(record_id)
        if record is None:
            raise RecordNotFoundError(to_hex(record_id))
        return record

    def set_active(self, record_id: IdentifierLike, active: bool) -> Record:
        """Flip the active flag. Authorization is the caller's concern."""
        rid = parse_identifier(record_id, field="record_id")
        record = self.require(rid)
        updated = replace(record, active=active)
        self._state.records[rid] = updated
        return updated

    def transfer_owner(self, record_id: bytes, new_owner: str) -> Record:
        record = self.require(record_id)
        updated = replace(record, owner=new_owner)
        self._state.records[record_id] = updated
        return updated
