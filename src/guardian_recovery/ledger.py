"""
Recovery request ledger.

Implements the request lifecycle:
- initiate: any caller opens a request naming a proposed new owner
- endorse: each guardian of the target record may endorse once
- complete: once endorsements reach the record's threshold and the
  deadline has not passed, ownership moves to the proposed owner

A request's state (open, completable, expired, completed) is never stored.
It is recomputed from the stored fields and the current tick by `classify`.

Every operation runs all of its checks before its first write.
"""
from __future__ import annotations

import logging
from dataclasses import replace
from typing import List, Optional

from .audit import AuditAction, AuditTrail
from .clock import LogicalClock
from .config import RecoverySettings
from .endorsements import EndorsementRegistry
from .exceptions import (
    AlreadyCompletedError,
    CapacityExceededError,
    DuplicateEndorsementError,
    InsufficientEndorsementsError,
    InvalidInputError,
    NotAGuardianError,
    RecordInactiveError,
    RequestExpiredError,
    RequestNotFoundError,
)
from .identifiers import IdentifierGenerator, IdentifierLike, parse_identifier, to_hex
from .models import Record, RecoveryRequest, RecoveryState, RecoveryStatus
from .registry import RecordRegistry
from .state import LedgerState

logger = logging.getLogger(__name__)


def classify(request: RecoveryRequest, required: int, now: int) -> RecoveryState:
    """Derive a request's effective state at tick `now`."""
    if request.completed:
        return RecoveryState.COMPLETED
    if request.is_expired(now):
        return RecoveryState.EXPIRED
    if request.endorsement_count >= required:
        return RecoveryState.COMPLETABLE
    return RecoveryState.OPEN


class RecoveryLedger:
    """State machine for recovery requests."""

    def __init__(
        self,
        state: LedgerState,
        clock: LogicalClock,
        settings: RecoverySettings,
        registry: RecordRegistry,
        endorsements: EndorsementRegistry,
        id_generator: IdentifierGenerator,
        audit: AuditTrail,
    ):
        self._state = state
        self._clock = clock
        self._settings = settings
        self._registry = registry
        self._endorsements = endorsements
        self._ids = id_generator
        self._audit = audit

    def _parse_request_id(self, request_id: IdentifierLike) -> bytes:
        return parse_identifier(request_id, field="request_id")

    def _require_request(self, request_id: bytes) -> RecoveryRequest:
        request = self._state.requests.get(request_id)
        if request is None:
            raise RequestNotFoundError(to_hex(request_id))
        return request

    def required_threshold(self, request: RecoveryRequest, record: Record) -> int:
        """Threshold a request must reach; read from the record unless snapshots are enabled."""
        if self._settings.snapshot_threshold_at_initiation:
            return request.threshold_at_initiation
        return record.threshold

    def initiate(
        self,
        caller: str,
        record_id: IdentifierLike,
        new_owner: str,
    ) -> bytes:
        """
        Open a recovery request against an active record.

        Any caller may initiate; the owner is presumed locked out.

        Returns:
            The new request identifier

        Raises:
            RecordNotFoundError: record does not exist
            RecordInactiveError: record is paused
        """
        rid = parse_identifier(record_id, field="record_id")
        if not isinstance(new_owner, str) or not new_owner:
            raise InvalidInputError("New owner must be a non-empty identity", field="new_owner")

        record = self._registry.require(rid)
        if not record.active:
            raise RecordInactiveError(to_hex(rid))

        request_id = self._ids.next_request_id()
        now = self._clock.now()

        request = RecoveryRequest(
            request_id=request_id,
            record_id=rid,
            requester=caller,
            new_owner=new_owner,
            created_at=now,
            expires_at=now + self._settings.recovery_timeout_ticks,
            threshold_at_initiation=record.threshold,
        )
        self._state.requests[request_id] = request
        self._state.requests_by_record[rid] = (
            self._state.requests_by_record.get(rid, ()) + (request_id,)
        )
        self._audit.append(
            AuditAction.RECOVERY_INITIATED,
            to_hex(request_id),
            caller,
            now,
            {
                "record_id": to_hex(rid),
                "new_owner": new_owner,
                "expires_at": request.expires_at,
            },
        )

        logger.info(
            f"Recovery initiated for record {to_hex(rid)}: {to_hex(request_id)} "
            f"(expires at tick {request.expires_at})"
        )
        return request_id

    def endorse(self, guardian: str, request_id: IdentifierLike) -> int:
        """
        Record `guardian`'s endorsement of a request.

        Checks, in order: request exists, not expired, not completed,
        caller is a guardian of the record, caller has not endorsed yet.

        Returns:
            The new endorsement count
        """
        req_id = self._parse_request_id(request_id)
        request = self._require_request(req_id)
        now = self._clock.now()

        if request.is_expired(now):
            raise RequestExpiredError(to_hex(req_id), request.expires_at, now)
        if request.completed:
            raise AlreadyCompletedError(to_hex(req_id))

        record = self._registry.require(request.record_id)
        if not record.is_guardian(guardian):
            raise NotAGuardianError(guardian, to_hex(record.record_id))
        if self._endorsements.has_endorsed(req_id, guardian):
            raise DuplicateEndorsementError(to_hex(req_id), guardian)
        if request.endorsement_count >= self._settings.max_endorsements:
            raise CapacityExceededError("Endorsement list", self._settings.max_endorsements)

        self._endorsements.record(req_id, guardian, now)
        updated = replace(request, endorsers=request.endorsers + (guardian,))
        self._state.requests[req_id] = updated

        count = updated.endorsement_count
        self._audit.append(
            AuditAction.RECOVERY_ENDORSED,
            to_hex(req_id),
            guardian,
            now,
            {"endorsement_count": count},
        )

        logger.info(f"Guardian {guardian} endorsed {to_hex(req_id)} ({count} collected)")
        return count

    def complete(self, caller: str, request_id: IdentifierLike) -> str:
        """
        Transfer ownership once enough guardians have endorsed.

        Sets the record owner and marks the request completed. Both writes
        happen after every check has passed.

        Returns:
            The new owner
        """
        req_id = self._parse_request_id(request_id)
        request = self._require_request(req_id)
        record = self._registry.require(request.record_id)
        now = self._clock.now()

        if request.is_expired(now):
            raise RequestExpiredError(to_hex(req_id), request.expires_at, now)
        if request.completed:
            raise AlreadyCompletedError(to_hex(req_id))

        required = self.required_threshold(request, record)
        if request.endorsement_count < required:
            raise InsufficientEndorsementsError(
                to_hex(req_id), request.endorsement_count, required
            )

        previous_owner = record.owner
        self._registry.transfer_owner(record.record_id, request.new_owner)
        self._state.requests[req_id] = replace(request, completed=True, completed_at=now)
        self._audit.append(
            AuditAction.RECOVERY_COMPLETED,
            to_hex(req_id),
            caller,
            now,
            {
                "record_id": to_hex(record.record_id),
                "previous_owner": previous_owner,
                "new_owner": request.new_owner,
                "endorsement_count": request.endorsement_count,
                "required": required,
            },
        )

        logger.info(
            f"Recovery {to_hex(req_id)} completed: record {to_hex(record.record_id)} "
            f"now owned by {request.new_owner}"
        )
        return request.new_owner

    def get(self, request_id: IdentifierLike) -> Optional[RecoveryRequest]:
        return self._state.requests.get(self._parse_request_id(request_id))

    def status(self, request_id: IdentifierLike) -> Optional[RecoveryStatus]:
        """Polling view; `can_complete` is exactly the guard `complete` applies."""
        req_id = self._parse_request_id(request_id)
        request = self._state.requests.get(req_id)
        if request is None:
            return None
        record = self._state.records.get(request.record_id)
        if record is None:
            return None

        now = self._clock.now()
        required = self.required_threshold(request, record)
        state = classify(request, required, now)
        return RecoveryStatus(
            request_id=req_id,
            collected=request.endorsement_count,
            required=required,
            is_expired=request.is_expired(now),
            is_completed=request.completed,
            can_complete=state is RecoveryState.COMPLETABLE,
            state=state,
            expires_at=request.expires_at,
            endorsers=request.endorsers,
        )

    def get_state(self, request_id: IdentifierLike) -> Optional[RecoveryState]:
        status = self.status(request_id)
        return status.state if status else None

    def list_requests(self, record_id: IdentifierLike) -> List[bytes]:
        rid = parse_identifier(record_id, field="record_id")
        return list(self._state.requests_by_record.get(rid, ()))
