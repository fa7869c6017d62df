"""Administrative guard: pause and reactivate records."""
from __future__ import annotations

import logging

from .audit import AuditAction, AuditTrail
from .clock import LogicalClock
from .exceptions import NotAuthorizedError
from .identifiers import IdentifierLike, to_hex
from .models import Record
from .registry import RecordRegistry

logger = logging.getLogger(__name__)


class AdministrativeGuard:
    """
    Lets the single administrator toggle a record's eligibility.

    Pausing only blocks new `initiate` calls. Requests already open
    against a paused record can still be endorsed and completed.
    """

    def __init__(
        self,
        registry: RecordRegistry,
        administrator: str,
        clock: LogicalClock,
        audit: AuditTrail,
    ):
        self._registry = registry
        self._administrator = administrator
        self._clock = clock
        self._audit = audit

    @property
    def administrator(self) -> str:
        return self._administrator

    def _require_admin(self, caller: str, action: str) -> None:
        if not self._administrator or caller != self._administrator:
            raise NotAuthorizedError(caller, action)

    def pause(self, caller: str, record_id: IdentifierLike) -> Record:
        self._require_admin(caller, "pause records")
        record = self._registry.set_active(record_id, False)
        self._audit.append(
            AuditAction.RECORD_PAUSED, to_hex(record.record_id), caller, self._clock.now()
        )
        logger.info(f"Record {to_hex(record.record_id)} paused")
        return record

    def reactivate(self, caller: str, record_id: IdentifierLike) -> Record:
        self._require_admin(caller, "reactivate records")
        record = self._registry.set_active(record_id, True)
        self._audit.append(
            AuditAction.RECORD_REACTIVATED, to_hex(record.record_id), caller, self._clock.now()
        )
        logger.info(f"Record {to_hex(record.record_id)} reactivated")
        return record
