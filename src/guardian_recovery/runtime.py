"""
Transaction runtime and public operation surface.

Every mutating operation runs as one serialized transaction:
- the runtime lock admits one transaction at a time
- the ledger state is snapshotted on entry
- if the body raises, the snapshot is restored, so no partial write is
  ever observable

Caller-facing failures come back as tagged OperationResult values.
IdentifierGenerationError is an environment contract breach; the
transaction is aborted and the error propagates.

Example usage:

    runtime = RecoveryRuntime(administrator="admin")
    runtime.register_record("alice", record_id, b"...", ["g1", "g2", "g3"], 2)

    request_id = runtime.initiate_recovery("anyone", record_id, "alice-new").unwrap()
    runtime.endorse_recovery("g1", request_id)
    runtime.endorse_recovery("g2", request_id)
    runtime.complete_recovery("anyone", request_id).unwrap()  # -> "alice-new"
"""
from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Generator, List, Optional, Sequence, Tuple

from .admin import AdministrativeGuard
from .audit import AuditEvent, AuditTrail
from .clock import LogicalClock
from .config import RecoverySettings, load_settings
from .directory import GuardianDirectory
from .endorsements import EndorsementRegistry
from .exceptions import InvalidInputError, RecoveryException, exception_from_code
from .identifiers import IdentifierGenerator, IdentifierLike, parse_identifier, to_hex
from .ledger import RecoveryLedger
from .logging_config import LogContext, generate_transaction_id, setup_logging
from .models import GuardianProfile, Record, RecoveryRequest, RecoveryState, RecoveryStatus
from .registry import RecordRegistry
from .state import LedgerState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OperationResult:
    """Tagged success/failure returned by every mutating operation."""
    ok: bool
    value: Any = None
    error_code: Optional[str] = None
    message: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def success(cls, value: Any = None) -> "OperationResult":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: RecoveryException) -> "OperationResult":
        return cls(
            ok=False,
            error_code=error.error_code,
            message=error.message,
            details=dict(error.details),
        )

    def unwrap(self) -> Any:
        """Return the value, or raise the exception this result carries."""
        if self.ok:
            return self.value
        raise exception_from_code(self.error_code or "RECOVERY_ERROR", self.message or "", self.details)

    def to_dict(self) -> Dict[str, Any]:
        if self.ok:
            value = self.value
            if isinstance(value, bytes):
                value = to_hex(value)
            elif hasattr(value, "to_dict"):
                value = value.to_dict()
            return {"ok": True, "value": value}
        result: Dict[str, Any] = {"ok": False, "error": self.error_code, "message": self.message}
        if self.details:
            result["details"] = self.details
        return result


class RecoveryRuntime:
    """
    Owns the ledger state and the components, and executes operations
    against them one transaction at a time.
    """

    def __init__(
        self,
        settings: Optional[RecoverySettings] = None,
        clock: Optional[LogicalClock] = None,
        administrator: Optional[str] = None,
    ):
        self._settings = settings if settings is not None else load_settings()
        self._clock = clock if clock is not None else LogicalClock()
        self._state = LedgerState()
        self._lock = threading.RLock()

        self._audit = AuditTrail(self._state)
        self._ids = IdentifierGenerator(self._state, self._clock)
        self.registry = RecordRegistry(self._state, self._clock, self._settings, self._audit)
        self.directory = GuardianDirectory(self._state, self._clock, self._settings, self._audit)
        self.endorsements = EndorsementRegistry(self._state)
        self.ledger = RecoveryLedger(
            self._state,
            self._clock,
            self._settings,
            self.registry,
            self.endorsements,
            self._ids,
            self._audit,
        )
        self.admin = AdministrativeGuard(
            self.registry,
            administrator if administrator is not None else self._settings.administrator,
            self._clock,
            self._audit,
        )

        if not self.admin.administrator:
            logger.warning("RecoveryRuntime has no administrator; pause/reactivate will be rejected")
        logger.info(
            "RecoveryRuntime initialized at tick %d (timeout=%d ticks)",
            self._clock.now(),
            self._settings.recovery_timeout_ticks,
        )

    @property
    def clock(self) -> LogicalClock:
        return self._clock

    @property
    def settings(self) -> RecoverySettings:
        return self._settings

    def now(self) -> int:
        return self._clock.now()

    def commit_block(self, ticks: int = 1) -> int:
        """Advance the logical clock after a committed batch."""
        with self._lock:
            return self._clock.advance(ticks)

    @contextmanager
    def transaction(self, caller: str) -> Generator[str, None, None]:
        """
        Run the body as one atomic, serialized transaction.

        Yields the transaction id. Any exception restores the ledger state
        to what it was on entry and is re-raised.
        """
        if not isinstance(caller, str) or not caller:
            raise InvalidInputError("Caller identity must be a non-empty string", field="caller")

        with self._lock:
            tx_id = generate_transaction_id()
            snapshot = self._state.snapshot()
            with LogContext(transaction_id=tx_id, caller=caller, tick=self._clock.now()):
                try:
                    yield tx_id
                except BaseException:
                    self._state.restore(snapshot)
                    logger.debug("Transaction %s aborted, state restored", tx_id)
                    raise

    def _execute(self, caller: str, operation: str, fn: Callable[[], Any]) -> OperationResult:
        try:
            with self.transaction(caller):
                value = fn()
        except RecoveryException as e:
            logger.warning(f"{operation} rejected for {caller}: [{e.error_code}] {e.message}")
            return OperationResult.failure(e)
        return OperationResult.success(value)

    # ------------------------------------------------------------------
    # Mutating operations
    # ------------------------------------------------------------------

    def register_record(
        self,
        caller: str,
        record_id: IdentifierLike,
        encrypted_metadata: bytes,
        guardians: Sequence[str],
        threshold: int,
    ) -> OperationResult:
        return self._execute(
            caller,
            "register_record",
            lambda: self.registry.register(caller, record_id, encrypted_metadata, guardians, threshold),
        )

    def set_guardians(
        self,
        caller: str,
        guardians: Sequence[str],
        threshold: int,
    ) -> OperationResult:
        return self._execute(
            caller,
            "set_guardians",
            lambda: self.directory.set_guardians(caller, guardians, threshold),
        )

    def initiate_recovery(
        self,
        caller: str,
        record_id: IdentifierLike,
        new_owner: str,
    ) -> OperationResult:
        return self._execute(
            caller,
            "initiate_recovery",
            lambda: self.ledger.initiate(caller, record_id, new_owner),
        )

    def endorse_recovery(self, caller: str, request_id: IdentifierLike) -> OperationResult:
        return self._execute(
            caller,
            "endorse_recovery",
            lambda: self.ledger.endorse(caller, request_id),
        )

    def complete_recovery(self, caller: str, request_id: IdentifierLike) -> OperationResult:
        return self._execute(
            caller,
            "complete_recovery",
            lambda: self.ledger.complete(caller, request_id),
        )

    def pause_record(self, caller: str, record_id: IdentifierLike) -> OperationResult:
        return self._execute(
            caller,
            "pause_record",
            lambda: self.admin.pause(caller, record_id),
        )

    def reactivate_record(self, caller: str, record_id: IdentifierLike) -> OperationResult:
        return self._execute(
            caller,
            "reactivate_record",
            lambda: self.admin.reactivate(caller, record_id),
        )

    # ------------------------------------------------------------------
    # Pure reads: value or None, malformed identifiers read as absent
    # ------------------------------------------------------------------

    def _read(self, fn: Callable[[], Any]) -> Any:
        with self._lock:
            try:
                return fn()
            except InvalidInputError as e:
                logger.debug(f"Read with malformed input: {e.message}")
                return None

    def get_record(self, record_id: IdentifierLike) -> Optional[Record]:
        return self._read(lambda: self.registry.get(record_id))

    def get_request(self, request_id: IdentifierLike) -> Optional[RecoveryRequest]:
        return self._read(lambda: self.ledger.get(request_id))

    def get_status(self, request_id: IdentifierLike) -> Optional[RecoveryStatus]:
        return self._read(lambda: self.ledger.status(request_id))

    def get_state(self, request_id: IdentifierLike) -> Optional[RecoveryState]:
        return self._read(lambda: self.ledger.get_state(request_id))

    def has_endorsed(self, request_id: IdentifierLike, guardian: str) -> bool:
        result = self._read(
            lambda: self.endorsements.has_endorsed(
                parse_identifier(request_id, field="request_id"),
                guardian,
            )
        )
        return bool(result)

    def get_guardian_profile(self, identity: str) -> Optional[GuardianProfile]:
        return self._read(lambda: self.directory.get_profile(identity))

    def list_requests(self, record_id: IdentifierLike) -> List[bytes]:
        return self._read(lambda: self.ledger.list_requests(record_id)) or []

    def get_audit_events(self, entity_id: Optional[IdentifierLike] = None) -> List[AuditEvent]:
        """
        Audit events, oldest first, optionally for one entity.

        Record and request ids match in any form `parse_identifier` accepts;
        any other string is matched as a guardian-profile identity.
        """
        with self._lock:
            if entity_id is None:
                return self._audit.events()
            return self._audit.events(*_audit_keys(entity_id))

    def verify_audit_chain(self) -> Tuple[bool, Optional[str]]:
        with self._lock:
            return self._audit.verify_chain()


def _audit_keys(entity_id: IdentifierLike) -> Tuple[str, ...]:
    """Keys an entity's events may be stored under."""
    try:
        canonical = to_hex(parse_identifier(entity_id, field="entity_id"))
    except InvalidInputError:
        if isinstance(entity_id, (bytes, bytearray)):
            return (to_hex(bytes(entity_id)),)
        return (entity_id,)
    if isinstance(entity_id, str) and entity_id != canonical:
        return (canonical, entity_id)
    return (canonical,)


# Singleton instance
_recovery_runtime: Optional[RecoveryRuntime] = None


def get_recovery_runtime(
    settings: Optional[RecoverySettings] = None,
    configure_logging: bool = False,
) -> RecoveryRuntime:
    """Get the process-wide recovery runtime."""
    global _recovery_runtime

    if _recovery_runtime is None:
        if settings is None:
            settings = load_settings()
        if configure_logging:
            setup_logging(level=settings.log_level, json_format=settings.json_logs)
        _recovery_runtime = RecoveryRuntime(settings)

    return _recovery_runtime


__all__ = [
    "OperationResult",
    "RecoveryRuntime",
    "get_recovery_runtime",
]
