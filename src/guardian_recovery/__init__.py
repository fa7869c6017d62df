"""
Guardian Recovery - threshold-gated social recovery of record ownership.

This package provides:
- A record registry with per-record guardian lists and thresholds
- A guardian directory of per-identity default guardian sets
- A recovery request ledger: initiate, endorse, complete, expire
- Replay protection: one endorsement per guardian per request
- An administrator-only pause/reactivate guard
- A serialized, all-or-nothing transaction runtime over a logical clock
- A hash-chained audit trail of committed operations

Example usage:

    from guardian_recovery import RecoveryRuntime, RecoverySettings

    runtime = RecoveryRuntime(RecoverySettings(), administrator="admin")
    runtime.register_record("alice", record_id, b"ciphertext", ["g1", "g2", "g3"], 2)

    request_id = runtime.initiate_recovery("bob", record_id, "alice-new-key").unwrap()
    runtime.endorse_recovery("g1", request_id)
    runtime.endorse_recovery("g2", request_id)

    status = runtime.get_status(request_id)
    if status.can_complete:
        runtime.complete_recovery("bob", request_id)
"""

from .clock import LogicalClock
from .config import RecoverySettings, load_settings
from .exceptions import (
    AlreadyCompletedError,
    CapacityExceededError,
    DuplicateEndorsementError,
    IdentifierGenerationError,
    InsufficientEndorsementsError,
    InvalidGuardianConfigError,
    InvalidInputError,
    NotAGuardianError,
    NotAuthorizedError,
    NotFoundError,
    RecordInactiveError,
    RecordNotFoundError,
    RecoveryException,
    RequestExpiredError,
    RequestNotFoundError,
)
from .identifiers import IDENTIFIER_LENGTH, IdentifierGenerator, parse_identifier, to_hex
from .models import (
    Endorsement,
    GuardianProfile,
    Record,
    RecoveryRequest,
    RecoveryState,
    RecoveryStatus,
)
from .audit import AuditAction, AuditEvent, AuditTrail
from .ledger import RecoveryLedger, classify
from .registry import RecordRegistry, validate_guardian_config
from .directory import GuardianDirectory
from .endorsements import EndorsementRegistry
from .admin import AdministrativeGuard
from .runtime import OperationResult, RecoveryRuntime, get_recovery_runtime

__version__ = "0.1.0"

__all__ = [
    # Runtime
    "RecoveryRuntime",
    "OperationResult",
    "get_recovery_runtime",
    "LogicalClock",
    # Config
    "RecoverySettings",
    "load_settings",
    # Components
    "RecordRegistry",
    "GuardianDirectory",
    "RecoveryLedger",
    "EndorsementRegistry",
    "AdministrativeGuard",
    "IdentifierGenerator",
    "AuditTrail",
    "classify",
    "validate_guardian_config",
    # Models
    "Record",
    "GuardianProfile",
    "RecoveryRequest",
    "Endorsement",
    "RecoveryState",
    "RecoveryStatus",
    "AuditAction",
    "AuditEvent",
    # Identifiers
    "IDENTIFIER_LENGTH",
    "parse_identifier",
    "to_hex",
    # Exceptions
    "RecoveryException",
    "InvalidInputError",
    "InvalidGuardianConfigError",
    "NotAuthorizedError",
    "NotAGuardianError",
    "NotFoundError",
    "RecordNotFoundError",
    "RequestNotFoundError",
    "RecordInactiveError",
    "RequestExpiredError",
    "AlreadyCompletedError",
    "DuplicateEndorsementError",
    "InsufficientEndorsementsError",
    "CapacityExceededError",
    "IdentifierGenerationError",
]
