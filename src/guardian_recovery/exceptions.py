"""Exception hierarchy for guardian recovery.

Every caller-facing failure inherits from RecoveryException, which gives:
- error_code: machine-readable kind (e.g., "REQUEST_EXPIRED")
- message: human-readable description
- details: optional context dictionary
- to_dict(): the shape returned in a failed OperationResult

Usage:
    from guardian_recovery.exceptions import (
        RecoveryException,
        RequestExpiredError,
    )

    try:
        ledger.endorse(request_id, guardian="alice")
    except RequestExpiredError as e:
        print(e.to_dict())

IdentifierGenerationError is deliberately outside this hierarchy. It marks
an environment contract breach and aborts the transaction instead of being
reported as a result value.
"""
from __future__ import annotations

from typing import Any, Dict, Optional, Type


class RecoveryException(Exception):
    """Base exception for all recovery errors.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code
        details: Optional additional context
    """

    error_code: str = "RECOVERY_ERROR"

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if error_code:
            self.error_code = error_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to result format."""
        result: Dict[str, Any] = {
            "error": self.error_code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


# =============================================================================
# Input & Configuration Errors
# =============================================================================

class InvalidInputError(RecoveryException):
    """Malformed identifier or oversize payload."""

    error_code = "INVALID_INPUT"

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        details = details or {}
        if field:
            details["field"] = field
        super().__init__(message, details=details)


class InvalidGuardianConfigError(RecoveryException):
    """Guardian count or threshold outside the allowed range."""

    error_code = "INVALID_GUARDIAN_CONFIG"

    def __init__(
        self,
        message: str,
        num_guardians: Optional[int] = None,
        threshold: Optional[int] = None,
    ) -> None:
        details: Dict[str, Any] = {}
        if num_guardians is not None:
            details["num_guardians"] = num_guardians
        if threshold is not None:
            details["threshold"] = threshold
        super().__init__(message, details=details)


# =============================================================================
# Authorization Errors
# =============================================================================

class NotAuthorizedError(RecoveryException):
    """Caller lacks the role required for the operation."""

    error_code = "NOT_AUTHORIZED"

    def __init__(self, caller: str, action: str) -> None:
        super().__init__(
            f"'{caller}' is not authorized to {action}",
            details={"caller": caller, "action": action},
        )


class NotAGuardianError(NotAuthorizedError):
    """Caller is not in the target record's guardian list."""

    error_code = "NOT_A_GUARDIAN"

    def __init__(self, caller: str, record_id: str) -> None:
        super().__init__(caller, "endorse recovery")
        self.message = f"'{caller}' is not a guardian of record {record_id}"
        self.args = (self.message,)
        self.details["record_id"] = record_id


# =============================================================================
# Lookup Errors
# =============================================================================

class NotFoundError(RecoveryException):
    """Requested entity not found."""

    error_code = "NOT_FOUND"

    def __init__(self, resource_type: str, resource_id: str) -> None:
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            details={"resource_type": resource_type, "resource_id": resource_id},
        )


class RecordNotFoundError(NotFoundError):
    error_code = "RECORD_NOT_FOUND"

    def __init__(self, record_id: str) -> None:
        super().__init__("Record", record_id)


class RequestNotFoundError(NotFoundError):
    error_code = "REQUEST_NOT_FOUND"

    def __init__(self, request_id: str) -> None:
        super().__init__("Recovery request", request_id)


# =============================================================================
# Lifecycle Errors
# =============================================================================

class RecordInactiveError(RecoveryException):
    """Record is paused and cannot accept new recovery requests."""

    error_code = "RECORD_INACTIVE"

    def __init__(self, record_id: str) -> None:
        super().__init__(
            f"Record {record_id} is not active",
            details={"record_id": record_id},
        )


class RequestExpiredError(RecoveryException):
    """Request deadline has passed."""

    error_code = "REQUEST_EXPIRED"

    def __init__(self, request_id: str, expires_at: int, now: int) -> None:
        super().__init__(
            f"Recovery request {request_id} expired at tick {expires_at}",
            details={"request_id": request_id, "expires_at": expires_at, "now": now},
        )


class AlreadyCompletedError(RecoveryException):
    """Request has already reached the completed state."""

    error_code = "ALREADY_COMPLETED"

    def __init__(self, request_id: str) -> None:
        super().__init__(
            f"Recovery request {request_id} is already completed",
            details={"request_id": request_id},
        )


class DuplicateEndorsementError(RecoveryException):
    """Guardian has already endorsed this request."""

    error_code = "DUPLICATE_ENDORSEMENT"

    def __init__(self, request_id: str, guardian: str) -> None:
        super().__init__(
            f"Guardian '{guardian}' already endorsed request {request_id}",
            details={"request_id": request_id, "guardian": guardian},
        )


class InsufficientEndorsementsError(RecoveryException):
    """Endorsement count is below the required threshold."""

    error_code = "INSUFFICIENT_ENDORSEMENTS"

    def __init__(self, request_id: str, collected: int, required: int) -> None:
        super().__init__(
            f"Request {request_id} has {collected} of {required} required endorsements",
            details={"request_id": request_id, "collected": collected, "required": required},
        )


class CapacityExceededError(RecoveryException):
    """Bounded list is already at its maximum size."""

    error_code = "CAPACITY_EXCEEDED"

    def __init__(self, what: str, capacity: int) -> None:
        super().__init__(
            f"{what} is at capacity ({capacity})",
            details={"capacity": capacity},
        )


# =============================================================================
# Environment Errors
# =============================================================================

class IdentifierGenerationError(RuntimeError):
    """The identifier generator's environment contract was violated.

    Raised when the request counter fails to advance or the logical clock
    moves backwards. Not a caller input error: the transaction aborts.
    """


_ERRORS_BY_CODE: Dict[str, Type[RecoveryException]] = {
    cls.error_code: cls
    for cls in (
        RecoveryException,
        InvalidInputError,
        InvalidGuardianConfigError,
        NotAuthorizedError,
        NotAGuardianError,
        NotFoundError,
        RecordNotFoundError,
        RequestNotFoundError,
        RecordInactiveError,
        RequestExpiredError,
        AlreadyCompletedError,
        DuplicateEndorsementError,
        InsufficientEndorsementsError,
        CapacityExceededError,
    )
}


def exception_from_code(
    error_code: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
) -> RecoveryException:
    """Rebuild an exception from a serialized failure.

    The concrete class is chosen by error code; its constructor is bypassed
    so that the original message and details are preserved verbatim.
    """
    cls = _ERRORS_BY_CODE.get(error_code, RecoveryException)
    exc = cls.__new__(cls)
    RecoveryException.__init__(exc, message, error_code=error_code, details=dict(details or {}))
    return exc


__all__ = [
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
    "exception_from_code",
]
