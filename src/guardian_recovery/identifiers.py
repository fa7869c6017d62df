"""
Fixed-width identifiers.

Records and requests are keyed by 32-byte identifiers. Record identifiers
are chosen by the caller; request identifiers come from IdentifierGenerator,
which hashes a strictly increasing counter together with the current
logical clock tick.
"""
from __future__ import annotations

import hashlib
import logging
from typing import TYPE_CHECKING, Union

from .exceptions import IdentifierGenerationError, InvalidInputError

if TYPE_CHECKING:
    from .clock import LogicalClock
    from .state import LedgerState

logger = logging.getLogger(__name__)

IDENTIFIER_LENGTH = 32

_DOMAIN_TAG = b"guardian-recovery/request-id/v1"
_FIELD_WIDTH = 16

IdentifierLike = Union[bytes, bytearray, str]


def to_hex(identifier: bytes) -> str:
    return identifier.hex()


def parse_identifier(
    value: IdentifierLike,
    field: str = "identifier",
    length: int = IDENTIFIER_LENGTH,
) -> bytes:
    """
    Normalize an identifier to raw bytes.

    Accepts raw bytes or a hex string (optionally `0x`-prefixed).

    Raises:
        InvalidInputError: if the value is not exactly `length` bytes
    """
    if isinstance(value, str):
        text = value[2:] if value.startswith(("0x", "0X")) else value
        try:
            raw = bytes.fromhex(text)
        except ValueError:
            raise InvalidInputError(f"{field} is not valid hex", field=field) from None
    elif isinstance(value, (bytes, bytearray)):
        raw = bytes(value)
    else:
        raise InvalidInputError(
            f"{field} must be bytes or a hex string, got {type(value).__name__}",
            field=field,
        )

    if len(raw) != length:
        raise InvalidInputError(
            f"{field} must be exactly {length} bytes, got {len(raw)}",
            field=field,
            details={"expected_length": length, "actual_length": len(raw)},
        )
    return raw


class IdentifierGenerator:
    """Derives fresh request identifiers from the persistent counter."""

    def __init__(self, state: "LedgerState", clock: "LogicalClock"):
        self._state = state
        self._clock = clock

    def next_request_id(self) -> bytes:
        """
        Allocate the next request identifier.

        The counter lives in the ledger state, so an aborted transaction
        also rolls back the allocation.

        Raises:
            IdentifierGenerationError: if the clock moved backwards since the
                last allocation, the counter or tick no longer fits the
                identifier preimage, or the derived identifier is already
                taken. Each means the environment broke its contract.
        """
        tick = self._clock.now()

        if tick < self._state.last_allocation_tick:
            raise IdentifierGenerationError(
                f"Logical clock moved backwards ({self._state.last_allocation_tick} -> {tick})"
            )

        counter = self._state.request_counter + 1
        try:
            preimage = (
                _DOMAIN_TAG
                + counter.to_bytes(_FIELD_WIDTH, "big")
                + tick.to_bytes(_FIELD_WIDTH, "big")
            )
        except OverflowError:
            raise IdentifierGenerationError(
                f"Counter {counter} or tick {tick} exceeds {_FIELD_WIDTH * 8} bits"
            ) from None
        digest = hashlib.sha256(preimage).digest()

        if digest in self._state.requests:
            raise IdentifierGenerationError(f"Identifier collision at counter {counter}")

        self._state.request_counter = counter
        self._state.last_allocation_tick = tick
        logger.debug("Allocated request id #%d at tick %d", counter, tick)
        return digest
