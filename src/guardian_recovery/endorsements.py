"""Endorsement registry: one entry per (request, guardian) pair."""
from __future__ import annotations

from typing import List, Optional

from .exceptions import DuplicateEndorsementError
from .identifiers import to_hex
from .models import Endorsement
from .state import LedgerState


class EndorsementRegistry:
    """Append-only replay-protection set. Entries are never changed or removed."""

    def __init__(self, state: LedgerState):
        self._state = state

    def has_endorsed(self, request_id: bytes, guardian: str) -> bool:
        return (request_id, guardian) in self._state.endorsements

    def get(self, request_id: bytes, guardian: str) -> Optional[Endorsement]:
        return self._state.endorsements.get((request_id, guardian))

    def for_request(self, request_id: bytes) -> List[Endorsement]:
        return [
            e for (rid, _), e in self._state.endorsements.items()
            if rid == request_id
        ]

    def record(self, request_id: bytes, guardian: str, timestamp: int) -> Endorsement:
        key = (request_id, guardian)
        if key in self._state.endorsements:
            raise DuplicateEndorsementError(to_hex(request_id), guardian)

        endorsement = Endorsement(
            request_id=request_id,
            guardian=guardian,
            timestamp=timestamp,
        )
        self._state.endorsements[key] = endorsement
        return endorsement
