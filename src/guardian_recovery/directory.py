"""Guardian directory: per-identity default guardian sets."""
from __future__ import annotations

import logging
from typing import Optional, Sequence

from .audit import AuditAction, AuditTrail
from .clock import LogicalClock
from .config import RecoverySettings
from .models import GuardianProfile
from .registry import validate_guardian_config
from .state import LedgerState

logger = logging.getLogger(__name__)


class GuardianDirectory:
    """
    Stores a default guardian profile for each identity.

    Profiles are informational. Recovery eligibility is decided by the
    guardian list stored on the record itself; nothing links the two.
    """

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

    def set_guardians(
        self,
        identity: str,
        guardians: Sequence[str],
        threshold: int,
    ) -> GuardianProfile:
        """Create or overwrite the profile for `identity`."""
        members = validate_guardian_config(guardians, threshold, self._settings)
        now = self._clock.now()

        profile = GuardianProfile(
            identity=identity,
            guardians=members,
            threshold=threshold,
            updated_at=now,
        )
        self._state.profiles[identity] = profile
        self._audit.append(
            AuditAction.GUARDIANS_SET,
            identity,
            identity,
            now,
            {"threshold": threshold, "num_guardians": len(members)},
        )

        logger.info(f"Guardian profile for {identity} set: {threshold}-of-{len(members)}")
        return profile

    def get_profile(self, identity: str) -> Optional[GuardianProfile]:
        return self._state.profiles.get(identity)
