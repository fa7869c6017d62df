"""
Pytest configuration for guardian-recovery tests.
"""
from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Add package source to path
package_src = Path(__file__).parent.parent / "src"
if str(package_src) not in sys.path:
    sys.path.insert(0, str(package_src))

from guardian_recovery.clock import LogicalClock
from guardian_recovery.config import RecoverySettings
from guardian_recovery.runtime import RecoveryRuntime

ADMIN = "admin"
OWNER = "owner"
GUARDIANS = ["g1", "g2", "g3"]
NEW_OWNER = "new-owner"
RECORD_ID = bytes([0xAB]) * 32


@pytest.fixture
def settings() -> RecoverySettings:
    return RecoverySettings(_env_file=None, administrator=ADMIN)


@pytest.fixture
def clock() -> LogicalClock:
    return LogicalClock(start=100)


@pytest.fixture
def runtime(settings, clock) -> RecoveryRuntime:
    return RecoveryRuntime(settings=settings, clock=clock)


@pytest.fixture
def registered(runtime) -> bytes:
    """A record with guardians g1, g2, g3 and threshold 2."""
    result = runtime.register_record(OWNER, RECORD_ID, b"ciphertext", GUARDIANS, 2)
    assert result.ok
    return result.value


@pytest.fixture
def request_id(runtime, registered) -> bytes:
    """An open recovery request against the registered record."""
    return runtime.initiate_recovery("requester", registered, NEW_OWNER).unwrap()
