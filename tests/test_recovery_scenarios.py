"""
End-to-end recovery scenarios through the public runtime surface.

Tests cover:
- Successful threshold recovery
- Replay protection
- Expiration
- Insufficient endorsements
- Pausing a record
"""
from __future__ import annotations

import pytest

from guardian_recovery import RecoveryState

ADMIN = "admin"
OWNER = "owner"
NEW_OWNER = "new-owner"


class TestScenarioA:
    """Two of three guardians endorse and recovery completes."""

    def test_threshold_recovery(self, runtime, registered, request_id):
        """Should transfer ownership once the threshold is met."""
        assert runtime.endorse_recovery("g1", request_id).value == 1
        assert runtime.endorse_recovery("g2", request_id).value == 2

        result = runtime.complete_recovery("anyone", request_id)

        assert result.ok
        assert result.value == NEW_OWNER
        assert runtime.get_record(registered).owner == NEW_OWNER
        assert runtime.get_request(request_id).completed is True
        assert runtime.get_state(request_id) == RecoveryState.COMPLETED

    def test_second_complete_reports_already_completed(self, runtime, request_id):
        """Completion happens exactly once."""
        runtime.endorse_recovery("g1", request_id)
        runtime.endorse_recovery("g2", request_id)
        assert runtime.complete_recovery("anyone", request_id).ok

        retry = runtime.complete_recovery("anyone", request_id)

        assert not retry.ok
        assert retry.error_code == "ALREADY_COMPLETED"

    def test_completed_request_rejects_endorsements(self, runtime, request_id):
        runtime.endorse_recovery("g1", request_id)
        runtime.endorse_recovery("g2", request_id)
        runtime.complete_recovery("anyone", request_id)

        result = runtime.endorse_recovery("g3", request_id)

        assert result.error_code == "ALREADY_COMPLETED"
        assert runtime.get_request(request_id).endorsement_count == 2


class TestScenarioB:
    """A guardian cannot be counted twice."""

    def test_duplicate_endorsement(self, runtime, request_id):
        """Should reject the second endorsement and keep the count."""
        assert runtime.endorse_recovery("g1", request_id).value == 1

        result = runtime.endorse_recovery("g1", request_id)

        assert not result.ok
        assert result.error_code == "DUPLICATE_ENDORSEMENT"
        assert runtime.get_request(request_id).endorsement_count == 1
        assert runtime.get_status(request_id).collected == 1
        assert runtime.has_endorsed(request_id, "g1") is True


class TestScenarioC:
    """Requests stop accepting endorsements at their deadline."""

    def test_endorse_at_deadline_is_expired(self, runtime, request_id):
        request = runtime.get_request(request_id)
        assert request.expires_at == request.created_at + 144

        runtime.clock.set(request.expires_at)
        result = runtime.endorse_recovery("g1", request_id)

        assert not result.ok
        assert result.error_code == "REQUEST_EXPIRED"
        assert runtime.has_endorsed(request_id, "g1") is False
        assert runtime.get_request(request_id).endorsement_count == 0

    def test_endorse_one_tick_before_deadline(self, runtime, request_id):
        request = runtime.get_request(request_id)
        runtime.clock.set(request.expires_at - 1)

        assert runtime.endorse_recovery("g1", request_id).ok

    def test_complete_after_deadline_is_expired(self, runtime, registered, request_id):
        """Should refuse completion even when the threshold was met in time."""
        runtime.endorse_recovery("g1", request_id)
        runtime.endorse_recovery("g2", request_id)
        runtime.commit_block(144)

        result = runtime.complete_recovery("anyone", request_id)

        assert result.error_code == "REQUEST_EXPIRED"
        assert runtime.get_record(registered).owner == OWNER
        assert runtime.get_request(request_id).completed is False
        assert runtime.get_state(request_id) == RecoveryState.EXPIRED


class TestScenarioD:
    """Completion needs the full threshold."""

    def test_insufficient_endorsements(self, runtime, registered, request_id):
        runtime.endorse_recovery("g1", request_id)

        result = runtime.complete_recovery("anyone", request_id)

        assert not result.ok
        assert result.error_code == "INSUFFICIENT_ENDORSEMENTS"
        assert result.details["collected"] == 1
        assert result.details["required"] == 2
        assert runtime.get_record(registered).owner == OWNER


class TestScenarioE:
    """Pausing blocks new requests but not requests in flight."""

    def test_pause_blocks_initiation(self, runtime, registered):
        assert runtime.pause_record(ADMIN, registered).ok

        result = runtime.initiate_recovery("requester", registered, NEW_OWNER)

        assert not result.ok
        assert result.error_code == "RECORD_INACTIVE"

    def test_open_request_survives_pause(self, runtime, registered, request_id):
        runtime.pause_record(ADMIN, registered)

        assert runtime.endorse_recovery("g1", request_id).ok
        assert runtime.endorse_recovery("g2", request_id).ok
        result = runtime.complete_recovery("anyone", request_id)

        assert result.ok
        assert runtime.get_record(registered).owner == NEW_OWNER

    def test_reactivate_allows_initiation(self, runtime, registered):
        runtime.pause_record(ADMIN, registered)
        runtime.reactivate_record(ADMIN, registered)

        assert runtime.initiate_recovery("requester", registered, NEW_OWNER).ok
