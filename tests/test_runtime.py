"""
Tests for guardian_recovery.runtime.

Tests cover:
- OperationResult tagging and unwrap
- Transaction rollback on abort
- Identifier generation failures
- Audit trail integrity
"""
from __future__ import annotations

from dataclasses import replace
from unittest.mock import patch

import pytest

from guardian_recovery import (
    AuditAction,
    IdentifierGenerationError,
    InvalidInputError,
    OperationResult,
    RecordInactiveError,
    RecoveryException,
    get_recovery_runtime,
)
from guardian_recovery import runtime as runtime_module


class TestOperationResult:
    """Tests for OperationResult."""

    def test_success(self):
        result = OperationResult.success(3)

        assert result.ok is True
        assert result.unwrap() == 3
        assert result.to_dict() == {"ok": True, "value": 3}

    def test_success_serializes_identifiers(self):
        result = OperationResult.success(b"\x01" * 32)

        assert result.to_dict()["value"] == "01" * 32

    def test_failure_unwrap_raises_matching_type(self):
        result = OperationResult.failure(RecordInactiveError("abcd"))

        with pytest.raises(RecordInactiveError) as exc_info:
            result.unwrap()

        assert exc_info.value.message == "Record abcd is not active"
        assert exc_info.value.details == {"record_id": "abcd"}

    def test_failure_to_dict(self):
        result = OperationResult.failure(RecordInactiveError("abcd"))

        assert result.to_dict() == {
            "ok": False,
            "error": "RECORD_INACTIVE",
            "message": "Record abcd is not active",
            "details": {"record_id": "abcd"},
        }

    def test_unknown_code_unwraps_to_base(self):
        result = OperationResult(ok=False, error_code="SOMETHING_ELSE", message="boom")

        with pytest.raises(RecoveryException) as exc_info:
            result.unwrap()

        assert exc_info.value.error_code == "SOMETHING_ELSE"


class TestTransactions:
    """Tests for RecoveryRuntime.transaction."""

    def test_abort_restores_state(self, runtime, registered):
        with pytest.raises(RuntimeError):
            with runtime.transaction("owner"):
                runtime.registry.set_active(registered, False)
                runtime.directory.set_guardians("owner", ["a", "b", "c"], 2)
                raise RuntimeError("abort")

        assert runtime.get_record(registered).active is True
        assert runtime.get_guardian_profile("owner") is None
        assert [e.action for e in runtime.get_audit_events()] == [AuditAction.RECORD_REGISTERED]

    def test_commit_keeps_state(self, runtime, registered):
        with runtime.transaction("owner") as tx_id:
            runtime.registry.set_active(registered, False)

        assert tx_id.startswith("txn_")
        assert runtime.get_record(registered).active is False

    def test_completion_is_all_or_nothing(self, runtime, registered, request_id):
        """A failure after the owner write must not leave it applied."""
        runtime.endorse_recovery("g1", request_id)
        runtime.endorse_recovery("g2", request_id)
        original_append = runtime.ledger._audit.append

        def failing_append(action, *args, **kwargs):
            if action == AuditAction.RECOVERY_COMPLETED:
                raise RuntimeError("storage failure")
            return original_append(action, *args, **kwargs)

        with patch.object(runtime.ledger._audit, "append", side_effect=failing_append):
            with pytest.raises(RuntimeError):
                runtime.complete_recovery("anyone", request_id)

        assert runtime.get_record(registered).owner == "owner"
        assert runtime.get_request(request_id).completed is False
        assert runtime.complete_recovery("anyone", request_id).ok

    def test_empty_caller_rejected(self, runtime, registered):
        result = runtime.initiate_recovery("", registered, "new-owner")

        assert result.error_code == "INVALID_INPUT"

        with pytest.raises(InvalidInputError):
            with runtime.transaction(""):
                pass

    def test_failed_operation_writes_nothing(self, runtime, request_id):
        before = len(runtime.get_audit_events())

        runtime.endorse_recovery("mallory", request_id)
        runtime.complete_recovery("anyone", request_id)

        assert len(runtime.get_audit_events()) == before


class TestIdentifierGenerationFailure:
    """Environment contract breaches abort instead of returning a result."""

    def test_clock_regression_aborts(self, runtime, registered):
        runtime._state.last_allocation_tick = runtime.now() + 1
        counter_before = runtime._state.request_counter

        with pytest.raises(IdentifierGenerationError):
            runtime.initiate_recovery("requester", registered, "new-owner")

        assert runtime.list_requests(registered) == []
        assert runtime._state.request_counter == counter_before

    def test_tick_beyond_identifier_width_aborts(self, runtime, registered):
        runtime.clock.set(2**128)
        audit_before = len(runtime.get_audit_events())

        with pytest.raises(IdentifierGenerationError):
            runtime.initiate_recovery("requester", registered, "new-owner")

        assert runtime.list_requests(registered) == []
        assert runtime._state.request_counter == 0
        assert len(runtime.get_audit_events()) == audit_before


class TestAuditTrail:
    """Tests for the audit trail exposed by the runtime."""

    def test_full_flow_is_recorded(self, runtime, registered, request_id):
        runtime.endorse_recovery("g1", request_id)
        runtime.endorse_recovery("g2", request_id)
        runtime.complete_recovery("closer", request_id)

        actions = [e.action for e in runtime.get_audit_events()]
        assert actions == [
            AuditAction.RECORD_REGISTERED,
            AuditAction.RECOVERY_INITIATED,
            AuditAction.RECOVERY_ENDORSED,
            AuditAction.RECOVERY_ENDORSED,
            AuditAction.RECOVERY_COMPLETED,
        ]

        completed = runtime.get_audit_events(request_id)[-1]
        assert completed.actor == "closer"
        assert completed.details["previous_owner"] == "owner"
        assert completed.details["new_owner"] == "new-owner"
        assert runtime.verify_audit_chain() == (True, None)

    def test_returned_events_are_copies(self, runtime, registered, request_id):
        event = runtime.get_audit_events(request_id)[0]
        event.details["new_owner"] = "attacker"

        assert runtime.get_audit_events(request_id)[0].details["new_owner"] == "new-owner"
        assert runtime.verify_audit_chain() == (True, None)

    def test_lookup_accepts_any_identifier_form(self, runtime, registered, request_id):
        expected = runtime.get_audit_events(request_id)
        assert [e.action for e in expected] == [AuditAction.RECOVERY_INITIATED]

        assert runtime.get_audit_events(request_id.hex()) == expected
        assert runtime.get_audit_events(request_id.hex().upper()) == expected
        assert runtime.get_audit_events("0x" + request_id.hex().upper()) == expected
        assert runtime.get_audit_events(bytearray(request_id)) == expected

    def test_lookup_by_identity(self, runtime):
        runtime.set_guardians("alice", ["g1", "g2", "g3"], 2).unwrap()

        events = runtime.get_audit_events("alice")

        assert [e.action for e in events] == [AuditAction.GUARDIANS_SET]
        assert runtime.get_audit_events("nobody") == []

    def test_tampering_detected(self, runtime, registered, request_id):
        events = runtime._state.audit_events
        events[0] = replace(events[0], actor="someone-else")

        ok, error = runtime.verify_audit_chain()

        assert ok is False
        assert "Hash mismatch" in error

    def test_broken_link_detected(self, runtime, registered, request_id):
        events = runtime._state.audit_events
        events[1] = replace(events[1], previous_hash="0" * 64)

        ok, error = runtime.verify_audit_chain()

        assert ok is False
        assert "chain broken" in error


class TestClockIntegration:
    def test_commit_block_advances(self, runtime):
        start = runtime.now()

        assert runtime.commit_block() == start + 1
        assert runtime.commit_block(10) == start + 11

    def test_request_ids_differ_across_ticks(self, runtime, registered):
        first = runtime.initiate_recovery("r", registered, "n").unwrap()
        runtime.commit_block()
        second = runtime.initiate_recovery("r", registered, "n").unwrap()

        assert first != second


class TestDefaultRuntime:
    def test_singleton(self, settings, monkeypatch):
        monkeypatch.setattr(runtime_module, "_recovery_runtime", None)

        first = get_recovery_runtime(settings)
        second = get_recovery_runtime()

        assert first is second
        assert first.settings is settings
