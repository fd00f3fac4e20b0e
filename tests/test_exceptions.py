"""Tests for the exception hierarchy."""

import pytest

from mdkanban.exceptions import (
    ConfigurationError,
    ConflictError,
    DependenciesUnmetError,
    ErrorCode,
    GateViolationError,
    InvalidStatusError,
    InvalidTransitionError,
    MdkanbanError,
    TaskError,
    TaskIdMismatchError,
    TaskLockedError,
    TaskNotFoundError,
    TaskParseError,
    UnauthorizedError,
)


@pytest.mark.parametrize(
    "error, code",
    [
        (TaskParseError("task-001", "bad"), ErrorCode.TASK_PARSE_ERROR),
        (TaskIdMismatchError("task-001", "task-002"), ErrorCode.TASK_ID_MISMATCH),
        (TaskNotFoundError("task-001"), ErrorCode.TASK_NOT_FOUND),
        (TaskLockedError("task-001"), ErrorCode.TASK_LOCKED),
        (ConflictError("task-001", 1, 2), ErrorCode.CONFLICT_DETECTED),
        (InvalidStatusError("task-001", "Nope"), ErrorCode.TASK_INVALID_STATUS),
        (InvalidTransitionError("task-001", "A", "B"), ErrorCode.INVALID_TRANSITION),
        (DependenciesUnmetError("task-001", ["task-000"]), ErrorCode.DEPENDENCIES_NOT_MET),
        (UnauthorizedError("eve", "tasks.move"), ErrorCode.UNAUTHORIZED),
        (GateViolationError("task-001", "Ready"), ErrorCode.GATE_VIOLATION),
    ],
)
def test_task_error_codes(error, code):
    assert isinstance(error, TaskError)
    assert isinstance(error, MdkanbanError)
    assert error.code == code


class TestRetryable:
    def test_only_lock_and_conflict_are_retryable(self):
        assert TaskLockedError("task-001").retryable
        assert ConflictError("task-001", 1, 2).retryable
        assert not TaskNotFoundError("task-001").retryable
        assert not UnauthorizedError("eve", "tasks.move").retryable


class TestEnvelope:
    def test_conflict_envelope(self):
        envelope = ConflictError("task-001", 1, 2).to_envelope()
        assert envelope["error"]["code"] == "CONFLICT_DETECTED"
        assert envelope["error"]["details"] == {
            "task_id": "task-001",
            "expected_version": 1,
            "actual_version": 2,
        }

    def test_dependencies_envelope_lists_blockers(self):
        envelope = DependenciesUnmetError("task-003", ["task-001", "task-002"]).to_envelope()
        assert envelope["error"]["details"]["unmet"] == ["task-001", "task-002"]

    def test_no_details_without_context(self):
        envelope = ConfigurationError("broken").to_envelope()
        assert envelope == {"error": {"code": "CONFIG_INVALID", "message": "broken"}}


class TestMessages:
    def test_message_includes_context(self):
        error = TaskNotFoundError("task-001")
        assert "task-001" in str(error)
        assert error.message == 'Task "task-001" not found'

    def test_configuration_setting(self):
        error = ConfigurationError("bad statuses", setting="statuses")
        assert error.context == {"setting": "statuses"}
        assert "setting='statuses'" in str(error)
