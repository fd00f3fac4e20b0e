"""Exception hierarchy for mdkanban.

Every error raised by the task lifecycle core is terminal to the call that
triggered it. Each carries a stable ``code`` and structured context so a
caller (human tool or agent) can decide whether to reload and retry,
escalate, or abort.

Exception Hierarchy:
    MdkanbanError (base)
    ├── ConfigurationError - workflow config / settings problems
    └── TaskError - anything about a single task record
        ├── TaskParseError
        ├── TaskIdMismatchError
        ├── TaskNotFoundError
        ├── TaskLockedError (retryable)
        ├── ConflictError (retryable)
        ├── InvalidStatusError
        ├── InvalidTransitionError
        ├── DependenciesUnmetError
        ├── UnauthorizedError
        └── GateViolationError

Usage:
    from mdkanban.exceptions import ConflictError, TaskLockedError

    try:
        service.move("task-001", version=1, to_status="Ready")
    except (ConflictError, TaskLockedError) as e:
        # reload and retry later
        ...

Unexpected I/O failures (permissions, disk) are never wrapped; they
propagate as the builtin ``OSError`` subclasses.
"""

from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorCode(str, Enum):
    """Stable error codes surfaced to callers."""

    CONFIG_NOT_FOUND = "CONFIG_NOT_FOUND"
    CONFIG_INVALID = "CONFIG_INVALID"

    TASK_NOT_FOUND = "TASK_NOT_FOUND"
    TASK_ID_MISMATCH = "TASK_ID_MISMATCH"
    TASK_INVALID_STATUS = "TASK_INVALID_STATUS"
    TASK_PARSE_ERROR = "TASK_PARSE_ERROR"
    TASK_LOCKED = "TASK_LOCKED"
    DEPENDENCIES_NOT_MET = "DEPENDENCIES_NOT_MET"

    GATE_VIOLATION = "GATE_VIOLATION"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    CONFLICT_DETECTED = "CONFLICT_DETECTED"

    UNAUTHORIZED = "UNAUTHORIZED"


class MdkanbanError(Exception):
    """Base exception for all mdkanban errors.

    Attributes:
        message: Human-readable error description
        context: Structured context about the error (ids, versions, paths)
        retryable: Whether the same call might succeed after reloading state
    """

    code: ErrorCode = ErrorCode.CONFIG_INVALID

    def __init__(
        self,
        message: str,
        *,
        retryable: bool = False,
        **context: Any,
    ) -> None:
        self.message = message
        self.context = context
        self.retryable = retryable
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the error message with context."""
        if self.context:
            context_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({context_str})"
        return self.message

    def to_envelope(self) -> Dict[str, Any]:
        """Render as an error envelope: ``{"error": {code, message, details}}``."""
        error: Dict[str, Any] = {"code": self.code.value, "message": self.message}
        if self.context:
            error["details"] = dict(self.context)
        return {"error": error}


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(MdkanbanError):
    """Workflow configuration is missing, malformed or inconsistent."""

    code = ErrorCode.CONFIG_INVALID

    def __init__(
        self,
        message: str = "Configuration error",
        *,
        setting: Optional[str] = None,
        **context: Any,
    ) -> None:
        if setting:
            context["setting"] = setting
        super().__init__(message, **context)


# =============================================================================
# Task Errors
# =============================================================================


class TaskError(MdkanbanError):
    """Base exception for task-related errors."""

    pass


class TaskParseError(TaskError):
    """A task file has malformed or unterminated front-matter."""

    code = ErrorCode.TASK_PARSE_ERROR

    def __init__(self, task_id: str, reason: str) -> None:
        self.task_id = task_id
        self.reason = reason
        super().__init__(
            f'Failed to parse task "{task_id}": {reason}',
            task_id=task_id,
            reason=reason,
        )


class TaskIdMismatchError(TaskError):
    """The filename-derived id disagrees with the declared id."""

    code = ErrorCode.TASK_ID_MISMATCH

    def __init__(self, filename_id: str, meta_id: str) -> None:
        self.filename_id = filename_id
        self.meta_id = meta_id
        super().__init__(
            f'Task ID mismatch: filename says "{filename_id}" but metadata says "{meta_id}"',
            filename_id=filename_id,
            meta_id=meta_id,
        )


class TaskNotFoundError(TaskError):
    """No task file exists for the requested id."""

    code = ErrorCode.TASK_NOT_FOUND

    def __init__(self, task_id: str) -> None:
        self.task_id = task_id
        super().__init__(f'Task "{task_id}" not found', task_id=task_id)


class TaskLockedError(TaskError):
    """Another process holds the task's lock marker - retryable."""

    code = ErrorCode.TASK_LOCKED

    def __init__(self, task_id: str, lock_file: Optional[str] = None) -> None:
        self.task_id = task_id
        context: Dict[str, Any] = {"task_id": task_id}
        if lock_file:
            context["lock_file"] = lock_file
        super().__init__(
            f'Task "{task_id}" is locked by another process',
            retryable=True,
            **context,
        )


class ConflictError(TaskError):
    """The caller's version is stale - reload and retry."""

    code = ErrorCode.CONFLICT_DETECTED

    def __init__(self, task_id: str, expected_version: int, actual_version: int) -> None:
        self.task_id = task_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f'Version conflict for task "{task_id}": '
            f"expected {expected_version}, found {actual_version}",
            retryable=True,
            task_id=task_id,
            expected_version=expected_version,
            actual_version=actual_version,
        )


class InvalidStatusError(TaskError):
    """The requested status is not part of the configured status set."""

    code = ErrorCode.TASK_INVALID_STATUS

    def __init__(self, task_id: str, status: str) -> None:
        self.task_id = task_id
        self.status = status
        super().__init__(
            f'Invalid status "{status}" for task "{task_id}"',
            task_id=task_id,
            status=status,
        )


class InvalidTransitionError(TaskError):
    """The transition graph does not allow this status change."""

    code = ErrorCode.INVALID_TRANSITION

    def __init__(self, task_id: str, from_status: str, to_status: str) -> None:
        self.task_id = task_id
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f'Transition from "{from_status}" to "{to_status}" is not allowed for task "{task_id}"',
            task_id=task_id,
            from_status=from_status,
            to_status=to_status,
        )


class DependenciesUnmetError(TaskError):
    """One or more prerequisite tasks are not Done."""

    code = ErrorCode.DEPENDENCIES_NOT_MET

    def __init__(self, task_id: str, unmet: List[str]) -> None:
        self.task_id = task_id
        self.unmet = list(unmet)
        super().__init__(
            f'Task "{task_id}" has unmet dependencies: {", ".join(self.unmet)}',
            task_id=task_id,
            unmet=self.unmet,
        )


class UnauthorizedError(TaskError):
    """The caller is neither the assignee nor a maintainer."""

    code = ErrorCode.UNAUTHORIZED

    def __init__(self, caller_id: str, operation: str) -> None:
        self.caller_id = caller_id
        self.operation = operation
        super().__init__(
            f'Caller "{caller_id}" is not authorized to perform "{operation}"',
            caller_id=caller_id,
            operation=operation,
        )


class GateViolationError(TaskError):
    """A coding operation was attempted on a task that is not in progress."""

    code = ErrorCode.GATE_VIOLATION

    def __init__(
        self,
        task_id: str,
        current_status: str,
        in_progress_statuses: Optional[List[str]] = None,
    ) -> None:
        self.task_id = task_id
        self.current_status = current_status
        context: Dict[str, Any] = {"task_id": task_id, "current_status": current_status}
        if in_progress_statuses is not None:
            context["in_progress_statuses"] = list(in_progress_statuses)
        super().__init__(
            f'Task "{task_id}" is in status "{current_status}", not in an in-progress status',
            **context,
        )
