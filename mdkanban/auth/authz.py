"""
Authorization checks for task mutations.

Rules:
- A caller may mutate a task iff they are its assignee or a maintainer.
- Coding operations additionally require the task to already be in an
  in-progress status (``GateViolationError`` otherwise).
- Trust-local mode, off unless switched on out-of-band, treats an
  unidentified caller as the first configured maintainer.
"""

import logging
from typing import Optional

from ..config.workflow import WorkflowConfig
from ..exceptions import GateViolationError, UnauthorizedError
from ..tasks.models import TaskRecord
from .identity import AuthContext, CallerResolver, resolve_caller_id

logger = logging.getLogger(__name__)

UNKNOWN_CALLER = "unknown"


class Authorizer:
    """Authorization gate bound to one workflow config snapshot."""

    def __init__(
        self,
        config: WorkflowConfig,
        resolve: Optional[CallerResolver] = None,
        trust_local: bool = False,
    ):
        self.config = config
        self.resolve = resolve or resolve_caller_id
        self.trust_local = trust_local

    def effective_caller(self, ctx: Optional[AuthContext], operation: str = "") -> Optional[str]:
        """Caller id after applying trust-local substitution."""
        caller_id = self.resolve(ctx or AuthContext())
        if not caller_id and self.trust_local:
            maintainers = self.config.maintainers
            if maintainers:
                caller_id = maintainers[0]
                logger.debug(f"Trust-local mode: using first maintainer {caller_id!r} for {operation}")
        return caller_id

    def is_maintainer(self, caller_id: Optional[str]) -> bool:
        return self.config.is_maintainer(caller_id)

    def assert_task_mutation_allowed(
        self,
        task: TaskRecord,
        ctx: Optional[AuthContext],
        operation: str,
    ) -> str:
        """Ensure the caller is the assignee or a maintainer.

        Returns:
            The effective caller id.

        Raises:
            UnauthorizedError: The caller is unidentified or lacks rights.
        """
        resolved = self.effective_caller(ctx, operation)
        caller_id = resolved or UNKNOWN_CALLER
        # an unidentified caller never matches an assignee
        is_assignee = resolved is not None and task.assignee is not None and task.assignee == resolved

        if not (self.is_maintainer(resolved) or is_assignee):
            logger.debug(
                f"Authorization check failed: caller={caller_id!r} task={task.id} "
                f"assignee={task.assignee!r} maintainers={self.config.maintainers} "
                f"operation={operation}"
            )
            raise UnauthorizedError(caller_id, operation)

        return caller_id

    def assert_coding_allowed(
        self,
        task: TaskRecord,
        ctx: Optional[AuthContext],
        operation: str,
    ) -> str:
        """Mutation check plus: the task must already be in progress."""
        caller_id = self.assert_task_mutation_allowed(task, ctx, operation)

        if not self.config.is_in_progress(task.status):
            raise GateViolationError(
                task.id,
                task.status or "undefined",
                self.config.in_progress_statuses,
            )

        return caller_id

    def assert_maintainer(self, ctx: Optional[AuthContext], operation: str) -> str:
        """Maintainer-only operations."""
        resolved = self.effective_caller(ctx, operation)
        caller_id = resolved or UNKNOWN_CALLER
        if not self.is_maintainer(resolved):
            logger.debug(
                f"Maintainer check failed: caller={caller_id!r} "
                f"maintainers={self.config.maintainers} operation={operation}"
            )
            raise UnauthorizedError(caller_id, operation)
        return caller_id
