"""
Status transition and dependency gates.

Both gates are pure checks against a ``WorkflowConfig`` snapshot; they never
touch the task being moved.
"""

import logging
from typing import Callable, List, Optional

from ..config.workflow import WorkflowConfig
from ..exceptions import (
    DependenciesUnmetError,
    InvalidTransitionError,
    TaskIdMismatchError,
    TaskNotFoundError,
    TaskParseError,
)
from .models import TaskRecord

logger = logging.getLogger(__name__)

TaskLoader = Callable[[str], TaskRecord]


def is_transition_allowed(
    config: WorkflowConfig,
    from_status: Optional[str],
    to_status: str,
    force: bool = False,
) -> bool:
    """Whether ``from_status -> to_status`` passes the transition graph.

    An empty graph allows everything. Otherwise a status with no listed key
    allows nothing. ``force`` must only be passed for maintainers.
    """
    if force or not config.has_transition_graph():
        return True
    return to_status in config.allowed_targets(from_status)


def check_transition(
    config: WorkflowConfig,
    task_id: str,
    from_status: Optional[str],
    to_status: str,
    force: bool = False,
) -> None:
    """Raise ``InvalidTransitionError`` unless the move is allowed."""
    if not is_transition_allowed(config, from_status, to_status, force=force):
        raise InvalidTransitionError(task_id, from_status or "", to_status)
    if force and config.has_transition_graph() and to_status not in config.allowed_targets(from_status):
        logger.info(f"Maintainer force override: {task_id} {from_status!r} -> {to_status!r}")


def find_unmet_dependencies(task: TaskRecord, load: TaskLoader) -> List[str]:
    """Every dependency id that is missing, unreadable or not ``Done``."""
    unmet: List[str] = []
    for dep_id in task.depends_on:
        try:
            dependency = load(dep_id)
        except (TaskNotFoundError, TaskParseError, TaskIdMismatchError) as e:
            logger.debug(f"Dependency {dep_id} of {task.id} counted as unmet: {e}")
            unmet.append(dep_id)
            continue
        if not dependency.is_done:
            unmet.append(dep_id)
    return unmet


def check_dependencies(
    config: WorkflowConfig,
    task: TaskRecord,
    to_status: str,
    load: TaskLoader,
) -> None:
    """Block entry into an in-progress status until all dependencies are Done."""
    if not config.is_in_progress(to_status):
        return
    unmet = find_unmet_dependencies(task, load)
    if unmet:
        raise DependenciesUnmetError(task.id, unmet)
