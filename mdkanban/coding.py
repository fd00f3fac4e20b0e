"""Coding operations on tasks that are already in progress.

These sit behind the stricter authorization gate: the caller must be the
assignee or a maintainer, and the task must already be in one of the
configured in-progress statuses.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .auth.identity import AuthContext
from .config.constants import OP_CODING_START, OP_CODING_SUGGEST, OP_CODING_UPDATE_STATUS
from .tasks.models import TaskRecord
from .tasks.service import MoveResult, TaskService

logger = logging.getLogger(__name__)

IMPLEMENTATION_NOTES_SECTION = "Implementation Notes"
ACCEPTANCE_CRITERIA_SECTION = "Acceptance Criteria"

_FILE_REFERENCE_RE = re.compile(r"`([^`\s]+\.(?:py|ts|js|yaml|yml|json|md|toml))`")
_UNCHECKED_ITEM_RE = re.compile(r"^\s*[-*]\s*\[\s\]\s*(.*)$")

# keyword -> complexity, checked in order
_COMPLEXITY_KEYWORDS = [
    ("small", ("unit test", "add", "simple", "rename", "typo")),
    ("medium", ("implement", "create", "design")),
    ("large", ("refactor", "migration", "system")),
]


@dataclass
class NextStep:
    """A suggested next step for a task."""

    description: str
    estimated_complexity: str  # small, medium, large
    expected_files: List[str] = field(default_factory=list)


def extract_relevant_files(task: TaskRecord) -> List[str]:
    """File paths quoted in backticks in the notes and acceptance criteria."""
    files: List[str] = []
    for name in (IMPLEMENTATION_NOTES_SECTION, ACCEPTANCE_CRITERIA_SECTION):
        body = task.get_section(name) or ""
        for match in _FILE_REFERENCE_RE.findall(body):
            if match not in files:
                files.append(match)
    return files


def unchecked_criteria(task: TaskRecord) -> List[str]:
    """Unchecked ``- [ ]`` items of the acceptance criteria, in order."""
    body = task.get_section(ACCEPTANCE_CRITERIA_SECTION) or ""
    items = []
    for line in body.split("\n"):
        match = _UNCHECKED_ITEM_RE.match(line)
        if match and match.group(1).strip():
            items.append(match.group(1).strip())
    return items


def estimate_complexity(description: str) -> str:
    lowered = description.lower()
    for complexity, keywords in _COMPLEXITY_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return complexity
    return "medium"


class CodingService:
    """Coding-specific operations layered on ``TaskService``."""

    def __init__(self, tasks: TaskService):
        self.tasks = tasks

    def _gated_task(self, task_id: str, ctx: Optional[AuthContext], operation: str) -> TaskRecord:
        task = self.tasks.get(task_id)
        self.tasks.authorizer().assert_coding_allowed(task, ctx, operation)
        return task

    def start_task(self, task_id: str, ctx: Optional[AuthContext] = None) -> Dict[str, Any]:
        """Task context for starting work: metadata, sections, referenced files."""
        task = self._gated_task(task_id, ctx, OP_CODING_START)
        return {
            "task": {
                "meta": task.meta,
                "title": task.title,
                "sections": dict(task.sections),
            },
            "relevant_files": extract_relevant_files(task),
        }

    def suggest_next_step(self, task_id: str, ctx: Optional[AuthContext] = None) -> NextStep:
        """First unchecked acceptance criterion, or a wrap-up step if none remain."""
        task = self._gated_task(task_id, ctx, OP_CODING_SUGGEST)
        remaining = unchecked_criteria(task)

        if remaining:
            description = remaining[0]
            complexity = estimate_complexity(description)
        else:
            description = "Review and finalize implementation"
            complexity = "small"

        return NextStep(
            description=description,
            estimated_complexity=complexity,
            expected_files=extract_relevant_files(task),
        )

    def update_status(
        self,
        task_id: str,
        version: int,
        status: str,
        ctx: Optional[AuthContext] = None,
    ) -> MoveResult:
        """Non-forced status move for a task that is currently in progress."""
        self._gated_task(task_id, ctx, OP_CODING_UPDATE_STATUS)
        return self.tasks.move(
            task_id,
            version,
            status,
            force=False,
            ctx=ctx,
            operation=OP_CODING_UPDATE_STATUS,
        )
