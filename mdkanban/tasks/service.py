"""
Service layer for task records.

Every mutation runs the same flow:

    lock -> load -> authorize -> version check -> (status gates) -> apply
         -> write (version + 1) -> unlock -> audit

Collaborators (config provider, caller resolver, audit sink) are passed in
explicitly so tests and embedding tools control them.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Union

from ..audit.log import AuditEntry, AuditSink, JsonlAuditLog, record_audit
from ..auth.authz import Authorizer
from ..auth.identity import AuthContext, CallerResolver, resolve_caller_id
from ..config.constants import OP_TASKS_MOVE, OP_TASKS_UPDATE
from ..config.settings import is_trust_local_enabled
from ..config.workflow import ConfigProvider, WorkflowConfig
from ..exceptions import ConflictError, InvalidStatusError, TaskIdMismatchError
from ..utils.datetime_utils import utc_now_iso
from .gates import check_dependencies, check_transition
from .locking import TaskLock
from .models import TaskRecord
from .store import get_task, load_tasks, read_task, resolve_task_path, write_task

logger = logging.getLogger(__name__)

# apply(task, caller_id) -> audit context
Mutation = Callable[[TaskRecord, str], Dict[str, Any]]


@dataclass
class MoveResult:
    """Outcome of a status move."""

    task: TaskRecord
    old_status: Optional[str]
    new_status: str

    @property
    def meta(self) -> Dict[str, Any]:
        return self.task.meta


@dataclass
class UpdateResult:
    """Outcome of a partial update."""

    task: TaskRecord

    @property
    def meta(self) -> Dict[str, Any]:
        return self.task.meta


class TaskService:
    """Reads and mutates task records under one project root."""

    def __init__(
        self,
        base_dir: Union[str, Path],
        config_provider: Optional[ConfigProvider] = None,
        audit_sink: Optional[AuditSink] = None,
        resolve_caller: Optional[CallerResolver] = None,
        trust_local: Optional[bool] = None,
        clock: Optional[Callable[[], str]] = None,
    ):
        self.base_dir = Path(base_dir)
        self.config_provider = config_provider or ConfigProvider(self.base_dir)
        self.audit_sink = audit_sink if audit_sink is not None else JsonlAuditLog.for_project(self.base_dir)
        self.resolve_caller = resolve_caller or resolve_caller_id
        self.trust_local = is_trust_local_enabled() if trust_local is None else trust_local
        self.clock = clock or utc_now_iso

    @property
    def config(self) -> WorkflowConfig:
        return self.config_provider.config

    def authorizer(self, config: Optional[WorkflowConfig] = None) -> Authorizer:
        """Authorization gate for a config snapshot (default: the current one)."""
        return Authorizer(config or self.config, self.resolve_caller, trust_local=self.trust_local)

    # ==========================================================================
    # READS
    # ==========================================================================

    def get(self, task_id: str) -> TaskRecord:
        """Get a task by id."""
        return get_task(task_id, self.base_dir)

    def list(
        self,
        status: Optional[Union[str, Iterable[str]]] = None,
        assignee: Optional[str] = None,
        query: Optional[str] = None,
    ) -> List[TaskRecord]:
        """List tasks with optional filters, sorted by id.

        ``status`` is one status or a collection of them. Files that fail to
        parse are skipped with a warning.
        """
        if isinstance(status, str):
            status = [status]
        statuses = set(status) if status else None
        records, _ = load_tasks(self.base_dir)

        results = []
        for record in records:
            if statuses is not None and record.status not in statuses:
                continue
            if assignee is not None and record.assignee != assignee:
                continue
            if query and not _matches_query(record, query):
                continue
            results.append(record)

        return sorted(results, key=lambda r: r.id)

    # ==========================================================================
    # MUTATIONS
    # ==========================================================================

    def move(
        self,
        task_id: str,
        version: int,
        to_status: str,
        force: bool = False,
        ctx: Optional[AuthContext] = None,
        operation: str = OP_TASKS_MOVE,
    ) -> MoveResult:
        """Move a task to a new status.

        ``force`` bypasses the transition graph for maintainers only. It never
        bypasses authorization, the dependency gate or the version check.
        """
        config = self.config
        if to_status not in config.statuses:
            raise InvalidStatusError(task_id, to_status)

        def apply(task: TaskRecord, caller_id: str) -> Dict[str, Any]:
            force_by_maintainer = force and config.is_maintainer(caller_id)
            check_transition(config, task.id, task.status, to_status, force=force_by_maintainer)
            check_dependencies(config, task, to_status, self._load_dependency)

            from_status = task.status
            task.set_meta("status", to_status)
            return {
                "task_id": task.id,
                "from": from_status,
                "to": to_status,
                "forced": bool(force_by_maintainer),
            }

        task, context = self._mutate(task_id, version, operation, ctx, apply, config)
        return MoveResult(task=task, old_status=context["from"], new_status=to_status)

    def update(
        self,
        task_id: str,
        version: int,
        meta: Optional[Dict[str, Any]] = None,
        sections: Optional[Dict[str, str]] = None,
        ctx: Optional[AuthContext] = None,
    ) -> UpdateResult:
        """Apply partial metadata and section updates.

        ``version`` inside ``meta`` is ignored; a different ``id`` raises
        ``TaskIdMismatchError``. New keys and sections are appended after the
        existing ones.

        A status change passes the same transition and dependency gates as
        ``move`` (without force), checked against the updated ``depends_on``.
        """
        config = self.config

        def apply(task: TaskRecord, caller_id: str) -> Dict[str, Any]:
            new_status: Optional[str] = None
            for key, value in (meta or {}).items():
                if key == "version":
                    continue
                if key == "id":
                    if value != task.id:
                        raise TaskIdMismatchError(task.id, str(value))
                    continue
                if value is None:
                    continue
                if key == "status":
                    if value not in config.statuses:
                        raise InvalidStatusError(task.id, str(value))
                    if value != task.status:
                        new_status = str(value)
                    continue
                task.set_meta(key, value)

            from_status = task.status
            if new_status is not None:
                check_transition(config, task.id, from_status, new_status)
                check_dependencies(config, task, new_status, self._load_dependency)
                task.set_meta("status", new_status)

            for name, body in (sections or {}).items():
                task.set_section(name, body)

            context: Dict[str, Any] = {
                "task_id": task.id,
                "meta_updated": bool(meta),
                "sections_updated": bool(sections),
            }
            if new_status is not None:
                context["from"] = from_status
                context["to"] = new_status
            return context

        task, _ = self._mutate(task_id, version, OP_TASKS_UPDATE, ctx, apply, config)
        return UpdateResult(task=task)

    def _mutate(
        self,
        task_id: str,
        version: int,
        operation: str,
        ctx: Optional[AuthContext],
        apply: Mutation,
        config: WorkflowConfig,
    ) -> Tuple[TaskRecord, Dict[str, Any]]:
        path = resolve_task_path(task_id, self.base_dir)
        authorizer = self.authorizer(config)

        with TaskLock(path, task_id):
            task = read_task(path)
            caller_id = authorizer.assert_task_mutation_allowed(task, ctx, operation)

            if task.version != version:
                raise ConflictError(task.id, version, task.version)

            audit_context = apply(task, caller_id)

            task.version = version + 1
            task.set_meta("updated", self.clock())
            write_task(task, expected_version=version)

        logger.info(f"{operation}: {task.id} now at version {task.version}")
        record_audit(
            self.audit_sink,
            AuditEntry(caller_id=caller_id, operation=operation, context=audit_context),
        )
        return task, audit_context

    def _load_dependency(self, dep_id: str) -> TaskRecord:
        return get_task(dep_id, self.base_dir)


def _matches_query(record: TaskRecord, query: str) -> bool:
    haystack = " ".join(
        part
        for part in (record.id, record.title, record.assignee, record.raw_body)
        if part
    )
    return query.lower() in haystack.lower()
