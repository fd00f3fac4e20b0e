"""Shared pytest fixtures for mdkanban tests."""

from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest
import yaml

from mdkanban.audit.log import AuditEntry
from mdkanban.config.constants import ENV_VAR_DEFINITIONS
from mdkanban.config.workflow import ConfigProvider, WorkflowConfig
from mdkanban.tasks.service import TaskService
from mdkanban.tasks.store import task_filename

FIXED_NOW = "2026-01-01T00:00:00.000Z"

DEFAULT_TEST_CONFIG = {
    "schema_version": "3.0",
    "statuses": ["Backlog", "Ready", "In Progress", "In Review", "Done"],
    "in_progress_statuses": ["In Progress"],
    "transitions": {
        "Backlog": ["Ready"],
        "Ready": ["In Progress", "Backlog"],
        "In Progress": ["In Review"],
        "In Review": ["Done", "In Progress"],
    },
    "roles": {"maintainers": ["alice"]},
}


class RecordingAuditSink:
    """Audit sink that keeps entries in memory."""

    def __init__(self):
        self.entries: List[AuditEntry] = []

    def append(self, entry: AuditEntry) -> None:
        self.entries.append(entry)


# =============================================================================
# ENVIRONMENT ISOLATION
# =============================================================================


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Make sure no MDKANBAN_* variable leaks in from the developer's shell."""
    for name in ENV_VAR_DEFINITIONS:
        monkeypatch.delenv(name, raising=False)


# =============================================================================
# PROJECT FIXTURES
# =============================================================================


def write_config(project: Path, config: Dict[str, Any]) -> Path:
    path = project / "backlog" / "config.yaml"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(config, sort_keys=False), encoding="utf-8")
    return path


def write_task_file(
    project: Path,
    task_id: str,
    title: str = "Test task",
    body: Optional[str] = None,
    **meta: Any,
) -> Path:
    """Write a task file with front-matter ``id`` + ``meta`` and a simple body."""
    front = {"id": task_id, **meta}
    front.setdefault("version", 1)
    if body is None:
        body = f"# {title}\n\n## Description\nDescription of {task_id}.\n"
    text = "---\n" + yaml.safe_dump(front, sort_keys=False) + "---\n\n" + body
    path = project / "backlog" / task_filename(task_id, title)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


@pytest.fixture
def project(tmp_path):
    """A project root with backlog/config.yaml."""
    write_config(tmp_path, DEFAULT_TEST_CONFIG)
    return tmp_path


@pytest.fixture
def make_task(project):
    """Factory writing task files into the project backlog."""

    def _make(task_id: str, title: str = "Test task", body: Optional[str] = None, **meta: Any) -> Path:
        return write_task_file(project, task_id, title=title, body=body, **meta)

    return _make


@pytest.fixture
def audit_sink():
    return RecordingAuditSink()


@pytest.fixture
def service(project, audit_sink):
    """TaskService over the test project with an in-memory audit sink."""
    return TaskService(project, audit_sink=audit_sink, clock=lambda: FIXED_NOW)


@pytest.fixture
def workflow_config():
    """The test workflow as a WorkflowConfig snapshot."""
    return WorkflowConfig(
        statuses=list(DEFAULT_TEST_CONFIG["statuses"]),
        in_progress_statuses=["In Progress"],
        transitions={k: list(v) for k, v in DEFAULT_TEST_CONFIG["transitions"].items()},
        roles={"maintainers": ["alice"]},
    )


@pytest.fixture
def permissive_service(project, audit_sink):
    """TaskService whose workflow has no transition graph."""
    config = WorkflowConfig(roles={"maintainers": ["alice"]})
    provider = ConfigProvider.from_config(project, config)
    return TaskService(project, config_provider=provider, audit_sink=audit_sink, clock=lambda: FIXED_NOW)
