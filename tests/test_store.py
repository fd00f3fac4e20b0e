"""Tests for filesystem task storage."""

from pathlib import Path

import pytest

from mdkanban.exceptions import ConflictError, TaskIdMismatchError, TaskNotFoundError, TaskParseError
from mdkanban.tasks.store import (
    get_task,
    iter_task_paths,
    load_tasks,
    read_task,
    resolve_task_path,
    task_filename,
    write_task,
)


class TestResolveTaskPath:
    """Tests for id -> path resolution."""

    def test_finds_task(self, project, make_task):
        path = make_task("task-001", title="First")
        assert resolve_task_path("task-001", project) == path

    def test_not_found(self, project, make_task):
        make_task("task-001")
        with pytest.raises(TaskNotFoundError) as exc_info:
            resolve_task_path("task-999", project)
        assert exc_info.value.task_id == "task-999"

    def test_missing_backlog_dir(self, tmp_path):
        with pytest.raises(TaskNotFoundError):
            resolve_task_path("task-001", tmp_path)

    def test_id_prefix_must_match_exactly(self, project, make_task):
        make_task("task-10", title="Ten")
        with pytest.raises(TaskNotFoundError):
            resolve_task_path("task-1", project)

    def test_ignores_lock_and_hidden_files(self, project, make_task):
        path = make_task("task-001")
        Path(str(path) + ".lock").touch()
        (project / "backlog" / ".audit.jsonl").write_text("{}\n")
        assert list(iter_task_paths(project)) == [path]


class TestReadWrite:
    """Tests for read_task / write_task."""

    def test_read_missing_file(self, project):
        with pytest.raises(TaskNotFoundError):
            read_task(project / "backlog" / "task-404 - Gone.md")

    def test_unexpected_io_errors_propagate(self, project, make_task, monkeypatch):
        path = make_task("task-001")

        def deny(self, *args, **kwargs):
            raise PermissionError("denied")

        monkeypatch.setattr(Path, "read_text", deny)
        with pytest.raises(PermissionError):
            read_task(path)

    def test_write_persists_changes(self, project, make_task):
        make_task("task-001", status="Backlog", custom="kept")
        record = get_task("task-001", project)
        record.status = "Ready"
        record.version = 2
        write_task(record, expected_version=1)

        reloaded = get_task("task-001", project)
        assert reloaded.status == "Ready"
        assert reloaded.version == 2
        assert reloaded.extra["custom"] == "kept"

    def test_write_with_stale_version_leaves_file_untouched(self, project, make_task):
        path = make_task("task-001", version=3)
        before = path.read_bytes()
        record = read_task(path)
        record.status = "Done"

        with pytest.raises(ConflictError) as exc_info:
            write_task(record, expected_version=2)

        assert exc_info.value.expected_version == 2
        assert exc_info.value.actual_version == 3
        assert path.read_bytes() == before

    def test_write_refuses_mismatched_id(self, project, make_task):
        path = make_task("task-001")
        record = read_task(path)
        record.id = "task-002"
        with pytest.raises(TaskIdMismatchError):
            write_task(record)

    def test_write_without_path(self):
        from mdkanban.tasks.models import TaskRecord

        with pytest.raises(ValueError):
            write_task(TaskRecord(id="task-001"))


class TestLoadTasks:
    """Tests for loading every task in the backlog."""

    def test_skips_unparseable_files(self, project, make_task):
        make_task("task-001")
        bad = project / "backlog" / task_filename("task-002", "Broken")
        bad.write_text("---\nid: task-002\n", encoding="utf-8")

        records, failures = load_tasks(project)

        assert [r.id for r in records] == ["task-001"]
        assert len(failures) == 1
        assert failures[0][0] == bad
        assert isinstance(failures[0][1], TaskParseError)

    def test_empty_project(self, tmp_path):
        assert load_tasks(tmp_path) == ([], [])


def test_task_filename():
    assert task_filename("task-001", "Fix login") == "task-001 - Fix login.md"
    assert task_filename("task-002", "a/b") == "task-002 - a-b.md"
