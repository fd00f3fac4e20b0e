"""Tests for coding operations on in-progress tasks."""

import pytest

from mdkanban.auth import AuthContext
from mdkanban.coding import CodingService, estimate_complexity, extract_relevant_files, unchecked_criteria
from mdkanban.exceptions import GateViolationError, InvalidTransitionError, UnauthorizedError
from mdkanban.tasks.models import TaskRecord

BOB = AuthContext(caller_id="bob")

CODING_BODY = """# Add login

## Description
Login page.

## Implementation Notes
Touch `src/auth/login.py` and `config/app.yaml`.

## Acceptance Criteria
- [x] Design reviewed
- [ ] Add unit test for `src/auth/login.py`
- [ ] Refactor session handling
"""


@pytest.fixture
def coding(service):
    return CodingService(service)


class TestHelpers:
    def test_extract_relevant_files_dedupes(self):
        task = TaskRecord(
            id="task-001",
            sections={
                "Implementation Notes": "`a.py` and `b.ts` and `a.py`",
                "Acceptance Criteria": "- [ ] check `docs/c.md`\n- [ ] `not-a-file`",
            },
        )
        assert extract_relevant_files(task) == ["a.py", "b.ts", "docs/c.md"]

    def test_unchecked_criteria(self):
        task = TaskRecord(
            id="task-001",
            sections={"Acceptance Criteria": "- [x] done\n- [ ] first\n* [ ] second\n- [ ]   \n"},
        )
        assert unchecked_criteria(task) == ["first", "second"]

    @pytest.mark.parametrize(
        "description, expected",
        [
            ("Add unit test for parser", "small"),
            ("Fix typo in README", "small"),
            ("Implement the API", "medium"),
            ("Refactor session handling", "large"),
            ("Plan database migration", "large"),
            ("Investigate flaky build", "medium"),
        ],
    )
    def test_estimate_complexity(self, description, expected):
        assert estimate_complexity(description) == expected


class TestStartTask:
    def test_returns_context(self, coding, make_task):
        make_task("task-001", title="Add login", body=CODING_BODY, status="In Progress", assignee="bob")
        result = coding.start_task("task-001", BOB)
        assert result["task"]["title"] == "Add login"
        assert result["task"]["meta"]["status"] == "In Progress"
        assert "Implementation Notes" in result["task"]["sections"]
        assert result["relevant_files"] == ["src/auth/login.py", "config/app.yaml"]

    def test_requires_in_progress(self, coding, make_task):
        make_task("task-001", status="Ready", assignee="bob")
        with pytest.raises(GateViolationError) as exc_info:
            coding.start_task("task-001", BOB)
        assert exc_info.value.current_status == "Ready"

    def test_requires_authorization(self, coding, make_task):
        make_task("task-001", status="In Progress", assignee="bob")
        with pytest.raises(UnauthorizedError):
            coding.start_task("task-001", AuthContext(caller_id="eve"))


class TestSuggestNextStep:
    def test_first_unchecked_criterion(self, coding, make_task):
        make_task("task-001", title="Add login", body=CODING_BODY, status="In Progress", assignee="bob")
        step = coding.suggest_next_step("task-001", BOB)
        assert step.description == "Add unit test for `src/auth/login.py`"
        assert step.estimated_complexity == "small"
        assert step.expected_files == ["src/auth/login.py", "config/app.yaml"]

    def test_all_checked(self, coding, make_task):
        body = "# Done-ish\n\n## Acceptance Criteria\n- [x] Everything\n"
        make_task("task-001", body=body, status="In Progress", assignee="bob")
        step = coding.suggest_next_step("task-001", BOB)
        assert step.description == "Review and finalize implementation"
        assert step.estimated_complexity == "small"
        assert step.expected_files == []


class TestUpdateStatus:
    def test_moves_in_progress_task(self, coding, make_task, audit_sink):
        make_task("task-001", status="In Progress", assignee="bob")
        result = coding.update_status("task-001", version=1, status="In Review", ctx=BOB)
        assert result.new_status == "In Review"
        assert audit_sink.entries[0].operation == "coding.update_task_status"

    def test_not_in_progress(self, coding, make_task):
        make_task("task-001", status="Ready", assignee="bob")
        with pytest.raises(GateViolationError):
            coding.update_status("task-001", version=1, status="In Progress", ctx=BOB)

    def test_never_forced(self, coding, make_task):
        make_task("task-001", status="In Progress", assignee="bob")
        with pytest.raises(InvalidTransitionError):
            coding.update_status("task-001", version=1, status="Done", ctx=AuthContext(caller_id="alice"))
