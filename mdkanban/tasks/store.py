"""
Filesystem storage for task records.

Tasks live as ``<id> - <human title>.md`` files inside the ``backlog/``
directory of a project root. There is no index: lookups are a directory
listing plus a filename match.
"""

import logging
from pathlib import Path
from typing import Iterator, List, Optional, Tuple, Union

from ..config.constants import BACKLOG_DIR_NAME, FILENAME_ID_SEPARATOR, TASK_FILE_SUFFIX
from ..exceptions import ConflictError, TaskError, TaskNotFoundError
from .codec import assert_path_matches_id, decode, derive_id_from_filename, encode
from .models import TaskRecord

logger = logging.getLogger(__name__)


def get_backlog_dir(base_dir: Union[str, Path]) -> Path:
    return Path(base_dir) / BACKLOG_DIR_NAME


def task_filename(task_id: str, title: str) -> str:
    """Filename for a task: ``task-001 - Fix login.md``."""
    safe_title = title.replace("/", "-").strip()
    return f"{task_id}{FILENAME_ID_SEPARATOR}{safe_title}{TASK_FILE_SUFFIX}"


def iter_task_paths(base_dir: Union[str, Path]) -> Iterator[Path]:
    """Task files under ``backlog/``, sorted by name. Hidden files are skipped."""
    backlog_dir = get_backlog_dir(base_dir)
    try:
        entries = sorted(backlog_dir.iterdir())
    except FileNotFoundError:
        return
    for entry in entries:
        if entry.name.startswith("."):
            continue
        if entry.suffix == TASK_FILE_SUFFIX and entry.is_file():
            yield entry


def resolve_task_path(task_id: str, base_dir: Union[str, Path]) -> Path:
    """Find the file for ``task_id``.

    Raises:
        TaskNotFoundError: No backlog directory, or no file with this id prefix.
    """
    for path in iter_task_paths(base_dir):
        if derive_id_from_filename(path) == task_id:
            return path
    raise TaskNotFoundError(task_id)


def read_task(path: Union[str, Path]) -> TaskRecord:
    """Read and decode one task file.

    Only a missing file is translated (to ``TaskNotFoundError``); other I/O
    errors propagate unchanged.
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise TaskNotFoundError(derive_id_from_filename(path)) from None
    return decode(text, path)


def get_task(task_id: str, base_dir: Union[str, Path]) -> TaskRecord:
    """Resolve and read a task by id."""
    return read_task(resolve_task_path(task_id, base_dir))


def write_task(record: TaskRecord, expected_version: Optional[int] = None) -> None:
    """Encode ``record`` and write it to ``record.path`` in one write call.

    When ``expected_version`` is given, the on-disk version is re-read first
    and the write aborts with ``ConflictError`` if it differs, leaving the
    file untouched.
    """
    if record.path is None:
        raise ValueError(f"Task {record.id} has no path")

    path = Path(record.path)
    assert_path_matches_id(path, record.id)

    if expected_version is not None:
        current = read_task(path)
        if current.version != expected_version:
            raise ConflictError(record.id, expected_version, current.version)

    output = encode(record)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(output, encoding="utf-8")


def load_tasks(base_dir: Union[str, Path]) -> Tuple[List[TaskRecord], List[Tuple[Path, TaskError]]]:
    """Read every task file.

    Returns:
        Tuple of (records, failures) where failures pairs each unreadable
        path with the error it raised.
    """
    records: List[TaskRecord] = []
    failures: List[Tuple[Path, TaskError]] = []
    for path in iter_task_paths(base_dir):
        try:
            records.append(read_task(path))
        except TaskError as e:
            logger.warning(f"Skipping unreadable task file {path.name}: {e}")
            failures.append((path, e))
    return records, failures
