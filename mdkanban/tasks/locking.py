"""Advisory per-task lock files.

A lock is a zero-byte sibling file ``<task path>.lock`` whose existence
means "held". It is created with O_CREAT | O_EXCL so exactly one process can
win; everyone else fails immediately with ``TaskLockedError``. There is no
waiting, no queue and no expiry.

Limitations:
    The lock is cooperative. Writers that do not use it are not stopped
    (the optimistic version check is the second line of defense). A process
    that crashes while holding a lock leaves the marker behind; it must be
    cleared by hand with ``release_lock()`` once nobody is writing.
"""

import logging
import os
from pathlib import Path
from typing import Optional, Union

from ..config.constants import LOCK_FILE_SUFFIX
from ..exceptions import TaskLockedError
from .codec import derive_id_from_filename

logger = logging.getLogger(__name__)


def lock_path_for(task_path: Union[str, Path]) -> Path:
    """``backlog/task-001 - X.md`` -> ``backlog/task-001 - X.md.lock``."""
    task_path = Path(task_path)
    return task_path.with_name(task_path.name + LOCK_FILE_SUFFIX)


def is_locked(task_path: Union[str, Path]) -> bool:
    return lock_path_for(task_path).exists()


def release_lock(task_path: Union[str, Path]) -> None:
    """Remove the lock marker. Removing an absent marker is not an error."""
    lock_path_for(task_path).unlink(missing_ok=True)


class TaskLock:
    """Exclusive lock around one task's read-modify-write.

    Use as a context manager; the marker is removed on every exit path::

        with TaskLock(path, "task-001"):
            ...
    """

    def __init__(self, task_path: Union[str, Path], task_id: Optional[str] = None):
        self.task_path = Path(task_path)
        self.task_id = task_id or derive_id_from_filename(self.task_path)
        self.lock_path = lock_path_for(self.task_path)
        self.held = False

    def acquire(self) -> None:
        """Create the marker or raise ``TaskLockedError`` if it already exists."""
        try:
            fd = os.open(self.lock_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o644)
        except FileExistsError:
            raise TaskLockedError(self.task_id, str(self.lock_path)) from None
        os.close(fd)
        self.held = True
        logger.debug(f"Acquired lock for {self.task_id}")

    def release(self) -> None:
        release_lock(self.task_path)
        self.held = False
        logger.debug(f"Released lock for {self.task_id}")

    def __enter__(self) -> "TaskLock":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()
