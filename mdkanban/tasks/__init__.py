"""
Task records for mdkanban.

This package provides the task lifecycle core:
- A document codec for markdown task files with YAML front-matter
- Advisory per-task lock files
- Transition and dependency gates driven by the workflow config
- A service running every mutation through lock, authorization and
  optimistic version checks
"""

from .models import TaskRecord
from .codec import decode, encode
from .locking import TaskLock
from .service import MoveResult, TaskService, UpdateResult

__all__ = [
    "MoveResult",
    "TaskLock",
    "TaskRecord",
    "TaskService",
    "UpdateResult",
    "decode",
    "encode",
]
