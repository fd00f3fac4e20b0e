"""Append-only audit log of accepted mutations.

Entries are JSON lines in ``backlog/.audit.jsonl``. Auditing is
best-effort: ``record_audit`` never lets a sink failure change the outcome
of the operation that was audited.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Protocol, Union

from ..config.constants import AUDIT_FILE_NAME, BACKLOG_DIR_NAME
from ..utils.datetime_utils import utc_now_iso

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuditEntry:
    """One accepted mutation."""

    caller_id: str
    operation: str
    context: Dict[str, Any] = field(default_factory=dict)
    timestamp: str = field(default_factory=utc_now_iso)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "caller_id": self.caller_id,
            "operation": self.operation,
            "context": dict(self.context),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AuditEntry":
        return cls(
            caller_id=data.get("caller_id", ""),
            operation=data.get("operation", ""),
            context=data.get("context") or {},
            timestamp=data.get("timestamp", ""),
        )


class AuditSink(Protocol):
    def append(self, entry: AuditEntry) -> None: ...


def resolve_audit_path(base_dir: Union[str, Path]) -> Path:
    return Path(base_dir) / BACKLOG_DIR_NAME / AUDIT_FILE_NAME


class JsonlAuditLog:
    """Audit sink writing one JSON object per line."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    @classmethod
    def for_project(cls, base_dir: Union[str, Path]) -> "JsonlAuditLog":
        return cls(resolve_audit_path(base_dir))

    def append(self, entry: AuditEntry) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        line = json.dumps(entry.to_dict(), default=str)
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(line + "\n")


def record_audit(sink: AuditSink, entry: AuditEntry) -> None:
    """Append ``entry`` to ``sink``; failures are logged and swallowed."""
    try:
        sink.append(entry)
    except Exception as e:
        logger.warning(f"Audit append failed for {entry.operation}: {e}")


def read_audit_log(path: Union[str, Path]) -> List[AuditEntry]:
    """Parse an audit file. A missing file reads as empty."""
    path = Path(path)
    if not path.exists():
        return []

    entries = []
    with open(path, "r", encoding="utf-8") as f:
        for line_no, line in enumerate(f, 1):
            line = line.strip()
            if not line:
                continue
            try:
                entries.append(AuditEntry.from_dict(json.loads(line)))
            except json.JSONDecodeError as e:
                logger.warning(f"Skipping malformed audit line {line_no} in {path}: {e}")
    return entries
