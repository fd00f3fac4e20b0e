"""
Data models for task records.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..config.constants import DEFAULT_SCHEMA_VERSION, DONE_STATUS

# Metadata keys modelled as typed attributes on TaskRecord. Everything else
# in the front-matter is carried verbatim in TaskRecord.extra.
TYPED_META_KEYS = ("id", "status", "version", "assignee", "depends_on", "schema_version")

# Key order used for metadata that has no recorded position yet.
DEFAULT_META_ORDER = ["id", "title", "status", "assignee", "version", "depends_on", "schema_version"]


def normalize_depends_on(value: Any) -> Optional[List[str]]:
    """Accept ``"a, b"`` or ``["a", "b"]``; trim and drop empty entries.

    Returns None when the value is absent or of an unusable type.
    """
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        return [v.strip() for v in value if isinstance(v, str) and v.strip()]
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    return None


@dataclass
class TaskRecord:
    """A single work item persisted as one markdown file."""

    id: str
    version: int = 1
    status: Optional[str] = None
    assignee: Optional[str] = None
    depends_on: List[str] = field(default_factory=list)
    schema_version: str = DEFAULT_SCHEMA_VERSION
    title: Optional[str] = None
    preamble: Optional[str] = None
    sections: Dict[str, str] = field(default_factory=dict)
    section_order: List[str] = field(default_factory=list)

    # Unknown front-matter keys, in file order, preserved verbatim
    extra: Dict[str, Any] = field(default_factory=dict)
    # Front-matter key order as read from disk (new keys are appended)
    meta_order: List[str] = field(default_factory=list)

    path: Optional[Path] = None
    raw_body: str = field(default="", repr=False)

    @property
    def is_done(self) -> bool:
        """Only the literal ``Done`` status counts as complete."""
        return self.status == DONE_STATUS

    @property
    def meta(self) -> Dict[str, Any]:
        """All metadata as an ordered mapping, as it would be written to disk.

        Optional typed fields are omitted when unset; ``depends_on`` is
        omitted when empty unless the file already declared it.
        """
        values: Dict[str, Any] = dict(self.extra)
        values["id"] = self.id
        values["version"] = self.version
        values["schema_version"] = self.schema_version
        if self.status is not None:
            values["status"] = self.status
        if self.assignee is not None:
            values["assignee"] = self.assignee
        if self.depends_on or "depends_on" in self.meta_order:
            values["depends_on"] = list(self.depends_on)

        ordered: Dict[str, Any] = {}
        for key in [*self.meta_order, *DEFAULT_META_ORDER, *values.keys()]:
            if key in values and key not in ordered:
                ordered[key] = values[key]
        return ordered

    def get_section(self, name: str) -> Optional[str]:
        """Section body by exact H2 heading text."""
        return self.sections.get(name)

    def set_section(self, name: str, body: str) -> None:
        """Replace a section in place, or append it after the known sections."""
        self.sections[name] = body
        if name not in self.section_order:
            self.section_order.append(name)

    def set_meta(self, key: str, value: Any) -> None:
        """Set a metadata value, routing typed keys to their attributes."""
        if key == "status":
            self.status = None if value is None else str(value)
        elif key == "assignee":
            self.assignee = None if value is None else str(value)
        elif key == "depends_on":
            self.depends_on = normalize_depends_on(value) or []
        elif key == "schema_version":
            self.schema_version = str(value)
        elif key == "title":
            self.title = None if value is None else str(value)
            if "title" in self.meta_order or "title" in self.extra:
                self.extra["title"] = value
                if "title" not in self.meta_order:
                    self.meta_order.append("title")
            return
        else:
            self.extra[key] = value

        if key not in self.meta_order:
            self.meta_order.append(key)
