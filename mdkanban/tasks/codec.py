"""Document codec for task files.

A task file is markdown with an optional YAML front-matter block::

    ---
    id: task-001
    status: Backlog
    version: 1
    depends_on: [task-000]
    ---

    # Title of the task

    Free text before the first section is the preamble.

    ## Description
    ...

    ## Acceptance Criteria
    - [ ] ...

When no front-matter exists, consecutive ``key: value`` lines at the top of
the body (up to the first blank line) are read as inline metadata. When both
exist, front-matter wins per key. The first H1 is the title and each H2
opens a section that runs until the next H2 or end of file.

``encode`` always writes metadata as front-matter, keeping the original key
order and section order so unknown keys and sections survive every
read-modify-write cycle.
"""

import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import yaml

from ..config.constants import DEFAULT_SCHEMA_VERSION, FILENAME_ID_SEPARATOR
from ..exceptions import TaskIdMismatchError, TaskParseError
from .models import TYPED_META_KEYS, TaskRecord, normalize_depends_on

_FRONTMATTER_DELIMITER = "---"
_FRONTMATTER_END_MARKERS = ("---", "...")
_INLINE_META_RE = re.compile(r"^[A-Za-z0-9_.-]+\s*:\s*")
_H1_RE = re.compile(r"^#\s+(.*)$")
_H2_RE = re.compile(r"^##\s+(.*)$")
_EXCESS_BLANK_LINES_RE = re.compile(r"\n{3,}")


class _MetaLoader(yaml.SafeLoader):
    """SafeLoader that keeps timestamps as the strings they were written as."""


_MetaLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag != "tag:yaml.org,2002:timestamp"]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


def derive_id_from_filename(path: Union[str, Path]) -> str:
    """``task-001 - Fix login.md`` -> ``task-001``."""
    stem = Path(path).stem
    return stem.split(FILENAME_ID_SEPARATOR)[0].strip()


def assert_path_matches_id(path: Union[str, Path], meta_id: str) -> None:
    """Raise ``TaskIdMismatchError`` if the filename disagrees with ``meta_id``."""
    filename_id = derive_id_from_filename(path)
    if filename_id != meta_id:
        raise TaskIdMismatchError(filename_id, meta_id)


# =============================================================================
# DECODE
# =============================================================================


def decode(text: str, path: Optional[Union[str, Path]] = None) -> TaskRecord:
    """Parse task file text into a ``TaskRecord``.

    Args:
        text: Full file content.
        path: Source path. Supplies the fallback id and is checked against
            the declared id.

    Raises:
        TaskParseError: Malformed or unterminated front-matter / inline metadata.
        TaskIdMismatchError: The declared id disagrees with the filename.
    """
    fallback_id = derive_id_from_filename(path) if path is not None else ""
    text = text.replace("\r\n", "\n")

    frontmatter, body, has_frontmatter = _split_frontmatter(text, fallback_id)
    inline_meta, body = _extract_inline_metadata(body, fallback_id)

    merged: Dict[str, Any] = {**inline_meta, **frontmatter}
    meta_order = _build_meta_order(has_frontmatter, frontmatter, inline_meta)

    task_id = _normalize_id(merged.get("id"), fallback_id)
    if path is not None:
        assert_path_matches_id(path, task_id)
    if not task_id:
        raise TaskParseError(fallback_id, "Task has no id")

    title, preamble, sections, section_order = _parse_body(body)
    if title is None and isinstance(merged.get("title"), str):
        title = merged["title"]

    return TaskRecord(
        id=task_id,
        version=_normalize_version(merged.get("version")),
        status=_optional_str(merged.get("status")),
        assignee=_optional_str(merged.get("assignee")),
        depends_on=normalize_depends_on(merged.get("depends_on")) or [],
        schema_version=_normalize_schema(merged.get("schema_version")),
        title=title,
        preamble=preamble,
        sections=sections,
        section_order=section_order,
        extra={k: v for k, v in merged.items() if k not in TYPED_META_KEYS},
        meta_order=meta_order,
        path=Path(path) if path is not None else None,
        raw_body=body,
    )


def _split_frontmatter(text: str, task_id: str) -> Tuple[Dict[str, Any], str, bool]:
    """Return (front-matter mapping, remaining body, whether a block existed)."""
    stripped = text.lstrip()
    if not stripped.startswith(_FRONTMATTER_DELIMITER):
        return {}, text, False

    lines = stripped.split("\n")
    if lines[0].strip() != _FRONTMATTER_DELIMITER:
        # e.g. a horizontal rule like "-----" or "--- text"; not front-matter
        return {}, text, False

    for index in range(1, len(lines)):
        if lines[index].rstrip() in _FRONTMATTER_END_MARKERS:
            block = "\n".join(lines[1:index])
            body = "\n".join(lines[index + 1:])
            return _load_mapping(block, task_id, "Front-matter"), body, True

    raise TaskParseError(task_id, "Frontmatter is not closed with ---")


def _extract_inline_metadata(body: str, task_id: str) -> Tuple[Dict[str, Any], str]:
    lines = body.split("\n")
    meta_lines: List[str] = []
    end_of_meta = 0
    started = False

    for index, line in enumerate(lines):
        if line.strip() == "":
            if started:
                end_of_meta = index + 1
                break
            continue

        if _INLINE_META_RE.match(line):
            started = True
            meta_lines.append(line)
            end_of_meta = index + 1
            continue

        end_of_meta = index
        break

    if not meta_lines:
        return {}, body

    meta = _load_mapping("\n".join(meta_lines), task_id, "Inline metadata")
    remainder = "\n".join(lines[end_of_meta:]).lstrip("\n")
    return meta, remainder


def _load_mapping(block: str, task_id: str, label: str) -> Dict[str, Any]:
    try:
        data = yaml.load(block, Loader=_MetaLoader)
    except yaml.YAMLError as e:
        raise TaskParseError(task_id, f"{label}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise TaskParseError(task_id, f"{label} must be a mapping")
    return {str(k): v for k, v in data.items()}


def _build_meta_order(
    has_frontmatter: bool,
    frontmatter: Dict[str, Any],
    inline_meta: Dict[str, Any],
) -> List[str]:
    order = list(frontmatter if has_frontmatter else inline_meta)
    for key in [*inline_meta, *frontmatter]:
        if key not in order:
            order.append(key)
    return order


def _parse_body(body: str) -> Tuple[Optional[str], Optional[str], Dict[str, str], List[str]]:
    title: Optional[str] = None
    sections: Dict[str, str] = {}
    order: List[str] = []
    preamble_lines: List[str] = []
    current: Optional[str] = None
    buffer: List[str] = []

    def flush() -> None:
        if current is not None:
            sections[current] = "\n".join(_trim_trailing_blank_lines(buffer))

    for line in body.split("\n"):
        if title is None:
            h1 = _H1_RE.match(line)
            if h1:
                title = h1.group(1).strip()
                continue

        h2 = _H2_RE.match(line)
        if h2:
            flush()
            current = h2.group(1).strip()
            if current not in order:
                order.append(current)
            buffer = []
            continue

        if current is None:
            preamble_lines.append(line)
        else:
            buffer.append(line)

    flush()

    preamble = "\n".join(preamble_lines).strip()
    return title, preamble or None, sections, order


def _trim_trailing_blank_lines(lines: List[str]) -> List[str]:
    end = len(lines)
    while end > 0 and lines[end - 1].strip() == "":
        end -= 1
    return lines[:end]


# =============================================================================
# NORMALIZATION
# =============================================================================


def _normalize_id(value: Any, fallback: str) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return fallback


def _normalize_version(value: Any) -> int:
    """Versions start at 1; anything missing, unparseable or below 1 reads as 1."""
    number: Optional[int] = None
    if isinstance(value, bool):
        number = None
    elif isinstance(value, int):
        number = value
    elif isinstance(value, float) and value.is_integer():
        number = int(value)
    elif isinstance(value, str):
        try:
            number = int(value.strip())
        except ValueError:
            try:
                parsed = float(value.strip())
            except ValueError:
                parsed = None
            if parsed is not None and parsed.is_integer():
                number = int(parsed)
    if number is None or number < 1:
        return 1
    return number


def _normalize_schema(value: Any) -> str:
    if isinstance(value, str) and value.strip():
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return DEFAULT_SCHEMA_VERSION


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


# =============================================================================
# ENCODE
# =============================================================================


def encode(record: TaskRecord) -> str:
    """Serialize a ``TaskRecord`` to file text.

    Front-matter keys keep their recorded order with new keys appended.
    Sections are written in recorded order, followed by any unlisted ones.
    Runs of three or more newlines collapse to two and the output ends with
    exactly one newline.
    """
    meta = record.meta
    if "title" not in record.meta_order:
        meta.pop("title", None)

    frontmatter = yaml.safe_dump(
        meta,
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
        width=float("inf"),
    )
    body = build_body(record.title, record.preamble, record.sections, record.section_order)

    output = f"{_FRONTMATTER_DELIMITER}\n{frontmatter}{_FRONTMATTER_DELIMITER}\n"
    if body:
        output += body
    return output


def build_body(
    title: Optional[str],
    preamble: Optional[str],
    sections: Dict[str, str],
    order: List[str],
) -> str:
    """Render title, preamble and sections as markdown."""
    parts: List[str] = []

    if title:
        parts.extend([f"# {title}", ""])

    if preamble:
        parts.extend([preamble.rstrip(), ""])

    names = [name for name in order if name in sections]
    names.extend(name for name in sections if name not in order)

    for name in names:
        parts.append(f"## {name}")
        content = sections[name]
        if content:
            parts.append(content.rstrip())
        parts.append("")

    if not parts:
        return ""

    text = _EXCESS_BLANK_LINES_RE.sub("\n\n", "\n".join(parts))
    return text.rstrip() + "\n"
