"""
Workflow configuration for mdkanban.

The workflow config lives at ``backlog/config.yaml`` and defines the status
set, the in-progress subset, the transition graph and role membership.
It is read-only to the task core: callers get an explicit snapshot through
``ConfigProvider`` and decide themselves when to ``reload()`` it.

Example ``backlog/config.yaml``::

    schema_version: "3.0"
    statuses: [Backlog, Ready, In Progress, In Review, Done]
    in_progress_statuses: [In Progress]
    transitions:
      Backlog: [Ready]
      Ready: [In Progress, Backlog]
      In Progress: [In Review]
      In Review: [Done, In Progress]
      Done: []
    roles:
      maintainers: [alice]
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from ..exceptions import ConfigurationError
from .constants import (
    BACKLOG_DIR_NAME,
    CONFIG_FILE_NAME,
    DEFAULT_IN_PROGRESS_STATUSES,
    DEFAULT_SCHEMA_VERSION,
    DEFAULT_STATUSES,
    MAINTAINER_ROLE,
    SUPPORTED_SCHEMA_VERSIONS,
)

logger = logging.getLogger(__name__)

_KNOWN_KEYS = {
    "schema_version",
    "statuses",
    "in_progress_statuses",
    "transitions",
    "roles",
}


@dataclass(frozen=True)
class WorkflowConfig:
    """Validated workflow configuration snapshot."""

    statuses: List[str] = field(default_factory=lambda: list(DEFAULT_STATUSES))
    in_progress_statuses: List[str] = field(
        default_factory=lambda: list(DEFAULT_IN_PROGRESS_STATUSES)
    )
    transitions: Dict[str, List[str]] = field(default_factory=dict)
    roles: Dict[str, List[str]] = field(default_factory=dict)
    schema_version: str = DEFAULT_SCHEMA_VERSION
    unknown: Dict[str, Any] = field(default_factory=dict)

    @property
    def maintainers(self) -> List[str]:
        return list(self.roles.get(MAINTAINER_ROLE, []))

    def is_maintainer(self, caller_id: Optional[str]) -> bool:
        if not caller_id:
            return False
        return caller_id in self.roles.get(MAINTAINER_ROLE, [])

    def is_in_progress(self, status: Optional[str]) -> bool:
        return status is not None and status in self.in_progress_statuses

    def has_transition_graph(self) -> bool:
        """An empty transition map means no structural check at all."""
        return len(self.transitions) > 0

    def allowed_targets(self, from_status: Optional[str]) -> List[str]:
        """Targets reachable from ``from_status``; empty when no key is listed."""
        return list(self.transitions.get(from_status or "", []))

    def dead_end_statuses(self) -> List[str]:
        """Statuses with no transitions key while a graph is configured.

        These behave as implicit terminal states, which may be an authoring
        gap, so they are reported, not fixed. A status declared terminal
        explicitly (``Done: []``) is not listed.
        """
        if not self.has_transition_graph():
            return []
        return [s for s in self.statuses if s not in self.transitions]


@dataclass
class LoadedConfig:
    """A config snapshot plus where it came from."""

    config: WorkflowConfig
    source: str  # "file" or "default"
    path: Path
    warnings: List[str] = field(default_factory=list)
    raw: Dict[str, Any] = field(default_factory=dict)


def get_config_path(base_dir: Union[str, Path]) -> Path:
    """Path of the workflow config under a project root."""
    return Path(base_dir) / BACKLOG_DIR_NAME / CONFIG_FILE_NAME


def load_config(base_dir: Union[str, Path]) -> LoadedConfig:
    """Load and validate ``backlog/config.yaml`` under ``base_dir``.

    A missing file yields the default workflow (source ``"default"``) with a
    warning. Any other problem fails fast with ``ConfigurationError``.
    """
    config_path = get_config_path(base_dir)

    try:
        content = config_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        message = f"Configuration file not found: {config_path}"
        logger.warning(f"{message}; using default workflow")
        return LoadedConfig(
            config=WorkflowConfig(),
            source="default",
            path=config_path,
            warnings=[message],
        )

    try:
        raw = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Failed to parse {config_path}: {e}", path=str(config_path)
        ) from e

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigurationError(
            "Configuration must be a mapping", path=str(config_path)
        )

    config = build_config(raw, config_path)

    dead_ends = config.dead_end_statuses()
    if dead_ends:
        logger.warning(
            f"Statuses with no outgoing transitions in {config_path}: "
            f"{', '.join(dead_ends)}. Tasks in these statuses can only move with a "
            "maintainer force override."
        )

    return LoadedConfig(config=config, source="file", path=config_path, raw=raw)


def build_config(raw: Dict[str, Any], config_path: Optional[Path] = None) -> WorkflowConfig:
    """Validate a raw mapping and build a ``WorkflowConfig``."""
    where = str(config_path) if config_path else "<config>"

    schema_version = raw.get("schema_version", DEFAULT_SCHEMA_VERSION)
    schema_version = str(schema_version)
    if schema_version not in SUPPORTED_SCHEMA_VERSIONS:
        raise ConfigurationError(
            f'Unsupported schema_version "{schema_version}" in {where}',
            setting="schema_version",
        )

    statuses = _string_list(raw.get("statuses"), "statuses", DEFAULT_STATUSES)
    if not statuses:
        raise ConfigurationError(
            "statuses must contain at least one value", setting="statuses"
        )

    in_progress = _string_list(
        raw.get("in_progress_statuses"),
        "in_progress_statuses",
        DEFAULT_IN_PROGRESS_STATUSES,
    )
    for status in in_progress:
        if status not in statuses:
            raise ConfigurationError(
                f'in_progress_status "{status}" is not defined in statuses',
                setting="in_progress_statuses",
            )

    transitions_raw = raw.get("transitions")
    transitions = (
        {} if transitions_raw is None else _validate_transitions(transitions_raw, statuses)
    )

    roles_raw = raw.get("roles")
    roles = {} if roles_raw is None else _validate_roles(roles_raw)

    unknown = {k: v for k, v in raw.items() if k not in _KNOWN_KEYS}

    return WorkflowConfig(
        statuses=statuses,
        in_progress_statuses=in_progress,
        transitions=transitions,
        roles=roles,
        schema_version=schema_version,
        unknown=unknown,
    )


def _string_list(value: Any, name: str, fallback: List[str]) -> List[str]:
    if value is None:
        return list(fallback)
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigurationError(f"{name} must be a list of strings", setting=name)
    return list(value)


def _validate_transitions(transitions: Any, statuses: List[str]) -> Dict[str, List[str]]:
    if not isinstance(transitions, dict):
        raise ConfigurationError("transitions must be a mapping", setting="transitions")

    result: Dict[str, List[str]] = {}
    for from_status, targets in transitions.items():
        if from_status not in statuses:
            raise ConfigurationError(
                f'Transition key "{from_status}" is not defined in statuses',
                setting="transitions",
            )
        if targets is None:
            targets = []
        if not isinstance(targets, list) or not all(isinstance(t, str) for t in targets):
            raise ConfigurationError(
                f'Transitions for "{from_status}" must be a list of strings',
                setting="transitions",
            )
        for to_status in targets:
            if to_status not in statuses:
                raise ConfigurationError(
                    f'Transition target "{to_status}" is not defined in statuses',
                    setting="transitions",
                )
        result[from_status] = list(targets)
    return result


def _validate_roles(roles: Any) -> Dict[str, List[str]]:
    if not isinstance(roles, dict):
        raise ConfigurationError("roles must be a mapping", setting="roles")

    result: Dict[str, List[str]] = {}
    for role, members in roles.items():
        if members is None:
            members = []
        if not isinstance(members, list) or not all(isinstance(m, str) for m in members):
            raise ConfigurationError(
                f"roles.{role} must be a list of strings", setting="roles"
            )
        result[str(role)] = list(members)
    return result


class ConfigProvider:
    """Holds an explicit workflow config snapshot for one project root.

    The snapshot is loaded on first access and only changes when
    ``reload()`` is called. Nothing is cached at module level.
    """

    def __init__(self, base_dir: Union[str, Path]):
        self.base_dir = Path(base_dir)
        self._loaded: Optional[LoadedConfig] = None

    @classmethod
    def from_config(cls, base_dir: Union[str, Path], config: WorkflowConfig) -> "ConfigProvider":
        """Build a provider around an already-built snapshot."""
        provider = cls(base_dir)
        provider._loaded = LoadedConfig(
            config=config, source="memory", path=get_config_path(base_dir)
        )
        return provider

    @property
    def loaded(self) -> LoadedConfig:
        if self._loaded is None:
            self._loaded = load_config(self.base_dir)
        return self._loaded

    @property
    def config(self) -> WorkflowConfig:
        return self.loaded.config

    def reload(self) -> LoadedConfig:
        """Re-read the config file and replace the snapshot."""
        self._loaded = load_config(self.base_dir)
        return self._loaded
