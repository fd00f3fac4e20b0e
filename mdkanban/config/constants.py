"""
Centralized constants for mdkanban.

Paths, defaults and environment variable definitions used by the task
lifecycle core live here so they can be changed in one place.
"""

# =============================================================================
# LAYOUT
# =============================================================================

BACKLOG_DIR_NAME = "backlog"  # Collection directory under the project root
CONFIG_FILE_NAME = "config.yaml"  # backlog/config.yaml
AUDIT_FILE_NAME = ".audit.jsonl"  # backlog/.audit.jsonl
TASK_FILE_SUFFIX = ".md"
LOCK_FILE_SUFFIX = ".lock"  # <task path>.lock
FILENAME_ID_SEPARATOR = " - "  # "<id> - <human title>.md"

# =============================================================================
# SCHEMA
# =============================================================================

DEFAULT_SCHEMA_VERSION = "3.0"
SUPPORTED_SCHEMA_VERSIONS = ("3.0",)

# Dependency gate sentinel. Not configurable.
DONE_STATUS = "Done"

# =============================================================================
# WORKFLOW DEFAULTS (used when backlog/config.yaml is absent)
# =============================================================================

DEFAULT_STATUSES = ["Backlog", "Ready", "In Progress", "In Review", "Done"]
DEFAULT_IN_PROGRESS_STATUSES = ["In Progress"]

MAINTAINER_ROLE = "maintainers"

# Operation names recorded in audit entries and authorization errors
OP_TASKS_MOVE = "tasks.move"
OP_TASKS_UPDATE = "tasks.update"
OP_CODING_START = "coding.start_task"
OP_CODING_SUGGEST = "coding.suggest_next_step"
OP_CODING_UPDATE_STATUS = "coding.update_task_status"

# =============================================================================
# ENVIRONMENT VARIABLES
# =============================================================================

ENV_CALLER_ID = "MDKANBAN_CALLER_ID"
ENV_TRUST_LOCAL = "MDKANBAN_TRUST_LOCAL"
ENV_LOG_LEVEL = "MDKANBAN_LOG_LEVEL"

ENV_VAR_DEFINITIONS = {
    ENV_CALLER_ID: {
        "description": "Caller identity used when none is passed explicitly",
        "valid_values": None,
        "default": None,
    },
    ENV_TRUST_LOCAL: {
        "description": "Treat an unidentified caller as the first maintainer (local dev only)",
        "valid_values": ["true", "false"],
        "default": "false",
    },
    ENV_LOG_LEVEL: {
        "description": "Log level for mdkanban loggers",
        "valid_values": ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        "default": "WARNING",
    },
}
