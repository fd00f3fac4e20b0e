"""Configuration for mdkanban: workflow config and environment settings."""

from .settings import get_env_var, is_trust_local_enabled, validate_all_env_vars
from .workflow import ConfigProvider, LoadedConfig, WorkflowConfig, load_config

__all__ = [
    "ConfigProvider",
    "LoadedConfig",
    "WorkflowConfig",
    "get_env_var",
    "is_trust_local_enabled",
    "load_config",
    "validate_all_env_vars",
]
