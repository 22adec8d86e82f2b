"""Application configuration helpers."""

from __future__ import annotations

from .backend import BackendConfig, get_backend_config
from .env import env_choice, env_int, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config
from .workflow import WorkflowConfig, get_workflow_config

__all__ = [
    "BackendConfig",
    "ConfigurationError",
    "DatabaseConfig",
    "MissingConfigurationError",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "StorageConfig",
    "WorkflowConfig",
    "configure_logging",
    "env_choice",
    "env_int",
    "get_backend_config",
    "get_database_config",
    "get_storage_config",
    "get_workflow_config",
    "require_env_vars",
]
