"""Application configuration helpers."""

from __future__ import annotations

from .env import get_int_env, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .logging import configure_logging
from .notifications import NotificationConfig, get_notification_config
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "ConfigurationError",
    "DatabaseConfig",
    "MissingConfigurationError",
    "NotificationConfig",
    "StorageConfig",
    "configure_logging",
    "get_database_config",
    "get_int_env",
    "get_notification_config",
    "get_storage_config",
    "require_env_vars",
]
