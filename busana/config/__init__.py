"""Busana configuration module.

This module provides TOML-based configuration with environment variable overrides.

Configuration is loaded from the following locations (in order of priority):
1. Environment variables (highest priority)
2. ./config.toml (project root - for development)
3. ~/.config/busana/config.toml (user config)
4. /opt/busana/config.toml (production install)
5. /etc/busana/config.toml (system config)

Secrets are loaded from secrets.env files in the same directories.

There is no process-wide settings object: call ``load_settings()`` once at
startup and pass the resulting ``BusanaConfig`` to whatever needs it.
"""

from busana.config.loader import load_config, load_secrets, load_settings
from busana.config.schema import (
    BusanaConfig,
    DatabaseConfig,
    ImportConfig,
    SecretsConfig,
    ServerConfig,
    StorageConfig,
)

__all__ = [
    "BusanaConfig",
    "DatabaseConfig",
    "ImportConfig",
    "SecretsConfig",
    "ServerConfig",
    "StorageConfig",
    "load_config",
    "load_secrets",
    "load_settings",
]
