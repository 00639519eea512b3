"""Configuration loader for Busana.

Loads configuration from TOML files and secrets from .env files.
Environment variables can override any configuration value.
"""

import logging
import os
import tomllib
from pathlib import Path
from typing import Any

from busana.config.schema import BusanaConfig, SecretsConfig

logger = logging.getLogger(__name__)

ENV_PREFIX = "BUSANA"

# Config keys whose environment values need converting before validation
INT_KEYS = {
    "port",
    "workers",
    "min_pool_size",
    "max_pool_size",
    "max_upload_mb",
    "max_rows",
    "chunk_size",
    "error_detail_limit",
    "duplicate_lookback_days",
}
BOOL_KEYS = {"debug", "enforce_https", "require_full_validity", "block_exact_duplicates"}


def _search_paths(filename: str) -> list[Path]:
    """Candidate locations for a config file, in priority order."""
    return [
        # Project root (current working directory)
        Path.cwd() / filename,
        # User config directory
        Path.home() / ".config" / "busana" / filename,
        # Production install directory
        Path("/opt/busana") / filename,
        # System config (Linux FHS)
        Path("/etc/busana") / filename,
    ]


def get_config_search_paths() -> list[Path]:
    """Get the list of paths to search for config.toml (first found wins)."""
    return _search_paths("config.toml")


def get_secrets_search_paths() -> list[Path]:
    """Get the list of paths to search for secrets.env (first found wins)."""
    return _search_paths("secrets.env")


def _first_existing(paths: list[Path]) -> Path | None:
    for path in paths:
        if path.is_file():
            logger.debug("Found config file: %s", path)
            return path
    return None


def find_config_file() -> Path | None:
    """Find the first existing config file from search paths."""
    return _first_existing(get_config_search_paths())


def find_secrets_file() -> Path | None:
    """Find the first existing secrets file from search paths."""
    return _first_existing(get_secrets_search_paths())


def load_toml_file(path: Path) -> dict[str, Any]:
    """Load a TOML file and return its contents as a dictionary."""
    with open(path, "rb") as f:
        return tomllib.load(f)


def parse_env_file(path: Path) -> dict[str, str]:
    """Parse a simple .env file into a dictionary.

    Supports KEY=value and KEY="quoted value" lines; blank lines and
    ``#`` comments are ignored.
    """
    env_vars: dict[str, str] = {}

    with open(path) as f:
        for raw_line in f:
            line = raw_line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue

            key, value = line.split("=", 1)
            value = value.strip()
            if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
                value = value[1:-1]

            env_vars[key.strip()] = value

    return env_vars


def _env_mappings(prefix: str) -> dict[str, tuple[str, str]]:
    """Map environment variable names to (section, key) config paths."""
    mappings: dict[str, tuple[str, str]] = {}
    for section, model in BusanaConfig.model_fields.items():
        if section == "app_name":
            continue
        for key in model.annotation.model_fields:
            mappings[f"{prefix}_{section.upper()}_{key.upper()}"] = (section, key)

    # Shorthands
    mappings[f"{prefix}_DEBUG"] = ("server", "debug")
    mappings[f"{prefix}_HOST"] = ("server", "host")
    mappings[f"{prefix}_PORT"] = ("server", "port")
    mappings[f"{prefix}_MONGODB_URL"] = ("database", "mongodb_url")
    mappings[f"{prefix}_MONGODB_DATABASE"] = ("database", "mongodb_database")
    mappings[f"{prefix}_CHUNK_SIZE"] = ("imports", "chunk_size")
    return mappings


def apply_env_overrides(config_dict: dict[str, Any], prefix: str = ENV_PREFIX) -> None:
    """Apply environment variable overrides to a configuration dictionary.

    BUSANA_SERVER_PORT sets config_dict["server"]["port"],
    BUSANA_IMPORTS_CHUNK_SIZE sets config_dict["imports"]["chunk_size"],
    and so on for every section field. Modifies config_dict in place.
    """
    for env_var, (section, key) in _env_mappings(prefix).items():
        value = os.environ.get(env_var)
        if value is None:
            continue

        target = config_dict.setdefault(section, {})
        if key in INT_KEYS:
            target[key] = int(value)
        elif key in BOOL_KEYS:
            target[key] = value.lower() in ("true", "1", "yes")
        elif key == "cors_origins":
            target[key] = [origin.strip() for origin in value.split(",") if origin.strip()]
        else:
            target[key] = value


def load_secrets(secrets_file: Path | None = None) -> SecretsConfig:
    """Load secrets from an optional secrets.env file and the environment.

    Environment variables take precedence over file values.
    """
    key_mapping = {f"{ENV_PREFIX}_MONGODB_URL": "mongodb_url"}
    secrets_dict: dict[str, str] = {}

    if secrets_file is None:
        secrets_file = find_secrets_file()

    if secrets_file and secrets_file.exists():
        logger.info("Loading secrets from: %s", secrets_file)
        file_secrets = parse_env_file(secrets_file)
        for file_key, config_key in key_mapping.items():
            if file_key in file_secrets:
                secrets_dict[config_key] = file_secrets[file_key]

    for env_var, config_key in key_mapping.items():
        value = os.environ.get(env_var)
        if value:
            secrets_dict[config_key] = value

    return SecretsConfig(**secrets_dict)


def load_config(config_file: Path | None = None) -> BusanaConfig:
    """Load configuration from TOML file with environment variable overrides.

    Args:
        config_file: Optional path to config file. If not provided,
                     searches default locations.

    Returns:
        BusanaConfig instance with all settings loaded.
    """
    config_dict: dict[str, Any] = {}

    if config_file is None:
        config_file = find_config_file()

    if config_file and config_file.exists():
        logger.info("Loading config from: %s", config_file)
        config_dict = load_toml_file(config_file)
    else:
        logger.info("No config file found, using defaults with env overrides")

    apply_env_overrides(config_dict)

    return BusanaConfig(**config_dict)


def load_settings(
    config_file: Path | None = None,
    secrets_file: Path | None = None,
) -> BusanaConfig:
    """Build the process configuration once, folding secrets into it.

    The MongoDB URL may carry credentials, so a value from secrets.env
    replaces the one in config.toml.
    """
    config = load_config(config_file)
    secrets = load_secrets(secrets_file)
    if secrets.mongodb_url:
        config.database.mongodb_url = secrets.mongodb_url
    return config
