"""Pydantic models for Busana configuration.

``config.toml`` maps onto :class:`BusanaConfig` section by section;
``secrets.env`` onto :class:`SecretsConfig`.
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator


class ServerConfig(BaseModel):
    """HTTP server settings."""

    host: str = "127.0.0.1"
    port: int = Field(default=8000, ge=1, le=65535)
    workers: int = Field(default=2, ge=1)
    debug: bool = False
    # Adds Strict-Transport-Security to responses
    enforce_https: bool = False
    # Browser origins allowed to call the API; none means same-origin only
    cors_origins: list[str] = Field(default_factory=list)


class DatabaseConfig(BaseModel):
    """Where the dashboard's MongoDB lives."""

    mongodb_url: str = "mongodb://localhost:27017"
    mongodb_database: str = "busana"
    min_pool_size: int = Field(default=10, ge=0)
    max_pool_size: int = Field(default=100, ge=1)


class StorageConfig(BaseModel):
    data_dir: Path = Path("data")
    log_dir: Path = Path("data/logs")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_level(cls, value):
        return value.upper() if isinstance(value, str) else value


class ImportConfig(BaseModel):
    """Bulk import pipeline configuration."""

    max_upload_mb: int = Field(default=10, ge=1)
    max_rows: int = Field(default=50000, ge=1)
    chunk_size: int = Field(default=1000, ge=1)
    # Abort the whole import when any row fails validation
    require_full_validity: bool = False
    error_detail_limit: int = Field(default=100, ge=0)
    duplicate_lookback_days: int = Field(default=90, ge=1)
    # Refuse uploads whose hash matches an earlier import of the same type
    block_exact_duplicates: bool = False

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_mb * 1024 * 1024


class BusanaConfig(BaseModel):
    """Process-wide configuration, built once by ``load_settings()``."""

    app_name: str = "Busana Dashboard"
    server: ServerConfig = Field(default_factory=ServerConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    imports: ImportConfig = Field(default_factory=ImportConfig)


class SecretsConfig(BaseModel):
    """Values read from secrets.env rather than config.toml.

    Only the MongoDB URL, since it may embed a username and password.
    """

    mongodb_url: str | None = None
