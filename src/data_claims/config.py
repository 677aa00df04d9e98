"""Configuration management for the data claims service."""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

_config_logger = logging.getLogger(__name__)


class LoggingSettings(BaseModel):
    level: str = Field(default="INFO", description="Python logging level name")
    file: str | None = Field(default=None, description="Optional log file path")


class StorageSettings(BaseModel):
    mongodb_uri: str | None = Field(
        default=None,
        description="MongoDB connection string; required on first store access.",
    )
    default_database: str = Field(default="test", min_length=1)
    server_selection_timeout_ms: int = Field(default=5000, ge=100, le=120_000)

    @field_validator("mongodb_uri")
    @classmethod
    def _blank_uri_is_missing(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None


class ClaimsSettings(BaseModel):
    collection: str = Field(default="data_claims")
    recent_limit: int = Field(default=100, ge=1, le=1000)


class CatalogSettings(BaseModel):
    collection: str = Field(default="locations")
    list_limit: int = Field(default=10, ge=1, le=1000)


class ServerSettings(BaseModel):
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=3001, ge=1, le=65535)
    trust_forwarded_headers: bool = Field(default=False)


class Settings(BaseModel):
    server: ServerSettings = Field(default_factory=ServerSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    claims: ClaimsSettings = Field(default_factory=ClaimsSettings)
    catalog: CatalogSettings = Field(default_factory=CatalogSettings)


ENV_KEYS = {
    "host": "HOST",
    "port": "PORT",
    "trust_forwarded_headers": "TRUST_FORWARDED_HEADERS",
    "log_level": "LOG_LEVEL",
    "log_file": "LOG_FILE",
    "mongodb_uri": "MONGODB_URI",
    "default_database": "MONGODB_DEFAULT_DATABASE",
    "server_selection_timeout_ms": "MONGODB_SERVER_SELECTION_TIMEOUT_MS",
    "recent_limit": "CLAIMS_RECENT_LIMIT",
    "list_limit": "CATALOG_LIST_LIMIT",
}

_TRUE_VALUES = frozenset({"1", "true", "yes"})


def _project_root() -> Path:
    return Path(__file__).resolve().parents[2]


def _env_bool(key: str, default: bool) -> bool:
    value = os.getenv(key)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def _env_int(key: str, default: int) -> int:
    value = os.getenv(key)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        _config_logger.warning(
            "Invalid integer value for %s: %r, using default %d", key, value, default
        )
        return default


def load_settings() -> Settings:
    """Load configuration and cache the result."""

    return _load_settings_cached()


@lru_cache(maxsize=1)
def _load_settings_cached() -> Settings:
    load_dotenv(dotenv_path=_project_root() / ".env")

    settings_data: dict[str, object] = {
        "server": {
            "host": os.getenv(ENV_KEYS["host"], ServerSettings().host),
            "port": _env_int(ENV_KEYS["port"], ServerSettings().port),
            "trust_forwarded_headers": _env_bool(
                ENV_KEYS["trust_forwarded_headers"],
                ServerSettings().trust_forwarded_headers,
            ),
        },
        "logging": {
            "level": os.getenv(ENV_KEYS["log_level"], LoggingSettings().level),
            "file": os.getenv(ENV_KEYS["log_file"]) or None,
        },
        "storage": {
            "mongodb_uri": os.getenv(ENV_KEYS["mongodb_uri"]),
            "default_database": os.getenv(
                ENV_KEYS["default_database"], StorageSettings().default_database
            ),
            "server_selection_timeout_ms": _env_int(
                ENV_KEYS["server_selection_timeout_ms"],
                StorageSettings().server_selection_timeout_ms,
            ),
        },
        "claims": {
            "recent_limit": _env_int(ENV_KEYS["recent_limit"], ClaimsSettings().recent_limit),
        },
        "catalog": {
            "list_limit": _env_int(ENV_KEYS["list_limit"], CatalogSettings().list_limit),
        },
    }

    try:
        return Settings.model_validate(settings_data)
    except ValidationError as exc:
        raise RuntimeError(f"Invalid configuration: {exc}") from exc
