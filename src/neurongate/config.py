"""Configuration contract for neurongate.

Pydantic-validated models for every setting the gateway reads: logging,
outbound service endpoints and timeouts, the credentials cache, reserved
names and the well-known store locations.

Direct os.environ/os.getenv usage outside load_config_from_env() is not
allowed; components receive the config object (or one of its sections).
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator


class LogLevel(str, Enum):
    """Standard log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


def _lowercase_set(v: Any) -> set[str]:
    items = v.split(",") if isinstance(v, str) else v
    return {str(item).strip().lower() for item in items if str(item).strip()}


class NamingConfig(BaseModel):
    """Reserved-name sets and length limit used by the name guard.

    Reserved names are compared case-insensitively, so they are stored
    lowercased.
    """

    model_config = {"extra": "forbid"}

    reserved_databases: set[str] = Field(
        default_factory=lambda: {"main", "config", "system", "admin", "root", "temp", "cache"},
        description="Database names nobody may create",
    )
    reserved_namespaces: set[str] = Field(
        default_factory=lambda: {"core", "system", "admin", "config", "temp", "cache"},
        description="Namespace names nobody may create",
    )
    reserved_tags: set[str] = Field(
        default_factory=set,
        description="Tag names nobody may attach",
    )
    max_length: int = Field(
        default=50,
        gt=0,
        description="Maximum length of database, namespace and tag names",
    )

    @field_validator("reserved_databases", "reserved_namespaces", "reserved_tags", mode="before")
    @classmethod
    def normalize_reserved(cls, v: object) -> set[str]:
        """Accept comma-separated strings and lowercase every entry."""
        if v is None:
            return set()
        return _lowercase_set(v)


class LocationConfig(BaseModel):
    """Well-known store locations used when resolving where commands live."""

    model_config = {"extra": "forbid"}

    user_data_database: str = Field(
        default="user-data",
        description="Database holding one private namespace per user",
    )
    global_database: str = Field(
        default="global",
        description="Database holding shared, organisation-wide commands",
    )
    global_namespace: str = Field(
        default="commands",
        description="Namespace inside the global database searched for commands",
    )
    commands_entity: str = Field(
        default="commands",
        description="Entity (collection) name commands are stored under",
    )
    excluded_search_databases: list[str] = Field(
        default_factory=lambda: ["main", "timeline", "user-data"],
        description="Databases never searched for commands through a grant",
    )
    protected_databases: list[str] = Field(
        default_factory=lambda: ["main", "config", "timeline", "user-data"],
        description="Databases that can never be dropped",
    )
    admin_database: str = Field(
        default="main",
        description="Database whose admin grant allows creating and dropping databases",
    )


class GatewayConfig(BaseModel):
    """Top-level configuration for a neurongate deployment."""

    # Logging
    log_level: LogLevel = Field(
        default=LogLevel.INFO,
        description="Logging level",
    )
    log_json: bool = Field(
        default=False,
        description="Use JSON log format (default: plain text)",
    )

    # Document store
    store_url: Optional[str] = Field(
        default=None,
        description="Base URL of the document store. Empty = resolve through the credentials cache.",
    )
    store_instance: str = Field(
        default="default",
        description="Store instance name used to look up credentials",
    )
    store_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Timeout for a single store request",
    )

    # Identity service
    identity_url: Optional[str] = Field(
        default=None,
        description="Base URL of the identity service validating bearer tokens",
    )
    identity_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Timeout for a single token validation",
    )

    # Credentials cache
    redis_url: Optional[str] = Field(
        default=None,
        description="Redis connection URL holding store credentials (e.g., redis://localhost:6379/0)",
    )
    credentials_ttl_seconds: float = Field(
        default=3600.0,
        gt=0,
        description="Age after which the credentials snapshot is reloaded (1 hour)",
    )
    credentials_key_prefix: str = Field(
        default="neurongate:credentials",
        description="Redis key prefix for store credentials",
    )

    naming: NamingConfig = Field(
        default_factory=NamingConfig,
        description="Reserved names and name length limit",
    )
    locations: LocationConfig = Field(
        default_factory=LocationConfig,
        description="Well-known store locations",
    )

    @field_validator("redis_url")
    @classmethod
    def validate_redis_url(cls, v: Optional[str]) -> Optional[str]:
        """Validate Redis URL format."""
        if v is None:
            return v
        if not v.startswith(("redis://", "rediss://", "unix://")):
            raise ValueError("Redis URL must start with redis://, rediss://, or unix://")
        return v

    @field_validator("store_url", "identity_url")
    @classmethod
    def validate_http_url(cls, v: Optional[str]) -> Optional[str]:
        if not v:
            return None
        if not v.startswith(("http://", "https://")):
            raise ValueError("Service URL must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v: str | LogLevel) -> LogLevel:
        """Convert string to LogLevel enum."""
        if isinstance(v, LogLevel):
            return v
        if isinstance(v, str):
            try:
                return LogLevel[v.upper()]
            except KeyError:
                raise ValueError(f"Invalid log level: {v}. Must be one of {[e.value for e in LogLevel]}")
        raise ValueError(f"Log level must be string or LogLevel enum, got {type(v)}")

    model_config = {
        "use_enum_values": True,
        "extra": "forbid",
    }


def load_config_from_env() -> GatewayConfig:
    """Load gateway configuration from environment variables.

    This is the ONLY place where os.getenv is allowed.

    Environment variables:
    - LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    - LOG_JSON: Use JSON log format (true/false, default: false)
    - STORE_URL: Document store base URL
    - STORE_INSTANCE: Store instance name for credential lookup
    - STORE_TIMEOUT_SECONDS: Store request timeout
    - IDENTITY_URL: Identity service base URL
    - IDENTITY_TIMEOUT_SECONDS: Token validation timeout
    - REDIS_URL: Redis connection URL for store credentials
    - CREDENTIALS_TTL_SECONDS: Credentials snapshot lifetime
    - CREDENTIALS_KEY_PREFIX: Redis key prefix for credentials
    - RESERVED_DATABASES / RESERVED_NAMESPACES / RESERVED_TAGS:
      comma-separated overrides of the reserved-name sets

    Returns:
        GatewayConfig instance with values from environment or defaults.
    """
    import os

    naming_overrides = {
        field: os.environ[env]
        for field, env in (
            ("reserved_databases", "RESERVED_DATABASES"),
            ("reserved_namespaces", "RESERVED_NAMESPACES"),
            ("reserved_tags", "RESERVED_TAGS"),
        )
        if env in os.environ
    }

    return GatewayConfig(
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        log_json=os.getenv("LOG_JSON", "false").lower() in ("true", "1", "yes"),
        store_url=os.getenv("STORE_URL"),
        store_instance=os.getenv("STORE_INSTANCE", "default"),
        store_timeout_seconds=float(os.getenv("STORE_TIMEOUT_SECONDS", "30")),
        identity_url=os.getenv("IDENTITY_URL"),
        identity_timeout_seconds=float(os.getenv("IDENTITY_TIMEOUT_SECONDS", "10")),
        redis_url=os.getenv("REDIS_URL"),
        credentials_ttl_seconds=float(os.getenv("CREDENTIALS_TTL_SECONDS", "3600")),
        credentials_key_prefix=os.getenv("CREDENTIALS_KEY_PREFIX", "neurongate:credentials"),
        naming=NamingConfig(**naming_overrides),
    )


__all__ = [
    "GatewayConfig",
    "LocationConfig",
    "LogLevel",
    "NamingConfig",
    "load_config_from_env",
]
