"""
Application settings using pydantic-settings.

Loads configuration from environment variables with validation. MongoDB
settings have no usable defaults for the endpoint and database, so loading
fails fast when they are absent.
"""

from functools import lru_cache
from typing import Any, Literal, Self

from pydantic import (
    Field,
    FilePath,
    SecretStr,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict
from pymongo.errors import PyMongoError
from pymongo.uri_parser import parse_uri, split_hosts

from trade_demo_backend.config.environment import is_dev_mode
from trade_demo_backend.exceptions import ConfigurationError

SRV_SCHEME = "mongodb+srv://"

ReadPreferenceName = Literal[
    "primary",
    "primaryPreferred",
    "secondary",
    "secondaryPreferred",
    "nearest",
]


def _host_section(uri: str) -> str:
    """Host list of a connection string, without scheme, credentials or options."""
    scheme_free = uri.partition("://")[2]
    host_part = scheme_free.split("/", 1)[0].split("?", 1)[0]
    return host_part.rpartition("@")[2]


def check_mongo_uri(uri: str) -> str:
    """
    Validate a connection string without resolving it.

    SRV records are looked up by the driver when the client is created, so
    a mongodb+srv:// string is only checked for its single, port-less host.

    Raises:
        ValueError: if the driver would reject the string
    """
    uri = uri.strip()
    try:
        if uri.startswith(SRV_SCHEME):
            hosts = split_hosts(_host_section(uri), default_port=None)
            if len(hosts) != 1 or hosts[0][1] is not None:
                raise ValueError("mongodb+srv:// URIs need exactly one host and no port")
        else:
            parse_uri(uri)
    except PyMongoError as e:
        raise ValueError(str(e)) from e
    return uri


class MongoSettings(BaseSettings):
    """MongoDB connection settings."""

    model_config = SettingsConfigDict(
        env_prefix="MONGO_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    uri: str = Field(description="MongoDB connection string, passed to the driver as given")
    database: str = Field(min_length=1, description="Database name")
    username: str | None = Field(default=None, description="MongoDB username")
    password: SecretStr | None = Field(default=None, description="MongoDB password")
    auth_source: str | None = Field(default=None, description="Authentication database")
    app_name: str = Field(default="trade-demo-backend", description="Client app name")

    # Connection pool settings
    min_pool_size: int = Field(default=0, ge=0, description="Minimum connection pool size")
    max_pool_size: int = Field(default=100, ge=1, description="Maximum connection pool size")
    max_idle_time_ms: int = Field(default=60000, ge=0, description="Max idle time in milliseconds")
    max_wait_time_ms: int = Field(
        default=10000, ge=0, description="Max wait for a pooled connection in ms"
    )

    # Timeouts
    connect_timeout_ms: int = Field(default=5000, ge=1, description="Connection timeout in ms")
    server_selection_timeout_ms: int = Field(
        default=5000, ge=1, description="Server selection timeout in ms"
    )

    read_preference: ReadPreferenceName = Field(default="primary", description="Read preference")
    write_concern: str = Field(default="majority", min_length=1, description="Write concern 'w'")

    tls_enabled: bool = Field(default=False, description="Connect over TLS")
    tls_ca_file: FilePath | None = Field(default=None, description="CA bundle for TLS")
    tz_aware: bool = Field(default=True, description="Return timezone-aware datetimes")

    @field_validator("uri")
    @classmethod
    def validate_uri(cls, v: str) -> str:
        """Reject connection strings the driver cannot parse."""
        return check_mongo_uri(v)

    @model_validator(mode="after")
    def check_consistency(self) -> Self:
        """Validate settings that depend on each other."""
        if self.min_pool_size > self.max_pool_size:
            raise ValueError("min_pool_size cannot exceed max_pool_size")
        if self.password is not None and not self.username:
            raise ValueError("password is set but username is missing")
        return self

    @property
    def endpoint(self) -> str:
        """Hosts of the connection string, without credentials."""
        default_port = None if self.uri.startswith(SRV_SCHEME) else 27017
        hosts = split_hosts(_host_section(self.uri), default_port=default_port)
        return ",".join(
            f"{host}:{port}" if port is not None else host
            for host, port in hosts
        )

    @property
    def write_concern_value(self) -> int | str:
        """Write concern as the driver expects it ('majority' or a node count)."""
        if self.write_concern.isdigit():
            return int(self.write_concern)
        return self.write_concern


class AppSettings(BaseSettings):
    """Application-level settings."""

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    name: str = Field(default="Trade Demo Backend", description="Application name")
    environment: Literal["development", "staging", "production"] = Field(
        default="production",
        description="Environment name",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    log_format: Literal["console", "json"] = Field(default="json", description="Log renderer")

    @field_validator("environment", mode="before")
    @classmethod
    def normalize_environment(cls, v: Any) -> Any:
        """Match environment names case-insensitively, like is_dev_mode."""
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @property
    def dev_mode(self) -> bool:
        """Whether the configured environment is a development one."""
        return is_dev_mode({"ENVIRONMENT": self.environment})


class Settings(BaseSettings):
    """Main settings container."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    mongo: MongoSettings = Field(default_factory=MongoSettings)
    app: AppSettings = Field(default_factory=AppSettings)


def _describe(error: ValidationError) -> str:
    problems = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"]) or "settings"
        problems.append(f"{location}: {item['msg']}")
    return "; ".join(problems)


def load_mongo_settings(**overrides: Any) -> MongoSettings:
    """
    Load MongoDB settings from the environment, applying explicit overrides.

    Raises:
        ConfigurationError: if a required setting is missing or invalid
    """
    try:
        return MongoSettings(**overrides)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid MongoDB configuration: {_describe(e)}") from e


def load_app_settings(**overrides: Any) -> AppSettings:
    """
    Load application settings from the environment.

    Raises:
        ConfigurationError: if a setting is invalid
    """
    try:
        return AppSettings(**overrides)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid application configuration: {_describe(e)}") from e


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are loaded only once.
    """
    try:
        return Settings()
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {_describe(e)}") from e
