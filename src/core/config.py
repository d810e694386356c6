"""Layered configuration loading with schema validation.

This module builds the immutable ``Settings`` object from up to three
sources, using Pydantic Settings for merging and validation.

Configuration sources (in increasing order of precedence):
1. ``<config_dir>/default.toml`` (optional)
2. ``<config_dir>/production.toml`` when ``APP_ENV=production`` (optional)
3. Environment variables prefixed with ``APP__``; ``__`` separates sections,
   so ``APP__MYSQL__URI`` sets ``mysql.uri``

A local ``.env`` file is read into the process environment first. Missing
files are skipped; a merged result that fails the schema raises
``ConfigurationError`` naming every offending field.
"""

import os
from contextvars import ContextVar
from functools import lru_cache
from pathlib import Path
from typing import Final, Literal

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    TomlConfigSettingsSource,
)

from src.core.exceptions import ConfigurationError, group_field_errors
from src.core.secrets import SecretValue

ENV_PREFIX: Final[str] = "APP__"
ENV_NESTED_DELIMITER: Final[str] = "__"
ENVIRONMENT_VARIABLE: Final[str] = "APP_ENV"
CONFIG_DIR_VARIABLE: Final[str] = "APP_CONFIG_DIR"
DEFAULT_CONFIG_DIR: Final[str] = "config"
DEFAULT_CONFIG_FILE: Final[str] = "default.toml"
PRODUCTION_CONFIG_FILE: Final[str] = "production.toml"
APP_IDENTIFIER: Final[str] = "backplane"

type Environment = Literal["development", "staging", "production"]

# Directory override for the duration of one load_settings() call
_config_dir_var: ContextVar[Path | None] = ContextVar("config_dir", default=None)


class _Section(BaseModel):
    """Frozen base for nested settings sections."""

    model_config = ConfigDict(frozen=True, extra="ignore")


class _SecretUriSection(_Section):
    """Section whose connection URI is a secret."""

    uri: SecretValue = Field(description="Connection URI")

    @field_validator("uri", mode="after")
    @classmethod
    def uri_not_empty(cls, v: SecretValue) -> SecretValue:
        """Reject empty or whitespace-only URIs."""
        if not v.reveal().strip():
            msg = "URI must not be empty"
            raise ValueError(msg)
        return v


class ServerConfig(_Section):
    """HTTP listener settings."""

    host: str = Field(description="Interface to bind")
    port: int = Field(ge=0, le=65535, description="TCP port to bind")
    shutdown_grace_ms: int = Field(
        default=200,
        ge=0,
        description="Delay after the listener stops before the process exits",
    )


class MySqlConfig(_SecretUriSection):
    """Relational store settings."""

    max_connections: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Upper bound on pooled connections; callers wait beyond it",
    )


class MongoConfig(_SecretUriSection):
    """Document store settings."""

    app_name: str = Field(
        default=APP_IDENTIFIER,
        description="Application name reported to the server",
    )


class RedisConfig(_SecretUriSection):
    """Cache settings."""


class RabbitMqConfig(_SecretUriSection):
    """Message queue settings."""

    queue_name: str = Field(
        default="example",
        min_length=1,
        description="Queue declared at startup",
    )


class KafkaConfig(_Section):
    """Stream producer settings."""

    brokers: str = Field(
        min_length=1,
        description="Comma separated bootstrap broker list",
    )
    message_timeout_ms: int = Field(
        default=5000,
        gt=0,
        description="Per-message delivery timeout in milliseconds",
    )


class LogConfig(_Section):
    """Logging configuration."""

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    log_formatter_type: Literal["console", "json"] | None = Field(
        default=None,
        description="Log output formatter. Derived from environment if unset.",
    )
    excluded_paths: list[str] = Field(
        default_factory=list,
        description="Paths to exclude from request logging",
    )
    slow_request_threshold_ms: int = Field(
        default=1000,
        gt=0,
        description="Threshold for slow request warnings (milliseconds)",
    )
    sensitive_fields: list[str] = Field(
        default_factory=lambda: [
            "password",
            "token",
            "secret",
            "api_key",
            "authorization",
        ],
        description="Field names to redact",
    )


class ObservabilityConfig(_Section):
    """Tracing configuration."""

    enable_tracing: bool = Field(
        default=True,
        description="Enable OpenTelemetry tracing",
    )
    exporter_type: Literal["console", "otlp", "none"] = Field(
        default="console",
        description="Trace exporter type",
    )
    exporter_endpoint: str | None = Field(
        default=None,
        description="OTLP exporter endpoint",
    )
    trace_sample_rate: float = Field(
        default=1.0,
        ge=0.0,
        le=1.0,
        description="Trace sampling rate (0.0 to 1.0)",
    )

    @field_validator("exporter_endpoint", mode="before")
    @classmethod
    def empty_str_to_none(cls, v: str | None) -> str | None:
        """Convert empty strings to None for nullable fields."""
        if v == "":
            return None
        return v


class Settings(BaseSettings):
    """Main settings class for the application."""

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_nested_delimiter=ENV_NESTED_DELIMITER,
        case_sensitive=False,
        frozen=True,
        extra="ignore",
    )

    # Application settings
    app_name: str = Field(default="Backplane", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")
    environment: Environment = Field(
        default="development",
        description="Environment the application is running in",
    )
    debug: bool = Field(default=False, description="Debug mode flag")
    docs_url: str | None = Field(default="/docs", description="Swagger UI URL")
    redoc_url: str | None = Field(default="/redoc", description="ReDoc URL")
    openapi_url: str | None = Field(
        default="/openapi.json", description="OpenAPI schema URL"
    )

    # Listener and backends
    server: ServerConfig
    mysql: MySqlConfig
    mongodb: MongoConfig
    redis: RedisConfig
    rabbitmq: RabbitMqConfig
    kafka: KafkaConfig

    # Ambient configuration
    log_config: LogConfig = Field(
        default_factory=LogConfig, description="Logging configuration"
    )
    observability_config: ObservabilityConfig = Field(
        default_factory=ObservabilityConfig, description="Observability configuration"
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Order sources from highest to lowest precedence.

        ``.env`` is preloaded into the process environment by
        ``load_settings``, so the dotenv and secrets-dir sources are unused.
        """
        _ = (dotenv_settings, file_secret_settings)
        file_sources = [
            TomlConfigSettingsSource(settings_cls, toml_file=path)
            for path in reversed(config_files())
        ]
        return (init_settings, env_settings, *file_sources)

    @field_validator("docs_url", "redoc_url", "openapi_url", mode="before")
    @classmethod
    def empty_str_to_none(cls, v: str | None) -> str | None:
        """Convert empty strings to None for nullable fields."""
        _ = cls
        if v == "":
            return None
        return v


def current_environment() -> str:
    """Read the environment indicator, defaulting to development."""
    return os.getenv(ENVIRONMENT_VARIABLE, "development").strip().lower()


def config_files(config_dir: Path | None = None) -> list[Path]:
    """List the configuration files to merge, lowest precedence first.

    Files that do not exist are left out.

    Args:
        config_dir: Directory holding the TOML files. Defaults to
            ``$APP_CONFIG_DIR`` or ``./config``.

    Returns:
        list[Path]: Existing files in merge order.
    """
    if config_dir is None:
        config_dir = _config_dir_var.get()
    if config_dir is None:
        config_dir = Path(os.getenv(CONFIG_DIR_VARIABLE, DEFAULT_CONFIG_DIR))

    candidates = [config_dir / DEFAULT_CONFIG_FILE]
    if current_environment() == "production":
        candidates.append(config_dir / PRODUCTION_CONFIG_FILE)

    return [path for path in candidates if path.is_file()]


def describe_validation_error(exc: PydanticValidationError) -> str:
    """Render a pydantic error as one line per offending field.

    Args:
        exc: The validation error raised while building Settings.

    Returns:
        str: Human-readable description such as ``mysql.uri: Field required``.
    """
    field_errors = group_field_errors(exc.errors(include_url=False))
    return "; ".join(
        f"{field}: {', '.join(messages)}" for field, messages in field_errors.items()
    )


def load_settings(
    config_dir: Path | None = None, env_file: Path | None = None
) -> Settings:
    """Load, merge and validate the application settings.

    Args:
        config_dir: Directory holding ``default.toml``/``production.toml``.
        env_file: Dotenv file to preload. Defaults to ``./.env``.

    Returns:
        Settings: The validated, frozen settings.

    Raises:
        ConfigurationError: If the merged result does not satisfy the schema
            or a configuration file cannot be parsed.
    """
    # Existing process variables win over .env entries
    load_dotenv(dotenv_path=env_file or Path(".env"), override=False)

    token = _config_dir_var.set(config_dir)
    try:
        return Settings(environment=current_environment())
    except PydanticValidationError as e:
        raise ConfigurationError(
            f"configuration error: {describe_validation_error(e)}", cause=e
        ) from e
    except (OSError, ValueError) as e:
        # tomllib.TOMLDecodeError is a ValueError
        raise ConfigurationError.from_cause(e) from e
    finally:
        _config_dir_var.reset(token)


@lru_cache
def get_settings() -> Settings:
    """Get the settings loaded once for the lifetime of the process."""
    return load_settings()
