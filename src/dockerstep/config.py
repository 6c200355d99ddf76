"""Configuration management for dockerstep.

This module defines the configuration schema using Pydantic settings,
supporting TOML files, environment variables, and programmatic overrides.

Configuration loading priority (highest to lowest):
1. Environment variables (DOCKERSTEP_* prefix)
2. TOML configuration file or keyword arguments to DockerStepConfig
3. Default values defined in this module

Example TOML configuration:
    settings_file = "dockerstep-settings.toml"

    [docker]
    host = "tcp://docker.example.com:2376"
    cert_path = "/etc/docker/certs"
    server_id = "docker-hub"

Example environment variable override:
    DOCKERSTEP_DOCKER__HOST="unix:///var/run/docker.sock"
    DOCKERSTEP_DOCKER__REGISTRY_URL="https://registry.example.com"
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import tomli
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict


class LoggingConfig(BaseSettings):
    """Logging configuration.

    Attributes:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format: Log format (json or console)
        file: Optional log file path (None for stdout only)
        rotation_size_mb: Log file rotation size in megabytes
        retention_count: Number of rotated log files to keep
    """

    model_config = SettingsConfigDict(
        env_prefix="DOCKERSTEP_LOGGING__",
        extra="forbid",
    )

    level: str = Field(default="INFO")
    format: str = Field(default="console")
    file: Path | None = Field(default=None)
    rotation_size_mb: int = Field(default=50, ge=1, le=1000)
    retention_count: int = Field(default=10, ge=1, le=100)

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level is recognized."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v_upper

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        """Validate log format is recognized."""
        valid_formats = {"json", "console"}
        v_lower = v.lower()
        if v_lower not in valid_formats:
            raise ValueError(f"Invalid log format: {v}. Must be one of {valid_formats}")
        return v_lower


class DockerConfig(BaseSettings):
    """Docker connection and registry authentication configuration.

    Attributes:
        host: Docker daemon URI; falls back to DOCKER_HOST when unset
        cert_path: Directory holding ca.pem, cert.pem and key.pem
        server_id: Id of the server credential to authenticate with
        registry_url: Registry address override for the auth config
        skip: Skip all Docker work for this step
        read_timeout_seconds: Client read timeout (None waits indefinitely)
    """

    model_config = SettingsConfigDict(
        env_prefix="DOCKERSTEP_DOCKER__",
        extra="forbid",
    )

    host: str | None = Field(default=None)
    cert_path: Path | None = Field(default=None)
    server_id: str | None = Field(default=None)
    registry_url: str | None = Field(default=None)
    skip: bool = Field(default=False)
    read_timeout_seconds: int | None = Field(default=None, ge=1, le=86400)


class DockerStepConfig(BaseSettings):
    """Root configuration for dockerstep.

    Configuration can be loaded from:
    1. Environment variables (DOCKERSTEP_* prefix)
    2. TOML files (using load_config function)
    3. Direct instantiation with keyword arguments

    Environment variable format for nested config:
        DOCKERSTEP_<SECTION>__<KEY>=value

    ``correlation_id`` ties every log line of a run to the host build, e.g.
    DOCKERSTEP_CORRELATION_ID=$CI_PIPELINE_ID.
    """

    model_config = SettingsConfigDict(
        env_prefix="DOCKERSTEP_",
        env_nested_delimiter="__",
        extra="forbid",
    )

    docker: DockerConfig = Field(default_factory=DockerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    settings_file: Path | None = Field(default=None)
    correlation_id: str | None = Field(default=None)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Let environment variables win over TOML values passed as kwargs."""
        return env_settings, init_settings, dotenv_settings, file_secret_settings


def load_config(config_path: Path | None = None) -> DockerStepConfig:
    """Load configuration from TOML file with environment variable overrides.

    Configuration search order (first found is used):
    1. config_path if explicitly provided
    2. ./dockerstep.toml (current directory)
    3. ~/.config/dockerstep/config.toml (user config directory)

    Args:
        config_path: Explicit path to TOML config file. If None, searches
                    default locations.

    Returns:
        DockerStepConfig: Fully resolved configuration instance.

    Raises:
        FileNotFoundError: If config_path is explicitly provided but doesn't exist.
        ValueError: If TOML file contains invalid configuration.
    """
    toml_data: dict[str, Any] = {}

    if config_path is not None:
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        selected_path = config_path
    else:
        search_paths = [
            Path.cwd() / "dockerstep.toml",
            Path.home() / ".config" / "dockerstep" / "config.toml",
        ]
        selected_path = None
        for path in search_paths:
            if path.exists():
                selected_path = path
                break

    if selected_path is not None:
        with open(selected_path, "rb") as f:
            toml_data = tomli.load(f)

    # Pydantic overlays environment variables on top of the TOML data
    try:
        return DockerStepConfig(**toml_data)
    except Exception as e:
        if selected_path:
            raise ValueError(
                f"Invalid configuration in {selected_path}: {e}"
            ) from e
        else:
            raise ValueError(f"Invalid configuration: {e}") from e
