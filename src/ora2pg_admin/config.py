"""Project configuration for ora2pg-admin using Pydantic.

This module provides type-safe configuration models for an ora2pg-admin
project: the source Oracle database, the target PostgreSQL database, the
migration settings handed to ora2pg and the local Oracle client.

A project keeps its configuration in ``.ora2pg-admin/config.yaml``.
Secrets are normally written as ``${ORACLE_PASSWORD}`` style placeholders
and resolved from the environment (or a ``.env`` file) when loaded.
"""

import os
import re
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ora2pg_admin.exceptions import ConfigurationError, ConfigValidationError, MissingFileError
from ora2pg_admin.service.models import MigrationType

PROJECT_DIR_NAME = ".ora2pg-admin"
CONFIG_FILE_NAME = "config.yaml"
PROJECT_SUBDIRS = ("logs", "output", "scripts", "backup", "docs")

_HOSTNAME_LABEL = r"[a-zA-Z0-9]([a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
_HOSTNAME_PATTERN = re.compile(rf"^(?=.{{1,253}}$)({_HOSTNAME_LABEL})(\.{_HOSTNAME_LABEL})*$")
_IPV4_PATTERN = re.compile(r"^(\d{1,3})\.(\d{1,3})\.(\d{1,3})\.(\d{1,3})$")
_VERSION_PATTERN = re.compile(r"^\d+\.\d+\.\d+$")
_ENV_VAR_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _validate_host(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("Host cannot be empty")
    ipv4 = _IPV4_PATTERN.match(value)
    if ipv4:
        if any(int(part) > 255 for part in ipv4.groups()):
            raise ValueError(f"Invalid IPv4 address: {value}")
        return value
    if not _HOSTNAME_PATTERN.match(value):
        raise ValueError(f"Invalid host name: {value}")
    return value


def _require_value(value: str, label: str) -> str:
    if not value or not value.strip():
        raise ValueError(f"{label} cannot be empty")
    return value


class ProjectInfo(BaseModel):
    """Project metadata."""

    name: str = Field(default="ora2pg-project", description="Project name")
    version: str = Field(default="1.0.0", description="Project version (x.y.z)")
    description: str = Field(default="", description="Free text description")
    created: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate project name is not empty."""
        return _require_value(v, "Project name").strip()

    @field_validator("version")
    @classmethod
    def validate_version(cls, v: str) -> str:
        """Validate version format."""
        if not _VERSION_PATTERN.match(v):
            raise ValueError("Version must use the x.y.z format")
        return v


class OracleConfig(BaseModel):
    """Connection settings of the source Oracle database."""

    model_config = ConfigDict(populate_by_name=True)

    host: str = Field(default="localhost", description="Oracle host name or IP")
    port: int = Field(default=1521, ge=1, le=65535, description="Listener port")
    sid: str = Field(default="ORCL", description="Oracle SID")
    service: str = Field(default="", description="Oracle service name (preferred over SID)")
    username: str = Field(default="system", description="Oracle user")
    password: str = Field(default="${ORACLE_PASSWORD}", description="Oracle password")
    schema_name: str = Field(default="", alias="schema", description="Schema to export")

    @field_validator("host")
    @classmethod
    def validate_host(cls, v: str) -> str:
        """Validate host format."""
        return _validate_host(v)

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str) -> str:
        """Validate user is not empty."""
        return _require_value(v, "Oracle username")

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        """Validate password is not empty."""
        return _require_value(v, "Oracle password")

    @model_validator(mode="after")
    def validate_sid_or_service(self) -> "OracleConfig":
        """Either a SID or a service name is needed to build the DSN."""
        if not self.sid.strip() and not self.service.strip():
            raise ValueError("Either sid or service must be set")
        return self


class PostgreSQLConfig(BaseModel):
    """Connection settings of the target PostgreSQL database."""

    model_config = ConfigDict(populate_by_name=True)

    host: str = Field(default="localhost", description="PostgreSQL host name or IP")
    port: int = Field(default=5432, ge=1, le=65535, description="PostgreSQL port")
    database: str = Field(default="postgres", description="Target database")
    username: str = Field(default="postgres", description="PostgreSQL user")
    password: str = Field(default="${PG_PASSWORD}", description="PostgreSQL password")
    schema_name: str = Field(default="public", alias="schema", description="Target schema")

    @field_validator("host")
    @classmethod
    def validate_host(cls, v: str) -> str:
        """Validate host format."""
        return _validate_host(v)

    @field_validator("database")
    @classmethod
    def validate_database(cls, v: str) -> str:
        """Validate database is not empty."""
        return _require_value(v, "PostgreSQL database")

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str) -> str:
        """Validate user is not empty."""
        return _require_value(v, "PostgreSQL username")

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        """Validate password is not empty."""
        return _require_value(v, "PostgreSQL password")


class MigrationSettings(BaseModel):
    """Settings for the ora2pg runs."""

    types: list[str] = Field(
        default_factory=lambda: ["TABLE", "VIEW", "SEQUENCE", "INDEX"],
        description="Types written to the TYPE directive of ora2pg.conf",
    )
    parallel_jobs: int = Field(default=4, ge=1, le=32, description="ora2pg JOBS")
    batch_size: int = Field(default=1000, ge=1, description="ora2pg DATA_LIMIT")
    output_dir: str = Field(default="output", description="ora2pg output directory")
    log_level: str = Field(default="INFO", description="Log level written to ora2pg.conf")
    timeout_minutes: int = Field(
        default=30, ge=0, description="Timeout of a single ora2pg run (0 disables it)"
    )
    ora2pg_path: str = Field(default="ora2pg", description="ora2pg executable name or path")

    @field_validator("types")
    @classmethod
    def validate_types(cls, v: list[str]) -> list[str]:
        """Validate every migration type is supported by ora2pg."""
        if not v:
            raise ValueError("At least one migration type is required")
        normalized = []
        supported = {t.value for t in MigrationType}
        for item in v:
            upper = item.strip().upper()
            if upper not in supported:
                choices = ", ".join(sorted(supported))
                raise ValueError(f"Unsupported migration type: {item}. Use one of: {choices}")
            normalized.append(upper)
        return normalized

    @field_validator("log_level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level."""
        v_upper = v.upper()
        if v_upper not in LOG_LEVELS:
            raise ValueError(f"Log level must be one of: {', '.join(LOG_LEVELS)}")
        return v_upper

    @field_validator("output_dir", "ora2pg_path")
    @classmethod
    def validate_not_empty(cls, v: str) -> str:
        """Validate path settings are not empty."""
        return _require_value(v, "Path").strip()

    @property
    def migration_types(self) -> list[MigrationType]:
        return [MigrationType(t) for t in self.types]


class OracleClientConfig(BaseModel):
    """Location of the Oracle client libraries used by ora2pg."""

    home: str = Field(default="", description="ORACLE_HOME passed to ora2pg")
    auto_detect: bool = Field(default=True, description="Detect the client automatically")

    @model_validator(mode="after")
    def validate_home(self) -> "OracleClientConfig":
        """ORACLE_HOME is required when auto detection is off."""
        if not self.auto_detect and not self.home.strip():
            raise ValueError("home must be set when auto_detect is false")
        return self


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="WARNING", description="Console log level")
    file_level: str = Field(default="DEBUG", description="File log level")
    format: str = Field(default="json", description="Log file format (json or console)")
    file: str | None = Field(default="logs/ora2pg-admin.log", description="Log file path")

    @field_validator("level", "file_level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level."""
        v_upper = v.upper()
        if v_upper not in LOG_LEVELS:
            raise ValueError(f"Log level must be one of: {', '.join(LOG_LEVELS)}")
        return v_upper

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        """Validate log format."""
        v_lower = v.lower()
        if v_lower not in ("json", "console"):
            raise ValueError("Log format must be one of: json, console")
        return v_lower


class ProjectConfig(BaseSettings):
    """Main project configuration.

    Values can be overridden from the environment, e.g.
    ``ORA2PG_ADMIN_MIGRATION__PARALLEL_JOBS=8``.
    """

    model_config = SettingsConfigDict(
        env_prefix="ORA2PG_ADMIN_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    project: ProjectInfo = Field(default_factory=ProjectInfo)
    oracle: OracleConfig = Field(default_factory=OracleConfig)
    postgresql: PostgreSQLConfig = Field(default_factory=PostgreSQLConfig)
    migration: MigrationSettings = Field(default_factory=MigrationSettings)
    oracle_client: OracleClientConfig = Field(default_factory=OracleClientConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    def to_yaml_dict(self) -> dict[str, Any]:
        """Dump with the on-disk key names (``schema`` rather than ``schema_name``)."""
        return self.model_dump(mode="json", by_alias=True)


def project_config_dir(project_dir: str | Path) -> Path:
    return Path(project_dir) / PROJECT_DIR_NAME


def project_config_path(project_dir: str | Path) -> Path:
    return project_config_dir(project_dir) / CONFIG_FILE_NAME


def create_default_config(name: str, description: str = "") -> ProjectConfig:
    """Return the configuration written by ``ora2pg-admin init``."""
    now = datetime.now(UTC)
    return ProjectConfig(
        project=ProjectInfo(name=name, description=description, created=now, updated=now)
    )


def format_validation_errors(error: ValidationError) -> list[str]:
    """Turn a Pydantic error into ``location: message`` lines."""
    lines = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"]) or "config"
        message = item["msg"].removeprefix("Value error, ")
        lines.append(f"{location}: {message}")
    return lines


def build_config(data: dict[str, Any]) -> ProjectConfig:
    """Validate a configuration dictionary.

    Raises:
        ConfigValidationError: If any field is invalid
    """
    try:
        return ProjectConfig(**data)
    except ValidationError as e:
        errors = format_validation_errors(e)
        raise ConfigValidationError("Configuration is invalid", errors=errors) from e


def load_config_from_yaml(config_path: str | Path, expand_env: bool = True) -> ProjectConfig:
    """Load configuration from YAML file.

    Args:
        config_path: Path to YAML configuration file
        expand_env: Replace ``${VAR}`` placeholders with environment values

    Returns:
        ProjectConfig: Loaded configuration

    Raises:
        MissingFileError: If config file doesn't exist
        ConfigurationError: If the file is empty, unreadable or references
            an undefined environment variable
        ConfigValidationError: If a field is invalid
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise MissingFileError(config_path)

    try:
        with open(config_path, encoding="utf-8") as f:
            config_data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {config_path}", details=str(e)) from e

    if not config_data:
        raise ConfigurationError(f"Empty configuration file: {config_path}")
    if not isinstance(config_data, dict):
        raise ConfigurationError(f"Configuration must be a mapping: {config_path}")

    if expand_env:
        config_data = _expand_env_vars(config_data)

    return build_config(config_data)


def _expand_env_vars(data: Any) -> Any:
    """Recursively expand environment variables in config data.

    Supports ${VAR_NAME} syntax, also embedded in longer strings.
    """
    if isinstance(data, dict):
        return {k: _expand_env_vars(v) for k, v in data.items()}
    if isinstance(data, list):
        return [_expand_env_vars(item) for item in data]
    if isinstance(data, str):

        def replace(match: re.Match[str]) -> str:
            var_name = match.group(1)
            env_value = os.environ.get(var_name)
            if env_value is None:
                raise ConfigurationError(
                    f"Environment variable '{var_name}' not found",
                    suggestions=[f"Set {var_name} in your environment or .env file"],
                )
            return env_value

        return _ENV_VAR_PATTERN.sub(replace, data)
    return data


def save_config_to_yaml(config: ProjectConfig, output_path: str | Path) -> Path:
    """Save configuration to YAML file.

    The ``updated`` timestamp is refreshed before writing.
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    config.project.updated = datetime.now(UTC)
    config_dict = config.to_yaml_dict()

    with open(output_path, "w", encoding="utf-8") as f:
        yaml.safe_dump(
            config_dict, f, default_flow_style=False, sort_keys=False, allow_unicode=True
        )

    return output_path
