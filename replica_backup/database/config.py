"""Backup run configuration models using Pydantic."""

import os
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from replica_backup.core.exceptions import ConfigurationError


# Environment variable names, resolved once at startup.
ENV_HOST = "SQL_SERVER_TO_BACKUP_FQDN"
ENV_SERVER_NAME = "SQL_SERVER_TO_BACKUP_NAME"
ENV_USER = "SQL_BACKUP_USER"
ENV_PASSWORD = "SQL_BACKUP_PASS"
ENV_DATABASES = "COMMA_SEP_LIST_DBS_TO_BACKUP_LEAVE_BLANK_FOR_ALL"
ENV_SSL = "MARIADB_SSL"
ENV_TMP_DIR = "TMP_BACKUP_TO_DIR"
ENV_FINAL_DIR = "FINAL_COPY_TO_DIR"
ENV_MAX_WORKERS = "BACKUP_MAX_WORKERS"
ENV_FAIL_ON_RESUME_ERROR = "BACKUP_FAIL_ON_RESUME_ERROR"

REQUIRED_ENV = {
    ENV_HOST: "host",
    ENV_SERVER_NAME: "server_name",
    ENV_USER: "user",
    ENV_PASSWORD: "password",
    ENV_TMP_DIR: "tmp_backup_dir",
    ENV_FINAL_DIR: "final_copy_dir",
}


def _default_workers() -> int:
    return os.cpu_count() or 1


def parse_database_list(value: Optional[str]) -> List[str]:
    """Split a comma separated database list, dropping blanks."""
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


class BackupConfig(BaseModel):
    """Immutable configuration for a single backup run."""
    host: str
    user: str
    password: str
    server_name: str
    tmp_backup_dir: str
    final_copy_dir: str
    port: int = 3306
    databases: List[str] = Field(default_factory=list)
    ssl_enabled: bool = False
    max_workers: int = Field(default_factory=_default_workers, ge=1)
    fail_on_resume_error: bool = False
    batched_engine_probe: bool = True
    connection_timeout: int = Field(default=30, ge=1, le=300)
    dump_command: str = "mariadb-dump"
    compress_command: str = "7z"

    model_config = ConfigDict(frozen=True)

    @field_validator('host', 'user', 'server_name', 'tmp_backup_dir', 'final_copy_dir')
    @classmethod
    def must_not_be_blank(cls, v, info):
        if not v or not v.strip():
            raise ValueError(f'{info.field_name} cannot be empty')
        return v.strip()

    @field_validator('port')
    @classmethod
    def validate_port(cls, v):
        if not (1 <= v <= 65535):
            raise ValueError('Port must be between 1 and 65535')
        return v

    @field_validator('databases', mode='before')
    @classmethod
    def split_databases(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            return parse_database_list(v)
        return [str(item).strip() for item in v if str(item).strip()]

    @property
    def has_allow_list(self) -> bool:
        return bool(self.databases)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides: Any) -> "BackupConfig":
        """Build the configuration from environment variables.

        Args:
            environ: Mapping to read from (defaults to ``os.environ``)
            **overrides: Field values taking precedence over the environment

        Returns:
            Validated configuration

        Raises:
            ConfigurationError: If a required variable is missing or a value is malformed
        """
        environ = os.environ if environ is None else environ

        missing = [name for name in REQUIRED_ENV if not environ.get(name)]
        missing = [name for name in missing if REQUIRED_ENV[name] not in overrides]
        if missing:
            raise ConfigurationError(
                f"Missing required configuration: {', '.join(missing)}",
                details={"missing": missing}
            )

        values: Dict[str, Any] = {
            field: environ.get(name) for name, field in REQUIRED_ENV.items()
        }
        values["databases"] = environ.get(ENV_DATABASES, "")
        values["ssl_enabled"] = environ.get(ENV_SSL, "0") == "1"
        values["fail_on_resume_error"] = environ.get(ENV_FAIL_ON_RESUME_ERROR, "0") == "1"
        if environ.get(ENV_MAX_WORKERS):
            values["max_workers"] = environ[ENV_MAX_WORKERS]
        values.update({k: v for k, v in overrides.items() if v is not None})

        try:
            return cls(**values)
        except ValidationError as e:
            raise ConfigurationError(
                f"Invalid configuration: {e}",
                details={"errors": e.errors(include_url=False)}
            ) from e
