"""Configuration management for the pooler benchmark harness."""

import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, field_validator

DEFAULT_TIMEOUT_S = 60

# Environment variable names are upper case; anything else is a literal value
_VAR_REFERENCE = re.compile(r"\$(?:[A-Z_][A-Z0-9_]*|\{[A-Z_][A-Z0-9_]*\})")


class PoolerConfig(BaseModel):
    """Connection settings for the pooler under test."""

    host: str = "localhost"
    port: int = 2345
    user: str = "postgres"
    password: str | None = None

    @field_validator("host", "user")
    @classmethod
    def validate_not_empty(cls, v: str) -> str:
        """Ensure connection strings are not empty."""
        if not v:
            raise ValueError("value cannot be empty")
        return v

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Ensure port is in the TCP range."""
        if not 1 <= v <= 65535:
            raise ValueError(f"port must be between 1 and 65535 (got {v})")
        return v


class PgbenchConfig(BaseModel):
    """Settings for the pgbench executable."""

    binary: str = "pgbench"
    max_threads: int = 8
    # Scale factor the database was initialised with (pgbench -i -s)
    scale: int = 1
    grace_period_s: float = 5.0
    extra_env: dict[str, str] = {}

    @field_validator("max_threads")
    @classmethod
    def validate_max_threads(cls, v: int) -> int:
        """Ensure max_threads is positive."""
        if v < 1:
            raise ValueError(f"max_threads must be positive (got {v})")
        return v

    @field_validator("scale")
    @classmethod
    def validate_scale(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"scale must be positive (got {v})")
        return v

    @field_validator("grace_period_s")
    @classmethod
    def validate_grace_period(cls, v: float) -> float:
        """Ensure grace period is non-negative."""
        if v < 0:
            raise ValueError(f"grace_period_s must be non-negative (got {v})")
        return v


class ExecutionConfig(BaseModel):
    """How the suite is executed."""

    default_timeout_s: int = DEFAULT_TIMEOUT_S
    stop_on_failure: bool = False
    parallel: bool = False  # Scenarios share the pooler, so this must be opted into
    max_workers: int | None = None  # Defaults to number of scenarios

    @field_validator("default_timeout_s")
    @classmethod
    def validate_timeout(cls, v: int) -> int:
        """Ensure default timeout is positive."""
        if v < 1:
            raise ValueError(f"default_timeout_s must be positive (got {v})")
        return v

    @field_validator("max_workers")
    @classmethod
    def validate_max_workers(cls, v: int | None) -> int | None:
        """Ensure max_workers is positive when given."""
        if v is not None and v < 1:
            raise ValueError(f"max_workers must be positive (got {v})")
        return v


class ReportConfig(BaseModel):
    """Where and what to write after a suite run."""

    output_dir: str | None = None
    write_json: bool = True
    write_csv: bool = True
    write_junit: bool = True


class HarnessConfig(BaseModel):
    """Main harness configuration."""

    suite: str = "pgagroal_test2"
    pooler: PoolerConfig = PoolerConfig()
    pgbench: PgbenchConfig = PgbenchConfig()
    execution: ExecutionConfig = ExecutionConfig()
    report: ReportConfig = ReportConfig()

    @field_validator("suite")
    @classmethod
    def validate_suite(cls, v: str) -> str:
        """Ensure suite name is filesystem-safe."""
        if not v or not v.replace("_", "").replace("-", "").isalnum():
            raise ValueError(
                "suite must contain only alphanumeric characters, underscores, and hyphens"
            )
        return v


def default_config() -> dict[str, Any]:
    """Return the configuration used when no file is given."""
    return _apply_defaults(HarnessConfig().model_dump())


def load_config(path: str | Path | None = None) -> dict[str, Any]:
    """Load and validate harness configuration from a YAML file."""
    if path is None:
        return default_config()

    config_path = Path(path)

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, encoding="utf-8") as f:
        raw_config = yaml.safe_load(f) or {}

    if not isinstance(raw_config, dict):
        raise ValueError(f"Invalid configuration: expected a mapping in {config_path}")

    _drop_unset_password(raw_config)

    # Expand environment variables in config
    raw_config = _expand_env_vars(raw_config)

    # Validate using Pydantic model
    try:
        validated_config = HarnessConfig(**raw_config)
    except Exception as e:
        raise ValueError(f"Invalid configuration: {e}") from e

    return _apply_defaults(validated_config.model_dump())


def _apply_defaults(config: dict[str, Any]) -> dict[str, Any]:
    """Fill in values that depend on other settings."""
    if not config["report"]["output_dir"]:
        config["report"]["output_dir"] = f"results/{config['suite']}"

    return config


def _drop_unset_password(raw_config: dict[str, Any]) -> None:
    """Treat a password that is only an unset $VAR or ${VAR} reference as no password."""
    pooler = raw_config.get("pooler")
    if not isinstance(pooler, dict):
        return
    password = pooler.get("password")
    if (
        isinstance(password, str)
        and _VAR_REFERENCE.fullmatch(password)
        and os.path.expandvars(password) == password
    ):
        pooler["password"] = None


def _expand_env_vars(obj: Any) -> Any:
    """Recursively expand environment variables in configuration."""
    if isinstance(obj, dict):
        return {k: _expand_env_vars(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_expand_env_vars(item) for item in obj]
    elif isinstance(obj, str):
        return os.path.expandvars(obj)
    else:
        return obj
