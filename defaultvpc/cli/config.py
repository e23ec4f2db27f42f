"""Configuration loading for the defaultvpc CLI.

Values come from (lowest to highest precedence) built-in defaults, a YAML
config file, environment variables, and finally CLI options.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Optional

import yaml

from ..deletion.executor import DEFAULT_MAX_WORKERS
from ..deletion.retry import DEFAULT_BASE_DELAY, DEFAULT_MAX_ATTEMPTS, DEFAULT_MAX_DELAY, RetryPolicy
from ..exceptions import InvalidConfigurationError

CONFIG_ENV_VAR = "DEFAULTVPC_CONFIG"
DEFAULT_CONFIG_PATH = Path.home() / ".defaultvpc" / "config.yaml"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

ENV_OVERRIDES = {
    "aws_profile": ("DEFAULTVPC_PROFILE", "AWS_PROFILE"),
    "log_level": ("DEFAULTVPC_LOG_LEVEL",),
    "max_attempts": ("DEFAULTVPC_MAX_ATTEMPTS",),
    "base_delay": ("DEFAULTVPC_BASE_DELAY",),
    "max_delay": ("DEFAULTVPC_MAX_DELAY",),
    "max_workers": ("DEFAULTVPC_MAX_WORKERS",),
    "continue_on_failure": ("DEFAULTVPC_CONTINUE_ON_FAILURE",),
    "audit_dir": ("DEFAULTVPC_AUDIT_DIR",),
}


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ("1", "true", "yes", "on"):
        return True
    if text in ("0", "false", "no", "off"):
        return False
    raise InvalidConfigurationError(f"Invalid boolean value: {value!r}")


@dataclass
class Config:
    """CLI configuration.

    Attributes:
        aws_profile: AWS profile name (None for the default credential chain)
        log_level: Logging level name
        max_attempts: Attempts per API call, including the first
        base_delay: Delay before the first retry, in seconds
        max_delay: Cap on any single retry delay, in seconds
        max_workers: Concurrent delete calls per batch
        continue_on_failure: Keep running later child batches after a failure
        audit_dir: Directory for YAML audit logs (None disables auditing)
    """

    aws_profile: Optional[str] = None
    log_level: str = "INFO"
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    base_delay: float = DEFAULT_BASE_DELAY
    max_delay: float = DEFAULT_MAX_DELAY
    max_workers: int = DEFAULT_MAX_WORKERS
    continue_on_failure: bool = True
    audit_dir: Optional[str] = None

    @classmethod
    def load(cls, path: Optional[str] = None) -> "Config":
        """Load configuration from file and environment.

        Args:
            path: Config file path (default: $DEFAULTVPC_CONFIG or ~/.defaultvpc/config.yaml)

        Returns:
            Validated Config

        Raises:
            InvalidConfigurationError: If the file is unreadable or a value is invalid
        """
        values: dict[str, Any] = {}

        explicit = path or os.environ.get(CONFIG_ENV_VAR)
        config_path = Path(explicit).expanduser() if explicit else DEFAULT_CONFIG_PATH

        if config_path.exists():
            values.update(cls._read_file(config_path))
        elif explicit:
            raise InvalidConfigurationError(f"Config file not found: {config_path}")

        for name, env_vars in ENV_OVERRIDES.items():
            for env_var in env_vars:
                if os.environ.get(env_var):
                    values[name] = os.environ[env_var]
                    break

        return cls.from_dict(values)

    @classmethod
    def from_dict(cls, values: dict[str, Any]) -> "Config":
        """Build a Config from raw (possibly string) values and validate it."""
        known = {f.name: f for f in fields(cls)}
        unknown = set(values) - set(known)
        if unknown:
            raise InvalidConfigurationError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")

        converted: dict[str, Any] = {}
        try:
            for name, value in values.items():
                if value is None or name in ("aws_profile", "audit_dir"):
                    converted[name] = value
                elif name in ("max_attempts", "max_workers"):
                    converted[name] = int(value)
                elif name in ("base_delay", "max_delay"):
                    converted[name] = float(value)
                elif name == "continue_on_failure":
                    converted[name] = _parse_bool(value)
                else:
                    converted[name] = str(value).upper()
        except (TypeError, ValueError) as e:
            raise InvalidConfigurationError(f"Invalid configuration value: {e}") from e

        config = cls(**converted)
        config.validate()
        return config

    def validate(self) -> bool:
        """Validate configuration values.

        Raises:
            InvalidConfigurationError: If any value is out of range
        """
        if self.log_level not in LOG_LEVELS:
            raise InvalidConfigurationError(f"Invalid log level: {self.log_level}")
        if self.max_workers < 1:
            raise InvalidConfigurationError(f"max_workers must be at least 1, got {self.max_workers}")

        # RetryPolicy owns the retry parameter rules
        self.retry_policy()
        return True

    def retry_policy(self) -> RetryPolicy:
        """Build the retry policy described by this configuration."""
        return RetryPolicy(
            max_attempts=self.max_attempts,
            base_delay=self.base_delay,
            max_delay=self.max_delay,
        )

    @staticmethod
    def _read_file(config_path: Path) -> dict[str, Any]:
        try:
            with open(config_path, "r") as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise InvalidConfigurationError(f"Cannot read config file {config_path}: {e}") from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise InvalidConfigurationError(f"Config file {config_path} must contain a mapping")
        return data
