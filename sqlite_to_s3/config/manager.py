"""Configuration management for sqlite-to-s3."""

import os
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

import yaml

from sqlite_to_s3.utils.errors import (
    ConfigurationError,
    create_error_suggestions,
    format_validation_errors,
)

from .schemas import ENVIRONMENT_KEYS
from .validator import ConfigValidator

DEFAULT_TIMEOUT_MS = 10000
DEFAULT_CRONTAB_PATH = "/var/spool/cron/crontabs/root"


def normalize_prefix(prefix: Optional[str]) -> str:
    """Return ``prefix`` with a trailing ``/``, or an empty string."""
    if not prefix:
        return ""
    if prefix.endswith("/"):
        return prefix
    return f"{prefix}/"


@dataclass(frozen=True)
class BackupConfig:
    """Resolved settings for one backup or restore run."""

    bucket: str
    database_path: str
    backup_path: str
    key_prefix: str = ""
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    encryption_key: Optional[str] = None
    cron_schedule: Optional[str] = None
    webhook_url: Optional[str] = None
    endpoint_url: Optional[str] = None
    crontab_path: str = DEFAULT_CRONTAB_PATH
    config_file: Optional[str] = None

    @property
    def encryption_enabled(self) -> bool:
        return bool(self.encryption_key)

    @property
    def encrypted_backup_path(self) -> str:
        return f"{self.backup_path}.enc"

    @property
    def decrypted_backup_path(self) -> str:
        return f"{self.backup_path}.decrypted"

    @property
    def previous_database_path(self) -> str:
        # Same directory as the live database so the rename stays atomic
        return f"{self.database_path}.old"

    def describe(self) -> Dict[str, Any]:
        """Settings safe to print (the passphrase is masked)."""
        return {
            "bucket": self.bucket,
            "database_path": self.database_path,
            "backup_path": self.backup_path,
            "key_prefix": self.key_prefix,
            "timeout_ms": self.timeout_ms,
            "encryption": "enabled" if self.encryption_enabled else "disabled",
            "cron_schedule": self.cron_schedule,
            "webhook_url": self.webhook_url,
            "endpoint_url": self.endpoint_url,
        }


class ConfigManager:
    """Loads settings from an optional YAML file and the environment."""

    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        """
        Initialize configuration manager.

        Args:
            environ: Environment mapping (defaults to ``os.environ``)
        """
        self.environ = os.environ if environ is None else environ
        self.validator = ConfigValidator()

    def load_config_file(self, config_path: str) -> Dict[str, Any]:
        """
        Load settings from a YAML file.

        Args:
            config_path: Path to configuration file

        Returns:
            Dict[str, Any]: Raw settings

        Raises:
            ConfigurationError: If the file is missing or not a YAML mapping
        """
        try:
            with open(config_path, encoding="utf-8") as f:
                config = yaml.safe_load(f) or {}
        except FileNotFoundError:
            raise ConfigurationError(f"Configuration file not found: {config_path}")
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Invalid YAML in {config_path}",
                details=str(e),
                suggestions=create_error_suggestions("configuration_invalid"),
            )

        if not isinstance(config, dict):
            raise ConfigurationError(f"Configuration file must contain a mapping: {config_path}")

        return config

    def load_environment(self) -> Dict[str, Any]:
        """Collect the settings present in the environment."""
        config: Dict[str, Any] = {}

        for env_name, key in ENVIRONMENT_KEYS.items():
            value = self.environ.get(env_name)
            if value is None:
                continue
            # Empty optional variables behave as unset
            if value == "" and key not in ("bucket", "database_path"):
                continue
            config[key] = value

        return config

    def load_config(self, config_file: Optional[str] = None, require_schedule: bool = False) -> BackupConfig:
        """
        Resolve the effective settings.

        Environment variables override values from ``config_file``.

        Args:
            config_file: Optional YAML file with lower-case keys
            require_schedule: Whether ``cron_schedule`` must be present

        Returns:
            BackupConfig: Validated settings

        Raises:
            ConfigurationError: If settings are missing or invalid
        """
        raw: Dict[str, Any] = {}
        if config_file:
            raw.update(self.load_config_file(config_file))
        raw.update(self.load_environment())

        errors = []
        if "timeout_ms" in raw and isinstance(raw["timeout_ms"], str):
            try:
                raw["timeout_ms"] = int(raw["timeout_ms"])
            except ValueError:
                errors.append(f"timeout_ms: '{raw['timeout_ms']}' is not an integer")
                del raw["timeout_ms"]

        errors.extend(self._describe_missing(raw))
        errors.extend(self.validator.validate_backup_config(raw))

        if require_schedule and not raw.get("cron_schedule"):
            errors.append("CRON_SCHEDULE env variable is required for cron mode")

        if errors:
            raise ConfigurationError(
                "Invalid configuration",
                details=format_validation_errors(_unique(errors)),
                suggestions=create_error_suggestions("configuration_invalid"),
            )

        database_path = raw["database_path"]
        return BackupConfig(
            bucket=raw["bucket"],
            database_path=database_path,
            backup_path=raw.get("backup_path") or f"{database_path}.bak",
            key_prefix=normalize_prefix(raw.get("key_prefix")),
            timeout_ms=raw.get("timeout_ms", DEFAULT_TIMEOUT_MS),
            encryption_key=raw.get("encryption_key") or None,
            cron_schedule=raw.get("cron_schedule"),
            webhook_url=raw.get("webhook_url"),
            endpoint_url=raw.get("endpoint_url"),
            crontab_path=raw.get("crontab_path", DEFAULT_CRONTAB_PATH),
            config_file=os.path.abspath(config_file) if config_file else None,
        )

    def _describe_missing(self, raw: Dict[str, Any]) -> list:
        """Name the environment variable for each missing required setting."""
        errors = []
        if not raw.get("bucket"):
            errors.append("S3_BUCKET env variable is required")
        if not raw.get("database_path"):
            errors.append("DATABASE_PATH env variable is required")
        return errors


def _unique(errors: list) -> list:
    seen = set()
    result = []
    for error in errors:
        if error not in seen:
            seen.add(error)
            result.append(error)
    return result
