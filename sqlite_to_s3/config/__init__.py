"""Configuration management for sqlite-to-s3."""

from .manager import BackupConfig, ConfigManager, normalize_prefix
from .schemas import BACKUP_CONFIG_SCHEMA

__all__ = ["BackupConfig", "ConfigManager", "normalize_prefix", "BACKUP_CONFIG_SCHEMA"]
