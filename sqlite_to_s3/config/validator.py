"""Configuration validation for sqlite-to-s3."""

import os
from typing import Any, Dict, List

import jsonschema

from .schemas import BACKUP_CONFIG_SCHEMA


class ConfigValidator:
    """Validates sqlite-to-s3 settings."""

    def validate_backup_config(self, config: Dict[str, Any]) -> List[str]:
        """
        Validate merged backup settings.

        Args:
            config: Configuration dictionary to validate

        Returns:
            List[str]: List of validation errors (empty if valid)
        """
        errors = []

        validator = jsonschema.Draft7Validator(BACKUP_CONFIG_SCHEMA)
        for error in sorted(validator.iter_errors(config), key=lambda e: list(e.path)):
            field = ".".join(str(part) for part in error.path)
            if field:
                errors.append(f"{field}: {error.message}")
            else:
                errors.append(error.message)

        if isinstance(config.get("database_path"), str) and config["database_path"]:
            errors.extend(self._validate_database_path(config["database_path"]))

        return errors

    def _validate_database_path(self, database_path: str) -> List[str]:
        """Check that the database directory exists."""
        errors = []

        directory = os.path.dirname(os.path.abspath(database_path))
        if not os.path.isdir(directory):
            errors.append(f"database_path: directory does not exist: {directory}")

        return errors
