"""Error handling utilities for sqlite-to-s3."""

import sqlite3
import sys
import traceback
from typing import Optional, Tuple

import click


class SqliteToS3Error(Exception):
    """Base exception for sqlite-to-s3 errors."""

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        suggestions: Optional[list] = None,
    ):
        self.message = message
        self.details = details
        self.suggestions = suggestions or []
        super().__init__(message)


class ConfigurationError(SqliteToS3Error):
    """Raised when a required setting is missing or a setting is invalid."""

    pass


class InvalidArgumentError(SqliteToS3Error):
    """Raised when a command argument is missing or malformed."""

    pass


class SnapshotError(SqliteToS3Error):
    """Raised when the hot backup of the live database fails."""

    pass


class RestoreError(SqliteToS3Error):
    """Raised when materializing a snapshot into the live database fails.

    ``unresolved`` is set when the rollback to the previous database could
    not be completed either, leaving the live path in an unknown state.
    """

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        suggestions: Optional[list] = None,
        unresolved: bool = False,
    ):
        self.unresolved = unresolved
        super().__init__(message, details=details, suggestions=suggestions)


class EncryptionError(SqliteToS3Error):
    """Raised when encrypting a snapshot fails."""

    pass


class DecryptionError(SqliteToS3Error):
    """Raised when decrypting a snapshot fails (usually a wrong key)."""

    pass


class MissingKeyError(SqliteToS3Error):
    """Raised when an encrypted backup is found but no key is configured."""

    pass


class StorageError(SqliteToS3Error):
    """Raised when object storage operations fail."""

    pass


class UploadError(StorageError):
    """Raised when uploading a backup object fails."""

    pass


class DownloadError(StorageError):
    """Raised when downloading a backup object fails."""

    pass


class SchedulerError(SqliteToS3Error):
    """Raised when periodic backups cannot be registered or started."""

    pass


class ErrorHandler:
    """Renders errors on stderr for operators and cron logs."""

    def __init__(self, verbose: bool = False):
        self.verbose = verbose

    def handle_error(self, error: Exception, context: Optional[str] = None) -> None:
        """
        Print ``error`` with its details and hints.

        Args:
            error: Exception to report
            context: Command or step that failed
        """
        if isinstance(error, SqliteToS3Error):
            self._render(error.message, context, error.details, error.suggestions)
        else:
            message, suggestions = self._describe_unexpected(error)
            self._render(message, context, None, suggestions)

        if self.verbose:
            click.echo("\nFull traceback:", err=True)
            traceback.print_exc()

    def _describe_unexpected(self, error: Exception) -> Tuple[str, list]:
        """Turn an exception that escaped the managers into a message and hints."""
        if isinstance(error, FileNotFoundError):
            return f"File not found: {error}", [
                "Check DATABASE_PATH and BACKUP_PATH",
            ]
        if isinstance(error, PermissionError):
            return f"Permission denied: {error}", [
                "Check that the database directory is writable by this user",
            ]
        if isinstance(error, sqlite3.Error):
            return f"SQLite error: {error}", create_error_suggestions("database_busy")
        return f"{type(error).__name__}: {error}", []

    def _render(
        self,
        message: str,
        context: Optional[str],
        details: Optional[str],
        suggestions: list,
    ) -> None:
        click.echo(f"✗ {message}", err=True)
        if context:
            click.echo(f"Context: {context}", err=True)
        if details:
            click.echo(f"Details: {details}", err=True)
        if suggestions:
            click.echo("\nSuggestions:", err=True)
            for suggestion in suggestions:
                click.echo(f"  • {suggestion}", err=True)

    def exit_with_error(self, error: Exception, context: Optional[str] = None, exit_code: int = 1) -> None:
        """Report ``error`` and end the process with ``exit_code``."""
        self.handle_error(error, context)
        sys.exit(exit_code)


def create_error_suggestions(error_type: str, **kwargs) -> list:
    """
    Create contextual error suggestions based on error type and context.

    Args:
        error_type: Type of error
        **kwargs: Additional context information (``database_path``)

    Returns:
        list: List of suggestion strings
    """
    database_path = kwargs.get("database_path", "DATABASE_PATH")

    suggestions = {
        "decryption_failed": [
            "Check that ENCRYPTION_KEY matches the key used when the backup was taken",
            "Verify the backup object was not truncated or modified",
        ],
        "missing_key": [
            "Set ENCRYPTION_KEY to the passphrase used when the backup was taken",
        ],
        "storage_unreachable": [
            "Check AWS credentials (AWS_ACCESS_KEY_ID, AWS_SECRET_ACCESS_KEY or an instance role)",
            "Verify S3_BUCKET and S3_KEY_PREFIX",
            "Check ENDPOINT_URL when using an S3-compatible store",
        ],
        "object_not_found": [
            "Run 'sqlite-to-s3 list' to see available timestamps",
            "Timestamps use the format YYYYMMDDHHMMSS",
        ],
        "database_busy": [
            "Increase SQLITE_TIMEOUT_MS if the database is under heavy write load",
            "Check that DATABASE_PATH points to a readable SQLite file",
        ],
        "restore_unresolved": [
            f"Inspect {database_path} and {database_path}.old by hand",
            f"Move {database_path}.old back to {database_path} once the disk problem is fixed",
        ],
        "configuration_invalid": [
            "Check the environment variables listed in the error",
            "Verify the YAML syntax of the file passed with --config",
        ],
    }

    return suggestions.get(error_type, [])


def format_validation_errors(errors: list) -> str:
    """
    Format validation errors for display.

    Args:
        errors: List of validation error messages

    Returns:
        str: Formatted error message
    """
    if not errors:
        return "No validation errors"

    if len(errors) == 1:
        return f"Validation error: {errors[0]}"

    formatted = "Validation errors:\n"
    for i, error in enumerate(errors, 1):
        formatted += f"  {i}. {error}\n"

    return formatted.strip()
