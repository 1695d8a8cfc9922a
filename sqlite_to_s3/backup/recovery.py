"""Restore of the live database from a stored backup."""

import logging
import os
from typing import Any, Dict, Optional

from sqlite_to_s3.config.manager import BackupConfig
from sqlite_to_s3.database.snapshot import SQLITE_HEADER, SnapshotGateway
from sqlite_to_s3.encryption.cipher import OpenSSLCipher
from sqlite_to_s3.encryption.detector import is_encrypted
from sqlite_to_s3.utils.errors import (
    InvalidArgumentError,
    MissingKeyError,
    RestoreError,
    create_error_suggestions,
)
from sqlite_to_s3.utils.files import FileManager

from .storage import TIMESTAMP_PATTERN, BackupStorage

logger = logging.getLogger(__name__)


def validate_timestamp(timestamp: Optional[str]) -> None:
    """
    Check a restore timestamp.

    Raises:
        InvalidArgumentError: If ``timestamp`` is empty or not 14 digits
    """
    if not timestamp:
        raise InvalidArgumentError(
            "restore requires a TIMESTAMP argument (YYYYMMDDHHMMSS)",
            suggestions=create_error_suggestions("object_not_found"),
        )
    if not TIMESTAMP_PATTERN.match(timestamp):
        raise InvalidArgumentError(
            f"Invalid timestamp '{timestamp}'",
            details="Timestamps have exactly 14 digits: YYYYMMDDHHMMSS",
            suggestions=create_error_suggestions("object_not_found"),
        )


class RecoveryManager:
    """Runs one restore cycle into the live database path.

    The live database is moved aside before it is replaced and moved back if
    the replacement fails. Callers must make sure no backup or restore of the
    same database runs at the same time. A process killed mid-restore can
    leave ``<database>.old`` behind; it then has to be recovered by hand.
    """

    def __init__(
        self,
        config: BackupConfig,
        storage: Optional[BackupStorage] = None,
        snapshot: Optional[SnapshotGateway] = None,
        verbose: bool = False,
    ):
        """
        Initialize recovery manager.

        Args:
            config: Resolved settings
            storage: Object store gateway (built from ``config`` when omitted)
            snapshot: Database snapshot gateway
            verbose: Enable verbose output
        """
        self.config = config
        self.verbose = verbose
        self.storage = storage or BackupStorage(
            config.bucket,
            key_prefix=config.key_prefix,
            endpoint_url=config.endpoint_url,
            verbose=verbose,
        )
        self.snapshot = snapshot or SnapshotGateway(timeout_ms=config.timeout_ms)
        self.files = FileManager(verbose=verbose)

    def restore(self, timestamp: str) -> Dict[str, Any]:
        """
        Replace the live database with the backup taken at ``timestamp``.

        Args:
            timestamp: Backup timestamp (``YYYYMMDDHHMMSS``)

        Returns:
            Dict[str, Any]: Restore results

        Raises:
            InvalidArgumentError: If the timestamp is missing or malformed
            DownloadError: If the backup cannot be downloaded
            MissingKeyError: If the backup is encrypted and no key is set
            DecryptionError: If the backup cannot be decrypted
            RestoreError: If the live database could not be replaced
        """
        validate_timestamp(timestamp)

        config = self.config
        object_key = self.storage.object_key(timestamp)

        if self.files.remove_file(config.backup_path):
            logger.info("Removing out of date backup")

        self.storage.download(object_key, config.backup_path)

        encrypted = is_encrypted(config.backup_path)
        restore_source = config.backup_path
        if encrypted:
            restore_source = self._decrypt_download()

        self._swap_in(restore_source)

        logger.info("Done")
        return {
            "success": True,
            "timestamp": timestamp,
            "object_key": object_key,
            "object_url": self.storage.object_url(object_key),
            "encrypted": encrypted,
        }

    def _decrypt_download(self) -> str:
        """Decrypt the downloaded backup next to it."""
        config = self.config
        logger.info("Downloaded backup appears to be encrypted")

        if not config.encryption_enabled:
            raise MissingKeyError(
                "Backup is encrypted but ENCRYPTION_KEY is not set. Cannot restore.",
                suggestions=create_error_suggestions("missing_key"),
            )

        cipher = OpenSSLCipher(config.encryption_key)
        cipher.decrypt_file(
            config.backup_path,
            config.decrypted_backup_path,
            expected_prefix=SQLITE_HEADER,
        )
        return config.decrypted_backup_path

    def _swap_in(self, restore_source: str) -> None:
        """Replace the live database, rolling back to the previous one on failure."""
        config = self.config
        database_path = config.database_path
        previous_path = config.previous_database_path

        logger.info("Running restore")
        try:
            had_previous = self.files.move_aside(database_path, previous_path)
        except OSError as e:
            self.files.remove_file(config.decrypted_backup_path)
            raise RestoreError("Restore failed", details=f"could not move {database_path} aside: {e}") from e
        if had_previous:
            logger.info("Moved out of date database aside")

        try:
            self.snapshot.restore(restore_source, database_path)
        except Exception as e:
            logger.error("Restore failed")
            error = e if isinstance(e, RestoreError) else RestoreError("Restore failed", details=str(e))
            self._roll_back(had_previous, error)
            self.files.remove_file(config.decrypted_backup_path)
            if error is e:
                raise
            raise error from e

        logger.info("Successfully restored")
        if self.files.remove_file(previous_path):
            logger.info("Cleaning up out of date database")
        self.files.remove_files(config.decrypted_backup_path, config.backup_path)

    def _roll_back(self, had_previous: bool, error: RestoreError) -> None:
        """Put the pre-restore database back in place."""
        config = self.config
        database_path = config.database_path
        previous_path = config.previous_database_path

        try:
            if had_previous:
                logger.info("Moving previous database back into place")
                os.replace(previous_path, database_path)
            else:
                # There was no database before; drop whatever the failed restore wrote
                self.files.remove_file(database_path)
        except OSError as rollback_error:
            self.files.remove_file(config.decrypted_backup_path)
            raise RestoreError(
                "Restore failed: system in unknown state, manual intervention required",
                details=f"{error.details}; rollback failed: {rollback_error}",
                suggestions=create_error_suggestions("restore_unresolved", database_path=database_path),
                unresolved=True,
            ) from rollback_error
