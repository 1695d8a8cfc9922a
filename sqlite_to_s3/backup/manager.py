"""Backup management: snapshot, optional encryption, upload."""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from sqlite_to_s3.config.manager import BackupConfig
from sqlite_to_s3.database.snapshot import SnapshotGateway
from sqlite_to_s3.encryption.cipher import OpenSSLCipher
from sqlite_to_s3.monitoring.webhook import WebhookNotifier
from sqlite_to_s3.utils.errors import SnapshotError
from sqlite_to_s3.utils.files import FileManager

from .storage import BackupStorage

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"


def current_timestamp(clock: Optional[Callable[[], datetime]] = None) -> str:
    """Return the backup timestamp in ``YYYYMMDDHHMMSS`` form."""
    now = clock() if clock else datetime.now()
    return now.strftime(TIMESTAMP_FORMAT)


class BackupManager:
    """Runs one backup cycle of the live database."""

    def __init__(
        self,
        config: BackupConfig,
        storage: Optional[BackupStorage] = None,
        snapshot: Optional[SnapshotGateway] = None,
        notifier: Optional[WebhookNotifier] = None,
        clock: Optional[Callable[[], datetime]] = None,
        verbose: bool = False,
    ):
        """
        Initialize backup manager.

        Args:
            config: Resolved settings
            storage: Object store gateway (built from ``config`` when omitted)
            snapshot: Database snapshot gateway
            notifier: Webhook notifier
            clock: Source of the backup timestamp
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
        self.notifier = notifier or WebhookNotifier()
        self.clock = clock
        self.files = FileManager(verbose=verbose)

    def backup(self) -> Dict[str, Any]:
        """
        Snapshot the database, encrypt it when a key is set and upload it.

        Returns:
            Dict[str, Any]: Backup results

        Raises:
            SnapshotError: If the hot backup fails; nothing is uploaded
            EncryptionError: If encryption fails; nothing is uploaded
            UploadError: If the upload fails; local files are kept
        """
        config = self.config
        timestamp = current_timestamp(self.clock)
        object_key = self.storage.object_key(timestamp)

        result = {
            "success": False,
            "timestamp": timestamp,
            "object_key": object_key,
            "object_url": self.storage.object_url(object_key),
            "encrypted": config.encryption_enabled,
            "notified": None,
        }

        self._take_snapshot()

        upload_source = config.backup_path
        if config.encryption_enabled:
            upload_source = self._encrypt_snapshot()

        self.storage.upload(upload_source, object_key)
        self.files.remove_file(upload_source)
        result["success"] = True

        if config.webhook_url:
            result["notified"] = self.notifier.notify(
                config.webhook_url,
                {"event": "backup.completed", "timestamp": timestamp, "object": result["object_url"]},
            )

        logger.info("Done")
        return result

    def _take_snapshot(self) -> None:
        """Hot-copy the live database into the working backup file."""
        config = self.config

        # A leftover file could be an encrypted download from a restore run
        self.files.remove_file(config.backup_path)

        try:
            self.snapshot.backup(config.database_path, config.backup_path)
        except SnapshotError:
            self.files.remove_file(config.backup_path)
            raise

        self.files.secure_file_permissions(config.backup_path)

    def _encrypt_snapshot(self) -> str:
        """Encrypt the working backup file and drop the plaintext."""
        config = self.config
        logger.info("Encrypting backup before upload")

        cipher = OpenSSLCipher(config.encryption_key)
        try:
            cipher.encrypt_file(config.backup_path, config.encrypted_backup_path)
        finally:
            # Plaintext never outlives this step, whether encryption worked or not
            self.files.remove_file(config.backup_path)

        return config.encrypted_backup_path
