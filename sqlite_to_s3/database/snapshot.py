"""Hot backup and restore of the live SQLite database."""

import logging
import os
import sqlite3
import time
from contextlib import closing

from sqlite_to_s3.utils.errors import RestoreError, SnapshotError, create_error_suggestions

logger = logging.getLogger(__name__)

SQLITE_HEADER = b"SQLite format 3\x00"

# Result codes of sqlite3_backup_step that CPython sleeps on and retries
SQLITE_BUSY = 5
SQLITE_LOCKED = 6


class SnapshotGateway:
    """Copies databases through SQLite's online backup API.

    The online backup API reads a consistent snapshot while other processes
    keep using the database. A copy that stays locked out for longer than
    the busy timeout fails instead of waiting for the lock.
    """

    def __init__(self, timeout_ms: int = 10000):
        """
        Initialize snapshot gateway.

        Args:
            timeout_ms: Busy timeout for both connections and for the whole
                copy, in milliseconds
        """
        self.timeout_ms = timeout_ms
        self.timeout_seconds = timeout_ms / 1000.0

    def _connect(self, path: str) -> sqlite3.Connection:
        return sqlite3.connect(path, timeout=self.timeout_seconds)

    def _copy(self, source_path: str, destination_path: str) -> None:
        """Run the online backup, giving up once it has been locked out too long."""
        deadline = time.monotonic() + self.timeout_seconds

        def progress(status, remaining, total):
            if status in (SQLITE_BUSY, SQLITE_LOCKED) and time.monotonic() >= deadline:
                raise sqlite3.OperationalError(f"database is locked (gave up after {self.timeout_ms} ms)")

        with closing(self._connect(source_path)) as source, closing(self._connect(destination_path)) as target:
            source.backup(target, progress=progress)

    def backup(self, database_path: str, destination_path: str) -> None:
        """
        Copy the live database into ``destination_path``.

        Raises:
            SnapshotError: If the database is missing, stays locked past the
                busy timeout or the copy fails
        """
        if not os.path.isfile(database_path):
            raise SnapshotError(
                f"Failed to backup {database_path} to {destination_path}",
                details="database file does not exist",
            )

        logger.info("Backing up %s to %s", database_path, destination_path)
        try:
            self._copy(database_path, destination_path)
        except sqlite3.Error as e:
            raise SnapshotError(
                f"Failed to backup {database_path} to {destination_path}",
                details=str(e),
                suggestions=create_error_suggestions("database_busy"),
            ) from e

    def restore(self, source_path: str, database_path: str) -> None:
        """
        Materialize ``source_path`` into the database at ``database_path``.

        Raises:
            RestoreError: If the source is unreadable, the target stays
                locked past the busy timeout or the copy fails
        """
        if not self.is_database_file(source_path):
            # sqlite would treat an empty or missing source as an empty database
            raise RestoreError("Restore failed", details=f"{source_path} is not a SQLite database")

        logger.info("Restoring %s from %s", database_path, source_path)
        try:
            self._copy(source_path, database_path)
        except sqlite3.Error as e:
            raise RestoreError("Restore failed", details=str(e)) from e

    @staticmethod
    def is_database_file(path: str) -> bool:
        """Check for the SQLite file header."""
        try:
            with open(path, "rb") as f:
                return f.read(len(SQLITE_HEADER)) == SQLITE_HEADER
        except OSError:
            return False
