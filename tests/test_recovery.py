"""Tests for the restore cycle."""

import os
from datetime import datetime
from unittest.mock import MagicMock

import pytest
from conftest import create_database, read_rows

from sqlite_to_s3.backup import BackupManager, BackupStorage, RecoveryManager
from sqlite_to_s3.backup.recovery import validate_timestamp
from sqlite_to_s3.database import SnapshotGateway
from sqlite_to_s3.utils.errors import (
    DecryptionError,
    DownloadError,
    InvalidArgumentError,
    MissingKeyError,
    RestoreError,
)

TIMESTAMP = "20240102030405"


def read_bytes(path):
    with open(path, "rb") as f:
        return f.read()


class TestValidateTimestamp:
    """Test restore timestamp checks."""

    def test_valid(self):
        """Test a well-formed timestamp."""
        validate_timestamp(TIMESTAMP)

    @pytest.mark.parametrize("timestamp", ["", None])
    def test_missing(self, timestamp):
        """Test that a missing timestamp is rejected."""
        with pytest.raises(InvalidArgumentError) as exc_info:
            validate_timestamp(timestamp)

        assert "TIMESTAMP" in exc_info.value.message

    @pytest.mark.parametrize("timestamp", ["2024", "2024010203040x", "../../etc/passwd", "202401020304050"])
    def test_malformed(self, timestamp):
        """Test that malformed timestamps are rejected."""
        with pytest.raises(InvalidArgumentError):
            validate_timestamp(timestamp)


class TestRecoveryManager:
    """Test download, decryption and the swap into the live path."""

    @pytest.fixture(autouse=True)
    def setup(self, sample_database, make_config, s3_client):
        """Setup test environment."""
        self.database = sample_database
        self.make_config = make_config
        self.s3 = s3_client
        self.original_rows = read_rows(sample_database)

    def _storage(self, config):
        return BackupStorage(config.bucket, key_prefix=config.key_prefix, client=self.s3)

    def _take_backup(self, config):
        manager = BackupManager(
            config,
            storage=self._storage(config),
            notifier=MagicMock(),
            clock=lambda: datetime(2024, 1, 2, 3, 4, 5),
        )
        return manager.backup()

    def _recovery(self, config, snapshot=None):
        return RecoveryManager(
            config,
            storage=self._storage(config),
            snapshot=snapshot or SnapshotGateway(timeout_ms=1000),
        )

    def _change_live_database(self):
        create_database(self.database, rows=("added after backup",))

    def test_plain_round_trip(self):
        """Test restoring an unencrypted backup."""
        config = self.make_config()
        self._take_backup(config)
        self._change_live_database()

        result = self._recovery(config).restore(TIMESTAMP)

        assert result["success"] is True
        assert result["encrypted"] is False
        assert read_rows(self.database) == self.original_rows
        assert not os.path.exists(config.previous_database_path)
        assert not os.path.exists(config.backup_path)

    def test_encrypted_round_trip(self):
        """Test restoring an encrypted backup."""
        config = self.make_config(encryption_key="s3cret")
        self._take_backup(config)
        self._change_live_database()

        result = self._recovery(config).restore(TIMESTAMP)

        assert result["encrypted"] is True
        assert read_rows(self.database) == self.original_rows
        assert not os.path.exists(config.decrypted_backup_path)
        assert not os.path.exists(config.previous_database_path)

    def test_unencrypted_backup_restored_with_key_set(self):
        """Test that plain backups restore even when a key is configured."""
        self._take_backup(self.make_config())
        self._change_live_database()

        self._recovery(self.make_config(encryption_key="s3cret")).restore(TIMESTAMP)

        assert read_rows(self.database) == self.original_rows

    def test_empty_timestamp(self):
        """Test that no download happens without a timestamp."""
        config = self.make_config()
        before = read_bytes(self.database)

        with pytest.raises(InvalidArgumentError):
            self._recovery(config).restore("")

        assert self.s3.downloads == []
        assert read_bytes(self.database) == before
        assert not os.path.exists(config.backup_path)

    def test_missing_object(self):
        """Test restoring a timestamp that was never backed up."""
        config = self.make_config()
        before = read_bytes(self.database)

        with pytest.raises(DownloadError):
            self._recovery(config).restore("19990101000000")

        assert read_bytes(self.database) == before

    def test_missing_key(self):
        """Test that an encrypted backup needs ENCRYPTION_KEY."""
        self._take_backup(self.make_config(encryption_key="s3cret"))
        config = self.make_config()
        before = read_bytes(self.database)

        with pytest.raises(MissingKeyError):
            self._recovery(config).restore(TIMESTAMP)

        assert read_bytes(self.database) == before
        assert not os.path.exists(config.previous_database_path)

    def test_wrong_key(self):
        """Test that a wrong key leaves the live database untouched."""
        self._take_backup(self.make_config(encryption_key="s3cret"))
        config = self.make_config(encryption_key="not the key")
        before = read_bytes(self.database)

        with pytest.raises(DecryptionError):
            self._recovery(config).restore(TIMESTAMP)

        assert read_bytes(self.database) == before
        assert not os.path.exists(config.decrypted_backup_path)
        assert not os.path.exists(config.previous_database_path)

    def test_failed_restore_rolls_back(self):
        """Test that the previous database is put back byte for byte."""
        config = self.make_config()
        self._take_backup(config)
        before = read_bytes(self.database)

        def broken_restore(source, database_path):
            with open(database_path, "wb") as f:
                f.write(b"half written")
            raise RestoreError("Restore failed", details="disk full")

        snapshot = MagicMock()
        snapshot.restore.side_effect = broken_restore

        with pytest.raises(RestoreError) as exc_info:
            self._recovery(config, snapshot=snapshot).restore(TIMESTAMP)

        assert exc_info.value.unresolved is False
        assert read_bytes(self.database) == before
        assert not os.path.exists(config.previous_database_path)

    def test_unexpected_error_rolls_back(self):
        """Test that any failure while materializing puts the previous database back."""
        config = self.make_config()
        self._take_backup(config)
        before = read_bytes(self.database)

        def broken_restore(source, database_path):
            with open(database_path, "wb") as f:
                f.write(b"half written")
            raise OSError("disk I/O error")

        snapshot = MagicMock()
        snapshot.restore.side_effect = broken_restore

        with pytest.raises(RestoreError) as exc_info:
            self._recovery(config, snapshot=snapshot).restore(TIMESTAMP)

        assert "disk I/O error" in exc_info.value.details
        assert isinstance(exc_info.value.__cause__, OSError)
        assert read_bytes(self.database) == before
        assert not os.path.exists(config.previous_database_path)

    def test_failed_restore_without_previous_database(self):
        """Test that a failed first restore leaves no partial database."""
        config = self.make_config()
        self._take_backup(config)
        os.remove(self.database)

        def broken_restore(source, database_path):
            with open(database_path, "wb") as f:
                f.write(b"half written")
            raise RestoreError("Restore failed")

        snapshot = MagicMock()
        snapshot.restore.side_effect = broken_restore

        with pytest.raises(RestoreError):
            self._recovery(config, snapshot=snapshot).restore(TIMESTAMP)

        assert not os.path.exists(self.database)

    def test_failed_rollback_is_unresolved(self):
        """Test the error when the previous database cannot be put back."""
        config = self.make_config()
        self._take_backup(config)

        def broken_restore(source, database_path):
            # The moved-aside database disappears, so the rollback rename fails
            os.remove(config.previous_database_path)
            raise RestoreError("Restore failed", details="disk full")

        snapshot = MagicMock()
        snapshot.restore.side_effect = broken_restore

        with pytest.raises(RestoreError) as exc_info:
            self._recovery(config, snapshot=snapshot).restore(TIMESTAMP)

        assert exc_info.value.unresolved is True
        assert "manual intervention required" in exc_info.value.message
        assert any(config.database_path in s for s in exc_info.value.suggestions)

    def test_restore_into_missing_database(self):
        """Test restoring when the live database does not exist."""
        config = self.make_config()
        self._take_backup(config)
        os.remove(self.database)

        self._recovery(config).restore(TIMESTAMP)

        assert read_rows(self.database) == self.original_rows
        assert not os.path.exists(config.previous_database_path)

    def test_stale_working_file_replaced(self):
        """Test that a leftover working file is replaced by the download."""
        config = self.make_config()
        self._take_backup(config)
        with open(config.backup_path, "wb") as f:
            f.write(b"stale")
        self._change_live_database()

        self._recovery(config).restore(TIMESTAMP)

        assert read_rows(self.database) == self.original_rows
