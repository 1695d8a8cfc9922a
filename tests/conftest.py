"""Pytest configuration and shared fixtures."""

import logging
import os
import shutil
import sqlite3
import tempfile
from contextlib import closing

import pytest
from botocore.exceptions import ClientError

from sqlite_to_s3.config.manager import BackupConfig
from sqlite_to_s3.config.schemas import ENVIRONMENT_KEYS
from sqlite_to_s3.utils.logging import HANDLER_MARKER


@pytest.fixture
def temp_directory():
    """Create a temporary directory for testing."""
    temp_dir = tempfile.mkdtemp()
    yield temp_dir
    # Cleanup
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop console handlers installed by CLI runs once their stream is gone."""
    yield
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        if getattr(handler, HANDLER_MARKER, False):
            root_logger.removeHandler(handler)
            handler.close()


@pytest.fixture
def clean_environment(monkeypatch):
    """Remove every sqlite-to-s3 variable from the environment."""
    for name in ENVIRONMENT_KEYS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def create_database(path, rows=("alpha", "beta", "gamma")):
    """Create a small SQLite database with one table."""
    with closing(sqlite3.connect(path)) as conn:
        conn.execute("CREATE TABLE IF NOT EXISTS items (id INTEGER PRIMARY KEY, name TEXT)")
        conn.executemany("INSERT INTO items (name) VALUES (?)", [(row,) for row in rows])
        conn.commit()
    return path


def read_rows(path):
    """Return the rows of the items table."""
    with closing(sqlite3.connect(path)) as conn:
        return conn.execute("SELECT id, name FROM items ORDER BY id").fetchall()


@pytest.fixture
def sample_database(temp_directory):
    """Live database with three rows."""
    return create_database(os.path.join(temp_directory, "app.db"))


@pytest.fixture
def make_config(temp_directory):
    """Factory for settings pointing at the temporary directory."""

    def factory(**overrides):
        database_path = overrides.pop("database_path", os.path.join(temp_directory, "app.db"))
        values = {
            "bucket": "test-bucket",
            "database_path": database_path,
            "backup_path": f"{database_path}.bak",
            "key_prefix": "backups/",
        }
        values.update(overrides)
        return BackupConfig(**values)

    return factory


class LocalS3Client:
    """Stand-in for a boto3 S3 client that keeps objects in a directory."""

    def __init__(self, root):
        self.root = root
        self.uploads = []
        self.downloads = []

    def _object_path(self, bucket, key):
        return os.path.join(self.root, bucket, key)

    def upload_file(self, filename, bucket, key):
        path = self._object_path(bucket, key)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        shutil.copyfile(filename, path)
        self.uploads.append(key)

    def download_file(self, bucket, key, filename):
        path = self._object_path(bucket, key)
        if not os.path.exists(path):
            raise ClientError({"Error": {"Code": "404", "Message": "Not Found"}}, "HeadObject")
        shutil.copyfile(path, filename)
        self.downloads.append(key)

    def read_object(self, bucket, key):
        with open(self._object_path(bucket, key), "rb") as f:
            return f.read()

    def put_object(self, bucket, key, data):
        path = self._object_path(bucket, key)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "wb") as f:
            f.write(data)


@pytest.fixture
def s3_client(temp_directory):
    """Local object store rooted in the temporary directory."""
    return LocalS3Client(os.path.join(temp_directory, "s3"))
