"""sqlite-to-s3: encrypted SQLite backups to S3-compatible object storage."""

__version__ = "1.0.0"
__author__ = "sqlite-to-s3 contributors"
