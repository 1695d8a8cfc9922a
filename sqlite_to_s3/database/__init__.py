"""Database snapshot access for sqlite-to-s3."""

from .snapshot import SQLITE_HEADER, SnapshotGateway

__all__ = ["SQLITE_HEADER", "SnapshotGateway"]
