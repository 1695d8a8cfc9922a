"""Backup object storage on S3-compatible services."""

import logging
import re
from typing import Any, List, Optional

import boto3
from boto3.exceptions import Boto3Error
from botocore.exceptions import BotoCoreError, ClientError

from sqlite_to_s3.config.manager import normalize_prefix
from sqlite_to_s3.utils.errors import DownloadError, UploadError, create_error_suggestions
from sqlite_to_s3.utils.files import FileManager

logger = logging.getLogger(__name__)

OBJECT_SUFFIX = ".bak"
TIMESTAMP_PATTERN = re.compile(r"^\d{14}$")


class BackupStorage:
    """Uploads and downloads backup objects under ``<bucket>/<prefix>``."""

    def __init__(
        self,
        bucket: str,
        key_prefix: str = "",
        endpoint_url: Optional[str] = None,
        client: Optional[Any] = None,
        verbose: bool = False,
    ):
        """
        Initialize backup storage.

        Args:
            bucket: S3 bucket name
            key_prefix: Object key namespace (normalized to end with ``/``)
            endpoint_url: Optional S3-compatible endpoint
            client: Preconfigured S3 client, created lazily when omitted
            verbose: Enable verbose output
        """
        self.bucket = bucket
        self.key_prefix = normalize_prefix(key_prefix)
        self.endpoint_url = endpoint_url
        self.verbose = verbose
        self.files = FileManager(verbose=verbose)
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = boto3.client("s3", endpoint_url=self.endpoint_url)
        return self._client

    def object_key(self, timestamp: str) -> str:
        """Return the object key for a backup taken at ``timestamp``."""
        return f"{self.key_prefix}{timestamp}{OBJECT_SUFFIX}"

    def object_url(self, key: str) -> str:
        return f"s3://{self.bucket}/{key}"

    def upload(self, local_path: str, key: str) -> None:
        """
        Upload ``local_path`` to ``key``.

        Raises:
            UploadError: If the upload fails
        """
        logger.info("Sending file to S3")
        try:
            self.client.upload_file(local_path, self.bucket, key)
        except (Boto3Error, BotoCoreError, ClientError, OSError) as e:
            raise UploadError(
                "Backup file failed to upload",
                details=f"{self.object_url(key)}: {e}",
                suggestions=create_error_suggestions("storage_unreachable"),
            ) from e

        logger.info("Backup file uploaded to %s", self.object_url(key))

    def download(self, key: str, local_path: str) -> None:
        """
        Download ``key`` to ``local_path``.

        Raises:
            DownloadError: If the download fails; a partial file is removed
        """
        logger.info("Downloading backup from %s", self.object_url(key))
        try:
            self.client.download_file(self.bucket, key, local_path)
        except (Boto3Error, BotoCoreError, ClientError, OSError) as e:
            self.files.remove_file(local_path)
            suggestions = create_error_suggestions("storage_unreachable")
            if isinstance(e, ClientError) and e.response.get("Error", {}).get("Code") in ("404", "NoSuchKey"):
                suggestions = create_error_suggestions("object_not_found")
            raise DownloadError(
                f"Failed to download backup '{self.object_url(key)}'",
                details=str(e),
                suggestions=suggestions,
            ) from e

        logger.info("Downloaded")

    def list_backups(self) -> List[str]:
        """
        List the timestamps of the backups stored under the prefix.

        Returns:
            List[str]: Timestamps, newest first

        Raises:
            DownloadError: If the bucket cannot be listed
        """
        timestamps = []
        try:
            paginator = self.client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self.bucket, Prefix=self.key_prefix):
                for obj in page.get("Contents", []):
                    name = obj["Key"][len(self.key_prefix):]
                    if not name.endswith(OBJECT_SUFFIX):
                        continue
                    timestamp = name[: -len(OBJECT_SUFFIX)]
                    if TIMESTAMP_PATTERN.match(timestamp):
                        timestamps.append(timestamp)
        except (Boto3Error, BotoCoreError, ClientError) as e:
            raise DownloadError(
                f"Failed to list backups in {self.object_url(self.key_prefix)}",
                details=str(e),
                suggestions=create_error_suggestions("storage_unreachable"),
            ) from e

        return sorted(timestamps, reverse=True)
