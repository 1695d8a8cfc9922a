"""File operations utilities for sqlite-to-s3."""

import logging
import os
import stat

logger = logging.getLogger(__name__)


class FileManager:
    """Manages the local working files used by backup and restore runs."""

    def __init__(self, verbose: bool = False):
        """Initialize file manager."""
        self.verbose = verbose

    def remove_file(self, path: str) -> bool:
        """
        Remove a file if it exists.

        Args:
            path: File to remove

        Returns:
            bool: True if a file was removed, False if there was nothing to remove
        """
        try:
            os.remove(path)
        except FileNotFoundError:
            return False

        logger.debug("Removed %s", path)
        return True

    def remove_files(self, *paths: str) -> None:
        """Remove every existing file in ``paths``."""
        for path in paths:
            self.remove_file(path)

    def move_aside(self, path: str, aside_path: str) -> bool:
        """
        Rename ``path`` to ``aside_path`` if ``path`` exists.

        Both paths are expected to live in the same directory so the rename
        is atomic.

        Returns:
            bool: True if the file was moved
        """
        if not os.path.exists(path):
            return False

        os.replace(path, aside_path)
        logger.debug("Moved %s to %s", path, aside_path)
        return True

    def secure_file_permissions(self, file_path: str) -> None:
        """
        Restrict a working file to owner read/write (600).

        Args:
            file_path: Path to file
        """
        try:
            os.chmod(file_path, stat.S_IRUSR | stat.S_IWUSR)
        except OSError as e:
            if self.verbose:
                logger.warning("Could not set permissions on %s: %s", file_path, e)
