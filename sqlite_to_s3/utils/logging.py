"""Logging configuration for sqlite-to-s3."""

import logging
import sys
from typing import Optional

NOISY_LOGGERS = ("boto3", "botocore", "s3transfer", "urllib3")
HANDLER_MARKER = "_sqlite_to_s3_handler"


def setup_logging(verbose: bool = False, log_file: Optional[str] = None) -> None:
    """
    Setup logging configuration for the CLI.

    Args:
        verbose: Enable verbose/debug logging
        log_file: Optional log file path
    """
    level = logging.DEBUG if verbose else logging.INFO

    formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Replace handlers from an earlier call in the same process
    for handler in list(root_logger.handlers):
        if getattr(handler, HANDLER_MARKER, False):
            root_logger.removeHandler(handler)
            handler.close()

    setattr(console_handler, HANDLER_MARKER, True)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        setattr(file_handler, HANDLER_MARKER, True)
        root_logger.addHandler(file_handler)

    # Reduce noise from the AWS SDK
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
