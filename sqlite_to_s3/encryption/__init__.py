"""Backup encryption for sqlite-to-s3."""

from .cipher import OpenSSLCipher
from .detector import OPENSSL_SALTED_MAGIC, is_encrypted

__all__ = ["OpenSSLCipher", "OPENSSL_SALTED_MAGIC", "is_encrypted"]
