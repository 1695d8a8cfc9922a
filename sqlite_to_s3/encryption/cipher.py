"""OpenSSL-compatible file encryption for backup snapshots.

Files produced here can be decrypted with::

    openssl enc -d -aes-256-cbc -pbkdf2 -iter 100000 -pass env:ENCRYPTION_KEY

and files produced by the equivalent ``openssl enc`` command can be
decrypted here, so backups taken by either tool restore with the other.
"""

import logging
import os
from typing import Optional, Tuple

from cryptography.hazmat.primitives import hashes, padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from sqlite_to_s3.utils.errors import DecryptionError, EncryptionError, create_error_suggestions
from sqlite_to_s3.utils.files import FileManager

from .detector import OPENSSL_SALTED_MAGIC

logger = logging.getLogger(__name__)

SALT_SIZE = 8
KEY_SIZE = 32
IV_SIZE = 16
KDF_ITERATIONS = 100000
CHUNK_SIZE = 64 * 1024


class OpenSSLCipher:
    """AES-256-CBC with PBKDF2-HMAC-SHA256 key derivation and a salted header."""

    def __init__(self, passphrase: str, iterations: int = KDF_ITERATIONS):
        """
        Initialize cipher.

        Args:
            passphrase: Secret used to derive the key and IV
            iterations: PBKDF2 iteration count
        """
        if not passphrase:
            raise ValueError("passphrase must not be empty")
        self._passphrase = passphrase.encode("utf-8")
        self.iterations = iterations
        self.files = FileManager()

    def _derive(self, salt: bytes) -> Tuple[bytes, bytes]:
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=KEY_SIZE + IV_SIZE,
            salt=salt,
            iterations=self.iterations,
        )
        material = kdf.derive(self._passphrase)
        return material[:KEY_SIZE], material[KEY_SIZE:]

    def encrypt_file(self, source_path: str, destination_path: str, salt: Optional[bytes] = None) -> None:
        """
        Encrypt ``source_path`` into ``destination_path``.

        Args:
            source_path: Plaintext file
            destination_path: Output file (overwritten)
            salt: Fixed salt, random when omitted

        Raises:
            EncryptionError: If encryption fails; partial output is removed
        """
        salt = salt if salt is not None else os.urandom(SALT_SIZE)
        if len(salt) != SALT_SIZE:
            raise ValueError(f"salt must be {SALT_SIZE} bytes")

        try:
            key, iv = self._derive(salt)
            encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
            padder = padding.PKCS7(algorithms.AES.block_size).padder()

            with open(source_path, "rb") as src, open(destination_path, "wb") as dst:
                dst.write(OPENSSL_SALTED_MAGIC + salt)
                for chunk in iter(lambda: src.read(CHUNK_SIZE), b""):
                    dst.write(encryptor.update(padder.update(chunk)))
                dst.write(encryptor.update(padder.finalize()))
                dst.write(encryptor.finalize())
        except (OSError, ValueError) as e:
            self.files.remove_file(destination_path)
            raise EncryptionError(f"Encryption of {source_path} failed", details=str(e)) from e

        logger.debug("Encrypted %s to %s", source_path, destination_path)

    def decrypt_file(
        self,
        source_path: str,
        destination_path: str,
        expected_prefix: Optional[bytes] = None,
    ) -> None:
        """
        Decrypt ``source_path`` into ``destination_path``.

        Args:
            source_path: File in OpenSSL salted format
            destination_path: Output file (overwritten)
            expected_prefix: Bytes the plaintext must start with

        Raises:
            DecryptionError: On a wrong key, corrupt data or an unexpected
                plaintext header; partial output is removed
        """
        try:
            with open(source_path, "rb") as src:
                header = src.read(len(OPENSSL_SALTED_MAGIC) + SALT_SIZE)
                if len(header) != len(OPENSSL_SALTED_MAGIC) + SALT_SIZE or not header.startswith(
                    OPENSSL_SALTED_MAGIC
                ):
                    raise ValueError("file is not in OpenSSL salted format")

                key, iv = self._derive(header[len(OPENSSL_SALTED_MAGIC):])
                decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
                unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()

                with open(destination_path, "wb") as dst:
                    for chunk in iter(lambda: src.read(CHUNK_SIZE), b""):
                        dst.write(unpadder.update(decryptor.update(chunk)))
                    dst.write(unpadder.update(decryptor.finalize()))
                    dst.write(unpadder.finalize())

            if expected_prefix is not None:
                with open(destination_path, "rb") as dst:
                    if dst.read(len(expected_prefix)) != expected_prefix:
                        raise ValueError("decrypted data does not have the expected header")
        except (OSError, ValueError) as e:
            self.files.remove_file(destination_path)
            raise DecryptionError(
                "Decryption failed. Check that ENCRYPTION_KEY is correct.",
                details=str(e),
                suggestions=create_error_suggestions("decryption_failed"),
            ) from e

        logger.debug("Decrypted %s to %s", source_path, destination_path)
