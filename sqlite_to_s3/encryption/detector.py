"""Detection of encrypted backup files by their header."""

# openssl enc -salt writes this header before the salt
OPENSSL_SALTED_MAGIC = b"Salted__"


def is_encrypted(path: str) -> bool:
    """
    Check whether a file starts with the OpenSSL salted header.

    The check is structural only; it says nothing about whether decryption
    would succeed. Missing, unreadable or short files are reported as plain.

    Args:
        path: File to inspect

    Returns:
        bool: True if the first 8 bytes are the salted header magic
    """
    try:
        with open(path, "rb") as f:
            header = f.read(len(OPENSSL_SALTED_MAGIC))
    except OSError:
        return False

    return header == OPENSSL_SALTED_MAGIC
