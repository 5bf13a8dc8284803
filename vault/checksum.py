"""Content checksums recorded at upload and checked again on download."""

import hashlib
import hmac


def compute_checksum(data: bytes) -> str:
    """
    SHA-256 of a file's plaintext, hex encoded.
    """
    return hashlib.sha256(data).hexdigest()


def verify_checksum(data: bytes, expected: str) -> bool:
    """
    Check decrypted content against the checksum stored with its version.

    Args:
        data: Plaintext recovered from the object store
        expected: Hex checksum from the version record (any case)

    Returns:
        True if the content is unchanged
    """
    return hmac.compare_digest(compute_checksum(data), expected.strip().lower())
