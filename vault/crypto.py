"""Envelope encryption of file payloads with AES-256-GCM."""

import secrets
from dataclasses import dataclass

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from common.constants import ENCRYPTION_IV_BYTES, ENCRYPTION_KEY_BYTES
from vault.exceptions import ConfigurationError, IntegrityOrKeyError


@dataclass(frozen=True)
class EncryptedPayload:
    """
    Ciphertext together with the hex-encoded IV needed to decrypt it.
    """
    iv: str
    ciphertext: bytes


def load_encryption_key(value: str) -> bytes:
    """
    Parse the process-wide encryption key from its hex encoding.

    Args:
        value: 64 hex characters (32 bytes)

    Returns:
        Raw key bytes

    Raises:
        ConfigurationError: If the key is missing, not hex or the wrong length
    """
    if not value:
        raise ConfigurationError("Encryption key is not configured (set VAULT_ENCRYPTION_KEY)")

    try:
        key = bytes.fromhex(value.strip())
    except ValueError:
        raise ConfigurationError("Encryption key must be hex-encoded")

    if len(key) != ENCRYPTION_KEY_BYTES:
        raise ConfigurationError(
            f"Encryption key must be {ENCRYPTION_KEY_BYTES} bytes "
            f"({ENCRYPTION_KEY_BYTES * 2} hex characters), got {len(key)} bytes"
        )

    return key


def generate_encryption_key() -> str:
    """
    Generate a new random key in the hex form accepted by load_encryption_key.
    """
    return secrets.token_hex(ENCRYPTION_KEY_BYTES)


class CryptoEnvelope:
    """
    Symmetric encryption of whole file payloads.

    Every call to encrypt draws a fresh random IV. The IV is not secret and is
    stored next to the ciphertext; GCM's authentication tag travels at the end
    of the ciphertext, so a wrong key, wrong IV or any modified byte makes
    decrypt fail instead of returning altered plaintext.
    """

    def __init__(self, key: bytes):
        if len(key) != ENCRYPTION_KEY_BYTES:
            raise ConfigurationError(f"Encryption key must be {ENCRYPTION_KEY_BYTES} bytes")
        self._aead = AESGCM(key)

    def encrypt(self, plaintext: bytes) -> EncryptedPayload:
        iv = secrets.token_bytes(ENCRYPTION_IV_BYTES)
        ciphertext = self._aead.encrypt(iv, plaintext, None)
        return EncryptedPayload(iv=iv.hex(), ciphertext=ciphertext)

    def decrypt(self, ciphertext: bytes, iv: str) -> bytes:
        """
        Decrypt ciphertext produced by encrypt.

        Raises:
            IntegrityOrKeyError: If the IV is malformed or authentication fails
        """
        try:
            iv_bytes = bytes.fromhex(iv)
        except (ValueError, TypeError):
            raise IntegrityOrKeyError("Stored encryption IV is malformed")

        if len(iv_bytes) != ENCRYPTION_IV_BYTES:
            raise IntegrityOrKeyError("Stored encryption IV has the wrong length")

        try:
            return self._aead.decrypt(iv_bytes, ciphertext, None)
        except (InvalidTag, ValueError):
            raise IntegrityOrKeyError("Ciphertext failed authentication (wrong key, wrong IV or corrupted data)")
