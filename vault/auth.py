"""Authentication and security utilities."""

import uuid

import bcrypt
from fastapi import Header

from vault.config import API_KEY_PREFIX
from vault.exceptions import InvalidAPIKeyError, InvalidQueryError
from vault.types import AuthenticatedUser

# bcrypt only reads the first 72 bytes of a password.
MAX_PASSWORD_BYTES = 72


def hash_password(password: str) -> str:
    """
    Hash a password using bcrypt.

    Args:
        password: Plain text password to hash

    Returns:
        Bcrypt hash of the password

    Raises:
        InvalidQueryError: If the password is longer than MAX_PASSWORD_BYTES in UTF-8
    """
    password_bytes = password.encode('utf-8')
    if len(password_bytes) > MAX_PASSWORD_BYTES:
        raise InvalidQueryError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
    salt = bcrypt.gensalt()
    hashed = bcrypt.hashpw(password_bytes, salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify a password against a bcrypt hash.

    Args:
        password: Plain text password to verify
        password_hash: Bcrypt hash to verify against

    Returns:
        True if password matches hash, False otherwise
    """
    password_bytes = password.encode('utf-8')
    if len(password_bytes) > MAX_PASSWORD_BYTES:
        return False
    hash_bytes = password_hash.encode('utf-8')
    try:
        return bcrypt.checkpw(password_bytes, hash_bytes)
    except ValueError:
        return False


def generate_api_key() -> str:
    """
    Generate a new API Key with the configured prefix.

    Returns:
        API Key string in format: {prefix}{uuid4}
    """
    return f"{API_KEY_PREFIX}{uuid.uuid4()}"


async def get_current_user(authorization: str = Header(...)) -> AuthenticatedUser:
    """
    FastAPI dependency to validate API Key and resolve the caller's identity.

    Args:
        authorization: Authorization header value (format: "Bearer <api_key>")

    Returns:
        AuthenticatedUser for the key's owner

    Raises:
        InvalidAPIKeyError: If the header is malformed or the key is unknown
    """
    if not authorization.startswith("Bearer "):
        raise InvalidAPIKeyError("Invalid authorization header format")

    api_key = authorization[len("Bearer "):].strip()

    from vault.services.auth_service import AuthService

    user = AuthService().validate_api_key(api_key)
    if user is None:
        raise InvalidAPIKeyError("Invalid or expired API key")
    return user
