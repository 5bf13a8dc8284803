"""Custom exception classes for the vault service."""


class VaultException(Exception):
    """
    Base exception class for all vault errors.
    """
    pass


class ConfigurationError(VaultException):
    """
    Raised at startup when required configuration is missing or malformed.
    """
    pass


class UserAlreadyExistsError(VaultException):
    """
    Raised when attempting to register an email that already exists.
    """
    pass


class InvalidCredentialsError(VaultException):
    """
    Raised when login credentials are invalid.
    """
    pass


class InvalidAPIKeyError(VaultException):
    """
    Raised when an API Key is invalid or missing.
    """
    pass


class NotFoundError(VaultException):
    """
    Raised when a requested file, user, blob or share link does not exist.
    """
    pass


class AccessDeniedError(VaultException):
    """
    Raised when an authenticated user is not allowed to act on a file.
    """
    pass


class QuotaExceededError(VaultException):
    """
    Raised when a write would push a user's active storage past their quota.
    """
    pass


class IntegrityOrKeyError(VaultException):
    """
    Raised when stored content cannot be decrypted or fails verification:
    wrong key, wrong IV, truncated or corrupted ciphertext.
    """
    pass


class StorageError(VaultException):
    """
    Raised when the object store rejects or fails a put/get.
    """
    pass


class ExpiredError(VaultException):
    """
    Raised when a share link is used after its expiry.
    """
    pass


class WrongPasswordError(VaultException):
    """
    Raised when a password-protected share link is used with a wrong or missing password.
    """
    pass


class InvalidQueryError(VaultException):
    """
    Raised when listing, sharing or grant parameters are invalid.
    """
    pass
