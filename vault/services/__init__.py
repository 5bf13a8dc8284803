"""Service layer for business logic."""

from vault.services.auth_service import AuthService
from vault.services.file_service import FileService
from vault.services.share_service import ShareService

__all__ = [
    "AuthService",
    "FileService",
    "ShareService",
]
