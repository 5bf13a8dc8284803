"""Repository layer for data access."""

from vault.repositories.user_repository import UserRepository
from vault.repositories.file_repository import FileRepository
from vault.repositories.share_link_repository import ShareLinkRepository

__all__ = [
    "UserRepository",
    "FileRepository",
    "ShareLinkRepository",
]
