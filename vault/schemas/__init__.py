"""Pydantic schemas for API requests and responses."""

from vault.schemas.auth import (
    RegisterRequest,
    RegisterResponse,
    LoginRequest,
    LoginResponse
)
from vault.schemas.files import (
    FileVersionResponse,
    ShareLinkSummary,
    FileMetadataResponse,
    ListFilesResponse,
    MimeTypeUsage,
    StorageUsageResponse,
    DeleteFileResponse,
    ShareWithUserRequest
)
from vault.schemas.shares import (
    CreateShareLinkRequest,
    CreateShareLinkResponse,
    AccessShareRequest,
    SharedFileResponse
)
from vault.schemas.common import ERROR_RESPONSES, ErrorResponse

__all__ = [
    "RegisterRequest",
    "RegisterResponse",
    "LoginRequest",
    "LoginResponse",
    "FileVersionResponse",
    "ShareLinkSummary",
    "FileMetadataResponse",
    "ListFilesResponse",
    "MimeTypeUsage",
    "StorageUsageResponse",
    "DeleteFileResponse",
    "ShareWithUserRequest",
    "CreateShareLinkRequest",
    "CreateShareLinkResponse",
    "AccessShareRequest",
    "SharedFileResponse",
    "ErrorResponse",
    "ERROR_RESPONSES"
]
