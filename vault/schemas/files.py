"""Pydantic schemas for file operation endpoints."""

from typing import List, Optional

from pydantic import BaseModel


class FileVersionResponse(BaseModel):
    """One entry of a file's version history."""
    version: int
    size: int
    checksum: str
    created_at: str
    created_by: str


class ShareLinkSummary(BaseModel):
    """Share link as shown to the file's owner. The password hash never leaves the service."""
    token: str
    permission: str
    expires_at: Optional[str] = None
    has_password: bool
    emails: List[str]
    created_at: str


class FileMetadataResponse(BaseModel):
    """Response model for file metadata."""
    file_id: str
    name: str
    original_name: str
    mime_type: str
    size: int
    checksum: str
    owner_id: str
    folder_id: Optional[str] = None
    tags: List[str]
    version: int
    versions: List[FileVersionResponse]
    shared_with: List[str]
    share_links: List[ShareLinkSummary]
    downloads: int
    last_accessed_at: Optional[str] = None
    created_at: str
    updated_at: str
    deleted_at: Optional[str] = None


class ListFilesResponse(BaseModel):
    """Response model for file listing."""
    files: List[FileMetadataResponse]
    total: int
    total_pages: int
    current_page: int


class MimeTypeUsage(BaseModel):
    mime_type: str
    size: int
    count: int


class StorageUsageResponse(BaseModel):
    """Response model for storage usage."""
    total_size: int
    total_files: int
    quota: int
    by_type: List[MimeTypeUsage]


class DeleteFileResponse(BaseModel):
    """Response model for moving a file to the trash."""
    file_id: str
    deleted_at: str


class ShareWithUserRequest(BaseModel):
    """Request model for granting a user direct access to a file."""
    user_id: str
