"""Vault data type definitions."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from common.constants import DEFAULT_PAGE_SIZE

ROOT_FOLDER = "root"

PERMISSION_VIEW = "view"
PERMISSION_EDIT = "edit"
SHARE_PERMISSIONS = (PERMISSION_VIEW, PERMISSION_EDIT)


@dataclass(frozen=True)
class FileVersion:
    """
    One stored revision of a file's content.
    """
    version: int
    blob_key: str
    size: int
    encryption_iv: str
    checksum: str
    created_at: datetime
    created_by: str


@dataclass(frozen=True)
class ShareLink:
    """
    Bearer-token grant to a single file.
    """
    token: str
    file_id: str
    created_by: str
    permission: str
    expires_at: Optional[datetime]
    password_hash: Optional[str]
    emails: List[str]
    created_at: datetime

    @property
    def has_password(self) -> bool:
        return self.password_hash is not None


@dataclass
class FileRecord:
    """
    Complete state of a stored file.

    blob_key, size, encryption_iv and checksum always mirror the latest entry
    in versions.
    """
    file_id: str
    owner_id: str
    name: str
    original_name: str
    mime_type: str
    size: int
    blob_key: str
    encryption_iv: str
    checksum: str
    created_at: datetime
    updated_at: datetime
    folder_id: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    versions: List[FileVersion] = field(default_factory=list)
    shared_with: List[str] = field(default_factory=list)
    share_links: List[ShareLink] = field(default_factory=list)
    downloads: int = 0
    last_accessed_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None
    deleted_by: Optional[str] = None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @property
    def current_version(self) -> Optional[FileVersion]:
        return self.versions[-1] if self.versions else None

    def get_version(self, version: int) -> Optional[FileVersion]:
        for entry in self.versions:
            if entry.version == version:
                return entry
        return None

    def can_read(self, user_id: str) -> bool:
        return self.owner_id == user_id or user_id in self.shared_with


@dataclass(frozen=True)
class AuthenticatedUser:
    """
    Verified identity attached to a request.
    """
    user_id: str
    email: str
    first_name: str
    last_name: str
    storage_quota: Optional[int] = None


@dataclass(frozen=True)
class ListFilter:
    """
    Narrowing, ordering and pagination options for file listings.

    folder_id: None applies no folder filter, ROOT_FOLDER selects files
    without a folder, any other value selects that folder.
    """
    folder_id: Optional[str] = None
    search: Optional[str] = None
    mime_type: Optional[str] = None
    sort_by: str = "created_at"
    order: str = "desc"
    page: int = 1
    limit: int = DEFAULT_PAGE_SIZE


@dataclass(frozen=True)
class ListResult:
    files: List[FileRecord]
    total: int
    total_pages: int
    current_page: int


@dataclass(frozen=True)
class StorageUsage:
    total_size: int
    total_files: int
    quota: int
    by_type: List[Dict[str, object]]


@dataclass(frozen=True)
class CreatedShareLink:
    token: str
    share_url: str


@dataclass(frozen=True)
class ShareAccess:
    """
    Result of a successful share-link validation.
    """
    file: FileRecord
    permission: str
    link: ShareLink

    def permits(self, email: Optional[str]) -> bool:
        """
        Apply the link's recipient restriction to a visitor's email.

        An empty recipient list admits anyone holding the token.
        """
        if not self.link.emails:
            return True
        if not email:
            return False
        allowed = {address.strip().lower() for address in self.link.emails}
        return email.strip().lower() in allowed
