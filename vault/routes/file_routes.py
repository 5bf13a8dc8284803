"""File operation API routes."""

from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Form, Query, Response, UploadFile, status

from common.constants import DEFAULT_PAGE_SIZE
from vault.auth import get_current_user
from vault.schemas.common import ERROR_RESPONSES
from vault.schemas.files import (
    DeleteFileResponse,
    FileMetadataResponse,
    FileVersionResponse,
    ListFilesResponse,
    MimeTypeUsage,
    ShareLinkSummary,
    ShareWithUserRequest,
    StorageUsageResponse,
)
from vault.schemas.shares import CreateShareLinkRequest, CreateShareLinkResponse
from vault.services.file_service import FileService
from vault.services.share_service import ShareService
from vault.types import AuthenticatedUser, FileRecord, ListFilter, ListResult
from vault.utils import parse_tags, to_iso

router = APIRouter(prefix="/files", tags=["Files"], responses=ERROR_RESPONSES)


def file_metadata_response(record: FileRecord, viewer_id: str) -> FileMetadataResponse:
    """
    Render a record for a viewer. Share links are only listed to the owner.
    """
    share_links = []
    if viewer_id == record.owner_id:
        share_links = [
            ShareLinkSummary(
                token=link.token,
                permission=link.permission,
                expires_at=to_iso(link.expires_at),
                has_password=link.has_password,
                emails=link.emails,
                created_at=to_iso(link.created_at),
            )
            for link in record.share_links
        ]

    current = record.current_version
    return FileMetadataResponse(
        file_id=record.file_id,
        name=record.name,
        original_name=record.original_name,
        mime_type=record.mime_type,
        size=record.size,
        checksum=record.checksum,
        owner_id=record.owner_id,
        folder_id=record.folder_id,
        tags=record.tags,
        version=current.version if current else 0,
        versions=[
            FileVersionResponse(
                version=entry.version,
                size=entry.size,
                checksum=entry.checksum,
                created_at=to_iso(entry.created_at),
                created_by=entry.created_by,
            )
            for entry in record.versions
        ],
        shared_with=record.shared_with,
        share_links=share_links,
        downloads=record.downloads,
        last_accessed_at=to_iso(record.last_accessed_at),
        created_at=to_iso(record.created_at),
        updated_at=to_iso(record.updated_at),
        deleted_at=to_iso(record.deleted_at),
    )


def attachment_response(record: FileRecord, data: bytes) -> Response:
    return Response(
        content=data,
        media_type=record.mime_type,
        headers={"Content-Disposition": f"attachment; filename*=UTF-8''{quote(record.name)}"},
    )


def _list_response(result: ListResult, viewer_id: str) -> ListFilesResponse:
    return ListFilesResponse(
        files=[file_metadata_response(record, viewer_id) for record in result.files],
        total=result.total,
        total_pages=result.total_pages,
        current_page=result.current_page,
    )


@router.post("", response_model=FileMetadataResponse, status_code=status.HTTP_201_CREATED)
async def upload_file(
    file: UploadFile = File(...),
    folder_id: Optional[str] = Form(None),
    tags: Optional[str] = Form(None),
    current_user: AuthenticatedUser = Depends(get_current_user)
):
    """
    Upload a file. It is encrypted before it reaches the object store.

    Parameters:
        - file: File to upload (multipart/form-data)
        - folder_id: Optional folder to place the file in
        - tags: Optional comma-separated list of tags (e.g., "tag1,tag2")
        - Authorization header: Bearer <api_key> (required)

    Raises:
        - 400: Storage quota exceeded
        - 401: Invalid or missing API Key
        - 503: Object store unavailable
    """
    file_service = FileService()

    file_content = await file.read()

    record = await file_service.upload(
        user=current_user,
        data=file_content,
        original_name=file.filename or "unnamed",
        mime_type=file.content_type,
        folder_id=folder_id or None,
        tags=parse_tags(tags),
    )

    return file_metadata_response(record, current_user.user_id)


@router.get("", response_model=ListFilesResponse)
async def list_files(
    folder_id: Optional[str] = Query(None, description="Folder id, or 'root' for files outside any folder"),
    search: Optional[str] = Query(None, description="Case-insensitive substring of the file name"),
    mime_type: Optional[str] = Query(None, description="Case-insensitive substring of the MIME type"),
    sort_by: str = Query("created_at"),
    order: str = Query("desc"),
    page: int = Query(1),
    limit: int = Query(DEFAULT_PAGE_SIZE),
    current_user: AuthenticatedUser = Depends(get_current_user)
):
    """
    List the caller's active files.

    Raises:
        - 400: Unknown sort field or order, or invalid page/limit
        - 401: Invalid or missing API Key
    """
    file_service = FileService()

    result = file_service.list_files(
        current_user.user_id,
        ListFilter(
            folder_id=folder_id,
            search=search,
            mime_type=mime_type,
            sort_by=sort_by,
            order=order,
            page=page,
            limit=limit,
        ),
    )
    return _list_response(result, current_user.user_id)


@router.get("/trash", response_model=ListFilesResponse)
async def list_trash(
    page: int = Query(1),
    limit: int = Query(DEFAULT_PAGE_SIZE),
    current_user: AuthenticatedUser = Depends(get_current_user)
):
    """
    List the caller's trashed files, most recently deleted first.
    """
    file_service = FileService()

    result = file_service.list_trash(
        current_user.user_id,
        ListFilter(sort_by="updated_at", order="desc", page=page, limit=limit),
    )
    return _list_response(result, current_user.user_id)


@router.get("/storage/usage", response_model=StorageUsageResponse)
async def storage_usage(current_user: AuthenticatedUser = Depends(get_current_user)):
    """
    Summarize the caller's active storage against their quota.
    """
    file_service = FileService()

    usage = file_service.storage_usage_summary(current_user)
    return StorageUsageResponse(
        total_size=usage.total_size,
        total_files=usage.total_files,
        quota=usage.quota,
        by_type=[MimeTypeUsage(**entry) for entry in usage.by_type],
    )


@router.get("/{file_id}", response_model=FileMetadataResponse)
async def get_file_metadata(
    file_id: str,
    current_user: AuthenticatedUser = Depends(get_current_user)
):
    """
    Get a file's metadata.

    Raises:
        - 401: Invalid or missing API Key
        - 403: User neither owns nor was granted this file
        - 404: File not found
    """
    file_service = FileService()

    record = file_service.get_metadata(file_id, current_user.user_id)
    return file_metadata_response(record, current_user.user_id)


@router.get("/{file_id}/download")
async def download_file(
    file_id: str,
    version: Optional[int] = Query(None, ge=1),
    current_user: AuthenticatedUser = Depends(get_current_user)
):
    """
    Download and decrypt a file, optionally an older version.

    Raises:
        - 401: Invalid or missing API Key
        - 403: User neither owns nor was granted this file
        - 404: File or version not found
        - 500: Stored content could not be decrypted or verified
        - 503: Object store unavailable
    """
    file_service = FileService()

    record, data = await file_service.download(file_id, current_user.user_id, version)
    return attachment_response(record, data)


@router.post("/{file_id}/versions", response_model=FileMetadataResponse, status_code=status.HTTP_201_CREATED)
async def upload_version(
    file_id: str,
    file: UploadFile = File(...),
    current_user: AuthenticatedUser = Depends(get_current_user)
):
    """
    Replace a file's content, keeping the previous content as an older version.

    Raises:
        - 400: Storage quota exceeded
        - 403: User does not own this file
        - 404: File not found or trashed
    """
    file_service = FileService()

    file_content = await file.read()
    record = await file_service.upload_version(file_id, current_user, file_content)
    return file_metadata_response(record, current_user.user_id)


@router.delete("/{file_id}", response_model=DeleteFileResponse)
async def delete_file(
    file_id: str,
    current_user: AuthenticatedUser = Depends(get_current_user)
):
    """
    Move a file to the trash. It no longer counts against the quota.

    Raises:
        - 403: User does not own this file
        - 404: File not found
    """
    file_service = FileService()

    record = file_service.soft_delete(file_id, current_user.user_id)
    return DeleteFileResponse(file_id=record.file_id, deleted_at=to_iso(record.deleted_at))


@router.post("/{file_id}/restore", response_model=FileMetadataResponse)
async def restore_file(
    file_id: str,
    current_user: AuthenticatedUser = Depends(get_current_user)
):
    """
    Bring a file back from the trash.
    """
    file_service = FileService()

    record = file_service.restore(file_id, current_user.user_id)
    return file_metadata_response(record, current_user.user_id)


@router.post("/{file_id}/share", response_model=CreateShareLinkResponse, status_code=status.HTTP_201_CREATED)
async def create_share_link(
    file_id: str,
    request: CreateShareLinkRequest,
    current_user: AuthenticatedUser = Depends(get_current_user)
):
    """
    Create a share link and email it to any listed recipients.

    Parameters:
        - emails: Recipients; when present only they may use the link
        - permission: "view" or "edit"
        - expires_at: Optional ISO 8601 expiry
        - password: Optional link password

    Raises:
        - 400: Unknown permission
        - 403: User does not own this file
        - 404: File not found or trashed
    """
    share_service = ShareService()

    created = share_service.create_share_link(
        file_id,
        current_user,
        permission=request.permission,
        expires_at=request.expires_at,
        password=request.password,
        emails=request.emails,
    )
    return CreateShareLinkResponse(token=created.token, share_url=created.share_url)


@router.post("/{file_id}/collaborators", response_model=FileMetadataResponse)
async def add_collaborator(
    file_id: str,
    request: ShareWithUserRequest,
    current_user: AuthenticatedUser = Depends(get_current_user)
):
    """
    Grant another user read access to a file.

    Raises:
        - 400: Target is the file's owner
        - 403: User does not own this file
        - 404: File or target user not found
    """
    file_service = FileService()

    record = file_service.share_with_user(file_id, current_user.user_id, request.user_id)
    return file_metadata_response(record, current_user.user_id)


@router.delete("/{file_id}/collaborators/{user_id}", response_model=FileMetadataResponse)
async def remove_collaborator(
    file_id: str,
    user_id: str,
    current_user: AuthenticatedUser = Depends(get_current_user)
):
    """
    Revoke a user's direct access to a file.
    """
    file_service = FileService()

    record = file_service.unshare_with_user(file_id, current_user.user_id, user_id)
    return file_metadata_response(record, current_user.user_id)
