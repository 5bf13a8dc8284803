"""Public share link API routes. Possession of the token is the credential."""

from typing import Optional

from fastapi import APIRouter

from vault.routes.file_routes import attachment_response
from vault.schemas.common import ERROR_RESPONSES
from vault.schemas.shares import AccessShareRequest, SharedFileResponse
from vault.services.share_service import ShareService
from vault.utils import to_iso

router = APIRouter(prefix="/share", tags=["Sharing"], responses=ERROR_RESPONSES)


@router.post("/{token}", response_model=SharedFileResponse)
async def access_share_link(token: str, request: Optional[AccessShareRequest] = None):
    """
    Check a share link and describe the file it grants.

    Parameters:
        - password: Required when the link is password protected
        - email: Required when the link is restricted to recipients

    Raises:
        - 401: Wrong or missing password
        - 403: Email is not among the link's recipients
        - 404: Unknown link, or the file is gone
        - 410: Link has expired
    """
    request = request or AccessShareRequest()
    share_service = ShareService()

    access = share_service.authorize(token, request.password, request.email)
    return SharedFileResponse(
        file_id=access.file.file_id,
        name=access.file.name,
        mime_type=access.file.mime_type,
        size=access.file.size,
        permission=access.permission,
        expires_at=to_iso(access.link.expires_at),
    )


@router.post("/{token}/download")
async def download_shared_file(token: str, request: Optional[AccessShareRequest] = None):
    """
    Download and decrypt the file behind a share link.

    Raises:
        - 401: Wrong or missing password
        - 403: Email is not among the link's recipients
        - 404: Unknown link, or the file is gone
        - 410: Link has expired
        - 500: Stored content could not be decrypted or verified
    """
    request = request or AccessShareRequest()
    share_service = ShareService()

    record, data = await share_service.download_shared(token, request.password, request.email)
    return attachment_response(record, data)
