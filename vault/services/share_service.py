"""Share link service for business logic."""

import secrets
from datetime import datetime
from typing import List, Optional, Tuple

from common.constants import SHARE_TOKEN_BYTES
from common.logging_config import get_logger
from vault.auth import hash_password, verify_password
from vault.config import APP_URL
from vault.exceptions import (
    AccessDeniedError,
    ExpiredError,
    InvalidQueryError,
    NotFoundError,
    WrongPasswordError,
)
from vault.mailer import SHARE_TEMPLATE, EmailMessage, EmailSender
from vault.repositories.file_repository import FileRepository
from vault.repositories.share_link_repository import ShareLinkRepository
from vault.service_locator import get_email_sender
from vault.services.file_service import FileService
from vault.types import (
    PERMISSION_VIEW,
    SHARE_PERMISSIONS,
    AuthenticatedUser,
    CreatedShareLink,
    FileRecord,
    ShareAccess,
    ShareLink,
)
from vault.utils import ensure_utc, utc_now

logger = get_logger(__name__)


def build_share_url(token: str, app_url: str = APP_URL) -> str:
    return f"{app_url.rstrip('/')}/share/{token}"


class ShareService:
    """
    Creates and validates bearer-token share links.

    Anyone holding a valid token may read the file, subject to the link's
    expiry, password and recipient list.
    """

    def __init__(
        self,
        file_service: Optional[FileService] = None,
        email_sender: Optional[EmailSender] = None,
        app_url: str = APP_URL,
    ):
        self.file_repo = FileRepository()
        self.link_repo = ShareLinkRepository()
        self._file_service = file_service
        self.email_sender = email_sender or get_email_sender()
        self.app_url = app_url

    @property
    def file_service(self) -> FileService:
        if self._file_service is None:
            self._file_service = FileService()
        return self._file_service

    def create_share_link(
        self,
        file_id: str,
        creator: AuthenticatedUser,
        permission: str = PERMISSION_VIEW,
        expires_at: Optional[datetime] = None,
        password: Optional[str] = None,
        emails: Optional[List[str]] = None,
    ) -> CreatedShareLink:
        """
        Create a share link for a file the creator owns and notify recipients.

        Args:
            file_id: File to share
            creator: Owner creating the link
            permission: "view" or "edit"
            expires_at: Optional expiry; naive values are treated as UTC
            password: Optional password; only its bcrypt hash is stored
            emails: Optional recipient list; also restricts who may use the link

        Returns:
            CreatedShareLink with the token and public URL

        Raises:
            NotFoundError: If the file does not exist or is trashed
            AccessDeniedError: If the creator does not own the file
            InvalidQueryError: If the permission is unknown
        """
        if permission not in SHARE_PERMISSIONS:
            raise InvalidQueryError(f"Permission must be one of {', '.join(SHARE_PERMISSIONS)}")

        record = self.file_repo.get_by_id(file_id)
        if record is None or record.is_deleted:
            raise NotFoundError(f"File {file_id} not found")
        if record.owner_id != creator.user_id:
            raise AccessDeniedError(f"User {creator.user_id} does not own file {file_id}")

        recipients = []
        for email in emails or []:
            email = email.strip()
            if email and email.lower() not in [r.lower() for r in recipients]:
                recipients.append(email)

        link = ShareLink(
            token=secrets.token_hex(SHARE_TOKEN_BYTES),
            file_id=file_id,
            created_by=creator.user_id,
            permission=permission,
            expires_at=ensure_utc(expires_at) if expires_at else None,
            password_hash=hash_password(password) if password else None,
            emails=recipients,
            created_at=utc_now(),
        )
        self.link_repo.add_share_link(link)

        share_url = build_share_url(link.token, self.app_url)
        logger.info(
            f"Created {permission} share link for file {file_id} "
            f"[recipients={len(recipients)}] [password={link.has_password}]"
        )

        self._send_share_emails(record, creator, share_url, recipients)
        return CreatedShareLink(token=link.token, share_url=share_url)

    def _send_share_emails(
        self,
        record: FileRecord,
        creator: AuthenticatedUser,
        share_url: str,
        recipients: List[str],
    ) -> None:
        sender_name = f"{creator.first_name} {creator.last_name}".strip()
        for recipient in recipients:
            message = EmailMessage(
                to=recipient,
                subject=f"{creator.first_name} shared a file with you",
                template=SHARE_TEMPLATE,
                data={
                    "file_name": record.name,
                    "share_url": share_url,
                    "sender": sender_name,
                },
            )
            try:
                self.email_sender.send(message)
            except Exception as e:
                logger.warning(f"Failed to send share email for file {record.file_id} to {recipient}: {e}")

    def validate_share_link(self, token: str, password: Optional[str] = None) -> ShareAccess:
        """
        Resolve a token to the file it grants.

        Raises:
            NotFoundError: If the token is unknown or the file is gone or trashed
            ExpiredError: If the link has expired
            WrongPasswordError: If the link has a password and it was not supplied correctly
        """
        link = self.link_repo.get_by_token(token)
        if link is None:
            raise NotFoundError("Share link not found")

        record = self.file_repo.get_by_id(link.file_id)
        if record is None or record.is_deleted:
            raise NotFoundError("Share link not found")

        if link.expires_at is not None and utc_now() > link.expires_at:
            logger.info(f"Rejected expired share link for file {link.file_id}")
            raise ExpiredError("Share link has expired")

        if link.has_password:
            if not password or not verify_password(password, link.password_hash):
                logger.info(f"Rejected share link password for file {link.file_id}")
                raise WrongPasswordError("Share link password is incorrect")

        return ShareAccess(file=record, permission=link.permission, link=link)

    def authorize(self, token: str, password: Optional[str] = None, email: Optional[str] = None) -> ShareAccess:
        """
        Validate a token and apply its recipient restriction.

        Raises:
            AccessDeniedError: If the link is restricted and email is not a recipient
        """
        access = self.validate_share_link(token, password)
        if not access.permits(email):
            raise AccessDeniedError("This share link is restricted to specific recipients")
        return access

    async def download_shared(
        self,
        token: str,
        password: Optional[str] = None,
        email: Optional[str] = None,
    ) -> Tuple[FileRecord, bytes]:
        access = self.authorize(token, password, email)
        data = await self.file_service.read_content(access.file)
        logger.info(f"Shared download of file {access.file.file_id} via link")
        return access.file, data
