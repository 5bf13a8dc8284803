"""File service for business logic."""

from dataclasses import replace
from typing import Any, Dict, List, Optional, Tuple

from common.constants import MAX_PAGE_SIZE
from common.logging_config import get_logger
from vault.checksum import compute_checksum, verify_checksum
from vault.config import VERIFY_CHECKSUM_ON_DOWNLOAD
from vault.crypto import CryptoEnvelope
from vault.exceptions import (
    AccessDeniedError,
    IntegrityOrKeyError,
    InvalidQueryError,
    NotFoundError,
    QuotaExceededError,
)
from vault.notifications import FILE_DELETED, FILE_UPLOADED, NotificationPublisher, user_channel
from vault.object_store import ObjectStore
from vault.quota import QuotaLedger, resolve_quota
from vault.repositories.file_repository import SORT_COLUMNS, SORT_ORDERS, FileRepository
from vault.repositories.user_repository import UserRepository
from vault.service_locator import get_crypto_envelope, get_object_store, get_publisher
from vault.types import (
    AuthenticatedUser,
    FileRecord,
    FileVersion,
    ListFilter,
    ListResult,
    StorageUsage,
)
from vault.utils import generate_storage_key, generate_uuid, utc_now

logger = get_logger(__name__)

DEFAULT_MIME_TYPE = "application/octet-stream"

SQLITE_MAX_INTEGER = 2 ** 63 - 1


def validate_list_filter(list_filter: ListFilter) -> ListFilter:
    """
    Check sort and pagination options, capping limit at MAX_PAGE_SIZE.

    Raises:
        InvalidQueryError: On an unknown sort key or order, a non-positive page/limit,
            or a page whose row offset does not fit in an SQLite integer
    """
    if list_filter.sort_by not in SORT_COLUMNS:
        raise InvalidQueryError(
            f"Cannot sort by '{list_filter.sort_by}'; expected one of {', '.join(sorted(SORT_COLUMNS))}"
        )
    order = list_filter.order.lower()
    if order not in SORT_ORDERS:
        raise InvalidQueryError(f"Order must be 'asc' or 'desc', got '{list_filter.order}'")
    if list_filter.page < 1:
        raise InvalidQueryError("Page must be 1 or greater")
    if list_filter.limit < 1:
        raise InvalidQueryError("Limit must be 1 or greater")

    limit = min(list_filter.limit, MAX_PAGE_SIZE)
    if (list_filter.page - 1) * limit > SQLITE_MAX_INTEGER:
        raise InvalidQueryError(f"Page {list_filter.page} is out of range")

    return replace(list_filter, order=order, limit=limit)


class FileService:
    """
    Owns the lifecycle of encrypted, versioned, soft-deletable files.

    The blob is always written to the object store before its record is
    created, so an interrupted upload can leave an orphaned blob but never a
    record pointing at missing data.
    """

    def __init__(
        self,
        crypto: Optional[CryptoEnvelope] = None,
        object_store: Optional[ObjectStore] = None,
        publisher: Optional[NotificationPublisher] = None,
        quota_ledger: Optional[QuotaLedger] = None,
        verify_checksums: Optional[bool] = None,
    ):
        self.file_repo = FileRepository()
        self.user_repo = UserRepository()
        self.crypto = crypto or get_crypto_envelope()
        self.object_store = object_store or get_object_store()
        self.publisher = publisher or get_publisher()
        self.quota = quota_ledger or QuotaLedger(self.file_repo)
        self.verify_checksums = VERIFY_CHECKSUM_ON_DOWNLOAD if verify_checksums is None else verify_checksums

    def _notify(self, user_id: str, event: str, payload: Dict[str, Any]) -> None:
        try:
            self.publisher.publish(user_channel(user_id), event, payload)
        except Exception as e:
            logger.warning(f"Failed to publish {event} for user {user_id}: {e}")

    def _get_record(self, file_id: str) -> FileRecord:
        record = self.file_repo.get_by_id(file_id)
        if record is None:
            raise NotFoundError(f"File {file_id} not found")
        return record

    def _get_owned(self, file_id: str, user_id: str) -> FileRecord:
        record = self._get_record(file_id)
        if record.owner_id != user_id:
            raise AccessDeniedError(f"User {user_id} does not own file {file_id}")
        return record

    def _get_readable(self, file_id: str, user_id: str) -> FileRecord:
        record = self._get_record(file_id)
        if not record.can_read(user_id):
            raise AccessDeniedError(f"User {user_id} cannot access file {file_id}")
        return record

    def _admit(self, user: AuthenticatedUser, additional_bytes: int) -> None:
        quota_limit = resolve_quota(user.storage_quota)
        if not self.quota.can_admit(user.user_id, additional_bytes, quota_limit):
            raise QuotaExceededError(
                f"Storage quota exceeded: {additional_bytes} more bytes would pass the {quota_limit} byte limit"
            )

    async def _store_content(self, user_id: str, original_name: str, data: bytes, content_type: str) -> Tuple[str, str, str]:
        checksum = compute_checksum(data)
        payload = self.crypto.encrypt(data)
        blob_key = generate_storage_key(user_id, original_name)

        await self.object_store.put(
            blob_key,
            payload.ciphertext,
            content_type,
            {"user-id": user_id, "original-name": original_name, "iv": payload.iv},
        )
        return blob_key, payload.iv, checksum

    async def upload(
        self,
        user: AuthenticatedUser,
        data: bytes,
        original_name: str,
        mime_type: Optional[str] = None,
        folder_id: Optional[str] = None,
        tags: Optional[List[str]] = None,
    ) -> FileRecord:
        """
        Encrypt and store a new file, seeding its version history.

        Raises:
            QuotaExceededError: If the upload would exceed the user's quota
            StorageError: If the object store write fails
        """
        self._admit(user, len(data))

        mime_type = mime_type or DEFAULT_MIME_TYPE
        blob_key, iv, checksum = await self._store_content(user.user_id, original_name, data, mime_type)

        now = utc_now()
        record = FileRecord(
            file_id=generate_uuid(),
            owner_id=user.user_id,
            name=original_name,
            original_name=original_name,
            mime_type=mime_type,
            size=len(data),
            blob_key=blob_key,
            encryption_iv=iv,
            checksum=checksum,
            created_at=now,
            updated_at=now,
            folder_id=folder_id,
            tags=sorted(set(tags or [])),
            versions=[
                FileVersion(
                    version=1,
                    blob_key=blob_key,
                    size=len(data),
                    encryption_iv=iv,
                    checksum=checksum,
                    created_at=now,
                    created_by=user.user_id,
                )
            ],
        )
        self.file_repo.create_file(record)
        logger.info(f"Uploaded file {record.file_id} ({record.size} bytes) for user {user.user_id}")

        self._notify(user.user_id, FILE_UPLOADED, {
            "file_id": record.file_id,
            "name": record.name,
            "size": record.size,
            "mime_type": record.mime_type,
        })
        return record

    async def upload_version(self, file_id: str, user: AuthenticatedUser, data: bytes) -> FileRecord:
        """
        Store new content for an existing file as the next version.

        Only the growth over the current size is charged against the quota.
        """
        record = self._get_owned(file_id, user.user_id)
        if record.is_deleted:
            raise NotFoundError(f"File {file_id} is in the trash")

        self._admit(user, max(0, len(data) - record.size))

        blob_key, iv, checksum = await self._store_content(
            user.user_id, record.original_name, data, record.mime_type
        )

        now = utc_now()
        latest = record.current_version
        version = FileVersion(
            version=(latest.version if latest else 0) + 1,
            blob_key=blob_key,
            size=len(data),
            encryption_iv=iv,
            checksum=checksum,
            created_at=now,
            created_by=user.user_id,
        )
        self.file_repo.append_version(file_id, version, now)
        logger.info(f"Stored version {version.version} of file {file_id} ({version.size} bytes)")

        return self._get_record(file_id)

    async def download(
        self,
        file_id: str,
        user_id: str,
        version: Optional[int] = None,
    ) -> Tuple[FileRecord, bytes]:
        """
        Fetch and decrypt a file the user owns or was directly shared.

        Raises:
            NotFoundError: If the file, requested version or blob is missing, or the file is trashed
            AccessDeniedError: If the user is neither owner nor direct-share recipient
            IntegrityOrKeyError: If decryption or checksum verification fails
        """
        record = self._get_readable(file_id, user_id)
        if record.is_deleted:
            raise NotFoundError(f"File {file_id} is in the trash")

        return record, await self.read_content(record, version)

    async def read_content(self, record: FileRecord, version: Optional[int] = None) -> bytes:
        """
        Decrypt a record's content and count the download.
        """
        entry = record.current_version if version is None else record.get_version(version)
        if entry is None:
            raise NotFoundError(f"File {record.file_id} has no version {version}")

        ciphertext = await self.object_store.get(entry.blob_key)

        try:
            plaintext = self.crypto.decrypt(ciphertext, entry.encryption_iv)
        except IntegrityOrKeyError:
            logger.error(f"File {record.file_id} v{entry.version} could not be decrypted")
            raise

        if self.verify_checksums and not verify_checksum(plaintext, entry.checksum):
            logger.error(f"Checksum mismatch for file {record.file_id} v{entry.version}")
            raise IntegrityOrKeyError(f"File {record.file_id} failed checksum verification")

        accessed_at = utc_now()
        self.file_repo.record_download(record.file_id, accessed_at)
        record.downloads += 1
        record.last_accessed_at = accessed_at

        logger.info(f"Downloaded file {record.file_id} v{entry.version} ({len(plaintext)} bytes)")
        return plaintext

    def get_metadata(self, file_id: str, user_id: str) -> FileRecord:
        """
        Return a file's record without side effects. Trashed files stay
        visible to their owner only.
        """
        record = self._get_readable(file_id, user_id)
        if record.is_deleted and record.owner_id != user_id:
            raise NotFoundError(f"File {file_id} not found")
        return record

    def list_files(self, user_id: str, list_filter: Optional[ListFilter] = None) -> ListResult:
        return self._list(user_id, list_filter or ListFilter(), deleted=False)

    def list_trash(self, user_id: str, list_filter: Optional[ListFilter] = None) -> ListResult:
        return self._list(user_id, list_filter or ListFilter(sort_by="updated_at"), deleted=True)

    def _list(self, user_id: str, list_filter: ListFilter, deleted: bool) -> ListResult:
        list_filter = validate_list_filter(list_filter)
        files, total = self.file_repo.find_many(user_id, list_filter, deleted=deleted)
        return ListResult(
            files=files,
            total=total,
            total_pages=self.file_repo.total_pages(total, list_filter.limit),
            current_page=list_filter.page,
        )

    def soft_delete(self, file_id: str, user_id: str) -> FileRecord:
        """
        Move a file to the trash. Its quota charge is released immediately
        while the blob stays in the object store until a purge.
        """
        record = self._get_owned(file_id, user_id)
        if record.is_deleted:
            logger.debug(f"File {file_id} is already in the trash")
            return record

        self.file_repo.mark_deleted(file_id, utc_now(), user_id)
        logger.info(f"Moved file {file_id} to trash")

        self._notify(user_id, FILE_DELETED, {"file_id": file_id})
        return self._get_record(file_id)

    def restore(self, file_id: str, user_id: str) -> FileRecord:
        record = self._get_owned(file_id, user_id)
        if record.is_deleted:
            self.file_repo.clear_deleted(file_id, utc_now())
            logger.info(f"Restored file {file_id} from trash")
        return self._get_record(file_id)

    def storage_usage_summary(self, user: AuthenticatedUser) -> StorageUsage:
        total_size, total_files, by_type = self.file_repo.aggregate_usage(user.user_id)
        return StorageUsage(
            total_size=total_size,
            total_files=total_files,
            quota=resolve_quota(user.storage_quota),
            by_type=by_type,
        )

    def share_with_user(self, file_id: str, owner_id: str, target_user_id: str) -> FileRecord:
        """
        Grant another user direct read access (download and metadata).
        """
        record = self._get_owned(file_id, owner_id)
        if record.is_deleted:
            raise NotFoundError(f"File {file_id} is in the trash")
        if target_user_id == owner_id:
            raise InvalidQueryError("A file cannot be shared with its owner")
        if self.user_repo.get_by_user_id(target_user_id) is None:
            raise NotFoundError(f"User {target_user_id} not found")

        self.file_repo.add_shared_user(file_id, target_user_id, utc_now())
        logger.info(f"Shared file {file_id} with user {target_user_id}")
        return self._get_record(file_id)

    def unshare_with_user(self, file_id: str, owner_id: str, target_user_id: str) -> FileRecord:
        self._get_owned(file_id, owner_id)
        if not self.file_repo.remove_shared_user(file_id, target_user_id):
            raise NotFoundError(f"File {file_id} is not shared with user {target_user_id}")

        logger.info(f"Revoked user {target_user_id} access to file {file_id}")
        return self._get_record(file_id)
