"""Per-user storage quota accounting."""

from typing import Optional

from common.logging_config import get_logger
from vault.config import DEFAULT_STORAGE_QUOTA
from vault.repositories.file_repository import FileRepository

logger = get_logger(__name__)


def resolve_quota(storage_quota: Optional[int]) -> int:
    """
    Return the user's configured quota, or the service default when unset.
    """
    if storage_quota is None or storage_quota <= 0:
        return DEFAULT_STORAGE_QUOTA
    return storage_quota


class QuotaLedger:
    """
    Computes consumed storage from active file records and admits or denies writes.

    Admission is read-then-decide against the record store, so two concurrent
    uploads by the same user can both be admitted even if together they exceed
    the quota. Callers get best-effort admission control, not a hard limit.
    """

    def __init__(self, file_repo: Optional[FileRepository] = None):
        self.file_repo = file_repo or FileRepository()

    def current_usage(self, user_id: str) -> int:
        return self.file_repo.sum_active_size(user_id)

    def can_admit(self, user_id: str, additional_bytes: int, quota_limit: int) -> bool:
        usage = self.current_usage(user_id)
        admitted = usage + additional_bytes <= quota_limit
        if not admitted:
            logger.info(
                f"Quota denied [user_id={user_id}] usage={usage} additional={additional_bytes} limit={quota_limit}"
            )
        return admitted
