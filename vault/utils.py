"""Utility helper functions for the vault service."""

import secrets
import time
import uuid
from datetime import datetime, timezone
from pathlib import PurePosixPath
from typing import List, Optional

from common.constants import STORAGE_KEY_SUFFIX_BYTES


def generate_uuid() -> str:
    """
    Generate a new UUID4 string.

    Returns:
        UUID4 string
    """
    return str(uuid.uuid4())


def utc_now() -> datetime:
    """
    Current time as a timezone-aware UTC datetime.
    """
    return datetime.now(timezone.utc)


def to_iso(value: Optional[datetime]) -> Optional[str]:
    """
    Serialize a datetime for storage, treating naive values as UTC.
    """
    if value is None:
        return None
    return ensure_utc(value).isoformat()


def from_iso(value: Optional[str]) -> Optional[datetime]:
    if value is None:
        return None
    return ensure_utc(datetime.fromisoformat(value))


def ensure_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_tags(tags_str: Optional[str]) -> List[str]:
    """
    Parse comma-separated tags string into list.

    Args:
        tags_str: Comma-separated tags (e.g., "tag1,tag2,tag3")

    Returns:
        List of trimmed, de-duplicated tag strings in first-seen order
    """
    if not tags_str:
        return []
    tags = []
    for tag in tags_str.split(','):
        tag = tag.strip()
        if tag and tag not in tags:
            tags.append(tag)
    return tags


def generate_storage_key(user_id: str, original_name: str) -> str:
    """
    Build a collision-free object store key for a new blob.

    Format: {user_id}/{unix_ms}_{random hex}{original extension}

    Args:
        user_id: Owner of the blob
        original_name: Uploaded file name, used only for its extension

    Returns:
        Object store key
    """
    timestamp_ms = int(time.time() * 1000)
    suffix = secrets.token_hex(STORAGE_KEY_SUFFIX_BYTES)
    extension = PurePosixPath(original_name.replace("\\", "/")).suffix
    return f"{user_id}/{timestamp_ms}_{suffix}{extension}"
