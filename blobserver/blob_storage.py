"""Manages blob files on disk: write/read with a JSON metadata sidecar."""

import json
from pathlib import Path
from typing import Dict, Optional

from common.types import StoredBlob

BLOB_SUFFIX = ".blob"
METADATA_SUFFIX = ".meta.json"


class InvalidBlobKeyError(ValueError):
    """
    Raised when a blob key would escape the storage root or is empty.
    """
    pass


class BlobStorage:
    """
    Disk-backed key/value blob store.

    Keys are slash-separated relative paths (e.g. "user-1/1700000000000_ab12.pdf").
    Each blob is stored as <root>/<key>.blob next to <root>/<key>.meta.json,
    which holds the content type and the caller-supplied metadata.
    """

    def __init__(self, root: Path):
        self.root = Path(root)

    def ensure_root(self) -> None:
        """Ensure the storage root exists."""
        self.root.mkdir(parents=True, exist_ok=True)

    def _base_path(self, key: str) -> Path:
        if not key or key.startswith("/") or "\\" in key:
            raise InvalidBlobKeyError(f"Invalid blob key: {key!r}")

        parts = key.split("/")
        if any(part in ("", ".", "..") for part in parts):
            raise InvalidBlobKeyError(f"Invalid blob key: {key!r}")

        return self.root.joinpath(*parts)

    def get_blob_path(self, key: str) -> Path:
        base = self._base_path(key)
        return base.with_name(base.name + BLOB_SUFFIX)

    def get_metadata_path(self, key: str) -> Path:
        base = self._base_path(key)
        return base.with_name(base.name + METADATA_SUFFIX)

    def write_blob(
        self,
        key: str,
        data: bytes,
        content_type: str,
        metadata: Optional[Dict[str, str]] = None,
    ) -> str:
        """
        Write blob data and its metadata to disk.

        Args:
            key: Blob key
            data: Opaque blob bytes
            content_type: MIME type recorded with the blob
            metadata: String metadata recorded with the blob

        Returns:
            String path to written blob file

        Raises:
            InvalidBlobKeyError: If the key is malformed
            OSError: If write operation fails
        """
        blob_path = self.get_blob_path(key)
        metadata_path = self.get_metadata_path(key)
        blob_path.parent.mkdir(parents=True, exist_ok=True)

        blob_path.write_bytes(data)
        metadata_path.write_text(json.dumps({
            "content_type": content_type,
            "metadata": dict(metadata or {}),
        }))
        return str(blob_path)

    def read_blob(self, key: str) -> StoredBlob:
        """
        Read a blob and its metadata from disk.

        Raises:
            FileNotFoundError: If the blob does not exist
            InvalidBlobKeyError: If the key is malformed
        """
        data = self.get_blob_path(key).read_bytes()

        metadata_path = self.get_metadata_path(key)
        if metadata_path.exists():
            sidecar = json.loads(metadata_path.read_text())
        else:
            sidecar = {}

        return StoredBlob(
            key=key,
            data=data,
            content_type=sidecar.get("content_type", "application/octet-stream"),
            metadata=sidecar.get("metadata", {}),
        )
