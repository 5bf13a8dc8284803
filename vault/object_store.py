"""Object store adapters: put/get of opaque encrypted blobs by key."""

import asyncio
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional
from urllib.parse import quote

import httpx

from common.constants import BLOB_METADATA_HEADER_PREFIX, BLOB_REQUEST_TIMEOUT_SECONDS
from common.logging_config import NO_REQUEST_ID, current_request_id, get_logger
from blobserver.blob_storage import BlobStorage, InvalidBlobKeyError
from vault.exceptions import NotFoundError, StorageError

logger = get_logger(__name__)


def request_id_headers() -> Dict[str, str]:
    """Propagate the active request id to the blob server, if one is bound."""
    request_id = current_request_id()
    if request_id == NO_REQUEST_ID:
        return {}
    return {"X-Request-ID": request_id}


class ObjectStore(ABC):
    """
    Key/value blob service used by the file lifecycle.

    Any failure is terminal for the current request: adapters do not retry.
    """

    @abstractmethod
    async def put(self, key: str, data: bytes, content_type: str, metadata: Dict[str, str]) -> None:
        """
        Store data under key.

        Raises:
            StorageError: If the store rejects or fails the write
        """

    @abstractmethod
    async def get(self, key: str) -> bytes:
        """
        Fetch the bytes stored under key.

        Raises:
            NotFoundError: If no blob exists under key
            StorageError: If the store fails the read
        """

    async def close(self) -> None:
        """Release any connections held by the adapter."""


class LocalObjectStore(ObjectStore):
    """
    Stores blobs on the local filesystem. Disk IO runs in a worker thread so
    the event loop is never blocked by a slow write.
    """

    def __init__(self, root: Path):
        self.storage = BlobStorage(Path(root))
        self.storage.ensure_root()

    async def put(self, key: str, data: bytes, content_type: str, metadata: Dict[str, str]) -> None:
        try:
            await asyncio.to_thread(self.storage.write_blob, key, data, content_type, metadata)
        except (OSError, InvalidBlobKeyError) as e:
            logger.error(f"Blob write failed [key={key}]: {e}")
            raise StorageError(f"Failed to store blob {key}: {e}") from e

    async def get(self, key: str) -> bytes:
        try:
            blob = await asyncio.to_thread(self.storage.read_blob, key)
        except FileNotFoundError as e:
            raise NotFoundError(f"Blob {key} not found") from e
        except (OSError, ValueError) as e:
            logger.error(f"Blob read failed [key={key}]: {e}")
            raise StorageError(f"Failed to read blob {key}: {e}") from e
        return blob.data


class HttpObjectStore(ObjectStore):
    """
    Talks to a blob server over HTTP.

    Metadata values are percent-encoded into x-blob-meta-* headers so that
    non-ASCII file names survive the trip.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = BLOB_REQUEST_TIMEOUT_SECONDS,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.client = client or httpx.AsyncClient(base_url=self.base_url, timeout=timeout)

    @staticmethod
    def _blob_path(key: str) -> str:
        return f"/blobs/{quote(key, safe='/')}"

    @staticmethod
    def encode_metadata(metadata: Dict[str, str]) -> Dict[str, str]:
        return {
            f"{BLOB_METADATA_HEADER_PREFIX}{name.lower()}": quote(str(value), safe="")
            for name, value in metadata.items()
        }

    async def put(self, key: str, data: bytes, content_type: str, metadata: Dict[str, str]) -> None:
        headers = {"Content-Type": content_type or "application/octet-stream"}
        headers.update(self.encode_metadata(metadata))
        headers.update(request_id_headers())

        try:
            response = await self.client.put(self._blob_path(key), content=data, headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"Blob server unreachable during put [key={key}]: {e}")
            raise StorageError(f"Blob server unreachable: {e}") from e

        if response.status_code >= 400:
            logger.error(f"Blob server rejected put [key={key}] status={response.status_code}")
            raise StorageError(f"Blob server rejected write of {key} (HTTP {response.status_code})")

        logger.debug(f"Stored blob {key} ({len(data)} bytes)")

    async def get(self, key: str) -> bytes:
        try:
            response = await self.client.get(
                self._blob_path(key), headers=request_id_headers()
            )
        except httpx.HTTPError as e:
            logger.error(f"Blob server unreachable during get [key={key}]: {e}")
            raise StorageError(f"Blob server unreachable: {e}") from e

        if response.status_code == 404:
            raise NotFoundError(f"Blob {key} not found")
        if response.status_code >= 400:
            logger.error(f"Blob server rejected get [key={key}] status={response.status_code}")
            raise StorageError(f"Blob server failed to read {key} (HTTP {response.status_code})")

        return response.content

    async def close(self) -> None:
        await self.client.aclose()
