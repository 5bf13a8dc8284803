"""Entry point for the blob server.
Stores opaque encrypted blobs on local disk and serves them back by key.
"""

import asyncio
import time
import uuid
from pathlib import Path

import uvicorn
from fastapi import FastAPI, Request, Response, status
from fastapi.responses import JSONResponse

from common.constants import BLOB_METADATA_HEADER_PREFIX
from common.logging_config import reset_request_id, set_request_id, setup_logging
from blobserver.blob_storage import BlobStorage, InvalidBlobKeyError
from blobserver.config import BLOB_STORAGE_PATH, BLOBSERVER_HOST, BLOBSERVER_PORT

logger = setup_logging('blobserver')

app = FastAPI(
    title="CloudVault Blob Server",
    description="Key/value blob storage backing the vault service",
    version="1.0.0"
)

storage = BlobStorage(Path(BLOB_STORAGE_PATH))


def set_storage(blob_storage: BlobStorage) -> None:
    """Replace the storage backend."""
    global storage
    storage = blob_storage


def _extract_metadata(request: Request) -> dict:
    metadata = {}
    for name, value in request.headers.items():
        if name.lower().startswith(BLOB_METADATA_HEADER_PREFIX):
            metadata[name[len(BLOB_METADATA_HEADER_PREFIX):].lower()] = value
    return metadata


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """
    Middleware to log all HTTP requests and responses.
    """
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    token = set_request_id(request_id)
    start_time = time.time()

    try:
        response = await call_next(request)
        duration = time.time() - start_time
        logger.info(
            f"{request.method} {request.url.path} status={response.status_code} "
            f"duration={duration:.3f}s"
        )
    finally:
        reset_request_id(token)

    response.headers["X-Request-ID"] = request_id
    return response


@app.on_event("startup")
async def startup_event():
    storage.ensure_root()
    logger.info(f"Blob server storing blobs under {storage.root}")


@app.exception_handler(InvalidBlobKeyError)
async def invalid_key_handler(request: Request, exc: InvalidBlobKeyError):
    logger.warning(f"Rejected blob key: {exc} path={request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": str(exc), "code": "INVALID_BLOB_KEY"}
    )


@app.put("/blobs/{key:path}", status_code=status.HTTP_201_CREATED)
async def put_blob(key: str, request: Request):
    """
    Store a blob under key. Metadata is taken from x-blob-meta-* headers.
    """
    data = await request.body()
    content_type = request.headers.get("content-type", "application/octet-stream")
    metadata = _extract_metadata(request)

    await asyncio.to_thread(storage.write_blob, key, data, content_type, metadata)
    logger.info(f"Stored blob {key} ({len(data)} bytes)")

    return {"key": key, "size": len(data)}


@app.get("/blobs/{key:path}")
async def get_blob(key: str):
    """
    Return blob bytes with its content type and metadata headers.
    """
    try:
        blob = await asyncio.to_thread(storage.read_blob, key)
    except FileNotFoundError:
        logger.warning(f"Blob not found: {key}")
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"detail": f"Blob {key} not found", "code": "BLOB_NOT_FOUND"}
        )

    headers = {
        f"{BLOB_METADATA_HEADER_PREFIX}{name}": value
        for name, value in blob.metadata.items()
    }
    return Response(content=blob.data, media_type=blob.content_type, headers=headers)


@app.get("/health")
async def health_check():
    """
    Health check endpoint for Docker healthcheck.
    """
    return {"status": "healthy", "service": "blobserver"}


def main() -> None:
    """
    Start the blob server with uvicorn.
    """
    uvicorn.run(
        "blobserver.main:app",
        host=BLOBSERVER_HOST,
        port=BLOBSERVER_PORT,
    )


if __name__ == "__main__":
    main()
