"""Entry point for the Vault service."""

import time
import uuid
from pathlib import Path

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from common.logging_config import reset_request_id, set_request_id, setup_logging
from vault.config import (
    BLOB_STORAGE_PATH,
    BLOBSERVER_URL,
    ENCRYPTION_KEY,
    OBJECT_STORE_BACKEND,
    VAULT_HOST,
    VAULT_PORT,
)
from vault.crypto import CryptoEnvelope, load_encryption_key
from vault.database import get_db_connection, init_database
from vault.exceptions import (
    AccessDeniedError,
    ConfigurationError,
    ExpiredError,
    IntegrityOrKeyError,
    InvalidAPIKeyError,
    InvalidCredentialsError,
    InvalidQueryError,
    NotFoundError,
    QuotaExceededError,
    StorageError,
    UserAlreadyExistsError,
    VaultException,
    WrongPasswordError,
)
from vault.object_store import HttpObjectStore, LocalObjectStore, ObjectStore
from vault.routes.auth_routes import router as auth_router
from vault.routes.file_routes import router as file_router
from vault.routes.share_routes import router as share_router
from vault.schemas.common import ErrorResponse
from vault.service_locator import get_object_store, set_crypto_envelope, set_object_store

logger = setup_logging('vault')

app = FastAPI(
    title="Vault",
    description="Encrypted, versioned file storage with quotas and share links",
    version="1.0.0"
)


def build_object_store(backend: str = OBJECT_STORE_BACKEND) -> ObjectStore:
    """
    Create the configured object store adapter.

    Raises:
        ConfigurationError: If the backend name is unknown
    """
    if backend == "local":
        logger.info(f"Using local object store at {BLOB_STORAGE_PATH}")
        return LocalObjectStore(Path(BLOB_STORAGE_PATH))
    if backend == "http":
        logger.info(f"Using blob server at {BLOBSERVER_URL}")
        return HttpObjectStore(BLOBSERVER_URL)
    raise ConfigurationError(f"Unknown object store backend '{backend}'; expected 'local' or 'http'")


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """
    Middleware to log all HTTP requests and responses.
    """
    request_id = str(uuid.uuid4())
    token = set_request_id(request_id)

    start_time = time.time()

    try:
        logger.info(f"Request started: {request.method} {request.url.path}")

        response = await call_next(request)

        duration = time.time() - start_time

        logger.info(
            f"Request completed: {request.method} {request.url.path} "
            f"status={response.status_code} duration={duration:.3f}s"
        )
    finally:
        reset_request_id(token)

    response.headers["X-Request-ID"] = request_id

    return response


@app.on_event("startup")
async def startup_event():
    """
    Initialize database, encryption and object store on application startup.
    A missing or malformed encryption key stops the service here.
    """
    logger.info("Vault service starting up...")

    init_database()
    logger.info("Database initialized")

    try:
        key = load_encryption_key(ENCRYPTION_KEY)
    except ConfigurationError as e:
        logger.critical(f"Refusing to start: {e}")
        raise

    set_crypto_envelope(CryptoEnvelope(key))
    logger.info("Encryption configured")

    set_object_store(build_object_store())


@app.on_event("shutdown")
async def shutdown_event():
    """
    Cleanup resources on application shutdown.
    """
    logger.info("Vault service shutting down...")

    try:
        store = get_object_store()
    except ConfigurationError:
        return

    await store.close()
    set_object_store(None)
    logger.info("Object store closed")


def _error_response(request: Request, exc: Exception, status_code: int, code: str, level: str = "warning") -> JSONResponse:
    message = f"{type(exc).__name__}: {exc} path={request.url.path}"
    if level == "error":
        logger.error(message, exc_info=True)
    else:
        logger.warning(message)
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(detail=str(exc), code=code).model_dump()
    )


@app.exception_handler(UserAlreadyExistsError)
async def user_already_exists_handler(request: Request, exc: UserAlreadyExistsError):
    return _error_response(request, exc, status.HTTP_400_BAD_REQUEST, "USER_ALREADY_EXISTS")


@app.exception_handler(InvalidCredentialsError)
async def invalid_credentials_handler(request: Request, exc: InvalidCredentialsError):
    return _error_response(request, exc, status.HTTP_401_UNAUTHORIZED, "INVALID_CREDENTIALS")


@app.exception_handler(InvalidAPIKeyError)
async def invalid_api_key_handler(request: Request, exc: InvalidAPIKeyError):
    return _error_response(request, exc, status.HTTP_401_UNAUTHORIZED, "INVALID_API_KEY")


@app.exception_handler(WrongPasswordError)
async def wrong_password_handler(request: Request, exc: WrongPasswordError):
    return _error_response(request, exc, status.HTTP_401_UNAUTHORIZED, "WRONG_PASSWORD")


@app.exception_handler(AccessDeniedError)
async def access_denied_handler(request: Request, exc: AccessDeniedError):
    return _error_response(request, exc, status.HTTP_403_FORBIDDEN, "ACCESS_DENIED")


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return _error_response(request, exc, status.HTTP_404_NOT_FOUND, "NOT_FOUND")


@app.exception_handler(ExpiredError)
async def expired_handler(request: Request, exc: ExpiredError):
    return _error_response(request, exc, status.HTTP_410_GONE, "SHARE_LINK_EXPIRED")


@app.exception_handler(QuotaExceededError)
async def quota_exceeded_handler(request: Request, exc: QuotaExceededError):
    return _error_response(request, exc, status.HTTP_400_BAD_REQUEST, "QUOTA_EXCEEDED")


@app.exception_handler(InvalidQueryError)
async def invalid_query_handler(request: Request, exc: InvalidQueryError):
    return _error_response(request, exc, status.HTTP_400_BAD_REQUEST, "INVALID_QUERY")


@app.exception_handler(IntegrityOrKeyError)
async def integrity_or_key_handler(request: Request, exc: IntegrityOrKeyError):
    return _error_response(request, exc, status.HTTP_500_INTERNAL_SERVER_ERROR, "FILE_UNREADABLE", level="error")


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError):
    return _error_response(request, exc, status.HTTP_503_SERVICE_UNAVAILABLE, "STORAGE_UNAVAILABLE", level="error")


@app.exception_handler(VaultException)
async def vault_exception_handler(request: Request, exc: VaultException):
    return _error_response(request, exc, status.HTTP_500_INTERNAL_SERVER_ERROR, "INTERNAL_ERROR", level="error")


app.include_router(auth_router)
app.include_router(file_router)
app.include_router(share_router)


@app.get("/")
async def root():
    """
    Root endpoint for health check.
    """
    return {"message": "Vault API", "status": "running"}


@app.get("/health")
async def health_check():
    """
    Health check endpoint for Docker healthcheck.
    Returns 200 if service is alive.
    """
    return {"status": "healthy", "service": "vault"}


@app.get("/ready")
async def ready_check():
    """
    Readiness check endpoint.
    Verifies database connectivity and that startup configured the object store.
    """
    try:
        with get_db_connection() as conn:
            conn.execute("SELECT 1")
        db_status = "ok"
    except Exception as e:
        db_status = f"error: {str(e)}"

    try:
        get_object_store()
        store_status = "ok"
    except ConfigurationError as e:
        store_status = f"error: {str(e)}"

    ready = db_status == "ok" and store_status == "ok"
    status_code = status.HTTP_200_OK if ready else status.HTTP_503_SERVICE_UNAVAILABLE

    return JSONResponse(
        status_code=status_code,
        content={
            "ready": ready,
            "database": db_status,
            "object_store": store_status
        }
    )


def main() -> None:
    """
    Start the FastAPI server with uvicorn.
    """
    uvicorn.run(
        "vault.main:app",
        host=VAULT_HOST,
        port=VAULT_PORT,
    )


if __name__ == "__main__":
    main()
