"""Project-wide constants (storage quota, crypto sizes, default ports)."""

DEFAULT_STORAGE_QUOTA_BYTES: int = 10 * 1024 * 1024 * 1024  # 10 GiB per user

ENCRYPTION_KEY_BYTES: int = 32  # AES-256
ENCRYPTION_IV_BYTES: int = 12  # 96-bit GCM nonce

SHARE_TOKEN_BYTES: int = 32
STORAGE_KEY_SUFFIX_BYTES: int = 8

DEFAULT_PAGE_SIZE: int = 50
MAX_PAGE_SIZE: int = 200

BLOBSERVER_PORT: int = 9000
BLOB_METADATA_HEADER_PREFIX: str = "x-blob-meta-"
BLOB_REQUEST_TIMEOUT_SECONDS: float = 30.0

USER_CHANNEL_PREFIX: str = "user:"
