"""Configuration settings for the vault service."""

import os

from common.constants import BLOBSERVER_PORT, DEFAULT_STORAGE_QUOTA_BYTES


DATABASE_PATH = os.environ.get("VAULT_DATABASE_PATH", "/app/data/vault.db")

VAULT_HOST = os.environ.get("VAULT_HOST", "0.0.0.0")

VAULT_PORT = int(os.environ.get("VAULT_PORT", "8000"))

# 64 hex characters (32 bytes). Required: the service refuses to start without it.
ENCRYPTION_KEY = os.environ.get("VAULT_ENCRYPTION_KEY", "")

# "local" stores blobs on this host, "http" talks to a blob server.
OBJECT_STORE_BACKEND = os.environ.get("VAULT_OBJECT_STORE", "local")

BLOB_STORAGE_PATH = os.environ.get("VAULT_BLOB_STORAGE_PATH", "/app/data/blobs")

BLOBSERVER_URL = os.environ.get("VAULT_BLOBSERVER_URL", f"http://blobserver:{BLOBSERVER_PORT}")

APP_URL = os.environ.get("VAULT_APP_URL", "http://localhost:3000")

VERIFY_CHECKSUM_ON_DOWNLOAD = os.environ.get("VAULT_VERIFY_CHECKSUM", "true").lower() in ("1", "true", "yes")

DEFAULT_STORAGE_QUOTA = int(os.environ.get("VAULT_DEFAULT_QUOTA", str(DEFAULT_STORAGE_QUOTA_BYTES)))

API_KEY_PREFIX = "vlt_"
