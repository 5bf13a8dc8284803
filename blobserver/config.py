"""Configuration settings for the blob server."""

import os

from common.constants import BLOBSERVER_PORT


BLOB_STORAGE_PATH = os.environ.get("BLOBSERVER_STORAGE_PATH", "/app/data/blobs")

BLOBSERVER_HOST = os.environ.get("BLOBSERVER_HOST", "0.0.0.0")

BLOBSERVER_PORT = int(os.environ.get("BLOBSERVER_PORT", str(BLOBSERVER_PORT)))
