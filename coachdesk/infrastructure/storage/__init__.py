"""
Object storage integration for coach media (images, photos, videos).

Supports R2 (Cloudflare) and S3 (AWS) via S3-compatible API.
Includes mock mode for local development without credentials.
"""

from .client import (
    MediaPurpose,
    StorageClient,
    StorageConfig,
    StorageError,
    UnsupportedContentTypeError,
    UploadTicket,
    create_storage_client,
    storage_key_owner,
)

__all__ = [
    "MediaPurpose",
    "StorageClient",
    "StorageConfig",
    "StorageError",
    "UnsupportedContentTypeError",
    "UploadTicket",
    "create_storage_client",
    "storage_key_owner",
]
