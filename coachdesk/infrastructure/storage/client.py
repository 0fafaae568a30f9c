"""
Object storage client for coach media.

Exercise images, meal photos, progress photos and page logos are uploaded
by the browser straight to Cloudflare R2 (S3-compatible) through presigned
URLs. The API only issues those URLs; records then store the returned
storage key.

Mock mode keeps keys in memory and hands out mock:// URLs, enabling API
testing without provisioning object storage.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol
from uuid import uuid4

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when storage operations fail."""
    pass


class UnsupportedContentTypeError(StorageError):
    """Raised when asked to store a file type the bucket doesn't accept."""
    pass


class MediaPurpose(Enum):
    """What an uploaded file is for. Determines its key prefix."""
    EXERCISE_IMAGE = "exercise-images"
    EXERCISE_VIDEO = "exercise-videos"
    MEAL_IMAGE = "meal-images"
    PROGRESS_PHOTO = "progress-photos"
    PAGE_IMAGE = "page-images"
    FORM_UPLOAD = "form-uploads"


_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
    "video/mp4": "mp4",
    "video/quicktime": "mov",
    "application/pdf": "pdf",
}


def build_storage_key(coach_id: str, purpose: MediaPurpose, content_type: str) -> str:
    """
    Build the object key for a new upload.

    Path structure: {purpose}/{coach_id}/{uuid}.{ext}
    Keys are grouped by coach so a coach's media can be listed or removed
    with one prefix.
    """
    ext = _EXTENSIONS.get(content_type)
    if ext is None:
        raise UnsupportedContentTypeError(f"Unsupported content type: {content_type}")
    return f"{purpose.value}/{coach_id}/{uuid4()}.{ext}"


def storage_key_owner(storage_key: str) -> str:
    """Coach id inside a key made by build_storage_key, or "" for any other key."""
    parts = storage_key.split("/")
    return parts[1] if len(parts) == 3 else ""


@dataclass
class StorageConfig:
    """Configuration for R2/S3-compatible storage."""
    access_key_id: str
    secret_access_key: str
    bucket_name: str
    endpoint_url: str
    region: str = "auto"  # R2 uses 'auto' for region


@dataclass
class UploadTicket:
    """Where the browser should PUT a file, and the key to store afterwards."""
    storage_key: str
    upload_url: str
    expires_in: int


class StorageClient(Protocol):
    """
    Protocol for object storage operations.

    Tests provide the mock and the R2 client can be swapped for another
    S3-compatible backend without changing dependent code.
    """

    async def create_upload(
        self,
        coach_id: str,
        purpose: MediaPurpose,
        content_type: str,
        expiry_seconds: int = 900,
    ) -> UploadTicket:
        """Reserve a key and generate a presigned PUT URL for it."""
        ...

    async def get_presigned_url(
        self,
        storage_key: str,
        expiry_seconds: int = 3600,
    ) -> str:
        """Generate temporary download URL."""
        ...


class R2StorageClient:
    """
    Cloudflare R2 object storage client.

    Uses boto3 because R2 is S3-compatible. Methods are async to match the
    Protocol even though boto3 is synchronous; presigning is a local
    computation and does not block on the network.
    """

    def __init__(self, config: StorageConfig) -> None:
        import boto3
        from botocore.config import Config

        self._config = config
        # R2 only accepts SigV4 with path-style bucket addressing
        self._s3_client = boto3.client(
            's3',
            endpoint_url=config.endpoint_url,
            aws_access_key_id=config.access_key_id,
            aws_secret_access_key=config.secret_access_key,
            region_name=config.region,
            config=Config(signature_version='s3v4', s3={'addressing_style': 'path'}),
        )
        logger.info("R2 storage ready", extra={"bucket": config.bucket_name})

    def _presign(self, operation: str, params: dict, expiry_seconds: int) -> str:
        params = {'Bucket': self._config.bucket_name, **params}
        try:
            return self._s3_client.generate_presigned_url(
                operation, Params=params, ExpiresIn=expiry_seconds,
            )
        except Exception as e:
            logger.error(
                "Presigning failed",
                extra={"operation": operation, "storage_key": params['Key'], "error": str(e)}
            )
            raise StorageError(f"Could not presign {operation}: {e}") from e

    async def create_upload(
        self,
        coach_id: str,
        purpose: MediaPurpose,
        content_type: str,
        expiry_seconds: int = 900,
    ) -> UploadTicket:
        storage_key = build_storage_key(coach_id, purpose, content_type)
        url = self._presign(
            'put_object',
            {'Key': storage_key, 'ContentType': content_type},
            expiry_seconds,
        )
        logger.debug(
            "Issued upload URL",
            extra={"coach_id": coach_id, "storage_key": storage_key}
        )
        return UploadTicket(storage_key=storage_key, upload_url=url, expires_in=expiry_seconds)

    async def get_presigned_url(
        self,
        storage_key: str,
        expiry_seconds: int = 3600,
    ) -> str:
        return self._presign('get_object', {'Key': storage_key}, expiry_seconds)


# ---------------------------------------------------------------------------
# Mock Storage for Local Development
# ---------------------------------------------------------------------------

class MockStorageClient:
    """
    In-memory storage for local development.

    Remembers issued keys and returns mock:// URLs for them.
    """

    def __init__(self) -> None:
        self._keys: set[str] = set()
        logger.info("Initialized mock storage client (in-memory)")

    async def create_upload(
        self,
        coach_id: str,
        purpose: MediaPurpose,
        content_type: str,
        expiry_seconds: int = 900,
    ) -> UploadTicket:
        storage_key = build_storage_key(coach_id, purpose, content_type)
        self._keys.add(storage_key)

        logger.debug(
            "Issued mock upload URL",
            extra={"coach_id": coach_id, "storage_key": storage_key}
        )

        return UploadTicket(
            storage_key=storage_key,
            upload_url=f"mock://storage/{storage_key}?upload",
            expires_in=expiry_seconds,
        )

    async def get_presigned_url(
        self,
        storage_key: str,
        expiry_seconds: int = 3600,
    ) -> str:
        if storage_key not in self._keys:
            raise StorageError(f"Object not found: {storage_key}")
        return f"mock://storage/{storage_key}"


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

def create_storage_client(
    config: Optional[StorageConfig] = None,
    mock_mode: bool = False,
) -> StorageClient:
    """R2 client for `config`, or the in-memory client when `mock_mode` is set."""
    if mock_mode:
        return MockStorageClient()
    if config is None:
        raise ValueError("R2 storage needs a StorageConfig")
    return R2StorageClient(config)
