"""
Media upload endpoint.

The API never receives file bytes. The browser asks for an upload ticket,
PUTs the file to the presigned URL, then stores the returned key on the
exercise, meal, progress entry or page it belongs to.
"""

import logging

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel, Field

from ...infrastructure.storage import (
    MediaPurpose,
    StorageError,
    UnsupportedContentTypeError,
    storage_key_owner,
)
from ..dependencies import CurrentCoach, SettingsDep, StorageClientDep

logger = logging.getLogger(__name__)

router = APIRouter()


class UploadRequest(BaseModel):
    purpose: MediaPurpose
    content_type: str = Field(description="MIME type, e.g. image/jpeg")
    size_bytes: int = Field(gt=0, description="Size of the file the client will upload")


class UploadResponse(BaseModel):
    storage_key: str = Field(description="Store this on the record the file belongs to")
    upload_url: str = Field(description="PUT the file here with the same Content-Type")
    expires_in: int = Field(description="Seconds until the URL expires")


@router.post(
    "",
    response_model=UploadResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Request an upload URL",
    responses={
        413: {"description": "File too large"},
        415: {"description": "Unsupported content type"},
    },
)
async def create_upload(
    request: UploadRequest,
    coach_id: CurrentCoach,
    settings: SettingsDep,
    storage: StorageClientDep,
) -> UploadResponse:
    if request.size_bytes > settings.upload_max_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File too large. Maximum size is {settings.upload_max_bytes} bytes."
        )

    try:
        ticket = await storage.create_upload(
            coach_id,
            request.purpose,
            request.content_type,
            expiry_seconds=settings.upload_url_expiry_seconds,
        )
    except UnsupportedContentTypeError as e:
        raise HTTPException(
            status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
            detail=str(e)
        )
    except StorageError as e:
        logger.error("Upload URL generation failed", extra={"error": str(e)})
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Storage is unavailable. Please try again."
        )

    logger.info(
        "Upload URL issued",
        extra={
            "coach_id": coach_id,
            "purpose": request.purpose.value,
            "storage_key": ticket.storage_key,
        }
    )

    return UploadResponse(
        storage_key=ticket.storage_key,
        upload_url=ticket.upload_url,
        expires_in=ticket.expires_in,
    )


class DownloadResponse(BaseModel):
    storage_key: str
    url: str
    expires_in: int


@router.get(
    "/download-url",
    response_model=DownloadResponse,
    summary="Get a temporary URL for one of my files",
    responses={404: {"description": "File not found"}},
)
async def get_download_url(
    key: str,
    coach_id: CurrentCoach,
    storage: StorageClientDep,
    expires_in: int = Query(3600, ge=60, le=7 * 24 * 3600),
) -> DownloadResponse:
    if storage_key_owner(key) != coach_id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="File not found"
        )

    try:
        url = await storage.get_presigned_url(key, expiry_seconds=expires_in)
    except StorageError as e:
        logger.warning("Download URL unavailable", extra={"storage_key": key, "error": str(e)})
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="File not found"
        )

    return DownloadResponse(storage_key=key, url=url, expires_in=expires_in)
