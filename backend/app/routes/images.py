"""
This module defines the API routes for uploading, listing and deleting
satellite images held in blob storage.
"""

import logging
import uuid
from pathlib import PurePosixPath
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from fastapi.concurrency import run_in_threadpool

from app.config import settings
from app.dependencies import get_storage_service, require_user
from app.models.image import ImageListResponse, UploadResponse
from app.services.storage_service import BlobStorageService

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_user)])


def _storage_filename(original_name: Optional[str]) -> str:
    """Generates a unique object name that keeps the uploaded file's extension."""
    suffix = PurePosixPath(original_name or "").suffix.lower()
    return f"{uuid.uuid4()}{suffix}"


@router.post(
    "/upload",
    response_model=UploadResponse,
    summary="Upload a satellite image",
)
async def upload_image(
    file: UploadFile = File(...),
    storage: BlobStorageService = Depends(get_storage_service),
):
    """
    Stores an uploaded image under a fresh UUID-based name.

    - Only `image/*` content types are accepted.
    - Files larger than `MAX_UPLOAD_BYTES` (10 MB by default) are rejected.

    Returns:
        UploadResponse: The signed URL and stored filename.

    Raises:
        HTTPException: 400 if the file is not an image or is too large.
        HTTPException: 500 if the upload to storage fails.
    """
    content_type = file.content_type or ""
    if not content_type.startswith("image/"):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="File must be an image")

    data = await file.read()
    if len(data) > settings.MAX_UPLOAD_BYTES:
        limit_mb = settings.MAX_UPLOAD_BYTES // (1024 * 1024)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"File size must be less than {limit_mb}MB",
        )

    filename = _storage_filename(file.filename)
    try:
        url = await run_in_threadpool(storage.upload_image, data, filename, content_type)
    except Exception as e:
        logger.error("Upload of %s failed: %s", filename, e, exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Upload failed",
        )

    return UploadResponse(url=url, filename=filename, size=len(data), type=content_type)


@router.get(
    "/images",
    response_model=ImageListResponse,
    summary="List stored images, newest first",
)
async def list_images(storage: BlobStorageService = Depends(get_storage_service)):
    try:
        images = await run_in_threadpool(storage.list_images)
    except Exception as e:
        logger.error("Failed to list images: %s", e, exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch images from blob storage",
        )
    return ImageListResponse(images=images)


@router.delete("/images", summary="Delete a stored image")
async def delete_image(
    filename: Optional[str] = None,
    storage: BlobStorageService = Depends(get_storage_service),
):
    """
    Deletes an image by its stored filename.

    Raises:
        HTTPException: 400 if no filename is given.
        HTTPException: 500 if the delete fails.
    """
    if not filename:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Filename is required")

    try:
        await run_in_threadpool(storage.delete_image, filename)
    except Exception as e:
        logger.error("Failed to delete image %s: %s", filename, e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete image from blob storage",
        )

    logger.info("Image %s deleted", filename)
    return {"success": True}
