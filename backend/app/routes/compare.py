"""
This module defines the endpoint that compares two satellite images by running
the detection model on both and scoring the differences.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool

from app.config import settings
from app.dependencies import get_storage_service, get_vision_client, require_user
from app.exceptions import ComparisonError, ConfigurationMissing, MalformedInput
from app.models.comparison import CompareRequest, ComparisonResult
from app.services.comparator import compare
from app.services.mock_comparison import mock_comparison
from app.services.storage_service import BlobStorageService
from app.services.vision_client import CustomVisionClient

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

router = APIRouter()


def get_optional_storage_service() -> Optional[BlobStorageService]:
    """
    Provides a BlobStorageService when storage is configured, otherwise None.
    Only bare blob names need storage to be resolved.
    """
    try:
        return get_storage_service()
    except ConfigurationMissing:
        return None


def vision_environment() -> dict:
    """Configuration snapshot for error details. Never includes the key itself."""
    return {
        "hasPredictionKey": settings.custom_vision_configured,
        "endpoint": settings.CUSTOM_VISION_ENDPOINT,
        "projectId": settings.CUSTOM_VISION_PROJECT_ID,
        "publishedName": settings.CUSTOM_VISION_PUBLISHED_NAME,
    }


async def resolve_image_url(
    reference: str, request: Request, storage: Optional[BlobStorageService]
) -> str:
    """
    Turns an image reference into a URL the prediction service can fetch.

    - `http(s)://...` is used as-is.
    - `/path` is joined to this service's base URL.
    - anything else is treated as a stored blob name and signed.
    """
    if reference.startswith(("http://", "https://")):
        return reference
    if reference.startswith("/"):
        return str(request.base_url).rstrip("/") + reference
    if storage is None:
        raise ConfigurationMissing(
            "Blob storage is not configured; cannot resolve stored image name",
            details={"missing": ["GCS_BUCKET_NAME"]},
        )
    return await run_in_threadpool(storage.signed_url, reference)


@router.post(
    "/compare",
    response_model=ComparisonResult,
    summary="Compare two satellite images",
    dependencies=[Depends(require_user)],
)
async def compare_images(
    payload: CompareRequest,
    request: Request,
    vision: CustomVisionClient = Depends(get_vision_client),
    storage: Optional[BlobStorageService] = Depends(get_optional_storage_service),
):
    """
    Runs the detection model on both images and reports the changes.

    - Rejects the request before any upstream call if either image is missing.
    - Returns a fixed demo result when no prediction key is configured.
    - Predicts both images concurrently; a failure of either fails the request.

    Raises:
        MalformedInput: 400 if `image1` or `image2` is missing.
        UpstreamUnavailable: 502 if the prediction service fails for either image.
    """
    if not payload.image1 or not payload.image2:
        raise MalformedInput("Two images are required")

    logger.info(
        "Environment check: prediction key %s, endpoint %s, project %s, iteration %s",
        "present" if settings.custom_vision_configured else "missing",
        settings.CUSTOM_VISION_ENDPOINT,
        settings.CUSTOM_VISION_PROJECT_ID,
        settings.CUSTOM_VISION_PUBLISHED_NAME,
    )
    if not settings.custom_vision_configured:
        return mock_comparison()

    try:
        image1_url = await resolve_image_url(payload.image1, request, storage)
        image2_url = await resolve_image_url(payload.image2, request, storage)

        detections1, detections2 = await vision.predict_pair(image1_url, image2_url)
        result = compare(detections1, detections2)
        logger.info(
            "Comparison complete: %d differences, change %.0f%%",
            result.changed_regions, result.change_percentage * 100,
        )
        return result
    except ComparisonError as e:
        logger.error("Custom Vision comparison failed: %s", e.message)
        e.details = {
            **e.details,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "environment": vision_environment(),
        }
        raise
    except Exception as e:
        logger.error("Unexpected comparison error: %s", e, exc_info=True)
        raise ComparisonError(
            "Comparison failed",
            details={
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "environment": vision_environment(),
            },
        ) from e
