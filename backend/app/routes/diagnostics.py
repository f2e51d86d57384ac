"""
This module defines configuration checks for the storage and vision
collaborators. Responses report whether credentials are present, never their values.
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.concurrency import run_in_threadpool

from app.config import settings
from app.dependencies import get_storage_service, get_vision_client, require_user
from app.exceptions import ConfigurationMissing
from app.routes.compare import vision_environment
from app.services.vision_client import CustomVisionClient

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_user)])

SAMPLE_IMAGE_URL = "https://images.unsplash.com/photo-1446776653964-20c1d3a81b06?w=400"


@router.get("/storage", summary="Check blob storage configuration")
async def storage_diagnostics():
    """
    Verifies that the bucket is configured and reachable by listing its images.
    """
    config = {
        "projectId": settings.GCP_PROJECT_ID,
        "bucketName": settings.GCS_BUCKET_NAME or "MISSING",
    }
    try:
        storage = get_storage_service()
        images = await run_in_threadpool(storage.list_images)
    except ConfigurationMissing as e:
        return {"success": False, "error": e.message, "details": config}
    except Exception as e:
        logger.error("Storage diagnostics failed: %s", e)
        return {"success": False, "error": "Storage operation failed", "details": config}

    return {"success": True, "imageCount": len(images), "details": config}


@router.get("/vision", summary="Check Custom Vision configuration")
async def vision_diagnostics(
    image_url: str = SAMPLE_IMAGE_URL,
    vision: CustomVisionClient = Depends(get_vision_client),
):
    """
    Runs every prediction strategy against a sample image and reports the
    outcome of each, so a misconfigured project or iteration is easy to spot.
    """
    config = vision_environment()
    if not settings.custom_vision_configured:
        return {"success": False, "error": "Prediction key is not configured", "config": config}

    report = await vision.probe(image_url)
    logger.info("Custom Vision diagnostics: %s", report)
    return {
        "success": any(outcome["ok"] for outcome in report.values()),
        "config": config,
        "strategies": report,
    }
