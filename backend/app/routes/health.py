"""
This module defines the health check endpoint for the comparison API.
"""

from fastapi import APIRouter

from app.config import settings

router = APIRouter()


@router.get("/health", summary="Health check endpoint")
async def health_check():
    """
    Returns a simple status to indicate that the service is healthy, plus
    whether comparisons run against the real model or the demo result.
    """
    return {
        "status": "healthy",
        "service": "sat-compare-api",
        "mode": "custom-vision" if settings.custom_vision_configured else "demo",
    }
