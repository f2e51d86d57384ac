"""
FastAPI dependencies shared by the API routers.
"""

import logging
from typing import Optional

from fastapi import HTTPException, Request, status

from app.config import settings
from app.models.user import UserPublic
from app.services.storage_service import BlobStorageService
from app.services.user_store import UserStore
from app.services.vision_client import CustomVisionClient

logger = logging.getLogger(__name__)

SESSION_USER_KEY = "user"

_vision_client: Optional[CustomVisionClient] = None


def get_storage_service() -> BlobStorageService:
    """
    Provides a BlobStorageService instance for dependency injection.
    """
    return BlobStorageService(
        project_id=settings.GCP_PROJECT_ID,
        bucket_name=settings.GCS_BUCKET_NAME,
        signed_url_hours=settings.SIGNED_URL_EXPIRATION_HOURS,
    )


def get_user_store() -> UserStore:
    """
    Provides a UserStore bound to the configured users file.
    """
    return UserStore(
        settings.USERS_FILE,
        demo_email=settings.DEMO_USER_EMAIL,
        demo_password=settings.DEMO_USER_PASSWORD,
        rounds=settings.BCRYPT_ROUNDS,
    )


def get_vision_client() -> CustomVisionClient:
    """
    Provides the shared CustomVisionClient, created on first use.
    """
    global _vision_client
    if _vision_client is None:
        _vision_client = CustomVisionClient(settings)
    return _vision_client


async def close_vision_client() -> None:
    """Close the shared vision client connection."""
    global _vision_client
    if _vision_client is not None:
        await _vision_client.close()
        _vision_client = None


async def require_user(request: Request) -> UserPublic:
    """
    Returns the logged-in user from the signed session cookie.

    Raises:
        HTTPException: 401 if there is no session.
    """
    data = request.session.get(SESSION_USER_KEY)
    if not data:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    return UserPublic(**data)
