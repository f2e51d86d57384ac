"""
This module handles the application's configuration, loading environment variables
using Pydantic's BaseSettings for type-safe access.
"""

from typing import List, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings

PLACEHOLDER_PREDICTION_KEY = "your-custom-vision-prediction-key"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables or a .env file.

    For production, ensure these environment variables are set:
    - BACKEND_ENV: Set to "production" for production mode
    - GCS_BUCKET_NAME: Bucket holding uploaded satellite images
    - CUSTOM_VISION_*: Prediction endpoint of the trained detection model
    - SESSION_SECRET_KEY: Secret used to sign session cookies
    """

    BACKEND_ENV: str = "local"  # "local" or "production"
    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000"]

    # Blob storage
    GCP_PROJECT_ID: str = "sat-compare-local"
    GCS_BUCKET_NAME: Optional[str] = None
    SIGNED_URL_EXPIRATION_HOURS: int = 24
    MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024

    # Custom Vision prediction endpoint
    CUSTOM_VISION_PREDICTION_KEY: str = PLACEHOLDER_PREDICTION_KEY
    CUSTOM_VISION_ENDPOINT: str = "https://your-region.cognitiveservices.azure.com/"
    CUSTOM_VISION_PROJECT_ID: str = "your-project-id"
    CUSTOM_VISION_PUBLISHED_NAME: str = "your-published-model-name"
    VISION_TIMEOUT_SECONDS: float = 30.0

    # Auth
    SESSION_SECRET_KEY: str = "change-me-in-production"
    USERS_FILE: str = "data/users.json"
    BCRYPT_ROUNDS: int = 12
    DEMO_USER_EMAIL: str = "demo@example.com"
    DEMO_USER_PASSWORD: str = "demo123"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

    @field_validator('BACKEND_ENV')
    @classmethod
    def validate_backend_env(cls, v: str) -> str:
        allowed = {"local", "production"}
        value = v.lower().strip()
        if value not in allowed:
            raise ValueError(f"BACKEND_ENV must be one of {allowed}")
        return value

    @field_validator('CUSTOM_VISION_ENDPOINT')
    @classmethod
    def validate_endpoint(cls, v: str) -> str:
        """Prediction URLs are built by appending paths, so keep one trailing slash."""
        if not v:
            raise ValueError("CUSTOM_VISION_ENDPOINT cannot be empty")
        return v.rstrip('/') + '/'

    @property
    def custom_vision_configured(self) -> bool:
        key = self.CUSTOM_VISION_PREDICTION_KEY
        return bool(key) and key != PLACEHOLDER_PREDICTION_KEY


settings = Settings()
