"""
This module defines the Pydantic models for stored satellite images and the
upload/listing API responses.
"""

from typing import List

from pydantic import BaseModel, Field


class BlobMetadata(BaseModel):
    """Metadata written alongside every uploaded image."""
    filename: str
    uploadDate: str = Field(..., description="ISO-8601 upload timestamp")
    contentType: str
    size: int = Field(..., ge=0, description="Size in bytes")


class StoredImage(BaseModel):
    """An image as listed for the image library."""
    id: str = Field(..., description="Object name without its extension")
    url: str = Field(..., description="Time-limited read-only signed URL")
    name: str
    uploadDate: str
    size: int
    type: str


class ImageListResponse(BaseModel):
    images: List[StoredImage]
    storage: str = "gcs"


class UploadResponse(BaseModel):
    url: str
    filename: str
    size: int
    type: str
    storage: str = "gcs"
