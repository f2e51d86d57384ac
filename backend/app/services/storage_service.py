"""
This module provides a service for storing uploaded satellite images in
Google Cloud Storage and handing out time-limited read-only signed URLs.
"""

import logging
from datetime import datetime, timedelta, timezone
from pathlib import PurePosixPath
from typing import List, Optional

from google.api_core.exceptions import NotFound
from google.cloud import storage

from app.exceptions import ConfigurationMissing
from app.models.image import BlobMetadata, StoredImage

logger = logging.getLogger(__name__)


class BlobStorageService:
    """
    A service class wrapping a single Cloud Storage bucket. Object metadata
    mirrors `BlobMetadata` so listings can show the original upload details.

    All methods are blocking; call them from async routes through the threadpool.
    """

    def __init__(
        self,
        project_id: str,
        bucket_name: Optional[str],
        signed_url_hours: int = 24,
        client: Optional[storage.Client] = None,
    ):
        """
        Initializes the Cloud Storage client.

        Args:
            project_id (str): The Google Cloud project ID.
            bucket_name (Optional[str]): The bucket holding uploaded images.
            signed_url_hours (int): Lifetime of generated signed URLs.
            client (Optional[storage.Client]): Pre-built client, mainly for tests.
        """
        if not bucket_name:
            logger.error("Cloud Storage bucket is not configured (GCS_BUCKET_NAME missing)")
            raise ConfigurationMissing(
                "Blob storage is not configured",
                details={"missing": ["GCS_BUCKET_NAME"]},
            )
        try:
            self.client = client or storage.Client(project=project_id)
            self.bucket = self.client.bucket(bucket_name)
        except Exception as e:
            logger.exception("Failed to create Cloud Storage client for project %s: %s", project_id, e)
            raise
        self.bucket_name = bucket_name
        self.signed_url_hours = signed_url_hours

    def ensure_bucket_exists(self) -> None:
        """Creates the bucket if it does not exist yet."""
        if self.bucket.exists():
            return
        logger.info("Creating bucket %s...", self.bucket_name)
        self.client.create_bucket(self.bucket)
        logger.info("Bucket %s created", self.bucket_name)

    def signed_url(self, filename: str) -> str:
        """Returns a read-only V4 signed URL for the object."""
        blob = self.bucket.blob(filename)
        return blob.generate_signed_url(
            version="v4",
            expiration=timedelta(hours=self.signed_url_hours),
            method="GET",
        )

    def upload_image(self, data: bytes, filename: str, content_type: str) -> str:
        """
        Uploads image bytes with their metadata.

        Returns:
            str: A signed URL for the uploaded object.
        """
        logger.info("Starting image upload: %s", filename)
        self.ensure_bucket_exists()

        metadata = BlobMetadata(
            filename=filename,
            uploadDate=datetime.now(timezone.utc).isoformat(),
            contentType=content_type,
            size=len(data),
        )
        blob = self.bucket.blob(filename)
        # Custom metadata values must be strings.
        blob.metadata = {key: str(value) for key, value in metadata.model_dump().items()}
        blob.upload_from_string(data, content_type=content_type)

        logger.info("Upload of %s successful (%d bytes)", filename, len(data))
        return self.signed_url(filename)

    def list_images(self) -> List[StoredImage]:
        """Lists image objects in the bucket, newest first."""
        self.ensure_bucket_exists()
        images = []
        skipped = 0
        for blob in self.client.list_blobs(self.bucket_name):
            content_type = blob.content_type or ""
            if not content_type.startswith("image/"):
                skipped += 1
                continue

            meta = blob.metadata or {}
            updated = blob.updated or datetime.now(timezone.utc)
            try:
                size = int(meta.get("size", 0)) or blob.size or 0
            except ValueError:
                size = blob.size or 0

            images.append(
                StoredImage(
                    id=PurePosixPath(blob.name).stem,
                    url=self.signed_url(blob.name),
                    name=meta.get("filename") or blob.name,
                    uploadDate=meta.get("uploadDate") or updated.isoformat(),
                    size=size,
                    type=meta.get("contentType") or content_type,
                )
            )

        logger.info("Found %d images (%d non-image objects skipped)", len(images), skipped)
        images.sort(key=lambda image: image.uploadDate, reverse=True)
        return images

    def delete_image(self, filename: str) -> None:
        """Deletes the object; a missing object is not an error."""
        try:
            self.bucket.blob(filename).delete()
            logger.info("Deleted %s from bucket %s", filename, self.bucket_name)
        except NotFound:
            logger.info("Object %s already absent from bucket %s", filename, self.bucket_name)
