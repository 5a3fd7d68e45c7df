"""
Blob storage for ExamPortal
Resumes and certificate files kept as private Cloudinary raw assets
"""

import logging
import time
import uuid
from pathlib import PurePosixPath
from typing import Any, Dict, Optional

import cloudinary
import cloudinary.exceptions
import cloudinary.uploader
import cloudinary.utils
from fastapi import Request

from app.core.config import settings
from app.core.exceptions import ExternalServiceException, StorageConfigurationError

logger = logging.getLogger(__name__)


class StorageService:
    """
    Cloudinary-backed file storage

    Constructed once at startup (see ``build_storage``) and shared through
    ``app.state.storage``. Files are uploaded as ``authenticated`` raw
    assets, so reads go through time-limited signed URLs.
    """

    resource_type = "raw"
    delivery_type = "authenticated"

    def __init__(self, cloud_name: str, api_key: str, api_secret: str, folder: str = "examportal"):
        cloudinary.config(cloud_name=cloud_name, api_key=api_key, api_secret=api_secret, secure=True)
        self.folder = folder
        logger.info("Cloudinary storage configured", extra={"cloud_name": cloud_name})

    def upload(self, data: bytes, filename: str, folder: str) -> Dict[str, Any]:
        """
        Upload a file

        Args:
            data: File content
            filename: Original filename; only its extension is kept
            folder: Sub-folder under the configured root

        Returns:
            ``public_id``, ``bytes`` and ``url`` of the stored asset
        """
        suffix = PurePosixPath(filename or "").suffix.lower()
        public_id = f"{uuid.uuid4().hex}{suffix}"
        try:
            result = cloudinary.uploader.upload(
                data,
                folder=f"{self.folder}/{folder}",
                public_id=public_id,
                resource_type=self.resource_type,
                type=self.delivery_type,
                overwrite=False,
            )
        except cloudinary.exceptions.Error as e:
            logger.error(f"Failed to upload file: {e}")
            raise ExternalServiceException("Storage", "File upload failed")

        logger.info("File uploaded", extra={"public_id": result.get("public_id")})
        return {
            "public_id": result["public_id"],
            "bytes": result.get("bytes", len(data)),
            "url": result.get("secure_url"),
        }

    def delete(self, public_id: str) -> bool:
        try:
            result = cloudinary.uploader.destroy(
                public_id, resource_type=self.resource_type, type=self.delivery_type
            )
        except cloudinary.exceptions.Error as e:
            logger.error(f"Failed to delete file {public_id}: {e}")
            raise ExternalServiceException("Storage", "File deletion failed")
        return result.get("result") == "ok"

    def signed_url(self, public_id: str, expires_in: Optional[int] = None) -> str:
        """Time-limited download URL for a private asset"""
        expires_at = int(time.time()) + (expires_in or settings.SIGNED_URL_TTL_SECONDS)
        return cloudinary.utils.private_download_url(
            public_id,
            "",
            resource_type=self.resource_type,
            type=self.delivery_type,
            expires_at=expires_at,
        )


def build_storage() -> Optional[StorageService]:
    """
    Construct the storage client from settings

    Returns None when storage is disabled.

    Raises:
        StorageConfigurationError: storage enabled without credentials
    """
    if not settings.STORAGE_ENABLED:
        logger.info("Blob storage is disabled")
        return None

    if not settings.storage_configured():
        raise StorageConfigurationError()

    return StorageService(
        cloud_name=settings.CLOUDINARY_CLOUD_NAME,
        api_key=settings.CLOUDINARY_API_KEY,
        api_secret=settings.CLOUDINARY_API_SECRET,
        folder=settings.STORAGE_FOLDER,
    )


def get_storage(request: Request) -> StorageService:
    """Dependency returning the startup-built storage client"""
    storage = getattr(request.app.state, "storage", None)
    if storage is None:
        raise ExternalServiceException("Storage", "File storage is not enabled")
    return storage
