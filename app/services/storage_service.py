"""
Storage Service - hands image bytes to Cloudinary and keeps only the URL.

Post images:  folder student-collab/posts,   limited to 800x600
Avatars:      folder student-collab/avatars, filled to 200x200 around the face
"""

from functools import lru_cache
from typing import Dict, List

import cloudinary
import cloudinary.uploader

from app.core.config import get_settings
from app.core.exceptions import UploadError
from app.core.logging import get_logger
from app.utils.file_upload import ImageFile

logger = get_logger(__name__)

POST_IMAGE_OPTIONS = {
    "folder": "student-collab/posts",
    "allowed_formats": ["jpg", "jpeg", "png", "gif", "webp"],
    "transformation": [
        {"width": 800, "height": 600, "crop": "limit"},
        {"quality": "auto"}
    ]
}

AVATAR_OPTIONS = {
    "folder": "student-collab/avatars",
    "allowed_formats": ["jpg", "jpeg", "png", "gif", "webp"],
    "transformation": [
        {"width": 200, "height": 200, "crop": "fill", "gravity": "face"},
        {"quality": "auto"}
    ]
}


class StorageService:
    """
    Thin wrapper over cloudinary.uploader.
    """

    def __init__(self):
        settings = get_settings()
        cloudinary.config(
            cloud_name=settings.cloudinary_cloud_name,
            api_key=settings.cloudinary_api_key,
            api_secret=settings.cloudinary_api_secret,
            secure=True
        )

    def _upload(self, image: ImageFile, options: dict) -> str:
        try:
            result = cloudinary.uploader.upload(image.content, **options)
        except Exception as e:
            logger.error(f"Upload of {image.filename} failed: {e}")
            raise UploadError("Image upload failed")

        url = result.get("secure_url") or result.get("url")
        if not url:
            raise UploadError("Image upload failed")
        logger.info(f"Uploaded {image.filename} to {options['folder']}")
        return url

    def upload_post_images(self, images: List[ImageFile]) -> List[Dict[str, str]]:
        """Upload post attachments. Returns [{filename, url, type}, ...]."""
        return [
            {
                "filename": image.filename,
                "url": self._upload(image, POST_IMAGE_OPTIONS),
                "type": image.content_type
            }
            for image in images
        ]

    def upload_avatar(self, image: ImageFile) -> str:
        return self._upload(image, AVATAR_OPTIONS)


@lru_cache()
def get_storage_service() -> StorageService:
    return StorageService()
