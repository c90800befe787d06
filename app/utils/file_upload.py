"""
File Upload Utility - validate image uploads before they go to storage.

Supported formats:
- JPEG (.jpg, .jpeg)
- PNG (.png)
- GIF (.gif)
- WebP (.webp)

Max file size: settings.max_upload_mb (5MB by default)
"""

from dataclasses import dataclass
from typing import List

from fastapi import UploadFile

from app.core.config import get_settings
from app.core.exceptions import BadRequestError, PayloadTooLargeError

ALLOWED_EXTENSIONS = {'.jpg', '.jpeg', '.png', '.gif', '.webp'}
ALLOWED_CONTENT_TYPES = {'image/jpeg', 'image/png', 'image/gif', 'image/webp'}
MAX_POST_ATTACHMENTS = 5


@dataclass
class ImageFile:
    """An upload that passed validation, held in memory until stored."""
    filename: str
    content_type: str
    content: bytes


def get_file_extension(filename: str) -> str:
    """Get lowercase file extension."""
    if '.' not in filename:
        return ''
    return '.' + filename.rsplit('.', 1)[1].lower()


async def read_image_file(file: UploadFile) -> ImageFile:
    """
    Validate and read an uploaded image.

    Raises:
        BadRequestError: missing filename or not an allowed image type
        PayloadTooLargeError: larger than the configured limit
    """
    if not file.filename:
        raise BadRequestError("No filename provided")

    ext = get_file_extension(file.filename)
    content_type = (file.content_type or '').lower()
    if ext not in ALLOWED_EXTENSIONS or content_type not in ALLOWED_CONTENT_TYPES:
        raise BadRequestError("Invalid file type. Only images are allowed.")

    content = await file.read()

    settings = get_settings()
    if len(content) > settings.max_upload_bytes:
        raise PayloadTooLargeError(f"File too large. Maximum size: {settings.max_upload_mb}MB")

    return ImageFile(filename=file.filename, content_type=content_type, content=content)


async def read_attachments(files: List[UploadFile]) -> List[ImageFile]:
    """Validate up to MAX_POST_ATTACHMENTS images for a post."""
    files = [f for f in files or [] if f is not None and f.filename]
    if len(files) > MAX_POST_ATTACHMENTS:
        raise BadRequestError(f"At most {MAX_POST_ATTACHMENTS} attachments are allowed")
    return [await read_image_file(f) for f in files]
