"""
Upload validation for coin photos, avatars and trade-offer images.
Checks type and size limits and makes sure the bytes decode as an image.
"""

import io
import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from fastapi import HTTPException, UploadFile, status
from PIL import Image, UnidentifiedImageError

from config.media_config import MediaConfig
from src.utils import clean_filename

logger = logging.getLogger(__name__)

# Pillow cannot open HEIC without a plugin; those are accepted on type alone
UNDECODABLE_TYPES = {'image/heic'}


@dataclass
class ValidatedImage:
    data: bytes
    filename: str
    content_type: str
    width: Optional[int] = None
    height: Optional[int] = None

    @property
    def size(self) -> int:
        return len(self.data)


class MediaValidator:
    """
    Media file validator for type checking and size limits.
    """

    @classmethod
    def check_type(cls, filename: Optional[str], content_type: Optional[str], avatar: bool = False) -> Optional[str]:
        """Return an error message when the file type is not accepted."""
        if avatar:
            if not MediaConfig.is_allowed_avatar(filename):
                return f"Unsupported file type. Allowed: {', '.join(MediaConfig.ALLOWED_AVATAR_EXTENSIONS)}"
            return None
        if not MediaConfig.is_allowed_image(filename, content_type):
            allowed = sorted({e for exts in MediaConfig.ALLOWED_IMAGE_TYPES.values() for e in exts})
            return f"Unsupported file type. Allowed: {', '.join(allowed)}"
        return None

    @classmethod
    def check_size(cls, size: int, limit: int) -> Optional[str]:
        if size == 0:
            return "Empty file"
        if size > limit:
            return f"File too large. Maximum size is {limit // (1024 * 1024)} MB"
        return None

    @staticmethod
    def probe_dimensions(data: bytes) -> Tuple[int, int]:
        """
        Decode the header and verify the image.

        Raises:
            ValueError: the bytes are not a readable image
        """
        try:
            with Image.open(io.BytesIO(data)) as img:
                width, height = img.size
                img.verify()
        except (UnidentifiedImageError, OSError, SyntaxError) as e:
            raise ValueError("File is not a valid image") from e
        return width, height


async def read_image_upload(file: UploadFile, avatar: bool = False) -> ValidatedImage:
    """
    Read an ``UploadFile`` and validate it.

    Raises HTTPException 400 for a bad type or undecodable content and 413
    when the file is larger than the configured limit.
    """
    filename = clean_filename(file.filename)
    error = MediaValidator.check_type(file.filename, file.content_type, avatar=avatar)
    if error:
        logger.warning("Rejected upload %s (%s): %s", filename, file.content_type, error)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=error)

    data = await file.read()
    limit = MediaConfig.MAX_AVATAR_SIZE if avatar else MediaConfig.MAX_IMAGE_SIZE
    error = MediaValidator.check_size(len(data), limit)
    if error:
        code = status.HTTP_400_BAD_REQUEST if not data else status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
        logger.warning("Rejected upload %s: %s", filename, error)
        raise HTTPException(status_code=code, detail=error)

    content_type = file.content_type if file.content_type in MediaConfig.ALLOWED_IMAGE_TYPES \
        else MediaConfig.content_type_for(filename)

    width = height = None
    if content_type not in UNDECODABLE_TYPES:
        try:
            width, height = MediaValidator.probe_dimensions(data)
        except ValueError as e:
            logger.warning("Rejected upload %s: %s", filename, e)
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return ValidatedImage(data=data, filename=filename, content_type=content_type, width=width, height=height)
