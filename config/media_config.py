"""
Media configuration for CoinHub.
Defines allowed file types, size limits and storage folders.
"""

from typing import Dict, List, Optional

from config.settings import MAX_UPLOAD_BYTES


class MediaConfig:
    """
    Centralized media configuration.
    """

    # ============================================================================
    # FILE TYPE CONFIGURATIONS
    # ============================================================================

    # Coin photos
    ALLOWED_IMAGE_TYPES: Dict[str, List[str]] = {
        'image/jpeg': ['.jpg', '.jpeg'],
        'image/png': ['.png'],
        'image/gif': ['.gif'],
        'image/webp': ['.webp'],
        'image/heic': ['.heic'],
    }

    # Avatars are restricted to the formats every client can render
    ALLOWED_AVATAR_EXTENSIONS: List[str] = ['.jpg', '.jpeg', '.png', '.webp']

    # ============================================================================
    # FILE SIZE LIMITS (in bytes)
    # ============================================================================

    MAX_IMAGE_SIZE: int = MAX_UPLOAD_BYTES
    MAX_AVATAR_SIZE: int = MAX_UPLOAD_BYTES

    # ============================================================================
    # COUNT LIMITS
    # ============================================================================

    MAX_IMAGES_PER_COIN: int = 10
    MIN_TRADE_OFFER_IMAGES: int = 1
    MAX_TRADE_OFFER_IMAGES: int = 5

    # ============================================================================
    # STORAGE FOLDERS
    # ============================================================================

    AVATAR_FOLDER: str = 'avatars'
    COIN_FOLDER: str = 'coins'

    @classmethod
    def extension_of(cls, filename: Optional[str]) -> str:
        if not filename or '.' not in filename:
            return ''
        return '.' + filename.rsplit('.', 1)[-1].lower()

    @classmethod
    def is_allowed_image(cls, filename: Optional[str], content_type: Optional[str]) -> bool:
        ext = cls.extension_of(filename)
        if content_type in cls.ALLOWED_IMAGE_TYPES:
            return not ext or ext in cls.ALLOWED_IMAGE_TYPES[content_type]
        return any(ext in exts for exts in cls.ALLOWED_IMAGE_TYPES.values())

    @classmethod
    def is_allowed_avatar(cls, filename: Optional[str]) -> bool:
        return cls.extension_of(filename) in cls.ALLOWED_AVATAR_EXTENSIONS

    @classmethod
    def content_type_for(cls, filename: Optional[str], fallback: str = 'application/octet-stream') -> str:
        ext = cls.extension_of(filename)
        for mime, exts in cls.ALLOWED_IMAGE_TYPES.items():
            if ext in exts:
                return mime
        return fallback
