"""
Storage abstraction layer for coin images and avatars.
Supports both local filesystem (development) and S3/MinIO (production).

Rows only ever store the storage key. Readable URLs are short-lived signed
links generated per response via ``get_signed_url``.
"""

import os
import logging
from functools import lru_cache
from pathlib import Path
from typing import Optional
from abc import ABC, abstractmethod
import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from config.settings import SIGNED_URL_TTL_SEC
from src.utils import make_media_token

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when the storage backend cannot complete an operation."""


def build_storage_key(*parts: str) -> str:
    """
    Join path segments into a storage key:
    - avatars/USR-1699564234-A7K9M2/1699564234000-me.png
    - coins/CON-1699564234-X3P8Q1/1699564234000-front.jpg
    """
    return "/".join(p.strip("/") for p in parts if p)


class StorageBackend(ABC):
    """Abstract base class for storage backends"""

    @abstractmethod
    async def save(self, data: bytes, storage_key: str, content_type: str) -> str:
        """
        Store ``data`` under ``storage_key`` and return the key.

        Raises:
            StorageError: the object could not be written
        """

    @abstractmethod
    async def delete(self, storage_key: str) -> bool:
        """Delete an object; returns False when nothing was deleted."""

    @abstractmethod
    def get_signed_url(self, storage_key: str, expires_in: int = SIGNED_URL_TTL_SEC) -> str:
        """Time-limited read URL for ``storage_key``."""

    @abstractmethod
    def file_exists(self, storage_key: str) -> bool:
        pass


class LocalFileStorage(StorageBackend):
    """Local filesystem storage for development"""

    def __init__(self, base_dir: str = "uploads", base_url: str = "http://localhost:8000"):
        self.base_dir = Path(base_dir)
        self.base_url = base_url.rstrip("/")
        self.base_dir.mkdir(parents=True, exist_ok=True)
        logger.info("LocalFileStorage initialized: base_dir=%s, base_url=%s", self.base_dir, self.base_url)

    def path_for(self, storage_key: str) -> Path:
        path = (self.base_dir / storage_key).resolve()
        if self.base_dir.resolve() not in path.parents:
            raise StorageError(f"Storage key escapes upload directory: {storage_key}")
        return path

    async def save(self, data: bytes, storage_key: str, content_type: str) -> str:
        file_path = self.path_for(storage_key)
        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(file_path, 'wb') as f:
                f.write(data)
        except OSError as e:
            logger.error("Error saving file %s: %s", storage_key, e)
            raise StorageError(str(e)) from e
        logger.info("Saved file locally: %s (%d bytes)", storage_key, len(data))
        return storage_key

    async def delete(self, storage_key: str) -> bool:
        try:
            file_path = self.path_for(storage_key)
            if file_path.exists():
                file_path.unlink()
                logger.info("Deleted file: %s", storage_key)
                return True
            logger.warning("File not found for deletion: %s", storage_key)
            return False
        except (OSError, StorageError) as e:
            logger.error("Error deleting file %s: %s", storage_key, e)
            return False

    def get_signed_url(self, storage_key: str, expires_in: int = SIGNED_URL_TTL_SEC) -> str:
        token = make_media_token(storage_key, expires_in)
        return f"{self.base_url}/uploads/{storage_key}?token={token}"

    def file_exists(self, storage_key: str) -> bool:
        try:
            return self.path_for(storage_key).exists()
        except StorageError:
            return False


class S3Storage(StorageBackend):
    """AWS S3/MinIO storage for production"""

    def __init__(
        self,
        bucket_name: str,
        aws_access_key: Optional[str] = None,
        aws_secret_key: Optional[str] = None,
        region: str = "us-east-1",
        endpoint_url: Optional[str] = None,  # For MinIO compatibility
    ):
        self.bucket_name = bucket_name
        self.region = region
        self.endpoint_url = endpoint_url

        session = boto3.session.Session()
        self.s3_client = session.client(
            's3',
            region_name=region,
            endpoint_url=endpoint_url,
            aws_access_key_id=aws_access_key,
            aws_secret_access_key=aws_secret_key,
            config=Config(signature_version='s3v4'),
        )

        logger.info("S3Storage initialized: bucket=%s, endpoint=%s", bucket_name, endpoint_url)

    async def save(self, data: bytes, storage_key: str, content_type: str) -> str:
        try:
            self.s3_client.put_object(
                Bucket=self.bucket_name,
                Key=storage_key,
                Body=data,
                ContentType=content_type,
            )
        except (ClientError, BotoCoreError) as e:
            logger.error("Error uploading to S3/MinIO: %s", e)
            raise StorageError(str(e)) from e
        logger.info("Uploaded to S3/MinIO: %s", storage_key)
        return storage_key

    async def delete(self, storage_key: str) -> bool:
        try:
            self.s3_client.delete_object(Bucket=self.bucket_name, Key=storage_key)
            logger.info("Deleted from S3: %s", storage_key)
            return True
        except (ClientError, BotoCoreError) as e:
            logger.error("Error deleting from S3: %s", e)
            return False

    def get_signed_url(self, storage_key: str, expires_in: int = SIGNED_URL_TTL_SEC) -> str:
        try:
            return self.s3_client.generate_presigned_url(
                'get_object',
                Params={'Bucket': self.bucket_name, 'Key': storage_key},
                ExpiresIn=expires_in,
            )
        except (ClientError, BotoCoreError) as e:
            logger.error("Error generating presigned URL: %s", e)
            raise StorageError(str(e)) from e

    def file_exists(self, storage_key: str) -> bool:
        try:
            self.s3_client.head_object(Bucket=self.bucket_name, Key=storage_key)
            return True
        except ClientError as e:
            if e.response['Error']['Code'] not in ('404', 'NoSuchKey'):
                logger.error("Error checking file existence in S3: %s", e)
            return False


def get_storage_backend() -> StorageBackend:
    """
    Get appropriate storage backend based on environment configuration.
    """
    storage_type = os.getenv("STORAGE_TYPE", "local")  # "local" or "s3"

    if storage_type == "s3":
        return S3Storage(
            bucket_name=os.getenv("S3_BUCKET_NAME", "coinhub-media"),
            aws_access_key=os.getenv("AWS_ACCESS_KEY_ID"),
            aws_secret_key=os.getenv("AWS_SECRET_ACCESS_KEY"),
            region=os.getenv("AWS_REGION", "us-east-1"),
            endpoint_url=os.getenv("S3_ENDPOINT_URL"),
        )
    return LocalFileStorage(
        base_dir=os.getenv("UPLOAD_DIR", "uploads"),
        base_url=os.getenv("BASE_URL", "http://localhost:8000"),
    )


@lru_cache(maxsize=1)
def _default_backend() -> StorageBackend:
    return get_storage_backend()


def get_storage() -> StorageBackend:
    """FastAPI dependency; tests override it with a temp-dir backend."""
    return _default_backend()


def signed_url_or_none(storage: StorageBackend, storage_key: Optional[str]) -> Optional[str]:
    """Sign a key for a response; signing problems degrade to ``None``."""
    if not storage_key:
        return None
    if storage_key.startswith(("http://", "https://")):
        return storage_key
    try:
        return storage.get_signed_url(storage_key)
    except StorageError:
        logger.warning("Could not sign storage key %s", storage_key, exc_info=True)
        return None
