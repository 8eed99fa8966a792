"""
Serves locally stored uploads behind short-lived signed tokens.

Only used with ``LocalFileStorage``; S3 signed URLs point at the bucket.
"""

import logging

import jwt
from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import FileResponse

from config.media_config import MediaConfig
from src.storage import LocalFileStorage, StorageBackend, StorageError, get_storage
from src.utils import decode_media_token

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Media"])


@router.get(
    "/uploads/{storage_key:path}",
    responses={
        403: {"description": "Invalid or expired link"},
        404: {"description": "File not found"},
    },
    openapi_extra={"security": []},
)
def serve_upload(
    storage_key: str,
    token: str = Query(...),
    storage: StorageBackend = Depends(get_storage),
):
    try:
        claims = decode_media_token(token)
    except jwt.PyJWTError:
        logger.warning("Rejected media request for %s: bad or expired token", storage_key)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid or expired link")
    if claims.get("key") != storage_key:
        logger.warning("Rejected media request for %s: token issued for another key", storage_key)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid or expired link")

    if not isinstance(storage, LocalFileStorage):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")
    try:
        path = storage.path_for(storage_key)
    except StorageError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")
    if not path.is_file():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")

    return FileResponse(path, media_type=MediaConfig.content_type_for(path.name))
