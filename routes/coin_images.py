# routes/coin_images.py
"""
Coin photo upload, listing, deletion and ordering.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config.db import get_db
from config.dependencies import require_user, current_user_optional
from config.media_config import MediaConfig
from model.coin import CoinImage
from model.user import Users
from schema.base import SuccessOut
from schema.coin import CoinImageOut, ImageReorderIn
from src.media_processor import read_image_upload
from src.route_helpers import build_image, ensure_coin_owner, ensure_coin_visible, get_coin_or_404
from src.storage import StorageBackend, StorageError, build_storage_key, get_storage
from src.utils import unix_millis

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/{coin_id}/images",
    response_model=CoinImageOut,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Bad Request - Unsupported file type or too many images"},
        403: {"description": "Forbidden - Not the owner"},
        404: {"description": "Coin not found"},
        413: {"description": "Payload Too Large"},
        503: {"description": "Storage unavailable"},
    },
)
async def upload_coin_image(
    coin_id: str,
    file: UploadFile = File(...),
    user: Users = Depends(require_user),
    db: Session = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
):
    logger.info("Coin image upload: coin=%s user=%s file=%s", coin_id, user.id, file.filename)
    coin = get_coin_or_404(db, coin_id)
    ensure_coin_owner(coin, user, "add images to")

    existing = len(coin.images)
    if existing >= MediaConfig.MAX_IMAGES_PER_COIN:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"A coin can have at most {MediaConfig.MAX_IMAGES_PER_COIN} images",
        )

    image = await read_image_upload(file)
    key = build_storage_key(MediaConfig.COIN_FOLDER, coin.id, f"{unix_millis()}-{image.filename}")
    try:
        await storage.save(image.data, key, image.content_type)
    except StorageError:
        logger.error("Storing coin image failed: coin=%s key=%s", coin.id, key, exc_info=True)
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Failed to store image")

    row = CoinImage(coin_id=coin.id, url=key, order_index=existing)
    try:
        db.add(row)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.error("Saving coin image row failed; removing %s", key, exc_info=True)
        await storage.delete(key)
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Failed to save image")

    logger.info("Coin image stored: coin=%s image=%s order=%d", coin.id, row.id, row.order_index)
    return build_image(row, storage)


@router.get(
    "/{coin_id}/images",
    response_model=List[CoinImageOut],
    responses={403: {"description": "Coin is private"}, 404: {"description": "Coin not found"}},
)
def list_coin_images(
    coin_id: str,
    viewer: Optional[Users] = Depends(current_user_optional),
    db: Session = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
):
    coin = get_coin_or_404(db, coin_id)
    ensure_coin_visible(coin, viewer)
    rows = db.query(CoinImage).filter(CoinImage.coin_id == coin.id).order_by(CoinImage.order_index).all()
    return [build_image(r, storage) for r in rows]


@router.delete(
    "/{coin_id}/images/{image_id}",
    response_model=SuccessOut,
    responses={403: {"description": "Forbidden - Not the owner"}, 404: {"description": "Image not found"}},
)
async def delete_coin_image(
    coin_id: str,
    image_id: str,
    user: Users = Depends(require_user),
    db: Session = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
):
    coin = get_coin_or_404(db, coin_id)
    ensure_coin_owner(coin, user, "delete images from")

    row = db.query(CoinImage).filter(CoinImage.id == image_id, CoinImage.coin_id == coin.id).first()
    if not row:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Image not found")

    key = row.url
    db.delete(row)
    db.commit()

    if not key.startswith(("http://", "https://")):
        deleted = await storage.delete(key)
        if not deleted:
            logger.warning("Stored object %s for image %s was not deleted", key, image_id)
    logger.info("Coin image deleted: coin=%s image=%s", coin.id, image_id)
    return SuccessOut()


@router.post(
    "/{coin_id}/images/reorder",
    response_model=List[CoinImageOut],
    responses={
        400: {"description": "Bad Request - Unknown image id"},
        403: {"description": "Forbidden - Not the owner"},
        404: {"description": "Coin not found"},
    },
)
def reorder_coin_images(
    coin_id: str,
    body: ImageReorderIn,
    user: Users = Depends(require_user),
    db: Session = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
):
    coin = get_coin_or_404(db, coin_id)
    ensure_coin_owner(coin, user, "reorder images of")

    by_id = {img.id: img for img in coin.images}
    unknown = [o.id for o in body.images if o.id not in by_id]
    if unknown:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Images do not belong to this coin: {', '.join(unknown)}",
        )

    for order in body.images:
        by_id[order.id].order_index = order.order_index
    db.commit()

    rows = db.query(CoinImage).filter(CoinImage.coin_id == coin.id).order_by(CoinImage.order_index).all()
    logger.info("Reordered %d images on coin=%s", len(body.images), coin.id)
    return [build_image(r, storage) for r in rows]
