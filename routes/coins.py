# routes/coins.py
"""
Coin CRUD and collection listings.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from config.db import get_db
from config.dependencies import require_user, current_user_optional
from model.coin import Coin, CoinImage
from model.enums import Privacy
from model.social.models import Like
from model.user import Users
from schema.base import SuccessOut
from schema.coin import CoinCreateIn, CoinUpdateIn, CoinOut, CoinListOut
from src.route_helpers import (
    build_coin,
    build_coin_list,
    clamp_limit,
    count_comments,
    count_likes,
    ensure_coin_owner,
    ensure_coin_visible,
    get_coin_or_404,
    get_user_or_404,
    public_coins_clause,
)
from src.storage import StorageBackend, get_storage
from src.subscription import can_upload_coin, track_coin_upload

logger = logging.getLogger(__name__)

router = APIRouter()

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


def _replace_images(db: Session, coin: Coin, images) -> None:
    coin.images.clear()
    db.flush()
    for img in images:
        coin.images.append(CoinImage(url=img.url, order_index=img.order_index))


def _page(query, page: int, limit: int):
    total = query.count()
    rows = query.order_by(Coin.created_at.desc(), Coin.id.desc()).offset((page - 1) * limit).limit(limit).all()
    return rows, total


@router.post(
    "/coins",
    response_model=CoinOut,
    status_code=status.HTTP_201_CREATED,
    responses={
        201: {"description": "Coin created"},
        400: {"description": "Bad Request - Validation error"},
        403: {"description": "Forbidden - Monthly upload limit reached"},
    },
)
def create_coin(
    body: CoinCreateIn,
    user: Users = Depends(require_user),
    db: Session = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
):
    logger.info("Creating coin for user=%s title=%s", user.id, body.title)
    allowance = can_upload_coin(db, user)
    if not allowance.allowed:
        logger.warning("Coin upload limit reached for user=%s (%s/%s)", user.id, allowance.current, allowance.limit)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=allowance.reason)

    coin = Coin(user_id=user.id, **body.model_dump(exclude={"images"}))
    coin.images = [CoinImage(url=i.url, order_index=i.order_index) for i in body.images]
    db.add(coin)
    db.flush()
    track_coin_upload(db, user.id)
    db.commit()
    db.refresh(coin)

    logger.info("Coin created id=%s owner=%s images=%d", coin.id, user.id, len(coin.images))
    return build_coin(coin, storage, is_liked=False, like_count=0, comment_count=0)


@router.get(
    "/coins",
    response_model=CoinListOut,
)
def list_coins(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None),
    country: Optional[str] = None,
    year: Optional[int] = None,
    trade_status: Optional[str] = Query(None, alias="tradeStatus"),
    user_id: Optional[str] = Query(None, alias="userId"),
    viewer: Optional[Users] = Depends(current_user_optional),
    db: Session = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
):
    limit = clamp_limit(limit, DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE)
    q = db.query(Coin).filter(Coin.is_archived.is_(False), Coin.is_temporary_trade_coin.is_(False))

    if user_id and viewer and viewer.id == user_id:
        q = q.filter(Coin.user_id == user_id)
    else:
        q = q.filter(Coin.visibility == Privacy.public.value)
        if user_id:
            q = q.filter(Coin.user_id == user_id)
    if country:
        q = q.filter(Coin.country == country)
    if year is not None:
        q = q.filter(Coin.year == year)
    if trade_status:
        q = q.filter(Coin.trade_status == trade_status)

    coins, total = _page(q, page, limit)
    return CoinListOut(coins=build_coin_list(db, coins, storage, viewer), total=total, page=page, limit=limit)


@router.get(
    "/users/{user_id}/coins",
    response_model=CoinListOut,
    responses={404: {"description": "User not found"}},
)
def list_user_coins(
    user_id: str,
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None),
    viewer: Optional[Users] = Depends(current_user_optional),
    db: Session = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
):
    owner = get_user_or_404(db, user_id)
    limit = clamp_limit(limit, DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE)

    if viewer and viewer.id == owner.id:
        q = db.query(Coin).filter(Coin.user_id == owner.id, Coin.is_temporary_trade_coin.is_(False))
    elif owner.collection_privacy == Privacy.private.value:
        return CoinListOut(coins=[], total=0, page=page, limit=limit)
    else:
        q = db.query(Coin).filter(Coin.user_id == owner.id, *public_coins_clause())

    coins, total = _page(q, page, limit)
    return CoinListOut(coins=build_coin_list(db, coins, storage, viewer), total=total, page=page, limit=limit)


@router.get(
    "/coins/{coin_id}",
    response_model=CoinOut,
    responses={
        403: {"description": "Coin is private"},
        404: {"description": "Coin not found"},
    },
)
def get_coin(
    coin_id: str,
    viewer: Optional[Users] = Depends(current_user_optional),
    db: Session = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
):
    coin = get_coin_or_404(db, coin_id)
    ensure_coin_visible(coin, viewer)

    is_liked = None
    if viewer is not None:
        is_liked = db.query(Like.id).filter(Like.user_id == viewer.id, Like.coin_id == coin.id).first() is not None

    return build_coin(
        coin,
        storage,
        is_liked=is_liked,
        like_count=count_likes(db, coin.id),
        comment_count=count_comments(db, coin.id),
    )


@router.put(
    "/coins/{coin_id}",
    response_model=CoinOut,
    responses={
        403: {"description": "Forbidden - Not the owner"},
        404: {"description": "Coin not found"},
    },
)
def update_coin(
    coin_id: str,
    body: CoinUpdateIn,
    user: Users = Depends(require_user),
    db: Session = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
):
    coin = get_coin_or_404(db, coin_id)
    ensure_coin_owner(coin, user, "update")

    changes = body.model_dump(exclude_unset=True, exclude={"images"})
    for field, value in changes.items():
        if value is None and field in ("title", "country", "year", "visibility", "trade_status", "is_archived"):
            continue
        setattr(coin, field, value)
    if body.images is not None:
        _replace_images(db, coin, body.images)

    db.commit()
    db.refresh(coin)
    logger.info("Coin updated id=%s fields=%s images_replaced=%s", coin.id, sorted(changes), body.images is not None)

    is_liked = db.query(Like.id).filter(Like.user_id == user.id, Like.coin_id == coin.id).first() is not None
    return build_coin(
        coin,
        storage,
        is_liked=is_liked,
        like_count=count_likes(db, coin.id),
        comment_count=count_comments(db, coin.id),
    )


@router.delete(
    "/coins/{coin_id}",
    response_model=SuccessOut,
    responses={
        403: {"description": "Forbidden - Not the owner"},
        404: {"description": "Coin not found"},
    },
)
def delete_coin(
    coin_id: str,
    user: Users = Depends(require_user),
    db: Session = Depends(get_db),
):
    coin = get_coin_or_404(db, coin_id)
    ensure_coin_owner(coin, user, "delete")
    db.delete(coin)
    db.commit()
    logger.info("Coin deleted id=%s by user=%s", coin_id, user.id)
    return SuccessOut()
