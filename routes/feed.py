# routes/feed.py
"""
Discovery feeds: newest public coins, trending, open-to-trade and following.

Mounted on /api/coins ahead of the coin router so that /feed is not read as
a coin id.
"""
import logging
from datetime import timedelta
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.orm import Session

from config.db import get_db
from config.dependencies import require_user, current_user_optional
from model.coin import Coin
from model.enums import CoinTradeStatus
from model.social.models import Follow
from model.user import Users
from schema.coin import CoinFeedOut, TrendingOut
from src.route_helpers import build_coin_list, clamp_limit, clamp_offset, public_coins_clause
from src.storage import StorageBackend, get_storage
from src.utils import utcnow

logger = logging.getLogger(__name__)

router = APIRouter()

TRENDING_WINDOW_DAYS = 7


def _feed_page(db, q, limit, offset, storage, viewer) -> CoinFeedOut:
    total = q.count()
    coins = q.order_by(Coin.created_at.desc(), Coin.id.desc()).offset(offset).limit(limit).all()
    return CoinFeedOut(
        coins=build_coin_list(db, coins, storage, viewer),
        total=total,
        limit=limit,
        offset=offset,
    )


def _apply_filters(q, country: Optional[str], year: Optional[int]):
    if country:
        q = q.filter(Coin.country == country)
    if year is not None:
        q = q.filter(Coin.year == year)
    return q


@router.get("/feed", response_model=CoinFeedOut, responses={503: {"description": "Database unavailable"}})
def get_feed(
    limit: Optional[int] = Query(None),
    offset: Optional[int] = Query(None),
    country: Optional[str] = None,
    year: Optional[int] = None,
    viewer: Optional[Users] = Depends(current_user_optional),
    db: Session = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
):
    limit, offset = clamp_limit(limit, 20, 100), clamp_offset(offset)
    q = _apply_filters(db.query(Coin).filter(*public_coins_clause()), country, year)
    return _feed_page(db, q, limit, offset, storage, viewer)


@router.get("/feed/trending", response_model=TrendingOut)
def get_trending(
    limit: Optional[int] = Query(None),
    viewer: Optional[Users] = Depends(current_user_optional),
    db: Session = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
):
    limit = clamp_limit(limit, 10, 50)
    since = utcnow() - timedelta(days=TRENDING_WINDOW_DAYS)
    coins = (
        db.query(Coin)
        .filter(*public_coins_clause(), Coin.created_at >= since)
        .order_by(Coin.like_count.desc(), Coin.created_at.desc())
        .limit(limit)
        .all()
    )
    return TrendingOut(coins=build_coin_list(db, coins, storage, viewer))


@router.get("/feed/trade", response_model=CoinFeedOut)
def get_trade_feed(
    limit: Optional[int] = Query(None),
    offset: Optional[int] = Query(None),
    country: Optional[str] = None,
    year: Optional[int] = None,
    viewer: Optional[Users] = Depends(current_user_optional),
    db: Session = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
):
    limit, offset = clamp_limit(limit, 20, 100), clamp_offset(offset)
    q = db.query(Coin).filter(*public_coins_clause(), Coin.trade_status == CoinTradeStatus.open_to_trade.value)
    if viewer is not None:
        q = q.filter(Coin.user_id != viewer.id)
    q = _apply_filters(q, country, year)
    return _feed_page(db, q, limit, offset, storage, viewer)


@router.get("/feed/following", response_model=CoinFeedOut, responses={401: {"description": "Unauthorized"}})
def get_following_feed(
    limit: Optional[int] = Query(None),
    offset: Optional[int] = Query(None),
    user: Users = Depends(require_user),
    db: Session = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
):
    limit, offset = clamp_limit(limit, 20, 100), clamp_offset(offset)
    followed = select(Follow.following_id).where(Follow.follower_id == user.id)
    q = db.query(Coin).filter(*public_coins_clause(), Coin.user_id.in_(followed))
    return _feed_page(db, q, limit, offset, storage, user)
