# routes/search.py
"""
Coin and user search.

Coin filters: q (title/description), country, unit, organization as
case-insensitive substring matches; condition as an exact match; a year
range defaulting to 1800..current year; openToTrade.
"""
import logging
from dataclasses import dataclass
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import or_
from sqlalchemy.orm import Session

from config.db import get_db
from model.coin import Coin
from model.enums import CoinTradeStatus
from model.user import Users
from schema.coin import MIN_COIN_YEAR
from schema.search import AdvancedSearchOut, CoinSearchHit, SearchFacets, UserSearchHit
from src.route_helpers import build_user_summary, clamp_limit, clamp_offset, first_image_url, public_coins_clause
from src.storage import StorageBackend, get_storage, signed_url_or_none
from src.utils import utcnow

logger = logging.getLogger(__name__)

router = APIRouter()

LIKE_ESCAPE = "\\"


def contains(column, term: str):
    """Case-insensitive substring match with `%` and `_` taken literally."""
    escaped = term.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2).replace("%", LIKE_ESCAPE + "%").replace("_", LIKE_ESCAPE + "_")
    return column.ilike(f"%{escaped}%", escape=LIKE_ESCAPE)


@dataclass
class CoinFilters:
    q: Optional[str] = None
    country: Optional[str] = None
    year_from: Optional[int] = None
    year_to: Optional[int] = None
    unit: Optional[str] = None
    organization: Optional[str] = None
    condition: Optional[str] = None
    open_to_trade: Optional[bool] = None

    def apply(self, query):
        year_from = self.year_from if self.year_from is not None else MIN_COIN_YEAR
        year_to = self.year_to if self.year_to is not None else utcnow().year
        query = query.filter(Coin.year >= year_from, Coin.year <= year_to)
        if self.q:
            q = self.q.strip()
            query = query.filter(or_(contains(Coin.title, q), contains(Coin.description, q)))
        if self.country:
            query = query.filter(contains(Coin.country, self.country))
        if self.unit:
            query = query.filter(contains(Coin.unit, self.unit))
        if self.organization:
            query = query.filter(contains(Coin.organization, self.organization))
        if self.condition:
            query = query.filter(Coin.condition == self.condition)
        if self.open_to_trade:
            query = query.filter(Coin.trade_status == CoinTradeStatus.open_to_trade.value)
        return query


def coin_filters(
    q: Optional[str] = None,
    country: Optional[str] = None,
    year_from: Optional[int] = Query(None, alias="yearFrom"),
    year_to: Optional[int] = Query(None, alias="yearTo"),
    unit: Optional[str] = None,
    organization: Optional[str] = None,
    condition: Optional[str] = None,
    open_to_trade: Optional[bool] = Query(None, alias="openToTrade"),
) -> CoinFilters:
    return CoinFilters(q, country, year_from, year_to, unit, organization, condition, open_to_trade)


def _hit(coin: Coin, storage: StorageBackend) -> CoinSearchHit:
    return CoinSearchHit(
        id=coin.id,
        title=coin.title,
        year=coin.year,
        country=coin.country,
        unit=coin.unit,
        organization=coin.organization,
        condition=coin.condition,
        image_url=first_image_url(coin, storage),
        user=build_user_summary(coin.user, storage),
        like_count=coin.like_count or 0,
        open_to_trade=coin.trade_status == CoinTradeStatus.open_to_trade.value,
        created_at=coin.created_at,
    )


def _distinct(db: Session, column) -> List[str]:
    rows = db.query(column).filter(*public_coins_clause(), column.isnot(None), column != "").distinct().all()
    return sorted(r[0] for r in rows)


@router.get("/coins", response_model=List[CoinSearchHit])
def search_coins(
    filters: CoinFilters = Depends(coin_filters),
    limit: Optional[int] = Query(None),
    offset: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
):
    limit, offset = clamp_limit(limit, 20, 100), clamp_offset(offset)
    q = filters.apply(db.query(Coin).filter(*public_coins_clause()))
    coins = q.order_by(Coin.created_at.desc(), Coin.id.desc()).offset(offset).limit(limit).all()
    logger.info("Coin search q=%r returned %d hits", filters.q, len(coins))
    return [_hit(c, storage) for c in coins]


@router.get(
    "/users",
    response_model=List[UserSearchHit],
    responses={400: {"description": "Bad Request - Query must be at least 2 characters"}},
)
def search_users(
    q: Optional[str] = None,
    limit: Optional[int] = Query(None),
    offset: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
):
    term = (q or "").strip()
    if len(term) < 2:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Search query must be at least 2 characters")

    limit, offset = clamp_limit(limit, 20, 100), clamp_offset(offset)
    users = (
        db.query(Users)
        .filter(or_(contains(Users.username, term), contains(Users.display_name, term)))
        .order_by(Users.username.asc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return [
        UserSearchHit(
            id=u.id,
            username=u.username,
            display_name=u.display_name,
            avatar_url=signed_url_or_none(storage, u.avatar_url),
            bio=u.bio,
            location=u.location,
        )
        for u in users
    ]


@router.get("/advanced", response_model=AdvancedSearchOut)
def advanced_search(
    filters: CoinFilters = Depends(coin_filters),
    limit: Optional[int] = Query(None),
    offset: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
):
    limit, offset = clamp_limit(limit, 20, 100), clamp_offset(offset)
    q = filters.apply(db.query(Coin).filter(*public_coins_clause()))
    total = q.count()
    coins = q.order_by(Coin.created_at.desc(), Coin.id.desc()).offset(offset).limit(limit).all()

    facets = SearchFacets(
        countries=_distinct(db, Coin.country),
        units=_distinct(db, Coin.unit),
        organizations=_distinct(db, Coin.organization),
        conditions=_distinct(db, Coin.condition),
    )
    return AdvancedSearchOut(results=[_hit(c, storage) for c in coins], total=total, facets=facets)
