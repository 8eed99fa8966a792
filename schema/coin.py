# schema/coin.py
from __future__ import annotations

from datetime import datetime
from typing import Annotated, List, Literal, Optional

from pydantic import AfterValidator, Field

from schema.base import CamelModel
from schema.user import UserSummaryOut
from src.utils import utcnow


VisibilityLiteral = Literal["public", "private"]
TradeStatusLiteral = Literal["not_for_trade", "open_to_trade"]

MIN_COIN_YEAR = 1800


def _check_year(v: Optional[int]) -> Optional[int]:
    if v is None:
        return v
    if v < MIN_COIN_YEAR or v > utcnow().year:
        raise ValueError(f"year must be between {MIN_COIN_YEAR} and {utcnow().year}")
    return v


CoinYear = Annotated[int, AfterValidator(_check_year)]


class CoinImageIn(CamelModel):
    url: str = Field(..., min_length=1, max_length=512)
    order_index: int = Field(0, ge=0)


class CoinCreateIn(CamelModel):
    title: str = Field(..., min_length=1, max_length=255)
    country: str = Field(..., min_length=1, max_length=100)
    year: CoinYear
    unit: Optional[str] = Field(None, max_length=100)
    organization: Optional[str] = Field(None, max_length=100)
    agency: Optional[str] = Field(None, max_length=100)
    deployment: Optional[str] = Field(None, max_length=100)
    coin_number: Optional[str] = Field(None, max_length=100)
    mint_mark: Optional[str] = Field(None, max_length=50)
    condition: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = Field(None, max_length=2000)
    version: Optional[str] = Field(None, max_length=100)
    manufacturer: Optional[str] = Field(None, max_length=100)
    visibility: VisibilityLiteral = "public"
    trade_status: TradeStatusLiteral = "not_for_trade"
    images: List[CoinImageIn] = Field(default_factory=list, max_length=10)


class CoinUpdateIn(CamelModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    country: Optional[str] = Field(None, min_length=1, max_length=100)
    year: Optional[CoinYear] = None
    unit: Optional[str] = Field(None, max_length=100)
    organization: Optional[str] = Field(None, max_length=100)
    agency: Optional[str] = Field(None, max_length=100)
    deployment: Optional[str] = Field(None, max_length=100)
    coin_number: Optional[str] = Field(None, max_length=100)
    mint_mark: Optional[str] = Field(None, max_length=50)
    condition: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = Field(None, max_length=2000)
    version: Optional[str] = Field(None, max_length=100)
    manufacturer: Optional[str] = Field(None, max_length=100)
    visibility: Optional[VisibilityLiteral] = None
    trade_status: Optional[TradeStatusLiteral] = None
    is_archived: Optional[bool] = None
    images: Optional[List[CoinImageIn]] = Field(None, max_length=10)


class CoinImageOut(CamelModel):
    id: str
    url: Optional[str] = None          # signed, short-lived
    storage_key: str
    order_index: int


class CoinOut(CamelModel):
    id: str
    user_id: str
    title: str
    country: str
    year: int
    unit: Optional[str] = None
    organization: Optional[str] = None
    agency: Optional[str] = None
    deployment: Optional[str] = None
    coin_number: Optional[str] = None
    mint_mark: Optional[str] = None
    condition: Optional[str] = None
    description: Optional[str] = None
    version: Optional[str] = None
    manufacturer: Optional[str] = None
    visibility: VisibilityLiteral
    trade_status: TradeStatusLiteral
    is_archived: bool = False
    like_count: int = 0
    comment_count: int = 0
    is_liked: Optional[bool] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    user: Optional[UserSummaryOut] = None
    images: List[CoinImageOut] = Field(default_factory=list)


class CoinListOut(CamelModel):
    coins: List[CoinOut]
    total: int
    page: int
    limit: int


class CoinFeedOut(CamelModel):
    coins: List[CoinOut]
    total: int
    limit: int
    offset: int


class TrendingOut(CamelModel):
    coins: List[CoinOut]


class ImageOrderIn(CamelModel):
    id: str
    order_index: int = Field(..., ge=0)


class ImageReorderIn(CamelModel):
    images: List[ImageOrderIn] = Field(..., min_length=1)


__all__ = [
    "CoinImageIn",
    "CoinCreateIn",
    "CoinUpdateIn",
    "CoinImageOut",
    "CoinOut",
    "CoinListOut",
    "CoinFeedOut",
    "TrendingOut",
    "ImageOrderIn",
    "ImageReorderIn",
]
