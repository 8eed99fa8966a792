# schema/trade.py
from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import Field

from schema.base import CamelModel
from schema.user import UserSummaryOut


TradeStatusLiteral = Literal["pending", "countered", "accepted", "rejected", "completed", "cancelled", "disputed"]
OfferStatusLiteral = Literal["pending", "accepted", "rejected"]


# --- Requests ---

class TradeInitiateIn(CamelModel):
    coin_id: str = Field(..., min_length=1, max_length=50)


class OfferCreateIn(CamelModel):
    offered_coin_id: Optional[str] = Field(None, max_length=50)
    message: Optional[str] = Field(None, max_length=1000)


class TradeMessageIn(CamelModel):
    content: str = Field(..., min_length=1, max_length=5000)


class ShippingInitiateIn(CamelModel):
    shipped: bool = True
    tracking_number: Optional[str] = Field(None, max_length=255)


class TradeReportIn(CamelModel):
    reason: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)


class TradeRatingIn(CamelModel):
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=1000)


# --- Responses ---

class TradeCoinOut(CamelModel):
    id: str
    title: str
    country: str
    year: int
    condition: Optional[str] = None
    trade_status: Optional[str] = None
    is_temporary_trade_coin: bool = False
    image_url: Optional[str] = None
    user: Optional[UserSummaryOut] = None


class TradeOfferOut(CamelModel):
    id: str
    trade_id: str
    offerer: UserSummaryOut
    offered_coin: Optional[TradeCoinOut] = None
    message: Optional[str] = None
    is_counter_offer: bool
    status: OfferStatusLiteral
    created_at: datetime


class TradeMessageOut(CamelModel):
    id: str
    trade_id: str
    sender: UserSummaryOut
    content: str
    created_at: datetime


class TradeShippingOut(CamelModel):
    initiator_shipped: bool = False
    initiator_tracking_number: Optional[str] = None
    initiator_shipped_at: Optional[datetime] = None
    initiator_received: bool = False
    initiator_received_at: Optional[datetime] = None
    owner_shipped: bool = False
    owner_tracking_number: Optional[str] = None
    owner_shipped_at: Optional[datetime] = None
    owner_received: bool = False
    owner_received_at: Optional[datetime] = None


class TradeSummaryOut(CamelModel):
    id: str
    status: TradeStatusLiteral
    coin: Optional[TradeCoinOut] = None
    initiator: UserSummaryOut
    coin_owner: UserSummaryOut
    last_message: Optional[TradeMessageOut] = None
    offer_count: int = 0
    created_at: datetime
    updated_at: Optional[datetime] = None


class TradeDetailOut(TradeSummaryOut):
    offers: List[TradeOfferOut] = Field(default_factory=list)
    messages: List[TradeMessageOut] = Field(default_factory=list)
    shipping: Optional[TradeShippingOut] = None


class TradeActionOut(CamelModel):
    success: bool = True
    message: Optional[str] = None
    trade: TradeDetailOut


class ShippingReceivedOut(CamelModel):
    shipping: TradeShippingOut
    trade_completed: bool


class TradeReportOut(CamelModel):
    id: str
    trade_id: str
    reporter_id: str
    reported_user_id: str
    reason: str
    description: Optional[str] = None
    status: str
    reviewed_by: Optional[str] = None
    review_notes: Optional[str] = None
    created_at: datetime


class TradeRatingOut(CamelModel):
    id: str
    trade_id: str
    rater_id: str
    rated_user_id: str
    rating: int
    comment: Optional[str] = None
    created_at: datetime


__all__ = [
    "TradeInitiateIn",
    "OfferCreateIn",
    "TradeMessageIn",
    "ShippingInitiateIn",
    "TradeReportIn",
    "TradeRatingIn",
    "TradeCoinOut",
    "TradeOfferOut",
    "TradeMessageOut",
    "TradeShippingOut",
    "TradeSummaryOut",
    "TradeDetailOut",
    "TradeActionOut",
    "ShippingReceivedOut",
    "TradeReportOut",
    "TradeRatingOut",
]
