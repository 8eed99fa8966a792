from datetime import datetime
from typing import Literal, Optional

from pydantic import Field

from schema.base import CamelModel


class LimitsOut(CamelModel):
    # None = unlimited
    max_coins: Optional[int] = None
    max_trades: Optional[int] = None


class SubscriptionStatusOut(CamelModel):
    tier: Literal["free", "premium"]
    coins_uploaded_this_month: int
    trades_initiated_this_month: int
    subscription_expires_at: Optional[datetime] = None
    limits: LimitsOut


class AllowanceOut(CamelModel):
    allowed: bool
    reason: Optional[str] = None
    current: int
    limit: Optional[int] = None


class TrackOut(CamelModel):
    success: bool = True
    count: int


class ActivateIn(CamelModel):
    """Store-issued receipt; kept for bookkeeping, not verified."""
    platform: Literal["ios", "android", "web"]
    product_id: str = Field(..., min_length=1, max_length=255)
    transaction_id: str = Field(..., min_length=1, max_length=255)
    receipt_data: Optional[str] = None
