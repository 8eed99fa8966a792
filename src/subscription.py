# src/subscription.py
"""
Subscription tiers and monthly usage limits.

Free accounts get FREE_MAX_COINS_PER_MONTH coin uploads and
FREE_MAX_TRADES_PER_MONTH trade initiations per calendar month (UTC).
Premium accounts are unlimited while ``subscription_expires_at`` is unset
or in the future.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import select, func
from sqlalchemy.orm import Session

from config.settings import (
    FREE_MAX_COINS_PER_MONTH,
    FREE_MAX_TRADES_PER_MONTH,
    PREMIUM_PERIOD_DAYS,
)
from model.coin import Coin
from model.enums import SubscriptionTier
from model.subscription import UserMonthlyStats
from model.user import Users
from src.utils import utcnow, current_month, month_start

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TierLimits:
    max_coins: Optional[int]
    max_trades: Optional[int]


FREE_LIMITS = TierLimits(max_coins=FREE_MAX_COINS_PER_MONTH, max_trades=FREE_MAX_TRADES_PER_MONTH)
PREMIUM_LIMITS = TierLimits(max_coins=None, max_trades=None)


@dataclass(frozen=True)
class Allowance:
    allowed: bool
    current: int
    limit: Optional[int]
    reason: Optional[str] = None


def effective_tier(user: Users, now: Optional[datetime] = None) -> SubscriptionTier:
    """Expired premium subscriptions count as free."""
    now = now or utcnow()
    if user.subscription_tier != SubscriptionTier.premium.value:
        return SubscriptionTier.free
    if user.subscription_expires_at is not None and user.subscription_expires_at <= now:
        return SubscriptionTier.free
    return SubscriptionTier.premium


def limits_for(tier: SubscriptionTier) -> TierLimits:
    return PREMIUM_LIMITS if tier == SubscriptionTier.premium else FREE_LIMITS


def get_or_create_month_stats(db: Session, user_id: str, month: Optional[str] = None) -> UserMonthlyStats:
    """Read the stats row for ``month``, creating it on first use."""
    month = month or current_month()
    stats = db.scalar(
        select(UserMonthlyStats).where(
            UserMonthlyStats.user_id == user_id,
            UserMonthlyStats.month == month,
        )
    )
    if stats:
        return stats

    stats = UserMonthlyStats(user_id=user_id, month=month, coins_uploaded_count=0, trades_initiated_count=0)
    db.add(stats)
    db.flush()
    logger.info("Created monthly stats row user=%s month=%s", user_id, month)
    return stats


def count_coins_this_month(db: Session, user_id: str, now: Optional[datetime] = None) -> int:
    """Real number of non-temporary coins created since the start of the month."""
    start = month_start(now)
    return db.scalar(
        select(func.count(Coin.id)).where(
            Coin.user_id == user_id,
            Coin.is_temporary_trade_coin.is_(False),
            Coin.created_at >= start,
        )
    ) or 0


def sync_coin_count(db: Session, user_id: str) -> UserMonthlyStats:
    stats = get_or_create_month_stats(db, user_id)
    actual = count_coins_this_month(db, user_id)
    if stats.coins_uploaded_count != actual:
        logger.info(
            "Syncing coins_uploaded_count user=%s month=%s %d -> %d",
            user_id, stats.month, stats.coins_uploaded_count, actual,
        )
        stats.coins_uploaded_count = actual
    return stats


def can_upload_coin(db: Session, user: Users) -> Allowance:
    limits = limits_for(effective_tier(user))
    current = count_coins_this_month(db, user.id)
    if limits.max_coins is not None and current >= limits.max_coins:
        return Allowance(
            allowed=False,
            current=current,
            limit=limits.max_coins,
            reason=f"Free tier limit of {limits.max_coins} coins per month reached. Upgrade to premium for unlimited uploads.",
        )
    return Allowance(allowed=True, current=current, limit=limits.max_coins)


def can_initiate_trade(db: Session, user: Users) -> Allowance:
    limits = limits_for(effective_tier(user))
    stats = get_or_create_month_stats(db, user.id)
    current = stats.trades_initiated_count
    if limits.max_trades is not None and current >= limits.max_trades:
        return Allowance(
            allowed=False,
            current=current,
            limit=limits.max_trades,
            reason=f"Free tier limit of {limits.max_trades} trade per month reached. Upgrade to premium for unlimited trades.",
        )
    return Allowance(allowed=True, current=current, limit=limits.max_trades)


def track_coin_upload(db: Session, user_id: str) -> int:
    stats = get_or_create_month_stats(db, user_id)
    stats.coins_uploaded_count += 1
    return stats.coins_uploaded_count


def track_trade_initiation(db: Session, user_id: str) -> int:
    stats = get_or_create_month_stats(db, user_id)
    stats.trades_initiated_count += 1
    return stats.trades_initiated_count


def activate_premium(user: Users, now: Optional[datetime] = None) -> None:
    now = now or utcnow()
    user.subscription_tier = SubscriptionTier.premium.value
    user.subscription_started_at = now
    user.subscription_expires_at = now + timedelta(days=PREMIUM_PERIOD_DAYS)


def cancel_premium(user: Users) -> None:
    user.subscription_tier = SubscriptionTier.free.value
    user.subscription_expires_at = None
