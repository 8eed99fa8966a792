# model/enums.py
from enum import StrEnum


class UserRole(StrEnum):
    user = "user"
    moderator = "moderator"
    admin = "admin"


class SubscriptionTier(StrEnum):
    free = "free"
    premium = "premium"


class Privacy(StrEnum):
    public = "public"
    private = "private"


class CoinTradeStatus(StrEnum):
    not_for_trade = "not_for_trade"
    open_to_trade = "open_to_trade"


class TradeStatus(StrEnum):
    pending = "pending"
    countered = "countered"
    accepted = "accepted"
    rejected = "rejected"
    completed = "completed"
    cancelled = "cancelled"
    disputed = "disputed"


class OfferStatus(StrEnum):
    pending = "pending"
    accepted = "accepted"
    rejected = "rejected"


class ReportStatus(StrEnum):
    pending = "pending"
    reviewed = "reviewed"
    resolved = "resolved"


def values(enum_cls) -> list[str]:
    return [e.value for e in enum_cls]
