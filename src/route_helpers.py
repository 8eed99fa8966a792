# src/route_helpers.py
"""
Helper utilities shared by the API routes.
Provides consistent lookup, authorization, counting and response building.
"""

from typing import Iterable, Optional, Set

from fastapi import HTTPException, status
from sqlalchemy import select, func
from sqlalchemy.orm import Session

from config.media_config import MediaConfig
from model.coin import Coin, CoinImage
from model.enums import Privacy
from model.social.models import Like, Comment, Follow
from model.trade import Trade, TradeMessage, TradeOffer, TradeShipping
from model.user import Users
from schema.coin import CoinOut, CoinImageOut
from schema.trade import (
    TradeCoinOut,
    TradeDetailOut,
    TradeMessageOut,
    TradeOfferOut,
    TradeShippingOut,
    TradeSummaryOut,
)
from schema.user import UserSummaryOut, ProfileOut
from src.storage import StorageBackend, build_storage_key, signed_url_or_none


# =============================================================================
# Pagination
# =============================================================================

def clamp_limit(limit: Optional[int], default: int, maximum: int) -> int:
    if limit is None or limit < 1:
        return default
    return min(limit, maximum)


def clamp_offset(offset: Optional[int]) -> int:
    return max(offset or 0, 0)


# =============================================================================
# Lookups
# =============================================================================

def get_user_or_404(db: Session, user_id: str) -> Users:
    user = db.get(Users, user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


def get_user_by_username_or_404(db: Session, username: str) -> Users:
    user = db.scalar(select(Users).where(Users.username == username))
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


def get_coin_or_404(db: Session, coin_id: str) -> Coin:
    coin = db.get(Coin, coin_id)
    if not coin:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Coin not found")
    return coin


def get_trade_or_404(db: Session, trade_id: str) -> Trade:
    trade = db.get(Trade, trade_id)
    if not trade:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Trade not found")
    return trade


# =============================================================================
# Authorization
# =============================================================================

def can_view_coin(coin: Coin, viewer: Optional[Users]) -> bool:
    return coin.is_public or (viewer is not None and viewer.id == coin.user_id)


def ensure_coin_visible(coin: Coin, viewer: Optional[Users]) -> None:
    if not can_view_coin(coin, viewer):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Coin is private")


def ensure_coin_owner(coin: Coin, user: Users, action: str = "modify") -> None:
    if coin.user_id != user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"You can only {action} your own coins",
        )


def ensure_trade_participant(trade: Trade, user: Users) -> None:
    if not trade.is_participant(user.id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You are not a participant in this trade")


NON_NULLABLE_PROFILE_FIELDS = {"collection_privacy"}


def ensure_own_avatar(user: Users, avatar_url: Optional[str]) -> None:
    """Avatars are external URLs or objects uploaded under the caller's avatar folder."""
    if avatar_url is None or avatar_url.startswith(("http://", "https://")):
        return
    prefix = build_storage_key(MediaConfig.AVATAR_FOLDER, user.id) + "/"
    if not avatar_url.startswith(prefix) or ".." in avatar_url.split("/"):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid avatar URL")


def apply_profile_changes(user: Users, changes: dict) -> dict:
    """Copy validated profile fields onto the user, skipping nulls for required columns."""
    changes = {
        k: v for k, v in changes.items()
        if not (v is None and k in NON_NULLABLE_PROFILE_FIELDS)
    }
    if "avatar_url" in changes:
        ensure_own_avatar(user, changes["avatar_url"])
    for field, value in changes.items():
        setattr(user, field, value)
    return changes


# =============================================================================
# Counters
# =============================================================================

def count_likes(db: Session, coin_id: str) -> int:
    return db.scalar(select(func.count(Like.id)).where(Like.coin_id == coin_id)) or 0


def count_comments(db: Session, coin_id: str) -> int:
    return db.scalar(
        select(func.count(Comment.id)).where(Comment.coin_id == coin_id, Comment.is_deleted.is_(False))
    ) or 0


def refresh_coin_counters(db: Session, coin: Coin) -> Coin:
    """Recompute cached like/comment counters from rows (call after a flush)."""
    coin.like_count = count_likes(db, coin.id)
    coin.comment_count = count_comments(db, coin.id)
    return coin


def follower_count(db: Session, user_id: str) -> int:
    return db.scalar(select(func.count(Follow.id)).where(Follow.following_id == user_id)) or 0


def following_count(db: Session, user_id: str) -> int:
    return db.scalar(select(func.count(Follow.id)).where(Follow.follower_id == user_id)) or 0


def is_following(db: Session, follower_id: Optional[str], following_id: str) -> bool:
    if not follower_id:
        return False
    return db.scalar(
        select(Follow.id).where(Follow.follower_id == follower_id, Follow.following_id == following_id)
    ) is not None


def liked_coin_ids(db: Session, user: Optional[Users], coin_ids: Iterable[str]) -> Set[str]:
    coin_ids = list(coin_ids)
    if user is None or not coin_ids:
        return set()
    rows = db.scalars(select(Like.coin_id).where(Like.user_id == user.id, Like.coin_id.in_(coin_ids)))
    return set(rows)


def public_coins_clause():
    return (
        Coin.visibility == Privacy.public.value,
        Coin.is_archived.is_(False),
        Coin.is_temporary_trade_coin.is_(False),
    )


# =============================================================================
# Response Builders
# =============================================================================

def build_user_summary(user: Optional[Users], storage: StorageBackend) -> Optional[UserSummaryOut]:
    if user is None:
        return None
    return UserSummaryOut(
        id=user.id,
        username=user.username,
        display_name=user.display_name,
        avatar_url=signed_url_or_none(storage, user.avatar_url),
    )


def build_profile(user: Users, storage: StorageBackend) -> ProfileOut:
    out = ProfileOut.model_validate(user)
    out.avatar_url = signed_url_or_none(storage, user.avatar_url)
    return out


def build_image(image: CoinImage, storage: StorageBackend) -> CoinImageOut:
    return CoinImageOut(
        id=image.id,
        url=signed_url_or_none(storage, image.url),
        storage_key=image.url,
        order_index=image.order_index,
    )


def build_coin(
    coin: Coin,
    storage: StorageBackend,
    *,
    is_liked: Optional[bool] = None,
    like_count: Optional[int] = None,
    comment_count: Optional[int] = None,
) -> CoinOut:
    images = sorted(coin.images, key=lambda i: i.order_index)
    return CoinOut(
        id=coin.id,
        user_id=coin.user_id,
        title=coin.title,
        country=coin.country,
        year=coin.year,
        unit=coin.unit,
        organization=coin.organization,
        agency=coin.agency,
        deployment=coin.deployment,
        coin_number=coin.coin_number,
        mint_mark=coin.mint_mark,
        condition=coin.condition,
        description=coin.description,
        version=coin.version,
        manufacturer=coin.manufacturer,
        visibility=coin.visibility,
        trade_status=coin.trade_status,
        is_archived=bool(coin.is_archived),
        like_count=coin.like_count if like_count is None else like_count,
        comment_count=coin.comment_count if comment_count is None else comment_count,
        is_liked=is_liked,
        created_at=coin.created_at,
        updated_at=coin.updated_at,
        user=build_user_summary(coin.user, storage),
        images=[build_image(i, storage) for i in images],
    )


def build_coin_list(db: Session, coins, storage: StorageBackend, viewer: Optional[Users]) -> list:
    liked = liked_coin_ids(db, viewer, (c.id for c in coins))
    return [
        build_coin(c, storage, is_liked=(c.id in liked) if viewer else None)
        for c in coins
    ]


def first_image_url(coin: Optional[Coin], storage: StorageBackend) -> Optional[str]:
    if coin is None or not coin.images:
        return None
    first = min(coin.images, key=lambda i: i.order_index)
    return signed_url_or_none(storage, first.url)


def build_trade_coin(coin: Optional[Coin], storage: StorageBackend) -> Optional[TradeCoinOut]:
    if coin is None:
        return None
    return TradeCoinOut(
        id=coin.id,
        title=coin.title,
        country=coin.country,
        year=coin.year,
        condition=coin.condition,
        trade_status=coin.trade_status,
        is_temporary_trade_coin=bool(coin.is_temporary_trade_coin),
        image_url=first_image_url(coin, storage),
        user=build_user_summary(coin.user, storage),
    )


def build_trade_message(message: TradeMessage, storage: StorageBackend) -> TradeMessageOut:
    return TradeMessageOut(
        id=message.id,
        trade_id=message.trade_id,
        sender=build_user_summary(message.sender, storage),
        content=message.content,
        created_at=message.created_at,
    )


def build_trade_offer(offer: TradeOffer, storage: StorageBackend) -> TradeOfferOut:
    return TradeOfferOut(
        id=offer.id,
        trade_id=offer.trade_id,
        offerer=build_user_summary(offer.offerer, storage),
        offered_coin=build_trade_coin(offer.offered_coin, storage),
        message=offer.message,
        is_counter_offer=bool(offer.is_counter_offer),
        status=offer.status,
        created_at=offer.created_at,
    )


def build_shipping(shipping: Optional[TradeShipping]) -> Optional[TradeShippingOut]:
    if shipping is None:
        return None
    return TradeShippingOut.model_validate(shipping)


def _trade_common(trade: Trade, storage: StorageBackend) -> dict:
    last = max(trade.messages, key=lambda m: m.created_at) if trade.messages else None
    return dict(
        id=trade.id,
        status=trade.status,
        coin=build_trade_coin(trade.coin, storage),
        initiator=build_user_summary(trade.initiator, storage),
        coin_owner=build_user_summary(trade.coin_owner, storage),
        last_message=build_trade_message(last, storage) if last else None,
        offer_count=len(trade.offers),
        created_at=trade.created_at,
        updated_at=trade.updated_at,
    )


def build_trade_summary(trade: Trade, storage: StorageBackend) -> TradeSummaryOut:
    return TradeSummaryOut(**_trade_common(trade, storage))


def build_trade_detail(trade: Trade, storage: StorageBackend) -> TradeDetailOut:
    return TradeDetailOut(
        **_trade_common(trade, storage),
        offers=[build_trade_offer(o, storage) for o in sorted(trade.offers, key=lambda o: o.created_at)],
        messages=[build_trade_message(m, storage) for m in sorted(trade.messages, key=lambda m: m.created_at)],
        shipping=build_shipping(trade.shipping),
    )


__all__ = [
    # Pagination
    "clamp_limit",
    "clamp_offset",

    # Lookups
    "get_user_or_404",
    "get_user_by_username_or_404",
    "get_coin_or_404",
    "get_trade_or_404",

    # Authorization
    "can_view_coin",
    "ensure_coin_visible",
    "ensure_coin_owner",
    "ensure_trade_participant",

    # Counters
    "count_likes",
    "count_comments",
    "refresh_coin_counters",
    "follower_count",
    "following_count",
    "is_following",
    "liked_coin_ids",
    "public_coins_clause",

    # Response Builders
    "build_user_summary",
    "build_profile",
    "build_image",
    "build_coin",
    "build_coin_list",
    "first_image_url",
    "build_trade_coin",
    "build_trade_message",
    "build_trade_offer",
    "build_shipping",
    "build_trade_summary",
    "build_trade_detail",
]
