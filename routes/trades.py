# routes/trades.py
"""
Trade negotiation: initiate, offers and counter-offers, accept/reject,
messages, two-sided shipping, reports, ratings and cancellation.

Every status change goes through ``TradeStateMachine.apply``; an illegal
transition surfaces as a 400 via the app's exception handler.
"""
import logging
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from config.db import get_db
from config.dependencies import require_user, require_staff
from config.media_config import MediaConfig
from model.coin import Coin, CoinImage
from model.enums import CoinTradeStatus, OfferStatus, Privacy, TradeStatus, UserRole
from model.trade import Trade, TradeMessage, TradeOffer, TradeRating, TradeReport, TradeShipping
from model.user import Users
from schema.base import SuccessOut
from schema.coin import MIN_COIN_YEAR
from schema.trade import (
    OfferCreateIn,
    ShippingInitiateIn,
    ShippingReceivedOut,
    TradeActionOut,
    TradeDetailOut,
    TradeInitiateIn,
    TradeMessageIn,
    TradeMessageOut,
    TradeOfferOut,
    TradeRatingIn,
    TradeRatingOut,
    TradeReportIn,
    TradeReportOut,
    TradeShippingOut,
    TradeSummaryOut,
)
from src.media_processor import read_image_upload
from src.route_helpers import (
    build_shipping,
    build_trade_detail,
    build_trade_message,
    build_trade_offer,
    build_trade_summary,
    ensure_coin_visible,
    ensure_trade_participant,
    get_coin_or_404,
    get_trade_or_404,
)
from src.storage import StorageBackend, StorageError, build_storage_key, get_storage
from src.subscription import can_initiate_trade, track_trade_initiation
from src.trade_state import TradeStateMachine
from src.utils import unix_millis, utcnow

logger = logging.getLogger(__name__)

router = APIRouter()

STAFF_ROLES = {UserRole.admin.value, UserRole.moderator.value}


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------
def _participant_trade(db: Session, trade_id: str, user: Users) -> Trade:
    trade = get_trade_or_404(db, trade_id)
    ensure_trade_participant(trade, user)
    return trade


def _ensure_owner(trade: Trade, user: Users, action: str) -> None:
    if trade.coin_owner_id != user.id:
        logger.warning("User %s tried to %s on trade %s without owning the coin", user.id, action, trade.id)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=f"Only the coin owner can {action}")


def _ensure_status(trade: Trade, allowed, detail: str) -> None:
    if TradeStatus(trade.status) not in allowed:
        logger.warning("Trade %s in status %s rejected: %s", trade.id, trade.status, detail)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


def _side(trade: Trade, user: Users) -> str:
    return "initiator" if user.id == trade.initiator_id else "owner"


def _shipping_for(db: Session, trade: Trade) -> TradeShipping:
    if trade.shipping is None:
        trade.shipping = TradeShipping(trade_id=trade.id)
        db.flush()
    return trade.shipping


def _offer_for(db: Session, trade: Trade, offer_id: str) -> TradeOffer:
    offer = db.query(TradeOffer).filter(TradeOffer.id == offer_id, TradeOffer.trade_id == trade.id).first()
    if not offer:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Offer not found")
    return offer


def _record_offer(db: Session, trade: Trade, user: Users, offered_coin_id: Optional[str], message: Optional[str]) -> TradeOffer:
    offer = TradeOffer(
        trade_id=trade.id,
        offerer_id=user.id,
        offered_coin_id=offered_coin_id,
        message=message,
        is_counter_offer=trade.status != TradeStatus.pending.value or user.id == trade.coin_owner_id,
        status=OfferStatus.pending.value,
    )
    db.add(offer)
    if trade.status == TradeStatus.pending.value:
        TradeStateMachine.apply(trade, TradeStatus.countered)
    trade.updated_at = utcnow()
    db.flush()
    return offer


# ------------------------------------------------------------------
# Initiate and read
# ------------------------------------------------------------------
@router.post(
    "/initiate",
    response_model=TradeDetailOut,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Bad Request - Coin not open to trade or own coin"},
        403: {"description": "Forbidden - Monthly trade limit reached"},
        404: {"description": "Coin not found"},
        409: {"description": "Conflict - Active trade already exists"},
    },
)
def initiate_trade(
    body: TradeInitiateIn,
    user: Users = Depends(require_user),
    db: Session = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
):
    logger.info("Trade initiation: user=%s coin=%s", user.id, body.coin_id)
    coin = get_coin_or_404(db, body.coin_id)
    ensure_coin_visible(coin, user)

    if coin.trade_status != CoinTradeStatus.open_to_trade.value:
        logger.warning("Coin %s not open to trade (%s)", coin.id, coin.trade_status)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Coin is not available for trade")
    if coin.user_id == user.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot trade for your own coin")

    allowance = can_initiate_trade(db, user)
    if not allowance.allowed:
        logger.warning("Trade limit reached for user=%s (%s/%s)", user.id, allowance.current, allowance.limit)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=allowance.reason)

    active = [s.value for s in TradeStateMachine.ACTIVE]
    existing = db.query(Trade).filter(
        Trade.coin_id == coin.id,
        Trade.initiator_id == user.id,
        Trade.status.in_(active),
    ).first()
    if existing:
        logger.warning("User %s already has active trade %s on coin %s", user.id, existing.id, coin.id)
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"message": "You already have an active trade for this coin", "existingTradeId": existing.id},
        )

    trade = Trade(initiator_id=user.id, coin_owner_id=coin.user_id, coin_id=coin.id, status=TradeStatus.pending.value)
    trade.shipping = TradeShipping()
    db.add(trade)
    db.flush()
    count = track_trade_initiation(db, user.id)
    db.commit()
    db.refresh(trade)

    logger.info("Trade %s created on coin %s (initiations this month=%d)", trade.id, coin.id, count)
    return build_trade_detail(trade, storage)


@router.get("", response_model=List[TradeSummaryOut])
def list_trades(
    status_filter: Optional[str] = Query(None, alias="status"),
    role: Optional[Literal["initiator", "owner"]] = None,
    user: Users = Depends(require_user),
    db: Session = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
):
    q = db.query(Trade)
    if role == "initiator":
        q = q.filter(Trade.initiator_id == user.id)
    elif role == "owner":
        q = q.filter(Trade.coin_owner_id == user.id)
    else:
        q = q.filter((Trade.initiator_id == user.id) | (Trade.coin_owner_id == user.id))
    if status_filter:
        q = q.filter(Trade.status == status_filter)

    trades = q.order_by(Trade.created_at.desc(), Trade.id.desc()).all()
    return [build_trade_summary(t, storage) for t in trades]


@router.get(
    "/{trade_id}",
    response_model=TradeDetailOut,
    responses={403: {"description": "Not a participant"}, 404: {"description": "Trade not found"}},
)
def get_trade(
    trade_id: str,
    user: Users = Depends(require_user),
    db: Session = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
):
    trade = get_trade_or_404(db, trade_id)
    if user.role not in STAFF_ROLES:
        ensure_trade_participant(trade, user)
    return build_trade_detail(trade, storage)


# ------------------------------------------------------------------
# Offers
# ------------------------------------------------------------------
@router.post(
    "/{trade_id}/offers",
    response_model=TradeOfferOut,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Bad Request - Trade is no longer negotiable"},
        403: {"description": "Forbidden - Not a participant or not your coin"},
        404: {"description": "Trade or coin not found"},
    },
)
def create_offer(
    trade_id: str,
    body: OfferCreateIn,
    user: Users = Depends(require_user),
    db: Session = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
):
    trade = _participant_trade(db, trade_id, user)
    _ensure_status(trade, TradeStateMachine.NEGOTIABLE, "Offers can only be made on pending or countered trades")

    if body.offered_coin_id:
        offered = db.get(Coin, body.offered_coin_id)
        if not offered:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Offered coin not found")
        if offered.user_id != user.id:
            logger.warning("User %s tried to offer coin %s owned by %s", user.id, offered.id, offered.user_id)
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You can only offer your own coins")

    offer = _record_offer(db, trade, user, body.offered_coin_id, body.message)
    db.commit()
    db.refresh(offer)
    logger.info("Offer %s created on trade %s by %s (counter=%s)", offer.id, trade.id, user.id, offer.is_counter_offer)
    return build_trade_offer(offer, storage)


@router.post(
    "/{trade_id}/offers/upload",
    response_model=TradeOfferOut,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Bad Request - Invalid images or coin fields"},
        403: {"description": "Forbidden - Not a participant"},
        413: {"description": "Payload Too Large"},
        503: {"description": "Storage unavailable"},
    },
)
async def create_offer_with_upload(
    trade_id: str,
    images: List[UploadFile] = File(...),
    title: str = Form(..., min_length=1, max_length=255),
    country: str = Form(..., min_length=1, max_length=100),
    year: int = Form(...),
    unit: Optional[str] = Form(None, max_length=100),
    organization: Optional[str] = Form(None, max_length=100),
    condition: Optional[str] = Form(None, max_length=100),
    mint_mark: Optional[str] = Form(None, alias="mintMark", max_length=50),
    description: Optional[str] = Form(None, max_length=2000),
    message: Optional[str] = Form(None, max_length=1000),
    user: Users = Depends(require_user),
    db: Session = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
):
    trade = _participant_trade(db, trade_id, user)
    _ensure_status(trade, TradeStateMachine.NEGOTIABLE, "Offers can only be made on pending or countered trades")

    if not MediaConfig.MIN_TRADE_OFFER_IMAGES <= len(images) <= MediaConfig.MAX_TRADE_OFFER_IMAGES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Between {MediaConfig.MIN_TRADE_OFFER_IMAGES} and {MediaConfig.MAX_TRADE_OFFER_IMAGES} images are required",
        )
    if not MIN_COIN_YEAR <= year <= utcnow().year:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"year must be between {MIN_COIN_YEAR} and {utcnow().year}",
        )

    validated = [await read_image_upload(f) for f in images]

    coin = Coin(
        user_id=user.id,
        title=title,
        country=country,
        year=year,
        unit=unit,
        organization=organization,
        condition=condition,
        mint_mark=mint_mark,
        description=description,
        visibility=Privacy.private.value,
        trade_status=CoinTradeStatus.not_for_trade.value,
        is_temporary_trade_coin=True,
    )
    db.add(coin)
    db.flush()
    logger.info("Temporary trade coin %s created for trade %s", coin.id, trade.id)

    stored: List[str] = []
    try:
        for i, image in enumerate(validated):
            key = build_storage_key(MediaConfig.COIN_FOLDER, coin.id, f"{unix_millis()}-{i}-{image.filename}")
            await storage.save(image.data, key, image.content_type)
            stored.append(key)
            coin.images.append(CoinImage(url=key, order_index=i))
    except StorageError:
        logger.error("Uploading offer images failed for coin %s; rolling back", coin.id, exc_info=True)
        db.rollback()
        for key in stored:
            await storage.delete(key)
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Failed to upload images")

    offer = _record_offer(db, trade, user, coin.id, message)
    db.commit()
    db.refresh(offer)
    logger.info("Offer %s with uploaded coin %s created on trade %s", offer.id, coin.id, trade.id)
    return build_trade_offer(offer, storage)


@router.post(
    "/{trade_id}/offers/{offer_id}/accept",
    response_model=TradeActionOut,
    responses={
        400: {"description": "Bad Request - Offer is not pending"},
        403: {"description": "Forbidden - Only the coin owner can accept"},
        404: {"description": "Trade or offer not found"},
    },
)
def accept_offer(
    trade_id: str,
    offer_id: str,
    user: Users = Depends(require_user),
    db: Session = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
):
    trade = get_trade_or_404(db, trade_id)
    _ensure_owner(trade, user, "accept offers")
    offer = _offer_for(db, trade, offer_id)
    if offer.status != OfferStatus.pending.value:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Offer is no longer pending")

    TradeStateMachine.apply(trade, TradeStatus.accepted)
    offer.status = OfferStatus.accepted.value
    for other in trade.offers:
        if other.id != offer.id and other.status == OfferStatus.pending.value:
            other.status = OfferStatus.rejected.value
    db.commit()
    db.refresh(trade)

    logger.info("Offer %s accepted on trade %s", offer.id, trade.id)
    return TradeActionOut(
        message="Offer accepted. Prepare your coin for shipping.",
        trade=build_trade_detail(trade, storage),
    )


@router.post(
    "/{trade_id}/offers/{offer_id}/reject",
    response_model=SuccessOut,
    responses={
        400: {"description": "Bad Request - Offer is not pending"},
        403: {"description": "Forbidden - Only the coin owner can reject"},
        404: {"description": "Trade or offer not found"},
    },
)
def reject_offer(
    trade_id: str,
    offer_id: str,
    user: Users = Depends(require_user),
    db: Session = Depends(get_db),
):
    trade = get_trade_or_404(db, trade_id)
    _ensure_owner(trade, user, "reject offers")
    offer = _offer_for(db, trade, offer_id)
    if offer.status != OfferStatus.pending.value:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Offer is no longer pending")

    offer.status = OfferStatus.rejected.value
    trade.updated_at = utcnow()
    db.commit()
    logger.info("Offer %s rejected on trade %s", offer.id, trade.id)
    return SuccessOut()


# ------------------------------------------------------------------
# Messages
# ------------------------------------------------------------------
@router.post(
    "/{trade_id}/messages",
    response_model=TradeMessageOut,
    status_code=status.HTTP_201_CREATED,
    responses={403: {"description": "Not a participant"}, 404: {"description": "Trade not found"}},
)
def send_message(
    trade_id: str,
    body: TradeMessageIn,
    user: Users = Depends(require_user),
    db: Session = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
):
    trade = _participant_trade(db, trade_id, user)
    msg = TradeMessage(trade_id=trade.id, sender_id=user.id, content=body.content)
    db.add(msg)
    trade.updated_at = utcnow()
    db.commit()
    db.refresh(msg)
    logger.info("Message %s posted on trade %s by %s", msg.id, trade.id, user.id)
    return build_trade_message(msg, storage)


# ------------------------------------------------------------------
# Shipping
# ------------------------------------------------------------------
@router.post(
    "/{trade_id}/shipping/initiate",
    response_model=TradeShippingOut,
    responses={400: {"description": "Bad Request - Trade not accepted"}, 403: {"description": "Not a participant"}},
)
def mark_shipped(
    trade_id: str,
    body: ShippingInitiateIn,
    user: Users = Depends(require_user),
    db: Session = Depends(get_db),
):
    trade = _participant_trade(db, trade_id, user)
    _ensure_status(trade, {TradeStatus.accepted}, "Trade must be accepted before shipping")

    shipping = _shipping_for(db, trade)
    side = _side(trade, user)
    shipping.mark_shipped(side, body.shipped, tracking_number=body.tracking_number)
    db.commit()
    logger.info("Trade %s: %s marked shipped=%s", trade.id, side, body.shipped)
    return build_shipping(shipping)


@router.post(
    "/{trade_id}/shipping/received",
    response_model=ShippingReceivedOut,
    responses={400: {"description": "Bad Request - Trade not accepted"}, 403: {"description": "Not a participant"}},
)
def mark_received(
    trade_id: str,
    user: Users = Depends(require_user),
    db: Session = Depends(get_db),
):
    trade = _participant_trade(db, trade_id, user)
    _ensure_status(trade, {TradeStatus.accepted}, "Trade must be accepted before confirming receipt")

    shipping = _shipping_for(db, trade)
    side = _side(trade, user)
    shipping.mark_received(side)

    completed = shipping.both_received
    if completed:
        TradeStateMachine.apply(trade, TradeStatus.completed)
    db.commit()
    logger.info("Trade %s: %s confirmed receipt (completed=%s)", trade.id, side, completed)
    return ShippingReceivedOut(shipping=build_shipping(shipping), trade_completed=completed)


# ------------------------------------------------------------------
# Reports and ratings
# ------------------------------------------------------------------
@router.post(
    "/{trade_id}/report",
    response_model=TradeReportOut,
    status_code=status.HTTP_201_CREATED,
    responses={403: {"description": "Not a participant"}, 404: {"description": "Trade not found"}},
)
def report_trade(
    trade_id: str,
    body: TradeReportIn,
    user: Users = Depends(require_user),
    db: Session = Depends(get_db),
):
    trade = _participant_trade(db, trade_id, user)
    # Reports on closed or already disputed trades are still recorded
    if TradeStateMachine.can_transition(trade.status, TradeStatus.disputed):
        trade.status = TradeStatus.disputed.value

    report = TradeReport(
        trade_id=trade.id,
        reporter_id=user.id,
        reported_user_id=trade.other_party_id(user.id),
        reason=body.reason,
        description=body.description,
    )
    db.add(report)
    db.commit()
    db.refresh(report)
    logger.warning("Trade %s reported by %s against %s: %s", trade.id, user.id, report.reported_user_id, body.reason)
    return TradeReportOut.model_validate(report)


@router.get(
    "/{trade_id}/reports",
    response_model=List[TradeReportOut],
    responses={403: {"description": "Staff only"}, 404: {"description": "Trade not found"}},
)
def list_reports(
    trade_id: str,
    staff: Users = Depends(require_staff),
    db: Session = Depends(get_db),
):
    trade = get_trade_or_404(db, trade_id)
    rows = db.query(TradeReport).filter(TradeReport.trade_id == trade.id).order_by(TradeReport.created_at.desc()).all()
    return [TradeReportOut.model_validate(r) for r in rows]


@router.post(
    "/{trade_id}/rate",
    response_model=TradeRatingOut,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Bad Request - Trade not completed"},
        403: {"description": "Not a participant"},
        409: {"description": "Conflict - Already rated"},
    },
)
def rate_trade(
    trade_id: str,
    body: TradeRatingIn,
    user: Users = Depends(require_user),
    db: Session = Depends(get_db),
):
    trade = _participant_trade(db, trade_id, user)
    _ensure_status(trade, {TradeStatus.completed}, "Only completed trades can be rated")

    already = db.query(TradeRating).filter(TradeRating.trade_id == trade.id, TradeRating.rater_id == user.id).first()
    if already:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="You have already rated this trade")

    rating = TradeRating(
        trade_id=trade.id,
        rater_id=user.id,
        rated_user_id=trade.other_party_id(user.id),
        rating=body.rating,
        comment=body.comment,
    )
    db.add(rating)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="You have already rated this trade")
    db.refresh(rating)
    logger.info("Trade %s rated %d by %s", trade.id, rating.rating, user.id)
    return TradeRatingOut.model_validate(rating)


# ------------------------------------------------------------------
# Cancel
# ------------------------------------------------------------------
@router.post(
    "/{trade_id}/cancel",
    response_model=TradeActionOut,
    responses={
        400: {"description": "Bad Request - Trade cannot be cancelled"},
        403: {"description": "Not a participant"},
    },
)
def cancel_trade(
    trade_id: str,
    user: Users = Depends(require_user),
    db: Session = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
):
    trade = _participant_trade(db, trade_id, user)
    if not TradeStateMachine.can_cancel(trade, user.id):
        logger.warning("User %s cannot cancel trade %s in status %s", user.id, trade.id, trade.status)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot cancel this trade")

    TradeStateMachine.apply(trade, TradeStatus.cancelled)
    db.commit()
    db.refresh(trade)
    logger.info("Trade %s cancelled by %s", trade.id, user.id)
    return TradeActionOut(trade=build_trade_detail(trade, storage))
