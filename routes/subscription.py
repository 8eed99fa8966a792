# routes/subscription.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from config.db import get_db
from config.dependencies import require_user
from model.subscription import SubscriptionReceipt
from model.user import Users
from schema.subscription import ActivateIn, AllowanceOut, LimitsOut, SubscriptionStatusOut, TrackOut
from src import subscription as subs

logger = logging.getLogger(__name__)

router = APIRouter()


def _status(db: Session, user: Users) -> SubscriptionStatusOut:
    tier = subs.effective_tier(user)
    limits = subs.limits_for(tier)
    stats = subs.sync_coin_count(db, user.id)
    db.commit()
    return SubscriptionStatusOut(
        tier=tier.value,
        coins_uploaded_this_month=stats.coins_uploaded_count,
        trades_initiated_this_month=stats.trades_initiated_count,
        subscription_expires_at=user.subscription_expires_at,
        limits=LimitsOut(max_coins=limits.max_coins, max_trades=limits.max_trades),
    )


def _allowance(a: subs.Allowance) -> AllowanceOut:
    return AllowanceOut(allowed=a.allowed, reason=a.reason, current=a.current, limit=a.limit)


@router.get("/status", response_model=SubscriptionStatusOut)
def get_status(user: Users = Depends(require_user), db: Session = Depends(get_db)):
    return _status(db, user)


@router.post(
    "/activate",
    response_model=SubscriptionStatusOut,
    responses={409: {"description": "Conflict - Receipt already used"}},
)
def activate(
    body: Optional[ActivateIn] = None,
    user: Users = Depends(require_user),
    db: Session = Depends(get_db),
):
    if body is not None:
        used = db.query(SubscriptionReceipt).filter(SubscriptionReceipt.transaction_id == body.transaction_id).first()
        if used:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Receipt has already been used")
    subs.activate_premium(user)
    if body is not None:
        db.add(SubscriptionReceipt(
            user_id=user.id,
            platform=body.platform,
            product_id=body.product_id,
            transaction_id=body.transaction_id,
            receipt_data=body.receipt_data,
            expires_at=user.subscription_expires_at,
        ))
    db.commit()
    logger.info("Premium activated for user=%s until %s", user.id, user.subscription_expires_at)
    return _status(db, user)


@router.post("/cancel", response_model=SubscriptionStatusOut)
def cancel(user: Users = Depends(require_user), db: Session = Depends(get_db)):
    subs.cancel_premium(user)
    db.commit()
    logger.info("Premium cancelled for user=%s", user.id)
    return _status(db, user)


@router.get("/can-upload-coin", response_model=AllowanceOut)
def can_upload_coin(user: Users = Depends(require_user), db: Session = Depends(get_db)):
    return _allowance(subs.can_upload_coin(db, user))


@router.get("/can-initiate-trade", response_model=AllowanceOut)
def can_initiate_trade(user: Users = Depends(require_user), db: Session = Depends(get_db)):
    allowance = subs.can_initiate_trade(db, user)
    db.commit()
    return _allowance(allowance)


@router.post("/track-coin-upload", response_model=TrackOut)
def track_coin_upload(user: Users = Depends(require_user), db: Session = Depends(get_db)):
    count = subs.track_coin_upload(db, user.id)
    db.commit()
    return TrackOut(count=count)


@router.post("/track-trade-initiation", response_model=TrackOut)
def track_trade_initiation(user: Users = Depends(require_user), db: Session = Depends(get_db)):
    count = subs.track_trade_initiation(db, user.id)
    db.commit()
    return TrackOut(count=count)
