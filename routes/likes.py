# routes/likes.py
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from config.db import get_db
from config.dependencies import require_user
from model.social.models import Like
from model.user import Users
from schema.social import LikeStateOut, LikersOut
from src.route_helpers import build_user_summary, get_coin_or_404, refresh_coin_counters
from src.storage import StorageBackend, get_storage

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/{coin_id}/like",
    response_model=LikeStateOut,
    responses={404: {"description": "Coin not found"}},
)
def like_coin(coin_id: str, user: Users = Depends(require_user), db: Session = Depends(get_db)):
    coin = get_coin_or_404(db, coin_id)
    exists = db.query(Like).filter(Like.user_id == user.id, Like.coin_id == coin.id).first()
    if not exists:
        db.add(Like(user_id=user.id, coin_id=coin.id))
        db.flush()
        logger.info("User %s liked coin %s", user.id, coin.id)

    refresh_coin_counters(db, coin)
    db.commit()
    return LikeStateOut(liked=True, like_count=coin.like_count)


@router.delete(
    "/{coin_id}/like",
    response_model=LikeStateOut,
    responses={404: {"description": "Coin not found"}},
)
def unlike_coin(coin_id: str, user: Users = Depends(require_user), db: Session = Depends(get_db)):
    coin = get_coin_or_404(db, coin_id)
    removed = db.query(Like).filter(Like.user_id == user.id, Like.coin_id == coin.id).delete(synchronize_session=False)
    db.flush()
    if removed:
        logger.info("User %s unliked coin %s", user.id, coin.id)

    refresh_coin_counters(db, coin)
    db.commit()
    return LikeStateOut(liked=False, like_count=coin.like_count)


@router.get(
    "/{coin_id}/likes",
    response_model=LikersOut,
    responses={404: {"description": "Coin not found"}},
)
def list_likers(
    coin_id: str,
    db: Session = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
):
    coin = get_coin_or_404(db, coin_id)
    likes = db.query(Like).filter(Like.coin_id == coin.id).order_by(Like.created_at.desc()).all()
    users = [build_user_summary(like.user, storage) for like in likes]
    return LikersOut(users=users, total=len(users))
