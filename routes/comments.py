# routes/comments.py
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from config.db import get_db
from config.dependencies import require_user
from model.social.models import Comment
from model.user import Users
from schema.base import SuccessOut
from schema.social import CommentCreate, CommentOut, DELETED_COMMENT_PLACEHOLDER
from src.route_helpers import build_user_summary, get_coin_or_404, refresh_coin_counters
from src.storage import StorageBackend, get_storage

logger = logging.getLogger(__name__)

router = APIRouter()


def _comment_out(comment: Comment, storage: StorageBackend) -> CommentOut:
    if comment.is_deleted:
        return CommentOut(
            id=comment.id,
            coin_id=comment.coin_id,
            content=DELETED_COMMENT_PLACEHOLDER,
            is_deleted=True,
            created_at=comment.created_at,
            user=None,
        )
    return CommentOut(
        id=comment.id,
        coin_id=comment.coin_id,
        content=comment.content,
        is_deleted=False,
        created_at=comment.created_at,
        user=build_user_summary(comment.user, storage),
    )


@router.get(
    "/coins/{coin_id}/comments",
    response_model=List[CommentOut],
    responses={404: {"description": "Coin not found"}},
)
def list_comments(
    coin_id: str,
    db: Session = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
):
    coin = get_coin_or_404(db, coin_id)
    rows = (
        db.query(Comment)
        .filter(Comment.coin_id == coin.id)
        .order_by(Comment.created_at.asc(), Comment.id.asc())
        .all()
    )
    return [_comment_out(c, storage) for c in rows]


@router.post(
    "/coins/{coin_id}/comments",
    response_model=CommentOut,
    status_code=status.HTTP_201_CREATED,
    responses={404: {"description": "Coin not found"}},
)
def add_comment(
    coin_id: str,
    body: CommentCreate,
    user: Users = Depends(require_user),
    db: Session = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
):
    coin = get_coin_or_404(db, coin_id)
    comment = Comment(coin_id=coin.id, user_id=user.id, content=body.content)
    db.add(comment)
    db.flush()
    refresh_coin_counters(db, coin)
    db.commit()
    db.refresh(comment)
    logger.info("Comment %s added to coin %s by user %s", comment.id, coin.id, user.id)
    return _comment_out(comment, storage)


@router.delete(
    "/comments/{comment_id}",
    response_model=SuccessOut,
    responses={
        403: {"description": "Forbidden - Not the author"},
        404: {"description": "Comment not found"},
    },
)
def delete_comment(
    comment_id: str,
    user: Users = Depends(require_user),
    db: Session = Depends(get_db),
):
    comment = db.get(Comment, comment_id)
    if not comment:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Comment not found")
    if comment.user_id != user.id:
        logger.warning("User %s tried to delete comment %s owned by %s", user.id, comment.id, comment.user_id)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You can only delete your own comments")

    comment.is_deleted = True
    db.flush()
    refresh_coin_counters(db, comment.coin)
    db.commit()
    logger.info("Comment %s soft-deleted by user %s", comment.id, user.id)
    return SuccessOut()
