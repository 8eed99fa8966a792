# routes/follows.py
"""
Follow graph: follow/unfollow, follower and following lists, suggestions.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from config.db import get_db
from config.dependencies import require_user
from model.social.models import Follow
from model.user import Users
from schema.base import MessageOut
from schema.social import (
    FollowersPage,
    FollowingPage,
    FollowSuggestionOut,
    FollowUserOut,
    IsFollowingOut,
)
from src.route_helpers import clamp_limit, clamp_offset, get_user_or_404, is_following
from src.storage import StorageBackend, get_storage, signed_url_or_none

logger = logging.getLogger(__name__)

router = APIRouter()


def _follow_user_out(user: Users, followed_at, storage: StorageBackend) -> FollowUserOut:
    return FollowUserOut(
        id=user.id,
        username=user.username,
        display_name=user.display_name,
        avatar_url=signed_url_or_none(storage, user.avatar_url),
        followed_at=followed_at,
    )


# Registered ahead of the /{user_id}/... routes
@router.get("/suggestions/follow", response_model=list[FollowSuggestionOut])
def follow_suggestions(
    limit: Optional[int] = Query(None),
    user: Users = Depends(require_user),
    db: Session = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
):
    limit = clamp_limit(limit, 10, 50)
    already = select(Follow.following_id).where(Follow.follower_id == user.id)
    followers = (
        select(Follow.following_id.label("uid"), func.count(Follow.id).label("n"))
        .group_by(Follow.following_id)
        .subquery()
    )
    rows = (
        db.query(Users, func.coalesce(followers.c.n, 0))
        .outerjoin(followers, followers.c.uid == Users.id)
        .filter(Users.id != user.id, Users.id.notin_(already))
        .order_by(func.coalesce(followers.c.n, 0).desc(), Users.created_at.desc())
        .limit(limit)
        .all()
    )
    return [
        FollowSuggestionOut(
            id=u.id,
            username=u.username,
            display_name=u.display_name,
            avatar_url=signed_url_or_none(storage, u.avatar_url),
            bio=u.bio,
            follower_count=n,
        )
        for u, n in rows
    ]


@router.post(
    "/{user_id}/follow",
    response_model=MessageOut,
    responses={
        400: {"description": "Bad Request - Cannot follow yourself or already following"},
        404: {"description": "User not found"},
    },
)
def follow_user(user_id: str, user: Users = Depends(require_user), db: Session = Depends(get_db)):
    if user_id == user.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot follow yourself")
    target = get_user_or_404(db, user_id)
    if is_following(db, user.id, target.id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Already following this user")

    db.add(Follow(follower_id=user.id, following_id=target.id))
    db.commit()
    logger.info("User %s followed %s", user.id, target.id)
    return MessageOut(message="User followed")


@router.delete(
    "/{user_id}/follow",
    response_model=MessageOut,
    responses={400: {"description": "Bad Request - Not following this user"}},
)
def unfollow_user(user_id: str, user: Users = Depends(require_user), db: Session = Depends(get_db)):
    removed = db.query(Follow).filter(
        Follow.follower_id == user.id, Follow.following_id == user_id
    ).delete(synchronize_session=False)
    if not removed:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Not following this user")
    db.commit()
    logger.info("User %s unfollowed %s", user.id, user_id)
    return MessageOut(message="User unfollowed")


@router.get(
    "/{user_id}/followers",
    response_model=FollowersPage,
    responses={404: {"description": "User not found"}},
)
def list_followers(
    user_id: str,
    limit: Optional[int] = Query(None),
    offset: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
):
    target = get_user_or_404(db, user_id)
    limit, offset = clamp_limit(limit, 20, 100), clamp_offset(offset)
    q = db.query(Follow).filter(Follow.following_id == target.id)
    total = q.count()
    links = q.order_by(Follow.created_at.desc()).offset(offset).limit(limit).all()
    return FollowersPage(
        followers=[_follow_user_out(f.follower, f.created_at, storage) for f in links],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get(
    "/{user_id}/following",
    response_model=FollowingPage,
    responses={404: {"description": "User not found"}},
)
def list_following(
    user_id: str,
    limit: Optional[int] = Query(None),
    offset: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
):
    target = get_user_or_404(db, user_id)
    limit, offset = clamp_limit(limit, 20, 100), clamp_offset(offset)
    q = db.query(Follow).filter(Follow.follower_id == target.id)
    total = q.count()
    links = q.order_by(Follow.created_at.desc()).offset(offset).limit(limit).all()
    return FollowingPage(
        following=[_follow_user_out(f.following, f.created_at, storage) for f in links],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/{user_id}/is-following", response_model=IsFollowingOut)
def check_is_following(user_id: str, user: Users = Depends(require_user), db: Session = Depends(get_db)):
    return IsFollowingOut(is_following=is_following(db, user.id, user_id))
