from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from schema.base import CamelModel
from schema.user import UserSummaryOut


# ------------------------------------------------------------
# Likes
# ------------------------------------------------------------
class LikeStateOut(CamelModel):
    liked: bool
    like_count: int


class LikersOut(CamelModel):
    users: List[UserSummaryOut]
    total: int


# ------------------------------------------------------------
# Comments
# ------------------------------------------------------------
DELETED_COMMENT_PLACEHOLDER = "[Comment deleted]"


class CommentCreate(CamelModel):
    content: str = Field(min_length=1, max_length=1000)


class CommentOut(CamelModel):
    id: str
    coin_id: str
    content: str
    is_deleted: bool = False
    created_at: datetime
    user: Optional[UserSummaryOut] = None


# ------------------------------------------------------------
# Follows
# ------------------------------------------------------------
class FollowUserOut(UserSummaryOut):
    followed_at: datetime


class FollowersPage(CamelModel):
    followers: List[FollowUserOut]
    total: int
    limit: int
    offset: int


class FollowingPage(CamelModel):
    following: List[FollowUserOut]
    total: int
    limit: int
    offset: int


class FollowSuggestionOut(UserSummaryOut):
    bio: Optional[str] = None
    follower_count: int = 0


class IsFollowingOut(CamelModel):
    is_following: bool


__all__ = [
    "LikeStateOut",
    "LikersOut",
    "DELETED_COMMENT_PLACEHOLDER",
    "CommentCreate",
    "CommentOut",
    "FollowUserOut",
    "FollowersPage",
    "FollowingPage",
    "FollowSuggestionOut",
    "IsFollowingOut",
]
