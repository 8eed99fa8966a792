# social/models.py
from __future__ import annotations

from sqlalchemy import (
    Column,
    String,
    Text,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    UniqueConstraint,
    CheckConstraint,
)
from sqlalchemy.orm import relationship

from model.base import Base
from src.id_generator import id_factory
from src.utils import utcnow


# ---------------------------------------------------------------------------
# Likes: user → coin
# Unique pair prevents duplicates.
# ---------------------------------------------------------------------------
class Like(Base):
    __tablename__ = "likes"

    id = Column(String(50), primary_key=True, default=id_factory("like"))
    user_id = Column(String(50), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    coin_id = Column(String(50), ForeignKey("coins.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint("user_id", "coin_id", name="uq_likes_user_coin"),
        Index("idx_likes_coin", "coin_id", "created_at"),
    )

    user = relationship("Users", back_populates="likes")
    coin = relationship("Coin", back_populates="likes")


# ---------------------------------------------------------------------------
# Comments on coins
# Soft-deletion keeps the thread coherent.
# ---------------------------------------------------------------------------
class Comment(Base):
    __tablename__ = "comments"

    id = Column(String(50), primary_key=True, default=id_factory("comment"))
    coin_id = Column(String(50), ForeignKey("coins.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String(50), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    content = Column(Text, nullable=False)
    is_deleted = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=True, onupdate=utcnow)

    __table_args__ = (
        Index("idx_comments_coin", "coin_id", "created_at"),
        Index("idx_comments_author", "user_id", "created_at"),
    )

    user = relationship("Users", back_populates="comments")
    coin = relationship("Coin", back_populates="comments")


# ---------------------------------------------------------------------------
# Follows: user → user
# ---------------------------------------------------------------------------
class Follow(Base):
    """
    Directed following relationship between two users.

    Example:
        - User A follows User B
          -> follower_id=A, following_id=B
    """
    __tablename__ = "follows"

    id = Column(String(50), primary_key=True, default=id_factory("follow"))
    follower_id = Column(String(50), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    following_id = Column(String(50), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    follower = relationship("Users", foreign_keys=[follower_id], back_populates="following_links")
    following = relationship("Users", foreign_keys=[following_id], back_populates="follower_links")

    __table_args__ = (
        UniqueConstraint("follower_id", "following_id", name="uq_follower_following"),
        CheckConstraint("follower_id != following_id", name="ck_no_self_follow"),
    )

    def __repr__(self):
        return f"<Follow(follower={self.follower_id}, following={self.following_id})>"
