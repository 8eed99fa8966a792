# model/user.py
from sqlalchemy import (
    Column, String, Text, Boolean, Integer, ForeignKey, Index, DateTime as SADateTime
)
from sqlalchemy.orm import relationship
from sqlalchemy import Enum as SAEnum

from model.base import Base
from model.enums import UserRole, SubscriptionTier, Privacy, values
from src.id_generator import id_factory
from src.utils import utcnow


class Users(Base):
    __tablename__ = "users"

    id = Column(String(50), primary_key=True, default=id_factory("user"))
    email = Column(String(255), unique=True, nullable=False)
    # NULL until the onboarding step picks one
    username = Column(String(30), unique=True, nullable=True)
    display_name = Column(String(100))
    avatar_url = Column(String(512))  # storage key, signed per response
    bio = Column(String(500))
    location = Column(String(100))
    collection_privacy = Column(SAEnum(*values(Privacy), name="collection_privacy"), nullable=False, default=Privacy.public.value)
    role = Column(SAEnum(*values(UserRole), name="user_role"), nullable=False, default=UserRole.user.value)
    invite_code_used = Column(String(50))

    subscription_tier = Column(SAEnum(*values(SubscriptionTier), name="subscription_tier"), nullable=False, default=SubscriptionTier.free.value)
    subscription_started_at = Column(SADateTime)
    subscription_expires_at = Column(SADateTime)

    email_notifications = Column(Boolean, nullable=False, default=True)
    marketing_emails = Column(Boolean, nullable=False, default=False)

    created_at = Column(SADateTime, nullable=False, default=utcnow)
    updated_at = Column(SADateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("ix_users_display_name", "display_name"),
    )

    creds = relationship("UserCredential", uselist=False, back_populates="user", cascade="all, delete-orphan", passive_deletes=True)
    sessions = relationship("SessionToken", back_populates="user", cascade="all, delete-orphan", passive_deletes=True)
    coins = relationship("Coin", back_populates="user", cascade="all, delete-orphan", passive_deletes=True)
    likes = relationship("Like", back_populates="user", cascade="all, delete-orphan", passive_deletes=True)
    comments = relationship("Comment", back_populates="user", cascade="all, delete-orphan", passive_deletes=True)
    following_links = relationship(
        "Follow", foreign_keys="Follow.follower_id", back_populates="follower",
        cascade="all, delete-orphan", passive_deletes=True,
    )
    follower_links = relationship(
        "Follow", foreign_keys="Follow.following_id", back_populates="following",
        cascade="all, delete-orphan", passive_deletes=True,
    )
    monthly_stats = relationship("UserMonthlyStats", back_populates="user", cascade="all, delete-orphan", passive_deletes=True)
    password_reset_tokens = relationship("PasswordResetToken", back_populates="user", cascade="all, delete-orphan", passive_deletes=True)

    def __repr__(self):
        return f"<Users(id={self.id}, username={self.username})>"


class UserCredential(Base):
    __tablename__ = "user_credentials"

    user_id = Column(String(50), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    password_hash = Column(String(255), nullable=False)
    password_algo = Column(SAEnum("bcrypt", name="password_algo"), nullable=False, default="bcrypt")
    last_password_change = Column(SADateTime)

    user = relationship("Users", back_populates="creds")


class SessionToken(Base):
    __tablename__ = "sessions"

    id = Column(String(50), primary_key=True, default=id_factory("session"))
    user_id = Column(String(50), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    token = Column(String(128), unique=True, nullable=False)
    user_agent = Column(String(255))
    ip_addr = Column(String(45))
    created_at = Column(SADateTime, nullable=False, default=utcnow)
    expires_at = Column(SADateTime, nullable=False)
    revoked_at = Column(SADateTime)

    user = relationship("Users", back_populates="sessions")

    def is_active(self) -> bool:
        return self.revoked_at is None and self.expires_at > utcnow()


class InviteCode(Base):
    __tablename__ = "invite_codes"

    id = Column(String(50), primary_key=True, default=id_factory("invite"))
    code = Column(String(50), unique=True, nullable=False, index=True)
    # NULL = unlimited
    usage_limit = Column(Integer, nullable=True)
    usage_count = Column(Integer, nullable=False, default=0)
    expires_at = Column(SADateTime, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(SADateTime, nullable=False, default=utcnow)
    description = Column(Text)
