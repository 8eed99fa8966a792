# model/password_reset.py
"""
SQLAlchemy model for password reset tokens.
"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship

from model.base import Base
from src.utils import utcnow


class PasswordResetToken(Base):
    """Password reset token model for forgot password functionality."""

    __tablename__ = "password_reset_tokens"

    id = Column(Integer, primary_key=True, autoincrement=True)

    user_id = Column(
        String(50),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    # Only the SHA-256 of the emailed token is stored
    token_hash = Column(String(64), nullable=False, unique=True)

    expires_at = Column(DateTime, nullable=False, index=True)

    # When token was used (null = not used yet)
    used_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)

    user = relationship("Users", back_populates="password_reset_tokens")

    __table_args__ = (
        Index("ix_password_reset_user_valid", "user_id", "expires_at", "used_at"),
    )

    def __repr__(self):
        return f"<PasswordResetToken(id={self.id}, user_id={self.user_id}, expires_at={self.expires_at}, used={self.used_at is not None})>"

    def is_valid(self) -> bool:
        """Check if token is valid (not expired and not used)."""
        return self.expires_at > utcnow() and self.used_at is None

    def mark_as_used(self):
        self.used_at = utcnow()
