# model/subscription.py
from sqlalchemy import (
    Column, String, Text, Integer, ForeignKey, UniqueConstraint, DateTime as SADateTime
)
from sqlalchemy.orm import relationship

from model.base import Base
from src.id_generator import id_factory
from src.utils import utcnow


class UserMonthlyStats(Base):
    """Per-user usage counters for one calendar month (``YYYY-MM``, UTC)."""
    __tablename__ = "user_monthly_stats"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(50), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    month = Column(String(7), nullable=False)
    coins_uploaded_count = Column(Integer, nullable=False, default=0)
    trades_initiated_count = Column(Integer, nullable=False, default=0)
    created_at = Column(SADateTime, nullable=False, default=utcnow)
    updated_at = Column(SADateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        UniqueConstraint("user_id", "month", name="uq_user_monthly_stats_month"),
    )

    user = relationship("Users", back_populates="monthly_stats")


class SubscriptionReceipt(Base):
    __tablename__ = "subscription_receipts"

    id = Column(String(50), primary_key=True, default=id_factory("receipt"))
    user_id = Column(String(50), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    platform = Column(String(20), nullable=False)  # ios | android | web
    product_id = Column(String(255), nullable=False)
    transaction_id = Column(String(255), nullable=False, unique=True)
    receipt_data = Column(Text)
    expires_at = Column(SADateTime)
    created_at = Column(SADateTime, nullable=False, default=utcnow)
