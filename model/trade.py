# model/trade.py
"""
Trade negotiation records.

A Trade targets one coin owned by ``coin_owner_id`` and is opened by
``initiator_id``. Offers, messages, the shipping record, reports and ratings
hang off the trade row and are removed with it.
"""
from sqlalchemy import (
    Column, String, Text, Boolean, Integer, ForeignKey, Index, UniqueConstraint,
    CheckConstraint, DateTime as SADateTime
)
from sqlalchemy.orm import relationship
from sqlalchemy import Enum as SAEnum

from model.base import Base
from model.enums import TradeStatus, OfferStatus, ReportStatus, values
from src.id_generator import id_factory
from src.utils import utcnow


class Trade(Base):
    __tablename__ = "trades"

    id = Column(String(50), primary_key=True, default=id_factory("trade"))
    initiator_id = Column(String(50), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    coin_owner_id = Column(String(50), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    coin_id = Column(String(50), ForeignKey("coins.id", ondelete="CASCADE"), nullable=False)
    status = Column(SAEnum(*values(TradeStatus), name="trade_status"), nullable=False, default=TradeStatus.pending.value)
    created_at = Column(SADateTime, nullable=False, default=utcnow)
    updated_at = Column(SADateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("ix_trades_initiator", "initiator_id", "created_at"),
        Index("ix_trades_owner", "coin_owner_id", "created_at"),
        Index("ix_trades_coin_status", "coin_id", "status"),
    )

    initiator = relationship("Users", foreign_keys=[initiator_id])
    coin_owner = relationship("Users", foreign_keys=[coin_owner_id])
    coin = relationship("Coin", foreign_keys=[coin_id])
    offers = relationship(
        "TradeOffer", back_populates="trade", order_by="TradeOffer.created_at",
        cascade="all, delete-orphan", passive_deletes=True,
    )
    messages = relationship(
        "TradeMessage", back_populates="trade", order_by="TradeMessage.created_at",
        cascade="all, delete-orphan", passive_deletes=True,
    )
    shipping = relationship("TradeShipping", back_populates="trade", uselist=False, cascade="all, delete-orphan", passive_deletes=True)
    reports = relationship("TradeReport", back_populates="trade", cascade="all, delete-orphan", passive_deletes=True)
    ratings = relationship("TradeRating", back_populates="trade", cascade="all, delete-orphan", passive_deletes=True)

    def is_participant(self, user_id: str) -> bool:
        return user_id in (self.initiator_id, self.coin_owner_id)

    def other_party_id(self, user_id: str) -> str:
        return self.coin_owner_id if user_id == self.initiator_id else self.initiator_id

    def __repr__(self):
        return f"<Trade(id={self.id}, coin={self.coin_id}, status={self.status})>"


class TradeOffer(Base):
    __tablename__ = "trade_offers"

    id = Column(String(50), primary_key=True, default=id_factory("offer"))
    trade_id = Column(String(50), ForeignKey("trades.id", ondelete="CASCADE"), nullable=False, index=True)
    offerer_id = Column(String(50), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    offered_coin_id = Column(String(50), ForeignKey("coins.id", ondelete="SET NULL"), nullable=True)
    message = Column(Text)
    is_counter_offer = Column(Boolean, nullable=False, default=False)
    status = Column(SAEnum(*values(OfferStatus), name="offer_status"), nullable=False, default=OfferStatus.pending.value)
    created_at = Column(SADateTime, nullable=False, default=utcnow)

    trade = relationship("Trade", back_populates="offers")
    offerer = relationship("Users", foreign_keys=[offerer_id])
    offered_coin = relationship("Coin", foreign_keys=[offered_coin_id])


class TradeMessage(Base):
    __tablename__ = "trade_messages"

    id = Column(String(50), primary_key=True, default=id_factory("message"))
    trade_id = Column(String(50), ForeignKey("trades.id", ondelete="CASCADE"), nullable=False, index=True)
    sender_id = Column(String(50), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(SADateTime, nullable=False, default=utcnow)

    trade = relationship("Trade", back_populates="messages")
    sender = relationship("Users", foreign_keys=[sender_id])


class TradeShipping(Base):
    __tablename__ = "trade_shipping"

    id = Column(String(50), primary_key=True, default=id_factory("shipping"))
    trade_id = Column(String(50), ForeignKey("trades.id", ondelete="CASCADE"), nullable=False, unique=True)

    initiator_shipped = Column(Boolean, nullable=False, default=False)
    initiator_tracking_number = Column(String(255))
    initiator_shipped_at = Column(SADateTime)
    initiator_received = Column(Boolean, nullable=False, default=False)
    initiator_received_at = Column(SADateTime)

    owner_shipped = Column(Boolean, nullable=False, default=False)
    owner_tracking_number = Column(String(255))
    owner_shipped_at = Column(SADateTime)
    owner_received = Column(Boolean, nullable=False, default=False)
    owner_received_at = Column(SADateTime)

    created_at = Column(SADateTime, nullable=False, default=utcnow)
    updated_at = Column(SADateTime, nullable=False, default=utcnow, onupdate=utcnow)

    trade = relationship("Trade", back_populates="shipping")

    def mark_shipped(self, side: str, shipped: bool, tracking_number=None, at=None):
        setattr(self, f"{side}_shipped", shipped)
        setattr(self, f"{side}_shipped_at", (at or utcnow()) if shipped else None)
        if tracking_number is not None:
            setattr(self, f"{side}_tracking_number", tracking_number)

    def mark_received(self, side: str, at=None):
        setattr(self, f"{side}_received", True)
        setattr(self, f"{side}_received_at", at or utcnow())

    @property
    def both_received(self) -> bool:
        return bool(self.initiator_received and self.owner_received)


class TradeReport(Base):
    __tablename__ = "trade_reports"

    id = Column(String(50), primary_key=True, default=id_factory("report"))
    trade_id = Column(String(50), ForeignKey("trades.id", ondelete="CASCADE"), nullable=False, index=True)
    reporter_id = Column(String(50), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    reported_user_id = Column(String(50), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    reason = Column(String(100), nullable=False)
    description = Column(Text)
    status = Column(SAEnum(*values(ReportStatus), name="report_status"), nullable=False, default=ReportStatus.pending.value)
    reviewed_by = Column(String(50), ForeignKey("users.id", ondelete="SET NULL"))
    review_notes = Column(Text)
    created_at = Column(SADateTime, nullable=False, default=utcnow)

    trade = relationship("Trade", back_populates="reports")
    reporter = relationship("Users", foreign_keys=[reporter_id])
    reported_user = relationship("Users", foreign_keys=[reported_user_id])


class TradeRating(Base):
    __tablename__ = "trade_ratings"

    id = Column(String(50), primary_key=True, default=id_factory("rating"))
    trade_id = Column(String(50), ForeignKey("trades.id", ondelete="CASCADE"), nullable=False)
    rater_id = Column(String(50), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    rated_user_id = Column(String(50), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    rating = Column(Integer, nullable=False)
    comment = Column(Text)
    created_at = Column(SADateTime, nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint("trade_id", "rater_id", name="uq_trade_rating_rater"),
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_trade_rating_range"),
    )

    trade = relationship("Trade", back_populates="ratings")
