# model/coin.py
"""
Coins and their ordered images.

Image rows store a storage key in ``url``; routes turn it into a signed URL
at response time.
"""
from sqlalchemy import (
    Column, String, Text, Boolean, Integer, ForeignKey, Index, DateTime as SADateTime
)
from sqlalchemy.orm import relationship
from sqlalchemy import Enum as SAEnum

from model.base import Base
from model.enums import Privacy, CoinTradeStatus, values
from src.id_generator import id_factory
from src.utils import utcnow


class Coin(Base):
    __tablename__ = "coins"

    id = Column(String(50), primary_key=True, default=id_factory("coin"))
    user_id = Column(String(50), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    title = Column(String(255), nullable=False)
    country = Column(String(100), nullable=False)
    year = Column(Integer, nullable=False)
    unit = Column(String(100))
    organization = Column(String(100))
    agency = Column(String(100))
    deployment = Column(String(100))
    coin_number = Column(String(100))
    mint_mark = Column(String(50))
    condition = Column(String(100))
    description = Column(Text)
    version = Column(String(100))
    manufacturer = Column(String(100))

    visibility = Column(SAEnum(*values(Privacy), name="coin_visibility"), nullable=False, default=Privacy.public.value)
    trade_status = Column(SAEnum(*values(CoinTradeStatus), name="coin_trade_status"), nullable=False, default=CoinTradeStatus.not_for_trade.value)

    # Cached counters, refreshed from row counts on every like/comment write
    like_count = Column(Integer, nullable=False, default=0)
    comment_count = Column(Integer, nullable=False, default=0)

    is_archived = Column(Boolean, nullable=False, default=False)
    # Created by the trade offer upload flow; hidden from feeds and limits
    is_temporary_trade_coin = Column(Boolean, nullable=False, default=False)

    created_at = Column(SADateTime, nullable=False, default=utcnow)
    updated_at = Column(SADateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("ix_coins_user_created", "user_id", "created_at"),
        Index("ix_coins_visibility_created", "visibility", "created_at"),
        Index("ix_coins_trade_status", "trade_status"),
        Index("ix_coins_country_year", "country", "year"),
    )

    user = relationship("Users", back_populates="coins")
    images = relationship(
        "CoinImage", back_populates="coin", order_by="CoinImage.order_index",
        cascade="all, delete-orphan", passive_deletes=True,
    )
    likes = relationship("Like", back_populates="coin", cascade="all, delete-orphan", passive_deletes=True)
    comments = relationship("Comment", back_populates="coin", cascade="all, delete-orphan", passive_deletes=True)

    @property
    def is_public(self) -> bool:
        return self.visibility == Privacy.public.value

    def __repr__(self):
        return f"<Coin(id={self.id}, title={self.title!r}, owner={self.user_id})>"


class CoinImage(Base):
    __tablename__ = "coin_images"

    id = Column(String(50), primary_key=True, default=id_factory("coin_image"))
    coin_id = Column(String(50), ForeignKey("coins.id", ondelete="CASCADE"), nullable=False)
    url = Column(String(512), nullable=False)
    order_index = Column(Integer, nullable=False, default=0)
    created_at = Column(SADateTime, nullable=False, default=utcnow)

    __table_args__ = (
        Index("ix_coin_images_coin_order", "coin_id", "order_index"),
    )

    coin = relationship("Coin", back_populates="images")
