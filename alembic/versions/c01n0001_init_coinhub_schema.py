"""init coinhub schema

Revision ID: c01n0001
Revises:
Create Date: 2026-01-15 16:58:42.000000

Accounts, coins and images, likes/comments/follows, trades with offers,
messages, shipping, reports and ratings, and subscription usage.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'c01n0001'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

PRIVACY = ("public", "private")
TRADE_STATUS = ("pending", "countered", "accepted", "rejected", "completed", "cancelled", "disputed")
OFFER_STATUS = ("pending", "accepted", "rejected")

MYSQL_OPTS = {"mysql_engine": "InnoDB", "mysql_charset": "utf8mb4"}


def _id():
    return sa.Column("id", sa.String(50), primary_key=True)


def _user_fk(name, nullable=False, ondelete="CASCADE"):
    return sa.Column(name, sa.String(50), sa.ForeignKey("users.id", ondelete=ondelete), nullable=nullable)


def _created():
    return sa.Column("created_at", sa.DateTime(), nullable=False)


def _updated():
    return sa.Column("updated_at", sa.DateTime(), nullable=False)


def upgrade() -> None:
    # --- Accounts ---
    op.create_table(
        "users",
        _id(),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("username", sa.String(30), nullable=True, unique=True),
        sa.Column("display_name", sa.String(100)),
        sa.Column("avatar_url", sa.String(512)),
        sa.Column("bio", sa.String(500)),
        sa.Column("location", sa.String(100)),
        sa.Column("collection_privacy", sa.Enum(*PRIVACY, name="collection_privacy"), nullable=False, server_default="public"),
        sa.Column("role", sa.Enum("user", "moderator", "admin", name="user_role"), nullable=False, server_default="user"),
        sa.Column("invite_code_used", sa.String(50)),
        sa.Column("subscription_tier", sa.Enum("free", "premium", name="subscription_tier"), nullable=False, server_default="free"),
        sa.Column("subscription_started_at", sa.DateTime()),
        sa.Column("subscription_expires_at", sa.DateTime()),
        sa.Column("email_notifications", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("marketing_emails", sa.Boolean(), nullable=False, server_default=sa.false()),
        _created(),
        _updated(),
        **MYSQL_OPTS,
    )
    op.create_index("ix_users_display_name", "users", ["display_name"])

    op.create_table(
        "user_credentials",
        sa.Column("user_id", sa.String(50), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("password_algo", sa.Enum("bcrypt", name="password_algo"), nullable=False, server_default="bcrypt"),
        sa.Column("last_password_change", sa.DateTime()),
        **MYSQL_OPTS,
    )

    op.create_table(
        "sessions",
        _id(),
        _user_fk("user_id"),
        sa.Column("token", sa.String(128), nullable=False, unique=True),
        sa.Column("user_agent", sa.String(255)),
        sa.Column("ip_addr", sa.String(45)),
        _created(),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.Column("revoked_at", sa.DateTime()),
        **MYSQL_OPTS,
    )
    op.create_index("ix_sessions_user_id", "sessions", ["user_id"])

    op.create_table(
        "password_reset_tokens",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        _user_fk("user_id"),
        sa.Column("token_hash", sa.String(64), nullable=False, unique=True),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.Column("used_at", sa.DateTime()),
        _created(),
        **MYSQL_OPTS,
    )
    op.create_index("ix_password_reset_tokens_user_id", "password_reset_tokens", ["user_id"])
    op.create_index("ix_password_reset_tokens_expires_at", "password_reset_tokens", ["expires_at"])
    op.create_index("ix_password_reset_user_valid", "password_reset_tokens", ["user_id", "expires_at", "used_at"])

    op.create_table(
        "invite_codes",
        _id(),
        sa.Column("code", sa.String(50), nullable=False),
        sa.Column("usage_limit", sa.Integer()),
        sa.Column("usage_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("expires_at", sa.DateTime()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _created(),
        sa.Column("description", sa.Text()),
        **MYSQL_OPTS,
    )
    op.create_index("ix_invite_codes_code", "invite_codes", ["code"], unique=True)

    # --- Coins ---
    op.create_table(
        "coins",
        _id(),
        _user_fk("user_id"),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("country", sa.String(100), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("unit", sa.String(100)),
        sa.Column("organization", sa.String(100)),
        sa.Column("agency", sa.String(100)),
        sa.Column("deployment", sa.String(100)),
        sa.Column("coin_number", sa.String(100)),
        sa.Column("mint_mark", sa.String(50)),
        sa.Column("condition", sa.String(100)),
        sa.Column("description", sa.Text()),
        sa.Column("version", sa.String(100)),
        sa.Column("manufacturer", sa.String(100)),
        sa.Column("visibility", sa.Enum(*PRIVACY, name="coin_visibility"), nullable=False, server_default="public"),
        sa.Column(
            "trade_status",
            sa.Enum("not_for_trade", "open_to_trade", name="coin_trade_status"),
            nullable=False,
            server_default="not_for_trade",
        ),
        sa.Column("like_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("comment_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_archived", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_temporary_trade_coin", sa.Boolean(), nullable=False, server_default=sa.false()),
        _created(),
        _updated(),
        **MYSQL_OPTS,
    )
    op.create_index("ix_coins_user_created", "coins", ["user_id", "created_at"])
    op.create_index("ix_coins_visibility_created", "coins", ["visibility", "created_at"])
    op.create_index("ix_coins_trade_status", "coins", ["trade_status"])
    op.create_index("ix_coins_country_year", "coins", ["country", "year"])

    op.create_table(
        "coin_images",
        _id(),
        sa.Column("coin_id", sa.String(50), sa.ForeignKey("coins.id", ondelete="CASCADE"), nullable=False),
        sa.Column("url", sa.String(512), nullable=False),
        sa.Column("order_index", sa.Integer(), nullable=False, server_default="0"),
        _created(),
        **MYSQL_OPTS,
    )
    op.create_index("ix_coin_images_coin_order", "coin_images", ["coin_id", "order_index"])

    # --- Social ---
    op.create_table(
        "likes",
        _id(),
        _user_fk("user_id"),
        sa.Column("coin_id", sa.String(50), sa.ForeignKey("coins.id", ondelete="CASCADE"), nullable=False),
        _created(),
        sa.UniqueConstraint("user_id", "coin_id", name="uq_likes_user_coin"),
        **MYSQL_OPTS,
    )
    op.create_index("idx_likes_coin", "likes", ["coin_id", "created_at"])

    op.create_table(
        "comments",
        _id(),
        sa.Column("coin_id", sa.String(50), sa.ForeignKey("coins.id", ondelete="CASCADE"), nullable=False),
        _user_fk("user_id"),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("is_deleted", sa.Boolean(), nullable=False, server_default=sa.false()),
        _created(),
        sa.Column("updated_at", sa.DateTime()),
        **MYSQL_OPTS,
    )
    op.create_index("idx_comments_coin", "comments", ["coin_id", "created_at"])
    op.create_index("idx_comments_author", "comments", ["user_id", "created_at"])

    op.create_table(
        "follows",
        _id(),
        _user_fk("follower_id"),
        _user_fk("following_id"),
        _created(),
        sa.UniqueConstraint("follower_id", "following_id", name="uq_follower_following"),
        sa.CheckConstraint("follower_id != following_id", name="ck_no_self_follow"),
        **MYSQL_OPTS,
    )
    op.create_index("ix_follows_follower_id", "follows", ["follower_id"])
    op.create_index("ix_follows_following_id", "follows", ["following_id"])

    # --- Trades ---
    op.create_table(
        "trades",
        _id(),
        _user_fk("initiator_id"),
        _user_fk("coin_owner_id"),
        sa.Column("coin_id", sa.String(50), sa.ForeignKey("coins.id", ondelete="CASCADE"), nullable=False),
        sa.Column("status", sa.Enum(*TRADE_STATUS, name="trade_status"), nullable=False, server_default="pending"),
        _created(),
        _updated(),
        **MYSQL_OPTS,
    )
    op.create_index("ix_trades_initiator", "trades", ["initiator_id", "created_at"])
    op.create_index("ix_trades_owner", "trades", ["coin_owner_id", "created_at"])
    op.create_index("ix_trades_coin_status", "trades", ["coin_id", "status"])

    op.create_table(
        "trade_offers",
        _id(),
        sa.Column("trade_id", sa.String(50), sa.ForeignKey("trades.id", ondelete="CASCADE"), nullable=False),
        _user_fk("offerer_id"),
        sa.Column("offered_coin_id", sa.String(50), sa.ForeignKey("coins.id", ondelete="SET NULL"), nullable=True),
        sa.Column("message", sa.Text()),
        sa.Column("is_counter_offer", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("status", sa.Enum(*OFFER_STATUS, name="offer_status"), nullable=False, server_default="pending"),
        _created(),
        **MYSQL_OPTS,
    )
    op.create_index("ix_trade_offers_trade_id", "trade_offers", ["trade_id"])

    op.create_table(
        "trade_messages",
        _id(),
        sa.Column("trade_id", sa.String(50), sa.ForeignKey("trades.id", ondelete="CASCADE"), nullable=False),
        _user_fk("sender_id"),
        sa.Column("content", sa.Text(), nullable=False),
        _created(),
        **MYSQL_OPTS,
    )
    op.create_index("ix_trade_messages_trade_id", "trade_messages", ["trade_id"])

    op.create_table(
        "trade_shipping",
        _id(),
        sa.Column("trade_id", sa.String(50), sa.ForeignKey("trades.id", ondelete="CASCADE"), nullable=False, unique=True),
        sa.Column("initiator_shipped", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("initiator_tracking_number", sa.String(255)),
        sa.Column("initiator_shipped_at", sa.DateTime()),
        sa.Column("initiator_received", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("initiator_received_at", sa.DateTime()),
        sa.Column("owner_shipped", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("owner_tracking_number", sa.String(255)),
        sa.Column("owner_shipped_at", sa.DateTime()),
        sa.Column("owner_received", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("owner_received_at", sa.DateTime()),
        _created(),
        _updated(),
        **MYSQL_OPTS,
    )

    op.create_table(
        "trade_reports",
        _id(),
        sa.Column("trade_id", sa.String(50), sa.ForeignKey("trades.id", ondelete="CASCADE"), nullable=False),
        _user_fk("reporter_id"),
        _user_fk("reported_user_id"),
        sa.Column("reason", sa.String(100), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column(
            "status",
            sa.Enum("pending", "reviewed", "resolved", name="report_status"),
            nullable=False,
            server_default="pending",
        ),
        _user_fk("reviewed_by", nullable=True, ondelete="SET NULL"),
        sa.Column("review_notes", sa.Text()),
        _created(),
        **MYSQL_OPTS,
    )
    op.create_index("ix_trade_reports_trade_id", "trade_reports", ["trade_id"])

    op.create_table(
        "trade_ratings",
        _id(),
        sa.Column("trade_id", sa.String(50), sa.ForeignKey("trades.id", ondelete="CASCADE"), nullable=False),
        _user_fk("rater_id"),
        _user_fk("rated_user_id"),
        sa.Column("rating", sa.Integer(), nullable=False),
        sa.Column("comment", sa.Text()),
        _created(),
        sa.UniqueConstraint("trade_id", "rater_id", name="uq_trade_rating_rater"),
        sa.CheckConstraint("rating >= 1 AND rating <= 5", name="ck_trade_rating_range"),
        **MYSQL_OPTS,
    )

    # --- Subscription ---
    op.create_table(
        "user_monthly_stats",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        _user_fk("user_id"),
        sa.Column("month", sa.String(7), nullable=False),
        sa.Column("coins_uploaded_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("trades_initiated_count", sa.Integer(), nullable=False, server_default="0"),
        _created(),
        _updated(),
        sa.UniqueConstraint("user_id", "month", name="uq_user_monthly_stats_month"),
        **MYSQL_OPTS,
    )

    op.create_table(
        "subscription_receipts",
        _id(),
        _user_fk("user_id"),
        sa.Column("platform", sa.String(20), nullable=False),
        sa.Column("product_id", sa.String(255), nullable=False),
        sa.Column("transaction_id", sa.String(255), nullable=False, unique=True),
        sa.Column("receipt_data", sa.Text()),
        sa.Column("expires_at", sa.DateTime()),
        _created(),
        **MYSQL_OPTS,
    )
    op.create_index("ix_subscription_receipts_user_id", "subscription_receipts", ["user_id"])


def downgrade() -> None:
    for table in (
        "subscription_receipts",
        "user_monthly_stats",
        "trade_ratings",
        "trade_reports",
        "trade_shipping",
        "trade_messages",
        "trade_offers",
        "trades",
        "follows",
        "comments",
        "likes",
        "coin_images",
        "coins",
        "invite_codes",
        "password_reset_tokens",
        "sessions",
        "user_credentials",
        "users",
    ):
        op.drop_table(table)
