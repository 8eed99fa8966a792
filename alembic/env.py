# alembic/env.py
from logging.config import fileConfig
from alembic import context
from sqlalchemy import engine_from_config, pool

# --- Load .env so we can read DB_URL
import logging
import os
from pathlib import Path
from dotenv import load_dotenv

PROJECT_ROOT = Path(__file__).resolve().parents[1]

# Load .env at project root
load_dotenv(PROJECT_ROOT / ".env")

# alembic.ini sets prepend_sys_path = . so the project packages import from the repo root
from model.base import Base

# Load all models so they're registered with Base.metadata
from model import load_all_models
load_all_models()

config = context.config

# Prefer DB_URL from env over alembic.ini
db_url = os.getenv("DB_URL")
if db_url:
    config.set_main_option("sqlalchemy.url", db_url)

# Logging config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

logger = logging.getLogger("alembic.env")

target_metadata = Base.metadata

# ===================================================================
# Safety checks with process_revision_directives
# ===================================================================

# Tables holding user data; autogenerate must never drop them or their columns
PROTECTED_TABLES = {
    # Accounts
    'users', 'user_credentials', 'sessions', 'password_reset_tokens', 'invite_codes',

    # Collection
    'coins', 'coin_images',

    # Social
    'likes', 'comments', 'follows',

    # Trading
    'trades', 'trade_offers', 'trade_messages', 'trade_shipping',
    'trade_reports', 'trade_ratings',

    # Subscription
    'user_monthly_stats', 'subscription_receipts',
}


def find_dangerous_ops(upgrade_ops) -> list:
    dangerous_ops = []
    for op in upgrade_ops.ops:
        kind = op.__class__.__name__
        table = getattr(op, 'table_name', None)
        if table not in PROTECTED_TABLES:
            continue
        if kind == 'DropTableOp':
            dangerous_ops.append(f"DROP TABLE {table}")
        elif kind == 'DropIndexOp':
            dangerous_ops.append(f"DROP INDEX {op.index_name} on {table}")
        elif kind == 'ModifyTableOps':
            for sub in op.ops:
                if sub.__class__.__name__ == 'DropColumnOp':
                    dangerous_ops.append(f"DROP COLUMN {sub.column_name} from {table}")
    return dangerous_ops


def process_revision_directives(context, revision, directives):
    """
    Safety check for autogenerate migrations.
    Prevents accidental drops on protected tables.
    """
    if config.cmd_opts and config.cmd_opts.autogenerate:
        script = directives[0]
        dangerous_ops = find_dangerous_ops(script.upgrade_ops)

        if dangerous_ops:
            logger.error("Dangerous migration detected, autogenerate blocked:")
            for op in dangerous_ops:
                logger.error("  %s", op)
            logger.error(
                "Write a manual migration (alembic revision -m '...'), review it, "
                "and back up the database before applying."
            )
            # Clear the directives to prevent migration creation
            directives[:] = []


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode."""
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        compare_type=True,
        process_revision_directives=process_revision_directives,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode."""
    connectable = engine_from_config(
        config.get_section(config.config_ini_section),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            render_as_batch=connection.dialect.name == "sqlite",
            process_revision_directives=process_revision_directives,
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
