# alembic/env.py

import sys
from os.path import abspath, dirname
# Make the app package importable when alembic runs from the project root
sys.path.insert(0, abspath(dirname(dirname(__file__))))

from logging.config import fileConfig
from sqlalchemy import engine_from_config
from sqlalchemy.pool import NullPool
from alembic import context

# The database URL comes from the settings object, not alembic.ini
from app.core.config import settings
from app.db.session import Base
# Every model has to be imported so the metadata is complete
from app.models.store import Store
from app.models.customer import Customer
from app.models.card import Card
from app.models.transaction import Transaction
from app.models.rules import CashbackRule, TierRule, Offer
from app.models.payment import PendingPayment
from app.models.notification import Notification

target_metadata = Base.metadata

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode."""
    context.configure(
        url=settings.DATABASE_URL,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode."""
    connectable = engine_from_config(
        {"sqlalchemy.url": settings.DATABASE_URL},
        prefix="sqlalchemy.",
        poolclass=NullPool,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection, target_metadata=target_metadata
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
