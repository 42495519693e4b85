"""Alembic environment: runs migrations over the async engine."""

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.ext.asyncio import async_engine_from_config

from orgmanage.config import settings
from orgmanage.database import Base
from orgmanage.common import audit  # noqa: F401
from orgmanage.announcements import models as announcements_models  # noqa: F401
from orgmanage.auth import models as auth_models  # noqa: F401
from orgmanage.expenses import models as expenses_models  # noqa: F401
from orgmanage.goals import models as goals_models  # noqa: F401
from orgmanage.it import models as it_models  # noqa: F401
from orgmanage.leave import models as leave_models  # noqa: F401
from orgmanage.notifications import models as notifications_models  # noqa: F401
from orgmanage.profiles import models as profiles_models  # noqa: F401
from orgmanage.sales import models as sales_models  # noqa: F401

config = context.config
config.set_main_option("sqlalchemy.url", settings.DATABASE_URL)

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def _do_run_migrations(connection) -> None:
    context.configure(connection=connection, target_metadata=target_metadata)

    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    connectable = async_engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    async with connectable.connect() as connection:
        await connection.run_sync(_do_run_migrations)

    await connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
