"""
Alembic environment for the Unified Calendar event store.

The database URL always comes from application settings (DATABASE_URL),
never from alembic.ini.
"""

import logging
from logging.config import fileConfig

from sqlalchemy import engine_from_config, pool

from alembic import context

from unified_calendar.config import get_settings
from unified_calendar.models.base import Base

# Every table must be imported here for autogenerate to see it
from unified_calendar.models.events import (  # noqa: F401
    CalendarEventRecord,
    EventAttachmentRecord,
    EventAttendee,
    RecurrenceRuleRecord,
)

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

logger = logging.getLogger("alembic.env")

settings = get_settings()
config.set_main_option("sqlalchemy.url", settings.database_url)

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """Emit migration SQL for the configured URL without connecting."""
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=settings.uses_sqlite,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations against a live connection."""
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            # SQLite needs table rebuilds for ALTER
            render_as_batch=settings.uses_sqlite,
            compare_type=True,
            compare_server_default=True,
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    logger.info(f"Running migrations offline ({settings.python_env})")
    run_migrations_offline()
else:
    logger.info(f"Running migrations online ({settings.python_env})")
    run_migrations_online()
