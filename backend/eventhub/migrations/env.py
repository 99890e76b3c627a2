from logging.config import fileConfig

from sqlalchemy import engine_from_config, pool
from alembic import context

import os

# Importing the package loads .env; importing models registers the tables
from eventhub.models import Base  # noqa: F401
from eventhub.db import DB_URL

# Alembic config object
config = context.config

# DATABASE_URL (normalized by eventhub.db) wins over alembic.ini
if os.getenv("DATABASE_URL") or not config.get_main_option("sqlalchemy.url"):
    config.set_main_option("sqlalchemy.url", DB_URL)

# Setup logging
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# Assign metadata for autogenerate support
target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode."""
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=url.startswith("sqlite"),
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode."""
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            render_as_batch=connection.dialect.name == "sqlite",
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
