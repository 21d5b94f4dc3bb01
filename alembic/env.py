"""
Alembic Environment Configuration

This file controls how Alembic runs migrations.

Key responsibilities:
1. Load database URL from application settings (not alembic.ini)
2. Import all SQLAlchemy models for autogenerate
3. Configure migration context
4. Handle online vs offline migrations

MIGRATION WORKFLOW:
===================
1. Make changes to the models in rottenbikes/models/
2. Run: alembic revision --autogenerate -m "description"
3. Review the generated migration in alembic/versions/
   (keep constraint names: services map integrity errors by name)
4. Run: alembic upgrade head

COMMANDS:
- alembic upgrade head                           # Apply all migrations
- alembic downgrade -1                           # Rollback one migration
- alembic current                                # Show current revision
"""

from logging.config import fileConfig

from sqlalchemy import engine_from_config, pool

from alembic import context

# =============================================================================
# IMPORT APPLICATION COMPONENTS
# =============================================================================
from rottenbikes.config import get_settings

# Importing the models package registers every table with Base.metadata
from rottenbikes.database import Base
from rottenbikes import models  # noqa: F401 - needed for autogenerate

settings = get_settings()

# =============================================================================
# ALEMBIC CONFIGURATION
# =============================================================================
config = context.config

# DATABASE_URL from the environment wins over alembic.ini
config.set_main_option("sqlalchemy.url", settings.database_url)

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

# =============================================================================
# MIGRATION FUNCTIONS
# =============================================================================


def run_migrations_offline() -> None:
    """
    Run migrations in 'offline' mode (emit SQL without connecting).

    Usage:
        alembic upgrade head --sql > migration.sql
    """
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """
    Run migrations in 'online' mode against the configured database.

    Usage:
        alembic upgrade head
    """
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
        )

        with context.begin_transaction():
            context.run_migrations()


# =============================================================================
# RUN MIGRATIONS
# =============================================================================
if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
