from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool

import reflex as rx

# Registra todas las tablas en la metadata.
import app.models  # noqa: F401
from app.utils.db import build_database_url

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = rx.Model.metadata


def run_migrations_offline() -> None:
    """Modo offline: genera SQL con la URL configurada."""
    context.configure(
        url=build_database_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Modo online: conexion directa sin pool."""
    connectable = create_engine(build_database_url(), poolclass=pool.NullPool)

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
