# (c) Copyright Datacraft, 2026
"""Alembic environment for the scanbroker schema."""
import asyncio
import os
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.ext.asyncio import async_engine_from_config

from scanbroker.core.config import get_settings
from scanbroker.core.db.base import Base
from scanbroker.core.features.documents.db import orm  # noqa: F401 registers tables

config = context.config

if config.config_file_name is not None:
	fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _database_url() -> str:
	override = os.getenv("ALEMBIC_DATABASE_URL")
	if override:
		return override
	return get_settings().async_db_url


def run_migrations_offline() -> None:
	context.configure(
		url=_database_url(),
		target_metadata=target_metadata,
		literal_binds=True,
		dialect_opts={"paramstyle": "named"},
	)

	with context.begin_transaction():
		context.run_migrations()


def _run_sync(connection) -> None:
	context.configure(connection=connection, target_metadata=target_metadata)
	with context.begin_transaction():
		context.run_migrations()


async def run_migrations_online() -> None:
	configuration = config.get_section(config.config_ini_section) or {}
	configuration["sqlalchemy.url"] = _database_url()

	connectable = async_engine_from_config(
		configuration,
		prefix="sqlalchemy.",
		poolclass=pool.NullPool,
	)
	try:
		async with connectable.connect() as connection:
			await connection.run_sync(_run_sync)
	finally:
		await connectable.dispose()


if context.is_offline_mode():
	run_migrations_offline()
else:
	asyncio.run(run_migrations_online())
