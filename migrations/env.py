from __future__ import annotations

import sys
from logging.config import fileConfig
from pathlib import Path

from alembic import context
from sqlalchemy import engine_from_config, pool

sys.path.insert(0, str(Path(__file__).resolve().parent))

from env_helpers import get_database_url  # noqa: E402

# Revisions execute the SQL files in migrations/sql; there is no metadata.
VERSION_TABLE = "staybook_alembic_version"

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)


def _run(**configure_kwargs) -> None:
    context.configure(target_metadata=None, version_table=VERSION_TABLE, **configure_kwargs)
    with context.begin_transaction():
        context.run_migrations()


def run_offline() -> None:
    """Emit the SQL instead of executing it (alembic upgrade --sql)."""
    _run(url=get_database_url(), literal_binds=True, dialect_opts={"paramstyle": "named"})


def run_online() -> None:
    settings = dict(config.get_section(config.config_ini_section) or {})
    settings["sqlalchemy.url"] = get_database_url()
    engine = engine_from_config(settings, prefix="sqlalchemy.", poolclass=pool.NullPool)
    with engine.connect() as connection:
        _run(connection=connection)


if context.is_offline_mode():
    run_offline()
else:
    run_online()
