# backend/orgdb/alembic/env.py

from __future__ import annotations

import os
import sys
from logging.config import fileConfig

from alembic import context

# Make `orgdb` importable when alembic runs from backend/ without an install.
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "..")))

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

import orgdb  # noqa: F401, E402  (registers zones, groups, work, accounts, audit)
from orgdb.database import Base, write_engine  # noqa: E402

target_metadata = Base.metadata


def _offline_url() -> str:
    url = (config.get_main_option("sqlalchemy.url") or "").strip()
    if url.startswith("driver://"):
        url = ""
    url = url or os.getenv("DATABASE_WRITE_URL") or os.getenv("DATABASE_URL") or ""
    if not url:
        raise RuntimeError("Offline migrations need sqlalchemy.url or DATABASE_URL.")
    return url


if context.is_offline_mode():
    context.configure(
        url=_offline_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        compare_type=True,
    )
    with context.begin_transaction():
        context.run_migrations()
else:
    with write_engine.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            # SQLite cannot ALTER constraints in place.
            render_as_batch=connection.dialect.name == "sqlite",
        )
        with context.begin_transaction():
            context.run_migrations()
