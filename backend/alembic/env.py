"""Alembic environment for bapp: metadata from bapp.models, URL from DATABASE_URL (SQLite or PostgreSQL)."""
from pathlib import Path
import sys

from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine

BACKEND_DIR = Path(__file__).resolve().parent.parent
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from bapp.config import settings
from bapp.database import Base, normalize_database_url
import bapp.models  # noqa: F401

config = context.config
if config.config_file_name is not None and Path(config.config_file_name).exists():
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def sync_database_url(url: str) -> str:
    """
    The app runs on async drivers, migrations on sync ones:
    postgresql+asyncpg -> postgresql+psycopg2, sqlite+aiosqlite -> sqlite.
    A relative SQLite file is anchored at backend/.
    """
    url = normalize_database_url(url)
    if url.startswith("postgresql+asyncpg"):
        return url.replace("postgresql+asyncpg", "postgresql+psycopg2", 1)
    url = url.replace("sqlite+aiosqlite", "sqlite", 1)
    if url.startswith("sqlite:///./"):
        return "sqlite:///" + (BACKEND_DIR / url[len("sqlite:///./"):]).resolve().as_posix()
    return url


DB_URL = sync_database_url(settings.database_url)
# SQLite cannot ALTER constraints in place; batch mode recreates the table
IS_SQLITE = DB_URL.startswith("sqlite")


def run_migrations_offline() -> None:
    context.configure(
        url=DB_URL,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=IS_SQLITE,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    engine = create_engine(DB_URL)
    with engine.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            render_as_batch=IS_SQLITE,
            compare_type=True,
        )
        with context.begin_transaction():
            context.run_migrations()
    engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
