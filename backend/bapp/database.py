"""
Database connection and sessions (async SQLAlchemy).
- PostgreSQL URLs are forced onto the asyncpg driver (postgresql+asyncpg://)
- Production schema is managed by Alembic; create_all is only for SQLite dev and tests
"""
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from bapp.config import settings


def normalize_database_url(url: str) -> str:
    """Rewrite postgres:// style URLs to the asyncpg driver."""
    url = str(url or "").strip()
    if url.startswith("postgres://"):
        return "postgresql+asyncpg://" + url[len("postgres://"):]
    if url.startswith("postgresql://"):
        return "postgresql+asyncpg://" + url[len("postgresql://"):]
    if url.startswith("postgresql+psycopg2://"):
        return "postgresql+asyncpg://" + url[len("postgresql+psycopg2://"):]
    return url


db_url = normalize_database_url(settings.database_url)

engine = create_async_engine(
    db_url,
    echo=settings.debug,
    pool_pre_ping=True,
)

if db_url.startswith("sqlite"):
    # SQLite ignores ON DELETE CASCADE unless foreign keys are switched on per connection
    @event.listens_for(engine.sync_engine, "connect")
    def _sqlite_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


class Base(DeclarativeBase):
    pass


async def get_db():
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


def get_session_factory() -> async_sessionmaker:
    """Session factory for work that needs one session per concurrent task (year import)."""
    return AsyncSessionLocal


async def init_db():
    # Only SQLite gets tables created at startup; PostgreSQL goes through Alembic
    if not db_url.startswith("sqlite"):
        return
    import bapp.models  # noqa: F401
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
