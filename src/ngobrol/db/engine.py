"""Async SQLAlchemy engine and session factory.

Learn: SQLAlchemy 2.0 async mode — create_async_engine for connection pooling,
AsyncSession for per-request database access, dependency injection via FastAPI.
"""

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from ngobrol.config import settings


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite only honours ON DELETE CASCADE with this pragma
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(url: str, echo: bool = False) -> AsyncEngine:
    """Create an engine for `url`.

    Connection pool for server databases: 5 pooled + 15 overflow, 10s
    checkout timeout, connections recycled after 30 minutes and pinged on
    checkout so stale idle connections are replaced. SQLite (used by the
    test suite) keeps its dialect's default pool.
    """
    if make_url(url).get_backend_name() == "sqlite":
        engine = create_async_engine(url, echo=echo)
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
        return engine

    return create_async_engine(
        url,
        echo=echo,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_timeout=settings.db_pool_timeout,
        pool_recycle=settings.db_pool_recycle,
        pool_pre_ping=True,
    )


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


# echo=True in dev to see SQL queries.
engine = build_engine(settings.database_url, echo=settings.debug)

# Session factory — each request gets its own session.
async_session_factory = build_session_factory(engine)


async def get_db() -> AsyncSession:
    """FastAPI dependency — yields a session per request, auto-closes."""
    async with async_session_factory() as session:
        try:
            yield session
        finally:
            await session.close()
