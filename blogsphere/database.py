from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from blogsphere.cache import invalidate_if_stale
from blogsphere.config import settings
from blogsphere.middleware import install_query_counter


def enable_sqlite_savepoints(engine) -> None:
    """
    Let SQLAlchemy own transaction demarcation on a SQLite engine.

    The sqlite3 driver starts transactions lazily and breaks SAVEPOINT
    semantics; ``DocumentStore.insert`` relies on savepoints to recover
    from unique-index violations, so BEGIN is emitted explicitly instead.
    """
    sync_engine = engine.sync_engine

    @event.listens_for(sync_engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(sync_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")


# Module-level engine variable allows tests to override with a test engine.
engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    pool_pre_ping=True,
)

install_query_counter(engine)
if engine.dialect.name == "sqlite":
    enable_sqlite_savepoints(engine)

async_session = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    pass


@asynccontextmanager
async def session_scope(factory: async_sessionmaker[AsyncSession]) -> AsyncIterator[AsyncSession]:
    """
    Yield a session whose transaction commits when the caller is done and
    rolls back on error.  Feed invalidations requested during the
    transaction run only after the commit.
    """
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        await invalidate_if_stale(session)


async def get_db():
    """One session, and one transaction, per request."""
    async with session_scope(async_session) as session:
        yield session
