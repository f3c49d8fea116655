import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy import event
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from pilgrim_housing.config import settings
from pilgrim_housing.errors import BackingStoreError, Conflict

logger = logging.getLogger(__name__)


def build_engine(url: str, **kwargs) -> AsyncEngine:
    engine = create_async_engine(url, **kwargs)
    if engine.dialect.name == "sqlite":
        # ON DELETE CASCADE / SET NULL are only honoured with foreign keys switched on
        @event.listens_for(engine.sync_engine, "connect")
        def _enable_foreign_keys(dbapi_conn, connection_record):
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


def build_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


engine = build_engine(settings.database_url, echo=settings.debug)
async_session = build_sessionmaker(engine)


async def get_session() -> AsyncIterator[AsyncSession]:
    async with async_session() as session:
        yield session


@asynccontextmanager
async def transaction(session: AsyncSession) -> AsyncIterator[AsyncSession]:
    """Commit on success, roll back on any failure.

    Store failures surface as BackingStoreError; a constraint violation means a
    concurrent writer got there first and surfaces as Conflict.
    """
    try:
        yield session
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        logger.warning("Integrity violation, rolled back: %s", exc.orig)
        raise Conflict("The record was changed by another request, reload and retry") from exc
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.exception("Backing store failure")
        raise BackingStoreError(f"Backing store failure: {exc}") from exc
    except Exception:
        await session.rollback()
        raise
