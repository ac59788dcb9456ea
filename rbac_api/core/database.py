"""Async database engine, session factory and scoped transactions."""

import logging
from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager
from functools import lru_cache

from sqlalchemy import event
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.orm.exc import StaleDataError
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from rbac_api.core.config import get_settings
from rbac_api.core.errors import ConflictError, NotFoundError

logger = logging.getLogger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection, _record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(database_url: str, *, echo: bool = False) -> AsyncEngine:
    """Create an async engine; SQLite gets FK enforcement and a static pool."""
    if database_url.startswith("sqlite"):
        engine = create_async_engine(database_url, echo=echo, poolclass=StaticPool)
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
        return engine
    return create_async_engine(
        database_url,
        echo=echo,
        pool_size=20,
        max_overflow=10,
    )


def build_session_factory(engine: AsyncEngine) -> sessionmaker:
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@lru_cache
def get_engine() -> AsyncEngine:
    settings = get_settings()
    return build_engine(settings.database_url, echo=settings.database_echo)


@lru_cache
def get_session_factory() -> sessionmaker:
    return build_session_factory(get_engine())


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency that yields an async DB session."""
    async with get_session_factory()() as session:
        yield session


@asynccontextmanager
async def transaction(session: AsyncSession) -> AsyncIterator[AsyncSession]:
    """Commit everything done in the block, or roll all of it back.

    Integrity violations (unique keys, foreign keys) surface as
    :class:`ConflictError`. A flush that matches no row because another
    request deleted it first surfaces as :class:`NotFoundError`. Any other
    exception propagates unchanged.
    """
    try:
        yield session
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        logger.warning("Rolled back on integrity violation: %s", exc.orig)
        raise ConflictError() from exc
    except StaleDataError as exc:
        await session.rollback()
        logger.warning("Rolled back on stale row: %s", exc)
        raise NotFoundError() from exc
    except Exception:
        await session.rollback()
        raise


async def init_db(engine: AsyncEngine | None = None) -> None:
    """Create all tables. Use Alembic migrations in production."""
    import rbac_api.models  # noqa: F401

    async with (engine or get_engine()).begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
