"""Relational connection pool and session lifecycle.

The pool is an ``AsyncEngine`` created once at startup and owned by
``ServiceState``; there is no module-level engine. Sessions are short lived
and bound to that engine per request.

Pool behaviour:
- **Bounded**: ``pool_size`` is ``mysql.max_connections`` and overflow is
  disabled, so callers wait for a free connection instead of being rejected
- **Pre-ping**: Connections are validated before each checkout
- **Recycling**: Connections older than an hour are replaced
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from loguru import logger
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from src.core.config import Settings
from src.core.exceptions import RelationalStoreError
from src.infrastructure.constants import POOL_RECYCLE_SECONDS
from src.infrastructure.errors import translate_errors


async def create_relational_pool(settings: Settings) -> AsyncEngine:
    """Open the relational pool and prove it can reach the server.

    One connection is checked out and ``SELECT 1`` is run, so an unreachable
    host or rejected credentials fail here rather than on the first request.

    Args:
        settings: Application settings; ``mysql`` is used.

    Returns:
        AsyncEngine: The pooled engine.

    Raises:
        RelationalStoreError: If the URI is invalid or the server cannot be
            reached.
    """
    mysql = settings.mysql
    with translate_errors(RelationalStoreError):
        engine = create_async_engine(
            mysql.uri.reveal(),
            pool_size=mysql.max_connections,
            max_overflow=0,
            pool_pre_ping=True,
            pool_recycle=POOL_RECYCLE_SECONDS,
        )
        try:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except Exception:
            await engine.dispose()
            raise

    logger.info(
        "Relational pool ready - max_connections: {}",
        mysql.max_connections,
        backend="relational",
    )
    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Build a session factory bound to ``engine``.

    Args:
        engine: The relational pool.

    Returns:
        async_sessionmaker[AsyncSession]: Factory producing sessions that keep
            attribute values after commit.
    """
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@asynccontextmanager
async def session_scope(engine: AsyncEngine) -> AsyncGenerator[AsyncSession]:
    """Open a session that commits on success and rolls back on error.

    Commit failures surface as ``RelationalStoreError``. A failed rollback is
    logged and the error that caused it propagates.

    Args:
        engine: The relational pool to check a connection out of.

    Yields:
        AsyncSession: Session for performing operations.

    Example:
        async with session_scope(state.relational_pool) as session:
            users = await UserRepository(session).list_all()
    """
    async with create_session_factory(engine)() as session:
        try:
            yield session
        except Exception:
            await _rollback(session)
            raise

        with translate_errors(RelationalStoreError):
            await session.commit()


async def _rollback(session: AsyncSession) -> None:
    """Roll back without letting a rollback failure replace the original error."""
    try:
        with translate_errors(RelationalStoreError):
            await session.rollback()
    except RelationalStoreError as e:
        logger.opt(exception=e).warning("Database session rollback failed")
    else:
        logger.debug("Database session rolled back due to error")
