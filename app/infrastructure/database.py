"""Database Sessions — async engine, per-request session, SQLAlchemy error mapping.

Invariants:
    - A session that raises is rolled back before the error leaves get_db
    - SQLAlchemy exceptions leave this module as DatabaseError (503)
    - A duplicate primary_rye_order_id (two finalizations racing for one Rye
      order) is reported with its own user message; it is still a DatabaseError

Design Decisions:
    - Module-level db_manager owned by the FastAPI lifespan (init_db / close_db)
    - expire_on_commit=False: handlers read rows after committing them
    - SQLite URLs (tests, local dev) get no pool sizing; SQLite's pool rejects it
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.exc import (
    DBAPIError, IntegrityError, OperationalError, SQLAlchemyError,
)
from sqlalchemy.ext.asyncio import (
    AsyncSession, async_sessionmaker, create_async_engine,
)

from app.core.errors import DatabaseError, ErrorContext

logger = logging.getLogger(__name__)

# most specific first: IntegrityError and OperationalError are DBAPIErrors
_ERROR_MAP: tuple[tuple[type[SQLAlchemyError], str, str], ...] = (
    (IntegrityError, "commit", "Integrity constraint violated"),
    (OperationalError, "execute", "Connection or operational error"),
    (DBAPIError, "query", "Database driver error"),
    (SQLAlchemyError, "unknown", "Database operation failed"),
)

_DUPLICATE_ORDER_MESSAGE = (
    "This order is already being recorded. Retry to receive the existing order."
)


def to_database_error(exc: SQLAlchemyError) -> DatabaseError:
    """Translate a SQLAlchemy exception into the API's DatabaseError."""
    for exc_type, operation, message in _ERROR_MAP:
        if isinstance(exc, exc_type):
            break
    context = ErrorContext()
    if isinstance(exc, IntegrityError) and "primary_rye_order_id" in str(exc.orig):
        context.user_message = _DUPLICATE_ORDER_MESSAGE
    return DatabaseError(message, operation, context)


def _engine_options(database_url: str, pool_size: int, max_overflow: int) -> dict:
    if database_url.startswith("sqlite"):
        return {}
    return {
        "pool_size": pool_size,
        "max_overflow": max_overflow,
        "pool_pre_ping": True,
        "pool_recycle": 3600,
    }


class DatabaseSessionManager:
    def __init__(self, database_url: str, pool_size: int = 20, max_overflow: int = 10):
        self.engine = create_async_engine(
            database_url, **_engine_options(database_url, pool_size, max_overflow),
        )
        self._sessions = async_sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False,
        )

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Session that is rolled back and mapped to DatabaseError on SQLAlchemy errors."""
        async with self._sessions() as session:
            try:
                yield session
            except SQLAlchemyError as e:
                await session.rollback()
                error = to_database_error(e)
                logger.error(
                    f"Database error during {error.operation}: {e}",
                    extra={"operation": error.operation, "error_code": error.code},
                )
                raise error from e

    async def health_check(self) -> bool:
        """SELECT 1 for the readiness check."""
        try:
            async with self.session() as db:
                await db.execute(text("SELECT 1"))
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return False
        return True

    async def dispose(self) -> None:
        await self.engine.dispose()


db_manager: DatabaseSessionManager | None = None


def init_db(database_url: str, **kwargs) -> None:
    global db_manager
    db_manager = DatabaseSessionManager(database_url, **kwargs)


async def close_db() -> None:
    global db_manager
    if db_manager is not None:
        await db_manager.dispose()
        db_manager = None


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: one session per request."""
    if db_manager is None:
        raise RuntimeError("Database not initialized")
    async with db_manager.session() as session:
        yield session
