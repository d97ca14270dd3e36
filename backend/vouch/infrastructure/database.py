"""Database Session Manager — async engine, per-request sessions, readiness probe.

Invariants:
    - A session that raises is rolled back before the error leaves the block
    - SQLAlchemy exceptions escaping a service surface as DatabaseError (503);
      services catch IntegrityError themselves when it has a domain meaning
      (duplicate reference, concurrent verify)
    - expire_on_commit=False: services return ORM rows after commit and routes
      serialize them outside the session's lazy-load reach

Design Decisions:
    - Module-level db_manager set by init_db() from the FastAPI lifespan;
      tests swap it for one bound to an in-memory SQLite engine
    - Pool sizing only for server databases; SQLite (aiosqlite) keeps its own pool
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

from vouch.core.errors import DatabaseError

logger = logging.getLogger(__name__)

# Most specific first: IntegrityError and OperationalError subclass DBAPIError
_ERROR_OPERATIONS: tuple[tuple[type[SQLAlchemyError], str, str], ...] = (
    (IntegrityError, "write", "Constraint violated"),
    (OperationalError, "execute", "Database unavailable"),
    (DBAPIError, "query", "Database driver error"),
    (SQLAlchemyError, "transaction", "Database operation failed"),
)


def _to_database_error(exc: SQLAlchemyError) -> DatabaseError:
    for exc_type, operation, message in _ERROR_OPERATIONS:
        if isinstance(exc, exc_type):
            return DatabaseError(message, operation)
    return DatabaseError("Database operation failed", "transaction")


class DatabaseSessionManager:
    """Owns the engine and hands out sessions for requests and probes."""

    def __init__(
        self, database_url: str, pool_size: int = 20, max_overflow: int = 10,
    ):
        engine_kwargs: dict = {"pool_pre_ping": True}
        if not database_url.startswith("sqlite"):
            engine_kwargs.update(
                pool_size=pool_size,
                max_overflow=max_overflow,
                pool_recycle=3600,
            )
        self.engine = create_async_engine(database_url, **engine_kwargs)
        self._session_factory = async_sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False,
        )

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        session = self._session_factory()
        try:
            yield session
        except SQLAlchemyError as e:
            await session.rollback()
            error = _to_database_error(e)
            logger.error(
                f"{error.message} ({type(e).__name__})",
                extra={"error_code": error.code},
            )
            raise error from e
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async def health_check(self) -> bool:
        """True when a trivial query round-trips."""
        try:
            async with self.session() as db:
                await db.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.error(f"DB health check failed: {e}")
            return False

    async def dispose(self) -> None:
        await self.engine.dispose()


db_manager: DatabaseSessionManager | None = None


def init_db(database_url: str, **kwargs) -> DatabaseSessionManager:
    global db_manager
    db_manager = DatabaseSessionManager(database_url, **kwargs)
    return db_manager


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: one session per request."""
    if not db_manager:
        raise RuntimeError("Database not initialized")
    async with db_manager.session() as session:
        yield session
