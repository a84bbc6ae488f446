"""Database Session Manager: one async engine per process, sessions for routes and the manager.

Invariants:
    - SQLAlchemy exceptions that escape a request session become DatabaseError (503)
    - Gate IntegrityErrors never reach map_database_error unclassified:
      ParticipationManager turns them into GateConflictError / AlreadyJoinedError first
    - SQLite URLs get a busy timeout instead of pool sizing, so concurrent writers
      queue on the file lock and the unique indexes reject the losers
    - SQLite connections enforce foreign keys, matching Postgres delete semantics

Design Decisions:
    - Singleton db_manager initialized on startup: FastAPI lifespan manages lifecycle
    - expire_on_commit=False: participants returned by the manager stay readable
      after their transaction commits
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

from sqlalchemy import event, text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import (
    DBAPIError, IntegrityError, OperationalError, SQLAlchemyError,
)
from sqlalchemy.ext.asyncio import (
    AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine,
)

from gatehouse.core.errors import DatabaseError, ErrorContext

logger = logging.getLogger(__name__)


def map_database_error(
    e: SQLAlchemyError, context: ErrorContext | None = None,
) -> DatabaseError:
    """Translate an unclassified SQLAlchemy exception into DatabaseError."""
    if isinstance(e, IntegrityError):
        operation, message = "write", "Participation constraint violated"
    elif isinstance(e, OperationalError):
        operation, message = "connect", "Database unavailable or locked"
    elif isinstance(e, DBAPIError):
        operation, message = "query", "Database driver error"
    else:
        operation, message = "transaction", "Database operation failed"
    logger.error(
        f"{type(e).__name__} during {operation}: {e}",
        extra={
            "error_code": "DATABASE_ERROR",
            "event_id": context.event_id if context else None,
            "user_id": context.user_id if context else None,
        },
    )
    return DatabaseError(message, operation, context)


def engine_options(
    database_url: str,
    pool_size: int = 20,
    max_overflow: int = 10,
    sqlite_busy_timeout: float = 30.0,
) -> dict[str, Any]:
    """create_async_engine kwargs suited to the URL's backend."""
    if make_url(database_url).get_backend_name() == "sqlite":
        return {"connect_args": {"timeout": sqlite_busy_timeout}}
    return {
        "pool_size": pool_size,
        "max_overflow": max_overflow,
        "pool_pre_ping": True,
        "pool_recycle": 3600,
    }


def enable_sqlite_foreign_keys(engine: AsyncEngine) -> None:
    """Turn on FK enforcement (CASCADE / SET NULL) for every new SQLite connection."""

    @event.listens_for(engine.sync_engine, "connect")
    def _foreign_keys_on(dbapi_connection, _record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


class DatabaseSessionManager:
    """Owns the engine and session factory shared by routes and ParticipationManager."""

    def __init__(self, database_url: str, **options):
        self.engine: AsyncEngine = create_async_engine(
            database_url, **engine_options(database_url, **options),
        )
        if self.engine.dialect.name == "sqlite":
            enable_sqlite_foreign_keys(self.engine)
        self._session_factory = async_sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False,
        )

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        return self._session_factory

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Request-scoped session; rolls back and maps errors raised while it is open."""
        async with self._session_factory() as session:
            try:
                yield session
            except SQLAlchemyError as e:
                await session.rollback()
                raise map_database_error(e)

    async def health_check(self) -> bool:
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Readiness check could not reach the database: {e}")
            return False
        return True

    async def dispose(self) -> None:
        await self.engine.dispose()


db_manager: DatabaseSessionManager | None = None


def init_db(database_url: str, **options) -> DatabaseSessionManager:
    global db_manager
    db_manager = DatabaseSessionManager(database_url, **options)
    logger.info(f"Database engine created ({db_manager.engine.dialect.name})")
    return db_manager


def get_db_manager() -> DatabaseSessionManager:
    if not db_manager:
        raise RuntimeError("Database not initialized")
    return db_manager


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: session for role lookups on staff routes."""
    async with get_db_manager().session() as session:
        yield session
