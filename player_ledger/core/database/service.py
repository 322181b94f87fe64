"""
Async engine and session management for the ledger store.

All ledger mutations go through `DatabaseService.get_transaction()`: it
commits when the block exits cleanly and rolls back on any exception, which
is re-raised unchanged so domain errors reach the caller with their type
intact. Service code never calls `session.commit()` itself.

SQLite (tests, local runs) uses NullPool. PostgreSQL uses a QueuePool sized
from Config and a per-transaction `statement_timeout`.

>>> async with DatabaseService.get_transaction() as session:
...     ledger = await DatabaseService.get_locked_entity(session, AccountLedger, account)
...     ledger.balance = new_balance
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncGenerator, Optional, Type, TypeVar

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool, QueuePool

from player_ledger.core.config.config import Config
from player_ledger.core.database.base import Base
from player_ledger.core.logging.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class DatabaseInitializationError(RuntimeError):
    """The engine could not be created (missing URL, bad driver, ...)."""


class DatabaseNotInitializedError(RuntimeError):
    """A session was requested before `initialize()` or after `shutdown()`."""


@dataclass(frozen=True)
class _EngineSettings:
    url: str
    pooled: bool
    statement_timeout_ms: int

    @property
    def scheme(self) -> str:
        return self.url.split(":", 1)[0]

    @property
    def is_postgres(self) -> bool:
        return self.scheme.startswith("postgresql")

    @classmethod
    def from_config(cls, url: Optional[str]) -> _EngineSettings:
        url = url or Config.DATABASE_URL
        if not url:
            raise DatabaseInitializationError("DATABASE_URL must be configured")
        pooled = not (Config.TESTING or Config.is_testing() or url.startswith("sqlite"))
        return cls(url, pooled, Config.DATABASE_STATEMENT_TIMEOUT_MS)

    def engine_kwargs(self) -> dict[str, Any]:
        if not self.pooled:
            return {"echo": Config.DATABASE_ECHO, "poolclass": NullPool}
        return {
            "echo": Config.DATABASE_ECHO,
            "poolclass": QueuePool,
            "pool_size": Config.DATABASE_POOL_SIZE,
            "max_overflow": Config.DATABASE_MAX_OVERFLOW,
            "pool_recycle": Config.DATABASE_POOL_RECYCLE,
            "pool_timeout": Config.DATABASE_POOL_TIMEOUT,
        }


class DatabaseService:
    """Process-wide engine holder. Every method is a classmethod."""

    _engine: Optional[AsyncEngine] = None
    _session_factory: Optional[async_sessionmaker[AsyncSession]] = None
    _settings: Optional[_EngineSettings] = None
    _init_lock: asyncio.Lock = asyncio.Lock()

    # ========================================================================
    # Lifecycle
    # ========================================================================

    @classmethod
    async def initialize(cls, database_url: Optional[str] = None) -> None:
        """Create the engine. Idempotent; `database_url` overrides Config."""
        async with cls._init_lock:
            if cls._engine is not None:
                return

            try:
                settings = _EngineSettings.from_config(database_url)
                engine = create_async_engine(settings.url, **settings.engine_kwargs())
            except Exception as exc:
                logger.error(
                    "DatabaseService initialization failed",
                    extra={"error_type": type(exc).__name__},
                    exc_info=True,
                )
                if isinstance(exc, DatabaseInitializationError):
                    raise
                raise DatabaseInitializationError(
                    f"Database initialization failed: {exc}"
                ) from exc

            cls._engine = engine
            cls._settings = settings
            cls._session_factory = async_sessionmaker(
                bind=engine, class_=AsyncSession, expire_on_commit=False
            )
            logger.info(
                "DatabaseService initialized",
                extra={"url_scheme": settings.scheme, "pooled": settings.pooled},
            )

    @classmethod
    async def shutdown(cls) -> None:
        """Dispose the engine. Safe to call when not initialized."""
        async with cls._init_lock:
            engine = cls._engine
            if engine is None:
                return
            cls._engine = None
            cls._session_factory = None
            cls._settings = None
            await engine.dispose()
            logger.info("DatabaseService shut down")

    @classmethod
    def is_initialized(cls) -> bool:
        return cls._engine is not None

    # ========================================================================
    # Schema
    # ========================================================================

    @classmethod
    async def create_schema(cls) -> None:
        """Create every ledger table that does not exist yet."""
        engine = cls._require_engine()
        import player_ledger.database.models  # noqa: F401  registers the tables

        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Ledger schema ensured", extra={"tables": sorted(Base.metadata.tables)})

    @classmethod
    async def drop_schema(cls) -> None:
        engine = cls._require_engine()
        import player_ledger.database.models  # noqa: F401

        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        logger.warning("Ledger schema dropped")

    @classmethod
    async def health_check(cls) -> bool:
        """`SELECT 1` against the engine. Never raises."""
        if cls._engine is None:
            return False
        try:
            async with cls._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except Exception as exc:
            logger.warning(
                "Database health check failed",
                extra={"error": str(exc), "error_type": type(exc).__name__},
            )
            return False
        return True

    # ========================================================================
    # Sessions
    # ========================================================================

    @classmethod
    def _require_engine(cls) -> AsyncEngine:
        if cls._engine is None or cls._session_factory is None:
            raise DatabaseNotInitializedError(
                "DatabaseService must be initialized before use; "
                "call DatabaseService.initialize() during startup"
            )
        return cls._engine

    @classmethod
    async def _open(cls) -> AsyncSession:
        cls._require_engine()
        assert cls._session_factory is not None and cls._settings is not None
        session = cls._session_factory()
        if cls._settings.is_postgres:
            await session.execute(
                text(f"SET LOCAL statement_timeout = {cls._settings.statement_timeout_ms}")
            )
        return session

    @classmethod
    @asynccontextmanager
    async def get_session(cls) -> AsyncGenerator[AsyncSession, None]:
        """Session without automatic commit, for reads."""
        session = await cls._open()
        try:
            yield session
        finally:
            await session.close()

    @classmethod
    @asynccontextmanager
    async def get_transaction(cls) -> AsyncGenerator[AsyncSession, None]:
        """Atomic unit of work: commit on success, rollback and re-raise on error."""
        session = await cls._open()
        try:
            yield session
            await session.commit()
        except DBAPIError as exc:
            await session.rollback()
            logger.error(
                "Database error in transaction; rolled back",
                extra={"error_type": type(exc).__name__},
                exc_info=True,
            )
            raise
        except Exception:
            # Domain rejections land here and roll back quietly.
            await session.rollback()
            raise
        finally:
            await session.close()

    @classmethod
    async def get_locked_entity(
        cls,
        session: AsyncSession,
        model: Type[T],
        primary_key: Any,
    ) -> Optional[T]:
        """
        SELECT ... FOR UPDATE inside a `get_transaction()` block.

        SQLite ignores the clause; there the per-account locks serialize writers.
        """
        return await session.get(model, primary_key, with_for_update=True)
