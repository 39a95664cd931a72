"""Engine, sessions and dialect helpers for the CFP database."""

from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager
from threading import Lock
from typing import Any

from sqlalchemy import MetaData
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from core.config import get_settings

# Index names line up with migrations/versions
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    """Declarative base for CFP models."""

    metadata = MetaData(naming_convention=NAMING_CONVENTION)


def engine_options(database_url: str) -> dict[str, Any]:
    """create_async_engine keyword arguments for the configured backend."""
    settings = get_settings()
    options: dict[str, Any] = {"echo": settings.debug}
    if database_url.startswith("postgresql"):
        options.update(
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
            pool_pre_ping=True,
        )
    elif database_url.startswith("sqlite"):
        # Concurrent writers wait on the file lock instead of failing at once
        options["connect_args"] = {"timeout": 30}
    return options


class DatabaseManager:
    """Process-wide holder of the engine and session factory."""

    _instance: "DatabaseManager | None" = None
    _lock: Lock = Lock()

    def __init__(self) -> None:
        self._engine: AsyncEngine | None = None
        self._session_maker: async_sessionmaker[AsyncSession] | None = None

    @classmethod
    def get_instance(cls) -> "DatabaseManager":
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    def get_engine(self) -> AsyncEngine:
        if self._engine is None:
            url = get_settings().database_url
            self._engine = create_async_engine(url, **engine_options(url))
            # Services read attributes after commit (decision results, queued emails)
            self._session_maker = async_sessionmaker(
                self._engine, class_=AsyncSession, expire_on_commit=False
            )
        return self._engine

    def get_session_maker(self) -> async_sessionmaker[AsyncSession]:
        self.get_engine()
        if self._session_maker is None:
            raise RuntimeError("Session maker not initialized")
        return self._session_maker

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
        self.reset()

    def reset(self) -> None:
        self._engine = None
        self._session_maker = None


_db_manager = DatabaseManager.get_instance()


def get_engine() -> AsyncEngine:
    return _db_manager.get_engine()


def get_session_maker() -> async_sessionmaker[AsyncSession]:
    return _db_manager.get_session_maker()


@asynccontextmanager
async def session_scope() -> AsyncIterator[AsyncSession]:
    """
    One unit of work: commit on success, roll back on any error.

    Services flush but leave committing to the caller; this is the caller
    for request handlers and scripts. The decision engine commits inside
    its own lock and is unaffected by the outer commit.
    """
    async with get_session_maker()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_db() -> AsyncGenerator[AsyncSession]:
    """Dependency for getting async database sessions"""
    async with session_scope() as session:
        yield session


def dialect_name(session: AsyncSession) -> str:
    """Name of the SQL dialect the session is bound to."""
    return session.get_bind().dialect.name


def dialect_insert(session: AsyncSession, table: Any):
    """
    INSERT construct supporting ON CONFLICT for the bound dialect.

    PostgreSQL in production, SQLite in tests; both expose
    ``on_conflict_do_update`` and ``on_conflict_do_nothing``.
    """
    name = dialect_name(session)
    if name == "postgresql":
        return pg_insert(table)
    if name == "sqlite":
        return sqlite_insert(table)
    raise RuntimeError(f"Unsupported database dialect: {name}")


async def init_db() -> None:
    """Create missing tables (development only; production uses migrations)"""
    import models  # noqa: F401  registers mappers on Base.metadata

    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def reset_db() -> None:
    """Drop and recreate every CFP table"""
    import models  # noqa: F401

    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    await _db_manager.close()


def reset_engine() -> None:
    """Forget the cached engine so the next call re-reads settings"""
    _db_manager.reset()
