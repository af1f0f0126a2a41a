"""Database configuration and async session management."""

from typing import AsyncGenerator

from sqlalchemy import Enum as SAEnum
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import StaticPool

from .config import settings


def _is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


# Create async engine
engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    future=True,
    pool_pre_ping=True,
    # SQLite is only used for local development; share one connection
    poolclass=StaticPool if _is_sqlite(settings.database_url) else None,
    connect_args={"check_same_thread": False} if _is_sqlite(settings.database_url) else {},
)

# Execution option naming the SQLite BEGIN mode for a transaction
SQLITE_BEGIN_OPTION = "sqlite_begin"


def configure_sqlite_transactions(async_engine: AsyncEngine) -> AsyncEngine:
    """
    Let SQLAlchemy emit BEGIN itself on SQLite.

    pysqlite defers BEGIN until the first write, so a read-then-insert
    transaction holds no lock while it reads. With this hook a connection
    procured with ``sqlite_begin="IMMEDIATE"`` takes the database write lock
    up front, which serializes writers across processes sharing the file.
    Other engines are returned untouched.
    """
    if async_engine.dialect.name != "sqlite":
        return async_engine

    sync_engine = async_engine.sync_engine

    @event.listens_for(sync_engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(sync_engine, "begin")
    def _emit_begin(conn):
        mode = conn.get_execution_options().get(SQLITE_BEGIN_OPTION, "DEFERRED")
        conn.exec_driver_sql(f"BEGIN {mode}")

    return async_engine


configure_sqlite_transactions(engine)

# Create async session factory
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
    autocommit=False,
)

# Create declarative base for models
Base = declarative_base()


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency function that yields database sessions.

    Yields:
        AsyncSession: Database session
    """
    async with async_session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# Alias for FastAPI dependency injection
get_db = get_async_session


def is_postgresql(session: AsyncSession) -> bool:
    """Return True when the session is bound to a PostgreSQL engine."""
    bind = session.bind
    return bind is not None and bind.dialect.name == "postgresql"


async def init_db() -> None:
    """Initialize the database by creating all tables."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Close database connections."""
    await engine.dispose()


def enum_type(enum_cls, length: int = 20) -> SAEnum:
    """
    Column type for a ``str`` enum stored as its value in a VARCHAR.

    Loaded rows come back as enum members on every backend.
    """
    return SAEnum(
        enum_cls,
        native_enum=False,
        length=length,
        values_callable=lambda members: [member.value for member in members],
        validate_strings=True,
    )


async def begin_write_transaction(session: AsyncSession) -> None:
    """
    Start a fresh transaction that intends to write.

    Any open transaction on the session is committed first. On SQLite the
    new transaction is ``BEGIN IMMEDIATE``; other stores begin normally and
    rely on row and advisory locks.
    """
    if session.in_transaction():
        await session.commit()
    await session.connection(execution_options={SQLITE_BEGIN_OPTION: "IMMEDIATE"})
