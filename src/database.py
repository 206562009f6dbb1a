"""Engine and session factory for the claim and dead-letter tables."""

import logging
from pathlib import Path

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from src.config import settings

logger = logging.getLogger(__name__)

_SQLITE_PREFIX = "sqlite+aiosqlite:///"


def _is_sqlite(database_url: str) -> bool:
    return database_url.startswith("sqlite")


def _prepare_sqlite_file(database_url: str) -> None:
    if not database_url.startswith(_SQLITE_PREFIX):
        return
    sqlite_path = database_url.removeprefix(_SQLITE_PREFIX)
    if sqlite_path in {"", ":memory:"}:
        return
    parent = Path(sqlite_path).parent
    if str(parent) != ".":
        parent.mkdir(parents=True, exist_ok=True)


def _build_engine(database_url: str):
    if not _is_sqlite(database_url):
        return create_async_engine(database_url, echo=settings.debug, pool_pre_ping=True)

    _prepare_sqlite_file(database_url)
    sqlite_engine = create_async_engine(
        database_url,
        echo=settings.debug,
        connect_args={"timeout": 30},
    )

    # Concurrent claim inserts queue on the write lock instead of failing fast.
    @event.listens_for(sqlite_engine.sync_engine, "connect")
    def _set_sqlite_pragmas(dbapi_connection, _connection_record) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL;")
        cursor.execute("PRAGMA synchronous=NORMAL;")
        cursor.execute("PRAGMA busy_timeout=30000;")
        cursor.close()

    return sqlite_engine


engine = _build_engine(settings.database_url)
async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


class Base(DeclarativeBase):
    pass


async def get_db():
    async with async_session() as session:
        yield session


async def init_db() -> None:
    import src.models.dead_letter  # noqa: F401
    import src.models.webhook_event  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Claim and dead-letter tables ensured")


async def close_db() -> None:
    await engine.dispose()
