import logging
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator
from pathlib import Path

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy import event

from app.models import Base

logger = logging.getLogger(__name__)


def create_snapshot_engine(database_path: Path | str) -> AsyncEngine:
    """Create an async SQLite engine for a snapshot file"""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{database_path}",
        echo=False,
        connect_args={"timeout": 30, "check_same_thread": False},
    )

    def configure_sqlite(dbapi_conn, _):
        """Configure SQLite connection parameters"""
        cursor = dbapi_conn.cursor()
        # Snapshot files are swapped into place with os.replace, keep them self-contained
        cursor.execute("PRAGMA journal_mode = DELETE")
        cursor.execute("PRAGMA cache_size = -64000")
        cursor.close()

    event.listen(engine.sync_engine, "connect", configure_sqlite)
    return engine


async def create_schema(engine: AsyncEngine) -> None:
    """Create all snapshot tables"""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


def _create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create async session factory from engine"""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@asynccontextmanager
async def session_scope(engine: AsyncEngine, *, begin: bool = True) -> AsyncIterator[AsyncSession]:
    """
    Provide an async session context manager with optional automatic transaction handling.

    Args:
        engine: Engine bound to the snapshot file
        begin: When True (default), wrap the session in `session.begin()` for auto commit/rollback.
               When False, caller is responsible for transaction demarcation and commit/rollback.
    """
    session_factory = _create_session_factory(engine)

    async with session_factory() as session:
        if begin:
            async with session.begin():
                yield session
        else:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise
            else:
                await session.commit()
