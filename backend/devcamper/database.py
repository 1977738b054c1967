"""
DevCamper Backend — Database Session Management
=================================================

What:  Async SQLAlchemy engine, session factory, declarative base and the
       FastAPI session dependency.
How:   One engine per process; one AsyncSession per request. The session is
       committed when the handler returns and rolled back when it raises.

The session is the "store handle" of the list pipeline: it is injected into
route handlers with Depends(get_db_session) and passed down explicitly to
services, never read from a module global inside business logic.

Pooling:
    pool_size / max_overflow / pool_pre_ping come from settings for server
    databases. SQLite (tests, local experiments) keeps the driver's default
    pool because it does not accept those arguments.
"""

from typing import Any, AsyncGenerator, Dict

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from devcamper.config import settings


def _engine_options() -> Dict[str, Any]:
    options: Dict[str, Any] = {"echo": settings.log_level == "DEBUG"}
    if not settings.is_sqlite:
        options.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=settings.db_pool_pre_ping,
            pool_recycle=3600,
        )
    return options


engine = create_async_engine(settings.database_url, **_engine_options())

# expire_on_commit=False: objects stay readable after the request commits.
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Base class for all ORM models; owns the shared metadata."""
    pass


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    Commits on success, rolls back on any exception and re-raises so the
    global handlers can build the response. The session is always closed.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def create_tables() -> None:
    """
    Create every table registered on Base.metadata if it is missing.

    Called at startup when settings.db_create_tables is true and by the
    seeder before importing data.
    """
    # Registers the models on Base.metadata.
    import devcamper.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine() -> None:
    """Close all pooled connections (application shutdown)."""
    await engine.dispose()
