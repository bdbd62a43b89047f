"""Database session management."""
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional, Tuple

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine
)

from facecluster.core.config import settings
from facecluster.core.logging import get_logger
from facecluster.infrastructure.database.models import Base

logger = get_logger(__name__)


def create_session_factory(
    database_url: Optional[str] = None,
    echo: Optional[bool] = None,
) -> Tuple[AsyncEngine, async_sessionmaker]:
    """Create the async engine and its session factory.

    Args:
        database_url: SQLAlchemy URL, defaults to ``settings.DATABASE_URL``
        echo: Log SQL statements, defaults to ``settings.DATABASE_ECHO``

    Returns:
        Tuple of engine and session factory
    """
    engine = create_async_engine(
        database_url or settings.DATABASE_URL,
        echo=settings.DATABASE_ECHO if echo is None else echo,
    )
    session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False
    )
    return engine, session_factory


async def create_tables(engine: AsyncEngine) -> None:
    """Create every table that does not exist yet."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables ready", url=str(engine.url))


@asynccontextmanager
async def get_db_session(session_factory: async_sessionmaker) -> AsyncGenerator[AsyncSession, None]:
    """Get database session.

    Yields:
        AsyncSession: Database session

    Example:
        ```python
        async with get_db_session(session_factory) as session:
            await session.execute(query)
            await session.commit()
        ```
    """
    session = session_factory()
    try:
        yield session
    except Exception as e:
        logger.debug("Rolling back database session", error=str(e))
        await session.rollback()
        raise
    finally:
        await session.close()
