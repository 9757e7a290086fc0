"""Database session configuration with connection pooling."""

import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from healthauth.core.config import settings
from healthauth.core.exceptions import StorageFailure

logger = logging.getLogger(__name__)

# Configurable pool settings via environment variables
# Allows tuning for different deployment sizes (single-worker dev vs multi-worker prod)
pool_size = int(os.getenv("DATABASE_POOL_SIZE", "20"))
max_overflow = int(os.getenv("DATABASE_MAX_OVERFLOW", "40"))


def create_engine_from_settings():
    """Build the pooled production engine."""
    return create_async_engine(
        settings.DATABASE_URL,
        echo=settings.DEBUG,
        pool_size=pool_size,  # Number of connections to maintain
        max_overflow=max_overflow,  # Additional connections allowed beyond pool_size
        pool_timeout=30,  # Seconds to wait before giving up on getting a connection
        pool_recycle=3600,  # Recycle connections after 1 hour (prevents stale connections)
        pool_pre_ping=True,  # Verify connections before using them
    )


class Database:
    """
    Transaction scope handed to every component through its constructor.

    Each operation checks a connection out of the pool for its own duration
    only; the `async with` blocks return it on success, early return and
    exception alike.
    """

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self.session_maker = session_maker

    @classmethod
    def from_settings(cls) -> "Database":
        engine = create_engine_from_settings()
        return cls(async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False))

    @asynccontextmanager
    async def transaction(self, db: AsyncSession | None = None) -> AsyncIterator[AsyncSession]:
        """
        Yield a session inside a transaction.

        When `db` is given the caller already owns a transaction: the block
        joins it and neither commits nor wraps errors, so the outermost scope
        decides the outcome for the whole sequence.

        Raises:
            StorageFailure: when the database raises inside an owned transaction
        """
        if db is not None:
            yield db
            return

        try:
            async with self.session_maker() as session:
                async with session.begin():
                    yield session
        except SQLAlchemyError as e:
            logger.error(f"Database operation failed: {e.__class__.__name__}")
            raise StorageFailure(str(e)) from e

