"""
Database connection and utilities for Recommendation Service
"""
import asyncio
import asyncpg
from typing import Optional, List, Dict, Any
import logging

from .config import settings
from .exceptions import DataUnavailable

logger = logging.getLogger(__name__)

# Errors that mean the store itself is unreachable, as opposed to a bad query
CONNECTION_ERRORS = (
    OSError,
    asyncio.TimeoutError,
    asyncpg.InterfaceError,
    asyncpg.PostgresConnectionError,
    asyncpg.CannotConnectNowError,
)


class Database:
    """PostgreSQL database connection manager using asyncpg"""

    def __init__(self, database_url: str = None):
        self.pool: Optional[asyncpg.Pool] = None
        self.database_url = database_url or settings.DATABASE_URL

    async def connect(self):
        """Create database connection pool"""
        try:
            self.pool = await asyncpg.create_pool(
                self.database_url,
                min_size=1,
                max_size=settings.DB_POOL_SIZE,
                command_timeout=settings.DB_COMMAND_TIMEOUT,
            )
            logger.info("Database connection pool created successfully")
        except CONNECTION_ERRORS as e:
            logger.error(f"Failed to connect to database: {e}")
            raise DataUnavailable(f"Database unreachable: {e}") from e

    async def disconnect(self):
        """Close database connection pool"""
        if self.pool:
            await self.pool.close()
            self.pool = None
            logger.info("Database connection pool closed")

    def _require_pool(self) -> asyncpg.Pool:
        if self.pool is None:
            raise DataUnavailable("Database pool is not initialized")
        return self.pool

    async def fetch_one(self, query: str, *args) -> Optional[Dict[str, Any]]:
        """Fetch a single row"""
        pool = self._require_pool()
        try:
            async with pool.acquire() as conn:
                row = await conn.fetchrow(query, *args)
                return dict(row) if row else None
        except CONNECTION_ERRORS as e:
            logger.error(f"Database read failed: {e}")
            raise DataUnavailable(f"Database read failed: {e}") from e

    async def fetch_all(self, query: str, *args) -> List[Dict[str, Any]]:
        """Fetch all rows"""
        pool = self._require_pool()
        try:
            async with pool.acquire() as conn:
                rows = await conn.fetch(query, *args)
                return [dict(row) for row in rows]
        except CONNECTION_ERRORS as e:
            logger.error(f"Database read failed: {e}")
            raise DataUnavailable(f"Database read failed: {e}") from e


# Global database instance
db = Database()


async def get_db() -> Database:
    """Dependency for getting database instance"""
    return db
