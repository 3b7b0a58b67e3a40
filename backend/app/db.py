"""Database connection pool and store selection.

The store is chosen once at startup: with a database URL configured the
service runs on Postgres and refuses to start if it cannot connect; without
one it keeps records in memory for the life of the process.
"""

import logging

import asyncpg

from yieldbook.config import Settings
from yieldbook.exceptions import StoreUnavailable
from yieldbook.storage import MemoryPropertyStore, PostgresPropertyStore, PropertyStore
from yieldbook.storage.postgres import BACKEND_ERRORS

logger = logging.getLogger(__name__)


async def init_pool(settings: Settings) -> asyncpg.Pool:
    """Create the connection pool.

    Raises:
        StoreUnavailable: If the database cannot be reached
    """
    if not settings.database_url:
        raise RuntimeError("DATABASE_URL is not set")

    try:
        pool = await asyncpg.create_pool(
            settings.database_url,
            min_size=settings.pool_min_size,
            max_size=settings.pool_max_size,
        )
    except BACKEND_ERRORS as e:
        logger.error(f"Database connection failed: {e}")
        logger.error("Hint: unset DATABASE_URL to run with the in-memory store.")
        raise StoreUnavailable("postgres", f"Connection failed: {e}") from e

    logger.info("Database pool created")
    return pool


async def init_store(settings: Settings) -> PropertyStore:
    """Build the store for this process.

    Args:
        settings: Application settings; ``database_url`` selects the backend

    Returns:
        A ready PostgresPropertyStore, or a MemoryPropertyStore when no
        database is configured

    Raises:
        StoreUnavailable: If a database is configured but unusable. There is
            no fallback to memory in that case.
    """
    if not settings.use_database:
        logger.warning("DATABASE_URL not set: running with in-memory store (no persistence)")
        return MemoryPropertyStore()

    pool = await init_pool(settings)
    store = PostgresPropertyStore(pool)
    try:
        await store.ensure_schema()
    except StoreUnavailable:
        await pool.close()
        raise
    logger.info("Database connected")
    return store
