"""Postgres-backed property store using an asyncpg connection pool."""

import asyncio
import logging
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, Optional

import asyncpg

from ..exceptions import StoreUnavailable
from ..models.property import Property, PropertyCreate, PropertyPage, PropertyUpdate
from ..query import QuerySpec, SortKey, location_sort_key
from .base import PropertyStore

logger = logging.getLogger(__name__)

# Errors that mean the database is unreachable or rejected the statement
BACKEND_ERRORS = (
    asyncpg.PostgresError,
    asyncpg.InterfaceError,
    OSError,
    asyncio.TimeoutError,
)

SCHEMA_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS properties (
        id TEXT PRIMARY KEY,
        seq BIGSERIAL,
        price DOUBLE PRECISION NOT NULL,
        location TEXT NOT NULL,
        location_key TEXT,
        rental_yield DOUBLE PRECISION NOT NULL,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
    # Tables created before the sort columns existed
    "ALTER TABLE properties ADD COLUMN IF NOT EXISTS seq BIGSERIAL",
    "ALTER TABLE properties ADD COLUMN IF NOT EXISTS location_key TEXT",
    """
    CREATE INDEX IF NOT EXISTS idx_properties_created
    ON properties(created_at DESC)
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_properties_price
    ON properties(price)
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_properties_rental_yield
    ON properties(rental_yield)
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_properties_location_key
    ON properties(location_key COLLATE "C")
    """,
)


def build_where(spec: QuerySpec) -> tuple[str, list]:
    """Translate the query filters into a WHERE clause.

    Returns:
        Tuple of (condition SQL using $1..$n placeholders, parameter list).
        The condition is ``TRUE`` when there are no filters.
    """
    conditions: list[str] = []
    params: list = []
    idx = 1

    if spec.text is not None:
        conditions.append(f"strpos(lower(location), lower(${idx})) > 0")
        params.append(spec.text)
        idx += 1

    for column, bounds in (("price", spec.price), ("rental_yield", spec.rental_yield)):
        if bounds.min is not None:
            conditions.append(f"{column} >= ${idx}")
            params.append(bounds.min)
            idx += 1
        if bounds.max is not None:
            conditions.append(f"{column} <= ${idx}")
            params.append(bounds.max)
            idx += 1

    where = " AND ".join(conditions) if conditions else "TRUE"
    return where, params


def build_order_by(spec: QuerySpec) -> str:
    """ORDER BY clause matching ``QuerySpec.sort`` on in-process records.

    Ties fall back to insertion order, newest first, like the memory
    store's list. Locations compare by ``location_key`` then raw text, both
    under the "C" collation so the database locale has no say.
    """
    direction = "DESC" if spec.descending else "ASC"
    if spec.sort_key is SortKey.LOCATION:
        keys = f'location_key COLLATE "C" {direction}, location COLLATE "C" {direction}'
    else:
        keys = f"{spec.sort_key.attribute} {direction}"
    return f"{keys}, seq DESC"


def _row_to_property(row) -> Property:
    """Convert a database row to a Property."""
    return Property(
        id=row["id"],
        price=row["price"],
        location=row["location"],
        rental_yield=row["rental_yield"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class PostgresPropertyStore(PropertyStore):
    """Durable store backed by a ``properties`` table.

    Isolation between concurrent requests is left to Postgres. The page and
    its total are read in one read-only repeatable-read transaction so they
    always agree.

    Example:
        pool = await asyncpg.create_pool(database_url)
        store = PostgresPropertyStore(pool)
        await store.ensure_schema()
    """

    backend = "postgres"

    def __init__(self, pool: asyncpg.Pool):
        """Initialize the store.

        Args:
            pool: Open asyncpg pool. The store takes ownership and closes it
                  in ``close()``.
        """
        self._pool = pool

    @asynccontextmanager
    async def _connection(self) -> AsyncIterator[asyncpg.Connection]:
        try:
            async with self._pool.acquire() as conn:
                yield conn
        except BACKEND_ERRORS as e:
            logger.error(f"Postgres error: {e}")
            raise StoreUnavailable(self.backend, str(e) or type(e).__name__) from e

    async def ensure_schema(self) -> None:
        """Create the properties table and its indexes if missing."""
        async with self._connection() as conn:
            for statement in SCHEMA_STATEMENTS:
                await conn.execute(statement)
            missing = await conn.fetch(
                "SELECT id, location FROM properties WHERE location_key IS NULL"
            )
            if missing:
                await conn.executemany(
                    "UPDATE properties SET location_key = $1 WHERE id = $2",
                    [(location_sort_key(row["location"]), row["id"]) for row in missing],
                )
                logger.info(f"Backfilled location sort keys for {len(missing)} properties")
        logger.info("Properties table ready")

    async def create(self, payload: PropertyCreate) -> Property:
        property_id = str(uuid.uuid4())
        now = datetime.now(timezone.utc)
        async with self._connection() as conn:
            row = await conn.fetchrow(
                """
                INSERT INTO properties
                    (id, price, location, location_key, rental_yield, created_at, updated_at)
                VALUES ($1, $2, $3, $4, $5, $6, $6)
                RETURNING *
                """,
                property_id, payload.price, payload.location,
                location_sort_key(payload.location), payload.rental_yield, now,
            )
        logger.debug(f"Inserted property {property_id}")
        return _row_to_property(row)

    async def query(self, spec: QuerySpec) -> PropertyPage:
        where, params = build_where(spec)
        idx = len(params) + 1
        select_sql = (
            f"SELECT * FROM properties WHERE {where} "
            f"ORDER BY {build_order_by(spec)} "
            f"LIMIT ${idx} OFFSET ${idx + 1}"
        )
        count_sql = f"SELECT COUNT(*) FROM properties WHERE {where}"

        async with self._connection() as conn:
            async with conn.transaction(isolation="repeatable_read", readonly=True):
                rows = await conn.fetch(select_sql, *params, spec.page_size, spec.offset)
                total = await conn.fetchval(count_sql, *params)

        return PropertyPage(
            items=[_row_to_property(row) for row in rows],
            total=total or 0,
            page=spec.page,
            page_size=spec.page_size,
        )

    async def update(
        self, property_id: str, payload: PropertyUpdate
    ) -> Optional[Property]:
        async with self._connection() as conn:
            row = await conn.fetchrow(
                """
                UPDATE properties
                SET price = $1, location = $2, location_key = $3,
                    rental_yield = $4, updated_at = $5
                WHERE id = $6
                RETURNING *
                """,
                payload.price, payload.location, location_sort_key(payload.location),
                payload.rental_yield, datetime.now(timezone.utc), property_id,
            )
        if row is None:
            return None
        logger.debug(f"Updated property {property_id}")
        return _row_to_property(row)

    async def delete(self, property_id: str) -> bool:
        async with self._connection() as conn:
            result = await conn.execute("DELETE FROM properties WHERE id = $1", property_id)
        if result == "DELETE 0":
            return False
        logger.debug(f"Deleted property {property_id}")
        return True

    async def close(self) -> None:
        await self._pool.close()
        logger.info("Database pool closed")
