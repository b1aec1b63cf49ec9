"""PostgreSQL async connection pool."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import psycopg
from psycopg import AsyncConnection
from psycopg_pool import AsyncConnectionPool, PoolTimeout

from accessdesk.domain.exceptions import StoreError


def create_pool(conninfo: str, min_size: int = 2, max_size: int = 10) -> AsyncConnectionPool:
    """Create async connection pool.

    Pool is created with open=False. Caller must call await pool.open()
    before use (LifespanMiddleware does this on ASGI startup).
    """
    return AsyncConnectionPool(
        conninfo=conninfo,
        min_size=min_size,
        max_size=max_size,
        open=False,
        name="accessdesk",
    )


@asynccontextmanager
async def store_connection(
    pool: AsyncConnectionPool, resource_id: str | None = None
) -> AsyncIterator[AsyncConnection]:
    """One pooled connection per store call, committed on exit.

    psycopg errors surface as StoreError so callers see one failure type.
    """
    try:
        async with pool.connection() as conn:
            yield conn
    except psycopg.Error as e:
        raise StoreError(str(e).strip() or type(e).__name__, resource_id=resource_id) from e


async def check_connection(pool: AsyncConnectionPool) -> bool:
    """Readiness probe: True if a pooled connection answers SELECT 1."""
    try:
        async with pool.connection(timeout=2.0) as conn:
            await conn.execute("SELECT 1")
    except (psycopg.Error, PoolTimeout):
        return False
    return True
