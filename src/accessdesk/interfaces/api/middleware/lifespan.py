"""Lifespan middleware - opens remote-store connections on startup, closes on shutdown."""

import logging
from typing import Any

import httpx
from psycopg_pool import AsyncConnectionPool

logger = logging.getLogger(__name__)


class LifespanMiddleware:
    """Owns the pool and/or HTTP client of the configured store backend."""

    def __init__(
        self,
        pool: AsyncConnectionPool | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._pool = pool
        self._client = client

    async def process_startup(self, scope: dict[str, Any], event: dict[str, Any]) -> None:
        if self._pool is not None:
            await self._pool.open()
            logger.info("Connection pool opened")

    async def process_shutdown(self, scope: dict[str, Any], event: dict[str, Any]) -> None:
        if self._client is not None:
            await self._client.aclose()
        if self._pool is not None:
            await self._pool.close()
            logger.info("Connection pool closed")
