"""PostgreSQL resource catalogs - application tables and their columns."""

from psycopg_pool import AsyncConnectionPool

from accessdesk.domain.entities import Resource
from accessdesk.domain.exceptions import StoreError
from accessdesk.infrastructure.persistence.postgres.connection import store_connection

_COLUMNS_OF_TABLE = (
    "SELECT column_name, data_type FROM information_schema.columns "
    "WHERE table_schema = 'public' AND table_name = %s ORDER BY ordinal_position"
)


class PostgresTableCatalog:
    """Every application table in the public schema.

    Tables named in `hidden` (access-control bookkeeping, migrations) are
    not offered for assignment.
    """

    def __init__(self, pool: AsyncConnectionPool, hidden: frozenset[str] = frozenset()) -> None:
        self._pool = pool
        self._hidden = hidden

    async def fetch_catalog(self, owner_id: str) -> list[Resource]:
        async with store_connection(self._pool) as conn:
            cur = await conn.execute(
                "SELECT tablename FROM pg_tables WHERE schemaname = 'public' "
                "AND tablename NOT LIKE 'pg_%' AND tablename NOT LIKE 'sql_%' "
                "ORDER BY tablename"
            )
            rows = await cur.fetchall()
        return [Resource(id=r[0], name=r[0]) for r in rows if r[0] not in self._hidden]

    async def fetch_attributes(self, resource_id: str) -> list[str]:
        async with store_connection(self._pool, resource_id) as conn:
            cur = await conn.execute(_COLUMNS_OF_TABLE, (resource_id,))
            rows = await cur.fetchall()
        return [r[0] for r in rows]


class PostgresFieldCatalog:
    """Columns of the table behind one table grant."""

    def __init__(self, pool: AsyncConnectionPool) -> None:
        self._pool = pool

    async def fetch_catalog(self, owner_id: str) -> list[Resource]:
        async with store_connection(self._pool) as conn:
            cur = await conn.execute(
                "SELECT table_name FROM permission_set_table_access WHERE id = %s",
                (owner_id,),
            )
            table = await cur.fetchone()
            if not table:
                raise StoreError(f"Table access {owner_id} not found", status=404)
            cur = await conn.execute(_COLUMNS_OF_TABLE, (table[0],))
            rows = await cur.fetchall()
        return [Resource(id=r[0], name=r[0], description=r[1]) for r in rows]

    async def fetch_attributes(self, resource_id: str) -> list[str]:
        # Columns carry no nested attributes.
        return []
