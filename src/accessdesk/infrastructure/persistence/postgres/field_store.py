"""PostgreSQL store for field grants under one table grant.

The owner here is a permission_set_table_access row; resources are the
table's column names.
"""

from psycopg_pool import AsyncConnectionPool

from accessdesk.domain.entities import Grant
from accessdesk.domain.exceptions import StoreError
from accessdesk.domain.value_objects import FieldMask, HierarchicalMask
from accessdesk.infrastructure.persistence.postgres.connection import store_connection

_COLUMNS = "id, table_access_id, field_name, can_view, can_edit"


def _to_grant(r: tuple) -> Grant:
    return Grant(
        id=str(r[0]),
        owner_id=str(r[1]),
        resource_id=r[2],
        mask=FieldMask(can_view=bool(r[3]), can_edit=bool(r[4])),
    )


class PostgresFieldStore:
    """Field grants (permission_set_field_access)."""

    def __init__(self, pool: AsyncConnectionPool) -> None:
        self._pool = pool

    async def fetch_grants(self, owner_id: str) -> list[Grant]:
        async with store_connection(self._pool) as conn:
            cur = await conn.execute(
                f"SELECT {_COLUMNS} FROM permission_set_field_access "
                "WHERE table_access_id = %s ORDER BY field_name",
                (owner_id,),
            )
            rows = await cur.fetchall()
        return [_to_grant(r) for r in rows]

    async def assign_grant(
        self, owner_id: str, resource_id: str, mask: HierarchicalMask
    ) -> Grant:
        m = mask.to_dict()
        async with store_connection(self._pool, resource_id) as conn:
            cur = await conn.execute(
                "INSERT INTO permission_set_field_access "
                "(id, table_access_id, field_name, can_view, can_edit) "
                "VALUES (gen_random_uuid(), %s, %s, %s, %s) "
                "ON CONFLICT (table_access_id, field_name) DO UPDATE SET "
                "can_view = EXCLUDED.can_view, can_edit = EXCLUDED.can_edit "
                f"RETURNING {_COLUMNS}",
                (owner_id, resource_id, m["can_view"], m["can_edit"]),
            )
            r = await cur.fetchone()
        if not r:
            raise StoreError("Failed to create field access", resource_id=resource_id)
        return _to_grant(r)

    async def unassign_grant(self, owner_id: str, grant_id: str) -> None:
        async with store_connection(self._pool) as conn:
            cur = await conn.execute(
                "DELETE FROM permission_set_field_access "
                "WHERE id = %s AND table_access_id = %s RETURNING id",
                (grant_id, owner_id),
            )
            if not await cur.fetchone():
                raise StoreError("Field access not found", status=404)

    async def update_grant_mask(
        self, owner_id: str, grant_id: str, mask: HierarchicalMask
    ) -> Grant:
        m = mask.to_dict()
        async with store_connection(self._pool) as conn:
            cur = await conn.execute(
                "UPDATE permission_set_field_access SET can_view = %s, can_edit = %s "
                f"WHERE id = %s AND table_access_id = %s RETURNING {_COLUMNS}",
                (m["can_view"], m["can_edit"], grant_id, owner_id),
            )
            r = await cur.fetchone()
        if not r:
            raise StoreError("Field access not found", status=404)
        return _to_grant(r)
