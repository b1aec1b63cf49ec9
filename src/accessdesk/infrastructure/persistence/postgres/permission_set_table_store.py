"""PostgreSQL store for a permission set's table grants."""

from psycopg_pool import AsyncConnectionPool

from accessdesk.domain.entities import Grant
from accessdesk.domain.exceptions import StoreError
from accessdesk.domain.value_objects import HierarchicalMask, PermissionMask
from accessdesk.infrastructure.persistence.postgres.connection import store_connection

_COLUMNS = "id, permission_set_id, table_name, can_create, can_read, can_update, can_delete"

# New table grants start with every column visible and none editable.
_SEED_FIELDS = (
    "INSERT INTO permission_set_field_access "
    "(id, table_access_id, field_name, can_view, can_edit) "
    "SELECT gen_random_uuid(), %s, column_name, true, false "
    "FROM information_schema.columns "
    "WHERE table_schema = 'public' AND table_name = %s "
    "ON CONFLICT (table_access_id, field_name) DO NOTHING"
)

_REFRESH_TABLE_COUNT = (
    "UPDATE permission_sets SET table_count = ("
    "SELECT COUNT(*) FROM permission_set_table_access WHERE permission_set_id = %s"
    ") WHERE id = %s"
)


def _to_grant(r: tuple) -> Grant:
    return Grant(
        id=str(r[0]),
        owner_id=str(r[1]),
        resource_id=r[2],
        mask=PermissionMask(
            can_create=bool(r[3]),
            can_read=bool(r[4]),
            can_update=bool(r[5]),
            can_delete=bool(r[6]),
        ),
    )


def _flags(mask: HierarchicalMask) -> tuple[bool, bool, bool, bool]:
    m = mask.to_dict()
    return (m["can_create"], m["can_read"], m["can_update"], m["can_delete"])


class PostgresPermissionSetTableStore:
    """Table grants of a permission set (permission_set_table_access)."""

    def __init__(self, pool: AsyncConnectionPool) -> None:
        self._pool = pool

    async def fetch_grants(self, owner_id: str) -> list[Grant]:
        """List table grants of a permission set."""
        async with store_connection(self._pool) as conn:
            cur = await conn.execute(
                f"SELECT {_COLUMNS} FROM permission_set_table_access "
                "WHERE permission_set_id = %s ORDER BY table_name",
                (owner_id,),
            )
            rows = await cur.fetchall()
        return [_to_grant(r) for r in rows]

    async def assign_grant(
        self, owner_id: str, resource_id: str, mask: HierarchicalMask
    ) -> Grant:
        """Grant a table, seed its field grants and refresh the table count."""
        async with store_connection(self._pool, resource_id) as conn:
            cur = await conn.execute(
                "INSERT INTO permission_set_table_access "
                "(id, permission_set_id, table_name, can_create, can_read, can_update, can_delete) "
                "VALUES (gen_random_uuid(), %s, %s, %s, %s, %s, %s) "
                "ON CONFLICT (permission_set_id, table_name) DO UPDATE SET "
                "can_create = EXCLUDED.can_create, can_read = EXCLUDED.can_read, "
                "can_update = EXCLUDED.can_update, can_delete = EXCLUDED.can_delete "
                f"RETURNING {_COLUMNS}",
                (owner_id, resource_id, *_flags(mask)),
            )
            r = await cur.fetchone()
            if not r:
                raise StoreError("Failed to create table access", resource_id=resource_id)
            await conn.execute(_SEED_FIELDS, (r[0], resource_id))
            await conn.execute(_REFRESH_TABLE_COUNT, (owner_id, owner_id))
        return _to_grant(r)

    async def unassign_grant(self, owner_id: str, grant_id: str) -> None:
        """Revoke a table grant together with its field grants."""
        async with store_connection(self._pool) as conn:
            await conn.execute(
                "DELETE FROM permission_set_field_access fa "
                "USING permission_set_table_access ta "
                "WHERE fa.table_access_id = ta.id AND ta.id = %s AND ta.permission_set_id = %s",
                (grant_id, owner_id),
            )
            cur = await conn.execute(
                "DELETE FROM permission_set_table_access "
                "WHERE id = %s AND permission_set_id = %s RETURNING id",
                (grant_id, owner_id),
            )
            if not await cur.fetchone():
                raise StoreError("Table access not found", status=404)
            await conn.execute(_REFRESH_TABLE_COUNT, (owner_id, owner_id))

    async def update_grant_mask(
        self, owner_id: str, grant_id: str, mask: HierarchicalMask
    ) -> Grant:
        """Overwrite the flags of an existing table grant."""
        async with store_connection(self._pool) as conn:
            cur = await conn.execute(
                "UPDATE permission_set_table_access "
                "SET can_create = %s, can_read = %s, can_update = %s, can_delete = %s "
                f"WHERE id = %s AND permission_set_id = %s RETURNING {_COLUMNS}",
                (*_flags(mask), grant_id, owner_id),
            )
            r = await cur.fetchone()
        if not r:
            raise StoreError("Table access not found", status=404)
        return _to_grant(r)
