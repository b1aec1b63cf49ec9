"""PostgreSQL store for a user's direct table grants.

Grants a user receives through their profile are returned by fetch_grants
with source=profile and are never modified here.
"""

from psycopg_pool import AsyncConnectionPool

from accessdesk.domain.entities import Grant
from accessdesk.domain.exceptions import StoreError
from accessdesk.domain.value_objects import GrantSource, HierarchicalMask, PermissionMask
from accessdesk.infrastructure.persistence.postgres.connection import store_connection

_COLUMNS = (
    "uta.id, uta.user_id, uta.table_name, uta.can_create, uta.can_read, "
    "uta.can_update, uta.can_delete, uta.source_type, p.name"
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
        source=GrantSource(r[7]),
        source_name=r[8],
    )


class PostgresUserTableStore:
    """Table grants of a user (user_table_access)."""

    def __init__(self, pool: AsyncConnectionPool) -> None:
        self._pool = pool

    async def fetch_grants(self, owner_id: str) -> list[Grant]:
        async with store_connection(self._pool) as conn:
            cur = await conn.execute(
                f"SELECT {_COLUMNS} FROM user_table_access uta "
                "LEFT JOIN profiles p ON p.id = uta.profile_id "
                "WHERE uta.user_id = %s ORDER BY uta.table_name, uta.source_type",
                (owner_id,),
            )
            rows = await cur.fetchall()
        return [_to_grant(r) for r in rows]

    async def _fetch_one(self, conn, grant_id: str) -> tuple:
        cur = await conn.execute(
            f"SELECT {_COLUMNS} FROM user_table_access uta "
            "LEFT JOIN profiles p ON p.id = uta.profile_id WHERE uta.id = %s",
            (grant_id,),
        )
        r = await cur.fetchone()
        if not r:
            raise StoreError("Table access not found", status=404)
        return r

    async def assign_grant(
        self, owner_id: str, resource_id: str, mask: HierarchicalMask
    ) -> Grant:
        m = mask.to_dict()
        async with store_connection(self._pool, resource_id) as conn:
            cur = await conn.execute(
                "INSERT INTO user_table_access "
                "(id, user_id, table_name, can_create, can_read, can_update, can_delete, source_type) "
                "VALUES (gen_random_uuid(), %s, %s, %s, %s, %s, %s, 'direct') "
                "ON CONFLICT (user_id, table_name, source_type) DO UPDATE SET "
                "can_create = EXCLUDED.can_create, can_read = EXCLUDED.can_read, "
                "can_update = EXCLUDED.can_update, can_delete = EXCLUDED.can_delete "
                "RETURNING id",
                (
                    owner_id,
                    resource_id,
                    m["can_create"],
                    m["can_read"],
                    m["can_update"],
                    m["can_delete"],
                ),
            )
            created = await cur.fetchone()
            if not created:
                raise StoreError("Failed to create table access", resource_id=resource_id)
            r = await self._fetch_one(conn, created[0])
        return _to_grant(r)

    async def unassign_grant(self, owner_id: str, grant_id: str) -> None:
        async with store_connection(self._pool) as conn:
            cur = await conn.execute(
                "DELETE FROM user_table_access "
                "WHERE id = %s AND user_id = %s AND source_type = 'direct' RETURNING id",
                (grant_id, owner_id),
            )
            if not await cur.fetchone():
                raise StoreError("Direct table access not found", status=404)

    async def update_grant_mask(
        self, owner_id: str, grant_id: str, mask: HierarchicalMask
    ) -> Grant:
        m = mask.to_dict()
        async with store_connection(self._pool) as conn:
            cur = await conn.execute(
                "UPDATE user_table_access "
                "SET can_create = %s, can_read = %s, can_update = %s, can_delete = %s "
                "WHERE id = %s AND user_id = %s AND source_type = 'direct' RETURNING id",
                (
                    m["can_create"],
                    m["can_read"],
                    m["can_update"],
                    m["can_delete"],
                    grant_id,
                    owner_id,
                ),
            )
            if not await cur.fetchone():
                raise StoreError("Direct table access not found", status=404)
            r = await self._fetch_one(conn, grant_id)
        return _to_grant(r)
