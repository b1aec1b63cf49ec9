"""Console REST API adapters (httpx).

Talks to the admin console's /api/admin routes instead of the database.
Only permission-set table grants are exposed there.
"""

import logging
from typing import Any
from urllib.parse import quote

import httpx

from accessdesk.domain.entities import Grant, Resource
from accessdesk.domain.exceptions import StoreError
from accessdesk.domain.value_objects import HierarchicalMask, PermissionMask

logger = logging.getLogger(__name__)


def create_client(base_url: str, token: str = "", timeout: float = 10.0) -> httpx.AsyncClient:
    """AsyncClient shared by the console adapters. Caller closes it."""
    headers = {"Accept": "application/json"}
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return httpx.AsyncClient(base_url=base_url.rstrip("/"), headers=headers, timeout=timeout)


async def _request(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    resource_id: str | None = None,
    body: dict[str, Any] | None = None,
) -> Any:
    try:
        r = await client.request(method, url, json=body)
    except httpx.HTTPError as e:
        raise StoreError(f"{method} {url} failed: {e}", resource_id=resource_id) from e
    if r.is_error:
        try:
            detail = r.json().get("error") or r.reason_phrase
        except (ValueError, AttributeError):
            detail = r.text or r.reason_phrase
        raise StoreError(detail, resource_id=resource_id, status=r.status_code)
    try:
        return r.json()
    except ValueError as e:
        raise StoreError(f"Invalid JSON from {url}", resource_id=resource_id) from e


def _to_grant(owner_id: str, row: dict[str, Any]) -> Grant:
    return Grant(
        id=str(row["id"]),
        owner_id=str(row.get("permission_set_id") or owner_id),
        resource_id=row.get("table_name") or row["name"],
        mask=PermissionMask.from_dict(row),
    )


class ConsolePermissionSetTableStore:
    """Table grants of a permission set via /api/admin/permission-sets/{id}/tables."""

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    @staticmethod
    def _url(owner_id: str) -> str:
        return f"/api/admin/permission-sets/{quote(owner_id, safe='')}/tables"

    async def fetch_grants(self, owner_id: str) -> list[Grant]:
        data = await _request(self._client, "GET", self._url(owner_id))
        return [_to_grant(owner_id, row) for row in data.get("tables") or []]

    async def assign_grant(
        self, owner_id: str, resource_id: str, mask: HierarchicalMask
    ) -> Grant:
        data = await _request(
            self._client,
            "POST",
            self._url(owner_id),
            resource_id,
            {"tableName": resource_id, "permissions": mask.to_dict()},
        )
        return _to_grant(owner_id, data["data"])

    async def unassign_grant(self, owner_id: str, grant_id: str) -> None:
        await _request(self._client, "DELETE", self._url(owner_id), body={"tableId": grant_id})

    async def update_grant_mask(
        self, owner_id: str, grant_id: str, mask: HierarchicalMask
    ) -> Grant:
        row = await _request(
            self._client,
            "PUT",
            self._url(owner_id),
            body={"tableId": grant_id, "permissions": mask.to_dict()},
        )
        return _to_grant(owner_id, row)


class ConsoleTableCatalog:
    """Assignable tables via /api/admin/available-tables."""

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def fetch_catalog(self, owner_id: str) -> list[Resource]:
        data = await _request(self._client, "GET", "/api/admin/available-tables")
        return [
            Resource(id=t["id"], name=t.get("name") or t["id"], description=t.get("description"))
            for t in data.get("tables") or []
        ]

    async def fetch_attributes(self, resource_id: str) -> list[str]:
        columns = await _request(
            self._client,
            "GET",
            f"/api/admin/db/app-tables/{quote(resource_id, safe='')}/columns",
            resource_id,
        )
        logger.debug("Fetched %d columns of %s", len(columns), resource_id)
        return list(columns)
