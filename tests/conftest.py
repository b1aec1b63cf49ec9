"""Pytest fixtures for accessdesk tests."""

from __future__ import annotations

import asyncio
from dataclasses import replace

import pytest

from accessdesk.domain.editor import EditorSession
from accessdesk.domain.entities import Grant, Resource
from accessdesk.domain.exceptions import StoreError
from accessdesk.domain.value_objects import GrantSource, HierarchicalMask, PermissionMask

READ_ONLY = PermissionMask(can_create=False, can_read=True, can_update=False, can_delete=False)


def make_resources(*names: str) -> list[Resource]:
    return [Resource(id=n, name=n.title()) for n in names]


# --- Fake ports ---


class FakeResourceCatalog:
    """In-memory resource catalog. Counts attribute fetches."""

    def __init__(
        self,
        resources: list[Resource] | None = None,
        attributes: dict[str, list[str]] | None = None,
    ) -> None:
        self.resources = list(resources or [])
        self.attributes = dict(attributes or {})
        self.attribute_calls: list[str] = []
        self.fail_with: Exception | None = None

    async def fetch_catalog(self, owner_id: str) -> list[Resource]:
        if self.fail_with is not None:
            raise self.fail_with
        return [replace(r) for r in self.resources]

    async def fetch_attributes(self, resource_id: str) -> list[str]:
        self.attribute_calls.append(resource_id)
        if self.fail_with is not None:
            raise self.fail_with
        return list(self.attributes.get(resource_id, []))


class FakeEntitlementStore:
    """In-memory entitlement store.

    Records every mutating call as (operation, key) where key is the resource
    id for assign and the grant id for unassign/update. Failures are injected
    per (operation, key); `delay` makes every call yield to the loop so
    concurrency can be observed through max_in_flight.
    """

    def __init__(self) -> None:
        self._grants: dict[str, Grant] = {}
        self._seq = 0
        self.calls: list[tuple[str, str]] = []
        self.masks: dict[tuple[str, str], HierarchicalMask] = {}
        self.failures: dict[tuple[str, str], Exception] = {}
        self.fetch_error: Exception | None = None
        self.fetch_count = 0
        self.delay = 0.0
        self.in_flight = 0
        self.max_in_flight = 0

    def add_grant(
        self,
        owner_id: str,
        resource_id: str,
        mask: HierarchicalMask,
        source: GrantSource = GrantSource.DIRECT,
        grant_id: str | None = None,
    ) -> Grant:
        grant = Grant(
            id=grant_id or f"g-{resource_id}",
            owner_id=owner_id,
            resource_id=resource_id,
            mask=mask,
            source=source,
            source_name="Sales profile" if source is GrantSource.PROFILE else None,
        )
        self._grants[grant.id] = grant
        return grant

    def fail(self, operation: str, key: str, error: Exception | None = None) -> None:
        self.failures[(operation, key)] = error or StoreError(
            f"{operation} rejected", resource_id=key, status=500
        )

    def grants_for(self, owner_id: str) -> list[Grant]:
        return [g for g in self._grants.values() if g.owner_id == owner_id]

    async def _call(self, operation: str, key: str) -> None:
        self.calls.append((operation, key))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            error = self.failures.get((operation, key))
            if error is not None:
                raise error
        finally:
            self.in_flight -= 1

    async def fetch_grants(self, owner_id: str) -> list[Grant]:
        self.fetch_count += 1
        if self.fetch_error is not None:
            raise self.fetch_error
        return [replace(g) for g in self.grants_for(owner_id)]

    async def assign_grant(
        self, owner_id: str, resource_id: str, mask: HierarchicalMask
    ) -> Grant:
        await self._call("assign", resource_id)
        self.masks[("assign", resource_id)] = mask
        self._seq += 1
        grant = self.add_grant(owner_id, resource_id, mask, grant_id=f"new-{self._seq}")
        return replace(grant)

    async def unassign_grant(self, owner_id: str, grant_id: str) -> None:
        await self._call("unassign", grant_id)
        if grant_id not in self._grants:
            raise StoreError("Table access not found", status=404)
        del self._grants[grant_id]

    async def update_grant_mask(
        self, owner_id: str, grant_id: str, mask: HierarchicalMask
    ) -> Grant:
        await self._call("update", grant_id)
        self.masks[("update", grant_id)] = mask
        if grant_id not in self._grants:
            raise StoreError("Table access not found", status=404)
        grant = replace(self._grants[grant_id], mask=mask)
        self._grants[grant_id] = grant
        return replace(grant)


# --- Fixtures ---


@pytest.fixture
def resources() -> list[Resource]:
    """Catalog of four tables, in display order."""
    return make_resources("customers", "invoices", "orders", "products")


@pytest.fixture
def catalog(resources: list[Resource]) -> FakeResourceCatalog:
    return FakeResourceCatalog(
        resources,
        attributes={
            "customers": ["id", "name", "email"],
            "orders": ["id", "customer_id", "total"],
        },
    )


@pytest.fixture
def store() -> FakeEntitlementStore:
    """Store where owner ps-1 holds customers (read-only) and orders (full)."""
    s = FakeEntitlementStore()
    s.add_grant("ps-1", "customers", READ_ONLY)
    s.add_grant("ps-1", "orders", PermissionMask())
    return s


@pytest.fixture
def session(resources: list[Resource], store: FakeEntitlementStore) -> EditorSession:
    """Session for ps-1 loaded from the store fixture."""
    s = EditorSession("ps-1", PermissionMask())
    s.load_baseline([replace(g) for g in store.grants_for("ps-1")], resources)
    return s


@pytest.fixture
def mock_store():
    """AsyncMock EntitlementStore - every call succeeds with an empty baseline."""
    from unittest.mock import AsyncMock

    mock = AsyncMock()
    mock.fetch_grants.return_value = []
    return mock
