"""Entitlement store port - the remote authority for an owner's grants."""

from typing import Protocol

from accessdesk.domain.entities import Grant
from accessdesk.domain.value_objects import HierarchicalMask


class EntitlementStore(Protocol):
    """Port for reading and changing grants.

    Mutating calls raise StoreError on failure.
    """

    async def fetch_grants(self, owner_id: str) -> list[Grant]: ...

    async def assign_grant(
        self, owner_id: str, resource_id: str, mask: HierarchicalMask
    ) -> Grant: ...

    async def unassign_grant(self, owner_id: str, grant_id: str) -> None: ...

    async def update_grant_mask(
        self, owner_id: str, grant_id: str, mask: HierarchicalMask
    ) -> Grant: ...
