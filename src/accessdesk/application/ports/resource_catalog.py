"""Resource catalog port - the universe of assignable resources."""

from typing import Protocol

from accessdesk.domain.entities import Resource


class ResourceCatalog(Protocol):
    """Port for reading assignable resources and their attributes."""

    async def fetch_catalog(self, owner_id: str) -> list[Resource]: ...

    async def fetch_attributes(self, resource_id: str) -> list[str]: ...
