"""Lazy resource attribute lookup."""

from accessdesk.application.ports import ResourceCatalog
from accessdesk.domain.editor import EditorSession


class GetResourceAttributesUseCase:
    """Fetch a resource's attributes once per session, then serve from the session."""

    def __init__(self, catalog: ResourceCatalog) -> None:
        self._catalog = catalog

    async def execute(self, session: EditorSession, resource_id: str) -> tuple[str, ...]:
        resource = session.resource(resource_id)
        if resource.attributes is None:
            attributes = await self._catalog.fetch_attributes(resource_id)
            resource = session.cache_attributes(resource_id, attributes)
        return resource.attributes
