"""Open editor use case."""

import asyncio
import logging

from accessdesk.application.ports import EntitlementStore, ResourceCatalog
from accessdesk.domain.editor import EditorSession
from accessdesk.domain.exceptions import LoadError, ValidationError
from accessdesk.domain.value_objects import HierarchicalMask

logger = logging.getLogger(__name__)


class OpenEditorUseCase:
    """Create an editor session for an owner and load its baseline."""

    def __init__(
        self,
        catalog: ResourceCatalog,
        store: EntitlementStore,
        default_mask: HierarchicalMask,
    ) -> None:
        self._catalog = catalog
        self._store = store
        self._default_mask = default_mask

    async def execute(
        self,
        owner_id: str,
        session: EditorSession | None = None,
    ) -> EditorSession:
        """Fetch catalog and grants, then load them into a (new or retried) session.

        Raises LoadError if either fetch fails; the session stays unloaded.
        """
        if session is None:
            session = EditorSession(owner_id, self._default_mask)
        elif session.owner_id != owner_id:
            raise ValidationError("Session belongs to a different owner")

        resources, grants = await asyncio.gather(
            self._catalog.fetch_catalog(owner_id),
            self._store.fetch_grants(owner_id),
            return_exceptions=True,
        )
        for outcome in (resources, grants):
            if isinstance(outcome, BaseException):
                logger.warning("Failed to load editor for owner %s: %s", owner_id, outcome)
                raise LoadError(f"Could not load grants for {owner_id}: {outcome}") from outcome

        session.load_baseline(grants, resources)
        return session
