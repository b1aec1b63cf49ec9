"""Selection and focus over an editor session.

Highlights pick resources for a bulk move between pools; focus picks the
single resource whose mask is being edited. The two are independent: moving
highlighted resources never changes focus unless the focused resource itself
leaves the granted pool.
"""

from collections.abc import Iterable
from enum import StrEnum

from accessdesk.domain.editor.session import EditorSession
from accessdesk.domain.exceptions import LockedResource, NotFound, ValidationError
from accessdesk.domain.value_objects import HierarchicalMask


class SelectionMode(StrEnum):
    IDLE = "idle"
    HIGHLIGHTING = "highlighting"
    FOCUSED = "focused"


class PoolSide(StrEnum):
    AVAILABLE = "available"
    GRANTED = "granted"


class EditorSelection:
    """Highlight/focus state machine for one EditorSession."""

    def __init__(self, session: EditorSession) -> None:
        self._session = session
        self._available: set[str] = set()
        self._granted: set[str] = set()

    @property
    def highlighted_available(self) -> frozenset[str]:
        return frozenset(self._available)

    @property
    def highlighted_granted(self) -> frozenset[str]:
        return frozenset(self._granted)

    @property
    def focused(self) -> str | None:
        return self._session.active_resource_id

    @property
    def mode(self) -> SelectionMode:
        if self._available or self._granted:
            return SelectionMode.HIGHLIGHTING
        if self.focused is not None:
            return SelectionMode.FOCUSED
        return SelectionMode.IDLE

    def toggle(self, side: PoolSide | str, resource_id: str) -> bool:
        """Flip a highlight. Returns True if the resource is now highlighted."""
        try:
            side = PoolSide(side)
        except ValueError:
            raise ValidationError(f"Unknown pool side: {side}") from None
        if side is PoolSide.AVAILABLE:
            if resource_id not in {r.id for r in self._session.available_pool}:
                raise NotFound("Available resource", resource_id)
            bucket = self._available
        else:
            if self._session.is_locked(resource_id):
                raise LockedResource(resource_id)
            if resource_id not in {r.id for r in self._session.granted_pool}:
                raise NotFound("Granted resource", resource_id)
            bucket = self._granted
        if resource_id in bucket:
            bucket.discard(resource_id)
            return False
        bucket.add(resource_id)
        return True

    def clear(self) -> None:
        self._available.clear()
        self._granted.clear()

    def move_to_granted(
        self,
        resource_ids: Iterable[str] | None = None,
        mask: HierarchicalMask | None = None,
    ) -> list[str]:
        """Stage assignment of the given ids, or of the available-side highlights."""
        ids = self._available if resource_ids is None else set(resource_ids)
        moved = self._session.stage_assign(sorted(ids), mask=mask)
        self._available.difference_update(ids)
        self.prune()
        return moved

    def move_to_available(self, ids: Iterable[str] | None = None) -> list[str]:
        """Stage unassignment of the given ids, or of the granted-side highlights."""
        targets = self._granted if ids is None else set(ids)
        moved = self._session.stage_unassign(sorted(targets))
        self._granted.difference_update(targets)
        self.prune()
        return moved

    def focus(self, resource_id: str | None) -> HierarchicalMask | None:
        return self._session.set_active_resource(resource_id)

    def prune(self) -> None:
        """Drop highlights whose resource is no longer in the matching pool."""
        self._available &= {r.id for r in self._session.available_pool}
        self._granted &= {r.id for r in self._session.granted_pool}
