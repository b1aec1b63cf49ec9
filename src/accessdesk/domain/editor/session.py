"""Editor session - staged grant/revoke and mask edits for one owner.

Nothing here talks to the remote store. Structural changes are staged in
pending sets, mask edits live in a per-resource cache seeded from the
baseline, and the reconciler turns the difference into store calls.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import StrEnum

from accessdesk.domain.entities import Grant, Resource
from accessdesk.domain.exceptions import (
    CommitInProgress,
    InvalidSessionState,
    LockedResource,
    NoActiveResource,
    NotFound,
)
from accessdesk.domain.value_objects import HierarchicalMask, MaskChange, MaskFlag

logger = logging.getLogger(__name__)


class SessionState(StrEnum):
    UNINITIALIZED = "uninitialized"
    LOADED = "loaded"
    EDITING = "editing"
    COMMITTING = "committing"


@dataclass(frozen=True)
class PlannedAssign:
    resource_id: str
    mask: HierarchicalMask


@dataclass(frozen=True)
class PlannedUnassign:
    grant_id: str
    resource_id: str


@dataclass(frozen=True)
class PlannedUpdate:
    grant_id: str
    resource_id: str
    mask: HierarchicalMask


@dataclass(frozen=True)
class CommitPlan:
    """Snapshot of what a commit must send, taken when the commit starts."""

    generation: int
    assigns: list[PlannedAssign] = field(default_factory=list)
    unassigns: list[PlannedUnassign] = field(default_factory=list)
    updates: list[PlannedUpdate] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.assigns or self.unassigns or self.updates)


class EditorSession:
    """Staged entitlements of one owner over one catalog of resources."""

    def __init__(self, owner_id: str, default_mask: HierarchicalMask) -> None:
        self.owner_id = owner_id
        self.default_mask = default_mask
        self.generation = 0
        self._state = SessionState.UNINITIALIZED
        self._loaded = False
        self._catalog: dict[str, Resource] = {}
        self._baseline: dict[str, Grant] = {}  # resource_id -> editable grant
        self._locked: dict[str, Grant] = {}  # resource_id -> inherited grant
        self._pending_assignments: set[str] = set()
        self._pending_unassignments: set[str] = set()  # grant ids
        self._mask_cache: dict[str, HierarchicalMask] = {}
        self._repaired: set[str] = set()
        self._active: str | None = None
        self._commit_running = False

    # --- State ---

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    @property
    def active_resource_id(self) -> str | None:
        return self._active

    @property
    def pending_assignments(self) -> frozenset[str]:
        return frozenset(self._pending_assignments)

    @property
    def pending_unassignments(self) -> frozenset[str]:
        return frozenset(self._pending_unassignments)

    @property
    def repaired_resources(self) -> frozenset[str]:
        """Resources whose baseline mask broke the hierarchy and was repaired."""
        return frozenset(self._repaired)

    # --- Pools ---

    @property
    def catalog(self) -> list[Resource]:
        return list(self._catalog.values())

    @property
    def granted_pool(self) -> list[Resource]:
        return [r for r in self._catalog.values() if self._is_granted(r.id)]

    @property
    def available_pool(self) -> list[Resource]:
        return [
            r
            for r in self._catalog.values()
            if r.id not in self._locked and not self._is_granted(r.id)
        ]

    @property
    def locked_pool(self) -> list[Resource]:
        return [r for r in self._catalog.values() if r.id in self._locked]

    def resource(self, resource_id: str) -> Resource:
        try:
            return self._catalog[resource_id]
        except KeyError:
            raise NotFound("Resource", resource_id) from None

    def baseline_grant(self, resource_id: str) -> Grant | None:
        return self._baseline.get(resource_id) or self._locked.get(resource_id)

    def is_locked(self, resource_id: str) -> bool:
        return resource_id in self._locked

    def is_pending(self, resource_id: str) -> bool:
        return resource_id in self._pending_assignments

    def mask_for(self, resource_id: str) -> HierarchicalMask:
        """Current (possibly edited) mask of a granted or locked resource."""
        if resource_id in self._locked:
            return self._locked[resource_id].mask
        if not self._is_granted(resource_id):
            raise NotFound("Granted resource", resource_id)
        return self._mask_cache[resource_id]

    @property
    def active_mask(self) -> HierarchicalMask | None:
        if self._active is None:
            return None
        return self.mask_for(self._active)

    def cache_attributes(self, resource_id: str, attributes: Iterable[str]) -> Resource:
        resource = self.resource(resource_id)
        resource.attributes = tuple(attributes)
        return resource

    # --- Loading ---

    def load_baseline(
        self,
        grants: Iterable[Grant],
        catalog: Iterable[Resource] | None = None,
    ) -> None:
        """Partition the catalog by the owner's grants and reset all staging.

        With catalog=None the already loaded catalog is reused (baseline
        refresh after a commit).
        """
        if self._state is SessionState.EDITING and self.has_unsaved_changes():
            raise InvalidSessionState("Discard staged changes before reloading")
        if catalog is None:
            if not self.is_loaded:
                raise InvalidSessionState("Session has no catalog to refresh against")
            resources = dict(self._catalog)
        else:
            resources = {r.id: r for r in catalog}

        baseline: dict[str, Grant] = {}
        locked: dict[str, Grant] = {}
        for grant in grants:
            if grant.resource_id not in resources:
                logger.warning(
                    "Grant %s references resource %s missing from catalog",
                    grant.id,
                    grant.resource_id,
                )
                resources[grant.resource_id] = Resource(
                    id=grant.resource_id, name=grant.resource_id
                )
            if grant.inherited:
                locked[grant.resource_id] = grant
                baseline.pop(grant.resource_id, None)
            elif grant.resource_id not in locked:
                baseline[grant.resource_id] = grant

        self._catalog = resources
        self._baseline = baseline
        self._locked = locked
        self.generation += 1
        self._reset_staging()
        self._loaded = True
        self._state = SessionState.LOADED
        logger.info(
            "Loaded baseline for owner %s: %d granted, %d locked, %d available",
            self.owner_id,
            len(self._baseline),
            len(self._locked),
            len(self.available_pool),
        )

    def discard(self) -> None:
        """Drop every staged change and return to the last loaded baseline."""
        self.generation += 1
        self._reset_staging()
        self._state = SessionState.LOADED if self._loaded else SessionState.UNINITIALIZED

    def _reset_staging(self) -> None:
        self._pending_assignments.clear()
        self._pending_unassignments.clear()
        self._active = None
        self._repaired.clear()
        self._mask_cache = {}
        for resource_id, grant in self._baseline.items():
            change = grant.mask.normalized()
            if change.cascaded:
                self._repaired.add(resource_id)
                logger.warning(
                    "Repaired mask of %s for owner %s: cleared %s",
                    resource_id,
                    self.owner_id,
                    ", ".join(change.cleared),
                )
            self._mask_cache[resource_id] = change.mask

    # --- Staging ---

    def stage_assign(
        self,
        resource_ids: Iterable[str],
        mask: HierarchicalMask | None = None,
    ) -> list[str]:
        """Move resources to the granted pool. Returns the ids actually moved.

        Re-granting a resource whose baseline grant is pending unassignment
        cancels the unassignment and keeps its cached mask.
        """
        self._require_editable()
        ids = list(dict.fromkeys(resource_ids))
        for resource_id in ids:
            self.resource(resource_id)
        seed = self.default_mask if mask is None else mask.normalized().mask

        moved: list[str] = []
        for resource_id in ids:
            if resource_id in self._locked or self._is_granted(resource_id):
                continue
            grant = self._baseline.get(resource_id)
            if grant is not None:
                self._pending_unassignments.discard(grant.id)
            else:
                self._pending_assignments.add(resource_id)
                self._mask_cache[resource_id] = seed
            moved.append(resource_id)

        if moved:
            self._state = SessionState.EDITING
            logger.debug("Staged assign of %s for owner %s", moved, self.owner_id)
        return moved

    def stage_unassign(self, ids: Iterable[str]) -> list[str]:
        """Move granted entries back to the available pool.

        Accepts grant ids of baseline grants and resource ids of either
        pending assignments or baseline grants. Returns the resource ids moved.
        """
        self._require_editable()
        targets = [self._resolve_granted(i) for i in dict.fromkeys(ids)]

        moved: list[str] = []
        for resource_id in dict.fromkeys(targets):
            if resource_id in self._pending_assignments:
                self._pending_assignments.discard(resource_id)
                self._mask_cache.pop(resource_id, None)
            else:
                grant = self._baseline[resource_id]
                if grant.id in self._pending_unassignments:
                    continue
                self._pending_unassignments.add(grant.id)
            moved.append(resource_id)
            if self._active == resource_id:
                self._active = None

        if moved:
            self._state = SessionState.EDITING
            logger.debug("Staged unassign of %s for owner %s", moved, self.owner_id)
        return moved

    def set_active_resource(self, resource_id: str | None) -> HierarchicalMask | None:
        """Open a granted (or locked, read-only) resource for mask editing."""
        self._require_editable()
        if resource_id is not None and resource_id not in self._locked and not self._is_granted(resource_id):
            raise NotFound("Granted resource", resource_id)
        self._active = resource_id
        if self._state is SessionState.LOADED and resource_id is not None:
            self._state = SessionState.EDITING
        return self.active_mask

    def edit_active_mask(self, flag: MaskFlag | str, value: bool) -> MaskChange:
        """Apply one flag edit to the active resource's cached mask."""
        self._require_editable()
        if self._active is None:
            raise NoActiveResource("No resource is open for editing")
        if self._active in self._locked:
            raise LockedResource(self._active)
        change = self._mask_cache[self._active].set(flag, value)
        self._mask_cache[self._active] = change.mask
        self._state = SessionState.EDITING
        if change.cascaded:
            logger.debug(
                "Clearing %s on %s cleared %s",
                flag,
                self._active,
                ", ".join(change.cleared),
            )
        return change

    def has_unsaved_changes(self) -> bool:
        if self._pending_assignments or self._pending_unassignments:
            return True
        return bool(self._modified_grants())

    # --- Commit support (used by the reconciler) ---

    def begin_commit(self) -> CommitPlan:
        """Freeze the session and snapshot the operations a commit must issue.

        The caller must call release_commit once the commit's calls have settled,
        even if the session was discarded meanwhile.
        """
        if self._commit_running or self._state is SessionState.COMMITTING:
            raise CommitInProgress("A commit is already running for this session")
        if not self.is_loaded:
            raise InvalidSessionState("Session is not loaded")

        plan = CommitPlan(generation=self.generation)
        for resource_id in self._catalog:
            if resource_id in self._pending_assignments:
                mask = self._mask_cache.get(resource_id, self.default_mask)
                plan.assigns.append(PlannedAssign(resource_id, mask))
                continue
            grant = self._baseline.get(resource_id)
            if grant is None:
                continue
            if grant.id in self._pending_unassignments:
                plan.unassigns.append(PlannedUnassign(grant.id, resource_id))
            elif self._mask_cache.get(resource_id) != grant.mask:
                plan.updates.append(
                    PlannedUpdate(grant.id, resource_id, self._mask_cache[resource_id])
                )
        self._state = SessionState.COMMITTING
        self._commit_running = True
        return plan

    def record_assigned(self, grant: Grant) -> None:
        self._require_committing()
        self._pending_assignments.discard(grant.resource_id)
        self._baseline[grant.resource_id] = grant
        self._mask_cache[grant.resource_id] = grant.mask.normalized().mask

    def record_unassigned(self, grant_id: str) -> None:
        self._require_committing()
        self._pending_unassignments.discard(grant_id)
        for resource_id, grant in list(self._baseline.items()):
            if grant.id == grant_id:
                del self._baseline[resource_id]
                self._mask_cache.pop(resource_id, None)
                self._repaired.discard(resource_id)

    def record_updated(self, grant: Grant) -> None:
        self._require_committing()
        self._baseline[grant.resource_id] = grant
        self._mask_cache[grant.resource_id] = grant.mask.normalized().mask
        self._repaired.discard(grant.resource_id)

    def finish_commit(self) -> None:
        """Leave Committing: Loaded when everything landed, Editing otherwise."""
        self._require_committing()
        self._state = SessionState.EDITING if self.has_unsaved_changes() else SessionState.LOADED

    def release_commit(self) -> None:
        """Allow the next commit. Called after the last call of a commit settled."""
        self._commit_running = False

    @property
    def commit_running(self) -> bool:
        return self._commit_running

    # --- Internals ---

    def _is_granted(self, resource_id: str) -> bool:
        if resource_id in self._pending_assignments:
            return True
        grant = self._baseline.get(resource_id)
        return grant is not None and grant.id not in self._pending_unassignments

    def _resolve_granted(self, some_id: str) -> str:
        for resource_id, grant in self._locked.items():
            if some_id in (resource_id, grant.id):
                raise LockedResource(resource_id)
        if some_id in self._pending_assignments:
            return some_id
        for resource_id, grant in self._baseline.items():
            if some_id in (resource_id, grant.id):
                return resource_id
        raise NotFound("Granted resource", some_id)

    def _modified_grants(self) -> list[Grant]:
        return [
            g
            for r, g in self._baseline.items()
            if g.id not in self._pending_unassignments and self._mask_cache.get(r) != g.mask
        ]

    def _require_editable(self) -> None:
        if self._state is SessionState.COMMITTING:
            raise CommitInProgress("Session is committing; staging is disabled")
        if not self.is_loaded:
            raise InvalidSessionState("Session is not loaded")

    def _require_committing(self) -> None:
        if self._state is not SessionState.COMMITTING:
            raise InvalidSessionState("Session is not committing")
