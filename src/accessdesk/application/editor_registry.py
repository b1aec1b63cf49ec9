"""Open editor sessions, keyed by editor id, for the presentation adapter."""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from uuid import uuid4

from accessdesk.application.dto.commit_result import CommitResult
from accessdesk.application.use_cases.editor.commit_session import CommitSessionUseCase
from accessdesk.application.use_cases.editor.get_attributes import (
    GetResourceAttributesUseCase,
)
from accessdesk.application.use_cases.editor.open_editor import OpenEditorUseCase
from accessdesk.domain.editor import EditorSelection, EditorSession
from accessdesk.domain.exceptions import NotFound, ValidationError
from accessdesk.domain.value_objects import EditorScope

logger = logging.getLogger(__name__)


@dataclass
class ScopeBackend:
    """Use cases wired to one scope's catalog and store."""

    open_editor: OpenEditorUseCase
    commit_session: CommitSessionUseCase
    get_attributes: GetResourceAttributesUseCase


@dataclass
class EditorHandle:
    id: str
    scope: EditorScope
    session: EditorSession
    selection: EditorSelection
    opened_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    last_used: datetime = field(default_factory=lambda: datetime.now(UTC))


class EditorRegistry:
    """In-process registry of editor sessions. Sessions are not shared across processes.

    Editors untouched for longer than idle_timeout seconds are evicted when the
    next editor is opened; 0 keeps them until they are closed.
    """

    def __init__(
        self,
        backends: Mapping[EditorScope, ScopeBackend],
        idle_timeout: float = 0,
    ) -> None:
        self._backends = dict(backends)
        self._editors: dict[str, EditorHandle] = {}
        self._idle_timeout = idle_timeout

    def backend(self, scope: EditorScope | str) -> ScopeBackend:
        try:
            return self._backends[EditorScope(scope)]
        except ValueError:
            raise ValidationError(f"Unknown editor scope: {scope}") from None
        except KeyError:
            raise ValidationError(f"Editor scope not configured: {scope}") from None

    async def open(self, scope: EditorScope | str, owner_id: str) -> EditorHandle:
        """Load a session for owner_id; raises LoadError without registering on failure."""
        backend = self.backend(scope)
        self.evict_idle()
        session = await backend.open_editor.execute(owner_id)
        handle = EditorHandle(
            id=str(uuid4()),
            scope=EditorScope(scope),
            session=session,
            selection=EditorSelection(session),
        )
        self._editors[handle.id] = handle
        logger.info(
            "Opened %s editor %s for owner %s",
            handle.scope.value,
            handle.id,
            owner_id,
            extra={"editor_id": handle.id, "owner_id": owner_id},
        )
        return handle

    def get(self, editor_id: str) -> EditorHandle:
        try:
            handle = self._editors[editor_id]
        except KeyError:
            raise NotFound("Editor", editor_id) from None
        handle.last_used = datetime.now(UTC)
        return handle

    def close(self, editor_id: str) -> None:
        """Discard and forget a session. In-flight commit calls run to completion."""
        handle = self._editors.pop(editor_id, None)
        if handle is None:
            raise NotFound("Editor", editor_id)
        handle.session.discard()
        logger.info("Closed editor %s", editor_id, extra={"editor_id": editor_id})

    def evict_idle(self) -> list[str]:
        """Close editors idle past the timeout. Editors with a commit in flight stay."""
        if self._idle_timeout <= 0:
            return []
        cutoff = datetime.now(UTC) - timedelta(seconds=self._idle_timeout)
        evicted = [
            h.id
            for h in self._editors.values()
            if h.last_used < cutoff and not h.session.commit_running
        ]
        for editor_id in evicted:
            self.close(editor_id)
        if evicted:
            logger.info("Evicted %d idle editor(s)", len(evicted))
        return evicted

    def discard(self, editor_id: str) -> EditorHandle:
        handle = self.get(editor_id)
        handle.session.discard()
        handle.selection.clear()
        return handle

    async def commit(self, editor_id: str) -> CommitResult:
        handle = self.get(editor_id)
        result = await self.backend(handle.scope).commit_session.execute(handle.session)
        handle.selection.prune()
        return result

    async def attributes(self, editor_id: str, resource_id: str) -> tuple[str, ...]:
        handle = self.get(editor_id)
        return await self.backend(handle.scope).get_attributes.execute(
            handle.session, resource_id
        )

    def __len__(self) -> int:
        return len(self._editors)
