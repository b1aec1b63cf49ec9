"""Staged entitlement editing."""

from accessdesk.domain.editor.selection import EditorSelection, PoolSide, SelectionMode
from accessdesk.domain.editor.session import (
    CommitPlan,
    EditorSession,
    PlannedAssign,
    PlannedUnassign,
    PlannedUpdate,
    SessionState,
)

__all__ = [
    "CommitPlan",
    "EditorSelection",
    "EditorSession",
    "PlannedAssign",
    "PlannedUnassign",
    "PlannedUpdate",
    "PoolSide",
    "SelectionMode",
    "SessionState",
]
