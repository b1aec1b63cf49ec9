"""JSON rendering of editor sessions."""

from typing import Any

from accessdesk.application.editor_registry import EditorHandle
from accessdesk.domain.editor import EditorSession
from accessdesk.domain.entities import Resource


def _pool_item(session: EditorSession, resource: Resource, with_mask: bool) -> dict[str, Any]:
    grant = session.baseline_grant(resource.id)
    item: dict[str, Any] = {
        "id": resource.id,
        "name": resource.name,
        "description": resource.description,
        "grant_id": grant.id if grant else None,
    }
    if with_mask:
        item["pending"] = session.is_pending(resource.id)
        item["mask"] = session.mask_for(resource.id).to_dict()
    else:
        # Baseline grant staged for removal.
        item["pending"] = grant is not None
    return item


def render_editor(handle: EditorHandle) -> dict[str, Any]:
    """Both pools, the locked pool, active resource, selection and state."""
    session = handle.session
    selection = handle.selection
    active = None
    if session.active_resource_id is not None:
        active = {
            "resource_id": session.active_resource_id,
            "locked": session.is_locked(session.active_resource_id),
            "mask": session.active_mask.to_dict(),
        }
    locked = []
    for resource in session.locked_pool:
        grant = session.baseline_grant(resource.id)
        locked.append(
            {
                "id": resource.id,
                "name": resource.name,
                "description": resource.description,
                "grant_id": grant.id,
                "source": grant.source.value,
                "source_name": grant.source_name,
                "mask": grant.mask.to_dict(),
            }
        )
    return {
        "id": handle.id,
        "scope": handle.scope.value,
        "owner_id": session.owner_id,
        "state": session.state.value,
        "has_unsaved_changes": session.has_unsaved_changes(),
        "available": [_pool_item(session, r, with_mask=False) for r in session.available_pool],
        "granted": [_pool_item(session, r, with_mask=True) for r in session.granted_pool],
        "locked": locked,
        "active": active,
        "selection": {
            "mode": selection.mode.value,
            "available": sorted(selection.highlighted_available),
            "granted": sorted(selection.highlighted_granted),
            "focused": selection.focused,
        },
        "repaired": sorted(session.repaired_resources),
        "opened_at": handle.opened_at.isoformat(),
    }
