"""Editor API resources."""

import logging
from typing import Any

import falcon
import falcon.asgi

from accessdesk.application.editor_registry import EditorRegistry
from accessdesk.domain.exceptions import (
    AccessDeskError,
    CommitInProgress,
    HierarchyViolation,
    InvalidSessionState,
    LoadError,
    LockedResource,
    NoActiveResource,
    NotFound,
    StoreError,
    ValidationError,
)
from accessdesk.interfaces.api.presenter import render_editor

logger = logging.getLogger(__name__)

# First match wins; subclasses before their bases.
_STATUS_BY_ERROR: list[tuple[type[AccessDeskError], str]] = [
    (NotFound, falcon.HTTP_404),
    (ValidationError, falcon.HTTP_400),
    (LockedResource, falcon.HTTP_403),
    (HierarchyViolation, falcon.HTTP_409),
    (NoActiveResource, falcon.HTTP_409),
    (CommitInProgress, falcon.HTTP_409),
    (InvalidSessionState, falcon.HTTP_409),
    (LoadError, falcon.HTTP_502),
    (StoreError, falcon.HTTP_502),
]


def _fail(resp: falcon.asgi.Response, error: AccessDeskError) -> None:
    for error_type, status in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            resp.status = status
            break
    else:
        resp.status = falcon.HTTP_500
    resp.media = {"error": str(error)}
    if isinstance(error, HierarchyViolation):
        resp.media.update(flag=error.flag, gate=error.gate)


async def _read_body(req: falcon.asgi.Request) -> dict[str, Any]:
    try:
        body = await req.get_media(default_when_empty={})
    except falcon.MediaMalformedError as e:
        raise ValidationError("Malformed JSON body") from e
    if not isinstance(body, dict):
        raise ValidationError("Body must be a JSON object")
    return body


def _id_list(body: dict[str, Any], key: str) -> list[str] | None:
    """Optional list of string ids; None when the key is absent."""
    if body.get(key) is None:
        return None
    ids = body[key]
    if not isinstance(ids, list) or not all(isinstance(i, str) and i for i in ids):
        raise ValidationError(f"{key} must be a list of ids")
    return ids


def _required_str(body: dict[str, Any], key: str) -> str:
    value = body.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"Missing required field: {key}")
    return value.strip()


class EditorsResource:
    """POST /v1/editors - open an editor session."""

    def __init__(self, registry: EditorRegistry) -> None:
        self._registry = registry

    async def on_post(self, req: falcon.asgi.Request, resp: falcon.asgi.Response) -> None:
        try:
            body = await _read_body(req)
            handle = await self._registry.open(
                _required_str(body, "scope"), _required_str(body, "owner_id")
            )
        except AccessDeskError as e:
            _fail(resp, e)
            return
        resp.media = render_editor(handle)
        resp.status = falcon.HTTP_201


class EditorResource:
    """Session state and staging under /v1/editors/{editor_id}."""

    def __init__(self, registry: EditorRegistry) -> None:
        self._registry = registry

    async def on_get(
        self, req: falcon.asgi.Request, resp: falcon.asgi.Response, editor_id: str
    ) -> None:
        try:
            handle = self._registry.get(editor_id)
        except NotFound as e:
            _fail(resp, e)
            return
        resp.media = render_editor(handle)
        resp.status = falcon.HTTP_200

    async def on_delete(
        self, req: falcon.asgi.Request, resp: falcon.asgi.Response, editor_id: str
    ) -> None:
        """Discard staged changes and close the editor."""
        try:
            self._registry.close(editor_id)
        except NotFound as e:
            _fail(resp, e)
            return
        resp.status = falcon.HTTP_204

    async def on_post_discard(
        self, req: falcon.asgi.Request, resp: falcon.asgi.Response, editor_id: str
    ) -> None:
        try:
            handle = self._registry.discard(editor_id)
        except NotFound as e:
            _fail(resp, e)
            return
        resp.media = render_editor(handle)
        resp.status = falcon.HTTP_200

    async def on_post_assign(
        self, req: falcon.asgi.Request, resp: falcon.asgi.Response, editor_id: str
    ) -> None:
        """Move resources (default: available-side highlights) to the granted pool."""
        try:
            handle = self._registry.get(editor_id)
            body = await _read_body(req)
            moved = handle.selection.move_to_granted(_id_list(body, "resource_ids"))
        except AccessDeskError as e:
            _fail(resp, e)
            return
        resp.media = {"moved": moved, "editor": render_editor(handle)}
        resp.status = falcon.HTTP_200

    async def on_post_unassign(
        self, req: falcon.asgi.Request, resp: falcon.asgi.Response, editor_id: str
    ) -> None:
        """Move grants (default: granted-side highlights) back to the available pool."""
        try:
            handle = self._registry.get(editor_id)
            body = await _read_body(req)
            moved = handle.selection.move_to_available(_id_list(body, "ids"))
        except AccessDeskError as e:
            _fail(resp, e)
            return
        resp.media = {"moved": moved, "editor": render_editor(handle)}
        resp.status = falcon.HTTP_200

    async def on_post_selection(
        self, req: falcon.asgi.Request, resp: falcon.asgi.Response, editor_id: str
    ) -> None:
        try:
            handle = self._registry.get(editor_id)
            body = await _read_body(req)
            highlighted = handle.selection.toggle(
                _required_str(body, "side"), _required_str(body, "resource_id")
            )
        except AccessDeskError as e:
            _fail(resp, e)
            return
        resp.media = {"highlighted": highlighted, "editor": render_editor(handle)}
        resp.status = falcon.HTTP_200

    async def on_put_active(
        self, req: falcon.asgi.Request, resp: falcon.asgi.Response, editor_id: str
    ) -> None:
        """Open a resource for mask editing; null resource_id closes it."""
        try:
            handle = self._registry.get(editor_id)
            body = await _read_body(req)
            resource_id = body.get("resource_id")
            if resource_id is not None and not isinstance(resource_id, str):
                raise ValidationError("resource_id must be a string or null")
            handle.selection.focus(resource_id)
        except AccessDeskError as e:
            _fail(resp, e)
            return
        resp.media = render_editor(handle)
        resp.status = falcon.HTTP_200

    async def on_patch_mask(
        self, req: falcon.asgi.Request, resp: falcon.asgi.Response, editor_id: str
    ) -> None:
        """Set one flag of the active resource's mask."""
        try:
            handle = self._registry.get(editor_id)
            body = await _read_body(req)
            flag = _required_str(body, "flag")
            value = body.get("value")
            if not isinstance(value, bool):
                raise ValidationError("value must be true or false")
            change = handle.session.edit_active_mask(flag, value)
        except AccessDeskError as e:
            _fail(resp, e)
            return
        resp.media = {
            "resource_id": handle.session.active_resource_id,
            "mask": change.mask.to_dict(),
            "cleared": [f.value for f in change.cleared],
            "has_unsaved_changes": handle.session.has_unsaved_changes(),
        }
        resp.status = falcon.HTTP_200


class CommitResource:
    """POST /v1/editors/{editor_id}/commit - reconcile staged changes."""

    def __init__(self, registry: EditorRegistry) -> None:
        self._registry = registry

    async def on_post(
        self, req: falcon.asgi.Request, resp: falcon.asgi.Response, editor_id: str
    ) -> None:
        try:
            handle = self._registry.get(editor_id)
            result = await self._registry.commit(editor_id)
        except AccessDeskError as e:
            _fail(resp, e)
            return
        resp.media = {**result.to_dict(), "editor": render_editor(handle)}
        resp.status = falcon.HTTP_200 if result.ok else falcon.HTTP_207


class AttributesResource:
    """GET /v1/editors/{editor_id}/resources/{resource_id}/attributes."""

    def __init__(self, registry: EditorRegistry) -> None:
        self._registry = registry

    async def on_get(
        self,
        req: falcon.asgi.Request,
        resp: falcon.asgi.Response,
        editor_id: str,
        resource_id: str,
    ) -> None:
        try:
            attributes = await self._registry.attributes(editor_id, resource_id)
        except AccessDeskError as e:
            _fail(resp, e)
            return
        resp.media = {"resource_id": resource_id, "attributes": list(attributes)}
        resp.status = falcon.HTTP_200
