"""Falcon ASGI application."""

import logging

import falcon
import falcon.asgi
from falcon.asgi import App

from accessdesk.application.editor_registry import EditorRegistry
from accessdesk.interfaces.api.middleware.cors import CORSMiddleware
from accessdesk.interfaces.api.middleware.lifespan import LifespanMiddleware
from accessdesk.interfaces.api.resources.editors import (
    AttributesResource,
    CommitResource,
    EditorResource,
    EditorsResource,
)
from accessdesk.interfaces.api.resources.health import HealthResource

logger = logging.getLogger(__name__)


async def _handle_unexpected(req: falcon.asgi.Request, resp: falcon.asgi.Response, ex, params) -> None:
    logger.error("Unhandled error on %s %s", req.method, req.path, exc_info=ex)
    resp.status = falcon.HTTP_500
    resp.media = {"error": "Internal server error"}


def create_app(
    registry: EditorRegistry,
    health_resource: HealthResource | None = None,
    cors_origins: list[str] | None = None,
    lifespan: LifespanMiddleware | None = None,
) -> App:
    """Create Falcon ASGI app with routes."""
    middleware: list = [CORSMiddleware(cors_origins or [])]
    if lifespan is not None:
        middleware.append(lifespan)
    app = falcon.asgi.App(middleware=middleware)
    app.add_error_handler(Exception, _handle_unexpected)

    health = health_resource or HealthResource()
    editor = EditorResource(registry)
    app.add_route("/v1/health", health)
    app.add_route("/v1/health/ready", health, suffix="ready")
    app.add_route("/v1/editors", EditorsResource(registry))
    app.add_route("/v1/editors/{editor_id}", editor)
    for suffix in ("discard", "assign", "unassign", "selection"):
        app.add_route(f"/v1/editors/{{editor_id}}/{suffix}", editor, suffix=suffix)
    app.add_route("/v1/editors/{editor_id}/active", editor, suffix="active")
    app.add_route("/v1/editors/{editor_id}/active/mask", editor, suffix="mask")
    app.add_route("/v1/editors/{editor_id}/commit", CommitResource(registry))
    app.add_route(
        "/v1/editors/{editor_id}/resources/{resource_id}/attributes",
        AttributesResource(registry),
    )
    return app
