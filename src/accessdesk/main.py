"""Application entry point and composition root."""

import logging

import falcon.asgi

from accessdesk import __version__
from accessdesk.application.editor_registry import EditorRegistry, ScopeBackend
from accessdesk.application.ports import EntitlementStore, ResourceCatalog
from accessdesk.application.use_cases.editor.commit_session import CommitSessionUseCase
from accessdesk.application.use_cases.editor.get_attributes import (
    GetResourceAttributesUseCase,
)
from accessdesk.application.use_cases.editor.open_editor import OpenEditorUseCase
from accessdesk.config import Settings, get_settings
from accessdesk.domain.value_objects import EditorScope, HierarchicalMask
from accessdesk.infrastructure.http.console_api import (
    ConsolePermissionSetTableStore,
    ConsoleTableCatalog,
    create_client,
)
from accessdesk.infrastructure.persistence.postgres.catalog import (
    PostgresFieldCatalog,
    PostgresTableCatalog,
)
from accessdesk.infrastructure.persistence.postgres.connection import (
    check_connection,
    create_pool,
)
from accessdesk.infrastructure.persistence.postgres.field_store import PostgresFieldStore
from accessdesk.infrastructure.persistence.postgres.permission_set_table_store import (
    PostgresPermissionSetTableStore,
)
from accessdesk.infrastructure.persistence.postgres.user_table_store import (
    PostgresUserTableStore,
)
from accessdesk.interfaces.api.app import create_app
from accessdesk.interfaces.api.middleware.lifespan import LifespanMiddleware
from accessdesk.interfaces.api.resources.health import HealthResource
from accessdesk.logging_config import setup_logging

logger = logging.getLogger(__name__)


def build_backend(
    settings: Settings,
    catalog: ResourceCatalog,
    store: EntitlementStore,
    default_mask: HierarchicalMask,
) -> ScopeBackend:
    return ScopeBackend(
        open_editor=OpenEditorUseCase(catalog, store, default_mask),
        commit_session=CommitSessionUseCase(
            store,
            max_concurrency=settings.commit_max_concurrency,
            refresh_after_commit=settings.refresh_after_commit,
        ),
        get_attributes=GetResourceAttributesUseCase(catalog),
    )


def create_accessdesk_app(settings: Settings | None = None) -> falcon.asgi.App:
    """Composition root - build Falcon app with all dependencies.

    The postgres backend serves every editor scope. The http backend only
    serves permission-set tables, the one scope the console API exposes.
    """
    settings = settings or get_settings()
    table_mask = settings.default_permission_mask()

    if settings.store_backend == "http":
        client = create_client(
            settings.store_api_url,
            token=settings.store_api_token,
            timeout=settings.request_timeout,
        )
        backends = {
            EditorScope.PERMISSION_SET_TABLES: build_backend(
                settings,
                ConsoleTableCatalog(client),
                ConsolePermissionSetTableStore(client),
                table_mask,
            ),
        }
        lifespan = LifespanMiddleware(client=client)
        health = HealthResource()
    else:
        pool = create_pool(
            settings.database_url,
            min_size=settings.pool_min_size,
            max_size=settings.pool_max_size,
        )
        tables = PostgresTableCatalog(pool, hidden=settings.hidden_table_set)
        backends = {
            EditorScope.PERMISSION_SET_TABLES: build_backend(
                settings, tables, PostgresPermissionSetTableStore(pool), table_mask
            ),
            EditorScope.PERMISSION_SET_FIELDS: build_backend(
                settings,
                PostgresFieldCatalog(pool),
                PostgresFieldStore(pool),
                settings.default_field_mask(),
            ),
            EditorScope.USER_TABLES: build_backend(
                settings, tables, PostgresUserTableStore(pool), table_mask
            ),
        }
        lifespan = LifespanMiddleware(pool=pool)
        health = HealthResource(lambda: check_connection(pool))

    logger.info(
        "accessdesk %s using %s store for scopes: %s",
        __version__,
        settings.store_backend,
        ", ".join(s.value for s in backends),
    )
    return create_app(
        EditorRegistry(backends, idle_timeout=settings.editor_idle_timeout),
        health_resource=health,
        cors_origins=settings.cors_origin_list,
        lifespan=lifespan,
    )


def run_server(settings: Settings | None = None) -> None:
    """Run uvicorn server."""
    import uvicorn

    settings = settings or get_settings()
    app = create_accessdesk_app(settings)
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)


def main() -> None:
    """CLI entry point."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    run_server(settings)
