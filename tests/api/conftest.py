"""Fixtures for API tests."""

import pytest
from falcon.testing import TestClient

from accessdesk.application.editor_registry import EditorRegistry, ScopeBackend
from accessdesk.application.use_cases.editor.commit_session import CommitSessionUseCase
from accessdesk.application.use_cases.editor.get_attributes import (
    GetResourceAttributesUseCase,
)
from accessdesk.application.use_cases.editor.open_editor import OpenEditorUseCase
from accessdesk.domain.value_objects import EditorScope, GrantSource, PermissionMask
from accessdesk.interfaces.api.app import create_app

from tests.conftest import READ_ONLY, FakeEntitlementStore, FakeResourceCatalog


@pytest.fixture
def registry(catalog: FakeResourceCatalog, store: FakeEntitlementStore) -> EditorRegistry:
    """Registry with permission-set and user table scopes over the same fakes."""
    store.add_grant("user-1", "customers", READ_ONLY, source=GrantSource.PROFILE, grant_id="p-1")
    backend = ScopeBackend(
        open_editor=OpenEditorUseCase(catalog, store, PermissionMask()),
        commit_session=CommitSessionUseCase(store),
        get_attributes=GetResourceAttributesUseCase(catalog),
    )
    return EditorRegistry(
        {
            EditorScope.PERMISSION_SET_TABLES: backend,
            EditorScope.USER_TABLES: backend,
        }
    )


@pytest.fixture
def client(registry: EditorRegistry) -> TestClient:
    return TestClient(create_app(registry, cors_origins=["http://console.test"]))


@pytest.fixture
def editor_id(client: TestClient) -> str:
    """Open permission_set_tables editor for ps-1."""
    result = client.simulate_post(
        "/v1/editors", json={"scope": "permission_set_tables", "owner_id": "ps-1"}
    )
    assert result.status_code == 201
    return result.json["id"]
