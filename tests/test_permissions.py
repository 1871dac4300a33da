"""
Tests for role capabilities and route enforcement.

Tests cover:
1. The role -> capability table
2. Routes act as the system user when enforcement is off
3. With enforcement on: 401 without a token, 403 without the capability,
   and the caller recorded as createdBy / modifiedBy
"""

import pytest
from fastapi.testclient import TestClient

from apps.api.auth.permissions import Capability, Role, capabilities_for, has_capability
from apps.api.main import create_app
from conftest import MODEL_PAYLOAD, cognito_error, cognito_user, make_model

AUTH = {"Authorization": "Bearer access-token"}


# =============================================================================
# Table
# =============================================================================


class TestCapabilityTable:
    """Tests for ROLE_CAPABILITIES."""

    def test_admin_has_everything(self):
        assert capabilities_for(Role.ADMIN) == frozenset(Capability)

    def test_editor(self):
        assert has_capability("editor", Capability.CREATE)
        assert has_capability("editor", Capability.UPLOAD)
        assert not has_capability("editor", Capability.DELETE)
        assert not has_capability("editor", Capability.MANAGE_USERS)

    def test_viewer_reads_only(self):
        assert capabilities_for("viewer") == frozenset({Capability.VIEW})

    @pytest.mark.parametrize("role", [None, "", "superuser"])
    def test_unknown_roles_get_nothing(self, role):
        assert capabilities_for(role) == frozenset()
        assert not has_capability(role, Capability.VIEW)


# =============================================================================
# Enforcement
# =============================================================================


@pytest.fixture
def enforcing_client(settings, memory_store, storage, identity):
    settings = settings.model_copy(update={"enforce_permissions": True})
    app = create_app(settings, store=memory_store, storage=storage, identity=identity)
    with TestClient(app) as test_client:
        yield test_client


def test_enforcement_off_acts_as_system(client, cognito):
    response = client.post("/models", json=MODEL_PAYLOAD)

    assert response.status_code == 201
    assert response.json()["createdBy"] == "system"
    cognito.get_user.assert_not_called()


class TestEnforcement:
    """Routes with enforce_permissions=True."""

    def test_missing_token(self, enforcing_client):
        response = enforcing_client.get("/models")

        assert response.status_code == 401
        assert response.json() == {"error": "No access token provided"}

    def test_invalid_token(self, enforcing_client, cognito):
        cognito.get_user.side_effect = cognito_error("NotAuthorizedException")

        assert enforcing_client.get("/models", headers=AUTH).status_code == 401

    def test_viewer_can_list(self, enforcing_client, cognito):
        cognito.get_user.return_value = cognito_user("vera", "viewer")

        assert enforcing_client.get("/models", headers=AUTH).status_code == 200

    def test_viewer_cannot_create(self, enforcing_client, cognito, memory_store):
        cognito.get_user.return_value = cognito_user("vera", "viewer")

        response = enforcing_client.post("/models", json=MODEL_PAYLOAD, headers=AUTH)

        assert response.status_code == 403
        assert response.json() == {"error": "Insufficient permissions: create required"}
        assert enforcing_client.get("/models", headers=AUTH).json()["total"] == 0

    def test_editor_recorded_as_creator(self, enforcing_client, cognito):
        cognito.get_user.return_value = cognito_user("eddie", "editor")

        response = enforcing_client.post("/models", json=MODEL_PAYLOAD, headers=AUTH)

        assert response.status_code == 201
        assert response.json()["createdBy"] == "eddie"
        assert response.json()["modifiedBy"] == "eddie"

    def test_editor_cannot_delete(self, enforcing_client, cognito, memory_store):
        model = make_model(memory_store)
        cognito.get_user.return_value = cognito_user("eddie", "editor")

        response = enforcing_client.delete(f"/models/{model['id']}", headers=AUTH)

        assert response.status_code == 403
        assert memory_store.get_model(str(model["id"])) is not None

    def test_admin_can_delete(self, enforcing_client, cognito, memory_store):
        model = make_model(memory_store)
        cognito.get_user.return_value = cognito_user("root", "admin")

        response = enforcing_client.delete(f"/models/{model['id']}", headers=AUTH)

        assert response.status_code == 200
        assert memory_store.get_model(str(model["id"])) is None

    def test_viewer_cannot_retrain(self, enforcing_client, cognito, memory_store):
        model = make_model(memory_store)
        cognito.get_user.return_value = cognito_user("vera", "viewer")

        response = enforcing_client.post(f"/models/{model['id']}/retrain", headers=AUTH)

        assert response.status_code == 403
