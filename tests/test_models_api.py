"""
Tests for the model registry HTTP API.

Tests cover:
1. Create: server-side id, timestamps and default status
2. Read: single model, 404 for unknown or malformed ids
3. List: pagination metadata, filters, query validation
4. Update/Delete: partial updates, field violations, returned record
5. Prediction and retraining stubs
"""

import uuid

import pytest
from fastapi.testclient import TestClient

from apps.api.main import create_app
from conftest import MODEL_PAYLOAD, make_model


# =============================================================================
# Create
# =============================================================================


class TestCreateModel:
    """Tests for POST /models."""

    def test_create(self, client):
        response = client.post("/models", json=MODEL_PAYLOAD)

        assert response.status_code == 201
        data = response.json()
        uuid.UUID(data["id"])
        assert data["name"] == "M1-v1"
        assert data["modelType"] == "python"
        assert data["status"] == "development"
        assert data["createdAt"] == data["modifiedAt"]
        assert data["createdBy"] == data["modifiedBy"] == "system"
        assert data["needsRecalibration"] is False
        assert data["pklPath"] is None

    def test_client_identity_fields_ignored(self, client):
        forged = {
            **MODEL_PAYLOAD,
            "id": "00000000-0000-0000-0000-000000000000",
            "createdBy": "mallory",
            "createdAt": "2000-01-01T00:00:00Z",
        }

        data = client.post("/models", json=forged).json()

        assert data["id"] != forged["id"]
        assert data["createdBy"] == "system"
        assert not data["createdAt"].startswith("2000")

    def test_missing_required_fields(self, client):
        response = client.post("/models", json={"name": "M1-v1"})

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "Validation failed"
        fields = {v["field"] for v in body["violations"]}
        assert fields == {"description", "algorithm", "function", "modelType"}

    def test_option_value_rejected(self, client):
        response = client.post("/models", json={**MODEL_PAYLOAD, "algorithm": "abacus"})

        assert response.status_code == 400
        assert response.json()["violations"][0]["field"] == "algorithm"

    def test_malformed_json(self, client):
        response = client.post(
            "/models", content=b"{not json", headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 400


# =============================================================================
# Read
# =============================================================================


class TestGetModel:
    """Tests for GET /models/{id}."""

    def test_get(self, client, memory_store):
        model = make_model(memory_store, accuracy=0.93)

        response = client.get(f"/models/{model['id']}")

        assert response.status_code == 200
        assert response.json()["accuracy"] == 0.93
        assert response.json()["createdBy"] == "tester"

    def test_unknown(self, client):
        response = client.get(f"/models/{uuid.uuid4()}")

        assert response.status_code == 404
        assert response.json() == {"error": "Model not found"}

    def test_malformed_id(self, client):
        assert client.get("/models/not-a-uuid").status_code == 404


class TestListModels:
    """Tests for GET /models."""

    def test_pagination_metadata(self, client, memory_store):
        for i in range(25):
            make_model(memory_store, name=f"model-{i}")

        data = client.get("/models", params={"page": 3, "limit": 10}).json()

        assert data["total"] == 25
        assert data["page"] == 3
        assert data["limit"] == 10
        assert data["totalPages"] == 3
        assert len(data["models"]) == 5

    def test_defaults(self, client):
        data = client.get("/models").json()

        assert data == {"models": [], "total": 0, "page": 1, "limit": 20, "totalPages": 0}

    def test_newest_first(self, client, memory_store, clock):
        first = make_model(memory_store, name="first")
        second = make_model(memory_store, name="second")

        ids = [m["id"] for m in client.get("/models").json()["models"]]

        assert ids == [str(second["id"]), str(first["id"])]

    def test_filters(self, client, memory_store):
        make_model(memory_store, name="churn-xgb", algorithm="xgboost")
        make_model(memory_store, name="churn-rf", algorithm="random_forest")
        make_model(memory_store, name="fraud-rf", algorithm="random_forest", status="production")

        by_search = client.get("/models", params={"search": "CHURN"}).json()
        by_algorithm = client.get("/models", params={"algorithm": "random_forest"}).json()
        by_status = client.get("/models", params={"status": "production"}).json()

        assert by_search["total"] == 2
        assert by_algorithm["total"] == 2
        assert [m["name"] for m in by_status["models"]] == ["fraud-rf"]

    def test_invalid_query(self, client):
        response = client.get("/models", params={"page": 0, "limit": 0, "status": "retired"})

        assert response.status_code == 400
        fields = {v["field"] for v in response.json()["violations"]}
        assert fields == {"page", "limit", "status"}

    def test_large_limit(self, client, memory_store):
        for i in range(3):
            make_model(memory_store, name=f"model-{i}")

        response = client.get("/models", params={"limit": 150})

        assert response.status_code == 200
        data = response.json()
        assert data["limit"] == 150
        assert data["totalPages"] == 1
        assert len(data["models"]) == 3

    def test_long_search_term(self, client, memory_store):
        make_model(memory_store, name="churn")

        response = client.get("/models", params={"search": "x" * 300})

        assert response.status_code == 200
        assert response.json()["total"] == 0


class TestListModelsSql:
    """Listing through the SQL store (SQLite)."""

    @pytest.fixture
    def sql_client(self, settings, sql_store, storage, identity):
        app = create_app(settings, store=sql_store, storage=storage, identity=identity)
        with TestClient(app) as test_client:
            yield test_client

    def test_huge_page_is_empty(self, sql_client, sql_store):
        page = 10**17
        make_model(sql_store)

        response = sql_client.get("/models", params={"page": page, "limit": 100})

        assert response.status_code == 200
        data = response.json()
        assert data["models"] == []
        assert data["total"] == 1
        assert data["page"] == page

    def test_large_limit(self, sql_client, sql_store):
        for i in range(3):
            make_model(sql_store, name=f"model-{i}")

        data = sql_client.get("/models", params={"limit": 150}).json()

        assert data["limit"] == 150
        assert data["totalPages"] == 1
        assert len(data["models"]) == 3


# =============================================================================
# Update / Delete
# =============================================================================


class TestUpdateModel:
    """Tests for PUT /models/{id}."""

    def test_partial_update(self, client, memory_store):
        model = make_model(memory_store)

        response = client.put(
            f"/models/{model['id']}",
            json={"status": "production", "accuracy": 0.91, "description": None},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "production"
        assert data["accuracy"] == 0.91
        assert data["description"] == MODEL_PAYLOAD["description"]
        assert data["modifiedBy"] == "system"
        assert data["createdBy"] == "tester"

    def test_out_of_range_metric(self, client, memory_store):
        model = make_model(memory_store)

        response = client.put(f"/models/{model['id']}", json={"accuracy": 1.5})

        assert response.status_code == 400
        assert response.json()["violations"] == [
            {"field": "accuracy", "message": "Accuracy must be between 0 and 1"}
        ]
        assert memory_store.get_model(str(model["id"]))["accuracy"] is None

    def test_no_changes(self, client, memory_store):
        model = make_model(memory_store)

        response = client.put(f"/models/{model['id']}", json={"createdBy": "mallory"})

        assert response.status_code == 400
        assert response.json()["error"] == "No valid fields to update"

    def test_unknown(self, client):
        response = client.put(f"/models/{uuid.uuid4()}", json={"status": "testing"})

        assert response.status_code == 404


class TestDeleteModel:
    """Tests for DELETE /models/{id}."""

    def test_delete_returns_record(self, client, memory_store):
        model = make_model(memory_store)

        response = client.delete(f"/models/{model['id']}")

        assert response.status_code == 200
        assert response.json()["id"] == str(model["id"])
        assert client.get(f"/models/{model['id']}").status_code == 404

    def test_delete_twice(self, client, memory_store):
        model = make_model(memory_store)
        client.delete(f"/models/{model['id']}")

        assert client.delete(f"/models/{model['id']}").status_code == 404


# =============================================================================
# Stubs
# =============================================================================


class TestStubs:
    """Tests for the prediction and retraining stubs."""

    def test_predict(self, client, memory_store):
        model = make_model(memory_store)

        response = client.post(f"/models/{model['id']}/predict", json={"features": [1, 2]})

        assert response.status_code == 200
        data = response.json()
        assert data["modelId"] == str(model["id"])
        assert data["prediction"] == 0.85
        assert data["confidence"] == 0.92
        assert "timestamp" in data

    def test_predict_without_body(self, client, memory_store):
        model = make_model(memory_store)

        assert client.post(f"/models/{model['id']}/predict").status_code == 200

    def test_predict_unknown(self, client):
        assert client.post(f"/models/{uuid.uuid4()}/predict").status_code == 404

    def test_retrain(self, client, memory_store):
        model = make_model(memory_store)

        response = client.post(f"/models/{model['id']}/retrain")

        assert response.status_code == 200
        data = response.json()
        uuid.UUID(data["jobId"])
        assert data["status"] == "started"
        assert data["message"] == "Model retraining initiated"

    def test_retrain_unknown(self, client):
        assert client.post(f"/models/{uuid.uuid4()}/retrain").status_code == 404
