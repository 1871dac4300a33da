"""
Tests for routing, CORS and the top-level error boundary.

Tests cover:
1. OPTIONS on any path answers the preflight without reaching a route
2. CORS headers on success, 404, 405, 400 and 500 responses
3. Unhandled exceptions become a generic 500
4. The allowed origin follows FRONTEND_URL
"""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from apps.api.main import create_app
from conftest import MODEL_PAYLOAD

CORS_HEADERS = {
    "access-control-allow-origin": "*",
    "access-control-allow-headers": "Content-Type,Authorization",
    "access-control-allow-methods": "GET,POST,PUT,DELETE,OPTIONS",
}


def assert_cors(response, origin: str = "*") -> None:
    expected = {**CORS_HEADERS, "access-control-allow-origin": origin}
    for name, value in expected.items():
        assert response.headers[name] == value


class TestPreflight:
    """OPTIONS requests."""

    @pytest.mark.parametrize("path", ["/models", "/models/abc/artifacts/pkl", "/auth/login", "/nowhere"])
    def test_any_path(self, client: TestClient, path: str) -> None:
        response = client.options(path)

        assert response.status_code == 200
        assert response.json() == {"message": "CORS preflight"}
        assert_cors(response)

    def test_no_token_needed(self, client: TestClient, cognito) -> None:
        assert client.options("/auth/profile").status_code == 200
        cognito.get_user.assert_not_called()


class TestCorsOnResponses:
    """Every response carries the CORS headers."""

    def test_success(self, client: TestClient) -> None:
        response = client.get("/models")

        assert response.status_code == 200
        assert_cors(response)

    def test_unknown_route(self, client: TestClient) -> None:
        response = client.get("/nowhere")

        assert response.status_code == 404
        assert response.json() == {"error": "Not Found"}
        assert_cors(response)

    def test_wrong_method(self, client: TestClient) -> None:
        response = client.patch("/models")

        assert response.status_code == 405
        assert_cors(response)

    def test_validation_error(self, client: TestClient) -> None:
        response = client.post("/models", json={**MODEL_PAYLOAD, "name": "x"})

        assert response.status_code == 400
        assert_cors(response)


class TestErrorBoundary:
    """Unhandled exceptions."""

    @pytest.fixture
    def failing_client(self, app: FastAPI):
        def explode():
            raise RuntimeError("connection string with secrets")

        app.add_api_route("/explode", explode)
        with TestClient(app) as test_client:
            yield test_client

    def test_generic_500(self, failing_client: TestClient) -> None:
        response = failing_client.get("/explode")

        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error"}
        assert "secrets" not in response.text
        assert_cors(response)

    def test_logged_with_traceback(self, failing_client: TestClient, caplog) -> None:
        failing_client.get("/explode")

        records = [r for r in caplog.records if r.name == "apps.api.middleware"]
        assert records
        assert records[0].exc_info is not None


def test_frontend_url_sets_origin(settings, memory_store, storage, identity) -> None:
    settings = settings.model_copy(update={"frontend_url": "https://models.example.com"})
    app = create_app(settings, store=memory_store, storage=storage, identity=identity)

    with TestClient(app) as client:
        assert_cors(client.get("/models"), origin="https://models.example.com")
        assert_cors(client.options("/models"), origin="https://models.example.com")
