"""
Tests for the MLflow tracking client and the experiment routes.

Uses httpx.MockTransport in place of a tracking server.
"""

import json

import httpx
import pytest
from fastapi.testclient import TestClient

from apps.api.main import create_app
from apps.api.registry.schemas import ExperimentImport
from apps.api.tracking import (
    TrackingClient,
    TrackingNotFoundError,
    TrackingServerError,
    run_to_model_create,
)
from apps.api.tracking.client import run_metrics

RUN = {
    "info": {"run_id": "r1", "experiment_id": "7", "status": "FINISHED"},
    "data": {
        "metrics": [
            {"key": "accuracy", "value": 0.91},
            {"key": "f1", "value": 0.88},
            {"key": "AUC", "value": 0.95},
            {"key": "loss", "value": 0.3},
            {"key": "precision", "value": 1.7},
        ],
        "params": [
            {"key": "algorithm", "value": "XGBoost"},
            {"key": "function", "value": "forecasting"},
        ],
        "tags": [{"key": "mlflow.user", "value": "jdoe"}],
    },
}


def mlflow_handler(request: httpx.Request) -> httpx.Response:
    """Minimal tracking server."""
    path = request.url.path
    if path == "/api/2.0/mlflow/experiments/search":
        return httpx.Response(200, json={"experiments": [{"experiment_id": "7", "name": "churn"}]})
    if path == "/api/2.0/mlflow/runs/search":
        body = json.loads(request.content)
        if body["experiment_ids"] == ["7"]:
            return httpx.Response(200, json={"runs": [RUN]})
        return httpx.Response(200, json={})
    if path == "/api/2.0/mlflow/runs/get":
        if request.url.params["run_id"] == "r1":
            return httpx.Response(200, json={"run": RUN})
        return httpx.Response(
            400,
            json={"error_code": "RESOURCE_DOES_NOT_EXIST", "message": "Run 'x' not found"},
        )
    return httpx.Response(404)


@pytest.fixture
def tracking() -> TrackingClient:
    return TrackingClient("http://mlflow:5000/", transport=httpx.MockTransport(mlflow_handler))


# =============================================================================
# Client
# =============================================================================


class TestTrackingClient:
    """Tests for TrackingClient."""

    async def test_search_experiments(self, tracking):
        experiments = await tracking.search_experiments()

        assert experiments == [{"experiment_id": "7", "name": "churn"}]
        await tracking.close()

    async def test_latest_run(self, tracking):
        assert (await tracking.latest_run("7"))["info"]["run_id"] == "r1"

    async def test_latest_run_without_runs(self, tracking):
        with pytest.raises(TrackingNotFoundError, match="No runs found for experiment 8"):
            await tracking.latest_run("8")

    async def test_missing_run(self, tracking):
        with pytest.raises(TrackingNotFoundError):
            await tracking.get_run("x")

    async def test_server_error(self):
        client = TrackingClient(
            "http://mlflow:5000",
            transport=httpx.MockTransport(lambda request: httpx.Response(500, text="boom")),
        )

        with pytest.raises(TrackingServerError):
            await client.search_experiments()

    async def test_unreachable(self):
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = TrackingClient("http://mlflow:5000", transport=httpx.MockTransport(refuse))

        with pytest.raises(TrackingServerError) as exc_info:
            await client.search_runs("7")

        assert exc_info.value.status_code == 500

    async def test_non_json_body(self):
        client = TrackingClient(
            "http://mlflow:5000",
            transport=httpx.MockTransport(lambda request: httpx.Response(200, text="<html>")),
        )

        with pytest.raises(TrackingServerError):
            await client.search_experiments()


# =============================================================================
# Mapping
# =============================================================================


class TestRunMapping:
    """Tests for run_metrics / run_to_model_create."""

    def test_metrics_mapped_and_filtered(self):
        assert run_metrics(RUN) == {"accuracy": 0.91, "f1_score": 0.88, "roc_auc": 0.95}

    def test_payload(self):
        request = ExperimentImport(experimentId="7", modelName="churn-xgb", stage="production")

        payload = run_to_model_create(RUN, request, "http://mlflow:5000/")

        assert payload.name == "churn-xgb"
        assert payload.algorithm == "xgboost"
        assert payload.function == "classification"
        assert payload.model_type == "python"
        assert payload.tool == "mlflow"
        assert payload.modeler == "jdoe"
        assert payload.status == "production"
        assert payload.external_url == "http://mlflow:5000/#/experiments/7/runs/r1"
        assert payload.accuracy == 0.91

    def test_no_external_url_for_local_uri(self):
        request = ExperimentImport(experimentId="7", modelName="churn-xgb")

        payload = run_to_model_create(RUN, request, "file:///tmp/mlruns")

        assert payload.external_url is None
        assert payload.status is None


# =============================================================================
# Routes
# =============================================================================


@pytest.fixture
def mlflow_client(settings, memory_store, storage, identity, tracking):
    settings = settings.model_copy(
        update={"enable_mlflow_integration": True, "mlflow_tracking_uri": "http://mlflow:5000"}
    )
    app = create_app(
        settings, store=memory_store, storage=storage, identity=identity, tracking=tracking
    )
    with TestClient(app) as test_client:
        yield test_client


def test_routes_absent_when_disabled(client):
    assert client.get("/experiments").status_code == 404


class TestExperimentRoutes:
    """Tests for the /experiments and /runs routes."""

    def test_list_experiments(self, mlflow_client):
        response = mlflow_client.get("/experiments")

        assert response.status_code == 200
        assert response.json()["experiments"][0]["name"] == "churn"

    def test_list_runs(self, mlflow_client):
        assert mlflow_client.get("/experiments/7/runs", params={"limit": 5}).json()["runs"] == [RUN]

    def test_get_missing_run(self, mlflow_client):
        response = mlflow_client.get("/runs/x")

        assert response.status_code == 404
        assert response.json() == {"error": "Experiment or run not found"}

    def test_import_latest_run(self, mlflow_client, memory_store):
        response = mlflow_client.post(
            "/experiments/import",
            json={
                "experimentId": "7",
                "modelName": "churn-xgb",
                "s3Path": "s3://models/churn/model.pkl",
                "stage": "staging",
            },
        )

        assert response.status_code == 201
        data = response.json()
        assert data["runId"] == "r1"
        assert data["model"]["status"] == "testing"
        assert data["model"]["pklPath"] == "s3://models/churn/model.pkl"
        stored = memory_store.get_model(data["modelId"])
        assert stored["tool"] == "mlflow"
        assert stored["f1_score"] == 0.88

    def test_import_unknown_run(self, mlflow_client):
        response = mlflow_client.post(
            "/experiments/import",
            json={"experimentId": "7", "runId": "x", "modelName": "churn-xgb"},
        )

        assert response.status_code == 404
