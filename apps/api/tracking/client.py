"""
MLflow tracking server client.

Only the read side of the REST API is used: experiments, runs and a single
run. Runs can be turned into model registration payloads.
"""

import logging
from typing import Any

import httpx
from fastapi import status

from apps.api.registry.options import (
    ALGORITHM_OPTIONS,
    FUNCTION_OPTIONS,
    MODEL_TYPE_OPTIONS,
    is_valid_option,
)
from apps.api.registry.schemas import ExperimentImport, ModelCreate
from db.models.model_registry import ModelStatus
from packages.shared.exceptions import AppException

logger = logging.getLogger(__name__)

API_PREFIX = "/api/2.0/mlflow"

# MLflow model stage -> registry status
STAGE_TO_STATUS: dict[str, ModelStatus] = {
    "staging": ModelStatus.TESTING,
    "production": ModelStatus.PRODUCTION,
    "archived": ModelStatus.DEPRECATED,
}

# Logged metric key -> model column
METRIC_KEYS: dict[str, str] = {
    "accuracy": "accuracy",
    "precision": "precision",
    "recall": "recall",
    "f1": "f1_score",
    "f1_score": "f1_score",
    "auc": "roc_auc",
    "roc_auc": "roc_auc",
    "mse": "mse",
    "rmse": "rmse",
    "mae": "mae",
    "r2": "r2_score",
    "r2_score": "r2_score",
}

FRACTION_METRICS = {"accuracy", "precision", "recall", "f1_score", "roc_auc"}
ERROR_METRICS = {"mse", "rmse", "mae"}


class TrackingError(AppException):
    """Base tracking server error."""


class TrackingNotFoundError(TrackingError):
    """Experiment or run does not exist on the tracking server."""

    def __init__(self, message: str = "Experiment or run not found") -> None:
        super().__init__(message=message, status_code=status.HTTP_404_NOT_FOUND)


class TrackingServerError(TrackingError):
    """Tracking server unreachable or failing."""

    def __init__(self, message: str = "Experiment tracking server unavailable") -> None:
        super().__init__(
            message=message, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )


class TrackingClient:
    """Async client for the MLflow REST API."""

    def __init__(
        self,
        base_url: str,
        timeout: int = 30,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Args:
            base_url: Tracking server URL, e.g. http://localhost:5000
            timeout: Request timeout in seconds
            transport: Custom transport (tests use httpx.MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self._timeout),
                headers={"Accept": "application/json"},
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _request(
        self,
        method: str,
        endpoint: str,
        *,
        params: dict | None = None,
        json_data: dict | None = None,
    ) -> dict[str, Any]:
        client = self._get_client()
        try:
            response = await client.request(
                method, f"{API_PREFIX}{endpoint}", params=params, json=json_data
            )
        except httpx.HTTPError as e:
            logger.error(f"Tracking server request {method} {endpoint} failed: {e}")
            raise TrackingServerError() from e

        if response.status_code == 404:
            raise TrackingNotFoundError()
        if response.status_code >= 400:
            try:
                body = response.json()
            except ValueError:
                body = {}
            if body.get("error_code") == "RESOURCE_DOES_NOT_EXIST":
                raise TrackingNotFoundError()
            logger.error(
                f"Tracking server returned {response.status_code} for "
                f"{method} {endpoint}: {body.get('message', response.text[:200])}"
            )
            raise TrackingServerError()

        try:
            return response.json()
        except ValueError as e:
            logger.error(f"Tracking server sent a non-JSON body for {endpoint}")
            raise TrackingServerError() from e

    # ==========================================================================
    # API
    # ==========================================================================

    async def search_experiments(self, max_results: int = 100) -> list[dict[str, Any]]:
        data = await self._request(
            "POST", "/experiments/search", json_data={"max_results": max_results}
        )
        return data.get("experiments", [])

    async def search_runs(
        self,
        experiment_id: str,
        max_results: int = 100,
    ) -> list[dict[str, Any]]:
        """Runs of one experiment, newest first."""
        data = await self._request(
            "POST",
            "/runs/search",
            json_data={
                "experiment_ids": [experiment_id],
                "max_results": max_results,
                "order_by": ["attributes.start_time DESC"],
            },
        )
        return data.get("runs", [])

    async def get_run(self, run_id: str) -> dict[str, Any]:
        data = await self._request("GET", "/runs/get", params={"run_id": run_id})
        run = data.get("run")
        if not run:
            raise TrackingNotFoundError()
        return run

    async def latest_run(self, experiment_id: str) -> dict[str, Any]:
        runs = await self.search_runs(experiment_id, max_results=1)
        if not runs:
            raise TrackingNotFoundError(f"No runs found for experiment {experiment_id}")
        return runs[0]


# =============================================================================
# Run -> model mapping
# =============================================================================


def _key_values(items: list[dict[str, Any]] | None) -> dict[str, Any]:
    return {item["key"]: item["value"] for item in items or [] if "key" in item}


def _metric_in_range(column: str, value: float) -> bool:
    if column in FRACTION_METRICS:
        return 0 <= value <= 1
    if column in ERROR_METRICS:
        return value >= 0
    return value <= 1  # r2_score


def run_metrics(run: dict[str, Any]) -> dict[str, float]:
    """Logged metrics that map onto model columns and are in range."""
    metrics: dict[str, float] = {}
    for key, value in _key_values(run.get("data", {}).get("metrics")).items():
        column = METRIC_KEYS.get(key.lower())
        if column is None:
            continue
        try:
            number = float(value)
        except (TypeError, ValueError):
            continue
        if _metric_in_range(column, number):
            metrics[column] = number
    return metrics


def run_to_model_create(
    run: dict[str, Any],
    request: ExperimentImport,
    tracking_uri: str,
) -> ModelCreate:
    """
    Build a registration payload from a tracking run.

    Classification fields come from run params when they hold a known
    option, otherwise fall back to other / classification / python.
    """
    info = run.get("info", {})
    run_id = info.get("run_id") or info.get("run_uuid") or request.run_id or ""
    experiment_id = info.get("experiment_id") or request.experiment_id
    params = _key_values(run.get("data", {}).get("params"))
    tags = _key_values(run.get("data", {}).get("tags"))

    def param_option(key: str, options, fallback: str) -> str:
        value = str(params.get(key, "")).lower()
        return value if is_valid_option(options, value) else fallback

    external_url = None
    if tracking_uri.startswith(("http://", "https://")):
        external_url = f"{tracking_uri.rstrip('/')}/#/experiments/{experiment_id}/runs/{run_id}"

    modeler = tags.get("mlflow.user")
    payload: dict[str, Any] = {
        "name": request.model_name,
        "description": f"Imported from MLflow run {run_id} (experiment {experiment_id})",
        "algorithm": param_option("algorithm", ALGORITHM_OPTIONS, "other"),
        "function": param_option("function", FUNCTION_OPTIONS, "classification"),
        "model_type": param_option("model_type", MODEL_TYPE_OPTIONS, "python"),
        "tool": "mlflow",
        "external_url": external_url,
        "modeler": modeler if modeler and len(modeler) >= 2 else None,
        **run_metrics(run),
    }
    if request.stage:
        payload["status"] = STAGE_TO_STATUS[request.stage]
    return ModelCreate(**payload)
