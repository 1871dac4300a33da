"""
Experiment tracking routes (MLflow).

Mounted only when the MLflow integration is enabled.
"""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, status
from starlette.concurrency import run_in_threadpool

from apps.api.auth.dependencies import Caller, require_capability
from apps.api.auth.permissions import Capability
from apps.api.dependencies import get_app_settings, get_model_store, get_tracking
from apps.api.config import Settings
from apps.api.registry.schemas import ExperimentImport, ExperimentImportResponse, ModelResponse
from apps.api.registry.store import ModelStore
from apps.api.tracking.client import TrackingClient, run_to_model_create
from db.models.model_registry import ArtifactType

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Experiments"])


@router.get("/experiments")
async def list_experiments(
    tracking: TrackingClient = Depends(get_tracking),
    caller: Caller = Depends(require_capability(Capability.VIEW)),
) -> dict[str, list[dict[str, Any]]]:
    return {"experiments": await tracking.search_experiments()}


@router.get("/experiments/{experiment_id}/runs")
async def list_runs(
    experiment_id: str,
    limit: Annotated[int, Query(ge=1, le=1000, description="Maximum runs")] = 100,
    tracking: TrackingClient = Depends(get_tracking),
    caller: Caller = Depends(require_capability(Capability.VIEW)),
) -> dict[str, list[dict[str, Any]]]:
    return {"runs": await tracking.search_runs(experiment_id, max_results=limit)}


@router.get("/runs/{run_id}")
async def get_run(
    run_id: str,
    tracking: TrackingClient = Depends(get_tracking),
    caller: Caller = Depends(require_capability(Capability.VIEW)),
) -> dict[str, Any]:
    return {"run": await tracking.get_run(run_id)}


@router.post(
    "/experiments/import",
    response_model=ExperimentImportResponse,
    status_code=status.HTTP_201_CREATED,
)
async def import_experiment(
    data: ExperimentImport,
    tracking: TrackingClient = Depends(get_tracking),
    store: ModelStore = Depends(get_model_store),
    settings: Settings = Depends(get_app_settings),
    caller: Caller = Depends(require_capability(Capability.REGISTER)),
) -> ExperimentImportResponse:
    """
    Register a tracked run as a model.

    Uses ``runId`` when given, otherwise the experiment's most recent run.
    An ``s3Path`` is recorded as the model's pkl artifact location.
    """
    if data.run_id:
        run = await tracking.get_run(data.run_id)
    else:
        run = await tracking.latest_run(data.experiment_id)
    run_id = run.get("info", {}).get("run_id") or data.run_id or ""

    payload = run_to_model_create(run, data, settings.mlflow_tracking_uri)
    model = await run_in_threadpool(store.create_model, payload, caller.username)
    if data.s3_path:
        model = await run_in_threadpool(
            store.set_artifact_path,
            str(model["id"]),
            ArtifactType.PKL,
            data.s3_path,
            caller.username,
        )

    logger.info(f"Imported run {run_id} of experiment {data.experiment_id} as model {model['id']}")
    return ExperimentImportResponse(
        model_id=model["id"],
        run_id=run_id,
        model=ModelResponse.model_validate(model),
    )
