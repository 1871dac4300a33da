"""
Model registry routes.

CRUD on the models table, artifact uploads, and the prediction and
retraining stubs.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, Query, status
from starlette.concurrency import run_in_threadpool

from apps.api.auth.dependencies import Caller, require_capability
from apps.api.auth.permissions import Capability
from apps.api.dependencies import get_artifact_uploader, get_model_store
from apps.api.registry.artifacts import ArtifactUploader
from apps.api.registry.schemas import (
    ArtifactUpload,
    ArtifactUploadResponse,
    ModelCreate,
    ModelListResponse,
    ModelResponse,
    ModelUpdate,
    PredictionResponse,
    RetrainResponse,
)
from apps.api.registry.store import ModelNotFoundError, ModelQuery, ModelStore
from db.models.model_registry import ArtifactType, ModelStatus

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/models", tags=["Models"])


def _get_existing(store: ModelStore, model_id: str) -> dict[str, Any]:
    model = store.get_model(model_id)
    if model is None:
        raise ModelNotFoundError(model_id)
    return model


# =============================================================================
# Routes: read (view)
# =============================================================================


@router.get("", response_model=ModelListResponse)
def list_models(
    page: Annotated[int, Query(ge=1, description="Page number")] = 1,
    limit: Annotated[int, Query(ge=1, description="Items per page")] = 20,
    search: Annotated[str | None, Query(description="Name or description substring")] = None,
    algorithm: Annotated[str | None, Query()] = None,
    status_filter: Annotated[ModelStatus | None, Query(alias="status")] = None,
    store: ModelStore = Depends(get_model_store),
    caller: Caller = Depends(require_capability(Capability.VIEW)),
) -> ModelListResponse:
    """List models, newest first, with exact pagination metadata."""
    result = store.list_models(
        ModelQuery(
            page=page,
            limit=limit,
            search=search or None,
            algorithm=algorithm or None,
            status=status_filter.value if status_filter else None,
        )
    )
    return ModelListResponse(
        models=[ModelResponse.model_validate(m) for m in result.models],
        total=result.total,
        page=result.page,
        limit=result.limit,
        total_pages=result.total_pages,
    )


@router.get("/{model_id}", response_model=ModelResponse)
def get_model(
    model_id: str,
    store: ModelStore = Depends(get_model_store),
    caller: Caller = Depends(require_capability(Capability.VIEW)),
) -> ModelResponse:
    return ModelResponse.model_validate(_get_existing(store, model_id))


# =============================================================================
# Routes: write
# =============================================================================


@router.post("", response_model=ModelResponse, status_code=status.HTTP_201_CREATED)
def create_model(
    data: ModelCreate,
    store: ModelStore = Depends(get_model_store),
    caller: Caller = Depends(require_capability(Capability.CREATE)),
) -> ModelResponse:
    """Register a model. Id, timestamps and status default are server-side."""
    return ModelResponse.model_validate(store.create_model(data, caller.username))


@router.put("/{model_id}", response_model=ModelResponse)
def update_model(
    model_id: str,
    data: ModelUpdate,
    store: ModelStore = Depends(get_model_store),
    caller: Caller = Depends(require_capability(Capability.EDIT)),
) -> ModelResponse:
    """Partially update a model. Only supplied, non-null fields change."""
    return ModelResponse.model_validate(
        store.update_model(model_id, data, caller.username)
    )


@router.delete("/{model_id}", response_model=ModelResponse)
def delete_model(
    model_id: str,
    store: ModelStore = Depends(get_model_store),
    caller: Caller = Depends(require_capability(Capability.DELETE)),
) -> ModelResponse:
    """Delete a model and return the removed record."""
    return ModelResponse.model_validate(store.delete_model(model_id))


@router.post("/{model_id}/artifacts/{artifact_type}", response_model=ArtifactUploadResponse)
async def upload_artifact(
    model_id: str,
    artifact_type: ArtifactType,
    data: ArtifactUpload,
    uploader: ArtifactUploader = Depends(get_artifact_uploader),
    caller: Caller = Depends(require_capability(Capability.UPLOAD)),
) -> ArtifactUploadResponse:
    """Store an artifact and record its location on the model."""
    url = await uploader.upload(
        model_id,
        artifact_type,
        data.file_name,
        data.file_type,
        data.content,
        caller.username,
    )
    return ArtifactUploadResponse(url=url)


# =============================================================================
# Routes: stubs
# =============================================================================


@router.post("/{model_id}/predict", response_model=PredictionResponse)
async def predict(
    model_id: str,
    payload: dict[str, Any] | None = Body(default=None),
    store: ModelStore = Depends(get_model_store),
    caller: Caller = Depends(require_capability(Capability.VIEW)),
) -> PredictionResponse:
    """Inference stub: fixed prediction for an existing model."""
    model = await run_in_threadpool(_get_existing, store, model_id)
    return PredictionResponse(
        model_id=model["id"],
        prediction=0.85,
        confidence=0.92,
        timestamp=datetime.now(timezone.utc),
    )


@router.post("/{model_id}/retrain", response_model=RetrainResponse)
async def retrain(
    model_id: str,
    store: ModelStore = Depends(get_model_store),
    caller: Caller = Depends(require_capability(Capability.EDIT)),
) -> RetrainResponse:
    """Retraining stub: acknowledges the request with a new job id."""
    model = await run_in_threadpool(_get_existing, store, model_id)
    job_id = uuid.uuid4()
    logger.info(f"Retraining job {job_id} requested for model {model['id']}")
    return RetrainResponse(
        job_id=job_id,
        status="started",
        message="Model retraining initiated",
    )
