"""
Artifact uploads for registered models.

An upload is two sequential steps: write the bytes to storage, then record
the resulting location on the model row. The row is only touched after
storage succeeded, so a failed upload leaves it exactly as it was.
"""

import base64
import logging
from datetime import datetime, timezone
from io import BytesIO

from fastapi import status
from starlette.concurrency import run_in_threadpool

from apps.api.registry.store import ModelNotFoundError, ModelStore
from db.models.model_registry import ArtifactType
from packages.shared.exceptions import AppException
from packages.shared.storage import FileStorageBackend

logger = logging.getLogger(__name__)


class ArtifactUploadError(AppException):
    """Storage rejected or failed to store an artifact."""

    def __init__(self) -> None:
        super().__init__(
            message="Failed to upload artifact",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )


def build_artifact_key(model_id: str, artifact_type: ArtifactType, file_name: str) -> str:
    """Object key for an artifact: models/{id}/artifacts/{type}/{fileName}."""
    return f"models/{model_id}/artifacts/{ArtifactType(artifact_type).value}/{file_name}"


class ArtifactUploader:
    """Stores model artifacts and links them to their model."""

    def __init__(self, store: ModelStore, storage: FileStorageBackend):
        self.store = store
        self.storage = storage

    async def upload(
        self,
        model_id: str,
        artifact_type: ArtifactType,
        file_name: str,
        content_type: str,
        content_b64: str,
        actor: str,
    ) -> str:
        """
        Upload an artifact and return its location URL.

        Raises:
            ModelNotFoundError: No model with this id
            ArtifactUploadError: Storage failed; the model row is unchanged
        """
        artifact_type = ArtifactType(artifact_type)
        model = await run_in_threadpool(self.store.get_model, model_id)
        if model is None:
            raise ModelNotFoundError(model_id)

        model_id = str(model["id"])
        key = build_artifact_key(model_id, artifact_type, file_name)
        metadata = {
            "modelId": model_id,
            "artifactType": artifact_type.value,
            "uploadedAt": datetime.now(timezone.utc).isoformat(),
        }

        try:
            stored = await self.storage.save(
                key,
                BytesIO(base64.b64decode(content_b64)),
                content_type,
                metadata,
            )
        except Exception as e:
            logger.exception(
                f"Artifact upload to {self.storage.backend_name} failed for {key}: {e}"
            )
            raise ArtifactUploadError() from e

        await run_in_threadpool(
            self.store.set_artifact_path,
            model_id,
            artifact_type,
            stored.location,
            actor,
        )
        logger.info(
            f"Stored {artifact_type.value} artifact for model {model_id} "
            f"({stored.file_size_bytes} bytes, sha256 {stored.sha256_hash[:12]})"
        )
        return stored.location
