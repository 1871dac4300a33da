"""
FastAPI dependencies for application-scoped backends.

Everything here is built once by ``create_app`` and kept on ``app.state``;
handlers never read configuration from the environment themselves.
"""

from fastapi import Depends, Request

from apps.api.auth.service import IdentityProxy
from apps.api.config import Settings
from apps.api.registry.artifacts import ArtifactUploader
from apps.api.registry.store import ModelStore
from apps.api.tracking.client import TrackingClient
from packages.shared.storage import FileStorageBackend


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_model_store(request: Request) -> ModelStore:
    """Yield the configured model store (sql or memory strategy)."""
    return request.app.state.store


def get_storage(request: Request) -> FileStorageBackend:
    return request.app.state.storage


def get_artifact_uploader(
    store: ModelStore = Depends(get_model_store),
    storage: FileStorageBackend = Depends(get_storage),
) -> ArtifactUploader:
    return ArtifactUploader(store, storage)


def get_identity(request: Request) -> IdentityProxy:
    return request.app.state.identity


def get_tracking(request: Request) -> TrackingClient:
    return request.app.state.tracking
