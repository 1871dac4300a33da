"""Read-only client for an MLflow tracking server and run import mapping."""

from apps.api.tracking.client import (
    TrackingClient,
    TrackingError,
    TrackingNotFoundError,
    TrackingServerError,
    run_to_model_create,
)

__all__ = [
    "TrackingClient",
    "TrackingError",
    "TrackingNotFoundError",
    "TrackingServerError",
    "run_to_model_create",
]
