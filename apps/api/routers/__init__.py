"""API routers package."""

from apps.api.routers import auth, experiments, health, models, options

__all__ = ["auth", "experiments", "health", "models", "options"]
