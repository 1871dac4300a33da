"""Database models package."""

from db.models.model_registry import (
    ARTIFACT_PATH_COLUMNS,
    ArtifactType,
    MLModel,
    ModelStatus,
    RiskLevel,
)

__all__ = [
    "ARTIFACT_PATH_COLUMNS",
    "ArtifactType",
    "MLModel",
    "ModelStatus",
    "RiskLevel",
]
