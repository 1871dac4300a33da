"""
SQLAlchemy table for the model registry.

Tables:
- MLModel: one governed model record (metadata, metrics, artifacts, risk)

Status values are stored as plain strings. Any status may replace any other;
the registry does not enforce a lifecycle.
"""

import uuid
from datetime import date, datetime
from enum import Enum

from sqlalchemy import Boolean, Date, DateTime, Float, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base

# =============================================================================
# Enums
# =============================================================================


class ModelStatus(str, Enum):
    """Lifecycle status of a registered model."""

    DEVELOPMENT = "development"
    TESTING = "testing"
    PRODUCTION = "production"
    DEPRECATED = "deprecated"


class RiskLevel(str, Enum):
    """Risk assessment bucket."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ArtifactType(str, Enum):
    """Categories of files that can be attached to a model."""

    PKL = "pkl"  # Serialized model
    GRAPH = "graph"  # Generic plot
    OTHER = "other"
    SHAP_VALUES = "shap_values"
    METRICS_PLOT = "metrics_plot"
    CONFUSION_MATRIX = "confusion_matrix"


# Column that records the location of each artifact category
ARTIFACT_PATH_COLUMNS: dict[ArtifactType, str] = {
    ArtifactType.PKL: "pkl_path",
    ArtifactType.GRAPH: "graph_path",
    ArtifactType.OTHER: "other_path",
    ArtifactType.SHAP_VALUES: "shap_values_path",
    ArtifactType.METRICS_PLOT: "metrics_plot_path",
    ArtifactType.CONFUSION_MATRIX: "confusion_matrix_path",
}


# =============================================================================
# MLModel
# =============================================================================


class MLModel(Base):
    """
    Registered ML model.

    Identity and timestamps are assigned by the application on insert,
    never by the client.
    """

    __tablename__ = "models"

    # --- Identity ---
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)

    # --- Provenance ---
    created_by: Mapped[str] = mapped_column(String(255), nullable=False)
    modified_by: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    modified_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    # --- Technical classification ---
    algorithm: Mapped[str] = mapped_column(String(50), nullable=False)
    function: Mapped[str] = mapped_column(String(50), nullable=False)
    model_type: Mapped[str] = mapped_column(String(50), nullable=False)
    score_code_type: Mapped[str | None] = mapped_column(String(100))
    train_code_type: Mapped[str | None] = mapped_column(String(100))
    target_level: Mapped[str | None] = mapped_column(String(50))
    tool: Mapped[str | None] = mapped_column(String(100))
    tool_version: Mapped[str | None] = mapped_column(String(50))
    modeler: Mapped[str | None] = mapped_column(String(255))
    external_url: Mapped[str | None] = mapped_column(String(2048))
    model_version_name: Mapped[str | None] = mapped_column(String(50))

    # --- Lifecycle ---
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ModelStatus.DEVELOPMENT.value,
    )

    # --- Performance metrics (classification metrics are fractions in [0, 1]) ---
    accuracy: Mapped[float | None] = mapped_column(Float)
    precision: Mapped[float | None] = mapped_column(Float)
    recall: Mapped[float | None] = mapped_column(Float)
    f1_score: Mapped[float | None] = mapped_column(Float)
    roc_auc: Mapped[float | None] = mapped_column(Float)
    mse: Mapped[float | None] = mapped_column(Float)
    rmse: Mapped[float | None] = mapped_column(Float)
    mae: Mapped[float | None] = mapped_column(Float)
    r2_score: Mapped[float | None] = mapped_column(Float)

    # --- Artifact locations (populated after upload) ---
    pkl_path: Mapped[str | None] = mapped_column(String(2048))
    graph_path: Mapped[str | None] = mapped_column(String(2048))
    other_path: Mapped[str | None] = mapped_column(String(2048))
    shap_values_path: Mapped[str | None] = mapped_column(String(2048))
    metrics_plot_path: Mapped[str | None] = mapped_column(String(2048))
    confusion_matrix_path: Mapped[str | None] = mapped_column(String(2048))

    # --- Business taxonomy ---
    adl_acre: Mapped[str | None] = mapped_column(String(50))
    adl_ares: Mapped[str | None] = mapped_column(String(50))
    adl_arus: Mapped[str | None] = mapped_column(String(50))
    ds_camd: Mapped[str | None] = mapped_column(String(50))
    ds_prmd: Mapped[str | None] = mapped_column(String(50))

    # --- Risk ---
    risk_level: Mapped[str | None] = mapped_column(String(10))
    needs_recalibration: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    last_backtest_date: Mapped[date | None] = mapped_column(Date)
    next_review_date: Mapped[date | None] = mapped_column(Date)

    __table_args__ = (
        Index("ix_models_name", "name"),
        Index("ix_models_status", "status"),
        Index("ix_models_algorithm", "algorithm"),
        Index("ix_models_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<MLModel {self.name} ({self.status})>"
