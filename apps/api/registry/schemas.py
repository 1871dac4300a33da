"""
Pydantic schemas for the model registry.

Request schemas double as the form validation layer: every payload is
checked here (lengths, identifier patterns, metric bounds, URLs, option
sets) before it reaches a store, a storage backend or the tracking server.
JSON uses camelCase keys; the business taxonomy fields keep their
upper-case names.
"""

import base64
import binascii
import re
from datetime import date, datetime
from typing import Any, Literal
from urllib.parse import urlparse
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel

from apps.api.registry.options import (
    ADL_ACRE_OPTIONS,
    ADL_ARES_OPTIONS,
    ADL_ARUS_OPTIONS,
    ALGORITHM_OPTIONS,
    DS_CAMD_OPTIONS,
    DS_PRMD_OPTIONS,
    FUNCTION_OPTIONS,
    MODEL_TYPE_OPTIONS,
    TARGET_LEVEL_OPTIONS,
    Option,
    is_valid_option,
    option_values,
)
from db.models.model_registry import ModelStatus, RiskLevel

NAME_PATTERN = re.compile(r"^[a-zA-Z0-9_\-.]+$")
VERSION_PATTERN = re.compile(r"^\d+\.\d+(\.\d+)?$")
S3_PATH_PATTERN = re.compile(r"^s3://[a-z0-9.\-]+/.*")

MAX_ARTIFACT_SIZE_BYTES = 50 * 1024 * 1024
ALLOWED_ARTIFACT_TYPES = (
    "application/octet-stream",
    "image/png",
    "image/jpeg",
    "application/json",
)

# Fields a partial update may touch. Anything else in a payload is ignored.
UPDATABLE_COLUMNS: tuple[str, ...] = (
    "name",
    "description",
    "algorithm",
    "function",
    "model_type",
    "score_code_type",
    "train_code_type",
    "target_level",
    "tool",
    "tool_version",
    "modeler",
    "external_url",
    "model_version_name",
    "status",
    "accuracy",
    "precision",
    "recall",
    "f1_score",
    "roc_auc",
    "mse",
    "rmse",
    "mae",
    "r2_score",
    "adl_acre",
    "adl_ares",
    "adl_arus",
    "ds_camd",
    "ds_prmd",
    "risk_level",
    "needs_recalibration",
    "last_backtest_date",
    "next_review_date",
)

_FRACTION_LABELS = {
    "accuracy": "Accuracy",
    "precision": "Precision",
    "recall": "Recall",
    "f1_score": "F1 Score",
    "roc_auc": "ROC AUC",
}


def _check_option(options: list[Option], value: str | None, label: str) -> str | None:
    if value is None:
        return value
    if not is_valid_option(options, value):
        allowed = ", ".join(option_values(options))
        raise ValueError(f"{label} must be one of: {allowed}")
    return value


def validate_model_name(v: str) -> str:
    """Model names: 3-100 chars of letters, digits, '_', '-' and '.'."""
    if len(v) < 3:
        raise ValueError("Model name must be at least 3 characters")
    if len(v) > 100:
        raise ValueError("Model name must not exceed 100 characters")
    if not NAME_PATTERN.match(v):
        raise ValueError(
            "Model name can only contain letters, numbers, underscores, "
            "hyphens, and dots"
        )
    return v


# =============================================================================
# Request Schemas
# =============================================================================


class ModelFields(BaseModel):
    """Every client-writable model attribute, all optional."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        use_enum_values=True,
        protected_namespaces=(),
    )

    # --- Identity ---
    name: str | None = None
    description: str | None = None

    # --- Technical classification ---
    algorithm: str | None = None
    function: str | None = None
    model_type: str | None = None
    score_code_type: str | None = None
    train_code_type: str | None = None
    target_level: str | None = None
    tool: str | None = None
    tool_version: str | None = None
    modeler: str | None = None
    external_url: str | None = None
    model_version_name: str | None = None

    # --- Lifecycle ---
    status: ModelStatus | None = None

    # --- Metrics ---
    accuracy: float | None = None
    precision: float | None = None
    recall: float | None = None
    f1_score: float | None = None
    roc_auc: float | None = None
    mse: float | None = None
    rmse: float | None = None
    mae: float | None = None
    r2_score: float | None = None

    # --- Business taxonomy ---
    adl_acre: str | None = Field(default=None, alias="ADL_ACRE")
    adl_ares: str | None = Field(default=None, alias="ADL_ARES")
    adl_arus: str | None = Field(default=None, alias="ADL_ARUS")
    ds_camd: str | None = Field(default=None, alias="DS_CAMD")
    ds_prmd: str | None = Field(default=None, alias="DS_PRMD")

    # --- Risk ---
    risk_level: RiskLevel | None = None
    needs_recalibration: bool | None = None
    last_backtest_date: date | None = None
    next_review_date: date | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return validate_model_name(v)

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: str | None) -> str | None:
        if v is None:
            return v
        if len(v) < 10:
            raise ValueError("Description must be at least 10 characters")
        if len(v) > 1000:
            raise ValueError("Description must not exceed 1000 characters")
        return v

    @field_validator("modeler")
    @classmethod
    def validate_modeler(cls, v: str | None) -> str | None:
        if v is not None and len(v) < 2:
            raise ValueError("Modeler name must be at least 2 characters")
        return v

    @field_validator("external_url")
    @classmethod
    def validate_external_url(cls, v: str | None) -> str | None:
        """Empty string means "no URL"."""
        if not v:
            return None
        parsed = urlparse(v)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError("Please enter a valid URL")
        return v

    @field_validator("model_version_name")
    @classmethod
    def validate_version(cls, v: str | None) -> str | None:
        if v is not None and not VERSION_PATTERN.match(v):
            raise ValueError(
                "Version must follow semantic versioning (e.g., 1.0, 1.0.1)"
            )
        return v

    @field_validator("algorithm")
    @classmethod
    def validate_algorithm(cls, v: str | None) -> str | None:
        return _check_option(ALGORITHM_OPTIONS, v, "Algorithm")

    @field_validator("function")
    @classmethod
    def validate_function(cls, v: str | None) -> str | None:
        return _check_option(FUNCTION_OPTIONS, v, "Function")

    @field_validator("model_type")
    @classmethod
    def validate_model_type(cls, v: str | None) -> str | None:
        return _check_option(MODEL_TYPE_OPTIONS, v, "Model type")

    @field_validator("target_level")
    @classmethod
    def validate_target_level(cls, v: str | None) -> str | None:
        return _check_option(TARGET_LEVEL_OPTIONS, v, "Target level")

    @field_validator("adl_acre")
    @classmethod
    def validate_adl_acre(cls, v: str | None) -> str | None:
        return _check_option(ADL_ACRE_OPTIONS, v, "ADL_ACRE")

    @field_validator("adl_ares")
    @classmethod
    def validate_adl_ares(cls, v: str | None) -> str | None:
        return _check_option(ADL_ARES_OPTIONS, v, "ADL_ARES")

    @field_validator("adl_arus")
    @classmethod
    def validate_adl_arus(cls, v: str | None) -> str | None:
        return _check_option(ADL_ARUS_OPTIONS, v, "ADL_ARUS")

    @field_validator("ds_camd")
    @classmethod
    def validate_ds_camd(cls, v: str | None) -> str | None:
        return _check_option(DS_CAMD_OPTIONS, v, "DS_CAMD")

    @field_validator("ds_prmd")
    @classmethod
    def validate_ds_prmd(cls, v: str | None) -> str | None:
        return _check_option(DS_PRMD_OPTIONS, v, "DS_PRMD")

    @field_validator("accuracy", "precision", "recall", "f1_score", "roc_auc")
    @classmethod
    def validate_fraction(cls, v: float | None, info: ValidationInfo) -> float | None:
        if v is not None and not 0 <= v <= 1:
            label = _FRACTION_LABELS[info.field_name]
            raise ValueError(f"{label} must be between 0 and 1")
        return v

    @field_validator("mse", "rmse", "mae")
    @classmethod
    def validate_error_metric(cls, v: float | None, info: ValidationInfo) -> float | None:
        if v is not None and v < 0:
            raise ValueError(f"{info.field_name.upper()} must not be negative")
        return v

    @field_validator("r2_score")
    @classmethod
    def validate_r2(cls, v: float | None) -> float | None:
        if v is not None and v > 1:
            raise ValueError("R2 score must not exceed 1")
        return v


class ModelCreate(ModelFields):
    """Model registration request."""

    name: str
    description: str
    algorithm: str
    function: str
    model_type: str


class ModelUpdate(ModelFields):
    """Partial model update request.

    Only keys present in the payload with a non-null value are applied.
    """

    def changes(self) -> dict[str, Any]:
        """Return the supplied, non-null, updatable fields."""
        supplied = self.model_dump(exclude_unset=True)
        return {
            column: supplied[column]
            for column in UPDATABLE_COLUMNS
            if column in supplied and supplied[column] is not None
        }


class ArtifactUpload(BaseModel):
    """Artifact upload request: a single base64-encoded file."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    file_name: str
    file_type: str
    content: str

    @field_validator("file_name")
    @classmethod
    def validate_file_name(cls, v: str) -> str:
        if not v or len(v) > 255:
            raise ValueError("File name must be 1-255 characters")
        if "/" in v or "\\" in v or v in (".", ".."):
            raise ValueError("File name must not contain path separators")
        return v

    @field_validator("file_type")
    @classmethod
    def validate_file_type(cls, v: str) -> str:
        if v not in ALLOWED_ARTIFACT_TYPES:
            raise ValueError("File type must be PKL, PNG, JPEG, or JSON")
        return v

    @field_validator("content")
    @classmethod
    def validate_content(cls, v: str) -> str:
        # Size from the encoded length, before decoding
        padding = len(v) - len(v.rstrip("="))
        decoded_size = len(v) * 3 // 4 - padding
        if decoded_size > MAX_ARTIFACT_SIZE_BYTES:
            limit_mb = MAX_ARTIFACT_SIZE_BYTES // (1024 * 1024)
            raise ValueError(f"File size must be less than {limit_mb}MB")
        try:
            base64.b64decode(v, validate=True)
        except (binascii.Error, ValueError):
            raise ValueError("Content must be valid base64") from None
        return v


class ExperimentImport(BaseModel):
    """Request to import a tracked experiment run as a model."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        protected_namespaces=(),
    )

    experiment_id: str = Field(min_length=1)
    run_id: str | None = None
    model_name: str
    s3_path: str | None = None
    stage: Literal["staging", "production", "archived"] | None = None

    @field_validator("model_name")
    @classmethod
    def validate_model_name(cls, v: str) -> str:
        return validate_model_name(v)

    @field_validator("s3_path")
    @classmethod
    def validate_s3_path(cls, v: str | None) -> str | None:
        if v and not S3_PATH_PATTERN.match(v):
            raise ValueError("Please enter a valid S3 path (s3://bucket/path)")
        return v or None


# =============================================================================
# Response Schemas
# =============================================================================


class ModelResponse(BaseModel):
    """Full model record."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        protected_namespaces=(),
    )

    id: UUID
    name: str
    description: str
    created_by: str
    modified_by: str
    created_at: datetime
    modified_at: datetime

    algorithm: str
    function: str
    model_type: str
    score_code_type: str | None = None
    train_code_type: str | None = None
    target_level: str | None = None
    tool: str | None = None
    tool_version: str | None = None
    modeler: str | None = None
    external_url: str | None = None
    model_version_name: str | None = None

    status: str

    accuracy: float | None = None
    precision: float | None = None
    recall: float | None = None
    f1_score: float | None = None
    roc_auc: float | None = None
    mse: float | None = None
    rmse: float | None = None
    mae: float | None = None
    r2_score: float | None = None

    pkl_path: str | None = None
    graph_path: str | None = None
    other_path: str | None = None
    shap_values_path: str | None = None
    metrics_plot_path: str | None = None
    confusion_matrix_path: str | None = None

    adl_acre: str | None = Field(default=None, alias="ADL_ACRE")
    adl_ares: str | None = Field(default=None, alias="ADL_ARES")
    adl_arus: str | None = Field(default=None, alias="ADL_ARUS")
    ds_camd: str | None = Field(default=None, alias="DS_CAMD")
    ds_prmd: str | None = Field(default=None, alias="DS_PRMD")

    risk_level: str | None = None
    needs_recalibration: bool = False
    last_backtest_date: date | None = None
    next_review_date: date | None = None


class ModelListResponse(BaseModel):
    """One page of models with exact pagination metadata."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    models: list[ModelResponse]
    total: int
    page: int
    limit: int
    total_pages: int


class ArtifactUploadResponse(BaseModel):
    """Location of a stored artifact."""

    url: str


class PredictionResponse(BaseModel):
    """Inference stub response."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, protected_namespaces=()
    )

    model_id: UUID
    prediction: float
    confidence: float
    timestamp: datetime


class RetrainResponse(BaseModel):
    """Retraining trigger stub response."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    job_id: UUID
    status: str
    message: str


class ExperimentImportResponse(BaseModel):
    """Result of importing a run."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, protected_namespaces=()
    )

    model_id: UUID
    run_id: str
    model: ModelResponse
