"""Create models table

Revision ID: models_001
Revises:
Create Date: 2026-03-01 10:00:00.000000

Tables:
- models: registered models with metadata, metrics, artifact locations,
  business taxonomy and risk fields
"""

from typing import Sequence, Union

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "models_001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "models",
        # Identity
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        # Provenance
        sa.Column("created_by", sa.String(255), nullable=False),
        sa.Column("modified_by", sa.String(255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("modified_at", sa.DateTime(timezone=True), nullable=False),
        # Technical classification
        sa.Column("algorithm", sa.String(50), nullable=False),
        sa.Column("function", sa.String(50), nullable=False),
        sa.Column("model_type", sa.String(50), nullable=False),
        sa.Column("score_code_type", sa.String(100), nullable=True),
        sa.Column("train_code_type", sa.String(100), nullable=True),
        sa.Column("target_level", sa.String(50), nullable=True),
        sa.Column("tool", sa.String(100), nullable=True),
        sa.Column("tool_version", sa.String(50), nullable=True),
        sa.Column("modeler", sa.String(255), nullable=True),
        sa.Column("external_url", sa.String(2048), nullable=True),
        sa.Column("model_version_name", sa.String(50), nullable=True),
        # Lifecycle
        sa.Column("status", sa.String(20), nullable=False, server_default="development"),
        # Metrics
        sa.Column("accuracy", sa.Float(), nullable=True),
        sa.Column("precision", sa.Float(), nullable=True),
        sa.Column("recall", sa.Float(), nullable=True),
        sa.Column("f1_score", sa.Float(), nullable=True),
        sa.Column("roc_auc", sa.Float(), nullable=True),
        sa.Column("mse", sa.Float(), nullable=True),
        sa.Column("rmse", sa.Float(), nullable=True),
        sa.Column("mae", sa.Float(), nullable=True),
        sa.Column("r2_score", sa.Float(), nullable=True),
        # Artifact locations
        sa.Column("pkl_path", sa.String(2048), nullable=True),
        sa.Column("graph_path", sa.String(2048), nullable=True),
        sa.Column("other_path", sa.String(2048), nullable=True),
        sa.Column("shap_values_path", sa.String(2048), nullable=True),
        sa.Column("metrics_plot_path", sa.String(2048), nullable=True),
        sa.Column("confusion_matrix_path", sa.String(2048), nullable=True),
        # Business taxonomy
        sa.Column("adl_acre", sa.String(50), nullable=True),
        sa.Column("adl_ares", sa.String(50), nullable=True),
        sa.Column("adl_arus", sa.String(50), nullable=True),
        sa.Column("ds_camd", sa.String(50), nullable=True),
        sa.Column("ds_prmd", sa.String(50), nullable=True),
        # Risk
        sa.Column("risk_level", sa.String(10), nullable=True),
        sa.Column(
            "needs_recalibration", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        sa.Column("last_backtest_date", sa.Date(), nullable=True),
        sa.Column("next_review_date", sa.Date(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_models_name", "models", ["name"])
    op.create_index("ix_models_status", "models", ["status"])
    op.create_index("ix_models_algorithm", "models", ["algorithm"])
    op.create_index("ix_models_created_at", "models", ["created_at"])


def downgrade() -> None:
    op.drop_index("ix_models_created_at", table_name="models")
    op.drop_index("ix_models_algorithm", table_name="models")
    op.drop_index("ix_models_status", table_name="models")
    op.drop_index("ix_models_name", table_name="models")
    op.drop_table("models")
