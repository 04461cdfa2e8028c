"""Initial generation service schema."""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision = "20261018_01"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "model_configs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("model_id", sa.String(length=128), nullable=False, unique=True),
        sa.Column("provider_name", sa.String(length=64), nullable=False),
        sa.Column("model_type", sa.String(length=16), nullable=False),
        sa.Column("adapter_module", sa.String(length=64), nullable=False),
        sa.Column("api_endpoint", sa.String(length=512), nullable=False),
        sa.Column("api_key_type", sa.String(length=32), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("config_options", sa.JSON(), nullable=False),
        sa.Column("estimated_time_seconds", sa.Integer()),
        sa.Column("cost_per_generation", sa.Numeric(10, 4)),
        sa.Column(
            "is_active", sa.Boolean(), nullable=False, server_default=sa.text("TRUE")
        ),
        *_timestamps(),
    )

    op.create_table(
        "ai_generation_jobs",
        sa.Column("job_id", sa.String(length=64), primary_key=True),
        sa.Column("model_id", sa.String(length=128), nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("organization_id", sa.String(length=64)),
        sa.Column("project_id", sa.String(length=64)),
        sa.Column("prompt", sa.Text(), nullable=False),
        sa.Column("options", sa.JSON(), nullable=False),
        sa.Column("provider_job_id", sa.String(length=128)),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("progress", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("provider_metadata", sa.JSON(), nullable=False),
        sa.Column("result_assets", sa.JSON()),
        sa.Column("error_message", sa.Text()),
        *_timestamps(),
        sa.Column("completed_at", sa.DateTime()),
    )
    op.create_index("ix_ai_generation_jobs_model_id", "ai_generation_jobs", ["model_id"])
    op.create_index("ix_ai_generation_jobs_user_id", "ai_generation_jobs", ["user_id"])
    op.create_index("ix_ai_generation_jobs_status", "ai_generation_jobs", ["status"])

    op.create_table(
        "user_api_keys",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("model_id", sa.String(length=128), nullable=False),
        sa.Column("encrypted_key", sa.LargeBinary(), nullable=False),
        sa.Column("key_nonce", sa.LargeBinary(), nullable=False),
        sa.Column("key_fingerprint", sa.String(length=8), nullable=False, server_default=""),
        sa.Column(
            "is_valid", sa.Boolean(), nullable=False, server_default=sa.text("TRUE")
        ),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "model_id", name="uq_user_api_keys_user_model"),
    )
    op.create_index("ix_user_api_keys_user_id", "user_api_keys", ["user_id"])


def downgrade() -> None:
    op.drop_index("ix_user_api_keys_user_id", table_name="user_api_keys")
    op.drop_table("user_api_keys")
    op.drop_index("ix_ai_generation_jobs_status", table_name="ai_generation_jobs")
    op.drop_index("ix_ai_generation_jobs_user_id", table_name="ai_generation_jobs")
    op.drop_index("ix_ai_generation_jobs_model_id", table_name="ai_generation_jobs")
    op.drop_table("ai_generation_jobs")
    op.drop_table("model_configs")
