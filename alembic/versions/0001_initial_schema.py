"""Initial schema for companies, the audit chain and AI insights."""

from __future__ import annotations
from typing import Union, Sequence

from alembic import op
import sqlalchemy as sa
from gobd_core.models.types import GUID, JSONType, UTCDateTime

# revision identifiers, used by Alembic.
revision: str = "0001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Initial schema for companies, the audit chain and AI insights."""
    op.create_table(
        "companies",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("ai_enabled", sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column("created_at", UTCDateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_companies")),
    )

    op.create_table(
        "audit_logs",
        sa.Column("id", GUID(), nullable=False),
        sa.Column("sequence", sa.BigInteger(), nullable=False),
        sa.Column("action", sa.String(length=120), nullable=False),
        sa.Column("resource_type", sa.String(length=64), nullable=False),
        sa.Column("resource_id", sa.String(length=128), nullable=True),
        sa.Column("actor_type", sa.String(length=16), nullable=False),
        sa.Column("actor_id", sa.Integer(), nullable=True),
        sa.Column("actor_model_version", sa.String(length=64), nullable=True),
        sa.Column("company_id", sa.Integer(), nullable=True),
        sa.Column("event_class", sa.String(length=32), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("old_values", JSONType(), nullable=True),
        sa.Column("new_values", JSONType(), nullable=True),
        sa.Column("request_id", sa.String(length=128), nullable=True),
        sa.Column("ip_address", sa.String(length=64), nullable=True),
        sa.Column("user_agent", sa.String(length=512), nullable=True),
        sa.Column("timestamp", UTCDateTime(), nullable=False),
        sa.Column("hash_version", sa.Integer(), nullable=False),
        sa.Column("hash", sa.String(length=64), nullable=False),
        sa.Column("previous_hash", sa.String(length=64), nullable=True),
        sa.Column("immutable", sa.Boolean(), nullable=False),
        sa.Column("created_at", UTCDateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.CheckConstraint("immutable", name=op.f("ck_audit_logs_immutable")),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_audit_logs")),
    )
    op.create_index("ix_audit_logs_sequence", "audit_logs", ["sequence"], unique=True)
    op.create_index("ix_audit_logs_company_timestamp", "audit_logs", ["company_id", "timestamp"], unique=False)
    op.create_index("ix_audit_logs_resource", "audit_logs", ["resource_type", "resource_id"], unique=False)
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"], unique=False)

    op.create_table(
        "ai_insights",
        sa.Column("id", GUID(), nullable=False),
        sa.Column("company_id", sa.Integer(), nullable=False),
        sa.Column("entity_type", sa.String(length=64), nullable=False),
        sa.Column("entity_id", sa.String(length=128), nullable=False),
        sa.Column("type", sa.String(length=64), nullable=False),
        sa.Column("severity", sa.String(length=16), nullable=False),
        sa.Column("confidence_score", sa.Float(), nullable=False),
        sa.Column("summary", sa.Text(), nullable=False),
        sa.Column("why", sa.Text(), nullable=False),
        sa.Column("legal_context", sa.Text(), nullable=True),
        sa.Column("evidence", JSONType(), nullable=False),
        sa.Column("rule_id", sa.String(length=120), nullable=False),
        sa.Column("model_version", sa.String(length=64), nullable=False),
        sa.Column("feature_flag", sa.String(length=64), nullable=False),
        sa.Column("disclaimer", sa.String(length=255), nullable=False),
        sa.Column("created_at", UTCDateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"], name=op.f("fk_ai_insights_company_id_companies")),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_ai_insights")),
    )
    op.create_index("ix_ai_insights_company_created", "ai_insights", ["company_id", "created_at"], unique=False)
    op.create_index("ix_ai_insights_entity", "ai_insights", ["entity_type", "entity_id"], unique=False)

    decision_ref = sa.Enum(
        "accepted",
        "rejected",
        "overridden",
        name="ai_insight_decision",
        native_enum=False,
    )
    op.create_table(
        "ai_insight_decisions",
        sa.Column("id", GUID(), nullable=False),
        sa.Column("insight_id", GUID(), nullable=False),
        sa.Column("company_id", sa.Integer(), nullable=False),
        sa.Column("actor_user_id", sa.Integer(), nullable=False),
        sa.Column("decision", decision_ref, nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("created_at", UTCDateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.ForeignKeyConstraint(
            ["insight_id"], ["ai_insights.id"], name=op.f("fk_ai_insight_decisions_insight_id_ai_insights")
        ),
        sa.ForeignKeyConstraint(
            ["company_id"], ["companies.id"], name=op.f("fk_ai_insight_decisions_company_id_companies")
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_ai_insight_decisions")),
    )
    op.create_index(
        "ix_ai_insight_decisions_company_created",
        "ai_insight_decisions",
        ["company_id", "created_at"],
        unique=False,
    )
    op.create_index("ix_ai_insight_decisions_insight", "ai_insight_decisions", ["insight_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_ai_insight_decisions_insight", table_name="ai_insight_decisions")
    op.drop_index("ix_ai_insight_decisions_company_created", table_name="ai_insight_decisions")
    op.drop_table("ai_insight_decisions")
    op.drop_index("ix_ai_insights_entity", table_name="ai_insights")
    op.drop_index("ix_ai_insights_company_created", table_name="ai_insights")
    op.drop_table("ai_insights")
    op.drop_index("ix_audit_logs_action", table_name="audit_logs")
    op.drop_index("ix_audit_logs_resource", table_name="audit_logs")
    op.drop_index("ix_audit_logs_company_timestamp", table_name="audit_logs")
    op.drop_index("ix_audit_logs_sequence", table_name="audit_logs")
    op.drop_table("audit_logs")
    op.drop_table("companies")
