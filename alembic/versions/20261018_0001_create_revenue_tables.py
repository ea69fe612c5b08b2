"""create revenue ledger, aggregates, metrics and upload job tables

Revision ID: 20261018_0001
Revises:
Create Date: 2026-10-18 09:00:00
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "20261018_0001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    ]


def _upload_job_fk() -> sa.Column:
    return sa.Column(
        "upload_job_id",
        postgresql.UUID(as_uuid=True),
        sa.ForeignKey(
            "upload_jobs.id",
            ondelete="SET NULL",
        ),
        nullable=True,
    )


def upgrade() -> None:
    op.create_table(
        "upload_jobs",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("company_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("upload_type", sa.String(length=32), nullable=False,
                  comment="spreadsheet, monthly_metrics"),
        sa.Column("file_name", sa.String(length=255), nullable=False),
        sa.Column("file_size", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("rows_processed", sa.Integer(), nullable=False),
        sa.Column(
            "snapshot",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=True,
            comment="Preview records, totals and validation summary",
        ),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_upload_jobs"),
    )
    op.create_index("ix_upload_jobs_company_id", "upload_jobs", ["company_id"], unique=False)
    op.create_index(
        "ix_upload_jobs_company_created_at",
        "upload_jobs",
        ["company_id", "created_at"],
        unique=False,
    )

    op.create_table(
        "revenue_ledger_entries",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("company_id", postgresql.UUID(as_uuid=True), nullable=False),
        _upload_job_fk(),
        sa.Column("customer_id", sa.Text(), nullable=False),
        sa.Column("customer_name", sa.Text(), nullable=False),
        sa.Column("period", sa.String(length=7), nullable=False, comment="Calendar month as YYYY-MM"),
        sa.Column("amount", sa.Numeric(precision=18, scale=4), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_revenue_ledger_entries"),
        sa.UniqueConstraint(
            "company_id",
            "customer_id",
            "period",
            name="uq_revenue_ledger_entries_company_customer_period",
        ),
    )
    op.create_index(
        "ix_revenue_ledger_entries_company_period",
        "revenue_ledger_entries",
        ["company_id", "period"],
        unique=False,
    )

    op.create_table(
        "monthly_revenue_aggregates",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("company_id", postgresql.UUID(as_uuid=True), nullable=False),
        _upload_job_fk(),
        sa.Column("period", sa.String(length=7), nullable=False),
        sa.Column("total_revenue", sa.Numeric(precision=18, scale=4), nullable=False),
        sa.Column("customer_count", sa.Integer(), nullable=False),
        sa.Column("new_revenue", sa.Numeric(precision=18, scale=4), nullable=True),
        sa.Column("expansion_revenue", sa.Numeric(precision=18, scale=4), nullable=True),
        sa.Column("contraction_revenue", sa.Numeric(precision=18, scale=4), nullable=True),
        sa.Column("churned_revenue", sa.Numeric(precision=18, scale=4), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_monthly_revenue_aggregates"),
        sa.UniqueConstraint(
            "company_id",
            "period",
            name="uq_monthly_revenue_aggregates_company_period",
        ),
    )

    op.create_table(
        "computed_monthly_metrics",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("company_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("period", sa.String(length=7), nullable=False),
        sa.Column(
            "metrics",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            comment="MonthlyMetrics payload keyed by camelCase field name",
        ),
        sa.Column(
            "computed_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id", name="pk_computed_monthly_metrics"),
        sa.UniqueConstraint(
            "company_id",
            "period",
            name="uq_computed_monthly_metrics_company_period",
        ),
    )


def downgrade() -> None:
    op.drop_table("computed_monthly_metrics")
    op.drop_table("monthly_revenue_aggregates")
    op.drop_index("ix_revenue_ledger_entries_company_period", table_name="revenue_ledger_entries")
    op.drop_table("revenue_ledger_entries")
    op.drop_index("ix_upload_jobs_company_created_at", table_name="upload_jobs")
    op.drop_index("ix_upload_jobs_company_id", table_name="upload_jobs")
    op.drop_table("upload_jobs")
