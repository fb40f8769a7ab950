"""initial_schema

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-18 00:00:00.000000 UTC

Creates:
  - city_tax_data        per-city monthly professional tax (admin-managed)
  - salary_calculations  calculation history; monetary values only inside JSONB
"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "city_tax_data",
        sa.Column("id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column(
            "city",
            sa.String(100),
            nullable=False,
            comment="City name, exact case: e.g. 'Mumbai'",
        ),
        sa.Column("state", sa.String(100), nullable=True),
        sa.Column(
            "professional_tax",
            sa.Numeric(10, 2),
            nullable=False,
            comment="Monthly professional tax in INR",
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_city_tax_data_city", "city_tax_data", ["city"], unique=True)

    op.create_table(
        "salary_calculations",
        sa.Column("id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column(
            "user_id",
            sa.String(64),
            nullable=True,
            comment="Caller-supplied user id (X-User-Id header); NULL for anonymous",
        ),
        sa.Column(
            "city",
            sa.String(100),
            nullable=False,
            comment="Denormalized for analytics without parsing JSONB",
        ),
        sa.Column("request_data", postgresql.JSONB(), nullable=False),
        sa.Column(
            "breakdown_data",
            postgresql.JSONB(),
            nullable=False,
            comment="Full SalaryBreakdown serialized as JSONB",
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_salary_calculations_user_id", "salary_calculations", ["user_id"])
    op.create_index("ix_salary_calculations_created_at", "salary_calculations", ["created_at"])


def downgrade() -> None:
    op.drop_index("ix_salary_calculations_created_at", table_name="salary_calculations")
    op.drop_index("ix_salary_calculations_user_id", table_name="salary_calculations")
    op.drop_table("salary_calculations")
    op.drop_index("ix_city_tax_data_city", table_name="city_tax_data")
    op.drop_table("city_tax_data")
