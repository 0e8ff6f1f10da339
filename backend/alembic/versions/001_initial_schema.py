"""Create user_leave_date and company_holiday tables.

Revision ID: 001
Revises:
Create Date: 2026-10-17
"""

from alembic import op
import sqlalchemy as sa

revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "user_leave_date",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("status", sa.String(32), nullable=False),
        sa.Column("created_by", sa.String(255), nullable=False),
        sa.Column("updated_by", sa.String(255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("user_id", "date", name="uq_user_leave_date_user_date"),
    )
    op.create_index("ix_user_leave_date_user_id", "user_leave_date", ["user_id"])
    op.create_index("ix_user_leave_date_date", "user_leave_date", ["date"])

    op.create_table(
        "company_holiday",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("created_by", sa.String(255), nullable=False),
        sa.Column("updated_by", sa.String(255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_company_holiday_date", "company_holiday", ["date"], unique=True)


def downgrade() -> None:
    op.drop_index("ix_company_holiday_date", table_name="company_holiday")
    op.drop_table("company_holiday")
    op.drop_index("ix_user_leave_date_date", table_name="user_leave_date")
    op.drop_index("ix_user_leave_date_user_id", table_name="user_leave_date")
    op.drop_table("user_leave_date")
