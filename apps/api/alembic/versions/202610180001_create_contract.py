"""create contract

Revision ID: 202610180001
Revises:
Create Date: 2026-10-18 00:01:00
"""

from collections.abc import Sequence

from alembic import op
import sqlalchemy as sa


revision: str = "202610180001"
down_revision: str | None = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "contract",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.String(length=2000), nullable=False),
        sa.Column("value", sa.Numeric(18, 2), nullable=False),
        sa.Column("contract_type", sa.String(length=50), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="Draft"),
        sa.Column("external_account_id", sa.String(length=18), nullable=False),
        sa.Column("external_contact_id", sa.String(length=18), nullable=False),
        sa.Column("account_name", sa.String(length=200), nullable=True),
        sa.Column("contact_name", sa.String(length=200), nullable=True),
        sa.Column("contact_email", sa.String(length=200), nullable=True),
        sa.Column("is_validated", sa.Boolean(), nullable=True),
        sa.Column("validation_message", sa.String(length=500), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("signed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("signed_by", sa.String(length=200), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_contract_external_account_id", "contract", ["external_account_id"], unique=False)
    op.create_index("ix_contract_status", "contract", ["status"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_contract_status", table_name="contract")
    op.drop_index("ix_contract_external_account_id", table_name="contract")
    op.drop_table("contract")
