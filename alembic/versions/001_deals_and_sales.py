"""Create deals and sales tables.

Revision ID: 001_deals_and_sales
Revises:
Create Date: 2026-10-18

Creates the two tables backing the self-hosted deal store:
- deals: Pipeline deals, ordered within a stage by position
- sales: Completed sales recorded from won deals (notes carry the sync marker)

Composite indexes cover the board fetch (company, stage, position) and the
won-deal sale lookup (user, notes).
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

# revision identifiers, used by Alembic.
revision: str = "001_deals_and_sales"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ── deals table ─────────────────────────────────────────────────────

    op.create_table(
        "deals",
        sa.Column(
            "id",
            UUID(as_uuid=True),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column("company_id", UUID(as_uuid=True), nullable=True),
        sa.Column("user_id", UUID(as_uuid=True), nullable=False),
        sa.Column("title", sa.String(300), nullable=False),
        sa.Column("value", sa.Numeric(14, 2), server_default=sa.text("0")),
        sa.Column("customer_name", sa.String(300), nullable=False),
        sa.Column("customer_email", sa.String(300), nullable=True),
        sa.Column("customer_phone", sa.String(50), nullable=True),
        sa.Column("stage", sa.String(50), server_default=sa.text("'lead'")),
        sa.Column("position", sa.Integer(), server_default=sa.text("0")),
        sa.Column("product_id", UUID(as_uuid=True), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("expected_close_date", sa.Date(), nullable=True),
        sa.Column("probability", sa.Integer(), server_default=sa.text("50")),
        sa.Column("loss_reason", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index(
        "ix_deals_company_stage_position",
        "deals",
        ["company_id", "stage", "position"],
    )

    # ── sales table ─────────────────────────────────────────────────────

    op.create_table(
        "sales",
        sa.Column(
            "id",
            UUID(as_uuid=True),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column("company_id", UUID(as_uuid=True), nullable=True),
        sa.Column("user_id", UUID(as_uuid=True), nullable=False),
        sa.Column("customer_name", sa.String(300), nullable=False),
        sa.Column("product_id", UUID(as_uuid=True), nullable=True),
        sa.Column("product_name", sa.String(300), nullable=False),
        sa.Column("amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("platform", sa.String(100), nullable=True),
        sa.Column("payment_method", sa.String(50), nullable=False),
        sa.Column("status", sa.String(50), server_default=sa.text("'Aprovado'")),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("sale_date", sa.Date(), server_default=sa.func.current_date()),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_sales_user_notes", "sales", ["user_id", "notes"])


def downgrade() -> None:
    op.drop_index("ix_sales_user_notes", table_name="sales")
    op.drop_table("sales")
    op.drop_index("ix_deals_company_stage_position", table_name="deals")
    op.drop_table("deals")
