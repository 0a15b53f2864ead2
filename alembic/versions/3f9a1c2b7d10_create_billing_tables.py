"""create billing tables

Revision ID: 3f9a1c2b7d10
Revises:
Create Date: 2026-10-16
"""

from __future__ import annotations

from typing import Sequence, Union

import sqlalchemy as sa

from alembic import op

revision: str = "3f9a1c2b7d10"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "buildings",
        sa.Column("id", sa.String(26), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("address", sa.Text, nullable=False, server_default=""),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.current_timestamp()),
    )

    op.create_table(
        "rooms",
        sa.Column("id", sa.String(26), primary_key=True),
        sa.Column("number", sa.String(32), nullable=False),
        sa.Column("building_id", sa.String(26), sa.ForeignKey("buildings.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.current_timestamp()),
    )

    op.create_table(
        "tenants",
        sa.Column("id", sa.String(26), primary_key=True),
        sa.Column("tenant_code", sa.String(64), nullable=False, unique=True),
        sa.Column("full_name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("phone", sa.String(32), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.current_timestamp()),
    )

    op.create_table(
        "bills",
        sa.Column("id", sa.String(26), primary_key=True),
        sa.Column("tenant_id", sa.String(26), sa.ForeignKey("tenants.id"), nullable=False),
        sa.Column("room_id", sa.String(26), sa.ForeignKey("rooms.id"), nullable=False),
        sa.Column("building_id", sa.String(26), sa.ForeignKey("buildings.id"), nullable=True),
        sa.Column("billing_month", sa.Date, nullable=False),
        sa.Column("total_amount", sa.Integer, nullable=False),
        sa.Column("payment_status", sa.String(32), nullable=False, server_default="Not Paid"),
        sa.Column("payment_method", sa.String(64), nullable=True),
        sa.Column("payment_reference", sa.String(255), nullable=True),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("pdf_key", sa.Text, nullable=True),
        sa.Column("pdf_url", sa.Text, nullable=True),
        sa.Column("notes", sa.Text, nullable=False, server_default=""),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.current_timestamp()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.current_timestamp()),
        sa.UniqueConstraint("tenant_id", "room_id", "billing_month", name="uq_bills_tenant_room_month"),
    )
    op.create_index("ix_bills_billing_month", "bills", ["billing_month"])

    op.create_table(
        "bill_charges",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("bill_id", sa.String(26), sa.ForeignKey("bills.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("amount", sa.Integer, nullable=False),
        sa.Column("sort_order", sa.Integer, nullable=False, server_default="0"),
    )
    op.create_index("ix_bill_charges_bill_id", "bill_charges", ["bill_id"])


def downgrade() -> None:
    op.drop_index("ix_bill_charges_bill_id", table_name="bill_charges")
    op.drop_table("bill_charges")
    op.drop_index("ix_bills_billing_month", table_name="bills")
    op.drop_table("bills")
    op.drop_table("tenants")
    op.drop_table("rooms")
    op.drop_table("buildings")
