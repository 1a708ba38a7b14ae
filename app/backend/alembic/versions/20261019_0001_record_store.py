"""booking and ledger record store

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


booking_mode = postgresql.ENUM("Air", "Sea", "Truck", "Domestic", name="booking_mode", create_type=False)
booking_status = postgresql.ENUM(
    "Created",
    "For Delivery",
    "In Transit",
    "Delivered",
    "Cancelled",
    "Closed",
    name="booking_status",
    create_type=False,
)
entry_type = postgresql.ENUM("revenue", "expense", name="entry_type", create_type=False)


def upgrade() -> None:
    booking_mode.create(op.get_bind(), checkfirst=True)
    booking_status.create(op.get_bind(), checkfirst=True)
    entry_type.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "companies",
        sa.Column("id", sa.String(length=64), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
    )

    op.create_table(
        "clients",
        sa.Column("id", sa.String(length=64), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
    )

    op.create_table(
        "bookings",
        sa.Column("id", sa.String(length=64), primary_key=True, nullable=False),
        sa.Column("client_id", sa.String(length=64), sa.ForeignKey("clients.id"), nullable=False),
        sa.Column("company_id", sa.String(length=64), sa.ForeignKey("companies.id"), nullable=False),
        sa.Column("mode", booking_mode, nullable=False),
        sa.Column("status", booking_status, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("dispatched_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("delivered_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("revenue_amount", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("expense_amount", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.CheckConstraint("revenue_amount >= 0", name="ck_bookings_revenue_non_negative"),
        sa.CheckConstraint("expense_amount >= 0", name="ck_bookings_expense_non_negative"),
        sa.CheckConstraint(
            "status <> 'Delivered' OR delivered_at IS NOT NULL",
            name="ck_bookings_delivered_has_timestamp",
        ),
    )
    op.create_index("ix_bookings_company_id", "bookings", ["company_id"])
    op.create_index("ix_bookings_client_id", "bookings", ["client_id"])
    op.create_index("ix_bookings_created_at", "bookings", ["created_at"])

    op.create_table(
        "ledger_entries",
        sa.Column("id", sa.String(length=64), primary_key=True, nullable=False),
        sa.Column("type", entry_type, nullable=False),
        sa.Column("amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("company_id", sa.String(length=64), sa.ForeignKey("companies.id"), nullable=False),
        sa.Column("booking_id", sa.String(length=64), nullable=True),
        sa.Column("category", sa.String(length=128), nullable=False),
        sa.Column("entry_date", sa.Date(), nullable=False),
        sa.CheckConstraint("amount >= 0", name="ck_ledger_entries_amount_non_negative"),
    )
    op.create_index("ix_ledger_entries_company_id", "ledger_entries", ["company_id"])
    op.create_index("ix_ledger_entries_booking_id", "ledger_entries", ["booking_id"])
    op.create_index("ix_ledger_entries_entry_date", "ledger_entries", ["entry_date"])


def downgrade() -> None:
    op.drop_index("ix_ledger_entries_entry_date", table_name="ledger_entries")
    op.drop_index("ix_ledger_entries_booking_id", table_name="ledger_entries")
    op.drop_index("ix_ledger_entries_company_id", table_name="ledger_entries")
    op.drop_table("ledger_entries")

    op.drop_index("ix_bookings_created_at", table_name="bookings")
    op.drop_index("ix_bookings_client_id", table_name="bookings")
    op.drop_index("ix_bookings_company_id", table_name="bookings")
    op.drop_table("bookings")

    op.drop_table("clients")
    op.drop_table("companies")

    entry_type.drop(op.get_bind(), checkfirst=True)
    booking_status.drop(op.get_bind(), checkfirst=True)
    booking_mode.drop(op.get_bind(), checkfirst=True)
