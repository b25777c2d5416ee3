"""Hedge ledger schema baseline

Revision ID: 20261018_01
Revises: None
Create Date: 2026-10-18
"""
# pylint: disable=no-member,invalid-name,wrong-import-order

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "20261018_01"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

_QUANTITY = sa.Numeric(18, 6)
_PRICE = sa.Numeric(18, 6)


def upgrade() -> None:
    """Upgrade schema."""

    op.create_table(
        "hedge_request",
        sa.Column("hedge_request_id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("metal", sa.Text(), nullable=False),
        sa.Column("direction", sa.Text(), nullable=False),
        sa.Column("quantity_mt", _QUANTITY, nullable=False),
        sa.Column("status", sa.Text(), nullable=False),
        sa.Column("source", sa.Text(), nullable=False),
        sa.Column("request_type", sa.Text(), nullable=False),
        sa.Column("reference", sa.Text(), nullable=False),
        sa.Column("created_at_utc", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at_utc", sa.DateTime(timezone=True), nullable=False),
        sa.Column("target_price", _PRICE, nullable=True),
        sa.Column("target_price_currency", sa.Text(), nullable=True),
        sa.Column("order_id", sa.Text(), nullable=True),
        sa.Column("ticket_id", sa.BigInteger(), nullable=True),
        sa.Column("bl_order_id", sa.BigInteger(), nullable=True),
        sa.Column("linked_execution_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("broker_preference", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("delete_reason", sa.Text(), nullable=True),
        sa.Column("row_version", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.CheckConstraint("quantity_mt > 0", name="ck_hedge_request_quantity_positive"),
        sa.CheckConstraint("direction in ('Buy', 'Sell')", name="ck_hedge_request_direction"),
        sa.CheckConstraint(
            "status in ('Draft', 'Pending Approval', 'Approved', 'Executed', 'Rejected', 'Cancelled')",
            name="ck_hedge_request_status",
        ),
        sa.CheckConstraint("source in ('Manual', 'Auto_QP', 'Price_Fix', 'Roll')", name="ck_hedge_request_source"),
        sa.CheckConstraint(
            "request_type in ('open', 'roll', 'fixing_close', 'price_fix')",
            name="ck_hedge_request_request_type",
        ),
        sa.CheckConstraint(
            "reference in ('LME_CASH', 'LME_3M', 'COMEX', 'SHFE', 'OTHER')",
            name="ck_hedge_request_reference",
        ),
        sa.CheckConstraint("target_price IS NULL OR target_price > 0", name="ck_hedge_request_target_price_positive"),
        sa.CheckConstraint(
            "deleted_at IS NULL OR delete_reason IS NOT NULL",
            name="ck_hedge_request_delete_reason_required",
        ),
        sa.CheckConstraint("row_version >= 1", name="ck_hedge_request_row_version"),
    )
    op.create_index("ix_hedge_request_status", "hedge_request", ["status"])
    op.create_index("ix_hedge_request_linked_execution_id", "hedge_request", ["linked_execution_id"])
    op.create_index("ix_hedge_request_created_at_utc", "hedge_request", ["created_at_utc", "hedge_request_id"])

    op.create_table(
        "hedge_execution",
        sa.Column("hedge_execution_id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("metal", sa.Text(), nullable=False),
        sa.Column("direction", sa.Text(), nullable=False),
        sa.Column("quantity_mt", _QUANTITY, nullable=False),
        sa.Column("open_quantity_mt", _QUANTITY, nullable=False),
        sa.Column("executed_price", _PRICE, nullable=False),
        sa.Column("executed_price_currency", sa.Text(), nullable=False),
        sa.Column("execution_date", sa.Date(), nullable=False),
        sa.Column("expiry_date", sa.Date(), nullable=True),
        sa.Column("status", sa.Text(), nullable=False),
        sa.Column("created_at_utc", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at_utc", sa.DateTime(timezone=True), nullable=False),
        sa.Column("broker_name", sa.Text(), nullable=True),
        sa.Column("reference_type", sa.Text(), nullable=True),
        sa.Column("contract_reference", sa.Text(), nullable=True),
        sa.Column("instrument", sa.Text(), nullable=False, server_default=sa.text("'FUTURE'")),
        sa.Column("closed_price", _PRICE, nullable=True),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("pnl_realized", sa.Numeric(20, 6), nullable=False, server_default=sa.text("0")),
        sa.Column(
            "hedge_request_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("hedge_request.hedge_request_id"),
            nullable=True,
        ),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("row_version", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.CheckConstraint("quantity_mt > 0", name="ck_hedge_execution_quantity_positive"),
        sa.CheckConstraint(
            "open_quantity_mt >= 0 AND open_quantity_mt <= quantity_mt",
            name="ck_hedge_execution_open_quantity_bounds",
        ),
        sa.CheckConstraint("executed_price > 0", name="ck_hedge_execution_price_positive"),
        sa.CheckConstraint("direction in ('Buy', 'Sell')", name="ck_hedge_execution_direction"),
        sa.CheckConstraint(
            "status in ('OPEN', 'PARTIALLY_CLOSED', 'CLOSED', 'ROLLED')",
            name="ck_hedge_execution_status",
        ),
        sa.CheckConstraint(
            "(open_quantity_mt = 0) = (closed_price IS NOT NULL AND closed_at IS NOT NULL)",
            name="ck_hedge_execution_closed_fields",
        ),
        sa.CheckConstraint("row_version >= 1", name="ck_hedge_execution_row_version"),
    )
    op.create_index("ix_hedge_execution_status", "hedge_execution", ["status"])
    op.create_index("ix_hedge_execution_metal", "hedge_execution", ["metal"])
    op.create_index("ix_hedge_execution_hedge_request_id", "hedge_execution", ["hedge_request_id"])
    op.create_index(
        "ix_hedge_execution_created_at_utc",
        "hedge_execution",
        ["created_at_utc", "hedge_execution_id"],
    )

    op.create_table(
        "hedge_link",
        sa.Column("hedge_link_id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "hedge_execution_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("hedge_execution.hedge_execution_id"),
            nullable=False,
        ),
        sa.Column("link_id", sa.Text(), nullable=False),
        sa.Column("link_level", sa.Text(), nullable=False),
        sa.Column("allocated_quantity_mt", _QUANTITY, nullable=False),
        sa.Column("side", sa.Text(), nullable=False),
        sa.Column("metal", sa.Text(), nullable=False),
        sa.Column("direction", sa.Text(), nullable=False),
        sa.Column("allocation_type", sa.Text(), nullable=False),
        sa.Column("created_at_utc", sa.DateTime(timezone=True), nullable=False),
        sa.Column("exec_price", _PRICE, nullable=True),
        sa.Column("fixing_price", _PRICE, nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.CheckConstraint("allocated_quantity_mt > 0", name="ck_hedge_link_quantity_positive"),
        sa.CheckConstraint("link_level in ('Order', 'Ticket', 'Bl_order')", name="ck_hedge_link_level"),
        sa.CheckConstraint("side in ('BUY', 'SELL')", name="ck_hedge_link_side"),
        sa.CheckConstraint(
            "allocation_type in ('INITIAL_HEDGE', 'PRICE_FIX', 'ROLL')",
            name="ck_hedge_link_allocation_type",
        ),
    )
    op.create_index("ix_hedge_link_hedge_execution_id", "hedge_link", ["hedge_execution_id"])
    op.create_index("ix_hedge_link_link_id", "hedge_link", ["link_level", "link_id"])

    op.create_table(
        "hedge_roll",
        sa.Column("hedge_roll_id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "close_execution_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("hedge_execution.hedge_execution_id"),
            nullable=False,
        ),
        sa.Column(
            "open_execution_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("hedge_execution.hedge_execution_id"),
            nullable=False,
        ),
        sa.Column("rolled_qty_mt", _QUANTITY, nullable=False),
        sa.Column("roll_date", sa.Date(), nullable=False),
        sa.Column("created_at_utc", sa.DateTime(timezone=True), nullable=False),
        sa.Column("roll_cost", sa.Numeric(20, 6), nullable=True),
        sa.Column("roll_cost_currency", sa.Text(), nullable=True),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.CheckConstraint("rolled_qty_mt > 0", name="ck_hedge_roll_quantity_positive"),
        sa.CheckConstraint("close_execution_id <> open_execution_id", name="ck_hedge_roll_distinct_legs"),
    )
    op.create_index("ix_hedge_roll_close_execution_id", "hedge_roll", ["close_execution_id"])
    op.create_index("ix_hedge_roll_open_execution_id", "hedge_roll", ["open_execution_id"])


def downgrade() -> None:
    """Downgrade schema."""

    op.drop_index("ix_hedge_roll_open_execution_id", table_name="hedge_roll")
    op.drop_index("ix_hedge_roll_close_execution_id", table_name="hedge_roll")
    op.drop_table("hedge_roll")

    op.drop_index("ix_hedge_link_link_id", table_name="hedge_link")
    op.drop_index("ix_hedge_link_hedge_execution_id", table_name="hedge_link")
    op.drop_table("hedge_link")

    op.drop_index("ix_hedge_execution_created_at_utc", table_name="hedge_execution")
    op.drop_index("ix_hedge_execution_hedge_request_id", table_name="hedge_execution")
    op.drop_index("ix_hedge_execution_metal", table_name="hedge_execution")
    op.drop_index("ix_hedge_execution_status", table_name="hedge_execution")
    op.drop_table("hedge_execution")

    op.drop_index("ix_hedge_request_created_at_utc", table_name="hedge_request")
    op.drop_index("ix_hedge_request_linked_execution_id", table_name="hedge_request")
    op.drop_index("ix_hedge_request_status", table_name="hedge_request")
    op.drop_table("hedge_request")
