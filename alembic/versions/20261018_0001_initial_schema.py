"""initial schema: cells / intake lines / allocations / inventory / transitions / logs

Revision ID: 20261018_0001
Revises:
Create Date: 2026-10-18 09:00:00

"""
from __future__ import annotations

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import JSONB

# revision identifiers, used by Alembic.
revision: str = "20261018_0001"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

MEASURE = sa.Numeric(14, 3)
TS = sa.DateTime(timezone=True)
JSON_PAYLOAD = sa.JSON().with_variant(JSONB(), "postgresql")


def upgrade() -> None:
    op.create_table(
        "warehouses",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(100), nullable=False),
    )

    op.create_table(
        "storage_cells",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "warehouse_id",
            sa.Integer,
            sa.ForeignKey("warehouses.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("row", sa.String(8), nullable=False),
        sa.Column("bay", sa.Integer, nullable=False),
        sa.Column("position", sa.Integer, nullable=False),
        sa.Column("role", sa.String(16), nullable=False, server_default="STANDARD"),
        sa.Column("status", sa.String(16), nullable=False, server_default="AVAILABLE"),
        sa.Column("capacity", MEASURE, nullable=True),
        sa.Column("current_packages", sa.Integer, nullable=False, server_default="0"),
        sa.Column("current_weight", MEASURE, nullable=False, server_default="0"),
        sa.Column("current_volume", MEASURE, nullable=False, server_default="0"),
        sa.UniqueConstraint("warehouse_id", "row", "bay", "position", name="uq_cells_wh_row_bay_pos"),
    )
    op.create_index("ix_storage_cells_warehouse_id", "storage_cells", ["warehouse_id"])
    op.create_index("ix_cells_wh_status_role", "storage_cells", ["warehouse_id", "status", "role"])

    op.create_table(
        "intake_lines",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "warehouse_id",
            sa.Integer,
            sa.ForeignKey("warehouses.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("product_code", sa.String(64), nullable=False),
        sa.Column("lot_series", sa.String(64), nullable=True),
        sa.Column("quantity", sa.Integer, nullable=False),
        sa.Column("packages", sa.Integer, nullable=False),
        sa.Column("weight", MEASURE, nullable=False),
        sa.Column("volume", MEASURE, nullable=False, server_default="0"),
        sa.Column("review_state", sa.String(16), nullable=False, server_default="PENDING"),
        sa.Column("expiry_date", sa.Date, nullable=True),
        sa.Column("entry_date", TS, nullable=True),
    )
    op.create_index("ix_intake_lines_warehouse_id", "intake_lines", ["warehouse_id"])
    op.create_index("ix_intake_lines_product_expiry", "intake_lines", ["product_code", "expiry_date"])

    op.create_table(
        "allocations",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "intake_line_id",
            sa.Integer,
            sa.ForeignKey("intake_lines.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("warehouse_id", sa.Integer, nullable=False),
        sa.Column(
            "cell_id",
            sa.Integer,
            sa.ForeignKey("storage_cells.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("quantity", sa.Integer, nullable=False),
        sa.Column("packages", sa.Integer, nullable=False),
        sa.Column("weight", MEASURE, nullable=False),
        sa.Column("volume", MEASURE, nullable=False, server_default="0"),
        sa.Column("quality_status", sa.String(16), nullable=False, server_default="CUARENTENA"),
        sa.Column("presentation", sa.String(16), nullable=False),
        sa.Column("condition", sa.String(16), nullable=False),
        sa.Column("status_code", sa.Integer, nullable=False),
        sa.Column("observations", sa.Text, nullable=True),
        sa.Column("created_by", sa.String(64), nullable=False),
        sa.Column("updated_by", sa.String(64), nullable=True),
        sa.Column("created_at", TS, nullable=False),
        sa.Column("updated_at", TS, nullable=False),
        sa.Column("version", sa.Integer, nullable=False, server_default="1"),
    )
    op.create_index("ix_allocations_intake_line_id", "allocations", ["intake_line_id"])
    op.create_index("ix_allocations_warehouse_id", "allocations", ["warehouse_id"])
    op.create_index("ix_allocations_cell_id", "allocations", ["cell_id"])
    op.create_index("ix_allocations_status_wh", "allocations", ["quality_status", "warehouse_id"])

    op.create_table(
        "inventory_records",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "allocation_id",
            sa.Integer,
            sa.ForeignKey("allocations.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("intake_line_id", sa.Integer, nullable=False),
        sa.Column("warehouse_id", sa.Integer, nullable=False),
        sa.Column(
            "cell_id",
            sa.Integer,
            sa.ForeignKey("storage_cells.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("quantity", sa.Integer, nullable=False),
        sa.Column("packages", sa.Integer, nullable=False),
        sa.Column("weight", MEASURE, nullable=False),
        sa.Column("volume", MEASURE, nullable=False, server_default="0"),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("quality_status", sa.String(16), nullable=False),
        sa.Column("status_code", sa.Integer, nullable=False),
        sa.Column("created_by", sa.String(64), nullable=False),
        sa.Column("updated_by", sa.String(64), nullable=True),
        sa.Column("created_at", TS, nullable=False),
        sa.Column("updated_at", TS, nullable=False),
    )
    op.create_index("ix_inventory_records_allocation_id", "inventory_records", ["allocation_id"])
    op.create_index("ix_inventory_records_intake_line_id", "inventory_records", ["intake_line_id"])
    op.create_index("ix_inventory_records_warehouse_id", "inventory_records", ["warehouse_id"])
    op.create_index("ix_inventory_records_cell_id", "inventory_records", ["cell_id"])
    op.create_index(
        "ix_inventory_quality_status",
        "inventory_records",
        ["quality_status", "status", "warehouse_id"],
    )

    op.create_table(
        "quality_transitions",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("allocation_id", sa.Integer, nullable=False),
        sa.Column("inventory_id", sa.Integer, nullable=True),
        sa.Column("from_status", sa.String(16), nullable=False),
        sa.Column("to_status", sa.String(16), nullable=False),
        sa.Column("quantity", sa.Integer, nullable=False),
        sa.Column("packages", sa.Integer, nullable=False),
        sa.Column("weight", MEASURE, nullable=False),
        sa.Column("volume", MEASURE, nullable=False, server_default="0"),
        sa.Column("from_cell_id", sa.Integer, nullable=False),
        sa.Column("to_cell_id", sa.Integer, nullable=False),
        sa.Column("reason", sa.Text, nullable=False),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("actor", sa.String(64), nullable=False),
        sa.Column("created_at", TS, nullable=False),
    )
    op.create_index("ix_quality_transitions_allocation_id", "quality_transitions", ["allocation_id"])

    op.create_table(
        "movement_log",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("actor", sa.String(64), nullable=False),
        sa.Column("kind", sa.String(16), nullable=False),
        sa.Column("quantity_delta", sa.Integer, nullable=False, server_default="0"),
        sa.Column("package_delta", sa.Integer, nullable=False, server_default="0"),
        sa.Column("weight_delta", MEASURE, nullable=False, server_default="0"),
        sa.Column("volume_delta", MEASURE, nullable=False, server_default="0"),
        sa.Column("intake_line_id", sa.Integer, nullable=True),
        sa.Column("allocation_id", sa.Integer, nullable=True),
        sa.Column("cell_id", sa.Integer, nullable=True),
        sa.Column("warehouse_id", sa.Integer, nullable=True),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("occurred_at", TS, nullable=False),
    )
    op.create_index("ix_movement_log_allocation", "movement_log", ["allocation_id"])
    op.create_index("ix_movement_log_occurred_at", "movement_log", ["occurred_at"])

    op.create_table(
        "audit_events",
        sa.Column(
            "id",
            sa.BigInteger().with_variant(sa.Integer, "sqlite"),
            primary_key=True,
            autoincrement=True,
        ),
        sa.Column("actor", sa.String(64), nullable=False),
        sa.Column("action", sa.String(64), nullable=False),
        sa.Column("entity_type", sa.String(64), nullable=False),
        sa.Column("entity_id", sa.String(64), nullable=False),
        sa.Column("description", sa.Text, nullable=False),
        sa.Column("old_values", JSON_PAYLOAD, nullable=True),
        sa.Column("new_values", JSON_PAYLOAD, nullable=True),
        sa.Column("metadata", JSON_PAYLOAD, nullable=True),
        sa.Column("created_at", TS, nullable=False),
    )
    op.create_index("ix_audit_events_entity", "audit_events", ["entity_type", "entity_id"])
    op.create_index("ix_audit_events_action_time", "audit_events", ["action", "created_at"])


def downgrade() -> None:
    op.drop_table("audit_events")
    op.drop_table("movement_log")
    op.drop_table("quality_transitions")
    op.drop_table("inventory_records")
    op.drop_table("allocations")
    op.drop_table("intake_lines")
    op.drop_table("storage_cells")
    op.drop_table("warehouses")
