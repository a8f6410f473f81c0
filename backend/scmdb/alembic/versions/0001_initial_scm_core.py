"""Initial warehouse core: catalog, ledger, documents, audit.

Revision ID: 0001_initial_scm_core
Revises:
Create Date: 2026-10-18 09:00:00.000000
"""

from __future__ import annotations

from typing import Sequence

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


# revision identifiers, used by Alembic.
revision = "0001_initial_scm_core"
down_revision = None
branch_labels = None
depends_on = None


QTY = sa.Numeric(18, 4)
COST = sa.Numeric(18, 4)


def _table_exists(table_name: str) -> bool:
    bind = op.get_bind()
    insp = inspect(bind)
    return bool(insp.has_table(table_name))


def _index_exists(table_name: str, index_name: str) -> bool:
    bind = op.get_bind()
    insp = inspect(bind)
    if not insp.has_table(table_name):
        return False
    idxs = insp.get_indexes(table_name)
    return any(i.get("name") == index_name for i in idxs)


def _create_index(index_name: str, table_name: str, columns: Sequence[str], unique: bool = False) -> None:
    if _table_exists(table_name) and not _index_exists(table_name, index_name):
        op.create_index(index_name, table_name, list(columns), unique=unique)


def _document_columns(default_status: str) -> list:
    return [
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("number", sa.String(length=32), nullable=False, unique=True),
        sa.Column("status", sa.String(length=32), nullable=False, server_default=default_status),
    ]


def _stamp_columns() -> list:
    return [
        sa.Column("created_by_id", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def _line_columns(parent_column: str, parent_table: str) -> list:
    return [
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            parent_column,
            sa.String(length=36),
            sa.ForeignKey(f"{parent_table}.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("line_number", sa.Integer(), nullable=False),
        sa.Column("item_id", sa.Integer(), sa.ForeignKey("items.id", ondelete="RESTRICT"), nullable=False),
    ]


def upgrade() -> None:
    # -------------------------
    # audit + numbering
    # -------------------------
    if not _table_exists("audit_events"):
        op.create_table(
            "audit_events",
            sa.Column("id", sa.String(length=36), primary_key=True),
            sa.Column("entity_type", sa.String(length=64), nullable=False),
            sa.Column("entity_id", sa.String(length=64), nullable=False),
            sa.Column("action", sa.String(length=64), nullable=False),
            sa.Column("actor_id", sa.String(length=64), nullable=True),
            sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("before", sa.JSON(), nullable=True),
            sa.Column("after", sa.JSON(), nullable=True),
            sa.Column("correlation_id", sa.String(length=64), nullable=True),
            sa.Column("metadata", sa.JSON(), nullable=True),
        )
    _create_index("ix_audit_events_entity", "audit_events", ["entity_type", "entity_id"])
    _create_index("ix_audit_events_action", "audit_events", ["action"])
    _create_index("ix_audit_events_actor_id", "audit_events", ["actor_id"])
    _create_index("ix_audit_events_correlation_id", "audit_events", ["correlation_id"])
    _create_index("ix_audit_events_time_desc", "audit_events", [sa.text("occurred_at DESC")])

    if not _table_exists("document_sequences"):
        op.create_table(
            "document_sequences",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("prefix", sa.String(length=16), nullable=False),
            sa.Column("year", sa.Integer(), nullable=False),
            sa.Column("last_value", sa.Integer(), nullable=False, server_default="0"),
            sa.UniqueConstraint("prefix", "year", name="uq_document_sequence_prefix_year"),
        )

    # -------------------------
    # catalog + ledger
    # -------------------------
    if not _table_exists("items"):
        op.create_table(
            "items",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("item_code", sa.String(length=64), nullable=False),
            sa.Column("description", sa.String(length=255), nullable=True),
            sa.Column("uom", sa.String(length=16), nullable=False, server_default="EA"),
            sa.Column("abc_class", sa.String(length=1), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.UniqueConstraint("item_code", name="uq_items_item_code"),
        )

    if not _table_exists("warehouses"):
        op.create_table(
            "warehouses",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("code", sa.String(length=32), nullable=False),
            sa.Column("name", sa.String(length=128), nullable=False),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.UniqueConstraint("code", name="uq_warehouses_code"),
        )

    if not _table_exists("inventory_levels"):
        op.create_table(
            "inventory_levels",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("item_id", sa.Integer(), sa.ForeignKey("items.id", ondelete="RESTRICT"), nullable=False),
            sa.Column("warehouse_id", sa.Integer(), sa.ForeignKey("warehouses.id", ondelete="RESTRICT"), nullable=False),
            sa.Column("qty_on_hand", QTY, nullable=False, server_default="0"),
            sa.Column("qty_reserved", QTY, nullable=False, server_default="0"),
            sa.Column("version", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("last_movement_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("min_level", QTY, nullable=True),
            sa.Column("reorder_point", QTY, nullable=True),
            sa.Column("alert_sent", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.UniqueConstraint("item_id", "warehouse_id", name="uq_inventory_levels_item_warehouse"),
            sa.CheckConstraint("qty_on_hand >= 0", name="ck_inventory_levels_on_hand_non_negative"),
            sa.CheckConstraint("qty_reserved >= 0", name="ck_inventory_levels_reserved_non_negative"),
            sa.CheckConstraint("qty_reserved <= qty_on_hand", name="ck_inventory_levels_reserved_within_on_hand"),
        )
    _create_index("ix_inventory_levels_warehouse", "inventory_levels", ["warehouse_id"])
    _create_index("ix_inventory_levels_item_id", "inventory_levels", ["item_id"])

    if not _table_exists("stock_movements"):
        op.create_table(
            "stock_movements",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("level_id", sa.Integer(), sa.ForeignKey("inventory_levels.id", ondelete="RESTRICT"), nullable=False),
            sa.Column("item_id", sa.Integer(), sa.ForeignKey("items.id", ondelete="RESTRICT"), nullable=False),
            sa.Column("warehouse_id", sa.Integer(), sa.ForeignKey("warehouses.id", ondelete="RESTRICT"), nullable=False),
            sa.Column("movement_type", sa.String(length=16), nullable=False),
            sa.Column("qty_delta", QTY, nullable=False, server_default="0"),
            sa.Column("reserved_delta", QTY, nullable=False, server_default="0"),
            sa.Column("balance_after", QTY, nullable=False),
            sa.Column("reference_type", sa.String(length=32), nullable=True),
            sa.Column("reference_id", sa.String(length=64), nullable=True),
            sa.Column("actor_id", sa.String(length=64), nullable=True),
            sa.Column("notes", sa.Text(), nullable=True),
            sa.Column("total_cost", COST, nullable=True),
            sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
        )
    _create_index("ix_stock_movements_item_warehouse", "stock_movements", ["item_id", "warehouse_id"])
    _create_index("ix_stock_movements_reference", "stock_movements", ["reference_type", "reference_id"])
    _create_index("ix_stock_movements_level_id", "stock_movements", ["level_id"])
    _create_index("ix_stock_movements_movement_type", "stock_movements", ["movement_type"])
    _create_index("ix_stock_movements_occurred_at", "stock_movements", ["occurred_at"])

    if not _table_exists("inventory_lots"):
        op.create_table(
            "inventory_lots",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("lot_number", sa.String(length=32), nullable=False),
            sa.Column("item_id", sa.Integer(), sa.ForeignKey("items.id", ondelete="RESTRICT"), nullable=False),
            sa.Column("warehouse_id", sa.Integer(), sa.ForeignKey("warehouses.id", ondelete="RESTRICT"), nullable=False),
            sa.Column("movement_id", sa.Integer(), sa.ForeignKey("stock_movements.id", ondelete="RESTRICT"), nullable=False),
            sa.Column("qty_received", QTY, nullable=False),
            sa.Column("qty_remaining", QTY, nullable=False),
            sa.Column("unit_cost", COST, nullable=True),
            sa.Column("status", sa.String(length=16), nullable=False, server_default="active"),
            sa.Column("received_at", sa.DateTime(timezone=True), nullable=False),
            sa.UniqueConstraint("lot_number", name="uq_inventory_lots_lot_number"),
            sa.CheckConstraint("qty_remaining >= 0", name="ck_inventory_lots_remaining_non_negative"),
            sa.CheckConstraint("qty_remaining <= qty_received", name="ck_inventory_lots_remaining_within_received"),
        )
    _create_index("ix_inventory_lots_fifo", "inventory_lots", ["item_id", "warehouse_id", "received_at"])
    _create_index("ix_inventory_lots_movement_id", "inventory_lots", ["movement_id"])

    if not _table_exists("lot_consumptions"):
        op.create_table(
            "lot_consumptions",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("lot_id", sa.Integer(), sa.ForeignKey("inventory_lots.id", ondelete="RESTRICT"), nullable=False),
            sa.Column("movement_id", sa.Integer(), sa.ForeignKey("stock_movements.id", ondelete="RESTRICT"), nullable=False),
            sa.Column("quantity", QTY, nullable=False),
            sa.Column("unit_cost", COST, nullable=True),
            sa.Column("consumed_at", sa.DateTime(timezone=True), nullable=False),
        )
    _create_index("ix_lot_consumptions_lot_id", "lot_consumptions", ["lot_id"])
    _create_index("ix_lot_consumptions_movement_id", "lot_consumptions", ["movement_id"])

    # -------------------------
    # surplus (referenced by transfers and returns)
    # -------------------------
    if not _table_exists("surplus_items"):
        op.create_table(
            "surplus_items",
            *_document_columns("identified"),
            sa.Column("item_id", sa.Integer(), sa.ForeignKey("items.id", ondelete="RESTRICT"), nullable=False),
            sa.Column("warehouse_id", sa.Integer(), sa.ForeignKey("warehouses.id", ondelete="RESTRICT"), nullable=False),
            sa.Column("qty", QTY, nullable=False),
            sa.Column("condition", sa.String(length=32), nullable=True),
            sa.Column("estimated_value", sa.Numeric(18, 2), nullable=True),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("disposition", sa.String(length=8), nullable=True),
            sa.Column("target_warehouse_id", sa.Integer(), sa.ForeignKey("warehouses.id", ondelete="RESTRICT"), nullable=True),
            sa.Column("evaluation_notes", sa.Text(), nullable=True),
            sa.Column("evaluated_by_id", sa.String(length=64), nullable=True),
            sa.Column("evaluated_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("ou_head_approved_by_id", sa.String(length=64), nullable=True),
            sa.Column("ou_head_approved_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("scm_approved_by_id", sa.String(length=64), nullable=True),
            sa.Column("scm_approved_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("linked_document_type", sa.String(length=32), nullable=True),
            sa.Column("linked_document_id", sa.String(length=36), nullable=True),
            sa.Column("actioned_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
            *_stamp_columns(),
        )
    _create_index("ix_surplus_items_status", "surplus_items", ["status"])
    _create_index("ix_surplus_items_warehouse_id", "surplus_items", ["warehouse_id"])

    # -------------------------
    # goods receipts
    # -------------------------
    if not _table_exists("goods_receipts"):
        op.create_table(
            "goods_receipts",
            *_document_columns("draft"),
            sa.Column("warehouse_id", sa.Integer(), sa.ForeignKey("warehouses.id", ondelete="RESTRICT"), nullable=False),
            sa.Column("supplier_name", sa.String(length=255), nullable=True),
            sa.Column("po_number", sa.String(length=64), nullable=True),
            sa.Column("delivery_note", sa.String(length=64), nullable=True),
            sa.Column("receive_date", sa.Date(), nullable=True),
            sa.Column("qc_required", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("notes", sa.Text(), nullable=True),
            sa.Column("qc_approved_by_id", sa.String(length=64), nullable=True),
            sa.Column("qc_approved_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("received_by_id", sa.String(length=64), nullable=True),
            sa.Column("received_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("stored_by_id", sa.String(length=64), nullable=True),
            sa.Column("stored_at", sa.DateTime(timezone=True), nullable=True),
            *_stamp_columns(),
        )
    _create_index("ix_goods_receipts_status", "goods_receipts", ["status"])
    _create_index("ix_goods_receipts_po_number", "goods_receipts", ["po_number"])

    if not _table_exists("goods_receipt_lines"):
        op.create_table(
            "goods_receipt_lines",
            *_line_columns("receipt_id", "goods_receipts"),
            sa.Column("qty_received", QTY, nullable=False),
            sa.Column("qty_damaged", QTY, nullable=False, server_default="0"),
            sa.Column("unit_cost", QTY, nullable=True),
            sa.Column("condition", sa.String(length=16), nullable=False, server_default="good"),
        )
    _create_index("ix_goods_receipt_lines_receipt_id", "goods_receipt_lines", ["receipt_id"])

    # -------------------------
    # material issues + gate passes
    # -------------------------
    if not _table_exists("material_issues"):
        op.create_table(
            "material_issues",
            *_document_columns("draft"),
            sa.Column("warehouse_id", sa.Integer(), sa.ForeignKey("warehouses.id", ondelete="RESTRICT"), nullable=False),
            sa.Column("location_of_work", sa.String(length=255), nullable=True),
            sa.Column("purpose", sa.Text(), nullable=True),
            sa.Column("required_date", sa.Date(), nullable=True),
            sa.Column("reservation_status", sa.String(length=8), nullable=False, server_default="none"),
            sa.Column("approved_by_id", sa.String(length=64), nullable=True),
            sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("qc_signed_by_id", sa.String(length=64), nullable=True),
            sa.Column("qc_signed_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("issued_by_id", sa.String(length=64), nullable=True),
            sa.Column("issued_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("gate_pass_id", sa.String(length=36), nullable=True),
            *_stamp_columns(),
        )
    _create_index("ix_material_issues_status", "material_issues", ["status"])
    _create_index("ix_material_issues_gate_pass_id", "material_issues", ["gate_pass_id"])

    if not _table_exists("material_issue_lines"):
        op.create_table(
            "material_issue_lines",
            *_line_columns("issue_id", "material_issues"),
            sa.Column("qty_requested", QTY, nullable=False),
            sa.Column("qty_approved", QTY, nullable=True),
            sa.Column("qty_issued", QTY, nullable=True),
            sa.Column("issued_cost", COST, nullable=True),
            sa.Column("notes", sa.String(length=255), nullable=True),
        )
    _create_index("ix_material_issue_lines_issue_id", "material_issue_lines", ["issue_id"])

    if not _table_exists("gate_passes"):
        op.create_table(
            "gate_passes",
            *_document_columns("draft"),
            sa.Column("pass_type", sa.String(length=16), nullable=False, server_default="outbound"),
            sa.Column("warehouse_id", sa.Integer(), sa.ForeignKey("warehouses.id", ondelete="RESTRICT"), nullable=False),
            sa.Column("vehicle_number", sa.String(length=32), nullable=True),
            sa.Column("driver_name", sa.String(length=128), nullable=True),
            sa.Column("destination", sa.String(length=255), nullable=True),
            sa.Column("purpose", sa.Text(), nullable=True),
            sa.Column("issue_date", sa.Date(), nullable=True),
            sa.Column("valid_until", sa.DateTime(timezone=True), nullable=True),
            sa.Column(
                "material_issue_id",
                sa.String(length=36),
                sa.ForeignKey("material_issues.id", ondelete="SET NULL"),
                nullable=True,
            ),
            sa.Column("approved_by_id", sa.String(length=64), nullable=True),
            sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("security_officer", sa.String(length=128), nullable=True),
            sa.Column("exit_time", sa.DateTime(timezone=True), nullable=True),
            sa.Column("return_time", sa.DateTime(timezone=True), nullable=True),
            *_stamp_columns(),
        )
    _create_index("ix_gate_passes_status", "gate_passes", ["status"])
    _create_index("ix_gate_passes_material_issue_id", "gate_passes", ["material_issue_id"])

    if not _table_exists("gate_pass_items"):
        op.create_table(
            "gate_pass_items",
            *_line_columns("gate_pass_id", "gate_passes"),
            sa.Column("quantity", QTY, nullable=False),
            sa.Column("description", sa.String(length=255), nullable=True),
        )
    _create_index("ix_gate_pass_items_gate_pass_id", "gate_pass_items", ["gate_pass_id"])

    # -------------------------
    # material returns + stock transfers
    # -------------------------
    if not _table_exists("material_returns"):
        op.create_table(
            "material_returns",
            *_document_columns("draft"),
            sa.Column("return_type", sa.String(length=32), nullable=False, server_default="return_to_store"),
            sa.Column("from_warehouse_id", sa.Integer(), sa.ForeignKey("warehouses.id", ondelete="RESTRICT"), nullable=True),
            sa.Column("to_warehouse_id", sa.Integer(), sa.ForeignKey("warehouses.id", ondelete="RESTRICT"), nullable=False),
            sa.Column("return_date", sa.Date(), nullable=True),
            sa.Column("reason", sa.Text(), nullable=True),
            sa.Column(
                "source_surplus_id",
                sa.String(length=36),
                sa.ForeignKey("surplus_items.id", ondelete="SET NULL"),
                nullable=True,
            ),
            sa.Column("received_by_id", sa.String(length=64), nullable=True),
            sa.Column("received_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
            *_stamp_columns(),
        )
    _create_index("ix_material_returns_status", "material_returns", ["status"])
    _create_index("ix_material_returns_source_surplus_id", "material_returns", ["source_surplus_id"])

    if not _table_exists("material_return_lines"):
        op.create_table(
            "material_return_lines",
            *_line_columns("return_id", "material_returns"),
            sa.Column("qty_returned", QTY, nullable=False),
            sa.Column("condition", sa.String(length=8), nullable=False, server_default="good"),
            sa.Column("notes", sa.Text(), nullable=True),
        )
    _create_index("ix_material_return_lines_return_id", "material_return_lines", ["return_id"])

    if not _table_exists("stock_transfers"):
        op.create_table(
            "stock_transfers",
            *_document_columns("draft"),
            sa.Column("transfer_type", sa.String(length=32), nullable=False, server_default="warehouse_to_warehouse"),
            sa.Column("from_warehouse_id", sa.Integer(), sa.ForeignKey("warehouses.id", ondelete="RESTRICT"), nullable=False),
            sa.Column("to_warehouse_id", sa.Integer(), sa.ForeignKey("warehouses.id", ondelete="RESTRICT"), nullable=False),
            sa.Column("transfer_date", sa.Date(), nullable=True),
            sa.Column("notes", sa.Text(), nullable=True),
            sa.Column(
                "source_surplus_id",
                sa.String(length=36),
                sa.ForeignKey("surplus_items.id", ondelete="SET NULL"),
                nullable=True,
            ),
            sa.Column("approved_by_id", sa.String(length=64), nullable=True),
            sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("shipped_by_id", sa.String(length=64), nullable=True),
            sa.Column("shipped_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("received_by_id", sa.String(length=64), nullable=True),
            sa.Column("received_at", sa.DateTime(timezone=True), nullable=True),
            *_stamp_columns(),
        )
    _create_index("ix_stock_transfers_status", "stock_transfers", ["status"])
    _create_index("ix_stock_transfers_source_surplus_id", "stock_transfers", ["source_surplus_id"])

    if not _table_exists("stock_transfer_lines"):
        op.create_table(
            "stock_transfer_lines",
            *_line_columns("transfer_id", "stock_transfers"),
            sa.Column("quantity", QTY, nullable=False),
            sa.Column("condition", sa.String(length=16), nullable=False, server_default="good"),
            sa.Column("unit_cost", COST, nullable=True),
        )
    _create_index("ix_stock_transfer_lines_transfer_id", "stock_transfer_lines", ["transfer_id"])

    # -------------------------
    # tools
    # -------------------------
    if not _table_exists("tools"):
        op.create_table(
            "tools",
            *_document_columns("good"),
            sa.Column("name", sa.String(length=255), nullable=False),
            sa.Column("category", sa.String(length=64), nullable=True),
            sa.Column("serial_number", sa.String(length=128), nullable=True, unique=True),
            sa.Column("warehouse_id", sa.Integer(), sa.ForeignKey("warehouses.id", ondelete="SET NULL"), nullable=True),
            sa.Column("purchase_date", sa.Date(), nullable=True),
            sa.Column("warranty_expiry", sa.Date(), nullable=True),
            sa.Column("notes", sa.Text(), nullable=True),
            *_stamp_columns(),
        )
    _create_index("ix_tools_status", "tools", ["status"])
    _create_index("ix_tools_category", "tools", ["category"])

    if not _table_exists("tool_issues"):
        op.create_table(
            "tool_issues",
            *_document_columns("issued"),
            sa.Column("tool_id", sa.String(length=36), sa.ForeignKey("tools.id", ondelete="RESTRICT"), nullable=False),
            sa.Column("issued_to_id", sa.String(length=64), nullable=False),
            sa.Column("issued_by_id", sa.String(length=64), nullable=True),
            sa.Column("issued_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("expected_return_date", sa.Date(), nullable=True),
            sa.Column("returned_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("return_condition", sa.String(length=8), nullable=True),
            sa.Column("return_verified_by_id", sa.String(length=64), nullable=True),
            sa.Column("notes", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        )
    _create_index("ix_tool_issues_status", "tool_issues", ["status"])
    _create_index("ix_tool_issues_tool_id", "tool_issues", ["tool_id"])
    _create_index("ix_tool_issues_issued_to_id", "tool_issues", ["issued_to_id"])

    # -------------------------
    # cycle counts
    # -------------------------
    if not _table_exists("cycle_counts"):
        op.create_table(
            "cycle_counts",
            *_document_columns("scheduled"),
            sa.Column("count_type", sa.String(length=16), nullable=False, server_default="full"),
            sa.Column("warehouse_id", sa.Integer(), sa.ForeignKey("warehouses.id", ondelete="RESTRICT"), nullable=False),
            sa.Column("zone", sa.String(length=64), nullable=True),
            sa.Column("scheduled_date", sa.Date(), nullable=True),
            sa.Column("notes", sa.Text(), nullable=True),
            sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("adjustments_applied_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("adjustments_applied_by_id", sa.String(length=64), nullable=True),
            *_stamp_columns(),
        )
    _create_index("ix_cycle_counts_status", "cycle_counts", ["status"])
    _create_index("ix_cycle_counts_warehouse_id", "cycle_counts", ["warehouse_id"])

    if not _table_exists("cycle_count_lines"):
        op.create_table(
            "cycle_count_lines",
            *_line_columns("cycle_count_id", "cycle_counts"),
            sa.Column("expected_qty", QTY, nullable=False, server_default="0"),
            sa.Column("counted_qty", QTY, nullable=True),
            sa.Column("variance_qty", QTY, nullable=True),
            sa.Column("variance_percent", sa.Numeric(9, 2), nullable=True),
            sa.Column("status", sa.String(length=16), nullable=False, server_default="pending"),
            sa.Column("counted_by_id", sa.String(length=64), nullable=True),
            sa.Column("counted_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("notes", sa.String(length=255), nullable=True),
        )
    _create_index("ix_cycle_count_lines_cycle_count_id", "cycle_count_lines", ["cycle_count_id"])


def downgrade() -> None:
    # Children before parents; guarded so a partial upgrade can be rolled back.
    for table_name in (
        "cycle_count_lines",
        "cycle_counts",
        "tool_issues",
        "tools",
        "stock_transfer_lines",
        "stock_transfers",
        "material_return_lines",
        "material_returns",
        "gate_pass_items",
        "gate_passes",
        "material_issue_lines",
        "material_issues",
        "goods_receipt_lines",
        "goods_receipts",
        "surplus_items",
        "lot_consumptions",
        "inventory_lots",
        "stock_movements",
        "inventory_levels",
        "warehouses",
        "items",
        "document_sequences",
        "audit_events",
    ):
        if _table_exists(table_name):
            op.drop_table(table_name)
