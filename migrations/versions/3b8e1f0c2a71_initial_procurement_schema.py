"""initial procurement schema

Revision ID: 3b8e1f0c2a71
Revises:
Create Date: 2026-10-19 09:12:44.318205
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = '3b8e1f0c2a71'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

unit_type = sa.Enum('PCS', 'KG', 'G', 'L', 'ML', 'M', 'BOX', 'CARTON', 'PACK', 'DOZEN', name='unittype')
movement_type = sa.Enum('IN', 'OUT', 'TRANSFER', 'ADJUSTMENT', name='stockmovementtype')
reference_type = sa.Enum('PURCHASE_ORDER', 'SALE_ORDER', 'TRANSFER', 'ADJUSTMENT', 'MANUAL', name='stockreferencetype')
po_status = sa.Enum(
    'DRAFT', 'SUBMITTED', 'APPROVED', 'ORDERED', 'PARTIALLY_RECEIVED', 'FULLY_RECEIVED', 'CANCELLED', 'CLOSED',
    name='purchaseorderstatus'
)
alert_type = sa.Enum(
    'LOW_STOCK', 'OUT_OF_STOCK', 'PURCHASE_ORDER_DUE', 'PURCHASE_ORDER_OVERDUE', 'INVENTORY_ADJUSTMENT',
    'SYSTEM_ALERT',
    name='alerttype'
)
alert_severity = sa.Enum('LOW', 'MEDIUM', 'HIGH', 'CRITICAL', name='alertseverity')
alert_priority = sa.Enum('LOW', 'NORMAL', 'HIGH', 'URGENT', name='alertpriority')
alert_status = sa.Enum('ACTIVE', 'ACKNOWLEDGED', 'RESOLVED', 'DISMISSED', name='alertstatus')
alert_reference_type = sa.Enum(
    'INVENTORY', 'STOCK_MOVEMENT', 'PURCHASE_ORDER', 'SYSTEM', name='alertreferencetype'
)


def audit_columns():
    return [
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True)),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_by', sa.Integer()),
        sa.Column('updated_by', sa.Integer()),
    ]


def upgrade() -> None:
    op.create_table(
        'categories',
        *audit_columns(),
        sa.Column('name', sa.String(100), nullable=False, unique=True),
        sa.Column('description', sa.Text()),
        sa.Column('is_active', sa.Boolean()),
    )
    op.create_table(
        'warehouses',
        *audit_columns(),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('code', sa.String(20), nullable=False, unique=True),
        sa.Column('address', sa.Text()),
        sa.Column('city', sa.String(50)),
        sa.Column('country', sa.String(50)),
        sa.Column('phone', sa.String(20)),
        sa.Column('email', sa.String(100)),
        sa.Column('is_active', sa.Boolean()),
    )
    op.create_table(
        'suppliers',
        *audit_columns(),
        sa.Column('supplier_code', sa.String(20), nullable=False, unique=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('contact_person', sa.String(100)),
        sa.Column('email', sa.String(100)),
        sa.Column('phone', sa.String(20)),
        sa.Column('address', sa.Text()),
        sa.Column('city', sa.String(50)),
        sa.Column('country', sa.String(50)),
        sa.Column('payment_terms', sa.String(100)),
        sa.Column('is_active', sa.Boolean()),
    )
    op.create_table(
        'products',
        *audit_columns(),
        sa.Column('sku', sa.String(50), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('category_id', sa.Integer(), sa.ForeignKey('categories.id')),
        sa.Column('unit_of_measure', unit_type, nullable=False),
        sa.Column('cost_price', sa.Numeric(10, 2)),
        sa.Column('selling_price', sa.Numeric(10, 2)),
        sa.Column('reorder_point', sa.Integer(), nullable=False),
        sa.Column('reorder_quantity', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean()),
        sa.CheckConstraint('reorder_point >= 0', name='ck_products_reorder_point'),
        sa.CheckConstraint('reorder_quantity >= 0', name='ck_products_reorder_quantity'),
    )
    op.create_index('ix_products_sku', 'products', ['sku'], unique=True)

    op.create_table(
        'inventory_records',
        *audit_columns(),
        sa.Column('product_id', sa.Integer(), sa.ForeignKey('products.id'), nullable=False),
        sa.Column('warehouse_id', sa.Integer(), sa.ForeignKey('warehouses.id'), nullable=False),
        sa.Column('quantity_on_hand', sa.Integer(), nullable=False),
        sa.Column('quantity_reserved', sa.Integer(), nullable=False),
        sa.Column('last_updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint('product_id', 'warehouse_id', name='uq_inventory_records_product_warehouse'),
        sa.CheckConstraint('quantity_on_hand >= 0', name='ck_inventory_records_on_hand'),
        sa.CheckConstraint('quantity_reserved >= 0', name='ck_inventory_records_reserved'),
        sa.CheckConstraint('quantity_reserved <= quantity_on_hand', name='ck_inventory_records_available'),
    )
    op.create_table(
        'stock_movements',
        *audit_columns(),
        sa.Column('product_id', sa.Integer(), sa.ForeignKey('products.id'), nullable=False),
        sa.Column('warehouse_id', sa.Integer(), sa.ForeignKey('warehouses.id'), nullable=False),
        sa.Column('movement_type', movement_type, nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('reference_type', reference_type, nullable=False),
        sa.Column('reference_id', sa.String(100)),
        sa.Column('notes', sa.Text()),
        sa.Column('moved_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint('reference_type', 'reference_id', name='uq_stock_movements_reference'),
        sa.CheckConstraint('quantity > 0', name='ck_stock_movements_quantity'),
    )
    op.create_index('ix_stock_movements_product_id', 'stock_movements', ['product_id'])
    op.create_index('ix_stock_movements_warehouse_id', 'stock_movements', ['warehouse_id'])

    op.create_table(
        'product_suppliers',
        *audit_columns(),
        sa.Column('product_id', sa.Integer(), sa.ForeignKey('products.id'), nullable=False),
        sa.Column('supplier_id', sa.Integer(), sa.ForeignKey('suppliers.id'), nullable=False),
        sa.Column('supplier_product_code', sa.String(100)),
        sa.Column('unit_cost', sa.Numeric(10, 2), nullable=False),
        sa.Column('lead_time_days', sa.Integer()),
        sa.Column('last_quoted_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint('product_id', 'supplier_id', name='uq_product_suppliers_product_supplier'),
    )

    op.create_table(
        'purchase_orders',
        *audit_columns(),
        sa.Column('po_number', sa.String(50), nullable=False, unique=True),
        sa.Column('supplier_id', sa.Integer(), sa.ForeignKey('suppliers.id'), nullable=False),
        sa.Column('warehouse_id', sa.Integer(), sa.ForeignKey('warehouses.id'), nullable=False),
        sa.Column('order_date', sa.Date(), nullable=False),
        sa.Column('expected_delivery_date', sa.Date()),
        sa.Column('status', po_status, nullable=False),
        sa.Column('total_amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('notes', sa.Text()),
        sa.Column('approved_by', sa.Integer()),
        sa.Column('approved_date', sa.DateTime(timezone=True)),
        sa.Column('closed_at', sa.DateTime(timezone=True)),
    )
    op.create_index('ix_purchase_orders_status', 'purchase_orders', ['status'])

    op.create_table(
        'purchase_order_items',
        *audit_columns(),
        sa.Column('purchase_order_id', sa.Integer(), sa.ForeignKey('purchase_orders.id'), nullable=False),
        sa.Column('product_id', sa.Integer(), sa.ForeignKey('products.id'), nullable=False),
        sa.Column('quantity_ordered', sa.Integer(), nullable=False),
        sa.Column('quantity_received', sa.Integer(), nullable=False),
        sa.Column('unit_price', sa.Numeric(10, 2), nullable=False),
        sa.Column('total_price', sa.Numeric(12, 2), nullable=False),
        sa.Column('notes', sa.Text()),
        sa.CheckConstraint('quantity_ordered > 0', name='ck_po_items_quantity_ordered'),
        sa.CheckConstraint(
            'quantity_received >= 0 AND quantity_received <= quantity_ordered',
            name='ck_po_items_quantity_received',
        ),
        sa.CheckConstraint('unit_price >= 0', name='ck_po_items_unit_price'),
    )
    op.create_index('ix_purchase_order_items_purchase_order_id', 'purchase_order_items', ['purchase_order_id'])

    op.create_table(
        'alerts',
        *audit_columns(),
        sa.Column('alert_type', alert_type, nullable=False),
        sa.Column('severity', alert_severity, nullable=False),
        sa.Column('priority', alert_priority, nullable=False),
        sa.Column('status', alert_status, nullable=False),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('reference_type', alert_reference_type, nullable=False),
        sa.Column('reference_id', sa.Integer()),
        sa.Column('triggered_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('acknowledged_at', sa.DateTime(timezone=True)),
        sa.Column('acknowledged_by', sa.Integer()),
        sa.Column('resolved_at', sa.DateTime(timezone=True)),
        sa.Column('resolved_by', sa.Integer()),
        sa.Column('notes', sa.Text()),
    )
    op.create_index('ix_alerts_status', 'alerts', ['status'])
    op.create_index(
        'uq_alerts_active_reference',
        'alerts',
        ['alert_type', 'reference_type', 'reference_id'],
        unique=True,
        postgresql_where=sa.text("status = 'ACTIVE'"),
        sqlite_where=sa.text("status = 'ACTIVE'"),
    )
    print("✓ [3b8e1f0c2a71] Created procurement schema")


def downgrade() -> None:
    op.drop_index('uq_alerts_active_reference', table_name='alerts')
    op.drop_index('ix_alerts_status', table_name='alerts')
    op.drop_table('alerts')
    op.drop_index('ix_purchase_order_items_purchase_order_id', table_name='purchase_order_items')
    op.drop_table('purchase_order_items')
    op.drop_index('ix_purchase_orders_status', table_name='purchase_orders')
    op.drop_table('purchase_orders')
    op.drop_table('product_suppliers')
    op.drop_index('ix_stock_movements_warehouse_id', table_name='stock_movements')
    op.drop_index('ix_stock_movements_product_id', table_name='stock_movements')
    op.drop_table('stock_movements')
    op.drop_table('inventory_records')
    op.drop_index('ix_products_sku', table_name='products')
    op.drop_table('products')
    op.drop_table('suppliers')
    op.drop_table('warehouses')
    op.drop_table('categories')

    bind = op.get_bind()
    for enum in (
        alert_reference_type, alert_status, alert_priority, alert_severity, alert_type,
        po_status, reference_type, movement_type, unit_type,
    ):
        enum.drop(bind, checkfirst=True)
