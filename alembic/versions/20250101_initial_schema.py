"""Initial schema: equipment, bookings, maintenance windows, supplies, orders

Revision ID: 3f1a7c2e9b40
Revises:
Create Date: 2025-01-01

Creates the tables for equipment rental, maintenance scheduling and the
supply marketplace.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

from farmhub.models.base import GUID


# revision identifiers, used by Alembic.
revision: str = '3f1a7c2e9b40'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _audit_columns() -> list:
    return [
        sa.Column('id', GUID(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    op.create_table('equipment',
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('equipment_type', sa.String(length=50), nullable=False),
        sa.Column('price_per_day', sa.Float(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('owner_id', sa.String(length=255), nullable=False),
        sa.Column('available', sa.Boolean(), nullable=False),
        *_audit_columns(),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('equipment', schema=None) as batch_op:
        batch_op.create_index('idx_equipment_owner', ['owner_id'], unique=False)
        batch_op.create_index('idx_equipment_available', ['available'], unique=False)

    op.create_table('bookings',
        sa.Column('equipment_id', GUID(), nullable=False),
        sa.Column('requester_id', sa.String(length=255), nullable=False),
        sa.Column('owner_id', sa.String(length=255), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        *_audit_columns(),
        sa.CheckConstraint('end_date > start_date', name='booking_min_one_day'),
        sa.CheckConstraint(
            "status in ('pending','approved','rejected','completed','cancelled')",
            name='booking_status_valid',
        ),
        sa.ForeignKeyConstraint(['equipment_id'], ['equipment.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('bookings', schema=None) as batch_op:
        batch_op.create_index('idx_booking_equipment', ['equipment_id'], unique=False)
        batch_op.create_index('idx_booking_requester', ['requester_id'], unique=False)
        batch_op.create_index('idx_booking_owner', ['owner_id'], unique=False)
        batch_op.create_index('idx_booking_status', ['status'], unique=False)
        batch_op.create_index('idx_booking_equipment_dates', ['equipment_id', 'start_date', 'end_date'], unique=False)

    op.create_table('maintenance_windows',
        sa.Column('equipment_id', GUID(), nullable=False),
        sa.Column('maintenance_type', sa.String(length=20), nullable=False),
        sa.Column('scheduled_date', sa.Date(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('priority', sa.String(length=10), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('cost', sa.Float(), nullable=True),
        sa.Column('technician', sa.String(length=100), nullable=True),
        sa.Column('completed_date', sa.DateTime(timezone=True), nullable=True),
        *_audit_columns(),
        sa.CheckConstraint('cost IS NULL OR cost >= 0', name='maintenance_cost_non_negative'),
        sa.ForeignKeyConstraint(['equipment_id'], ['equipment.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('maintenance_windows', schema=None) as batch_op:
        batch_op.create_index('idx_maintenance_equipment', ['equipment_id'], unique=False)
        batch_op.create_index('idx_maintenance_scheduled', ['scheduled_date'], unique=False)
        batch_op.create_index('idx_maintenance_status', ['status'], unique=False)

    op.create_table('supplies',
        sa.Column('name', sa.String(length=150), nullable=False),
        sa.Column('category', sa.String(length=20), nullable=False),
        sa.Column('unit', sa.String(length=20), nullable=False),
        sa.Column('price', sa.Float(), nullable=False),
        sa.Column('total_quantity', sa.Integer(), nullable=False),
        sa.Column('available_quantity', sa.Integer(), nullable=False),
        sa.Column('supplier_id', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('brand', sa.String(length=100), nullable=True),
        sa.Column('available', sa.Boolean(), nullable=False),
        *_audit_columns(),
        sa.CheckConstraint('total_quantity >= 0', name='supply_total_non_negative'),
        sa.CheckConstraint('available_quantity >= 0', name='supply_available_non_negative'),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('supplies', schema=None) as batch_op:
        batch_op.create_index('idx_supply_supplier', ['supplier_id'], unique=False)
        batch_op.create_index('idx_supply_category', ['category'], unique=False)
        batch_op.create_index('idx_supply_available', ['available'], unique=False)

    op.create_table('supply_orders',
        sa.Column('supply_id', GUID(), nullable=False),
        sa.Column('buyer_id', sa.String(length=255), nullable=False),
        sa.Column('supplier_id', sa.String(length=255), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('total_price', sa.Float(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('order_date', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('delivery_address', sa.Text(), nullable=True),
        sa.Column('contact_phone', sa.String(length=30), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('original_supply_quantity', sa.Integer(), nullable=False),
        sa.Column('remaining_supply_quantity', sa.Integer(), nullable=False),
        *_audit_columns(),
        sa.CheckConstraint('quantity >= 1', name='order_quantity_positive'),
        sa.ForeignKeyConstraint(['supply_id'], ['supplies.id']),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('supply_orders', schema=None) as batch_op:
        batch_op.create_index('idx_order_supply', ['supply_id'], unique=False)
        batch_op.create_index('idx_order_buyer', ['buyer_id'], unique=False)
        batch_op.create_index('idx_order_supplier', ['supplier_id'], unique=False)
        batch_op.create_index('idx_order_status', ['status'], unique=False)


def downgrade() -> None:
    op.drop_table('supply_orders')
    op.drop_table('supplies')
    op.drop_table('maintenance_windows')
    op.drop_table('bookings')
    op.drop_table('equipment')
