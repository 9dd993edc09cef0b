"""
Alembic migration: Create order lifecycle tables.

Creates sites, recipes, orders, order_items, tasks and operation_logs.
Order and task statuses are stored as constrained strings so the same
schema works on PostgreSQL and SQLite.

Revision ID: 001
Revises:
Create Date: 2026-10-18 09:00:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# Revision identifiers, used by Alembic
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ORDER_STATUSES = ('pending', 'confirmed', 'in_production', 'completed', 'cancelled')
TASK_STATUSES = (
    'pending',
    'assigned',
    'in_progress',
    'loading',
    'transporting',
    'unloading',
    'completed',
)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            'created_at',
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
            comment='Timestamp when record was created',
        ),
        sa.Column(
            'updated_at',
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
            comment='Timestamp when record was last updated',
        ),
    ]


def _deleted_at() -> sa.Column:
    return sa.Column(
        'deleted_at',
        sa.DateTime(timezone=True),
        nullable=True,
        comment='Timestamp when record was soft deleted',
    )


def upgrade() -> None:
    """
    Create the order lifecycle schema.
    """
    op.create_table(
        'sites',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('code', sa.String(length=50), nullable=False, unique=True),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('address', sa.String(length=255), nullable=True),
        *_timestamps(),
        _deleted_at(),
        comment='Batching plant sites',
    )
    op.create_index('ix_sites_created_at', 'sites', ['created_at'])

    op.create_table(
        'recipes',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            'site_id',
            sa.Integer(),
            sa.ForeignKey('sites.id', ondelete='RESTRICT'),
            nullable=False,
        ),
        sa.Column('code', sa.String(length=50), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('grade', sa.String(length=20), nullable=True),
        *_timestamps(),
        _deleted_at(),
        sa.UniqueConstraint('site_id', 'code', name='uq_recipes_site_code'),
        comment='Concrete mix designs',
    )
    op.create_index('ix_recipes_site_id', 'recipes', ['site_id'])
    op.create_index('ix_recipes_created_at', 'recipes', ['created_at'])

    op.create_table(
        'orders',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('order_no', sa.String(length=50), nullable=False),
        sa.Column(
            'site_id',
            sa.Integer(),
            sa.ForeignKey('sites.id', ondelete='RESTRICT'),
            nullable=False,
        ),
        sa.Column('customer_name', sa.String(length=100), nullable=False),
        sa.Column('customer_phone', sa.String(length=30), nullable=True),
        sa.Column('project_name', sa.String(length=200), nullable=True),
        sa.Column('construction_site', sa.String(length=255), nullable=True),
        sa.Column('required_delivery_time', sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            'total_volume',
            sa.Numeric(precision=12, scale=2),
            nullable=False,
            server_default='0',
        ),
        sa.Column(
            'total_amount',
            sa.Numeric(precision=14, scale=2),
            nullable=False,
            server_default='0',
        ),
        sa.Column(
            'status',
            sa.Enum(
                *ORDER_STATUSES,
                name='order_status',
                native_enum=False,
                create_constraint=True,
                length=20,
            ),
            nullable=False,
            server_default='pending',
        ),
        sa.Column('remarks', sa.Text(), nullable=True),
        sa.Column('created_by', sa.Integer(), nullable=True),
        *_timestamps(),
        _deleted_at(),
        sa.UniqueConstraint('site_id', 'order_no', name='uq_orders_site_order_no'),
        sa.CheckConstraint(
            'total_volume >= 0',
            name='ck_orders_total_volume_non_negative',
        ),
        sa.CheckConstraint(
            'total_amount >= 0',
            name='ck_orders_total_amount_non_negative',
        ),
        comment='Customer concrete orders',
    )
    op.create_index('ix_orders_created_at', 'orders', ['created_at'])
    op.create_index('ix_orders_site_status', 'orders', ['site_id', 'status'])
    op.create_index('ix_orders_active', 'orders', ['site_id', 'deleted_at', 'created_at'])

    op.create_table(
        'order_items',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            'order_id',
            sa.Integer(),
            sa.ForeignKey('orders.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column(
            'recipe_id',
            sa.Integer(),
            sa.ForeignKey('recipes.id', ondelete='RESTRICT'),
            nullable=False,
        ),
        sa.Column('volume', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('unit_price', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('total_price', sa.Numeric(precision=14, scale=2), nullable=False),
        sa.Column('remarks', sa.Text(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint('volume >= 0', name='ck_order_items_volume_non_negative'),
        sa.CheckConstraint(
            'unit_price >= 0',
            name='ck_order_items_unit_price_non_negative',
        ),
        comment='Order line items',
    )
    op.create_index('ix_order_items_order_id', 'order_items', ['order_id'])
    op.create_index('ix_order_items_recipe_id', 'order_items', ['recipe_id'])
    op.create_index('ix_order_items_created_at', 'order_items', ['created_at'])

    op.create_table(
        'tasks',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('task_no', sa.String(length=50), nullable=False),
        sa.Column(
            'order_id',
            sa.Integer(),
            sa.ForeignKey('orders.id', ondelete='RESTRICT'),
            nullable=False,
        ),
        sa.Column(
            'site_id',
            sa.Integer(),
            sa.ForeignKey('sites.id', ondelete='RESTRICT'),
            nullable=False,
        ),
        sa.Column(
            'status',
            sa.Enum(
                *TASK_STATUSES,
                name='task_status',
                native_enum=False,
                create_constraint=True,
                length=20,
            ),
            nullable=False,
            server_default='pending',
        ),
        sa.Column('delivery_volume', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('scheduled_time', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        comment='Delivery tasks',
    )
    op.create_index('ix_tasks_site_id', 'tasks', ['site_id'])
    op.create_index('ix_tasks_created_at', 'tasks', ['created_at'])
    op.create_index('ix_tasks_order_status', 'tasks', ['order_id', 'status'])

    op.create_table(
        'operation_logs',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('action', sa.String(length=50), nullable=False),
        sa.Column('entity_type', sa.String(length=50), nullable=False),
        sa.Column('entity_id', sa.Integer(), nullable=True),
        sa.Column('details', sa.JSON(), nullable=True),
        *_timestamps(),
        comment='Audit trail of user actions',
    )
    op.create_index('ix_operation_logs_created_at', 'operation_logs', ['created_at'])
    op.create_index(
        'ix_operation_logs_entity',
        'operation_logs',
        ['entity_type', 'entity_id'],
    )


def downgrade() -> None:
    """
    Drop the order lifecycle schema.
    """
    op.drop_table('operation_logs')
    op.drop_table('tasks')
    op.drop_table('order_items')
    op.drop_table('orders')
    op.drop_table('recipes')
    op.drop_table('sites')
