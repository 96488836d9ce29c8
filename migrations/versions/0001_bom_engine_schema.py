"""bom engine schema: materials, stock adjustments, versioned recipes, stock alerts, outbox

Revision ID: 0001_bom_engine
Revises:
Create Date: 2026-10-17 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001_bom_engine'
down_revision = None
branch_labels = None
depends_on = None

QUANTITY = sa.Numeric(18, 6)
OPEN_ALERT_PREDICATE = sa.text("status IN ('pending', 'acknowledged')")


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    ]


def upgrade():
    op.create_table(
        'material',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('unit', sa.String(length=32), nullable=False),
        sa.Column('unit_cost', QUANTITY, nullable=False),
        sa.Column('current_stock', QUANTITY, nullable=False),
        sa.Column('reorder_point', QUANTITY, nullable=False),
        sa.Column('reorder_quantity', QUANTITY, nullable=True),
        sa.Column('category', sa.String(length=64), nullable=True),
        sa.Column('is_archived', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('archived_at', sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint('current_stock >= 0', name='ck_material_stock_non_negative'),
    )
    op.create_index('ix_material_tenant_id', 'material', ['tenant_id'])
    op.create_index('ix_material_tenant_archived', 'material', ['tenant_id', 'is_archived'])

    op.create_table(
        'recipe',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=True),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('current_version_id', sa.Integer(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_recipe_tenant_id', 'recipe', ['tenant_id'])
    op.create_index('ix_recipe_product_id', 'recipe', ['product_id'])

    op.create_table(
        'recipe_version',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('recipe_id', sa.Integer(), sa.ForeignKey('recipe.id'), nullable=False),
        sa.Column('version_number', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='draft'),
        sa.Column('yield_quantity', QUANTITY, nullable=False),
        sa.Column('yield_unit', sa.String(length=32), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('activated_at', sa.DateTime(), nullable=True),
        sa.Column('archived_at', sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint('recipe_id', 'version_number', name='uq_recipe_version_number'),
        sa.CheckConstraint('yield_quantity > 0', name='ck_recipe_version_yield_positive'),
    )
    op.create_index('ix_recipe_version_tenant_id', 'recipe_version', ['tenant_id'])
    op.create_index('ix_recipe_version_recipe_id', 'recipe_version', ['recipe_id'])

    with op.batch_alter_table('recipe', schema=None) as batch_op:
        batch_op.create_foreign_key(
            'fk_recipe_current_version', 'recipe_version', ['current_version_id'], ['id']
        )

    op.create_table(
        'recipe_component',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('recipe_version_id', sa.Integer(), sa.ForeignKey('recipe_version.id'), nullable=False),
        sa.Column('material_id', sa.Integer(), sa.ForeignKey('material.id'), nullable=False),
        sa.Column('quantity_per_unit', QUANTITY, nullable=False),
        sa.Column('unit', sa.String(length=32), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.UniqueConstraint('recipe_version_id', 'material_id', name='uq_recipe_component_material'),
        sa.CheckConstraint('quantity_per_unit > 0', name='ck_recipe_component_quantity_positive'),
    )
    op.create_index('ix_recipe_component_tenant_id', 'recipe_component', ['tenant_id'])
    op.create_index('ix_recipe_component_recipe_version_id', 'recipe_component', ['recipe_version_id'])
    op.create_index('ix_recipe_component_material_id', 'recipe_component', ['material_id'])

    op.create_table(
        'stock_adjustment',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('material_id', sa.Integer(), sa.ForeignKey('material.id'), nullable=False),
        sa.Column('change_type', sa.String(length=32), nullable=False),
        sa.Column('quantity_change', QUANTITY, nullable=False),
        sa.Column('stock_before', QUANTITY, nullable=False),
        sa.Column('stock_after', QUANTITY, nullable=False),
        sa.Column('reason', sa.String(length=255), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('actor_id', sa.Integer(), nullable=True),
        sa.Column('recipe_version_id', sa.Integer(), sa.ForeignKey('recipe_version.id'), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_stock_adjustment_tenant_id', 'stock_adjustment', ['tenant_id'])
    op.create_index('ix_stock_adjustment_created_at', 'stock_adjustment', ['created_at'])
    op.create_index('ix_stock_adjustment_material_created', 'stock_adjustment', ['material_id', 'created_at'])

    op.create_table(
        'stock_alert',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('material_id', sa.Integer(), sa.ForeignKey('material.id'), nullable=False),
        sa.Column('current_stock', QUANTITY, nullable=False),
        sa.Column('reorder_point', QUANTITY, nullable=False),
        sa.Column('severity', sa.String(length=16), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='pending'),
        sa.Column('notified', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('notified_at', sa.DateTime(), nullable=True),
        sa.Column('last_detected_at', sa.DateTime(), nullable=True),
        sa.Column('acknowledged_at', sa.DateTime(), nullable=True),
        sa.Column('acknowledged_by', sa.Integer(), nullable=True),
        sa.Column('acknowledged_notes', sa.Text(), nullable=True),
        sa.Column('resolved_at', sa.DateTime(), nullable=True),
        sa.Column('resolved_by', sa.Integer(), nullable=True),
        sa.Column('resolved_notes', sa.Text(), nullable=True),
        sa.Column('dismissed_at', sa.DateTime(), nullable=True),
        sa.Column('dismissed_by', sa.Integer(), nullable=True),
        sa.Column('dismissed_notes', sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_stock_alert_tenant_id', 'stock_alert', ['tenant_id'])
    op.create_index('ix_stock_alert_material_id', 'stock_alert', ['material_id'])
    op.create_index('ix_stock_alert_tenant_status', 'stock_alert', ['tenant_id', 'status'])
    op.create_index(
        'uq_stock_alert_open_material',
        'stock_alert',
        ['tenant_id', 'material_id'],
        unique=True,
        sqlite_where=OPEN_ALERT_PREDICATE,
        postgresql_where=OPEN_ALERT_PREDICATE,
    )

    op.create_table(
        'domain_event',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('event_name', sa.String(length=128), nullable=False),
        sa.Column('occurred_at', sa.DateTime(), nullable=True),
        sa.Column('tenant_id', sa.Integer(), nullable=True),
        sa.Column('actor_id', sa.Integer(), nullable=True),
        sa.Column('entity_type', sa.String(length=64), nullable=True),
        sa.Column('entity_id', sa.Integer(), nullable=True),
        sa.Column('correlation_id', sa.String(length=128), nullable=True),
        sa.Column('source', sa.String(length=64), nullable=True),
        sa.Column('schema_version', sa.Integer(), nullable=True),
        sa.Column('properties', sa.JSON(), nullable=True),
        sa.Column('is_processed', sa.Boolean(), nullable=True),
        sa.Column('processed_at', sa.DateTime(), nullable=True),
        sa.Column('delivery_attempts', sa.Integer(), nullable=True),
    )
    for column in ('event_name', 'occurred_at', 'tenant_id', 'entity_type', 'entity_id', 'correlation_id', 'is_processed'):
        op.create_index(f'ix_domain_event_{column}', 'domain_event', [column])


def downgrade():
    op.drop_table('domain_event')
    op.drop_index('uq_stock_alert_open_material', table_name='stock_alert')
    op.drop_table('stock_alert')
    op.drop_table('stock_adjustment')
    op.drop_table('recipe_component')
    with op.batch_alter_table('recipe', schema=None) as batch_op:
        batch_op.drop_constraint('fk_recipe_current_version', type_='foreignkey')
    op.drop_table('recipe_version')
    op.drop_table('recipe')
    op.drop_table('material')
