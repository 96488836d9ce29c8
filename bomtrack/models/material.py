from decimal import Decimal

from ..extensions import db
from ..services.cache_invalidation import track_cost_inputs
from ..utils.timezone_utils import TimezoneUtils
from .mixins import TenantScopedMixin, TimestampMixin

QUANTITY = db.Numeric(18, 6)


class Material(TenantScopedMixin, TimestampMixin, db.Model):
    """Raw material held in stock by a tenant. Archived, never deleted."""

    __tablename__ = 'material'
    __table_args__ = (
        db.CheckConstraint('current_stock >= 0', name='ck_material_stock_non_negative'),
        db.Index('ix_material_tenant_archived', 'tenant_id', 'is_archived'),
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    unit = db.Column(db.String(32), nullable=False)
    unit_cost = db.Column(QUANTITY, nullable=False, default=Decimal('0'))
    current_stock = db.Column(QUANTITY, nullable=False, default=Decimal('0'))
    reorder_point = db.Column(QUANTITY, nullable=False, default=Decimal('0'))
    reorder_quantity = db.Column(QUANTITY, nullable=True)
    category = db.Column(db.String(64), nullable=True)
    is_archived = db.Column(db.Boolean, nullable=False, default=False)
    archived_at = db.Column(db.DateTime, nullable=True)

    adjustments = db.relationship(
        'StockAdjustment',
        back_populates='material',
        lazy='dynamic',
        order_by='StockAdjustment.id',
    )

    def archive(self):
        self.is_archived = True
        self.archived_at = TimezoneUtils.utc_now()

    def to_dict(self):
        return {
            'id': self.id,
            'tenant_id': self.tenant_id,
            'name': self.name,
            'unit': self.unit,
            'unit_cost': float(self.unit_cost or 0),
            'current_stock': float(self.current_stock or 0),
            'reorder_point': float(self.reorder_point or 0),
            'reorder_quantity': float(self.reorder_quantity) if self.reorder_quantity is not None else None,
            'category': self.category,
            'is_archived': bool(self.is_archived),
        }

    def __repr__(self):
        return f'<Material {self.id} {self.name!r} tenant={self.tenant_id}>'


class StockAdjustment(TenantScopedMixin, db.Model):
    """Audit row written in the same transaction as every stock change."""

    __tablename__ = 'stock_adjustment'
    __table_args__ = (
        db.Index('ix_stock_adjustment_material_created', 'material_id', 'created_at'),
    )

    id = db.Column(db.Integer, primary_key=True)
    material_id = db.Column(db.Integer, db.ForeignKey('material.id'), nullable=False)
    change_type = db.Column(db.String(32), nullable=False)
    quantity_change = db.Column(QUANTITY, nullable=False)
    stock_before = db.Column(QUANTITY, nullable=False)
    stock_after = db.Column(QUANTITY, nullable=False)
    reason = db.Column(db.String(255), nullable=False)
    notes = db.Column(db.Text, nullable=True)
    actor_id = db.Column(db.Integer, nullable=True)
    recipe_version_id = db.Column(db.Integer, db.ForeignKey('recipe_version.id'), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=TimezoneUtils.utc_now, index=True)

    material = db.relationship('Material', back_populates='adjustments')

    def __repr__(self):
        return f'<StockAdjustment {self.id} material={self.material_id} {self.change_type} {self.quantity_change}>'


track_cost_inputs(Material)
