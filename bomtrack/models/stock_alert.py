from ..extensions import db
from ..utils.timezone_utils import TimezoneUtils
from .material import QUANTITY
from .mixins import TenantScopedMixin, TimestampMixin

SEVERITY_HEALTHY = 'healthy'
SEVERITY_LOW = 'low'
SEVERITY_CRITICAL = 'critical'
SEVERITY_OUT_OF_STOCK = 'out_of_stock'
SEVERITY_RANK = {
    SEVERITY_HEALTHY: 0,
    SEVERITY_LOW: 1,
    SEVERITY_CRITICAL: 2,
    SEVERITY_OUT_OF_STOCK: 3,
}

STATUS_PENDING = 'pending'
STATUS_ACKNOWLEDGED = 'acknowledged'
STATUS_RESOLVED = 'resolved'
STATUS_DISMISSED = 'dismissed'
OPEN_STATUSES = (STATUS_PENDING, STATUS_ACKNOWLEDGED)
TERMINAL_STATUSES = (STATUS_RESOLVED, STATUS_DISMISSED)

_OPEN_PREDICATE = db.text("status IN ('pending', 'acknowledged')")


class StockAlert(TenantScopedMixin, TimestampMixin, db.Model):
    __tablename__ = 'stock_alert'
    __table_args__ = (
        # At most one open alert per material. The race between concurrent scans
        # is settled by this index, not by application locking.
        db.Index(
            'uq_stock_alert_open_material',
            'tenant_id',
            'material_id',
            unique=True,
            sqlite_where=_OPEN_PREDICATE,
            postgresql_where=_OPEN_PREDICATE,
        ),
        db.Index('ix_stock_alert_tenant_status', 'tenant_id', 'status'),
    )

    id = db.Column(db.Integer, primary_key=True)
    material_id = db.Column(db.Integer, db.ForeignKey('material.id'), nullable=False, index=True)
    current_stock = db.Column(QUANTITY, nullable=False)
    reorder_point = db.Column(QUANTITY, nullable=False)
    severity = db.Column(db.String(16), nullable=False)
    status = db.Column(db.String(16), nullable=False, default=STATUS_PENDING, server_default=STATUS_PENDING)

    notified = db.Column(db.Boolean, nullable=False, default=False)
    notified_at = db.Column(db.DateTime, nullable=True)
    last_detected_at = db.Column(db.DateTime, nullable=True, default=TimezoneUtils.utc_now)

    acknowledged_at = db.Column(db.DateTime, nullable=True)
    acknowledged_by = db.Column(db.Integer, nullable=True)
    acknowledged_notes = db.Column(db.Text, nullable=True)
    resolved_at = db.Column(db.DateTime, nullable=True)
    resolved_by = db.Column(db.Integer, nullable=True)
    resolved_notes = db.Column(db.Text, nullable=True)
    dismissed_at = db.Column(db.DateTime, nullable=True)
    dismissed_by = db.Column(db.Integer, nullable=True)
    dismissed_notes = db.Column(db.Text, nullable=True)

    material = db.relationship('Material')

    @property
    def is_open(self):
        return self.status in OPEN_STATUSES

    def to_dict(self):
        def _iso(value):
            value = TimezoneUtils.ensure_timezone_aware(value)
            return value.isoformat() if value else None

        return {
            'id': self.id,
            'tenant_id': self.tenant_id,
            'material_id': self.material_id,
            'current_stock': float(self.current_stock),
            'reorder_point': float(self.reorder_point),
            'severity': self.severity,
            'status': self.status,
            'notified': bool(self.notified),
            'notified_at': _iso(self.notified_at),
            'acknowledged_at': _iso(self.acknowledged_at),
            'acknowledged_notes': self.acknowledged_notes,
            'resolved_at': _iso(self.resolved_at),
            'resolved_notes': self.resolved_notes,
            'dismissed_at': _iso(self.dismissed_at),
            'dismissed_notes': self.dismissed_notes,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at),
        }

    def __repr__(self):
        return f'<StockAlert {self.id} material={self.material_id} {self.severity}/{self.status}>'
