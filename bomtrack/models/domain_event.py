from ..extensions import db
from ..utils.timezone_utils import TimezoneUtils


class DomainEvent(db.Model):
    """Outbox row for decisions the core hands to external collaborators."""

    __tablename__ = "domain_event"

    id = db.Column(db.Integer, primary_key=True)
    event_name = db.Column(db.String(128), nullable=False, index=True)
    occurred_at = db.Column(db.DateTime, default=TimezoneUtils.utc_now, index=True)

    tenant_id = db.Column(db.Integer, nullable=True, index=True)
    actor_id = db.Column(db.Integer, nullable=True)

    entity_type = db.Column(db.String(64), nullable=True, index=True)
    entity_id = db.Column(db.Integer, nullable=True, index=True)

    correlation_id = db.Column(db.String(128), nullable=True, index=True)
    source = db.Column(db.String(64), nullable=True, default="bom_engine")
    schema_version = db.Column(db.Integer, nullable=True, default=1)

    properties = db.Column(db.JSON, nullable=True)

    # Delivery is owned by an external dispatcher
    is_processed = db.Column(db.Boolean, default=False, index=True)
    processed_at = db.Column(db.DateTime, nullable=True)
    delivery_attempts = db.Column(db.Integer, default=0)

    def __repr__(self):
        return f"<DomainEvent {self.event_name} {self.id}>"
