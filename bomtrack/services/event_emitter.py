"""Domain event emission helper.

Synopsis:
Persists "notify now" decisions as DomainEvent outbox rows. The row is added to
the caller's session so it commits or rolls back together with the state change
that produced it; delivery belongs to an external dispatcher.
"""

import logging
import uuid
from typing import Any, Dict, Optional

from ..extensions import db
from ..models.domain_event import DomainEvent
from ..utils.timezone_utils import TimezoneUtils

logger = logging.getLogger(__name__)

STOCK_ALERT_NOTIFY = "stock_alert.notify"


# --- EventEmitter ---
# Purpose: Stage outbox events inside the current unit of work.
# Inputs: Event name, tenant/entity context, and JSON properties.
# Outputs: The pending DomainEvent row.
class EventEmitter:
    @staticmethod
    def emit(
        event_name: str,
        properties: Optional[Dict[str, Any]] = None,
        *,
        tenant_id: Optional[int] = None,
        actor_id: Optional[int] = None,
        entity_type: Optional[str] = None,
        entity_id: Optional[int] = None,
        correlation_id: Optional[str] = None,
        source: str = "bom_engine",
        schema_version: int = 1,
    ) -> DomainEvent:
        event = DomainEvent(
            event_name=event_name,
            occurred_at=TimezoneUtils.utc_now(),
            tenant_id=tenant_id,
            actor_id=actor_id,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id or str(uuid.uuid4()),
            source=source,
            schema_version=schema_version,
            properties=dict(properties or {}),
            is_processed=False,
            delivery_attempts=0,
        )
        db.session.add(event)
        logger.debug("Queued %s for %s %s (tenant %s)", event_name, entity_type, entity_id, tenant_id)
        return event

    @staticmethod
    def pending(event_name: Optional[str] = None, *, tenant_id: Optional[int] = None):
        query = DomainEvent.query.filter(DomainEvent.is_processed.is_(False))
        if event_name:
            query = query.filter(DomainEvent.event_name == event_name)
        if tenant_id is not None:
            query = query.filter(DomainEvent.tenant_id == tenant_id)
        return query.order_by(DomainEvent.id).all()
