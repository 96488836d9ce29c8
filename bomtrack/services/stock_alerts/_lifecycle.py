from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from ...extensions import db
from ...models import StockAlert
from ...models.stock_alert import (
    STATUS_ACKNOWLEDGED,
    STATUS_DISMISSED,
    STATUS_PENDING,
    STATUS_RESOLVED,
)
from ...utils.timezone_utils import TimezoneUtils
from ..errors import ConfigurationError, InvalidStateTransition
from ..tenant_guard import load_scoped, require_tenant

logger = logging.getLogger(__name__)

# Target status -> statuses it may be entered from. Resolved/dismissed are terminal.
ALLOWED_TRANSITIONS = {
    STATUS_ACKNOWLEDGED: (STATUS_PENDING,),
    STATUS_RESOLVED: (STATUS_PENDING, STATUS_ACKNOWLEDGED),
    STATUS_DISMISSED: (STATUS_PENDING, STATUS_ACKNOWLEDGED),
}
_STAMP_FIELDS = {
    STATUS_ACKNOWLEDGED: "acknowledged",
    STATUS_RESOLVED: "resolved",
    STATUS_DISMISSED: "dismissed",
}


def get_alert(tenant_id: int, alert_id: int) -> StockAlert:
    require_tenant(tenant_id)
    return load_scoped(StockAlert, alert_id, tenant_id)


def list_alerts(tenant_id: int, status: Optional[str] = None) -> list[StockAlert]:
    require_tenant(tenant_id)
    query = StockAlert.for_tenant(tenant_id)
    if status:
        statuses = (status,) if isinstance(status, str) else tuple(status)
        unknown = sorted(set(statuses) - {STATUS_PENDING, *ALLOWED_TRANSITIONS})
        if unknown:
            raise ConfigurationError(f"Unknown alert status: {', '.join(unknown)}", details={"status": unknown})
        query = query.filter(StockAlert.status.in_(statuses))
    return query.order_by(StockAlert.created_at.desc(), StockAlert.id.desc()).all()


def transition_alert(
    tenant_id: int,
    alert_id: int,
    target: str,
    notes: Optional[str] = None,
    actor_id: Optional[int] = None,
) -> StockAlert:
    alert = get_alert(tenant_id, alert_id)
    if alert.status not in ALLOWED_TRANSITIONS.get(target, ()):
        raise InvalidStateTransition("StockAlert", alert.id, alert.status, target)

    prefix = _STAMP_FIELDS[target]
    alert.status = target
    setattr(alert, f"{prefix}_at", TimezoneUtils.utc_now())
    setattr(alert, f"{prefix}_by", actor_id)
    setattr(alert, f"{prefix}_notes", notes)
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Failed to move alert %s to %s", alert_id, target)
        raise
    logger.info("Alert %s for material %s -> %s (tenant %s)", alert.id, alert.material_id, target, tenant_id)
    return alert


def acknowledge(tenant_id: int, alert_id: int, notes: Optional[str] = None, actor_id: Optional[int] = None) -> StockAlert:
    return transition_alert(tenant_id, alert_id, STATUS_ACKNOWLEDGED, notes, actor_id)


def resolve(tenant_id: int, alert_id: int, notes: Optional[str] = None, actor_id: Optional[int] = None) -> StockAlert:
    return transition_alert(tenant_id, alert_id, STATUS_RESOLVED, notes, actor_id)


def dismiss(tenant_id: int, alert_id: int, notes: Optional[str] = None, actor_id: Optional[int] = None) -> StockAlert:
    return transition_alert(tenant_id, alert_id, STATUS_DISMISSED, notes, actor_id)
