"""Low-stock detection for a single material.

Synopsis:
Classifies a material's stock and reconciles it with the material's open alert.
Status is never advanced here; only a human transition changes it. The open
alert uniqueness index decides races between concurrent scans: the loser
rolls back its insert and updates the winner's row instead.

Glossary:
- Open alert: pending or acknowledged.
- Escalation: severity moved to a more urgent level on an open alert.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from flask import current_app, has_app_context
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ...extensions import db
from ...models import Material, StockAlert
from ...models.stock_alert import OPEN_STATUSES, SEVERITY_HEALTHY, STATUS_PENDING
from ...utils.quantities import ZERO, present, to_decimal
from ...utils.timezone_utils import TimezoneUtils
from ..errors import ConcurrencyConflict
from ..event_emitter import STOCK_ALERT_NOTIFY, EventEmitter
from ._severity import classify, is_escalation

logger = logging.getLogger(__name__)

ACTION_CREATED = "created"
ACTION_UPDATED = "updated"
ACTION_SKIPPED = "skipped"


@dataclass
class DetectionOutcome:
    action: str
    severity: str
    alert: Optional[StockAlert] = None
    notified: bool = False


def _setting(key: str, default):
    if not has_app_context():
        return default
    return current_app.config.get(key, default)


def find_open_alert(tenant_id: int, material_id: int) -> Optional[StockAlert]:
    return (
        StockAlert.query.filter(
            StockAlert.tenant_id == tenant_id,
            StockAlert.material_id == material_id,
            StockAlert.status.in_(OPEN_STATUSES),
        )
        .order_by(StockAlert.id)
        .first()
    )


def _queue_notification(alert: StockAlert, material: Material, reason: str) -> None:
    alert.notified = True
    alert.notified_at = TimezoneUtils.utc_now()
    EventEmitter.emit(
        STOCK_ALERT_NOTIFY,
        {
            "reason": reason,
            "alert_id": alert.id,
            "material_id": material.id,
            "material_name": material.name,
            "unit": material.unit,
            "severity": alert.severity,
            "current_stock": present(alert.current_stock),
            "reorder_point": present(alert.reorder_point),
        },
        tenant_id=alert.tenant_id,
        entity_type="stock_alert",
        entity_id=alert.id,
    )


def _snapshot_changed(alert: StockAlert, stock, point, severity: str) -> bool:
    return (
        alert.severity != severity
        or to_decimal(alert.current_stock) != stock
        or to_decimal(alert.reorder_point) != point
    )


def _refresh_open_alert(alert: StockAlert, material: Material, stock, point, severity: str) -> DetectionOutcome:
    if not _snapshot_changed(alert, stock, point, severity):
        return DetectionOutcome(ACTION_SKIPPED, severity, alert)

    escalated = is_escalation(alert.severity, severity)
    alert.current_stock = stock
    alert.reorder_point = point
    alert.severity = severity
    alert.last_detected_at = TimezoneUtils.utc_now()
    notified = False
    if escalated and _setting("STOCK_ALERT_NOTIFY_ON_ESCALATION", True):
        _queue_notification(alert, material, "escalated")
        notified = True
    db.session.commit()
    return DetectionOutcome(ACTION_UPDATED, severity, alert, notified)


def _insert_alert(material: Material, stock, point, severity: str) -> DetectionOutcome:
    alert = StockAlert(
        tenant_id=material.tenant_id,
        material_id=material.id,
        current_stock=stock,
        reorder_point=point,
        severity=severity,
        status=STATUS_PENDING,
        last_detected_at=TimezoneUtils.utc_now(),
    )
    db.session.add(alert)
    db.session.flush()
    notified = False
    if _setting("STOCK_ALERT_NOTIFY_ON_CREATE", True):
        _queue_notification(alert, material, "created")
        notified = True
    db.session.commit()
    return DetectionOutcome(ACTION_CREATED, severity, alert, notified)


def detect(material: Material, *, dry_run: bool = False, critical_ratio=None) -> DetectionOutcome:
    """Reconcile one material's stock with its open alert.

    Returns created, updated or skipped. Healthy stock never touches an
    existing alert; resolving it is a human decision.
    """
    tenant_id = material.tenant_id
    material_id = material.id
    stock = to_decimal(material.current_stock or ZERO)
    point = to_decimal(material.reorder_point or ZERO)
    severity = classify(stock, point, critical_ratio)
    open_alert = find_open_alert(tenant_id, material_id)

    if severity == SEVERITY_HEALTHY:
        return DetectionOutcome(ACTION_SKIPPED, severity, open_alert)

    if dry_run:
        if open_alert is None:
            return DetectionOutcome(ACTION_CREATED, severity)
        action = ACTION_UPDATED if _snapshot_changed(open_alert, stock, point, severity) else ACTION_SKIPPED
        return DetectionOutcome(action, severity, open_alert)

    try:
        if open_alert is not None:
            return _refresh_open_alert(open_alert, material, stock, point, severity)
        try:
            return _insert_alert(material, stock, point, severity)
        except IntegrityError:
            # Another scan opened the alert first; treat ours as an update.
            db.session.rollback()
            logger.debug("Open alert race on material %s (tenant %s); updating winner", material_id, tenant_id)
            winner = find_open_alert(tenant_id, material_id)
            if winner is None:
                raise ConcurrencyConflict(
                    f"Open alert for material {material_id} vanished during detection",
                    details={"tenant_id": tenant_id, "material_id": material_id},
                )
            material = db.session.get(Material, material_id)
            return _refresh_open_alert(winner, material, stock, point, severity)
    except SQLAlchemyError:
        db.session.rollback()
        raise
