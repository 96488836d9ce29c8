"""Alert dashboard.

Synopsis:
One read-only view over a tenant's open alerts, projected stockouts and reorder
recommendations, with the headline counts a dashboard card needs. Usage rates
are derived once from stock history and shared by the prediction and reorder
sections so both describe the same consumption.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional

from ..models import StockAlert
from ..models.stock_alert import (
    OPEN_STATUSES,
    SEVERITY_CRITICAL,
    SEVERITY_LOW,
    SEVERITY_OUT_OF_STOCK,
    SEVERITY_RANK,
)
from ..utils.quantities import ZERO, money
from ..utils.timezone_utils import TimezoneUtils
from .consumption_history import average_daily_usage
from .errors import ConfigurationError
from .event_emitter import STOCK_ALERT_NOTIFY, EventEmitter
from .reorder_recommendations import ReorderRecommendation, generate_recommendations
from .stock_alerts import StockoutPrediction, list_alerts, predict_stockouts
from .tenant_guard import require_tenant

logger = logging.getLogger(__name__)

DEFAULT_SECTION_LIMIT = 10


@dataclass
class AlertDashboard:
    tenant_id: int
    generated_at: datetime
    open_alert_count: int
    severity_counts: Dict[str, int]
    pending_notifications: int
    total_reorder_cost: Decimal
    prediction_count: int
    recommendation_count: int
    active_alerts: List[StockAlert] = field(default_factory=list)
    predictions: List[StockoutPrediction] = field(default_factory=list)
    recommendations: List[ReorderRecommendation] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tenant_id": self.tenant_id,
            "generated_at": self.generated_at.isoformat(),
            "summary": {
                "active_alerts": self.open_alert_count,
                "predictive_alerts": self.prediction_count,
                "reorder_recommendations": self.recommendation_count,
                "severity_counts": dict(self.severity_counts),
                "pending_notifications": self.pending_notifications,
            },
            "total_reorder_cost": money(self.total_reorder_cost),
            "active_alerts": [a.to_dict() for a in self.active_alerts],
            "predictive_alerts": [p.to_dict() for p in self.predictions],
            "reorder_recommendations": [r.to_dict() for r in self.recommendations],
        }


def build_dashboard(
    tenant_id: int,
    daily_usage: Optional[Mapping[int, Any]] = None,
    limit: int = DEFAULT_SECTION_LIMIT,
) -> AlertDashboard:
    require_tenant(tenant_id)
    if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
        raise ConfigurationError("limit must be a positive integer", details={"limit": repr(limit)})
    usage = daily_usage if daily_usage is not None else average_daily_usage(tenant_id)

    open_alerts = sorted(
        list_alerts(tenant_id, status=OPEN_STATUSES),
        key=lambda a: (-SEVERITY_RANK.get(a.severity, 0), a.id),
    )
    counts = {SEVERITY_OUT_OF_STOCK: 0, SEVERITY_CRITICAL: 0, SEVERITY_LOW: 0}
    for alert in open_alerts:
        counts[alert.severity] = counts.get(alert.severity, 0) + 1

    predictions = predict_stockouts(tenant_id, daily_usage=usage)
    recommendations = generate_recommendations(tenant_id, daily_usage=usage)
    total_cost = sum((r.estimated_cost for r in recommendations), ZERO)
    pending = EventEmitter.pending(STOCK_ALERT_NOTIFY, tenant_id=tenant_id)

    logger.debug(
        "Dashboard for tenant %s: %s open alerts, %s predictions, %s recommendations",
        tenant_id, len(open_alerts), len(predictions), len(recommendations),
    )
    return AlertDashboard(
        tenant_id=tenant_id,
        generated_at=TimezoneUtils.utc_now(),
        open_alert_count=len(open_alerts),
        severity_counts=counts,
        pending_notifications=len(pending),
        total_reorder_cost=total_cost,
        prediction_count=len(predictions),
        recommendation_count=len(recommendations),
        active_alerts=open_alerts[:limit],
        predictions=predictions[:limit],
        recommendations=recommendations[:limit],
    )
