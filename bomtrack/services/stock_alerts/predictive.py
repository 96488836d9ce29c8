from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional

from flask import current_app

from ...models import Material
from ...utils.quantities import ZERO, floor_units, present, to_decimal
from ...utils.timezone_utils import TimezoneUtils
from ..consumption_history import average_daily_usage, usage_rate
from ..errors import ConfigurationError
from ..tenant_guard import require_tenant

logger = logging.getLogger(__name__)

URGENT_WITHIN_DAYS = 3


@dataclass
class StockoutPrediction:
    material_id: int
    material_name: str
    current_stock: Decimal
    daily_usage: Decimal
    days_until_stockout: int
    projected_date: date
    severity: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "material_id": self.material_id,
            "material_name": self.material_name,
            "current_stock": present(self.current_stock),
            "daily_usage": present(self.daily_usage),
            "days_until_stockout": self.days_until_stockout,
            "projected_date": self.projected_date.isoformat(),
            "severity": self.severity,
        }


def predict_stockouts(
    tenant_id: int,
    daily_usage: Optional[Mapping[int, Any]] = None,
    horizon_days: Optional[int] = None,
    as_of: Optional[date] = None,
) -> list[StockoutPrediction]:
    """Materials projected to run out within ``horizon_days`` at their usage rate."""
    require_tenant(tenant_id)
    horizon = horizon_days if horizon_days is not None else current_app.config.get("PREDICTIVE_ALERT_DAYS", 7)
    if isinstance(horizon, bool) or not isinstance(horizon, int) or horizon < 0:
        raise ConfigurationError("horizon_days must be a non-negative integer", details={"horizon_days": repr(horizon)})
    usage = daily_usage if daily_usage is not None else average_daily_usage(tenant_id)
    today = as_of or TimezoneUtils.utc_now().date()

    predictions = []
    materials = Material.for_tenant(tenant_id).filter(Material.is_archived.is_(False)).all()
    for material in materials:
        rate = usage_rate(usage.get(material.id, ZERO), material.id)
        if rate <= ZERO:
            continue
        stock = to_decimal(material.current_stock or ZERO)
        days = floor_units(stock, rate)
        if days > horizon:
            continue
        predictions.append(
            StockoutPrediction(
                material_id=material.id,
                material_name=material.name,
                current_stock=stock,
                daily_usage=rate,
                days_until_stockout=days,
                projected_date=today + timedelta(days=days),
                severity="critical" if days <= URGENT_WITHIN_DAYS else "warning",
            )
        )
    predictions.sort(key=lambda p: (p.days_until_stockout, p.material_id))
    logger.debug("Predicted %s stockouts within %s days (tenant %s)", len(predictions), horizon, tenant_id)
    return predictions
