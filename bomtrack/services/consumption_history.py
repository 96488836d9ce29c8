from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import StockAdjustment
from ..utils.quantities import ZERO, to_decimal
from ..utils.timezone_utils import TimezoneUtils
from .errors import ConfigurationError
from .tenant_guard import require_tenant

logger = logging.getLogger(__name__)


def average_daily_usage(
    tenant_id: int,
    lookback_days: int | None = None,
    as_of: datetime | None = None,
) -> dict[int, Decimal]:
    """Average units consumed per day for each material over the lookback window.

    Only outgoing movements (negative adjustments) count as usage. Materials with
    no outgoing movement in the window are absent from the result.
    """
    require_tenant(tenant_id)
    days = lookback_days if lookback_days is not None else current_app.config.get("CONSUMPTION_LOOKBACK_DAYS", 30)
    if isinstance(days, bool) or not isinstance(days, int) or days <= 0:
        raise ConfigurationError("lookback_days must be a positive integer", details={"lookback_days": repr(days)})
    end = TimezoneUtils.ensure_timezone_aware(as_of) or TimezoneUtils.utc_now()
    start = TimezoneUtils.days_ago(days, as_of=end)

    rows = (
        db.session.query(
            StockAdjustment.material_id,
            func.sum(StockAdjustment.quantity_change),
        )
        .filter(
            StockAdjustment.tenant_id == tenant_id,
            StockAdjustment.quantity_change < 0,
            StockAdjustment.created_at >= start,
            StockAdjustment.created_at <= end,
        )
        .group_by(StockAdjustment.material_id)
        .all()
    )

    usage = {}
    divisor = Decimal(days)
    for material_id, total in rows:
        consumed = -to_decimal(total or ZERO)
        if consumed > ZERO:
            usage[material_id] = consumed / divisor
    logger.debug("Derived usage for %s materials over %s days (tenant %s)", len(usage), days, tenant_id)
    return usage


def usage_rate(raw, material_id: int, *, field: str = "daily_usage") -> Decimal:
    """Caller-supplied per-day usage for one material as a non-negative Decimal."""
    try:
        rate = to_decimal(raw, field=field)
    except ValueError as exc:
        raise ConfigurationError(str(exc), details={"material_id": material_id}) from exc
    if rate < ZERO:
        raise ConfigurationError(
            f"{field} for material {material_id} cannot be negative",
            details={"material_id": material_id, "rate": str(rate)},
        )
    return rate
