from __future__ import annotations

import logging
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterator, Mapping, Optional

from ...models import RecipeVersion
from ...utils.quantities import ZERO, to_decimal
from ..consumption_history import usage_rate
from ..errors import ConfigurationError
from ..recipe_service import validate_version_components
from ._availability import compute_available_quantity
from .types import CapacitySnapshot

logger = logging.getLogger(__name__)


def _rates(daily_consumption: Optional[Mapping[int, object]]) -> dict[int, Decimal]:
    rates = {}
    for material_id, raw in (daily_consumption or {}).items():
        rates[int(material_id)] = usage_rate(raw, material_id, field="daily_consumption")
    return rates


def forecast_capacity(
    version: RecipeVersion,
    horizon_days: int,
    daily_consumption: Optional[Mapping[int, object]] = None,
    start_date: Optional[date] = None,
) -> Iterator[CapacitySnapshot]:
    """Lazy day-by-day projection of producible units.

    Day 0 reflects current stock. Each later day subtracts ``rate x day`` from
    every component's stock (floored at zero). The sequence ends after the
    first day with zero units, or after ``horizon_days``.
    """
    if isinstance(horizon_days, bool) or not isinstance(horizon_days, int) or horizon_days < 0:
        raise ConfigurationError(
            "horizon_days must be a non-negative integer", details={"horizon_days": repr(horizon_days)}
        )
    components = validate_version_components(version)
    rates = _rates(daily_consumption)
    baseline = {c.material.id: to_decimal(c.material.current_stock or ZERO) for c in components}
    return _project(version, horizon_days, baseline, rates, start_date)


def _project(version, horizon_days, baseline, rates, start_date) -> Iterator[CapacitySnapshot]:
    for day in range(horizon_days + 1):
        projected = {
            material_id: max(ZERO, stock - rates.get(material_id, ZERO) * day)
            for material_id, stock in baseline.items()
        }
        result = compute_available_quantity(version, stock_overrides=projected)
        yield CapacitySnapshot(
            day=day,
            available_units=result.available_units,
            limiting_material_id=result.limiting_material_id,
            on_date=start_date + timedelta(days=day) if start_date else None,
        )
        if result.available_units == 0:
            return


def days_until_stockout(
    version: RecipeVersion,
    horizon_days: int,
    daily_consumption: Optional[Mapping[int, object]] = None,
) -> Optional[int]:
    """First forecast day with zero producible units, or None within the horizon."""
    for snapshot in forecast_capacity(version, horizon_days, daily_consumption):
        if snapshot.available_units == 0:
            return snapshot.day
    return None
