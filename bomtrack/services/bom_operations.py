"""BOM engine operations.

Synopsis:
The operations the API layer calls. Each takes ``tenant_id`` first and
validates it before any lookup; entities are loaded tenant-scoped so a
foreign id fails with TenantMismatchError before anything is computed.
"""

from __future__ import annotations

import logging
from typing import Any, Iterator, Mapping, Optional

from flask import current_app

from ..models import StockAlert
from ..utils.timezone_utils import TimezoneUtils
from . import production_planning, recipe_service, stock_alerts
from .alert_dashboard import AlertDashboard, build_dashboard
from .consumption_history import average_daily_usage
from .costing_engine import RecipeCost, cached_recipe_cost
from .errors import BomEngineError, ConfigurationError
from .production_planning import AvailabilityResult, BatchPlan, BulkAvailability, CapacitySnapshot
from .reorder_recommendations import ReorderRecommendation, generate_recommendations
from .stock_alerts import BlockingMaterial, ScanSummary
from .tenant_guard import require_tenant

logger = logging.getLogger(__name__)


def get_recipe_cost(tenant_id: int, recipe_id: int, version: Optional[int] = None) -> RecipeCost:
    require_tenant(tenant_id)
    recipe_version = recipe_service.get_recipe_version(tenant_id, recipe_id, version)
    return cached_recipe_cost(recipe_version)


def get_available_quantity(tenant_id: int, recipe_id: int, version: Optional[int] = None) -> AvailabilityResult:
    require_tenant(tenant_id)
    recipe_version = recipe_service.get_recipe_version(tenant_id, recipe_id, version)
    return production_planning.compute_available_quantity(recipe_version)


def get_available_quantities(tenant_id: int, recipe_ids) -> BulkAvailability:
    """Availability for each recipe; one bad id is reported in ``errors`` without failing the rest."""
    require_tenant(tenant_id)
    bulk = BulkAvailability()
    for recipe_id in dict.fromkeys(recipe_ids or ()):
        try:
            recipe_version = recipe_service.get_recipe_version(tenant_id, recipe_id)
        except BomEngineError as exc:
            logger.info("Skipping availability for recipe %s (tenant %s): %s", recipe_id, tenant_id, exc.code)
            bulk.errors[recipe_id] = exc.to_dict()
            continue
        bulk.results[recipe_id] = production_planning.compute_available_quantity(recipe_version)
    return bulk


def plan_batch(tenant_id: int, recipe_id: int, target_quantity, version: Optional[int] = None) -> BatchPlan:
    require_tenant(tenant_id)
    recipe_version = recipe_service.get_recipe_version(tenant_id, recipe_id, version)
    return production_planning.plan_batch(recipe_version, target_quantity)


def plan_multi_recipe(tenant_id: int, quantities: Mapping[int, Any]) -> BatchPlan:
    require_tenant(tenant_id)
    if not quantities:
        raise ConfigurationError("At least one recipe quantity is required", details={"recipes": {}})
    versions = {
        recipe_service.get_recipe_version(tenant_id, recipe_id): quantity
        for recipe_id, quantity in quantities.items()
    }
    return production_planning.plan_multi_recipe(versions)


def suggest_batch_sizes(tenant_id: int, recipe_id: int, candidates=production_planning.DEFAULT_BATCH_CANDIDATES):
    require_tenant(tenant_id)
    recipe_version = recipe_service.get_recipe_version(tenant_id, recipe_id)
    return production_planning.suggest_batch_sizes(recipe_version, candidates)


def _consumption_rates(tenant_id: int, daily_consumption):
    if daily_consumption is not None:
        return daily_consumption
    return average_daily_usage(tenant_id)


def _checked_horizon(horizon_days) -> int:
    limit = int(current_app.config.get("FORECAST_MAX_HORIZON_DAYS", 365))
    if isinstance(horizon_days, bool) or not isinstance(horizon_days, int) or not 0 <= horizon_days <= limit:
        raise ConfigurationError(
            f"horizon_days must be an integer between 0 and {limit}",
            details={"horizon_days": repr(horizon_days), "max": limit},
        )
    return horizon_days


def forecast_capacity(
    tenant_id: int,
    recipe_id: int,
    horizon_days: int,
    daily_consumption: Optional[Mapping[int, Any]] = None,
) -> Iterator[CapacitySnapshot]:
    """Lazy daily capacity projection; rates come from stock history when not supplied."""
    require_tenant(tenant_id)
    horizon = _checked_horizon(horizon_days)
    recipe_version = recipe_service.get_recipe_version(tenant_id, recipe_id)
    return production_planning.forecast_capacity(
        recipe_version,
        horizon,
        _consumption_rates(tenant_id, daily_consumption),
        start_date=TimezoneUtils.utc_now().date(),
    )


def days_until_stockout(
    tenant_id: int,
    recipe_id: int,
    horizon_days: int,
    daily_consumption: Optional[Mapping[int, Any]] = None,
) -> Optional[int]:
    require_tenant(tenant_id)
    horizon = _checked_horizon(horizon_days)
    recipe_version = recipe_service.get_recipe_version(tenant_id, recipe_id)
    return production_planning.days_until_stockout(
        recipe_version, horizon, _consumption_rates(tenant_id, daily_consumption)
    )


def scan_low_stock(tenant_id: Optional[int] = None, dry_run: bool = False) -> ScanSummary:
    return stock_alerts.scan_low_stock(tenant_id, dry_run=dry_run)


def acknowledge_alert(tenant_id: int, alert_id: int, notes: Optional[str] = None, actor_id: Optional[int] = None) -> StockAlert:
    return stock_alerts.acknowledge(tenant_id, alert_id, notes=notes, actor_id=actor_id)


def resolve_alert(tenant_id: int, alert_id: int, notes: Optional[str] = None, actor_id: Optional[int] = None) -> StockAlert:
    return stock_alerts.resolve(tenant_id, alert_id, notes=notes, actor_id=actor_id)


def dismiss_alert(tenant_id: int, alert_id: int, notes: Optional[str] = None, actor_id: Optional[int] = None) -> StockAlert:
    return stock_alerts.dismiss(tenant_id, alert_id, notes=notes, actor_id=actor_id)


def get_reorder_recommendations(
    tenant_id: int,
    daily_usage: Optional[Mapping[int, Any]] = None,
) -> list[ReorderRecommendation]:
    require_tenant(tenant_id)
    return generate_recommendations(tenant_id, daily_usage=daily_usage)


def get_low_stock_in_active_recipes(tenant_id: int) -> list[BlockingMaterial]:
    return stock_alerts.low_stock_in_active_recipes(tenant_id)


def get_alert_dashboard(
    tenant_id: int,
    daily_usage: Optional[Mapping[int, Any]] = None,
    limit: int = 10,
) -> AlertDashboard:
    return build_dashboard(tenant_id, daily_usage=daily_usage, limit=limit)


__all__ = [
    "get_recipe_cost",
    "get_available_quantity",
    "get_available_quantities",
    "plan_batch",
    "plan_multi_recipe",
    "suggest_batch_sizes",
    "forecast_capacity",
    "days_until_stockout",
    "scan_low_stock",
    "acknowledge_alert",
    "resolve_alert",
    "dismiss_alert",
    "get_reorder_recommendations",
    "get_low_stock_in_active_recipes",
    "get_alert_dashboard",
]
