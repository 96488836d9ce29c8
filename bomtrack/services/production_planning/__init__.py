"""
Production Planning Service Package

Availability, batch planning and capacity forecasting over a recipe version
and current material stock. Import from this package, not its internals.
"""

from ._availability import compute_available_quantity
from ._batch_plan import DEFAULT_BATCH_CANDIDATES, plan_batch, plan_multi_recipe, suggest_batch_sizes
from ._capacity_forecast import days_until_stockout, forecast_capacity
from .types import (
    AvailabilityResult,
    BatchPlan,
    BatchSizeSuggestion,
    BulkAvailability,
    CapacitySnapshot,
    ComponentCapacity,
    MaterialRequirement,
)

__all__ = [
    'compute_available_quantity',
    'plan_batch',
    'plan_multi_recipe',
    'suggest_batch_sizes',
    'DEFAULT_BATCH_CANDIDATES',
    'forecast_capacity',
    'days_until_stockout',
    'AvailabilityResult',
    'BatchPlan',
    'BatchSizeSuggestion',
    'BulkAvailability',
    'CapacitySnapshot',
    'ComponentCapacity',
    'MaterialRequirement',
]
