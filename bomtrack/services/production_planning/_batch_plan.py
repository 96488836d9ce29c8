from __future__ import annotations

import logging
from decimal import Decimal
from typing import Dict, Iterable, Mapping

from ...models import RecipeVersion
from ...utils.quantities import ZERO, to_decimal
from ..costing_engine import compute_recipe_cost
from ..errors import ConfigurationError
from ..recipe_service import validate_version_components
from ._availability import compute_available_quantity
from .types import BatchPlan, BatchSizeSuggestion, MaterialRequirement

logger = logging.getLogger(__name__)

DEFAULT_BATCH_CANDIDATES = (10, 25, 50, 100, 200, 500)


def _target(value) -> Decimal:
    try:
        quantity = to_decimal(value, field="target_quantity")
    except ValueError as exc:
        raise ConfigurationError(str(exc), details={"field": "target_quantity"}) from exc
    if quantity < ZERO:
        raise ConfigurationError(
            "target_quantity cannot be negative", details={"target_quantity": str(quantity)}
        )
    return quantity


# --- Aggregate requirements ---
# Purpose: Scale each version's components linearly and merge them per material.
# Inputs: (version, quantity) pairs.
# Outputs: Requirements in first-seen component order.
def _aggregate(pairs: Iterable[tuple[RecipeVersion, Decimal]]) -> list[MaterialRequirement]:
    merged: Dict[int, MaterialRequirement] = {}
    for version, quantity in pairs:
        for component in validate_version_components(version):
            material = component.material
            required = to_decimal(component.quantity_per_unit) * quantity
            existing = merged.get(material.id)
            if existing is not None:
                existing.required_quantity += required
                continue
            merged[material.id] = MaterialRequirement(
                material_id=material.id,
                material_name=material.name,
                unit=material.unit,
                required_quantity=required,
                current_stock=to_decimal(material.current_stock or ZERO),
                unit_cost=to_decimal(material.unit_cost or ZERO),
            )
    return list(merged.values())


def plan_batch(version: RecipeVersion, target_quantity) -> BatchPlan:
    quantity = _target(target_quantity)
    plan = BatchPlan(
        target_quantity=quantity,
        requirements=_aggregate([(version, quantity)]),
        recipe_quantities={version.recipe_id: quantity},
    )
    logger.debug(
        "Planned %s units of recipe %s: feasible=%s", quantity, version.recipe_id, plan.is_feasible
    )
    return plan


def plan_multi_recipe(versions_and_quantities: Mapping[RecipeVersion, object]) -> BatchPlan:
    """One plan covering several recipes; shared materials are summed before shortfall."""
    pairs = [(version, _target(qty)) for version, qty in versions_and_quantities.items()]
    return BatchPlan(
        target_quantity=sum((qty for _, qty in pairs), ZERO),
        requirements=_aggregate(pairs),
        recipe_quantities={version.recipe_id: qty for version, qty in pairs},
    )


def suggest_batch_sizes(version: RecipeVersion, candidates: Iterable[int] = DEFAULT_BATCH_CANDIDATES) -> list[BatchSizeSuggestion]:
    """Candidate sizes producible from current stock, with cost and stock utilisation."""
    availability = compute_available_quantity(version)
    if availability.available_units <= 0:
        return []
    cost = compute_recipe_cost(version)
    suggestions = []
    for size in sorted({int(c) for c in candidates if int(c) > 0}):
        if size > availability.available_units:
            break
        suggestions.append(
            BatchSizeSuggestion(
                quantity=size,
                total_cost=cost.total_material_cost * size,
                cost_per_unit=cost.total_material_cost,
                utilisation=Decimal(size) / Decimal(availability.available_units),
            )
        )
    return suggestions
