from __future__ import annotations

import logging
from decimal import Decimal
from typing import Mapping, Optional

from ...models import RecipeVersion
from ...utils.quantities import ZERO, floor_units, to_decimal
from ..recipe_service import validate_version_components
from .types import STATUS_NO_COMPONENTS, STATUS_OK, AvailabilityResult, ComponentCapacity

logger = logging.getLogger(__name__)


def compute_available_quantity(
    version: RecipeVersion,
    stock_overrides: Optional[Mapping[int, Decimal]] = None,
) -> AvailabilityResult:
    """Maximum whole units producible from current (or projected) stock.

    Each component allows ``floor(stock / quantity_per_unit)`` units; the result
    is the minimum. On ties the component stored first keeps the limiting slot.
    ``stock_overrides`` replaces stock per material id (used for projections).
    """
    components = validate_version_components(version)
    if not components:
        return AvailabilityResult(
            recipe_id=version.recipe_id,
            recipe_version_id=version.id,
            available_units=0,
            limiting_material_id=None,
            status=STATUS_NO_COMPONENTS,
        )

    overrides = stock_overrides or {}
    capacities = []
    best_units = None
    limiting_id = None
    for component in components:
        material = component.material
        if material.id in overrides:
            stock = to_decimal(overrides[material.id])
        else:
            stock = to_decimal(material.current_stock or ZERO)
        per_unit = to_decimal(component.quantity_per_unit)
        units = floor_units(stock, per_unit)
        capacities.append(
            ComponentCapacity(
                material_id=material.id,
                material_name=material.name,
                current_stock=stock,
                quantity_per_unit=per_unit,
                max_units=units,
            )
        )
        # strict comparison: earliest component wins ties
        if best_units is None or units < best_units:
            best_units = units
            limiting_id = material.id

    return AvailabilityResult(
        recipe_id=version.recipe_id,
        recipe_version_id=version.id,
        available_units=best_units,
        limiting_material_id=limiting_id,
        status=STATUS_OK,
        components=capacities,
    )
