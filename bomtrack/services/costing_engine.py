"""Recipe cost rollup.

Synopsis:
Sums ``quantity_per_unit x unit_cost`` over a version's components and divides
by the version's yield. Arithmetic stays in Decimal; rounding to cents happens
in ``to_dict`` only. Rollups are cached per (tenant, version) and invalidated
by a tenant namespace bump once a transaction touching Material,
RecipeComponent or RecipeVersion rows commits.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional

from flask import has_app_context

from ..extensions import cache, db
from ..models import RecipeVersion
from ..utils.quantities import ZERO, money, present, to_decimal
from .cache_invalidation import has_uncommitted_cost_changes, recipe_cost_cache_key
from .recipe_service import validate_version_components

logger = logging.getLogger(__name__)

STATUS_COMPLETE = "complete"
STATUS_INCOMPLETE = "incomplete"


@dataclass
class CostLine:
    """Cost contribution of a single component"""
    material_id: int
    material_name: str
    quantity_per_unit: Decimal
    unit: str
    unit_cost: Decimal
    line_cost: Decimal
    share: Decimal = ZERO

    def to_dict(self) -> Dict[str, Any]:
        return {
            "material_id": self.material_id,
            "material_name": self.material_name,
            "quantity_per_unit": present(self.quantity_per_unit),
            "unit": self.unit,
            "unit_cost": money(self.unit_cost),
            "line_cost": money(self.line_cost),
            "share_percent": money(self.share * 100),
        }


@dataclass
class RecipeCost:
    recipe_id: int
    recipe_version_id: int
    version_number: int
    yield_quantity: Decimal
    yield_unit: str
    total_material_cost: Decimal
    cost_per_yield_unit: Decimal
    status: str = STATUS_COMPLETE
    lines: List[CostLine] = field(default_factory=list)

    @property
    def is_incomplete(self) -> bool:
        return self.status == STATUS_INCOMPLETE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "recipe_id": self.recipe_id,
            "recipe_version_id": self.recipe_version_id,
            "version_number": self.version_number,
            "yield_quantity": present(self.yield_quantity),
            "yield_unit": self.yield_unit,
            "total_material_cost": money(self.total_material_cost),
            "cost_per_unit": money(self.cost_per_yield_unit),
            "status": self.status,
            "breakdown": [line.to_dict() for line in self.lines],
        }


def compute_recipe_cost(version: RecipeVersion) -> RecipeCost:
    components = validate_version_components(version)
    yield_quantity = to_decimal(version.yield_quantity, field="yield_quantity")

    lines = []
    total = ZERO
    for component in components:
        material = component.material
        unit_cost = to_decimal(material.unit_cost or ZERO)
        quantity = to_decimal(component.quantity_per_unit)
        line_cost = quantity * unit_cost
        total += line_cost
        lines.append(
            CostLine(
                material_id=material.id,
                material_name=material.name,
                quantity_per_unit=quantity,
                unit=component.unit,
                unit_cost=unit_cost,
                line_cost=line_cost,
            )
        )
    if total > ZERO:
        for line in lines:
            line.share = line.line_cost / total

    return RecipeCost(
        recipe_id=version.recipe_id,
        recipe_version_id=version.id,
        version_number=version.version_number,
        yield_quantity=yield_quantity,
        yield_unit=version.yield_unit,
        total_material_cost=total,
        cost_per_yield_unit=total / yield_quantity if yield_quantity > ZERO else ZERO,
        status=STATUS_COMPLETE if components else STATUS_INCOMPLETE,
        lines=lines,
    )


def cached_recipe_cost(version: RecipeVersion) -> RecipeCost:
    """Cost rollup through the tenant-scoped cache; cache failures fall back to computing."""
    if not has_app_context() or version.id is None:
        return compute_recipe_cost(version)
    if has_uncommitted_cost_changes(db.session(), version.tenant_id):
        # the cache only ever holds committed costs
        return compute_recipe_cost(version)
    key = recipe_cost_cache_key(version.tenant_id, version.id)
    cached: Optional[RecipeCost] = None
    try:
        cached = cache.get(key)
    except Exception:
        logger.warning("Recipe cost cache read failed for %s", key, exc_info=True)
    if cached is not None:
        return cached

    result = compute_recipe_cost(version)
    try:
        cache.set(key, result)
    except Exception:
        logger.warning("Recipe cost cache write failed for %s", key, exc_info=True)
    return result
