"""Low-stock materials joined to the active recipes they hold up."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional

from ...extensions import db
from ...models import Material, Recipe, RecipeComponent, RecipeVersion
from ...models.recipe import VERSION_ACTIVE
from ...models.stock_alert import SEVERITY_HEALTHY, SEVERITY_RANK
from ...utils.quantities import present
from ..tenant_guard import require_tenant
from ._severity import classify, critical_ratio

logger = logging.getLogger(__name__)


@dataclass
class AffectedRecipe:
    recipe_id: int
    recipe_name: str
    product_id: Optional[int]
    quantity_per_unit: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "recipe_id": self.recipe_id,
            "recipe_name": self.recipe_name,
            "product_id": self.product_id,
            "quantity_per_unit": present(self.quantity_per_unit),
        }


@dataclass
class BlockingMaterial:
    material_id: int
    material_name: str
    unit: str
    current_stock: Decimal
    reorder_point: Decimal
    severity: str
    affected_recipes: List[AffectedRecipe] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "material_id": self.material_id,
            "material_name": self.material_name,
            "unit": self.unit,
            "current_stock": present(self.current_stock),
            "reorder_point": present(self.reorder_point),
            "severity": self.severity,
            "affected_recipes": [r.to_dict() for r in self.affected_recipes],
        }


def low_stock_in_active_recipes(tenant_id: int) -> list[BlockingMaterial]:
    """Unhealthy materials used by at least one Active recipe version, worst first.

    Ordered by severity, then material id. Materials nobody's active recipe
    uses are left to the reorder report.
    """
    require_tenant(tenant_id)
    ratio = critical_ratio()
    rows = (
        db.session.query(Material, Recipe, RecipeComponent.quantity_per_unit)
        .join(RecipeComponent, RecipeComponent.material_id == Material.id)
        .join(RecipeVersion, RecipeVersion.id == RecipeComponent.recipe_version_id)
        .join(Recipe, Recipe.id == RecipeVersion.recipe_id)
        .filter(
            Material.tenant_id == tenant_id,
            Material.is_archived.is_(False),
            RecipeVersion.tenant_id == tenant_id,
            RecipeVersion.status == VERSION_ACTIVE,
        )
        .order_by(Material.id, Recipe.name, Recipe.id)
        .all()
    )

    blocking: dict[int, BlockingMaterial] = {}
    for material, recipe, quantity in rows:
        entry = blocking.get(material.id)
        if entry is None:
            severity = classify(material.current_stock, material.reorder_point, ratio)
            if severity == SEVERITY_HEALTHY:
                continue
            entry = blocking[material.id] = BlockingMaterial(
                material_id=material.id,
                material_name=material.name,
                unit=material.unit,
                current_stock=material.current_stock,
                reorder_point=material.reorder_point,
                severity=severity,
            )
        entry.affected_recipes.append(
            AffectedRecipe(
                recipe_id=recipe.id,
                recipe_name=recipe.name,
                product_id=recipe.product_id,
                quantity_per_unit=quantity,
            )
        )

    result = sorted(blocking.values(), key=lambda b: (-SEVERITY_RANK[b.severity], b.material_id))
    logger.debug("%s low-stock materials block active recipes (tenant %s)", len(result), tenant_id)
    return result
