"""
Production Planning Types

Result structures for availability, batch planning and capacity forecasting.
Quantities are Decimal internally; ``to_dict`` produces presentation floats.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional

from ...utils.quantities import ZERO, money, present

STATUS_OK = "ok"
STATUS_NO_COMPONENTS = "no_components"


@dataclass
class ComponentCapacity:
    """How many output units one component's stock can cover"""
    material_id: int
    material_name: str
    current_stock: Decimal
    quantity_per_unit: Decimal
    max_units: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "material_id": self.material_id,
            "material_name": self.material_name,
            "current_stock": present(self.current_stock),
            "quantity_per_unit": present(self.quantity_per_unit),
            "max_units": self.max_units,
        }


@dataclass
class AvailabilityResult:
    recipe_id: int
    recipe_version_id: int
    available_units: int
    limiting_material_id: Optional[int]
    status: str = STATUS_OK
    components: List[ComponentCapacity] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "recipe_id": self.recipe_id,
            "recipe_version_id": self.recipe_version_id,
            "available_units": self.available_units,
            "limiting_material_id": self.limiting_material_id,
            "status": self.status,
            "components": [c.to_dict() for c in self.components],
        }


@dataclass
class BulkAvailability:
    """Availability for several recipes; recipes that could not be evaluated land in ``errors``."""
    results: Dict[int, AvailabilityResult] = field(default_factory=dict)
    errors: Dict[int, Dict[str, Any]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "results": {recipe_id: r.to_dict() for recipe_id, r in self.results.items()},
            "errors": dict(self.errors),
        }


@dataclass
class MaterialRequirement:
    """Requirement for a single material in a batch"""
    material_id: int
    material_name: str
    unit: str
    required_quantity: Decimal
    current_stock: Decimal
    unit_cost: Decimal

    @property
    def shortfall(self) -> Decimal:
        return max(ZERO, self.required_quantity - self.current_stock)

    @property
    def shortfall_cost(self) -> Decimal:
        return self.shortfall * self.unit_cost

    @property
    def material_cost(self) -> Decimal:
        return self.required_quantity * self.unit_cost

    def to_dict(self) -> Dict[str, Any]:
        return {
            "material_id": self.material_id,
            "material_name": self.material_name,
            "unit": self.unit,
            "required_quantity": present(self.required_quantity),
            "current_stock": present(self.current_stock),
            "shortfall": present(self.shortfall),
            "shortfall_cost": money(self.shortfall_cost),
        }


@dataclass
class BatchPlan:
    target_quantity: Decimal
    requirements: List[MaterialRequirement] = field(default_factory=list)
    recipe_quantities: Dict[int, Decimal] = field(default_factory=dict)

    @property
    def is_feasible(self) -> bool:
        return all(req.shortfall == ZERO for req in self.requirements)

    @property
    def purchase_cost(self) -> Decimal:
        return sum((req.shortfall_cost for req in self.requirements if req.shortfall > ZERO), ZERO)

    @property
    def total_material_cost(self) -> Decimal:
        return sum((req.material_cost for req in self.requirements), ZERO)

    @property
    def shortages(self) -> List[MaterialRequirement]:
        return [req for req in self.requirements if req.shortfall > ZERO]

    def requirement_for(self, material_id: int) -> Optional[MaterialRequirement]:
        for req in self.requirements:
            if req.material_id == material_id:
                return req
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "target_quantity": present(self.target_quantity),
            "recipes": {str(k): present(v) for k, v in self.recipe_quantities.items()},
            "requirements": [req.to_dict() for req in self.requirements],
            "is_feasible": self.is_feasible,
            "purchase_cost": money(self.purchase_cost),
            "total_material_cost": money(self.total_material_cost),
        }


@dataclass(frozen=True)
class CapacitySnapshot:
    day: int
    available_units: int
    limiting_material_id: Optional[int]
    on_date: Optional[date] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "day": self.day,
            "date": self.on_date.isoformat() if self.on_date else None,
            "available_units": self.available_units,
            "limiting_material_id": self.limiting_material_id,
        }


@dataclass
class BatchSizeSuggestion:
    quantity: int
    total_cost: Decimal
    cost_per_unit: Decimal
    utilisation: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "quantity": self.quantity,
            "total_cost": money(self.total_cost),
            "cost_per_unit": money(self.cost_per_unit),
            "utilisation_percent": money(self.utilisation * 100),
        }
