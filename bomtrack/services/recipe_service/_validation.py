"""Component validation shared by recipe editing and every calculation.

Units must match the material's base unit exactly (after trimming whitespace);
there is no implicit conversion between compatible units.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterable, Mapping, Sequence

from ...models import Material, RecipeComponent, RecipeVersion
from ...utils.quantities import ZERO, to_decimal
from ..errors import ConfigurationError, TenantMismatchError
from ..tenant_guard import load_scoped


@dataclass(frozen=True)
class ComponentSpec:
    material: Material
    quantity_per_unit: Decimal
    unit: str


def _units_match(component_unit: str | None, material_unit: str | None) -> bool:
    return (component_unit or "").strip() == (material_unit or "").strip()


def _positive_quantity(value, *, material_id) -> Decimal:
    try:
        quantity = to_decimal(value, field="quantity_per_unit")
    except ValueError as exc:
        raise ConfigurationError(str(exc), details={"material_id": material_id}) from exc
    if quantity <= ZERO:
        raise ConfigurationError(
            f"quantity_per_unit must be greater than zero for material {material_id}",
            details={"material_id": material_id, "quantity_per_unit": str(quantity)},
        )
    return quantity


def _unpack(raw: Any) -> tuple[Any, Any, Any]:
    if isinstance(raw, Mapping):
        return raw.get("material_id"), raw.get("quantity_per_unit"), raw.get("unit")
    if isinstance(raw, Sequence) and not isinstance(raw, str) and len(raw) == 3:
        return raw[0], raw[1], raw[2]
    raise ConfigurationError(
        "Components must be mappings or (material_id, quantity_per_unit, unit) triples",
        details={"component": repr(raw)},
    )


def build_component_spec(tenant_id: int, material_id, quantity_per_unit, unit) -> ComponentSpec:
    material = load_scoped(Material, material_id, tenant_id)
    if material.is_archived:
        raise ConfigurationError(
            f"Material {material.id} is archived and cannot be used in recipes",
            details={"material_id": material.id},
        )
    quantity = _positive_quantity(quantity_per_unit, material_id=material.id)
    unit_value = (unit or "").strip()
    if not unit_value:
        raise ConfigurationError(
            f"A unit is required for material {material.id}", details={"material_id": material.id}
        )
    if not _units_match(unit_value, material.unit):
        raise ConfigurationError(
            f"Unit {unit_value!r} does not match base unit {material.unit!r} of material {material.id}",
            details={"material_id": material.id, "unit": unit_value, "material_unit": material.unit},
        )
    return ComponentSpec(material=material, quantity_per_unit=quantity, unit=material.unit.strip())


def normalize_component_specs(tenant_id: int, components: Iterable[Any]) -> list[ComponentSpec]:
    specs = []
    seen = set()
    for raw in components or ():
        material_id, quantity, unit = _unpack(raw)
        spec = build_component_spec(tenant_id, material_id, quantity, unit)
        if spec.material.id in seen:
            raise ConfigurationError(
                f"Material {spec.material.id} appears more than once in the recipe",
                details={"material_id": spec.material.id},
            )
        seen.add(spec.material.id)
        specs.append(spec)
    return specs


def validate_version_components(version: RecipeVersion) -> list[RecipeComponent]:
    """Return the version's components in stored order, rejecting bad ones.

    Raises ConfigurationError for non-positive quantities or unit mismatches and
    TenantMismatchError for a component pointing at another tenant's material.
    """
    components = sorted(version.components, key=lambda c: (c.position, c.id or 0))
    for component in components:
        material = component.material
        if material.tenant_id != version.tenant_id:
            raise TenantMismatchError(
                "Material",
                material.id,
                expected_tenant=version.tenant_id,
                actual_tenant=material.tenant_id,
            )
        _positive_quantity(component.quantity_per_unit, material_id=material.id)
        if not _units_match(component.unit, material.unit):
            raise ConfigurationError(
                f"Component unit {component.unit!r} does not match base unit {material.unit!r} "
                f"of material {material.id}",
                details={
                    "material_id": material.id,
                    "unit": component.unit,
                    "material_unit": material.unit,
                },
            )
    return components


def validate_yield(yield_quantity, yield_unit) -> tuple[Decimal, str]:
    try:
        quantity = to_decimal(yield_quantity, field="yield_quantity")
    except ValueError as exc:
        raise ConfigurationError(str(exc), details={"field": "yield_quantity"}) from exc
    if quantity <= ZERO:
        raise ConfigurationError("yield_quantity must be greater than zero", details={"field": "yield_quantity"})
    unit = (yield_unit or "").strip()
    if not unit:
        raise ConfigurationError("yield_unit is required", details={"field": "yield_unit"})
    return quantity, unit
