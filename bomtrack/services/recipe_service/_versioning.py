"""Recipe version lifecycle.

Synopsis:
Copy-on-write editing, promotion and archival of recipe versions. An Active
version is never mutated; editing it produces a new Draft with the next
version number.

Glossary:
- Lineage: the Recipe row grouping all versions of one recipe.
- Current version: the lineage's Active version pointer (at most one).
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Iterable

from ...extensions import db
from ...models import Recipe, RecipeVersion
from ...models.recipe import VERSION_ARCHIVED, VERSION_DRAFT
from ...utils.quantities import ZERO, money, present
from ..errors import ConfigurationError, InvalidStateTransition, NotFoundError
from ._core import _attach_components, _commit, _version_number, get_recipe, get_recipe_version
from ._validation import ComponentSpec, normalize_component_specs, validate_version_components, validate_yield

logger = logging.getLogger(__name__)

_UNSET = object()


# --- Carry over components ---
# Purpose: Snapshot a version's components as specs for a successor version.
# Inputs: Source RecipeVersion.
# Outputs: ComponentSpec list in stored order.
def _specs_from_version(version: RecipeVersion) -> list[ComponentSpec]:
    return [
        ComponentSpec(material=c.material, quantity_per_unit=c.quantity_per_unit, unit=c.unit)
        for c in sorted(version.components, key=lambda c: (c.position, c.id or 0))
    ]


def _next_version_number(recipe: Recipe) -> int:
    return max((v.version_number for v in recipe.versions), default=0) + 1


# --- Edit recipe ---
# Purpose: Apply changes to the newest version, branching a Draft when it is Active.
# Inputs: Tenant, lineage id, and any of name/yield_quantity/yield_unit/notes/components.
# Outputs: The Draft version that now carries the changes.
def edit_recipe(
    tenant_id: int,
    recipe_id: int,
    *,
    name: str | None = None,
    yield_quantity=None,
    yield_unit: str | None = None,
    notes: Any = _UNSET,
    components: Iterable[Any] | None = None,
) -> RecipeVersion:
    recipe = get_recipe(tenant_id, recipe_id)
    latest = recipe.latest_version
    if latest is None or latest.status == VERSION_ARCHIVED:
        raise InvalidStateTransition(
            "Recipe", recipe_id, VERSION_ARCHIVED if latest else "empty", "edit"
        )

    quantity, unit = validate_yield(
        yield_quantity if yield_quantity is not None else latest.yield_quantity,
        yield_unit if yield_unit is not None else latest.yield_unit,
    )
    specs = normalize_component_specs(tenant_id, components) if components is not None else None

    if name is not None:
        clean_name = name.strip()
        if not clean_name:
            raise ConfigurationError("Recipe name is required", details={"field": "name"})
        recipe.name = clean_name

    if latest.is_draft:
        target = latest
        target.yield_quantity = quantity
        target.yield_unit = unit
        if notes is not _UNSET:
            target.notes = notes
        if specs is not None:
            target.components.clear()
            db.session.flush()
            _attach_components(target, specs)
        _commit("edit draft", recipe_id)
        logger.info("Edited draft v%s of recipe %s in place", target.version_number, recipe_id)
        return target

    target = RecipeVersion(
        tenant_id=recipe.tenant_id,
        version_number=_next_version_number(recipe),
        status=VERSION_DRAFT,
        yield_quantity=quantity,
        yield_unit=unit,
        notes=latest.notes if notes is _UNSET else notes,
    )
    recipe.versions.append(target)
    _attach_components(target, specs if specs is not None else _specs_from_version(latest))
    _commit("branch draft", recipe_id)
    logger.info(
        "Branched draft v%s from active v%s of recipe %s",
        target.version_number,
        latest.version_number,
        recipe_id,
    )
    return target


def activate_version(tenant_id: int, recipe_id: int, version_number: int) -> RecipeVersion:
    """Promote a Draft to Active, archiving the previous Active version."""
    recipe = get_recipe(tenant_id, recipe_id)
    version = recipe.version(_version_number(recipe_id, version_number))
    if version is None:
        raise NotFoundError("RecipeVersion", f"{recipe_id}/v{version_number}", tenant_id=tenant_id)
    if version.is_active:
        return version
    if not version.is_draft:
        raise InvalidStateTransition(
            "RecipeVersion", f"{recipe_id}/v{version.version_number}", version.status, "active"
        )
    if not validate_version_components(version):
        raise ConfigurationError(
            f"Recipe {recipe_id} v{version.version_number} has no components",
            details={"recipe_id": recipe_id, "version": version.version_number},
        )

    previous = recipe.current_version
    if previous is not None and previous is not version:
        previous.mark_archived()
    version.mark_active()
    recipe.current_version = version
    _commit("activate version", recipe_id)
    logger.info(
        "Activated v%s of recipe %s (previous: %s)",
        version.version_number,
        recipe_id,
        f"v{previous.version_number}" if previous is not None else "none",
    )
    return version


def archive_recipe(tenant_id: int, recipe_id: int) -> Recipe:
    recipe = get_recipe(tenant_id, recipe_id)
    for version in recipe.versions:
        if version.status != VERSION_ARCHIVED:
            version.mark_archived()
    recipe.current_version = None
    _commit("archive recipe", recipe_id)
    logger.info("Archived recipe %s for tenant %s", recipe_id, tenant_id)
    return recipe


def _component_map(version: RecipeVersion) -> dict[int, Any]:
    return {c.material_id: c for c in version.components}


def compare_versions(tenant_id: int, recipe_id: int, from_version: int, to_version: int) -> dict[str, Any]:
    """Component-level diff and cost delta between two versions of a lineage."""
    from ..costing_engine import compute_recipe_cost

    before = get_recipe_version(tenant_id, recipe_id, from_version)
    after = get_recipe_version(tenant_id, recipe_id, to_version)
    old = _component_map(before)
    new = _component_map(after)

    added = [
        {"material_id": mid, "quantity_per_unit": present(new[mid].quantity_per_unit), "unit": new[mid].unit}
        for mid in sorted(set(new) - set(old))
    ]
    removed = [
        {"material_id": mid, "quantity_per_unit": present(old[mid].quantity_per_unit), "unit": old[mid].unit}
        for mid in sorted(set(old) - set(new))
    ]
    modified = []
    for mid in sorted(set(old) & set(new)):
        a, b = old[mid], new[mid]
        if Decimal(a.quantity_per_unit) != Decimal(b.quantity_per_unit) or a.unit != b.unit:
            modified.append(
                {
                    "material_id": mid,
                    "from_quantity": present(a.quantity_per_unit),
                    "to_quantity": present(b.quantity_per_unit),
                    "from_unit": a.unit,
                    "to_unit": b.unit,
                }
            )

    cost_before = compute_recipe_cost(before).total_material_cost
    cost_after = compute_recipe_cost(after).total_material_cost
    delta = cost_after - cost_before
    return {
        "recipe_id": recipe_id,
        "from_version": before.version_number,
        "to_version": after.version_number,
        "added": added,
        "removed": removed,
        "modified": modified,
        "yield_changed": Decimal(before.yield_quantity) != Decimal(after.yield_quantity)
        or before.yield_unit != after.yield_unit,
        "cost_from": money(cost_before),
        "cost_to": money(cost_after),
        "cost_delta": money(delta),
        "cost_delta_percent": money(delta / cost_before * 100) if cost_before > ZERO else None,
    }
