"""Recipe lineage creation, lookup and Draft component editing.

Synopsis:
A Recipe is a lineage; its RecipeVersion rows are the snapshots. Components can
only be edited on a Draft version. Active and Archived versions are read-only.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable

from sqlalchemy.exc import SQLAlchemyError

from ...extensions import db
from ...models import Recipe, RecipeComponent, RecipeVersion
from ...models.recipe import VERSION_DRAFT
from ..errors import ConfigurationError, InvalidStateTransition, NotFoundError
from ..tenant_guard import load_scoped, require_tenant
from ._validation import (
    ComponentSpec,
    build_component_spec,
    normalize_component_specs,
    validate_yield,
)

logger = logging.getLogger(__name__)


def _commit(action: str, recipe_id) -> None:
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Failed to %s for recipe %s", action, recipe_id)
        raise


# --- Attach components ---
# Purpose: Materialise validated specs as RecipeComponent rows in order.
# Inputs: Target version, validated specs, and the first position to use.
# Outputs: Newly created components (added to the version).
def _attach_components(version: RecipeVersion, specs: Iterable[ComponentSpec], start: int = 0) -> list[RecipeComponent]:
    created = []
    for offset, spec in enumerate(specs):
        component = RecipeComponent(
            tenant_id=version.tenant_id,
            material=spec.material,
            material_id=spec.material.id,
            quantity_per_unit=spec.quantity_per_unit,
            unit=spec.unit,
            position=start + offset,
        )
        version.components.append(component)
        created.append(component)
    return created


def _renumber(version: RecipeVersion) -> None:
    ordered = sorted(version.components, key=lambda c: (c.position, c.id or 0))
    for index, component in enumerate(ordered):
        component.position = index


def create_recipe(
    tenant_id: int,
    product_id: int | None,
    name: str,
    yield_quantity,
    yield_unit: str,
    components: Iterable[Any] = (),
    notes: str | None = None,
) -> Recipe:
    """Create a lineage with version 1 in Draft."""
    require_tenant(tenant_id)
    clean_name = (name or "").strip()
    if not clean_name:
        raise ConfigurationError("Recipe name is required", details={"field": "name"})
    quantity, unit = validate_yield(yield_quantity, yield_unit)
    specs = normalize_component_specs(tenant_id, components)

    recipe = Recipe(tenant_id=tenant_id, product_id=product_id, name=clean_name)
    version = RecipeVersion(
        tenant_id=tenant_id,
        version_number=1,
        status=VERSION_DRAFT,
        yield_quantity=quantity,
        yield_unit=unit,
        notes=notes,
    )
    recipe.versions.append(version)
    _attach_components(version, specs)
    db.session.add(recipe)
    _commit("create recipe", clean_name)
    logger.info("Created recipe %s (%s) for tenant %s", recipe.id, recipe.name, tenant_id)
    return recipe


def get_recipe(tenant_id: int, recipe_id: int) -> Recipe:
    require_tenant(tenant_id)
    return load_scoped(Recipe, recipe_id, tenant_id)


def _version_number(recipe_id: int, version) -> int:
    if isinstance(version, bool) or not isinstance(version, int) or version < 1:
        raise ConfigurationError(
            "version must be a positive integer",
            details={"recipe_id": recipe_id, "version": repr(version)},
        )
    return version


def get_recipe_version(tenant_id: int, recipe_id: int, version: int | None = None) -> RecipeVersion:
    """Explicit version number, otherwise the lineage's current Active version."""
    recipe = get_recipe(tenant_id, recipe_id)
    if version is not None:
        found = recipe.version(_version_number(recipe_id, version))
        if found is None:
            raise NotFoundError("RecipeVersion", f"{recipe_id}/v{version}", tenant_id=tenant_id)
        return found
    if recipe.current_version is None:
        raise NotFoundError("RecipeVersion", f"{recipe_id}/active", tenant_id=tenant_id)
    return recipe.current_version


def list_versions(tenant_id: int, recipe_id: int) -> list[RecipeVersion]:
    return list(get_recipe(tenant_id, recipe_id).versions)


def list_recipes(tenant_id: int, active_only: bool = False) -> list[Recipe]:
    require_tenant(tenant_id)
    query = Recipe.for_tenant(tenant_id)
    if active_only:
        query = query.filter(Recipe.current_version_id.isnot(None))
    return query.order_by(Recipe.name, Recipe.id).all()


def _editable_draft(tenant_id: int, recipe_id: int, version: int | None) -> RecipeVersion:
    recipe = get_recipe(tenant_id, recipe_id)
    target = recipe.version(_version_number(recipe_id, version)) if version is not None else recipe.latest_version
    if target is None:
        raise NotFoundError("RecipeVersion", f"{recipe_id}/v{version}", tenant_id=tenant_id)
    if not target.is_draft:
        raise InvalidStateTransition(
            "RecipeVersion", f"{recipe_id}/v{target.version_number}", target.status, "edit"
        )
    return target


def _find_component(version: RecipeVersion, material_id: int) -> RecipeComponent:
    for component in version.components:
        if component.material_id == material_id:
            return component
    raise NotFoundError("RecipeComponent", f"v{version.id}/material {material_id}", tenant_id=version.tenant_id)


def add_component(
    tenant_id: int,
    recipe_id: int,
    material_id: int,
    quantity_per_unit,
    unit: str,
    version: int | None = None,
) -> RecipeComponent:
    draft = _editable_draft(tenant_id, recipe_id, version)
    spec = build_component_spec(tenant_id, material_id, quantity_per_unit, unit)
    if any(c.material_id == spec.material.id for c in draft.components):
        raise ConfigurationError(
            f"Material {spec.material.id} is already part of this recipe version",
            details={"material_id": spec.material.id},
        )
    next_position = max((c.position for c in draft.components), default=-1) + 1
    (component,) = _attach_components(draft, [spec], start=next_position)
    _commit("add component", recipe_id)
    return component


def update_component(
    tenant_id: int,
    recipe_id: int,
    material_id: int,
    quantity_per_unit=None,
    unit: str | None = None,
    position: int | None = None,
    version: int | None = None,
) -> RecipeComponent:
    draft = _editable_draft(tenant_id, recipe_id, version)
    component = _find_component(draft, material_id)
    spec = build_component_spec(
        tenant_id,
        material_id,
        quantity_per_unit if quantity_per_unit is not None else component.quantity_per_unit,
        unit if unit is not None else component.unit,
    )
    component.quantity_per_unit = spec.quantity_per_unit
    component.unit = spec.unit
    if position is not None:
        ordered = [c for c in sorted(draft.components, key=lambda c: (c.position, c.id or 0)) if c is not component]
        ordered.insert(max(0, min(int(position), len(ordered))), component)
        for index, item in enumerate(ordered):
            item.position = index
    _commit("update component", recipe_id)
    return component


def remove_component(tenant_id: int, recipe_id: int, material_id: int, version: int | None = None) -> None:
    draft = _editable_draft(tenant_id, recipe_id, version)
    component = _find_component(draft, material_id)
    draft.components.remove(component)
    _renumber(draft)
    _commit("remove component", recipe_id)


def replace_components(
    tenant_id: int,
    recipe_id: int,
    components: Iterable[Any],
    version: int | None = None,
) -> RecipeVersion:
    draft = _editable_draft(tenant_id, recipe_id, version)
    specs = normalize_component_specs(tenant_id, components)
    draft.components.clear()
    # Flush deletes first so the (version, material) unique constraint holds.
    db.session.flush()
    _attach_components(draft, specs)
    _commit("replace components", recipe_id)
    return draft
