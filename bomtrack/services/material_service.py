"""Material stock store.

Synopsis:
Tenant-scoped catalog management for raw materials plus the single entry point
for stock mutations. Every stock change writes a StockAdjustment audit row in
the same transaction as the stock update; either both land or neither does.

Glossary:
- Change type: restock (adds), deduction (removes), adjustment (signed delta),
  production (deduction booked by consume_for_production).
"""

from __future__ import annotations

import logging
from decimal import Decimal

from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Material, RecipeComponent, RecipeVersion, StockAdjustment
from ..models.recipe import VERSION_ACTIVE
from ..utils.quantities import ZERO, to_decimal
from .errors import ConfigurationError, InsufficientStockError
from .tenant_guard import load_scoped, require_tenant

logger = logging.getLogger(__name__)

CHANGE_RESTOCK = "restock"
CHANGE_DEDUCTION = "deduction"
CHANGE_ADJUSTMENT = "adjustment"
CHANGE_PRODUCTION = "production"
CHANGE_INITIAL = "initial_stock"
MANUAL_CHANGE_TYPES = (CHANGE_RESTOCK, CHANGE_DEDUCTION, CHANGE_ADJUSTMENT)

_EDITABLE_FIELDS = ("name", "unit_cost", "reorder_point", "reorder_quantity", "category")
_DECIMAL_FIELDS = ("unit_cost", "reorder_point", "reorder_quantity")


def _clean_fields(fields: dict) -> dict:
    cleaned = {}
    for key, value in fields.items():
        if key in _DECIMAL_FIELDS:
            if value is None:
                if key != "reorder_quantity":
                    raise ConfigurationError(f"{key} is required", details={"field": key})
                cleaned[key] = None
                continue
            try:
                number = to_decimal(value, field=key)
            except ValueError as exc:
                raise ConfigurationError(str(exc), details={"field": key}) from exc
            if number < ZERO:
                raise ConfigurationError(f"{key} cannot be negative", details={"field": key})
            cleaned[key] = number
        elif key == "name":
            name = (value or "").strip()
            if not name:
                raise ConfigurationError("Material name is required", details={"field": "name"})
            cleaned[key] = name
        elif key == "category":
            cleaned[key] = (value or "").strip() or None
        else:
            cleaned[key] = value
    return cleaned


def create_material(
    tenant_id: int,
    *,
    name: str,
    unit: str,
    unit_cost=0,
    current_stock=0,
    reorder_point=0,
    reorder_quantity=None,
    category: str | None = None,
    actor_id: int | None = None,
) -> Material:
    require_tenant(tenant_id)
    unit = (unit or "").strip()
    if not unit:
        raise ConfigurationError("Material unit is required", details={"field": "unit"})
    fields = _clean_fields(
        {
            "name": name,
            "unit_cost": unit_cost,
            "reorder_point": reorder_point,
            "reorder_quantity": reorder_quantity,
            "category": category,
        }
    )
    try:
        opening_stock = to_decimal(current_stock, field="current_stock")
    except ValueError as exc:
        raise ConfigurationError(str(exc), details={"field": "current_stock"}) from exc
    if opening_stock < ZERO:
        raise InsufficientStockError(
            "Opening stock cannot be negative", details={"current_stock": str(opening_stock)}
        )

    material = Material(tenant_id=tenant_id, unit=unit, current_stock=opening_stock, **fields)
    try:
        db.session.add(material)
        db.session.flush()
        if opening_stock > ZERO:
            db.session.add(
                StockAdjustment(
                    tenant_id=tenant_id,
                    material_id=material.id,
                    change_type=CHANGE_INITIAL,
                    quantity_change=opening_stock,
                    stock_before=ZERO,
                    stock_after=opening_stock,
                    reason="Opening stock",
                    actor_id=actor_id,
                )
            )
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Failed to create material %r for tenant %s", name, tenant_id)
        raise
    logger.info("Created material %s (%s) for tenant %s", material.id, material.name, tenant_id)
    return material


def get_material(tenant_id: int, material_id: int) -> Material:
    require_tenant(tenant_id)
    return load_scoped(Material, material_id, tenant_id)


def list_materials(tenant_id: int, include_archived: bool = False, category: str | None = None) -> list[Material]:
    require_tenant(tenant_id)
    query = Material.for_tenant(tenant_id)
    if not include_archived:
        query = query.filter(Material.is_archived.is_(False))
    if category:
        query = query.filter(Material.category == category)
    return query.order_by(Material.name, Material.id).all()


def list_categories(tenant_id: int) -> list[str]:
    require_tenant(tenant_id)
    rows = (
        db.session.query(Material.category)
        .filter(
            Material.tenant_id == tenant_id,
            Material.is_archived.is_(False),
            Material.category.isnot(None),
        )
        .distinct()
        .order_by(Material.category)
        .all()
    )
    return [row[0] for row in rows]


def update_material(tenant_id: int, material_id: int, **fields) -> Material:
    """Update catalog fields. Stock is deliberately not editable here; use adjust_stock."""
    require_tenant(tenant_id)
    unknown = sorted(set(fields) - set(_EDITABLE_FIELDS))
    if unknown:
        raise ConfigurationError(
            f"Cannot update material fields: {', '.join(unknown)}", details={"fields": unknown}
        )
    material = load_scoped(Material, material_id, tenant_id)
    for key, value in _clean_fields(fields).items():
        setattr(material, key, value)
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise
    return material


def active_recipe_usage(tenant_id: int, material_id: int) -> list[int]:
    """Ids of recipe lineages whose active version consumes the material."""
    rows = (
        db.session.query(RecipeVersion.recipe_id)
        .join(RecipeComponent, RecipeComponent.recipe_version_id == RecipeVersion.id)
        .filter(
            RecipeVersion.tenant_id == tenant_id,
            RecipeVersion.status == VERSION_ACTIVE,
            RecipeComponent.material_id == material_id,
        )
        .distinct()
        .all()
    )
    return sorted(row[0] for row in rows)


def archive_material(tenant_id: int, material_id: int) -> Material:
    require_tenant(tenant_id)
    material = load_scoped(Material, material_id, tenant_id)
    if material.is_archived:
        return material
    used_by = active_recipe_usage(tenant_id, material.id)
    if used_by:
        raise ConfigurationError(
            f"Material {material.id} is used by active recipes and cannot be archived",
            details={"material_id": material.id, "recipe_ids": used_by},
        )
    material.archive()
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise
    logger.info("Archived material %s for tenant %s", material.id, tenant_id)
    return material


def _signed_change(change_type: str, quantity: Decimal) -> Decimal:
    if change_type == CHANGE_ADJUSTMENT:
        if quantity == ZERO:
            raise ConfigurationError("Adjustment quantity cannot be zero", details={"quantity": "0"})
        return quantity
    if quantity <= ZERO:
        raise ConfigurationError(
            f"{change_type} quantity must be positive", details={"quantity": str(quantity)}
        )
    return quantity if change_type == CHANGE_RESTOCK else -quantity


def _apply_change(
    material: Material,
    change: Decimal,
    *,
    change_type: str,
    reason: str,
    notes: str | None,
    actor_id: int | None,
    recipe_version_id: int | None = None,
) -> StockAdjustment:
    before = to_decimal(material.current_stock or ZERO)
    after = before + change
    if after < ZERO:
        raise InsufficientStockError(
            f"Stock for material {material.id} would drop below zero",
            details={
                "material_id": material.id,
                "current_stock": str(before),
                "requested_change": str(change),
            },
        )
    material.current_stock = after
    entry = StockAdjustment(
        tenant_id=material.tenant_id,
        material_id=material.id,
        change_type=change_type,
        quantity_change=change,
        stock_before=before,
        stock_after=after,
        reason=reason,
        notes=notes,
        actor_id=actor_id,
        recipe_version_id=recipe_version_id,
    )
    db.session.add(entry)
    return entry


def adjust_stock(
    tenant_id: int,
    material_id: int,
    change_type: str,
    quantity,
    reason: str,
    notes: str | None = None,
    actor_id: int | None = None,
) -> StockAdjustment:
    """Apply one manual stock change and its audit row atomically."""
    require_tenant(tenant_id)
    if change_type not in MANUAL_CHANGE_TYPES:
        raise ConfigurationError(
            f"Unknown change type {change_type!r}",
            details={"change_type": change_type, "allowed": list(MANUAL_CHANGE_TYPES)},
        )
    if not (reason or "").strip():
        raise ConfigurationError("A reason is required for stock adjustments", details={"field": "reason"})
    try:
        amount = to_decimal(quantity, field="quantity")
    except ValueError as exc:
        raise ConfigurationError(str(exc), details={"field": "quantity"}) from exc
    change = _signed_change(change_type, amount)

    material = load_scoped(Material, material_id, tenant_id, lock=True)
    if material.is_archived:
        raise ConfigurationError(
            f"Material {material.id} is archived", details={"material_id": material.id}
        )
    try:
        entry = _apply_change(
            material,
            change,
            change_type=change_type,
            reason=reason.strip(),
            notes=notes,
            actor_id=actor_id,
        )
        db.session.commit()
    except InsufficientStockError:
        db.session.rollback()
        raise
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Stock adjustment failed for material %s (tenant %s)", material_id, tenant_id)
        raise

    logger.info(
        "Stock %s for material %s: %s -> %s (tenant %s)",
        change_type,
        material.id,
        entry.stock_before,
        entry.stock_after,
        tenant_id,
    )
    return entry


def consume_for_production(tenant_id: int, recipe_id: int, quantity, actor_id: int | None = None) -> list[StockAdjustment]:
    """Deduct a production run's materials from stock, all or nothing."""
    from .recipe_service import get_recipe_version
    from .recipe_service._validation import validate_version_components

    require_tenant(tenant_id)
    try:
        units = to_decimal(quantity, field="quantity")
    except ValueError as exc:
        raise ConfigurationError(str(exc), details={"field": "quantity"}) from exc
    if units <= ZERO:
        raise ConfigurationError("Production quantity must be positive", details={"quantity": str(units)})

    version = get_recipe_version(tenant_id, recipe_id)
    components = validate_version_components(version)
    if not components:
        raise ConfigurationError(
            f"Recipe {recipe_id} has no components to consume", details={"recipe_id": recipe_id}
        )

    shortages = []
    for component in components:
        required = component.quantity_per_unit * units
        stock = to_decimal(component.material.current_stock or ZERO)
        if required > stock:
            shortages.append(
                {
                    "material_id": component.material_id,
                    "required": str(required),
                    "available": str(stock),
                }
            )
    if shortages:
        raise InsufficientStockError(
            f"Insufficient stock to produce {units} of recipe {recipe_id}",
            details={"recipe_id": recipe_id, "shortages": shortages},
        )

    entries = []
    try:
        for component in components:
            material = load_scoped(Material, component.material_id, tenant_id, lock=True)
            entries.append(
                _apply_change(
                    material,
                    -(component.quantity_per_unit * units),
                    change_type=CHANGE_PRODUCTION,
                    reason=f"Production of recipe {recipe_id} v{version.version_number}",
                    notes=None,
                    actor_id=actor_id,
                    recipe_version_id=version.id,
                )
            )
        db.session.commit()
    except InsufficientStockError:
        db.session.rollback()
        raise
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Production consumption failed for recipe %s (tenant %s)", recipe_id, tenant_id)
        raise

    logger.info("Consumed materials for %s units of recipe %s (tenant %s)", units, recipe_id, tenant_id)
    return entries
