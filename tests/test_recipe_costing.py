"""Recipe cost rollup: totals, per-yield cost, presentation rounding and caching."""

from __future__ import annotations

from decimal import Decimal

import pytest

from bomtrack.extensions import db
from bomtrack.services import bom_operations, cache_invalidation, costing_engine, material_service, recipe_service
from bomtrack.services.errors import ConfigurationError, InvalidTenantError, NotFoundError, TenantMismatchError


@pytest.mark.usefixtures("app_context")
def test_cost_rollup_sums_components_at_full_precision(cake):
    recipe, flour, sugar = cake

    result = bom_operations.get_recipe_cost(1, recipe.id)

    assert result.total_material_cost == Decimal("1.1")
    assert result.cost_per_yield_unit == Decimal("1.1")
    assert result.status == costing_engine.STATUS_COMPLETE
    assert [line.material_id for line in result.lines] == [flour.id, sugar.id]
    assert result.lines[0].line_cost == Decimal("0.6")
    assert result.lines[1].line_cost == Decimal("0.5")


@pytest.mark.usefixtures("app_context")
def test_cost_per_unit_divides_by_yield_and_rounds_only_for_presentation(make_material, make_recipe):
    flour = make_material(1, name="Flour", unit_cost="1.20", stock="10")
    sugar = make_material(1, name="Sugar", unit_cost="2.50", stock="3")
    recipe = make_recipe(1, [(flour, "0.5"), (sugar, "0.2")], yield_quantity=4)

    result = bom_operations.get_recipe_cost(1, recipe.id)

    assert result.cost_per_yield_unit == Decimal("0.275")
    payload = result.to_dict()
    assert payload["cost_per_unit"] == pytest.approx(0.28)
    assert payload["total_material_cost"] == pytest.approx(1.10)
    assert payload["breakdown"][0]["share_percent"] == pytest.approx(54.55)


@pytest.mark.usefixtures("app_context")
def test_recipe_without_components_costs_zero_and_is_flagged(make_recipe):
    recipe = make_recipe(1, [], activate=False)

    result = bom_operations.get_recipe_cost(1, recipe.id, version=1)

    assert result.total_material_cost == Decimal("0")
    assert result.is_incomplete
    assert result.to_dict()["status"] == "incomplete"


@pytest.mark.usefixtures("app_context")
def test_cost_lookup_enforces_tenant_before_calculating(cake):
    recipe, _flour, _sugar = cake

    with pytest.raises(TenantMismatchError):
        bom_operations.get_recipe_cost(2, recipe.id)
    with pytest.raises(NotFoundError):
        bom_operations.get_recipe_cost(1, 999_999)
    with pytest.raises(InvalidTenantError):
        bom_operations.get_recipe_cost(None, recipe.id)


@pytest.mark.usefixtures("app_context")
def test_cost_requires_an_active_version_when_none_requested(make_material, make_recipe):
    flour = make_material(1, name="Flour")
    recipe = make_recipe(1, [(flour, "1")], activate=False)

    with pytest.raises(NotFoundError):
        bom_operations.get_recipe_cost(1, recipe.id)


@pytest.mark.usefixtures("app_context")
def test_cached_cost_is_reused_until_material_changes(cake, monkeypatch):
    recipe, flour, _sugar = cake
    calls = {"count": 0}
    real_compute = costing_engine.compute_recipe_cost

    def _counting(version):
        calls["count"] += 1
        return real_compute(version)

    monkeypatch.setattr(costing_engine, "compute_recipe_cost", _counting)

    first = bom_operations.get_recipe_cost(1, recipe.id)
    second = bom_operations.get_recipe_cost(1, recipe.id)
    assert calls["count"] == 1
    assert second.total_material_cost == first.total_material_cost

    material_service.update_material(1, flour.id, unit_cost="2.20")
    third = bom_operations.get_recipe_cost(1, recipe.id)

    assert calls["count"] == 2
    assert third.total_material_cost == Decimal("1.6")


@pytest.mark.usefixtures("app_context")
def test_draft_component_change_invalidates_cached_cost(make_material, make_recipe):
    flour = make_material(1, name="Flour", unit_cost="1")
    recipe = make_recipe(1, [(flour, "2")], activate=False)

    assert bom_operations.get_recipe_cost(1, recipe.id, version=1).total_material_cost == Decimal("2")
    recipe_service.update_component(1, recipe.id, flour.id, quantity_per_unit="3")

    assert bom_operations.get_recipe_cost(1, recipe.id, version=1).total_material_cost == Decimal("3")


@pytest.mark.usefixtures("app_context")
def test_rolled_back_cost_change_never_reaches_the_cache(cake):
    recipe, flour, _sugar = cake
    assert bom_operations.get_recipe_cost(1, recipe.id).total_material_cost == Decimal("1.1")

    flour.unit_cost = Decimal("9")
    db.session.flush()
    assert bom_operations.get_recipe_cost(1, recipe.id).total_material_cost == Decimal("5")
    db.session.rollback()

    assert bom_operations.get_recipe_cost(1, recipe.id).total_material_cost == Decimal("1.1")


@pytest.mark.usefixtures("app_context")
def test_uncached_cost_read_during_a_flushed_change_is_not_stored(cake):
    recipe, flour, _sugar = cake
    flour.unit_cost = Decimal("9")
    db.session.flush()
    bom_operations.get_recipe_cost(1, recipe.id)
    db.session.rollback()

    assert bom_operations.get_recipe_cost(1, recipe.id).total_material_cost == Decimal("1.1")


@pytest.mark.usefixtures("app_context")
def test_committed_cost_change_invalidates_only_after_commit(cake, monkeypatch):
    recipe, flour, _sugar = cake
    bumped = []
    real_invalidate = cache_invalidation.invalidate_recipe_cost_cache
    monkeypatch.setattr(
        cache_invalidation,
        "invalidate_recipe_cost_cache",
        lambda tenant_id: bumped.append(tenant_id) or real_invalidate(tenant_id),
    )

    flour.unit_cost = Decimal("2.20")
    db.session.flush()
    assert bumped == []

    db.session.commit()
    assert bumped == [1]
    assert bom_operations.get_recipe_cost(1, recipe.id).total_material_cost == Decimal("1.6")


@pytest.mark.usefixtures("app_context")
@pytest.mark.parametrize("version", ["latest", "1", 0, True])
def test_malformed_version_is_a_configuration_error(cake, version):
    recipe, _flour, _sugar = cake

    with pytest.raises(ConfigurationError):
        bom_operations.get_recipe_cost(1, recipe.id, version=version)
