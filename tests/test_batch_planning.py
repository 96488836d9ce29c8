"""Batch requirement planning, shortfalls and purchase cost."""

from __future__ import annotations

from decimal import Decimal

import pytest

from bomtrack.services import bom_operations
from bomtrack.services.errors import ConfigurationError, TenantMismatchError


@pytest.mark.usefixtures("app_context")
def test_plan_twenty_cakes_is_short_one_kilo_of_sugar(cake):
    recipe, flour, sugar = cake

    plan = bom_operations.plan_batch(1, recipe.id, 20)

    flour_req = plan.requirement_for(flour.id)
    sugar_req = plan.requirement_for(sugar.id)
    assert flour_req.required_quantity == Decimal("10")
    assert flour_req.shortfall == Decimal("0")
    assert sugar_req.required_quantity == Decimal("4")
    assert sugar_req.shortfall == Decimal("1")
    assert plan.purchase_cost == Decimal("2.5")
    assert not plan.is_feasible
    assert [r.material_id for r in plan.shortages] == [sugar.id]


@pytest.mark.usefixtures("app_context")
def test_plan_to_available_units_has_no_shortfall(cake):
    recipe, _flour, _sugar = cake
    available = bom_operations.get_available_quantity(1, recipe.id).available_units

    plan = bom_operations.plan_batch(1, recipe.id, available)

    assert plan.is_feasible
    assert all(req.shortfall == 0 for req in plan.requirements)
    assert plan.purchase_cost == 0


@pytest.mark.usefixtures("app_context")
@pytest.mark.parametrize("stocks", [("0", "5"), ("0.7", "0.3"), ("13", "2.9")])
def test_round_trip_holds_for_awkward_stock_levels(make_material, make_recipe, stocks):
    a = make_material(1, stock=stocks[0])
    b = make_material(1, stock=stocks[1])
    recipe = make_recipe(1, [(a, "0.3"), (b, "0.7")])
    available = bom_operations.get_available_quantity(1, recipe.id).available_units

    plan = bom_operations.plan_batch(1, recipe.id, available)

    assert plan.is_feasible


@pytest.mark.usefixtures("app_context")
def test_total_material_cost_and_presentation(cake):
    recipe, _flour, _sugar = cake

    plan = bom_operations.plan_batch(1, recipe.id, 10)

    assert plan.total_material_cost == Decimal("11")
    payload = plan.to_dict()
    assert payload["is_feasible"] is True
    assert payload["purchase_cost"] == 0
    assert payload["total_material_cost"] == pytest.approx(11.0)


@pytest.mark.usefixtures("app_context")
def test_negative_target_is_rejected(cake):
    recipe, _flour, _sugar = cake

    with pytest.raises(ConfigurationError):
        bom_operations.plan_batch(1, recipe.id, -1)


@pytest.mark.usefixtures("app_context")
def test_plan_for_other_tenant_recipe_is_refused(cake):
    recipe, _flour, _sugar = cake

    with pytest.raises(TenantMismatchError):
        bom_operations.plan_batch(2, recipe.id, 5)


@pytest.mark.usefixtures("app_context")
def test_multi_recipe_plan_aggregates_shared_materials(cake, make_material, make_recipe):
    cake_recipe, flour, sugar = cake
    butter = make_material(1, name="Butter", unit_cost="4", stock="1")
    cookies = make_recipe(1, [(flour, "0.25"), (butter, "0.1")], name="Cookies")

    plan = bom_operations.plan_multi_recipe(1, {cake_recipe.id: 10, cookies.id: 20})

    flour_req = plan.requirement_for(flour.id)
    assert flour_req.required_quantity == Decimal("10")  # 5 + 5
    assert flour_req.shortfall == 0
    assert plan.requirement_for(sugar.id).required_quantity == Decimal("2")
    butter_req = plan.requirement_for(butter.id)
    assert butter_req.shortfall == Decimal("1")
    assert plan.purchase_cost == Decimal("4")
    assert plan.target_quantity == Decimal("30")


@pytest.mark.usefixtures("app_context")
def test_suggested_batch_sizes_stay_within_stock(cake):
    recipe, _flour, _sugar = cake

    suggestions = bom_operations.suggest_batch_sizes(1, recipe.id, candidates=(5, 10, 15, 25))

    assert [s.quantity for s in suggestions] == [5, 10, 15]
    assert suggestions[-1].utilisation == Decimal("1")
    assert suggestions[0].total_cost == Decimal("5.5")
