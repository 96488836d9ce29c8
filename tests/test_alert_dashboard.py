"""Dashboard view and the low-stock materials that block active recipes."""

from __future__ import annotations

from decimal import Decimal

import pytest

from bomtrack.models import StockAlert
from bomtrack.services import bom_operations, material_service
from bomtrack.services.errors import ConfigurationError, InvalidTenantError


@pytest.fixture
def pantry(make_material):
    """Flour out of stock, Sugar critical, Salt low, Oil healthy (reorder point 10 each)."""
    return {
        "flour": make_material(1, name="Flour", stock="0", reorder_point="10"),
        "sugar": make_material(1, name="Sugar", stock="4", reorder_point="10"),
        "salt": make_material(1, name="Salt", stock="8", reorder_point="10"),
        "oil": make_material(1, name="Oil", stock="50", reorder_point="10"),
    }


def _alert_for(material):
    return StockAlert.query.filter_by(material_id=material.id).one()


@pytest.mark.usefixtures("app_context")
def test_dashboard_combines_alerts_predictions_and_reorders(pantry, make_material):
    make_material(2, stock="0", reorder_point="5")
    bom_operations.scan_low_stock()
    bom_operations.acknowledge_alert(1, _alert_for(pantry["sugar"]).id)

    dashboard = bom_operations.get_alert_dashboard(1, daily_usage={pantry["salt"].id: "4"})

    assert dashboard.open_alert_count == 3
    assert dashboard.severity_counts == {"out_of_stock": 1, "critical": 1, "low": 1}
    assert [a.material_id for a in dashboard.active_alerts] == [
        pantry["flour"].id,
        pantry["sugar"].id,
        pantry["salt"].id,
    ]
    assert dashboard.pending_notifications == 3
    assert [p.material_id for p in dashboard.predictions] == [pantry["salt"].id]
    assert dashboard.recommendation_count == 3
    # suggested quantities 20 + 16 + 12 at 1.00 each
    assert dashboard.total_reorder_cost == Decimal("48")

    payload = dashboard.to_dict()
    assert payload["summary"]["active_alerts"] == 3
    assert payload["summary"]["predictive_alerts"] == 1
    assert payload["total_reorder_cost"] == 48.0


@pytest.mark.usefixtures("app_context")
def test_dashboard_sections_are_truncated_but_counts_are_not(pantry):
    bom_operations.scan_low_stock(1)

    dashboard = bom_operations.get_alert_dashboard(1, daily_usage={}, limit=2)

    assert len(dashboard.active_alerts) == 2
    assert len(dashboard.recommendations) == 2
    assert dashboard.open_alert_count == 3
    assert dashboard.recommendation_count == 3


@pytest.mark.usefixtures("app_context")
def test_dashboard_derives_usage_from_history(pantry):
    material_service.adjust_stock(1, pantry["oil"].id, "deduction", "45", "fryer")

    dashboard = bom_operations.get_alert_dashboard(1)

    # 45 over the 30 day window -> 1.5 per day; 5 left lasts 3 whole days
    assert [p.material_id for p in dashboard.predictions] == [pantry["oil"].id]
    assert dashboard.predictions[0].days_until_stockout == 3
    oil = next(r for r in dashboard.recommendations if r.material_id == pantry["oil"].id)
    assert oil.average_daily_usage == Decimal("1.5")
    assert oil.severity == "critical"


@pytest.mark.usefixtures("app_context")
@pytest.mark.parametrize("limit", [0, -1, "10", True])
def test_dashboard_rejects_bad_limit(limit):
    with pytest.raises(ConfigurationError):
        bom_operations.get_alert_dashboard(1, daily_usage={}, limit=limit)


@pytest.mark.usefixtures("app_context")
def test_dashboard_requires_valid_tenant():
    with pytest.raises(InvalidTenantError):
        bom_operations.get_alert_dashboard(0)


@pytest.mark.usefixtures("app_context")
def test_low_stock_materials_list_the_active_recipes_they_block(make_material, make_recipe):
    flour = make_material(1, name="Flour", stock="10")
    sugar = make_material(1, name="Sugar", stock="3", reorder_point="5")
    eggs = make_material(1, name="Eggs", unit="each", stock="0", reorder_point="12")
    make_material(1, name="Salt", stock="0", reorder_point="1")
    yeast = make_material(1, name="Yeast", stock="0", reorder_point="1")
    cake = make_recipe(1, [(flour, "0.5"), (sugar, "0.2"), (eggs, "2")], name="Cake")
    biscuits = make_recipe(1, [(sugar, "1")], name="Biscuits")
    make_recipe(1, [(yeast, "1")], name="Bread", activate=False)

    blocking = bom_operations.get_low_stock_in_active_recipes(1)

    assert [b.material_id for b in blocking] == [eggs.id, sugar.id]
    assert blocking[0].severity == "out_of_stock"
    assert [r.recipe_id for r in blocking[0].affected_recipes] == [cake.id]
    assert blocking[1].severity == "low"
    assert [r.recipe_name for r in blocking[1].affected_recipes] == ["Biscuits", "Cake"]
    assert blocking[1].affected_recipes[0].recipe_id == biscuits.id
    assert blocking[1].to_dict()["affected_recipes"][1]["quantity_per_unit"] == 0.2


@pytest.mark.usefixtures("app_context")
def test_low_stock_in_active_recipes_is_tenant_scoped(make_material, make_recipe):
    eggs = make_material(2, name="Eggs", stock="0", reorder_point="12")
    make_recipe(2, [(eggs, "2")], name="Omelette")

    assert bom_operations.get_low_stock_in_active_recipes(1) == []
    assert [b.material_id for b in bom_operations.get_low_stock_in_active_recipes(2)] == [eggs.id]
