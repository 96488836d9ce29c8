"""Reorder recommendation ranking and quantities."""

from decimal import Decimal

import pytest

from bomtrack.services import bom_operations
from bomtrack.services.errors import ConfigurationError
from bomtrack.services.reorder_recommendations import (
    suggested_order_quantity,
    summarize_recommendations,
)


@pytest.mark.usefixtures("app_context")
def test_most_depleted_material_ranks_first_within_priority(make_material):
    a = make_material(1, name="A", stock="4", reorder_point="10")
    b = make_material(1, name="B", stock="1", reorder_point="10")

    recs = bom_operations.get_reorder_recommendations(1)

    assert [r.material_id for r in recs] == [b.id, a.id]
    assert [r.priority for r in recs] == ["high", "high"]
    assert recs[0].stock_ratio == Decimal("0.1")
    assert recs[1].stock_ratio == Decimal("0.4")


@pytest.mark.usefixtures("app_context")
def test_high_priority_precedes_medium(make_material):
    low = make_material(1, name="Low", stock="8", reorder_point="10")
    out = make_material(1, name="Out", stock="0", reorder_point="10")
    critical = make_material(1, name="Critical", stock="5", reorder_point="10")
    make_material(1, name="Healthy", stock="50", reorder_point="10")

    recs = bom_operations.get_reorder_recommendations(1)

    assert [r.material_id for r in recs[:3]] == [out.id, critical.id, low.id]
    assert [r.severity for r in recs[:3]] == ["out_of_stock", "critical", "low"]
    assert recs[2].priority == "medium"


@pytest.mark.usefixtures("app_context")
def test_ties_fall_back_to_material_id(make_material):
    first = make_material(1, stock="2", reorder_point="10")
    second = make_material(1, stock="2", reorder_point="10")

    recs = bom_operations.get_reorder_recommendations(1)

    assert [r.material_id for r in recs] == [first.id, second.id]


@pytest.mark.parametrize(
    "stock, point, reorder_quantity, expected",
    [
        ("3", "10", None, "17"),
        ("0", "10", None, "20"),
        ("3", "10", "25", "25"),
        ("3", "10", "0", "17"),
        ("0.5", "0.5", None, "1"),
    ],
)
def test_suggested_order_quantity(stock, point, reorder_quantity, expected):
    assert suggested_order_quantity(Decimal(stock), Decimal(point), reorder_quantity) == Decimal(expected)


@pytest.mark.usefixtures("app_context")
def test_estimated_cost_uses_unit_cost(make_material):
    make_material(1, unit_cost="2.50", stock="3", reorder_point="10")

    (rec,) = bom_operations.get_reorder_recommendations(1)

    assert rec.suggested_order_quantity == Decimal("17")
    assert rec.estimated_cost == Decimal("42.5")
    assert rec.to_dict()["estimated_cost"] == pytest.approx(42.50)


@pytest.mark.usefixtures("app_context")
def test_daily_usage_adds_days_until_stockout(make_material):
    flour = make_material(1, stock="3", reorder_point="10")
    sugar = make_material(1, stock="0", reorder_point="10")

    recs = bom_operations.get_reorder_recommendations(1, daily_usage={flour.id: "0.5"})

    by_id = {r.material_id: r for r in recs}
    assert by_id[flour.id].days_until_stockout == 6
    assert by_id[flour.id].average_daily_usage == Decimal("0.5")
    assert by_id[sugar.id].days_until_stockout is None


@pytest.mark.usefixtures("app_context")
def test_other_tenants_and_archived_materials_are_excluded(make_material):
    from bomtrack.services import material_service

    make_material(2, stock="0", reorder_point="10")
    retired = make_material(1, stock="0", reorder_point="10")
    material_service.archive_material(1, retired.id)

    assert bom_operations.get_reorder_recommendations(1) == []


@pytest.mark.usefixtures("app_context")
def test_summary_totals(make_material):
    make_material(1, unit_cost="1.00", stock="0", reorder_point="10")
    make_material(1, unit_cost="2.00", stock="9", reorder_point="10", reorder_quantity="5")

    summary = summarize_recommendations(bom_operations.get_reorder_recommendations(1))

    assert summary["total_items"] == 2
    assert summary["by_priority"] == {"high": 1, "medium": 1, "low": 0}
    assert summary["total_estimated_cost"] == pytest.approx(30.00)
    assert len(summary["high_priority_material_ids"]) == 1


@pytest.mark.usefixtures("app_context")
@pytest.mark.parametrize("usage", ["n/a", None, "-1"])
def test_malformed_daily_usage_is_a_configuration_error(make_material, usage):
    flour = make_material(1, stock="0", reorder_point="10")

    with pytest.raises(ConfigurationError) as excinfo:
        bom_operations.get_reorder_recommendations(1, daily_usage={flour.id: usage})
    assert excinfo.value.details["material_id"] == flour.id
