"""Reorder recommendations.

Synopsis:
Ranks a tenant's unhealthy materials for replenishment. High priority first
(out_of_stock and critical), then medium (low); within a priority the most
depleted material (lowest stock / reorder point) comes first, then material id.

Glossary:
- Suggested quantity: configured reorder_quantity when set, otherwise
  max(1, 2 x reorder_point - current_stock).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Iterable, Mapping, Optional

from ..models import Material
from ..models.stock_alert import SEVERITY_CRITICAL, SEVERITY_HEALTHY, SEVERITY_LOW, SEVERITY_OUT_OF_STOCK
from ..utils.quantities import ONE, ZERO, floor_units, money, present, to_decimal
from .consumption_history import usage_rate
from .stock_alerts import classify, critical_ratio
from .tenant_guard import require_tenant

logger = logging.getLogger(__name__)

PRIORITY_HIGH = "high"
PRIORITY_MEDIUM = "medium"
PRIORITY_LOW = "low"
PRIORITY_RANK = {PRIORITY_HIGH: 3, PRIORITY_MEDIUM: 2, PRIORITY_LOW: 1}
SEVERITY_PRIORITY = {
    SEVERITY_OUT_OF_STOCK: PRIORITY_HIGH,
    SEVERITY_CRITICAL: PRIORITY_HIGH,
    SEVERITY_LOW: PRIORITY_MEDIUM,
}


@dataclass
class ReorderRecommendation:
    material_id: int
    material_name: str
    unit: str
    severity: str
    priority: str
    current_stock: Decimal
    reorder_point: Decimal
    stock_ratio: Decimal
    suggested_order_quantity: Decimal
    unit_cost: Decimal
    estimated_cost: Decimal
    category: Optional[str] = None
    average_daily_usage: Optional[Decimal] = None
    days_until_stockout: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "material_id": self.material_id,
            "material_name": self.material_name,
            "unit": self.unit,
            "category": self.category,
            "severity": self.severity,
            "priority": self.priority,
            "current_stock": present(self.current_stock),
            "reorder_point": present(self.reorder_point),
            "stock_ratio": present(self.stock_ratio),
            "suggested_order_quantity": present(self.suggested_order_quantity),
            "estimated_cost": money(self.estimated_cost),
            "average_daily_usage": present(self.average_daily_usage),
            "days_until_stockout": self.days_until_stockout,
        }


def suggested_order_quantity(current_stock, reorder_point, reorder_quantity=None) -> Decimal:
    if reorder_quantity is not None and to_decimal(reorder_quantity) > ZERO:
        return to_decimal(reorder_quantity)
    return max(ONE, to_decimal(reorder_point) * 2 - to_decimal(current_stock))


def _stock_ratio(stock: Decimal, point: Decimal) -> Decimal:
    if point <= ZERO:
        return ZERO
    return max(ZERO, stock) / point


def _build(material: Material, severity: str, usage: Optional[Decimal]) -> ReorderRecommendation:
    stock = to_decimal(material.current_stock or ZERO)
    point = to_decimal(material.reorder_point or ZERO)
    unit_cost = to_decimal(material.unit_cost or ZERO)
    quantity = suggested_order_quantity(stock, point, material.reorder_quantity)
    days_left = None
    if usage is not None and usage > ZERO:
        days_left = floor_units(stock, usage)
    return ReorderRecommendation(
        material_id=material.id,
        material_name=material.name,
        unit=material.unit,
        category=material.category,
        severity=severity,
        priority=SEVERITY_PRIORITY.get(severity, PRIORITY_LOW),
        current_stock=stock,
        reorder_point=point,
        stock_ratio=_stock_ratio(stock, point),
        suggested_order_quantity=quantity,
        unit_cost=unit_cost,
        estimated_cost=quantity * unit_cost,
        average_daily_usage=usage,
        days_until_stockout=days_left,
    )


def rank_key(rec: ReorderRecommendation):
    return (-PRIORITY_RANK[rec.priority], rec.stock_ratio, rec.material_id)


def generate_recommendations(
    tenant_id: int,
    daily_usage: Optional[Mapping[int, Any]] = None,
) -> list[ReorderRecommendation]:
    require_tenant(tenant_id)
    ratio = critical_ratio()
    recommendations = []
    materials = Material.for_tenant(tenant_id).filter(Material.is_archived.is_(False)).all()
    for material in materials:
        severity = classify(material.current_stock, material.reorder_point, ratio)
        if severity == SEVERITY_HEALTHY:
            continue
        usage = None
        if daily_usage is not None and material.id in daily_usage:
            usage = usage_rate(daily_usage[material.id], material.id)
        recommendations.append(_build(material, severity, usage))

    recommendations.sort(key=rank_key)
    logger.debug("Built %s reorder recommendations for tenant %s", len(recommendations), tenant_id)
    return recommendations


def summarize_recommendations(recommendations: Iterable[ReorderRecommendation]) -> Dict[str, Any]:
    recs = list(recommendations)
    by_priority = {PRIORITY_HIGH: 0, PRIORITY_MEDIUM: 0, PRIORITY_LOW: 0}
    total = ZERO
    for rec in recs:
        by_priority[rec.priority] = by_priority.get(rec.priority, 0) + 1
        total += rec.estimated_cost
    return {
        "total_items": len(recs),
        "total_estimated_cost": money(total),
        "by_priority": by_priority,
        "high_priority_material_ids": [r.material_id for r in recs if r.priority == PRIORITY_HIGH],
    }
