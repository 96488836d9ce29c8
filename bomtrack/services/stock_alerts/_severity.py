from __future__ import annotations

import logging
from decimal import Decimal

from flask import current_app, has_app_context

from ...models.stock_alert import (
    SEVERITY_CRITICAL,
    SEVERITY_HEALTHY,
    SEVERITY_LOW,
    SEVERITY_OUT_OF_STOCK,
    SEVERITY_RANK,
)
from ...utils.quantities import ONE, ZERO, to_decimal

logger = logging.getLogger(__name__)

DEFAULT_CRITICAL_RATIO = Decimal("0.5")


def critical_ratio() -> Decimal:
    """Configured critical ratio; anything outside (0, 1) falls back to the default."""
    if not has_app_context():
        return DEFAULT_CRITICAL_RATIO
    raw = current_app.config.get("STOCK_ALERT_CRITICAL_RATIO", DEFAULT_CRITICAL_RATIO)
    try:
        ratio = to_decimal(raw, field="STOCK_ALERT_CRITICAL_RATIO")
    except ValueError:
        ratio = None
    if ratio is None or not ZERO < ratio < ONE:
        logger.warning("STOCK_ALERT_CRITICAL_RATIO=%r is outside (0, 1); using %s", raw, DEFAULT_CRITICAL_RATIO)
        return DEFAULT_CRITICAL_RATIO
    return ratio


def classify(current_stock, reorder_point, ratio=None) -> str:
    """Severity of a stock level relative to its reorder point.

    out_of_stock at or below zero; critical at or below ``ratio x reorder_point``;
    low at or below the reorder point; healthy otherwise. Materials without a
    reorder point are only ever healthy or out_of_stock.
    """
    stock = to_decimal(current_stock if current_stock is not None else ZERO)
    point = to_decimal(reorder_point if reorder_point is not None else ZERO)
    threshold_ratio = to_decimal(ratio) if ratio is not None else critical_ratio()

    if stock <= ZERO:
        return SEVERITY_OUT_OF_STOCK
    if point <= ZERO:
        return SEVERITY_HEALTHY
    if stock <= point * threshold_ratio:
        return SEVERITY_CRITICAL
    if stock <= point:
        return SEVERITY_LOW
    return SEVERITY_HEALTHY


def is_escalation(previous: str | None, current: str) -> bool:
    return SEVERITY_RANK.get(current, 0) > SEVERITY_RANK.get(previous or SEVERITY_HEALTHY, 0)
