"""
Stock Alert Service Package

Low-stock detection, alert lifecycle and scheduled scans. Import from this
package, not its internals.
"""

from ._detection import ACTION_CREATED, ACTION_SKIPPED, ACTION_UPDATED, DetectionOutcome, detect, find_open_alert
from ._lifecycle import ALLOWED_TRANSITIONS, acknowledge, dismiss, get_alert, list_alerts, resolve, transition_alert
from ._severity import classify, critical_ratio
from .blocking import AffectedRecipe, BlockingMaterial, low_stock_in_active_recipes
from .predictive import StockoutPrediction, predict_stockouts
from .scan import ScanSummary, scan_low_stock, tenant_ids_with_materials

__all__ = [
    'detect', 'find_open_alert', 'DetectionOutcome',
    'ACTION_CREATED', 'ACTION_UPDATED', 'ACTION_SKIPPED',
    'acknowledge', 'resolve', 'dismiss', 'transition_alert', 'get_alert', 'list_alerts',
    'ALLOWED_TRANSITIONS',
    'classify', 'critical_ratio',
    'scan_low_stock', 'ScanSummary', 'tenant_ids_with_materials',
    'predict_stockouts', 'StockoutPrediction',
    'low_stock_in_active_recipes', 'BlockingMaterial', 'AffectedRecipe',
]
