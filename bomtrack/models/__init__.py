from ..extensions import db
from .domain_event import DomainEvent
from .material import Material, StockAdjustment
from .recipe import Recipe, RecipeComponent, RecipeVersion
from .stock_alert import StockAlert

__all__ = [
    "db",
    "DomainEvent",
    "Material",
    "StockAdjustment",
    "Recipe",
    "RecipeVersion",
    "RecipeComponent",
    "StockAlert",
]
