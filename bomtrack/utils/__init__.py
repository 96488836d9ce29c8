from .attribute_expansion import combination_count, expand_attributes

__all__ = ["combination_count", "expand_attributes"]
