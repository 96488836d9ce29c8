"""
Recipe Service Package

Versioned recipe catalog. External modules import from this __init__.py only;
the underscore modules are internal helpers.
"""

from ._core import (
    add_component,
    create_recipe,
    get_recipe,
    get_recipe_version,
    list_recipes,
    list_versions,
    remove_component,
    replace_components,
    update_component,
)
from ._validation import validate_version_components
from ._versioning import activate_version, archive_recipe, compare_versions, edit_recipe

__all__ = [
    'create_recipe', 'get_recipe', 'get_recipe_version', 'list_recipes', 'list_versions',
    'add_component', 'update_component', 'remove_component', 'replace_components',
    'edit_recipe', 'activate_version', 'archive_recipe', 'compare_versions',
    'validate_version_components',
]
