"""
Pytest configuration and shared fixtures for the BOM engine tests.
"""
import os
import tempfile
from uuid import uuid4

import pytest

from bomtrack import create_app
from bomtrack.extensions import cache, db
from bomtrack.services import material_service, recipe_service


@pytest.fixture(scope='function')
def app():
    """Create and configure a new app instance for each test."""
    db_fd, db_path = tempfile.mkstemp(suffix='.db')

    app = create_app({
        'TESTING': True,
        'DATABASE_URL': f'sqlite:///{db_path}',
        'SECRET_KEY': 'test-secret-key',
        'CACHE_TYPE': 'SimpleCache',
        'STOCK_ALERT_CRITICAL_RATIO': 0.5,
        'STOCK_ALERT_NOTIFY_ON_CREATE': True,
        'STOCK_ALERT_NOTIFY_ON_ESCALATION': True,
    })

    with app.app_context():
        db.create_all()

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()
        cache.clear()

    os.close(db_fd)
    os.unlink(db_path)


@pytest.fixture
def runner(app):
    """A test runner for the app's Click commands."""
    return app.test_cli_runner()


@pytest.fixture
def app_context(app):
    """Provide an application context for tests that need it."""
    with app.app_context():
        yield


@pytest.fixture
def db_session(app_context):
    yield db.session
    db.session.rollback()


def unique_name(prefix: str) -> str:
    return f"{prefix}-{uuid4().hex[:8]}"


@pytest.fixture
def make_material(app_context):
    def _make(
        tenant_id=1,
        name=None,
        unit='kg',
        unit_cost='1.00',
        stock='0',
        reorder_point='0',
        reorder_quantity=None,
        category=None,
    ):
        return material_service.create_material(
            tenant_id,
            name=name or unique_name('Material'),
            unit=unit,
            unit_cost=unit_cost,
            current_stock=stock,
            reorder_point=reorder_point,
            reorder_quantity=reorder_quantity,
            category=category,
        )

    return _make


@pytest.fixture
def make_recipe(app_context):
    """Build a recipe from (material, quantity_per_unit) pairs, active by default."""

    def _make(tenant_id, components, name=None, yield_quantity=1, yield_unit='unit', activate=True):
        recipe = recipe_service.create_recipe(
            tenant_id,
            None,
            name or unique_name('Recipe'),
            yield_quantity,
            yield_unit,
            components=[
                {'material_id': material.id, 'quantity_per_unit': quantity, 'unit': material.unit}
                for material, quantity in components
            ],
        )
        if activate:
            recipe_service.activate_version(tenant_id, recipe.id, 1)
        return recipe

    return _make


@pytest.fixture
def cake(make_material, make_recipe):
    """Flour 0.5 kg/unit (10 kg in stock) and Sugar 0.2 kg/unit (3 kg in stock)."""
    flour = make_material(1, name='Flour', unit='kg', unit_cost='1.20', stock='10')
    sugar = make_material(1, name='Sugar', unit='kg', unit_cost='2.50', stock='3')
    recipe = make_recipe(1, [(flour, '0.5'), (sugar, '0.2')], name='Cake')
    return recipe, flour, sugar
