"""Recipe lineage: drafts, activation, copy-on-write edits and archival."""

from decimal import Decimal

import pytest

from bomtrack.services import bom_operations, recipe_service
from bomtrack.services.errors import (
    ConfigurationError,
    InvalidStateTransition,
    NotFoundError,
    TenantMismatchError,
)


def _quantities(version):
    return {c.material_id: c.quantity_per_unit for c in version.components}


@pytest.mark.usefixtures("app_context")
class TestDraftLifecycle:
    def test_new_recipe_starts_as_draft_v1(self, make_material):
        flour = make_material(1, name="Flour")

        recipe = recipe_service.create_recipe(
            1, 42, " Bread ", 2, "loaf", components=[(flour.id, "0.5", "kg")]
        )

        (version,) = recipe_service.list_versions(1, recipe.id)
        assert recipe.name == "Bread"
        assert recipe.product_id == 42
        assert version.version_number == 1
        assert version.status == "draft"
        assert recipe.current_version is None
        with pytest.raises(NotFoundError):
            recipe_service.get_recipe_version(1, recipe.id)

    def test_draft_components_are_editable(self, make_material, make_recipe):
        flour = make_material(1, name="Flour")
        sugar = make_material(1, name="Sugar")
        salt = make_material(1, name="Salt", unit="g")
        recipe = make_recipe(1, [(flour, "0.5")], activate=False)

        recipe_service.add_component(1, recipe.id, sugar.id, "0.2", "kg")
        recipe_service.add_component(1, recipe.id, salt.id, "5", "g")
        recipe_service.update_component(1, recipe.id, flour.id, quantity_per_unit="0.6", position=2)
        recipe_service.remove_component(1, recipe.id, sugar.id)

        draft = recipe_service.get_recipe_version(1, recipe.id, 1)
        ordered = sorted(draft.components, key=lambda c: c.position)
        assert [(c.material_id, c.position) for c in ordered] == [(salt.id, 0), (flour.id, 1)]
        assert _quantities(draft)[flour.id] == Decimal("0.6")

    def test_replace_components_swaps_the_whole_list(self, make_material, make_recipe):
        flour = make_material(1, name="Flour")
        sugar = make_material(1, name="Sugar")
        recipe = make_recipe(1, [(flour, "0.5"), (sugar, "0.1")], activate=False)

        draft = recipe_service.replace_components(
            1, recipe.id, [{"material_id": sugar.id, "quantity_per_unit": "0.3", "unit": "kg"}]
        )

        assert _quantities(draft) == {sugar.id: Decimal("0.3")}

    def test_activation_requires_components(self, make_recipe):
        recipe = make_recipe(1, [], activate=False)

        with pytest.raises(ConfigurationError):
            recipe_service.activate_version(1, recipe.id, 1)

    def test_activation_is_idempotent(self, cake):
        recipe, _flour, _sugar = cake

        version = recipe_service.activate_version(1, recipe.id, 1)

        assert version.status == "active"
        assert recipe_service.get_recipe(1, recipe.id).current_version_id == version.id


@pytest.mark.usefixtures("app_context")
class TestCopyOnWrite:
    def test_editing_active_version_branches_a_new_draft(self, cake):
        recipe, flour, sugar = cake

        draft = recipe_service.edit_recipe(
            1,
            recipe.id,
            components=[(flour.id, "0.5", "kg"), (sugar.id, "0.3", "kg")],
        )

        assert draft.version_number == 2
        assert draft.status == "draft"
        active = recipe_service.get_recipe_version(1, recipe.id)
        assert active.version_number == 1
        assert _quantities(active)[sugar.id] == Decimal("0.2")
        assert bom_operations.get_recipe_cost(1, recipe.id).total_material_cost == Decimal("1.1")

    def test_branch_without_component_changes_copies_components(self, cake):
        recipe, flour, sugar = cake

        draft = recipe_service.edit_recipe(1, recipe.id, yield_quantity=2, notes="double tin")

        assert _quantities(draft) == {flour.id: Decimal("0.5"), sugar.id: Decimal("0.2")}
        assert draft.yield_quantity == Decimal("2")
        assert draft.notes == "double tin"

    def test_second_edit_updates_the_same_draft(self, cake):
        recipe, _flour, _sugar = cake

        first = recipe_service.edit_recipe(1, recipe.id, yield_quantity=2)
        second = recipe_service.edit_recipe(1, recipe.id, yield_unit="slice")

        assert first.id == second.id
        assert len(recipe_service.list_versions(1, recipe.id)) == 2

    def test_active_version_components_cannot_be_edited(self, cake):
        recipe, flour, _sugar = cake

        with pytest.raises(InvalidStateTransition):
            recipe_service.update_component(1, recipe.id, flour.id, quantity_per_unit="9", version=1)

    def test_activating_new_version_archives_previous(self, cake):
        recipe, flour, sugar = cake
        recipe_service.edit_recipe(1, recipe.id, components=[(flour.id, "0.5", "kg"), (sugar.id, "0.3", "kg")])

        recipe_service.activate_version(1, recipe.id, 2)

        v1, v2 = recipe_service.list_versions(1, recipe.id)
        assert (v1.status, v2.status) == ("archived", "active")
        assert v1.archived_at is not None
        assert bom_operations.get_recipe_cost(1, recipe.id).total_material_cost == Decimal("1.35")
        with pytest.raises(InvalidStateTransition):
            recipe_service.activate_version(1, recipe.id, 1)

    def test_compare_versions_reports_component_and_cost_changes(self, cake, make_material):
        recipe, flour, sugar = cake
        butter = make_material(1, name="Butter", unit_cost="4.00")
        recipe_service.edit_recipe(
            1,
            recipe.id,
            components=[(sugar.id, "0.3", "kg"), (butter.id, "0.1", "kg")],
        )

        diff = recipe_service.compare_versions(1, recipe.id, 1, 2)

        assert [row["material_id"] for row in diff["added"]] == [butter.id]
        assert [row["material_id"] for row in diff["removed"]] == [flour.id]
        assert diff["modified"] == [
            {"material_id": sugar.id, "from_quantity": 0.2, "to_quantity": 0.3, "from_unit": "kg", "to_unit": "kg"}
        ]
        assert diff["cost_from"] == pytest.approx(1.10)
        assert diff["cost_to"] == pytest.approx(1.15)
        assert diff["cost_delta"] == pytest.approx(0.05)
        assert diff["cost_delta_percent"] == pytest.approx(4.55)

    def test_archived_recipe_cannot_be_edited(self, cake):
        recipe, _flour, _sugar = cake

        archived = recipe_service.archive_recipe(1, recipe.id)

        assert archived.current_version is None
        with pytest.raises(InvalidStateTransition):
            recipe_service.edit_recipe(1, recipe.id, yield_quantity=3)
        assert recipe_service.list_recipes(1, active_only=True) == []


@pytest.mark.usefixtures("app_context")
class TestComponentValidation:
    def test_unit_must_match_material_base_unit(self, make_material):
        flour = make_material(1, unit="kg")

        with pytest.raises(ConfigurationError) as exc_info:
            recipe_service.create_recipe(1, None, "Bread", 1, "loaf", components=[(flour.id, "500", "g")])
        assert exc_info.value.details["material_unit"] == "kg"

    def test_surrounding_whitespace_in_unit_is_ignored(self, make_material):
        flour = make_material(1, unit="kg")

        recipe = recipe_service.create_recipe(1, None, "Bread", 1, "loaf", components=[(flour.id, "1", " kg ")])

        assert recipe.versions[0].components[0].unit == "kg"

    @pytest.mark.parametrize("quantity", ["0", "-1", "lots"])
    def test_quantity_per_unit_must_be_positive(self, make_material, quantity):
        flour = make_material(1)

        with pytest.raises(ConfigurationError):
            recipe_service.create_recipe(1, None, "Bread", 1, "loaf", components=[(flour.id, quantity, "kg")])

    def test_duplicate_material_is_rejected(self, make_material):
        flour = make_material(1)

        with pytest.raises(ConfigurationError):
            recipe_service.create_recipe(
                1, None, "Bread", 1, "loaf", components=[(flour.id, "1", "kg"), (flour.id, "2", "kg")]
            )

    def test_archived_material_cannot_be_used(self, make_material):
        from bomtrack.services import material_service

        flour = make_material(1)
        material_service.archive_material(1, flour.id)

        with pytest.raises(ConfigurationError):
            recipe_service.create_recipe(1, None, "Bread", 1, "loaf", components=[(flour.id, "1", "kg")])

    def test_foreign_tenant_material_is_rejected(self, make_material):
        foreign = make_material(2)

        with pytest.raises(TenantMismatchError):
            recipe_service.create_recipe(1, None, "Bread", 1, "loaf", components=[(foreign.id, "1", "kg")])

    @pytest.mark.parametrize("yield_quantity, yield_unit", [("0", "loaf"), ("-2", "loaf"), ("1", " ")])
    def test_yield_must_be_positive_with_unit(self, yield_quantity, yield_unit):
        with pytest.raises(ConfigurationError):
            recipe_service.create_recipe(1, None, "Bread", yield_quantity, yield_unit)
