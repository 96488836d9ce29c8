from ..extensions import db
from ..services.cache_invalidation import track_cost_inputs
from ..utils.timezone_utils import TimezoneUtils
from .material import QUANTITY
from .mixins import TenantScopedMixin, TimestampMixin

VERSION_DRAFT = 'draft'
VERSION_ACTIVE = 'active'
VERSION_ARCHIVED = 'archived'
VERSION_STATUSES = (VERSION_DRAFT, VERSION_ACTIVE, VERSION_ARCHIVED)


class Recipe(TenantScopedMixin, TimestampMixin, db.Model):
    """Recipe lineage: groups immutable versions and points at the live one."""

    __tablename__ = 'recipe'

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, nullable=True, index=True)
    name = db.Column(db.String(128), nullable=False)
    current_version_id = db.Column(
        db.Integer,
        db.ForeignKey('recipe_version.id', use_alter=True, name='fk_recipe_current_version'),
        nullable=True,
    )

    versions = db.relationship(
        'RecipeVersion',
        back_populates='recipe',
        foreign_keys='RecipeVersion.recipe_id',
        order_by='RecipeVersion.version_number',
        cascade='all, delete-orphan',
    )
    current_version = db.relationship(
        'RecipeVersion',
        foreign_keys=[current_version_id],
        post_update=True,
    )

    @property
    def latest_version(self):
        return self.versions[-1] if self.versions else None

    def version(self, number):
        for candidate in self.versions:
            if candidate.version_number == number:
                return candidate
        return None

    def __repr__(self):
        return f'<Recipe {self.id} {self.name!r} tenant={self.tenant_id}>'


class RecipeVersion(TenantScopedMixin, TimestampMixin, db.Model):
    __tablename__ = 'recipe_version'
    __table_args__ = (
        db.UniqueConstraint('recipe_id', 'version_number', name='uq_recipe_version_number'),
        db.CheckConstraint('yield_quantity > 0', name='ck_recipe_version_yield_positive'),
    )

    id = db.Column(db.Integer, primary_key=True)
    recipe_id = db.Column(db.Integer, db.ForeignKey('recipe.id'), nullable=False, index=True)
    version_number = db.Column(db.Integer, nullable=False)
    status = db.Column(db.String(16), nullable=False, default=VERSION_DRAFT, server_default=VERSION_DRAFT)
    yield_quantity = db.Column(QUANTITY, nullable=False)
    yield_unit = db.Column(db.String(32), nullable=False)
    notes = db.Column(db.Text, nullable=True)
    activated_at = db.Column(db.DateTime, nullable=True)
    archived_at = db.Column(db.DateTime, nullable=True)

    recipe = db.relationship('Recipe', back_populates='versions', foreign_keys=[recipe_id])
    components = db.relationship(
        'RecipeComponent',
        back_populates='recipe_version',
        order_by='RecipeComponent.position',
        cascade='all, delete-orphan',
    )

    @property
    def is_draft(self):
        return self.status == VERSION_DRAFT

    @property
    def is_active(self):
        return self.status == VERSION_ACTIVE

    def mark_active(self):
        self.status = VERSION_ACTIVE
        self.activated_at = TimezoneUtils.utc_now()

    def mark_archived(self):
        self.status = VERSION_ARCHIVED
        self.archived_at = TimezoneUtils.utc_now()

    def __repr__(self):
        return f'<RecipeVersion recipe={self.recipe_id} v{self.version_number} {self.status}>'


class RecipeComponent(TenantScopedMixin, db.Model):
    __tablename__ = 'recipe_component'
    __table_args__ = (
        db.UniqueConstraint('recipe_version_id', 'material_id', name='uq_recipe_component_material'),
        db.CheckConstraint('quantity_per_unit > 0', name='ck_recipe_component_quantity_positive'),
    )

    id = db.Column(db.Integer, primary_key=True)
    recipe_version_id = db.Column(db.Integer, db.ForeignKey('recipe_version.id'), nullable=False, index=True)
    material_id = db.Column(db.Integer, db.ForeignKey('material.id'), nullable=False, index=True)
    quantity_per_unit = db.Column(QUANTITY, nullable=False)
    unit = db.Column(db.String(32), nullable=False)
    position = db.Column(db.Integer, nullable=False, default=0)

    recipe_version = db.relationship('RecipeVersion', back_populates='components')
    material = db.relationship('Material')

    def __repr__(self):
        return f'<RecipeComponent v={self.recipe_version_id} material={self.material_id} qty={self.quantity_per_unit}>'


# yield and component changes both move cost per unit
track_cost_inputs(RecipeComponent)
track_cost_inputs(RecipeVersion)
