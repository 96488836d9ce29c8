"""Per-tenant versioned namespaces for the recipe cost cache.

Models that feed cost rollups register with ``track_cost_inputs``. Their
mapper events only record the tenant as dirty on the owning session; the
namespace moves forward once that session commits, and the record is dropped
on rollback. Until then ``has_uncommitted_cost_changes`` tells readers to
bypass the cache so uncommitted values are never stored.
"""

from __future__ import annotations

from flask import has_app_context
from sqlalchemy import event
from sqlalchemy.orm import Session, object_session

from ..extensions import cache

__all__ = [
    "recipe_cost_cache_key",
    "invalidate_recipe_cost_cache",
    "track_cost_inputs",
    "has_uncommitted_cost_changes",
]

_RECIPE_COST_NAMESPACE = "recipe_cost_cache"
_DIRTY_TENANTS = "bomtrack.dirty_cost_tenants"
_COST_INPUTS: list[type] = []


def _tenant_scope(tenant_id: int | None) -> str:
    return str(tenant_id or "anon")


def _recipe_cost_namespace(tenant_id: int | None) -> str:
    return f"{_RECIPE_COST_NAMESPACE}:{_tenant_scope(tenant_id)}"


def _namespace_version(namespace: str) -> int:
    if not has_app_context():
        return 1
    version_key = f"{namespace}:__version__"
    try:
        version = cache.get(version_key)
    except Exception:
        version = None
    if not version:
        version = 1
        try:
            cache.set(version_key, version)
        except Exception:
            pass
    return int(version or 1)


def _versioned_key(namespace: str, raw_key: str) -> str:
    version = _namespace_version(namespace)
    return f"{namespace}:v{version}:{raw_key}"


def _bump_namespace(namespace: str) -> None:
    if not has_app_context():
        return
    version_key = f"{namespace}:__version__"
    try:
        version = int(cache.get(version_key) or 1) + 1
    except Exception:
        version = 2
    try:
        cache.set(version_key, version)
    except Exception:
        pass


def recipe_cost_cache_key(tenant_id: int | None, recipe_version_id: int) -> str:
    return _versioned_key(_recipe_cost_namespace(tenant_id), f"version:{recipe_version_id}")


def invalidate_recipe_cost_cache(tenant_id: int | None) -> None:
    """Drop every cached cost rollup for a tenant by moving its namespace forward."""
    _bump_namespace(_recipe_cost_namespace(tenant_id))


def _mark_dirty(mapper, connection, target) -> None:
    session = object_session(target)
    if session is not None:
        session.info.setdefault(_DIRTY_TENANTS, set()).add(getattr(target, "tenant_id", None))


def track_cost_inputs(model) -> None:
    """Invalidate the owning tenant's cost cache when ``model`` rows change and commit."""
    for name in ("after_insert", "after_update", "after_delete"):
        event.listen(model, name, _mark_dirty)
    _COST_INPUTS.append(model)


def has_uncommitted_cost_changes(session: Session, tenant_id: int | None) -> bool:
    if tenant_id in session.info.get(_DIRTY_TENANTS, ()):
        return True
    pending = (session.new, session.dirty, session.deleted)
    return any(
        isinstance(obj, tuple(_COST_INPUTS)) and getattr(obj, "tenant_id", None) == tenant_id
        for group in pending
        for obj in group
    )


@event.listens_for(Session, "after_commit")
def _invalidate_after_commit(session: Session) -> None:
    if session.in_nested_transaction():
        return
    for tenant_id in session.info.pop(_DIRTY_TENANTS, ()):
        invalidate_recipe_cost_cache(tenant_id)


@event.listens_for(Session, "after_rollback")
def _forget_after_rollback(session: Session) -> None:
    session.info.pop(_DIRTY_TENANTS, None)
