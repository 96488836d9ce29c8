from __future__ import annotations

from typing import TypeVar

from ..extensions import db
from .errors import InvalidTenantError, NotFoundError, TenantMismatchError

ModelT = TypeVar("ModelT")


def require_tenant(tenant_id) -> int:
    """Validate an explicit tenant id before any domain logic runs."""
    if isinstance(tenant_id, bool) or not isinstance(tenant_id, int) or tenant_id <= 0:
        raise InvalidTenantError(
            f"A positive integer tenant id is required, got {tenant_id!r}",
            details={"tenant_id": repr(tenant_id)},
        )
    return tenant_id


def load_scoped(
    model: type[ModelT],
    entity_id,
    tenant_id: int,
    *,
    label: str | None = None,
    lock: bool = False,
) -> ModelT:
    """Fetch ``model`` by primary key and verify it belongs to ``tenant_id``.

    Unknown ids raise NotFoundError; rows owned by another tenant raise
    TenantMismatchError so the caller never computes on foreign data.
    """
    name = label or model.__name__
    entity = None
    if entity_id is not None:
        entity = db.session.get(model, entity_id, with_for_update=True) if lock else db.session.get(model, entity_id)
    if entity is None:
        raise NotFoundError(name, entity_id, tenant_id=tenant_id)
    if entity.tenant_id != tenant_id:
        raise TenantMismatchError(
            name, entity_id, expected_tenant=tenant_id, actual_tenant=entity.tenant_id
        )
    return entity
