"""Typed failures raised by the BOM engine.

Every failure the engine produces is one of these; callers on the API side can
serialise them with ``to_dict()`` without knowing the concrete class.
"""

from __future__ import annotations

from typing import Any


class BomEngineError(RuntimeError):
    code = "bom_engine_error"

    def __init__(self, message: str, *, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = dict(details or {})

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.code, "message": self.message, "details": self.details}


class NotFoundError(BomEngineError):
    code = "not_found"

    def __init__(self, entity: str, entity_id: Any, *, tenant_id: int | None = None):
        super().__init__(
            f"{entity} {entity_id} not found",
            details={"entity": entity, "id": entity_id, "tenant_id": tenant_id},
        )
        self.entity = entity
        self.entity_id = entity_id


class ConfigurationError(BomEngineError):
    code = "configuration_error"


class TenantMismatchError(BomEngineError):
    code = "tenant_mismatch"

    def __init__(self, entity: str, entity_id: Any, *, expected_tenant: int, actual_tenant: int | None):
        super().__init__(
            f"{entity} {entity_id} does not belong to tenant {expected_tenant}",
            details={"entity": entity, "id": entity_id, "tenant_id": expected_tenant},
        )
        # The owning tenant is kept off the serialised payload.
        self.actual_tenant = actual_tenant


class InvalidTenantError(BomEngineError):
    code = "invalid_tenant"


class ConcurrencyConflict(BomEngineError):
    """Lost a race on a uniqueness guarantee. Handled internally, never surfaced."""

    code = "concurrency_conflict"


class InvalidStateTransition(BomEngineError):
    code = "invalid_state_transition"

    def __init__(self, entity: str, entity_id: Any, current: str, requested: str):
        super().__init__(
            f"Cannot move {entity} {entity_id} from {current!r} to {requested!r}",
            details={"entity": entity, "id": entity_id, "from": current, "to": requested},
        )
        self.current = current
        self.requested = requested


class InsufficientStockError(BomEngineError):
    code = "insufficient_stock"


__all__ = [
    "BomEngineError",
    "NotFoundError",
    "ConfigurationError",
    "TenantMismatchError",
    "InvalidTenantError",
    "ConcurrencyConflict",
    "InvalidStateTransition",
    "InsufficientStockError",
]
