"""Scheduled low-stock scan.

Synopsis:
Runs detection over every non-archived material of one tenant or of all
tenants. A failure on one material or one tenant is logged, rolled back and
counted; the scan always carries on and returns a partial-success summary.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Iterable, Optional

from ...extensions import db
from ...models import Material
from ..tenant_guard import require_tenant
from ._detection import ACTION_CREATED, ACTION_UPDATED, detect
from ._severity import critical_ratio

logger = logging.getLogger(__name__)


@dataclass
class ScanSummary:
    tenants_processed: int = 0
    tenants_failed: int = 0
    materials_checked: int = 0
    alerts_created: int = 0
    alerts_updated: int = 0
    alerts_skipped: int = 0
    alerts_failed: int = 0
    notifications_queued: int = 0
    dry_run: bool = False

    @property
    def all_tenants_failed(self) -> bool:
        return self.tenants_failed > 0 and self.tenants_processed == 0

    def to_dict(self):
        return asdict(self)


def tenant_ids_with_materials() -> list[int]:
    rows = (
        db.session.query(Material.tenant_id)
        .filter(Material.is_archived.is_(False))
        .distinct()
        .order_by(Material.tenant_id)
        .all()
    )
    return [row[0] for row in rows]


def _tenant_materials(tenant_id: int) -> list[Material]:
    return (
        Material.for_tenant(tenant_id)
        .filter(Material.is_archived.is_(False))
        .order_by(Material.id)
        .all()
    )


def _scan_tenant(tenant_id: int, summary: ScanSummary, *, dry_run: bool, ratio) -> None:
    materials = _tenant_materials(tenant_id)
    created = updated = 0
    for material in materials:
        material_id = material.id
        summary.materials_checked += 1
        try:
            outcome = detect(material, dry_run=dry_run, critical_ratio=ratio)
        except Exception:
            logger.exception("Stock alert detection failed for material %s (tenant %s)", material_id, tenant_id)
            db.session.rollback()
            summary.alerts_failed += 1
            continue
        if outcome.action == ACTION_CREATED:
            summary.alerts_created += 1
            created += 1
        elif outcome.action == ACTION_UPDATED:
            summary.alerts_updated += 1
            updated += 1
        else:
            summary.alerts_skipped += 1
        if outcome.notified:
            summary.notifications_queued += 1
    logger.info(
        "Tenant %s: checked %s materials, %s alerts created, %s updated",
        tenant_id,
        len(materials),
        created,
        updated,
    )


def scan_low_stock(tenant_id: Optional[int] = None, *, dry_run: bool = False) -> ScanSummary:
    """Scan one tenant, or every tenant with materials when ``tenant_id`` is None."""
    tenants: Iterable[int]
    if tenant_id is not None:
        tenants = [require_tenant(tenant_id)]
    else:
        tenants = tenant_ids_with_materials()

    ratio = critical_ratio()
    summary = ScanSummary(dry_run=dry_run)
    for current in tenants:
        try:
            _scan_tenant(current, summary, dry_run=dry_run, ratio=ratio)
        except Exception:
            logger.exception("Low-stock scan failed for tenant %s", current)
            db.session.rollback()
            summary.tenants_failed += 1
            continue
        summary.tenants_processed += 1

    logger.info(
        "Low-stock scan%s complete: %s tenants (%s failed), %s created, %s updated, %s skipped, %s failed",
        " (dry run)" if dry_run else "",
        summary.tenants_processed,
        summary.tenants_failed,
        summary.alerts_created,
        summary.alerts_updated,
        summary.alerts_skipped,
        summary.alerts_failed,
    )
    return summary
