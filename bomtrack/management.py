"""
Scheduled-job and reporting commands for the BOM engine.

An external scheduler (cron, a worker platform) invokes `flask scan-low-stock`;
the engine never schedules itself.
"""
import click
from flask.cli import with_appcontext

from .services import bom_operations
from .services.errors import BomEngineError
from .services.reorder_recommendations import summarize_recommendations


@click.command('scan-low-stock')
@click.option('--tenant', 'tenant_id', type=int, default=None, help='Scan a single tenant (default: all tenants)')
@click.option('--dry-run', is_flag=True, default=False, help='Report what would change without writing')
@with_appcontext
def scan_low_stock_command(tenant_id, dry_run):
    """Detect low-stock materials and open or refresh alerts"""
    try:
        summary = bom_operations.scan_low_stock(tenant_id, dry_run=dry_run)
    except BomEngineError as e:
        raise click.ClickException(e.message) from e

    label = ' (dry run)' if dry_run else ''
    print(f"🔎 Low-stock scan{label}: {summary.tenants_processed} tenant(s) processed, {summary.tenants_failed} failed")
    print(f"   materials checked: {summary.materials_checked}")
    print(f"   alerts created: {summary.alerts_created}")
    print(f"   alerts updated: {summary.alerts_updated}")
    print(f"   alerts skipped: {summary.alerts_skipped}")
    print(f"   alerts failed: {summary.alerts_failed}")
    print(f"   notifications queued: {summary.notifications_queued}")

    if summary.all_tenants_failed:
        print("❌ Every tenant failed; see logs for details.")
        raise SystemExit(1)


@click.command('reorder-report')
@click.option('--tenant', 'tenant_id', type=int, required=True)
@with_appcontext
def reorder_report_command(tenant_id):
    """Print ranked reorder recommendations for a tenant"""
    try:
        recommendations = bom_operations.get_reorder_recommendations(tenant_id)
    except BomEngineError as e:
        raise click.ClickException(e.message) from e

    if not recommendations:
        print("✅ No materials need reordering.")
        return

    for rank, rec in enumerate(recommendations, start=1):
        row = rec.to_dict()
        print(
            f"{rank:>3}. [{row['priority']}] {row['material_name']} (#{row['material_id']}) "
            f"{row['severity']}: stock {row['current_stock']} / reorder point {row['reorder_point']} "
            f"-> order {row['suggested_order_quantity']} {row['unit']} (~{row['estimated_cost']:.2f})"
        )
    summary = summarize_recommendations(recommendations)
    print(f"Total: {summary['total_items']} item(s), estimated cost {summary['total_estimated_cost']:.2f}")


@click.command('forecast-capacity')
@click.option('--tenant', 'tenant_id', type=int, required=True)
@click.option('--recipe', 'recipe_id', type=int, required=True)
@click.option('--days', 'horizon_days', type=int, default=30, show_default=True)
@with_appcontext
def forecast_capacity_command(tenant_id, recipe_id, horizon_days):
    """Print the daily producible-units projection for a recipe"""
    try:
        snapshots = bom_operations.forecast_capacity(tenant_id, recipe_id, horizon_days)
        for snapshot in snapshots:
            limiting = snapshot.limiting_material_id if snapshot.limiting_material_id is not None else '-'
            print(f"day {snapshot.day:>3}: {snapshot.available_units} unit(s), limiting material {limiting}")
    except BomEngineError as e:
        raise click.ClickException(e.message) from e


def register_commands(app):
    """Register CLI commands"""
    app.cli.add_command(scan_low_stock_command)
    app.cli.add_command(reorder_report_command)
    app.cli.add_command(forecast_capacity_command)
