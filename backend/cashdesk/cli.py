# Overview: Flask CLI command groups for bootstrap, inspection, and period maintenance.

# backend/cashdesk/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to cashdesk (PowerShell: $env:FLASK_APP="cashdesk").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init [--demo]
#   Idempotent bootstrap: tables, register state, default membership prices,
#   and (with --demo or SEED_DEMO_INVENTORY=true) the demo catalog.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Catalog inspection:
# - python -m flask products list [--search milk]
#
# Register:
# - python -m flask register drawer
#   Current drawer position since the last day close.
# - python -m flask register close-day --yes [--report day.csv]
#   Carry the balance forward and purge the day (optionally export the report first).
# - python -m flask register consolidate-month --month 2026-09 --out 2026-09.csv
#   Write the month summary CSV, then purge the month.

import csv

import click
from flask import current_app
from flask.cli import with_appcontext

from .errors import PosError
from .extensions import db
from .services import inventory_service, pricing_service, period_service
from .services.ledger_service import current_drawer_totals
from .services.register_service import ensure_register_state
from .time_utils import parse_month, to_utc_z
from .validation import cents_to_money


def _write_csv(path: str, rows: list[list[str]]) -> None:
    # utf-8-sig so spreadsheet tools detect the encoding
    with open(path, "w", newline="", encoding="utf-8-sig") as fh:
        csv.writer(fh, quoting=csv.QUOTE_ALL).writerows(rows)


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--demo', is_flag=True, help='Seed the demo catalog when the catalog is empty')
@with_appcontext
def init_system(demo):
    """
    Initialize the cash desk.

    Creates:
    - All tables (if missing)
    - The register state row (opening balance 0)
    - Default membership/service prices (existing prices are kept)
    - Demo inventory, when requested and the catalog is empty
    """
    click.echo("START Initializing cash desk...")
    db.create_all()

    state = ensure_register_state()
    click.echo(f"PASS Register opened at {to_utc_z(state.opened_at)} "
               f"with balance {cents_to_money(state.opening_balance_cents)}")

    added = pricing_service.seed_default_prices()
    click.echo(f"PASS Membership prices: {added} added")

    if demo or current_app.config.get("SEED_DEMO_INVENTORY"):
        products = inventory_service.seed_demo_inventory()
        click.echo(f"PASS Demo inventory: {len(products)} products added")

    click.echo("DONE")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete")


@click.group('products')
def products_group():
    """Catalog inspection commands."""


@products_group.command('list')
@click.option('--search', default=None, help='Case-insensitive name filter')
@with_appcontext
def list_products_cli(search):
    """List the catalog with prices and stock."""
    products = inventory_service.list_products(search)
    if not products:
        click.echo("No products found.")
        return

    click.echo("\n" + "=" * 70)
    click.echo(f"{'ID':<6} {'Name':<40} {'Price':>12} {'Stock':>8}")
    click.echo("=" * 70)
    for product in products:
        click.echo(
            f"{product.id:<6} {product.name[:40]:<40} "
            f"{cents_to_money(product.price_cents):>12} {product.stock:>8}"
        )
    click.echo("=" * 70 + "\n")


@click.group('register')
def register_group():
    """Drawer position and period close commands."""


@register_group.command('drawer')
@with_appcontext
def drawer_cli():
    """Show the drawer position since the last day close."""
    totals = current_drawer_totals()
    click.echo(f"Opening balance:  {cents_to_money(totals.opening_balance_cents):>12}")
    click.echo(f"Drawer sales:     {cents_to_money(totals.drawer_sales_total_cents):>12}")
    click.echo(f"Transfer sales:   {cents_to_money(totals.transfer_sales_total_cents):>12}")
    click.echo(f"Manual inflows:   {cents_to_money(totals.manual_inflows_cents):>12}")
    click.echo(f"Outflows:         {cents_to_money(totals.manual_outflows_cents):>12}")
    click.echo(f"Drawer balance:   {cents_to_money(totals.drawer_balance_cents):>12}")
    click.echo(f"Tickets:          {totals.sale_count:>12}")


@register_group.command('close-day')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@click.option('--report', 'report_path', default=None, help='Write the day report CSV here first')
@with_appcontext
def close_day_cli(yes, report_path):
    """
    DANGER: Carry the drawer balance forward and purge the day's sales and movements.
    """
    report = period_service.day_close_report()
    click.echo(f"Closing balance: {cents_to_money(report.totals.drawer_balance_cents)}")

    if not yes:
        click.confirm("WARN This will DELETE the day's sales and movements. Continue?", abort=True)

    if report_path:
        _write_csv(report_path, report.to_rows())
        click.echo(f"PASS Day report written to {report_path}")

    try:
        state = period_service.close_day(report.closed_at)
    except PosError as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Day closed; new opening balance {cents_to_money(state.opening_balance_cents)}")


@register_group.command('consolidate-month')
@click.option('--month', required=True, help='Month to consolidate (YYYY-MM)')
@click.option('--out', 'out_path', required=True, help='CSV file for the month summary')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def consolidate_month_cli(month, out_path, yes):
    """
    DANGER: Export the month summary to CSV, then purge the month.

    Nothing is deleted if the file cannot be written.
    """
    try:
        month_start = parse_month(month)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint='--month')

    if not yes:
        click.confirm(f"WARN This will DELETE all sales and movements of {month}. Continue?", abort=True)

    try:
        result = period_service.consolidate_month(
            month_start,
            lambda s: _write_csv(out_path, s.to_rows()),
        )
    except PosError as e:
        raise click.ClickException(str(e))

    click.echo(f"PASS Summary written to {out_path}")
    click.echo(f"PASS Purged {result.sales_purged} sales and {result.movements_purged} movements")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(products_group)
    app.cli.add_command(register_group)
