# Overview: Flask CLI command groups for bootstrap, inspection, and stock maintenance.

# backend/ims/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Use: python -m flask --app ims <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask --app ims system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Catalog:
# - python -m flask --app ims catalog add-category "Beverages" --by admin
# - python -m flask --app ims catalog add-product "Green Tea" --category-id 1 --cost 250 --price 400 --opening-stock 20 --by admin
# - python -m flask --app ims catalog list
#
# Stock:
# - python -m flask --app ims stock show 1
#   Current stock plus reconciliation against purchases and active orders.
# - python -m flask --app ims stock correct 1 --by admin --reason "Damaged in transit" -- -2
#   Manual correction as a signed delta (audited).
#
# Audit trail:
# - python -m flask --app ims audit recent --limit 20

import json

import click
from flask.cli import with_appcontext

from .extensions import db
from .errors import LedgerError
from .services import audit_service, catalog_service, stock_service


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA, including the audit trail.
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete.")


@click.group('catalog')
def catalog_group():
    """Category and product commands."""


@catalog_group.command('add-category')
@click.argument('name')
@click.option('--by', 'actor', required=True, help='Actor recorded in the audit trail')
@with_appcontext
def add_category_cli(name, actor):
    """Create a product category."""
    try:
        category = catalog_service.create_category(name=name, created_by=actor)
    except LedgerError as e:
        raise click.ClickException(e.message)
    click.echo(f"PASS Created category: {category.name} (ID: {category.id})")


@catalog_group.command('add-product')
@click.argument('name')
@click.option('--category-id', type=int, help='Category ID')
@click.option('--cost', 'cost_price_cents', type=int, default=0, show_default=True, help='Cost price (cents)')
@click.option('--price', 'selling_price_cents', type=int, default=0, show_default=True, help='Selling price (cents)')
@click.option('--opening-stock', type=int, default=0, show_default=True, help='Opening stock')
@click.option('--by', 'actor', required=True, help='Actor recorded in the audit trail')
@with_appcontext
def add_product_cli(name, category_id, cost_price_cents, selling_price_cents, opening_stock, actor):
    """Create a product; opening stock becomes current stock."""
    try:
        product = catalog_service.create_product(
            name=name,
            category_id=category_id,
            cost_price_cents=cost_price_cents,
            selling_price_cents=selling_price_cents,
            opening_stock=opening_stock,
            created_by=actor,
        )
    except LedgerError as e:
        raise click.ClickException(e.message)
    click.echo(f"PASS Created product: {product.name} (ID: {product.id}, Stock: {product.current_stock})")


@catalog_group.command('list')
@with_appcontext
def list_catalog_cli():
    """List products with their current stock."""
    products = catalog_service.list_products()
    if not products:
        click.echo("No products found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Name':<30} {'Category':<10} {'Price':<12} {'Opening':<8} {'Stock'}")
    click.echo("="*80)

    for p in products:
        category = p.category_id if p.category_id is not None else "-"
        price = f"{p.selling_price_cents / 100:.2f}"
        click.echo(f"{p.id:<5} {p.name[:30]:<30} {category:<10} {price:<12} {p.opening_stock:<8} {p.current_stock}")

    click.echo("="*80 + "\n")


@click.group('stock')
def stock_group():
    """Stock ledger inspection and correction."""


@stock_group.command('show')
@click.argument('product_id', type=int)
@with_appcontext
def show_stock_cli(product_id):
    """Show stock position and reconciliation for a product."""
    try:
        summary = stock_service.get_stock_summary(product_id)
    except LedgerError as e:
        raise click.ClickException(e.message)

    for key, value in summary.items():
        click.echo(f"{key:<28} {value}")
    if summary["correction_delta"]:
        click.echo(f"WARN Net manual corrections: {summary['correction_delta']:+d}")


@stock_group.command('correct')
@click.argument('product_id', type=int)
@click.argument('delta', type=int)
@click.option('--by', 'actor', required=True, help='Actor recorded in the audit trail')
@click.option('--reason', help='Why the correction is needed')
@with_appcontext
def correct_stock_cli(product_id, delta, actor, reason):
    """Apply a signed stock correction (e.g. -2 for damaged units)."""
    try:
        product = stock_service.correct_stock(
            product_id=product_id,
            delta=delta,
            changed_by=actor,
            reason=reason,
        )
    except LedgerError as e:
        raise click.ClickException(e.message)
    click.echo(f"PASS Stock for {product.name} is now {product.current_stock}")


@click.group('audit')
def audit_group():
    """Audit trail inspection."""


@audit_group.command('recent')
@click.option('--limit', type=int, help='Number of entries (defaults to AUDIT_RECENT_LIMIT)')
@click.option('--json', 'as_json', is_flag=True, help='Print entries as JSON lines')
@with_appcontext
def recent_audit_cli(limit, as_json):
    """List the most recent audit entries, newest first."""
    try:
        entries = audit_service.list_recent(limit)
    except LedgerError as e:
        raise click.ClickException(e.message)

    if not entries:
        click.echo("No audit entries found.")
        return

    if as_json:
        for entry in entries:
            click.echo(json.dumps(entry.to_dict(), sort_keys=True))
        return

    click.echo("\n" + "="*100)
    click.echo(f"{'ID':<6} {'Timestamp':<22} {'Module':<10} {'Action':<14} {'Target':<14} {'By'}")
    click.echo("="*100)

    for entry in entries:
        click.echo(f"{entry.id:<6} {str(entry.timestamp)[:19]:<22} {entry.module:<10} "
                   f"{entry.action:<14} {entry.target_id:<14} {entry.changed_by}")

    click.echo("="*100 + "\n")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(catalog_group)
    app.cli.add_command(stock_group)
    app.cli.add_command(audit_group)
