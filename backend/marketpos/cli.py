# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/marketpos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create any missing tables (use "flask db upgrade" for migrated databases).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system check-ledger
#   Report products whose quantity differs from their stock history. Exits 1 on mismatch.
#
# Catalog:
# - python -m flask catalog list [--all]
#   List products (use --all to include removed ones).
# - python -m flask catalog add --barcode 8901234567890 --name "Milk 1L" --quantity 24 --cost 0.80 --price 1.20
#   Add a product with its initial stock.

import click
from flask.cli import with_appcontext

from .errors import DuplicateBarcodeError
from .extensions import db
from .services import catalog_service, ledger_service
from .validation import ValidationError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database tables created.")


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

    click.echo("PASS Database reset complete.")


@system_group.command('check-ledger')
@with_appcontext
def check_ledger():
    """Compare every product's quantity with the sum of its stock history."""
    mismatches = ledger_service.find_inconsistencies()

    if not mismatches:
        click.echo("PASS Stock history matches product quantities.")
        return

    click.echo(f"FAIL {len(mismatches)} product(s) out of balance:")
    click.echo(f"{'ID':<6} {'Barcode':<20} {'Quantity':<10} {'Ledger'}")
    for row in mismatches:
        click.echo(
            f"{row['product_id']:<6} {row['barcode']:<20} {row['quantity']:<10} {row['ledger_balance']}"
        )
    raise SystemExit(1)


@click.group('catalog')
def catalog_group():
    """Product catalog inspection and bootstrap."""


@catalog_group.command('list')
@click.option('--all', 'include_inactive', is_flag=True, help='Include removed products')
@with_appcontext
def list_products(include_inactive):
    """List products ordered by name."""
    products = catalog_service.get_all(include_inactive=include_inactive)

    if not products:
        click.echo("No products found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'Barcode':<20} {'Name':<30} {'Qty':<8} {'Cost':<10} {'Price':<10} {'Active'}")
    click.echo("="*90)

    for p in products:
        active_str = "Yes" if p.is_active else "No"
        click.echo(
            f"{p.barcode:<20} {p.name:<30} {p.quantity:<8} {str(p.cost_price):<10} "
            f"{str(p.selling_price):<10} {active_str}"
        )

    click.echo("="*90 + "\n")


@catalog_group.command('add')
@click.option('--barcode', required=True, help='Product barcode')
@click.option('--name', required=True, help='Product name')
@click.option('--category', default=None, help='Category')
@click.option('--quantity', type=int, default=0, show_default=True, help='Initial stock')
@click.option('--cost', default="0", help='Cost price')
@click.option('--price', default="0", help='Selling price')
@with_appcontext
def add_product(barcode, name, category, quantity, cost, price):
    """Add a product and record its initial stock."""
    try:
        product = catalog_service.create({
            "barcode": barcode,
            "name": name,
            "category": category,
            "quantity": quantity,
            "cost_price": cost,
            "selling_price": price,
        })
    except (ValidationError, DuplicateBarcodeError) as e:
        raise click.ClickException(str(e))

    click.echo(f"PASS Added {product.name} ({product.barcode}), quantity {product.quantity}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(catalog_group)
