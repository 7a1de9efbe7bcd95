# Overview: Flask CLI command groups for bootstrap, demo data, and day-end maintenance.

# backend/qpos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create any missing tables (no data is touched).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Catalog:
# - python -m flask catalog seed
#   Load demo products, variants and a walk-in customer (skips existing SKUs).
# - python -m flask catalog low-stock
#   List variants at or below their reorder level.
#
# Sales:
# - python -m flask sales summary --period today
#   Print revenue, order count and payment mix for a period.
# - python -m flask sales reset-today --yes
#   Delete every order dated today. Stock and loyalty are NOT restored.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Product
from .services import catalog_service, customer_service, order_service, reporting_service
from .services.inventory_service import list_low_stock
from .services.cart_service import reset_cart
from .money import format_cents
from .time_utils import utcnow
from .validation import ValidationError


DEMO_PRODUCTS = [
    {
        "sku": "RUN-AIR-001",
        "name": "Air Runner",
        "base_price_cents": 499900,
        "description": "Lightweight running shoe",
        "variants": [
            {"size_uk": 7, "color": "Black", "barcode": "8901000000017", "stock_quantity": 12},
            {"size_uk": 8, "color": "Black", "barcode": "8901000000024", "stock_quantity": 10},
            {"size_uk": 9, "color": "White", "barcode": "8901000000031", "stock_quantity": 4,
             "price_adjustment_cents": 20000},
        ],
    },
    {
        "sku": "CAS-CNV-002",
        "name": "Canvas Classic",
        "base_price_cents": 199900,
        "description": "Everyday canvas sneaker",
        "variants": [
            {"size_uk": 6, "color": "Navy", "barcode": "8901000000048", "stock_quantity": 20},
            {"size_uk": 7, "color": "Navy", "barcode": "8901000000055", "stock_quantity": 3},
        ],
    },
    {
        "sku": "FRM-OXF-003",
        "name": "Oxford Leather",
        "base_price_cents": 749900,
        "description": "Formal leather oxford",
        "variants": [
            {"size_uk": 8, "color": "Brown", "barcode": "8901000000062", "stock_quantity": 6},
            {"size_uk": 10, "color": "Brown", "barcode": "8901000000079", "stock_quantity": 2,
             "reorder_level": 3},
        ],
    },
]

DEMO_CUSTOMER = {"name": "Walk-in Regular", "phone": "9000000001", "email": "regular@qpos.local"}


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    click.echo("BUILD  Creating tables...")
    db.create_all()
    click.echo("PASS Database ready. Run 'python -m flask catalog seed' for demo data.")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA, including the saved cart and store settings!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete. Run 'python -m flask catalog seed' to load demo data.")


@click.group('catalog')
def catalog_group():
    """Catalog demo data and stock inspection."""


@catalog_group.command('seed')
@with_appcontext
def seed_catalog():
    """Load demo products with variants, their INITIAL stock logs, and one customer."""
    click.echo("START Seeding catalog...")

    for demo in DEMO_PRODUCTS:
        if db.session.query(Product).filter_by(sku=demo["sku"]).first() is not None:
            click.echo(f"WARN  SKU {demo['sku']} already exists, skipping...")
            continue
        product = catalog_service.create_product(db.session, **demo)
        click.echo(f"PASS Created {product.name} ({product.sku}) with {len(demo['variants'])} variants")

    try:
        customer = customer_service.create_customer(db.session, **DEMO_CUSTOMER)
        click.echo(f"PASS Created customer {customer.name} (ID: {customer.id})")
    except ValidationError as e:
        click.echo(f"WARN  {e}, skipping...")

    click.echo("\nDONE Catalog seeded.")


@catalog_group.command('low-stock')
@with_appcontext
def low_stock():
    """List variants at or below their reorder level."""
    variants = list_low_stock(db.session)
    if not variants:
        click.echo("PASS No variants below reorder level.")
        return

    click.echo(f"\nLIST Low stock ({len(variants)} variants):\n")
    for v in variants:
        click.echo(
            f"  {v.product.sku:<14} size {v.size_uk!s:<5} {v.color or '-':<8} "
            f"stock {v.stock_quantity:>4} / reorder {v.reorder_level}"
        )


@click.group('sales')
def sales_group():
    """Sales reporting and day-end maintenance."""


@sales_group.command('summary')
@click.option('--period', type=click.Choice(reporting_service.VALID_PERIODS), default='today')
@with_appcontext
def sales_summary(period):
    """Print the sales summary for a period."""
    orders = reporting_service.load_orders(db.session)
    report = reporting_service.sales_summary(orders, period)

    click.echo(f"\nREPORT Sales ({period})")
    click.echo(f"  Revenue:        {format_cents(report['total_revenue_cents'])}")
    click.echo(f"  Orders:         {report['order_count']}")
    click.echo(f"  Average order:  {format_cents(report['average_order_value_cents'])}")
    click.echo(f"  Today revenue:  {format_cents(report['today_revenue_cents'])}")
    for method, amount in sorted(report['payment_methods'].items()):
        click.echo(f"    {method:<8} {format_cents(amount)}")


@sales_group.command('reset-today')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@click.option('--clear-cart', is_flag=True, help='Also discard the saved cart')
@with_appcontext
def reset_today(yes, clear_cart):
    """
    DANGER: Delete every order dated today.

    Stock decrements and loyalty points from those orders are NOT reversed.
    """
    if not yes:
        click.confirm("WARN This will DELETE today's orders. Are you sure?", abort=True)

    deleted = order_service.delete_orders_on(db.session, utcnow().date())
    click.echo(f"DELETE  Removed {deleted} orders dated today")

    if clear_cart:
        reset_cart(db.session)
        click.echo("DELETE  Saved cart discarded")

    click.echo("PASS Day reset complete.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(catalog_group)
    app.cli.add_command(sales_group)
