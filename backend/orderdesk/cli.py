# Overview: Flask CLI command groups for bootstrap and seed data.

# backend/orderdesk/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables that do not exist yet.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Seller management:
# - python -m flask sellers list
# - python -m flask sellers create --name "Green Leaf" --code "GREENLEAF"
#
# Sales people:
# - python -m flask sales-people create --seller-id 1 --name "Sam Rivera" --rate-bps 500
#
# Tier presets (shake sale tier / flower price tier):
# - python -m flask presets create --seller-id 1 --name "Shake A" --prices 500,900,1600,2500,4500,8000,15000
#   Prices are cents for 0.5g,1g,2g,3.5g,7g,14g,28g in that order.

import click
from flask.cli import with_appcontext

from .errors import OrderCoreError
from .extensions import db
from .models import SalesPerson, Seller
from .models.inventory import TIER_BREAKPOINTS
from .services import products_service


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables (idempotent)."""
    db.create_all()
    click.echo("PASS Schema ready.")


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


@click.group('sellers')
def sellers_group():
    """Seller (tenant) management."""


@sellers_group.command('list')
@with_appcontext
def list_sellers():
    sellers = db.session.query(Seller).order_by(Seller.id.asc()).all()
    if not sellers:
        click.echo("No sellers.")
        return
    for s in sellers:
        status = "active" if s.is_active else "inactive"
        click.echo(f"{s.id:>4}  {s.code or '-':<16} {s.name} ({status})")


@sellers_group.command('create')
@click.option('--name', required=True, help='Seller display name')
@click.option('--code', default=None, help='Unique short code')
@with_appcontext
def create_seller(name, code):
    if code and db.session.query(Seller).filter_by(code=code).first():
        raise click.ClickException(f"Seller code '{code}' already exists")
    seller = Seller(name=name, code=code, is_active=True)
    db.session.add(seller)
    db.session.commit()
    click.echo(f"PASS Created seller: {seller.name} (ID: {seller.id})")


@click.group('sales-people')
def sales_people_group():
    """Sales person management."""


@sales_people_group.command('create')
@click.option('--seller-id', type=int, required=True)
@click.option('--name', required=True)
@click.option('--email', default=None)
@click.option('--rate-bps', type=click.IntRange(0, 10_000), default=0, help='Commission rate in basis points')
@with_appcontext
def create_sales_person(seller_id, name, email, rate_bps):
    if not db.session.get(Seller, seller_id):
        raise click.ClickException(f"Seller {seller_id} not found")
    person = SalesPerson(seller_id=seller_id, full_name=name, email=email, commission_rate_bps=rate_bps)
    db.session.add(person)
    db.session.commit()
    click.echo(f"PASS Created sales person: {person.full_name} (ID: {person.id}, rate {rate_bps} bps)")


@click.group('presets')
def presets_group():
    """Tier preset management."""


@presets_group.command('create')
@click.option('--seller-id', type=int, required=True)
@click.option('--name', required=True)
@click.option('--prices', required=True, help='Seven comma-separated cent prices (0.5g..28g)')
@with_appcontext
def create_preset(seller_id, name, prices):
    try:
        values = [int(v.strip()) for v in prices.split(",")]
    except ValueError:
        raise click.ClickException("Prices must be integers (cents)")
    if len(values) != len(TIER_BREAKPOINTS):
        raise click.ClickException(f"Expected {len(TIER_BREAKPOINTS)} prices, got {len(values)}")

    try:
        preset = products_service.create_tier_preset(seller_id, name, dict(zip(TIER_BREAKPOINTS, values)))
    except OrderCoreError as e:
        raise click.ClickException(f"{e.code}: {e.message}")
    click.echo(f"PASS Created preset: {preset.name} (ID: {preset.id})")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(sellers_group)
    app.cli.add_command(sales_people_group)
    app.cli.add_command(presets_group)
