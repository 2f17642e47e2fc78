# Overview: Flask CLI command groups for bootstrap, demo data, and inventory audits.

# backend/aquadist/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to "aquadist:create_app".
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init [--admin-email admin@aquadist.local]
#   Idempotent: creates all tables and a default admin user.
# - python -m flask system seed-demo
#   Demo catalog, customers and opening warehouse stock (skips existing codes).
#
# Inventory:
# - python -m flask inventory verify
#   Replay the movement ledger and report items whose quantity drifted.
#
# Users:
# - python -m flask users create --email ana@aquadist.local --full-name "Ana" --role seller
# - python -m flask users list

import click
from decimal import Decimal
from flask.cli import with_appcontext

from .extensions import db
from .errors import DomainError
from .permissions import ROLES
from .services import inventory_service, user_service
from .services.datastore import DataStore
from .validation import ConflictError, ValidationError


DEMO_PRODUCTS = [
    # code, name, category, net price, bottle deposit, opening stock
    ("REC-20L", "Recarga Bidón 20L", "water", "2000", True, 200),
    ("BID-20L", "Bidón 20L Nuevo", "water", "6500", False, 60),
    ("AGUA-6L", "Agua Purificada 6L", "water", "1200", False, 120),
    ("DISP-EL", "Dispensador Eléctrico", "dispenser", "45000", False, 8),
    ("BOMBA-M", "Bomba Manual", "accessory", "3500", False, 25),
    ("PACK-4", "Pack 4 Recargas", "pack", "7200", True, 30),
]

DEMO_CUSTOMERS = [
    # code, full name, category, tax id, street, number, district, city, bottles owned, bottles lent
    ("CLI-001", "María González", "personal", None, "Av. Providencia", "1234", "Providencia", "Santiago", 2, 1),
    ("CLI-002", "Oficinas Andes SpA", "business", "76.123.456-7", "Apoquindo", "4500", "Las Condes", "Santiago", 0, 6),
    ("CLI-003", "Pedro Rojas", "personal", "12.345.678-5", "Los Leones", "88", "Ñuñoa", "Santiago", 1, 2),
]


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init')
@click.option('--admin-email', default='admin@aquadist.local', help='Email of the default admin user')
@click.option('--admin-name', default='Administrador', help='Full name of the default admin user')
@with_appcontext
def init_system(admin_email, admin_name):
    """Create tables and the default admin user (idempotent)."""
    click.echo("START Initializing AquaDist...")
    db.create_all()
    click.echo("PASS Tables ready")

    store = DataStore()
    existing = store.users.first({"email": admin_email.lower()})
    if existing:
        click.echo(f"WARN  User '{admin_email}' already exists, skipping...")
    else:
        user = user_service.create_user(admin_email, admin_name, role="admin", store=store)
        click.echo(f"PASS Created admin user {user.email} (ID: {user.id})")

    click.echo("DONE System initialized. Send the user id in the actor header from the identity proxy.")


@system_group.command('seed-demo')
@with_appcontext
def seed_demo():
    """Load demo products, customers and opening stock."""
    store = DataStore()

    created = 0
    for code, name, category, price, deposit, stock in DEMO_PRODUCTS:
        if store.products.first({"code": code}):
            continue
        with store.transaction():
            product = store.products.insert({
                "code": code,
                "name": name,
                "category": category,
                "price": Decimal(price),
                "affects_bottle_deposit": deposit,
            })
            inventory_service.apply_movement(
                product.id, stock, "adjustment", None,
                notes="Opening stock", direction="in", store=store,
            )
        created += 1
    click.echo(f"PASS Products created: {created}")

    created = 0
    for code, full_name, category, tax_id, street, number, district, city, owned, lent in DEMO_CUSTOMERS:
        if store.customers.first({"code": code}):
            continue
        with store.transaction():
            store.customers.insert({
                "code": code,
                "full_name": full_name,
                "category": category,
                "tax_id": tax_id,
                "street": street,
                "number": number,
                "district": district,
                "city": city,
                "bottles_owned": owned,
                "bottles_lent": lent,
            })
        created += 1
    click.echo(f"PASS Customers created: {created}")


@click.group('inventory')
def inventory_group():
    """Inventory audit commands."""


@inventory_group.command('verify')
@with_appcontext
def verify_inventory():
    """Replay the movement ledger against stored quantities; exits 1 on drift."""
    mismatches = inventory_service.verify_ledger()
    if not mismatches:
        click.echo("PASS Every inventory item matches its movement ledger")
        return
    for m in mismatches:
        click.echo(
            f"FAIL item {m['inventory_item_id']} product {m['product_id']} ({m['location']}): "
            f"stored {m['stored_quantity']}, ledger {m['replayed_quantity']}"
        )
    raise SystemExit(1)


@click.group('users')
def users_group():
    """User inspection/bootstrap commands."""


@users_group.command('create')
@click.option('--email', prompt=True, help='Email address')
@click.option('--full-name', prompt=True, help='Full name')
@click.option('--role', type=click.Choice(list(ROLES)), prompt=True, help='Role')
@click.option('--phone', default=None, help='Phone number')
@with_appcontext
def create_user_cli(email, full_name, role, phone):
    """Create a back-office user."""
    try:
        user = user_service.create_user(email, full_name, role=role, phone=phone)
    except (ValidationError, ConflictError, DomainError) as e:
        click.echo(f"FAIL {e}")
        raise SystemExit(1)
    click.echo(f"PASS Created user {user.email} (ID: {user.id}, role: {user.role})")


@users_group.command('list')
@with_appcontext
def list_users_cli():
    """List all users with role and active status."""
    for user in user_service.list_users():
        status = "active" if user.is_active else "inactive"
        click.echo(f"{user.id:>4}  {user.email:<32} {user.role:<10} {status}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(inventory_group)
    app.cli.add_command(users_group)
