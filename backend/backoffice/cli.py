# Overview: Flask CLI command groups for bootstrap, user management and demo data.

# backend/backoffice/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init-db
#   Create all tables (development; use "flask db upgrade" for managed databases).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system seed
#   Idempotent demo data: one user per role, a customer, a supplier and stocked products.
#
# Users:
# - python -m flask users create --name "Admin" --email admin@example.com --password "Password123!" --role admin
#   Create a user (prompts if options are omitted).
# - python -m flask users list
# - python -m flask users deactivate --email sales@example.com
#   Deactivate a user and revoke all of their sessions.

import click
from flask.cli import with_appcontext

from .errors import DomainError
from .extensions import db
from .models import Customer, Product, Supplier, User
from .models.auth import VALID_ROLES
from .services import auth_service, customer_service, products_service, purchase_order_service
from .services.auth_service import create_user

DEMO_PASSWORD = "Password123!"

DEMO_USERS = (
    ("Admin User", "admin@backoffice.local", "admin"),
    ("Sales User", "sales@backoffice.local", "sales"),
    ("Warehouse User", "warehouse@backoffice.local", "warehouse"),
)

DEMO_PRODUCTS = (
    # sku, name, category, price, cost, reorder point, reorder qty, opening stock
    ("WID-001", "Standard Widget", "Widgets", 1000, 450, 20, 100, 150),
    ("WID-002", "Deluxe Widget", "Widgets", 2500, 1100, 10, 50, 40),
    ("GAD-001", "Pocket Gadget", "Gadgets", 4999, 2100, 5, 25, 4),
    ("CAB-010", "USB-C Cable 1m", "Accessories", 899, 220, 50, 200, 0),
)


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables for the current models."""
    db.create_all()
    click.echo("PASS Database tables created")


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


@system_group.command('seed')
@with_appcontext
def seed():
    """Create demo users, a customer, a supplier and products (skips what exists)."""
    db.create_all()

    for name, email, role in DEMO_USERS:
        if db.session.query(User.id).filter_by(email=email).first():
            click.echo(f"SKIP User {email} already exists")
            continue
        create_user(name=name, email=email, password=DEMO_PASSWORD, role=role)
        click.echo(f"PASS Created {role} user {email}")

    admin = db.session.query(User).filter_by(email=DEMO_USERS[0][1]).first()

    if not db.session.query(Customer.id).filter_by(email="buyer@acme.example").first():
        customer_service.create_customer(patch={
            "name": "Jane Buyer",
            "email": "buyer@acme.example",
            "company": "Acme Corp",
            "billing_address": "1 Main St, Springfield",
            "shipping_address": "1 Main St, Springfield",
        })
        click.echo("PASS Created demo customer")

    if not db.session.query(Supplier.id).filter_by(name="Widget Supply Co").first():
        purchase_order_service.create_supplier(patch={
            "name": "Widget Supply Co",
            "contact_name": "Sam Supplier",
            "email": "orders@widgetsupply.example",
            "payment_terms": "Net 30",
        })
        click.echo("PASS Created demo supplier")

    for sku, name, category, price, cost, reorder_point, reorder_qty, opening in DEMO_PRODUCTS:
        if db.session.query(Product.id).filter_by(sku=sku).first():
            click.echo(f"SKIP Product {sku} already exists")
            continue
        products_service.create_product(
            patch={
                "sku": sku,
                "name": name,
                "category": category,
                "unit_price_cents": price,
                "cost_price_cents": cost,
                "reorder_point": reorder_point,
                "reorder_quantity": reorder_qty,
            },
            opening_quantity=opening,
            actor_id=admin.id if admin else None,
        )
        click.echo(f"PASS Created product {sku} with {opening} on hand")

    click.echo(f"Demo users share the password: {DEMO_PASSWORD}")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--name', prompt=True, help='Display name')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(list(VALID_ROLES)), prompt=True, help='Role')
@with_appcontext
def create_user_cli(name, email, password, role):
    """
    Create a new user.

    Password must meet strength requirements:
    - Minimum 8 characters
    - At least one uppercase letter, one lowercase letter and one digit
    - At least one special character
    """
    try:
        user = create_user(name=name, email=email, password=password, role=role)
    except DomainError as e:
        raise click.ClickException(f"Failed to create user: {e.message}")

    click.echo(f"PASS Created user: {user.name} ({user.email}) with role '{role}'")
    click.echo("SECURITY Password securely hashed with bcrypt")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their roles."""
    users = db.session.query(User).order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "=" * 80)
    click.echo(f"{'ID':<5} {'Name':<20} {'Email':<32} {'Role':<10} {'Active'}")
    click.echo("=" * 80)
    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.name:<20} {user.email:<32} {user.role:<10} {active_str}")
    click.echo("=" * 80 + "\n")


@users_group.command('deactivate')
@click.option('--email', prompt=True, help='Email address')
@with_appcontext
def deactivate_user(email):
    """Deactivate a user and revoke every open session."""
    user = db.session.query(User).filter_by(email=email.strip().lower()).first()
    if not user:
        raise click.ClickException(f"User {email} not found")

    revoked = auth_service.deactivate_user(user.id)
    click.echo(f"PASS Deactivated {user.email}; revoked {revoked} session(s)")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
