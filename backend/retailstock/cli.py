# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/retailstock/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables and the default admin and employee accounts.
# - python -m flask system seed
#   Load demo departments, categories and products (skipped if any department exists).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User inspection/bootstrap:
# - python -m flask users list
#   List all users with role and active status.
# - python -m flask users create --username jane --email jane@shop.local --name "Jane" --password secret1 --role employee
#   Create a user (prompts if options are omitted).
#
# Stock integrity:
# - python -m flask stock verify
#   Compare each product's stock with its ledger and transaction history.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Department, User
from .money import to_cents
from .permissions import DEFAULT_EMPLOYEE_PERMISSIONS
from .services import category_service, department_service, products_service, users_service
from .services.stock_ledger_service import reconcile_all
from .validation import ConflictError, ValidationError, enforce_rules_user


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Initialize the system: tables and default accounts.

    Creates:
    - All tables (if missing)
    - Users: admin/admin@retailstock.local (admin), employee/employee@retailstock.local (employee)
    - All passwords default to: "Password123!"

    SECURITY: Change passwords immediately in production!
    """
    click.echo("START Initializing system...")

    db.create_all()
    click.echo("PASS Tables ready")

    default_password = "Password123!"
    default_users = [
        ("admin", "admin@retailstock.local", "Administrator", "admin"),
        ("employee", "employee@retailstock.local", "Shop Employee", "employee"),
    ]

    click.echo("\nUSERS Creating default users...")
    for username, email, name, role in default_users:
        existing = db.session.query(User).filter_by(username=username).first()
        if existing:
            click.echo(f"WARN  User '{username}' already exists, skipping...")
            continue

        try:
            users_service.create_user(
                patch={"username": username, "email": email, "name": name, "role": role},
                password=default_password,
            )
        except ConflictError as e:
            click.echo(f"FAIL Failed to create user '{username}': {e}")
            continue

        click.echo(f"PASS Created user: {username} ({email}) with role '{role}'")

    click.echo("\n" + "="*60)
    click.echo("DONE System Initialized Successfully!")
    click.echo("="*60)
    click.echo("\nDefault Credentials (CHANGE IN PRODUCTION!):")
    click.echo("   admin    -> admin@retailstock.local    / Password123!")
    click.echo("   employee -> employee@retailstock.local / Password123!")
    click.echo("")


SEED_CATALOG = [
    ("Groceries", "Food and household consumables", [
        ("Dairy", "GRO-DAIRY", [
            ("Whole Milk 1L", "MILK-1L", "1.20", 40, 10),
            ("Cheddar 200g", "CHED-200", "3.50", 15, 5),
        ]),
        ("Bakery", "GRO-BAKE", [
            ("Sourdough Loaf", "BREAD-SD", "2.80", 12, 6),
        ]),
    ]),
    ("Hardware", "Tools and fixings", [
        ("Hand Tools", "HW-TOOLS", [
            ("Claw Hammer", "HAMMER-16", "14.99", 8, 2),
            ("Screwdriver Set", "SDSET-6", "9.50", 3, 4),
        ]),
    ]),
]


@system_group.command('seed')
@with_appcontext
def seed_system():
    """Load a demo catalog. Opening stock is written to the stock ledger."""
    if db.session.query(Department).first():
        click.echo("WARN  Departments already exist, skipping seed")
        return

    admin = db.session.query(User).filter_by(role="admin", is_active=True).first()
    user_id = admin.id if admin else None

    for dept_name, description, categories in SEED_CATALOG:
        department = department_service.create_department(
            patch={"name": dept_name, "description": description}
        )
        click.echo(f"PASS Department: {dept_name} (ID: {department['id']})")
        for cat_name, cat_code, products in categories:
            category = category_service.create_category(
                patch={"name": cat_name, "code": cat_code, "department_id": department["id"]}
            )
            for name, code, price, stock, min_level in products:
                products_service.create_product(
                    patch={
                        "name": name,
                        "code": code,
                        "price_cents": to_cents(price),
                        "stock_quantity": stock,
                        "min_stock_level": min_level,
                        "department_id": department["id"],
                        "category_id": category["id"],
                    },
                    user_id=user_id,
                )
            click.echo(f"     Category {cat_code}: {len(products)} products")

    click.echo("DONE Seed complete")


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

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to initialize.")


# =============================================================================
# USER MANAGEMENT COMMANDS
# =============================================================================

@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--email', prompt=True, help='Email address')
@click.option('--name', prompt=True, help='Display name')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(['admin', 'employee']), prompt=True, help='Role')
@with_appcontext
def create_user_cli(username, email, name, password, role):
    """Create a new user. Employees get the default employee permissions."""
    patch = {"username": username, "email": email, "name": name, "role": role}
    try:
        enforce_rules_user(patch, password, creating=True)
        user = users_service.create_user(patch=patch, password=password)
    except (ValidationError, ConflictError) as e:
        click.echo(f"FAIL Failed to create user: {e}")
        return

    click.echo(f"PASS Created user: {user.username} ({user.email}) with role '{user.role}'")
    if user.role == "employee":
        click.echo(f"     Permissions: {', '.join(DEFAULT_EMPLOYEE_PERMISSIONS)}")
    click.echo("SECURITY Password securely hashed with bcrypt")


@users_group.command('list')
@click.option('--all', 'include_inactive', is_flag=True, help='Include deactivated users')
@with_appcontext
def list_users(include_inactive):
    """List users with their role and active status."""
    users = users_service.list_users(include_inactive=include_inactive)["items"]

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<5} {'Username':<20} {'Email':<32} {'Role':<10} {'Active':<8}")
    click.echo("="*90)
    for user in users:
        click.echo(
            f"{user['id']:<5} {user['username']:<20} {user['email']:<32} "
            f"{user['role']:<10} {('yes' if user['isActive'] else 'no'):<8}"
        )
    click.echo("")


# =============================================================================
# STOCK INTEGRITY COMMANDS
# =============================================================================

@click.group('stock')
def stock_group():
    """Stock ledger inspection commands."""


@stock_group.command('verify')
@with_appcontext
def verify_stock():
    """
    Check every product: stored stock == sum of ledger deltas == transaction history.

    Exits with status 1 if any product drifts.
    """
    rows = reconcile_all()
    drifting = [row for row in rows if not row["consistent"]]

    for row in drifting:
        click.echo(
            f"FAIL {row['code']} (ID: {row['productId']}): stock={row['stockQuantity']} "
            f"ledger={row['ledgerQuantity']} transactions={row['transactionQuantity']}"
        )

    if drifting:
        click.echo(f"\nFAIL {len(drifting)} of {len(rows)} products out of balance")
        raise SystemExit(1)

    click.echo(f"PASS {len(rows)} products balanced")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(stock_group)
