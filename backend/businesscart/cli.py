# Overview: Flask CLI command groups for bootstrap, onboarding, and maintenance.

# backend/businesscart/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to businesscart (PowerShell: $env:FLASK_APP="businesscart").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables that do not exist yet (use `flask db upgrade` for migrations).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Accounts:
# - python -m flask accounts create-admin --name "Ops" --email admin@businesscart.local --password "Password123!"
#   Create an admin account (admins cannot self-register).
# - python -m flask accounts list [--role company]
#   List accounts with role and status.
#
# Onboarding codes:
# - python -m flask codes create --company-code ACME-CO --customer-code ACME-CU [--partner-code ACME-PA]
#   Issue an onboarding code row.
#
# Maintenance:
# - python -m flask maintenance cleanup-tokens
#   Delete expired refresh tokens and blacklist entries.
# - python -m flask orders reconcile [--limit 100]
#   Retry cart/quote cleanup for placed orders whose cleanup is still pending.

import click
from flask.cli import with_appcontext

from .extensions import db
from .errors import BusinessCartError
from .models import Account
from .services import auth_service, order_service
from .services.token_service import cleanup_expired_tokens


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables (idempotent)."""
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


@click.group('accounts')
def accounts_group():
    """Account inspection and bootstrap commands."""


@accounts_group.command('create-admin')
@click.option('--name', default='Administrator', help='Display name')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@with_appcontext
def create_admin_cli(name, email, password):
    """
    Create an admin account.

    Password must meet strength requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character
    """
    try:
        account = auth_service.create_admin(name=name, email=email, password=password)
        click.echo(f"PASS Created admin: {account.email} (ID: {account.id})")
    except BusinessCartError as e:
        click.echo(f"FAIL {e.message}")


@accounts_group.command('list')
@click.option('--role', type=click.Choice(['admin', 'company', 'customer', 'partner']), help='Filter by role')
@with_appcontext
def list_accounts_cli(role):
    """List accounts."""
    query = db.session.query(Account)
    if role:
        query = query.filter_by(role=role)
    accounts = query.order_by(Account.created_at.asc()).all()

    if not accounts:
        click.echo("No accounts found.")
        return

    click.echo(f"\n{'ID':<34} {'Role':<10} {'Status':<10} {'Email'}")
    click.echo("-" * 90)
    for account in accounts:
        click.echo(f"{account.id:<34} {account.role:<10} {account.account_status:<10} {account.email}")
    click.echo(f"\nTotal: {len(accounts)} accounts")


@click.group('codes')
def codes_group():
    """Onboarding code commands."""


@codes_group.command('create')
@click.option('--company-code', required=True, help='Company registration code')
@click.option('--customer-code', required=True, help='Customer registration code')
@click.option('--partner-code', default=None, help='Partner registration code (optional)')
@with_appcontext
def create_code_cli(company_code, customer_code, partner_code):
    """Issue an onboarding code row."""
    try:
        code = auth_service.create_code(company_code, customer_code, partner_code)
        click.echo(f"PASS Created code {code.id} (company: {code.company_code}, customer: {code.customer_code})")
    except BusinessCartError as e:
        click.echo(f"FAIL {e.message}")


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('cleanup-tokens')
@with_appcontext
def cleanup_tokens_cli():
    """Delete expired refresh tokens and blacklist entries."""
    refresh_deleted, blacklist_deleted = cleanup_expired_tokens()
    click.echo(f"Deleted {refresh_deleted} refresh tokens and {blacklist_deleted} blacklist entries.")


@click.group('orders')
def orders_group():
    """Order maintenance commands."""


@orders_group.command('reconcile')
@click.option('--limit', type=int, default=None, help='Max cleanups to process')
@with_appcontext
def reconcile_cli(limit):
    """Retry cart/quote cleanup for orders whose cleanup is still pending."""
    result = order_service.reconcile_cleanups(limit=limit)
    click.echo(
        f"Processed {result['processed']} cleanups: "
        f"{result['completed']} completed, {result['pending']} still pending."
    )


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(accounts_group)
    app.cli.add_command(codes_group)
    app.cli.add_command(maintenance_group)
    app.cli.add_command(orders_group)
