# Overview: Flask CLI command groups for bootstrap, registry administration, and inspection.

# backend/supplychain/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to supplychain (PowerShell: $env:FLASK_APP="supplychain").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init --admin 0xAdmin
#   Idempotent bootstrap: ensures tables exist and records the administrator identity.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Identity registry (runs as the configured administrator):
# - python -m flask participants grant 0xMaker Manufacturer "Acme Manufacturing"
#   Enroll an identity directly with a role.
# - python -m flask participants list [--role Distributor]
#
# Registration workflow (runs as the configured administrator):
# - python -m flask registrations pending
# - python -m flask registrations approve 0xShop
# - python -m flask registrations reject 0xShop
#
# Custody inspection:
# - python -m flask items list [--holder 0xShop] [--status Delivered]
# - python -m flask items history 1

import click
from flask.cli import with_appcontext

from .errors import CustodyError
from .extensions import db
from .roles import ItemStatus, parse_role, parse_status
from .services import custody_service, registration_service, registry_service, system_service


def _admin_or_fail():
    admin = system_service.get_admin_identity()
    if not admin:
        click.echo("FAIL No administrator configured. Run: python -m flask system init --admin <identity>")
        return None
    return admin


# =============================================================================
# SYSTEM COMMANDS
# =============================================================================

@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--admin', 'admin_identity', required=True, help='Administrator identity')
@with_appcontext
def init_system(admin_identity):
    """
    Initialize the custody service: schema and administrator identity.

    Re-running with a different --admin replaces the administrator.
    """
    click.echo("START Initializing custody service...")

    db.create_all()

    try:
        state = system_service.initialize_system(admin_identity)
        db.session.commit()
    except CustodyError as e:
        db.session.rollback()
        click.echo(f"FAIL {e.message}")
        return

    click.echo(f"PASS Administrator: {state.admin_identity}")
    click.echo(f"PASS Registered participants: {len(registry_service.list_participants())}")
    click.echo(f"PASS Items tracked: {custody_service.total_items()}")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA, including custody history!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete. Run 'python -m flask system init --admin <identity>' to initialize.")


# =============================================================================
# IDENTITY REGISTRY COMMANDS
# =============================================================================

@click.group('participants')
def participants_group():
    """Identity registry commands."""


@participants_group.command('grant')
@click.argument('identity')
@click.argument('role_name')
@click.argument('name')
@with_appcontext
def grant_role_cli(identity, role_name, name):
    """Enroll IDENTITY with ROLE_NAME (Manufacturer, Distributor, Retailer, Customer)."""
    admin = _admin_or_fail()
    if admin is None:
        return

    try:
        role = parse_role(role_name)
    except ValueError as e:
        click.echo(f"FAIL {e}")
        return

    try:
        participant = registry_service.register_participant(identity, role, name, caller=admin)
    except CustodyError as e:
        click.echo(f"FAIL {e.code}: {e.message}")
        return

    click.echo(f"PASS Granted {participant.role} to {participant.identity} ({participant.name})")


@participants_group.command('list')
@click.option('--role', 'role_name', help='Filter by role')
@with_appcontext
def list_participants_cli(role_name):
    """List registered participants."""
    role = None
    if role_name:
        try:
            role = parse_role(role_name)
        except ValueError as e:
            click.echo(f"FAIL {e}")
            return

    participants = registry_service.list_participants(role=role)
    if not participants:
        click.echo("No participants found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'Identity':<44} {'Role':<14} {'Name'}")
    click.echo("="*90)

    for p in participants:
        click.echo(f"{p.identity:<44} {p.role:<14} {p.name}")

    click.echo("="*90 + "\n")


# =============================================================================
# REGISTRATION WORKFLOW COMMANDS
# =============================================================================

@click.group('registrations')
def registrations_group():
    """Registration request review commands."""


@registrations_group.command('pending')
@with_appcontext
def list_pending_cli():
    """List identities with a pending request."""
    admin = _admin_or_fail()
    if admin is None:
        return

    identities = registration_service.list_pending_identities(caller=admin)
    if not identities:
        click.echo("No pending requests.")
        return

    for ident in identities:
        req = registration_service.get_request(ident)
        click.echo(f"{ident:<44} {req.requested_role:<14} {req.name}")


@registrations_group.command('approve')
@click.argument('identity')
@with_appcontext
def approve_cli(identity):
    """Approve the pending request for IDENTITY."""
    admin = _admin_or_fail()
    if admin is None:
        return

    try:
        req = registration_service.approve_request(identity, caller=admin)
    except CustodyError as e:
        click.echo(f"FAIL {e.code}: {e.message}")
        return

    click.echo(f"PASS Approved {req.identity} as {req.requested_role}")


@registrations_group.command('reject')
@click.argument('identity')
@with_appcontext
def reject_cli(identity):
    """Reject the pending request for IDENTITY."""
    admin = _admin_or_fail()
    if admin is None:
        return

    try:
        req = registration_service.reject_request(identity, caller=admin)
    except CustodyError as e:
        click.echo(f"FAIL {e.code}: {e.message}")
        return

    click.echo(f"PASS Rejected {req.identity}")


# =============================================================================
# CUSTODY INSPECTION COMMANDS
# =============================================================================

@click.group('items')
def items_group():
    """Custody ledger inspection commands."""


@items_group.command('list')
@click.option('--holder', help='Filter by current holder identity')
@click.option('--status', 'status_name', type=click.Choice([s.value for s in ItemStatus]), help='Filter by status')
@click.option('--limit', type=int, default=100, show_default=True)
@with_appcontext
def list_items_cli(holder, status_name, limit):
    """List tracked items."""
    status = parse_status(status_name) if status_name else None
    items = custody_service.list_items(holder=holder, status=status, limit=limit)

    if not items:
        click.echo("No items found.")
        return

    click.echo("\n" + "="*100)
    click.echo(f"{'ID':<6} {'Name':<30} {'Status':<14} {'Holder'}")
    click.echo("="*100)

    for item in items:
        click.echo(f"{item.id:<6} {item.name[:30]:<30} {item.status:<14} {item.current_holder}")

    click.echo("="*100)
    click.echo(f" Total registered: {custody_service.total_items()}\n")


@items_group.command('history')
@click.argument('item_id', type=int)
@with_appcontext
def item_history_cli(item_id):
    """Show the custody history of ITEM_ID."""
    try:
        entries = custody_service.history_of(item_id)
    except CustodyError as e:
        click.echo(f"FAIL {e.message}")
        return

    for entry in entries:
        data = entry.to_dict()
        source = data["from"] or "-"
        click.echo(f"#{data['sequence']:<3} {data['timestamp']}  {source} -> {data['to']}  [{data['status']}]  {data['notes']}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(participants_group)
    app.cli.add_command(registrations_group)
    app.cli.add_command(items_group)
