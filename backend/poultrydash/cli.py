# Overview: Flask CLI command groups for bootstrap, inspection and the daily feed sync.

# backend/poultrydash/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to poultrydash (PowerShell: $env:FLASK_APP="poultrydash").
# - Use: python -m flask <group> <command> [options]
#
# System:
# - python -m flask system init-db
#   Create all tables that do not exist yet.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users create --name "Ops" --email ops@farm.local
#   Create an operator and print their API token.
# - python -m flask users list
# - python -m flask users rotate-token ops@farm.local
#
# Farmers:
# - python -m flask farmers list --user-id 1
#
# Feed:
# - python -m flask feed sync [--user-id 1]
#   Accrue feed for every active cycle. Point the daily cron job here.
# - python -m flask feed schedule
#   Print the per-day feed table.

import click
from flask.cli import with_appcontext

from .extensions import db
from .feed_schedule import GRAMS_PER_BAG, schedule_rows
from .models import Farmer, User
from .services.auth_service import create_user, rotate_api_token
from .services.sync_service import sync_all
from .validation import ConflictError, ValidationError


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create any missing tables."""
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
    click.echo("BUILD Creating tables...")
    db.create_all()
    click.echo("PASS Database reset complete")


@click.group('users')
def users_group():
    """Operator management commands."""


@users_group.command('create')
@click.option('--name', prompt=True, help='Display name')
@click.option('--email', prompt=True, help='Email (unique)')
@with_appcontext
def create_user_cli(name, email):
    try:
        user = create_user(name=name, email=email)
    except (ValidationError, ConflictError) as e:
        click.echo(f"FAIL {e}")
        raise SystemExit(1)

    click.echo(f"PASS Created user {user.email} (ID: {user.id})")
    click.echo(f"API token: {user.api_token}")


@users_group.command('list')
@with_appcontext
def list_users():
    users = db.session.query(User).order_by(User.id).all()
    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*70)
    click.echo(f"{'ID':<5} {'Name':<25} {'Email':<30} {'Farmers'}")
    click.echo("="*70)
    for user in users:
        click.echo(f"{user.id:<5} {user.name:<25} {user.email:<30} {len(user.farmers)}")
    click.echo("="*70 + "\n")


@users_group.command('rotate-token')
@click.argument('email')
@with_appcontext
def rotate_token_cli(email):
    user = db.session.query(User).filter_by(email=email.strip().lower()).first()
    if not user:
        click.echo(f"FAIL No user with email '{email}'")
        raise SystemExit(1)
    token = rotate_api_token(user)
    click.echo(f"PASS New API token for {user.email}: {token}")


@click.group('farmers')
def farmers_group():
    """Farmer / stock pool inspection."""


@farmers_group.command('list')
@click.option('--user-id', type=int, required=True, help='Owner user ID')
@with_appcontext
def list_farmers_cli(user_id):
    farmers = db.session.query(Farmer).filter_by(user_id=user_id).order_by(Farmer.name).all()
    if not farmers:
        click.echo("No farmers found.")
        return

    click.echo("\n" + "="*70)
    click.echo(f"{'ID':<5} {'Name':<30} {'Input (bags)':>15} {'Remaining':>15}")
    click.echo("="*70)
    for farmer in farmers:
        click.echo(
            f"{farmer.id:<5} {farmer.name:<30} "
            f"{farmer.main_stock_input:>15.2f} {farmer.main_stock_remaining:>15.2f}"
        )
    click.echo("="*70 + "\n")


@click.group('feed')
def feed_group():
    """Feed accrual commands."""


@feed_group.command('sync')
@click.option('--user-id', type=int, default=None, help='Only sync this user (default: everyone)')
@with_appcontext
def sync_feed_cli(user_id):
    """Accrue feed for all active cycles. Safe to run more than once a day."""
    report = sync_all(user_id=user_id)

    click.echo(
        f"PASS Feed sync ({report.mode}): {report.updated_count} updated, "
        f"{report.skipped_count} skipped, {len(report.failures)} failed"
    )
    for result in report.results:
        click.echo(f"  cycle {result.cycle_id} {result.name!r}: day {result.age}, +{result.added_bags:.2f} bags")
    for failure in report.failures:
        click.echo(f"  FAIL cycle {failure.cycle_id}: {failure.error}")

    if report.failures:
        raise SystemExit(1)


@feed_group.command('schedule')
def show_schedule():
    click.echo(f"{'Day':>4} {'g/bird':>8} {'cumulative g/bird':>18}")
    for row in schedule_rows():
        click.echo(f"{row['day']:>4} {row['grams_per_bird']:>8} {row['cumulative_grams_per_bird']:>18}")
    click.echo(f"\nDays past the table use the last rate. 1 bag = {GRAMS_PER_BAG // 1000} kg.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(farmers_group)
    app.cli.add_command(feed_group)
