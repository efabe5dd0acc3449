# Overview: Flask CLI command groups for database bootstrap and daily rate entry.

# backend/goldbook/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create any missing tables (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Daily rates:
# - python -m flask rates set gold 6000 [--date 2026-01-15] [--staff-id 1]
#   Publish the rate per gram in rupees for a metal type.
# - python -m flask rates show [--date 2026-01-15]
#   Print the rate board with the source of each rate.

import click
from flask.cli import with_appcontext

from .extensions import db
from .metals import METAL_LABELS, METAL_TYPES
from .services import rate_service
from .services.persistence import PersistenceFailure
from .validation import ValidationError, rupees_to_paise
from .time_utils import parse_iso_date, to_iso_date, today


def _parse_date_option(value):
    try:
        return parse_iso_date(value) or today()
    except ValueError:
        raise click.BadParameter("date must be YYYY-MM-DD")


def _format_rupees(paise: int) -> str:
    return f"{paise // 100}.{paise % 100:02d}"


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

    click.echo("PASS Database reset complete. Publish today's rates with 'python -m flask rates set'.")


@click.group('rates')
def rates_group():
    """Daily metal rate commands."""


@rates_group.command('set')
@click.argument('metal_type', type=click.Choice(METAL_TYPES))
@click.argument('rupees')
@click.option('--date', 'rate_date', default=None, help='Business date (YYYY-MM-DD), default today')
@click.option('--staff-id', type=int, default=None, help='Staff id recorded on the rate')
@with_appcontext
def set_rate(metal_type, rupees, rate_date, staff_id):
    """Publish the rate per gram for METAL_TYPE."""
    on_date = _parse_date_option(rate_date)
    try:
        row = rate_service.publish_rate(metal_type, rupees_to_paise(rupees, "rupees"), on_date, staff_id=staff_id)
    except (ValidationError, PersistenceFailure) as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS {METAL_LABELS[metal_type]} on {to_iso_date(row.rate_date)}: Rs {_format_rupees(row.rate_paise)}/g")


@rates_group.command('show')
@click.option('--date', 'rate_date', default=None, help='Business date (YYYY-MM-DD), default today')
@with_appcontext
def show_rates(rate_date):
    """Print the rate board for a date."""
    on_date = _parse_date_option(rate_date)
    board = rate_service.rates_for_date(on_date)

    click.echo(f"\nRates for {to_iso_date(on_date)}:")
    click.echo("-" * 60)
    for metal, resolution in board.items():
        if resolution.resolved:
            source = f"{resolution.source} ({to_iso_date(resolution.rate_date)})"
            click.echo(f"  {METAL_LABELS[metal]:<18} Rs {_format_rupees(resolution.rate_paise):>12}  {source}")
        else:
            click.echo(f"  {METAL_LABELS[metal]:<18} {'-':>15}  {resolution.source}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(rates_group)
