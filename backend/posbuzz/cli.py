# Overview: Flask CLI command groups for bootstrap, user setup, and maintenance.

# backend/posbuzz/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables that do not exist yet (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users create --email admin@posbuzz.local --password "secret1" --name "Admin"
#   Create a user (prompts if options are omitted).
# - python -m flask users list
#   List all users with active status and last login.
# - python -m flask users sessions cashier@posbuzz.local [--all]
#   Show a user's open sessions (IP, user agent, last use).
# - python -m flask users revoke-sessions cashier@posbuzz.local
#   Log a user out of every session.
#
# Maintenance:
# - python -m flask maintenance cleanup-sessions --retention-days 30
#   Delete expired/revoked session tokens older than the retention window.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User
from .services import auth_service, session_service
from .validation import ValidationError, ConflictError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create database tables."""
    db.create_all()
    click.echo("PASS Database tables created")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """DEV/TEST only: drop and recreate all tables."""
    if not yes:
        click.confirm("This deletes ALL data. Continue?", abort=True)
    db.drop_all()
    db.create_all()
    click.echo("PASS Database reset")


@click.group('users')
def users_group():
    """User management commands."""


@users_group.command('create')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--name', default=None, help='Display name')
@with_appcontext
def create_user_cli(email, password, name):
    """Create a user."""
    try:
        user = auth_service.register_user(email, password, name)
    except (ValidationError, ConflictError) as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Created user {user.email} (ID: {user.id})")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users."""
    users = db.session.query(User).order_by(User.id.asc()).all()
    if not users:
        click.echo("No users found")
        return
    for user in users:
        row = user.to_dict()
        status = "active" if row["is_active"] else "inactive"
        click.echo(
            f"{row['id']}\t{row['email']}\t{row['name'] or '-'}\t{status}"
            f"\tlast login {row['last_login_at'] or 'never'}"
        )


def _user_by_email(email):
    user = db.session.query(User).filter_by(email=auth_service.normalize_email(email)).first()
    if user is None:
        raise click.ClickException(f"No user with email {email}")
    return user


@users_group.command('sessions')
@click.argument('email')
@click.option('--all', 'include_revoked', is_flag=True, help='Include revoked sessions')
@with_appcontext
def list_sessions(email, include_revoked):
    """List a user's sessions with the client that opened them."""
    user = _user_by_email(email)
    sessions = session_service.list_user_sessions(user.id, include_revoked=include_revoked)
    if not sessions:
        click.echo("No sessions found")
        return
    for session in sessions:
        row = session.to_dict()
        state = f"revoked ({row['revoked_reason']})" if row["is_revoked"] else f"expires {row['expires_at']}"
        click.echo(
            f"{row['id']}\t{row['ip_address'] or '-'}\t{row['user_agent'] or '-'}"
            f"\tlast used {row['last_used_at']}\t{state}"
        )


@users_group.command('revoke-sessions')
@click.argument('email')
@with_appcontext
def revoke_sessions(email):
    """Log a user out everywhere."""
    user = _user_by_email(email)
    count = session_service.revoke_all_user_sessions(user.id, reason="Revoked from CLI")
    click.echo(f"PASS Revoked {count} session(s) for {user.email}")


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('cleanup-sessions')
@click.option('--retention-days', type=int, default=30, show_default=True, help='Keep sessions newer than this')
@with_appcontext
def cleanup_sessions(retention_days):
    """Delete old expired or revoked session tokens."""
    deleted = session_service.cleanup_expired_sessions(retention_days=retention_days)
    click.echo(f"PASS Deleted {deleted} session token(s)")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(maintenance_group)
