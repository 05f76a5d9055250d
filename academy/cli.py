# cli.py
"""
Flask CLI commands for the academy scheduling backend.
"""

import click
from flask.cli import with_appcontext

from academy.errors import AcademyError
from academy.extensions import db
from academy.utils.parsing import parse_date


def _print_sessions(sessions):
    click.echo(f"{'Date':<12} {'Day':<10} {'Time':<13} {'Classroom':<14} {'Mode':<10} {'Group':<36}")
    click.echo("-" * 98)
    for s in sessions:
        time_range = f"{s.start_time.strftime('%H:%M')}-{s.end_time.strftime('%H:%M')}"
        click.echo(f"{s.date.isoformat():<12} {s.date.strftime('%A'):<10} {time_range:<13} "
                   f"{s.classroom:<14} {s.mode:<10} {s.group_id or '-':<36}")


@click.command("generate-sessions")
@click.argument("group_id")
@click.argument("start")
@click.argument("end")
@click.option("--dry-run", is_flag=True, help="Show what would be generated without making changes")
@with_appcontext
def generate_sessions(group_id, start, end, dry_run):
    """
    Generate dated sessions from the recurring schedules.

    GROUP_ID may be 'all' to cover every group that is not cancelled.

    Example usage:
        flask generate-sessions all 2025-01-01 2025-01-31
        flask generate-sessions <group-id> 2025-02-01 2025-02-28 --dry-run
    """
    from academy.services import SessionGenerationService

    scope = None if group_id.lower() == 'all' else group_id

    try:
        start_date = parse_date(start, 'start')
        end_date = parse_date(end, 'end')

        if dry_run:
            sessions = SessionGenerationService.preview(scope, start_date, end_date)
            click.echo(f"DRY RUN - {len(sessions)} sessions would be created:")
        else:
            sessions = SessionGenerationService.generate(scope, start_date, end_date)
            click.echo(f"Created {len(sessions)} sessions:")

        if sessions:
            _print_sessions(sessions)

    except AcademyError as e:
        click.echo(f"Error [{e.error_code}]: {e.message}", err=True)
        raise SystemExit(1)


@click.command("create-user")
@click.option("--email", required=True)
@click.option("--full-name", required=True)
@click.option("--role", type=click.Choice(['admin', 'teacher', 'student']), default='student')
@with_appcontext
def create_user(email, full_name, role):
    """Add an admin, teacher or student to the directory."""
    from academy.models import User

    if User.query.filter_by(email=email).first():
        click.echo(f"Error: user {email} already exists", err=True)
        raise SystemExit(1)

    try:
        user = User(email=email, full_name=full_name, role=role)
        db.session.add(user)
        db.session.commit()
        click.echo(f"Created {role} {email} with id {user.id}")
    except Exception as e:
        db.session.rollback()
        click.echo(f"Error creating user: {str(e)}", err=True)
        raise


@click.command("init-db")
@with_appcontext
def init_database():
    """Initialize the database tables."""
    try:
        # Models must be imported so their tables are registered
        import academy.models  # noqa: F401

        db.create_all()
        click.echo("Database tables created.")

    except Exception as e:
        click.echo(f"Database initialization failed: {str(e)}", err=True)
        raise


def register_cli_commands(app):
    """
    Register all CLI commands with the Flask application.

    Args:
        app: Flask application instance
    """
    app.cli.add_command(generate_sessions)
    app.cli.add_command(create_user)
    app.cli.add_command(init_database)
