"""Command Line Interface for Estate CRM.

Usage:
    estate-crm server                 # Start API server
    estate-crm init-db                # Create missing tables
    estate-crm create-admin EMAIL     # Create an ADMIN account
    estate-crm set-role EMAIL ROLE    # Change a user's role
    estate-crm info                   # Show configuration
"""
from __future__ import annotations

import typer
import uvicorn
from sqlalchemy.engine import make_url

from estate_crm.core.config import get_settings
from estate_crm.core.db import get_session, init_db as create_tables
from estate_crm.core.exceptions import ConflictError
from estate_crm.core.logging_config import get_logger, setup_logging
from estate_crm.core.models import UserRole

LOGGER = get_logger(__name__)
SETTINGS = get_settings()

app = typer.Typer(help="Estate CRM CLI")


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose output"),
) -> None:
    """Estate CRM - properties, leads, visits and commissions."""
    log_level = "DEBUG" if verbose else SETTINGS.log_level
    setup_logging(level=log_level, json_format=SETTINGS.log_format == "json")


# =============================================================================
# Server Commands
# =============================================================================


@app.command("server")
def run_server(
    host: str = typer.Option("0.0.0.0", help="Host to bind to"),
    port: int = typer.Option(8000, help="Port to bind to"),
    reload: bool = typer.Option(False, help="Enable auto-reload for development"),
) -> None:
    """Start the API server."""
    typer.echo(f"Starting API server on {host}:{port}...")
    uvicorn.run("estate_crm.api.app:app", host=host, port=port, reload=reload)


# =============================================================================
# Database Commands
# =============================================================================


@app.command("init-db")
def init_db() -> None:
    """Create any missing database tables."""
    typer.echo("Initializing database...")
    result = create_tables(create_missing_only=True)
    if result["status"] == "error":
        typer.secho(f"✗ Database initialization failed: {result.get('error')}", fg="red")
        raise typer.Exit(1)

    typer.secho("✓ Database ready", fg="green")
    typer.echo(f"  Created: {', '.join(result['tables_created']) or 'none'}")
    for warning in result["warnings"]:
        typer.secho(f"  ! {warning}", fg="yellow")


# =============================================================================
# Account Commands
# =============================================================================


@app.command("create-admin")
def create_admin(
    email: str = typer.Argument(..., help="Admin email address"),
    first_name: str = typer.Option("Admin", help="First name"),
    last_name: str = typer.Option("User", help="Last name"),
    password: str = typer.Option(
        ..., prompt=True, confirmation_prompt=True, hide_input=True, help="Password (min 6 chars)"
    ),
) -> None:
    """Create an ADMIN account. Registration over HTTP always creates agents."""
    from estate_crm.domain.users import UserService

    if len(password) < 6:
        typer.secho("✗ Password must be at least 6 characters", fg="red")
        raise typer.Exit(1)

    try:
        with get_session() as session:
            user = UserService(session=session).create_admin(
                email=email,
                password=password,
                first_name=first_name,
                last_name=last_name,
            )
            user_id = user.id
    except ConflictError as e:
        typer.secho(f"✗ {e}", fg="red")
        raise typer.Exit(1)

    typer.secho(f"✓ Created admin {email} (id={user_id})", fg="green")


@app.command("set-role")
def set_role(
    email: str = typer.Argument(..., help="User email address"),
    role: UserRole = typer.Argument(..., help="New role", case_sensitive=False),
) -> None:
    """Change a user's role. Existing tokens keep the old role until they expire."""
    from estate_crm.domain.users import UserService

    with get_session() as session:
        service = UserService(session=session)
        user = service.get_by_email(email)
        if user is None:
            typer.secho(f"✗ No user with email {email}", fg="red")
            raise typer.Exit(1)
        service.update_user(user.id, role=role.value)

    typer.secho(f"✓ {email} is now {role.value}", fg="green")


# =============================================================================
# Utility Commands
# =============================================================================


@app.command("info")
def show_info() -> None:
    """Show application configuration info."""
    typer.echo("Estate CRM Configuration:")
    typer.echo(f"  Environment: {SETTINGS.environment}")
    typer.echo(f"  Database: {make_url(SETTINGS.database_url).render_as_string(hide_password=True)}")
    typer.echo(f"  Log Level: {SETTINGS.log_level}")
    typer.echo(f"  Log Format: {SETTINGS.log_format}")
    typer.echo(f"  Token Lifetime: {SETTINGS.jwt_access_token_expire_minutes} minutes")
    typer.echo(f"  Auth Cookie: {SETTINGS.auth_cookie_name} (secure={SETTINGS.auth_cookie_secure})")
    typer.echo(f"  Status Transitions: {SETTINGS.status_transition_mode}")
    typer.echo(f"  Page Limit: {SETTINGS.default_page_limit} (max {SETTINGS.max_page_limit})")
    typer.echo(f"  Allowed Origins: {', '.join(SETTINGS.get_allowed_origins())}")


if __name__ == "__main__":
    app()
