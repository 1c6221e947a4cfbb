"""Flask CLI commands for session housekeeping."""

from __future__ import annotations

import logging

import click
from flask import current_app
from flask.cli import with_appcontext

from authcore.core.wiring import get_components

LOGGER = logging.getLogger(__name__)


@click.group("sessions")
def sessions_cli() -> None:
    """Maintenance commands for refresh tokens, reset tokens and rate limits."""


@sessions_cli.command("purge")
@with_appcontext
def purge_command() -> None:
    """Delete expired refresh/reset tokens and elapsed rate-limit windows."""
    service = get_components(current_app).maintenance_service()
    report = service.purge_expired()
    click.echo("Purge summary:")
    click.echo(f"  refresh_tokens      deleted={report.refresh_tokens:>4}")
    click.echo(f"  reset_tokens        deleted={report.reset_tokens:>4}")
    click.echo(f"  rate_limit_windows  deleted={report.rate_limit_windows:>4}")


@sessions_cli.command("revoke-user")
@click.argument("user_id")
@with_appcontext
def revoke_user_command(user_id: str) -> None:
    """Revoke every refresh token of USER_ID (forced sign-out)."""
    components = get_components(current_app)
    revoked = components.refresh_store.revoke_all_by_user(user_id)
    LOGGER.warning(
        "sessions.revoked_all",
        extra={"event": "sessions.revoked_all", "user_id": user_id, "revoked": revoked},
    )
    click.echo(f"Revoked {revoked} refresh token(s) for user {user_id}.")
