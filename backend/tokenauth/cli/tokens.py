"""Flask CLI commands for token housekeeping and key discovery."""

from __future__ import annotations

import json
import logging

import click
from flask.cli import with_appcontext

from tokenauth.core.extensions import get_components

LOGGER = logging.getLogger(__name__)


@click.group("tokens")
def tokens_cli() -> None:
    """Refresh-token ledger and signing-key commands."""


@tokens_cli.command("purge")
@with_appcontext
def purge_command() -> None:
    """Delete refresh-token records whose expiry has passed.

    Meant to run periodically (cron, k8s CronJob); revocation never waits on it.
    """
    removed = get_components().lifecycle.purge_expired()
    LOGGER.info("tokens.purge removed=%s", removed)
    click.echo(f"Purged {removed} expired refresh token(s).")


@tokens_cli.command("jwks")
@click.option("--pem", is_flag=True, help="Print the public key as PEM instead of a JWKS.")
@with_appcontext
def jwks_command(pem: bool) -> None:
    """Print the public signing key."""
    keys = get_components().keys
    if pem:
        click.echo(keys.public_pem().decode("ascii"), nl=False)
        return
    click.echo(json.dumps(keys.jwks(), indent=2))
