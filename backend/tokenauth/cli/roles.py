"""Flask CLI commands for role bootstrap."""

from __future__ import annotations

import logging

import click
from flask import current_app
from flask.cli import with_appcontext

from tokenauth.uow.sqlalchemy_uow import SQLAlchemyUnitOfWork

LOGGER = logging.getLogger(__name__)

DEFAULT_ROLES = ("ROLE_USER", "ROLE_ADMIN", "ROLE_HR")


@click.group("roles")
def roles_cli() -> None:
    """Role management commands."""


@roles_cli.command("seed")
@click.argument("names", nargs=-1)
@with_appcontext
def seed_command(names: tuple[str, ...]) -> None:
    """Create NAMES (default: ROLE_USER ROLE_ADMIN ROLE_HR plus DEFAULT_ROLE) if missing."""
    wanted = list(names) or [*DEFAULT_ROLES, current_app.config.get("DEFAULT_ROLE", "ROLE_USER")]
    created = existing = 0
    with SQLAlchemyUnitOfWork() as uow:
        for name in dict.fromkeys(n.strip().upper() for n in wanted):
            _, was_created = uow.roles.get_or_create(name)
            if was_created:
                created += 1
            else:
                existing += 1
    LOGGER.info("roles.seed created=%s existing=%s", created, existing)
    click.echo(f"Roles: created={created} existing={existing}")
