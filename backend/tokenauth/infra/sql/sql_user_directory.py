"""User directory and credential verifier over the ``users`` table."""

from __future__ import annotations

from collections.abc import Callable
from functools import cache

from werkzeug.security import check_password_hash, generate_password_hash

from tokenauth.models.user import User
from tokenauth.services._shared.ports.user_directory import (
    CredentialVerifier,
    UserDirectory,
    UserIdentity,
)
from tokenauth.uow.sqlalchemy_uow import SQLAlchemyReadOnlyUnitOfWork


@cache
def _dummy_hash() -> str:
    return generate_password_hash("tokenauth-timing-equaliser")


def to_identity(user: User) -> UserIdentity:
    return UserIdentity(
        id=str(user.id),
        username=user.username,
        email=user.email,
        password_hash=user.password_hash,
        roles=user.role_names,
    )


class SqlUserDirectory(UserDirectory, CredentialVerifier):
    """
    Read-only adapter; every lookup opens its own read-only Unit of Work.

    :param uow_factory: Builds a read-only Unit of Work per call.
    """

    def __init__(
        self,
        uow_factory: Callable[[], SQLAlchemyReadOnlyUnitOfWork] = SQLAlchemyReadOnlyUnitOfWork,
    ) -> None:
        self._uow_factory = uow_factory

    def find_by_username(self, username: str) -> UserIdentity | None:
        with self._uow_factory() as uow:
            user = uow.users.get_by_username(username)
            return to_identity(user) if user is not None else None

    def find_by_id(self, user_id: str) -> UserIdentity | None:
        if not str(user_id).isdigit():
            return None
        with self._uow_factory() as uow:
            user = uow.users.get(int(user_id))
            return to_identity(user) if user is not None else None

    def verify(self, username: str, password: str) -> UserIdentity | None:
        """
        Check credentials, spending one hash comparison whether or not the user exists.
        """
        identity = self.find_by_username(username)
        if identity is None:
            check_password_hash(_dummy_hash(), password)
            return None
        if not check_password_hash(identity.password_hash, password):
            return None
        return identity
