from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Protocol

from werkzeug.security import check_password_hash, generate_password_hash


@dataclass(frozen=True, slots=True)
class UserIdentity:
    """
    Read-model of a user as seen by the token core.

    :ivar id: Stable user identifier, used as the token ``sub``.
    :ivar username: Login name.
    :ivar email: Contact email.
    :ivar password_hash: Stored password hash (never leaves the service layer).
    :ivar roles: Role names, joined into the access-token ``scope``.
    """

    id: str
    username: str
    email: str
    password_hash: str
    roles: tuple[str, ...] = ()


class UserDirectory(Protocol):
    """Read-only lookup of users. The token core never mutates it."""

    def find_by_username(self, username: str) -> UserIdentity | None: ...
    def find_by_id(self, user_id: str) -> UserIdentity | None: ...


class CredentialVerifier(Protocol):
    """Resolve a username/password pair to an identity, or ``None``."""

    def verify(self, username: str, password: str) -> UserIdentity | None: ...


class InMemoryUserDirectory(UserDirectory, CredentialVerifier):
    """Dictionary-backed directory used by unit tests and local tooling."""

    def __init__(self, users: Iterable[UserIdentity] = ()) -> None:
        self._by_id: dict[str, UserIdentity] = {}
        for user in users:
            self.add(user)

    def add(self, user: UserIdentity) -> UserIdentity:
        self._by_id[user.id] = user
        return user

    def create(
        self, *, user_id: str, username: str, password: str, roles: Iterable[str] = ()
    ) -> UserIdentity:
        """Register a user with a freshly hashed password."""
        return self.add(
            UserIdentity(
                id=user_id,
                username=username,
                email=f"{username}@example.com",
                password_hash=generate_password_hash(password),
                roles=tuple(roles),
            )
        )

    def remove(self, user_id: str) -> None:
        self._by_id.pop(user_id, None)

    def find_by_username(self, username: str) -> UserIdentity | None:
        return next((u for u in self._by_id.values() if u.username == username), None)

    def find_by_id(self, user_id: str) -> UserIdentity | None:
        return self._by_id.get(user_id)

    def verify(self, username: str, password: str) -> UserIdentity | None:
        user = self.find_by_username(username)
        if user is None or not check_password_hash(user.password_hash, password):
            return None
        return user
