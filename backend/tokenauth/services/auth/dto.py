# tokenauth/services/auth/dto.py
from __future__ import annotations

from dataclasses import dataclass, field

# ---------------------------- Input DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class RegisterIn:
    """
    Input DTO for registration.

    :param username: Desired login name.
    :type username: str
    :param email: Contact email.
    :type email: str
    :param password: Raw password (checked against the policy, then hashed).
    :type password: str
    """

    username: str
    email: str
    password: str


@dataclass(frozen=True, slots=True)
class LoginIn:
    """
    Input DTO for login.

    :param username: Login name.
    :type username: str
    :param password: Raw password (to be verified).
    :type password: str
    """

    username: str
    password: str


@dataclass(frozen=True, slots=True)
class RefreshIn:
    """
    Input DTO for token refresh.

    :param refresh_token: Encoded refresh JWT.
    :type refresh_token: str
    """

    refresh_token: str


@dataclass(frozen=True, slots=True)
class LogoutIn:
    """
    Input DTO for logout.

    :param token: Encoded refresh JWT to revoke (access tokens are accepted and ignored).
    :type token: str
    :param all_sessions: If True, revoke every refresh token of the token owner;
        ``token`` must then be a live refresh token.
    :type all_sessions: bool
    """

    token: str
    all_sessions: bool = False


# --------------------------- Output DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class AuthResultOut:
    """
    Output DTO returned by register, login and refresh.

    :param access_token: Encoded access JWT.
    :param refresh_token: Encoded refresh JWT.
    :param expires_in: Access token lifetime in seconds.
    :param username: Authenticated user name.
    :param email: Authenticated user email.
    :param roles: Role names granted to the user.
    :param token_type: Always ``"Bearer"``.
    """

    access_token: str
    refresh_token: str
    expires_in: int
    username: str
    email: str
    roles: tuple[str, ...] = field(default_factory=tuple)
    token_type: str = "Bearer"


@dataclass(frozen=True, slots=True)
class LogoutOut:
    """
    Output DTO for logout.

    :param revoked_sessions: Refresh tokens revoked by ``all_sessions``.
    """

    revoked_sessions: int = 0


@dataclass(frozen=True, slots=True)
class WhoAmIOut:
    """Profile of the access-token subject."""

    id: str
    username: str
    email: str
    roles: tuple[str, ...] = field(default_factory=tuple)
