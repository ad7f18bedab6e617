# tokenauth/services/tokens/dto.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from tokenauth.services._shared.ports.user_directory import UserIdentity


@dataclass(frozen=True, slots=True)
class TokenPair:
    """
    Result of a successful issuance or rotation.

    :param access_token: Encoded access JWT.
    :type access_token: str
    :param refresh_token: Encoded refresh JWT (already recorded in the ledger).
    :type refresh_token: str
    :param identity: User the pair was issued for.
    :type identity: UserIdentity
    """

    access_token: str
    refresh_token: str
    identity: UserIdentity


@dataclass(frozen=True, slots=True)
class TokenLifecycleConfig:
    """
    Token emission configuration.

    :param issuer: ``iss`` claim.
    :type issuer: str
    :param audience: ``aud`` claim.
    :type audience: str
    :param access_expires: Access token lifetime.
    :type access_expires: timedelta
    :param refresh_expires: Refresh token lifetime.
    :type refresh_expires: timedelta
    """

    issuer: str = "tokenauth"
    audience: str = "tokenauth-api"
    access_expires: timedelta = timedelta(minutes=15)
    refresh_expires: timedelta = timedelta(days=7)

    def __post_init__(self) -> None:
        if self.access_expires <= timedelta(0) or self.refresh_expires <= timedelta(0):
            raise ValueError("token lifetimes must be positive")

    @classmethod
    def from_mapping(cls, config) -> TokenLifecycleConfig:
        """Build from a Flask config (``JWT_ISSUER``, ``JWT_*_TOKEN_EXPIRES``)."""
        return cls(
            issuer=config["JWT_ISSUER"],
            audience=config["JWT_AUDIENCE"],
            access_expires=config["JWT_ACCESS_TOKEN_EXPIRES"],
            refresh_expires=config["JWT_REFRESH_TOKEN_EXPIRES"],
        )
