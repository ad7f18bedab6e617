"""
tokenauth.services._shared.ports
================================

Collection of *ports* (hexagonal interfaces) that define the contracts the
token core depends on.

These ports decouple the lifecycle manager and the auth service from the
concrete JWT library, the backing store of the refresh-token ledger and the
user database.

Modules
-------
- :mod:`token_codec`:
    Defines :class:`~.TokenCodec` and :class:`~.ClaimsSet`: signing and
    verification of self-contained tokens.

- :mod:`refresh_token_ledger`:
    Defines :class:`~.RefreshTokenLedger`, :class:`~.RefreshTokenRecord` and
    :class:`~.InMemoryRefreshTokenLedger`: the revocation source of truth.

- :mod:`user_directory`:
    Defines :class:`~.UserDirectory`, :class:`~.CredentialVerifier`,
    :class:`~.UserIdentity` and :class:`~.InMemoryUserDirectory`.

Design Notes
------------
Concrete adapters (SQL, Redis, PyJWT) implement these interfaces under
``tokenauth.infra``.
"""

from __future__ import annotations

from .refresh_token_ledger import (
    InMemoryRefreshTokenLedger,
    RefreshTokenLedger,
    RefreshTokenRecord,
)
from .token_codec import ACCESS_TOKEN_TYPE, REFRESH_TOKEN_TYPE, ClaimsSet, TokenCodec
from .user_directory import (
    CredentialVerifier,
    InMemoryUserDirectory,
    UserDirectory,
    UserIdentity,
)

__all__ = [
    "ACCESS_TOKEN_TYPE",
    "REFRESH_TOKEN_TYPE",
    "ClaimsSet",
    "TokenCodec",
    "RefreshTokenLedger",
    "RefreshTokenRecord",
    "InMemoryRefreshTokenLedger",
    "UserDirectory",
    "CredentialVerifier",
    "UserIdentity",
    "InMemoryUserDirectory",
]
