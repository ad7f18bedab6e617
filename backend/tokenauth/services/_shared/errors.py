"""
Domain-level exceptions used within the service layer.

These exceptions are **framework-agnostic** and never import Flask or HTTP
helpers. They are stable contracts between the token core, the ledgers and
the application services.

Token failures carry an explicit :class:`TokenErrorKind` so callers can
branch on ``err.kind`` instead of walking exception subclasses. Ledger
failures live in a separate family: an infrastructure hiccup must never be
mistaken for a security verdict.

The translation to HTTP responses (RFC 7807) is handled by
``tokenauth/core/errors.py`` via ``translate_service_error()``.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar

# --------------------------------------------------------------------------- #
# Base types
# --------------------------------------------------------------------------- #


class ServiceError(Exception):
    """
    Base class for all service-level errors.

    Notes
    -----
    - These are *not* HTTP errors.
    - The API layer or BaseService later translates them to APIError.
    """

    pass


@dataclass(slots=True)
class NotFoundError(ServiceError):
    """
    Raised when an entity is not found in the repository.

    :param entity: Entity name (e.g., "User").
    :type entity: str
    :param key: Identifier or search key.
    :type key: str | int
    """

    entity: str
    key: str | int

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.entity} not found: {self.key}"


@dataclass(slots=True)
class ConflictError(ServiceError):
    """
    Raised when a unique constraint or business rule conflict occurs.

    :param entity: Entity name (e.g., "User").
    :type entity: str
    :param detail: Short human-readable explanation.
    :type detail: str
    """

    entity: str
    detail: str

    def __str__(self) -> str:  # pragma: no cover
        return f"Conflict on {self.entity}: {self.detail}"


# --------------------------------------------------------------------------- #
# Token lifecycle
# --------------------------------------------------------------------------- #


class TokenErrorKind(str, Enum):
    """Stable, machine-readable reasons a token was refused."""

    INVALID_TOKEN = "invalid_token"
    TOKEN_EXPIRED = "token_expired"
    TOKEN_REVOKED = "token_revoked"
    NOT_A_REFRESH_TOKEN = "not_a_refresh_token"
    USER_NOT_FOUND = "user_not_found"


class TokenError(ServiceError):
    """
    Base class for every token refusal.

    Subclasses pin :attr:`kind`; the message is for humans and logs only.
    """

    kind: ClassVar[TokenErrorKind]
    default_message: ClassVar[str] = "Token rejected"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class InvalidTokenError(TokenError):
    """Malformed, forged or otherwise unverifiable token. Never retry."""

    kind = TokenErrorKind.INVALID_TOKEN
    default_message = "Invalid token"


class TokenExpiredError(TokenError):
    """Token is authentic but past its ``exp``."""

    kind = TokenErrorKind.TOKEN_EXPIRED
    default_message = "Token has expired"


class TokenRevokedError(TokenError):
    """Refresh chain is broken (rotated, revoked or unknown). Force re-login."""

    kind = TokenErrorKind.TOKEN_REVOKED
    default_message = "Refresh token has been revoked"


class NotARefreshTokenError(TokenError):
    """An access token was presented where a refresh token was required."""

    kind = TokenErrorKind.NOT_A_REFRESH_TOKEN
    default_message = "Not a refresh token"


class UserNotFoundError(TokenError):
    """The token subject no longer resolves to a user; treated as revoked."""

    kind = TokenErrorKind.USER_NOT_FOUND
    default_message = "User not found for token"


# --------------------------------------------------------------------------- #
# Refresh-token ledger
# --------------------------------------------------------------------------- #


class LedgerError(ServiceError):
    """Base class for failures raised by refresh-token ledgers."""

    pass


class LedgerUnavailableError(LedgerError):
    """
    Transient backing-store failure (timeout, lost connection, lock wait).

    Callers may retry; nothing about the token itself was decided.
    """

    pass


class LedgerConflictError(LedgerError):
    """A record with the same token id (or raw token value) already exists."""

    pass


# --------------------------------------------------------------------------- #
# Keys, credentials, registration, throttling
# --------------------------------------------------------------------------- #


class SigningKeyError(ServiceError):
    """Signing key material is missing, unparsable or of the wrong type."""

    pass


class AuthenticationError(ServiceError):
    """Credentials did not resolve to an active identity."""

    def __init__(self, message: str = "Invalid username or password") -> None:
        super().__init__(message)


class RegistrationError(ServiceError):
    """
    Registration was refused.

    :param message: Summary safe for clients.
    :param violations: Individual rule failures (e.g., password policy).
    """

    def __init__(self, message: str, violations: Sequence[str] | None = None) -> None:
        super().__init__(message)
        self.violations = list(violations or [])


class RateLimitExceededError(ServiceError):
    """
    A client exceeded the authentication request budget.

    :param retry_after: Seconds until the block lifts.
    """

    def __init__(self, retry_after: float) -> None:
        super().__init__("Too many requests. Please try again later.")
        self.retry_after = retry_after
