from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


@dataclass(frozen=True, slots=True)
class ClaimsSet:
    """
    Claims carried by a single token.

    :ivar issuer: Fixed ``iss`` value of this service.
    :ivar subject: User identifier (``sub``).
    :ivar issued_at: Issuance instant (aware UTC).
    :ivar expires_at: Expiry instant (aware UTC), strictly after ``issued_at``.
    :ivar audience: Intended ``aud``.
    :ivar token_id: Unique ``jti`` per issuance.
    :ivar token_type: ``"access"`` or ``"refresh"``.
    :ivar scope: Space-joined role names (access tokens only).
    """

    issuer: str
    subject: str
    issued_at: datetime
    expires_at: datetime
    audience: str
    token_id: str
    token_type: str = ACCESS_TOKEN_TYPE
    scope: str | None = None

    def __post_init__(self) -> None:
        if self.expires_at <= self.issued_at:
            raise ValueError("expires_at must be later than issued_at")

    @property
    def is_refresh(self) -> bool:
        return self.token_type == REFRESH_TOKEN_TYPE

    @property
    def scopes(self) -> tuple[str, ...]:
        return tuple((self.scope or "").split())


class TokenCodec(Protocol):
    """Port for signing claims into tokens and verifying them back."""

    def issue(self, claims: ClaimsSet) -> str:
        """
        Serialize and sign ``claims``.

        :raises SigningKeyError: When the private key is unavailable.
        """
        ...

    def decode(self, token: str) -> ClaimsSet:
        """
        Verify signature and structure and return the claims.

        Expiry and revocation are **not** checked here.

        :raises InvalidTokenError: On any verification failure.
        """
        ...
