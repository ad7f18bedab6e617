# tokenauth/services/tokens/lifecycle.py
"""
Issue, validate, rotate and revoke tokens.

Access tokens are self-contained and never persisted. Every refresh token is
recorded in a :class:`RefreshTokenLedger`; the ledger is the sole authority on
whether a refresh token may still be used, so a token the ledger does not
know is treated as revoked.

Rotation is single-use: the old record is flipped to revoked with a
compare-and-set *after* the replacement pair has been issued, and only the
caller that wins that flip keeps its new pair.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Iterable
from datetime import UTC, datetime

from tokenauth.services._shared.errors import (
    InvalidTokenError,
    LedgerConflictError,
    NotARefreshTokenError,
    TokenExpiredError,
    TokenRevokedError,
    UserNotFoundError,
)
from tokenauth.services._shared.ports.refresh_token_ledger import (
    RefreshTokenLedger,
    RefreshTokenRecord,
)
from tokenauth.services._shared.ports.token_codec import (
    ACCESS_TOKEN_TYPE,
    REFRESH_TOKEN_TYPE,
    ClaimsSet,
    TokenCodec,
)
from tokenauth.services._shared.ports.user_directory import UserDirectory, UserIdentity
from tokenauth.services.tokens.dto import TokenLifecycleConfig, TokenPair

log = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class TokenLifecycleManager:
    """
    Token issuance and refresh-token rotation over pluggable ports.

    :param codec: Signs and verifies tokens.
    :param ledger: Refresh-token revocation source of truth.
    :param users: Resolves token subjects back to identities.
    :param config: Issuer, audience and lifetimes.
    :param clock: Returns the current aware UTC instant; injectable for tests.
    """

    def __init__(
        self,
        codec: TokenCodec,
        ledger: RefreshTokenLedger,
        users: UserDirectory,
        config: TokenLifecycleConfig | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.codec = codec
        self.ledger = ledger
        self.users = users
        self.cfg = config or TokenLifecycleConfig()
        self._clock = clock or _utcnow

    # ------------------------------------------------------------------ #
    # Issuance
    # ------------------------------------------------------------------ #

    def issue_access_token(self, subject: str, scopes: Iterable[str] = ()) -> str:
        """
        Sign a short-lived access token. Nothing is persisted.

        :param subject: User identifier.
        :param scopes: Role names joined into the ``scope`` claim.
        """
        claims = self._claims(
            subject, ACCESS_TOKEN_TYPE, self.cfg.access_expires, scope=" ".join(scopes)
        )
        return self.codec.issue(claims)

    def issue_refresh_token(self, subject: str) -> str:
        """
        Sign a refresh token and record it in the ledger.

        The token is only returned once the ledger insert succeeded.

        :raises LedgerUnavailableError: Ledger could not be reached.
        :raises LedgerConflictError: Token id collision.
        """
        return self._record_refresh(subject).token

    def issue_pair(self, identity: UserIdentity) -> TokenPair:
        """Issue a fresh access + refresh pair for ``identity`` (login path)."""
        access = self.issue_access_token(identity.id, identity.roles)
        refresh = self.issue_refresh_token(identity.id)
        return TokenPair(access_token=access, refresh_token=refresh, identity=identity)

    # ------------------------------------------------------------------ #
    # Validation
    # ------------------------------------------------------------------ #

    def validate_access_token(self, token: str) -> ClaimsSet:
        """
        Decode an access token and check its expiry.

        :raises InvalidTokenError: Bad signature, shape, or a refresh token.
        :raises TokenExpiredError: ``exp`` is not in the future.
        """
        claims = self.codec.decode(token)
        if claims.token_type != ACCESS_TOKEN_TYPE:
            raise InvalidTokenError("Access token required")
        if claims.expires_at <= self._clock():
            raise TokenExpiredError()
        return claims

    # ------------------------------------------------------------------ #
    # Refresh-token verification
    # ------------------------------------------------------------------ #

    def verify_refresh_token(self, token: str) -> ClaimsSet:
        """
        Check that ``token`` is a refresh token the ledger still honours.

        Checks run in order: signature and shape, type, expiry, ledger record.

        :raises InvalidTokenError: Token does not verify.
        :raises NotARefreshTokenError: An access token was presented.
        :raises TokenExpiredError: Refresh token is past ``exp``.
        :raises TokenRevokedError: Unknown to the ledger or already revoked.
        :raises LedgerUnavailableError: Ledger could not be reached.
        """
        claims = self.codec.decode(token)
        if claims.token_type != REFRESH_TOKEN_TYPE:
            raise NotARefreshTokenError()
        if claims.expires_at <= self._clock():
            log.warning(
                "refresh.expired sub=%s jti=%s",
                claims.subject,
                claims.token_id,
                extra={"subject": claims.subject, "jti": claims.token_id},
            )
            raise TokenExpiredError()

        record = self.ledger.find_by_id(claims.token_id)
        if record is None or record.revoked:
            log.warning(
                "refresh.replay sub=%s jti=%s known=%s",
                claims.subject,
                claims.token_id,
                record is not None,
                extra={"subject": claims.subject, "jti": claims.token_id},
            )
            raise TokenRevokedError()
        return claims

    # ------------------------------------------------------------------ #
    # Rotation
    # ------------------------------------------------------------------ #

    def rotate(self, old_refresh_token: str) -> TokenPair:
        """
        Exchange a refresh token for a new pair, revoking the old one.

        :raises InvalidTokenError: Token does not verify.
        :raises NotARefreshTokenError: An access token was presented.
        :raises TokenExpiredError: Refresh token is past ``exp``.
        :raises TokenRevokedError: Unknown, revoked, or lost a concurrent rotation.
        :raises UserNotFoundError: Subject no longer exists.
        :raises LedgerUnavailableError: Ledger could not be reached.
        """
        claims = self.verify_refresh_token(old_refresh_token)

        identity = self.users.find_by_id(claims.subject)
        if identity is None:
            raise UserNotFoundError()

        access = self.issue_access_token(identity.id, identity.roles)
        try:
            new_record = self._record_refresh(identity.id)
        except LedgerConflictError as exc:
            raise TokenRevokedError("Refresh token could not be rotated") from exc

        if not self.ledger.mark_revoked(claims.token_id):
            # a concurrent rotation or revocation consumed the old token first
            self.ledger.mark_revoked(new_record.token_id)
            log.warning(
                "refresh.race_lost sub=%s jti=%s",
                claims.subject,
                claims.token_id,
                extra={"subject": claims.subject, "jti": claims.token_id},
            )
            raise TokenRevokedError()

        log.info(
            "refresh.rotated sub=%s jti=%s",
            claims.subject,
            claims.token_id,
            extra={"subject": claims.subject, "jti": claims.token_id},
        )
        return TokenPair(access_token=access, refresh_token=new_record.token, identity=identity)

    # ------------------------------------------------------------------ #
    # Revocation
    # ------------------------------------------------------------------ #

    def revoke(self, token: str) -> None:
        """
        Revoke a refresh token. Idempotent.

        Access tokens, unknown ids, expired and already revoked tokens are
        accepted silently.

        :raises InvalidTokenError: Token does not verify.
        """
        claims = self.codec.decode(token)
        if claims.token_type != REFRESH_TOKEN_TYPE:
            return
        if self.ledger.mark_revoked(claims.token_id):
            log.info(
                "refresh.revoked sub=%s jti=%s",
                claims.subject,
                claims.token_id,
                extra={"subject": claims.subject, "jti": claims.token_id},
            )

    def revoke_all_for_subject(self, subject: str) -> int:
        """Revoke every active refresh token of ``subject``. :returns: Count revoked."""
        now = self._clock()
        revoked = sum(
            1
            for record in self.ledger.find_by_owner(subject)
            if record.is_active(now) and self.ledger.mark_revoked(record.token_id)
        )
        log.info("refresh.revoked_all sub=%s count=%s", subject, revoked, extra={"subject": subject})
        return revoked

    def purge_expired(self) -> int:
        """Drop ledger rows past their expiry. :returns: Rows removed."""
        return self.ledger.purge_expired(self._clock())

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    def _record_refresh(self, subject: str) -> RefreshTokenRecord:
        claims = self._claims(subject, REFRESH_TOKEN_TYPE, self.cfg.refresh_expires)
        record = RefreshTokenRecord(
            token_id=claims.token_id,
            owner_id=claims.subject,
            token=self.codec.issue(claims),
            expires_at=claims.expires_at,
            created_at=claims.issued_at,
        )
        self.ledger.insert(record)
        return record

    def _claims(self, subject, token_type, lifetime, scope=None) -> ClaimsSet:
        # JWT NumericDate has second precision; keep ledger and token in step
        now = self._clock().astimezone(UTC).replace(microsecond=0)
        return ClaimsSet(
            issuer=self.cfg.issuer,
            subject=str(subject),
            issued_at=now,
            expires_at=now + lifetime,
            audience=self.cfg.audience,
            token_id=str(uuid.uuid4()),
            token_type=token_type,
            scope=scope,
        )
