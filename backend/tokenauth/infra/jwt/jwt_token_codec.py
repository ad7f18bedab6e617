from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

import jwt

from tokenauth.infra.keys.signing_key_provider import SIGNING_ALGORITHM, SigningKeyProvider
from tokenauth.services._shared.errors import InvalidTokenError, SigningKeyError
from tokenauth.services._shared.ports.token_codec import (
    ACCESS_TOKEN_TYPE,
    REFRESH_TOKEN_TYPE,
    ClaimsSet,
    TokenCodec,
)

log = logging.getLogger(__name__)

REQUIRED_CLAIMS = ["iss", "sub", "iat", "exp", "aud", "jti", "type"]
TOKEN_TYPES = frozenset({ACCESS_TOKEN_TYPE, REFRESH_TOKEN_TYPE})


class PyJWTTokenCodec(TokenCodec):
    """
    RS256 JWT codec backed by PyJWT and a :class:`SigningKeyProvider`.

    :param keys: Provider of the active signing pair.
    :param issuer: Expected and emitted ``iss``.
    :param audience: Expected and emitted ``aud``.

    Notes
    -----
    ``exp`` and ``iat`` are parsed but not enforced here; the lifecycle
    manager compares ``expires_at`` against its own clock so expiry is
    reported as a distinct error kind.
    """

    def __init__(self, keys: SigningKeyProvider, *, issuer: str, audience: str) -> None:
        self._keys = keys
        self._issuer = issuer
        self._audience = audience

    def issue(self, claims: ClaimsSet) -> str:
        pair = self._keys.current_key_pair()
        if pair is None or pair.private_key is None:
            raise SigningKeyError("No signing key available")
        payload: dict[str, Any] = {
            "iss": claims.issuer,
            "sub": claims.subject,
            "aud": claims.audience,
            "iat": int(claims.issued_at.timestamp()),
            "exp": int(claims.expires_at.timestamp()),
            "jti": claims.token_id,
            "type": claims.token_type,
        }
        if claims.scope is not None:
            payload["scope"] = claims.scope
        return jwt.encode(
            payload,
            pair.private_key,
            algorithm=SIGNING_ALGORITHM,
            headers={"kid": pair.key_id},
        )

    def decode(self, token: str) -> ClaimsSet:
        if not token or not isinstance(token, str):
            raise InvalidTokenError("Token is empty")
        pair = self._keys.current_key_pair()
        try:
            header = jwt.get_unverified_header(token)
            kid = header.get("kid")
            if kid is not None and kid != pair.key_id:
                raise InvalidTokenError("Unknown signing key")
            payload = jwt.decode(
                token,
                pair.public_key,
                algorithms=[SIGNING_ALGORITHM],
                audience=self._audience,
                issuer=self._issuer,
                options={
                    "verify_exp": False,
                    "verify_iat": False,
                    "require": REQUIRED_CLAIMS,
                },
            )
            return self._to_claims(payload)
        except InvalidTokenError:
            raise
        except (jwt.PyJWTError, ValueError, TypeError, OverflowError) as exc:
            log.debug("codec.decode.rejected reason=%s", exc)
            raise InvalidTokenError() from exc

    # ------------------------- helpers -------------------------

    @staticmethod
    def _to_claims(payload: dict[str, Any]) -> ClaimsSet:
        token_type = payload["type"]
        if token_type not in TOKEN_TYPES:
            raise InvalidTokenError("Unknown token type")
        scope = payload.get("scope")
        if scope is not None and not isinstance(scope, str):
            raise InvalidTokenError("Malformed scope claim")
        aud = payload["aud"]
        audience = aud[0] if isinstance(aud, list) and aud else aud
        return ClaimsSet(
            issuer=str(payload["iss"]),
            subject=str(payload["sub"]),
            issued_at=datetime.fromtimestamp(int(payload["iat"]), tz=UTC),
            expires_at=datetime.fromtimestamp(int(payload["exp"]), tz=UTC),
            audience=str(audience),
            token_id=str(payload["jti"]),
            token_type=token_type,
            scope=scope,
        )
