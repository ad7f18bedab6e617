"""Unit tests for the RS256 PyJWT codec."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import jwt
import pytest

from tests.helpers.tokens import AUDIENCE, ISSUER
from tokenauth.infra.jwt.jwt_token_codec import PyJWTTokenCodec
from tokenauth.infra.keys.signing_key_provider import SigningKeyProvider
from tokenauth.services._shared.errors import InvalidTokenError
from tokenauth.services._shared.ports import ClaimsSet

NOW = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)


def _claims(**overrides) -> ClaimsSet:
    values = dict(
        issuer=ISSUER,
        subject="42",
        issued_at=NOW,
        expires_at=NOW + timedelta(minutes=15),
        audience=AUDIENCE,
        token_id="jti-1",
        token_type="access",
        scope="ROLE_USER",
    )
    values.update(overrides)
    return ClaimsSet(**values)


def _sign(signing_keys, payload, headers=None) -> str:
    private_key = signing_keys.current_key_pair().private_key
    return jwt.encode(payload, private_key, algorithm="RS256", headers=headers)


@pytest.fixture()
def base_payload():
    return {
        "iss": ISSUER,
        "sub": "42",
        "aud": AUDIENCE,
        "iat": int(NOW.timestamp()),
        "exp": int((NOW + timedelta(minutes=5)).timestamp()),
        "jti": "jti-x",
        "type": "access",
    }


class TestIssueDecode:
    def test_decode_restores_issued_claims(self, codec):
        claims = _claims()
        assert codec.decode(codec.issue(claims)) == claims

    def test_header_carries_kid_and_alg(self, codec, signing_keys):
        header = jwt.get_unverified_header(codec.issue(_claims()))
        assert header["alg"] == "RS256"
        assert header["kid"] == signing_keys.key_id

    def test_refresh_tokens_omit_scope(self, codec):
        token = codec.issue(_claims(token_type="refresh", scope=None))
        payload = jwt.decode(token, options={"verify_signature": False})
        assert "scope" not in payload
        assert payload["type"] == "refresh"

    def test_expired_tokens_still_decode(self, codec):
        """Expiry is judged by the lifecycle manager, not the codec."""
        old = _claims(issued_at=NOW - timedelta(days=400), expires_at=NOW - timedelta(days=399))
        assert codec.decode(codec.issue(old)).expires_at == old.expires_at

    def test_claims_reject_exp_not_after_iat(self):
        with pytest.raises(ValueError):
            _claims(expires_at=NOW)


class TestRejections:
    @pytest.mark.parametrize("token", ["", "abc", "a.b.c", "x" * 400])
    def test_malformed(self, codec, token):
        with pytest.raises(InvalidTokenError):
            codec.decode(token)

    def test_foreign_key(self, codec):
        stranger = SigningKeyProvider.generate(key_id="test-key")
        foreign = PyJWTTokenCodec(stranger, issuer=ISSUER, audience=AUDIENCE)
        with pytest.raises(InvalidTokenError):
            codec.decode(foreign.issue(_claims()))

    def test_unknown_kid(self, codec, signing_keys, base_payload):
        token = _sign(signing_keys, base_payload, headers={"kid": "someone-else"})
        with pytest.raises(InvalidTokenError, match="Unknown signing key"):
            codec.decode(token)

    def test_wrong_audience(self, codec, signing_keys, base_payload):
        base_payload["aud"] = "other-api"
        with pytest.raises(InvalidTokenError):
            codec.decode(_sign(signing_keys, base_payload))

    def test_wrong_issuer(self, codec, signing_keys, base_payload):
        base_payload["iss"] = "evil"
        with pytest.raises(InvalidTokenError):
            codec.decode(_sign(signing_keys, base_payload))

    @pytest.mark.parametrize("claim", ["iss", "sub", "iat", "exp", "aud", "jti", "type"])
    def test_missing_required_claim(self, codec, signing_keys, base_payload, claim):
        del base_payload[claim]
        with pytest.raises(InvalidTokenError):
            codec.decode(_sign(signing_keys, base_payload))

    def test_unknown_token_type(self, codec, signing_keys, base_payload):
        base_payload["type"] = "id"
        with pytest.raises(InvalidTokenError, match="Unknown token type"):
            codec.decode(_sign(signing_keys, base_payload))

    def test_exp_before_iat(self, codec, signing_keys, base_payload):
        base_payload["exp"] = base_payload["iat"] - 1
        with pytest.raises(InvalidTokenError):
            codec.decode(_sign(signing_keys, base_payload))

    def test_non_rs256_algorithm_is_refused(self, codec, base_payload):
        forged = jwt.encode(base_payload, "a-shared-secret-long-enough-for-hs256", algorithm="HS256")
        with pytest.raises(InvalidTokenError):
            codec.decode(forged)

    def test_tampered_payload(self, codec):
        header, _, signature = codec.issue(_claims()).split(".")
        body = jwt.utils.base64url_encode(b'{"sub":"1","type":"access"}').decode()
        with pytest.raises(InvalidTokenError):
            codec.decode(".".join([header, body, signature]))
