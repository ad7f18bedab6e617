"""RSA signing key material for token issuance and key discovery.

One :class:`SigningKeyProvider` is built per application by the factory and
stored in ``app.extensions``; the codec, the JWKS endpoint and
``flask-jwt-extended`` all read the same instance.
"""

from __future__ import annotations

import base64
import hashlib
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from jwt.algorithms import RSAAlgorithm

from tokenauth.services._shared.errors import SigningKeyError

log = logging.getLogger(__name__)

SIGNING_ALGORITHM = "RS256"
KEY_SIZE = 2048
PUBLIC_EXPONENT = 65537


def _b64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def jwk_thumbprint(public_key: rsa.RSAPublicKey) -> str:
    """Return the RFC 7638 SHA-256 thumbprint of an RSA public key."""
    jwk = RSAAlgorithm.to_jwk(public_key, as_dict=True)
    canonical = json.dumps(
        {"e": jwk["e"], "kty": "RSA", "n": jwk["n"]}, separators=(",", ":"), sort_keys=True
    )
    return _b64url_encode(hashlib.sha256(canonical.encode("utf-8")).digest())


@dataclass(frozen=True, slots=True)
class KeyPair:
    """
    Active RSA signing pair.

    :ivar public_key: Verification key, safe to publish.
    :ivar private_key: Signing key, never leaves the process.
    :ivar key_id: Value of the ``kid`` header and the JWK ``kid``.
    """

    public_key: rsa.RSAPublicKey
    private_key: rsa.RSAPrivateKey
    key_id: str


class SigningKeyProvider:
    """
    Owner of the process-wide signing key pair.

    Build with :meth:`from_pem_files` when key files are configured, or
    :meth:`generate` for an ephemeral pair (tokens do not survive restarts).
    """

    def __init__(self, key_pair: KeyPair) -> None:
        self._key_pair = key_pair

    # ------------------------ constructors ----------------------

    @classmethod
    def generate(cls, *, key_id: str | None = None) -> SigningKeyProvider:
        """Create a provider around a freshly generated RSA-2048 pair."""
        private_key = rsa.generate_private_key(public_exponent=PUBLIC_EXPONENT, key_size=KEY_SIZE)
        public_key = private_key.public_key()
        provider = cls(KeyPair(public_key, private_key, key_id or jwk_thumbprint(public_key)))
        log.warning(
            "keys.ephemeral kid=%s: tokens will be invalid after restart",
            provider.key_id,
        )
        return provider

    @classmethod
    def from_pem(
        cls,
        private_pem: bytes,
        public_pem: bytes | None = None,
        *,
        passphrase: str | None = None,
        key_id: str | None = None,
    ) -> SigningKeyProvider:
        """
        Load a pair from PEM bytes.

        :param private_pem: PKCS#8 or traditional RSA private key.
        :param public_pem: Optional public key; when given it must match the
            private key.
        :param passphrase: Password for an encrypted private key.
        :raises SigningKeyError: On unparsable, non-RSA or mismatched keys.
        """
        password = passphrase.encode("utf-8") if passphrase else None
        try:
            private_key = serialization.load_pem_private_key(private_pem, password=password)
        except (ValueError, TypeError) as exc:
            raise SigningKeyError(f"Cannot load RSA private key: {exc}") from exc
        if not isinstance(private_key, rsa.RSAPrivateKey):
            raise SigningKeyError("Signing key must be an RSA private key")

        public_key = private_key.public_key()
        if public_pem is not None:
            try:
                loaded = serialization.load_pem_public_key(public_pem)
            except (ValueError, TypeError) as exc:
                raise SigningKeyError(f"Cannot load RSA public key: {exc}") from exc
            if not isinstance(loaded, rsa.RSAPublicKey):
                raise SigningKeyError("Verification key must be an RSA public key")
            if loaded.public_numbers() != public_key.public_numbers():
                raise SigningKeyError("Public key does not match the private key")
            public_key = loaded

        return cls(KeyPair(public_key, private_key, key_id or jwk_thumbprint(public_key)))

    @classmethod
    def from_pem_files(
        cls,
        private_key_path: str | Path,
        public_key_path: str | Path | None = None,
        *,
        passphrase: str | None = None,
        key_id: str | None = None,
    ) -> SigningKeyProvider:
        """Read PEM files once and delegate to :meth:`from_pem`."""
        try:
            private_pem = Path(private_key_path).read_bytes()
            public_pem = Path(public_key_path).read_bytes() if public_key_path else None
        except OSError as exc:
            raise SigningKeyError(f"Cannot read signing key file: {exc}") from exc
        provider = cls.from_pem(private_pem, public_pem, passphrase=passphrase, key_id=key_id)
        log.info("keys.loaded kid=%s path=%s", provider.key_id, private_key_path)
        return provider

    @classmethod
    def from_config(cls, config: Any) -> SigningKeyProvider:
        """Build from a Flask config mapping (``JWT_PRIVATE_KEY_PATH`` & co)."""
        private_path = config.get("JWT_PRIVATE_KEY_PATH")
        key_id = config.get("JWT_KEY_ID")
        if private_path:
            return cls.from_pem_files(
                private_path,
                config.get("JWT_PUBLIC_KEY_PATH"),
                passphrase=config.get("JWT_PRIVATE_KEY_PASSPHRASE"),
                key_id=key_id,
            )
        if config.get("JWT_PUBLIC_KEY_PATH"):
            raise SigningKeyError("JWT_PUBLIC_KEY_PATH is set without JWT_PRIVATE_KEY_PATH")
        return cls.generate(key_id=key_id)

    # -------------------------- API ----------------------------

    def current_key_pair(self) -> KeyPair:
        return self._key_pair

    @property
    def key_id(self) -> str:
        return self._key_pair.key_id

    def public_pem(self) -> bytes:
        """SubjectPublicKeyInfo PEM of the verification key."""
        return self._key_pair.public_key.public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )

    def jwk(self) -> dict[str, str]:
        jwk = RSAAlgorithm.to_jwk(self._key_pair.public_key, as_dict=True)
        return {
            "kty": "RSA",
            "n": jwk["n"],
            "e": jwk["e"],
            "kid": self.key_id,
            "use": "sig",
            "alg": SIGNING_ALGORITHM,
        }

    def jwks(self) -> dict[str, list[dict[str, str]]]:
        """Public key-discovery document (never contains private material)."""
        return {"keys": [self.jwk()]}
