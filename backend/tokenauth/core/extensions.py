"""Global Flask extension instances and initialization helpers."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

import redis  # type: ignore[import-untyped]
from flask import Flask, current_app
from flask_jwt_extended import JWTManager
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from redis.exceptions import RedisError  # type: ignore[import-untyped]
from sqlalchemy import MetaData

if TYPE_CHECKING:
    from tokenauth.infra.keys.signing_key_provider import SigningKeyProvider
    from tokenauth.services._shared.ports import (
        CredentialVerifier,
        RefreshTokenLedger,
        TokenCodec,
        UserDirectory,
    )
    from tokenauth.services.throttle import RequestThrottle
    from tokenauth.services.tokens.lifecycle import TokenLifecycleManager

log = logging.getLogger(__name__)

# Global naming convention for all constraints
convention = {
    "ix": "ix_%(table_name)s_%(column_0_name)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(naming_convention=convention)

# Global singletons (import-safe)
db: SQLAlchemy = SQLAlchemy(session_options={"autoflush": False}, metadata=metadata)
migrate = Migrate(render_as_batch=True)
jwt = JWTManager()

EXTENSION_KEY = "tokenauth"
LEDGER_BACKENDS = ("sql", "redis", "memory")


@dataclass(slots=True)
class TokenAuthComponents:
    """
    Per-application token core, built once by :func:`init_app`.

    Every request handler reaches these through :func:`get_components`; none
    of them is a module global, so two apps in one process never share keys,
    ledgers or throttle state.
    """

    keys: SigningKeyProvider
    codec: TokenCodec
    ledger: RefreshTokenLedger
    users: UserDirectory
    credentials: CredentialVerifier
    lifecycle: TokenLifecycleManager
    throttle: RequestThrottle
    redis_client: redis.Redis | None = None


def init_app(app: Flask) -> None:
    """Initialize SQLAlchemy, migrations, JWT verification and the token core.

    Parameters
    ----------
    app: flask.Flask
        Application used to bind extension instances. This call imports the
        :mod:`tokenauth.models` package to ensure SQLAlchemy metadata is ready
        for migrations.
    """
    db.init_app(app)

    # Ensure models are imported so Alembic sees metadata
    from tokenauth import models as _models  # noqa: F401

    migrate.init_app(app, db)

    components = build_components(app)
    app.extensions[EXTENSION_KEY] = components

    # flask-jwt-extended only verifies (RS256, public key); issuance is ours
    app.config["JWT_PUBLIC_KEY"] = components.keys.public_pem()
    jwt.init_app(app)

    from tokenauth.core.errors import init_jwt_handlers

    init_jwt_handlers(jwt)


def build_components(app: Flask) -> TokenAuthComponents:
    """Wire key provider, codec, ledger, user directory, lifecycle and throttle."""
    from tokenauth.infra.jwt.jwt_token_codec import PyJWTTokenCodec
    from tokenauth.infra.keys.signing_key_provider import SigningKeyProvider
    from tokenauth.infra.sql.sql_user_directory import SqlUserDirectory
    from tokenauth.services.throttle import RequestThrottle
    from tokenauth.services.tokens.dto import TokenLifecycleConfig
    from tokenauth.services.tokens.lifecycle import TokenLifecycleManager

    cfg = app.config
    keys = SigningKeyProvider.from_config(cfg)
    codec = PyJWTTokenCodec(keys, issuer=cfg["JWT_ISSUER"], audience=cfg["JWT_AUDIENCE"])
    ledger, redis_client = _build_ledger(app)
    users = SqlUserDirectory()
    lifecycle = TokenLifecycleManager(
        codec, ledger, users, config=TokenLifecycleConfig.from_mapping(cfg)
    )
    throttle = RequestThrottle(
        limit=int(cfg.get("RATE_LIMIT_LIMIT", 10)),
        refresh_period=int(cfg.get("RATE_LIMIT_REFRESH_PERIOD", 60)),
        timeout_duration=int(cfg.get("RATE_LIMIT_TIMEOUT_DURATION", 30)),
        enabled=bool(cfg.get("RATE_LIMIT_ENABLED", True)),
        sweep_interval=int(cfg.get("RATE_LIMIT_SWEEP_INTERVAL", 300)),
    )
    log.info(
        "tokenauth.ready kid=%s ledger=%s throttle=%s",
        keys.key_id,
        type(ledger).__name__,
        "on" if throttle.enabled else "off",
    )
    return TokenAuthComponents(
        keys=keys,
        codec=codec,
        ledger=ledger,
        users=users,
        credentials=users,
        lifecycle=lifecycle,
        throttle=throttle,
        redis_client=redis_client,
    )


def _build_ledger(app: Flask):
    from tokenauth.infra.redis.redis_refresh_token_ledger import RedisRefreshTokenLedger
    from tokenauth.infra.sql.sql_refresh_token_ledger import SqlRefreshTokenLedger
    from tokenauth.services._shared.ports.refresh_token_ledger import InMemoryRefreshTokenLedger

    backend = str(app.config.get("REFRESH_LEDGER_BACKEND", "sql")).strip().lower()
    timeout = float(app.config.get("LEDGER_TIMEOUT_SECONDS", 5))
    if backend not in LEDGER_BACKENDS:
        raise RuntimeError(
            f"Unknown REFRESH_LEDGER_BACKEND {backend!r}; expected one of {LEDGER_BACKENDS}"
        )
    if backend == "memory":
        return InMemoryRefreshTokenLedger(timeout=timeout), None
    if backend == "sql":
        return SqlRefreshTokenLedger(), None

    redis_url = app.config.get("REDIS_URL")
    if not redis_url:
        raise RuntimeError("REFRESH_LEDGER_BACKEND=redis requires REDIS_URL")
    client = app.extensions.get("redis_client")
    if client is None:
        client = redis.Redis.from_url(
            redis_url, socket_timeout=timeout, socket_connect_timeout=timeout
        )
        try:
            client.ping()
        except RedisError as exc:
            raise RuntimeError(f"Failed to connect to Redis at {redis_url!r}") from exc
        app.extensions["redis_client"] = client
    return RedisRefreshTokenLedger(client), client


def get_components(app: Flask | None = None) -> TokenAuthComponents:
    """Return the token core bound to ``app`` (or the current app)."""
    target = app or current_app
    components = target.extensions.get(EXTENSION_KEY)
    if components is None:
        raise RuntimeError("Token core is not initialized. Call init_app() first.")
    return components
