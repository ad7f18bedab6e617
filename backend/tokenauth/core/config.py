"""Application settings with environment-based simple classes."""

from __future__ import annotations

import os
from collections.abc import Mapping
from datetime import timedelta
from typing import Any, Final

from dotenv import load_dotenv

# Public selector env var (keep neutral name to avoid collisions)
ENV_VAR: Final[str] = "APP_ENV"  # 'development' | 'testing' | 'production'


# Load .env during development (no-op when the file is missing)
load_dotenv()


def env_bool(name: str, default: bool = False) -> bool:
    """Parse a boolean flag from an environment variable.

    Parameters
    ----------
    name: str
        Environment variable to inspect.
    default: bool, optional
        Value returned when the variable is unset. Defaults to ``False``.

    Returns
    -------
    bool
        ``True`` if the value resembles ``{"1", "true", "yes", "y", "on"}``
        ignoring case; otherwise ``False`` or ``default`` when missing.
    """
    val = os.getenv(name)
    if val is None:
        return default
    return str(val).strip().lower() in {"1", "true", "yes", "y", "on"}


def env_int(name: str, default: int) -> int:
    """Parse an integer from an environment variable, falling back to ``default``."""
    val = os.getenv(name)
    if val is None or not val.strip():
        return default
    return int(val.strip())


def engine_options(database_uri: str, timeout_seconds: int) -> dict[str, Any]:
    """Build SQLAlchemy engine options bounding how long a ledger call may wait.

    SQLite (file or memory) uses single-connection pools that reject pool
    arguments, so only its driver-level busy timeout is set.
    """
    if database_uri.startswith("sqlite"):
        return {"connect_args": {"timeout": timeout_seconds}}
    return {
        "pool_timeout": timeout_seconds,
        "pool_pre_ping": True,
    }


class BaseConfig:
    """Base configuration shared across environments.

    Attributes
    ----------
    API_BASE_PREFIX: str
        Root path for registering API blueprints.
    SECRET_KEY: str
        Flask secret used for session signing.
    SQLALCHEMY_DATABASE_URI: str
        Database backing users, roles and the refresh-token ledger.
    JWT_ISSUER / JWT_AUDIENCE: str
        Fixed ``iss`` and ``aud`` claims embedded in every token.
    JWT_ACCESS_TOKEN_EXPIRES / JWT_REFRESH_TOKEN_EXPIRES: timedelta
        Lifetimes of access and refresh tokens.
    JWT_PRIVATE_KEY_PATH / JWT_PUBLIC_KEY_PATH: str | None
        PEM files holding the RSA signing pair. When both are unset an
        ephemeral pair is generated at startup.
    JWT_DECODE_ISSUER / JWT_DECODE_AUDIENCE: str
        Consumed by ``flask-jwt-extended`` when protected routes verify
        access tokens with the public key.
    REFRESH_LEDGER_BACKEND: str
        ``"sql"`` (default), ``"redis"`` or ``"memory"``.
    LEDGER_TIMEOUT_SECONDS: int
        Upper bound for any ledger call before a transient failure surfaces.
    RATE_LIMIT_*: int | bool
        Request throttle parameters for login/register/refresh.
    LOG_LEVEL: str
        Root logging verbosity (``INFO`` by default).

    Notes
    -----
    Values are primarily sourced from environment variables, enabling
    configuration without code changes.
    """

    API_BASE_PREFIX = "/api"

    # Secrets / security
    SECRET_KEY = os.getenv("SECRET_KEY", "CHANGE_ME")

    # DB
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///./dev.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)
    LEDGER_TIMEOUT_SECONDS = env_int("LEDGER_TIMEOUT_SECONDS", 5)
    SQLALCHEMY_ENGINE_OPTIONS = engine_options(SQLALCHEMY_DATABASE_URI, LEDGER_TIMEOUT_SECONDS)

    # Token lifecycle
    JWT_ISSUER = os.getenv("JWT_ISSUER", "tokenauth")
    JWT_AUDIENCE = os.getenv("JWT_AUDIENCE", "tokenauth-api")
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(seconds=env_int("JWT_ACCESS_TOKEN_EXPIRES", 900))
    JWT_REFRESH_TOKEN_EXPIRES = timedelta(seconds=env_int("JWT_REFRESH_TOKEN_EXPIRES", 604800))

    # Signing keys (PEM paths; unset -> ephemeral pair)
    JWT_PRIVATE_KEY_PATH = os.getenv("JWT_PRIVATE_KEY_PATH")
    JWT_PUBLIC_KEY_PATH = os.getenv("JWT_PUBLIC_KEY_PATH")
    JWT_PRIVATE_KEY_PASSPHRASE = os.getenv("JWT_PRIVATE_KEY_PASSPHRASE")
    JWT_KEY_ID = os.getenv("JWT_KEY_ID")

    # flask-jwt-extended (verification-only on protected routes)
    JWT_ALGORITHM = "RS256"
    JWT_TOKEN_LOCATION = ["headers"]
    JWT_DECODE_ISSUER = JWT_ISSUER
    JWT_DECODE_AUDIENCE = JWT_AUDIENCE

    # Refresh-token ledger
    REFRESH_LEDGER_BACKEND = os.getenv("REFRESH_LEDGER_BACKEND", "sql")
    REDIS_URL = os.getenv("REDIS_URL")

    # Request throttle (authentication endpoints only)
    RATE_LIMIT_ENABLED = env_bool("RATE_LIMIT_ENABLED", True)
    RATE_LIMIT_LIMIT = env_int("RATE_LIMIT_LIMIT", 10)
    RATE_LIMIT_REFRESH_PERIOD = env_int("RATE_LIMIT_REFRESH_PERIOD", 60)
    RATE_LIMIT_TIMEOUT_DURATION = env_int("RATE_LIMIT_TIMEOUT_DURATION", 30)
    RATE_LIMIT_SWEEP_INTERVAL = env_int("RATE_LIMIT_SWEEP_INTERVAL", 300)

    # Accounts
    DEFAULT_ROLE = os.getenv("DEFAULT_ROLE", "ROLE_USER")

    # Flask & JSON
    JSON_SORT_KEYS = False
    PROPAGATE_EXCEPTIONS = False

    # Logging & proxy
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    USE_PROXYFIX = env_bool("USE_PROXYFIX", True)
    PROXY_TRUSTED_HOPS = env_int("PROXY_TRUSTED_HOPS", 1)

    # Flask built-ins
    DEBUG = False
    TESTING = False


class DevelopmentConfig(BaseConfig):
    """Configuration tailored for local development.

    Notes
    -----
    Enables debug mode by default and honors ``SQLALCHEMY_ECHO`` for verbose
    SQL logging when requested.
    """

    DEBUG = env_bool("FLASK_DEBUG", True)
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)


class TestingConfig(BaseConfig):
    """Configuration for automated test runs.

    Notes
    -----
    - Forces ``TESTING`` mode and disables debug logs.
    - Uses an in-memory SQLite database unless ``TEST_DATABASE_URL`` is set.
    - Keeps the throttle off so suites can hammer auth endpoints.
    """

    TESTING = True
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")
    SQLALCHEMY_ENGINE_OPTIONS: dict[str, Any] = {}
    SQLALCHEMY_ECHO = False
    PROPAGATE_EXCEPTIONS = True
    RATE_LIMIT_ENABLED = False


class ProductionConfig(BaseConfig):
    """Configuration defaults for production deployments.

    Notes
    -----
    Keeps debug and SQL echoing disabled while relying on WSGI-level log
    configuration for noise control.
    """

    DEBUG = False
    SQLALCHEMY_ECHO = False
    PROPAGATE_EXCEPTIONS = False


# Map names -> classes (simple, explicit)
CONFIG_MAP: Mapping[str, type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}


def get_config() -> type[BaseConfig]:
    """Return the configuration class inferred from ``APP_ENV``.

    Returns
    -------
    type[BaseConfig]
        Class to pass to :meth:`flask.Config.from_object`.

    Notes
    -----
    Falls back to :class:`DevelopmentConfig` when ``APP_ENV`` is unset or
    unknown.
    """
    name = os.getenv(ENV_VAR, "development").strip().lower()
    return CONFIG_MAP.get(name, DevelopmentConfig)
