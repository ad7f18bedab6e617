"""API v1 blueprint package bundling versioned routes."""

from __future__ import annotations

from flask import Blueprint

API_VERSION = "v1"

# Import blueprints *only here* to keep imports localized and avoid cycles.
from .auth import bp as auth_bp  # noqa: E402
from .health import bp as health_bp  # noqa: E402
from .jwks import bp as jwks_bp  # noqa: E402
from .jwks import well_known_bp  # noqa: E402
from .resources import bp as resources_bp  # noqa: E402

# Each tuple: (blueprint, url_prefix_relative_to_version)
REGISTRY: list[tuple[Blueprint, str]] = [
    (health_bp, ""),  # -> /api/v1
    (auth_bp, "/auth"),  # -> /api/v1/auth
    (jwks_bp, "/oauth2"),  # -> /api/v1/oauth2/jwks
    (resources_bp, "/resources"),  # -> /api/v1/resources/*
]

# Mounted outside the API prefix
UNVERSIONED: list[tuple[Blueprint, str]] = [
    (well_known_bp, "/.well-known"),
]
