"""Key-discovery endpoints (JWKS).

Served both under the versioned API and at the conventional
``/.well-known/jwks.json`` so third-party verifiers can fetch the public key.
"""

from __future__ import annotations

from flask import Blueprint

from tokenauth.api.deps import json_response
from tokenauth.core.extensions import get_components

bp = Blueprint("jwks", __name__)
well_known_bp = Blueprint("well_known", __name__)


def _jwks_response():
    response = json_response(get_components().keys.jwks())
    response.headers["Cache-Control"] = "public, max-age=300"
    return response


@bp.get("/jwks")
def jwks():
    """Return the public signing key set."""
    return _jwks_response()


@well_known_bp.get("/jwks.json")
def well_known_jwks():
    return _jwks_response()
