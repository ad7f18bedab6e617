"""Sample resources gated by the roles carried in the access-token ``scope``.

Downstream services verify tokens the same way: public key only, then the
``scope`` claim decides which resources a caller may reach.
"""

from __future__ import annotations

from flask import Blueprint
from flask_jwt_extended import get_jwt, get_jwt_identity

from tokenauth.api.deps import json_response, require_auth, require_roles, timing

bp = Blueprint("resources", __name__)


@bp.get("/public")
@timing
def public_resource():
    return json_response({"message": "This is a public resource"})


@bp.get("/protected")
@require_auth
@timing
def protected_resource():
    """Any valid access token; echoes the subject and its granted roles."""

    claims = get_jwt()
    return json_response(
        {
            "message": "This is a protected resource",
            "subject": get_jwt_identity(),
            "roles": str(claims.get("scope", "")).split(),
        }
    )


@bp.get("/admin")
@require_roles("ROLE_ADMIN")
@timing
def admin_resource():
    return json_response({"message": "This is an admin resource"})


@bp.get("/user")
@require_roles("ROLE_USER")
@timing
def user_resource():
    return json_response({"message": "This is a user resource"})


@bp.get("/hr")
@require_roles("ROLE_HR")
@timing
def hr_resource():
    return json_response({"message": "This is an HR resource"})
