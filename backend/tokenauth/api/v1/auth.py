"""Authentication endpoints using the service layer."""

from __future__ import annotations

from flask import Blueprint, request
from flask_jwt_extended import get_jwt_identity

from tokenauth.api.deps import (
    get_auth_service,
    json_response,
    no_store,
    require_auth,
    throttled,
    timing,
)
from tokenauth.schemas import (
    AuthResponseSchema,
    LoginSchema,
    LogoutResponseSchema,
    LogoutSchema,
    RefreshSchema,
    RegisterSchema,
    WhoAmISchema,
)
from tokenauth.services.auth.dto import LoginIn, LogoutIn, RefreshIn, RegisterIn

bp = Blueprint("auth", __name__)

register_schema = RegisterSchema()
login_schema = LoginSchema()
refresh_schema = RefreshSchema()
logout_schema = LogoutSchema()
auth_response_schema = AuthResponseSchema()
logout_response_schema = LogoutResponseSchema()
whoami_schema = WhoAmISchema()


@bp.post("/register")
@throttled
@timing
def register():
    """Register a new user and return a fresh token pair."""

    data = register_schema.load(request.get_json(silent=True) or {})
    result = get_auth_service().register(RegisterIn(**data))
    body = {"data": auth_response_schema.dump(result)}
    return no_store(json_response(body, status=201))


@bp.post("/register/hr")
@throttled
@timing
def register_hr():
    """Register a user who is granted ROLE_HR instead of the default role."""

    data = register_schema.load(request.get_json(silent=True) or {})
    result = get_auth_service().register_hr(RegisterIn(**data))
    body = {"data": auth_response_schema.dump(result)}
    return no_store(json_response(body, status=201))


@bp.post("/login")
@throttled
@timing
def login():
    """Authenticate credentials and issue an access/refresh token pair."""

    data = login_schema.load(request.get_json(silent=True) or {})
    result = get_auth_service().login(LoginIn(**data))
    body = {"data": auth_response_schema.dump(result)}
    return no_store(json_response(body))


@bp.post("/refresh")
@throttled
@timing
def refresh():
    """Rotate a refresh token; the presented token is consumed."""

    data = refresh_schema.load(request.get_json(silent=True) or {})
    result = get_auth_service().refresh(RefreshIn(**data))
    body = {"data": auth_response_schema.dump(result)}
    return no_store(json_response(body))


@bp.post("/logout")
@timing
def logout():
    """Revoke a refresh token (idempotent); ``all_sessions`` needs a live refresh token."""

    data = logout_schema.load(request.get_json(silent=True) or {})
    result = get_auth_service().logout(LogoutIn(**data))
    return json_response({"data": logout_response_schema.dump(result)})


@bp.get("/whoami")
@require_auth
@timing
def whoami():
    """Return the authenticated user profile."""

    profile = get_auth_service().whoami(get_jwt_identity())
    return json_response({"data": whoami_schema.dump(profile)})
