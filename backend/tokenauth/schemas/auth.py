"""Authentication-related Marshmallow schemas."""

from __future__ import annotations

from marshmallow import Schema, fields, validate


class BaseSchema(Schema):
    """Base schema enabling ordered output for consistent API responses."""

    class Meta:
        ordered = True


class RegisterSchema(BaseSchema):
    """Input payload for account registration.

    The password is only required here; its strength rules live in the
    password policy so every violation can be reported at once.
    """

    username = fields.String(required=True, validate=validate.Length(min=3, max=50))
    email = fields.Email(required=True, validate=validate.Length(max=254))
    password = fields.String(required=True, load_only=True)


class LoginSchema(BaseSchema):
    """Input payload for authenticating a user."""

    username = fields.String(required=True, validate=validate.Length(min=1, max=50))
    password = fields.String(required=True, load_only=True, validate=validate.Length(min=1))


class RefreshSchema(BaseSchema):
    """Input payload carrying the refresh token to rotate."""

    refresh_token = fields.String(required=True, validate=validate.Length(min=1))


class LogoutSchema(BaseSchema):
    """Input payload for revoking a refresh token (and optionally all sessions)."""

    token = fields.String(required=True, validate=validate.Length(min=1))
    all_sessions = fields.Boolean(load_default=False)


class AuthResponseSchema(BaseSchema):
    """Response payload for register/login/refresh."""

    access_token = fields.String(required=True)
    refresh_token = fields.String(required=True)
    token_type = fields.String(dump_default="Bearer")
    expires_in = fields.Integer(required=True)
    username = fields.String(required=True)
    email = fields.Email(required=True)
    roles = fields.List(fields.String())


class LogoutResponseSchema(BaseSchema):
    revoked_sessions = fields.Integer()


class WhoAmISchema(BaseSchema):
    """Response payload exposing identity details for the authenticated user."""

    id = fields.String(required=True)
    username = fields.String(required=True)
    email = fields.Email(required=True)
    roles = fields.List(fields.String())
