"""Convenience exports for application schemas."""

from __future__ import annotations

from .auth import (
    AuthResponseSchema,
    LoginSchema,
    LogoutResponseSchema,
    LogoutSchema,
    RefreshSchema,
    RegisterSchema,
    WhoAmISchema,
)

__all__ = [
    "AuthResponseSchema",
    "LoginSchema",
    "LogoutResponseSchema",
    "LogoutSchema",
    "RefreshSchema",
    "RegisterSchema",
    "WhoAmISchema",
]
