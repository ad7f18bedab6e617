"""Shared API helpers for request parsing and cross-cutting concerns."""

from __future__ import annotations

import functools
import time
from collections.abc import Callable
from typing import Any, TypeVar

from flask import Response, current_app, jsonify, request
from flask_jwt_extended import get_jwt, verify_jwt_in_request

from tokenauth.core.errors import Forbidden
from tokenauth.core.extensions import get_components
from tokenauth.core.logger import ensure_request_id
from tokenauth.services._shared.base import ServiceContext
from tokenauth.services._shared.errors import RateLimitExceededError
from tokenauth.services.auth.service import AuthService

F = TypeVar("F", bound=Callable[..., Any])


def get_auth_service() -> AuthService:
    """Build an :class:`AuthService` over the current app's token core."""
    ctx = ServiceContext(request_id=ensure_request_id(), client_ip=client_key())
    return AuthService.from_components(
        get_components(),
        default_role=current_app.config.get("DEFAULT_ROLE", "ROLE_USER"),
        ctx=ctx,
    )


def client_key() -> str:
    """Throttle key for the current request (client address after ProxyFix)."""
    return request.remote_addr or "unknown"


def require_auth(func: F) -> F:
    """Ensure the request carries a valid JWT access token."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        verify_jwt_in_request(optional=False)
        return func(*args, **kwargs)

    return wrapper  # type: ignore[return-value]


def require_roles(*roles: str) -> Callable[[F], F]:
    """Ensure the verified access token grants at least one of ``roles`` in its ``scope``."""

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any):
            verify_jwt_in_request(optional=False)
            granted = set(str(get_jwt().get("scope", "")).split())
            if granted.isdisjoint(roles):
                raise Forbidden("Insufficient role")
            return func(*args, **kwargs)

        return wrapper  # type: ignore[return-value]

    return decorator


def throttled(func: F) -> F:
    """Count the request against the client's budget; refuse with 429 when exhausted."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        throttle = get_components().throttle
        key = client_key()
        if not throttle.allow(key):
            raise RateLimitExceededError(throttle.retry_after(key))
        return func(*args, **kwargs)

    return wrapper  # type: ignore[return-value]


def json_response(payload: Any, *, status: int = 200) -> Response:
    """Return a JSON response enforcing a consistent MIME type."""

    response = jsonify(payload)
    response.status_code = status
    return response


def no_store(response: Response) -> Response:
    """Mark a response carrying tokens as non-cacheable."""
    response.headers["Cache-Control"] = "no-store"
    response.headers["Pragma"] = "no-cache"
    return response


def timing(func: F) -> F:
    """Decorator capturing handler execution time in milliseconds."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            request_endpoint = getattr(request, "endpoint", None)
            current_app.logger.debug(
                "request.elapsed",
                extra={"endpoint": request_endpoint, "elapsed_ms": round(elapsed_ms, 2)},
            )

    return wrapper  # type: ignore[return-value]
