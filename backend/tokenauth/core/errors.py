"""Centralized JSON (RFC 7807) error handling for the API."""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from http import HTTPStatus
from typing import Any

from flask import Flask, Response, jsonify, request
from flask_jwt_extended import JWTManager
from marshmallow import ValidationError
from sqlalchemy.exc import IntegrityError, OperationalError
from werkzeug.exceptions import HTTPException

from tokenauth.core.logger import ensure_request_id
from tokenauth.services._shared.errors import (
    AuthenticationError,
    ConflictError,
    LedgerConflictError,
    LedgerUnavailableError,
    NotFoundError,
    RateLimitExceededError,
    RegistrationError,
    ServiceError,
    SigningKeyError,
    TokenError,
)

log = logging.getLogger(__name__)


def _http_status_to_code(status_code: int) -> str:
    """Map common HTTP status codes to canonical, stable error codes."""
    mapping = {
        400: "bad_request",
        401: "unauthorized",
        403: "forbidden",
        404: "not_found",
        405: "method_not_allowed",
        409: "conflict",
        415: "unsupported_media_type",
        422: "unprocessable_entity",
        429: "too_many_requests",
        500: "internal_server_error",
        503: "service_unavailable",
    }
    return mapping.get(status_code, "error")


def _as_problem(
    *,
    status: int,
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Build an RFC 7807 Problem Details dict.

    :param status: HTTP status code.
    :param code: Stable machine-consumable error code.
    :param message: Human-readable error summary (safe for clients).
    :param details: Optional safe, structured details.
    """
    problem = {
        "type": "about:blank",
        "title": HTTPStatus(status).phrase,
        "status": status,
        "detail": message,
        "instance": request.path if request else None,
        "code": code,
    }
    if details:
        problem["details"] = details
    problem["request_id"] = ensure_request_id()
    return problem


def _problem_response(problem: dict[str, Any], headers: Mapping[str, str] | None = None) -> Response:
    resp = jsonify(problem)
    resp.mimetype = "application/problem+json"
    for name, value in (headers or {}).items():
        resp.headers[name] = value
    return resp


class APIError(Exception):
    """
    Represent a JSON-serializable API error.

    Parameters
    ----------
    message : str
        Human-readable description presented to clients.
    status_code : int, optional
        HTTP status code to return. Defaults to ``400``.
    code : str, optional
        Machine-readable identifier, typically snake_case.
    details : dict[str, Any] | None, optional
        Optional structured payload included in the response body.
    headers : Mapping[str, str] | None, optional
        Extra response headers (e.g. ``Retry-After``).
    """

    def __init__(
        self,
        message: str,
        status_code: int = 400,
        code: str = "bad_request",
        details: dict[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = int(status_code)
        self.code = code
        self.details = details or {}
        self.headers = dict(headers or {})

    def to_problem(self) -> dict[str, Any]:
        return _as_problem(
            status=self.status_code,
            code=self.code,
            message=self.message,
            details=self.details or None,
        )


# Domain conveniences
class NotFound(APIError):
    """404 when resources are missing."""

    def __init__(self, message: str = "Resource not found") -> None:
        super().__init__(message, status_code=HTTPStatus.NOT_FOUND, code="not_found")


class Conflict(APIError):
    """409 for uniqueness/constraint collisions."""

    def __init__(self, message: str = "Conflict") -> None:
        super().__init__(message, status_code=HTTPStatus.CONFLICT, code="conflict")


class Unauthorized(APIError):
    """401 when authentication fails."""

    def __init__(self, message: str = "Unauthorized", code: str = "unauthorized") -> None:
        super().__init__(message, status_code=HTTPStatus.UNAUTHORIZED, code=code)


class Forbidden(APIError):
    """403 when the caller is authenticated but lacks a required role."""

    def __init__(self, message: str = "Forbidden") -> None:
        super().__init__(message, status_code=HTTPStatus.FORBIDDEN, code="forbidden")


class TooManyRequests(APIError):
    """429 with a ``Retry-After`` header (whole seconds, at least 1)."""

    def __init__(self, message: str, retry_after: float) -> None:
        seconds = max(1, math.ceil(retry_after))
        super().__init__(
            message,
            status_code=HTTPStatus.TOO_MANY_REQUESTS,
            code="too_many_requests",
            details={"retry_after": seconds},
            headers={"Retry-After": str(seconds)},
        )


class ServiceUnavailable(APIError):
    """503 for transient backing-store failures."""

    def __init__(self, message: str = "Service temporarily unavailable") -> None:
        super().__init__(
            message, status_code=HTTPStatus.SERVICE_UNAVAILABLE, code="service_unavailable"
        )


def translate_service_error(exc: ServiceError) -> APIError:
    """
    Map a service-level error to its HTTP representation.

    Token refusals keep their kind as ``code`` so clients can tell an expired
    access token (refresh and retry) from a revoked refresh token (sign in).
    """
    if isinstance(exc, TokenError):
        return Unauthorized(exc.message, code=exc.kind.value)
    if isinstance(exc, AuthenticationError):
        return Unauthorized(str(exc), code="invalid_credentials")
    if isinstance(exc, RegistrationError):
        return APIError(
            str(exc),
            status_code=HTTPStatus.UNPROCESSABLE_ENTITY,
            code="registration_rejected",
            details={"violations": exc.violations} if exc.violations else None,
        )
    if isinstance(exc, RateLimitExceededError):
        return TooManyRequests(str(exc), exc.retry_after)
    if isinstance(exc, LedgerUnavailableError):
        return ServiceUnavailable()
    if isinstance(exc, NotFoundError):
        return NotFound(str(exc))
    if isinstance(exc, ConflictError | LedgerConflictError):
        return Conflict(str(exc))
    if isinstance(exc, SigningKeyError):
        return APIError(
            "Token signing is unavailable",
            status_code=HTTPStatus.INTERNAL_SERVER_ERROR,
            code="internal_server_error",
        )
    return APIError(str(exc), status_code=400, code="bad_request")


def init_jwt_handlers(manager: JWTManager) -> None:
    """
    Route ``flask-jwt-extended`` verification failures through problem+json.

    The manager installs its own handlers for every PyJWT exception, so its
    loader callbacks are the hook that decides the response body.
    """

    def _reject(message: str, code: str) -> tuple[Response, int]:
        problem = _as_problem(status=HTTPStatus.UNAUTHORIZED, code=code, message=message)
        log.warning(
            "AccessTokenRejected: code=%s request_id=%s",
            code,
            problem.get("request_id"),
            extra={"error_kind": code},
        )
        return _problem_response(problem), HTTPStatus.UNAUTHORIZED

    @manager.expired_token_loader
    def _expired(jwt_header: dict, jwt_payload: dict):
        return _reject("Token has expired", "token_expired")

    @manager.invalid_token_loader
    def _invalid(reason: str):
        return _reject(reason or "Invalid token", "invalid_token")

    @manager.unauthorized_loader
    def _missing(reason: str):
        return _reject(reason or "Missing access token", "unauthorized")


def init_app(app: Flask) -> None:
    """
    Attach JSON error handlers to the Flask app.

    Notes
    -----
    - Guarantees RFC 7807 responses for all handled errors.
    - Ensures a correlation ``request_id`` is present on every error.
    - Emits 5xx with ``exc_info`` for traceability; 4xx as warnings.
    """

    @app.errorhandler(APIError)
    def handle_api_error(err: APIError):
        problem = err.to_problem()
        level = log.error if err.status_code >= 500 else log.warning
        level(
            "APIError: code=%s status=%s msg=%s request_id=%s",
            err.code,
            err.status_code,
            err.message,
            problem.get("request_id"),
            extra={"error_kind": err.code},
        )
        return _problem_response(problem, err.headers), err.status_code

    @app.errorhandler(ServiceError)
    def handle_service_error(err: ServiceError):
        if isinstance(err, LedgerUnavailableError | SigningKeyError):
            log.error("ServiceError: %s", type(err).__name__, exc_info=err)
        return handle_api_error(translate_service_error(err))

    @app.errorhandler(HTTPException)
    def handle_http_exception(err: HTTPException):
        status = int(err.code or HTTPStatus.INTERNAL_SERVER_ERROR)
        error_code = _http_status_to_code(status)
        message = (err.description or error_code.replace("_", " ").capitalize()).strip()
        if status == HTTPStatus.NOT_FOUND and request:
            message = f"Route '{request.path}' not found"
        problem = _as_problem(status=status, code=error_code, message=message)
        level = log.error if status >= 500 else log.warning
        level(
            "HTTPException: code=%s status=%s detail=%s request_id=%s",
            error_code,
            status,
            message,
            problem.get("request_id"),
        )
        return _problem_response(problem), status

    @app.errorhandler(ValidationError)
    def handle_validation_error(err: ValidationError):
        problem = _as_problem(
            status=HTTPStatus.UNPROCESSABLE_ENTITY,
            code="validation_error",
            message="Validation failed",
            details={"errors": err.messages},
        )
        log.warning("ValidationError: request_id=%s", problem.get("request_id"))
        return _problem_response(problem), HTTPStatus.UNPROCESSABLE_ENTITY

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(err: IntegrityError):
        problem = _as_problem(
            status=HTTPStatus.CONFLICT,
            code="conflict",
            message="Resource conflict",
        )
        log.error("IntegrityError: request_id=%s", problem.get("request_id"), exc_info=True)
        return _problem_response(problem), HTTPStatus.CONFLICT

    @app.errorhandler(OperationalError)
    def handle_operational_error(err: OperationalError):
        problem = _as_problem(
            status=HTTPStatus.SERVICE_UNAVAILABLE,
            code="service_unavailable",
            message="Service temporarily unavailable",
        )
        log.error("OperationalError: request_id=%s", problem.get("request_id"), exc_info=True)
        return _problem_response(problem), HTTPStatus.SERVICE_UNAVAILABLE

    @app.errorhandler(Exception)
    def handle_unexpected_error(err: Exception):
        # never leak internal details
        problem = _as_problem(
            status=HTTPStatus.INTERNAL_SERVER_ERROR,
            code="internal_server_error",
            message="Unexpected error",
        )
        log.error("Unhandled exception: request_id=%s", problem.get("request_id"), exc_info=True)
        return _problem_response(problem), HTTPStatus.INTERNAL_SERVER_ERROR
