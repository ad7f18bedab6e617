"""Health check endpoint."""

from __future__ import annotations

from flask import Blueprint, current_app
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from tokenauth.api.deps import json_response, timing
from tokenauth.core.extensions import db, get_components

bp = Blueprint("health", __name__)


@bp.get("/health")
@timing
def healthcheck():
    """Return application, database and signing-key health information."""

    db_status = "ok"
    try:
        db.session.execute(text("SELECT 1"))
    except SQLAlchemyError:  # pragma: no cover - depends on DB backend
        current_app.logger.exception("healthcheck.db_error")
        db_status = "fail"
    components = get_components()
    payload = {
        "status": "ok",
        "db": db_status,
        "ledger": type(components.ledger).__name__,
        "kid": components.keys.key_id,
        "version": current_app.config.get("APP_VERSION", "dev"),
    }
    return json_response(payload)
