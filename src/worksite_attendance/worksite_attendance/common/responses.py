from __future__ import annotations

import logging
from typing import Any, Optional

from flask import jsonify

from ..core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    DomainError,
    NotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)


def send_success(data: Optional[dict] = None, message: str = "Success", status: int = 200):
    body: dict[str, Any] = {"success": True, "message": message}
    if data:
        body.update(data)
    return jsonify(body), status


def send_error(message: str, status: int = 400, **extra):
    body: dict[str, Any] = {"success": False, "message": message}
    body.update(extra)
    return jsonify(body), status


def send_validation_error(errors: dict, message: str = "Validation failed"):
    return send_error(message, 400, errors=errors)


def status_for(error: DomainError) -> int:
    if isinstance(error, ValidationError):
        return 400
    if isinstance(error, AuthenticationError):
        return 401
    if isinstance(error, AuthorizationError):
        return 403
    if isinstance(error, NotFoundError):
        return 404
    if isinstance(error, ConflictError):
        return 409
    return 400


def send_domain_error(error: DomainError):
    """Map a rejection to its JSON response, keeping field errors and attendance context."""

    extra: dict[str, Any] = {}
    if isinstance(error, ValidationError) and error.errors:
        extra["errors"] = error.errors
    attendance = getattr(error, "attendance", None)
    if attendance is not None:
        extra["attendance"] = attendance.to_dict()
    return send_error(str(error), status_for(error), **extra)


def send_internal_error(context: str, message: str = "Internal server error"):
    logger.exception("Unexpected failure in %s", context)
    return send_error(message, 500)
