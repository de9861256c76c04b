"""Standardised API error responses.

Usage
-----
    from ideabox.utils.errors import api_error, E

    return api_error(E.NOT_FOUND, "Idea not found")
    return api_error(E.VALIDATION_INVALID, "Invalid Idea ID")

Blueprints call ``register_error_handlers(bp)`` so service exceptions map to
the same JSON body shape.
"""

from __future__ import annotations

import logging

from flask import jsonify, request

from ideabox.core.exceptions import (
    ConflictError,
    ExpiredError,
    NotFoundError,
    OtpError,
    StoreError,
    ValidationError,
)

logger = logging.getLogger(__name__)


# ── Error code constants ──────────────────────────────────────────────
class E:
    """Machine-readable error code constants."""

    # Validation – HTTP 400
    VALIDATION_REQUIRED = "ERR_VALIDATION_REQUIRED"
    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"

    # OTP – HTTP 400
    OTP_INVALID = "ERR_OTP_INVALID"
    OTP_EXPIRED = "ERR_OTP_EXPIRED"

    # Not-found – HTTP 404
    NOT_FOUND = "ERR_NOT_FOUND"

    # Conflict / duplicate – HTTP 409
    CONFLICT_DUPLICATE = "ERR_CONFLICT_DUPLICATE"

    # Server – HTTP 500
    DATABASE = "ERR_DATABASE"
    INTERNAL = "ERR_INTERNAL"


# ── Default HTTP status mapping ───────────────────────────────────────
_DEFAULT_STATUS: dict[str, int] = {
    E.VALIDATION_REQUIRED: 400,
    E.VALIDATION_INVALID: 400,
    E.OTP_INVALID: 400,
    E.OTP_EXPIRED: 400,
    E.NOT_FOUND: 404,
    E.CONFLICT_DUPLICATE: 409,
    E.DATABASE: 500,
    E.INTERNAL: 500,
}


def api_error(
    code: str,
    message: str,
    *,
    status: int | None = None,
    details: dict | str | None = None,
):
    """Return a standard JSON error response.

    Parameters
    ----------
    code : str
        Machine-readable error code (use ``E.*`` constants).
    message : str
        Human-readable explanation for developers / UI.
    status : int, optional
        HTTP status override.  Falls back to ``_DEFAULT_STATUS[code]``,
        then to ``400``.
    details : dict or str, optional
        Extra structured payload (field errors, driver message).

    Returns
    -------
    tuple[Response, int]
        ``(jsonify(body), http_status)`` – drop-in for Flask views.
    """

    http_status = status or _DEFAULT_STATUS.get(code, 400)

    body: dict = {
        "error": message,
        "code": code,
    }
    if details:
        body["details"] = details

    return jsonify(body), http_status


def register_error_handlers(bp):
    """Attach service-exception handlers to a blueprint."""

    @bp.errorhandler(ValidationError)
    def _handle_validation(error: ValidationError):
        return api_error(E.VALIDATION_INVALID, str(error), details=error.details)

    @bp.errorhandler(NotFoundError)
    def _handle_not_found(error: NotFoundError):
        return api_error(E.NOT_FOUND, f"{error.resource} not found")

    @bp.errorhandler(ConflictError)
    def _handle_conflict(error: ConflictError):
        return api_error(E.CONFLICT_DUPLICATE, str(error))

    @bp.errorhandler(OtpError)
    def _handle_otp(error: OtpError):
        code = E.OTP_EXPIRED if isinstance(error, ExpiredError) else E.OTP_INVALID
        return api_error(code, str(error))

    @bp.errorhandler(StoreError)
    def _handle_store(error: StoreError):
        logger.error("Store error in %s endpoint=%s: %s", bp.name, request.endpoint, error)
        return api_error(E.DATABASE, "Internal server error", details=str(error))

    return bp
