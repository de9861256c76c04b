"""
One-time passcode login.

Per credential record the passcode moves through
    no active code → issued(code, expiry) → consumed
Issuing overwrites any earlier code. Expiry is checked when a code is
verified; stale codes are never swept.
"""

from __future__ import annotations

import hmac
import logging
import secrets
from datetime import datetime, timedelta, timezone

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError

from ideabox.core.exceptions import (
    ExpiredError,
    InvalidOtpError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from ideabox.models import db
from ideabox.services import jwt_service, notifier
from ideabox.services.credential_service import find_credential
from ideabox.services.email_service import EmailService

logger = logging.getLogger(__name__)

DEFAULT_OTP_TTL_SECONDS = 300


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def _generate_code() -> str:
    """Four-digit numeric code, 1000..9999."""
    return str(1000 + secrets.randbelow(9000))


def _require_id(corporate_id) -> str:
    cid = str(corporate_id or "").strip()
    if not cid:
        raise ValidationError("Corporate ID is required", details={"corporateId": "required"})
    return cid


def send_otp_email(to_email: str, otp: str, ttl_seconds: int) -> None:
    EmailService.send_from_template(
        to_email=to_email,
        template_name="otp_code",
        context={"otp": otp, "ttl_minutes": max(1, ttl_seconds // 60)},
        category="otp",
    )


def request_otp(corporate_id, *, now: datetime | None = None) -> dict:
    """Issue a fresh code for the record and email it. Also used for resend."""
    cid = _require_id(corporate_id)
    record, _model = find_credential(cid)
    if not record:
        raise NotFoundError("Corporate ID", cid)

    ttl = current_app.config.get("OTP_TTL_SECONDS", DEFAULT_OTP_TTL_SECONDS)
    now = now or datetime.now(timezone.utc)
    code = _generate_code()
    record.otp = code
    record.otp_expiry = now + timedelta(seconds=ttl)
    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise StoreError(str(exc)) from exc

    logger.info("OTP issued: corporate_id=%s kind=%s", cid, record.kind)
    notifier.dispatch(send_otp_email, to_email=record.email, otp=code, ttl_seconds=ttl)
    return {"corporate_id": cid, "expires_at": record.otp_expiry.isoformat()}


def verify_otp(corporate_id, code, *, now: datetime | None = None) -> dict:
    """Consume a code and return the verified identity with an access token.

    Raises:
        NotFoundError:   unknown corporate id.
        InvalidOtpError: no active code, wrong code, or the code was consumed
                         by a concurrent verification.
        ExpiredError:    right code, but at or past its expiry.
    """
    cid = _require_id(corporate_id)
    code = str(code or "").strip()
    if not code:
        raise ValidationError("OTP is required", details={"otp": "required"})

    record, model = find_credential(cid)
    if not record:
        raise NotFoundError("Corporate ID", cid)

    if not record.otp or not hmac.compare_digest(record.otp, code):
        logger.warning("OTP mismatch: corporate_id=%s", cid)
        raise InvalidOtpError()

    now = now or datetime.now(timezone.utc)
    if record.otp_expiry is None or now >= _as_utc(record.otp_expiry):
        logger.info("OTP expired: corporate_id=%s", cid)
        raise ExpiredError()

    # Conditional clear: only one verification can consume a given code
    try:
        result = db.session.execute(
            update(model)
            .where(model.id == record.id, model.otp == code)
            .values(otp=None, otp_expiry=None)
        )
        if result.rowcount != 1:
            db.session.rollback()
            raise InvalidOtpError()
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise StoreError(str(exc)) from exc

    db.session.refresh(record)
    logger.info("OTP verified: corporate_id=%s kind=%s role=%s", cid, record.kind, record.role)
    return {
        "corporate_id": record.corporate_id,
        "role": record.role,
        "name": record.employee_name,
        "kind": record.kind,
        "access_token": jwt_service.generate_access_token(record.corporate_id, record.role, record.kind),
    }
