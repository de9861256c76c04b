"""
Credential directory - lookups across employee and admin records.

Employee records are checked before admin records, matching the order the
OTP login uses.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ideabox.core.exceptions import ConflictError, NotFoundError, StoreError, ValidationError
from ideabox.models import db
from ideabox.models.auth import AdminCredential, UserCredential

logger = logging.getLogger(__name__)

_KIND_MODELS = {
    "employee": UserCredential,
    "admin": AdminCredential,
}

# adminL1 → L1, adminL2 → L2; any other role is returned unchanged
_ROLE_SHORT_NAMES = {"adminL1": "L1", "adminL2": "L2"}


def _normalize_id(corporate_id) -> str:
    return str(corporate_id or "").strip()


def find_user(corporate_id) -> UserCredential | None:
    cid = _normalize_id(corporate_id)
    if not cid:
        return None
    return UserCredential.query.filter_by(corporate_id=cid).first()


def find_admin(corporate_id) -> AdminCredential | None:
    cid = _normalize_id(corporate_id)
    if not cid:
        return None
    return AdminCredential.query.filter_by(corporate_id=cid).first()


def find_credential(corporate_id):
    """Return ``(record, model)`` for the first kind that knows this id.

    ``(None, None)`` when neither table has it.
    """
    for model in (UserCredential, AdminCredential):
        record = model.query.filter_by(corporate_id=_normalize_id(corporate_id)).first()
        if record:
            return record, model
    return None, None


def resolve_employee_email(employee_id) -> str | None:
    """Email of the employee who submitted an idea, or None if unknown."""
    user = find_user(employee_id)
    return user.email if user else None


def get_admin_role(corporate_id) -> str:
    """Short role label for an admin ("L1", "L2", or the stored role)."""
    admin = find_admin(corporate_id)
    if not admin:
        raise NotFoundError("Admin", corporate_id)
    return _ROLE_SHORT_NAMES.get(admin.role, admin.role)


def get_user_details(corporate_id) -> dict:
    """Profile fields used to pre-fill the idea submission form."""
    if not _normalize_id(corporate_id):
        raise ValidationError("Corporate ID is required", details={"corporateId": "required"})
    user = find_user(corporate_id)
    if not user:
        raise NotFoundError("User", corporate_id)
    return {
        "employee_name": user.employee_name,
        "employee_function": user.employee_function,
        "location": user.location,
    }


def create_credential(
    kind: str,
    corporate_id: str,
    email: str,
    role: str,
    *,
    employee_name: str | None = None,
    employee_function: str | None = None,
    location: str | None = None,
):
    """Insert a credential record of the given kind ("employee" or "admin")."""
    model = _KIND_MODELS.get(kind)
    if model is None:
        raise ValidationError(f"Unknown credential kind '{kind}'",
                              details={"kind": sorted(_KIND_MODELS)})
    cid = _normalize_id(corporate_id)
    email = (email or "").strip()
    if not cid or not email or not role:
        raise ValidationError("corporate_id, email and role are required")

    if model.query.filter_by(corporate_id=cid).first():
        raise ConflictError(model.__name__, "corporate_id", cid)
    if model.query.filter_by(email=email).first():
        raise ConflictError(model.__name__, "email", email)

    record = model(corporate_id=cid, email=email, role=role)
    if employee_name:
        record.employee_name = employee_name
    if employee_function:
        record.employee_function = employee_function
    if location:
        record.location = location
    db.session.add(record)
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise ConflictError(model.__name__, "corporate_id", cid) from exc
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise StoreError(str(exc)) from exc

    logger.info("Credential created: kind=%s corporate_id=%s role=%s", kind, cid, role)
    return record
