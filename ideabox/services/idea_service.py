"""
Idea lifecycle service.

Owns every change to an idea after submission: admin decisions across the
L1 / L2 tiers, relocation of rejected ideas into the archive, and per-admin
bookmarks. Each committed decision hands a notification job to the notifier;
the job's outcome never alters the result already returned.

Design decisions:
    - Status is built from WorkflowStatus (fixed Stage / AdminRole enums) and
      stored in its string form, e.g. "ApprovedByL1Admin".
    - Rejection is terminal. The idea is copied to rejected_ideas and deleted
      from idea_submissions in ONE commit; either both happen or neither.
    - A relocation retried after success returns the existing archive row
      (keyed by original_idea_id) instead of failing or duplicating.
    - admin_name / rejected_by are snapshots taken at decision time.
    - Concurrent decisions on one idea are last-write-wins.
"""

from __future__ import annotations

import logging
import os
import uuid
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm.attributes import flag_modified
from sqlalchemy.orm.exc import StaleDataError

from ideabox.core.exceptions import NotFoundError, StoreError, ValidationError
from ideabox.models import db
from ideabox.models.idea import (
    DEFAULT_REJECTION_REASON,
    REJECTED_STATUS,
    SUBMISSION_FIELDS,
    Idea,
    RejectedIdea,
)
from ideabox.services import attachment_service, notifier
from ideabox.services.credential_service import find_admin, resolve_employee_email
from ideabox.services.email_service import EmailService
from ideabox.services.workflow_status import Stage, WorkflowStatus, is_rejected_status

logger = logging.getLogger(__name__)

UNKNOWN_ADMIN = "Unknown Admin"

REQUIRED_SUBMISSION_FIELDS = ("employee_id", "employee_name", "idea_description")

# Submitter-settable fields and the camelCase keys the web form posts
_FIELD_ALIASES = {
    "employee_name": "employeeName",
    "employee_id": "employeeId",
    "employee_function": "employeeFunction",
    "location": "location",
    "idea_theme": "ideaTheme",
    "department": "department",
    "benefits_category": "benefitsCategory",
    "idea_description": "ideaDescription",
    "impacted_process": "impactedProcess",
    "expected_benefits_value": "expectedBenefitsValue",
}


# ── Private helpers ────────────────────────────────────────────────────────────


def validate_idea_id(idea_id) -> str:
    """Return the canonical id string or raise ValidationError."""
    try:
        return str(uuid.UUID(str(idea_id)))
    except (TypeError, ValueError, AttributeError):
        raise ValidationError("Invalid Idea ID", details={"id": str(idea_id)}) from None


def _get_idea_or_404(idea_id) -> Idea:
    idea = db.session.get(Idea, validate_idea_id(idea_id))
    if not idea:
        raise NotFoundError("Idea", idea_id)
    return idea


def _commit():
    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.error("Idea store commit failed: %s", exc)
        raise StoreError(str(exc)) from exc


def _resolve_admin_name(admin_id, admin_name) -> str:
    """Snapshot the acting admin's display name.

    A caller-supplied name wins unless it is empty or the UI placeholder
    "Unknown"; otherwise the admin record is looked up by corporate id.
    """
    name = (admin_name or "").strip()
    if name and name != "Unknown":
        return name
    admin = find_admin(admin_id)
    return admin.employee_name if admin else UNKNOWN_ADMIN


def _pick(fields: dict, key: str):
    value = fields.get(key)
    if value is None:
        value = fields.get(_FIELD_ALIASES[key])
    if isinstance(value, str):
        value = value.strip()
    return value


def _format_local(value: datetime | None) -> str:
    if value is None:
        return ""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    tz_name = current_app.config.get("DISPLAY_TIMEZONE") or "UTC"
    return value.astimezone(ZoneInfo(tz_name)).strftime("%d/%m/%Y, %I:%M:%S %p")


# ── Notification job ───────────────────────────────────────────────────────────


def notify_idea_decision(
    *,
    idea_id: str,
    employee_id: str,
    employee_name: str,
    idea_theme: str,
    status: str,
    admin_role: str,
    comment: str,
    acted_at: datetime | None = None,
) -> None:
    """Email the submitter about a decision. Runs detached from the request."""
    to_email = resolve_employee_email(employee_id)
    if not to_email:
        logger.warning("No email found for employee_id=%s for idea %s; notification skipped",
                       employee_id, idea_id)
        return

    context = {
        "employee_name": employee_name,
        "idea_theme": idea_theme,
        "admin_role": admin_role or "the review team",
        "comment": comment or "",
        "acted_at": _format_local(acted_at),
    }
    if is_rejected_status(status):
        template = "idea_rejected"
        context["reason"] = comment or "No reason provided."
    elif WorkflowStatus.parse(status).stage is Stage.RECOMMENDED:
        template = "idea_recommended"
    else:
        template = "idea_approved"

    EmailService.send_from_template(
        to_email=to_email,
        template_name=template,
        context=context,
        category="idea_decision",
        idea_id=idea_id,
    )


# ── Public API ─────────────────────────────────────────────────────────────────


def submit_idea(fields: dict, attachment=None) -> dict:
    """Create a Pending idea from the submission form.

    Args:
        fields:     Form values, snake_case or the form's camelCase keys.
                    Workflow fields in here are ignored.
        attachment: Optional werkzeug ``FileStorage``.

    Returns:
        The created idea dict (status "Pending", no bookmarks).
    """
    values = {key: _pick(fields, key) for key in _FIELD_ALIASES}

    missing = {k: "required" for k in REQUIRED_SUBMISSION_FIELDS if not values.get(k)}
    if missing:
        raise ValidationError("Missing required fields", details=missing)

    stored_name = None
    if attachment is not None and getattr(attachment, "filename", ""):
        stored_name = attachment_service.save_attachment(attachment, values["employee_id"])

    idea = Idea(**values, attachment=stored_name, bookmarked_by=[])
    db.session.add(idea)
    try:
        _commit()
    except StoreError:
        if stored_name:
            _remove_orphaned_attachment(stored_name)
        raise

    logger.info("Idea submitted: id=%s employee_id=%s", idea.id, idea.employee_id)
    return idea.to_dict()


def _remove_orphaned_attachment(stored_name: str) -> None:
    try:
        os.remove(attachment_service.attachment_path(stored_name))
    except (NotFoundError, OSError):
        logger.warning("Could not remove orphaned attachment %s", stored_name)


def list_ideas(
    status: str | None = None,
    exclude_status: str | None = None,
    employee_id: str | None = None,
) -> list[dict]:
    """Active ideas, newest first, optionally filtered."""
    q = Idea.query
    if status:
        q = q.filter(Idea.status == status)
    if exclude_status:
        q = q.filter(Idea.status != exclude_status)
    if employee_id:
        q = q.filter(Idea.employee_id == employee_id)
    return [i.to_dict() for i in q.order_by(Idea.submitted_at.desc()).all()]


def get_idea(idea_id) -> dict:
    return _get_idea_or_404(idea_id).to_dict()


def advance_status(
    idea_id,
    status,
    comment,
    admin_id,
    admin_role,
    admin_name: str | None = None,
) -> dict:
    """Record an admin decision on an idea.

    Business rules enforced here (not in blueprint):
    - status must be a decision stage (Approved / Recommended / Rejected) and
      admin_role an admin tier; Recommended is L1-only.
    - comment always overwrites, an empty string included.
    - Rejected is terminal and relocates the idea to the archive; the
      archived record is returned.

    Returns:
        The updated idea dict (or archived idea dict for Rejected).
    """
    idea_id = validate_idea_id(idea_id)
    target = WorkflowStatus.decision(status, admin_role)
    comment = "" if comment is None else str(comment)

    if target.is_terminal:
        return reject_idea(
            idea_id,
            comment,
            admin_id=admin_id,
            admin_role=target.acted_by,
            admin_name=admin_name,
        )

    idea = _get_idea_or_404(idea_id)
    now = datetime.now(timezone.utc)
    idea.status = str(target)
    idea.comment = comment
    idea.admin_name = _resolve_admin_name(admin_id, admin_name)
    if target.stage is Stage.RECOMMENDED:
        idea.recommended_at = now
    # Every decision field goes into the UPDATE, changed or not
    for field in ("status", "comment", "admin_name"):
        flag_modified(idea, field)
    _commit()

    result = idea.to_dict()
    logger.info(
        "Idea %s updated: %s, admin_name: %s",
        idea_id, result["status"], result["admin_name"],
        extra={"idea_id": idea_id, "event_type": "idea_status"},
    )

    notifier.dispatch(
        notify_idea_decision,
        idea_id=idea_id,
        employee_id=result["employee_id"],
        employee_name=result["employee_name"],
        idea_theme=result["idea_theme"],
        status=result["status"],
        admin_role=target.acted_by.value,
        comment=comment,
        acted_at=now,
    )
    return result


def reject_idea(
    idea_id,
    reason: str | None,
    *,
    admin_id=None,
    admin_role=None,
    admin_name: str | None = None,
) -> dict:
    """Move an idea into the rejected archive.

    Copy-and-delete happens in a single transaction. A retry for an idea that
    was already relocated, or a call that loses the race to a concurrent
    rejection, returns the existing archive row unchanged and sends no email.

    Returns:
        The archived idea dict.
    """
    idea_id = validate_idea_id(idea_id)
    role_label = getattr(admin_role, "value", admin_role) or None

    idea = db.session.get(Idea, idea_id)
    if idea is None:
        archived = RejectedIdea.query.filter_by(original_idea_id=idea_id).first()
        if archived is None:
            raise NotFoundError("Idea", idea_id)
        logger.info("Idea %s already archived as %s", idea_id, archived.id)
        return archived.to_dict()

    reason = (reason or "").strip() or DEFAULT_REJECTION_REASON
    rejected_by = _resolve_admin_name(admin_id, admin_name) if (admin_id or admin_name) else None

    archived = RejectedIdea(
        original_idea_id=idea.id,
        status=REJECTED_STATUS,
        comment=idea.comment or "",
        admin_name=idea.admin_name,
        bookmarked_by=list(idea.bookmarked_by or []),
        rejection_reason=reason,
        rejected_at=datetime.now(timezone.utc),
        rejected_by=rejected_by,
        rejected_by_role=role_label,
        **{field: getattr(idea, field) for field in SUBMISSION_FIELDS},
    )
    db.session.add(archived)
    db.session.delete(idea)
    try:
        db.session.commit()
    except (IntegrityError, StaleDataError) as exc:
        # A concurrent rejection archived this idea first
        db.session.rollback()
        existing = RejectedIdea.query.filter_by(original_idea_id=idea_id).first()
        if existing is None:
            logger.error("Idea store commit failed: %s", exc)
            raise StoreError(str(exc)) from exc
        logger.info("Idea %s was archived concurrently as %s", idea_id, existing.id)
        return existing.to_dict()
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.error("Idea store commit failed: %s", exc)
        raise StoreError(str(exc)) from exc

    result = archived.to_dict()
    logger.info(
        "Idea %s rejected and archived as %s by %s",
        idea_id, archived.id, rejected_by or "unknown",
        extra={"idea_id": idea_id, "event_type": "idea_rejected"},
    )

    notifier.dispatch(
        notify_idea_decision,
        idea_id=idea_id,
        employee_id=result["employee_id"],
        employee_name=result["employee_name"],
        idea_theme=result["idea_theme"],
        status=REJECTED_STATUS,
        admin_role=role_label,
        comment=reason,
        acted_at=archived.rejected_at,
    )
    return result


def list_rejected_ideas(employee_id: str | None = None) -> list[dict]:
    """Archived ideas, most recently rejected first."""
    q = RejectedIdea.query
    if employee_id:
        q = q.filter(RejectedIdea.employee_id == employee_id)
    return [r.to_dict() for r in q.order_by(RejectedIdea.rejected_at.desc()).all()]


def toggle_bookmark(idea_id, admin_id) -> list[str]:
    """Add the admin to bookmarked_by if absent, remove them if present."""
    admin_id = str(admin_id or "").strip()
    if not admin_id:
        raise ValidationError("Admin ID is required", details={"adminId": "required"})

    idea = _get_idea_or_404(idea_id)
    current = list(idea.bookmarked_by or [])
    if admin_id in current:
        current = [a for a in current if a != admin_id]
    else:
        current.append(admin_id)
    # Reassign so the JSON column is flagged dirty
    idea.bookmarked_by = current
    _commit()
    return list(idea.bookmarked_by)


def get_employee_summary(employee_id) -> dict:
    """Counts and active ideas for one submitter."""
    employee_id = str(employee_id or "").strip()
    if not employee_id:
        raise ValidationError("Employee ID is required", details={"employee_id": "required"})

    ideas = list_ideas(employee_id=employee_id)
    rejected_count = RejectedIdea.query.filter_by(employee_id=employee_id).count()
    approved_count = sum(
        1 for i in ideas if WorkflowStatus.parse(i["status"]).stage is Stage.APPROVED
    )
    pending_count = sum(1 for i in ideas if i["status"] == Stage.PENDING.value)
    return {
        "employee_id": employee_id,
        "total_ideas": len(ideas) + rejected_count,
        "approved_count": approved_count,
        "rejected_count": rejected_count,
        "pending_count": pending_count,
        "ideas": ideas,
    }
