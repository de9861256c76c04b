"""
Idea submission models.

Two collections:
    idea_submissions  - active ideas moving through the L1 / L2 review tiers
    rejected_ideas    - terminal archive; a rejected idea is copied here and
                        removed from idea_submissions in the same transaction

Submission fields are shared through ``IdeaSubmissionMixin`` so the archive
row is a structural copy of the active row.
"""

import uuid
from datetime import datetime, timezone

from ideabox.models import db

PENDING_STATUS = "Pending"
REJECTED_STATUS = "Rejected"
DEFAULT_REJECTION_REASON = "No reason provided"

# Fields set once by the submitter and never mutated afterwards
SUBMISSION_FIELDS = (
    "employee_name",
    "employee_id",
    "employee_function",
    "location",
    "idea_theme",
    "department",
    "benefits_category",
    "idea_description",
    "impacted_process",
    "expected_benefits_value",
    "attachment",
    "submitted_at",
)


def _uuid():
    return str(uuid.uuid4())


def _utcnow():
    return datetime.now(timezone.utc)


def _iso(value):
    return value.isoformat() if value else None


class IdeaSubmissionMixin:
    """Columns captured from the employee's submission form."""

    employee_name = db.Column(db.String(150), nullable=False)
    employee_id = db.Column(db.String(64), nullable=False, index=True,
                            comment="Soft reference to user_credentials.corporate_id")
    employee_function = db.Column(db.String(150))
    location = db.Column(db.String(150))
    idea_theme = db.Column(db.String(255))
    department = db.Column(db.String(150))
    benefits_category = db.Column(db.String(150))
    idea_description = db.Column(db.Text, nullable=False)
    impacted_process = db.Column(db.String(255))
    expected_benefits_value = db.Column(db.String(255))
    attachment = db.Column(db.String(255), nullable=True,
                           comment="Stored file name under UPLOAD_FOLDER")
    submitted_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    def submission_dict(self) -> dict:
        return {
            "employee_name": self.employee_name,
            "employee_id": self.employee_id,
            "employee_function": self.employee_function,
            "location": self.location,
            "idea_theme": self.idea_theme,
            "department": self.department,
            "benefits_category": self.benefits_category,
            "idea_description": self.idea_description,
            "impacted_process": self.impacted_process,
            "expected_benefits_value": self.expected_benefits_value,
            "attachment": self.attachment,
            "submitted_at": _iso(self.submitted_at),
        }


class Idea(IdeaSubmissionMixin, db.Model):
    """
    An active idea submission.

    status is the rendered WorkflowStatus (e.g. "Pending",
    "ApprovedByL1Admin", "RecommendedByL1Admin"). admin_name is a snapshot of
    the acting admin's display name at decision time, not a live reference.
    """

    __tablename__ = "idea_submissions"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)

    status = db.Column(db.String(50), nullable=False, default=PENDING_STATUS, index=True)
    comment = db.Column(db.Text, nullable=False, default="")
    admin_name = db.Column(db.String(150), nullable=True)
    recommended_at = db.Column(db.DateTime(timezone=True), nullable=True)
    bookmarked_by = db.Column(db.JSON, nullable=False, default=list,
                              comment="Admin identifiers; unique values, order irrelevant")
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
    )

    def to_dict(self) -> dict:
        data = {"id": self.id}
        data.update(self.submission_dict())
        data.update({
            "status": self.status,
            "comment": self.comment,
            "admin_name": self.admin_name,
            "recommended_at": _iso(self.recommended_at),
            "bookmarked_by": list(self.bookmarked_by or []),
            "updated_at": _iso(self.updated_at),
        })
        return data

    def __repr__(self):
        return f"<Idea {self.id} {self.status}>"


class RejectedIdea(IdeaSubmissionMixin, db.Model):
    """
    Archived copy of a rejected idea.

    Business rules:
    - Created only by the reject relocation; never updated or deleted.
    - original_idea_id is unique so a retried relocation cannot archive the
      same idea twice.
    - rejected_by is a display-name snapshot, like Idea.admin_name.
    """

    __tablename__ = "rejected_ideas"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    original_idea_id = db.Column(db.String(36), nullable=False, unique=True,
                                 comment="Id the idea had in idea_submissions")

    status = db.Column(db.String(50), nullable=False, default=REJECTED_STATUS)
    comment = db.Column(db.Text, nullable=False, default="")
    admin_name = db.Column(db.String(150), nullable=True)
    bookmarked_by = db.Column(db.JSON, nullable=False, default=list)
    rejection_reason = db.Column(db.Text, nullable=False, default=DEFAULT_REJECTION_REASON)
    rejected_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    rejected_by = db.Column(db.String(150), nullable=True)
    rejected_by_role = db.Column(db.String(20), nullable=True)

    def to_dict(self) -> dict:
        data = {"id": self.id, "original_idea_id": self.original_idea_id}
        data.update(self.submission_dict())
        data.update({
            "status": self.status,
            "comment": self.comment,
            "admin_name": self.admin_name,
            "bookmarked_by": list(self.bookmarked_by or []),
            "rejection_reason": self.rejection_reason,
            "rejected_at": _iso(self.rejected_at),
            "rejected_by": self.rejected_by,
            "rejected_by_role": self.rejected_by_role,
        })
        return data

    def __repr__(self):
        return f"<RejectedIdea {self.id} (was {self.original_idea_id})>"
