"""
Credential models - employees and administrators.

Both record kinds share one shape (``CredentialModel``) and live in separate
tables. Authentication is passwordless: a short-lived numeric OTP is written
to the record on request and cleared on successful verification.
"""

from datetime import datetime, timezone

from ideabox.models import db

EMPLOYEE_ROLE = "employee"
ADMIN_ROLES = frozenset({"adminL1", "adminL2"})


class CredentialModel(db.Model):
    """Abstract base for credential tables."""
    __abstract__ = True

    id = db.Column(db.Integer, primary_key=True)
    corporate_id = db.Column(db.String(64), unique=True, nullable=False, index=True)
    email = db.Column(db.String(255), unique=True, nullable=False)
    role = db.Column(db.String(30), nullable=False)

    # OTP state: both set on issue, both cleared on successful verification
    otp = db.Column(db.String(8), nullable=True)
    otp_expiry = db.Column(db.DateTime(timezone=True), nullable=True)

    employee_name = db.Column(db.String(150), nullable=False, default="N/A")
    employee_function = db.Column(db.String(150), nullable=False, default="N/A")
    location = db.Column(db.String(150), nullable=False, default="Unknown")
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    kind = None

    def to_dict(self):
        """Serialize without OTP fields."""
        return {
            "id": self.id,
            "kind": self.kind,
            "corporate_id": self.corporate_id,
            "email": self.email,
            "role": self.role,
            "employee_name": self.employee_name,
            "employee_function": self.employee_function,
            "location": self.location,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<{type(self).__name__} {self.corporate_id} ({self.role})>"


class UserCredential(CredentialModel):
    __tablename__ = "user_credentials"
    kind = "employee"


class AdminCredential(CredentialModel):
    __tablename__ = "admin_credentials"
    kind = "admin"
