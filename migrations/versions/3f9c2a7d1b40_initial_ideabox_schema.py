"""initial_ideabox_schema

Creates the IdeaBox tables:
  - idea_submissions    - active ideas under L1 / L2 review
  - rejected_ideas      - archive of rejected ideas (one row per original idea)
  - user_credentials    - employees who can log in with an OTP
  - admin_credentials   - L1 / L2 reviewers
  - email_logs          - audit trail of every notification email

Tables created conditionally (IF NOT EXISTS semantics) so the revision can be
stamped onto a database that already received them via db.create_all().

Revision ID: 3f9c2a7d1b40
Revises:
Create Date: 2026-10-19 10:12:31.118204
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = '3f9c2a7d1b40'
down_revision = None
branch_labels = None
depends_on = None


def _submission_columns():
    return [
        sa.Column("employee_name", sa.String(length=150), nullable=False),
        sa.Column("employee_id", sa.String(length=64), nullable=False,
                  comment="Soft reference to user_credentials.corporate_id"),
        sa.Column("employee_function", sa.String(length=150), nullable=True),
        sa.Column("location", sa.String(length=150), nullable=True),
        sa.Column("idea_theme", sa.String(length=255), nullable=True),
        sa.Column("department", sa.String(length=150), nullable=True),
        sa.Column("benefits_category", sa.String(length=150), nullable=True),
        sa.Column("idea_description", sa.Text(), nullable=False),
        sa.Column("impacted_process", sa.String(length=255), nullable=True),
        sa.Column("expected_benefits_value", sa.String(length=255), nullable=True),
        sa.Column("attachment", sa.String(length=255), nullable=True,
                  comment="Stored file name under UPLOAD_FOLDER"),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=False),
    ]


def _credential_columns():
    return [
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("corporate_id", sa.String(length=64), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("role", sa.String(length=30), nullable=False),
        sa.Column("otp", sa.String(length=8), nullable=True),
        sa.Column("otp_expiry", sa.DateTime(timezone=True), nullable=True),
        sa.Column("employee_name", sa.String(length=150), nullable=False),
        sa.Column("employee_function", sa.String(length=150), nullable=False),
        sa.Column("location", sa.String(length=150), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    ]


def upgrade():
    bind = op.get_bind()
    inspector = sa_inspect(bind)
    existing = set(inspector.get_table_names())

    # ── Active ideas ──────────────────────────────────────────────────────
    if "idea_submissions" not in existing:
        op.create_table(
            "idea_submissions",
            sa.Column("id", sa.String(length=36), nullable=False),
            *_submission_columns(),
            sa.Column("status", sa.String(length=50), nullable=False,
                      server_default="Pending"),
            sa.Column("comment", sa.Text(), nullable=False, server_default=""),
            sa.Column("admin_name", sa.String(length=150), nullable=True),
            sa.Column("recommended_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("bookmarked_by", sa.JSON(), nullable=False,
                      comment="Admin identifiers; unique values, order irrelevant"),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_idea_submissions_status", "idea_submissions", ["status"])
        op.create_index("ix_idea_submissions_employee_id", "idea_submissions", ["employee_id"])

    # ── Rejected archive ──────────────────────────────────────────────────
    if "rejected_ideas" not in existing:
        op.create_table(
            "rejected_ideas",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("original_idea_id", sa.String(length=36), nullable=False,
                      comment="Id the idea had in idea_submissions"),
            *_submission_columns(),
            sa.Column("status", sa.String(length=50), nullable=False,
                      server_default="Rejected"),
            sa.Column("comment", sa.Text(), nullable=False, server_default=""),
            sa.Column("admin_name", sa.String(length=150), nullable=True),
            sa.Column("bookmarked_by", sa.JSON(), nullable=False),
            sa.Column("rejection_reason", sa.Text(), nullable=False),
            sa.Column("rejected_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("rejected_by", sa.String(length=150), nullable=True),
            sa.Column("rejected_by_role", sa.String(length=20), nullable=True),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("original_idea_id"),
        )
        op.create_index("ix_rejected_ideas_employee_id", "rejected_ideas", ["employee_id"])

    # ── Credentials ───────────────────────────────────────────────────────
    for table in ("user_credentials", "admin_credentials"):
        if table not in existing:
            op.create_table(table, *_credential_columns())
            op.create_index(f"ix_{table}_corporate_id", table, ["corporate_id"], unique=True)

    # ── Email audit ───────────────────────────────────────────────────────
    if "email_logs" not in existing:
        op.create_table(
            "email_logs",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("recipient_email", sa.String(length=255), nullable=False),
            sa.Column("subject", sa.String(length=500), nullable=False),
            sa.Column("template_name", sa.String(length=100), nullable=True),
            sa.Column("category", sa.String(length=30), nullable=True),
            sa.Column("status", sa.String(length=20), nullable=True),
            sa.Column("error_message", sa.Text(), nullable=True),
            sa.Column("idea_id", sa.String(length=36), nullable=True),
            sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_email_logs_recipient_email", "email_logs", ["recipient_email"])
        op.create_index("ix_email_logs_idea_id", "email_logs", ["idea_id"])


def downgrade():
    op.drop_table("email_logs")
    op.drop_table("admin_credentials")
    op.drop_table("user_credentials")
    op.drop_table("rejected_ideas")
    op.drop_table("idea_submissions")
