"""
Idea lifecycle service tests.

Covers:
    1. Submission (defaults, required fields)
    2. Admin decisions and the stored status string
    3. Rejection relocation into the archive (incl. retry and lost races)
    4. Bookmarks
    5. Decision notifications (EmailLog audit, failures isolated)
    6. Submitter summary
"""

import io
import os
import uuid
from unittest.mock import patch

import pytest
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.datastructures import FileStorage

from ideabox.core.exceptions import NotFoundError, StoreError, ValidationError
from ideabox.models import db
from ideabox.models.idea import SUBMISSION_FIELDS, Idea, RejectedIdea
from ideabox.models.notification import EmailLog
from ideabox.services import attachment_service, idea_service
from ideabox.services.email_service import EmailService


# ═════════════════════════════════════════════════════════════════════════
# SUBMISSION
# ═════════════════════════════════════════════════════════════════════════


class TestSubmit:
    def test_new_idea_is_pending_without_bookmarks(self, idea):
        assert idea["status"] == "Pending"
        assert idea["bookmarked_by"] == []
        assert idea["comment"] == ""
        assert idea["employee_id"] == "E1001"
        uuid.UUID(idea["id"])

    def test_accepts_snake_case_fields(self):
        created = idea_service.submit_idea({
            "employee_id": "E77",
            "employee_name": "Kiran",
            "idea_description": "Shared drive clean-up",
        })
        assert created["employee_name"] == "Kiran"

    def test_workflow_fields_are_ignored(self, idea_factory):
        created = idea_factory(status="ApprovedByL2Admin", bookmarkedBy=["A1"])
        assert created["status"] == "Pending"
        assert created["bookmarked_by"] == []

    def test_missing_required_fields(self, idea_factory):
        with pytest.raises(ValidationError) as exc:
            idea_factory(ideaDescription="  ", employeeId=None)
        assert set(exc.value.details) == {"idea_description", "employee_id"}

    def test_store_failure_raises_store_error(self, idea_factory):
        with patch.object(db.session, "commit", side_effect=SQLAlchemyError("disk full")):
            with pytest.raises(StoreError):
                idea_factory()
        assert Idea.query.count() == 0

    @staticmethod
    def _submit_with_file(content, employee_id="E4040"):
        upload = FileStorage(stream=io.BytesIO(content), filename="plan.pdf")
        return idea_service.submit_idea({
            "employeeId": employee_id,
            "employeeName": "Dev",
            "ideaDescription": "Quarterly plan template",
        }, attachment=upload)

    def test_same_file_name_twice_keeps_both_attachments(self):
        first = self._submit_with_file(b"FIRST")
        second = self._submit_with_file(b"SECOND")
        assert first["attachment"] != second["attachment"]

        with open(attachment_service.attachment_path(first["attachment"]), "rb") as fh:
            assert fh.read() == b"FIRST"
        with open(attachment_service.attachment_path(second["attachment"]), "rb") as fh:
            assert fh.read() == b"SECOND"

    def test_failed_commit_keeps_earlier_attachment(self, app):
        first = self._submit_with_file(b"FIRST", "E5050")
        with patch.object(db.session, "commit", side_effect=SQLAlchemyError("disk full")):
            with pytest.raises(StoreError):
                self._submit_with_file(b"SECOND", "E5050")

        with open(attachment_service.attachment_path(first["attachment"]), "rb") as fh:
            assert fh.read() == b"FIRST"
        stored = [n for n in os.listdir(app.config["UPLOAD_FOLDER"])
                  if n.startswith("E5050_") and n.endswith("_plan.pdf")]
        assert stored == [first["attachment"]]


# ═════════════════════════════════════════════════════════════════════════
# DECISIONS
# ═════════════════════════════════════════════════════════════════════════


class TestAdvanceStatus:
    def test_approve_with_empty_comment(self, idea, admin_l1):
        updated = idea_service.advance_status(idea["id"], "Approved", "", "A2001", "L1Admin")
        assert updated["status"] == "ApprovedByL1Admin"
        assert updated["comment"] == ""

        stored = db.session.get(Idea, idea["id"])
        assert stored.status == "ApprovedByL1Admin"
        assert stored.comment == ""

    def test_admin_name_looked_up_when_not_given(self, idea, admin_l1):
        updated = idea_service.advance_status(idea["id"], "Approved", "ok", "A2001", "L1Admin")
        assert updated["admin_name"] == "Rahul Mehta"

    def test_placeholder_name_triggers_lookup(self, idea, admin_l1):
        updated = idea_service.advance_status(
            idea["id"], "Approved", "ok", "A2001", "L1Admin", admin_name="Unknown",
        )
        assert updated["admin_name"] == "Rahul Mehta"

    def test_explicit_admin_name_wins(self, idea, admin_l1):
        updated = idea_service.advance_status(
            idea["id"], "Approved", "ok", "A2001", "L1Admin", admin_name="R. Mehta",
        )
        assert updated["admin_name"] == "R. Mehta"

    def test_unknown_admin_falls_back(self, idea):
        updated = idea_service.advance_status(idea["id"], "Approved", "ok", "NOBODY", "L2Admin")
        assert updated["admin_name"] == idea_service.UNKNOWN_ADMIN

    def test_recommend_stamps_recommended_at(self, idea, admin_l1):
        updated = idea_service.advance_status(
            idea["id"], "Recommended", "Worth a pilot", "A2001", "L1Admin",
        )
        assert updated["status"] == "RecommendedByL1Admin"
        assert updated["recommended_at"] is not None

    def test_l2_cannot_recommend(self, idea):
        with pytest.raises(ValidationError):
            idea_service.advance_status(idea["id"], "Recommended", "", "A3001", "L2Admin")
        assert db.session.get(Idea, idea["id"]).status == "Pending"

    def test_invalid_id(self):
        with pytest.raises(ValidationError):
            idea_service.advance_status("not-a-uuid", "Approved", "", "A1", "L1Admin")

    def test_unknown_id(self):
        with pytest.raises(NotFoundError):
            idea_service.advance_status(str(uuid.uuid4()), "Approved", "", "A1", "L1Admin")

    def test_last_write_wins(self, idea, admin_l1, admin_l2):
        idea_service.advance_status(idea["id"], "Recommended", "first", "A2001", "L1Admin")
        idea_service.advance_status(idea["id"], "Approved", "second", "A3001", "L2Admin")

        stored = db.session.get(Idea, idea["id"])
        assert stored.status == "ApprovedByL2Admin"
        assert stored.comment == "second"
        assert stored.admin_name == "Anita Desai"

    def test_stale_read_does_not_keep_earlier_decision(self, idea, admin_l1, admin_l2):
        stale = db.session.get(Idea, idea["id"])
        assert stale.comment == ""
        # L1's decision lands after this session loaded the row
        db.session.execute(
            update(Idea)
            .where(Idea.id == idea["id"])
            .values(status="ApprovedByL1Admin", comment="Great idea", admin_name="Rahul Mehta")
            .execution_options(synchronize_session=False)
        )
        assert stale.comment == ""

        idea_service.advance_status(idea["id"], "Approved", "", "A3001", "L2Admin")

        db.session.expire_all()
        stored = db.session.get(Idea, idea["id"])
        assert (stored.status, stored.comment, stored.admin_name) == (
            "ApprovedByL2Admin", "", "Anita Desai",
        )

    def test_store_failure_raises_store_error(self, idea):
        with patch.object(db.session, "commit", side_effect=SQLAlchemyError("lost connection")):
            with pytest.raises(StoreError):
                idea_service.advance_status(idea["id"], "Approved", "", "A1", "L1Admin")


# ═════════════════════════════════════════════════════════════════════════
# REJECTION / ARCHIVE
# ═════════════════════════════════════════════════════════════════════════


class TestReject:
    def test_relocates_into_archive(self, idea, admin_l2):
        archived = idea_service.reject_idea(
            idea["id"], "Not feasible", admin_id="A3001", admin_role="L2Admin",
        )

        with pytest.raises(NotFoundError):
            idea_service.get_idea(idea["id"])

        rows = RejectedIdea.query.all()
        assert len(rows) == 1
        assert rows[0].rejection_reason == "Not feasible"
        assert rows[0].original_idea_id == idea["id"]
        assert archived["status"] == "Rejected"
        assert archived["rejected_by"] == "Anita Desai"
        assert archived["rejected_by_role"] == "L2Admin"
        for field in SUBMISSION_FIELDS:
            if field == "submitted_at":
                continue
            assert archived[field] == idea[field], field

    def test_blank_reason_gets_default(self, idea):
        archived = idea_service.reject_idea(idea["id"], "   ")
        assert archived["rejection_reason"] == "No reason provided"
        assert archived["rejected_by"] is None

    def test_keeps_comment_and_bookmarks(self, idea, admin_l1):
        idea_service.toggle_bookmark(idea["id"], "A2001")
        idea_service.advance_status(idea["id"], "Recommended", "looks good", "A2001", "L1Admin")
        archived = idea_service.reject_idea(idea["id"], "Budget")
        assert archived["comment"] == "looks good"
        assert archived["bookmarked_by"] == ["A2001"]
        assert archived["admin_name"] == "Rahul Mehta"

    def test_advance_with_rejected_relocates(self, idea, admin_l1):
        archived = idea_service.advance_status(idea["id"], "Rejected", "Duplicate", "A2001", "L1Admin")
        assert archived["rejection_reason"] == "Duplicate"
        assert archived["rejected_by_role"] == "L1Admin"
        assert Idea.query.count() == 0

    def test_retry_returns_existing_archive_row(self, idea):
        first = idea_service.reject_idea(idea["id"], "Not feasible")
        second = idea_service.reject_idea(idea["id"], "Different reason")
        assert second["id"] == first["id"]
        assert second["rejection_reason"] == "Not feasible"
        assert RejectedIdea.query.count() == 1

    def test_concurrent_rejection_returns_existing_row(self, idea):
        # Another admin's relocation commits between our read and our commit
        competing = RejectedIdea(
            original_idea_id=idea["id"],
            employee_name=idea["employee_name"],
            employee_id=idea["employee_id"],
            idea_description=idea["idea_description"],
            rejection_reason="Rejected by L1 first",
            rejected_by_role="L1Admin",
        )
        db.session.add(competing)
        db.session.commit()
        competing_id = competing.id

        result = idea_service.reject_idea(idea["id"], "Not feasible", admin_role="L2Admin")

        assert result["id"] == competing_id
        assert result["rejection_reason"] == "Rejected by L1 first"
        assert RejectedIdea.query.count() == 1
        assert EmailLog.query.filter_by(idea_id=idea["id"]).count() == 0

    def test_unknown_idea(self):
        with pytest.raises(NotFoundError):
            idea_service.reject_idea(str(uuid.uuid4()), "x")

    def test_failed_commit_leaves_idea_in_place(self, idea):
        with patch.object(db.session, "commit", side_effect=SQLAlchemyError("deadlock")):
            with pytest.raises(StoreError):
                idea_service.reject_idea(idea["id"], "Not feasible")
        assert db.session.get(Idea, idea["id"]) is not None
        assert RejectedIdea.query.count() == 0

    def test_list_rejected_filters_by_employee(self, idea, idea_factory):
        other = idea_factory(employeeId="E2002", employeeName="Sam")
        idea_service.reject_idea(idea["id"], "a")
        idea_service.reject_idea(other["id"], "b")
        assert len(idea_service.list_rejected_ideas()) == 2
        only = idea_service.list_rejected_ideas(employee_id="E2002")
        assert [r["original_idea_id"] for r in only] == [other["id"]]


# ═════════════════════════════════════════════════════════════════════════
# BOOKMARKS
# ═════════════════════════════════════════════════════════════════════════


class TestBookmark:
    def test_toggle_twice_restores(self, idea):
        assert idea_service.toggle_bookmark(idea["id"], "A2001") == ["A2001"]
        assert idea_service.toggle_bookmark(idea["id"], "A2001") == []
        assert db.session.get(Idea, idea["id"]).bookmarked_by == []

    def test_admins_are_independent(self, idea):
        idea_service.toggle_bookmark(idea["id"], "A2001")
        marks = idea_service.toggle_bookmark(idea["id"], "A3001")
        assert sorted(marks) == ["A2001", "A3001"]
        marks = idea_service.toggle_bookmark(idea["id"], "A2001")
        assert marks == ["A3001"]

    def test_admin_id_required(self, idea):
        with pytest.raises(ValidationError):
            idea_service.toggle_bookmark(idea["id"], "  ")


# ═════════════════════════════════════════════════════════════════════════
# NOTIFICATIONS
# ═════════════════════════════════════════════════════════════════════════


class TestDecisionNotifications:
    def test_approval_email_logged(self, idea, admin_l1):
        idea_service.advance_status(idea["id"], "Approved", "Great", "A2001", "L1Admin")
        log = EmailLog.query.filter_by(idea_id=idea["id"]).one()
        assert log.recipient_email == "priya@example.com"
        assert log.template_name == "idea_approved"
        assert log.status == "sent"

    def test_recommend_uses_recommended_template(self, idea, admin_l1):
        idea_service.advance_status(idea["id"], "Recommended", "", "A2001", "L1Admin")
        log = EmailLog.query.filter_by(idea_id=idea["id"]).one()
        assert log.template_name == "idea_recommended"

    def test_rejection_email_logged(self, idea):
        idea_service.reject_idea(idea["id"], "Not feasible", admin_role="L2Admin")
        log = EmailLog.query.filter_by(idea_id=idea["id"]).one()
        assert log.template_name == "idea_rejected"

    def test_missing_submitter_credential_skips_email(self, idea_factory, admin_l1):
        orphan = idea_factory(employeeId="E9999")
        updated = idea_service.advance_status(orphan["id"], "Approved", "", "A2001", "L1Admin")
        assert updated["status"] == "ApprovedByL1Admin"
        assert EmailLog.query.count() == 0

    def test_notification_failure_does_not_change_result(self, idea, admin_l1):
        with patch.object(EmailService, "send_from_template", side_effect=RuntimeError("smtp down")):
            updated = idea_service.advance_status(idea["id"], "Approved", "", "A2001", "L1Admin")
        assert updated["status"] == "ApprovedByL1Admin"
        assert db.session.get(Idea, idea["id"]).status == "ApprovedByL1Admin"

    def test_rejection_survives_notification_failure(self, idea):
        with patch.object(EmailService, "send_from_template", side_effect=RuntimeError("smtp down")):
            archived = idea_service.reject_idea(idea["id"], "Not feasible")
        assert RejectedIdea.query.filter_by(id=archived["id"]).count() == 1


# ═════════════════════════════════════════════════════════════════════════
# SUMMARY
# ═════════════════════════════════════════════════════════════════════════


def test_employee_summary_counts(idea, idea_factory, admin_l1):
    second = idea_factory(ideaTheme="Solar carports")
    third = idea_factory(ideaTheme="Canteen waste")
    idea_service.advance_status(second["id"], "Approved", "", "A2001", "L1Admin")
    idea_service.reject_idea(third["id"], "Out of scope")

    summary = idea_service.get_employee_summary("E1001")
    assert summary["total_ideas"] == 3
    assert summary["approved_count"] == 1
    assert summary["rejected_count"] == 1
    assert summary["pending_count"] == 1
    assert len(summary["ideas"]) == 2
