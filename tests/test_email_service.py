"""
EmailService + notifier tests.

Covers:
    1. Template rendering
    2. Dev-mode send (no MAIL_SERVER) recorded in EmailLog
    3. SMTP failures recorded as failed, never raised
    4. Notifier isolates job failures
"""

import smtplib
from unittest.mock import MagicMock, patch

import pytest

from ideabox.models.notification import EmailLog
from ideabox.services import notifier
from ideabox.services.email_service import EmailService


@pytest.fixture()
def smtp_configured(app):
    app.config["MAIL_SERVER"] = "smtp.example.com"
    yield
    app.config["MAIL_SERVER"] = None


class TestTemplates:
    def test_known_templates(self):
        for name in ("idea_approved", "idea_recommended", "idea_rejected", "otp_code"):
            assert EmailService.get_template(name) is not None

    def test_missing_context_keys_left_in_place(self):
        log = EmailService.send_from_template(
            to_email="a@example.com",
            template_name="idea_rejected",
            context={"employee_name": "Priya"},
        )
        assert log.subject == "Your Idea Has Been Rejected"

    def test_unknown_template(self):
        assert EmailService.send_from_template(
            to_email="a@example.com", template_name="nope", context={},
        ) is None
        assert EmailLog.query.count() == 0


class TestSend:
    def test_dev_mode_logs_as_sent(self):
        log = EmailService.send(to_email="a@example.com", subject="Hi", body="Body", idea_id="x")
        assert log.status == "sent"
        assert log.sent_at is not None
        assert EmailLog.query.filter_by(idea_id="x").count() == 1

    def test_smtp_success(self, smtp_configured):
        smtp = MagicMock()
        with patch("ideabox.services.email_service.smtplib.SMTP") as smtp_cls:
            smtp_cls.return_value.__enter__.return_value = smtp
            log = EmailService.send(to_email="a@example.com", subject="Hi", body="Body")
        assert log.status == "sent"
        smtp.send_message.assert_called_once()

    def test_smtp_failure_recorded(self, smtp_configured):
        with patch("ideabox.services.email_service.smtplib.SMTP",
                   side_effect=smtplib.SMTPConnectError(421, "unavailable")):
            log = EmailService.send(to_email="a@example.com", subject="Hi", body="Body")
        assert log.status == "failed"
        assert "a@example.com" in log.error_message


class TestNotifier:
    def test_inline_job_runs(self):
        job = MagicMock(__name__="job")
        notifier.dispatch(job, idea_id="abc")
        job.assert_called_once_with(idea_id="abc")

    def test_job_failure_is_swallowed_and_logged(self, caplog):
        job = MagicMock(__name__="failing_job", side_effect=RuntimeError("boom"))
        notifier.dispatch(job)
        assert "failing_job" in caplog.text

    def test_async_mode_uses_thread(self, app):
        app.config["NOTIFICATIONS_ASYNC"] = True
        try:
            with patch("ideabox.services.notifier.threading.Thread") as thread_cls:
                notifier.dispatch(MagicMock(__name__="job"))
            thread_cls.return_value.start.assert_called_once()
            assert thread_cls.call_args.kwargs["daemon"] is True
        finally:
            app.config["NOTIFICATIONS_ASYNC"] = False
