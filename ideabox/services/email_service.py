"""
IdeaBox
Email Service.

Provides plain-text email sending with template support.
When SMTP is not configured, emails are logged but not sent (dev/test mode).

Uses:
    - Flask-Mail compatible config (MAIL_SERVER, MAIL_PORT, etc.)
    - Falls back to logging-only mode when SMTP is not configured
    - All emails are recorded in EmailLog for audit

Configuration (env vars):
    MAIL_SERVER     SMTP host (default: None → log-only mode)
    MAIL_PORT       SMTP port (default: 587)
    MAIL_USE_TLS    Use TLS (default: true)
    MAIL_USERNAME   SMTP username
    MAIL_PASSWORD   SMTP password
    MAIL_DEFAULT_SENDER  Default from address

Delivery is best-effort: a transport failure is recorded on the EmailLog row
and logged, never retried and never raised to the caller.
"""

from __future__ import annotations

import logging
import smtplib
from datetime import datetime, timezone
from email.mime.text import MIMEText
from typing import Any

from flask import current_app

from ideabox.core.exceptions import NotificationError
from ideabox.models import db
from ideabox.models.notification import EmailLog

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
#  Email Templates
# ═══════════════════════════════════════════════════════════════════════════

_TEMPLATES: dict[str, dict[str, str]] = {
    "idea_approved": {
        "subject": "Your Idea Has Been Accepted",
        "body": (
            "Dear {employee_name},\n\n"
            'Your idea "{idea_theme}" is accepted by {admin_role}.\n\n'
            "Message from {admin_role}: {comment}\n\n"
            "Best regards,\nIdeaBox Team"
        ),
    },
    "idea_recommended": {
        "subject": "Your Idea Has Been Approved and Recommended to L2!",
        "body": (
            "Dear {employee_name},\n\n"
            'Congratulations! Your idea titled "{idea_theme}" has been approved '
            "and recommended to L2.\n\n"
            "Approved At: {acted_at}\n\n"
            "Message from L1 Admin: {comment}\n\n"
            "Best regards,\nIdeaBox Team"
        ),
    },
    "idea_rejected": {
        "subject": "Your Idea Has Been Rejected",
        "body": (
            "Dear {employee_name},\n\n"
            'Unfortunately, your idea "{idea_theme}" has been rejected by {admin_role}.\n\n'
            "Reason: {reason}\n"
            "Rejected At: {acted_at}\n\n"
            "Best regards,\nIdeaBox Team"
        ),
    },
    "otp_code": {
        "subject": "Your OTP Code",
        "body": "Your OTP is {otp}. It expires in {ttl_minutes} minutes.",
    },
}


class EmailService:
    """
    Email sending service with template support.

    In development/test mode (no MAIL_SERVER configured), emails are
    logged to the database but not actually sent via SMTP.
    """

    @staticmethod
    def is_configured() -> bool:
        """Check if SMTP is configured."""
        return bool(current_app.config.get("MAIL_SERVER"))

    @staticmethod
    def get_template(template_name: str) -> dict[str, str] | None:
        """Get an email template by name."""
        return _TEMPLATES.get(template_name)

    @classmethod
    def send(
        cls,
        *,
        to_email: str,
        subject: str,
        body: str,
        template_name: str | None = None,
        category: str = "system",
        idea_id: str | None = None,
    ) -> EmailLog:
        """
        Send an email and log it.

        If SMTP is not configured, the email is logged with status='sent'
        (in dev mode) to simulate sending without actual delivery.

        Returns:
            The committed EmailLog record for this email.
        """
        log = EmailLog(
            recipient_email=to_email,
            subject=subject,
            template_name=template_name,
            category=category,
            status="queued",
            idea_id=idea_id,
        )
        db.session.add(log)
        db.session.flush()

        if not cls.is_configured():
            # Dev/test mode - log only
            log.status = "sent"
            log.sent_at = datetime.now(timezone.utc)
            logger.info(
                "Email (dev mode): to=%s subject='%s' template=%s",
                to_email, subject, template_name,
            )
            db.session.commit()
            return log

        try:
            cls._send_smtp(to_email=to_email, subject=subject, body=body)
            log.status = "sent"
            log.sent_at = datetime.now(timezone.utc)
            logger.info("Email sent: to=%s subject='%s'", to_email, subject)
        except NotificationError as exc:
            log.status = "failed"
            log.error_message = str(exc)[:1000]
            logger.error("Email failed: to=%s error=%s", to_email, exc)

        db.session.commit()
        return log

    @classmethod
    def send_from_template(
        cls,
        *,
        to_email: str,
        template_name: str,
        context: dict[str, Any],
        category: str = "system",
        idea_id: str | None = None,
    ) -> EmailLog | None:
        """
        Send an email using a named template.

        Template variables are interpolated from the context dict.
        """
        template = cls.get_template(template_name)
        if not template:
            logger.warning("Email template not found: %s", template_name)
            return None

        subject = template["subject"].format_map(_SafeDict(context))
        body = template["body"].format_map(_SafeDict(context))

        return cls.send(
            to_email=to_email,
            subject=subject,
            body=body,
            template_name=template_name,
            category=category,
            idea_id=idea_id,
        )

    @staticmethod
    def _send_smtp(*, to_email: str, subject: str, body: str) -> None:
        """Actually send via SMTP."""
        cfg = current_app.config
        server = cfg.get("MAIL_SERVER")
        port = cfg.get("MAIL_PORT", 587)
        use_tls = cfg.get("MAIL_USE_TLS", True)
        username = cfg.get("MAIL_USERNAME")
        password = cfg.get("MAIL_PASSWORD")
        sender = cfg.get("MAIL_DEFAULT_SENDER", f"noreply@{server}")

        msg = MIMEText(body, "plain", "utf-8")
        msg["Subject"] = subject
        msg["From"] = sender
        msg["To"] = to_email

        try:
            with smtplib.SMTP(server, port, timeout=30) as smtp:
                if use_tls:
                    smtp.starttls()
                if username and password:
                    smtp.login(username, password)
                smtp.send_message(msg)
        except (smtplib.SMTPException, OSError) as exc:
            raise NotificationError(f"SMTP delivery to {to_email} failed: {exc}") from exc


class _SafeDict(dict):
    """Dict that returns {key} for missing keys instead of raising."""

    def __missing__(self, key):
        return f"{{{key}}}"
