"""
Fire-and-forget notification dispatch.

Jobs are handed off after the primary write has committed and the caller's
result is fixed. In production they run on a daemon thread inside their own
application context; the process may exit before a job finishes, which is an
accepted loss. With NOTIFICATIONS_ASYNC=False (testing) jobs run inline.

Either way a job's outcome never reaches the caller: every exception is
caught here and logged.
"""

import logging
import threading

from flask import current_app

logger = logging.getLogger(__name__)


def dispatch(job, **kwargs) -> None:
    """Run ``job(**kwargs)`` without coupling its outcome to the caller."""
    app = current_app._get_current_object()
    name = getattr(job, "__name__", repr(job))

    if not app.config.get("NOTIFICATIONS_ASYNC", True):
        _run_guarded(name, job, kwargs)
        return

    t = threading.Thread(
        target=_execute_in_background,
        args=(app, name, job, kwargs),
        name=f"notify-{name}",
        daemon=True,
    )
    t.start()


def _execute_in_background(app, name, job, kwargs):
    with app.app_context():
        _run_guarded(name, job, kwargs)


def _run_guarded(name, job, kwargs):
    try:
        job(**kwargs)
    except Exception:
        logger.exception("Notification job %s failed", name)
        _discard_session()


def _discard_session():
    # Leave no half-written EmailLog behind in an inline (shared) session
    from ideabox.models import db

    try:
        db.session.rollback()
    except Exception:
        logger.exception("Rollback after failed notification job also failed")
