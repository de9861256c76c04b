"""
Shared pytest fixtures for the IdeaBox test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - employee / admin_l1 / admin_l2: Pre-created credential records
    - idea: A Pending idea submitted by ``employee``
"""

import pytest

from ideabox import create_app
from ideabox.models import db as _db
from ideabox.services import credential_service, idea_service


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app(tmp_path_factory):
    """Create the Flask application once per test session."""
    application = create_app("testing")
    application.config["UPLOAD_FOLDER"] = str(tmp_path_factory.mktemp("uploads"))
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Convenience fixtures ─────────────────────────────────────────────────


@pytest.fixture()
def employee():
    return credential_service.create_credential(
        "employee", "E1001", "priya@example.com", "employee",
        employee_name="Priya Sharma",
        employee_function="Finance",
        location="Pune",
    )


@pytest.fixture()
def admin_l1():
    return credential_service.create_credential(
        "admin", "A2001", "l1.reviewer@example.com", "adminL1",
        employee_name="Rahul Mehta",
    )


@pytest.fixture()
def admin_l2():
    return credential_service.create_credential(
        "admin", "A3001", "l2.reviewer@example.com", "adminL2",
        employee_name="Anita Desai",
    )


def make_idea(**overrides):
    fields = {
        "employeeName": "Priya Sharma",
        "employeeId": "E1001",
        "employeeFunction": "Finance",
        "location": "Pune",
        "ideaTheme": "Paperless invoicing",
        "department": "Accounts Payable",
        "benefitsCategory": "Cost",
        "ideaDescription": "Scan supplier invoices at the mailroom and route them digitally.",
        "impactedProcess": "Invoice approval",
        "expectedBenefitsValue": "2 FTE",
    }
    fields.update(overrides)
    return idea_service.submit_idea(fields)


@pytest.fixture()
def idea(employee):
    """A Pending idea whose submitter has a credential record."""
    return make_idea()


@pytest.fixture()
def idea_factory():
    """Submit further ideas; keyword overrides use the form's camelCase keys."""
    return make_idea
