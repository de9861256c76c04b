"""The initial Alembic revision creates the same tables as the models."""

import importlib.util
from pathlib import Path

import sqlalchemy as sa
from alembic.migration import MigrationContext
from alembic.operations import Operations

from ideabox.models import db

VERSIONS = Path(__file__).resolve().parent.parent / "migrations" / "versions"


def _load_initial_revision():
    path = VERSIONS / "3f9c2a7d1b40_initial_ideabox_schema.py"
    spec = importlib.util.spec_from_file_location("initial_ideabox_schema", path)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_upgrade_matches_models():
    revision = _load_initial_revision()
    engine = sa.create_engine("sqlite://")
    with engine.connect() as conn:
        with Operations.context(MigrationContext.configure(conn)):
            revision.upgrade()
        inspector = sa.inspect(conn)
        assert set(inspector.get_table_names()) == set(db.metadata.tables)
        for name, table in db.metadata.tables.items():
            migrated = {c["name"] for c in inspector.get_columns(name)}
            assert migrated == {c.name for c in table.columns}, name
