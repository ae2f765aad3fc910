"""
Shared pytest fixtures for the UAT Tracker test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - user: the signed-in placeholder user
    - project: Pre-created project
"""

import pytest

from uat_tracker import create_app
from uat_tracker.auth import SSO_PLACEHOLDER
from uat_tracker.models import db as _db
from uat_tracker.models.records import TestCase, new_id
from uat_tracker.services import uat_store


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    return create_app("testing")


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
def user():
    return SSO_PLACEHOLDER


@pytest.fixture()
def project():
    """Create and return a project through the store."""
    proj, err = uat_store.create_project("Release 4.2 UAT", "4.2.0", "2026-10")
    assert err is None, err
    return proj


@pytest.fixture()
def make_test_case():
    """Factory: store a test case and return the stored record."""

    def _make(project_id: str, **kw) -> TestCase:
        tc = TestCase(id=kw.pop("id", new_id()), project_id=project_id, **kw)
        saved, err = uat_store.upsert_test_case(tc)
        assert err is None, err
        return saved

    return _make
