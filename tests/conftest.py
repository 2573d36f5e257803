import os
import sys
from pathlib import Path

import pytest
from werkzeug.security import generate_password_hash

# Project root on sys.path for the flat module layout
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("FLASK_ENV", "testing")

from app import app as flask_app  # noqa: E402
from database import db as _db  # noqa: E402
from models import User  # noqa: E402


@pytest.fixture()
def app():
    """Flask application for the tests.

    No app context is held open across requests: every request gets its own
    ``g`` and therefore its own authenticated user.
    """
    yield flask_app


@pytest.fixture()
def db(app):
    """Fresh in-memory schema for each test."""
    with app.app_context():
        _db.create_all()
    yield _db
    with app.app_context():
        _db.session.remove()
        _db.drop_all()


@pytest.fixture()
def client(app, db):
    """Flask HTTP client."""
    return app.test_client()


@pytest.fixture()
def create(app, db):
    """Insert a row and return its id."""

    def _create(model, **fields):
        with app.app_context():
            obj = model(**fields)
            _db.session.add(obj)
            _db.session.commit()
            return obj.id

    return _create


@pytest.fixture()
def fetch(app, db):
    """Reload a row and return its JSON form (None when gone)."""

    def _fetch(model, pk):
        with app.app_context():
            obj = _db.session.get(model, pk)
            return obj.to_dict() if obj is not None else None

    return _fetch


def login(client, username, password="pass"):
    return client.post(
        "/api/auth/login", json={"username": username, "password": password}
    )


@pytest.fixture()
def admin_user(create):
    """Admin account."""
    return create(
        User, username="admin", password=generate_password_hash("pass"), role="admin"
    )


@pytest.fixture()
def admin_client(client, admin_user):
    """Client logged in as the admin."""
    login(client, "admin")
    return client


@pytest.fixture()
def user_user(create):
    """Regular account."""
    return create(User, username="user", password=generate_password_hash("pass"))


@pytest.fixture()
def user_client(client, user_user):
    """Client logged in as a regular user."""
    login(client, "user")
    return client
