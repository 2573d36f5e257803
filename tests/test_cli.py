import os
import time

from werkzeug.security import check_password_hash, generate_password_hash

from database import db as _db
from models import Profession, User
from utils.professions import DEFAULT_PROFESSIONS


def test_create_admin_command(app, db):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["users:create-admin", "Thrall", "--password", "lok-tar"])
    assert result.exit_code == 0
    assert "Admin user thrall created" in result.output

    with app.app_context():
        user = User.query.filter_by(username="thrall").one()
        assert user.role == "admin"
        assert check_password_hash(user.password, "lok-tar")


def test_create_admin_promotes_existing_user(app, create):
    create(User, username="jaina", password=generate_password_hash("x"))
    runner = app.test_cli_runner()
    result = runner.invoke(args=["users:create-admin", "jaina", "--password", "y"])
    assert result.exit_code == 0
    assert "is now admin" in result.output

    with app.app_context():
        user = User.query.filter_by(username="jaina").one()
        assert user.role == "admin"
        # the existing password is kept
        assert check_password_hash(user.password, "x")


def test_seed_professions_is_idempotent(app, create):
    create(Profession, name="Forge", price_ranges={})
    runner = app.test_cli_runner()

    result = runner.invoke(args=["seed:professions"])
    assert result.exit_code == 0
    assert "Forge" not in result.output
    assert "Couture" in result.output

    result = runner.invoke(args=["seed:professions"])
    assert "already exist" in result.output

    with app.app_context():
        assert _db.session.query(Profession).count() == len(DEFAULT_PROFESSIONS)


def test_cleanup_sessions(app, tmp_path, monkeypatch):
    old = tmp_path / "old"
    fresh = tmp_path / "fresh"
    old.write_text("x")
    fresh.write_text("y")
    stale = time.time() - 3 * 24 * 60 * 60
    os.utime(old, (stale, stale))

    monkeypatch.setitem(app.config, "SESSION_TYPE", "filesystem")
    monkeypatch.setitem(app.config, "SESSION_FILE_DIR", str(tmp_path))
    runner = app.test_cli_runner()

    result = runner.invoke(args=["cleanup:sessions"])
    assert result.exit_code == 0
    assert "Checked 2 file(s), deleted 0" in result.output
    assert old.exists()

    result = runner.invoke(args=["cleanup:sessions", "--no-dry-run"])
    assert "deleted 1" in result.output
    assert not old.exists()
    assert fresh.exists()
