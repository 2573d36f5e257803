import pytest
from flask import Flask

import config
from app import _configure_limiter, _should_create_all


def test_testing_config_selected(app):
    assert app.config["TESTING"] is True
    assert app.config["SQLALCHEMY_DATABASE_URI"] == "sqlite:///:memory:"
    assert app.config["RATELIMIT_ENABLED"] is False


def test_database_uri_from_environment(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "postgres://u:p@db/atenays")
    assert (
        config.Config._build_database_uri()
        == "postgresql+psycopg2://u:p@db/atenays"
    )


def test_mysql_uri_requires_credentials(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.setenv("DB_TYPE", "mysql")
    monkeypatch.delenv("DB_USER", raising=False)
    with pytest.raises(RuntimeError):
        config.Config._build_database_uri()


def test_engine_options_carry_statement_timeout(monkeypatch):
    monkeypatch.setenv("QUERY_TIMEOUT_SECONDS", "3")
    options = config.Config._engine_options("postgresql+psycopg2://u:p@db/atenays")
    assert options["connect_args"] == {"options": "-c statement_timeout=3000"}
    assert options["pool_pre_ping"] is True


def test_production_limiter_needs_external_storage(monkeypatch):
    monkeypatch.setenv("FLASK_ENV", "production")
    monkeypatch.delenv("RATELIMIT_STORAGE_URL", raising=False)
    bare = Flask(__name__)
    with pytest.raises(RuntimeError):
        _configure_limiter(bare)

    bare.config["RATELIMIT_STORAGE_URL"] = "memory://"
    with pytest.raises(RuntimeError):
        _configure_limiter(bare)


def test_security_headers():
    bare = Flask(__name__)
    bare.config.update(SECURITY_HEADERS=True, HSTS_ENABLED=True, HSTS_MAX_AGE=60)
    config.setup_security_headers(bare)

    @bare.get("/ping")
    def ping():
        return "pong"

    resp = bare.test_client().get("/ping")
    assert resp.headers["Strict-Transport-Security"] == "max-age=60; includeSubDomains"
    assert resp.headers["X-Frame-Options"] == "DENY"
    assert "frame-ancestors 'none'" in resp.headers["Content-Security-Policy"]


def test_https_redirect():
    bare = Flask(__name__)
    bare.config["FORCE_HTTPS"] = True
    config.https_redirect_middleware(bare)

    @bare.get("/ping")
    def ping():
        return "pong"

    resp = bare.test_client().get("/ping", base_url="http://localhost")
    assert resp.status_code == 301
    assert resp.headers["Location"].startswith("https://")


def test_skip_create_all_flag():
    bare = Flask(__name__)
    assert _should_create_all(bare) is True
    bare.config["SKIP_CREATE_ALL"] = True
    assert _should_create_all(bare) is False
