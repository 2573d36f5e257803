# -*- coding: utf-8 -*-
"""Flask configuration: .env, DB pool, auth token and optional Redis without
hidden defaults."""

from __future__ import annotations

import logging
import os
import secrets
from datetime import timedelta
from pathlib import Path
from urllib.parse import quote_plus

from dotenv import find_dotenv, load_dotenv
from flask import redirect, request

# ------------------------------ .env loading ---------------------------------

_THIS_FILE = Path(__file__).resolve()
_DEFAULT_DOTENV_DIR = _THIS_FILE.parent
_ENV_EXPLICIT = os.environ.get("ENV_FILE")
_loaded = False

if _ENV_EXPLICIT:
    _loaded = load_dotenv(dotenv_path=_ENV_EXPLICIT)

if not _loaded:
    _loaded = load_dotenv(dotenv_path=_DEFAULT_DOTENV_DIR / ".env")

if not _loaded:
    load_dotenv(find_dotenv(usecwd=True))


# ------------------------------ .env helpers ---------------------------------


def env(name: str, default: str | None = None) -> str | None:
    v = os.environ.get(name)
    return v if v not in (None, "") else default


def _bool(v: str | None, default: bool = False) -> bool:
    if v is None:
        return default
    return str(v).strip().lower() in {"1", "true", "yes", "y", "on"}


# ------------------------------ Feature flags --------------------------------

# Exception text in 500 responses
SHOW_DETAILED_ERRORS = os.getenv("SHOW_DETAILED_ERRORS", "true").lower() == "true"
# When False, tokens and passwords are masked in logs
LOG_SENSITIVE = os.getenv("LOG_SENSITIVE", "true").lower() == "true"
# Skip db.create_all at startup when the schema is managed by hand
SKIP_CREATE_ALL = os.getenv("SKIP_CREATE_ALL", "false").lower() == "true"


# ------------------------------ Redis helper ---------------------------------


def _connect_redis(
    app, url: str, session_dir: str | None = None, raise_on_fail: bool = False
) -> bool:
    """Connect to Redis when a URL is given, otherwise return False."""
    if not url:
        app.config["REDIS_AVAILABLE"] = False
        return False
    try:
        import redis

        client = redis.from_url(url, socket_connect_timeout=2, socket_timeout=2)
        client.ping()
        app.config["SESSION_TYPE"] = env("SESSION_TYPE", "redis")
        app.config["SESSION_REDIS"] = client
        app.config["REDIS_AVAILABLE"] = True
        app.logger.info(f"Redis connected: {url}")
        return True
    except Exception as e:  # noqa: BLE001
        app.logger.warning(f"Redis unavailable: {e} ({url})")
        app.config["REDIS_AVAILABLE"] = False
        app.config["SESSION_TYPE"] = env("SESSION_TYPE", "filesystem")
        if session_dir:
            os.makedirs(session_dir, exist_ok=True)
        if raise_on_fail:
            raise
        return False


# ------------------------------ Base config ----------------------------------


class Config:
    """Settings shared by every environment."""

    _default_secret_key = secrets.token_hex(32)
    SECRET_KEY = env("SECRET_KEY", _default_secret_key)

    SHOW_DETAILED_ERRORS = SHOW_DETAILED_ERRORS
    LOG_SENSITIVE = LOG_SENSITIVE
    SKIP_CREATE_ALL = SKIP_CREATE_ALL

    # Flask / SQLAlchemy
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = _bool(env("SQLALCHEMY_ECHO"), False)
    MAX_CONTENT_LENGTH = 5 * 1024 * 1024
    PROPAGATE_EXCEPTIONS = True
    JSON_SORT_KEYS = False
    SQLALCHEMY_ENGINE_OPTIONS: dict = {}

    # List queries fail closed after this many seconds
    QUERY_TIMEOUT_SECONDS = float(env("QUERY_TIMEOUT_SECONDS", "15"))

    # Auth token (signed cookie)
    JWT_SECRET = env("JWT_SECRET")
    AUTH_COOKIE_NAME = env("AUTH_COOKIE_NAME", "auth_token")
    AUTH_TOKEN_MAX_AGE = int(env("AUTH_TOKEN_MAX_AGE", str(8 * 60 * 60)))
    AUTH_COOKIE_SECURE = _bool(env("AUTH_COOKIE_SECURE"), False)
    AUTH_COOKIE_SAMESITE = env("AUTH_COOKIE_SAMESITE", "Lax")
    ADMIN_REGISTER_KEY = env("ADMIN_REGISTER_KEY")

    # Sessions (flash messages on server pages)
    SESSION_TYPE = env("SESSION_TYPE", "filesystem")
    SESSION_COOKIE_NAME = env("SESSION_COOKIE_NAME", "session")
    SESSION_COOKIE_HTTPONLY = _bool(env("SESSION_COOKIE_HTTPONLY"), True)
    SESSION_COOKIE_SAMESITE = env("SESSION_COOKIE_SAMESITE", "Lax")
    SESSION_USE_SIGNER = _bool(env("SESSION_USE_SIGNER"), True)
    SESSION_COOKIE_SECURE = _bool(env("SESSION_COOKIE_SECURE"), False)
    SESSION_FILE_DIR = str((_THIS_FILE.parent / "flask_session").resolve())
    PERMANENT_SESSION_LIFETIME = timedelta(hours=8)

    # Logs
    LOGGING_LEVEL = env("LOG_LEVEL", "INFO")

    # Network
    APP_HOST = env("APP_HOST", "127.0.0.1")
    APP_PORT = int(env("APP_PORT", 5000))

    # CSRF (server-rendered forms only)
    WTF_CSRF_ENABLED = _bool(env("WTF_CSRF_ENABLED"), True)
    WTF_CSRF_FIELD_NAME = "csrf_token"
    WTF_CSRF_TIME_LIMIT = int(env("CSRF_TIMEOUT", "86400"))
    WTF_CSRF_SSL_STRICT = True

    # HTTPS / security headers
    SECURITY_HEADERS = False
    FORCE_HTTPS = False
    PREFERRED_URL_SCHEME = env("PREFERRED_URL_SCHEME", "http")
    HSTS_ENABLED = _bool(env("HSTS_ENABLED"), False)
    HSTS_MAX_AGE = int(env("HSTS_MAX_AGE", "31536000"))

    # Flask-Limiter
    RATELIMIT_STORAGE_URL = env("RATELIMIT_STORAGE_URL")
    RATELIMIT_HEADERS_ENABLED = _bool(env("RATELIMIT_HEADERS_ENABLED"), True)
    RATE_LIMIT_DEFAULT = env("RATE_LIMIT_DEFAULT", "1000/hour")
    LOGIN_RATE_LIMIT = env("LOGIN_RATE_LIMIT", "10/minute")

    # ------------------------------ DB URI -----------------------------------

    @staticmethod
    def _build_database_uri(default_sqlite: bool = False) -> str | None:
        """Build SQLALCHEMY_DATABASE_URI from the environment."""
        url = env("DATABASE_URL")
        if url:
            # Heroku-style scheme
            if url.startswith("postgres://"):
                url = "postgresql+psycopg2://" + url[len("postgres://") :]
            return url

        database_name = env("DB_NAME", env("DATABASE_NAME", "atenays"))
        db_type = env("DB_TYPE")
        if not db_type:
            if default_sqlite:
                base = env(
                    "SQLITE_DIR", str((_THIS_FILE.parent / "instance").resolve())
                )
                path = Path(base) / f"{database_name}.db"
                path.parent.mkdir(parents=True, exist_ok=True)
                return f"sqlite:///{path}"
            return None

        t = db_type.lower().strip()

        if t == "mysql":
            user = quote_plus(env("DB_USER", ""))
            password = quote_plus(env("DB_PASSWORD", ""))
            host = env("DB_HOST", "")
            port = env("DB_PORT", "3306")
            if not all([user, password, host, database_name]):
                raise RuntimeError(
                    "MySQL connection settings missing (DB_USER/DB_PASSWORD/DB_HOST)"
                )
            return (
                f"mysql+pymysql://{user}:{password}@{host}:{port}/{database_name}"
                "?charset=utf8mb4"
            )

        if t in ("postgres", "postgresql"):
            user = quote_plus(env("DB_USER", ""))
            password = quote_plus(env("DB_PASSWORD", ""))
            host = env("DB_HOST", "")
            port = env("DB_PORT", "5432")
            if not all([user, password, host, database_name]):
                raise RuntimeError(
                    "Postgres connection settings missing (DB_USER/DB_PASSWORD/DB_HOST)"
                )
            return f"postgresql+psycopg2://{user}:{password}@{host}:{port}/{database_name}"

        if t == "sqlite":
            base = env("SQLITE_DIR", str((_THIS_FILE.parent / "instance").resolve()))
            name = str(Path(base) / f"{database_name}.db")
            Path(name).parent.mkdir(parents=True, exist_ok=True)
            return f"sqlite:///{name}"

        raise RuntimeError(f"Unknown DB_TYPE: {db_type}")

    @staticmethod
    def _engine_options(uri: str) -> dict:
        """Pool sizing plus a server-side statement timeout for list queries."""
        timeout_ms = int(float(env("QUERY_TIMEOUT_SECONDS", "15")) * 1000)
        options = {
            "pool_size": int(env("DB_POOL_SIZE", "5")),
            "max_overflow": int(env("DB_MAX_OVERFLOW", "10")),
            "pool_recycle": int(env("DB_POOL_RECYCLE", "280")),
            "pool_pre_ping": True,
        }
        if uri.startswith("postgresql"):
            options["connect_args"] = {"options": f"-c statement_timeout={timeout_ms}"}
        elif uri.startswith("mysql"):
            options["connect_args"] = {"read_timeout": max(1, timeout_ms // 1000)}
        return options

    # ------------------------------ init_app ---------------------------------

    @staticmethod
    def init_app(app) -> None:
        level = getattr(
            logging, str(app.config.get("LOGGING_LEVEL", "INFO")).upper(), logging.INFO
        )
        logging.getLogger().setLevel(level)

        if not app.config.get("JWT_SECRET"):
            app.config["JWT_SECRET"] = app.config["SECRET_KEY"]

        scheme = app.config.get("PREFERRED_URL_SCHEME", "http")
        if scheme == "https":
            app.config["SESSION_COOKIE_SECURE"] = True
            app.config["AUTH_COOKIE_SECURE"] = True


# ------------------------------ Environments ---------------------------------


class DevelopmentConfig(Config):
    DEBUG = True
    LOGGING_LEVEL = env("LOG_LEVEL", "DEBUG")
    WTF_CSRF_SSL_STRICT = False
    SESSION_PERMANENT = False

    @staticmethod
    def init_app(app) -> None:
        Config.init_app(app)
        need_redis = (env("SESSION_TYPE") == "redis") or bool(
            env("RATELIMIT_STORAGE_URL")
        )
        if need_redis:
            _connect_redis(
                app, env("REDIS_URL"), session_dir=app.config.get("SESSION_FILE_DIR")
            )


class ProductionConfig(Config):
    DEBUG = False
    SHOW_DETAILED_ERRORS = _bool(env("SHOW_DETAILED_ERRORS"), False)
    LOGGING_LEVEL = env("LOG_LEVEL", "INFO")
    SESSION_TYPE = env("SESSION_TYPE", "redis")

    WTF_CSRF_SSL_STRICT = True
    SESSION_COOKIE_SECURE = True
    AUTH_COOKIE_SECURE = True

    SECURITY_HEADERS = True
    FORCE_HTTPS = _bool(env("FORCE_HTTPS"), True)
    PREFERRED_URL_SCHEME = "https"
    HSTS_ENABLED = True

    @staticmethod
    def init_app(app) -> None:
        Config.init_app(app)

        if app.config.get(
            "SECRET_KEY"
        ) == Config._default_secret_key and not os.environ.get("SECRET_KEY"):
            raise RuntimeError("SECRET_KEY must be set in production")

        need_redis = (env("SESSION_TYPE", "redis") == "redis") or bool(
            env("RATELIMIT_STORAGE_URL")
        )
        if need_redis:
            _connect_redis(
                app,
                env("REDIS_URL"),
                session_dir=str((_THIS_FILE.parent / "flask_session").resolve()),
            )
        else:
            app.config["REDIS_AVAILABLE"] = False
            app.logger.info("Redis not required at startup")

        if not app.config.get("REDIS_AVAILABLE"):
            app.config["SESSION_TYPE"] = env("SESSION_TYPE", "filesystem")
            if app.config["SESSION_TYPE"] == "redis":
                app.config["SESSION_TYPE"] = "filesystem"
            app.logger.warning(
                f"Redis unavailable, sessions fall back to {app.config['SESSION_TYPE']}"
            )

        https_redirect_middleware(app)
        setup_security_headers(app)
        app.logger.info("HTTPS redirect and security headers enabled (production)")


class TestingConfig(Config):
    TESTING = True
    DEBUG = False
    SHOW_DETAILED_ERRORS = True
    LOGGING_LEVEL = env("LOG_LEVEL", "DEBUG")
    WTF_CSRF_ENABLED = False
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SESSION_TYPE = "filesystem"
    SESSION_FILE_DIR = str((_THIS_FILE.parent / "test_sessions").resolve())
    RATELIMIT_ENABLED = False
    JWT_SECRET = "test-secret"
    ADMIN_REGISTER_KEY = "admin-key"

    @staticmethod
    def init_app(app) -> None:
        Config.init_app(app)
        if env("REDIS_URL"):
            _connect_redis(
                app, env("REDIS_URL"), session_dir=app.config.get("SESSION_FILE_DIR")
            )


# ------------------------------ Selection ------------------------------------

config = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
    "default": DevelopmentConfig,
}


def get_config():
    """Return the config CLASS for FLASK_ENV with the DB URI and pool set."""
    env_name = os.environ.get("FLASK_ENV", "development").lower()
    cfg_class = config.get(env_name, DevelopmentConfig)

    if cfg_class is not TestingConfig:
        uri = Config._build_database_uri(default_sqlite=(env_name != "production"))
        if env_name == "production" and not uri:
            raise RuntimeError("Database connection settings are missing")
        if uri:
            cfg_class.SQLALCHEMY_DATABASE_URI = uri
            if not uri.startswith("sqlite"):
                cfg_class.SQLALCHEMY_ENGINE_OPTIONS = Config._engine_options(uri)

    return cfg_class


# ------------------------------ Middleware -----------------------------------


def https_redirect_middleware(app):
    """Force HTTP → HTTPS in production."""

    @app.before_request
    def _before_request():
        if not app.config.get("FORCE_HTTPS", False):
            return None
        if request.is_secure or app.debug or app.testing:
            return None
        url = request.url.replace("http://", "https://", 1)
        return redirect(url, code=301)


def setup_security_headers(app):
    """Security headers (production)."""
    if not app.config.get("SECURITY_HEADERS", False):
        return

    @app.after_request
    def _after_request(response):
        if app.config.get("HSTS_ENABLED", False):
            response.headers["Strict-Transport-Security"] = (
                f"max-age={app.config.get('HSTS_MAX_AGE', 31536000)}; includeSubDomains"
            )
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Content-Security-Policy"] = (
            "default-src 'self'; style-src 'self' 'unsafe-inline'; "
            "img-src 'self' data:; frame-ancestors 'none'; form-action 'self'"
        )
        return response
