import json
import logging
import logging.config
import os
import time
import uuid
from datetime import datetime

from dotenv import load_dotenv
from flask import Flask, g, jsonify, redirect, request, url_for
from flask_login import current_user
from flask_wtf.csrf import CSRFError, generate_csrf

if os.path.exists(".env.local"):
    load_dotenv(".env.local")
else:
    load_dotenv()

from config import get_config  # noqa: E402
from database import db, init_db  # noqa: E402
from extensions import csrf, limiter, server_session  # noqa: E402
from security_utils import safe_log  # noqa: E402

# --- keys hidden from the audit log ---
SENSITIVE_KEYS = {
    "password",
    "passwd",
    "pwd",
    "token",
    "csrf_token",
    "auth_token",
    "adminkey",
}

# (module, blueprint attribute, url prefix)
BLUEPRINTS = [
    ("blueprints.auth", "auth_bp", "/api/auth"),
    ("routes.main_routes", "main_bp", ""),
    ("routes.client_routes", "client_bp", "/api/clients"),
    ("routes.order_routes", "order_bp", "/api/orders"),
    ("routes.order_group_routes", "order_group_bp", "/api/order-groups"),
    ("routes.material_routes", "material_bp", "/api/materials"),
    ("routes.material_category_routes", "material_category_bp", "/api/material-categories"),
    ("routes.profession_routes", "profession_bp", "/api/professions"),
    ("routes.settings_routes", "settings_bp", "/api"),
    ("routes.calculator_routes", "calculator_bp", "/api/calculate-resources"),
    ("routes.database_routes", "database_bp", "/api/database"),
]

THEME_COLOR = "#7c3aed"

audit_logger = logging.getLogger("audit")


def _scrub(d):
    if not isinstance(d, dict):
        return d
    redacted = {}
    for k, v in d.items():
        redacted[k] = "***" if str(k).lower() in SENSITIVE_KEYS else v
    return redacted


def _should_create_all(app) -> bool:
    """Whether db.create_all() runs in this environment"""
    return not app.config.get("SKIP_CREATE_ALL")


def _configure_logging(app, log_level):
    """Root handlers (file + console) and the JSON audit logger, once per process"""
    root = logging.getLogger()
    if not getattr(root, "_atenays_configured", False):
        os.makedirs("logs", exist_ok=True)
        logging.config.dictConfig(
            {
                "version": 1,
                "disable_existing_loggers": False,
                "formatters": {
                    "default": {
                        "format": (
                            "%(asctime)s %(levelname)s %(name)s: %(message)s "
                            "[in %(pathname)s:%(lineno)d]"
                        )
                    },
                    "audit_json": {"()": "logging.Formatter", "format": "%(message)s"},
                },
                "handlers": {
                    "file": {
                        "class": "logging.handlers.RotatingFileHandler",
                        "filename": "logs/app.log",
                        "maxBytes": 10 * 1024 * 1024,
                        "backupCount": 10,
                        "formatter": "default",
                        "level": log_level,
                    },
                    "console": {
                        "class": "logging.StreamHandler",
                        # Raw stdout, sys.stdout may be wrapped by the server
                        "stream": "ext://sys.__stdout__",
                        "formatter": "default",
                        "level": log_level,
                    },
                    "audit_file": {
                        "class": "logging.handlers.RotatingFileHandler",
                        "filename": "logs/audit.log",
                        "maxBytes": 10 * 1024 * 1024,
                        "backupCount": 20,
                        "formatter": "audit_json",
                        "level": "INFO",
                    },
                },
                "loggers": {
                    "audit": {
                        "level": "INFO",
                        "handlers": ["audit_file"],
                        "propagate": False,
                    }
                },
                "root": {"level": log_level, "handlers": ["file", "console"]},
            }
        )
        root._atenays_configured = True

    app.logger.handlers = root.handlers
    app.logger.setLevel(log_level)
    app.logger.propagate = False


def _configure_sessions(app):
    """Flask-Session backend (flash messages on the server pages)"""
    if app.config.get("SESSION_TYPE") == "redis" and not app.config.get(
        "SESSION_REDIS"
    ):
        app.logger.error("SESSION_TYPE=redis without a Redis connection, using filesystem")
        app.config["SESSION_TYPE"] = "filesystem"

    if app.config.get("SESSION_TYPE") == "sqlalchemy" and not app.config.get(
        "SESSION_SQLALCHEMY"
    ):
        app.config["SESSION_SQLALCHEMY"] = db

    if app.config.get("SESSION_TYPE") == "filesystem":
        os.makedirs(app.config["SESSION_FILE_DIR"], exist_ok=True)

    server_session.init_app(app)
    app.logger.info(f"Session type: {app.config.get('SESSION_TYPE', 'unknown')}")


def _configure_limiter(app):
    """Flask-Limiter, storage only from the environment"""
    storage_uri = app.config.get("RATELIMIT_STORAGE_URL") or os.environ.get(
        "RATELIMIT_STORAGE_URL"
    )
    if app.config.get("ENV") == "production" or os.getenv("FLASK_ENV") == "production":
        if not storage_uri or storage_uri.startswith("memory://"):
            raise RuntimeError(
                "Production requires an external rate limiter storage "
                "(RATELIMIT_STORAGE_URL)"
            )
    if not storage_uri:
        app.logger.warning("RATELIMIT_STORAGE_URL not set, rate limiter keeps counters in memory")

    app.config.setdefault("RATELIMIT_DEFAULT", app.config.get("RATE_LIMIT_DEFAULT"))
    app.config["RATELIMIT_STORAGE_URI"] = storage_uri or "memory://"
    limiter.init_app(app)
    app.logger.info(f"Limiter backend: {app.config['RATELIMIT_STORAGE_URI']}")


def _register_blueprints(app):
    # /api/clients and /api/clients/ reach the same view
    app.url_map.strict_slashes = False
    for module, bp_name, prefix in BLUEPRINTS:
        mod = __import__(module, fromlist=[bp_name])
        bp = getattr(mod, bp_name)
        app.register_blueprint(bp, url_prefix=prefix)
        if prefix.startswith("/api"):
            # JSON API authenticates with the SameSite auth cookie
            csrf.exempt(bp)
        safe_log(
            app.logger,
            logging.INFO,
            f"Blueprint {bp_name} registered at {prefix or '/'}",
        )


def _register_request_logging(app):
    @app.before_request
    def log_request_info():
        g.request_start = time.time()
        g.request_id = str(uuid.uuid4())
        user = current_user.username if current_user.is_authenticated else "anonymous"

        params = request.args.to_dict(flat=True)
        json_body = request.get_json(silent=True) if request.is_json else None

        safe_log(
            app.logger,
            logging.INFO,
            (
                f"Request {request.method} {request.path} from {request.remote_addr} ",
                f"user={user} params={_scrub(params)}",
            ),
        )

        audit_event = {
            "type": "request",
            "ts": time.time(),
            "ts_iso": datetime.utcnow().isoformat() + "Z",
            "request_id": g.request_id,
            "user": user,
            "ip": request.remote_addr,
            "method": request.method,
            "path": request.path,
            "query": _scrub(params),
            "json": _scrub(json_body) if isinstance(json_body, dict) else None,
            "headers": {
                "User-Agent": request.headers.get("User-Agent"),
                "Referer": request.headers.get("Referer"),
            },
        }
        audit_logger.info(json.dumps(audit_event, ensure_ascii=False, default=str))

    @app.after_request
    def log_response_info(response):
        duration = time.time() - g.get("request_start", time.time())
        user = current_user.username if current_user.is_authenticated else "anonymous"
        safe_log(
            app.logger,
            logging.INFO,
            (
                f"Response {response.status_code} for {request.method} {request.path} ",
                f"user={user} time={duration:.3f}s",
            ),
        )

        audit_event = {
            "type": "response",
            "ts": time.time(),
            "ts_iso": datetime.utcnow().isoformat() + "Z",
            "request_id": g.get("request_id"),
            "user": user,
            "status": response.status_code,
            "path": request.path,
            "method": request.method,
            "duration_ms": int(duration * 1000),
        }
        audit_logger.info(json.dumps(audit_event, ensure_ascii=False))
        response.headers["X-Request-ID"] = g.get("request_id", "")
        return response

    @app.after_request
    def add_cache_headers(response):
        if request.path.startswith("/static/"):
            response.headers["Cache-Control"] = "public, max-age=31536000"
        return response


def create_app(config_class=None):
    """Build and wire the application"""
    app = Flask(__name__)

    config_class = config_class or get_config()
    app.config.from_object(config_class)
    app.config.setdefault("SHOW_DETAILED_ERRORS", True)

    if not app.config.get("SQLALCHEMY_DATABASE_URI"):
        instance_dir = os.path.join(os.getcwd(), "instance")
        os.makedirs(instance_dir, exist_ok=True)
        app.config["SQLALCHEMY_DATABASE_URI"] = "sqlite:///" + os.path.join(
            instance_dir, "atenays.db"
        )

    log_level = str(app.config.get("LOGGING_LEVEL", "INFO")).upper()
    _configure_logging(app, log_level)

    if hasattr(config_class, "init_app"):
        config_class.init_app(app)

    app.logger.info("Aténays startup")
    app.logger.info(f"Environment: {os.environ.get('FLASK_ENV', 'development')}")

    # ------------------ Extensions ------------------
    init_db(app)
    import models  # noqa: F401  (tables must be known before create_all)

    _configure_sessions(app)
    csrf.init_app(app)
    _configure_limiter(app)

    # Order matters: request log, authentication gate, JSON schema
    _register_request_logging(app)

    from session_security import setup_session_security

    setup_session_security(app)

    from validation.json_schema import init_json_validation

    init_json_validation(app)

    from error_handler import register_error_handlers

    register_error_handlers(app)

    @app.errorhandler(CSRFError)
    def handle_csrf_error(e):
        app.logger.warning(f"CSRF error from {request.remote_addr}: {e.description}")
        if request.headers.get("X-Requested-With") == "XMLHttpRequest":
            return (
                jsonify(
                    {
                        "error": "Jeton CSRF invalide. Rechargez la page.",
                        "csrf_error": True,
                    }
                ),
                400,
            )
        from flask import flash

        flash("Jeton CSRF invalide. Rechargez la page.", "danger")
        return redirect(request.referrer or url_for("main.login_page"))

    _register_blueprints(app)

    # ------------------ Context / helpers ------------------
    from utils.statuses import (
        OrderStatus,
        get_status_class,
        get_status_colors,
        get_status_label,
    )

    @app.context_processor
    def inject_helpers():
        return {
            "OrderStatus": OrderStatus,
            "status_label": get_status_label,
            "status_class": get_status_class,
            "status_colors": get_status_colors,
            "status_labels": {s: get_status_label(s) for s in OrderStatus.all()},
            "THEME_COLOR": THEME_COLOR,
        }

    @app.template_global()
    def csrf_token():
        return generate_csrf()

    @app.get("/healthz")
    def healthz():
        return "OK", 200

    # ------------------ Schema / CLI ------------------
    with app.app_context():
        if _should_create_all(app):
            db.create_all()

    from migrations import register_setup_commands
    from scripts.cleanup import register_cleanup_commands

    register_cleanup_commands(app)
    register_setup_commands(app)

    return app


app = create_app()


if __name__ == "__main__":
    app.logger.info("Starting Flask development server...")
    app.run(
        host=app.config.get("APP_HOST", "127.0.0.1"),
        port=app.config.get("APP_PORT", 5000),
        debug=app.config.get("DEBUG", True),
    )
