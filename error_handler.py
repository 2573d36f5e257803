"""
Unified error handling module for the Aténays back office
Provides consistent error responses across all routes
"""

import traceback
from datetime import datetime

from flask import current_app, jsonify, redirect, render_template, request, url_for


def _safe_redirect():
    """Redirect back without looping on the dashboard"""
    target = request.referrer or url_for("main.dashboard")
    if request.endpoint == "main.dashboard" or target == request.url:
        return redirect(url_for("main.login_page"))
    return redirect(target)


class ErrorHandler:
    """Centralized error handling class"""

    @staticmethod
    def is_ajax_request():
        """Check if request is AJAX"""
        return request.headers.get("X-Requested-With") == "XMLHttpRequest"

    @staticmethod
    def is_json_request():
        """Check if request expects JSON response"""
        return (
            request.path.startswith("/api/")
            or request.headers.get("Content-Type", "").startswith("application/json")
            or request.headers.get("Accept", "").startswith("application/json")
        )

    @staticmethod
    def log_error(error, context=None):
        """Log error with context information"""
        error_info = {
            "timestamp": datetime.utcnow().isoformat(),
            "error_type": type(error).__name__,
            "error_message": str(error),
            "url": request.url if request else "N/A",
            "method": request.method if request else "N/A",
            "user_agent": (
                request.headers.get("User-Agent", "N/A") if request else "N/A"
            ),
            "ip_address": request.remote_addr if request else "N/A",
            "context": context or {},
        }

        if current_app.debug:
            error_info["traceback"] = traceback.format_exc()

        current_app.logger.error(f"Application Error: {error_info}")
        return error_info

    @staticmethod
    def problem_response(
        status_code, title, detail=None, type_uri="about:blank", extra=None
    ):
        """Build an RFC 7807 (application/problem+json) response"""
        problem = {
            "type": type_uri,
            "title": title,
            "status": status_code,
            "instance": request.path,
            "error": detail or title,
        }
        if detail:
            problem["detail"] = detail
        if extra:
            problem.update(extra)

        response = jsonify(problem)
        response.status_code = status_code
        response.headers["Content-Type"] = "application/problem+json"
        return response


# Keys that must never reach a rendered error page
SENSITIVE_KEYS = {
    "password",
    "passwd",
    "pwd",
    "token",
    "auth_token",
    "csrf_token",
    "adminkey",
}


def _scrub_dict(d):
    if not isinstance(d, dict):
        return d
    redacted = {}
    for k, v in d.items():
        if isinstance(k, str) and k.lower() in SENSITIVE_KEYS:
            redacted[k] = "***"
        else:
            redacted[k] = v
    return redacted


def _build_error_details(error):
    """Collect type, message, traceback and request info for an error"""
    try:
        tb = "".join(
            traceback.format_exception(type(error), error, error.__traceback__)
        )
    except Exception:
        tb = traceback.format_exc()

    params = request.values.to_dict(flat=True)

    from flask import g

    return {
        "type": type(error).__name__,
        "message": str(error),
        "traceback": tb,
        "request": {
            "method": request.method,
            "path": request.path,
            "query": _scrub_dict(params),
            "user_agent": request.headers.get("User-Agent"),
            "ip": request.remote_addr,
            "request_id": getattr(g, "request_id", None),
        },
    }


def _show_details():
    return bool(
        current_app.config.get("SHOW_DETAILED_ERRORS", False) or current_app.debug
    )


class ValidationError(Exception):
    """Malformed input: bad id, missing field, wrong type"""

    def __init__(self, message, field=None, code=400):
        self.message = message
        self.field = field
        self.code = code
        super().__init__(self.message)


class NotFoundError(Exception):
    """Requested entity does not exist"""

    def __init__(self, message, code=404):
        self.message = message
        self.code = code
        super().__init__(self.message)


class BusinessLogicError(Exception):
    """Operation refused by a business rule (guarded delete, duplicate)"""

    def __init__(self, message, code=400):
        self.message = message
        self.code = code
        super().__init__(self.message)


class AuthenticationError(Exception):
    """Missing, invalid or expired credentials"""

    def __init__(self, message="Non autorisé", code=401):
        self.message = message
        self.code = code
        super().__init__(self.message)


class SecurityError(Exception):
    """Authenticated but not allowed"""

    def __init__(self, message, code=403):
        self.message = message
        self.code = code
        super().__init__(self.message)


class QueryTimeoutError(Exception):
    """A list query ran past its deadline"""

    def __init__(self, message, timeout=None, code=504):
        self.message = message
        self.timeout = timeout
        self.code = code
        super().__init__(self.message)


def handle_validation_error(error):
    """Handle validation errors consistently"""
    error_info = ErrorHandler.log_error(error, {"type": "validation"})
    extra = {"error_id": error_info.get("timestamp")}
    if error.field:
        extra["field"] = error.field

    if ErrorHandler.is_ajax_request() or ErrorHandler.is_json_request():
        return ErrorHandler.problem_response(
            error.code,
            "Erreur de validation",
            detail=error.message,
            extra=extra,
        )

    from flask import flash

    flash(error.message, "danger")
    return _safe_redirect()


def handle_not_found_error(error):
    """Handle missing entities"""
    ErrorHandler.log_error(error, {"type": "not_found"})

    if ErrorHandler.is_ajax_request() or ErrorHandler.is_json_request():
        return ErrorHandler.problem_response(
            error.code, "Ressource introuvable", detail=error.message
        )
    return (
        render_template(
            "error.html", error_code=error.code, error_message=error.message
        ),
        error.code,
    )


def handle_business_logic_error(error):
    """Handle business logic errors consistently"""
    error_info = ErrorHandler.log_error(error, {"type": "business_logic"})
    extra = {"error_id": error_info.get("timestamp")}

    if ErrorHandler.is_ajax_request() or ErrorHandler.is_json_request():
        return ErrorHandler.problem_response(
            error.code,
            "Opération refusée",
            detail=error.message,
            extra=extra,
        )

    from flask import flash

    flash(error.message, "warning")
    return _safe_redirect()


def handle_authentication_error(error):
    """401 for API callers, login redirect for pages"""
    current_app.logger.warning(
        f"Authentication failed on {request.method} {request.path}: {error.message}"
    )
    if ErrorHandler.is_ajax_request() or ErrorHandler.is_json_request():
        return ErrorHandler.problem_response(
            error.code, "Authentification requise", detail=error.message
        )
    return redirect(url_for("main.login_page", redirect=request.full_path.rstrip("?")))


def handle_security_error(error):
    """Handle security errors consistently"""
    error_info = ErrorHandler.log_error(error, {"type": "security", "severity": "high"})
    extra = {"error_id": error_info.get("timestamp")}

    if ErrorHandler.is_ajax_request() or ErrorHandler.is_json_request():
        return ErrorHandler.problem_response(
            error.code,
            "Accès refusé",
            detail=error.message or "Droits insuffisants pour cette opération",
            extra=extra,
        )

    from flask import flash

    flash("Accès refusé", "danger")
    return redirect(url_for("main.dashboard"))


def handle_query_timeout_error(error):
    """List query exceeded QUERY_TIMEOUT_SECONDS"""
    error_info = ErrorHandler.log_error(
        error, {"type": "database", "kind": "timeout", "timeout": error.timeout}
    )
    from database import db

    db.session.rollback()

    return ErrorHandler.problem_response(
        error.code,
        "Délai de la base de données dépassé",
        detail=error.message,
        extra={"error_id": error_info.get("timestamp")},
    )


def handle_http_error(error):
    """Handle HTTP errors (404, 500, etc.)"""
    error_info = ErrorHandler.log_error(error, {"type": "http"})

    error_messages = {
        400: "Requête invalide",
        401: "Authentification requise",
        403: "Accès refusé",
        404: "Page introuvable",
        405: "Méthode non autorisée",
        413: "Requête trop volumineuse",
        429: "Trop de requêtes",
        500: "Erreur interne du serveur",
        502: "Passerelle incorrecte",
        503: "Service temporairement indisponible",
    }

    status_code = getattr(error, "code", 500) or 500
    message = error_messages.get(status_code, "Une erreur est survenue")

    details = _build_error_details(error)
    extra = {"error_id": error_info.get("timestamp")}
    show_details = _show_details()

    if ErrorHandler.is_ajax_request() or ErrorHandler.is_json_request():
        return ErrorHandler.problem_response(
            status_code,
            message,
            detail=str(error) if show_details else None,
            extra=extra,
        )
    return (
        render_template(
            "error.html",
            error_code=status_code,
            error_message=message,
            error_id=error_info.get("timestamp"),
            error_trace=details.get("traceback") if show_details else None,
            request_info=details.get("request") if show_details else None,
        ),
        status_code,
    )


def handle_database_error(error):
    """Handle database-related errors"""
    error_info = ErrorHandler.log_error(error, {"type": "database"})
    from database import db

    db.session.rollback()

    # Driver details stay in the log
    user_message = "L'opération sur la base de données a échoué. Réessayez."
    extra = {"error_id": error_info.get("timestamp")}

    if ErrorHandler.is_ajax_request() or ErrorHandler.is_json_request():
        return ErrorHandler.problem_response(
            500,
            "Erreur de base de données",
            detail=user_message,
            extra=extra,
        )

    from flask import flash

    flash(user_message, "danger")
    return _safe_redirect()


def handle_operational_error(error):
    """Database unreachable"""
    error_info = ErrorHandler.log_error(
        error, {"type": "database", "kind": "operational"}
    )
    from database import db

    db.session.rollback()

    user_message = "Base de données temporairement indisponible. Réessayez plus tard."
    extra = {"error_id": error_info.get("timestamp")}

    if ErrorHandler.is_ajax_request() or ErrorHandler.is_json_request():
        return ErrorHandler.problem_response(
            500,
            "Erreur de connexion à la base",
            detail=user_message,
            extra=extra,
        )

    from flask import flash

    flash(user_message, "danger")
    return _safe_redirect()


def handle_generic_error(error):
    """Handle unexpected/generic errors"""
    from werkzeug.exceptions import HTTPException

    if isinstance(error, HTTPException):
        return handle_http_error(error)

    error_info = ErrorHandler.log_error(error, {"type": "generic"})

    show_details = _show_details()
    user_message = "Erreur interne du serveur"

    details = _build_error_details(error)
    extra = {"error_id": error_info.get("timestamp")}

    if ErrorHandler.is_ajax_request() or ErrorHandler.is_json_request():
        if show_details:
            extra["traceback"] = details.get("traceback")
        return ErrorHandler.problem_response(
            500,
            user_message,
            detail=str(error) if show_details else None,
            extra=extra,
        )
    return (
        render_template(
            "error.html",
            error_code=500,
            error_message=user_message,
            error_id=error_info.get("timestamp"),
            error_trace=details.get("traceback") if show_details else None,
            request_info=details.get("request") if show_details else None,
        ),
        500,
    )


def register_error_handlers(app):
    """Register all error handlers with the Flask app"""

    # Custom application errors
    app.errorhandler(ValidationError)(handle_validation_error)
    app.errorhandler(NotFoundError)(handle_not_found_error)
    app.errorhandler(BusinessLogicError)(handle_business_logic_error)
    app.errorhandler(AuthenticationError)(handle_authentication_error)
    app.errorhandler(SecurityError)(handle_security_error)
    app.errorhandler(QueryTimeoutError)(handle_query_timeout_error)

    # HTTP errors
    for code in (400, 401, 403, 404, 405, 413, 429, 500, 502, 503):
        app.errorhandler(code)(handle_http_error)

    # Database errors
    from sqlalchemy.exc import (
        DataError,
        IntegrityError,
        OperationalError,
        SQLAlchemyError,
    )

    app.errorhandler(SQLAlchemyError)(handle_database_error)
    app.errorhandler(IntegrityError)(handle_database_error)
    app.errorhandler(DataError)(handle_database_error)
    app.errorhandler(OperationalError)(handle_operational_error)

    # Generic exception handler (catch-all)
    app.errorhandler(Exception)(handle_generic_error)
