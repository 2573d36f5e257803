"""
Signed auth token and the request gate.

Login issues a time-stamped token (itsdangerous) in the HTTP-only
``auth_token`` cookie. Every non-public request goes through
``_require_authentication``: the token is verified, the user reloaded and the
identity exposed as ``current_user`` and ``g.current_user``. Missing, forged or
expired tokens end in AuthenticationError (401 for the API, redirect to the
login page for HTML).
"""

import logging
from functools import wraps

from flask import current_app, g, request
from flask_login import current_user
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from database import db
from error_handler import AuthenticationError, SecurityError
from extensions import login_manager
from security_utils import safe_log

TOKEN_SALT = "atenays-auth-token"

PUBLIC_PATHS = {
    "/api/auth/login",
    "/api/auth/register",
    "/api/auth/logout",
    "/login",
    "/register",
    "/logout",
    "/healthz",
}
PUBLIC_PREFIXES = ("/static/",)

logger = logging.getLogger(__name__)


class TokenSecurity:
    """Token issue/verification bound to the current app config"""

    @staticmethod
    def serializer():
        return URLSafeTimedSerializer(
            current_app.config.get("JWT_SECRET") or current_app.config["SECRET_KEY"],
            salt=TOKEN_SALT,
        )

    @staticmethod
    def max_age():
        return int(current_app.config.get("AUTH_TOKEN_MAX_AGE", 8 * 60 * 60))

    @staticmethod
    def issue(user):
        """Token carrying {userId, username, role}"""
        payload = {
            "userId": user.id,
            "username": user.username,
            "role": user.role or "user",
        }
        return TokenSecurity.serializer().dumps(payload)

    @staticmethod
    def decode(token):
        """Payload of a valid token; None (and g.auth_failure) otherwise"""
        if not token:
            g.auth_failure = "missing"
            return None
        try:
            payload = TokenSecurity.serializer().loads(
                token, max_age=TokenSecurity.max_age()
            )
        except SignatureExpired:
            g.auth_failure = "expired"
            safe_log(logger, logging.INFO, "Expired auth token rejected")
            return None
        except BadSignature:
            g.auth_failure = "invalid"
            safe_log(
                logger,
                logging.WARNING,
                f"Invalid auth token from {request.remote_addr}",
            )
            return None
        if not isinstance(payload, dict) or "userId" not in payload:
            g.auth_failure = "invalid"
            return None
        return payload

    @staticmethod
    def set_cookie(response, token):
        response.set_cookie(
            current_app.config.get("AUTH_COOKIE_NAME", "auth_token"),
            token,
            max_age=TokenSecurity.max_age(),
            path="/",
            httponly=True,
            secure=bool(current_app.config.get("AUTH_COOKIE_SECURE", False)),
            samesite=current_app.config.get("AUTH_COOKIE_SAMESITE", "Lax"),
        )
        return response

    @staticmethod
    def clear_cookie(response):
        response.delete_cookie(
            current_app.config.get("AUTH_COOKIE_NAME", "auth_token"), path="/"
        )
        return response


def identity_of(user):
    return {"userId": user.id, "username": user.username, "role": user.role}


@login_manager.request_loader
def load_user_from_request(req):
    """Flask-Login hook: user from the auth cookie, None when invalid"""
    from models import User

    g.pop("auth_failure", None)
    token = req.cookies.get(current_app.config.get("AUTH_COOKIE_NAME", "auth_token"))
    payload = TokenSecurity.decode(token)
    if payload is None:
        return None
    try:
        user_id = int(payload["userId"])
    except (TypeError, ValueError):
        g.auth_failure = "invalid"
        return None
    user = db.session.get(User, user_id)
    if user is None:
        g.auth_failure = "unknown_user"
    return user


def is_public_path(path):
    return path in PUBLIC_PATHS or path.startswith(PUBLIC_PREFIXES)


def require_role(*roles):
    """Refuse with 403 unless current_user has one of the roles"""

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if getattr(current_user, "role", None) not in roles:
                safe_log(
                    logger,
                    logging.WARNING,
                    (
                        f"Role check failed: {getattr(current_user, 'username', '?')} "
                        f"on {request.method} {request.path}"
                    ),
                )
                raise SecurityError("Droits insuffisants pour cette opération")
            return f(*args, **kwargs)

        return decorated_function

    return decorator


def setup_session_security(app):
    """Wire the login manager and the authentication gate"""
    login_manager.init_app(app)
    login_manager.session_protection = None
    login_manager.login_view = "main.login_page"

    @app.before_request
    def _require_authentication():
        if request.method == "OPTIONS" or is_public_path(request.path):
            return None
        if not current_user.is_authenticated:
            reason = g.get("auth_failure", "missing")
            message = (
                "Session expirée, veuillez vous reconnecter"
                if reason == "expired"
                else "Non autorisé"
            )
            raise AuthenticationError(message)
        g.current_user = identity_of(current_user)
        return None
