"""
Authentication API: registration, login, logout, current identity
"""

import hmac
import logging

from flask import Blueprint, current_app, g, jsonify
from werkzeug.security import check_password_hash, generate_password_hash

from database import db
from error_handler import AuthenticationError, BusinessLogicError, ValidationError
from extensions import limiter
from models import User
from security_utils import USERNAME_PATTERN, safe_log, validate_user_input
from session_security import TokenSecurity
from utils.request_helpers import get_json_object

auth_bp = Blueprint("auth", __name__)

logger = logging.getLogger(__name__)

CREDENTIAL_RULES = {
    "username": {"required": True, "max_length": 50, "pattern": USERNAME_PATTERN},
    "password": {"required": True, "max_length": 255, "raw": True},
}


def _login_rate_limit():
    return current_app.config.get("LOGIN_RATE_LIMIT", "10/minute")


def _clean_credentials(data):
    """Validated (username, password); the username is lower-cased"""
    cleaned, valid, errors = validate_user_input(
        {"username": data.get("username"), "password": data.get("password")},
        CREDENTIAL_RULES,
    )
    if not valid:
        safe_log(logger, logging.INFO, f"Credential validation failed: {errors}")
        raise ValidationError("; ".join(errors))
    return cleaned["username"].lower(), cleaned["password"]


def _admin_key_matches(admin_key, expected_key):
    if not expected_key or not isinstance(admin_key, str) or not admin_key:
        return False
    return hmac.compare_digest(admin_key.encode("utf-8"), expected_key.encode("utf-8"))


def register_user(username, password, admin_key=None):
    """
    Create an account

    The first account ever becomes admin; later ones only with the
    ADMIN_REGISTER_KEY shared secret.
    """
    username, password = _clean_credentials(
        {"username": username, "password": password}
    )

    if User.query.filter_by(username=username).first():
        raise BusinessLogicError("Ce nom d'utilisateur existe déjà")

    expected_key = current_app.config.get("ADMIN_REGISTER_KEY")
    is_first_user = db.session.query(User.id).first() is None
    is_admin = is_first_user or _admin_key_matches(admin_key, expected_key)

    user = User(
        username=username,
        password=generate_password_hash(password),
        role="admin" if is_admin else "user",
    )
    db.session.add(user)
    db.session.commit()

    safe_log(
        logger,
        logging.INFO,
        f"User {username} registered with role {user.role}",
    )
    return user


def authenticate(username, password):
    """User matching the credentials, AuthenticationError otherwise"""
    username, password = _clean_credentials(
        {"username": username, "password": password}
    )
    user = User.query.filter_by(username=username).first()
    if not user or not check_password_hash(user.password, password):
        safe_log(logger, logging.WARNING, f"Login failed for user {username}")
        raise AuthenticationError("Identifiants invalides")
    safe_log(logger, logging.INFO, f"User {username} logged in")
    return user


@auth_bp.route("/register", methods=["POST"])
@limiter.limit(_login_rate_limit)
def register():
    data = get_json_object()
    user = register_user(data.get("username"), data.get("password"), data.get("adminKey"))
    return (
        jsonify(
            {
                "success": True,
                "message": "Utilisateur créé avec succès",
                "isAdmin": user.is_admin,
            }
        ),
        201,
    )


@auth_bp.route("/login", methods=["POST"])
@limiter.limit(_login_rate_limit)
def login():
    data = get_json_object()
    user = authenticate(data.get("username"), data.get("password"))
    response = jsonify(
        {"success": True, "user": {"username": user.username, "role": user.role}}
    )
    return TokenSecurity.set_cookie(response, TokenSecurity.issue(user))


@auth_bp.route("/logout", methods=["POST"])
def logout():
    response = jsonify({"success": True})
    return TokenSecurity.clear_cookie(response)


@auth_bp.route("/me", methods=["GET"])
def me():
    return jsonify(g.current_user)
