"""
Global settings and per-user preferences
"""

import logging
import re
from datetime import datetime

from flask import Blueprint, jsonify
from flask_login import current_user

from database import db
from error_handler import NotFoundError, ValidationError
from models import Settings, UserPreferences
from models.settings import GLOBAL_SETTINGS_KEY
from security_utils import safe_log
from session_security import require_role
from utils.request_helpers import get_json_object

settings_bp = Blueprint("settings", __name__)

logger = logging.getLogger(__name__)

SETTINGS_KEY_RE = re.compile(r"^[A-Za-z0-9_.-]{1,50}$")

# Metadata rebuilt by Settings.to_dict, never stored in the document
RESERVED_KEYS = {"id", "key", "createdAt", "updatedAt"}


def _document(data):
    return {k: v for k, v in data.items() if k not in RESERVED_KEYS}


def _settings_key(raw):
    if not SETTINGS_KEY_RE.match(raw or ""):
        raise ValidationError("Clé de paramètres invalide", field="key")
    return raw


def _get_settings(key):
    return Settings.query.filter_by(key=key).first()


@settings_bp.route("/settings", methods=["GET"])
def get_settings():
    settings = _get_settings(GLOBAL_SETTINGS_KEY)
    return jsonify(settings.to_dict() if settings else {})


@settings_bp.route("/settings", methods=["POST"])
@require_role("admin")
def save_settings():
    """Replace the global settings document"""
    data = get_json_object()
    now = datetime.utcnow()
    settings = _get_settings(GLOBAL_SETTINGS_KEY)
    if settings is None:
        settings = Settings(key=GLOBAL_SETTINGS_KEY, created_at=now)
        db.session.add(settings)
    settings.data = _document(data)
    settings.updated_at = now
    db.session.commit()

    safe_log(logger, logging.INFO, f"Global settings saved by {current_user.username}")
    return jsonify(settings.to_dict())


@settings_bp.route("/settings/<key>", methods=["GET"])
def get_settings_by_key(key):
    settings = _get_settings(_settings_key(key))
    if settings is None:
        raise NotFoundError("Paramètres non trouvés")
    return jsonify(settings.to_dict())


@settings_bp.route("/settings/<key>", methods=["PUT"])
@require_role("admin")
def update_settings_by_key(key):
    """Merge the body into an existing settings document"""
    settings = _get_settings(_settings_key(key))
    if settings is None:
        raise NotFoundError("Paramètres non trouvés")
    data = get_json_object()

    merged = dict(settings.data or {})
    merged.update(_document(data))
    settings.data = merged
    settings.updated_at = datetime.utcnow()
    db.session.commit()
    return jsonify(settings.to_dict())


@settings_bp.route("/user-preferences", methods=["GET"])
def get_preferences():
    preferences = UserPreferences.query.filter_by(user_id=current_user.id).first()
    if preferences is None:
        return jsonify(UserPreferences.validate({}))
    return jsonify(preferences.to_dict())


@settings_bp.route("/user-preferences", methods=["POST"])
def save_preferences():
    validated = UserPreferences.validate(get_json_object())

    preferences = UserPreferences.query.filter_by(user_id=current_user.id).first()
    if preferences is None:
        preferences = UserPreferences(user_id=current_user.id)
        db.session.add(preferences)
    preferences.theme = validated["theme"]
    preferences.font_size = validated["fontSize"]
    preferences.high_contrast = validated["highContrast"]
    preferences.updated_at = datetime.utcnow()
    db.session.commit()
    return jsonify(preferences.to_dict())
