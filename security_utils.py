"""
Input sanitising and log scrubbing
"""

import json
import logging
import re

from flask import current_app, has_app_context

import config

# Username: latin letters, digits and _.- (stored lower-cased)
USERNAME_PATTERN = r"^[a-zA-Z0-9_.-]{3,50}$"

SENSITIVE_FIELDS = {
    "password",
    "pass",
    "pwd",
    "secret",
    "token",
    "csrf_token",
    "auth_token",
    "adminkey",
    "admin_key",
    "jwt_secret",
    "secret_key",
    "authorization",
}

SENSITIVE_PATTERNS = [
    (r'password["\']?\s*[:=]\s*["\']([^"\']+)["\']', "password=***FILTERED***"),
    (r'token["\']?\s*[:=]\s*["\']([^"\']+)["\']', "token=***FILTERED***"),
    (r'adminKey["\']?\s*[:=]\s*["\']([^"\']+)["\']', "adminKey=***FILTERED***"),
    (r'secret["\']?\s*[:=]\s*["\']([^"\']+)["\']', "secret=***FILTERED***"),
    (r"Bearer\s+([a-zA-Z0-9\-._~+/]+=*)", "Bearer ***FILTERED***"),
]

# session/token in query strings and cookies
SENSITIVE_RE = re.compile(
    r"(session(_?id)?|auth_token|token|authorization)=([^&;\s]+)", re.IGNORECASE
)


def _log_sensitive() -> bool:
    if has_app_context():
        return bool(current_app.config.get("LOG_SENSITIVE", config.LOG_SENSITIVE))
    return config.LOG_SENSITIVE


def sanitize_input(text, max_length=None, allow_html=False):
    """
    Clean a free-text value

    Returns:
        tuple: (str, bool, str) - (cleaned text, valid, error)
    """
    if not text:
        return "", True, ""

    if not isinstance(text, str):
        text = str(text)

    if max_length and len(text) > max_length:
        return None, False, f"Texte trop long ({max_length} caractères maximum)"

    # Control characters
    text = re.sub(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]", "", text)

    if not allow_html:
        text = (
            text.replace("&", "&amp;")
            .replace("<", "&lt;")
            .replace(">", "&gt;")
            .replace('"', "&quot;")
            .replace("'", "&#x27;")
        )

    for pattern in (r"javascript:", r"vbscript:", r"on\w+\s*=", r"expression\s*\("):
        if re.search(pattern, text, re.IGNORECASE):
            return None, False, "Contenu suspect détecté"

    return text.strip(), True, ""


def validate_user_input(data, field_rules):
    """
    Validate a dict against per-field rules (required, max_length, pattern)

    Returns:
        tuple: (dict, bool, list) - (cleaned data, valid, errors)
    """
    cleaned_data = {}
    errors = []

    for field, rules in field_rules.items():
        value = data.get(field, "")
        if value is None:
            value = ""

        if rules.get("required", False) and not value:
            errors.append(f"Le champ '{field}' est obligatoire")
            continue

        if not value:
            cleaned_data[field] = value
            continue

        if rules.get("raw"):
            # Secrets are compared as typed, never escaped
            if rules.get("max_length") and len(str(value)) > rules["max_length"]:
                errors.append(f"Le champ '{field}' est trop long")
                continue
            cleaned_data[field] = str(value)
            continue

        cleaned_value, valid, error = sanitize_input(
            value,
            max_length=rules.get("max_length"),
            allow_html=rules.get("allow_html", False),
        )
        if not valid:
            errors.append(f"Champ '{field}' : {error}")
            continue

        if "pattern" in rules and not re.match(rules["pattern"], cleaned_value):
            errors.append(f"Champ '{field}' : format invalide")
            continue

        cleaned_data[field] = cleaned_value

    return cleaned_data, len(errors) == 0, errors


def sanitize_log_data(data):
    """
    Mask secrets before logging

    Returns:
        str: string safe to log
    """
    if data is None:
        return "None"

    if _log_sensitive():
        return str(data)

    try:
        if isinstance(data, dict):
            filtered = {
                key: (
                    "***FILTERED***"
                    if str(key).lower() in SENSITIVE_FIELDS
                    else value
                )
                for key, value in data.items()
            }
            data_str = json.dumps(filtered, default=str, ensure_ascii=False)
        elif isinstance(data, list):
            data_str = json.dumps(data, default=str, ensure_ascii=False)
        else:
            data_str = str(data)

        for pattern, replacement in SENSITIVE_PATTERNS:
            data_str = re.sub(pattern, replacement, data_str, flags=re.IGNORECASE)

        return SENSITIVE_RE.sub(r"\1=***", data_str)

    except (TypeError, ValueError) as e:
        return f"[Data sanitization error: {type(e).__name__}]"


def safe_log(logger, level, message, *args, **kwargs):
    """
    Log through sanitize_log_data unless LOG_SENSITIVE is on

    Args:
        logger: logger object
        level: logging level
        message: message or tuple of message parts
    """
    if isinstance(message, tuple):
        # Tuples of parts are either (fmt, *args) or plain fragments
        if len(message) > 1 and "%" in str(message[0]):
            message, args = message[0], tuple(message[1:]) + args
        else:
            message = "".join(str(part) for part in message)

    try:
        if _log_sensitive():
            logger.log(level, message, *args, **kwargs)
            return

        sanitized_message = sanitize_log_data(message)
        sanitized_args = tuple(sanitize_log_data(arg) for arg in args)
        logger.log(level, sanitized_message, *sanitized_args, **kwargs)

    except (TypeError, ValueError) as e:
        logger.log(level, f"[Log sanitization failed] {type(e).__name__}")
