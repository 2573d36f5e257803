from __future__ import annotations

from datetime import datetime

from database import db
from utils.text_utils import iso

GLOBAL_SETTINGS_KEY = "global"

THEMES = ("light", "dark")
FONT_SIZES = ("small", "medium", "large")
DEFAULT_PREFERENCES = {"theme": "light", "fontSize": "medium", "highContrast": False}


class Settings(db.Model):
    """Settings document addressed by a well-known key."""

    __tablename__ = "settings"

    id = db.Column(db.Integer, primary_key=True)
    key = db.Column(db.String(50), unique=True, nullable=False, index=True)
    data = db.Column(db.JSON, nullable=False, default=dict)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        payload = dict(self.data or {})
        payload.update(
            {
                "id": self.key,
                "key": self.key,
                "createdAt": iso(self.created_at),
                "updatedAt": iso(self.updated_at),
            }
        )
        return payload


class UserPreferences(db.Model):
    """UI preferences of one user."""

    __tablename__ = "user_preferences"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("user.id"), unique=True, nullable=False, index=True
    )
    theme = db.Column(db.String(10), nullable=False, default="light")
    font_size = db.Column(db.String(10), nullable=False, default="medium")
    high_contrast = db.Column(db.Boolean, nullable=False, default=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow)

    user = db.relationship("User", back_populates="preferences")

    @staticmethod
    def validate(raw) -> dict:
        """Unknown or missing values fall back to the defaults."""
        raw = raw if isinstance(raw, dict) else {}
        theme = raw.get("theme")
        font_size = raw.get("fontSize")
        return {
            "theme": theme if theme in THEMES else DEFAULT_PREFERENCES["theme"],
            "fontSize": (
                font_size if font_size in FONT_SIZES else DEFAULT_PREFERENCES["fontSize"]
            ),
            "highContrast": bool(raw.get("highContrast")),
        }

    def to_dict(self):
        return {
            "theme": self.theme,
            "fontSize": self.font_size,
            "highContrast": bool(self.high_contrast),
        }
