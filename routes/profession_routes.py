"""
Profession catalogue with level-bracket pricing
"""

import logging
from datetime import datetime

from flask import Blueprint, jsonify

from database import db
from error_handler import ValidationError
from models import Profession
from security_utils import safe_log
from utils.cache import cached_json, latest_change
from utils.request_helpers import get_json_object, get_or_404
from utils.text_utils import clean_str

profession_bp = Blueprint("professions", __name__)

logger = logging.getLogger(__name__)

PROFESSION_NOT_FOUND = "Profession non trouvée"


@profession_bp.route("/", methods=["GET"])
def list_professions():
    professions = Profession.query.order_by(
        Profession.name.asc(), Profession.id.asc()
    ).all()
    return cached_json(
        [p.to_dict() for p in professions],
        latest_change(professions, "created_at", "updated_at"),
    )


@profession_bp.route("/", methods=["POST"])
def create_profession():
    data = get_json_object()
    if not clean_str(data.get("name")):
        raise ValidationError("Le nom de la profession est requis", field="name")

    profession = Profession(price_ranges={})
    profession.update_from(data)
    profession.created_at = profession.updated_at = datetime.utcnow()
    db.session.add(profession)
    db.session.commit()

    safe_log(logger, logging.INFO, f"Profession {profession.id} created: {profession.name}")
    return jsonify(profession.to_dict()), 201


@profession_bp.route("/<profession_id>", methods=["GET"])
def get_profession(profession_id):
    profession = get_or_404(Profession, profession_id, PROFESSION_NOT_FOUND)
    return jsonify(profession.to_dict())


@profession_bp.route("/<profession_id>", methods=["PUT"])
def update_profession(profession_id):
    profession = get_or_404(Profession, profession_id, PROFESSION_NOT_FOUND)
    data = get_json_object()
    data.pop("id", None)
    if "name" in data and not clean_str(data.get("name")):
        raise ValidationError("Le nom de la profession est requis", field="name")

    profession.update_from(data)
    profession.updated_at = datetime.utcnow()
    db.session.commit()
    return jsonify(profession.to_dict())


@profession_bp.route("/<profession_id>", methods=["DELETE"])
def delete_profession(profession_id):
    profession = get_or_404(Profession, profession_id, PROFESSION_NOT_FOUND)
    db.session.delete(profession)
    db.session.commit()
    safe_log(logger, logging.INFO, f"Profession {profession_id} deleted")
    return jsonify({"success": True})
