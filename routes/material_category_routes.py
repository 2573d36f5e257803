"""
Material categories
"""

import logging
from datetime import datetime

from flask import Blueprint, jsonify
from sqlalchemy import func

from database import db
from error_handler import BusinessLogicError, ValidationError
from models import MaterialCategory
from security_utils import safe_log
from utils.cache import cached_json, latest_change
from utils.integrity import delete_material_category
from utils.request_helpers import get_json_object, get_or_404
from utils.text_utils import clean_str

material_category_bp = Blueprint("material_categories", __name__)

logger = logging.getLogger(__name__)

CATEGORY_NOT_FOUND = "Catégorie non trouvée"


def required_category_name(data):
    name = clean_str(data.get("name"), 120)
    if not name:
        raise ValidationError("Le nom de la catégorie est requis", field="name")
    return name


def ensure_unique_category(name, exclude_id=None):
    """Names are unique regardless of case"""
    query = MaterialCategory.query.filter(
        func.lower(MaterialCategory.name) == name.lower()
    )
    if exclude_id is not None:
        query = query.filter(MaterialCategory.id != exclude_id)
    if query.first() is not None:
        raise BusinessLogicError("Une catégorie avec ce nom existe déjà")


@material_category_bp.route("/", methods=["GET"])
def list_categories():
    categories = MaterialCategory.query.order_by(
        MaterialCategory.name.asc(), MaterialCategory.id.asc()
    ).all()
    return cached_json(
        [c.to_dict() for c in categories],
        latest_change(categories, "created_at", "updated_at"),
    )


@material_category_bp.route("/", methods=["POST"])
def create_category():
    data = get_json_object()
    name = required_category_name(data)
    ensure_unique_category(name)

    now = datetime.utcnow()
    category = MaterialCategory(
        name=name,
        description=data.get("description") or "",
        created_at=now,
        updated_at=now,
    )
    db.session.add(category)
    db.session.commit()

    safe_log(logger, logging.INFO, f"Material category {category.id} created: {name}")
    return jsonify(category.to_dict()), 201


@material_category_bp.route("/<category_id>", methods=["GET"])
def get_category(category_id):
    category = get_or_404(MaterialCategory, category_id, CATEGORY_NOT_FOUND)
    return jsonify(category.to_dict())


@material_category_bp.route("/<category_id>", methods=["PUT"])
def update_category(category_id):
    category = get_or_404(MaterialCategory, category_id, CATEGORY_NOT_FOUND)
    data = get_json_object()
    name = required_category_name(data)
    ensure_unique_category(name, exclude_id=category.id)

    category.name = name
    if "description" in data:
        category.description = data.get("description") or ""
    category.updated_at = datetime.utcnow()
    db.session.commit()
    return jsonify(category.to_dict())


@material_category_bp.route("/<category_id>", methods=["DELETE"])
def delete_category(category_id):
    category = get_or_404(MaterialCategory, category_id, CATEGORY_NOT_FOUND)
    delete_material_category(category)
    db.session.commit()
    safe_log(logger, logging.INFO, f"Material category {category_id} deleted")
    return jsonify({"success": True, "message": "Catégorie supprimée avec succès"})
