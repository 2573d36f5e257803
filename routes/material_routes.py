"""
Material catalogue API
"""

import logging
from datetime import datetime

from flask import Blueprint, jsonify, request

from database import db, with_query_timeout
from error_handler import ValidationError
from models import Material, MaterialCategory
from security_utils import safe_log
from utils.request_helpers import check_amounts, get_json_object, get_or_404, parse_id
from utils.resources import material_matches
from utils.text_utils import clean_str

material_bp = Blueprint("materials", __name__)

logger = logging.getLogger(__name__)

MATERIAL_NOT_FOUND = "Matériau non trouvé"

NO_CATEGORY = (None, "", "none")


def resolve_category_id(raw):
    """Category id for a categoryId value; "none" clears it"""
    if raw in NO_CATEGORY:
        return None
    category = get_or_404(MaterialCategory, raw, "Catégorie non trouvée")
    return category.id


def _fill_professions_from_used_by(material, data):
    """profession / professions default to the usedBy entries"""
    used_by = [u for u in material.used_by or [] if u.get("profession")]
    if not used_by:
        return
    if not data.get("profession"):
        material.profession = used_by[0]["profession"]
    if not data.get("professions"):
        material.professions = [u["profession"] for u in used_by]


def apply_material_changes(material, data):
    """Full edit of a material; shared by PUT /api/materials and the database browser"""
    data.pop("id", None)

    if not clean_str(data.get("name")):
        raise ValidationError("Le nom du matériau est requis", field="name")
    if not clean_str(data.get("profession")):
        raise ValidationError("La profession est requise", field="profession")
    check_amounts(data, ("quantity",))

    # quantity is always rewritten, 0 when absent or not numeric
    data["quantity"] = data.get("quantity")
    material.update_from(data)
    if "categoryId" in data:
        material.category_id = resolve_category_id(data["categoryId"])
    material.updated_at = datetime.utcnow()


@material_bp.route("/", methods=["GET"])
@with_query_timeout
def list_materials():
    query = Material.query

    level_range = request.args.get("levelRange")
    if level_range:
        query = query.filter(Material.level_range == level_range)

    category_id = request.args.get("categoryId")
    if category_id == "none":
        query = query.filter(Material.category_id.is_(None))
    elif category_id:
        query = query.filter(Material.category_id == parse_id(category_id, "categoryId"))

    materials = query.order_by(Material.name.asc(), Material.id.asc()).all()

    # profession / professions / usedBy live partly in JSON columns
    profession = request.args.get("profession")
    if profession:
        materials = [m for m in materials if material_matches(m, profession)]

    return jsonify([m.to_dict() for m in materials])


@material_bp.route("/", methods=["POST"])
def create_material():
    data = get_json_object()
    if not clean_str(data.get("name")):
        raise ValidationError("Le nom du matériau est requis", field="name")
    check_amounts(data, ("quantity",))

    material = Material()
    material.update_from(data)
    _fill_professions_from_used_by(material, data)
    material.category_id = resolve_category_id(data.get("categoryId"))
    material.created_at = material.updated_at = datetime.utcnow()
    db.session.add(material)
    db.session.commit()

    safe_log(logger, logging.INFO, f"Material {material.id} created: {material.name}")
    return jsonify(material.to_dict()), 201


@material_bp.route("/<material_id>", methods=["GET"])
def get_material(material_id):
    material = get_or_404(Material, material_id, MATERIAL_NOT_FOUND)
    return jsonify(material.to_dict())


@material_bp.route("/<material_id>", methods=["PUT"])
def update_material(material_id):
    material = get_or_404(Material, material_id, MATERIAL_NOT_FOUND)
    apply_material_changes(material, get_json_object())
    db.session.commit()
    return jsonify(material.to_dict())


@material_bp.route("/<material_id>", methods=["DELETE"])
def delete_material(material_id):
    material = get_or_404(Material, material_id, MATERIAL_NOT_FOUND)
    db.session.delete(material)
    db.session.commit()
    safe_log(logger, logging.INFO, f"Material {material_id} deleted")
    return jsonify({"success": True})
