"""
Resource calculator: materials needed to level professions
"""

import logging

from flask import Blueprint, jsonify

from database import with_query_timeout
from error_handler import ValidationError
from models import Material
from security_utils import safe_log
from utils.request_helpers import get_json_object
from utils.resources import calculate_resources as compute_resources
from utils.resources import combine_professions

calculator_bp = Blueprint("calculator", __name__)

logger = logging.getLogger(__name__)


def _selections(data):
    professions = data.get("professions")
    if not isinstance(professions, list) or not professions:
        raise ValidationError(
            "Veuillez sélectionner au moins une profession", field="professions"
        )
    return professions


@calculator_bp.route("/", methods=["POST"])
@with_query_timeout
def calculate_resources():
    selections = _selections(get_json_object())
    materials = compute_resources(Material.query.all(), selections)
    safe_log(
        logger,
        logging.DEBUG,
        f"Calculated {len(materials)} material(s) for {len(selections)} profession(s)",
    )
    return jsonify(materials)


@calculator_bp.route("/combine", methods=["POST"])
@with_query_timeout
def combine_resources():
    data = get_json_object()
    selections = _selections(data)
    provided = data.get("provided") or {}
    if not isinstance(provided, dict):
        raise ValidationError("provided doit être un objet", field="provided")

    materials = combine_professions(Material.query.all(), selections, provided)
    return jsonify(materials)
