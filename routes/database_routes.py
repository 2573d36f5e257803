"""
Admin database browser: paginated view and edit of the business tables
"""

import logging
import math
from datetime import datetime

from flask import Blueprint, jsonify, request
from flask_login import current_user
from sqlalchemy import or_

from database import db, with_query_timeout
from error_handler import NotFoundError, ValidationError
from models import (
    Client,
    Material,
    MaterialCategory,
    Order,
    OrderGroup,
    Profession,
    Settings,
)
from routes.material_category_routes import (
    ensure_unique_category,
    required_category_name,
)
from routes.material_routes import apply_material_changes
from routes.order_routes import apply_order_changes
from security_utils import safe_log
from session_security import require_role
from utils.integrity import delete_client, delete_material_category, delete_order_group
from utils.request_helpers import get_json_object, parse_id
from utils.text_utils import clean_str

database_bp = Blueprint("database", __name__)

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100

# collection name → (model, searchable columns)
# users are not browsable: the table holds password hashes
COLLECTIONS = {
    "clients": (Client, ("name", "realm", "character")),
    "orders": (Order, ("client_name", "character", "status")),
    "orderGroups": (OrderGroup, ("name",)),
    "materials": (Material, ("name", "profession")),
    "materialCategories": (MaterialCategory, ("name",)),
    "professions": (Profession, ("name",)),
    "settings": (Settings, ("key",)),
}

# camelCase sort fields that differ from the column name
SORT_ALIASES = {
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "joinedDate": "joined_date",
    "clientName": "client_name",
    "clientId": "client_id",
    "levelRange": "level_range",
    "categoryId": "category_id",
    "completedAt": "completed_at",
}


def _collection(name):
    entry = COLLECTIONS.get(name)
    if entry is None:
        raise NotFoundError(f"Collection inconnue : {name}")
    return entry


def _document_or_404(model, raw_id):
    document = db.session.get(model, parse_id(raw_id))
    if document is None:
        raise NotFoundError("Document non trouvé")
    return document


def _sort_column(model, field):
    attr = SORT_ALIASES.get(field, field)
    if attr not in model.__table__.columns.keys():
        return model.id
    return getattr(model, attr)


def _update_document(name, document, data):
    """Apply an edit with the same rules as the resource API"""
    data.pop("id", None)
    now = datetime.utcnow()

    if name == "clients":
        if "name" in data and not clean_str(data.get("name")):
            raise ValidationError("Le nom du client est requis", field="name")
        document.update_from(data)
    elif name == "orders":
        apply_order_changes(document, data)
    elif name == "materials":
        apply_material_changes(document, data)
    elif name == "materialCategories":
        if "name" in data:
            document.name = required_category_name(data)
            ensure_unique_category(document.name, exclude_id=document.id)
        if "description" in data:
            document.description = data.get("description") or ""
    elif name == "orderGroups":
        if "name" in data:
            group_name = clean_str(data.get("name"), 200)
            if not group_name:
                raise ValidationError("Le nom du groupe est requis", field="name")
            document.name = group_name
        if "description" in data:
            document.description = data.get("description")
    elif name == "professions":
        document.update_from(data)
    elif name == "settings":
        merged = dict(document.data or {})
        merged.update(
            {k: v for k, v in data.items() if k not in ("key", "createdAt", "updatedAt")}
        )
        document.data = merged

    if hasattr(document, "updated_at"):
        document.updated_at = now


def _delete_document(name, document):
    """Delete through the same guards as the resource API"""
    if name == "clients":
        delete_client(document)
    elif name == "materialCategories":
        delete_material_category(document)
    elif name == "orderGroups":
        delete_order_group(document)
    else:
        db.session.delete(document)


@database_bp.route("/collections", methods=["GET"])
@require_role("admin")
def list_collections():
    return jsonify(list(COLLECTIONS))


@database_bp.route("/collections/<name>/documents", methods=["GET"])
@require_role("admin")
@with_query_timeout
def list_documents(name):
    model, search_columns = _collection(name)

    page = max(request.args.get("page", 1, type=int) or 1, 1)
    page_size = request.args.get("pageSize", DEFAULT_PAGE_SIZE, type=int) or DEFAULT_PAGE_SIZE
    page_size = min(max(page_size, 1), MAX_PAGE_SIZE)
    sort_field = request.args.get("sortField", "id")
    descending = request.args.get("sortOrder", "desc") != "asc"
    search = request.args.get("search", "").strip()

    query = model.query
    if search:
        pattern = f"%{search}%"
        query = query.filter(
            or_(*(getattr(model, column).ilike(pattern) for column in search_columns))
        )

    total = query.count()
    column = _sort_column(model, sort_field)
    order = column.desc() if descending else column.asc()
    documents = (
        query.order_by(order, model.id.asc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )

    return jsonify(
        {
            "documents": [d.to_dict() for d in documents],
            "total": total,
            "page": page,
            "pageSize": page_size,
            "totalPages": math.ceil(total / page_size),
        }
    )


@database_bp.route("/collections/<name>/documents/<document_id>", methods=["GET"])
@require_role("admin")
def get_document(name, document_id):
    model, _ = _collection(name)
    return jsonify(_document_or_404(model, document_id).to_dict())


@database_bp.route("/collections/<name>/documents/<document_id>", methods=["PUT"])
@require_role("admin")
def update_document(name, document_id):
    model, _ = _collection(name)
    document = _document_or_404(model, document_id)
    _update_document(name, document, get_json_object())
    db.session.commit()

    safe_log(
        logger,
        logging.INFO,
        f"Admin {current_user.username} updated {name}/{document_id}",
    )
    return jsonify(document.to_dict())


@database_bp.route("/collections/<name>/documents/<document_id>", methods=["DELETE"])
@require_role("admin")
def delete_document(name, document_id):
    model, _ = _collection(name)
    document = _document_or_404(model, document_id)
    _delete_document(name, document)
    db.session.commit()

    safe_log(
        logger,
        logging.INFO,
        f"Admin {current_user.username} deleted {name}/{document_id}",
    )
    return jsonify({"success": True, "message": "Document supprimé"})
