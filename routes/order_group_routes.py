"""
Order groups: bundles of orders planned together
"""

import logging
from datetime import datetime

from flask import Blueprint, jsonify
from sqlalchemy import func

from database import db, with_query_timeout
from error_handler import ValidationError
from models import Order, OrderGroup
from security_utils import safe_log
from utils.integrity import attach_orders, delete_order_group, replace_group_members
from utils.order_stats import sort_recent_first
from utils.request_helpers import get_json_object, get_or_404
from utils.resources import aggregate_group_resources
from utils.text_utils import clean_str

order_group_bp = Blueprint("order_groups", __name__)

logger = logging.getLogger(__name__)

GROUP_NOT_FOUND = "Groupe de commandes non trouvé"


def _group_orders(group):
    return sort_recent_first(Order.query.filter(Order.order_group_id == group.id).all())


@order_group_bp.route("/", methods=["GET"])
@with_query_timeout
def list_groups():
    counts = dict(
        db.session.query(Order.order_group_id, func.count(Order.id))
        .filter(Order.order_group_id.isnot(None))
        .group_by(Order.order_group_id)
        .all()
    )
    groups = OrderGroup.query.order_by(
        OrderGroup.updated_at.desc(), OrderGroup.id.desc()
    ).all()
    return jsonify([g.to_dict(order_count=counts.get(g.id, 0)) for g in groups])


@order_group_bp.route("/", methods=["POST"])
def create_group():
    data = get_json_object()
    name = clean_str(data.get("name"), 200)
    if not name:
        raise ValidationError("Le nom du groupe est requis", field="name")

    now = datetime.utcnow()
    group = OrderGroup(
        name=name,
        description=data.get("description"),
        created_at=now,
        updated_at=now,
    )
    db.session.add(group)
    db.session.flush()
    attached = attach_orders(group, data.get("orderIds") or [])
    db.session.commit()

    safe_log(
        logger,
        logging.INFO,
        f"Order group {group.id} created with {attached} order(s)",
    )
    return jsonify(group.to_dict(order_count=attached)), 201


@order_group_bp.route("/<group_id>", methods=["GET"])
def get_group(group_id):
    group = get_or_404(OrderGroup, group_id, GROUP_NOT_FOUND)
    orders = _group_orders(group)
    data = group.to_dict(order_count=len(orders))
    data["orders"] = [o.to_dict() for o in orders]
    return jsonify(data)


@order_group_bp.route("/<group_id>", methods=["PUT"])
def update_group(group_id):
    group = get_or_404(OrderGroup, group_id, GROUP_NOT_FOUND)
    data = get_json_object()

    if "name" in data:
        name = clean_str(data.get("name"), 200)
        if not name:
            raise ValidationError("Le nom du groupe est requis", field="name")
        group.name = name
    if "description" in data:
        group.description = data.get("description")
    if "orderIds" in data:
        order_ids = data.get("orderIds")
        if not isinstance(order_ids, list):
            raise ValidationError("orderIds doit être une liste", field="orderIds")
        replace_group_members(group, order_ids)

    group.updated_at = datetime.utcnow()
    db.session.commit()

    orders = _group_orders(group)
    result = group.to_dict(order_count=len(orders))
    result["orders"] = [o.to_dict() for o in orders]
    return jsonify(result)


@order_group_bp.route("/<group_id>", methods=["DELETE"])
def delete_group(group_id):
    group = get_or_404(OrderGroup, group_id, GROUP_NOT_FOUND)
    detached = delete_order_group(group)
    db.session.commit()
    safe_log(
        logger,
        logging.INFO,
        f"Order group {group_id} deleted, {detached} order(s) detached",
    )
    return jsonify({"success": True, "detachedOrders": detached})


@order_group_bp.route("/<group_id>/resources", methods=["GET"])
@with_query_timeout
def group_resources(group_id):
    group = get_or_404(OrderGroup, group_id, GROUP_NOT_FOUND)
    orders = _group_orders(group)
    return jsonify(aggregate_group_resources(group, orders))
