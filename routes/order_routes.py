"""
Order API and PDF receipt
"""

import logging
from datetime import datetime

from flask import Blueprint, Response, jsonify, request

from database import db, with_query_timeout
from error_handler import NotFoundError, ValidationError
from models import Client, Order, OrderGroup
from security_utils import safe_log
from utils.order_stats import sort_recent_first
from utils.pdf import receipt_filename, render_order_receipt
from utils.request_helpers import check_amounts, get_json_object, get_or_404, parse_id
from utils.statuses import OrderStatus

order_bp = Blueprint("orders", __name__)

logger = logging.getLogger(__name__)

ORDER_NOT_FOUND = "Commande non trouvée"

AMOUNT_FIELDS = ("price", "initialPayment")


def validate_status(status):
    if status not in OrderStatus.all():
        raise ValidationError(
            f"Statut invalide, valeurs acceptées : {', '.join(OrderStatus.all())}",
            field="status",
        )
    return status


def _resolve_group(raw_group_id):
    """OrderGroup for an orderGroupId value, None to detach"""
    if raw_group_id in (None, "", "none"):
        return None
    return get_or_404(OrderGroup, raw_group_id, "Groupe de commandes non trouvé")


def apply_status(order, status):
    """Set the status; completedAt follows transitions into and out of completed"""
    previous = order.status
    order.status = validate_status(status)
    if status == OrderStatus.COMPLETED.value and previous != status:
        order.completed_at = datetime.utcnow()
    elif status != OrderStatus.COMPLETED.value:
        order.completed_at = None


def apply_order_changes(order, data):
    """Edit an existing order; shared by PUT /api/orders and the database browser"""
    data.pop("id", None)
    check_amounts(data, AMOUNT_FIELDS)

    if "clientId" in data:
        if data["clientId"] in (None, ""):
            raise ValidationError("Le client est requis", field="clientId")
        client = db.session.get(Client, parse_id(data["clientId"], "clientId"))
        if client is None:
            raise NotFoundError("Client non trouvé")
        order.client_id = client.id

    order.update_from(data)
    if "professions" in data and not isinstance(data["professions"], list):
        order.professions = []
    if "status" in data:
        apply_status(order, data["status"])
    if "orderGroupId" in data:
        group = _resolve_group(data["orderGroupId"])
        order.order_group_id = group.id if group else None

    order.updated_at = datetime.utcnow()


@order_bp.route("/", methods=["GET"])
@with_query_timeout
def list_orders():
    query = Order.query

    client_id = request.args.get("clientId")
    if client_id:
        query = query.filter(Order.client_id == parse_id(client_id, "clientId"))

    status = request.args.get("status")
    if status:
        query = query.filter(Order.status == validate_status(status))

    orders = query.order_by(Order.created_at.desc(), Order.id.asc()).all()
    return jsonify([o.to_dict() for o in sort_recent_first(orders)])


@order_bp.route("/", methods=["POST"])
def create_order():
    data = get_json_object()
    check_amounts(data, AMOUNT_FIELDS)

    if data.get("clientId") in (None, ""):
        raise ValidationError("Le client est requis", field="clientId")
    client = db.session.get(Client, parse_id(data["clientId"], "clientId"))
    if client is None:
        raise NotFoundError("Client non trouvé")

    order = Order(client=client, status=OrderStatus.PENDING.value)
    order.update_from(data)
    if not isinstance(data.get("professions"), list):
        order.professions = []
    if not order.client_name:
        order.client_name = client.name
    if not order.client_realm:
        order.client_realm = client.realm
    if not order.character:
        order.character = client.character

    apply_status(order, data.get("status") or OrderStatus.PENDING.value)
    group = _resolve_group(data.get("orderGroupId"))
    order.order_group_id = group.id if group else None

    now = datetime.utcnow()
    order.created_at = order.updated_at = now
    db.session.add(order)
    db.session.commit()

    safe_log(logger, logging.INFO, f"Order {order.id} created for client {client.id}")
    return jsonify(order.to_dict()), 201


@order_bp.route("/client/<client_id>", methods=["GET"])
@with_query_timeout
def client_orders(client_id):
    client_pk = parse_id(client_id, "clientId")
    orders = Order.query.filter(Order.client_id == client_pk).all()
    return jsonify([o.to_dict() for o in sort_recent_first(orders)])


@order_bp.route("/<order_id>", methods=["GET"])
def get_order(order_id):
    order = get_or_404(Order, order_id, ORDER_NOT_FOUND)
    return jsonify(order.to_dict())


@order_bp.route("/<order_id>", methods=["PUT"])
def update_order(order_id):
    order = get_or_404(Order, order_id, ORDER_NOT_FOUND)
    apply_order_changes(order, get_json_object())
    db.session.commit()
    return jsonify(order.to_dict())


@order_bp.route("/<order_id>", methods=["DELETE"])
def delete_order(order_id):
    order = get_or_404(Order, order_id, ORDER_NOT_FOUND)
    db.session.delete(order)
    db.session.commit()
    safe_log(logger, logging.INFO, f"Order {order_id} deleted")
    return jsonify({"success": True})


@order_bp.route("/<order_id>/resources", methods=["PUT"])
def update_order_resources(order_id):
    order = get_or_404(Order, order_id, ORDER_NOT_FOUND)
    data = get_json_object()
    checked = data.get("checkedResources")
    if not isinstance(checked, dict):
        raise ValidationError(
            "checkedResources doit être un objet", field="checkedResources"
        )

    order.checked_resources = dict(checked)
    order.updated_at = datetime.utcnow()
    db.session.commit()
    return jsonify(
        {
            "success": True,
            "checkedResources": order.checked_resources,
            "updatedAt": order.to_dict()["updatedAt"],
        }
    )


@order_bp.route("/<order_id>/pdf", methods=["GET"])
def order_pdf(order_id):
    order = get_or_404(Order, order_id, ORDER_NOT_FOUND)
    pdf = render_order_receipt(order)
    safe_log(logger, logging.INFO, f"Receipt generated for order {order.id}")
    return Response(
        pdf,
        mimetype="application/pdf",
        headers={
            "Content-Disposition": f'attachment; filename="{receipt_filename(order)}"'
        },
    )
