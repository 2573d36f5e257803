"""
Client API
"""

import logging
from datetime import datetime

from flask import Blueprint, jsonify

from database import db, with_query_timeout
from error_handler import ValidationError
from models import Client, Order
from security_utils import safe_log
from utils.integrity import delete_client as delete_client_guarded
from utils.order_stats import compute_client_stats, compute_orders_stats_by_client
from utils.request_helpers import get_json_object, get_or_404
from utils.text_utils import clean_str

client_bp = Blueprint("clients", __name__)

logger = logging.getLogger(__name__)

CLIENT_NOT_FOUND = "Client non trouvé"


@client_bp.route("/", methods=["GET"])
@with_query_timeout
def list_clients():
    clients = Client.query.order_by(Client.name.asc(), Client.id.asc()).all()
    return jsonify([c.to_dict() for c in clients])


@client_bp.route("/", methods=["POST"])
def create_client():
    data = get_json_object()
    if not clean_str(data.get("name")):
        raise ValidationError("Le nom du client est requis", field="name")

    client = Client()
    client.update_from(data)
    client.joined_date = client.updated_at = datetime.utcnow()
    db.session.add(client)
    db.session.commit()

    safe_log(logger, logging.INFO, f"Client {client.id} created: {client.name}")
    return jsonify(client.to_dict()), 201


@client_bp.route("/orders-stats", methods=["GET"])
@with_query_timeout
def orders_stats():
    rows = db.session.query(Order.client_id, Order.status).all()
    return jsonify(compute_orders_stats_by_client(rows))


@client_bp.route("/<client_id>", methods=["GET"])
def get_client(client_id):
    client = get_or_404(Client, client_id, CLIENT_NOT_FOUND)
    return jsonify(client.to_dict())


@client_bp.route("/<client_id>", methods=["PUT"])
def update_client(client_id):
    client = get_or_404(Client, client_id, CLIENT_NOT_FOUND)
    data = get_json_object()
    data.pop("id", None)
    if "name" in data and not clean_str(data.get("name")):
        raise ValidationError("Le nom du client est requis", field="name")

    client.update_from(data)
    client.updated_at = datetime.utcnow()
    db.session.commit()
    return jsonify(client.to_dict())


@client_bp.route("/<client_id>", methods=["DELETE"])
def delete_client(client_id):
    client = get_or_404(Client, client_id, CLIENT_NOT_FOUND)
    delete_client_guarded(client)
    db.session.commit()
    safe_log(logger, logging.INFO, f"Client {client_id} deleted")
    return jsonify({"success": True, "message": "Client supprimé"})


@client_bp.route("/<client_id>/stats", methods=["GET"])
def client_stats(client_id):
    client = get_or_404(Client, client_id, CLIENT_NOT_FOUND)
    orders = Order.query.filter(Order.client_id == client.id).all()
    return jsonify(compute_client_stats(orders))
