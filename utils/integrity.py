"""Referential guards and cascades between clients, orders, groups and
materials.

Every function works on the current session and leaves the commit to the
caller, so a route can combine several of them in one transaction.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable

from database import db
from error_handler import BusinessLogicError
from models import Client, Material, MaterialCategory, Order, OrderGroup
from security_utils import safe_log
from utils.request_helpers import try_parse_id

logger = logging.getLogger(__name__)


def client_order_count(client: Client) -> int:
    return db.session.query(Order.id).filter(Order.client_id == client.id).count()


def delete_client(client: Client) -> None:
    """Delete a client, refused while orders reference it."""
    count = client_order_count(client)
    if count:
        safe_log(
            logger,
            logging.WARNING,
            f"Client {client.id} not deleted: {count} order(s) still reference it",
        )
        raise BusinessLogicError(
            f"Impossible de supprimer ce client : {count} commande(s) associée(s)"
        )
    db.session.delete(client)


def category_material_count(category: MaterialCategory) -> int:
    return (
        db.session.query(Material.id)
        .filter(Material.category_id == category.id)
        .count()
    )


def delete_material_category(category: MaterialCategory) -> None:
    """Delete a category, refused while materials reference it."""
    count = category_material_count(category)
    if count:
        safe_log(
            logger,
            logging.WARNING,
            f"Category {category.id} not deleted: used by {count} material(s)",
        )
        raise BusinessLogicError(
            "Impossible de supprimer cette catégorie car elle est utilisée par "
            f"{count} matériau(x)"
        )
    db.session.delete(category)


def attach_orders(group: OrderGroup, order_ids: Iterable) -> int:
    """Attach the orders whose ids are valid and exist; returns how many."""
    ids = {oid for oid in (try_parse_id(raw) for raw in order_ids or []) if oid}
    if not ids:
        return 0
    if group.id is None:
        db.session.flush()
    return (
        db.session.query(Order)
        .filter(Order.id.in_(ids))
        .update({Order.order_group_id: group.id}, synchronize_session="fetch")
    )


def detach_orders(group: OrderGroup) -> int:
    """Clear the group reference on every member order."""
    return (
        db.session.query(Order)
        .filter(Order.order_group_id == group.id)
        .update({Order.order_group_id: None}, synchronize_session="fetch")
    )


def replace_group_members(group: OrderGroup, order_ids: Iterable) -> int:
    detach_orders(group)
    attached = attach_orders(group, order_ids)
    group.updated_at = datetime.utcnow()
    return attached


def delete_order_group(group: OrderGroup) -> int:
    """Detach members then delete the group; returns the detached count."""
    detached = detach_orders(group)
    db.session.delete(group)
    return detached
