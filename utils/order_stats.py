"""Order statistics per client."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List

from models import Order
from utils.statuses import OrderStatus

RECENT_ORDERS_LIMIT = 5


def sort_recent_first(orders: Iterable[Order]) -> List[Order]:
    """Newest first; orders created at the same instant keep insertion order."""
    by_insertion = sorted(orders, key=lambda o: o.id or 0)
    return sorted(
        by_insertion,
        key=lambda o: o.created_at.timestamp() if o.created_at else 0.0,
        reverse=True,
    )


def compute_client_stats(orders: Iterable[Order]) -> Dict[str, Any]:
    """Bucket orders by status and total the revenue.

    Revenue counts only orders whose status is exactly "completed".
    """
    orders = list(orders)
    by_status = {"completed": 0, "inProgress": 0, "pending": 0, "cancelled": 0}
    total_spent = 0
    for order in orders:
        key = OrderStatus.stats_key(order.status)
        if key:
            by_status[key] += 1
        if order.status == OrderStatus.COMPLETED.value:
            total_spent += order.price or 0

    recent = sort_recent_first(orders)[:RECENT_ORDERS_LIMIT]
    return {
        "totalOrders": len(orders),
        "ordersByStatus": by_status,
        "totalSpent": total_spent,
        "recentOrders": [o.to_dict() for o in recent],
    }


def compute_orders_stats_by_client(
    rows: Iterable[tuple[int | None, str]],
) -> Dict[str, Dict[str, int]]:
    """Fold (client_id, status) pairs into per-client counters.

    Keys are client ids as strings (JSON object keys).
    """
    stats: Dict[str, Dict[str, int]] = {}
    for client_id, status in rows:
        if client_id is None:
            continue
        entry = stats.setdefault(
            str(client_id),
            {
                "totalOrders": 0,
                "completedOrders": 0,
                "pendingOrders": 0,
                "inProgressOrders": 0,
                "cancelledOrders": 0,
            },
        )
        entry["totalOrders"] += 1
        key = OrderStatus.stats_key(status)
        if key:
            entry[f"{key}Orders"] += 1
    return stats
