from enum import Enum


class OrderStatus(str, Enum):
    """Order lifecycle."""

    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @classmethod
    def all(cls):
        """Status codes as plain strings."""
        return [status.value for status in cls]

    @classmethod
    def stats_key(cls, value: str) -> str | None:
        """camelCase key used in statistics payloads."""
        return _STATS_KEYS.get(value)


_STATS_KEYS = {
    "pending": "pending",
    "in-progress": "inProgress",
    "completed": "completed",
    "cancelled": "cancelled",
}

_STATUS_LABELS_FR = {
    "pending": "En attente",
    "in-progress": "En cours",
    "completed": "Terminée",
    "cancelled": "Annulée",
}

# Badge colours (background, text) on the receipt and the dashboard
_STATUS_COLORS = {
    "pending": ("#FEF3C7", "#92400E"),
    "in-progress": ("#DBEAFE", "#1E40AF"),
    "completed": ("#D1FAE5", "#065F46"),
    "cancelled": ("#FEE2E2", "#B91C1C"),
}


def get_status_label(value: str) -> str:
    """French label for a status code, the code itself when unknown."""
    return _STATUS_LABELS_FR.get(value, value)


def get_status_colors(value: str) -> tuple[str, str]:
    """(background, text) hex colours for a status badge."""
    return _STATUS_COLORS.get(value, ("#F3F4F6", "#374151"))


def get_status_class(value: str) -> str:
    """CSS class suffix for tables and badges."""
    if value == OrderStatus.CANCELLED.value:
        return "danger"
    if value == OrderStatus.COMPLETED.value:
        return "success"
    if value == OrderStatus.IN_PROGRESS.value:
        return "info"
    return "warning"
