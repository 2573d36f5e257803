from datetime import datetime

import pytest

from error_handler import ValidationError
from models import Material, Order
from models.catalog import normalize_price_ranges
from models.settings import UserPreferences
from utils.order_stats import (
    compute_client_stats,
    compute_orders_stats_by_client,
    sort_recent_first,
)
from utils.professions import level_value, profession_variants
from utils.request_helpers import check_amounts, parse_id, try_parse_id
from utils.resources import material_matches, merge_checked_resources, select_materials
from utils.statuses import OrderStatus, get_status_class, get_status_label
from utils.text_utils import clean_str, iso, to_int


@pytest.mark.parametrize(
    "raw, expected",
    [("12", 12), (7, 7), (" 42 ", 42)],
)
def test_parse_id_accepts_positive_ints(raw, expected):
    assert parse_id(raw) == expected


@pytest.mark.parametrize("raw", ["abc", "0", "-4", "1.5", "", None, True, 0, 2**64])
def test_parse_id_rejects(raw):
    with pytest.raises(ValidationError):
        parse_id(raw)
    assert try_parse_id(raw) is None


def test_to_int():
    assert to_int("12") == 12
    assert to_int("12.7") == 12
    assert to_int(3.9) == 3
    assert to_int("inf") == 0
    assert to_int(None, 5) == 5
    assert to_int(True) == 0
    assert to_int(float("inf")) == 0
    assert to_int(float("-inf"), 3) == 3
    assert to_int(float("nan")) == 0


def test_clean_str_and_iso():
    assert clean_str("  Thrall ") == "Thrall"
    assert clean_str("   ") is None
    assert clean_str("abcdef", 3) == "abc"
    assert iso(datetime(2024, 1, 2, 3, 4, 5)) == "2024-01-02T03:04:05Z"
    assert iso(None) is None


def test_level_value():
    assert level_value("300") == 300
    assert level_value("225-300") == 300
    assert level_value(150) == 150
    assert level_value("aucun") is None
    assert level_value(None) is None


def test_profession_variants_both_directions():
    assert profession_variants("Forge") == {"Forge", "Blacksmithing"}
    assert profession_variants("Tailoring") == {"Tailoring", "Couture"}
    assert profession_variants("Secourisme") == {"Secourisme"}


def test_status_helpers():
    assert OrderStatus.all() == ["pending", "in-progress", "completed", "cancelled"]
    assert OrderStatus.stats_key("in-progress") == "inProgress"
    assert OrderStatus.stats_key("lost") is None
    assert get_status_label("completed") == "Terminée"
    assert get_status_label("lost") == "lost"
    assert get_status_class("cancelled") == "danger"


def test_normalize_price_ranges():
    assert normalize_price_ranges(None) == {}
    assert normalize_price_ranges({300: {"min": "5.5", "max": "x"}, "375": 3}) == {
        "300": {"min": 5, "max": 0}
    }


def test_preferences_validate():
    assert UserPreferences.validate("dark") == {
        "theme": "light",
        "fontSize": "medium",
        "highContrast": False,
    }
    assert UserPreferences.validate({"theme": "dark", "fontSize": "small"})["theme"] == "dark"


def _order(pk, status, price=0, created_at=None):
    return Order(id=pk, status=status, price=price, created_at=created_at)


def test_sort_recent_first_keeps_insertion_order_on_ties():
    same = datetime(2024, 3, 1)
    orders = [
        _order(3, "pending", created_at=same),
        _order(1, "pending", created_at=same),
        _order(2, "pending", created_at=datetime(2024, 4, 1)),
        _order(4, "pending"),
    ]
    assert [o.id for o in sort_recent_first(orders)] == [2, 1, 3, 4]


def test_compute_client_stats_ignores_unknown_status():
    stats = compute_client_stats(
        [
            _order(1, "completed", price=100),
            _order(2, "archived", price=900),
            _order(3, "cancelled", price=50),
        ]
    )
    assert stats["totalOrders"] == 3
    assert stats["totalSpent"] == 100
    assert stats["ordersByStatus"]["cancelled"] == 1
    assert sum(stats["ordersByStatus"].values()) == 2


def test_compute_orders_stats_skips_orders_without_client():
    stats = compute_orders_stats_by_client(
        [(1, "pending"), (None, "pending"), (1, "archived")]
    )
    assert list(stats) == ["1"]
    assert stats["1"]["totalOrders"] == 2
    assert stats["1"]["pendingOrders"] == 1


def test_merge_checked_resources():
    orders = [
        Order(checked_resources={"1": True, "2": False}),
        Order(checked_resources={2: True}),
        Order(checked_resources=None),
    ]
    assert merge_checked_resources(orders) == {"1": True, "2": True}


def test_select_materials_up_to_or_at_bracket():
    materials = [
        Material(name="Cuivre", profession="Forge", level_range="75"),
        Material(name="Fer", professions=["Blacksmithing"], level_range="150"),
        Material(name="Mithril", profession="Forge", level_range="225"),
        Material(name="Sans niveau", profession="Forge"),
        Material(name="Lin", profession="Couture", level_range="75"),
    ]
    upto = select_materials(materials, "Blacksmithing", "150")
    assert [m.name for m in upto] == ["Cuivre", "Fer"]
    exact = select_materials(materials, "Forge", "1-150", exact=True)
    assert [m.name for m in exact] == ["Fer"]
    assert material_matches(materials[4], "Tailoring")


def test_check_amounts_accepts_lenient_values():
    check_amounts(
        {"price": "1500", "initialPayment": 12.5, "quantity": None, "x": float("inf")},
        ("price", "initialPayment", "quantity"),
    )
    check_amounts({"price": "beaucoup"}, ("price",))
    check_amounts({"price": 2**63 - 1}, ("price",))


@pytest.mark.parametrize(
    "value", [float("inf"), float("-inf"), float("nan"), 2**63, -(10**30), "1e400", 1e300]
)
def test_check_amounts_rejects(value):
    with pytest.raises(ValidationError) as excinfo:
        check_amounts({"price": value}, ("price",))
    assert excinfo.value.field == "price"
