"""Resource aggregation: order groups and the profession calculator."""

from __future__ import annotations

import copy
import math
from typing import Any, Dict, Iterable, List, Optional

from models import Material, Order, OrderGroup
from utils.professions import level_value, profession_variants
from utils.text_utils import to_int


# ----------------------------- Order groups ----------------------------------


def merge_checked_resources(orders: Iterable[Order]) -> Dict[str, bool]:
    """Union of the checked flags: checked in any order means checked."""
    merged: Dict[str, bool] = {}
    for order in orders:
        for material_id, checked in (order.checked_resources or {}).items():
            if checked:
                merged[str(material_id)] = True
    return merged


def flatten_professions(orders: Iterable[Order]) -> List[Dict[str, Any]]:
    """Every order's profession entries, tagged with the originating order."""
    flattened = []
    for order in orders:
        for entry in order.professions or []:
            if not isinstance(entry, dict) or not entry.get("name"):
                continue
            item = dict(entry)
            item.update(
                {
                    "orderId": order.id,
                    "orderName": order.display_name,
                    "clientId": order.client_id,
                    "clientName": order.client_name,
                }
            )
            flattened.append(item)
    return flattened


def aggregate_group_resources(
    group: OrderGroup, orders: List[Order]
) -> Dict[str, Any]:
    """Combined view of a group; an empty group gives an empty result."""
    return {
        "groupId": group.id,
        "groupName": group.name,
        "professions": flatten_professions(orders),
        "checkedResources": merge_checked_resources(orders),
        "orderCount": len(orders),
    }


# ----------------------------- Calculator ------------------------------------


def material_matches(material: Material, profession: str) -> bool:
    return bool(material.profession_names() & profession_variants(profession))


def select_materials(
    materials: Iterable[Material], profession: str, level_range, exact: bool = False
) -> List[Material]:
    """Materials of a profession up to (or exactly at) a level bracket."""
    target = level_value(level_range)
    selected = []
    for material in materials:
        if not material_matches(material, profession):
            continue
        level = level_value(material.level_range)
        if target is None or level is None:
            continue
        if (exact and level == target) or (not exact and level <= target):
            selected.append(material)
    return selected


def _resource_needed(
    bar: Dict[str, Any], resource: Optional[Dict[str, Any]]
) -> Optional[int]:
    if not isinstance(resource, dict) or not resource.get("name"):
        return None
    crafting = bar["barCrafting"]
    output_quantity = to_int(crafting.get("outputQuantity"), 1) or 1
    crafts = math.ceil(bar["quantity"] / output_quantity)
    return crafts * (to_int(resource.get("quantityPerBar"), 1) or 1)


def process_crafting_relationships(materials: Iterable[dict]) -> List[dict]:
    """Merge duplicates by name, then size bar resources.

    A duplicate adds its quantity (missing counts as 1). For a bar,
    crafts = ceil(quantity / outputQuantity) and each resource needs
    crafts * quantityPerBar; the resource keeps max(existing, needed) and
    records the bar in ``craftedFor``.
    """
    by_name: Dict[str, dict] = {}
    for material in materials:
        name = material.get("name")
        if not name:
            continue
        existing = by_name.get(name)
        if existing:
            existing["quantity"] = (existing.get("quantity") or 1) + (
                material.get("quantity") or 1
            )
        else:
            merged = copy.deepcopy(material)
            merged["quantity"] = material.get("quantity") or 1
            by_name[name] = merged

    for material in by_name.values():
        crafting = material.get("barCrafting")
        if not material.get("isBar") or not isinstance(crafting, dict):
            continue
        resources = [crafting.get("primaryResource")]
        if crafting.get("hasSecondaryResource"):
            resources.append(crafting.get("secondaryResource"))
        for resource in resources:
            needed = _resource_needed(material, resource)
            if needed is None:
                continue
            target = by_name.get(resource["name"])
            if target is None:
                continue
            target.setdefault("craftedFor", []).append(
                {"name": material["name"], "quantity": needed}
            )
            target["quantity"] = max(target.get("quantity") or 0, needed)

    return list(by_name.values())


def calculate_resources(
    materials: List[Material], selections: Iterable[dict]
) -> List[dict]:
    """Materials needed to level every selected profession to its bracket."""
    collected: List[dict] = []
    for selection in selections:
        if not isinstance(selection, dict):
            continue
        profession = selection.get("profession")
        level_range = selection.get("levelRange")
        if not profession or not level_range:
            continue
        collected.extend(
            m.to_dict() for m in select_materials(materials, profession, level_range)
        )
    return process_crafting_relationships(collected)


# ----------------------------- Multi-profession ------------------------------


def _combined_entry(name: str, **extra) -> dict:
    entry = {
        "name": name,
        "iconName": None,
        "categoryId": None,
        "quantity": 0,
        "sources": [],
        "isBar": False,
        "barCrafting": None,
        "isPrimaryResource": True,
    }
    entry.update(extra)
    return entry


def _available(entry: dict) -> int:
    return entry["needed"] if "needed" in entry else entry["quantity"]


def combine_professions(
    materials: List[Material],
    selections: Iterable[dict],
    provided: Optional[Dict[str, Any]] = None,
) -> List[dict]:
    """Shopping list across several profession brackets.

    1. sum materials of each exact bracket, with their sources
    2. add the resources of every bar, marking bars as intermediate
    3. subtract what the client provides into ``needed``
    4. size ``craftableAmount`` of each bar from the available resources
    """
    combined: Dict[str, dict] = {}

    for selection in selections:
        if not isinstance(selection, dict):
            continue
        profession = selection.get("profession")
        level_range = selection.get("levelRange")
        if not profession or not level_range:
            continue
        for material in select_materials(materials, profession, level_range, exact=True):
            entry = combined.get(material.name)
            if entry is None:
                entry = combined[material.name] = _combined_entry(
                    material.name,
                    iconName=material.icon_name,
                    categoryId=material.category_id,
                    isBar=bool(material.is_bar),
                    barCrafting=copy.deepcopy(material.bar_crafting),
                )
            quantity = material.quantity or 0
            entry["quantity"] += quantity
            entry["sources"].append(
                {"profession": profession, "levelRange": level_range, "quantity": quantity}
            )

    bars = [e for e in combined.values() if e["isBar"] and e["barCrafting"]]
    for bar in bars:
        crafting = bar["barCrafting"]
        resources = [crafting.get("primaryResource")]
        if crafting.get("hasSecondaryResource"):
            resources.append(crafting.get("secondaryResource"))
        for resource in resources:
            if not isinstance(resource, dict) or not resource.get("name"):
                continue
            needed = bar["quantity"] * (to_int(resource.get("quantityPerBar"), 1) or 1)
            entry = combined.get(resource["name"])
            if entry is None:
                entry = combined[resource["name"]] = _combined_entry(
                    resource["name"], iconName=resource.get("iconName")
                )
            entry["quantity"] += needed
            entry["sources"].append(
                {"profession": f"Ressource pour {bar['name']}", "quantity": needed}
            )
        bar["isPrimaryResource"] = False

    for name, amount in (provided or {}).items():
        amount = to_int(amount)
        if name in combined and amount > 0:
            combined[name]["provided"] = amount
            combined[name]["needed"] = max(0, combined[name]["quantity"] - amount)

    for bar in bars:
        crafting = bar["barCrafting"]
        limits = [_available(bar)]
        details = {}
        for key, enabled in (
            ("primaryResource", True),
            ("secondaryResource", bool(crafting.get("hasSecondaryResource"))),
        ):
            resource = crafting.get(key)
            if not enabled or not isinstance(resource, dict):
                continue
            per_bar = to_int(resource.get("quantityPerBar"))
            source = combined.get(resource.get("name"))
            if source is not None and per_bar > 0:
                limits.append(_available(source) // per_bar)
            details[key] = {
                "name": resource.get("name"),
                "iconName": resource.get("iconName"),
                "quantityPerBar": per_bar,
            }
        bar["craftableAmount"] = min(limits)
        for detail in details.values():
            detail["totalNeeded"] = bar["craftableAmount"] * detail["quantityPerBar"]
        bar["craftingDetails"] = details

    return list(combined.values())
