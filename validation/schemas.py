"""
JSON Schema (draft 2020-12) for the JSON request bodies that have a shape
worth enforcing up front.

- Registration and login
- Order creation, status and checked resources
- Order group creation
- Resource calculator

Payloads stay open (additionalProperties) where the routes coerce values
themselves, e.g. materials and user preferences.
"""

from __future__ import annotations

from typing import Any, Dict, Tuple

from utils.statuses import OrderStatus

SCHEMA_URI = "https://json-schema.org/draft/2020-12/schema"

_ID = {"type": ["integer", "string"], "description": "Identifiant"}
_AMOUNT = {"type": ["integer", "number", "string", "null"]}


def _credentials(extra: Dict[str, Any] | None = None) -> Dict[str, Any]:
    properties = {
        "username": {"type": "string", "minLength": 1, "maxLength": 50},
        "password": {"type": "string", "minLength": 1, "maxLength": 255},
    }
    properties.update(extra or {})
    return {
        "$schema": SCHEMA_URI,
        "type": "object",
        "required": ["username", "password"],
        "properties": properties,
    }


def _profession_selection() -> Dict[str, Any]:
    return {
        "type": "object",
        "properties": {
            "profession": {"type": ["string", "null"]},
            "levelRange": {"type": ["string", "integer", "null"]},
        },
    }


def build_schemas() -> Dict[str, Dict[str, Any]]:
    """Schemas by key."""
    order_properties = {
        "clientId": {"anyOf": [_ID, {"type": "null"}]},
        "clientName": {"type": ["string", "null"]},
        "clientRealm": {"type": ["string", "null"]},
        "character": {"type": ["string", "null"]},
        "professions": {"type": ["array", "null"], "items": {"type": "object"}},
        "status": {"type": "string", "enum": OrderStatus.all()},
        "price": _AMOUNT,
        "initialPayment": _AMOUNT,
        "notes": {"type": ["string", "null"]},
        "checkedResources": {"type": "object"},
        "orderGroupId": {"anyOf": [_ID, {"type": "null"}]},
    }
    return {
        "auth_register": _credentials(
            {"adminKey": {"type": ["string", "null"], "maxLength": 255}}
        ),
        "auth_login": _credentials(),
        "order_create": {
            "$schema": SCHEMA_URI,
            "type": "object",
            "properties": order_properties,
        },
        "order_update": {
            "$schema": SCHEMA_URI,
            "type": "object",
            "properties": order_properties,
        },
        "order_resources": {
            "$schema": SCHEMA_URI,
            "type": "object",
            "required": ["checkedResources"],
            "properties": {
                "checkedResources": {
                    "type": "object",
                    "additionalProperties": {"type": ["boolean", "null"]},
                },
            },
        },
        "order_group_create": {
            "$schema": SCHEMA_URI,
            "type": "object",
            "required": ["name"],
            "properties": {
                "name": {"type": "string", "minLength": 1, "maxLength": 200},
                "description": {"type": ["string", "null"]},
                "orderIds": {"type": "array", "items": _ID},
            },
        },
        "order_group_update": {
            "$schema": SCHEMA_URI,
            "type": "object",
            "properties": {
                "name": {"type": "string", "maxLength": 200},
                "description": {"type": ["string", "null"]},
                "orderIds": {"type": "array", "items": _ID},
            },
        },
        "calculate_resources": {
            "$schema": SCHEMA_URI,
            "type": "object",
            "required": ["professions"],
            "properties": {
                "professions": {
                    "type": "array",
                    "minItems": 1,
                    "items": _profession_selection(),
                },
                "provided": {
                    "type": "object",
                    "additionalProperties": _AMOUNT,
                },
            },
        },
    }


SCHEMAS: Dict[str, Dict[str, Any]] = build_schemas()


# (endpoint, method) → schema key; request.endpoint is "<blueprint>.<function>"
ENDPOINT_SCHEMAS: Dict[Tuple[str, str], str] = {
    ("auth.register", "POST"): "auth_register",
    ("auth.login", "POST"): "auth_login",
    ("orders.create_order", "POST"): "order_create",
    ("orders.update_order", "PUT"): "order_update",
    ("orders.update_order_resources", "PUT"): "order_resources",
    ("order_groups.create_group", "POST"): "order_group_create",
    ("order_groups.update_group", "PUT"): "order_group_update",
    ("calculator.calculate_resources", "POST"): "calculate_resources",
    ("calculator.combine_resources", "POST"): "calculate_resources",
}
