import pytest

from models import Client, Order
from validation import json_schema
from validation.schemas import ENDPOINT_SCHEMAS, SCHEMAS


def test_every_mapped_schema_exists():
    assert set(ENDPOINT_SCHEMAS.values()) <= set(SCHEMAS)


def test_validator_reports_paths():
    errors = json_schema._validator.validate(
        "order_create", {"clientId": 1, "status": "lost", "price": []}
    )
    paths = {"/".join(map(str, e.path)) for e in errors}
    assert paths == {"status", "price"}


def test_unknown_schema_key_accepts_anything():
    assert json_schema._validator.validate("nope", {"x": 1}) == []


def test_order_status_rejected_before_view(admin_client, create):
    client_id = create(Client, name="Thrall")
    order_id = create(Order, client_id=client_id)

    resp = admin_client.put(f"/api/orders/{order_id}", json={"status": "lost"})
    assert resp.status_code == 400
    data = resp.get_json()
    assert data["error"] == "Erreur de validation JSON"
    assert [d["path"] for d in data["details"]] == ["status"]


def test_register_missing_password_reports_root(client):
    resp = client.post("/api/auth/register", json={"username": "thrall"})
    assert resp.status_code == 400
    details = resp.get_json()["details"]
    assert {d["path"] for d in details} == {"$"}


@pytest.mark.parametrize(
    "payload",
    [
        {"checkedResources": {"1": "oui"}},
        {"checkedResources": {"1": True}, "extra": 1},
    ],
)
def test_checked_resources_schema(admin_client, create, payload):
    client_id = create(Client, name="Thrall")
    order_id = create(Order, client_id=client_id)
    resp = admin_client.put(f"/api/orders/{order_id}/resources", json=payload)
    expected = 400 if payload["checkedResources"]["1"] == "oui" else 200
    assert resp.status_code == expected


def test_group_order_ids_must_be_array(admin_client, db):
    resp = admin_client.post("/api/order-groups", json={"name": "A", "orderIds": 5})
    assert resp.status_code == 400
    assert resp.get_json()["details"][0]["path"] == "orderIds"
