import pytest

from models import Client, Order, OrderGroup


@pytest.fixture()
def orders(create):
    client_id = create(Client, name="Thrall")
    first = create(
        Order,
        client_id=client_id,
        client_name="Thrall",
        character="Goel",
        professions=[{"name": "Forge", "levelRange": "300"}],
        checked_resources={"1": True, "2": False},
    )
    second = create(
        Order,
        client_id=client_id,
        client_name="Thrall",
        character="Durotan",
        professions=[
            {"name": "Couture", "levelRange": "225"},
            {"levelRange": "75"},
        ],
        checked_resources={"2": True, "3": False},
    )
    return first, second


def test_create_group_with_orders(admin_client, orders, fetch):
    first, second = orders
    resp = admin_client.post(
        "/api/order-groups",
        json={"name": "Semaine 12", "orderIds": [first, second, 9999, "abc"]},
    )
    assert resp.status_code == 201
    group = resp.get_json()
    assert group["name"] == "Semaine 12"
    assert group["orderCount"] == 2
    assert fetch(Order, first)["orderGroupId"] == group["id"]


def test_create_group_requires_name(admin_client, db):
    assert admin_client.post("/api/order-groups", json={"name": ""}).status_code == 400
    assert admin_client.post("/api/order-groups", json={}).status_code == 400


def test_list_groups_with_counts(admin_client, orders, create):
    first, _ = orders
    admin_client.post("/api/order-groups", json={"name": "A", "orderIds": [first]})
    create(OrderGroup, name="Vide")

    groups = {g["name"]: g for g in admin_client.get("/api/order-groups").get_json()}
    assert groups["A"]["orderCount"] == 1
    assert groups["Vide"]["orderCount"] == 0


def test_get_group_includes_orders(admin_client, orders):
    first, second = orders
    group_id = admin_client.post(
        "/api/order-groups", json={"name": "A", "orderIds": [first, second]}
    ).get_json()["id"]

    group = admin_client.get(f"/api/order-groups/{group_id}").get_json()
    assert group["orderCount"] == 2
    assert {o["id"] for o in group["orders"]} == {first, second}


def test_update_group_replaces_membership(admin_client, orders, fetch):
    first, second = orders
    group_id = admin_client.post(
        "/api/order-groups", json={"name": "A", "orderIds": [first]}
    ).get_json()["id"]

    resp = admin_client.put(
        f"/api/order-groups/{group_id}",
        json={"name": "B", "description": "raid", "orderIds": [second]},
    )
    assert resp.status_code == 200
    group = resp.get_json()
    assert group["name"] == "B"
    assert group["description"] == "raid"
    assert [o["id"] for o in group["orders"]] == [second]
    assert fetch(Order, first)["orderGroupId"] is None
    assert fetch(Order, second)["orderGroupId"] == group_id


def test_update_group_order_ids_must_be_list(admin_client, create):
    group_id = create(OrderGroup, name="A")
    resp = admin_client.put(f"/api/order-groups/{group_id}", json={"orderIds": "1,2"})
    assert resp.status_code == 400


def test_delete_group_detaches_orders(admin_client, orders, fetch):
    first, second = orders
    group_id = admin_client.post(
        "/api/order-groups", json={"name": "A", "orderIds": [first, second]}
    ).get_json()["id"]

    resp = admin_client.delete(f"/api/order-groups/{group_id}")
    assert resp.status_code == 200
    assert resp.get_json() == {"success": True, "detachedOrders": 2}
    assert fetch(OrderGroup, group_id) is None
    assert fetch(Order, first) is not None
    assert fetch(Order, first)["orderGroupId"] is None


def test_group_resources_union(admin_client, orders):
    first, second = orders
    group_id = admin_client.post(
        "/api/order-groups", json={"name": "A", "orderIds": [first, second]}
    ).get_json()["id"]

    result = admin_client.get(f"/api/order-groups/{group_id}/resources").get_json()
    assert result["groupId"] == group_id
    assert result["groupName"] == "A"
    assert result["orderCount"] == 2
    # checked anywhere means checked; unchecked keys are left out
    assert result["checkedResources"] == {"1": True, "2": True}
    # entries without a name are skipped
    names = sorted(p["name"] for p in result["professions"])
    assert names == ["Couture", "Forge"]
    forge = next(p for p in result["professions"] if p["name"] == "Forge")
    assert forge["orderId"] == first
    assert forge["orderName"] == "Thrall - Goel"


def test_empty_group_resources(admin_client, create):
    group_id = create(OrderGroup, name="Vide")
    resp = admin_client.get(f"/api/order-groups/{group_id}/resources")
    assert resp.status_code == 200
    assert resp.get_json() == {
        "groupId": group_id,
        "groupName": "Vide",
        "professions": [],
        "checkedResources": {},
        "orderCount": 0,
    }


def test_unknown_group(admin_client, db):
    assert admin_client.get("/api/order-groups/55").status_code == 404
    assert admin_client.get("/api/order-groups/x/resources").status_code == 400
