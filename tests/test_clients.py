from datetime import datetime, timedelta

from models import Client, Order


def test_create_and_list_clients(admin_client):
    resp = admin_client.post(
        "/api/clients",
        json={"name": "Thrall", "realm": "Hyjal", "character": "Goel", "discord": "t#1"},
    )
    assert resp.status_code == 201
    created = resp.get_json()
    assert created["name"] == "Thrall"
    assert created["joinedDate"] is not None

    admin_client.post("/api/clients", json={"name": "Jaina"})
    names = [c["name"] for c in admin_client.get("/api/clients").get_json()]
    assert names == ["Jaina", "Thrall"]


def test_create_client_requires_name(admin_client):
    resp = admin_client.post("/api/clients", json={"name": "  "})
    assert resp.status_code == 400
    assert resp.get_json()["field"] == "name"


def test_get_update_client(admin_client, create):
    client_id = create(Client, name="Thrall", realm="Hyjal")

    resp = admin_client.put(
        f"/api/clients/{client_id}", json={"id": 999, "realm": "Elune"}
    )
    assert resp.status_code == 200
    data = resp.get_json()
    assert data["id"] == client_id
    assert data["realm"] == "Elune"
    assert data["name"] == "Thrall"

    assert admin_client.get(f"/api/clients/{client_id}").get_json()["realm"] == "Elune"


def test_unknown_and_invalid_client_ids(admin_client):
    assert admin_client.get("/api/clients/12345").status_code == 404
    assert admin_client.get("/api/clients/abc").status_code == 400
    assert admin_client.get("/api/clients/0").status_code == 400


def test_delete_client_refused_with_orders(admin_client, create, fetch):
    client_id = create(Client, name="Thrall")
    create(Order, client_id=client_id, client_name="Thrall")

    resp = admin_client.delete(f"/api/clients/{client_id}")
    assert resp.status_code == 400
    assert "1 commande(s)" in resp.get_json()["error"]
    assert fetch(Client, client_id) is not None


def test_delete_client_without_orders(admin_client, create, fetch):
    client_id = create(Client, name="Thrall")
    resp = admin_client.delete(f"/api/clients/{client_id}")
    assert resp.status_code == 200
    assert resp.get_json()["success"] is True
    assert fetch(Client, client_id) is None


def test_client_stats(admin_client, create):
    client_id = create(Client, name="Thrall")
    base = datetime(2024, 1, 1)
    statuses = ["completed", "completed", "pending", "in-progress", "cancelled", "pending"]
    for i, status in enumerate(statuses):
        create(
            Order,
            client_id=client_id,
            status=status,
            price=100 * (i + 1),
            created_at=base + timedelta(days=i),
        )

    resp = admin_client.get(f"/api/clients/{client_id}/stats")
    assert resp.status_code == 200
    stats = resp.get_json()
    assert stats["totalOrders"] == 6
    assert stats["ordersByStatus"] == {
        "completed": 2,
        "inProgress": 1,
        "pending": 2,
        "cancelled": 1,
    }
    # only completed orders count as revenue
    assert stats["totalSpent"] == 100 + 200
    assert len(stats["recentOrders"]) == 5
    assert stats["recentOrders"][0]["price"] == 600


def test_client_stats_without_orders(admin_client, create):
    client_id = create(Client, name="Jaina")
    stats = admin_client.get(f"/api/clients/{client_id}/stats").get_json()
    assert stats["totalOrders"] == 0
    assert stats["totalSpent"] == 0
    assert stats["recentOrders"] == []


def test_orders_stats_by_client(admin_client, create):
    thrall = create(Client, name="Thrall")
    jaina = create(Client, name="Jaina")
    create(Order, client_id=thrall, status="completed")
    create(Order, client_id=thrall, status="in-progress")
    create(Order, client_id=jaina, status="cancelled")

    stats = admin_client.get("/api/clients/orders-stats").get_json()
    assert stats[str(thrall)] == {
        "totalOrders": 2,
        "completedOrders": 1,
        "pendingOrders": 0,
        "inProgressOrders": 1,
        "cancelledOrders": 0,
    }
    assert stats[str(jaina)]["cancelledOrders"] == 1
