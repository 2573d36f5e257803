from conftest import login

from models import Settings


def test_settings_empty_by_default(user_client):
    resp = user_client.get("/api/settings")
    assert resp.status_code == 200
    assert resp.get_json() == {}


def test_admin_saves_global_settings(admin_client):
    resp = admin_client.post(
        "/api/settings", json={"id": "ignored", "currency": "or", "maxOrders": 5}
    )
    assert resp.status_code == 200
    data = resp.get_json()
    assert data["key"] == "global"
    assert data["currency"] == "or"

    # POST replaces the whole document
    admin_client.post("/api/settings", json={"currency": "po"})
    data = admin_client.get("/api/settings").get_json()
    assert data["currency"] == "po"
    assert "maxOrders" not in data


def test_regular_user_cannot_write_settings(user_client, create):
    assert user_client.post("/api/settings", json={"currency": "or"}).status_code == 403
    create(Settings, key="discord", data={"webhook": "x"})
    resp = user_client.put("/api/settings/discord", json={"webhook": "y"})
    assert resp.status_code == 403


def test_settings_by_key(admin_client, create):
    create(Settings, key="discord", data={"webhook": "x", "channel": "commandes"})

    data = admin_client.get("/api/settings/discord").get_json()
    assert data["webhook"] == "x"

    # PUT merges into the stored document
    resp = admin_client.put("/api/settings/discord", json={"webhook": "y"})
    assert resp.status_code == 200
    assert resp.get_json()["webhook"] == "y"
    assert resp.get_json()["channel"] == "commandes"

    assert admin_client.get("/api/settings/absent").status_code == 404
    assert admin_client.put("/api/settings/absent", json={}).status_code == 404
    assert admin_client.get("/api/settings/bad!key").status_code == 400


def test_preferences_default_and_save(user_client):
    resp = user_client.get("/api/user-preferences")
    assert resp.get_json() == {"theme": "light", "fontSize": "medium", "highContrast": False}

    resp = user_client.post(
        "/api/user-preferences",
        json={"theme": "dark", "fontSize": "huge", "highContrast": True},
    )
    assert resp.status_code == 200
    # unknown values fall back to the defaults
    assert resp.get_json() == {"theme": "dark", "fontSize": "medium", "highContrast": True}

    user_client.post("/api/user-preferences", json={"theme": "light", "fontSize": "large"})
    assert user_client.get("/api/user-preferences").get_json() == {
        "theme": "light",
        "fontSize": "large",
        "highContrast": False,
    }


def test_preferences_are_per_user(client, admin_user, user_user):
    login(client, "admin")
    client.post("/api/user-preferences", json={"theme": "dark"})

    login(client, "user")
    assert client.get("/api/user-preferences").get_json()["theme"] == "light"
