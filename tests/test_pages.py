from werkzeug.security import generate_password_hash

from models import Client, Order, OrderGroup, User


def test_login_page_renders(client):
    resp = client.get("/login")
    assert resp.status_code == 200
    assert "csrf_token" in resp.get_data(as_text=True)


def test_form_login_sets_cookie_and_redirects(client, admin_user):
    resp = client.post(
        "/login",
        data={"username": "admin", "password": "pass", "redirect": "/dashboard"},
    )
    assert resp.status_code == 302
    assert resp.headers["Location"].endswith("/dashboard")
    assert "auth_token=" in resp.headers["Set-Cookie"]


def test_form_login_ignores_external_redirect(client, admin_user):
    resp = client.post(
        "/login",
        data={"username": "admin", "password": "pass", "redirect": "//evil.example"},
    )
    assert resp.status_code == 302
    assert "evil.example" not in resp.headers["Location"]


def test_form_login_failure(client, admin_user):
    resp = client.post("/login", data={"username": "admin", "password": "bad"})
    assert resp.status_code == 401
    assert "Identifiants invalides" in resp.get_data(as_text=True)


def test_form_register(client):
    resp = client.post("/register", data={"username": "thrall", "password": "lok-tar"})
    assert resp.status_code == 302
    assert resp.headers["Location"].endswith("/login")

    resp = client.post("/register", data={"username": "thrall", "password": "lok-tar"})
    assert resp.status_code == 400


def test_dashboard_stats(client, create):
    create(User, username="admin", password=generate_password_hash("pass"), role="admin")
    client_id = create(Client, name="Thrall")
    group_id = create(OrderGroup, name="Semaine")
    create(Order, client_id=client_id, status="pending", order_group_id=group_id)
    create(Order, client_id=client_id, status="completed")

    client.post("/api/auth/login", json={"username": "admin", "password": "pass"})
    resp = client.get("/dashboard")
    assert resp.status_code == 200
    assert resp.headers["Cache-Control"] == "no-cache"
    body = resp.get_data(as_text=True)
    assert "Clients : <strong>1</strong>" in body
    assert "Commandes : <strong>2</strong>" in body
    assert "Groupes en cours : <strong>1</strong>" in body
    assert "En attente</span> 1" in body


def test_index_redirects_to_dashboard(admin_client):
    resp = admin_client.get("/")
    assert resp.status_code == 302
    assert resp.headers["Location"].endswith("/dashboard")


def test_logout_page(admin_client):
    resp = admin_client.get("/logout")
    assert resp.status_code == 302
    assert admin_client.get("/api/auth/me").status_code == 401
