from fastapi.testclient import TestClient

from app.core.config import settings
from app.main import app

API = "/api/v1"


def _register(client, email="trader@example.com", password="password123"):
    return client.post(f"{API}/auth/register", json={
        "email": email,
        "password": password,
        "firstName": "Tina",
        "lastName": "Trader"
    })


def test_register_and_login_sets_session_cookie(client):
    r = _register(client, email="Trader@Example.com")
    assert r.status_code == 201
    assert r.json()["email"] == "trader@example.com"
    assert "hashedPassword" not in r.json()

    r = client.post(f"{API}/auth/login", json={"email": "TRADER@example.com", "password": "password123"})
    assert r.status_code == 200
    assert r.json()["tokenType"] == "bearer"
    assert settings.SESSION_COOKIE_NAME in r.cookies

    me = client.get(f"{API}/users/me")
    assert me.status_code == 200
    assert me.json()["firstName"] == "Tina"


def test_duplicate_email_rejected(client):
    assert _register(client).status_code == 201
    r = _register(client, email="TRADER@example.com")
    assert r.status_code == 400
    assert r.json() == {"error": "User with this email already exists"}


def test_bad_credentials(client):
    _register(client)
    r = client.post(f"{API}/auth/login", json={"email": "trader@example.com", "password": "wrong-password"})
    assert r.status_code == 401
    assert r.json() == {"error": "Incorrect email or password"}


def test_bearer_token_accepted(client):
    _register(client)
    token = client.post(
        f"{API}/auth/login", json={"email": "trader@example.com", "password": "password123"}
    ).json()["accessToken"]

    fresh = TestClient(app)
    assert fresh.get(f"{API}/users/me").status_code == 401
    r = fresh.get(f"{API}/users/me", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 200


def test_invalid_token_rejected(client):
    r = client.get(f"{API}/users/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 401
    assert r.json() == {"error": "Unauthorized"}


def test_logout_clears_cookie(make_user):
    user = make_user()
    assert user.post("/auth/logout").json() == {"success": True}
    assert user.get("/users/me").status_code == 401


def test_update_profile(make_user):
    user = make_user("Old")
    r = user.put("/users/me", json={"firstName": "  New ", "photoUrl": "https://img.example.com/a.png"})
    assert r.status_code == 200
    assert r.json()["firstName"] == "New"
    assert r.json()["lastName"] == "User"
    assert r.json()["photoUrl"] == "https://img.example.com/a.png"


def test_short_password_rejected(client):
    r = _register(client, password="short")
    assert r.status_code == 400
    assert "error" in r.json()


def test_unknown_route_uses_error_shape(client):
    r = client.get(f"{API}/nope")
    assert r.status_code == 404
    assert r.json() == {"error": "Not Found"}


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "healthy"
