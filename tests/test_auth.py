from tests.conftest import register


def test_register_returns_token(client):
    body = register(client, email="Ana@Example.com")
    assert body["user"]["email"] == "ana@example.com"
    assert body["token"]
    assert body["token_type"] == "bearer"


def test_register_duplicate_email(client):
    register(client)
    response = client.post(
        "/api/auth/register", json={"name": "Other", "email": "ana@example.com", "password": "secret123"}
    )
    assert response.status_code == 409
    assert response.json()["detail"] == "Email already registered"


def test_register_validates_input(client):
    response = client.post("/api/auth/register", json={"name": "A1", "email": "bad", "password": "123"})
    assert response.status_code == 422


def test_login(client):
    register(client)
    response = client.post("/api/auth/login", json={"email": "ana@example.com", "password": "secret123"})
    assert response.status_code == 200
    assert response.json()["user"]["name"] == "Ana Smith"


def test_login_wrong_password(client):
    register(client)
    response = client.post("/api/auth/login", json={"email": "ana@example.com", "password": "nope-nope"})
    assert response.status_code == 401


def test_protected_route_requires_token(client):
    assert client.get("/api/auth/profile").status_code == 401
    response = client.get("/api/auth/profile", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401


def test_profile_and_update(client, auth_headers):
    profile = client.get("/api/auth/profile", headers=auth_headers).json()
    assert profile["total_habits"] == 0
    assert profile["total_logged_days"] == 0

    response = client.put("/api/auth/profile", json={"name": "  Ana B  "}, headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["name"] == "Ana B"


def test_verify(client, auth_headers):
    response = client.get("/api/auth/verify", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["user"]["email"] == "ana@example.com"


def test_health(client):
    assert client.get("/health").json()["status"] == "OK"
