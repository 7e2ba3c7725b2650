from conftest import auth, signup


def test_signup_and_me(client):
    token = signup(client, "dev@example.com", "developer", "Dana Developer")
    res = client.get("/api/v1/auth/me", headers=auth(token))
    assert res.status_code == 200
    body = res.json()
    assert body["email"] == "dev@example.com"
    assert body["roles"] == ["developer"]
    assert body["primary_role"] == "developer"


def test_duplicate_signup_is_conflict(client):
    signup(client, "dup@example.com", "customer")
    res = client.post(
        "/api/v1/auth/signup",
        json={"email": "dup@example.com", "password": "secret123", "role": "customer"},
    )
    assert res.status_code == 409
    assert res.json()["code"] == "conflict"


def test_login(client):
    signup(client, "cust@example.com", "customer")
    res = client.post("/api/v1/auth/login", json={"email": "cust@example.com", "password": "secret123"})
    assert res.status_code == 200
    assert res.json()["roles"] == ["customer"]
    assert res.json()["token_type"] == "bearer"


def test_login_wrong_password(client):
    signup(client, "cust@example.com", "customer")
    res = client.post("/api/v1/auth/login", json={"email": "cust@example.com", "password": "wrong1234"})
    assert res.status_code == 401
    assert res.json() == {
        "detail": "Invalid email or password. Please check your credentials and try again.",
        "code": "authentication_failed",
    }


def test_weak_password_rejected(client):
    res = client.post(
        "/api/v1/auth/signup",
        json={"email": "weak@example.com", "password": "onlyletters", "role": "customer"},
    )
    assert res.status_code == 422


def test_me_requires_token(client):
    assert client.get("/api/v1/auth/me").status_code == 401
    res = client.get("/api/v1/auth/me", headers=auth("not-a-token"))
    assert res.status_code == 401


def test_developer_can_add_customer_role(client):
    token = signup(client, "dev@example.com", "developer")
    res = client.post("/api/v1/auth/roles/customer", headers=auth(token))
    assert res.status_code == 200
    assert res.json()["roles"] == ["customer", "developer"]
    assert res.json()["primary_role"] == "developer"
    # idempotent
    res = client.post("/api/v1/auth/roles/customer", headers=auth(token))
    assert res.json()["roles"] == ["customer", "developer"]
    assert client.get("/api/v1/customers/me", headers=auth(token)).status_code == 200


def test_health(client):
    res = client.get("/health")
    assert res.status_code == 200
    assert res.json()["status"] == "healthy"
    assert res.headers["X-Content-Type-Options"] == "nosniff"


def test_api_responses_carry_request_headers(client):
    res = client.get("/api/v1/auth/me", headers={"X-Request-ID": "req-123"})
    assert res.status_code == 401
    assert res.headers["X-Request-ID"] == "req-123"
    assert res.headers["X-Response-Time"].endswith("s")
    assert res.headers["Cache-Control"] == "no-store"
