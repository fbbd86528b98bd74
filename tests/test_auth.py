from conftest import client, login, make_user, PASSWORD


def test_login_returns_token_and_user(employee):
    response = client.post("/api/auth/login", data={"username": "employee", "password": PASSWORD})
    assert response.status_code == 200
    data = response.json()
    assert data["token_type"] == "bearer"
    assert data["access_token"]
    assert data["user"]["username"] == "employee"
    assert data["user"]["manager_id"] == employee.manager_id
    assert "hashed_password" not in data["user"]


def test_login_with_wrong_password(employee):
    response = client.post("/api/auth/login", data={"username": "employee", "password": "nope"})
    assert response.status_code == 401
    assert response.json() == {"detail": "Invalid credentials", "error": "credentials"}


def test_disabled_account_cannot_login(db):
    make_user(db, "gone", is_active=False)
    response = client.post("/api/auth/login", data={"username": "gone", "password": PASSWORD})
    assert response.status_code == 401
    assert response.json()["detail"] == "Account disabled"


def test_me_requires_session(setup_database):
    assert client.get("/api/auth/me").status_code == 401
    response = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401


def test_logout_closes_session(employee):
    headers = login("employee")
    assert client.get("/api/auth/me", headers=headers).json()["username"] == "employee"

    assert client.post("/api/auth/logout", headers=headers).status_code == 200
    assert client.get("/api/auth/me", headers=headers).status_code == 401


def test_sessions_are_independent(employee):
    first = login("employee")
    second = login("employee")
    client.post("/api/auth/logout", headers=first)

    assert client.get("/api/auth/me", headers=second).status_code == 200


def test_update_profile(employee):
    headers = login("employee")
    response = client.put(
        "/api/auth/me",
        json={"full_name": "Eli E.", "email": "eli@acme.io"},
        headers=headers
    )
    assert response.status_code == 200
    assert response.json()["full_name"] == "Eli E."
    assert response.json()["email"] == "eli@acme.io"


def test_change_password(employee):
    headers = login("employee")

    response = client.post(
        "/api/auth/change-password",
        json={"current_password": "wrong", "new_password": "another123"},
        headers=headers
    )
    assert response.status_code == 400

    response = client.post(
        "/api/auth/change-password",
        json={"current_password": PASSWORD, "new_password": "another123"},
        headers=headers
    )
    assert response.status_code == 200
    assert login("employee", "another123")


def test_root_and_health():
    assert client.get("/").json()["docs"] == "/docs"
    assert client.get("/health").json()["status"] == "healthy"
