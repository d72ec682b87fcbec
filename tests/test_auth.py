from filetrack.models.models import User


def test_register_then_login(client):
    r = client.post(
        "/auth/register",
        json={"name": "Nina", "email": "Nina@filetrack.io", "password": "hunter22", "department": "Finance"},
    )
    assert r.status_code == 201
    body = r.json()
    assert body["success"] is True
    assert body["user"]["role"] == "user"
    assert body["user"]["email"] == "nina@filetrack.io"

    r = client.post("/auth/login", json={"email": "nina@filetrack.io", "password": "hunter22"})
    assert r.status_code == 200
    token = r.json()["access_token"]

    r = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert r.json()["data"]["name"] == "Nina"
    assert r.json()["data"]["last_login_at"] is not None


def test_duplicate_registration(client, people):
    r = client.post(
        "/auth/register",
        json={"name": "Uma", "email": "uma@filetrack.io", "password": "secret123", "department": "IT"},
    )
    assert r.status_code == 400
    assert r.json()["error"] == "User already exists"


def test_registration_cannot_reuse_a_name(client, db, people):
    r = client.post(
        "/auth/register",
        json={"name": "alice ", "email": "other.alice@filetrack.io", "password": "secret123", "department": "IT"},
    )
    assert r.status_code == 400
    assert r.json()["error"] == "User already exists"
    assert db.query(User).filter(User.email == "other.alice@filetrack.io").first() is None


def test_bad_credentials(client, people):
    r = client.post("/auth/login", json={"email": "uma@filetrack.io", "password": "wrong-pass"})
    assert r.status_code == 401
    assert r.json() == {"success": False, "error": "Invalid credentials"}
    r = client.post("/auth/login", json={"email": "uma@filetrack.io", "password": "secret123"})
    assert r.status_code == 200


def test_short_password_and_bad_department(client):
    r = client.post(
        "/auth/register",
        json={"name": "Pat", "email": "pat@filetrack.io", "password": "123", "department": "Marketing"},
    )
    assert r.status_code == 400
    fields = {e["field"] for e in r.json()["errors"]}
    assert fields == {"password", "department"}


def test_garbage_token(client):
    r = client.get("/auth/me", headers={"Authorization": "Bearer not.a.jwt"})
    assert r.status_code == 401
    assert r.json()["error"] == "Invalid token"


def test_users_listing_is_admin_only(client, auth_header, people):
    assert client.get("/users", headers=auth_header(people["uma"])).status_code == 403
    r = client.get("/users", headers=auth_header(people["hana"]))
    assert {u["name"] for u in r.json()["data"]} == {"Hana", "Alice", "Bob"}
    r = client.get("/users/employees/HR", headers=auth_header(people["uma"]))
    assert [u["name"] for u in r.json()["data"]] == ["Alice", "Bob"]


def test_profile_update_changes_email_only(client, auth_header, people):
    headers = auth_header(people["uma"])
    r = client.put("/auth/profile", json={"email": "ian@filetrack.io"}, headers=headers)
    assert r.status_code == 400
    assert r.json()["error"] == "Email is already taken"

    r = client.put("/auth/profile", json={"email": "Uma.New@filetrack.io", "name": "Alice"}, headers=headers)
    assert r.status_code == 200
    assert r.json()["user"]["email"] == "uma.new@filetrack.io"
    assert r.json()["user"]["name"] == "Uma"


def test_change_password(client, auth_header, people):
    headers = auth_header(people["uma"])
    r = client.put(
        "/auth/change-password",
        json={"current_password": "wrong-pass", "new_password": "newpass1"},
        headers=headers,
    )
    assert r.status_code == 400
    assert r.json()["error"] == "Current password is incorrect"

    r = client.put(
        "/auth/change-password",
        json={"current_password": "secret123", "new_password": "newpass1"},
        headers=headers,
    )
    assert r.status_code == 200
    assert r.json()["message"] == "Password updated successfully"
    assert client.post("/auth/login", json={"email": "uma@filetrack.io", "password": "secret123"}).status_code == 401
    assert client.post("/auth/login", json={"email": "uma@filetrack.io", "password": "newpass1"}).status_code == 200
