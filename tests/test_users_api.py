from filetrack.models.models import User


def _new_user(department="HR", role="user", name="Nora"):
    return {
        "name": name,
        "email": f"{name.lower()}@filetrack.io",
        "password": "secret123",
        "department": department,
        "role": role,
    }


def test_admin_creates_users_in_own_department(client, auth_header, people):
    r = client.post("/users", json=_new_user("HR", "admin"), headers=auth_header(people["hana"]))
    assert r.status_code == 201
    assert r.json()["data"]["role"] == "admin"
    assert r.json()["data"]["department"] == "HR"

    r = client.post("/users", json=_new_user("IT", name="Omar"), headers=auth_header(people["hana"]))
    assert r.status_code == 403
    assert r.json()["reason"] == "department"

    r = client.post("/users", json=_new_user("IT", name="Omar"), headers=auth_header(people["sam"]))
    assert r.status_code == 201


def test_plain_users_cannot_manage_users(client, auth_header, people):
    r = client.post("/users", json=_new_user("HR"), headers=auth_header(people["alice"]))
    assert r.status_code == 403
    r = client.patch(
        f"/users/{people['bob'].id}/reset-password",
        json={"new_password": "takeover1"},
        headers=auth_header(people["alice"]),
    )
    assert r.status_code == 403


def test_create_rejects_duplicates_and_superadmin_role(client, auth_header, people):
    headers = auth_header(people["sam"])
    r = client.post("/users", json=_new_user("IT", name="BOB"), headers=headers)
    assert r.status_code == 400
    assert r.json()["error"] == "User already exists"

    r = client.post("/users", json=_new_user("IT", "superadmin"), headers=headers)
    assert r.status_code == 400
    assert [e["field"] for e in r.json()["errors"]] == ["role"]


def test_update_user_respects_department(client, db, auth_header, people):
    alice = people["alice"]
    r = client.put(f"/users/{alice.id}", json={"role": "admin"}, headers=auth_header(people["hana"]))
    assert r.status_code == 200
    assert r.json()["data"]["role"] == "admin"

    r = client.put(f"/users/{alice.id}", json={"department": "IT"}, headers=auth_header(people["hana"]))
    assert r.status_code == 403
    db.refresh(alice)
    assert alice.department == "HR"

    r = client.put(f"/users/{alice.id}", json={"role": "user"}, headers=auth_header(people["ian"]))
    assert r.status_code == 403

    r = client.put(f"/users/{alice.id}", json={"email": "bob@filetrack.io"}, headers=auth_header(people["sam"]))
    assert r.status_code == 400
    assert r.json()["error"] == "Email is already taken"

    r = client.put(f"/users/{alice.id}", json={"department": "IT"}, headers=auth_header(people["sam"]))
    assert r.status_code == 200
    assert r.json()["data"]["department"] == "IT"


def test_unknown_user(client, auth_header, people):
    r = client.put("/users/not-a-uuid", json={"role": "admin"}, headers=auth_header(people["sam"]))
    assert r.status_code == 404
    assert r.json()["error"] == "User not found"


def test_delete_deactivates_and_keeps_name_reserved(client, db, auth_header, people):
    bob = people["bob"]
    r = client.delete(f"/users/{bob.id}", headers=auth_header(people["hana"]))
    assert r.status_code == 200
    assert r.json()["message"] == "User deleted successfully"
    db.refresh(bob)
    assert bob.is_active is False

    r = client.post("/auth/login", json={"email": "bob@filetrack.io", "password": "secret123"})
    assert r.status_code == 401

    r = client.post(
        "/auth/register",
        json={"name": "Bob", "email": "new.bob@filetrack.io", "password": "secret123", "department": "HR"},
    )
    assert r.status_code == 400
    assert db.query(User).filter(User.name == "Bob").count() == 1


def test_superadmin_cannot_be_deleted(client, make_user, auth_header, people):
    root = make_user("Root", "Administration", "superadmin")
    r = client.delete(f"/users/{people['sam'].id}", headers=auth_header(root))
    assert r.status_code == 403
    assert r.json()["error"] == "Cannot delete superadmin user"


def test_reset_password(client, auth_header, people):
    r = client.patch(
        f"/users/{people['bob'].id}/reset-password",
        json={"new_password": "123"},
        headers=auth_header(people["hana"]),
    )
    assert r.status_code == 400

    r = client.patch(
        f"/users/{people['bob'].id}/reset-password",
        json={"new_password": "fresh123"},
        headers=auth_header(people["hana"]),
    )
    assert r.status_code == 200
    assert r.json()["message"] == "Password reset successfully"
    r = client.post("/auth/login", json={"email": "bob@filetrack.io", "password": "fresh123"})
    assert r.status_code == 200
