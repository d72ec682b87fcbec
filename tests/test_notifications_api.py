from datetime import timedelta

from filetrack.db import utcnow
from filetrack.models.models import Notification
from filetrack.services import notifications


def test_forward_notifies_admin(client, auth_header, pending_forward, people):
    r = client.get("/notifications", headers=auth_header(people["hana"]))
    assert r.status_code == 200
    body = r.json()
    assert body["unread_count"] == 1
    assert body["pagination"]["total_items"] == 1
    note = body["data"][0]
    assert note["type"] == "file_forwarded"
    assert note["file_code"] == pending_forward.file_code
    assert note["forward_id"] == str(pending_forward.id)
    assert note["is_urgent"] is True


def test_mark_read_and_delete(client, auth_header, pending_forward, people):
    headers = auth_header(people["hana"])
    note_id = client.get("/notifications", headers=headers).json()["data"][0]["id"]

    r = client.patch(f"/notifications/{note_id}/read", headers=headers)
    assert r.json()["data"]["is_read"] is True
    assert r.json()["data"]["read_at"] is not None
    assert client.get("/notifications/unread-count", headers=headers).json()["data"]["unread_count"] == 0

    r = client.delete(f"/notifications/{note_id}", headers=headers)
    assert r.status_code == 200
    assert client.get(f"/notifications/{note_id}", headers=headers).status_code == 404


def test_other_users_notifications_are_invisible(client, auth_header, pending_forward, people):
    note_id = client.get("/notifications", headers=auth_header(people["hana"])).json()["data"][0]["id"]
    r = client.get(f"/notifications/{note_id}", headers=auth_header(people["uma"]))
    assert r.status_code == 404


def test_mark_all_read(client, auth_header, workflow, pending_forward, people):
    workflow.reject(people["hana"], pending_forward, "not ours")
    headers = auth_header(people["uma"])
    assert client.get("/notifications/unread-count", headers=headers).json()["data"]["unread_count"] == 1
    r = client.patch("/notifications/mark-all-read", headers=headers)
    assert r.json()["data"]["updated"] == 1
    body = client.get("/notifications?unread_only=true", headers=headers).json()
    assert body["data"] == []


def test_expired_notifications_are_hidden(db, client, auth_header, people):
    old = notifications.notify(db, people["bob"], "Old", "stale", type="system")
    old.expires_at = utcnow() - timedelta(minutes=1)
    db.commit()
    notifications.notify(db, people["bob"], "Fresh", "current", type="system")

    body = client.get("/notifications", headers=auth_header(people["bob"])).json()
    assert [n["title"] for n in body["data"]] == ["Fresh"]
    assert db.query(Notification).count() == 2


def test_only_admins_create_notifications(client, auth_header, people):
    payload = {"recipient_id": str(people["bob"].id), "title": "Audit", "message": "Bring files", "type": "system"}
    r = client.post("/notifications", json=payload, headers=auth_header(people["alice"]))
    assert r.status_code == 403
    r = client.post("/notifications", json=payload, headers=auth_header(people["hana"]))
    assert r.status_code == 201
    assert r.json()["data"]["recipient_name"] == "Bob"


def test_priority_mapping():
    assert notifications.notification_priority("Critical") == "urgent"
    assert notifications.notification_priority("Important") == "high"
    assert notifications.notification_priority(None) == "normal"
