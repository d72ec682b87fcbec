def _forward(client, headers, code, **overrides):
    body = {
        "file_code": code,
        "recipient_department": "HR",
        "recipient_name": "Alice",
        "priority": "Urgent",
        "sent_through": "Peon",
    }
    body.update(overrides)
    return client.post("/forwards", json=body, headers=headers)


def test_full_lifecycle_over_http(client, auth_header, it_file, people):
    uma, hana, alice = (auth_header(people[k]) for k in ("uma", "hana", "alice"))

    r = _forward(client, uma, it_file.code)
    assert r.status_code == 201
    body = r.json()
    assert body["message"] == "File forwarded to HR Admin for review"
    assert body["data"]["recipient_name"] == "Hana"
    assert body["data"]["is_urgent"] is True
    forward_id = body["data"]["id"]

    r = client.get("/forwards/pending-admin/HR", headers=hana)
    assert r.status_code == 200
    assert [f["id"] for f in r.json()["data"]] == [forward_id]
    assert r.json()["data"][0]["file"]["title"] == "Server purchase"

    r = client.patch(f"/forwards/{forward_id}/approve", json={"distributed_to": "Alice"}, headers=hana)
    assert r.status_code == 200
    assert r.json()["data"]["status"] == "Distributed to Employee"

    r = client.patch(f"/forwards/{forward_id}/receive", headers=alice)
    assert r.status_code == 200
    assert r.json()["data"]["status"] == "Received"

    r = client.patch(f"/forwards/{forward_id}/complete", json={"completion_remarks": "done"}, headers=alice)
    assert r.status_code == 200
    assert r.json()["data"]["status"] == "Completed"

    r = client.get(f"/files/code/{it_file.code}", headers=alice)
    assert r.json()["data"]["status"] == "Received"

    r = client.get(f"/movements/file/{it_file.code}", headers=alice)
    assert r.json()["count"] == 5


def test_complete_without_body(client, auth_header, workflow, pending_forward, people):
    workflow.approve(people["hana"], pending_forward, "Alice")
    workflow.receive(people["alice"], pending_forward)
    r = client.patch(f"/forwards/{pending_forward.id}/complete", headers=auth_header(people["alice"]))
    assert r.status_code == 200
    assert r.json()["data"]["completion_remarks"] is None


def test_requires_token(client, it_file):
    r = _forward(client, {}, it_file.code)
    assert r.status_code == 401
    assert r.json() == {"success": False, "error": "Not authorized, no token"}


def test_wrong_department_admin_gets_403(client, auth_header, pending_forward, people):
    r = client.patch(
        f"/forwards/{pending_forward.id}/approve",
        json={"distributed_to": "Alice"},
        headers=auth_header(people["ian"]),
    )
    assert r.status_code == 403
    body = r.json()
    assert body["success"] is False
    assert body["reason"] == "department"
    assert body["error"] == "Not authorized to approve forwards for this department"


def test_plain_user_gets_role_reason(client, auth_header, pending_forward, people):
    r = client.patch(
        f"/forwards/{pending_forward.id}/reject",
        json={"rejection_reason": "no"},
        headers=auth_header(people["alice"]),
    )
    assert r.status_code == 403
    assert r.json()["reason"] == "role"


def test_state_conflict_is_400(client, auth_header, workflow, pending_forward, people):
    workflow.reject(people["hana"], pending_forward, "duplicate")
    r = client.patch(
        f"/forwards/{pending_forward.id}/approve",
        json={"distributed_to": "Alice"},
        headers=auth_header(people["hana"]),
    )
    assert r.status_code == 400
    body = r.json()
    assert body["code"] == "state_conflict"
    assert body["current_status"] == "Rejected"


def test_missing_admin_is_404(client, auth_header, it_file, people):
    r = _forward(client, auth_header(people["uma"]), it_file.code, recipient_department="Finance")
    assert r.status_code == 404
    assert r.json()["error"] == "No admin found for department: Finance"


def test_unknown_forward_is_404(client, auth_header, people):
    r = client.get("/forwards/not-a-uuid", headers=auth_header(people["sam"]))
    assert r.status_code == 404
    r = client.get("/forwards/00000000-0000-0000-0000-000000000000", headers=auth_header(people["sam"]))
    assert r.status_code == 404


def test_request_validation_envelope(client, auth_header, it_file, people):
    r = _forward(client, auth_header(people["uma"]), it_file.code, recipient_department="Marketing")
    assert r.status_code == 400
    body = r.json()
    assert body["success"] is False
    assert "recipient_department" in [e["field"] for e in body["errors"]]


def test_reject_needs_reason(client, auth_header, pending_forward, people):
    r = client.patch(
        f"/forwards/{pending_forward.id}/reject",
        json={"rejection_reason": "  "},
        headers=auth_header(people["hana"]),
    )
    assert r.status_code == 400
    assert r.json()["errors"][0]["field"] == "rejection_reason"


def test_inbox_outbox_and_stats(client, auth_header, workflow, pending_forward, people):
    workflow.approve(people["hana"], pending_forward, "Alice")

    r = client.get("/forwards/inbox", headers=auth_header(people["alice"]))
    assert r.json()["count"] == 1
    r = client.get("/forwards/outbox", headers=auth_header(people["uma"]))
    assert r.json()["count"] == 1

    r = client.get("/forwards/stats/HR", headers=auth_header(people["hana"]))
    assert r.status_code == 200
    assert r.json()["data"]["distributed_to_employee"] == 1
    r = client.get("/forwards/stats/HR", headers=auth_header(people["ian"]))
    assert r.status_code == 403


def test_admin_listing_is_paginated(client, auth_header, workflow, it_file, people):
    from filetrack.schemas.files import Department
    from filetrack.schemas.forwards import ForwardCreate

    for _ in range(3):
        workflow.create_forward(
            people["uma"], ForwardCreate(file_code=it_file.code, recipient_department=Department.hr, recipient_name="Bob")
        )
    r = client.get("/forwards/admin/HR?page=2&limit=2", headers=auth_header(people["hana"]))
    body = r.json()
    assert body["count"] == 1
    assert body["pagination"] == {"current_page": 2, "total_pages": 2, "total_items": 3, "items_per_page": 2}


def test_status_path_rejects_unknown_status(client, auth_header, people):
    r = client.get("/forwards/status/Lost", headers=auth_header(people["sam"]))
    assert r.status_code == 400
