from datetime import datetime

from filetrack.models.models import File
from filetrack.schemas.files import Department, FileCreate, Priority
from filetrack.services import stats


def test_local_day_bounds_follow_office_timezone():
    # 20:00 UTC is already the next day in Asia/Kolkata (+05:30)
    start, end = stats.local_day_bounds(datetime(2026, 3, 10, 20, 0), "Asia/Kolkata")
    assert start == datetime(2026, 3, 10, 18, 30)
    assert end == datetime(2026, 3, 11, 18, 30)

    start, _ = stats.local_day_bounds(datetime(2026, 3, 10, 10, 0), "Asia/Kolkata")
    assert start == datetime(2026, 3, 9, 18, 30)


def test_dashboard_counts(db, workflow, people):
    workflow.create_file(people["uma"], FileCreate(title="A", department=Department.it, priority=Priority.critical))
    workflow.create_file(people["uma"], FileCreate(title="B", department=Department.it, type="Digital"))
    workflow.create_file(people["alice"], FileCreate(title="C", department=Department.hr))

    everything = stats.dashboard_stats(db)
    assert everything["total_files"] == 3
    assert everything["files_today"] == 3
    assert everything["urgent_files"] == 1
    assert everything["digital_files"] == 1
    assert everything["physical_files"] == 2

    it_only = stats.dashboard_stats(db, department="IT")
    assert it_only["total_files"] == 2


def test_files_from_yesterday_are_not_today(db, people):
    db.add(File(
        code="THDC-F-2026-0900", title="Old", department="IT", type="Physical",
        created_by="Uma", current_holder="Uma", created_at=datetime(2026, 3, 10, 18, 0),
    ))
    db.commit()
    counts = stats.dashboard_stats(db, now=datetime(2026, 3, 10, 20, 0))
    assert counts["total_files"] == 1
    assert counts["files_today"] == 0


def test_department_forward_stats_include_reserved_states(db, workflow, pending_forward, people):
    result = stats.department_forward_stats(db, "HR")
    assert result["total_forwards"] == 1
    assert result["pending_admin_review"] == 1
    assert result["urgent_forwards"] == 1
    assert result["today_forwards"] == 1
    assert result["admin_approved"] == 0
    assert result["in_transit"] == 0

    workflow.approve(people["hana"], pending_forward, "Alice")
    result = stats.department_forward_stats(db, "HR")
    assert result["pending_admin_review"] == 0
    assert result["distributed_to_employee"] == 1


def test_forwarding_stats_by_department(db, pending_forward):
    result = stats.forwarding_stats(db)
    assert result["total_forwards"] == 1
    assert result["by_department"]["HR"]["total"] == 1
    assert result["by_department"]["IT"]["total"] == 0
    assert set(result["by_department"]) == {"Administration", "Finance", "HR", "IT", "Procurement", "Legal"}


def test_distributions_list_every_value(db, it_file):
    statuses = {row["status"]: row["count"] for row in stats.status_distribution(db)}
    assert statuses["Created"] == 1
    assert statuses["Complete"] == 0
    priorities = {row["priority"]: row["count"] for row in stats.priority_distribution(db)}
    assert priorities == {"Normal": 1, "Urgent": 0, "Important": 0, "Critical": 0}


def test_user_stats_and_activity(db, pending_forward, people):
    by_name = {row["name"]: row for row in stats.user_stats(db)}
    assert by_name["Uma"]["files_created"] == 1
    assert by_name["Uma"]["files_received"] == 1
    activity = stats.recent_activities(db, limit=1)
    assert len(activity) == 1
    assert len(stats.timeline(db, days=1)) == 2
