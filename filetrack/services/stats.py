"""
Dashboard and forwarding statistics.

Pure derived views; every number is recomputed from the current rows.
"today" and "this week" use the configured office timezone.
"""
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

import pytz
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..config import settings
from ..models.models import File, Forward, Movement, User
from ..schemas.files import DEPARTMENTS, FileStatus, Priority, URGENT_PRIORITIES
from ..schemas.forwards import ForwardStatus
from .audit import list_movements, serialize_movement


def local_day_bounds(now: Optional[datetime] = None, tz_name: Optional[str] = None) -> Tuple[datetime, datetime]:
    """Start/end of the current local day as naive UTC datetimes."""
    tz = pytz.timezone(tz_name or settings.tz_default)
    if now is None:
        local_now = datetime.now(tz)
    else:
        local_now = pytz.utc.localize(now).astimezone(tz) if now.tzinfo is None else now.astimezone(tz)
    start_local = tz.localize(datetime(local_now.year, local_now.month, local_now.day))
    start_utc = start_local.astimezone(pytz.utc).replace(tzinfo=None)
    return start_utc, start_utc + timedelta(days=1)


def _utc_now_naive() -> datetime:
    return datetime.now(pytz.utc).replace(tzinfo=None)


def _counts_by(db: Session, column, *filters) -> Dict[str, int]:
    q = db.query(column, func.count()).group_by(column)
    for f in filters:
        q = q.filter(f)
    return {k: n for k, n in q.all() if k is not None}


def dashboard_stats(db: Session, department: Optional[str] = None, now: Optional[datetime] = None) -> Dict[str, int]:
    q = db.query(File)
    if department:
        q = q.filter(File.department == department)
    start, end = local_day_bounds(now)
    return {
        "total_files": q.count(),
        "files_today": q.filter(File.created_at >= start, File.created_at < end).count(),
        "pending_files": q.filter(File.status == FileStatus.on_hold.value).count(),
        "completed_files": q.filter(File.status == FileStatus.complete.value).count(),
        "urgent_files": q.filter(File.priority.in_(URGENT_PRIORITIES)).count(),
        "digital_files": q.filter(File.type == "Digital").count(),
        "physical_files": q.filter(File.type == "Physical").count(),
    }


def department_breakdown(db: Session) -> List[Dict[str, Any]]:
    out = []
    for dept in DEPARTMENTS:
        q = db.query(File).filter(File.department == dept)
        out.append({
            "department": dept,
            "count": q.count(),
            "pending": q.filter(File.status == FileStatus.on_hold.value).count(),
            "completed": q.filter(File.status == FileStatus.complete.value).count(),
            "urgent": q.filter(File.priority.in_(URGENT_PRIORITIES)).count(),
        })
    return out


def status_distribution(db: Session) -> List[Dict[str, Any]]:
    counts = _counts_by(db, File.status)
    return [{"status": s.value, "count": counts.get(s.value, 0)} for s in FileStatus]


def priority_distribution(db: Session) -> List[Dict[str, Any]]:
    counts = _counts_by(db, File.priority)
    return [{"priority": p.value, "count": counts.get(p.value, 0)} for p in Priority]


def _forward_status_counts(counts: Dict[str, int]) -> Dict[str, int]:
    return {
        "pending_admin_review": counts.get(ForwardStatus.pending_admin_review.value, 0),
        "admin_approved": counts.get(ForwardStatus.admin_approved.value, 0),
        "distributed_to_employee": counts.get(ForwardStatus.distributed_to_employee.value, 0),
        "in_transit": counts.get(ForwardStatus.in_transit.value, 0),
        "received": counts.get(ForwardStatus.received.value, 0),
        "completed": counts.get(ForwardStatus.completed.value, 0),
        "rejected": counts.get(ForwardStatus.rejected.value, 0),
    }


def department_forward_stats(db: Session, department: str, now: Optional[datetime] = None) -> Dict[str, int]:
    base = db.query(Forward).filter(Forward.recipient_department == department)
    counts = _counts_by(db, Forward.status, Forward.recipient_department == department)
    start, end = local_day_bounds(now)
    week_ago = (now or _utc_now_naive()) - timedelta(days=7)
    stats = {"total_forwards": base.count()}
    stats.update(_forward_status_counts(counts))
    stats.update({
        "urgent_forwards": base.filter(Forward.is_urgent == True).count(),
        "today_forwards": base.filter(Forward.sent_at >= start, Forward.sent_at < end).count(),
        "this_week_forwards": base.filter(Forward.sent_at >= week_ago).count(),
    })
    return stats


def forwarding_stats(db: Session) -> Dict[str, Any]:
    counts = _counts_by(db, Forward.status)
    stats: Dict[str, Any] = {"total_forwards": db.query(Forward).count()}
    stats.update(_forward_status_counts(counts))
    stats["urgent_forwards"] = db.query(Forward).filter(Forward.is_urgent == True).count()

    by_department = {}
    for dept in DEPARTMENTS:
        dept_counts = _counts_by(db, Forward.status, Forward.recipient_department == dept)
        by_department[dept] = {
            "total": sum(dept_counts.values()),
            "pending_admin_review": dept_counts.get(ForwardStatus.pending_admin_review.value, 0),
            "distributed": dept_counts.get(ForwardStatus.distributed_to_employee.value, 0),
            "completed": dept_counts.get(ForwardStatus.completed.value, 0),
            "urgent": db.query(Forward).filter(Forward.recipient_department == dept, Forward.is_urgent == True).count(),
        }
    stats["by_department"] = by_department
    return stats


def user_stats(db: Session) -> List[Dict[str, Any]]:
    created = _counts_by(db, File.created_by)
    held = _counts_by(db, File.current_holder)
    return [
        {
            "name": u.name,
            "department": u.department,
            "files_created": created.get(u.name, 0),
            "files_received": held.get(u.name, 0),
        }
        for u in db.query(User).order_by(User.name.asc()).all()
    ]


def recent_activities(db: Session, limit: int = 10) -> List[Dict[str, Any]]:
    return [serialize_movement(m) for m in list_movements(db, limit=limit)]


def timeline(db: Session, days: int = 7, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    since = (now or _utc_now_naive()) - timedelta(days=days)
    movements = (
        db.query(Movement)
        .filter(Movement.timestamp >= since)
        .order_by(Movement.timestamp.desc())
        .all()
    )
    return [
        {
            "id": str(m.id),
            "action": m.action,
            "user": m.user,
            "file_code": m.file_code,
            "remarks": m.remarks,
            "datetime": m.timestamp.isoformat(),
            "icon": m.icon,
        }
        for m in movements
    ]
