import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ..config import settings
from ..db import utcnow
from ..models.models import File, Forward
from .errors import NotFoundError


def code_prefix(year: int) -> str:
    return f"{settings.file_code_prefix}-F-{year}-"


def _sequence_of(code: str) -> int:
    try:
        return int(code.rsplit("-", 1)[1])
    except (IndexError, ValueError):
        return 0


def generate_file_code(db: Session, *, year: Optional[int] = None) -> str:
    """Next code for the year, e.g. THDC-F-2026-0007.

    Takes whichever is larger of (count + 1) and (highest sequence + 1) so a
    deleted file never causes its successor's code to be reused.
    """
    year = year or utcnow().year
    prefix = code_prefix(year)
    codes = [c for (c,) in db.query(File.code).filter(File.code.like(f"{prefix}%")).all()]
    highest = max((_sequence_of(c) for c in codes), default=0)
    seq = max(len(codes), highest) + 1
    return f"{prefix}{seq:04d}"


def parse_uuid(value: str, label: str) -> uuid.UUID:
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise NotFoundError(f"{label} not found")


def get_file_by_id(db: Session, file_id: str) -> File:
    file = db.query(File).filter(File.id == parse_uuid(file_id, "File")).first()
    if not file:
        raise NotFoundError("File not found")
    return file


def get_file_by_code(db: Session, code: str) -> File:
    file = db.query(File).filter(File.code == code).first()
    if not file:
        raise NotFoundError("File not found")
    return file


def get_forward(db: Session, forward_id: str) -> Forward:
    fwd = db.query(Forward).filter(Forward.id == parse_uuid(forward_id, "Forward")).first()
    if not fwd:
        raise NotFoundError("Forward not found")
    return fwd


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def serialize_file(f: File) -> dict:
    return {
        "id": str(f.id),
        "code": f.code,
        "title": f.title,
        "department": f.department,
        "status": f.status,
        "priority": f.priority,
        "type": f.type,
        "requisitioner": f.requisitioner,
        "remarks": f.remarks,
        "current_holder": f.current_holder,
        "assigned_to": f.assigned_to,
        "created_by": f.created_by,
        "created_at": _iso(f.created_at),
        "updated_at": _iso(f.updated_at),
    }


def serialize_forward(fw: Forward, file: Optional[File] = None) -> dict:
    data = {
        "id": str(fw.id),
        "file_code": fw.file_code,
        "recipient_department": fw.recipient_department,
        "recipient_name": fw.recipient_name,
        "original_recipient_name": fw.original_recipient_name,
        "original_recipient_department": fw.original_recipient_department,
        "sent_by": fw.sent_by,
        "sent_through": fw.sent_through,
        "priority": fw.priority,
        "is_urgent": fw.is_urgent,
        "status": fw.status,
        "remarks": fw.remarks,
        "sent_at": _iso(fw.sent_at),
        "received_at": _iso(fw.received_at),
        "completed_at": _iso(fw.completed_at),
        "admin_approved_by": fw.admin_approved_by,
        "admin_approval_date": _iso(fw.admin_approval_date),
        "admin_remarks": fw.admin_remarks,
        "distributed_to": fw.distributed_to,
        "distribution_date": _iso(fw.distribution_date),
        "completion_remarks": fw.completion_remarks,
    }
    if file is not None:
        data["file"] = {"code": file.code, "title": file.title, "status": file.status, "department": file.department}
    return data
