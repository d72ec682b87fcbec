"""
Movement ledger.
Append-only history of actions taken on a file, with integrity hashing.
"""
import hashlib
import json
import uuid
from datetime import datetime
from typing import Optional, Dict, Any, List
from sqlalchemy.orm import Session

from ..models.models import Movement, File
from ..config import settings
from ..db import utcnow
from .errors import NotFoundError


# Action vocabulary written by the workflow
ACTION_CREATED = "Created"
ACTION_RELEASED = "Released"
ACTION_FORWARDED = "Forwarded to Admin"
ACTION_APPROVED = "Admin Approved & Distributed"
ACTION_REJECTED = "Admin Rejected"
ACTION_RECEIVED = "File Received"
ACTION_COMPLETED = "File Completed"
ACTION_UPDATED = "Updated"

ACTION_ICONS = {
    ACTION_CREATED: "📁",
    ACTION_RELEASED: "📤",
    ACTION_FORWARDED: "📨",
    ACTION_APPROVED: "✅",
    ACTION_REJECTED: "❌",
    ACTION_RECEIVED: "📥",
    ACTION_COMPLETED: "🏁",
    ACTION_UPDATED: "✏️",
}

_HASHED_FIELDS = ("file_code", "user", "action", "remarks", "sent_by", "sent_through", "recipient_name")


def compute_integrity_hash(movement: Movement, integrity_secret: Optional[str] = None) -> Optional[str]:
    """SHA256 over the canonical JSON of the entry, salted with the app secret."""
    if integrity_secret is None:
        integrity_secret = settings.jwt_secret
    if not integrity_secret:
        return None
    canonical_data = {k: getattr(movement, k) for k in _HASHED_FIELDS}
    canonical_data["datetime"] = movement.timestamp.isoformat() if movement.timestamp else None
    # Remove None values and sort keys for consistency
    canonical_data = {k: v for k, v in canonical_data.items() if v is not None}
    canonical_json = json.dumps(canonical_data, sort_keys=True, default=str)
    hash_input = f"{canonical_json}:{integrity_secret}"
    return hashlib.sha256(hash_input.encode()).hexdigest()


def verify_movement(movement: Movement, integrity_secret: Optional[str] = None) -> bool:
    expected = compute_integrity_hash(movement, integrity_secret)
    return expected is None or expected == movement.integrity_hash


def record_movement(
    db: Session,
    file_code: str,
    user: str,
    action: str,
    remarks: Optional[str] = None,
    icon: Optional[str] = None,
    sent_by: Optional[str] = None,
    sent_through: Optional[str] = None,
    recipient_name: Optional[str] = None,
    at: Optional[datetime] = None,
) -> Movement:
    """
    Append one ledger entry for ``file_code`` and commit it.

    Args:
        db: Database session
        file_code: Code of an existing file
        user: Name of the acting user
        action: Action label (see ACTION_* constants)
        icon: Display icon; defaults per action
        at: Entry time; defaults to now (UTC)

    Raises:
        NotFoundError: no file carries ``file_code``
    """
    exists = db.query(File.id).filter(File.code == file_code).first()
    if not exists:
        raise NotFoundError("File not found")

    movement = Movement(
        file_code=file_code,
        user=user,
        action=action,
        remarks=remarks,
        icon=icon or ACTION_ICONS.get(action, "📝"),
        sent_by=sent_by,
        sent_through=sent_through,
        recipient_name=recipient_name,
        timestamp=at or utcnow(),
    )
    movement.integrity_hash = compute_integrity_hash(movement)

    db.add(movement)
    db.commit()
    db.refresh(movement)
    return movement


def list_for_file(db: Session, file_code: str) -> List[Movement]:
    return (
        db.query(Movement)
        .filter(Movement.file_code == file_code)
        .order_by(Movement.timestamp.desc())
        .all()
    )


def list_movements(
    db: Session,
    limit: int = 100,
    file_code: Optional[str] = None,
    user: Optional[str] = None,
    action: Optional[str] = None,
    since: Optional[datetime] = None,
    until: Optional[datetime] = None,
) -> List[Movement]:
    """Global ledger view, newest first."""
    query = db.query(Movement)

    if file_code:
        query = query.filter(Movement.file_code == file_code)
    if user:
        query = query.filter(Movement.user == user)
    if action:
        query = query.filter(Movement.action == action)
    if since:
        query = query.filter(Movement.timestamp >= since)
    if until:
        query = query.filter(Movement.timestamp <= until)

    query = query.order_by(Movement.timestamp.desc())
    if limit:
        query = query.limit(limit)
    return query.all()


def get_movement(db: Session, movement_id: str) -> Movement:
    try:
        mid = uuid.UUID(str(movement_id))
    except ValueError:
        raise NotFoundError("Movement not found")
    movement = db.query(Movement).filter(Movement.id == mid).first()
    if not movement:
        raise NotFoundError("Movement not found")
    return movement


def correct_movement(db: Session, movement: Movement, changes: Dict[str, Any], corrected_by: str) -> Movement:
    """Administrative correction; stamps who corrected it and re-hashes the entry."""
    for key, value in changes.items():
        if value is None and key in ("action", "icon"):
            continue
        if key in _HASHED_FIELDS or key == "icon":
            setattr(movement, key, value)
    movement.corrected_at = utcnow()
    movement.corrected_by = corrected_by
    movement.integrity_hash = compute_integrity_hash(movement)
    db.commit()
    db.refresh(movement)
    return movement


def delete_movement(db: Session, movement: Movement) -> None:
    db.delete(movement)
    db.commit()


def serialize_movement(m: Movement) -> Dict[str, Any]:
    return {
        "id": str(m.id),
        "file_code": m.file_code,
        "user": m.user,
        "action": m.action,
        "remarks": m.remarks,
        "icon": m.icon,
        "sent_by": m.sent_by,
        "sent_through": m.sent_through,
        "recipient_name": m.recipient_name,
        "datetime": m.timestamp.isoformat() if m.timestamp else None,
        "corrected_at": m.corrected_at.isoformat() if m.corrected_at else None,
        "corrected_by": m.corrected_by,
        "integrity_ok": verify_movement(m),
    }
