"""
In-app notification service.
One row per (recipient, event); expired rows are hidden from every read.
"""
import uuid
from datetime import timedelta
from typing import Optional, Dict, Any, List, Tuple

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..models.models import Notification, User
from ..config import settings
from ..db import utcnow
from .errors import NotFoundError


PRIORITY_MAP = {
    "Normal": "normal",
    "Important": "high",
    "Urgent": "urgent",
    "Critical": "urgent",
}


def notification_priority(file_priority: Optional[str]) -> str:
    """Map a file/forward priority onto the notification priority scale."""
    return PRIORITY_MAP.get(file_priority or "Normal", "normal")


def notify(
    db: Session,
    recipient: User,
    title: str,
    message: str,
    type: str,
    file_code: Optional[str] = None,
    forward_id: Optional[uuid.UUID] = None,
    movement_id: Optional[uuid.UUID] = None,
    is_urgent: bool = False,
    priority: str = "normal",
    icon: Optional[str] = None,
) -> Notification:
    """
    Create a notification for ``recipient`` and commit it.

    Expiry follows ``settings.notification_ttl_days`` (0 keeps it forever).
    """
    now = utcnow()
    expires_at = None
    if settings.notification_ttl_days:
        expires_at = now + timedelta(days=settings.notification_ttl_days)

    notification = Notification(
        recipient_id=recipient.id,
        recipient_name=recipient.name,
        recipient_email=recipient.email,
        title=title,
        message=message,
        type=type,
        file_code=file_code,
        forward_id=forward_id,
        movement_id=movement_id,
        is_urgent=is_urgent,
        priority=priority,
        icon=icon or "📢",
        created_at=now,
        expires_at=expires_at,
    )
    db.add(notification)
    db.commit()
    db.refresh(notification)
    return notification


def _live(query):
    now = utcnow()
    return query.filter(or_(Notification.expires_at.is_(None), Notification.expires_at > now))


def list_for_user(
    db: Session,
    user: User,
    page: int = 1,
    limit: int = 20,
    unread_only: bool = False,
    type: Optional[str] = None,
) -> Tuple[List[Notification], int]:
    q = _live(db.query(Notification).filter(Notification.recipient_id == user.id))
    if unread_only:
        q = q.filter(Notification.is_read == False)
    if type:
        q = q.filter(Notification.type == type)
    total = q.count()
    items = (
        q.order_by(Notification.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return items, total


def unread_count(db: Session, user: User) -> int:
    return _live(
        db.query(Notification).filter(Notification.recipient_id == user.id, Notification.is_read == False)
    ).count()


def get_for_user(db: Session, user: User, notification_id: str) -> Notification:
    try:
        nid = uuid.UUID(str(notification_id))
    except ValueError:
        raise NotFoundError("Notification not found")
    n = _live(db.query(Notification).filter(Notification.id == nid, Notification.recipient_id == user.id)).first()
    if not n:
        raise NotFoundError("Notification not found")
    return n


def mark_read(db: Session, notification: Notification) -> Notification:
    if not notification.is_read:
        notification.is_read = True
        notification.read_at = utcnow()
        db.commit()
        db.refresh(notification)
    return notification


def mark_all_read(db: Session, user: User) -> int:
    now = utcnow()
    updated = (
        db.query(Notification)
        .filter(Notification.recipient_id == user.id, Notification.is_read == False)
        .update({Notification.is_read: True, Notification.read_at: now}, synchronize_session=False)
    )
    db.commit()
    return updated


def delete_notification(db: Session, notification: Notification) -> None:
    db.delete(notification)
    db.commit()


def serialize_notification(n: Notification) -> Dict[str, Any]:
    return {
        "id": str(n.id),
        "recipient_id": str(n.recipient_id),
        "recipient_name": n.recipient_name,
        "title": n.title,
        "message": n.message,
        "type": n.type,
        "file_code": n.file_code,
        "forward_id": str(n.forward_id) if n.forward_id else None,
        "movement_id": str(n.movement_id) if n.movement_id else None,
        "is_read": n.is_read,
        "is_urgent": n.is_urgent,
        "icon": n.icon,
        "priority": n.priority,
        "created_at": n.created_at.isoformat() if n.created_at else None,
        "read_at": n.read_at.isoformat() if n.read_at else None,
        "expires_at": n.expires_at.isoformat() if n.expires_at else None,
    }
