import math
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth.security import get_current_user, require_roles
from ..db import get_db
from ..models.models import User
from ..schemas.notifications import NotificationCreate, NotificationType
from ..services import notifications as svc
from ..services.errors import NotFoundError


router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("")
def list_notifications(
    page: int = 1,
    limit: int = 20,
    unread_only: bool = False,
    type: Optional[NotificationType] = None,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    page = max(1, page)
    limit = max(1, min(limit, 100))
    items, total = svc.list_for_user(db, user, page=page, limit=limit, unread_only=unread_only, type=type.value if type else None)
    return {
        "success": True,
        "data": [svc.serialize_notification(n) for n in items],
        "pagination": {
            "current_page": page,
            "total_pages": math.ceil(total / limit) if total else 0,
            "total_items": total,
            "items_per_page": limit,
        },
        "unread_count": svc.unread_count(db, user),
    }


@router.get("/unread-count")
def unread_count(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return {"success": True, "data": {"unread_count": svc.unread_count(db, user)}}


@router.patch("/mark-all-read")
def mark_all_read(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    updated = svc.mark_all_read(db, user)
    return {"success": True, "message": "All notifications marked as read", "data": {"updated": updated}}


@router.get("/{notification_id}")
def get_notification(notification_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return {"success": True, "data": svc.serialize_notification(svc.get_for_user(db, user, notification_id))}


@router.patch("/{notification_id}/read")
def mark_read(notification_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    n = svc.mark_read(db, svc.get_for_user(db, user, notification_id))
    return {"success": True, "data": svc.serialize_notification(n)}


@router.delete("/{notification_id}")
def delete_notification(notification_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    svc.delete_notification(db, svc.get_for_user(db, user, notification_id))
    return {"success": True, "message": "Notification deleted successfully"}


@router.post("", status_code=201)
def create_notification(
    body: NotificationCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles("admin", "superadmin")),
):
    recipient = db.get(User, body.recipient_id)
    if recipient is None:
        raise NotFoundError("Recipient not found")
    n = svc.notify(
        db,
        recipient,
        title=body.title,
        message=body.message,
        type=body.type.value,
        file_code=body.file_code,
        forward_id=body.forward_id,
        movement_id=body.movement_id,
        is_urgent=body.is_urgent,
        priority=body.priority.value,
        icon=body.icon,
    )
    return {"success": True, "data": svc.serialize_notification(n)}
