from datetime import datetime
from typing import Optional

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth.security import get_current_user
from ..db import get_db
from ..models.models import User
from ..schemas.movements import MovementCorrection, MovementCreate
from ..services import audit
from ..services.file_service import get_file_by_code
from ..services.permissions import PolicyAction, ensure_allowed


router = APIRouter(prefix="/movements", tags=["movements"])
log = structlog.get_logger(__name__)


@router.get("")
def list_movements(
    limit: int = 100,
    file_code: Optional[str] = None,
    user_name: Optional[str] = None,
    action: Optional[str] = None,
    since: Optional[datetime] = None,
    until: Optional[datetime] = None,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    rows = audit.list_movements(db, limit=limit, file_code=file_code, user=user_name, action=action, since=since, until=until)
    return {"success": True, "count": len(rows), "data": [audit.serialize_movement(m) for m in rows]}


@router.get("/file/{file_code}")
def file_movements(file_code: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    rows = audit.list_for_file(db, file_code)
    return {"success": True, "count": len(rows), "data": [audit.serialize_movement(m) for m in rows]}


@router.post("/file/{file_code}", status_code=201)
def add_movement(file_code: str, body: MovementCreate, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    file = get_file_by_code(db, file_code)
    ensure_allowed(user, file, PolicyAction.ADD_MOVEMENT)
    m = audit.record_movement(
        db,
        file.code,
        user.name,
        body.action,
        remarks=body.remarks,
        icon=body.icon,
        sent_by=body.sent_by,
        sent_through=body.sent_through,
        recipient_name=body.recipient_name,
    )
    return {"success": True, "data": audit.serialize_movement(m)}


@router.put("/{movement_id}")
def correct_movement(
    movement_id: str,
    body: MovementCorrection,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    m = audit.get_movement(db, movement_id)
    ensure_allowed(user, get_file_by_code(db, m.file_code), PolicyAction.CORRECT_MOVEMENT)
    changes = body.model_dump(exclude_unset=True)
    m = audit.correct_movement(db, m, changes, corrected_by=user.name)
    log.info("movement_corrected", movement_id=str(m.id), file_code=m.file_code, fields=sorted(changes), by=user.name)
    return {"success": True, "data": audit.serialize_movement(m)}


@router.delete("/{movement_id}")
def delete_movement(movement_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    m = audit.get_movement(db, movement_id)
    ensure_allowed(user, get_file_by_code(db, m.file_code), PolicyAction.DELETE_MOVEMENT)
    file_code = m.file_code
    audit.delete_movement(db, m)
    log.info("movement_deleted", movement_id=movement_id, file_code=file_code, by=user.name)
    return {"success": True, "message": "Movement deleted successfully"}
