from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth.security import get_current_user
from ..db import get_db
from ..models.models import Forward, User
from ..schemas.files import Department
from ..schemas.forwards import (
    ForwardApprove,
    ForwardComplete,
    ForwardCreate,
    ForwardReject,
    ForwardStatus,
    ForwardUpdate,
)
from ..services import queries, stats
from ..services.errors import AuthorizationError
from ..services.file_service import get_forward, serialize_forward
from ..services.workflow import ForwardingWorkflow, get_workflow


router = APIRouter(prefix="/forwards", tags=["forwards"])


def _listing(db: Session, forwards: List[Forward], **extra) -> dict:
    files = queries.files_by_codes(db, [f.file_code for f in forwards])
    body = {
        "success": True,
        "count": len(forwards),
        "data": [serialize_forward(f, files.get(f.file_code)) for f in forwards],
    }
    body.update(extra)
    return body


def _visible(user: User, forward: Forward) -> Forward:
    if not queries.can_view_forward(user, forward):
        raise AuthorizationError("Not authorized to view this forward", reason_kind="ownership")
    return forward


@router.get("")
def list_forwards(
    status: Optional[ForwardStatus] = None,
    urgent: bool = False,
    department: Optional[Department] = None,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    forwards = queries.list_forwards(
        db,
        user,
        status=status.value if status else None,
        urgent=urgent,
        department=department.value if department else None,
    )
    return _listing(db, forwards)


@router.get("/urgent")
def urgent_forwards(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return _listing(db, queries.list_forwards(db, user, urgent=True))


@router.get("/inbox")
def my_inbox(status: Optional[ForwardStatus] = None, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return _listing(db, queries.inbox(db, user, status.value if status else None))


@router.get("/outbox")
def my_outbox(status: Optional[ForwardStatus] = None, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return _listing(db, queries.outbox(db, user, status.value if status else None))


@router.get("/status/{status}")
def forwards_by_status(status: ForwardStatus, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return _listing(db, queries.list_forwards(db, user, status=status.value))


@router.get("/file/{file_code}")
def forwards_for_file(file_code: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return _listing(db, queries.forwards_for_file(db, user, file_code))


@router.get("/pending-admin/{department}")
def pending_admin(department: Department, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return _listing(db, queries.pending_admin_forwards(db, user, department.value))


@router.get("/admin/{department}")
def admin_forwards(
    department: Department,
    status: Optional[ForwardStatus] = None,
    urgent: bool = False,
    page: int = 1,
    limit: int = 20,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    q = queries.admin_forwards_query(db, user, department.value, status.value if status else None, urgent)
    items, pagination = queries.paginate(q, page, limit)
    return _listing(db, items, pagination=pagination)


@router.get("/stats/{department}")
def department_stats(department: Department, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    queries.require_department_admin(user, department.value, "view stats")
    return {"success": True, "data": stats.department_forward_stats(db, department.value)}


@router.get("/{forward_id}")
def get_one(forward_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    forward = _visible(user, get_forward(db, forward_id))
    return {"success": True, "data": serialize_forward(forward, queries.files_by_codes(db, [forward.file_code]).get(forward.file_code))}


@router.post("", status_code=201)
def create_forward(body: ForwardCreate, wf: ForwardingWorkflow = Depends(get_workflow), user: User = Depends(get_current_user)):
    forward = wf.create_forward(user, body)
    return {
        "success": True,
        "data": serialize_forward(forward),
        "message": f"File forwarded to {forward.recipient_department} Admin for review",
    }


@router.put("/{forward_id}")
def update_forward(
    forward_id: str,
    body: ForwardUpdate,
    wf: ForwardingWorkflow = Depends(get_workflow),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    forward = wf.update_forward(user, get_forward(db, forward_id), body)
    return {"success": True, "data": serialize_forward(forward)}


@router.delete("/{forward_id}")
def delete_forward(
    forward_id: str,
    wf: ForwardingWorkflow = Depends(get_workflow),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    wf.delete_forward(user, get_forward(db, forward_id))
    return {"success": True, "message": "Forward deleted successfully"}


@router.patch("/{forward_id}/approve")
def approve(
    forward_id: str,
    body: ForwardApprove,
    wf: ForwardingWorkflow = Depends(get_workflow),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    forward = wf.approve(user, get_forward(db, forward_id), body.distributed_to, body.admin_remarks)
    return {
        "success": True,
        "data": serialize_forward(forward),
        "message": f"File approved and distributed to {body.distributed_to}",
    }


@router.patch("/{forward_id}/reject")
def reject(
    forward_id: str,
    body: ForwardReject,
    wf: ForwardingWorkflow = Depends(get_workflow),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    forward = wf.reject(user, get_forward(db, forward_id), body.rejection_reason)
    return {"success": True, "data": serialize_forward(forward), "message": "Forward rejected successfully"}


@router.patch("/{forward_id}/receive")
def receive(
    forward_id: str,
    wf: ForwardingWorkflow = Depends(get_workflow),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    forward = wf.receive(user, get_forward(db, forward_id))
    return {"success": True, "data": serialize_forward(forward), "message": "File marked as received successfully"}


@router.patch("/{forward_id}/complete")
def complete(
    forward_id: str,
    body: Optional[ForwardComplete] = None,
    wf: ForwardingWorkflow = Depends(get_workflow),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    remarks = body.completion_remarks if body else None
    forward = wf.complete(user, get_forward(db, forward_id), remarks)
    return {"success": True, "data": serialize_forward(forward), "message": "File marked as completed successfully"}
