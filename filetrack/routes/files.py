from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth.security import get_current_user
from ..db import get_db
from ..models.models import File, User
from ..schemas.files import Department, FileCreate, FileRelease, FileStatus, FileType, FileUpdate, Priority
from ..services import queries
from ..services.errors import AuthorizationError
from ..services.file_service import get_file_by_code, get_file_by_id, serialize_file
from ..services.workflow import ForwardingWorkflow, get_workflow


router = APIRouter(prefix="/files", tags=["files"])


def _listing(files: List[File]) -> dict:
    return {"success": True, "count": len(files), "data": [serialize_file(f) for f in files]}


def _visible(user: User, file: File) -> File:
    if not queries.can_view_file(user, file):
        raise AuthorizationError("Not authorized to view this file", reason_kind="ownership")
    return file


@router.get("")
def list_files(
    department: Optional[Department] = None,
    status: Optional[FileStatus] = None,
    priority: Optional[Priority] = None,
    type: Optional[FileType] = None,
    search: Optional[str] = None,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    files = queries.list_files(
        db,
        user,
        department=department.value if department else None,
        status=status.value if status else None,
        priority=priority.value if priority else None,
        type=type.value if type else None,
        search=search,
    )
    return _listing(files)


@router.get("/search")
def search_files(
    q: Optional[str] = None,
    department: Optional[Department] = None,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return _listing(queries.search_files(db, user, q, department.value if department else None))


@router.get("/received/all")
def received_files(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return _listing(queries.received_files(db, user))


@router.get("/department/{department}")
def department_files(department: Department, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return _listing(queries.files_for_department(db, user, department.value))


@router.get("/creator/{creator}")
def creator_files(creator: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return _listing(queries.files_by_creator(db, user, creator))


@router.get("/holder/{holder}")
def holder_files(
    holder: str,
    status: Optional[str] = None,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return _listing(queries.files_for_holder(db, user, holder, status))


@router.get("/code/{code}")
def get_file_by_code_route(code: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return {"success": True, "data": serialize_file(_visible(user, get_file_by_code(db, code)))}


@router.get("/{file_id}")
def get_file(file_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return {"success": True, "data": serialize_file(_visible(user, get_file_by_id(db, file_id)))}


@router.post("", status_code=201)
def create_file(body: FileCreate, wf: ForwardingWorkflow = Depends(get_workflow), user: User = Depends(get_current_user)):
    file = wf.create_file(user, body)
    return {"success": True, "data": serialize_file(file)}


@router.put("/{file_id}")
def update_file(file_id: str, body: FileUpdate, wf: ForwardingWorkflow = Depends(get_workflow), db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    file = wf.update_file(user, get_file_by_id(db, file_id), body)
    return {"success": True, "data": serialize_file(file)}


@router.patch("/{file_id}/release")
def release_file(file_id: str, body: FileRelease, wf: ForwardingWorkflow = Depends(get_workflow), db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    file = wf.release_file(user, get_file_by_id(db, file_id), body.assigned_to, body.remarks)
    return {"success": True, "data": serialize_file(file), "message": f"File released to {body.assigned_to}"}


@router.delete("/{file_id}")
def delete_file(file_id: str, wf: ForwardingWorkflow = Depends(get_workflow), db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    wf.delete_file(user, get_file_by_id(db, file_id))
    return {"success": True, "message": "File deleted successfully"}
