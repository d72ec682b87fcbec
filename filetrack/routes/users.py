from typing import Optional

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth.security import get_current_user, get_password_hash, require_roles
from ..db import get_db, utcnow
from ..models.models import User
from ..schemas.files import Department, Role
from ..schemas.users import PasswordReset, UserCreate, UserUpdate
from ..services import directory
from ..services.errors import AuthorizationError, NotFoundError, ValidationError
from ..services.file_service import parse_uuid
from ..services.permissions import PolicyAction, ensure_allowed


router = APIRouter(prefix="/users", tags=["users"])
log = structlog.get_logger(__name__)


@router.get("")
def list_users(
    department: Optional[Department] = None,
    role: Optional[Role] = None,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles("admin", "superadmin")),
):
    dept = department.value if department else None
    if user.role == "admin":
        dept = user.department
    rows = directory.list_users(db, dept, role.value if role else None)
    return {"success": True, "count": len(rows), "data": [directory.serialize_user(u) for u in rows]}


@router.get("/department/{department}")
def department_users(department: Department, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    if user.role != "superadmin" and user.department != department.value:
        raise AuthorizationError("Not authorized to access this department", reason_kind="department")
    rows = directory.list_users(db, department.value)
    return {"success": True, "count": len(rows), "data": [directory.serialize_user(u) for u in rows]}


@router.get("/employees/{department}")
def department_employees(department: Department, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    # Used by admins picking a distributee; any signed-in user may read names
    rows = directory.list_employees(db, department.value)
    return {"success": True, "count": len(rows), "data": [directory.serialize_user(u) for u in rows]}


@router.get("/{user_id}")
def get_user(user_id: str, db: Session = Depends(get_db), user: User = Depends(require_roles("admin", "superadmin"))):
    u = db.get(User, parse_uuid(user_id, "User"))
    if u is None:
        raise NotFoundError("User not found")
    if user.role == "admin" and u.department != user.department:
        raise AuthorizationError("Not authorized to access this department", reason_kind="department")
    return {"success": True, "data": directory.serialize_user(u)}


def _managed_user(db: Session, actor: User, user_id: str) -> User:
    target = db.get(User, parse_uuid(user_id, "User"))
    if target is None:
        raise NotFoundError("User not found")
    ensure_allowed(actor, target, PolicyAction.MANAGE_USERS)
    if target.role == "superadmin" and actor.role != "superadmin":
        raise AuthorizationError("Only a superadmin may manage a superadmin account", reason_kind="role")
    return target


@router.post("", status_code=201)
def create_user(req: UserCreate, db: Session = Depends(get_db), user: User = Depends(require_roles("admin", "superadmin"))):
    ensure_allowed(user, req.department.value, PolicyAction.MANAGE_USERS)
    email = req.email.lower()
    if directory.email_taken(db, email) or directory.name_taken(db, req.name):
        raise ValidationError("User already exists")
    created = User(
        name=req.name,
        email=email,
        password_hash=get_password_hash(req.password),
        department=req.department.value,
        role=req.role.value,
        created_at=utcnow(),
    )
    db.add(created)
    db.commit()
    db.refresh(created)
    log.info("user_created", user_id=str(created.id), by=user.name, role=created.role, department=created.department)
    return {"success": True, "data": directory.serialize_user(created)}


@router.put("/{user_id}")
def update_user(
    user_id: str,
    req: UserUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles("admin", "superadmin")),
):
    target = _managed_user(db, user, user_id)
    if req.department is not None:
        # Admins cannot move people out of their own department
        ensure_allowed(user, req.department.value, PolicyAction.MANAGE_USERS)
        target.department = req.department.value
    if req.email is not None:
        email = req.email.lower()
        if directory.email_taken(db, email, exclude_id=target.id):
            raise ValidationError("Email is already taken")
        target.email = email
    if req.role is not None:
        target.role = req.role.value
    db.commit()
    db.refresh(target)
    log.info("user_updated", user_id=str(target.id), by=user.name)
    return {"success": True, "data": directory.serialize_user(target)}


@router.delete("/{user_id}")
def delete_user(user_id: str, db: Session = Depends(get_db), user: User = Depends(require_roles("admin", "superadmin"))):
    target = db.get(User, parse_uuid(user_id, "User"))
    if target is None:
        raise NotFoundError("User not found")
    if target.role == "superadmin":
        raise AuthorizationError("Cannot delete superadmin user", reason_kind="role")
    ensure_allowed(user, target, PolicyAction.MANAGE_USERS)
    # Deactivated rather than removed: the name stays on files, forwards and the ledger
    target.is_active = False
    db.commit()
    log.info("user_deactivated", user_id=str(target.id), by=user.name)
    return {"success": True, "message": "User deleted successfully"}


@router.patch("/{user_id}/reset-password")
def reset_password(
    user_id: str,
    req: PasswordReset,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles("admin", "superadmin")),
):
    target = _managed_user(db, user, user_id)
    target.password_hash = get_password_hash(req.new_password)
    db.commit()
    log.info("password_reset", user_id=str(target.id), by=user.name)
    return {"success": True, "message": "Password reset successfully"}
