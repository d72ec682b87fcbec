"""
Role-scoped read projections over files and forwards.
"""
import math
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.orm import Query, Session

from ..config import settings
from ..models.models import File, Forward, User
from .errors import AuthorizationError, ValidationError


def paginate(query: Query, page: int = 1, limit: Optional[int] = None) -> Tuple[List[Any], Dict[str, int]]:
    limit = limit or settings.default_page_size
    limit = max(1, min(limit, settings.max_page_size))
    page = max(1, page)
    total = query.count()
    items = query.offset((page - 1) * limit).limit(limit).all()
    meta = {
        "current_page": page,
        "total_pages": math.ceil(total / limit) if total else 0,
        "total_items": total,
        "items_per_page": limit,
    }
    return items, meta


def search_clause(term: str):
    """Case-insensitive substring match over code, title and requisitioner."""
    escaped = term.strip().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    like = f"%{escaped}%"
    return or_(
        File.code.ilike(like, escape="\\"),
        File.title.ilike(like, escape="\\"),
        File.requisitioner.ilike(like, escape="\\"),
    )


def role_scope_clause(user: User):
    """Visibility predicate for files; None means unrestricted."""
    if user.role == "superadmin":
        return None
    if user.role == "admin":
        return or_(
            File.department == user.department,
            File.current_holder == user.name,
            File.assigned_to == user.name,
        )
    return or_(
        File.current_holder == user.name,
        File.assigned_to == user.name,
        File.created_by == user.name,
        File.requisitioner == user.name,
    )


def scoped_files(db: Session, user: User) -> Query:
    q = db.query(File)
    clause = role_scope_clause(user)
    if clause is not None:
        q = q.filter(clause)
    return q


def can_view_file(user: User, file: File) -> bool:
    if user.role == "superadmin":
        return True
    names = {file.current_holder, file.assigned_to}
    if user.role == "admin":
        return file.department == user.department or user.name in names
    return user.name in names | {file.created_by, file.requisitioner}


def list_files(
    db: Session,
    user: User,
    *,
    department: Optional[str] = None,
    status: Optional[str] = None,
    priority: Optional[str] = None,
    type: Optional[str] = None,
    search: Optional[str] = None,
) -> List[File]:
    # Caller filters and the role predicate are ANDed together
    q = scoped_files(db, user)
    if department:
        q = q.filter(File.department == department)
    if status:
        q = q.filter(File.status == status)
    if priority:
        q = q.filter(File.priority == priority)
    if type:
        q = q.filter(File.type == type)
    if search and search.strip():
        q = q.filter(search_clause(search))
    return q.order_by(File.created_at.desc()).all()


def search_files(db: Session, user: User, term: Optional[str], department: Optional[str] = None) -> List[File]:
    if not term or not term.strip():
        raise ValidationError("Search query is required", errors=[{"field": "q", "message": "Search query is required"}])
    return list_files(db, user, department=department, search=term)


def files_for_department(db: Session, user: User, department: str) -> List[File]:
    if user.role == "admin" and user.department != department:
        raise AuthorizationError("Admin is not authorized to access this department", reason_kind="department")
    if user.role == "user" and user.department != department:
        raise AuthorizationError("Not authorized to access this department", reason_kind="department")
    return db.query(File).filter(File.department == department).order_by(File.created_at.desc()).all()


def received_files(db: Session, user: User) -> List[File]:
    if user.role not in ("admin", "superadmin"):
        raise AuthorizationError("Not authorized to view all files", reason_kind="role")
    return db.query(File).filter(File.status != "Created").order_by(File.created_at.desc()).all()


def files_by_creator(db: Session, user: User, creator: str) -> List[File]:
    if user.name != creator and user.role not in ("admin", "superadmin"):
        raise AuthorizationError("Not authorized to view these files", reason_kind="ownership")
    q = db.query(File).filter(or_(File.created_by == creator, File.requisitioner == creator))
    if user.role == "admin" and user.name != creator:
        q = q.filter(File.department == user.department)
    return q.order_by(File.created_at.desc()).all()


def files_for_holder(db: Session, user: User, holder: str, status: Optional[str] = None) -> List[File]:
    q = db.query(File)
    if holder in (user.name, str(user.id)):
        q = q.filter(or_(File.current_holder == user.name, File.assigned_to == user.name))
    elif user.role == "admin":
        q = q.filter(File.department == user.department)
    elif user.role != "superadmin":
        raise AuthorizationError("Not authorized to view these files", reason_kind="ownership")
    if status:
        statuses = [s.strip() for s in status.split(",") if s.strip()]
        q = q.filter(File.status.in_(statuses))
    return q.order_by(File.created_at.desc()).all()


# ---- forwards ----------------------------------------------------------

def forward_scope_clause(user: User):
    if user.role == "superadmin":
        return None
    mine = or_(Forward.sent_by == user.name, Forward.distributed_to == user.name)
    if user.role == "admin":
        return or_(Forward.recipient_department == user.department, mine)
    return mine


def scoped_forwards(db: Session, user: User) -> Query:
    q = db.query(Forward)
    clause = forward_scope_clause(user)
    if clause is not None:
        q = q.filter(clause)
    return q


def can_view_forward(user: User, forward: Forward) -> bool:
    if user.role == "superadmin":
        return True
    if user.name in (forward.sent_by, forward.distributed_to):
        return True
    return user.role == "admin" and forward.recipient_department == user.department


def list_forwards(
    db: Session,
    user: User,
    *,
    status: Optional[str] = None,
    urgent: Optional[bool] = None,
    department: Optional[str] = None,
) -> List[Forward]:
    q = scoped_forwards(db, user)
    if status:
        q = q.filter(Forward.status == status)
    if urgent:
        q = q.filter(Forward.is_urgent == True)
    if department:
        q = q.filter(Forward.recipient_department == department)
    return q.order_by(Forward.sent_at.desc()).all()


def forwards_for_file(db: Session, user: User, file_code: str) -> List[Forward]:
    return scoped_forwards(db, user).filter(Forward.file_code == file_code).order_by(Forward.sent_at.desc()).all()


def require_department_admin(user: User, department: str, verb: str = "view forwards") -> None:
    if user.role == "superadmin":
        return
    if user.role != "admin" or user.department != department:
        raise AuthorizationError(f"Not authorized to {verb} for this department", reason_kind="department")


def pending_admin_forwards(db: Session, user: User, department: str) -> List[Forward]:
    require_department_admin(user, department, "view pending forwards")
    return (
        db.query(Forward)
        .filter(Forward.recipient_department == department, Forward.status == "Pending Admin Review")
        .order_by(Forward.sent_at.desc())
        .all()
    )


def admin_forwards_query(db: Session, user: User, department: str, status: Optional[str] = None, urgent: Optional[bool] = None) -> Query:
    require_department_admin(user, department)
    q = db.query(Forward).filter(Forward.recipient_department == department)
    if status:
        q = q.filter(Forward.status == status)
    if urgent:
        q = q.filter(Forward.is_urgent == True)
    return q.order_by(Forward.sent_at.desc())


def inbox(db: Session, user: User, status: Optional[str] = None) -> List[Forward]:
    """Forwards distributed to the caller."""
    q = db.query(Forward).filter(Forward.distributed_to == user.name)
    if status:
        q = q.filter(Forward.status == status)
    return q.order_by(Forward.sent_at.desc()).all()


def outbox(db: Session, user: User, status: Optional[str] = None) -> List[Forward]:
    """Forwards the caller sent."""
    q = db.query(Forward).filter(Forward.sent_by == user.name)
    if status:
        q = q.filter(Forward.status == status)
    return q.order_by(Forward.sent_at.desc()).all()


def files_by_codes(db: Session, codes: List[str]) -> Dict[str, File]:
    if not codes:
        return {}
    rows = db.query(File).filter(File.code.in_(set(codes))).all()
    return {f.code: f for f in rows}
