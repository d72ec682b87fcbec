"""
User directory lookups used by the forwarding workflow.
"""
from typing import List, Optional, Protocol

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from ..models.models import User


def find_by_name(db: Session, name: str) -> Optional[User]:
    return db.query(User).filter(User.name == name, User.is_active == True).first()


def name_taken(db: Session, name: str) -> bool:
    # Inactive accounts keep their name reserved
    return db.query(User.id).filter(func.lower(User.name) == name.strip().lower()).first() is not None


def email_taken(db: Session, email: str, exclude_id=None) -> bool:
    q = db.query(User.id).filter(User.email == email.lower())
    if exclude_id is not None:
        q = q.filter(User.id != exclude_id)
    return q.first() is not None


def find_admin_for_department(db: Session, department: str) -> Optional[User]:
    # Department admins first, then a superadmin of that department; oldest account wins
    role_rank = case((User.role == "admin", 0), else_=1)
    return (
        db.query(User)
        .filter(
            User.department == department,
            User.role.in_(["admin", "superadmin"]),
            User.is_active == True,
        )
        .order_by(role_rank, User.created_at.asc(), User.name.asc())
        .first()
    )


def list_employees(db: Session, department: str) -> List[User]:
    return (
        db.query(User)
        .filter(User.department == department, User.role == "user", User.is_active == True)
        .order_by(User.name.asc())
        .all()
    )


def list_users(db: Session, department: Optional[str] = None, role: Optional[str] = None) -> List[User]:
    q = db.query(User)
    if department:
        q = q.filter(User.department == department)
    if role:
        q = q.filter(User.role == role)
    return q.order_by(User.name.asc()).all()


class AdminResolver(Protocol):
    def resolve(self, db: Session, department: str) -> Optional[User]:
        ...


class FirstAdminResolver:
    """Routes every forward to the first admin found for the department."""

    def resolve(self, db: Session, department: str) -> Optional[User]:
        return find_admin_for_department(db, department)


def serialize_user(u: User) -> dict:
    return {
        "id": str(u.id),
        "name": u.name,
        "email": u.email,
        "department": u.department,
        "role": u.role,
        "is_active": u.is_active,
        "created_at": u.created_at.isoformat() if u.created_at else None,
        "last_login_at": u.last_login_at.isoformat() if u.last_login_at else None,
    }
