"""
Seed the local database with one admin and a few employees per department,
plus a superadmin and a couple of sample files.

Usage:
  python scripts/seed_test_data.py

This script is idempotent: running it multiple times will upsert the same
records based on unique fields (email for users, title+department for files).
"""

from filetrack.db import SessionLocal, Base, engine, utcnow
from filetrack.models.models import User, File
from filetrack.auth.security import get_password_hash
from filetrack.schemas.files import DEPARTMENTS
from filetrack.services.file_service import generate_file_code


EMPLOYEES_PER_DEPARTMENT = 2


def ensure_user(session, name: str, email: str, password: str, department: str, role: str) -> User:
    user = session.query(User).filter(User.email == email).first()
    if user:
        user.name = name
        user.department = department
        user.role = role
        # Keep existing password; only set it when missing
        if not getattr(user, "password_hash", None):
            user.password_hash = get_password_hash(password)
        session.add(user)
        return user
    user = User(
        name=name,
        email=email,
        password_hash=get_password_hash(password),
        department=department,
        role=role,
        is_active=True,
        created_at=utcnow(),
    )
    session.add(user)
    session.flush()
    return user


def ensure_file(session, title: str, department: str, creator: User, priority: str = "Normal", type: str = "Physical") -> File:
    file = session.query(File).filter(File.title == title, File.department == department).first()
    if file:
        return file
    file = File(
        code=generate_file_code(session),
        title=title,
        department=department,
        status="Created",
        priority=priority,
        type=type,
        requisitioner=creator.name,
        current_holder=creator.name,
        created_by=creator.name,
        created_at=utcnow(),
    )
    session.add(file)
    session.flush()
    return file


def main() -> None:
    # Ensure tables exist (safe for SQLite dev)
    Base.metadata.create_all(bind=engine)

    session = SessionLocal()
    try:
        ensure_user(session, "Super Admin", "superadmin@example.com", "TestAdmin123!", "Administration", "superadmin")

        employees = {}
        for dept in DEPARTMENTS:
            slug = dept.lower()
            ensure_user(session, f"{dept} Admin", f"admin.{slug}@example.com", "TestAdmin123!", dept, "admin")
            employees[dept] = [
                ensure_user(session, f"{dept} Employee {i}", f"employee{i}.{slug}@example.com", "TestUser123!", dept, "user")
                for i in range(1, EMPLOYEES_PER_DEPARTMENT + 1)
            ]

        ensure_file(session, "Laptop procurement request", "IT", employees["IT"][0], priority="Urgent")
        ensure_file(session, "Annual leave policy review", "HR", employees["HR"][0], type="Digital")

        session.commit()
        print("Seed completed: users and files upserted.")
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


if __name__ == "__main__":
    main()
