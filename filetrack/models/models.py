import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    String,
    DateTime,
    Boolean,
    ForeignKey,
    Text,
    Index,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship, Mapped, mapped_column

from ..db import Base, utcnow


def uuid_pk() -> Mapped[uuid.UUID]:
    return mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = uuid_pk()
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)  # files and forwards refer to users by name
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    department: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    role: Mapped[str] = mapped_column(String(20), default="user", index=True)  # user|admin|superadmin
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    last_login_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))


class File(Base):
    """A tracked document or requisition, identified by its human-readable code"""
    __tablename__ = "files"

    id: Mapped[uuid.UUID] = uuid_pk()
    code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)  # PREFIX-F-<year>-<seq>
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    department: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(20), default="Created", index=True)  # Created|Received|On Hold|Released|Complete
    priority: Mapped[str] = mapped_column(String(20), default="Normal")  # Normal|Urgent|Important|Critical
    type: Mapped[str] = mapped_column(String(20), nullable=False)  # Physical|Digital
    requisitioner: Mapped[Optional[str]] = mapped_column(String(255), index=True)
    remarks: Mapped[Optional[str]] = mapped_column(Text)
    current_holder: Mapped[Optional[str]] = mapped_column(String(255), index=True)
    assigned_to: Mapped[Optional[str]] = mapped_column(String(255), index=True)
    created_by: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))


class Forward(Base):
    """One routing request of a File towards another department.

    Linked to the File by code only; a File may accumulate many forwards.
    recipient_name / recipient_department point at the resolved department
    admin, original_recipient_* keep what the sender asked for.
    """
    __tablename__ = "forwards"

    id: Mapped[uuid.UUID] = uuid_pk()
    file_code: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    recipient_department: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    recipient_name: Mapped[str] = mapped_column(String(255), nullable=False)
    original_recipient_name: Mapped[Optional[str]] = mapped_column(String(255))
    original_recipient_department: Mapped[Optional[str]] = mapped_column(String(100))
    sent_by: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    sent_through: Mapped[Optional[str]] = mapped_column(String(100))  # delivery method
    priority: Mapped[str] = mapped_column(String(20), default="Normal")
    is_urgent: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    status: Mapped[str] = mapped_column(String(50), default="Pending Admin Review", index=True)
    remarks: Mapped[Optional[str]] = mapped_column(Text)

    sent_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, index=True)
    received_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    admin_approved_by: Mapped[Optional[str]] = mapped_column(String(255))
    admin_approval_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    admin_remarks: Mapped[Optional[str]] = mapped_column(Text)
    distributed_to: Mapped[Optional[str]] = mapped_column(String(255), index=True)
    distribution_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    completion_remarks: Mapped[Optional[str]] = mapped_column(Text)

    __table_args__ = (
        Index('idx_forwards_dept_status', 'recipient_department', 'status'),
    )


class Movement(Base):
    """Append-only ledger entry: one per action taken on a file"""
    __tablename__ = "movements"

    id: Mapped[uuid.UUID] = uuid_pk()
    file_code: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    user: Mapped[str] = mapped_column(String(255), nullable=False)
    action: Mapped[str] = mapped_column(String(100), nullable=False)
    remarks: Mapped[Optional[str]] = mapped_column(Text)
    icon: Mapped[Optional[str]] = mapped_column(String(16))
    sent_by: Mapped[Optional[str]] = mapped_column(String(255))
    sent_through: Mapped[Optional[str]] = mapped_column(String(100))
    recipient_name: Mapped[Optional[str]] = mapped_column(String(255))
    timestamp: Mapped[datetime] = mapped_column("datetime", DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    integrity_hash: Mapped[Optional[str]] = mapped_column(String(64))  # SHA256 over the canonical entry
    corrected_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    corrected_by: Mapped[Optional[str]] = mapped_column(String(255))


class Notification(Base):
    """In-app alert for one recipient about one workflow event"""
    __tablename__ = "notifications"

    id: Mapped[uuid.UUID] = uuid_pk()
    recipient_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    recipient_name: Mapped[str] = mapped_column(String(255), nullable=False)
    recipient_email: Mapped[str] = mapped_column(String(255), nullable=False)

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(String(50), nullable=False)

    file_code: Mapped[Optional[str]] = mapped_column(String(50), index=True)
    forward_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True))
    movement_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True))

    is_read: Mapped[bool] = mapped_column(Boolean, default=False)
    is_urgent: Mapped[bool] = mapped_column(Boolean, default=False)
    icon: Mapped[str] = mapped_column(String(16), default="📢")
    priority: Mapped[str] = mapped_column(String(20), default="normal")  # low|normal|high|urgent

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    read_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    recipient = relationship("User")

    __table_args__ = (
        Index('idx_notifications_recipient_read', 'recipient_id', 'is_read', 'created_at'),
        Index('idx_notifications_type_created', 'type', 'created_at'),
    )
