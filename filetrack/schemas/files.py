from enum import Enum
from typing import Optional

from pydantic import BaseModel, field_validator


# Enums
class Department(str, Enum):
    administration = "Administration"
    finance = "Finance"
    hr = "HR"
    it = "IT"
    procurement = "Procurement"
    legal = "Legal"


class FileStatus(str, Enum):
    created = "Created"
    received = "Received"
    on_hold = "On Hold"
    released = "Released"
    complete = "Complete"


class Priority(str, Enum):
    normal = "Normal"
    urgent = "Urgent"
    important = "Important"
    critical = "Critical"


class FileType(str, Enum):
    physical = "Physical"
    digital = "Digital"


class Role(str, Enum):
    user = "user"
    admin = "admin"
    superadmin = "superadmin"


DEPARTMENTS = [d.value for d in Department]
URGENT_PRIORITIES = {Priority.urgent.value, Priority.critical.value}


def _strip_required(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    v = v.strip()
    if not v:
        raise ValueError("must not be empty")
    return v


# File Schemas
class FileCreate(BaseModel):
    title: str
    department: Department
    priority: Priority = Priority.normal
    type: FileType = FileType.physical
    requisitioner: Optional[str] = None
    remarks: Optional[str] = None

    @field_validator("title")
    @classmethod
    def _title_required(cls, v):
        return _strip_required(v)


class FileUpdate(BaseModel):
    title: Optional[str] = None
    priority: Optional[Priority] = None
    status: Optional[FileStatus] = None
    type: Optional[FileType] = None
    requisitioner: Optional[str] = None
    remarks: Optional[str] = None

    @field_validator("title")
    @classmethod
    def _title_not_empty(cls, v):
        return _strip_required(v)


class FileRelease(BaseModel):
    assigned_to: str
    remarks: Optional[str] = None

    @field_validator("assigned_to")
    @classmethod
    def _assignee_required(cls, v):
        return _strip_required(v)
