from enum import Enum
from typing import Optional

from pydantic import BaseModel, field_validator

from .files import Department, Priority, _strip_required


class ForwardStatus(str, Enum):
    pending_admin_review = "Pending Admin Review"
    # Reserved: declared for compatibility, no transition produces them
    admin_approved = "Admin Approved"
    in_transit = "In Transit"
    distributed_to_employee = "Distributed to Employee"
    received = "Received"
    completed = "Completed"
    rejected = "Rejected"


class ForwardCreate(BaseModel):
    file_code: str
    recipient_department: Department
    recipient_name: str
    priority: Priority = Priority.normal
    sent_through: Optional[str] = None
    remarks: Optional[str] = None

    @field_validator("file_code", "recipient_name")
    @classmethod
    def _required(cls, v):
        return _strip_required(v)


class ForwardUpdate(BaseModel):
    priority: Optional[Priority] = None
    sent_through: Optional[str] = None
    remarks: Optional[str] = None


class ForwardApprove(BaseModel):
    distributed_to: str
    admin_remarks: Optional[str] = None

    @field_validator("distributed_to")
    @classmethod
    def _distributee_required(cls, v):
        return _strip_required(v)


class ForwardReject(BaseModel):
    rejection_reason: str

    @field_validator("rejection_reason")
    @classmethod
    def _reason_required(cls, v):
        return _strip_required(v)


class ForwardComplete(BaseModel):
    completion_remarks: Optional[str] = None
