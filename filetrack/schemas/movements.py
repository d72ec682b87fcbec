from typing import Optional

from pydantic import BaseModel, field_validator

from .files import _strip_required


class MovementCreate(BaseModel):
    action: str
    remarks: Optional[str] = None
    icon: Optional[str] = None
    sent_by: Optional[str] = None
    sent_through: Optional[str] = None
    recipient_name: Optional[str] = None

    @field_validator("action")
    @classmethod
    def _action_required(cls, v):
        return _strip_required(v)


class MovementCorrection(BaseModel):
    action: Optional[str] = None
    remarks: Optional[str] = None
    icon: Optional[str] = None
    sent_by: Optional[str] = None
    sent_through: Optional[str] = None
    recipient_name: Optional[str] = None

    @field_validator("action")
    @classmethod
    def _action_not_empty(cls, v):
        return _strip_required(v)
