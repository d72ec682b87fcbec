import uuid
from enum import Enum
from typing import Optional

from pydantic import BaseModel, field_validator

from .files import _strip_required


class NotificationType(str, Enum):
    file_created = "file_created"
    file_received = "file_received"
    file_forwarded = "file_forwarded"
    file_completed = "file_completed"
    file_urgent = "file_urgent"
    system = "system"
    user_management = "user_management"
    forward_status = "forward_status"


class NotificationPriority(str, Enum):
    low = "low"
    normal = "normal"
    high = "high"
    urgent = "urgent"


class NotificationCreate(BaseModel):
    recipient_id: uuid.UUID
    title: str
    message: str
    type: NotificationType
    file_code: Optional[str] = None
    forward_id: Optional[uuid.UUID] = None
    movement_id: Optional[uuid.UUID] = None
    is_urgent: bool = False
    priority: NotificationPriority = NotificationPriority.normal
    icon: Optional[str] = None

    @field_validator("title", "message")
    @classmethod
    def _required(cls, v):
        return _strip_required(v)
