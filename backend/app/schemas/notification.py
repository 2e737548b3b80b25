"""
Notification Schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, Dict, Any
from backend.app.models.notification import NotificationType
from backend.app.models.enums import UserRole


class NotificationResponse(BaseModel):
    id: int
    package_id: Optional[int]
    type: NotificationType
    title: str
    message: str
    metadata_payload: Optional[Dict[str, Any]]
    is_read: bool
    created_at: datetime
    read_at: Optional[datetime]

    class Config:
        from_attributes = True


class BroadcastRequest(BaseModel):
    role_filter: Optional[UserRole] = None  # None = everyone
    type: NotificationType = NotificationType.INFO
    title: str = Field(..., min_length=1, max_length=255)
    message: str = Field(..., min_length=1)
