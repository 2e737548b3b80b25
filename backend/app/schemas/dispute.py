"""
Dispute schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List
from backend.app.models.dispute_enums import DisputeType, DisputePriority, DisputeStatus


class DisputeCreate(BaseModel):
    package_id: int
    type: DisputeType
    priority: DisputePriority = DisputePriority.MEDIUM
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    evidence_photos: List[str] = Field(default_factory=list, description="Photo content hashes")


class DisputeUpdate(BaseModel):
    status: Optional[DisputeStatus] = None
    resolution: Optional[str] = None
    assigned_to: Optional[int] = None
    priority: Optional[DisputePriority] = None


class DisputeResponse(BaseModel):
    id: int
    package_id: int
    user_id: int
    tracking_number: str
    type: DisputeType
    priority: DisputePriority
    status: DisputeStatus
    title: str
    description: str
    resolution: Optional[str]
    assigned_to: Optional[int]
    evidence_photos: List[str]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class DisputeListResponse(BaseModel):
    disputes: List[DisputeResponse]
    total: int
