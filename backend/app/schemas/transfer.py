"""
Custody transfer schemas.
"""

from pydantic import BaseModel, EmailStr, Field
from datetime import datetime
from typing import Optional, List
from backend.app.models.package_enums import TransferType, PackageStatus


class CustodyTransferCreate(BaseModel):
    """Hand the package to another registered party."""
    to_user_email: EmailStr = Field(..., description="E-mail of the new custodian")
    transfer_type: TransferType
    location_lat: Optional[float] = Field(None, ge=-90, le=90)
    location_lng: Optional[float] = Field(None, ge=-180, le=180)
    location_address: Optional[str] = Field(None, max_length=500)
    photo_hash: Optional[str] = Field(None, max_length=255)
    signature_hash: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = Field(None, max_length=5000)


class CustodyTransferResponse(BaseModel):
    id: int
    package_id: int
    from_user_id: int
    to_user_id: int
    transfer_type: TransferType
    location_lat: Optional[float]
    location_lng: Optional[float]
    location_address: Optional[str]
    photo_hash: Optional[str]
    signature_hash: Optional[str]
    notes: Optional[str]
    verified: bool
    timestamp: datetime

    class Config:
        from_attributes = True


class TransferRecordedResponse(BaseModel):
    """Result of recording a transfer: the new link and the status it produced."""
    transfer: CustodyTransferResponse
    package_status: PackageStatus
    actual_delivery: Optional[datetime] = None


class TransferListResponse(BaseModel):
    transfers: List[CustodyTransferResponse]
    total: int


class TransferVerifyRequest(BaseModel):
    verified: bool = True
