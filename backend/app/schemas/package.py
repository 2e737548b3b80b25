"""
Package Pydantic schemas.

Defines request and response models for package management and public
tracking.
"""

from pydantic import BaseModel, EmailStr, Field
from datetime import datetime
from typing import Optional, List
from backend.app.models.package_enums import PackageStatus, PackagePriority, TransferType
from backend.app.schemas.transfer import CustodyTransferResponse


class Dimensions(BaseModel):
    """Outer dimensions in centimeters."""
    length: float = Field(..., ge=0)
    width: float = Field(..., ge=0)
    height: float = Field(..., ge=0)


class PackageCreate(BaseModel):
    """Schema for creating a new package. The caller becomes the sender."""
    recipient_email: EmailStr = Field(..., description="E-mail of a registered recipient")
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=5000)
    weight: float = Field(0.0, allow_inf_nan=False, description="Weight in kilograms")
    dimensions: Optional[Dimensions] = None
    value: float = Field(0.0, allow_inf_nan=False, description="Declared value")
    fragile: bool = False
    priority: PackagePriority = PackagePriority.STANDARD
    pickup_address: Optional[str] = Field(None, max_length=500)
    delivery_address: Optional[str] = Field(None, max_length=500)
    pickup_date: Optional[datetime] = None
    expected_delivery: Optional[datetime] = None


class PackageUpdate(BaseModel):
    """Partial update outside the transfer flow (sender or recipient)."""
    status: Optional[PackageStatus] = None
    blockchain_hash: Optional[str] = Field(None, max_length=255)
    ipfs_hash: Optional[str] = Field(None, max_length=255)
    actual_delivery: Optional[datetime] = None


class PackageResponse(BaseModel):
    id: int
    tracking_number: str
    sender_id: int
    recipient_id: int
    current_courier_id: Optional[int]
    title: str
    description: Optional[str]
    weight: float
    dimensions: Optional[dict]
    value: float
    fragile: bool
    priority: PackagePriority
    pickup_address: Optional[str]
    delivery_address: Optional[str]
    status: PackageStatus
    pickup_date: Optional[datetime]
    picked_up_at: Optional[datetime]
    expected_delivery: Optional[datetime]
    actual_delivery: Optional[datetime]
    blockchain_hash: Optional[str]
    ipfs_hash: Optional[str]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class PackageDetailResponse(PackageResponse):
    """Package with its chain of custody."""
    custody_transfers: List[CustodyTransferResponse] = []


class PackageListResponse(BaseModel):
    packages: List[PackageResponse]
    total: int
    page: int
    page_size: int


class PublicCustodyEntry(BaseModel):
    type: TransferType
    location: Optional[str]
    timestamp: datetime
    verified: bool
    custodian: str


class PublicTrackingResponse(BaseModel):
    """Unauthenticated tracking view. Carries no internal identifiers."""
    tracking_number: str
    title: str
    status: PackageStatus
    created_at: datetime
    pickup_date: Optional[datetime]
    expected_delivery: Optional[datetime]
    actual_delivery: Optional[datetime]
    pickup_address: Optional[str]
    delivery_address: Optional[str]
    custody_chain: List[PublicCustodyEntry]
