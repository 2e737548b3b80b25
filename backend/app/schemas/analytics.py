"""
Dashboard analytics schemas.
"""

from pydantic import BaseModel
from datetime import datetime
from typing import List, Optional
from backend.app.models.package_enums import TransferType


class StatusCounts(BaseModel):
    total: int = 0
    delivered: int = 0
    in_transit: int = 0
    pending: int = 0


class RecentTransfer(BaseModel):
    transfer_id: int
    package_id: int
    tracking_number: str
    title: str
    transfer_type: TransferType
    from_user: Optional[str]
    to_user: Optional[str]
    timestamp: datetime
    verified: bool


class DashboardAnalytics(BaseModel):
    total_packages: int
    delivered_packages: int
    in_transit_packages: int
    pending_packages: int
    delivery_rate: int  # percent
    recent_activity: List[RecentTransfer]
    monthly_stats: StatusCounts
