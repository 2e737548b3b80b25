"""
Pricing quote schemas.
"""

from pydantic import BaseModel, Field
from typing import Optional
from backend.app.models.package_enums import PackagePriority


class PricingRequest(BaseModel):
    weight: float = Field(..., allow_inf_nan=False, description="Weight in kilograms")
    priority: PackagePriority = PackagePriority.STANDARD
    fragile: bool = False
    declared_value: float = Field(0.0, allow_inf_nan=False)
    pickup_lat: Optional[float] = Field(None, ge=-90, le=90, allow_inf_nan=False)
    pickup_lng: Optional[float] = Field(None, ge=-180, le=180, allow_inf_nan=False)
    delivery_lat: Optional[float] = Field(None, ge=-90, le=90, allow_inf_nan=False)
    delivery_lng: Optional[float] = Field(None, ge=-180, le=180, allow_inf_nan=False)


class PricingResponse(BaseModel):
    base_cost: int
    weight_cost: int
    distance_cost: int
    subtotal: int
    priority_cost: int
    fragile_cost: int
    insurance_cost: int
    total_cost: int
    currency: str
    distance_km: float
