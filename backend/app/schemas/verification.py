"""
Photo verification and rate-limit status schemas.
"""

from pydantic import BaseModel, Field
from typing import List


class PhotoVerificationRequest(BaseModel):
    original_photo: str = Field(..., min_length=1, description="Reference/hash of the earlier photo")
    comparison_photo: str = Field(..., min_length=1, description="Reference/hash of the later photo")


class PhotoVerificationResponse(BaseModel):
    similarity: float
    confidence: float
    authenticity: float
    damage_detected: bool
    status: str
    details: List[str]


class RateLimitResponse(BaseModel):
    allowed: bool
    limit: int
    remaining: int
    reset_at: int
