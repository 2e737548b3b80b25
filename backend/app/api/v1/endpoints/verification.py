"""
Photo Verification and Rate-Limit status endpoints.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, status

from backend.app.core.dependencies import get_current_user
from backend.app.core.rate_limit import caller_key, enforce_rate_limit, hit
from backend.app.core.reliability import CircuitOpenError
from backend.app.schemas.verification import (
    PhotoVerificationRequest, PhotoVerificationResponse, RateLimitResponse
)
from backend.app.services.verification import PhotoVerifier, get_photo_verifier, verify_photos

router = APIRouter(prefix="/verification", tags=["Verification"])
rate_limit_router = APIRouter(tags=["Rate Limit"])


@router.post(
    "/photos",
    response_model=PhotoVerificationResponse,
    dependencies=[Depends(enforce_rate_limit)]
)
async def verify_package_photos(
    request: PhotoVerificationRequest,
    current_user: dict = Depends(get_current_user),
    verifier: PhotoVerifier = Depends(get_photo_verifier)
):
    """
    Compare an earlier custody photo with a later one.

    Returns 503 while the verifier's circuit is open.
    """
    try:
        result = await verify_photos(verifier, request.original_photo, request.comparison_photo)
    except CircuitOpenError:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Photo verification is temporarily unavailable"
        )

    return PhotoVerificationResponse(**result.to_dict())


@rate_limit_router.post("/rate-limit", response_model=RateLimitResponse)
async def check_rate_limit(request: Request):
    """
    Count one request against the caller's window and report the result.

    Never rejects; clients use it to see how many requests remain.
    """
    result = await hit(caller_key(request))
    return RateLimitResponse(
        allowed=result.allowed,
        limit=result.limit,
        remaining=result.remaining,
        reset_at=result.reset_at
    )
