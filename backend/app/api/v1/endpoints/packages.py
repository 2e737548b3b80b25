"""
Package & Custody API Endpoints.

Package creation, the chain-of-custody log, public tracking and price
quotes. Business rules live in CustodyService; these handlers add auth,
rate limiting and audit logging.
"""

from typing import Optional
from fastapi import APIRouter, Depends, status, Query, Path
from sqlalchemy.ext.asyncio import AsyncSession
from backend.app.db.session import get_db
from backend.app.models.enums import UserRole
from backend.app.models.package_enums import PackageStatus
from backend.app.schemas.package import (
    PackageCreate, PackageUpdate, PackageResponse, PackageDetailResponse,
    PackageListResponse, PublicTrackingResponse
)
from backend.app.schemas.transfer import (
    CustodyTransferCreate, CustodyTransferResponse, TransferRecordedResponse,
    TransferListResponse, TransferVerifyRequest
)
from backend.app.schemas.pricing import PricingRequest, PricingResponse
from backend.app.core.dependencies import get_current_user
from backend.app.core.guards import require_admin, require_role
from backend.app.core.rate_limit import enforce_rate_limit
from backend.app.domain.custody.custody_service import CustodyService
from backend.app.domain.pricing.calculator import calculate_shipping_price
from backend.app.services.audit import log_event, AuditAction

router = APIRouter(prefix="/packages", tags=["Packages"])


# Static paths first so they are not captured by /{package_id}

@router.get("/track/{tracking_number}", response_model=PublicTrackingResponse)
async def track_package(
    tracking_number: str = Path(..., min_length=1, max_length=32),
    db: AsyncSession = Depends(get_db)
):
    """
    Public tracking by tracking code. No authentication.

    The response carries names and places but never internal ids.
    """
    return await CustodyService.track(db, tracking_number)


@router.post("/pricing", response_model=PricingResponse, dependencies=[Depends(enforce_rate_limit)])
async def quote_price(
    request: PricingRequest,
    current_user: dict = Depends(get_current_user)
):
    """Stateless shipping quote for a signed-in user."""
    breakdown = calculate_shipping_price(
        weight=request.weight,
        priority=request.priority,
        fragile=request.fragile,
        declared_value=request.declared_value,
        pickup_lat=request.pickup_lat,
        pickup_lng=request.pickup_lng,
        delivery_lat=request.delivery_lat,
        delivery_lng=request.delivery_lng,
    )
    return PricingResponse(**breakdown.to_dict())


@router.post(
    "",
    response_model=PackageResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(enforce_rate_limit)]
)
async def create_package(
    package_data: PackageCreate,
    current_user: dict = Depends(require_role([UserRole.SENDER, UserRole.ADMIN])),
    db: AsyncSession = Depends(get_db)
):
    """
    Create a package. The caller becomes its sender; only senders and
    admins may create packages.

    Validates:
    - Recipient e-mail belongs to an active user
    - Weight and declared value are non-negative
    """
    package = await CustodyService.create_package(db, current_user, package_data)

    await log_event(
        db=db,
        action=AuditAction.PACKAGE_CREATED,
        actor_id=current_user["user_id"],
        actor_username=current_user["sub"],
        target_user_id=package.recipient_id,
        package_id=package.id,
        metadata={
            "tracking_number": package.tracking_number,
            "weight": package.weight,
            "priority": package.priority.value
        }
    )

    return PackageResponse.model_validate(package)


@router.get("", response_model=PackageListResponse)
async def list_packages(
    status_filter: Optional[PackageStatus] = Query(None, alias="status", description="Filter by status"),
    role: Optional[UserRole] = Query(None, description="Only packages where I am sender / recipient / courier"),
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(50, ge=1, le=100, description="Items per page"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """List packages the caller is a party to, newest first."""
    packages, total = await CustodyService.list_packages(
        db,
        user_id=current_user["user_id"],
        role_filter=role,
        status=status_filter,
        page=page,
        page_size=page_size
    )

    return PackageListResponse(
        packages=[PackageResponse.model_validate(p) for p in packages],
        total=total,
        page=page,
        page_size=page_size
    )


@router.get("/{package_id}", response_model=PackageDetailResponse)
async def get_package(
    package_id: int = Path(..., description="Package ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Package details with its ordered chain of custody (parties and admins)."""
    package, transfers = await CustodyService.get_package_for_user(db, package_id, current_user)

    response = PackageDetailResponse.model_validate(package)
    response.custody_transfers = [CustodyTransferResponse.model_validate(t) for t in transfers]
    return response


@router.put("/{package_id}", response_model=PackageResponse, dependencies=[Depends(enforce_rate_limit)])
async def update_package(
    package_id: int = Path(..., description="Package ID"),
    package_data: PackageUpdate = ...,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Update status, external hashes or actual delivery (sender or recipient).

    Does not record a custody transfer.
    """
    package, changed = await CustodyService.update_package(db, package_id, current_user, package_data)

    if changed:
        await log_event(
            db=db,
            action=AuditAction.PACKAGE_UPDATED,
            actor_id=current_user["user_id"],
            actor_username=current_user["sub"],
            package_id=package.id,
            metadata={"fields": changed, "status": package.status.value}
        )
        await db.refresh(package)

    return PackageResponse.model_validate(package)


@router.get("/{package_id}/transfers", response_model=TransferListResponse)
async def list_transfers(
    package_id: int = Path(..., description="Package ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Chain of custody, oldest first."""
    _, transfers = await CustodyService.get_package_for_user(db, package_id, current_user)

    return TransferListResponse(
        transfers=[CustodyTransferResponse.model_validate(t) for t in transfers],
        total=len(transfers)
    )


@router.post(
    "/{package_id}/transfers",
    response_model=TransferRecordedResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(enforce_rate_limit)]
)
async def record_transfer(
    package_id: int = Path(..., description="Package ID"),
    transfer_data: CustodyTransferCreate = ...,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Hand the package over to another registered party.

    Status follows the transfer type (pickup → picked_up, handoff →
    in_transit, delivery → delivered). Returns 409 if the package is
    already delivered/cancelled or the move would go backwards.
    """
    transfer, package = await CustodyService.record_transfer(db, package_id, current_user, transfer_data)

    await log_event(
        db=db,
        action=AuditAction.CUSTODY_TRANSFERRED,
        actor_id=current_user["user_id"],
        actor_username=current_user["sub"],
        target_user_id=transfer.to_user_id,
        package_id=package.id,
        metadata={
            "transfer_id": transfer.id,
            "transfer_type": transfer.transfer_type.value,
            "status": package.status.value
        }
    )

    return TransferRecordedResponse(
        transfer=CustodyTransferResponse.model_validate(transfer),
        package_status=package.status,
        actual_delivery=package.actual_delivery
    )


@router.patch(
    "/{package_id}/transfers/{transfer_id}/verify",
    response_model=CustodyTransferResponse,
    dependencies=[Depends(enforce_rate_limit)]
)
async def verify_transfer(
    package_id: int = Path(..., description="Package ID"),
    transfer_id: int = Path(..., description="Transfer ID"),
    request: TransferVerifyRequest = TransferVerifyRequest(),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Mark a transfer as verified (or unverified). Admin only."""
    transfer = await CustodyService.set_transfer_verified(db, package_id, transfer_id, request.verified)

    await log_event(
        db=db,
        action=AuditAction.TRANSFER_VERIFIED,
        actor_id=admin["user_id"],
        actor_username=admin["sub"],
        package_id=package_id,
        metadata={"transfer_id": transfer.id, "verified": transfer.verified}
    )
    await db.refresh(transfer)

    return CustodyTransferResponse.model_validate(transfer)
