"""
Dispute API Endpoints.
"""

from typing import Optional
from fastapi import APIRouter, Depends, status, Query, Path
from sqlalchemy.ext.asyncio import AsyncSession
from backend.app.db.session import get_db
from backend.app.models.dispute_enums import DisputeStatus, DisputeType, DisputePriority
from backend.app.schemas.dispute import DisputeCreate, DisputeUpdate, DisputeResponse, DisputeListResponse
from backend.app.core.dependencies import get_current_user
from backend.app.core.rate_limit import enforce_rate_limit
from backend.app.services.dispute_service import DisputeService
from backend.app.services.audit import log_event, AuditAction

router = APIRouter(prefix="/disputes", tags=["Disputes"])


@router.post(
    "",
    response_model=DisputeResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(enforce_rate_limit)]
)
async def create_dispute(
    dispute_data: DisputeCreate,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Raise a dispute on a package you are party to. Admins are notified."""
    dispute = await DisputeService.create_dispute(db, current_user, dispute_data)

    await log_event(
        db=db,
        action=AuditAction.DISPUTE_CREATED,
        actor_id=current_user["user_id"],
        actor_username=current_user["sub"],
        package_id=dispute.package_id,
        metadata={"dispute_id": dispute.id, "type": dispute.type.value, "priority": dispute.priority.value}
    )

    return DisputeResponse.model_validate(dispute)


@router.get("", response_model=DisputeListResponse)
async def list_disputes(
    status_filter: Optional[DisputeStatus] = Query(None, alias="status"),
    type: Optional[DisputeType] = Query(None),
    priority: Optional[DisputePriority] = Query(None),
    package_id: Optional[int] = Query(None),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """List visible disputes, newest first."""
    disputes, total = await DisputeService.list_disputes(
        db, current_user,
        status=status_filter, type=type, priority=priority, package_id=package_id
    )
    return DisputeListResponse(
        disputes=[DisputeResponse.model_validate(d) for d in disputes],
        total=total
    )


@router.get("/{dispute_id}", response_model=DisputeResponse)
async def get_dispute(
    dispute_id: int = Path(...),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    dispute = await DisputeService.get_dispute(db, dispute_id, current_user)
    return DisputeResponse.model_validate(dispute)


@router.patch("/{dispute_id}", response_model=DisputeResponse, dependencies=[Depends(enforce_rate_limit)])
async def update_dispute(
    dispute_id: int = Path(...),
    dispute_data: DisputeUpdate = ...,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Update status, resolution, assignment or priority (creator or admin)."""
    dispute = await DisputeService.update_dispute(db, dispute_id, current_user, dispute_data)

    await log_event(
        db=db,
        action=AuditAction.DISPUTE_UPDATED,
        actor_id=current_user["user_id"],
        actor_username=current_user["sub"],
        package_id=dispute.package_id,
        metadata={
            "dispute_id": dispute.id,
            "fields": sorted(dispute_data.model_dump(exclude_unset=True)),
            "status": dispute.status.value
        }
    )

    return DisputeResponse.model_validate(dispute)
