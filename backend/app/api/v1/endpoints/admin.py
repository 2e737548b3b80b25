"""
Admin API Endpoints.

Provides admin-only user management, audit trail and package oversight
endpoints with audit logging.
"""

from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from backend.app.db.session import get_db
from backend.app.models.user import User
from backend.app.models.enums import UserRole
from backend.app.models.package_enums import PackageStatus
from backend.app.schemas.admin import (
    UserListResponse, UserListItem, UserStatusChangeRequest,
    AdminActionResponse, AuditTrailResponse, AuditLogResponse
)
from backend.app.schemas.package import PackageListResponse, PackageResponse
from backend.app.core.guards import require_admin
from backend.app.core.token_revocation import revoke_all_user_tokens, clear_user_token_revocation
from backend.app.domain.custody.custody_service import CustodyService
from backend.app.services.audit import log_admin_action, AuditAction, get_audit_trail

router = APIRouter(prefix="/admin", tags=["Admin"])


async def _get_user_or_404(db: AsyncSession, user_id: int) -> User:
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )
    return user


@router.get("/users", response_model=UserListResponse)
async def list_users(
    role: Optional[UserRole] = Query(None, description="Filter by role"),
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(50, ge=1, le=100, description="Items per page"),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    List all users in the system (admin-only).

    Returns paginated user list with role and status information.
    """
    conditions = [User.role == role] if role else []

    total_result = await db.execute(select(func.count(User.id)).where(*conditions))
    total = total_result.scalar()

    offset = (page - 1) * page_size
    query = (
        select(User)
        .where(*conditions)
        .order_by(User.created_at.desc(), User.id.desc())
        .offset(offset)
        .limit(page_size)
    )
    result = await db.execute(query)
    users = result.scalars().all()

    return UserListResponse(
        users=[UserListItem.model_validate(user) for user in users],
        total=total,
        page=page,
        page_size=page_size
    )


@router.get("/users/{user_id}", response_model=UserListItem)
async def get_user(
    user_id: int,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Get detailed information about a specific user (admin-only)."""
    return UserListItem.model_validate(await _get_user_or_404(db, user_id))


@router.post("/users/{user_id}/block", response_model=AdminActionResponse)
async def block_user(
    user_id: int,
    request: UserStatusChangeRequest,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Block a user and revoke all their active tokens (admin-only).

    This immediately terminates all user sessions.
    """
    target_user = await _get_user_or_404(db, user_id)

    if target_user.id == admin["user_id"]:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot block yourself"
        )

    if target_user.is_superuser or target_user.role == UserRole.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Cannot block another admin user"
        )

    if not target_user.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User is already blocked"
        )

    target_user.is_active = False
    await db.commit()

    await revoke_all_user_tokens(user_id)

    audit_log = await log_admin_action(
        db=db,
        admin_id=admin["user_id"],
        admin_username=admin["sub"],
        action=AuditAction.USER_BLOCKED,
        target_user_id=target_user.id,
        target_username=target_user.username,
        metadata={"reason": request.reason} if request.reason else None
    )

    return AdminActionResponse(
        success=True,
        message=f"User '{target_user.username}' has been blocked",
        user_id=user_id,
        action=AuditAction.USER_BLOCKED,
        audit_log_id=audit_log.id
    )


@router.post("/users/{user_id}/unblock", response_model=AdminActionResponse)
async def unblock_user(
    user_id: int,
    request: UserStatusChangeRequest,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Unblock a user and clear token revocations (admin-only).

    User will be able to login again and generate new tokens.
    """
    target_user = await _get_user_or_404(db, user_id)

    if target_user.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User is already active"
        )

    target_user.is_active = True
    await db.commit()

    await clear_user_token_revocation(user_id)

    audit_log = await log_admin_action(
        db=db,
        admin_id=admin["user_id"],
        admin_username=admin["sub"],
        action=AuditAction.USER_UNBLOCKED,
        target_user_id=target_user.id,
        target_username=target_user.username,
        metadata={"reason": request.reason} if request.reason else None
    )

    return AdminActionResponse(
        success=True,
        message=f"User '{target_user.username}' has been unblocked",
        user_id=user_id,
        action=AuditAction.USER_UNBLOCKED,
        audit_log_id=audit_log.id
    )


@router.get("/audit-logs", response_model=AuditTrailResponse)
async def get_audit_logs(
    user_id: int = Query(None, description="Filter by target user ID"),
    package_id: int = Query(None, description="Filter by package ID"),
    action: str = Query(None, description="Filter by action type"),
    limit: int = Query(100, ge=1, le=500, description="Maximum records to return"),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Get audit trail with optional filtering (admin-only).

    Returns recent audit logs for security monitoring and dispute review.
    """
    logs = await get_audit_trail(
        db=db,
        target_user_id=user_id,
        package_id=package_id,
        action=action,
        limit=limit
    )

    return AuditTrailResponse(
        logs=[AuditLogResponse.model_validate(log) for log in logs],
        total=len(logs)
    )


@router.get("/packages", response_model=PackageListResponse)
async def list_all_packages(
    status_filter: Optional[PackageStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=100),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """List every package in the system (admin read-only)."""
    packages, total = await CustodyService.list_packages(
        db, user_id=None, status=status_filter, page=page, page_size=page_size
    )

    return PackageListResponse(
        packages=[PackageResponse.model_validate(p) for p in packages],
        total=total,
        page=page,
        page_size=page_size
    )


@router.get("/packages/{package_id}/custody-audit")
async def audit_package_chain(
    package_id: int,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Replay the package's chain of custody and compare it with its stored status.
    """
    return await CustodyService.audit_chain(db, package_id)
