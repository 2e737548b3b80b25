"""
Dispute Service.

Disputes can be raised by any party to a package. Admins are notified on
creation; status moves forward only (open → investigating → resolved →
closed, with shortcuts to resolved/closed).
"""

import logging
from typing import List, Optional, Tuple

from sqlalchemy import select, func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.exceptions import (
    InsufficientPermissionsError, InvalidStateTransitionError, ResourceNotFoundError
)
from backend.app.core.guards import is_admin
from backend.app.domain.custody.custody_service import CustodyService, is_package_party
from backend.app.models.dispute import Dispute
from backend.app.models.dispute_enums import DisputeType, DisputePriority, DisputeStatus
from backend.app.models.notification import NotificationType
from backend.app.models.user import User
from backend.app.schemas.dispute import DisputeCreate, DisputeUpdate
from backend.app.services.notification_service import NotificationService

logger = logging.getLogger("teleport.disputes")

DISPUTE_TRANSITIONS = {
    DisputeStatus.OPEN: {DisputeStatus.INVESTIGATING, DisputeStatus.RESOLVED, DisputeStatus.CLOSED},
    DisputeStatus.INVESTIGATING: {DisputeStatus.RESOLVED, DisputeStatus.CLOSED},
    DisputeStatus.RESOLVED: {DisputeStatus.CLOSED},
    DisputeStatus.CLOSED: set(),
}


class DisputeService:

    @staticmethod
    async def create_dispute(db: AsyncSession, current_user: dict, data: DisputeCreate) -> Dispute:
        """
        Raise a dispute against a package the caller is party to.

        Raises:
            ResourceNotFoundError: package does not exist
            InsufficientPermissionsError: caller is not related to the package
        """
        package, _ = await CustodyService.get_package_for_user(db, data.package_id, current_user)

        dispute = Dispute(
            package_id=package.id,
            user_id=current_user["user_id"],
            tracking_number=package.tracking_number,
            type=data.type,
            priority=data.priority,
            status=DisputeStatus.OPEN,
            title=data.title,
            description=data.description,
            evidence_photos=list(data.evidence_photos),
        )

        try:
            db.add(dispute)
            await db.flush()
            await NotificationService.notify_admins(
                db,
                title="New Dispute Created",
                message=f'Dispute "{dispute.title}" was raised for package {package.tracking_number}',
                type=NotificationType.WARNING,
                package_id=package.id,
            )
            await db.commit()
        except SQLAlchemyError:
            await db.rollback()
            raise

        await db.refresh(dispute)
        logger.info("Dispute %s raised on package %s by user %s",
                    dispute.id, package.tracking_number, current_user["user_id"])
        return dispute

    @staticmethod
    async def list_disputes(
        db: AsyncSession,
        current_user: dict,
        status: Optional[DisputeStatus] = None,
        type: Optional[DisputeType] = None,
        priority: Optional[DisputePriority] = None,
        package_id: Optional[int] = None
    ) -> Tuple[List[Dispute], int]:
        """
        Admins see every dispute; everyone else sees the disputes they raised
        and those concerning packages they are party to.
        """
        conditions = []
        if not is_admin(current_user):
            user_id = current_user["user_id"]
            conditions.append(or_(
                Dispute.user_id == user_id,
                Dispute.package_id.in_(CustodyService.related_package_ids(user_id)),
            ))
        if status:
            conditions.append(Dispute.status == status)
        if type:
            conditions.append(Dispute.type == type)
        if priority:
            conditions.append(Dispute.priority == priority)
        if package_id:
            conditions.append(Dispute.package_id == package_id)

        total = (await db.execute(select(func.count(Dispute.id)).where(*conditions))).scalar()
        result = await db.execute(
            select(Dispute).where(*conditions).order_by(Dispute.created_at.desc(), Dispute.id.desc())
        )
        return list(result.scalars().all()), total

    @staticmethod
    async def get_dispute(db: AsyncSession, dispute_id: int, current_user: dict) -> Dispute:
        """Visible to admins, the creator and parties to the disputed package."""
        dispute = await db.get(Dispute, dispute_id)
        if not dispute:
            raise ResourceNotFoundError("Dispute", dispute_id)

        if not is_admin(current_user) and dispute.user_id != current_user["user_id"]:
            package = await CustodyService.get_package(db, dispute.package_id)
            transfers = await CustodyService.list_transfers(db, dispute.package_id)
            if not is_package_party(package, transfers, current_user["user_id"]):
                raise InsufficientPermissionsError("Access denied. You are not a party to this dispute.")
        return dispute

    @staticmethod
    async def update_dispute(
        db: AsyncSession, dispute_id: int, current_user: dict, data: DisputeUpdate
    ) -> Dispute:
        """
        Update status / resolution / assignment.

        The creator may only add a resolution note or close the dispute;
        assignment and priority are admin-only.
        """
        dispute = await DisputeService.get_dispute(db, dispute_id, current_user)
        admin = is_admin(current_user)
        if not admin and dispute.user_id != current_user["user_id"]:
            raise InsufficientPermissionsError("Only the creator or an admin can update this dispute.")
        updates = data.model_dump(exclude_unset=True, exclude_none=True)

        if not admin and ({"assigned_to", "priority"} & updates.keys()):
            raise InsufficientPermissionsError("Only admins can assign or re-prioritise disputes.")

        new_status = updates.pop("status", None)
        if new_status is not None and DisputeStatus(new_status) != dispute.status:
            new_status = DisputeStatus(new_status)
            if not admin and new_status != DisputeStatus.CLOSED:
                raise InsufficientPermissionsError("Only admins can move a dispute to this status.")
            if new_status not in DISPUTE_TRANSITIONS[dispute.status]:
                raise InvalidStateTransitionError("Dispute", dispute.status.value, new_status.value)
            dispute.status = new_status

        if "assigned_to" in updates:
            assignee = await db.get(User, updates["assigned_to"])
            if not assignee:
                raise ResourceNotFoundError("User", updates["assigned_to"])

        for field, value in updates.items():
            setattr(dispute, field, value)

        await db.commit()
        await db.refresh(dispute)
        return dispute
