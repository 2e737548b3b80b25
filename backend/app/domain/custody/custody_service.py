"""
Custody & Status Manager (Domain Logic).

Owns package creation, the append-only custody transfer log and every
status change. Each state-changing method runs as one transaction: the
transfer row, the package status and the notification are committed
together or not at all.
"""

import logging
import math
import secrets
import string
from datetime import datetime, timezone
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import select, func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.config import settings
from backend.app.core.exceptions import (
    InsufficientPermissionsError, InvalidArgumentError, InvalidStateTransitionError,
    ResourceNotFoundError
)
from backend.app.core.guards import is_admin
from backend.app.domain.custody import state_machine
from backend.app.models.custody_transfer import CustodyTransfer
from backend.app.models.enums import UserRole
from backend.app.models.notification import NotificationType
from backend.app.models.package import Package
from backend.app.models.package_enums import PackageStatus, TransferType
from backend.app.models.user import User
from backend.app.schemas.package import (
    PackageCreate, PackageUpdate, PublicTrackingResponse, PublicCustodyEntry
)
from backend.app.schemas.transfer import CustodyTransferCreate
from backend.app.services.notification_service import NotificationService

logger = logging.getLogger("teleport.custody")

TRACKING_ALPHABET = string.ascii_uppercase + string.digits
TRACKING_CODE_ATTEMPTS = 5


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_tracking_code() -> str:
    suffix = "".join(secrets.choice(TRACKING_ALPHABET) for _ in range(settings.tracking_code_length))
    return f"{settings.tracking_code_prefix}{suffix}"


def is_package_party(package: Package, transfers: Sequence[CustodyTransfer], user_id: int) -> bool:
    """Sender, recipient, current courier, or anyone who appears in the chain."""
    if user_id in (package.sender_id, package.recipient_id, package.current_courier_id):
        return True
    return any(user_id in (t.from_user_id, t.to_user_id) for t in transfers)


def resume_floor(package: Package, transfers: Sequence[CustodyTransfer]) -> Optional[PackageStatus]:
    """Stage the chain of custody had reached, for packages leaving EXCEPTION."""
    if package.status != PackageStatus.EXCEPTION:
        return None
    return state_machine.replay_status(t.transfer_type for t in transfers)


def can_record_transfer(package: Package, transfers: Sequence[CustodyTransfer], user_id: int) -> bool:
    """Sender, current courier, or a prior transfer participant."""
    if user_id in (package.sender_id, package.current_courier_id):
        return True
    return any(user_id in (t.from_user_id, t.to_user_id) for t in transfers)


class CustodyService:

    # --- Lookups ---

    @staticmethod
    async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
        result = await db.execute(
            select(User).where(func.lower(User.email) == email.strip().lower(), User.is_active == True)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def get_package(db: AsyncSession, package_id: int, for_update: bool = False) -> Package:
        query = select(Package).where(Package.id == package_id)
        if for_update:
            # serializes concurrent transfers on the same package
            query = query.with_for_update()
        package = (await db.execute(query)).scalar_one_or_none()
        if not package:
            raise ResourceNotFoundError("Package", package_id)
        return package

    @staticmethod
    async def list_transfers(db: AsyncSession, package_id: int) -> List[CustodyTransfer]:
        """The chain of custody, oldest first."""
        result = await db.execute(
            select(CustodyTransfer)
            .where(CustodyTransfer.package_id == package_id)
            .order_by(CustodyTransfer.timestamp.asc(), CustodyTransfer.id.asc())
        )
        return list(result.scalars().all())

    @staticmethod
    async def get_package_for_user(
        db: AsyncSession, package_id: int, current_user: dict
    ) -> Tuple[Package, List[CustodyTransfer]]:
        """
        Load a package and its chain for a caller.

        Raises:
            ResourceNotFoundError: package does not exist
            InsufficientPermissionsError: caller is neither a party nor an admin
        """
        package = await CustodyService.get_package(db, package_id)
        transfers = await CustodyService.list_transfers(db, package_id)

        if not is_admin(current_user) and not is_package_party(
            package, transfers, current_user["user_id"]
        ):
            raise InsufficientPermissionsError("Access denied. You are not a party to this package.")

        return package, transfers

    @staticmethod
    def related_package_ids(user_id: int):
        """Subquery of ids of packages the user is a party to."""
        carried = select(CustodyTransfer.package_id).where(
            or_(CustodyTransfer.from_user_id == user_id, CustodyTransfer.to_user_id == user_id)
        )
        return select(Package.id).where(or_(
            Package.sender_id == user_id,
            Package.recipient_id == user_id,
            Package.current_courier_id == user_id,
            Package.id.in_(carried),
        ))

    @staticmethod
    async def list_packages(
        db: AsyncSession,
        user_id: Optional[int],
        role_filter: Optional[UserRole] = None,
        status: Optional[PackageStatus] = None,
        page: int = 1,
        page_size: int = 50
    ) -> Tuple[List[Package], int]:
        """
        Packages related to ``user_id`` (all packages when it is None).

        ``role_filter`` narrows to packages where the user is the sender,
        the recipient or the current courier.
        """
        conditions = []
        if user_id is not None:
            if role_filter == UserRole.SENDER:
                conditions.append(Package.sender_id == user_id)
            elif role_filter == UserRole.RECIPIENT:
                conditions.append(Package.recipient_id == user_id)
            elif role_filter == UserRole.COURIER:
                conditions.append(Package.current_courier_id == user_id)
            else:
                conditions.append(Package.id.in_(CustodyService.related_package_ids(user_id)))
        if status:
            conditions.append(Package.status == status)

        total = (await db.execute(select(func.count(Package.id)).where(*conditions))).scalar()

        query = (
            select(Package)
            .where(*conditions)
            .order_by(Package.created_at.desc(), Package.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        packages = (await db.execute(query)).scalars().all()
        return list(packages), total

    # --- Commands ---

    @staticmethod
    async def _unique_tracking_code(db: AsyncSession) -> str:
        for _ in range(TRACKING_CODE_ATTEMPTS):
            code = generate_tracking_code()
            exists = await db.execute(select(Package.id).where(Package.tracking_number == code))
            if exists.scalar_one_or_none() is None:
                return code
        raise RuntimeError("Could not allocate a unique tracking code")

    @staticmethod
    async def create_package(db: AsyncSession, sender: dict, data: PackageCreate) -> Package:
        """
        Create a package with status CREATED and notify the recipient.

        Raises:
            InvalidArgumentError: negative weight or declared value
            ResourceNotFoundError: recipient e-mail does not resolve (nothing is persisted)
        """
        if not math.isfinite(data.weight) or data.weight < 0:
            raise InvalidArgumentError("Weight must be a non-negative number", field="weight")
        if not math.isfinite(data.value) or data.value < 0:
            raise InvalidArgumentError("Declared value must be a non-negative number", field="value")

        recipient = await CustodyService.get_user_by_email(db, data.recipient_email)
        if not recipient:
            raise ResourceNotFoundError("Recipient")

        package = Package(
            tracking_number=await CustodyService._unique_tracking_code(db),
            sender_id=sender["user_id"],
            recipient_id=recipient.id,
            title=data.title,
            description=data.description,
            weight=data.weight,
            dimensions=data.dimensions.model_dump() if data.dimensions else None,
            value=data.value,
            fragile=data.fragile,
            priority=data.priority,
            pickup_address=data.pickup_address,
            delivery_address=data.delivery_address,
            pickup_date=data.pickup_date,
            expected_delivery=data.expected_delivery,
            status=PackageStatus.CREATED,
        )

        try:
            db.add(package)
            await db.flush()

            await NotificationService.create_notification(
                db,
                user_id=recipient.id,
                package_id=package.id,
                title="New Package Created",
                message=f'A new package "{package.title}" has been created for you by {sender["sub"]}',
                type=NotificationType.INFO,
                metadata={"tracking_number": package.tracking_number},
            )
            await db.commit()
        except SQLAlchemyError:
            await db.rollback()
            raise

        await db.refresh(package)
        logger.info("Package %s created by user %s", package.tracking_number, sender["user_id"])
        return package

    @staticmethod
    async def record_transfer(
        db: AsyncSession, package_id: int, actor: dict, data: CustodyTransferCreate
    ) -> Tuple[CustodyTransfer, Package]:
        """
        Append a custody transfer and advance the package status.

        pickup → picked_up, handoff → in_transit, delivery → delivered
        (actual_delivery takes the transfer's timestamp).

        Raises:
            ResourceNotFoundError: package or target custodian not found
            InsufficientPermissionsError: actor may not hand this package over
            InvalidArgumentError: actor tries to transfer to themselves
            InvalidStateTransitionError: the derived status is not allowed
        """
        actor_id = actor["user_id"]
        package = await CustodyService.get_package(db, package_id, for_update=True)
        transfers = await CustodyService.list_transfers(db, package_id)

        if not can_record_transfer(package, transfers, actor_id):
            raise InsufficientPermissionsError(
                "Only the sender, the current courier or a prior custodian can transfer this package."
            )

        to_user = await CustodyService.get_user_by_email(db, data.to_user_email)
        if not to_user:
            raise ResourceNotFoundError("Recipient user")

        if to_user.id == actor_id:
            raise InvalidArgumentError("Cannot transfer custody to yourself", field="to_user_email")

        previous_status = package.status
        new_status = state_machine.next_status_for_transfer(
            package.status, data.transfer_type, resume_floor(package, transfers)
        )
        now = utcnow()

        transfer = CustodyTransfer(
            package_id=package.id,
            from_user_id=actor_id,
            to_user_id=to_user.id,
            transfer_type=data.transfer_type,
            location_lat=data.location_lat,
            location_lng=data.location_lng,
            location_address=data.location_address,
            photo_hash=data.photo_hash,
            signature_hash=data.signature_hash,
            notes=data.notes,
            verified=False,
            timestamp=now,
        )

        package.status = new_status
        if data.transfer_type == TransferType.PICKUP:
            package.picked_up_at = now
        if data.transfer_type == TransferType.DELIVERY:
            package.actual_delivery = now
            package.current_courier_id = None
        elif to_user.role == UserRole.COURIER:
            package.current_courier_id = to_user.id

        try:
            db.add(transfer)
            await db.flush()

            await NotificationService.create_notification(
                db,
                user_id=to_user.id,
                package_id=package.id,
                title="Custody Transfer",
                message=f"Package {package.tracking_number} custody has been transferred to you by {actor['sub']}",
                type=NotificationType.INFO,
                metadata={"transfer_id": transfer.id, "transfer_type": data.transfer_type.value},
            )
            await db.commit()
        except SQLAlchemyError:
            await db.rollback()
            raise

        await db.refresh(transfer)
        await db.refresh(package)
        logger.info(
            "Package %s: %s by user %s -> user %s (%s -> %s)",
            package.tracking_number, data.transfer_type.value, actor_id, to_user.id,
            previous_status.value, new_status.value,
        )
        return transfer, package

    @staticmethod
    async def update_package(
        db: AsyncSession, package_id: int, actor: dict, data: PackageUpdate
    ) -> Tuple[Package, List[str]]:
        """
        Partial update of status / external hashes / actual delivery.

        Does not touch the custody log. Status changes still go through the
        state machine, so terminal packages cannot be reopened.

        Returns:
            The package and the names of the fields that changed
        """
        package = await CustodyService.get_package(db, package_id, for_update=True)

        if actor["user_id"] not in (package.sender_id, package.recipient_id):
            raise InsufficientPermissionsError("Only the sender or recipient can update this package.")

        updates = data.model_dump(exclude_unset=True, exclude_none=True)

        new_status = updates.pop("status", None)
        changed = []
        if new_status is not None and PackageStatus(new_status) != package.status:
            transfers = await CustodyService.list_transfers(db, package_id)
            package.status = state_machine.ensure_transition(
                package.status, new_status, resume_floor(package, transfers)
            )
            changed.append("status")
            if package.status == PackageStatus.DELIVERED and "actual_delivery" not in updates:
                package.actual_delivery = utcnow()
                changed.append("actual_delivery")

        for field, value in updates.items():
            setattr(package, field, value)
            changed.append(field)

        try:
            await db.commit()
        except SQLAlchemyError:
            await db.rollback()
            raise

        await db.refresh(package)
        if changed:
            logger.info("Package %s updated by user %s: %s", package.tracking_number, actor["user_id"], changed)
        return package, changed

    @staticmethod
    async def set_transfer_verified(
        db: AsyncSession, package_id: int, transfer_id: int, verified: bool
    ) -> CustodyTransfer:
        """Toggle the ``verified`` flag, the only mutable field of a transfer."""
        result = await db.execute(
            select(CustodyTransfer).where(
                CustodyTransfer.id == transfer_id,
                CustodyTransfer.package_id == package_id,
            )
        )
        transfer = result.scalar_one_or_none()
        if not transfer:
            raise ResourceNotFoundError("Custody transfer", transfer_id)

        transfer.verified = verified
        await db.commit()
        await db.refresh(transfer)
        return transfer

    # --- Read models ---

    @staticmethod
    async def track(db: AsyncSession, tracking_number: str) -> PublicTrackingResponse:
        """
        Public tracking view by tracking code (case-insensitive).

        An unknown code raises a 404 that carries no identifiers.
        """
        code = tracking_number.strip().upper()
        result = await db.execute(select(Package).where(Package.tracking_number == code))
        package = result.scalar_one_or_none()
        if not package:
            raise ResourceNotFoundError("Package", expose_id=False)

        rows = await db.execute(
            select(CustodyTransfer, User.full_name)
            .join(User, User.id == CustodyTransfer.to_user_id)
            .where(CustodyTransfer.package_id == package.id)
            .order_by(CustodyTransfer.timestamp.asc(), CustodyTransfer.id.asc())
        )

        return PublicTrackingResponse(
            tracking_number=package.tracking_number,
            title=package.title,
            status=package.status,
            created_at=package.created_at,
            pickup_date=package.pickup_date,
            expected_delivery=package.expected_delivery,
            actual_delivery=package.actual_delivery,
            pickup_address=package.pickup_address,
            delivery_address=package.delivery_address,
            custody_chain=[
                PublicCustodyEntry(
                    type=transfer.transfer_type,
                    location=transfer.location_address,
                    timestamp=transfer.timestamp,
                    verified=transfer.verified,
                    custodian=full_name or "Unknown",
                )
                for transfer, full_name in rows.all()
            ],
        )

    @staticmethod
    async def audit_chain(db: AsyncSession, package_id: int) -> dict:
        """
        Replay the chain of custody and compare it with the stored status.

        A package whose status was set explicitly (cancelled, exception, ...)
        legitimately differs from the replay; ``explained`` marks that case.
        """
        package = await CustodyService.get_package(db, package_id)
        transfers = await CustodyService.list_transfers(db, package_id)

        try:
            history = state_machine.replay_status_history(t.transfer_type for t in transfers)
            chain_valid = True
        except InvalidStateTransitionError as exc:
            logger.warning("Package %s has an invalid custody chain: %s", package.tracking_number, exc)
            history, chain_valid = [], False

        replayed = history[-1] if history else None
        consistent = chain_valid and replayed == package.status
        return {
            "package_id": package.id,
            "tracking_number": package.tracking_number,
            "stored_status": package.status,
            "replayed_status": replayed,
            "history": history,
            "transfer_count": len(transfers),
            "chain_valid": chain_valid,
            "consistent": consistent,
            "explained": consistent or package.status in (
                PackageStatus.CANCELLED, PackageStatus.EXCEPTION,
                PackageStatus.PENDING_PICKUP, PackageStatus.OUT_FOR_DELIVERY,
            ),
        }
