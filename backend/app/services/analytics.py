"""
Analytics Service.

Read-only aggregation for the role dashboards. Admins see the whole
system; everyone else sees packages they send, receive or carry.
"""

from datetime import datetime, timedelta, timezone
from typing import Dict

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_

from backend.app.models.package import Package
from backend.app.models.package_enums import PackageStatus
from backend.app.models.custody_transfer import CustodyTransfer
from backend.app.models.user import User
from backend.app.models.enums import UserRole
from backend.app.schemas.analytics import DashboardAnalytics, StatusCounts, RecentTransfer

IN_TRANSIT_STATES = (PackageStatus.PICKED_UP, PackageStatus.IN_TRANSIT, PackageStatus.OUT_FOR_DELIVERY)
PENDING_STATES = (PackageStatus.CREATED, PackageStatus.PENDING_PICKUP)
RECENT_ACTIVITY_LIMIT = 10
MONTHLY_WINDOW_DAYS = 30


def _summarise(counts: Dict[PackageStatus, int]) -> StatusCounts:
    return StatusCounts(
        total=sum(counts.values()),
        delivered=counts.get(PackageStatus.DELIVERED, 0),
        in_transit=sum(counts.get(s, 0) for s in IN_TRANSIT_STATES),
        pending=sum(counts.get(s, 0) for s in PENDING_STATES),
    )


class AnalyticsService:

    @staticmethod
    def _involvement_filter(user_id: int):
        return or_(
            Package.sender_id == user_id,
            Package.recipient_id == user_id,
            Package.current_courier_id == user_id,
        )

    @staticmethod
    async def _status_counts(db: AsyncSession, user_id: int, system_wide: bool, since=None) -> StatusCounts:
        query = select(Package.status, func.count(Package.id)).group_by(Package.status)
        if not system_wide:
            query = query.where(AnalyticsService._involvement_filter(user_id))
        if since is not None:
            query = query.where(Package.created_at >= since)

        rows = (await db.execute(query)).all()
        return _summarise({PackageStatus(status): count for status, count in rows})

    @staticmethod
    async def get_dashboard(db: AsyncSession, user_id: int, role: str) -> DashboardAnalytics:
        """Package counts, delivery rate and recent custody activity for one caller."""
        system_wide = role == UserRole.ADMIN.value

        overall = await AnalyticsService._status_counts(db, user_id, system_wide)
        since = datetime.now(timezone.utc) - timedelta(days=MONTHLY_WINDOW_DAYS)
        monthly = await AnalyticsService._status_counts(db, user_id, system_wide, since=since)

        delivery_rate = round(overall.delivered / overall.total * 100) if overall.total else 0

        activity_query = (
            select(CustodyTransfer, Package.tracking_number, Package.title)
            .join(Package, Package.id == CustodyTransfer.package_id)
            .order_by(CustodyTransfer.timestamp.desc(), CustodyTransfer.id.desc())
            .limit(RECENT_ACTIVITY_LIMIT)
        )
        if not system_wide:
            activity_query = activity_query.where(
                or_(CustodyTransfer.from_user_id == user_id, CustodyTransfer.to_user_id == user_id)
            )
        activity_rows = (await db.execute(activity_query)).all()

        user_ids = {t.from_user_id for t, _, _ in activity_rows} | {t.to_user_id for t, _, _ in activity_rows}
        names = {}
        if user_ids:
            name_rows = await db.execute(select(User.id, User.full_name, User.username).where(User.id.in_(user_ids)))
            names = {uid: full_name or username for uid, full_name, username in name_rows.all()}

        recent = [
            RecentTransfer(
                transfer_id=transfer.id,
                package_id=transfer.package_id,
                tracking_number=tracking_number,
                title=title,
                transfer_type=transfer.transfer_type,
                from_user=names.get(transfer.from_user_id),
                to_user=names.get(transfer.to_user_id),
                timestamp=transfer.timestamp,
                verified=transfer.verified,
            )
            for transfer, tracking_number, title in activity_rows
        ]

        return DashboardAnalytics(
            total_packages=overall.total,
            delivered_packages=overall.delivered,
            in_transit_packages=overall.in_transit,
            pending_packages=overall.pending,
            delivery_rate=delivery_rate,
            recent_activity=recent,
            monthly_stats=monthly,
        )
