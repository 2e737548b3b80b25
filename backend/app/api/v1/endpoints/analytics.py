"""
Analytics API Endpoints.

Read-only dashboard data for all roles.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.db.session import get_db
from backend.app.core.dependencies import get_current_user
from backend.app.services.analytics import AnalyticsService
from backend.app.schemas.analytics import DashboardAnalytics

router = APIRouter(prefix="/analytics", tags=["Analytics"])


@router.get("/dashboard", response_model=DashboardAnalytics)
async def get_dashboard(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Counts, delivery rate and recent custody activity (system-wide for admins)."""
    return await AnalyticsService.get_dashboard(db, current_user["user_id"], current_user.get("role"))
