"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from backend.app.api.v1.endpoints import (
    auth, admin, packages, disputes, notifications, analytics, verification
)

router = APIRouter()

# Authentication & profile
router.include_router(auth.router)

# Admin user management & oversight
router.include_router(admin.router)

# Packages, custody transfers, public tracking, pricing
router.include_router(packages.router)

# Disputes
router.include_router(disputes.router)

# Notifications
router.include_router(notifications.router)
router.include_router(notifications.admin_router)

# Dashboard analytics
router.include_router(analytics.router)

# Photo verification & rate-limit status
router.include_router(verification.router)
router.include_router(verification.rate_limit_router)
