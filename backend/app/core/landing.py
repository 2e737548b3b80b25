"""
Role-based landing routes.

One place decides where a signed-in user's dashboard lives, instead of
each page re-deriving it.
"""

from typing import Optional, Union
from backend.app.models.enums import UserRole

PROFILE_SETUP_ROUTE = "/settings"

LANDING_ROUTES = {
    UserRole.ADMIN: "/dashboard/admin",
    UserRole.COURIER: "/dashboard/courier",
    UserRole.RECIPIENT: "/dashboard/recipient",
    UserRole.SENDER: "/dashboard/sender",
}


def resolve_landing_route(role: Optional[Union[UserRole, str]]) -> str:
    """
    Map a role to its dashboard path.

    Accepts the enum or its raw string value (case-insensitive). Users
    without a recognised role are sent to complete their profile.
    """
    if role is None:
        return PROFILE_SETUP_ROUTE

    if not isinstance(role, UserRole):
        try:
            role = UserRole(str(role).strip().lower())
        except ValueError:
            return PROFILE_SETUP_ROUTE

    return LANDING_ROUTES.get(role, PROFILE_SETUP_ROUTE)
