"""
User roles enumeration.
"""

import enum


class UserRole(str, enum.Enum):
    """
    User role enumeration.

    Roles:
        SENDER: Creates packages and hands them to couriers (default role)
        COURIER: Carries packages between custodians
        RECIPIENT: Receives packages at the end of the chain
        ADMIN: Reviews disputes, verifies transfers, manages users
    """
    SENDER = "sender"
    COURIER = "courier"
    RECIPIENT = "recipient"
    ADMIN = "admin"
