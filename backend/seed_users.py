"""
Database seeding script for initial users.

Creates one user per role (ADMIN, SENDER, COURIER, RECIPIENT) for testing
and development. Run this script after database is set up but before first use.
"""

import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from backend.app.db.session import AsyncSessionLocal, engine, Base
from backend.app.models.user import User
from backend.app.models.audit_log import AuditLog  # noqa: F401  (table registration)
from backend.app.models.package import Package  # noqa: F401
from backend.app.models.custody_transfer import CustodyTransfer  # noqa: F401
from backend.app.models.dispute import Dispute  # noqa: F401
from backend.app.models.notification import Notification  # noqa: F401
from backend.app.models.enums import UserRole
from backend.app.core.security import get_password_hash
from sqlalchemy import select

SEED_USERS = [
    # (username, email, password, role, full name)
    ("admin", "admin@teleport.io", "admin123", UserRole.ADMIN, "Teleport Admin"),
    ("sender", "sender@teleport.io", "sender123", UserRole.SENDER, "Sam Sender"),
    ("courier", "courier@teleport.io", "courier123", UserRole.COURIER, "Casey Courier"),
    ("recipient", "recipient@teleport.io", "recipient123", UserRole.RECIPIENT, "Riley Recipient"),
]


async def seed_users():
    """Seed one user per role. Existing usernames are left untouched."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as db:
        print("🌱 Starting user seeding...")

        created = 0
        for username, email, password, role, full_name in SEED_USERS:
            result = await db.execute(select(User).where(User.username == username))
            if result.scalar_one_or_none():
                print(f"ℹ️  {role.value.upper()} user '{username}' already exists, skipping")
                continue

            db.add(User(
                email=email,
                username=username,
                hashed_password=get_password_hash(password),
                role=role,
                full_name=full_name,
                is_active=True,
                is_superuser=role == UserRole.ADMIN
            ))
            created += 1
            print(f"✅ Created {role.value.upper()} user (username: {username}, password: {password})")

        await db.commit()

        print(f"\n🎉 User seeding completed ({created} created)")
        print("\nNote: further users register via POST /v1/auth/register (admins cannot)")


if __name__ == "__main__":
    asyncio.run(seed_users())
