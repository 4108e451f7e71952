#!/usr/bin/env python3
"""
Generate auth tokens for any local student, for dev testing without the
login endpoint.

Usage:
    python scripts/dev_login.py 22-46589-1
"""

import asyncio
import sys
from datetime import timedelta

from sqlalchemy import select
from backend.database.db import AsyncSessionLocal
from backend.database.models import User
from backend.services.auth_service import create_access_token, generate_refresh_token
from backend.services.user_service import create_refresh_token as store_refresh_token
from backend.utils.datetime_utils import utcnow


async def list_students(session):
    """Print available students for reference."""
    print("\n📋 Available students:")
    result = await session.execute(
        select(User.id, User.student_id, User.full_name, User.department).order_by(User.id).limit(20)
    )
    for row in result.all():
        print(f"  User #{row[0]:<4}  {row[1]:<12}  {row[2] or '(no name)':<20}  {row[3] or '?'}")
    print()


async def main(student_id: str = ""):
    """
    Generate tokens for a student.

    Args:
        student_id: Student ID, e.g. 22-46589-1
    """
    async with AsyncSessionLocal() as session:
        if not student_id:
            print("❌ Usage: python scripts/dev_login.py <student-id>")
            await list_students(session)
            return

        result = await session.execute(select(User).where(User.student_id == student_id))
        user = result.scalar_one_or_none()
        if not user:
            print(f"❌ No student found for: {student_id}")
            await list_students(session)
            return

        # Long-lived access token (24h for dev convenience)
        access_token = create_access_token(
            data={"user_id": user.id, "student_id": user.student_id, "email": user.email},
            expires_delta=timedelta(hours=24),
        )

        refresh_token = generate_refresh_token()
        await store_refresh_token(session, user.id, refresh_token, utcnow() + timedelta(days=30))
        await session.commit()

        print(f"\n🎓 Logged in as: {user.full_name or '(profile incomplete)'}")
        print(f"   User #{user.id} | {user.student_id} | {user.email}\n")
        print(f"Authorization: Bearer {access_token}")
        print(f"Refresh token: {refresh_token}\n")


if __name__ == "__main__":
    student_id = sys.argv[1] if len(sys.argv) > 1 else ""
    asyncio.run(main(student_id))
