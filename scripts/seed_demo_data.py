#!/usr/bin/env python3
"""
Seed a local dev database with demo students and a tournament.

Creates three students with complete profiles and one open tournament with
a solo game, a duo game and a mixed duo game. Idempotent: students and the
tournament are skipped when they already exist.

Usage:
    python scripts/seed_demo_data.py
"""

import asyncio
from datetime import timedelta

from sqlalchemy import select
from backend.database.db import AsyncSessionLocal
from backend.database.models import Tournament
from backend.services import tournament_service, user_service
from backend.utils.datetime_utils import utcnow

DEMO_STUDENTS = [
    {
        "email": "22-46589-1@student.aiub.edu",
        "full_name": "Rahim Uddin",
        "gender": "Male",
        "phone_number": "01711000001",
        "blood_group": "B+",
        "program_level": "Undergraduate",
        "department": "CSE",
    },
    {
        "email": "22-47001-2@student.aiub.edu",
        "full_name": "Karim Hasan",
        "gender": "Male",
        "phone_number": "01711000002",
        "blood_group": "O+",
        "program_level": "Undergraduate",
        "department": "EEE",
    },
    {
        "email": "21-44210-3@student.aiub.edu",
        "full_name": "Nusrat Jahan",
        "gender": "Female",
        "phone_number": "01711000003",
        "blood_group": "A+",
        "program_level": "Undergraduate",
        "department": "BBA",
    },
]

DEMO_TOURNAMENT = {
    "title": "Spring Sports Carnival",
    "description": "Annual inter-department tournament.",
    "games": [
        {"name": "Table Tennis Singles", "category": "Male", "type": "Solo", "fee": 200},
        {"name": "Badminton Doubles", "category": "Male", "type": "Duo", "fee": 300},
        {"name": "Badminton Mixed Doubles", "category": "Mix", "type": "Duo", "fee": 300},
    ],
}


async def main():
    """Create demo students and the demo tournament."""
    print("\n🏆 Seeding demo data...\n")

    async with AsyncSessionLocal() as session:
        for student in DEMO_STUDENTS:
            result = await user_service.login_or_create_user(session, student["email"])
            user = result["user"]
            if not result["is_new_user"] and user["profile_completed"]:
                print(f"  ⏭️  {user['student_id']} already exists (user #{user['id']})")
                continue

            profile = {k: v for k, v in student.items() if k != "email"}
            await user_service.update_profile(session, user["student_id"], profile)
            print(f"  ✅ Created {student['full_name']} ({user['student_id']})")

        existing = await session.execute(
            select(Tournament.id).where(Tournament.title == DEMO_TOURNAMENT["title"])
        )
        if existing.scalar_one_or_none():
            print(f"  ⏭️  Tournament '{DEMO_TOURNAMENT['title']}' already exists")
        else:
            tournament = await tournament_service.create_tournament(
                session,
                DEMO_TOURNAMENT["title"],
                utcnow() + timedelta(days=30),
                description=DEMO_TOURNAMENT["description"],
                games=DEMO_TOURNAMENT["games"],
            )
            print(f"  ✅ Created tournament #{tournament['id']} with {len(tournament['games'])} games")

        await session.commit()

    print("\n" + "─" * 50)
    print("📋 Demo logins (POST /api/auth/login):")
    print("─" * 50)
    for s in DEMO_STUDENTS:
        print(f"  {s['full_name']:<14}  {s['email']}")
    print("─" * 50)
    print("💡 Or use: python scripts/dev_login.py 22-46589-1\n")


if __name__ == "__main__":
    asyncio.run(main())
