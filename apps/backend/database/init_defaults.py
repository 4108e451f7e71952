#!/usr/bin/env python3
"""
Initialize default database values.
This script is run on startup to populate the default admin roles and permissions.
"""

import asyncio
import logging
from sqlalchemy import select
from backend.database import db
from backend.database.models import AdminRole, Permission, RolePermission

logger = logging.getLogger(__name__)

DEFAULT_PERMISSIONS = {
    "manage_tournaments": "Create, edit and delete tournaments and games",
    "manage_registrations": "View registrations and manage team members",
    "manage_payments": "Update payment status and confirm cash payments",
    "manage_admins": "Assign roles and permissions",
    "view_reports": "View registration overview",
}

DEFAULT_ROLES = {
    "SUPER_ADMIN": ("Full access to the admin panel", list(DEFAULT_PERMISSIONS)),
    "TOURNAMENT_MANAGER": ("Manages tournaments and games", ["manage_tournaments", "view_reports"]),
    "REGISTRATION_MANAGER": (
        "Manages registrations and payments",
        ["manage_registrations", "manage_payments", "view_reports"],
    ),
}


async def init_defaults():
    """Initialize default database values (idempotent)."""
    logger.info("Initializing default database values...")

    async with db.AsyncSessionLocal() as session:
        result = await session.execute(select(Permission))
        permissions = {p.permission_name: p for p in result.scalars().all()}
        for name, description in DEFAULT_PERMISSIONS.items():
            if name not in permissions:
                permission = Permission(permission_name=name, description=description)
                session.add(permission)
                permissions[name] = permission
                logger.info(f"✓ Added permission: {name}")
        await session.flush()

        result = await session.execute(select(AdminRole))
        roles = {r.role_name: r for r in result.scalars().all()}
        for role_name, (description, granted) in DEFAULT_ROLES.items():
            if role_name in roles:
                continue
            role = AdminRole(role_name=role_name, description=description)
            session.add(role)
            await session.flush()
            for name in granted:
                session.add(RolePermission(role_id=role.id, permission_id=permissions[name].id))
            logger.info(f"✓ Added role: {role_name}")

        await session.commit()

    logger.info("✓ Default values initialized")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(init_defaults())
