"""
Admin service: roles, permissions and admin checks.

A user is an admin when they hold at least one role in admin_role_map, or
when their email is listed in the SYSTEM_ADMIN_EMAILS environment variable.
"""

import os
from typing import Dict, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete, func
from sqlalchemy.exc import IntegrityError
from backend.database.models import (
    User,
    AdminRole,
    Permission,
    RolePermission,
    AdminRoleMap,
)
from backend.services.exceptions import ConflictError, InvalidInputError, NotFoundError
from backend.utils.datetime_utils import isoformat
import logging

logger = logging.getLogger(__name__)


def get_system_admin_emails() -> set:
    """Emails from SYSTEM_ADMIN_EMAILS (comma-separated), lower-cased."""
    raw = os.getenv("SYSTEM_ADMIN_EMAILS", "")
    return {e.strip().lower() for e in raw.split(",") if e.strip()}


def to_camel_case(name: str) -> str:
    """manage_tournaments -> manageTournaments"""
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


async def get_user_role_names(session: AsyncSession, user_id: int) -> List[str]:
    result = await session.execute(
        select(AdminRole.role_name)
        .join(AdminRoleMap, AdminRoleMap.role_id == AdminRole.id)
        .where(AdminRoleMap.user_id == user_id)
        .order_by(AdminRole.role_name)
    )
    return list(result.scalars().all())


async def get_user_permissions(session: AsyncSession, user_id: int) -> List[str]:
    """
    Get the permission names granted to a user through their roles.

    Returns:
        Sorted camelCase permission names (e.g. manageTournaments)
    """
    result = await session.execute(
        select(Permission.permission_name)
        .join(RolePermission, RolePermission.permission_id == Permission.id)
        .join(AdminRoleMap, AdminRoleMap.role_id == RolePermission.role_id)
        .where(AdminRoleMap.user_id == user_id)
        .distinct()
    )
    return sorted(to_camel_case(name) for name in result.scalars().all())


async def is_admin(session: AsyncSession, user: Dict) -> bool:
    """Check whether the user holds any admin role or is a configured system admin."""
    if user.get("email") and user["email"].strip().lower() in get_system_admin_emails():
        return True
    result = await session.execute(
        select(func.count(AdminRoleMap.id)).where(AdminRoleMap.user_id == user["id"])
    )
    return (result.scalar() or 0) > 0


async def get_admin_info(session: AsyncSession, user: Dict) -> Dict:
    """Admin flags for the login response: is_admin, roles, permissions."""
    admin = await is_admin(session, user)
    if not admin:
        return {"is_admin": False, "roles": [], "permissions": []}
    return {
        "is_admin": True,
        "roles": await get_user_role_names(session, user["id"]),
        "permissions": await get_user_permissions(session, user["id"]),
    }


async def list_roles(session: AsyncSession) -> List[Dict]:
    """List roles with their permission names."""
    roles_result = await session.execute(select(AdminRole).order_by(AdminRole.role_name))
    roles = roles_result.scalars().all()

    perms_result = await session.execute(
        select(RolePermission.role_id, Permission.permission_name)
        .join(Permission, Permission.id == RolePermission.permission_id)
    )
    perms_by_role: Dict[int, List[str]] = {}
    for role_id, name in perms_result.all():
        perms_by_role.setdefault(role_id, []).append(name)

    return [
        {
            "id": role.id,
            "role_name": role.role_name,
            "description": role.description,
            "permissions": sorted(perms_by_role.get(role.id, [])),
            "created_at": isoformat(role.created_at),
        }
        for role in roles
    ]


async def create_role(session: AsyncSession, role_name: str, description: Optional[str] = None) -> Dict:
    """
    Create an admin role.

    Raises:
        InvalidInputError: Empty name
        ConflictError: Role name already exists
    """
    role_name = (role_name or "").strip().upper()
    if not role_name:
        raise InvalidInputError("Role name is required")

    existing = await session.execute(select(AdminRole.id).where(AdminRole.role_name == role_name))
    if existing.scalar_one_or_none() is not None:
        raise ConflictError("Role already exists")

    role = AdminRole(role_name=role_name, description=description)
    session.add(role)
    await session.flush()
    await session.refresh(role)
    return {"id": role.id, "role_name": role.role_name, "description": role.description, "permissions": []}


async def list_permissions(session: AsyncSession) -> List[Dict]:
    result = await session.execute(select(Permission).order_by(Permission.permission_name))
    return [
        {"id": p.id, "permission_name": p.permission_name, "description": p.description}
        for p in result.scalars().all()
    ]


async def create_permission(session: AsyncSession, permission_name: str, description: Optional[str] = None) -> Dict:
    """
    Create a permission (stored snake_case).

    Raises:
        InvalidInputError: Empty name
        ConflictError: Permission already exists
    """
    permission_name = (permission_name or "").strip().lower().replace(" ", "_")
    if not permission_name:
        raise InvalidInputError("Permission name is required")

    existing = await session.execute(
        select(Permission.id).where(Permission.permission_name == permission_name)
    )
    if existing.scalar_one_or_none() is not None:
        raise ConflictError("Permission already exists")

    permission = Permission(permission_name=permission_name, description=description)
    session.add(permission)
    await session.flush()
    await session.refresh(permission)
    return {"id": permission.id, "permission_name": permission.permission_name, "description": permission.description}


async def grant_permission(session: AsyncSession, role_id: int, permission_id: int) -> None:
    """
    Grant a permission to a role.

    Raises:
        NotFoundError: Role or permission missing
        ConflictError: Already granted
    """
    if not await session.get(AdminRole, role_id):
        raise NotFoundError("Role not found")
    if not await session.get(Permission, permission_id):
        raise NotFoundError("Permission not found")

    existing = await session.execute(
        select(RolePermission.id).where(
            RolePermission.role_id == role_id, RolePermission.permission_id == permission_id
        )
    )
    if existing.scalar_one_or_none() is not None:
        raise ConflictError("Role already has this permission")

    session.add(RolePermission(role_id=role_id, permission_id=permission_id))
    await session.flush()


async def assign_role(
    session: AsyncSession, student_id: str, role_id: int, assigned_by: Optional[int] = None
) -> Dict:
    """
    Assign a role to a user.

    Raises:
        NotFoundError: User or role missing
        ConflictError: User already holds the role
    """
    result = await session.execute(select(User).where(User.student_id == student_id))
    user = result.scalar_one_or_none()
    if not user:
        raise NotFoundError("User not found")
    role = await session.get(AdminRole, role_id)
    if not role:
        raise NotFoundError("Role not found")

    session.add(AdminRoleMap(user_id=user.id, role_id=role.id, assigned_by=assigned_by))
    try:
        await session.flush()
    except IntegrityError:
        raise ConflictError("User already has this role")

    logger.info(f"Assigned role {role.role_name} to {user.student_id}")
    return {"user_id": user.id, "student_id": user.student_id, "role_name": role.role_name}


async def remove_role(session: AsyncSession, student_id: str, role_id: int) -> None:
    """
    Remove a role from a user.

    Raises:
        NotFoundError: User missing or does not hold the role
    """
    result = await session.execute(select(User.id).where(User.student_id == student_id))
    user_id = result.scalar_one_or_none()
    if user_id is None:
        raise NotFoundError("User not found")

    deleted = await session.execute(
        delete(AdminRoleMap).where(AdminRoleMap.user_id == user_id, AdminRoleMap.role_id == role_id)
    )
    if deleted.rowcount == 0:
        raise NotFoundError("User does not have this role")


async def list_users(session: AsyncSession, search: Optional[str] = None) -> List[Dict]:
    """List users (optionally filtered by student ID or name) with their roles."""
    query = select(User).order_by(User.student_id)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.where(User.student_id.like(pattern) | User.full_name.ilike(pattern))
    result = await session.execute(query)
    users = result.scalars().all()

    roles_result = await session.execute(
        select(AdminRoleMap.user_id, AdminRole.role_name)
        .join(AdminRole, AdminRole.id == AdminRoleMap.role_id)
    )
    roles_by_user: Dict[int, List[str]] = {}
    for user_id, role_name in roles_result.all():
        roles_by_user.setdefault(user_id, []).append(role_name)

    return [
        {
            "id": u.id,
            "student_id": u.student_id,
            "email": u.email,
            "full_name": u.full_name,
            "department": u.department,
            "profile_completed": u.profile_completed,
            "roles": sorted(roles_by_user.get(u.id, [])),
        }
        for u in users
    ]
