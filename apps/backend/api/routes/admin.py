"""
Admin route handlers: tournaments, registrations, payments and roles.

Every endpoint requires an admin (any admin role, or a SYSTEM_ADMIN_EMAILS
address).
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backend.api.routes import service_error
from backend.database.db import get_db_session
from backend.services import tournament_service, registration_service, admin_service
from backend.api.auth_dependencies import require_admin
from backend.models.schemas import (
    TournamentCreate,
    TournamentUpdate,
    GameDefinition,
    PaymentStatusUpdate,
    MemberStatusUpdate,
    ConfirmRegistrationRequest,
    RoleCreate,
    PermissionCreate,
    RolePermissionGrant,
    RoleAssignment,
)

logger = logging.getLogger(__name__)
router = APIRouter()


# ---------------------------------------------------------------------------
# Tournaments and games
# ---------------------------------------------------------------------------

@router.get("/api/admin/tournaments")
async def list_tournaments(
    user: dict = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """List every tournament, regardless of status or deadline."""
    try:
        tournaments = await tournament_service.get_all_tournaments(session)
        return {"success": True, "tournaments": tournaments}
    except Exception as e:
        logger.error(f"Error listing tournaments: {e}")
        raise HTTPException(status_code=500, detail="Error listing tournaments")


@router.post("/api/admin/tournaments")
async def create_tournament(
    payload: TournamentCreate,
    user: dict = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """Create a tournament together with its games."""
    try:
        tournament = await tournament_service.create_tournament(
            session,
            payload.title,
            payload.deadline,
            created_by=user["id"],
            description=payload.description,
            photo_url=payload.photo_url,
            games=[game.model_dump() for game in payload.games],
        )
        return {"success": True, "message": "Tournament created successfully", "tournament": tournament}
    except ValueError as e:
        raise service_error(e)
    except Exception as e:
        logger.error(f"Error creating tournament: {e}")
        raise HTTPException(status_code=500, detail="Error creating tournament")


@router.put("/api/admin/tournaments/{tournament_id}")
async def update_tournament(
    tournament_id: int,
    payload: TournamentUpdate,
    user: dict = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """Update the supplied tournament fields."""
    try:
        tournament = await tournament_service.update_tournament(
            session, tournament_id, payload.model_dump(exclude_unset=True)
        )
        return {"success": True, "message": "Tournament updated successfully", "tournament": tournament}
    except ValueError as e:
        raise service_error(e)
    except Exception as e:
        logger.error(f"Error updating tournament {tournament_id}: {e}")
        raise HTTPException(status_code=500, detail="Error updating tournament")


@router.delete("/api/admin/tournaments/{tournament_id}")
async def delete_tournament(
    tournament_id: int,
    user: dict = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """Delete a tournament that has no registrations."""
    try:
        await tournament_service.delete_tournament(session, tournament_id)
        return {"success": True, "message": "Tournament deleted successfully"}
    except ValueError as e:
        raise service_error(e)
    except Exception as e:
        logger.error(f"Error deleting tournament {tournament_id}: {e}")
        raise HTTPException(status_code=500, detail="Error deleting tournament")


@router.post("/api/admin/tournaments/{tournament_id}/games")
async def add_game(
    tournament_id: int,
    payload: GameDefinition,
    user: dict = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """Add a game to a tournament."""
    try:
        game = await tournament_service.add_game(session, tournament_id, payload.model_dump())
        return {"success": True, "message": "Game added successfully", "game": game}
    except ValueError as e:
        raise service_error(e)
    except Exception as e:
        logger.error(f"Error adding game to tournament {tournament_id}: {e}")
        raise HTTPException(status_code=500, detail="Error adding game")


@router.put("/api/admin/games/{game_id}")
async def update_game(
    game_id: int,
    payload: GameDefinition,
    user: dict = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """Replace a game's definition."""
    try:
        game = await tournament_service.update_game(session, game_id, payload.model_dump())
        return {"success": True, "message": "Game updated successfully", "game": game}
    except ValueError as e:
        raise service_error(e)
    except Exception as e:
        logger.error(f"Error updating game {game_id}: {e}")
        raise HTTPException(status_code=500, detail="Error updating game")


@router.delete("/api/admin/games/{game_id}")
async def delete_game(
    game_id: int,
    user: dict = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """Delete a game that has no registrations."""
    try:
        await tournament_service.delete_game(session, game_id)
        return {"success": True, "message": "Game deleted successfully"}
    except ValueError as e:
        raise service_error(e)
    except Exception as e:
        logger.error(f"Error deleting game {game_id}: {e}")
        raise HTTPException(status_code=500, detail="Error deleting game")


# ---------------------------------------------------------------------------
# Registrations and payments
# ---------------------------------------------------------------------------

@router.get("/api/admin/registrations")
async def get_registration_overview(
    user: dict = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """Registration counts per tournament and game."""
    try:
        overview = await registration_service.get_registration_overview(session)
        return {"success": True, **overview}
    except Exception as e:
        logger.error(f"Error fetching registration overview: {e}")
        raise HTTPException(status_code=500, detail="Error fetching registrations")


@router.get("/api/admin/games/{game_id}/registrations")
async def get_game_registrations(
    game_id: int,
    search: Optional[str] = Query(None),
    user: dict = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """Registrations (or teams) for one game, optionally filtered by student ID."""
    try:
        result = await registration_service.get_game_registrations(session, game_id, search=search)
        return {"success": True, **result}
    except ValueError as e:
        raise service_error(e)
    except Exception as e:
        logger.error(f"Error fetching registrations for game {game_id}: {e}")
        raise HTTPException(status_code=500, detail="Error fetching registrations")


@router.put("/api/admin/registrations/{registration_id}/payment")
async def update_payment_status(
    registration_id: int,
    payload: PaymentStatusUpdate,
    user: dict = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """Set a registration's payment status."""
    try:
        registration = await registration_service.update_payment_status(
            session, registration_id, payload.payment_status
        )
        return {"success": True, "message": "Payment status updated", "registration": registration}
    except ValueError as e:
        raise service_error(e)
    except Exception as e:
        logger.error(f"Error updating payment for registration {registration_id}: {e}")
        raise HTTPException(status_code=500, detail="Error updating payment status")


@router.put("/api/admin/team-members/{member_id}/payment")
async def update_team_member_payment(
    member_id: int,
    payload: PaymentStatusUpdate,
    user: dict = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """Set the payment status of a team member's registration."""
    try:
        registration = await registration_service.update_team_member_payment(
            session, member_id, payload.payment_status
        )
        return {"success": True, "message": "Payment status updated", "registration": registration}
    except ValueError as e:
        raise service_error(e)
    except Exception as e:
        logger.error(f"Error updating payment for team member {member_id}: {e}")
        raise HTTPException(status_code=500, detail="Error updating payment status")


@router.put("/api/admin/team-members/{member_id}/status")
async def update_team_member_status(
    member_id: int,
    payload: MemberStatusUpdate,
    user: dict = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """Override a team member's status."""
    try:
        member = await registration_service.update_team_member_status(session, member_id, payload.status)
        return {"success": True, "message": "Member status updated", "member": member}
    except ValueError as e:
        raise service_error(e)
    except Exception as e:
        logger.error(f"Error updating status for team member {member_id}: {e}")
        raise HTTPException(status_code=500, detail="Error updating member status")


@router.delete("/api/admin/team-members/{member_id}")
async def delete_team_member(
    member_id: int,
    user: dict = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """Remove a member from a team."""
    try:
        await registration_service.delete_team_member(session, member_id)
        return {"success": True, "message": "Team member deleted"}
    except ValueError as e:
        raise service_error(e)
    except Exception as e:
        logger.error(f"Error deleting team member {member_id}: {e}")
        raise HTTPException(status_code=500, detail="Error deleting team member")


@router.post("/api/admin/confirm-registration")
async def confirm_registration(
    payload: ConfirmRegistrationRequest,
    user: dict = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """Confirm a cash payment for a registration or a whole team."""
    try:
        result = await registration_service.confirm_registration(
            session, registration_id=payload.registration_id, team_id=payload.team_id
        )
        logger.info(f"Admin {user['student_id']} confirmed cash registration {payload.model_dump()}")
        return {"success": True, "message": "Registration confirmed", **result}
    except ValueError as e:
        raise service_error(e)
    except Exception as e:
        logger.error(f"Error confirming registration: {e}")
        raise HTTPException(status_code=500, detail="Error confirming registration")


# ---------------------------------------------------------------------------
# Roles, permissions and users
# ---------------------------------------------------------------------------

@router.get("/api/admin/roles")
async def list_roles(
    user: dict = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """List admin roles with their permissions."""
    try:
        roles = await admin_service.list_roles(session)
        return {"success": True, "roles": roles}
    except Exception as e:
        logger.error(f"Error listing roles: {e}")
        raise HTTPException(status_code=500, detail="Error listing roles")


@router.post("/api/admin/roles")
async def create_role(
    payload: RoleCreate,
    user: dict = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """Create an admin role."""
    try:
        role = await admin_service.create_role(session, payload.role_name, payload.description)
        return {"success": True, "message": "Role created", "role": role}
    except ValueError as e:
        raise service_error(e)
    except Exception as e:
        logger.error(f"Error creating role: {e}")
        raise HTTPException(status_code=500, detail="Error creating role")


@router.post("/api/admin/roles/{role_id}/permissions")
async def grant_permission(
    role_id: int,
    payload: RolePermissionGrant,
    user: dict = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """Grant a permission to a role."""
    try:
        await admin_service.grant_permission(session, role_id, payload.permission_id)
        return {"success": True, "message": "Permission granted"}
    except ValueError as e:
        raise service_error(e)
    except Exception as e:
        logger.error(f"Error granting permission to role {role_id}: {e}")
        raise HTTPException(status_code=500, detail="Error granting permission")


@router.get("/api/admin/permissions")
async def list_permissions(
    user: dict = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """List permissions."""
    try:
        permissions = await admin_service.list_permissions(session)
        return {"success": True, "permissions": permissions}
    except Exception as e:
        logger.error(f"Error listing permissions: {e}")
        raise HTTPException(status_code=500, detail="Error listing permissions")


@router.post("/api/admin/permissions")
async def create_permission(
    payload: PermissionCreate,
    user: dict = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """Create a permission."""
    try:
        permission = await admin_service.create_permission(session, payload.permission_name, payload.description)
        return {"success": True, "message": "Permission created", "permission": permission}
    except ValueError as e:
        raise service_error(e)
    except Exception as e:
        logger.error(f"Error creating permission: {e}")
        raise HTTPException(status_code=500, detail="Error creating permission")


@router.post("/api/admin/role-assignments")
async def assign_role(
    payload: RoleAssignment,
    user: dict = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """Assign a role to a student."""
    try:
        assignment = await admin_service.assign_role(
            session, payload.student_id, payload.role_id, assigned_by=user["id"]
        )
        return {"success": True, "message": "Role assigned", "assignment": assignment}
    except ValueError as e:
        raise service_error(e)
    except Exception as e:
        logger.error(f"Error assigning role: {e}")
        raise HTTPException(status_code=500, detail="Error assigning role")


@router.delete("/api/admin/role-assignments")
async def remove_role(
    student_id: str = Query(..., alias="studentId"),
    role_id: int = Query(..., alias="roleId"),
    user: dict = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """Remove a role from a student."""
    try:
        await admin_service.remove_role(session, student_id, role_id)
        return {"success": True, "message": "Role removed"}
    except ValueError as e:
        raise service_error(e)
    except Exception as e:
        logger.error(f"Error removing role: {e}")
        raise HTTPException(status_code=500, detail="Error removing role")


@router.get("/api/admin/users")
async def list_users(
    search: Optional[str] = Query(None),
    user: dict = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """List users, optionally filtered by name, email or student ID."""
    try:
        users = await admin_service.list_users(session, search=search)
        return {"success": True, "users": users}
    except Exception as e:
        logger.error(f"Error listing users: {e}")
        raise HTTPException(status_code=500, detail="Error listing users")
