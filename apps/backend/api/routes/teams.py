"""Team and team invitation route handlers.

The acting student is always the authenticated user; a body-supplied
studentId / leaderStudentId naming someone else is rejected with 403.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from backend.api.routes import service_error
from backend.database.db import get_db_session
from backend.services import team_service
from backend.api.auth_dependencies import require_user, resolve_acting_student
from backend.models.schemas import (
    TeamCreate,
    TeamMemberInvite,
    TeamMemberValidate,
    InvitationResponse,
    TeamMemberChange,
    TeamMemberReplace,
)

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/api/team")
async def create_team(
    payload: TeamCreate,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Create a team for a team game with the caller as leader."""
    student_id = resolve_acting_student(user, payload.student_id)
    try:
        team = await team_service.create_team(session, student_id, payload.game_id, payload.team_name)
        return {"success": True, "message": "Team created successfully", "team": team}
    except ValueError as e:
        raise service_error(e)
    except Exception as e:
        logger.error(f"Error creating team: {e}")
        raise HTTPException(status_code=500, detail="Error creating team")


@router.get("/api/team/invitations/pending")
async def get_pending_invitations(
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Get the caller's open team invitations."""
    try:
        invitations = await team_service.get_pending_invitations(session, user["id"])
        return {"success": True, "invitations": invitations}
    except Exception as e:
        logger.error(f"Error fetching pending invitations: {e}")
        raise HTTPException(status_code=500, detail="Error fetching pending invitations")


@router.post("/api/team/invitation/accept")
async def accept_invitation(
    payload: InvitationResponse,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Accept a team invitation."""
    student_id = resolve_acting_student(user, payload.student_id)
    try:
        result = await team_service.accept_invitation(session, student_id, payload.notification_id)
        return {"success": True, "message": "Team invitation accepted successfully", **result}
    except ValueError as e:
        raise service_error(e)
    except Exception as e:
        logger.error(f"Error accepting team invitation: {e}")
        raise HTTPException(status_code=500, detail="Error accepting team invitation")


@router.post("/api/team/invitation/reject")
async def reject_invitation(
    payload: InvitationResponse,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Reject a team invitation."""
    student_id = resolve_acting_student(user, payload.student_id)
    try:
        result = await team_service.reject_invitation(session, student_id, payload.notification_id)
        return {"success": True, "message": "Team invitation declined", **result}
    except ValueError as e:
        raise service_error(e)
    except Exception as e:
        logger.error(f"Error rejecting team invitation: {e}")
        raise HTTPException(status_code=500, detail="Error rejecting team invitation")


@router.post("/api/team/validate-member")
async def validate_member(
    payload: TeamMemberValidate,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Check whether a student can be invited to the caller's team."""
    try:
        candidate = await team_service.validate_member(
            session, payload.team_id, payload.member_student_id, leader_student_id=user["student_id"]
        )
        return {"success": True, "valid": True, "member": candidate}
    except ValueError as e:
        raise service_error(e)
    except Exception as e:
        logger.error(f"Error validating team member: {e}")
        raise HTTPException(status_code=500, detail="Error validating team member")


@router.get("/api/team/by-game/{game_id}")
async def get_team_for_game(
    game_id: int,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Get the caller's team for a game, if any."""
    try:
        team = await team_service.get_team_for_game(session, user["id"], game_id)
        return {"success": True, "team": team}
    except Exception as e:
        logger.error(f"Error fetching team for game {game_id}: {e}")
        raise HTTPException(status_code=500, detail="Error fetching team")


@router.get("/api/team/{team_id}")
async def get_team(
    team_id: int,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Get team details with members."""
    try:
        team = await team_service.get_team_details(session, team_id)
        return {"success": True, "team": team}
    except ValueError as e:
        raise service_error(e)
    except Exception as e:
        logger.error(f"Error fetching team {team_id}: {e}")
        raise HTTPException(status_code=500, detail="Error fetching team")


@router.post("/api/team/{team_id}/members")
async def add_member(
    team_id: int,
    payload: TeamMemberInvite,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Invite a student to the caller's team."""
    leader_student_id = resolve_acting_student(user, payload.leader_student_id)
    try:
        result = await team_service.add_member(
            session, team_id, payload.member_student_id, leader_student_id=leader_student_id
        )
        return {"success": True, "message": "Team invitation sent", **result}
    except ValueError as e:
        raise service_error(e)
    except Exception as e:
        logger.error(f"Error adding team member: {e}")
        raise HTTPException(status_code=500, detail="Error adding team member")


@router.delete("/api/team/{team_id}/members/{member_id}")
async def remove_member(
    team_id: int,
    member_id: int,
    payload: Optional[TeamMemberChange] = Body(default=None),
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Remove a member from the caller's team."""
    leader_student_id = resolve_acting_student(user, payload.student_id if payload else None)
    try:
        result = await team_service.remove_member(
            session, team_id, member_id, leader_student_id=leader_student_id
        )
        return {"success": True, "message": "Team member removed", **result}
    except ValueError as e:
        raise service_error(e)
    except Exception as e:
        logger.error(f"Error removing team member: {e}")
        raise HTTPException(status_code=500, detail="Error removing team member")


@router.put("/api/team/{team_id}/members/{member_id}/replace")
async def replace_member(
    team_id: int,
    member_id: int,
    payload: TeamMemberReplace,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Replace a member of the caller's team with a new invitee."""
    leader_student_id = resolve_acting_student(user, payload.student_id)
    try:
        result = await team_service.replace_member(
            session,
            team_id,
            member_id,
            payload.new_member_student_id,
            leader_student_id=leader_student_id,
        )
        return {"success": True, "message": "Team member replaced. Invitation sent", **result}
    except ValueError as e:
        raise service_error(e)
    except Exception as e:
        logger.error(f"Error replacing team member: {e}")
        raise HTTPException(status_code=500, detail="Error replacing team member")


@router.post("/api/team/{team_id}/confirm")
async def confirm_team(
    team_id: int,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Finalize the caller's team registration."""
    try:
        team = await team_service.confirm_team(session, team_id, leader_student_id=user["student_id"])
        return {"success": True, "message": "Team registration confirmed successfully", "team": team}
    except ValueError as e:
        raise service_error(e)
    except Exception as e:
        logger.error(f"Error confirming team registration: {e}")
        raise HTTPException(status_code=500, detail="Error confirming team registration")
