"""Individual game registration route handlers."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from backend.api.routes import service_error
from backend.database.db import get_db_session
from backend.services import registration_service
from backend.api.auth_dependencies import require_user, resolve_acting_student
from backend.models.schemas import RegistrationRequest

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/api/registrations")
async def register_for_game(
    payload: RegistrationRequest,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Register the caller for a solo game."""
    student_id = resolve_acting_student(user, payload.student_id)
    try:
        registration = await registration_service.register_for_game(session, student_id, payload.game_id)
        return {"success": True, "message": "Registration successful", "registration": registration}
    except ValueError as e:
        raise service_error(e)
    except Exception as e:
        logger.error(f"Error registering for game: {e}")
        raise HTTPException(status_code=500, detail="Error registering for game")


@router.get("/api/registrations")
async def get_registrations(
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Get the caller's registrations."""
    try:
        registrations = await registration_service.get_user_registrations(session, user["id"])
        return {"success": True, "registrations": registrations}
    except Exception as e:
        logger.error(f"Error fetching registrations: {e}")
        raise HTTPException(status_code=500, detail="Error fetching registrations")


@router.delete("/api/registrations/{game_id}")
async def cancel_registration(
    game_id: int,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Cancel the caller's unpaid registration for a game."""
    try:
        await registration_service.cancel_registration(session, user["student_id"], game_id)
        return {"success": True, "message": "Registration canceled successfully"}
    except ValueError as e:
        raise service_error(e)
    except Exception as e:
        logger.error(f"Error canceling registration: {e}")
        raise HTTPException(status_code=500, detail="Error canceling registration")
