"""Student game and tournament request route handlers."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from backend.api.routes import service_error
from backend.database.db import get_db_session
from backend.services import request_service
from backend.api.auth_dependencies import require_user, resolve_acting_student
from backend.models.schemas import GameRequestCreate, TournamentRequestCreate

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/api/requests/game")
async def request_game(
    payload: GameRequestCreate,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Suggest a new game for an active tournament."""
    student_id = resolve_acting_student(user, payload.student_id)
    try:
        request = await request_service.request_game(
            session,
            student_id,
            payload.tournament_id,
            payload.game_name,
            payload.category,
            payload.game_type,
        )
        return {"success": True, "message": "Game request submitted successfully", "request": request}
    except ValueError as e:
        raise service_error(e)
    except Exception as e:
        logger.error(f"Error creating game request: {e}")
        raise HTTPException(status_code=500, detail="Error creating game request")


@router.post("/api/requests/tournament")
async def request_tournament(
    payload: TournamentRequestCreate,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Suggest a new tournament."""
    student_id = resolve_acting_student(user, payload.student_id)
    try:
        request = await request_service.request_tournament(
            session,
            student_id,
            payload.title,
            payload.registration_deadline,
            description=payload.description,
        )
        return {"success": True, "message": "Tournament request submitted successfully", "request": request}
    except ValueError as e:
        raise service_error(e)
    except Exception as e:
        logger.error(f"Error creating tournament request: {e}")
        raise HTTPException(status_code=500, detail="Error creating tournament request")


@router.get("/api/requests/game")
async def get_game_requests(
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Get the caller's game requests."""
    try:
        requests = await request_service.get_user_game_requests(session, user["id"])
        return {"success": True, "requests": requests}
    except Exception as e:
        logger.error(f"Error fetching game requests: {e}")
        raise HTTPException(status_code=500, detail="Error fetching game requests")


@router.get("/api/requests/tournament")
async def get_tournament_requests(
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Get the caller's tournament requests."""
    try:
        requests = await request_service.get_user_tournament_requests(session, user["id"])
        return {"success": True, "requests": requests}
    except Exception as e:
        logger.error(f"Error fetching tournament requests: {e}")
        raise HTTPException(status_code=500, detail="Error fetching tournament requests")
