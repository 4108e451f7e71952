"""Public tournament route handlers."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from backend.database.db import get_db_session
from backend.services import tournament_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/api/health")
async def health():
    """Liveness check."""
    return {"success": True, "status": "ok"}


@router.get("/api/tournaments")
async def get_tournaments(session: AsyncSession = Depends(get_db_session)):
    """Get active tournaments that are still open for registration."""
    try:
        tournaments = await tournament_service.get_available_tournaments(session)
        return {"success": True, "tournaments": tournaments}
    except Exception as e:
        logger.error(f"Error fetching tournaments: {e}")
        raise HTTPException(status_code=500, detail="Error fetching tournaments")


@router.get("/api/tournaments/{tournament_id}/games")
async def get_tournament_games(tournament_id: int, session: AsyncSession = Depends(get_db_session)):
    """Get the games of a tournament."""
    try:
        games = await tournament_service.get_tournament_games(session, tournament_id)
        return {"success": True, "games": games}
    except Exception as e:
        logger.error(f"Error fetching games for tournament {tournament_id}: {e}")
        raise HTTPException(status_code=500, detail="Error fetching games")
