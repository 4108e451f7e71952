"""Student dashboard route handlers."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from backend.database.db import get_db_session
from backend.services import dashboard_service
from backend.api.auth_dependencies import require_user

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/api/dashboard/tournaments")
async def get_dashboard_tournaments(
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Open tournaments with the caller's registration and team status per game."""
    try:
        tournaments = await dashboard_service.get_tournaments_with_status(session, user["id"])
        return {"success": True, "tournaments": tournaments}
    except Exception as e:
        logger.error(f"Error fetching dashboard tournaments: {e}")
        raise HTTPException(status_code=500, detail="Error fetching dashboard")


@router.get("/api/dashboard/overview")
async def get_dashboard_overview(
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Summary counts and recent notifications for the caller."""
    try:
        overview = await dashboard_service.get_overview(session, user["id"])
        return {"success": True, **overview}
    except Exception as e:
        logger.error(f"Error fetching dashboard overview: {e}")
        raise HTTPException(status_code=500, detail="Error fetching dashboard")
