"""
Request service: student suggestions for new games and tournaments.

Requests are stored PENDING for admins to review; a similar PENDING
request cannot be filed twice.
"""

from typing import Dict, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from backend.database.models import (
    User,
    Tournament,
    TournamentStatus,
    GameCategory,
    GameRequest,
    TournamentRequest,
    RequestStatus,
)
from backend.services import auth_service
from backend.services.exceptions import (
    ConflictError,
    InvalidInputError,
    NotFoundError,
    StateError,
)
from backend.utils.datetime_utils import parse_datetime, isoformat
import logging

logger = logging.getLogger(__name__)

GAME_CATEGORIES = {c.value for c in GameCategory}


async def _get_user(session: AsyncSession, student_id: str) -> User:
    if not auth_service.is_valid_student_id(student_id):
        raise InvalidInputError("Valid student ID is required")
    result = await session.execute(select(User).where(User.student_id == student_id))
    user = result.scalar_one_or_none()
    if not user:
        raise NotFoundError("User not found")
    return user


async def request_game(
    session: AsyncSession,
    student_id: str,
    tournament_id: int,
    game_name: str,
    category: str,
    game_type: Optional[str] = None,
) -> Dict:
    """
    Ask for a new game to be added to an active tournament.

    Args:
        session: Database session
        student_id: Student ID of the requester
        tournament_id: Tournament the game belongs in
        game_name: Name of the suggested game
        category: Male, Female or Mix
        game_type: Solo, Duo or Custom (defaults to Solo)

    Returns:
        Game request dict (status PENDING)

    Raises:
        InvalidInputError: Missing name or unknown category
        NotFoundError: User or tournament missing
        StateError: Tournament is not active
        ConflictError: A similar PENDING request already exists
    """
    game_name = (game_name or "").strip()
    if not game_name:
        raise InvalidInputError("Game name is required")
    if category not in GAME_CATEGORIES:
        raise InvalidInputError(f"Invalid category. Must be one of: {', '.join(sorted(GAME_CATEGORIES))}")

    user = await _get_user(session, student_id)

    tournament = await session.get(Tournament, tournament_id)
    if not tournament:
        raise NotFoundError("Tournament not found")
    if tournament.status != TournamentStatus.ACTIVE.value:
        raise StateError("Cannot request games for inactive tournaments")

    result = await session.execute(
        select(GameRequest.id).where(
            GameRequest.tournament_id == tournament.id,
            GameRequest.game_name == game_name,
            GameRequest.category == category,
            GameRequest.status == RequestStatus.PENDING.value,
        ).limit(1)
    )
    if result.scalar_one_or_none() is not None:
        raise ConflictError("A similar game request already exists for this tournament")

    request = GameRequest(
        tournament_id=tournament.id,
        requested_by=user.id,
        game_name=game_name,
        category=category,
        game_type=(game_type or "Solo").strip() or "Solo",
        status=RequestStatus.PENDING.value,
    )
    session.add(request)
    await session.flush()
    await session.refresh(request)

    logger.info(f"{user.student_id} requested game '{game_name}' ({category}) for tournament {tournament.id}")
    return _game_request_to_dict(request, tournament)


async def request_tournament(
    session: AsyncSession,
    student_id: str,
    title: str,
    registration_deadline: str,
    description: Optional[str] = None,
) -> Dict:
    """
    Ask for a new tournament.

    Raises:
        InvalidInputError: Missing title or unparseable deadline
        NotFoundError: User missing
        ConflictError: A PENDING request with the same title already exists
    """
    title = (title or "").strip()
    if not title:
        raise InvalidInputError("Title is required")
    try:
        deadline = parse_datetime(registration_deadline)
    except ValueError:
        raise InvalidInputError("Invalid registration deadline")

    user = await _get_user(session, student_id)

    result = await session.execute(
        select(TournamentRequest.id).where(
            TournamentRequest.title == title,
            TournamentRequest.status == RequestStatus.PENDING.value,
        ).limit(1)
    )
    if result.scalar_one_or_none() is not None:
        raise ConflictError("A similar tournament request already exists")

    request = TournamentRequest(
        requested_by=user.id,
        title=title,
        description=description,
        registration_deadline=deadline,
        status=RequestStatus.PENDING.value,
    )
    session.add(request)
    await session.flush()
    await session.refresh(request)

    logger.info(f"{user.student_id} requested tournament '{title}'")
    return _tournament_request_to_dict(request)


async def get_user_game_requests(session: AsyncSession, user_id: int) -> List[Dict]:
    """Get a user's game requests with their tournament, newest first."""
    result = await session.execute(
        select(GameRequest, Tournament)
        .join(Tournament, Tournament.id == GameRequest.tournament_id)
        .where(GameRequest.requested_by == user_id)
        .order_by(GameRequest.created_at.desc(), GameRequest.id.desc())
    )
    return [_game_request_to_dict(request, tournament) for request, tournament in result.all()]


async def get_user_tournament_requests(session: AsyncSession, user_id: int) -> List[Dict]:
    """Get a user's tournament requests, newest first."""
    result = await session.execute(
        select(TournamentRequest)
        .where(TournamentRequest.requested_by == user_id)
        .order_by(TournamentRequest.created_at.desc(), TournamentRequest.id.desc())
    )
    return [_tournament_request_to_dict(request) for request in result.scalars().all()]


def _game_request_to_dict(request: GameRequest, tournament: Tournament) -> Dict:
    return {
        "id": request.id,
        "tournament": {"id": tournament.id, "title": tournament.title},
        "game_name": request.game_name,
        "category": request.category,
        "game_type": request.game_type,
        "status": request.status,
        "created_at": isoformat(request.created_at),
    }


def _tournament_request_to_dict(request: TournamentRequest) -> Dict:
    return {
        "id": request.id,
        "title": request.title,
        "description": request.description,
        "registration_deadline": isoformat(request.registration_deadline),
        "status": request.status,
        "created_at": isoformat(request.created_at),
    }
