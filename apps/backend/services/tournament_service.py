"""
Tournament service: public tournament/game browsing and admin management.
"""

import re
from typing import Dict, List, Optional, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete, func
from backend.database.models import (
    Tournament,
    TournamentGame,
    TournamentStatus,
    GameCategory,
    GameRegistration,
    CartItem,
)
from backend.services.exceptions import (
    ConflictError,
    InvalidInputError,
    NotFoundError,
)
from backend.utils.datetime_utils import utcnow, ensure_aware, isoformat, parse_datetime
import logging

logger = logging.getLogger(__name__)

GAME_TYPES = ("Solo", "Duo", "Custom")
CATEGORIES = {c.value for c in GameCategory}
_TEAM_FORMAT = re.compile(r"^(\d+)\s*v\s*\d+$", re.IGNORECASE)


async def get_game_with_tournament(
    session: AsyncSession, game_id: int
) -> Optional[Tuple[TournamentGame, Tournament]]:
    """
    Load a game together with its tournament.

    Args:
        session: Database session
        game_id: Tournament game ID

    Returns:
        (game, tournament) tuple, or None if the game does not exist
    """
    result = await session.execute(
        select(TournamentGame, Tournament)
        .join(Tournament, Tournament.id == TournamentGame.tournament_id)
        .where(TournamentGame.id == game_id)
    )
    row = result.first()
    if row is None:
        return None
    return row[0], row[1]


async def get_available_tournaments(session: AsyncSession) -> List[Dict]:
    """
    Get ACTIVE tournaments whose registration deadline has not passed.

    Returns:
        List of tournament dicts ordered by deadline (soonest first)
    """
    result = await session.execute(
        select(Tournament)
        .where(
            Tournament.status == TournamentStatus.ACTIVE.value,
            Tournament.registration_deadline > utcnow(),
        )
        .order_by(Tournament.registration_deadline.asc())
    )
    return [tournament_to_dict(t) for t in result.scalars().all()]


async def get_tournament_games(session: AsyncSession, tournament_id: int) -> List[Dict]:
    """Get a tournament's games ordered by category then name."""
    result = await session.execute(
        select(TournamentGame)
        .where(TournamentGame.tournament_id == tournament_id)
        .order_by(TournamentGame.category, TournamentGame.game_name)
    )
    return [game_to_dict(g) for g in result.scalars().all()]


async def get_all_tournaments(session: AsyncSession) -> List[Dict]:
    """Admin: every tournament (any status), newest first."""
    result = await session.execute(
        select(Tournament).order_by(Tournament.created_at.desc(), Tournament.id.desc())
    )
    return [tournament_to_dict(t) for t in result.scalars().all()]


def normalize_game(game: Dict) -> Dict:
    """
    Validate an admin-supplied game definition.

    Free-form types such as "5v5" or "Duo (Mixed)" are stored as Custom;
    the team size comes from an explicit team_size, the NvN format, or the
    type itself (Solo = 1, Duo = 2).

    Raises:
        InvalidInputError: Missing name, unknown category, negative fee or bad team size
    """
    name = (game.get("name") or "").strip()
    if not name:
        raise InvalidInputError("Game name is required")
    category = game.get("category")
    if category not in CATEGORIES:
        raise InvalidInputError(f"Invalid game category: {category}")

    raw_type = (game.get("type") or "Solo").strip()
    team_size = game.get("team_size")
    match = _TEAM_FORMAT.match(raw_type)
    if raw_type in GAME_TYPES:
        game_type = raw_type
    else:
        game_type = "Custom"

    if team_size is None:
        if match:
            team_size = int(match.group(1))
        elif game_type == "Duo" or raw_type.lower().startswith("duo"):
            team_size = 2
        else:
            team_size = 1
    if int(team_size) < 1:
        raise InvalidInputError("Team size must be at least 1")

    fee = float(game.get("fee") or 0)
    if fee < 0:
        raise InvalidInputError("Fee cannot be negative")

    return {
        "game_name": name,
        "category": category,
        "game_type": game_type,
        "team_size": int(team_size),
        "fee_per_person": fee,
    }


async def create_tournament(
    session: AsyncSession,
    title: str,
    deadline,
    created_by: Optional[int] = None,
    description: Optional[str] = None,
    photo_url: Optional[str] = None,
    games: Optional[List[Dict]] = None,
) -> Dict:
    """
    Create a tournament and its games.

    Args:
        session: Database session
        title: Tournament title
        deadline: Registration deadline (ISO string or datetime)
        created_by: Admin user ID
        description: Optional description
        photo_url: Optional banner URL
        games: Optional list of game dicts (name, category, type, fee, team_size)

    Returns:
        Tournament dict including its games

    Raises:
        InvalidInputError: If the title, deadline or a game is invalid
    """
    if not title or not title.strip():
        raise InvalidInputError("Title is required")
    if not deadline:
        raise InvalidInputError("Registration deadline is required")

    tournament = Tournament(
        title=title.strip(),
        description=description,
        photo_url=photo_url,
        registration_deadline=parse_datetime(deadline),
        status=TournamentStatus.ACTIVE.value,
        created_by=created_by,
    )
    session.add(tournament)
    await session.flush()

    for game in games or []:
        session.add(TournamentGame(tournament_id=tournament.id, **normalize_game(game)))
    await session.flush()
    await session.refresh(tournament)

    logger.info(f"Created tournament {tournament.id} ({tournament.title})")
    result = tournament_to_dict(tournament)
    result["games"] = await get_tournament_games(session, tournament.id)
    return result


async def update_tournament(session: AsyncSession, tournament_id: int, fields: Dict) -> Dict:
    """
    Update tournament fields (title, description, photo_url, deadline, status).

    Only keys present in ``fields`` are changed.

    Raises:
        NotFoundError: If the tournament does not exist
        InvalidInputError: If a value is invalid
    """
    tournament = await session.get(Tournament, tournament_id)
    if not tournament:
        raise NotFoundError("Tournament not found")

    if "title" in fields:
        if not fields["title"] or not fields["title"].strip():
            raise InvalidInputError("Title is required")
        tournament.title = fields["title"].strip()
    if "description" in fields:
        tournament.description = fields["description"]
    if fields.get("photo_url"):
        tournament.photo_url = fields["photo_url"]
    if fields.get("deadline"):
        tournament.registration_deadline = parse_datetime(fields["deadline"])
    if "status" in fields:
        if fields["status"] not in {s.value for s in TournamentStatus}:
            raise InvalidInputError(f"Invalid tournament status: {fields['status']}")
        tournament.status = fields["status"]

    await session.flush()
    await session.refresh(tournament)
    return tournament_to_dict(tournament)


async def _count_game_registrations(session: AsyncSession, game_ids: List[int]) -> int:
    if not game_ids:
        return 0
    result = await session.execute(
        select(func.count(GameRegistration.id)).where(
            GameRegistration.tournament_game_id.in_(game_ids)
        )
    )
    return result.scalar() or 0


async def delete_tournament(session: AsyncSession, tournament_id: int) -> None:
    """
    Delete a tournament and its games.

    Raises:
        NotFoundError: If the tournament does not exist
        ConflictError: If any of its games already has registrations
    """
    tournament = await session.get(Tournament, tournament_id)
    if not tournament:
        raise NotFoundError("Tournament not found")

    result = await session.execute(
        select(TournamentGame.id).where(TournamentGame.tournament_id == tournament_id)
    )
    game_ids = list(result.scalars().all())
    if await _count_game_registrations(session, game_ids):
        raise ConflictError("Cannot delete a tournament that already has registrations")

    if game_ids:
        await session.execute(
            delete(CartItem).where(CartItem.tournament_game_id.in_(game_ids))
        )
    await session.delete(tournament)
    await session.flush()
    logger.info(f"Deleted tournament {tournament_id}")


async def add_game(session: AsyncSession, tournament_id: int, game: Dict) -> Dict:
    """
    Add a game to an existing tournament.

    Raises:
        NotFoundError: If the tournament does not exist
        InvalidInputError: If the game definition is invalid
    """
    tournament = await session.get(Tournament, tournament_id)
    if not tournament:
        raise NotFoundError("Tournament not found")

    new_game = TournamentGame(tournament_id=tournament_id, **normalize_game(game))
    session.add(new_game)
    await session.flush()
    await session.refresh(new_game)
    return game_to_dict(new_game)


async def update_game(session: AsyncSession, game_id: int, game: Dict) -> Dict:
    """
    Replace a game's definition.

    Raises:
        NotFoundError: If the game does not exist
        ConflictError: If the team size changes after registrations exist
    """
    existing = await session.get(TournamentGame, game_id)
    if not existing:
        raise NotFoundError("Game not found")

    values = normalize_game(game)
    if values["team_size"] != existing.team_size and await _count_game_registrations(session, [game_id]):
        raise ConflictError("Cannot change team size after registrations exist")

    for field, value in values.items():
        setattr(existing, field, value)
    await session.flush()
    await session.refresh(existing)
    return game_to_dict(existing)


async def delete_game(session: AsyncSession, game_id: int) -> None:
    """
    Delete a game.

    Raises:
        NotFoundError: If the game does not exist
        ConflictError: If the game already has registrations
    """
    game = await session.get(TournamentGame, game_id)
    if not game:
        raise NotFoundError("Game not found")
    if await _count_game_registrations(session, [game_id]):
        raise ConflictError("Cannot delete a game that already has registrations")

    await session.execute(delete(CartItem).where(CartItem.tournament_game_id == game_id))
    await session.delete(game)
    await session.flush()


def tournament_to_dict(tournament: Tournament) -> Dict:
    deadline = ensure_aware(tournament.registration_deadline)
    return {
        "id": tournament.id,
        "title": tournament.title,
        "description": tournament.description,
        "photo_url": tournament.photo_url,
        "registration_deadline": isoformat(deadline),
        "status": tournament.status,
        "is_registration_open": bool(deadline and deadline > utcnow()),
        "created_at": isoformat(tournament.created_at),
    }


def game_to_dict(game: TournamentGame) -> Dict:
    return {
        "id": game.id,
        "tournament_id": game.tournament_id,
        "game_name": game.game_name,
        "category": game.category,
        "game_type": game.game_type,
        "team_size": game.team_size,
        "fee_per_person": game.fee_per_person,
        "is_team_game": (game.team_size or 1) > 1,
    }
