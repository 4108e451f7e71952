"""
Dashboard service: per-student views of tournaments and activity.
"""

from typing import Dict, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from backend.database.models import (
    Tournament,
    TournamentGame,
    TournamentStatus,
    GameRegistration,
    PaymentStatus,
    Team,
    TeamMember,
    TeamMemberStatus,
)
from backend.services import notification_service, tournament_service
from backend.utils.datetime_utils import utcnow


async def get_tournaments_with_status(session: AsyncSession, user_id: int) -> List[Dict]:
    """
    Available tournaments with each game annotated for the user.

    Each game carries is_registered, registration_status (payment status),
    and team_id / team_status when the user is on a team for it.
    """
    tournaments = await tournament_service.get_available_tournaments(session)
    if not tournaments:
        return []

    tournament_ids = [t["id"] for t in tournaments]
    games_result = await session.execute(
        select(TournamentGame)
        .where(TournamentGame.tournament_id.in_(tournament_ids))
        .order_by(TournamentGame.category, TournamentGame.game_name)
    )
    games = games_result.scalars().all()

    regs_result = await session.execute(
        select(GameRegistration).where(GameRegistration.user_id == user_id)
    )
    regs_by_game = {reg.tournament_game_id: reg for reg in regs_result.scalars().all()}

    teams_result = await session.execute(
        select(Team.tournament_game_id, Team.id, Team.status, TeamMember.status)
        .join(TeamMember, TeamMember.team_id == Team.id)
        .where(
            TeamMember.user_id == user_id,
            TeamMember.status != TeamMemberStatus.REJECTED.value,
        )
    )
    teams_by_game = {
        row[0]: {"team_id": row[1], "team_status": row[2], "membership_status": row[3]}
        for row in teams_result.all()
    }

    games_by_tournament: Dict[int, List[Dict]] = {}
    for game in games:
        item = tournament_service.game_to_dict(game)
        reg = regs_by_game.get(game.id)
        item["is_registered"] = reg is not None
        item["registration_status"] = reg.payment_status if reg else None
        item.update(teams_by_game.get(game.id, {"team_id": None, "team_status": None, "membership_status": None}))
        games_by_tournament.setdefault(game.tournament_id, []).append(item)

    for tournament in tournaments:
        tournament["games"] = games_by_tournament.get(tournament["id"], [])
    return tournaments


async def get_overview(session: AsyncSession, user_id: int) -> Dict:
    """Counts for the student dashboard plus the five latest notifications."""
    active_result = await session.execute(
        select(func.count(Tournament.id)).where(
            Tournament.status == TournamentStatus.ACTIVE.value,
            Tournament.registration_deadline > utcnow(),
        )
    )
    registered_result = await session.execute(
        select(func.count(GameRegistration.id)).where(GameRegistration.user_id == user_id)
    )
    pending_result = await session.execute(
        select(func.count(GameRegistration.id)).where(
            GameRegistration.user_id == user_id,
            GameRegistration.payment_status != PaymentStatus.PAID.value,
        )
    )
    teams_result = await session.execute(
        select(func.count(TeamMember.id)).where(
            TeamMember.user_id == user_id,
            TeamMember.status == TeamMemberStatus.CONFIRMED.value,
        )
    )

    return {
        "active_tournaments": active_result.scalar() or 0,
        "registered_games": registered_result.scalar() or 0,
        "pending_payments": pending_result.scalar() or 0,
        "team_memberships": teams_result.scalar() or 0,
        "recent_notifications": await notification_service.get_user_notifications(session, user_id, limit=5),
    }
