"""
Registration service: individual game registrations and admin payment management.
"""

from typing import Dict, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete, func
from sqlalchemy.exc import IntegrityError
from backend.database.models import (
    User,
    Tournament,
    TournamentGame,
    GameCategory,
    GameRegistration,
    PaymentStatus,
    Team,
    TeamMember,
    TeamMemberStatus,
    TeamStatus,
    CartItem,
)
from backend.services import auth_service, tournament_service, team_service
from backend.services.exceptions import (
    ConflictError,
    InvalidInputError,
    NotFoundError,
    StateError,
)
from backend.utils.datetime_utils import is_past, isoformat
import logging

logger = logging.getLogger(__name__)

PAYMENT_STATUSES = {s.value for s in PaymentStatus}
CASH_PAYMENT_METHOD = "CASH"


async def _get_user(session: AsyncSession, student_id: str) -> User:
    if not auth_service.is_valid_student_id(student_id):
        raise InvalidInputError("Valid student ID is required")
    result = await session.execute(select(User).where(User.student_id == student_id))
    user = result.scalar_one_or_none()
    if not user:
        raise NotFoundError("User not found")
    return user


async def register_for_game(session: AsyncSession, student_id: str, game_id: int) -> Dict:
    """
    Register a student individually for a solo game.

    Args:
        session: Database session
        student_id: Student ID of the registrant
        game_id: Tournament game ID

    Returns:
        Registration dict (payment_status PENDING)

    Raises:
        InvalidInputError: Bad IDs, category not matching gender, or team game
        NotFoundError: User or game missing
        StateError: Registration deadline passed
        ConflictError: Already registered for this game
    """
    if not game_id:
        raise InvalidInputError("Valid game ID is required")
    user = await _get_user(session, student_id)

    loaded = await tournament_service.get_game_with_tournament(session, game_id)
    if loaded is None:
        raise NotFoundError("Game not found")
    game, tournament = loaded

    if is_past(tournament.registration_deadline):
        raise StateError("Registration deadline has passed for this tournament")

    if game.category != GameCategory.MIX.value and user.gender and user.gender != game.category:
        raise InvalidInputError(
            f"This game is only for {game.category} participants", reason="gender_mismatch"
        )

    if (game.team_size or 1) > 1:
        raise InvalidInputError("This game requires team registration. Please create a team instead.")

    result = await session.execute(
        select(GameRegistration.id).where(
            GameRegistration.user_id == user.id,
            GameRegistration.tournament_game_id == game.id,
        )
    )
    if result.scalar_one_or_none() is not None:
        raise ConflictError("Already registered for this game")

    registration = GameRegistration(
        user_id=user.id,
        tournament_game_id=game.id,
        payment_status=PaymentStatus.PENDING.value,
    )
    session.add(registration)
    try:
        await session.flush()
    except IntegrityError:
        raise ConflictError("Already registered for this game")
    await session.refresh(registration)

    logger.info(f"{user.student_id} registered for game {game.id}")
    return _registration_to_dict(registration, game, tournament)


async def get_user_registrations(session: AsyncSession, user_id: int) -> List[Dict]:
    """Get a user's registrations with game, tournament and team details, newest first."""
    result = await session.execute(
        select(GameRegistration, TournamentGame, Tournament, Team)
        .join(TournamentGame, TournamentGame.id == GameRegistration.tournament_game_id)
        .join(Tournament, Tournament.id == TournamentGame.tournament_id)
        .outerjoin(Team, Team.id == GameRegistration.team_id)
        .where(GameRegistration.user_id == user_id)
        .order_by(GameRegistration.registration_date.desc(), GameRegistration.id.desc())
    )
    registrations = []
    for registration, game, tournament, team in result.all():
        item = _registration_to_dict(registration, game, tournament)
        item["team_name"] = team.team_name if team else None
        item["team_status"] = team.status if team else None
        registrations.append(item)
    return registrations


async def cancel_registration(session: AsyncSession, student_id: str, game_id: int) -> None:
    """
    Cancel an unpaid individual registration.

    Raises:
        NotFoundError: User, game or registration missing
        StateError: Deadline passed, registration paid, or it belongs to a team
    """
    user = await _get_user(session, student_id)

    loaded = await tournament_service.get_game_with_tournament(session, game_id)
    if loaded is None:
        raise NotFoundError("Game not found")
    _, tournament = loaded

    if is_past(tournament.registration_deadline):
        raise StateError("Registration deadline has passed. Cannot cancel registration.")

    result = await session.execute(
        select(GameRegistration).where(
            GameRegistration.user_id == user.id,
            GameRegistration.tournament_game_id == game_id,
        )
    )
    registration = result.scalar_one_or_none()
    if not registration:
        raise NotFoundError("No registration found for this game")
    if registration.payment_status == PaymentStatus.PAID.value:
        raise StateError("Registration is confirmed and cannot be canceled. Please contact admin.")
    if registration.team_id is not None:
        raise StateError("Team registrations are managed by the team leader")

    await session.execute(
        delete(CartItem).where(CartItem.user_id == user.id, CartItem.tournament_game_id == game_id)
    )
    await session.delete(registration)
    await session.flush()
    logger.info(f"{user.student_id} canceled registration for game {game_id}")


# ──────────────────────────────────────────────────────────────
# Admin
# ──────────────────────────────────────────────────────────────


async def get_registration_overview(session: AsyncSession) -> Dict:
    """
    Admin: tournaments and games with registration counts.

    Returns:
        Dict with "tournaments" and "games" lists
    """
    counts_result = await session.execute(
        select(GameRegistration.tournament_game_id, func.count(GameRegistration.id))
        .group_by(GameRegistration.tournament_game_id)
    )
    counts = {game_id: count for game_id, count in counts_result.all()}

    games_result = await session.execute(
        select(TournamentGame).order_by(TournamentGame.tournament_id, TournamentGame.category, TournamentGame.game_name)
    )
    games = []
    per_tournament: Dict[int, int] = {}
    for game in games_result.scalars().all():
        item = tournament_service.game_to_dict(game)
        item["registration_count"] = counts.get(game.id, 0)
        per_tournament[game.tournament_id] = per_tournament.get(game.tournament_id, 0) + item["registration_count"]
        games.append(item)

    tournaments = []
    for tournament in await tournament_service.get_all_tournaments(session):
        tournament["registration_count"] = per_tournament.get(tournament["id"], 0)
        tournaments.append(tournament)

    return {"tournaments": tournaments, "games": games}


async def get_game_registrations(
    session: AsyncSession, game_id: int, search: Optional[str] = None
) -> Dict:
    """
    Admin: registrations for one game.

    Team games list each team with its members and each member's payment;
    solo games list individual registrations. ``search`` filters by
    (leader) student ID substring.

    Raises:
        NotFoundError: If the game does not exist
    """
    game = await session.get(TournamentGame, game_id)
    if not game:
        raise NotFoundError("Game not found")

    is_team_game = (game.team_size or 1) > 1
    search = (search or "").strip()

    if is_team_game:
        teams_result = await session.execute(
            select(Team, User)
            .join(User, User.id == Team.leader_user_id)
            .where(Team.tournament_game_id == game_id)
            .order_by(Team.created_at, Team.id)
        )
        regs_result = await session.execute(
            select(GameRegistration).where(GameRegistration.tournament_game_id == game_id)
        )
        regs_by_user = {reg.user_id: reg for reg in regs_result.scalars().all()}

        teams = []
        for team, leader in teams_result.all():
            if search and search not in leader.student_id:
                continue
            members_result = await session.execute(
                select(TeamMember, User)
                .join(User, User.id == TeamMember.user_id)
                .where(TeamMember.team_id == team.id)
                .order_by(TeamMember.id)
            )
            members = []
            for member, user in members_result.all():
                reg = regs_by_user.get(user.id)
                members.append(
                    {
                        "id": member.id,
                        "user_id": user.id,
                        "student_id": user.student_id,
                        "full_name": user.full_name,
                        "email": user.email,
                        "role": member.role,
                        "status": member.status,
                        "registration_id": reg.id if reg else None,
                        "payment_status": reg.payment_status if reg else None,
                        "payment_method": reg.payment_method if reg else None,
                        "transaction_id": reg.transaction_id if reg else None,
                    }
                )
            teams.append(
                {
                    "team_id": team.id,
                    "team_name": team.team_name,
                    "status": team.status,
                    "leader_student_id": leader.student_id,
                    "leader_name": leader.full_name,
                    "member_count": len(members),
                    "members": members,
                }
            )
        return {"game": tournament_service.game_to_dict(game), "is_team_game": True, "teams": teams}

    result = await session.execute(
        select(GameRegistration, User)
        .join(User, User.id == GameRegistration.user_id)
        .where(GameRegistration.tournament_game_id == game_id)
        .order_by(GameRegistration.registration_date, GameRegistration.id)
    )
    registrations = []
    for reg, user in result.all():
        if search and search not in user.student_id:
            continue
        registrations.append(
            {
                "id": reg.id,
                "user_id": user.id,
                "student_id": user.student_id,
                "full_name": user.full_name,
                "email": user.email,
                "payment_status": reg.payment_status,
                "payment_method": reg.payment_method,
                "transaction_id": reg.transaction_id,
                "registration_date": isoformat(reg.registration_date),
            }
        )
    return {"game": tournament_service.game_to_dict(game), "is_team_game": False, "registrations": registrations}


def _check_payment_status(payment_status: str) -> None:
    if payment_status not in PAYMENT_STATUSES:
        raise InvalidInputError("Invalid payment status. Must be PENDING, PAID, or UNPAID")


async def update_payment_status(session: AsyncSession, registration_id: int, payment_status: str) -> Dict:
    """
    Admin: set a registration's payment status.

    Raises:
        InvalidInputError: Unknown status
        NotFoundError: Registration missing
    """
    _check_payment_status(payment_status)
    registration = await session.get(GameRegistration, registration_id)
    if not registration:
        raise NotFoundError("Registration not found")

    registration.payment_status = payment_status
    await session.flush()
    return {"id": registration.id, "payment_status": registration.payment_status}


async def _get_team_member(session: AsyncSession, member_id: int):
    result = await session.execute(
        select(TeamMember, Team).join(Team, Team.id == TeamMember.team_id).where(TeamMember.id == member_id)
    )
    row = result.first()
    if row is None:
        raise NotFoundError("Team member not found")
    return row[0], row[1]


async def update_team_member_payment(session: AsyncSession, member_id: int, payment_status: str) -> Dict:
    """
    Admin: set a team member's payment status, creating their team
    registration if they do not have one yet.

    Raises:
        InvalidInputError: Unknown status
        NotFoundError: Team member missing
    """
    _check_payment_status(payment_status)
    member, team = await _get_team_member(session, member_id)

    result = await session.execute(
        select(GameRegistration).where(
            GameRegistration.user_id == member.user_id,
            GameRegistration.tournament_game_id == team.tournament_game_id,
        )
    )
    registration = result.scalar_one_or_none()
    if registration and registration.team_id != team.id:
        raise ConflictError("Student is already registered for this game with another team", alreadyOnTeam=True)
    if registration:
        registration.payment_status = payment_status
    else:
        registration = GameRegistration(
            user_id=member.user_id,
            tournament_game_id=team.tournament_game_id,
            team_id=team.id,
            payment_status=payment_status,
        )
        session.add(registration)
    await session.flush()
    return {"member_id": member.id, "registration_id": registration.id, "payment_status": payment_status}


async def update_team_member_status(session: AsyncSession, member_id: int, status: str) -> Dict:
    """
    Admin: set a team member's invitation status.

    Confirming goes through the same one-team-per-game rule and cross-team
    cleanup as accepting an invitation.

    Raises:
        InvalidInputError: Unknown status
        NotFoundError: Team member missing
        ConflictError: Confirming a member already confirmed on another team (alreadyOnTeam)
    """
    if status not in {s.value for s in TeamMemberStatus}:
        raise InvalidInputError("Invalid member status. Must be PENDING, CONFIRMED, or REJECTED")
    member, team = await _get_team_member(session, member_id)
    if status == TeamMemberStatus.CONFIRMED.value:
        await team_service.confirm_membership(session, team, member)
    else:
        member.status = status
    await session.flush()
    return {"id": member.id, "status": member.status}


async def delete_team_member(session: AsyncSession, member_id: int) -> None:
    """
    Admin: delete a non-leader team member and their team registration.

    Raises:
        NotFoundError: Team member missing
        InvalidInputError: Member is the team leader
    """
    member, team = await _get_team_member(session, member_id)
    if member.user_id == team.leader_user_id:
        raise InvalidInputError("The team leader cannot be removed")

    await session.execute(
        delete(GameRegistration).where(
            GameRegistration.user_id == member.user_id,
            GameRegistration.team_id == team.id,
        )
    )
    await session.delete(member)
    await session.flush()


async def confirm_registration(
    session: AsyncSession,
    registration_id: Optional[int] = None,
    team_id: Optional[int] = None,
) -> Dict:
    """
    Admin cash override: confirm a registration paid in cash.

    With ``team_id`` every non-rejected member gets a PAID/CASH registration,
    their memberships are confirmed the way an accepted invitation is, and
    the team becomes CONFIRMED. Otherwise the single registration is marked
    PAID/CASH.

    Raises:
        InvalidInputError: Neither id given
        NotFoundError: Team or registration missing
        ConflictError: A member is already confirmed or registered on another
            team for the game (alreadyOnTeam)
    """
    if team_id:
        team = await session.get(Team, team_id)
        if not team:
            raise NotFoundError("Team not found")

        members_result = await session.execute(
            select(TeamMember).where(
                TeamMember.team_id == team.id,
                TeamMember.status != TeamMemberStatus.REJECTED.value,
            )
        )
        members = list(members_result.scalars().all())
        user_ids = [m.user_id for m in members]

        # Checked up front so a refused confirmation writes nothing
        elsewhere_result = await session.execute(
            select(User.student_id)
            .join(TeamMember, TeamMember.user_id == User.id)
            .join(Team, Team.id == TeamMember.team_id)
            .where(
                Team.tournament_game_id == team.tournament_game_id,
                Team.id != team.id,
                TeamMember.user_id.in_(user_ids),
                TeamMember.status == TeamMemberStatus.CONFIRMED.value,
            )
        )
        elsewhere = sorted(elsewhere_result.scalars().all())
        if elsewhere:
            raise ConflictError(
                f"Already on another team for this game: {', '.join(elsewhere)}",
                alreadyOnTeam=True,
                studentIds=elsewhere,
            )

        regs_result = await session.execute(
            select(GameRegistration).where(
                GameRegistration.tournament_game_id == team.tournament_game_id,
                GameRegistration.user_id.in_(user_ids),
            )
        )
        regs_by_user = {reg.user_id: reg for reg in regs_result.scalars().all()}
        if any(reg.team_id != team.id for reg in regs_by_user.values()):
            raise ConflictError("A team member is already registered for this game with another team", alreadyOnTeam=True)

        for member in members:
            if member.status != TeamMemberStatus.CONFIRMED.value:
                await team_service.confirm_membership(session, team, member)

            reg = regs_by_user.get(member.user_id)
            if reg is None:
                reg = GameRegistration(
                    user_id=member.user_id,
                    tournament_game_id=team.tournament_game_id,
                    team_id=team.id,
                )
                session.add(reg)
            reg.payment_status = PaymentStatus.PAID.value
            reg.payment_method = CASH_PAYMENT_METHOD
            reg.transaction_id = f"CASH-TEAM-{team.id}"

        team.status = TeamStatus.CONFIRMED.value
        await session.flush()
        logger.info(f"Admin confirmed team {team.id} ({len(members)} members) as cash payment")
        return {"team_id": team.id, "confirmed_members": len(members)}

    if not registration_id:
        raise InvalidInputError("registrationId or teamId is required")

    registration = await session.get(GameRegistration, registration_id)
    if not registration:
        raise NotFoundError("Registration not found")
    registration.payment_status = PaymentStatus.PAID.value
    registration.payment_method = CASH_PAYMENT_METHOD
    registration.transaction_id = f"CASH-{registration.id}"
    await session.flush()
    return {"registration_id": registration.id, "payment_status": registration.payment_status}


def _registration_to_dict(registration: GameRegistration, game: TournamentGame, tournament: Tournament) -> Dict:
    return {
        "id": registration.id,
        "game_id": game.id,
        "game_name": game.game_name,
        "category": game.category,
        "team_size": game.team_size,
        "fee_per_person": game.fee_per_person,
        "tournament_id": tournament.id,
        "tournament_title": tournament.title,
        "registration_deadline": isoformat(tournament.registration_deadline),
        "team_id": registration.team_id,
        "payment_status": registration.payment_status,
        "payment_method": registration.payment_method,
        "transaction_id": registration.transaction_id,
        "registration_date": isoformat(registration.registration_date),
    }
