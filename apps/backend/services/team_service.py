"""
Team service for team formation and the invitation workflow.

Handles creating teams, inviting/validating candidates (gender category
rules), accepting/rejecting invitations with cross-team cleanup, removing
and replacing members, and confirming a team's registration.

Invitations are TEAM_REQUEST notifications whose related_id is the team id;
the matching TeamMember row holds the invitation state.
"""

from typing import Dict, List, Optional, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, delete, func, and_
from sqlalchemy.exc import IntegrityError
from backend.database.models import (
    User,
    Team,
    TeamMember,
    TeamMemberRole,
    TeamMemberStatus,
    TeamStatus,
    Tournament,
    TournamentGame,
    GameCategory,
    GameRegistration,
    PaymentStatus,
    Notification,
    NotificationType,
    NotificationStatus,
    NotificationAction,
)
from backend.services import notification_service, tournament_service
from backend.services.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidInputError,
    NotFoundError,
    StateError,
)
from backend.utils.datetime_utils import utcnow, is_past, isoformat
import logging

logger = logging.getLogger(__name__)

DEADLINE_PASSED_MESSAGE = "Registration deadline has passed for this tournament"


# ──────────────────────────────────────────────────────────────
# Lookups and guards
# ──────────────────────────────────────────────────────────────


async def _get_user_by_student_id(session: AsyncSession, student_id: Optional[str]) -> Optional[User]:
    if not student_id:
        return None
    result = await session.execute(select(User).where(User.student_id == student_id.strip()))
    return result.scalar_one_or_none()


async def _get_team(session: AsyncSession, team_id: int) -> Team:
    team = await session.get(Team, team_id)
    if not team:
        raise NotFoundError("Team not found")
    return team


async def _get_team_game(session: AsyncSession, team: Team) -> Tuple[TournamentGame, Tournament]:
    loaded = await tournament_service.get_game_with_tournament(session, team.tournament_game_id)
    if loaded is None:
        raise NotFoundError("Game not found")
    return loaded


async def _require_leader(
    session: AsyncSession, team: Team, leader_student_id: Optional[str], action: str
) -> None:
    """Raise ForbiddenError unless leader_student_id is the team's leader.

    A missing leader_student_id skips the check; HTTP routes always pass the
    authenticated student.
    """
    if leader_student_id is None:
        return
    leader = await _get_user_by_student_id(session, leader_student_id)
    if not leader or leader.id != team.leader_user_id:
        raise ForbiddenError(f"Only team leader can {action}")


def _check_deadline(tournament: Tournament) -> None:
    if is_past(tournament.registration_deadline):
        raise StateError(DEADLINE_PASSED_MESSAGE)


def gender_allowed(category: str, candidate_gender: Optional[str], leader_gender: Optional[str]) -> bool:
    """
    Check the game category rule for a team candidate.

    Male/Female games require that gender; Mix games require the
    candidate's gender to differ from the leader's.
    """
    candidate = (candidate_gender or "").strip().lower()
    if category == GameCategory.MALE.value:
        return candidate == "male"
    if category == GameCategory.FEMALE.value:
        return candidate == "female"
    if category == GameCategory.MIX.value:
        return bool(leader_gender) and bool(candidate) and candidate != leader_gender.strip().lower()
    return True


def _gender_mismatch_message(category: str) -> str:
    if category == GameCategory.MALE.value:
        return "This game is for male players only"
    if category == GameCategory.FEMALE.value:
        return "This game is for female players only"
    return "Mixed games require a teammate of the opposite gender"


async def _confirmed_elsewhere(
    session: AsyncSession, user_id: int, game_id: int, exclude_team_id: Optional[int]
) -> bool:
    query = (
        select(TeamMember.id)
        .join(Team, Team.id == TeamMember.team_id)
        .where(
            Team.tournament_game_id == game_id,
            TeamMember.user_id == user_id,
            TeamMember.status == TeamMemberStatus.CONFIRMED.value,
        )
    )
    if exclude_team_id is not None:
        query = query.where(Team.id != exclude_team_id)
    result = await session.execute(query.limit(1))
    return result.scalar_one_or_none() is not None


async def _has_registration(session: AsyncSession, user_id: int, game_id: int) -> bool:
    result = await session.execute(
        select(GameRegistration.id).where(
            GameRegistration.user_id == user_id,
            GameRegistration.tournament_game_id == game_id,
        )
    )
    return result.scalar_one_or_none() is not None


async def _get_membership(session: AsyncSession, team_id: int, user_id: int) -> Optional[TeamMember]:
    result = await session.execute(
        select(TeamMember).where(TeamMember.team_id == team_id, TeamMember.user_id == user_id)
    )
    return result.scalar_one_or_none()


async def _validate_candidate(
    session: AsyncSession,
    team: Team,
    game: TournamentGame,
    leader: User,
    candidate_student_id: str,
) -> Tuple[User, Optional[TeamMember]]:
    """
    Run every candidate check shared by invite, replace and validate.

    Returns:
        (candidate user, previous REJECTED membership row in this team or None)

    Raises:
        InvalidInputError: Missing student ID, gender missing or category mismatch
        NotFoundError: Candidate has no account yet
        ConflictError: Confirmed on another team, already a member, or registered
    """
    if not candidate_student_id or not candidate_student_id.strip():
        raise InvalidInputError("Member student ID is required")

    candidate = await _get_user_by_student_id(session, candidate_student_id)
    if not candidate:
        raise NotFoundError(
            f"Student {candidate_student_id} not found. They must register first"
        )

    if await _confirmed_elsewhere(session, candidate.id, game.id, exclude_team_id=team.id):
        raise ConflictError(
            f"{candidate.full_name or candidate.student_id} is already on another team for this game",
            alreadyOnTeam=True,
        )

    existing = await _get_membership(session, team.id, candidate.id)
    if existing and existing.status != TeamMemberStatus.REJECTED.value:
        raise ConflictError("User is already a member of this team")

    if await _has_registration(session, candidate.id, game.id):
        raise ConflictError(
            f"{candidate.full_name or candidate.student_id} is already registered for this game"
        )

    if not candidate.gender:
        raise InvalidInputError(
            f"{candidate.full_name or candidate.student_id} has not completed their profile",
            reason="gender_missing",
        )
    if not gender_allowed(game.category, candidate.gender, leader.gender):
        raise InvalidInputError(_gender_mismatch_message(game.category), reason="gender_mismatch")

    return candidate, existing


async def _check_capacity(session: AsyncSession, team: Team, game: TournamentGame) -> None:
    result = await session.execute(
        select(func.count(TeamMember.id)).where(
            TeamMember.team_id == team.id,
            TeamMember.status != TeamMemberStatus.REJECTED.value,
        )
    )
    if (result.scalar() or 0) >= game.team_size:
        raise ConflictError("Team is full")


async def _check_team_unpaid(session: AsyncSession, team: Team) -> None:
    result = await session.execute(
        select(GameRegistration.id).where(
            GameRegistration.team_id == team.id,
            GameRegistration.payment_status == PaymentStatus.PAID.value,
        ).limit(1)
    )
    if result.scalar_one_or_none() is not None:
        raise StateError("Team members cannot be changed after payment is complete")


# ──────────────────────────────────────────────────────────────
# Team creation and queries
# ──────────────────────────────────────────────────────────────


async def create_team(
    session: AsyncSession, leader_student_id: str, game_id: int, team_name: str
) -> Dict:
    """
    Create a team for a team game with the caller as leader.

    Inserts the team, the leader's CONFIRMED membership and the leader's
    PENDING game registration inside one savepoint; a failed insert leaves
    none of the three rows behind.

    Args:
        session: Database session
        leader_student_id: Student ID of the leader (current user)
        game_id: Tournament game ID
        team_name: Display name of the team

    Returns:
        Team details dict

    Raises:
        InvalidInputError: Empty team name, solo game, or leader not eligible
        NotFoundError: Leader or game missing
        StateError: Registration deadline passed
        ConflictError: Leader already registered or already on a team for the game
    """
    team_name = (team_name or "").strip()
    if not team_name:
        raise InvalidInputError("Team name is required")

    leader = await _get_user_by_student_id(session, leader_student_id)
    if not leader:
        raise NotFoundError("User not found")

    loaded = await tournament_service.get_game_with_tournament(session, game_id)
    if loaded is None:
        raise NotFoundError("Game not found")
    game, tournament = loaded

    _check_deadline(tournament)

    if (game.team_size or 1) <= 1:
        raise InvalidInputError("This game does not require a team")
    if not leader.gender:
        raise InvalidInputError("Complete your profile before creating a team", reason="gender_missing")
    if game.category != GameCategory.MIX.value and not gender_allowed(game.category, leader.gender, None):
        raise InvalidInputError(_gender_mismatch_message(game.category), reason="gender_mismatch")

    if await _has_registration(session, leader.id, game.id):
        raise ConflictError("Already registered for this game")

    result = await session.execute(
        select(TeamMember.id)
        .join(Team, Team.id == TeamMember.team_id)
        .where(
            Team.tournament_game_id == game.id,
            TeamMember.user_id == leader.id,
            TeamMember.status != TeamMemberStatus.REJECTED.value,
        )
        .limit(1)
    )
    if result.scalar_one_or_none() is not None:
        raise ConflictError("Already part of a team for this game")

    team = Team(
        tournament_game_id=game.id,
        team_name=team_name,
        leader_user_id=leader.id,
        status=TeamStatus.PENDING.value,
    )
    try:
        async with session.begin_nested():
            session.add(team)
            await session.flush()
            await session.refresh(team)
            session.add(
                TeamMember(
                    team_id=team.id,
                    user_id=leader.id,
                    role=TeamMemberRole.LEADER.value,
                    status=TeamMemberStatus.CONFIRMED.value,
                )
            )
            session.add(
                GameRegistration(
                    user_id=leader.id,
                    tournament_game_id=game.id,
                    team_id=team.id,
                    payment_status=PaymentStatus.PENDING.value,
                )
            )
            await session.flush()
    except IntegrityError as e:
        logger.warning(f"Team creation conflict for {leader.student_id} on game {game.id}: {e}")
        raise ConflictError("Already registered for this game")

    logger.info(f"Team {team.id} '{team.team_name}' created by {leader.student_id} for game {game.id}")
    return await get_team_details(session, team.id)


async def get_team_details(session: AsyncSession, team_id: int) -> Dict:
    """
    Get a team with its game, tournament and members (leader first).

    Raises:
        NotFoundError: If the team does not exist
    """
    team = await _get_team(session, team_id)
    game, tournament = await _get_team_game(session, team)

    result = await session.execute(
        select(TeamMember, User)
        .join(User, User.id == TeamMember.user_id)
        .where(TeamMember.team_id == team.id)
        .order_by(TeamMember.id)
    )
    members = [_member_to_dict(member, user) for member, user in result.all()]
    members.sort(key=lambda m: m["role"] != TeamMemberRole.LEADER.value)

    payment_result = await session.execute(
        select(GameRegistration.payment_status).where(
            GameRegistration.team_id == team.id,
            GameRegistration.user_id == team.leader_user_id,
        )
    )
    payment_status = payment_result.scalar_one_or_none()

    return {
        "id": team.id,
        "team_name": team.team_name,
        "status": team.status,
        "leader_user_id": team.leader_user_id,
        "game_id": game.id,
        "game_name": game.game_name,
        "category": game.category,
        "team_size": game.team_size,
        "fee_per_person": game.fee_per_person,
        "tournament_id": tournament.id,
        "tournament_title": tournament.title,
        "registration_deadline": isoformat(tournament.registration_deadline),
        "payment_status": payment_status,
        "members": members,
        "created_at": isoformat(team.created_at),
    }


async def get_team_for_game(session: AsyncSession, user_id: int, game_id: int) -> Optional[Dict]:
    """Get the team the user belongs to (not rejected) for a game, or None."""
    result = await session.execute(
        select(Team.id)
        .join(TeamMember, TeamMember.team_id == Team.id)
        .where(
            Team.tournament_game_id == game_id,
            TeamMember.user_id == user_id,
            TeamMember.status != TeamMemberStatus.REJECTED.value,
        )
        .order_by(TeamMember.status.asc())
        .limit(1)
    )
    team_id = result.scalar_one_or_none()
    if team_id is None:
        return None
    return await get_team_details(session, team_id)


async def get_pending_invitations(session: AsyncSession, user_id: int) -> List[Dict]:
    """
    Get the user's open team invitations, newest first.

    Open means a TEAM_REQUEST notification with no recorded action that is
    not archived and whose PENDING membership still exists.
    """
    result = await session.execute(
        select(Notification, Team, TournamentGame, User)
        .join(Team, Team.id == Notification.related_id)
        .join(TournamentGame, TournamentGame.id == Team.tournament_game_id)
        .join(User, User.id == Team.leader_user_id)
        .join(
            TeamMember,
            and_(TeamMember.team_id == Team.id, TeamMember.user_id == Notification.user_id),
        )
        .where(
            Notification.user_id == user_id,
            Notification.type == NotificationType.TEAM_REQUEST.value,
            Notification.status != NotificationStatus.ARCHIVED.value,
            Notification.action_taken.is_(None),
            TeamMember.status == TeamMemberStatus.PENDING.value,
        )
        .order_by(Notification.created_at.desc(), Notification.id.desc())
    )
    invitations = []
    for notification, team, game, leader in result.all():
        item = notification_service.notification_to_dict(notification)
        item.update(
            {
                "team_id": team.id,
                "team_name": team.team_name,
                "game_id": game.id,
                "game_name": game.game_name,
                "category": game.category,
                "leader_name": leader.full_name,
                "leader_student_id": leader.student_id,
            }
        )
        invitations.append(item)
    return invitations


# ──────────────────────────────────────────────────────────────
# Invite
# ──────────────────────────────────────────────────────────────


async def _send_invitation(
    session: AsyncSession, team: Team, game: TournamentGame, leader: User, candidate: User
) -> Dict:
    return await notification_service.create_notification(
        session=session,
        user_id=candidate.id,
        type=NotificationType.TEAM_REQUEST.value,
        title="Team Invitation",
        message=(
            f'{leader.full_name or leader.student_id} invited you to join team '
            f'"{team.team_name}" for {game.game_name}.'
        ),
        related_id=team.id,
        data={
            "team_id": team.id,
            "team_name": team.team_name,
            "game_id": game.id,
            "game_name": game.game_name,
            "leader_student_id": leader.student_id,
        },
    )


async def validate_member(
    session: AsyncSession,
    team_id: int,
    candidate_student_id: str,
    leader_student_id: Optional[str] = None,
) -> Dict:
    """
    Check whether a candidate could be invited to a team, without writing.

    Args:
        session: Database session
        team_id: Team ID
        candidate_student_id: Student ID of the prospective member
        leader_student_id: Optional leader student ID for authorization

    Returns:
        Dict with the candidate's public profile

    Raises:
        Same errors as add_member
    """
    team = await _get_team(session, team_id)
    if team.status == TeamStatus.CONFIRMED.value:
        raise StateError("Cannot add members to a confirmed team")

    await _require_leader(session, team, leader_student_id, "add members")

    game, tournament = await _get_team_game(session, team)
    _check_deadline(tournament)

    leader = await session.get(User, team.leader_user_id)

    candidate, _ = await _validate_candidate(session, team, game, leader, candidate_student_id)
    await _check_capacity(session, team, game)
    return {
        "student_id": candidate.student_id,
        "full_name": candidate.full_name,
        "gender": candidate.gender,
        "department": candidate.department,
    }


async def add_member(
    session: AsyncSession,
    team_id: int,
    candidate_student_id: str,
    leader_student_id: Optional[str] = None,
) -> Dict:
    """
    Invite a student to a team.

    Creates a PENDING membership and a TEAM_REQUEST notification for the
    candidate. A candidate who previously rejected this team is re-invited
    by resetting their membership row.

    Args:
        session: Database session
        team_id: Team ID
        candidate_student_id: Student ID of the invitee
        leader_student_id: Leader student ID; the leader check is skipped when None

    Returns:
        Dict with "member" (membership dict) and "notification_id"

    Raises:
        NotFoundError: Team or candidate missing
        StateError: Team confirmed or deadline passed
        ForbiddenError: Caller is not the leader
        ConflictError: Candidate on another team (alreadyOnTeam), already a
            member or registered, or team is full
        InvalidInputError: Gender rule violated (reason="gender_mismatch")
    """
    team = await _get_team(session, team_id)
    if team.status == TeamStatus.CONFIRMED.value:
        raise StateError("Cannot add members to a confirmed team")

    await _require_leader(session, team, leader_student_id, "add members")

    game, tournament = await _get_team_game(session, team)
    _check_deadline(tournament)

    leader = await session.get(User, team.leader_user_id)
    candidate, previous = await _validate_candidate(session, team, game, leader, candidate_student_id)
    await _check_capacity(session, team, game)

    if previous is not None:
        previous.status = TeamMemberStatus.PENDING.value
        member = previous
    else:
        member = TeamMember(
            team_id=team.id,
            user_id=candidate.id,
            role=TeamMemberRole.MEMBER.value,
            status=TeamMemberStatus.PENDING.value,
        )
        session.add(member)
    try:
        await session.flush()
    except IntegrityError:
        raise ConflictError("User is already a member of this team")
    await session.refresh(member)

    notification = await _send_invitation(session, team, game, leader, candidate)
    logger.info(f"Team {team.id}: invited {candidate.student_id}")

    return {
        "member": _member_to_dict(member, candidate),
        "notification_id": notification["id"],
    }


# ──────────────────────────────────────────────────────────────
# Accept / Reject
# ──────────────────────────────────────────────────────────────


async def _load_invitation(
    session: AsyncSession, student_id: str, notification_id: int
) -> Tuple[User, Notification, Team, TeamMember]:
    user = await _get_user_by_student_id(session, student_id)
    if not user:
        raise NotFoundError("User not found")

    result = await session.execute(
        select(Notification).where(
            Notification.id == notification_id,
            Notification.user_id == user.id,
            Notification.type == NotificationType.TEAM_REQUEST.value,
        )
    )
    notification = result.scalar_one_or_none()
    if not notification:
        raise NotFoundError("Notification not found")

    # A read notification without a recorded action can still be answered
    if notification.status == NotificationStatus.READ.value and notification.action_taken:
        raise ConflictError("Invitation already processed")

    team = await session.get(Team, notification.related_id) if notification.related_id else None
    if not team:
        raise NotFoundError("Team not found")

    membership = await _get_membership(session, team.id, user.id)
    if not membership:
        raise NotFoundError("Invitation is no longer valid")

    return user, notification, team, membership


async def _retract_other_invitations(session: AsyncSession, user_id: int, team: Team) -> List[int]:
    """Delete the user's PENDING memberships in other teams for the same game and archive their invitations."""
    result = await session.execute(
        select(TeamMember.id, TeamMember.team_id)
        .join(Team, Team.id == TeamMember.team_id)
        .where(
            Team.tournament_game_id == team.tournament_game_id,
            Team.id != team.id,
            TeamMember.user_id == user_id,
            TeamMember.status == TeamMemberStatus.PENDING.value,
        )
    )
    rows = result.all()
    if not rows:
        return []

    member_ids = [row.id for row in rows]
    team_ids = [row.team_id for row in rows]
    await session.execute(delete(TeamMember).where(TeamMember.id.in_(member_ids)))
    await notification_service.archive_team_invitations(session, user_id, team_ids)
    return team_ids


async def _notify_leader(session: AsyncSession, team: Team, member: User, type: str, verb: str) -> None:
    try:
        async with session.begin_nested():
            await notification_service.create_notification(
                session=session,
                user_id=team.leader_user_id,
                type=type,
                title=f"Invitation {verb}",
                message=f'{member.full_name or member.student_id} {verb.lower()} your invitation to join "{team.team_name}".',
                related_id=team.id,
                data={"team_id": team.id, "student_id": member.student_id},
            )
    except Exception as e:
        logger.warning(f"Failed to notify leader of team {team.id}: {e}")


async def accept_invitation(session: AsyncSession, student_id: str, notification_id: int) -> Dict:
    """
    Accept a team invitation.

    In order: confirms the membership; retracts the user's PENDING
    memberships in other teams for the same game and archives those
    invitations (best-effort, inside a savepoint); marks the notification
    READ with action ACCEPTED. The leader is notified best-effort.

    Args:
        session: Database session
        student_id: Student ID of the invitee (current user)
        notification_id: TEAM_REQUEST notification ID

    Returns:
        Dict with "team" (team details) and "retracted_team_ids"

    Raises:
        NotFoundError: User, notification, team or membership missing
        ConflictError: Invitation already processed, or user already
            confirmed on another team for the game (alreadyOnTeam)
    """
    user, notification, team, membership = await _load_invitation(session, student_id, notification_id)

    if await _confirmed_elsewhere(session, user.id, team.tournament_game_id, exclude_team_id=team.id):
        raise ConflictError("You are already on another team for this game", alreadyOnTeam=True)

    membership.status = TeamMemberStatus.CONFIRMED.value
    await session.flush()

    retracted: List[int] = []
    try:
        async with session.begin_nested():
            retracted = await _retract_other_invitations(session, user.id, team)
    except Exception as e:
        logger.warning(f"Cleanup of other invitations for user {user.id} failed: {e}")

    notification.status = NotificationStatus.READ.value
    notification.action_taken = NotificationAction.ACCEPTED.value
    notification.read_at = utcnow()
    await session.flush()

    await _notify_leader(session, team, user, NotificationType.TEAM_INVITE_ACCEPTED.value, "Accepted")
    logger.info(f"{user.student_id} joined team {team.id} (retracted {len(retracted)} other invitations)")

    return {
        "team": await get_team_details(session, team.id),
        "retracted_team_ids": retracted,
    }


async def reject_invitation(session: AsyncSession, student_id: str, notification_id: int) -> Dict:
    """
    Reject a team invitation.

    Marks the membership REJECTED and the notification READ with action
    DECLINED. Other teams are not touched.

    Raises:
        NotFoundError: User, notification, team or membership missing
        ConflictError: Invitation already processed
    """
    user, notification, team, membership = await _load_invitation(session, student_id, notification_id)

    membership.status = TeamMemberStatus.REJECTED.value
    notification.status = NotificationStatus.READ.value
    notification.action_taken = NotificationAction.DECLINED.value
    notification.read_at = utcnow()
    await session.flush()

    await _notify_leader(session, team, user, NotificationType.TEAM_INVITE_DECLINED.value, "Declined")

    return {"team_id": team.id, "status": membership.status}


async def confirm_membership(session: AsyncSession, team: Team, membership: TeamMember) -> List[int]:
    """
    Confirm a membership outside the invitation flow (admin overrides).

    Applies the same rules as accepting an invitation: the user may hold one
    CONFIRMED membership per game, their PENDING memberships in other teams
    for the game are retracted, and their invitation to this team is marked
    accepted.

    Returns:
        IDs of the teams whose invitations were retracted

    Raises:
        ConflictError: User is already confirmed on another team for the game (alreadyOnTeam)
    """
    if await _confirmed_elsewhere(session, membership.user_id, team.tournament_game_id, exclude_team_id=team.id):
        user = await session.get(User, membership.user_id)
        raise ConflictError(
            f"{user.full_name or user.student_id} is already on another team for this game",
            alreadyOnTeam=True,
        )

    membership.status = TeamMemberStatus.CONFIRMED.value
    await session.flush()
    retracted = await _retract_other_invitations(session, membership.user_id, team)
    await session.execute(
        update(Notification)
        .where(
            Notification.user_id == membership.user_id,
            Notification.type == NotificationType.TEAM_REQUEST.value,
            Notification.related_id == team.id,
            Notification.action_taken.is_(None),
        )
        .values(
            status=NotificationStatus.READ.value,
            action_taken=NotificationAction.ACCEPTED.value,
            read_at=utcnow(),
        )
    )
    return retracted


# ──────────────────────────────────────────────────────────────
# Remove / Replace / Confirm
# ──────────────────────────────────────────────────────────────


async def _load_member_for_change(
    session: AsyncSession, team_id: int, member_id: int, leader_student_id: Optional[str], action: str
) -> Tuple[Team, TeamMember, TournamentGame]:
    team = await _get_team(session, team_id)
    await _require_leader(session, team, leader_student_id, action)
    if team.status == TeamStatus.CONFIRMED.value:
        raise StateError("Cannot modify a confirmed team")

    result = await session.execute(
        select(TeamMember).where(TeamMember.id == member_id, TeamMember.team_id == team.id)
    )
    member = result.scalar_one_or_none()
    if not member:
        raise NotFoundError("Team member not found")
    if member.role == TeamMemberRole.LEADER.value:
        raise InvalidInputError("The team leader cannot be removed")

    await _check_team_unpaid(session, team)
    game, tournament = await _get_team_game(session, team)
    _check_deadline(tournament)
    return team, member, game


async def _drop_member(session: AsyncSession, team: Team, member: TeamMember) -> None:
    await notification_service.delete_team_invitations(session, member.user_id, team.id)
    await session.execute(
        delete(GameRegistration).where(
            GameRegistration.user_id == member.user_id,
            GameRegistration.team_id == team.id,
            GameRegistration.payment_status != PaymentStatus.PAID.value,
        )
    )
    await session.delete(member)
    await session.flush()


async def remove_member(
    session: AsyncSession,
    team_id: int,
    member_id: int,
    leader_student_id: Optional[str] = None,
) -> Dict:
    """
    Remove a member from a team.

    Deletes the membership, the member's unpaid team registration and their
    invitations for this team. Only the leader may remove, and only while
    the team is unconfirmed, unpaid and before the deadline.

    Args:
        session: Database session
        team_id: Team ID
        member_id: TeamMember row ID
        leader_student_id: Leader student ID; the leader check is skipped when None

    Returns:
        Dict with removed member's user_id

    Raises:
        NotFoundError: Team or member missing
        ForbiddenError: Caller is not the leader
        InvalidInputError: Target is the leader
        StateError: Team confirmed or paid, or deadline passed
    """
    team, member, _ = await _load_member_for_change(
        session, team_id, member_id, leader_student_id, "remove members"
    )
    removed_user_id = member.user_id
    was_confirmed = member.status == TeamMemberStatus.CONFIRMED.value

    await _drop_member(session, team, member)
    logger.info(f"Team {team.id}: removed user {removed_user_id}")

    if was_confirmed:
        try:
            async with session.begin_nested():
                await notification_service.create_notification(
                    session=session,
                    user_id=removed_user_id,
                    type=NotificationType.TEAM_MEMBER_REMOVED.value,
                    title="Removed from team",
                    message=f'You were removed from team "{team.team_name}".',
                    related_id=team.id,
                )
        except Exception as e:
            logger.warning(f"Failed to notify removed member {removed_user_id}: {e}")

    return {"team_id": team.id, "removed_user_id": removed_user_id}


async def replace_member(
    session: AsyncSession,
    team_id: int,
    member_id: int,
    new_member_student_id: str,
    leader_student_id: Optional[str] = None,
) -> Dict:
    """
    Replace a member with a new candidate.

    Same guards as remove_member plus full candidate validation. The old
    membership and its invitations are deleted and the new candidate is
    invited (PENDING membership plus TEAM_REQUEST notification).

    Returns:
        Dict with "member" (new membership dict) and "notification_id"

    Raises:
        Everything remove_member raises, plus the candidate errors of add_member
    """
    team, member, game = await _load_member_for_change(
        session, team_id, member_id, leader_student_id, "replace members"
    )
    leader = await session.get(User, team.leader_user_id)
    if new_member_student_id and new_member_student_id.strip() == leader.student_id:
        raise InvalidInputError("The team leader cannot be added as a member")

    candidate, previous = await _validate_candidate(session, team, game, leader, new_member_student_id)

    await _drop_member(session, team, member)

    if previous is not None:
        previous.status = TeamMemberStatus.PENDING.value
        new_member = previous
    else:
        new_member = TeamMember(
            team_id=team.id,
            user_id=candidate.id,
            role=TeamMemberRole.MEMBER.value,
            status=TeamMemberStatus.PENDING.value,
        )
        session.add(new_member)
    try:
        await session.flush()
    except IntegrityError:
        raise ConflictError("User is already a member of this team")
    await session.refresh(new_member)

    notification = await _send_invitation(session, team, game, leader, candidate)
    logger.info(f"Team {team.id}: replaced member {member_id} with {candidate.student_id}")

    return {
        "member": _member_to_dict(new_member, candidate),
        "notification_id": notification["id"],
    }


async def confirm_team(
    session: AsyncSession, team_id: int, leader_student_id: Optional[str] = None
) -> Dict:
    """
    Finalize a team's registration.

    Args:
        session: Database session
        team_id: Team ID
        leader_student_id: Leader student ID; the leader check is skipped when None

    Returns:
        Team details dict with status CONFIRMED

    Raises:
        NotFoundError: Team missing
        ForbiddenError: Caller is not the leader
        StateError: Already confirmed, or a member has not confirmed
    """
    team = await _get_team(session, team_id)
    await _require_leader(session, team, leader_student_id, "confirm registration")

    if team.status == TeamStatus.CONFIRMED.value:
        raise StateError("Team registration already confirmed")

    result = await session.execute(
        select(TeamMember.status).where(TeamMember.team_id == team.id)
    )
    statuses = list(result.scalars().all())
    if any(status != TeamMemberStatus.CONFIRMED.value for status in statuses):
        raise StateError("All team members must confirm before registration can be finalized")

    team.status = TeamStatus.CONFIRMED.value
    await session.flush()
    logger.info(f"Team {team.id} confirmed with {len(statuses)} members")
    return await get_team_details(session, team.id)


def _member_to_dict(member: TeamMember, user: User) -> Dict:
    return {
        "id": member.id,
        "user_id": user.id,
        "student_id": user.student_id,
        "full_name": user.full_name,
        "email": user.email,
        "gender": user.gender,
        "role": member.role,
        "status": member.status,
    }
