"""
Unit tests for team service.

Tests team creation, invitations and the gender category rules, accept /
reject with cross-team cleanup, remove / replace guards and confirmation.
"""

from datetime import timedelta

import pytest
import pytest_asyncio
from sqlalchemy import select, update, func
from backend.services import team_service, notification_service
from backend.services.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidInputError,
    NotFoundError,
    StateError,
)
from backend.database.models import (
    User,
    Tournament,
    TournamentGame,
    Team,
    TeamMember,
    GameRegistration,
    Notification,
)
from backend.utils.datetime_utils import utcnow


async def _create_student(db_session, student_id, name, gender):
    """Helper: create a student with a completed profile."""
    user = User(
        student_id=student_id,
        email=f"{student_id}@student.aiub.edu",
        full_name=name,
        gender=gender,
        program_level="Undergraduate",
        department="CSE",
        profile_completed=True,
        is_first_login=False,
    )
    db_session.add(user)
    await db_session.flush()
    await db_session.refresh(user)
    return user


async def _create_game(db_session, tournament, name, category, team_size):
    """Helper: create a game in a tournament."""
    game = TournamentGame(
        tournament_id=tournament.id,
        game_name=name,
        category=category,
        game_type="Duo" if team_size == 2 else ("Solo" if team_size == 1 else "Custom"),
        team_size=team_size,
        fee_per_person=300,
    )
    db_session.add(game)
    await db_session.flush()
    await db_session.refresh(game)
    return game


@pytest_asyncio.fixture
async def tournament(db_session):
    tournament = Tournament(title="Spring Carnival", registration_deadline=utcnow() + timedelta(days=7))
    db_session.add(tournament)
    await db_session.flush()
    await db_session.refresh(tournament)
    return tournament


@pytest_asyncio.fixture
async def games(db_session, tournament):
    return {
        "mixed": await _create_game(db_session, tournament, "Badminton Mixed Doubles", "Mix", 2),
        "male_duo": await _create_game(db_session, tournament, "Badminton Doubles", "Male", 2),
        "male_trio": await _create_game(db_session, tournament, "3v3 Basketball", "Male", 3),
        "solo": await _create_game(db_session, tournament, "Table Tennis", "Male", 1),
    }


@pytest_asyncio.fixture
async def students(db_session):
    return {
        "rahim": await _create_student(db_session, "22-46589-1", "Rahim Uddin", "Male"),
        "karim": await _create_student(db_session, "22-47001-2", "Karim Hasan", "Male"),
        "tanvir": await _create_student(db_session, "21-44100-1", "Tanvir Ahmed", "Male"),
        "nusrat": await _create_student(db_session, "21-44210-3", "Nusrat Jahan", "Female"),
    }


async def _member_status(db_session, team_id, user_id):
    result = await db_session.execute(
        select(TeamMember.status).where(TeamMember.team_id == team_id, TeamMember.user_id == user_id)
    )
    return result.scalar_one_or_none()


async def _notification_state(db_session, notification_id):
    result = await db_session.execute(
        select(Notification.status, Notification.action_taken).where(Notification.id == notification_id)
    )
    return result.first()


async def _invite(db_session, team, leader, candidate):
    """Helper: invite a candidate, return the invitation notification id."""
    result = await team_service.add_member(
        db_session, team["id"], candidate.student_id, leader_student_id=leader.student_id
    )
    return result["notification_id"]


# ──────────────────────────────────────────────────────────────
# Create team
# ──────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_create_team(db_session, students, games):
    """Creating a team adds a confirmed leader and a pending registration."""
    team = await team_service.create_team(db_session, "22-46589-1", games["male_duo"].id, "Smash Bros")

    assert team["team_name"] == "Smash Bros"
    assert team["status"] == "PENDING"
    assert team["payment_status"] == "PENDING"
    assert len(team["members"]) == 1
    assert team["members"][0]["role"] == "LEADER"
    assert team["members"][0]["status"] == "CONFIRMED"

    result = await db_session.execute(
        select(GameRegistration.team_id).where(GameRegistration.user_id == students["rahim"].id)
    )
    assert result.scalar_one() == team["id"]


@pytest.mark.asyncio
async def test_create_team_requires_team_game(db_session, students, games):
    with pytest.raises(InvalidInputError, match="does not require a team"):
        await team_service.create_team(db_session, "22-46589-1", games["solo"].id, "Solo Team")


@pytest.mark.asyncio
async def test_create_team_unknown_game(db_session, students):
    with pytest.raises(NotFoundError, match="Game not found"):
        await team_service.create_team(db_session, "22-46589-1", 9999, "Ghosts")


@pytest.mark.asyncio
async def test_create_team_after_deadline(db_session, students, games, tournament):
    tournament.registration_deadline = utcnow() - timedelta(hours=1)
    await db_session.flush()

    with pytest.raises(StateError, match="deadline has passed"):
        await team_service.create_team(db_session, "22-46589-1", games["male_duo"].id, "Too Late")


@pytest.mark.asyncio
async def test_create_team_when_already_registered(db_session, students, games):
    db_session.add(GameRegistration(user_id=students["rahim"].id, tournament_game_id=games["male_duo"].id))
    await db_session.flush()

    with pytest.raises(ConflictError, match="Already registered"):
        await team_service.create_team(db_session, "22-46589-1", games["male_duo"].id, "Dupes")


@pytest.mark.asyncio
async def test_create_team_when_member_of_another_team(db_session, students, games):
    """A pending invitee cannot start a rival team for the same game."""
    team = await team_service.create_team(db_session, "22-46589-1", games["male_duo"].id, "Smash Bros")
    await _invite(db_session, team, students["rahim"], students["karim"])

    with pytest.raises(ConflictError, match="Already part of a team"):
        await team_service.create_team(db_session, "22-47001-2", games["male_duo"].id, "Rivals")


@pytest.mark.asyncio
async def test_create_team_rejected_for_wrong_category(db_session, students, games):
    with pytest.raises(InvalidInputError) as exc_info:
        await team_service.create_team(db_session, "21-44210-3", games["male_duo"].id, "Wrong Side")
    assert exc_info.value.extra["reason"] == "gender_mismatch"


@pytest.mark.asyncio
async def test_create_team_empty_name(db_session, students, games):
    with pytest.raises(InvalidInputError, match="Team name is required"):
        await team_service.create_team(db_session, "22-46589-1", games["male_duo"].id, "   ")


@pytest.mark.asyncio
async def test_create_team_failed_insert_leaves_no_rows(db_session, students, games, monkeypatch):
    """A registration that slips past the checks makes the insert fail without leftovers."""
    db_session.add(GameRegistration(user_id=students["rahim"].id, tournament_game_id=games["male_duo"].id))
    await db_session.flush()

    async def no_registration(session, user_id, game_id):
        return False

    monkeypatch.setattr(team_service, "_has_registration", no_registration)

    with pytest.raises(ConflictError, match="Already registered"):
        await team_service.create_team(db_session, "22-46589-1", games["male_duo"].id, "Racers")

    teams = await db_session.execute(select(func.count(Team.id)))
    members = await db_session.execute(select(func.count(TeamMember.id)))
    registrations = await db_session.execute(
        select(GameRegistration.team_id).where(GameRegistration.user_id == students["rahim"].id)
    )
    assert teams.scalar() == 0
    assert members.scalar() == 0
    assert list(registrations.scalars().all()) == [None]


# ──────────────────────────────────────────────────────────────
# Invite
# ──────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_add_member_creates_invitation(db_session, students, games):
    team = await team_service.create_team(db_session, "22-46589-1", games["male_duo"].id, "Smash Bros")
    result = await team_service.add_member(
        db_session, team["id"], "22-47001-2", leader_student_id="22-46589-1"
    )

    assert result["member"]["status"] == "PENDING"
    assert result["member"]["role"] == "MEMBER"

    invitations = await team_service.get_pending_invitations(db_session, students["karim"].id)
    assert len(invitations) == 1
    assert invitations[0]["id"] == result["notification_id"]
    assert invitations[0]["team_id"] == team["id"]
    assert invitations[0]["type"] == "TEAM_REQUEST"
    assert invitations[0]["leader_student_id"] == "22-46589-1"


@pytest.mark.asyncio
async def test_add_member_unknown_student(db_session, students, games):
    """No invitation is created for a student without an account."""
    team = await team_service.create_team(db_session, "22-46589-1", games["male_duo"].id, "Smash Bros")

    with pytest.raises(NotFoundError, match="must register first"):
        await team_service.add_member(db_session, team["id"], "23-99999-9", leader_student_id="22-46589-1")

    count = await db_session.execute(select(func.count(Notification.id)))
    assert count.scalar() == 0


@pytest.mark.asyncio
async def test_add_member_mixed_game_same_gender(db_session, students, games):
    """Male leader inviting a male candidate to a Mix game is a gender mismatch."""
    team = await team_service.create_team(db_session, "22-46589-1", games["mixed"].id, "Mixers")

    with pytest.raises(InvalidInputError) as exc_info:
        await team_service.add_member(db_session, team["id"], "22-47001-2", leader_student_id="22-46589-1")
    assert exc_info.value.extra["reason"] == "gender_mismatch"
    assert exc_info.value.status_code == 400


@pytest.mark.asyncio
async def test_add_member_mixed_game_opposite_gender(db_session, students, games):
    team = await team_service.create_team(db_session, "22-46589-1", games["mixed"].id, "Mixers")
    result = await team_service.add_member(
        db_session, team["id"], "21-44210-3", leader_student_id="22-46589-1"
    )
    assert result["member"]["student_id"] == "21-44210-3"


@pytest.mark.asyncio
async def test_add_member_male_game_female_candidate(db_session, students, games):
    team = await team_service.create_team(db_session, "22-46589-1", games["male_duo"].id, "Smash Bros")

    with pytest.raises(InvalidInputError, match="male players only"):
        await team_service.add_member(db_session, team["id"], "21-44210-3", leader_student_id="22-46589-1")


@pytest.mark.asyncio
async def test_add_member_candidate_without_gender(db_session, students, games):
    await _create_student(db_session, "23-50000-1", "New Student", None)
    team = await team_service.create_team(db_session, "22-46589-1", games["male_duo"].id, "Smash Bros")

    with pytest.raises(InvalidInputError) as exc_info:
        await team_service.add_member(db_session, team["id"], "23-50000-1", leader_student_id="22-46589-1")
    assert exc_info.value.extra["reason"] == "gender_missing"


@pytest.mark.asyncio
async def test_add_member_already_on_another_team(db_session, students, games):
    """A candidate confirmed on one team is reported alreadyOnTeam by every other team."""
    team_a = await team_service.create_team(db_session, "22-46589-1", games["male_trio"].id, "Alpha")
    notification_id = await _invite(db_session, team_a, students["rahim"], students["karim"])
    await team_service.accept_invitation(db_session, "22-47001-2", notification_id)

    team_b = await team_service.create_team(db_session, "21-44100-1", games["male_trio"].id, "Bravo")
    for _ in range(2):
        with pytest.raises(ConflictError) as exc_info:
            await team_service.add_member(db_session, team_b["id"], "22-47001-2", leader_student_id="21-44100-1")
        assert exc_info.value.extra["alreadyOnTeam"] is True


@pytest.mark.asyncio
async def test_add_member_twice(db_session, students, games):
    team = await team_service.create_team(db_session, "22-46589-1", games["male_trio"].id, "Alpha")
    await _invite(db_session, team, students["rahim"], students["karim"])

    with pytest.raises(ConflictError, match="already a member of this team"):
        await team_service.add_member(db_session, team["id"], "22-47001-2", leader_student_id="22-46589-1")


@pytest.mark.asyncio
async def test_add_member_by_non_leader(db_session, students, games):
    team = await team_service.create_team(db_session, "22-46589-1", games["male_duo"].id, "Smash Bros")

    with pytest.raises(ForbiddenError, match="Only team leader"):
        await team_service.add_member(db_session, team["id"], "22-47001-2", leader_student_id="21-44100-1")


@pytest.mark.asyncio
async def test_add_member_team_full(db_session, students, games):
    team = await team_service.create_team(db_session, "22-46589-1", games["male_duo"].id, "Smash Bros")
    await _invite(db_session, team, students["rahim"], students["karim"])

    with pytest.raises(ConflictError, match="Team is full"):
        await team_service.add_member(db_session, team["id"], "21-44100-1", leader_student_id="22-46589-1")


@pytest.mark.asyncio
async def test_validate_member_does_not_write(db_session, students, games):
    team = await team_service.create_team(db_session, "22-46589-1", games["male_duo"].id, "Smash Bros")
    candidate = await team_service.validate_member(
        db_session, team["id"], "22-47001-2", leader_student_id="22-46589-1"
    )

    assert candidate["full_name"] == "Karim Hasan"
    assert await _member_status(db_session, team["id"], students["karim"].id) is None


@pytest.mark.asyncio
async def test_validate_member_on_confirmed_team(db_session, students, games):
    team = await team_service.create_team(db_session, "22-46589-1", games["male_duo"].id, "Smash Bros")
    await db_session.execute(update(Team).where(Team.id == team["id"]).values(status="CONFIRMED"))

    with pytest.raises(StateError, match="confirmed team"):
        await team_service.validate_member(db_session, team["id"], "22-47001-2", leader_student_id="22-46589-1")


@pytest.mark.asyncio
async def test_validate_member_after_deadline(db_session, students, games, tournament):
    team = await team_service.create_team(db_session, "22-46589-1", games["male_duo"].id, "Smash Bros")
    tournament.registration_deadline = utcnow() - timedelta(hours=1)
    await db_session.flush()

    with pytest.raises(StateError, match="deadline has passed"):
        await team_service.validate_member(db_session, team["id"], "22-47001-2", leader_student_id="22-46589-1")


# ──────────────────────────────────────────────────────────────
# Accept / Reject
# ──────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_accept_invitation_retracts_other_invitations(db_session, students, games):
    """Accepting Team A removes the pending Team B membership and archives its invitation."""
    team_a = await team_service.create_team(db_session, "22-46589-1", games["male_trio"].id, "Alpha")
    team_b = await team_service.create_team(db_session, "21-44100-1", games["male_trio"].id, "Bravo")
    invite_a = await _invite(db_session, team_a, students["rahim"], students["karim"])
    invite_b = await _invite(db_session, team_b, students["tanvir"], students["karim"])

    result = await team_service.accept_invitation(db_session, "22-47001-2", invite_a)

    assert result["retracted_team_ids"] == [team_b["id"]]
    assert await _member_status(db_session, team_a["id"], students["karim"].id) == "CONFIRMED"
    assert await _member_status(db_session, team_b["id"], students["karim"].id) is None
    assert tuple(await _notification_state(db_session, invite_a)) == ("READ", "ACCEPTED")
    assert (await _notification_state(db_session, invite_b))[0] == "ARCHIVED"

    # The retracted invitation can no longer be used
    with pytest.raises(NotFoundError, match="no longer valid"):
        await team_service.accept_invitation(db_session, "22-47001-2", invite_b)


@pytest.mark.asyncio
async def test_accept_invitation_survives_failed_cleanup(db_session, students, games, monkeypatch):
    """When archiving the other invitations fails, the accept still goes through and the other team is untouched."""
    team_a = await team_service.create_team(db_session, "22-46589-1", games["male_trio"].id, "Alpha")
    team_b = await team_service.create_team(db_session, "21-44100-1", games["male_trio"].id, "Bravo")
    invite_a = await _invite(db_session, team_a, students["rahim"], students["karim"])
    invite_b = await _invite(db_session, team_b, students["tanvir"], students["karim"])

    async def failing_archive(session, user_id, team_ids):
        raise RuntimeError("notification store unavailable")

    monkeypatch.setattr(notification_service, "archive_team_invitations", failing_archive)

    result = await team_service.accept_invitation(db_session, "22-47001-2", invite_a)

    assert result["retracted_team_ids"] == []
    assert await _member_status(db_session, team_a["id"], students["karim"].id) == "CONFIRMED"
    assert tuple(await _notification_state(db_session, invite_a)) == ("READ", "ACCEPTED")
    assert await _member_status(db_session, team_b["id"], students["karim"].id) == "PENDING"
    assert (await _notification_state(db_session, invite_b))[0] == "UNREAD"


@pytest.mark.asyncio
async def test_accept_invitation_notifies_leader(db_session, students, games):
    team = await team_service.create_team(db_session, "22-46589-1", games["male_duo"].id, "Smash Bros")
    notification_id = await _invite(db_session, team, students["rahim"], students["karim"])
    await team_service.accept_invitation(db_session, "22-47001-2", notification_id)

    notifications = await notification_service.get_user_notifications(db_session, students["rahim"].id)
    assert [n["type"] for n in notifications] == ["TEAM_INVITE_ACCEPTED"]


@pytest.mark.asyncio
async def test_accept_invitation_twice(db_session, students, games):
    team = await team_service.create_team(db_session, "22-46589-1", games["male_duo"].id, "Smash Bros")
    notification_id = await _invite(db_session, team, students["rahim"], students["karim"])
    await team_service.accept_invitation(db_session, "22-47001-2", notification_id)

    with pytest.raises(ConflictError, match="already processed"):
        await team_service.accept_invitation(db_session, "22-47001-2", notification_id)
    with pytest.raises(ConflictError, match="already processed"):
        await team_service.reject_invitation(db_session, "22-47001-2", notification_id)


@pytest.mark.asyncio
async def test_accept_read_but_unanswered_invitation(db_session, students, games):
    """Reading an invitation in the notification list does not count as answering it."""
    team = await team_service.create_team(db_session, "22-46589-1", games["male_duo"].id, "Smash Bros")
    notification_id = await _invite(db_session, team, students["rahim"], students["karim"])
    await notification_service.mark_as_read(db_session, notification_id, students["karim"].id)

    result = await team_service.accept_invitation(db_session, "22-47001-2", notification_id)
    assert result["team"]["id"] == team["id"]


@pytest.mark.asyncio
async def test_accept_someone_elses_invitation(db_session, students, games):
    team = await team_service.create_team(db_session, "22-46589-1", games["male_duo"].id, "Smash Bros")
    notification_id = await _invite(db_session, team, students["rahim"], students["karim"])

    with pytest.raises(NotFoundError, match="Notification not found"):
        await team_service.accept_invitation(db_session, "21-44100-1", notification_id)


@pytest.mark.asyncio
async def test_reject_invitation(db_session, students, games):
    team = await team_service.create_team(db_session, "22-46589-1", games["male_duo"].id, "Smash Bros")
    notification_id = await _invite(db_session, team, students["rahim"], students["karim"])

    result = await team_service.reject_invitation(db_session, "22-47001-2", notification_id)

    assert result["status"] == "REJECTED"
    assert tuple(await _notification_state(db_session, notification_id)) == ("READ", "DECLINED")
    assert await team_service.get_pending_invitations(db_session, students["karim"].id) == []


@pytest.mark.asyncio
async def test_reinvite_after_reject(db_session, students, games):
    """A rejected member frees the slot and can be invited again."""
    team = await team_service.create_team(db_session, "22-46589-1", games["male_duo"].id, "Smash Bros")
    notification_id = await _invite(db_session, team, students["rahim"], students["karim"])
    await team_service.reject_invitation(db_session, "22-47001-2", notification_id)

    second = await _invite(db_session, team, students["rahim"], students["karim"])

    assert second != notification_id
    assert await _member_status(db_session, team["id"], students["karim"].id) == "PENDING"


# ──────────────────────────────────────────────────────────────
# Remove / Replace
# ──────────────────────────────────────────────────────────────


async def _member_id(db_session, team_id, user_id):
    result = await db_session.execute(
        select(TeamMember.id).where(TeamMember.team_id == team_id, TeamMember.user_id == user_id)
    )
    return result.scalar_one()


@pytest.mark.asyncio
async def test_remove_member(db_session, students, games):
    team = await team_service.create_team(db_session, "22-46589-1", games["male_duo"].id, "Smash Bros")
    notification_id = await _invite(db_session, team, students["rahim"], students["karim"])
    member_id = await _member_id(db_session, team["id"], students["karim"].id)

    result = await team_service.remove_member(db_session, team["id"], member_id, leader_student_id="22-46589-1")

    assert result["removed_user_id"] == students["karim"].id
    assert await _member_status(db_session, team["id"], students["karim"].id) is None
    assert await _notification_state(db_session, notification_id) is None


@pytest.mark.asyncio
async def test_remove_confirmed_member_is_notified(db_session, students, games):
    team = await team_service.create_team(db_session, "22-46589-1", games["male_duo"].id, "Smash Bros")
    notification_id = await _invite(db_session, team, students["rahim"], students["karim"])
    await team_service.accept_invitation(db_session, "22-47001-2", notification_id)
    member_id = await _member_id(db_session, team["id"], students["karim"].id)

    await team_service.remove_member(db_session, team["id"], member_id, leader_student_id="22-46589-1")

    notifications = await notification_service.get_user_notifications(db_session, students["karim"].id)
    assert [n["type"] for n in notifications] == ["TEAM_MEMBER_REMOVED"]


@pytest.mark.asyncio
async def test_remove_leader_refused(db_session, students, games):
    team = await team_service.create_team(db_session, "22-46589-1", games["male_duo"].id, "Smash Bros")
    leader_member_id = await _member_id(db_session, team["id"], students["rahim"].id)

    with pytest.raises(InvalidInputError, match="leader cannot be removed"):
        await team_service.remove_member(db_session, team["id"], leader_member_id, leader_student_id="22-46589-1")


@pytest.mark.asyncio
async def test_remove_member_after_payment(db_session, students, games):
    team = await team_service.create_team(db_session, "22-46589-1", games["male_duo"].id, "Smash Bros")
    await _invite(db_session, team, students["rahim"], students["karim"])
    member_id = await _member_id(db_session, team["id"], students["karim"].id)
    await db_session.execute(
        update(GameRegistration).where(GameRegistration.team_id == team["id"]).values(payment_status="PAID")
    )

    with pytest.raises(StateError, match="after payment"):
        await team_service.remove_member(db_session, team["id"], member_id, leader_student_id="22-46589-1")
    with pytest.raises(StateError, match="after payment"):
        await team_service.replace_member(
            db_session, team["id"], member_id, "21-44100-1", leader_student_id="22-46589-1"
        )


@pytest.mark.asyncio
async def test_remove_member_after_deadline(db_session, students, games, tournament):
    team = await team_service.create_team(db_session, "22-46589-1", games["male_duo"].id, "Smash Bros")
    await _invite(db_session, team, students["rahim"], students["karim"])
    member_id = await _member_id(db_session, team["id"], students["karim"].id)
    tournament.registration_deadline = utcnow() - timedelta(minutes=5)
    await db_session.flush()

    with pytest.raises(StateError, match="deadline has passed"):
        await team_service.remove_member(db_session, team["id"], member_id, leader_student_id="22-46589-1")
    with pytest.raises(StateError, match="deadline has passed"):
        await team_service.replace_member(
            db_session, team["id"], member_id, "21-44100-1", leader_student_id="22-46589-1"
        )


@pytest.mark.asyncio
async def test_remove_member_by_non_leader(db_session, students, games):
    team = await team_service.create_team(db_session, "22-46589-1", games["male_duo"].id, "Smash Bros")
    await _invite(db_session, team, students["rahim"], students["karim"])
    member_id = await _member_id(db_session, team["id"], students["karim"].id)

    with pytest.raises(ForbiddenError):
        await team_service.remove_member(db_session, team["id"], member_id, leader_student_id="22-47001-2")


@pytest.mark.asyncio
async def test_replace_member(db_session, students, games):
    team = await team_service.create_team(db_session, "22-46589-1", games["male_duo"].id, "Smash Bros")
    old_invite = await _invite(db_session, team, students["rahim"], students["karim"])
    member_id = await _member_id(db_session, team["id"], students["karim"].id)

    result = await team_service.replace_member(
        db_session, team["id"], member_id, "21-44100-1", leader_student_id="22-46589-1"
    )

    assert result["member"]["student_id"] == "21-44100-1"
    assert result["member"]["status"] == "PENDING"
    assert await _member_status(db_session, team["id"], students["karim"].id) is None
    assert await _notification_state(db_session, old_invite) is None
    invitations = await team_service.get_pending_invitations(db_session, students["tanvir"].id)
    assert [i["id"] for i in invitations] == [result["notification_id"]]


@pytest.mark.asyncio
async def test_replace_member_with_leader(db_session, students, games):
    team = await team_service.create_team(db_session, "22-46589-1", games["male_duo"].id, "Smash Bros")
    await _invite(db_session, team, students["rahim"], students["karim"])
    member_id = await _member_id(db_session, team["id"], students["karim"].id)

    with pytest.raises(InvalidInputError, match="leader cannot be added"):
        await team_service.replace_member(
            db_session, team["id"], member_id, "22-46589-1", leader_student_id="22-46589-1"
        )


@pytest.mark.asyncio
async def test_replace_member_mixed_game_same_gender(db_session, students, games):
    team = await team_service.create_team(db_session, "22-46589-1", games["mixed"].id, "Mixers")
    await _invite(db_session, team, students["rahim"], students["nusrat"])
    member_id = await _member_id(db_session, team["id"], students["nusrat"].id)

    with pytest.raises(InvalidInputError) as exc_info:
        await team_service.replace_member(
            db_session, team["id"], member_id, "22-47001-2", leader_student_id="22-46589-1"
        )
    assert exc_info.value.extra["reason"] == "gender_mismatch"
    # The old member stays when the replacement is refused
    assert await _member_status(db_session, team["id"], students["nusrat"].id) == "PENDING"


@pytest.mark.asyncio
async def test_replace_member_duplicate_row_conflicts(db_session, students, games, monkeypatch):
    """A replacement that races onto an existing membership is a conflict, not a crash."""
    team = await team_service.create_team(db_session, "22-46589-1", games["male_trio"].id, "Alpha")
    await _invite(db_session, team, students["rahim"], students["karim"])
    await _invite(db_session, team, students["rahim"], students["tanvir"])
    member_id = await _member_id(db_session, team["id"], students["karim"].id)

    # Candidate checks pass as if tanvir had not been invited yet
    async def stale_validation(session, team, game, leader, candidate_student_id):
        return students["tanvir"], None

    monkeypatch.setattr(team_service, "_validate_candidate", stale_validation)

    with pytest.raises(ConflictError, match="already a member of this team"):
        await team_service.replace_member(
            db_session, team["id"], member_id, "21-44100-1", leader_student_id="22-46589-1"
        )


# ──────────────────────────────────────────────────────────────
# Confirm
# ──────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_confirm_team_with_pending_member(db_session, students, games):
    team = await team_service.create_team(db_session, "22-46589-1", games["male_duo"].id, "Smash Bros")
    await _invite(db_session, team, students["rahim"], students["karim"])

    with pytest.raises(StateError, match="must confirm before registration can be finalized"):
        await team_service.confirm_team(db_session, team["id"], leader_student_id="22-46589-1")


@pytest.mark.asyncio
async def test_confirm_team(db_session, students, games):
    team = await team_service.create_team(db_session, "22-46589-1", games["male_duo"].id, "Smash Bros")
    notification_id = await _invite(db_session, team, students["rahim"], students["karim"])
    await team_service.accept_invitation(db_session, "22-47001-2", notification_id)

    confirmed = await team_service.confirm_team(db_session, team["id"], leader_student_id="22-46589-1")
    assert confirmed["status"] == "CONFIRMED"

    with pytest.raises(StateError, match="already confirmed"):
        await team_service.confirm_team(db_session, team["id"], leader_student_id="22-46589-1")
    with pytest.raises(StateError, match="confirmed team"):
        await team_service.add_member(db_session, team["id"], "21-44100-1", leader_student_id="22-46589-1")


@pytest.mark.asyncio
async def test_confirm_team_by_non_leader(db_session, students, games):
    team = await team_service.create_team(db_session, "22-46589-1", games["male_duo"].id, "Smash Bros")

    with pytest.raises(ForbiddenError, match="Only team leader can confirm registration"):
        await team_service.confirm_team(db_session, team["id"], leader_student_id="22-47001-2")


# ──────────────────────────────────────────────────────────────
# Queries
# ──────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_get_team_for_game(db_session, students, games):
    team = await team_service.create_team(db_session, "22-46589-1", games["male_duo"].id, "Smash Bros")
    await _invite(db_session, team, students["rahim"], students["karim"])

    for_leader = await team_service.get_team_for_game(db_session, students["rahim"].id, games["male_duo"].id)
    for_invitee = await team_service.get_team_for_game(db_session, students["karim"].id, games["male_duo"].id)
    assert for_leader["id"] == team["id"]
    assert for_invitee["id"] == team["id"]
    assert for_leader["members"][0]["role"] == "LEADER"
    assert await team_service.get_team_for_game(db_session, students["tanvir"].id, games["male_duo"].id) is None


@pytest.mark.asyncio
async def test_get_team_details_missing(db_session):
    with pytest.raises(NotFoundError, match="Team not found"):
        await team_service.get_team_details(db_session, 424242)


class TestGenderAllowed:
    """Tests for the category rule on its own."""

    def test_male_category(self):
        assert team_service.gender_allowed("Male", "Male", None) is True
        assert team_service.gender_allowed("Male", "Female", None) is False

    def test_female_category(self):
        assert team_service.gender_allowed("Female", "Female", None) is True
        assert team_service.gender_allowed("Female", "Male", None) is False

    def test_mix_category(self):
        assert team_service.gender_allowed("Mix", "Female", "Male") is True
        assert team_service.gender_allowed("Mix", "Male", "Male") is False
        assert team_service.gender_allowed("Mix", "male", "Male") is False

    def test_mix_requires_both_genders(self):
        assert team_service.gender_allowed("Mix", None, "Male") is False
        assert team_service.gender_allowed("Mix", "Female", None) is False
