"""
Unit tests for dashboard service.
"""

from datetime import timedelta

import pytest
import pytest_asyncio
from backend.services import dashboard_service, registration_service, team_service
from backend.database.models import User, Tournament, TournamentGame
from backend.utils.datetime_utils import utcnow


@pytest_asyncio.fixture
async def setup(db_session):
    rahim = User(
        student_id="22-46589-1",
        email="22-46589-1@student.aiub.edu",
        full_name="Rahim Uddin",
        gender="Male",
        profile_completed=True,
        is_first_login=False,
    )
    db_session.add(rahim)
    tournament = Tournament(title="Spring Carnival", registration_deadline=utcnow() + timedelta(days=7))
    closed = Tournament(title="Winter Cup", registration_deadline=utcnow() - timedelta(days=1))
    db_session.add_all([tournament, closed])
    await db_session.flush()
    for t in (rahim, tournament, closed):
        await db_session.refresh(t)

    chess = TournamentGame(
        tournament_id=tournament.id, game_name="Chess", category="Mix", game_type="Solo", team_size=1, fee_per_person=100
    )
    doubles = TournamentGame(
        tournament_id=tournament.id, game_name="Badminton Doubles", category="Male", game_type="Duo", team_size=2, fee_per_person=300
    )
    db_session.add_all([chess, doubles])
    await db_session.flush()
    return {"user": rahim, "tournament": tournament, "chess": chess, "doubles": doubles}


@pytest.mark.asyncio
async def test_tournaments_with_status(db_session, setup):
    """Each game is annotated with the student's registration and team."""
    await registration_service.register_for_game(db_session, "22-46589-1", setup["chess"].id)
    team = await team_service.create_team(db_session, "22-46589-1", setup["doubles"].id, "Net Ninjas")

    tournaments = await dashboard_service.get_tournaments_with_status(db_session, setup["user"].id)

    assert [t["title"] for t in tournaments] == ["Spring Carnival"]
    games = {g["game_name"]: g for g in tournaments[0]["games"]}
    assert games["Chess"]["is_registered"] is True
    assert games["Chess"]["registration_status"] == "PENDING"
    assert games["Chess"]["team_id"] is None
    assert games["Badminton Doubles"]["team_id"] == team["id"]
    assert games["Badminton Doubles"]["membership_status"] == "CONFIRMED"


@pytest.mark.asyncio
async def test_overview_counts(db_session, setup):
    await registration_service.register_for_game(db_session, "22-46589-1", setup["chess"].id)
    await team_service.create_team(db_session, "22-46589-1", setup["doubles"].id, "Net Ninjas")

    overview = await dashboard_service.get_overview(db_session, setup["user"].id)

    assert overview["active_tournaments"] == 1
    assert overview["registered_games"] == 2
    assert overview["pending_payments"] == 2
    assert overview["team_memberships"] == 1
    assert overview["recent_notifications"] == []
