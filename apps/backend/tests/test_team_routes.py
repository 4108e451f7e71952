"""
Unit tests for team API routes.

Services are mocked; these tests pin the HTTP contract: identity checks,
status codes and the error body carrying extra fields.
"""

import pytest
from fastapi.testclient import TestClient
from backend.api.main import app
from backend.services import auth_service, user_service, team_service
from backend.services.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidInputError,
    NotFoundError,
    StateError,
)

STUDENT_ID = "22-46589-1"


def make_client_with_auth(monkeypatch, student_id=STUDENT_ID, user_id=1):
    """Create a test client with mocked authentication."""
    def fake_verify_token(token):
        return {"user_id": user_id, "student_id": student_id}

    async def fake_get_user_by_id(session, uid):
        return {
            "id": user_id,
            "student_id": student_id,
            "email": f"{student_id}@student.aiub.edu",
            "full_name": "Rahim Uddin",
            "gender": "Male",
            "profile_completed": True,
        }

    monkeypatch.setattr(auth_service, "verify_token", fake_verify_token, raising=True)
    monkeypatch.setattr(user_service, "get_user_by_id", fake_get_user_by_id, raising=True)

    return TestClient(app), {"Authorization": "Bearer dummy"}


def fake_team(team_id=10):
    return {
        "id": team_id,
        "team_name": "Smash Bros",
        "game_id": 3,
        "status": "PENDING",
        "payment_status": "PENDING",
        "members": [{"id": 1, "student_id": STUDENT_ID, "role": "LEADER", "status": "CONFIRMED"}],
    }


# ──────────────────────────────────────────────────────────────
# Authentication and identity
# ──────────────────────────────────────────────────────────────


def test_requires_authentication():
    client = TestClient(app)
    response = client.post("/api/team", json={"gameId": 3, "teamName": "Smash Bros"})

    assert response.status_code == 401
    assert response.json()["success"] is False


def test_invalid_token_rejected(monkeypatch):
    monkeypatch.setattr(auth_service, "verify_token", lambda token: None, raising=True)
    client = TestClient(app)

    response = client.get("/api/team/invitations/pending", headers={"Authorization": "Bearer bad"})

    assert response.status_code == 401


def test_create_team_for_someone_else_forbidden(monkeypatch):
    """A body studentId naming another student is rejected before the service runs."""
    client, headers = make_client_with_auth(monkeypatch)
    called = []

    async def fake_create_team(session, student_id, game_id, team_name):
        called.append(student_id)
        return fake_team()

    monkeypatch.setattr(team_service, "create_team", fake_create_team, raising=True)

    response = client.post(
        "/api/team",
        json={"studentId": "22-47001-2", "gameId": 3, "teamName": "Smash Bros"},
        headers=headers,
    )

    assert response.status_code == 403
    assert response.json() == {"success": False, "message": "You can only act on your own behalf"}
    assert called == []


# ──────────────────────────────────────────────────────────────
# Team creation and invitations
# ──────────────────────────────────────────────────────────────


def test_create_team(monkeypatch):
    client, headers = make_client_with_auth(monkeypatch)
    captured = {}

    async def fake_create_team(session, student_id, game_id, team_name):
        captured.update(student_id=student_id, game_id=game_id, team_name=team_name)
        return fake_team()

    monkeypatch.setattr(team_service, "create_team", fake_create_team, raising=True)

    response = client.post(
        "/api/team",
        json={"studentId": STUDENT_ID, "gameId": 3, "teamName": "Smash Bros"},
        headers=headers,
    )

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["team"]["id"] == 10
    assert captured == {"student_id": STUDENT_ID, "game_id": 3, "team_name": "Smash Bros"}


def test_create_team_missing_fields_is_400(monkeypatch):
    client, headers = make_client_with_auth(monkeypatch)

    response = client.post("/api/team", json={"teamName": "Smash Bros"}, headers=headers)

    assert response.status_code == 400
    data = response.json()
    assert data["success"] is False
    assert data["message"] == "Invalid request"


def test_add_member_already_on_team_conflict(monkeypatch):
    """The alreadyOnTeam flag travels in the error body."""
    client, headers = make_client_with_auth(monkeypatch)

    async def fake_add_member(session, team_id, member_student_id, leader_student_id):
        raise ConflictError(
            "Student 22-47001-2 is already part of another team for this game", alreadyOnTeam=True
        )

    monkeypatch.setattr(team_service, "add_member", fake_add_member, raising=True)

    response = client.post(
        "/api/team/10/members", json={"memberStudentId": "22-47001-2"}, headers=headers
    )

    assert response.status_code == 409
    assert response.json() == {
        "success": False,
        "message": "Student 22-47001-2 is already part of another team for this game",
        "alreadyOnTeam": True,
    }


def test_add_member_gender_mismatch(monkeypatch):
    client, headers = make_client_with_auth(monkeypatch)

    async def fake_add_member(session, team_id, member_student_id, leader_student_id):
        raise InvalidInputError("This game is for male players only", reason="gender_mismatch")

    monkeypatch.setattr(team_service, "add_member", fake_add_member, raising=True)

    response = client.post(
        "/api/team/10/members",
        json={"leaderStudentId": STUDENT_ID, "memberStudentId": "21-44210-3"},
        headers=headers,
    )

    assert response.status_code == 400
    assert response.json()["reason"] == "gender_mismatch"


def test_add_member_sends_invitation(monkeypatch):
    client, headers = make_client_with_auth(monkeypatch)
    captured = {}

    async def fake_add_member(session, team_id, member_student_id, leader_student_id):
        captured.update(team_id=team_id, member=member_student_id, leader=leader_student_id)
        return {"member": {"id": 5, "student_id": member_student_id, "status": "PENDING"}, "notification_id": 42}

    monkeypatch.setattr(team_service, "add_member", fake_add_member, raising=True)

    response = client.post(
        "/api/team/10/members", json={"memberStudentId": "22-47001-2"}, headers=headers
    )

    assert response.status_code == 200
    assert response.json()["notification_id"] == 42
    assert captured == {"team_id": 10, "member": "22-47001-2", "leader": STUDENT_ID}


def test_add_member_by_non_leader(monkeypatch):
    client, headers = make_client_with_auth(monkeypatch)

    async def fake_add_member(session, team_id, member_student_id, leader_student_id):
        raise ForbiddenError("Only team leader can add members")

    monkeypatch.setattr(team_service, "add_member", fake_add_member, raising=True)

    response = client.post("/api/team/10/members", json={"memberStudentId": "22-47001-2"}, headers=headers)

    assert response.status_code == 403
    assert response.json()["message"] == "Only team leader can add members"


def test_get_pending_invitations(monkeypatch):
    client, headers = make_client_with_auth(monkeypatch, user_id=7)

    async def fake_pending(session, user_id):
        assert user_id == 7
        return [{"notification_id": 42, "team_id": 10, "team_name": "Smash Bros"}]

    monkeypatch.setattr(team_service, "get_pending_invitations", fake_pending, raising=True)

    response = client.get("/api/team/invitations/pending", headers=headers)

    assert response.status_code == 200
    assert response.json()["invitations"][0]["notification_id"] == 42


def test_accept_invitation(monkeypatch):
    client, headers = make_client_with_auth(monkeypatch)

    async def fake_accept(session, student_id, notification_id):
        return {"team": fake_team(), "retracted_team_ids": [11]}

    monkeypatch.setattr(team_service, "accept_invitation", fake_accept, raising=True)

    response = client.post("/api/team/invitation/accept", json={"notificationId": 42}, headers=headers)

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["retracted_team_ids"] == [11]


def test_accept_processed_invitation(monkeypatch):
    client, headers = make_client_with_auth(monkeypatch)

    async def fake_accept(session, student_id, notification_id):
        raise StateError("Invitation already processed")

    monkeypatch.setattr(team_service, "accept_invitation", fake_accept, raising=True)

    response = client.post(
        "/api/team/invitation/accept",
        json={"studentId": STUDENT_ID, "notificationId": 42},
        headers=headers,
    )

    assert response.status_code == 400
    assert response.json()["message"] == "Invitation already processed"


def test_reject_invitation_for_someone_else_forbidden(monkeypatch):
    client, headers = make_client_with_auth(monkeypatch)

    response = client.post(
        "/api/team/invitation/reject",
        json={"studentId": "22-47001-2", "notificationId": 42},
        headers=headers,
    )

    assert response.status_code == 403


def test_reject_invitation(monkeypatch):
    client, headers = make_client_with_auth(monkeypatch)

    async def fake_reject(session, student_id, notification_id):
        return {"team_id": 10, "status": "REJECTED"}

    monkeypatch.setattr(team_service, "reject_invitation", fake_reject, raising=True)

    response = client.post("/api/team/invitation/reject", json={"notificationId": 42}, headers=headers)

    assert response.status_code == 200
    assert response.json()["status"] == "REJECTED"


# ──────────────────────────────────────────────────────────────
# Team lookup and changes
# ──────────────────────────────────────────────────────────────


def test_get_team_not_found(monkeypatch):
    client, headers = make_client_with_auth(monkeypatch)

    async def fake_details(session, team_id):
        raise NotFoundError("Team not found")

    monkeypatch.setattr(team_service, "get_team_details", fake_details, raising=True)

    response = client.get("/api/team/999", headers=headers)

    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Team not found"}


def test_get_team_for_game_none(monkeypatch):
    client, headers = make_client_with_auth(monkeypatch)

    async def fake_for_game(session, user_id, game_id):
        return None

    monkeypatch.setattr(team_service, "get_team_for_game", fake_for_game, raising=True)

    response = client.get("/api/team/by-game/3", headers=headers)

    assert response.status_code == 200
    assert response.json() == {"success": True, "team": None}


def test_validate_member(monkeypatch):
    client, headers = make_client_with_auth(monkeypatch)

    async def fake_validate(session, team_id, member_student_id, leader_student_id):
        assert leader_student_id == STUDENT_ID
        return {"student_id": member_student_id, "full_name": "Karim Hasan"}

    monkeypatch.setattr(team_service, "validate_member", fake_validate, raising=True)

    response = client.post(
        "/api/team/validate-member", json={"teamId": 10, "memberStudentId": "22-47001-2"}, headers=headers
    )

    assert response.status_code == 200
    assert response.json()["valid"] is True


def test_remove_member_without_body(monkeypatch):
    client, headers = make_client_with_auth(monkeypatch)

    async def fake_remove(session, team_id, member_id, leader_student_id):
        return {"team_id": team_id, "removed_user_id": 2}

    monkeypatch.setattr(team_service, "remove_member", fake_remove, raising=True)

    response = client.delete("/api/team/10/members/5", headers=headers)

    assert response.status_code == 200
    assert response.json()["removed_user_id"] == 2


def test_remove_member_after_payment(monkeypatch):
    client, headers = make_client_with_auth(monkeypatch)

    async def fake_remove(session, team_id, member_id, leader_student_id):
        raise StateError("Team members cannot be changed after payment is complete")

    monkeypatch.setattr(team_service, "remove_member", fake_remove, raising=True)

    response = client.delete("/api/team/10/members/5", headers=headers)

    assert response.status_code == 400


def test_replace_member(monkeypatch):
    client, headers = make_client_with_auth(monkeypatch)
    captured = {}

    async def fake_replace(session, team_id, member_id, new_member_student_id, leader_student_id):
        captured.update(member_id=member_id, new=new_member_student_id)
        return {"member": {"id": 6, "student_id": new_member_student_id}, "notification_id": 43}

    monkeypatch.setattr(team_service, "replace_member", fake_replace, raising=True)

    response = client.put(
        "/api/team/10/members/5/replace", json={"newMemberStudentId": "21-44100-1"}, headers=headers
    )

    assert response.status_code == 200
    assert captured == {"member_id": 5, "new": "21-44100-1"}


def test_confirm_team_waits_for_members(monkeypatch):
    client, headers = make_client_with_auth(monkeypatch)

    async def fake_confirm(session, team_id, leader_student_id):
        raise StateError("All team members must confirm before registration can be finalized")

    monkeypatch.setattr(team_service, "confirm_team", fake_confirm, raising=True)

    response = client.post("/api/team/10/confirm", headers=headers)

    assert response.status_code == 400
    assert "must confirm" in response.json()["message"]


def test_unexpected_error_is_500(monkeypatch):
    client, headers = make_client_with_auth(monkeypatch)

    async def fake_confirm(session, team_id, leader_student_id):
        raise RuntimeError("boom")

    monkeypatch.setattr(team_service, "confirm_team", fake_confirm, raising=True)

    response = client.post("/api/team/10/confirm", headers=headers)

    assert response.status_code == 500
    assert response.json() == {"success": False, "message": "Error confirming team registration"}
