"""
Pydantic models for API request/response validation.

Request bodies accept the camelCase keys used by the web client
(studentId, gameId, ...) as well as the snake_case field names.
"""

from typing import Optional, List, Literal
from pydantic import BaseModel, Field, ConfigDict


class LoginRequest(BaseModel):
    """Student login with institutional email."""

    email: str


class RefreshTokenRequest(BaseModel):
    """Refresh token exchange."""

    model_config = ConfigDict(populate_by_name=True)
    refresh_token: str = Field(alias="refreshToken")


class ProfileUpdateRequest(BaseModel):
    """Profile completion / update."""

    model_config = ConfigDict(populate_by_name=True)
    full_name: Optional[str] = Field(default=None, alias="fullName")
    gender: Optional[str] = None
    phone_number: Optional[str] = Field(default=None, alias="phoneNumber")
    blood_group: Optional[str] = Field(default=None, alias="bloodGroup")
    program_level: Optional[str] = Field(default=None, alias="programLevel")
    department: Optional[str] = None


class RegistrationRequest(BaseModel):
    """Individual game registration."""

    model_config = ConfigDict(populate_by_name=True)
    student_id: Optional[str] = Field(default=None, alias="studentId")
    game_id: int = Field(alias="gameId")


class TeamCreate(BaseModel):
    """Create a team; the caller becomes leader."""

    model_config = ConfigDict(populate_by_name=True)
    student_id: Optional[str] = Field(default=None, alias="studentId")
    game_id: int = Field(alias="gameId")
    team_name: str = Field(alias="teamName", min_length=1, max_length=100)


class TeamMemberInvite(BaseModel):
    """Invite a student to a team."""

    model_config = ConfigDict(populate_by_name=True)
    leader_student_id: Optional[str] = Field(default=None, alias="leaderStudentId")
    member_student_id: str = Field(alias="memberStudentId")


class TeamMemberValidate(BaseModel):
    """Check a candidate before inviting."""

    model_config = ConfigDict(populate_by_name=True)
    team_id: int = Field(alias="teamId")
    member_student_id: str = Field(alias="memberStudentId")


class InvitationResponse(BaseModel):
    """Accept or reject a team invitation."""

    model_config = ConfigDict(populate_by_name=True)
    student_id: Optional[str] = Field(default=None, alias="studentId")
    notification_id: int = Field(alias="notificationId")


class TeamMemberChange(BaseModel):
    """Leader identity for remove-member (optional body)."""

    model_config = ConfigDict(populate_by_name=True)
    student_id: Optional[str] = Field(default=None, alias="studentId")


class TeamMemberReplace(BaseModel):
    """Replace a member with a new candidate."""

    model_config = ConfigDict(populate_by_name=True)
    student_id: Optional[str] = Field(default=None, alias="studentId")
    new_member_student_id: str = Field(alias="newMemberStudentId")


class CartItemCreate(BaseModel):
    """Add a registration fee to the cart."""

    model_config = ConfigDict(populate_by_name=True)
    item_type: Literal["INDIVIDUAL_REGISTRATION", "TEAM_REGISTRATION"] = Field(alias="itemType")
    item_id: int = Field(alias="itemId")
    game_id: int = Field(alias="gameId")


class CheckoutRequest(BaseModel):
    """Pay for the cart."""

    model_config = ConfigDict(populate_by_name=True)
    payment_method: str = Field(alias="paymentMethod")
    transaction_id: str = Field(alias="transactionId")


class GameRequestCreate(BaseModel):
    """Student suggestion for a new game in a tournament."""

    model_config = ConfigDict(populate_by_name=True)
    student_id: Optional[str] = Field(default=None, alias="studentId")
    tournament_id: int = Field(alias="tournamentId")
    game_name: str = Field(alias="gameName")
    category: str
    game_type: Optional[str] = Field(default=None, alias="gameType")


class TournamentRequestCreate(BaseModel):
    """Student suggestion for a new tournament."""

    model_config = ConfigDict(populate_by_name=True)
    student_id: Optional[str] = Field(default=None, alias="studentId")
    title: str
    description: Optional[str] = None
    registration_deadline: str = Field(alias="registrationDeadline")


class GameDefinition(BaseModel):
    """Admin game definition."""

    model_config = ConfigDict(populate_by_name=True)
    name: str
    category: Literal["Male", "Female", "Mix"]
    type: str = "Solo"
    fee: float = 0
    team_size: Optional[int] = Field(default=None, alias="teamSize", ge=1)


class TournamentCreate(BaseModel):
    """Admin tournament creation."""

    model_config = ConfigDict(populate_by_name=True)
    title: str
    deadline: str
    description: Optional[str] = None
    photo_url: Optional[str] = Field(default=None, alias="photoUrl")
    games: List[GameDefinition] = []


class TournamentUpdate(BaseModel):
    """Admin tournament update; omitted fields are left unchanged."""

    model_config = ConfigDict(populate_by_name=True)
    title: Optional[str] = None
    deadline: Optional[str] = None
    description: Optional[str] = None
    photo_url: Optional[str] = Field(default=None, alias="photoUrl")
    status: Optional[Literal["ACTIVE", "INACTIVE", "COMPLETED"]] = None


class PaymentStatusUpdate(BaseModel):
    """Admin payment status change."""

    model_config = ConfigDict(populate_by_name=True)
    payment_status: str = Field(alias="paymentStatus")


class MemberStatusUpdate(BaseModel):
    """Admin team member status change."""

    status: str


class ConfirmRegistrationRequest(BaseModel):
    """Admin cash override for a registration or an entire team."""

    model_config = ConfigDict(populate_by_name=True)
    registration_id: Optional[int] = Field(default=None, alias="registrationId")
    team_id: Optional[int] = Field(default=None, alias="teamId")


class RoleCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    role_name: str = Field(alias="roleName")
    description: Optional[str] = None


class PermissionCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    permission_name: str = Field(alias="permissionName")
    description: Optional[str] = None


class RolePermissionGrant(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    permission_id: int = Field(alias="permissionId")


class RoleAssignment(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    student_id: str = Field(alias="studentId")
    role_id: int = Field(alias="roleId")
