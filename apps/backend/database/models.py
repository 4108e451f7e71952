"""
SQLAlchemy ORM models for the university sports tournament portal.
"""

import enum
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    Boolean,
    Float,
    DateTime,
    ForeignKey,
    UniqueConstraint,
    Index,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from backend.database.db import Base


class Gender(str, enum.Enum):
    """Student gender enum."""

    MALE = "Male"
    FEMALE = "Female"
    OTHER = "Other"


class ProgramLevel(str, enum.Enum):
    """Academic program level enum."""

    UNDERGRADUATE = "Undergraduate"
    POSTGRADUATE = "Postgraduate"


class TournamentStatus(str, enum.Enum):
    """Tournament status enum."""

    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    COMPLETED = "COMPLETED"


class GameCategory(str, enum.Enum):
    """Game category enum. MIX requires opposite-gender pairing."""

    MALE = "Male"
    FEMALE = "Female"
    MIX = "Mix"


class TeamStatus(str, enum.Enum):
    """Team registration status enum."""

    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"


class TeamMemberRole(str, enum.Enum):
    """Team member role enum."""

    LEADER = "LEADER"
    MEMBER = "MEMBER"


class TeamMemberStatus(str, enum.Enum):
    """Team invitation lifecycle enum."""

    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    REJECTED = "REJECTED"


class NotificationType(str, enum.Enum):
    """Notification type enum."""

    TEAM_REQUEST = "TEAM_REQUEST"
    TEAM_INVITE_ACCEPTED = "TEAM_INVITE_ACCEPTED"
    TEAM_INVITE_DECLINED = "TEAM_INVITE_DECLINED"
    TEAM_MEMBER_REMOVED = "TEAM_MEMBER_REMOVED"


class NotificationStatus(str, enum.Enum):
    """Notification read status enum."""

    UNREAD = "UNREAD"
    READ = "READ"
    ARCHIVED = "ARCHIVED"


class NotificationAction(str, enum.Enum):
    """Action taken on an actionable notification."""

    ACCEPTED = "ACCEPTED"
    DECLINED = "DECLINED"


class RequestStatus(str, enum.Enum):
    """Student game/tournament request review status."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class PaymentStatus(str, enum.Enum):
    """Registration payment status enum."""

    PENDING = "PENDING"
    PAID = "PAID"
    UNPAID = "UNPAID"


class CartItemType(str, enum.Enum):
    """Cart item type enum."""

    INDIVIDUAL_REGISTRATION = "INDIVIDUAL_REGISTRATION"
    TEAM_REGISTRATION = "TEAM_REGISTRATION"


class User(Base):
    """Students. Created on first login from the institutional email."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    student_id = Column(String(20), nullable=False, unique=True)  # e.g. 22-46589-1
    email = Column(String(255), nullable=False, unique=True)
    full_name = Column(String(100), nullable=True)
    gender = Column(String(10), nullable=True)  # Gender enum value
    phone_number = Column(String(20), nullable=True)
    blood_group = Column(String(5), nullable=True)
    program_level = Column(String(20), nullable=True)  # ProgramLevel enum value
    department = Column(String(100), nullable=True)
    name_edit_count = Column(Integer, default=0, nullable=False)
    is_first_login = Column(Boolean, default=True, nullable=False)
    profile_completed = Column(Boolean, default=False, nullable=False)
    last_login = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    refresh_tokens = relationship("RefreshToken", back_populates="user", cascade="all, delete-orphan")

    __table_args__ = (
        Index("idx_users_student_id", "student_id"),
        Index("idx_users_email", "email"),
    )


class RefreshToken(Base):
    """Opaque refresh tokens for access-token rotation."""

    __tablename__ = "refresh_tokens"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    token = Column(String, nullable=False, unique=True)
    expires_at = Column(String, nullable=False)  # ISO timestamp
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    user = relationship("User", back_populates="refresh_tokens")

    __table_args__ = (
        Index("idx_refresh_tokens_user", "user_id"),
        Index("idx_refresh_tokens_token", "token"),
    )


class Tournament(Base):
    """Tournaments. Registration for every game closes at registration_deadline."""

    __tablename__ = "tournaments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    photo_url = Column(String(500), nullable=True)
    registration_deadline = Column(DateTime(timezone=True), nullable=False)
    status = Column(String(20), default=TournamentStatus.ACTIVE.value, nullable=False)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    games = relationship(
        "TournamentGame", back_populates="tournament", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("idx_tournaments_status", "status"),
        Index("idx_tournaments_deadline", "registration_deadline"),
    )


class TournamentGame(Base):
    """Games (events) offered within a tournament."""

    __tablename__ = "tournament_games"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tournament_id = Column(Integer, ForeignKey("tournaments.id", ondelete="CASCADE"), nullable=False)
    game_name = Column(String(100), nullable=False)
    category = Column(String(10), nullable=False)  # GameCategory enum value
    game_type = Column(String(20), default="Solo", nullable=False)  # Solo, Duo, Custom
    team_size = Column(Integer, default=1, nullable=False)
    fee_per_person = Column(Float, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    tournament = relationship("Tournament", back_populates="games")

    __table_args__ = (Index("idx_tournament_games_tournament", "tournament_id"),)


class Team(Base):
    """Teams formed for a single team game."""

    __tablename__ = "teams"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tournament_game_id = Column(Integer, ForeignKey("tournament_games.id", ondelete="CASCADE"), nullable=False)
    team_name = Column(String(100), nullable=False)
    leader_user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    status = Column(String(20), default=TeamStatus.PENDING.value, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    members = relationship("TeamMember", back_populates="team", cascade="all, delete-orphan")

    __table_args__ = (
        Index("idx_teams_game", "tournament_game_id"),
        Index("idx_teams_leader", "leader_user_id"),
    )


class TeamMember(Base):
    """Team membership and invitation state. Exactly one LEADER row per team."""

    __tablename__ = "team_members"

    id = Column(Integer, primary_key=True, autoincrement=True)
    team_id = Column(Integer, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    role = Column(String(10), default=TeamMemberRole.MEMBER.value, nullable=False)
    status = Column(String(10), default=TeamMemberStatus.PENDING.value, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    team = relationship("Team", back_populates="members")

    __table_args__ = (
        UniqueConstraint("team_id", "user_id", name="uq_team_members_team_user"),
        Index("idx_team_members_user", "user_id"),
        Index("idx_team_members_status", "status"),
    )


class GameRegistration(Base):
    """A student's registration (and payment state) for a game."""

    __tablename__ = "game_registrations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    tournament_game_id = Column(Integer, ForeignKey("tournament_games.id", ondelete="CASCADE"), nullable=False)
    team_id = Column(Integer, ForeignKey("teams.id", ondelete="SET NULL"), nullable=True)
    payment_status = Column(String(10), default=PaymentStatus.PENDING.value, nullable=False)
    payment_method = Column(String(30), nullable=True)  # e.g. bkash, card, CASH
    transaction_id = Column(String(100), nullable=True)
    registration_date = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("user_id", "tournament_game_id", name="uq_game_registrations_user_game"),
        Index("idx_game_registrations_game", "tournament_game_id"),
        Index("idx_game_registrations_team", "team_id"),
    )


class CartItem(Base):
    """Pending registration fees in a student's cart. One item per game."""

    __tablename__ = "cart"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    item_type = Column(String(30), nullable=False)  # CartItemType enum value
    item_id = Column(Integer, nullable=False)  # registration id or team id
    tournament_game_id = Column(Integer, ForeignKey("tournament_games.id", ondelete="CASCADE"), nullable=False)
    added_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint("user_id", "tournament_game_id", name="uq_cart_user_game"),
        Index("idx_cart_user", "user_id"),
    )


class Payment(Base):
    """Completed checkout payments."""

    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    order_id = Column(String(50), nullable=False, unique=True)
    transaction_id = Column(String(100), nullable=False)
    amount = Column(Float, nullable=False)
    currency = Column(String(3), default="BDT", nullable=False)
    payment_method = Column(String(30), nullable=False)
    status = Column(String(10), default=PaymentStatus.PAID.value, nullable=False)
    invoice_number = Column(String(50), nullable=True)
    payment_time = Column(DateTime(timezone=True), server_default=func.now())
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (Index("idx_payments_user", "user_id"),)


class Notification(Base):
    """User notifications. TEAM_REQUEST rows double as team invitations."""

    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    type = Column(String(30), nullable=False)  # NotificationType enum value
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    related_id = Column(Integer, nullable=True)  # team id for team notifications
    data = Column(Text, nullable=True)  # JSON string for flexible metadata
    status = Column(String(10), default=NotificationStatus.UNREAD.value, nullable=False)
    action_taken = Column(String(10), nullable=True)  # NotificationAction enum value
    read_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index("idx_notifications_user_status", "user_id", "status"),
        Index("idx_notifications_related", "type", "related_id"),
    )


class GameRequest(Base):
    """A student's suggestion for a new game in an existing tournament."""

    __tablename__ = "game_requests"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tournament_id = Column(Integer, ForeignKey("tournaments.id", ondelete="CASCADE"), nullable=False)
    requested_by = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    game_name = Column(String(100), nullable=False)
    category = Column(String(10), nullable=False)  # GameCategory enum value
    game_type = Column(String(20), default="Solo", nullable=False)
    status = Column(String(10), default=RequestStatus.PENDING.value, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index("idx_game_requests_requested_by", "requested_by"),
        Index("idx_game_requests_tournament_status", "tournament_id", "status"),
    )


class TournamentRequest(Base):
    """A student's suggestion for a new tournament."""

    __tablename__ = "tournament_requests"

    id = Column(Integer, primary_key=True, autoincrement=True)
    requested_by = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    registration_deadline = Column(DateTime(timezone=True), nullable=False)
    status = Column(String(10), default=RequestStatus.PENDING.value, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index("idx_tournament_requests_requested_by", "requested_by"),
        Index("idx_tournament_requests_title_status", "title", "status"),
    )


class AdminRole(Base):
    """Admin panel roles."""

    __tablename__ = "admin_roles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    role_name = Column(String(50), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Permission(Base):
    """Admin panel permissions (snake_case names, e.g. manage_tournaments)."""

    __tablename__ = "permissions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    permission_name = Column(String(50), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class RolePermission(Base):
    """Permissions granted to a role."""

    __tablename__ = "role_permissions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    role_id = Column(Integer, ForeignKey("admin_roles.id", ondelete="CASCADE"), nullable=False)
    permission_id = Column(Integer, ForeignKey("permissions.id", ondelete="CASCADE"), nullable=False)

    __table_args__ = (
        UniqueConstraint("role_id", "permission_id", name="uq_role_permissions_role_permission"),
    )


class AdminRoleMap(Base):
    """Roles assigned to users. Any assignment makes the user an admin."""

    __tablename__ = "admin_role_map"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    role_id = Column(Integer, ForeignKey("admin_roles.id", ondelete="CASCADE"), nullable=False)
    assigned_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    assigned_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint("user_id", "role_id", name="uq_admin_role_map_user_role"),
        Index("idx_admin_role_map_user", "user_id"),
    )
