"""add_request_tables

Revision ID: 002
Revises: 001
Create Date: 2026-10-19 09:00:00.000000

Add game_requests and tournament_requests for student suggestions of new
games and tournaments. Both start PENDING until an admin reviews them.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '002'
down_revision: Union[str, None] = '001'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create request tables."""
    op.create_table(
        "game_requests",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("tournament_id", sa.Integer(), nullable=False),
        sa.Column("requested_by", sa.Integer(), nullable=False),
        sa.Column("game_name", sa.String(100), nullable=False),
        sa.Column("category", sa.String(10), nullable=False),
        sa.Column("game_type", sa.String(20), nullable=False, server_default="Solo"),
        sa.Column("status", sa.String(10), nullable=False, server_default="PENDING"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["tournament_id"], ["tournaments.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["requested_by"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_game_requests_requested_by", "game_requests", ["requested_by"])
    op.create_index("idx_game_requests_tournament_status", "game_requests", ["tournament_id", "status"])

    op.create_table(
        "tournament_requests",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("requested_by", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("registration_deadline", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(10), nullable=False, server_default="PENDING"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["requested_by"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_tournament_requests_requested_by", "tournament_requests", ["requested_by"])
    op.create_index("idx_tournament_requests_title_status", "tournament_requests", ["title", "status"])


def downgrade() -> None:
    """Drop request tables."""
    op.drop_index("idx_tournament_requests_title_status", table_name="tournament_requests")
    op.drop_index("idx_tournament_requests_requested_by", table_name="tournament_requests")
    op.drop_table("tournament_requests")
    op.drop_index("idx_game_requests_tournament_status", table_name="game_requests")
    op.drop_index("idx_game_requests_requested_by", table_name="game_requests")
    op.drop_table("game_requests")
