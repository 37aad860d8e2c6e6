"""Initial schema: accounts, families, invitations, journal, Notion.

Revision ID: 001
Revises: None
Create Date: 2026-10-17

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

UUID = postgresql.UUID(as_uuid=True)


def _id() -> sa.Column:
    return sa.Column("id", UUID, server_default=sa.text("gen_random_uuid()"), primary_key=True)


def _created_at() -> sa.Column:
    return sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now())


def _updated_at() -> sa.Column:
    return sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now())


def upgrade() -> None:
    """Create all tables."""

    # ── users ─────────────────────────────────────────────────────────
    op.create_table(
        "users",
        _id(),
        sa.Column("email", sa.String(255), unique=True, nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("full_name", sa.String(100), nullable=True),
        sa.Column("avatar_url", sa.Text(), nullable=True),
        sa.Column("language", sa.String(5), nullable=False, server_default="en"),
        _created_at(),
        _updated_at(),
    )

    # ── refresh_tokens ────────────────────────────────────────────────
    op.create_table(
        "refresh_tokens",
        _id(),
        sa.Column("user_id", UUID, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("token_hash", sa.String(255), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("revoked", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        _created_at(),
    )

    # ── families ──────────────────────────────────────────────────────
    op.create_table(
        "families",
        _id(),
        sa.Column("name", sa.String(100), nullable=True),
        _created_at(),
        _updated_at(),
    )

    # ── family_members ────────────────────────────────────────────────
    op.create_table(
        "family_members",
        _id(),
        sa.Column("family_id", UUID, sa.ForeignKey("families.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", UUID, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("role", sa.String(20), nullable=False, server_default="member"),
        sa.Column("label", sa.String(50), nullable=True),
        sa.Column("joined_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("family_id", "user_id", name="uq_family_members_family_user"),
    )
    op.create_index("ix_family_members_family_id", "family_members", ["family_id"])
    op.create_index("ix_family_members_user_id", "family_members", ["user_id"])

    # ── family_invitations ────────────────────────────────────────────
    op.create_table(
        "family_invitations",
        _id(),
        sa.Column("family_id", UUID, sa.ForeignKey("families.id", ondelete="CASCADE"), nullable=False),
        sa.Column("invited_by", UUID, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("token", sa.String(64), unique=True, nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column(
            "expires_at", sa.DateTime(timezone=True), nullable=False,
            server_default=sa.text("now() + interval '7 days'"),
        ),
        _created_at(),
    )
    op.create_index("ix_family_invitations_family_id", "family_invitations", ["family_id"])

    # ── children ──────────────────────────────────────────────────────
    op.create_table(
        "children",
        _id(),
        sa.Column("family_id", UUID, sa.ForeignKey("families.id", ondelete="CASCADE"), nullable=False),
        sa.Column("created_by", UUID, sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("birthdate", sa.Date(), nullable=False),
        sa.Column("photo_url", sa.Text(), nullable=True),
        sa.Column("photo_emoji", sa.String(16), nullable=True),
        _created_at(),
        _updated_at(),
    )
    op.create_index("ix_children_family_id", "children", ["family_id"])

    # ── notes ─────────────────────────────────────────────────────────
    op.create_table(
        "notes",
        _id(),
        sa.Column("family_id", UUID, sa.ForeignKey("families.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", UUID, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("transcript", sa.Text(), nullable=True),
        sa.Column("summary", sa.Text(), nullable=True),
        sa.Column("tags", postgresql.ARRAY(sa.Text()), nullable=False, server_default="{}"),
        sa.Column("children", postgresql.ARRAY(sa.Text()), nullable=False, server_default="{}"),
        sa.Column("structured_content", postgresql.JSON(), nullable=True),
        sa.Column("duration", sa.Integer(), nullable=True),
        sa.Column("date", sa.DateTime(timezone=True), server_default=sa.func.now()),
        _created_at(),
        _updated_at(),
    )
    op.create_index("ix_notes_family_id", "notes", ["family_id"])
    op.create_index("ix_notes_date", "notes", ["date"])

    # ── drawings ──────────────────────────────────────────────────────
    op.create_table(
        "drawings",
        _id(),
        sa.Column("family_id", UUID, sa.ForeignKey("families.id", ondelete="CASCADE"), nullable=False),
        sa.Column("child_id", UUID, sa.ForeignKey("children.id", ondelete="CASCADE"), nullable=False),
        sa.Column("uploaded_by", UUID, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("image_url", sa.Text(), nullable=False),
        sa.Column("title", sa.String(200), nullable=True),
        _created_at(),
    )
    op.create_index("ix_drawings_family_id", "drawings", ["family_id"])

    # ── notion_tokens ─────────────────────────────────────────────────
    op.create_table(
        "notion_tokens",
        _id(),
        sa.Column("user_id", UUID, sa.ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False),
        sa.Column("access_token", sa.Text(), nullable=False),
        sa.Column("workspace_id", sa.String(64), nullable=True),
        sa.Column("workspace_name", sa.String(200), nullable=True),
        sa.Column("database_id", sa.String(64), nullable=True),
        _created_at(),
        _updated_at(),
    )

    # ── oauth_states ──────────────────────────────────────────────────
    op.create_table(
        "oauth_states",
        _id(),
        sa.Column("user_id", UUID, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("state_token", sa.String(64), unique=True, nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        _created_at(),
    )
    op.create_index("ix_oauth_states_user_id", "oauth_states", ["user_id"])


def downgrade() -> None:
    """Drop all tables in reverse dependency order."""
    op.drop_table("oauth_states")
    op.drop_table("notion_tokens")
    op.drop_table("drawings")
    op.drop_table("notes")
    op.drop_table("children")
    op.drop_table("family_invitations")
    op.drop_table("family_members")
    op.drop_table("families")
    op.drop_table("refresh_tokens")
    op.drop_table("users")
