"""Initial schema: users, tokens, groups, memberships, tasks.

Revision: 001_initial_schema
Created:  2026-10-19

Append-only:
  Never edit this file once it has run against a database. Schema changes go
  in a new revision.

Creation order (FK dependencies):
  users → refresh_tokens → groups → memberships → tasks → indexes

ON DELETE policies:
  refresh_tokens.user_id    → CASCADE   (token owned by user)
  groups.founder_user_id    → RESTRICT
  memberships.*             → RESTRICT
  tasks.*                   → RESTRICT

Uniqueness gates relied on by the services:
  uq_groups_invite_code  one group per invite code
  uq_memberships_user    one group per user
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

# ── Alembic revision identifiers ──────────────────────────────────────────
revision: str = "001_initial_schema"
down_revision: str | None = None      # first migration — no parent
branch_labels: tuple | None = None
depends_on: tuple | None = None


def upgrade() -> None:
    """Apply the full initial schema."""

    # ── users ──────────────────────────────────────────────────────────────

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("username", sa.String(50), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.UniqueConstraint("username", name="uq_users_username"),
        sa.UniqueConstraint("email", name="uq_users_email"),
        sa.CheckConstraint(
            "LENGTH(TRIM(username)) > 0",
            name="ck_users_username_nonempty",
        ),
        sa.CheckConstraint(
            "email LIKE '%@%'",
            name="ck_users_email_format",
        ),
    )

    # ── refresh_tokens ─────────────────────────────────────────────────────

    op.create_table(
        "refresh_tokens",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE", name="fk_refresh_tokens_user"),
            nullable=False,
        ),
        sa.Column("token_hash", sa.String(64), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "revoked",
            sa.Boolean(),
            nullable=False,
            server_default=sa.false(),
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_refresh_tokens"),
        sa.UniqueConstraint("token_hash", name="uq_refresh_tokens_hash"),
    )

    # ── groups ─────────────────────────────────────────────────────────────

    op.create_table(
        "groups",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("invite_code", sa.String(8), nullable=False),
        sa.Column(
            "creature_mood",
            sa.Integer(),
            nullable=False,
            server_default="50",
        ),
        sa.Column(
            "founder_user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="RESTRICT", name="fk_groups_founder"),
            nullable=False,
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_groups"),
        sa.UniqueConstraint("invite_code", name="uq_groups_invite_code"),
        sa.CheckConstraint(
            "LENGTH(TRIM(name)) > 0",
            name="ck_groups_name_nonempty",
        ),
        sa.CheckConstraint(
            "creature_mood >= 0 AND creature_mood <= 100",
            name="ck_groups_creature_mood_range",
        ),
    )

    # ── memberships ────────────────────────────────────────────────────────

    op.create_table(
        "memberships",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="RESTRICT", name="fk_memberships_user"),
            nullable=False,
        ),
        sa.Column(
            "group_id",
            sa.Integer(),
            sa.ForeignKey("groups.id", ondelete="RESTRICT", name="fk_memberships_group"),
            nullable=False,
        ),
        sa.Column(
            "joined_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_memberships"),
        sa.UniqueConstraint("user_id", name="uq_memberships_user"),
    )

    # ── tasks ──────────────────────────────────────────────────────────────

    op.create_table(
        "tasks",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "group_id",
            sa.Integer(),
            sa.ForeignKey("groups.id", ondelete="RESTRICT", name="fk_tasks_group"),
            nullable=False,
        ),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="RESTRICT", name="fk_tasks_user"),
            nullable=False,
        ),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column(
            "completed",
            sa.Boolean(),
            nullable=False,
            server_default=sa.false(),
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_tasks"),
        sa.CheckConstraint(
            "LENGTH(TRIM(description)) > 0",
            name="ck_tasks_description_nonempty",
        ),
    )

    # ── Indexes ────────────────────────────────────────────────────────────

    op.create_index(
        "idx_refresh_tokens_user",
        "refresh_tokens",
        ["user_id"],
    )

    # Member listing. Lookup by user is covered by uq_memberships_user.
    op.create_index(
        "idx_memberships_group",
        "memberships",
        ["group_id"],
    )

    # Mood recompute scans by group; task lists filter by group and user.
    op.create_index(
        "idx_tasks_group_user",
        "tasks",
        ["group_id", "user_id"],
    )


def downgrade() -> None:
    """Drop everything created in upgrade(), in reverse dependency order."""

    op.drop_index("idx_tasks_group_user",    table_name="tasks")
    op.drop_index("idx_memberships_group",   table_name="memberships")
    op.drop_index("idx_refresh_tokens_user", table_name="refresh_tokens")

    op.drop_table("tasks")
    op.drop_table("memberships")
    op.drop_table("groups")
    op.drop_table("refresh_tokens")
    op.drop_table("users")
