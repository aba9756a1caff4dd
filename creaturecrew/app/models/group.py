"""
models/group.py — Group table definition.

A group is a small crew of users sharing one creature. Its invite code is the
only way in; its creature_mood is a cache of the last mood recompute over the
group's tasks and is written only by services/mood_service.py.

Constraints:
  - invite_code UNIQUE: the authoritative uniqueness gate for generated codes.
    Codes are stored uppercase so the constraint is effectively
    case-insensitive.
  - creature_mood CHECK 0..100.
  - name non-empty after trim (also enforced by CreateGroupSchema and
    group_service.create_group).
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from creaturecrew.app.extensions import db

NEUTRAL_MOOD = 50


class Group(db.Model):
    __tablename__ = "groups"

    __table_args__ = (
        UniqueConstraint("invite_code", name="uq_groups_invite_code"),
        CheckConstraint(
            "LENGTH(TRIM(name)) > 0",
            name="ck_groups_name_nonempty",
        ),
        CheckConstraint(
            "creature_mood >= 0 AND creature_mood <= 100",
            name="ck_groups_creature_mood_range",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    invite_code: Mapped[str] = mapped_column(
        String(8),
        nullable=False,
    )

    creature_mood: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=NEUTRAL_MOOD,
        server_default=str(NEUTRAL_MOOD),
    )

    # ON DELETE RESTRICT — a founder cannot be deleted out from under a group.
    founder_user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    # ── Relationships ──────────────────────────────────────────────────────

    founder: Mapped["User"] = relationship(  # noqa: F821
        "User",
        foreign_keys=[founder_user_id],
    )

    memberships: Mapped[list["Membership"]] = relationship(  # noqa: F821
        "Membership",
        back_populates="group",
        order_by="Membership.id",
    )

    tasks: Mapped[list["Task"]] = relationship(  # noqa: F821
        "Task",
        back_populates="group",
        order_by="Task.id",
    )

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<Group id={self.id} name={self.name!r} "
            f"invite_code={self.invite_code!r} mood={self.creature_mood}>"
        )
