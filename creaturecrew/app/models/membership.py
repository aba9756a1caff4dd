"""
models/membership.py — Membership table definition.

A membership binds one user to one group. UNIQUE(user_id) makes "a user
belongs to at most one group" a data-integrity rule: two concurrent joins for
the same user cannot both commit, whatever the service-level pre-check saw.

Insertion order (ascending id) is the member listing order, so the founder
always comes first.

FK policy: user_id and group_id both ON DELETE RESTRICT.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from creaturecrew.app.extensions import db


class Membership(db.Model):
    __tablename__ = "memberships"

    __table_args__ = (
        UniqueConstraint("user_id", name="uq_memberships_user"),
        Index("idx_memberships_group", "group_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
    )

    group_id: Mapped[int] = mapped_column(
        ForeignKey("groups.id", ondelete="RESTRICT"),
        nullable=False,
    )

    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    # ── Relationships ──────────────────────────────────────────────────────

    user: Mapped["User"] = relationship(  # noqa: F821
        "User",
        back_populates="membership",
    )

    group: Mapped["Group"] = relationship(  # noqa: F821
        "Group",
        back_populates="memberships",
    )

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<Membership id={self.id} "
            f"user_id={self.user_id} "
            f"group_id={self.group_id}>"
        )
