"""
models/task.py — Task table definition.

Each task belongs to exactly one (group, member) pair. group_id and user_id
never change after insert; only `completed` is mutable, and only through
task_service.toggle(), which also refreshes the group's creature_mood.

Listing order is creation order (ascending id).
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, DateTime, ForeignKey, Index, Text, false, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from creaturecrew.app.extensions import db


class Task(db.Model):
    __tablename__ = "tasks"

    __table_args__ = (
        CheckConstraint(
            "LENGTH(TRIM(description)) > 0",
            name="ck_tasks_description_nonempty",
        ),
        # Serves both "all tasks for group" (mood) and "tasks for member in group".
        Index("idx_tasks_group_user", "group_id", "user_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    group_id: Mapped[int] = mapped_column(
        ForeignKey("groups.id", ondelete="RESTRICT"),
        nullable=False,
    )

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
    )

    description: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )

    completed: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=false(),
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        onupdate=func.now(),
    )

    # ── Relationships ──────────────────────────────────────────────────────

    group: Mapped["Group"] = relationship(  # noqa: F821
        "Group",
        back_populates="tasks",
    )

    owner: Mapped["User"] = relationship(  # noqa: F821
        "User",
        back_populates="tasks",
    )

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<Task id={self.id} group_id={self.group_id} "
            f"user_id={self.user_id} completed={self.completed}>"
        )
