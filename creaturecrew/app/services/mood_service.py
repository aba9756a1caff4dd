"""
services/mood_service.py — Creature mood aggregation.

The mood is the current share of the group's tasks that are complete:

    mood = 100 * completed / total, half up     (total > 0)
    mood = 50                                  (total == 0, neutral)

clamped to 0..100. There is no decay, momentum or history; the shape of the
curve lives entirely in compute_mood().

recompute() always counts the full task set of the group instead of nudging
a running total, so interleaved toggles from several members converge on the
right value no matter the order they commit in.

Layer rules:
  - No Flask imports. Pure Python with a SQLAlchemy session parameter.
  - Commits are the route's responsibility — only flush here.
"""

from __future__ import annotations

from sqlalchemy import case, func, select
from sqlalchemy.orm import Session

from creaturecrew.app.models.group import NEUTRAL_MOOD
from creaturecrew.app.models.task import Task
from creaturecrew.app.services import group_service


def compute_mood(completed: int, total: int, neutral: int = NEUTRAL_MOOD) -> int:
    """Pure mood formula. Never divides by zero; result is within 0..100."""
    if total <= 0:
        return group_service.clamp_mood(neutral)
    # Integer arithmetic; an exact .5 rounds up (1/8 -> 13).
    return group_service.clamp_mood((200 * completed + total) // (2 * total))


def count_tasks(group_id: int, session: Session) -> tuple[int, int]:
    """Returns (completed, total) over every task of the group."""
    stmt = select(
        func.count(Task.id),
        func.coalesce(func.sum(case((Task.completed.is_(True), 1), else_=0)), 0),
    ).where(Task.group_id == group_id)
    total, completed = session.execute(stmt).one()
    return int(completed or 0), int(total or 0)


def recompute(group_id: int, session: Session) -> int:
    """
    Recomputes the group's mood from its current tasks and stores it.

    Idempotent: with no task change in between, two calls store and return
    the same value.

    Raises:
      AppError(GROUP_NOT_FOUND, 404)

    Returns: the stored mood.
    """
    completed, total = count_tasks(group_id, session)
    mood = compute_mood(completed, total)
    group = group_service.update_mood(group_id, mood, session)
    return group.creature_mood
