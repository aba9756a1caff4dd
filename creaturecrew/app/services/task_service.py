"""
services/task_service.py — Task store.

Every task is owned by exactly one (group, member) pair. Ownership never
changes, so "may this user toggle it?" is a plain equality check.

Invariants enforced here:
  - Tasks are only created for a member of the target group (FORBIDDEN).
  - Only the owner may toggle a task (FORBIDDEN); a refused toggle leaves
    `completed` untouched.
  - Every task mutation recomputes the group mood in the same unit of work,
    so an acknowledged toggle is never committed without its mood.

Concurrency:
  toggle() locks the owning group row (SELECT ... FOR UPDATE) before flipping.
  Toggles in the same group therefore run their read-all recompute one after
  another and the last committer always writes a mood computed from a task
  set that includes every earlier toggle.

Layer rules:
  - No Flask imports. Pure Python with a SQLAlchemy session parameter.
  - Commits are the route's responsibility — only flush here.
"""

from __future__ import annotations

import logging
from typing import Callable, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from creaturecrew.app.errors import AppError, ErrorCode
from creaturecrew.app.models.group import Group
from creaturecrew.app.models.task import Task
from creaturecrew.app.services import group_service, mood_service

logger = logging.getLogger(__name__)


# ── Private helpers ────────────────────────────────────────────────────────

def _get_task_or_404(task_id: int, session: Session) -> Task:
    """Returns the Task or raises TASK_NOT_FOUND (404)."""
    task = session.get(Task, task_id)
    if task is None:
        raise AppError(
            ErrorCode.TASK_NOT_FOUND,
            f"Task {task_id} does not exist.",
            404,
        )
    return task


def _lock_group(group_id: int, session: Session) -> None:
    """Takes a row lock on the group for the rest of the transaction."""
    session.execute(
        select(Group.id).where(Group.id == group_id).with_for_update()
    )


def _validate_descriptions(descriptions: Sequence[str]) -> list[str]:
    """
    Raises INVALID_FIELD (400) for the first description that is not a
    non-blank string. Values are returned as given, without trimming.
    """
    for index, description in enumerate(descriptions):
        if not isinstance(description, str) or not description.strip():
            raise AppError(
                ErrorCode.INVALID_FIELD,
                f"Task description at position {index} must be a non-empty string.",
                400,
                field="descriptions",
            )
    return list(descriptions)


# ── Public service functions ───────────────────────────────────────────────

def bulk_create(
        group_id: int,
        user_id: int,
        descriptions: Sequence[str],
        session: Session,
) -> list[Task]:
    """
    Creates one incomplete task per description, owned by user_id, in order.

    An empty sequence is a no-op: nothing is written and the mood is left
    alone. Descriptions are not deduplicated.

    Raises:
      AppError(GROUP_NOT_FOUND, 404)
      AppError(FORBIDDEN, 403)        — user is not a member of the group
      AppError(INVALID_FIELD, 400)    — a blank or non-string description

    Returns: the new tasks in creation order.
    """
    if not descriptions:
        return []

    group_service.get_group(group_id, session, caller_id=user_id)
    cleaned = _validate_descriptions(descriptions)

    _lock_group(group_id, session)
    tasks = [
        Task(group_id=group_id, user_id=user_id, description=d, completed=False)
        for d in cleaned
    ]
    session.add_all(tasks)
    session.flush()

    mood = mood_service.recompute(group_id, session)
    logger.info(
        "User %s added %d task(s) to group %s; mood now %d.",
        user_id,
        len(tasks),
        group_id,
        mood,
    )
    return tasks


def toggle(task_id: int, requesting_user_id: int, session: Session) -> Task:
    """
    Flips a task's `completed` flag and recomputes the group mood.

    Raises:
      AppError(TASK_NOT_FOUND, 404)
      AppError(FORBIDDEN, 403)  — requester does not own the task

    Returns: the updated task; its `completed` value is authoritative.
    """
    task = _get_task_or_404(task_id, session)
    if task.user_id != requesting_user_id:
        raise AppError(
            ErrorCode.FORBIDDEN,
            "Only the owner of a task may change it.",
            403,
        )

    _lock_group(task.group_id, session)
    # Re-read under the lock so a concurrent toggle by the same owner is seen.
    session.refresh(task)
    task.completed = not task.completed
    session.flush()

    mood_service.recompute(task.group_id, session)
    return task


def list_for_user_in_group(
        group_id: int,
        user_id: int,
        session: Session,
        *,
        caller_id: int | None = None,
) -> list[Task]:
    """
    Returns user_id's tasks in group_id, in creation order.

    When caller_id is given the caller must be a member of the group; any
    member may look at any other member's list.

    Raises:
      AppError(GROUP_NOT_FOUND, 404)
      AppError(FORBIDDEN, 403)
    """
    group_service.get_group(group_id, session, caller_id=caller_id)

    stmt = (
        select(Task)
        .where(Task.group_id == group_id, Task.user_id == user_id)
        .order_by(Task.id.asc())
    )
    return list(session.execute(stmt).scalars().all())


def create_suggested_tasks(
        group_id: int,
        user_id: int,
        prompt: str,
        suggest: Callable[[str], Sequence[str]],
        session: Session,
) -> list[Task]:
    """
    Asks the suggestion generator for tasks and stores them for user_id.

    Membership is checked before the (possibly slow) generator call. The
    returned strings are used verbatim as task descriptions.

    Raises:
      AppError(GROUP_NOT_FOUND, 404)
      AppError(FORBIDDEN, 403)
      AppError(DEPENDENCY_ERROR, 502) — raised by `suggest`
    """
    group_service.get_group(group_id, session, caller_id=user_id)
    descriptions = suggest(prompt)
    return bulk_create(group_id, user_id, descriptions, session)
