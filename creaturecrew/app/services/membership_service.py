"""
services/membership_service.py — Joining groups and listing members.

A user belongs to at most one group, ever at a time, and there is no way to
leave: joining a second group, or re-joining the same one, is refused.

Atomicity:
  The "does this user already have a membership?" check is only a fast path
  for a friendly error. The real gate is UNIQUE(memberships.user_id). If two
  joins for the same user race past the check, the second flush raises
  IntegrityError; the unit of work is rolled back and ALREADY_IN_GROUP is
  raised, so the loser never ends up with a second membership.

Layer rules:
  - No Flask imports. Pure Python with a SQLAlchemy session parameter.
  - Commits are the route's responsibility — only flush here.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from creaturecrew.app.errors import AppError, ErrorCode
from creaturecrew.app.models.group import Group
from creaturecrew.app.models.membership import Membership
from creaturecrew.app.services import group_service

logger = logging.getLogger(__name__)


def join_by_code(code: str, user_id: int, session: Session) -> Group:
    """
    Adds the user to the group whose invite code matches `code`.

    The code is trimmed and uppercased before the lookup.

    Raises:
      AppError(INVALID_INVITE_CODE, 404) — no group holds this code
      AppError(USER_NOT_FOUND, 404)      — user does not exist
      AppError(ALREADY_IN_GROUP, 409)    — user already has a membership,
                                            including in this very group

    Returns: the joined Group.
    """
    group = group_service.get_group_by_code(code or "", session)
    if group is None:
        raise AppError(
            ErrorCode.INVALID_INVITE_CODE,
            "No group matches that invite code.",
            404,
            field="code",
        )

    group_service.get_user_or_404(user_id, session)

    if group_service.get_group_by_user(user_id, session) is not None:
        raise group_service.already_in_group_error(user_id)

    group_id = group.id
    session.add(Membership(user_id=user_id, group_id=group_id))
    try:
        session.flush()
    except IntegrityError:
        session.rollback()
        logger.info(
            "Concurrent join rejected for user %s into group %s.",
            user_id,
            group_id,
        )
        raise group_service.already_in_group_error(user_id)

    logger.info("User %s joined group %s.", user_id, group_id)
    return group


def list_members(
        group_id: int,
        session: Session,
        *,
        caller_id: int | None = None,
) -> list[Membership]:
    """
    Returns the group's memberships in insertion order (founder first).
    Each membership has its user loaded for display names.

    When caller_id is given the caller must be a member.

    Raises:
      AppError(GROUP_NOT_FOUND, 404)
      AppError(FORBIDDEN, 403)
    """
    group_service.get_group(group_id, session, caller_id=caller_id)

    stmt = (
        select(Membership)
        .options(joinedload(Membership.user))
        .where(Membership.group_id == group_id)
        .order_by(Membership.id.asc())
    )
    return list(session.execute(stmt).scalars().all())
