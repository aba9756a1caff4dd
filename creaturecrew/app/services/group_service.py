"""
services/group_service.py — Group registry.

Owns group identity, name, invite code and the cached creature mood.

Invariants enforced here:
  - A group name is non-empty after trimming.
  - A founder who already belongs to a group cannot create another one; when
    that is detected nothing is persisted.
  - Invite codes are unique. The pre-check lives in invite_code.py; the
    UNIQUE constraint catches whatever races past it, and the create is then
    retried with a fresh code.
  - creature_mood stays within 0..100. update_mood() clamps, never rejects.

Authorization rules:
  - Reading a group by id through the API: members only (FORBIDDEN otherwise).

Layer rules:
  - No Flask imports. Pure Python with a SQLAlchemy session parameter.
  - Commits are the route's responsibility — only flush here. The one
    exception is rolling back a failed create, which is always the first
    write of its unit of work.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from creaturecrew.app.errors import AppError, ErrorCode
from creaturecrew.app.models.group import NEUTRAL_MOOD, Group
from creaturecrew.app.models.membership import Membership
from creaturecrew.app.models.user import User
from creaturecrew.app.services import invite_code

logger = logging.getLogger(__name__)

MAX_GROUP_NAME_LENGTH = 100
MIN_MOOD = 0
MAX_MOOD = 100


# ── Helpers ────────────────────────────────────────────────────────────────

def _get_group_or_404(group_id: int, session: Session) -> Group:
    """Returns the Group or raises GROUP_NOT_FOUND (404)."""
    group = session.get(Group, group_id)
    if group is None:
        raise AppError(
            ErrorCode.GROUP_NOT_FOUND,
            f"Group {group_id} does not exist.",
            404,
        )
    return group


def get_user_or_404(user_id: int, session: Session) -> User:
    """Returns the User or raises USER_NOT_FOUND (404)."""
    user = session.get(User, user_id)
    if user is None:
        raise AppError(
            ErrorCode.USER_NOT_FOUND,
            f"User {user_id} does not exist.",
            404,
        )
    return user


def already_in_group_error(user_id: int) -> AppError:
    """Builds the ALREADY_IN_GROUP (409) error for `user_id`."""
    return AppError(
        ErrorCode.ALREADY_IN_GROUP,
        f"User {user_id} already belongs to a group.",
        409,
    )


def _clean_group_name(name: str | None) -> str:
    """Trims the name; raises INVALID_FIELD (400) when blank or too long."""
    cleaned = (name or "").strip()
    if not cleaned:
        raise AppError(
            ErrorCode.INVALID_FIELD,
            "Group name must not be blank.",
            400,
            field="name",
        )
    if len(cleaned) > MAX_GROUP_NAME_LENGTH:
        raise AppError(
            ErrorCode.INVALID_FIELD,
            f"Group name must be at most {MAX_GROUP_NAME_LENGTH} characters.",
            400,
            field="name",
        )
    return cleaned


def clamp_mood(value: float | int) -> int:
    """Rounds and clamps any numeric mood into the 0..100 range."""
    return max(MIN_MOOD, min(MAX_MOOD, int(round(value))))


def has_membership(user_id: int, session: Session) -> bool:
    """True if the user belongs to any group."""
    existing = session.execute(
        select(Membership.id).where(Membership.user_id == user_id)
    ).scalar_one_or_none()
    return existing is not None


def require_member(group_id: int, user_id: int, session: Session) -> None:
    """
    Raises FORBIDDEN (403) if user_id is not a member of group_id.
    Non-members receive 403, not 404.
    """
    membership = session.execute(
        select(Membership).where(
            Membership.group_id == group_id,
            Membership.user_id == user_id,
            )
    ).scalar_one_or_none()

    if membership is None:
        raise AppError(
            ErrorCode.FORBIDDEN,
            f"You are not a member of group {group_id}.",
            403,
        )


# ── Public service functions ───────────────────────────────────────────────

def create_group(
        name: str,
        founder_id: int,
        session: Session,
        *,
        invite_code_length: int = invite_code.DEFAULT_CODE_LENGTH,
        max_attempts: int = invite_code.DEFAULT_MAX_ATTEMPTS,
) -> Group:
    """
    Creates a group and makes the founder its first member.

    The group row and the founder's membership are flushed together. If the
    flush trips a UNIQUE constraint, the unit of work is rolled back and the
    cause is re-checked rather than guessed:
      - the founder now has a membership → ALREADY_IN_GROUP (a concurrent
        create or join won the race);
      - otherwise the invite code collided → take the next candidate code.
      At most max_attempts codes are drawn in total across both kinds of
      collision.

    Raises:
      AppError(INVALID_FIELD, 400)          — blank or over-long name
      AppError(USER_NOT_FOUND, 404)         — founder does not exist
      AppError(ALREADY_IN_GROUP, 409)       — founder already in a group
      AppError(INVITE_CODE_EXHAUSTED, 500)  — max_attempts codes drawn, none usable

    Returns: the new Group (mood at its neutral default).
    """
    clean_name = _clean_group_name(name)
    get_user_or_404(founder_id, session)

    if has_membership(founder_id, session):
        raise already_in_group_error(founder_id)

    # One budget covers codes rejected up front and codes lost at insert time.
    for code in invite_code.candidate_codes(
            session,
            length=invite_code_length,
            max_attempts=max_attempts,
    ):
        group = Group(
            name=clean_name,
            invite_code=code,
            founder_user_id=founder_id,
            creature_mood=NEUTRAL_MOOD,
        )
        session.add(group)
        try:
            session.flush()  # populate group.id before creating membership
            session.add(Membership(user_id=founder_id, group_id=group.id))
            session.flush()
        except IntegrityError:
            session.rollback()
            if has_membership(founder_id, session):
                raise already_in_group_error(founder_id)
            logger.warning(
                "Invite code %s was taken at insert time; regenerating.",
                code,
            )
            continue

        logger.info(
            "Group %s created by user %s with invite code %s.",
            group.id,
            founder_id,
            code,
        )
        return group

    logger.error("Group creation for user %s exhausted invite code attempts.", founder_id)
    raise AppError(
        ErrorCode.INVITE_CODE_EXHAUSTED,
        f"Could not reserve a free invite code after {max_attempts} attempts.",
        500,
    )


def get_group(
        group_id: int,
        session: Session,
        *,
        caller_id: int | None = None,
) -> Group:
    """
    Returns the group with the given id.

    When caller_id is given the caller must be a member (FORBIDDEN, 403).

    Raises:
      AppError(GROUP_NOT_FOUND, 404)
      AppError(FORBIDDEN, 403)
    """
    group = _get_group_or_404(group_id, session)
    if caller_id is not None:
        require_member(group_id, caller_id, session)
    return group


def get_group_by_user(user_id: int, session: Session) -> Group | None:
    """Returns the user's current group, or None when they have not joined one."""
    stmt = (
        select(Group)
        .join(Membership, Group.id == Membership.group_id)
        .where(Membership.user_id == user_id)
    )
    return session.execute(stmt).scalar_one_or_none()


def get_group_by_code(code: str, session: Session) -> Group | None:
    """Returns the group holding `code` (case and surrounding whitespace ignored)."""
    normalized = invite_code.normalize_invite_code(code)
    if not normalized:
        return None
    return session.execute(
        select(Group).where(Group.invite_code == normalized)
    ).scalar_one_or_none()


def update_mood(group_id: int, new_mood: float | int, session: Session) -> Group:
    """
    Stores a new creature mood for the group, clamped to 0..100.

    Only mood_service.recompute() calls this; nothing else writes
    creature_mood.

    Raises:
      AppError(GROUP_NOT_FOUND, 404)
    """
    group = _get_group_or_404(group_id, session)
    group.creature_mood = clamp_mood(new_mood)
    session.flush()
    return group
