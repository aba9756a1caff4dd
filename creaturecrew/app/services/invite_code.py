"""
services/invite_code.py — Invite code generation and normalisation.

Codes are short, shareable and read aloud or typed by hand, so the alphabet
leaves out the look-alike characters 0/O and 1/I:

    ABCDEFGHJKLMNPQRSTUVWXYZ23456789   (32 symbols)

Codes are always stored and compared in uppercase. A six-character code
gives 32**6 (about 1.07e9) combinations.

A candidate is checked against existing groups before it is handed out. The
UNIQUE constraint on groups.invite_code remains the authoritative gate; a
collision that slips past the check is handled in group_service.create_group
by taking the next code from candidate_codes(), within the same budget.

Layer rules:
  - No Flask imports. Pure Python with a SQLAlchemy session parameter.
"""

from __future__ import annotations

import logging
import secrets
from typing import Callable, Iterator, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from creaturecrew.app.errors import AppError, ErrorCode
from creaturecrew.app.models.group import Group

logger = logging.getLogger(__name__)

INVITE_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
MIN_CODE_LENGTH = 6
MAX_CODE_LENGTH = 8
DEFAULT_CODE_LENGTH = 6
DEFAULT_MAX_ATTEMPTS = 5


def normalize_invite_code(code: str) -> str:
    """Trims surrounding whitespace and uppercases a user-supplied code."""
    return code.strip().upper()


def random_code(
        length: int = DEFAULT_CODE_LENGTH,
        alphabet: str = INVITE_CODE_ALPHABET,
        choice: Callable[[Sequence[str]], str] = secrets.choice,
) -> str:
    """
    Returns one random code. No uniqueness check.

    Raises ValueError for a length outside 6..8 or an empty alphabet: both
    are configuration mistakes, not user errors.
    """
    if not MIN_CODE_LENGTH <= length <= MAX_CODE_LENGTH:
        raise ValueError(
            f"Invite code length must be between {MIN_CODE_LENGTH} and "
            f"{MAX_CODE_LENGTH}, got {length}."
        )
    if not alphabet:
        raise ValueError("Invite code alphabet must not be empty.")
    return "".join(choice(alphabet) for _ in range(length)).upper()


def code_in_use(code: str, session: Session) -> bool:
    """True if any group already holds `code` (compared case-insensitively)."""
    existing = session.execute(
        select(Group.id).where(Group.invite_code == normalize_invite_code(code))
    ).scalar_one_or_none()
    return existing is not None


def candidate_codes(
        session: Session,
        length: int = DEFAULT_CODE_LENGTH,
        alphabet: str = INVITE_CODE_ALPHABET,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        choice: Callable[[Sequence[str]], str] = secrets.choice,
) -> Iterator[str]:
    """
    Yields codes that no existing group holds, drawing at most `max_attempts`
    random candidates in total.

    A caller that loses an insert race simply asks for the next code; draws
    rejected by the pre-check and draws lost at insert time share the same
    budget.

    Raises:
      AppError(INVITE_CODE_EXHAUSTED, 500) — the budget ran out. The code
        space is too small for the number of groups; this is never papered
        over with a longer or reused code.
    """
    for attempt in range(1, max_attempts + 1):
        code = random_code(length, alphabet, choice)
        if code_in_use(code, session):
            logger.warning(
                "Invite code collision on attempt %d/%d; regenerating.",
                attempt,
                max_attempts,
            )
            continue
        yield code

    logger.error(
        "Invite code generation exhausted after %d attempts (length=%d, alphabet=%d symbols).",
        max_attempts,
        length,
        len(alphabet),
    )
    raise AppError(
        ErrorCode.INVITE_CODE_EXHAUSTED,
        f"Could not generate a free invite code after {max_attempts} attempts.",
        500,
    )


def generate_invite_code(
        session: Session,
        length: int = DEFAULT_CODE_LENGTH,
        alphabet: str = INVITE_CODE_ALPHABET,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        choice: Callable[[Sequence[str]], str] = secrets.choice,
) -> str:
    """
    Returns the first code no existing group holds.

    Raises:
      AppError(INVITE_CODE_EXHAUSTED, 500) — all `max_attempts` candidates
        collided.
    """
    return next(candidate_codes(session, length, alphabet, max_attempts, choice))
