"""
services/auth_service.py — Accounts and tokens.

Supplies the acting user id that every group and task operation takes as an
explicit argument; nothing in the core looks a user up from ambient state.

Responsibilities:
  - Registration and credential checks (bcrypt hashes, never raw passwords)
  - JWT access tokens (HS256, sub = user id as str)
  - Refresh tokens: random hex handed to the client once, stored only as a
    SHA-256 digest, revoked on logout
  - The current user's profile, including which group they are in

Layer rules:
  - No use of flask.request, flask.g, or HTTP status codes beyond AppError.
  - current_app.config is read for JWT secrets, token lifetimes and bcrypt
    rounds only. This service is exercised through the app in tests.
"""

from __future__ import annotations

import hashlib
import logging
import secrets
from datetime import datetime, timezone

import bcrypt
import jwt
from flask import current_app
from sqlalchemy import select
from sqlalchemy.orm import Session

from creaturecrew.app.errors import AppError, ErrorCode
from creaturecrew.app.models.membership import Membership
from creaturecrew.app.models.refresh_token import RefreshToken
from creaturecrew.app.models.user import User

logger = logging.getLogger(__name__)


# ── Private helpers ────────────────────────────────────────────────────────

def _hash_token(raw_token: str) -> str:
    """SHA-256 hex digest of a raw refresh token."""
    return hashlib.sha256(raw_token.encode("utf-8")).hexdigest()


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns.
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def _create_access_token(user_id: int) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "iat": now,
        "exp": now + current_app.config["JWT_ACCESS_TOKEN_EXPIRES"],
        "jti": secrets.token_hex(8),
    }
    return jwt.encode(
        payload,
        current_app.config["JWT_SECRET_KEY"],
        algorithm=current_app.config.get("JWT_ALGORITHM", "HS256"),
    )


def _create_refresh_token(user_id: int, session: Session) -> str:
    """Stores the digest of a new refresh token and returns the raw value."""
    raw_token = secrets.token_hex(32)
    session.add(RefreshToken(
        user_id=user_id,
        token_hash=_hash_token(raw_token),
        expires_at=datetime.now(timezone.utc) + current_app.config["JWT_REFRESH_TOKEN_EXPIRES"],
    ))
    session.flush()
    return raw_token


def _token_pair(user_id: int, session: Session) -> dict:
    return {
        "access_token": _create_access_token(user_id),
        "refresh_token": _create_refresh_token(user_id, session),
    }


def _find_refresh_token(raw_token: str, session: Session) -> RefreshToken | None:
    return session.execute(
        select(RefreshToken).where(RefreshToken.token_hash == _hash_token(raw_token))
    ).scalar_one_or_none()


def _build_user_dict(user: User, group_id: int | None = None) -> dict:
    """Serialises a User to a plain dict. Never includes the password hash."""
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "group_id": group_id,
        "created_at": user.created_at.isoformat(),
    }


# ── Public service functions ───────────────────────────────────────────────

def register_user(
        username: str,
        email: str,
        password: str,
        session: Session,
) -> dict:
    """
    Creates an account and issues an access + refresh token pair.

    Raises:
      AppError(DUPLICATE_EMAIL, 409)
      AppError(DUPLICATE_USERNAME, 409)

    Returns: {"user": {...}, "access_token": "...", "refresh_token": "..."}
    """
    for column, value, code, label in (
            (User.email, email, ErrorCode.DUPLICATE_EMAIL, "email address"),
            (User.username, username, ErrorCode.DUPLICATE_USERNAME, "username"),
    ):
        taken = session.execute(select(User.id).where(column == value)).scalar_one_or_none()
        if taken is not None:
            raise AppError(
                code,
                f"The {label} '{value}' is already taken.",
                409,
                field=column.key,
            )

    rounds = current_app.config.get("BCRYPT_LOG_ROUNDS", 12)
    user = User(
        username=username,
        email=email,
        password_hash=bcrypt.hashpw(
            password.encode("utf-8"),
            bcrypt.gensalt(rounds=rounds),
        ).decode("utf-8"),
    )
    session.add(user)
    session.flush()  # populate user.id before creating refresh token

    logger.info("Registered user %s (%s).", user.id, username)
    return {"user": _build_user_dict(user), **_token_pair(user.id, session)}


def login_user(username: str, password: str, session: Session) -> dict:
    """
    Checks credentials and issues a new token pair.

    Raises:
      AppError(INVALID_CREDENTIALS, 401) — same error for unknown user and
        wrong password so usernames cannot be probed.
    """
    user = session.execute(
        select(User).where(User.username == username)
    ).scalar_one_or_none()

    if user is None or not bcrypt.checkpw(
            password.encode("utf-8"),
            user.password_hash.encode("utf-8"),
    ):
        raise AppError(
            ErrorCode.INVALID_CREDENTIALS,
            "The username or password is incorrect.",
            401,
        )

    group_id = user.membership.group_id if user.membership else None
    return {"user": _build_user_dict(user, group_id), **_token_pair(user.id, session)}


def refresh_access_token(raw_refresh_token: str, session: Session) -> dict:
    """
    Exchanges a live refresh token for a new access token. The refresh token
    is not rotated.

    Raises:
      AppError(REFRESH_TOKEN_INVALID, 401) — unknown, revoked or expired.
    """
    record = _find_refresh_token(raw_refresh_token, session)
    now = datetime.now(timezone.utc)

    if record is None or record.revoked or _as_utc(record.expires_at) <= now:
        raise AppError(
            ErrorCode.REFRESH_TOKEN_INVALID,
            "The refresh token is invalid, expired, or has been revoked.",
            401,
        )

    return {"access_token": _create_access_token(record.user_id)}


def logout_user(raw_refresh_token: str, session: Session) -> None:
    """
    Revokes a refresh token.

    Raises:
      AppError(REFRESH_TOKEN_INVALID, 401) — unknown or already revoked.
    """
    record = _find_refresh_token(raw_refresh_token, session)
    if record is None or record.revoked:
        raise AppError(
            ErrorCode.REFRESH_TOKEN_INVALID,
            "The refresh token is invalid or has already been revoked.",
            401,
        )

    record.revoked = True
    session.flush()


def get_current_user(user_id: int, session: Session) -> dict:
    """
    Returns the caller's profile with their current group id (or None).

    Raises:
      AppError(USER_NOT_FOUND, 404) — the account vanished after the token
        was issued.
    """
    user = session.get(User, user_id)
    if user is None:
        raise AppError(
            ErrorCode.USER_NOT_FOUND,
            f"User {user_id} not found.",
            404,
        )

    group_id = session.execute(
        select(Membership.group_id).where(Membership.user_id == user_id)
    ).scalar_one_or_none()
    return _build_user_dict(user, group_id)
