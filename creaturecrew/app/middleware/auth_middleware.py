"""
middleware/auth_middleware.py — JWT authentication decorator.

@require_auth reads "Authorization: Bearer <token>", verifies the HS256
signature and expiry, and stores the caller's id on flask.g.user_id.

Authentication only (401). Whether the caller may touch a group or a task is
decided in the service layer (403), which receives the id from the route as a
plain int argument and never reads flask.g itself.

Error codes:
  TOKEN_MISSING  (401) — no Authorization header
  TOKEN_INVALID  (401) — malformed header, bad signature, or bad `sub`
  TOKEN_EXPIRED  (401) — the access token has run out
"""

from __future__ import annotations

import functools
from typing import Callable

import jwt
from flask import current_app, g, request

from creaturecrew.app.errors import AppError, ErrorCode


def require_auth(f: Callable) -> Callable:
    """
    Route decorator that enforces JWT authentication.

        @groups_bp.route("/me", methods=["GET"])
        @require_auth
        def my_group():
            group_service.get_group_by_user(g.user_id, db.session)
    """
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        g.user_id = _authenticate_request()
        return f(*args, **kwargs)

    return decorated


def _invalid(message: str) -> AppError:
    return AppError(ErrorCode.TOKEN_INVALID, message, 401)


def _authenticate_request() -> int:
    """
    Verifies the bearer token on the current request and returns its user id.

    Raises AppError on any failure; the global handler renders it.
    """
    auth_header = request.headers.get("Authorization", "")
    if not auth_header:
        raise AppError(
            ErrorCode.TOKEN_MISSING,
            "Authentication required. Provide a Bearer token in the Authorization header.",
            401,
        )

    parts = auth_header.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise _invalid("Authorization header must be in the format: Bearer <token>.")

    try:
        payload = jwt.decode(
            parts[1],
            current_app.config["JWT_SECRET_KEY"],
            algorithms=[current_app.config.get("JWT_ALGORITHM", "HS256")],
        )
    except jwt.ExpiredSignatureError:
        raise AppError(
            ErrorCode.TOKEN_EXPIRED,
            "The access token has expired. Use POST /auth/refresh to obtain a new one.",
            401,
        )
    except jwt.InvalidTokenError:
        raise _invalid("The access token is invalid or has been tampered with.")

    sub = payload.get("sub")
    if sub is None:
        raise _invalid("The access token is missing the required 'sub' claim.")

    try:
        return int(sub)
    except (TypeError, ValueError):
        raise _invalid("The 'sub' claim in the access token is not a valid user ID.")
