"""
errors.py — AppError base class and error code registry.

Every error returned by the CreatureCrew API uses a code defined here.
Service and route code never raises strings or generic exceptions for
expected failures.

Rules:
  - Error codes are a versioned contract. They do not change once published.
  - Error messages are human-readable prose. They may be improved at any time.
  - 401 (unauthenticated) and 403 (not allowed) are never conflated.
"""

from __future__ import annotations


class AppError(Exception):

    def __init__(
            self,
            code: str,
            message: str,
            http_status: int,
            field: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code        = code
        self.message     = message
        self.http_status = http_status
        self.field       = field  # which request field caused the error

    def to_dict(self) -> dict:
        payload = {
            "code":    self.code,
            "message": self.message,
        }
        if self.field is not None:
            payload["field"] = self.field
        return {"error": payload}

    def __repr__(self) -> str:
        return (
            f"AppError(code={self.code!r}, "
            f"http_status={self.http_status}, "
            f"message={self.message!r})"
        )


# ── Error Code Registry ────────────────────────────────────────────────────
#
# Organised by category. HTTP status is indicated in the comment.
# These are the string values sent in the API response; clients pick their
# user-facing message from them.
# ──────────────────────────────────────────────────────────────────────────

class ErrorCode:

    # ── Input Errors (400) ─────────────────────────────────────────────────
    MISSING_FIELD              = "MISSING_FIELD"
    INVALID_FIELD              = "INVALID_FIELD"

    # ── Conflict Errors (409) ──────────────────────────────────────────────
    DUPLICATE_EMAIL            = "DUPLICATE_EMAIL"
    DUPLICATE_USERNAME         = "DUPLICATE_USERNAME"
    ALREADY_IN_GROUP           = "ALREADY_IN_GROUP"       # one group per user

    # ── Not Found Errors (404) ─────────────────────────────────────────────
    USER_NOT_FOUND             = "USER_NOT_FOUND"
    GROUP_NOT_FOUND            = "GROUP_NOT_FOUND"
    TASK_NOT_FOUND             = "TASK_NOT_FOUND"
    INVALID_INVITE_CODE        = "INVALID_INVITE_CODE"    # no group has this code

    # ── Auth Errors ────────────────────────────────────────────────────────
    # 401 = we do not know who you are (unauthenticated)
    # 403 = we know who you are, but you are not allowed
    INVALID_CREDENTIALS        = "INVALID_CREDENTIALS"    # 401
    TOKEN_MISSING              = "TOKEN_MISSING"          # 401
    TOKEN_INVALID              = "TOKEN_INVALID"          # 401
    TOKEN_EXPIRED              = "TOKEN_EXPIRED"          # 401
    REFRESH_TOKEN_INVALID      = "REFRESH_TOKEN_INVALID"  # 401
    FORBIDDEN                  = "FORBIDDEN"              # 403

    # ── Dependency Errors (502 / 503) ──────────────────────────────────────
    DEPENDENCY_ERROR           = "DEPENDENCY_ERROR"       # 502 — suggestion generator
    STORE_UNAVAILABLE          = "STORE_UNAVAILABLE"      # 503 — database unreachable

    # ── System Errors (500) ────────────────────────────────────────────────
    INVITE_CODE_EXHAUSTED      = "INVITE_CODE_EXHAUSTED"  # code space too small
    INTERNAL_ERROR             = "INTERNAL_ERROR"
